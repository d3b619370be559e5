"""
SPDX-License-Identifier: Apache-2.0
"""

import setuptools

if __name__ == "__main__":
    setuptools.setup(
        name="authz",
        version="0.2.0",
        description="Authorization library for Python web applications",
        license="Apache-2.0",
        packages=setuptools.find_packages(include=["authz", "authz.*"]),
        python_requires=">=3.10",
        install_requires=["tornado>=6.1"],
        extras_require={"test": ["pytest"]},
    )
