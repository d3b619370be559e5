"""Optional file-based configuration.

Nothing in this module runs at import time. Files are only read the first time an application asks for a component's
configuration, either directly or through ``AuthorizationStage.from_config`` or ``authz_logging.configure_logging``.

For each component, the first existing file in ``CONFIG_FILES[component]`` is the base configuration (so
/etc/authz takes priority over /usr/etc/authz). Files in the ``CONFIG_SNIPPETS_DIRS[component]`` directories are then
applied over it, in lexical order of file name. Values are never taken from environment variables.
"""

import logging
import os
from configparser import RawConfigParser
from typing import Dict, List, Optional

logger = logging.getLogger("authz.config")

CONFIG_FILES: Dict[str, List[str]] = {
    "authz": ["/etc/authz/authz.conf", "/usr/etc/authz/authz.conf"],
    "logging": ["/etc/authz/logging.conf", "/usr/etc/authz/logging.conf"],
}

CONFIG_SNIPPETS_DIRS: Dict[str, List[str]] = {
    "authz": ["/usr/etc/authz/authz.conf.d", "/etc/authz/authz.conf.d"],
    "logging": ["/usr/etc/authz/logging.conf.d", "/etc/authz/logging.conf.d"],
}

_config: Dict[str, RawConfigParser] = {}


def _snippets(component: str) -> List[str]:
    files: List[str] = []

    for d in CONFIG_SNIPPETS_DIRS.get(component, []):
        if os.path.isdir(d):
            files.extend(sorted(os.path.join(d, f) for f in os.listdir(d) if os.path.isfile(os.path.join(d, f))))

    return files


def get_config(component: str) -> RawConfigParser:
    """Return the (cached) configuration of ``component``; empty if no configuration file exists."""
    if component in _config:
        return _config[component]

    # RawConfigParser, so that the logging component can use "%(...)s" format strings
    parser = RawConfigParser()
    base = next((path for path in CONFIG_FILES.get(component, []) if os.path.isfile(path)), None)

    if base is None:
        logger.debug("No configuration file found for component %s, using defaults", component)
    else:
        read = parser.read([base, *_snippets(component)])
        logger.info("Reading configuration for component %s from %s", component, read)

    _config[component] = parser
    return parser


def reset() -> None:
    """Drop cached configuration, so that the next access reads the files again."""
    _config.clear()


def get(component: str, option: str, section: Optional[str] = None, fallback: str = "") -> str:
    """Return an option of ``component`` without surrounding quotes. ``section`` defaults to the component name."""
    return get_config(component).get(section or component, option, fallback=fallback).strip('" ')


def has_option(component: str, option: str, section: Optional[str] = None) -> bool:
    return get_config(component).has_option(section or component, option)
