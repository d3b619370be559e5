import os
import unittest
from configparser import NoOptionError
from unittest.mock import patch

from authz import config

DATA_DIR = os.path.abspath(os.path.join(os.path.dirname(__file__), "data"))
CONFIG_DIR = os.path.abspath(os.path.join(DATA_DIR, "config"))


class TestConfig(unittest.TestCase):
    def setUp(self):
        self._backup = (config.CONFIG_FILES, config.CONFIG_SNIPPETS_DIRS)
        config.reset()

    def tearDown(self):
        config.CONFIG_FILES, config.CONFIG_SNIPPETS_DIRS = self._backup
        config.reset()

    def test_default_config_files(self):
        """Test default config file list."""
        self.assertEqual(
            config.CONFIG_FILES,
            {
                "authz": ["/etc/authz/authz.conf", "/usr/etc/authz/authz.conf"],
                "logging": ["/etc/authz/logging.conf", "/usr/etc/authz/logging.conf"],
            },
        )

    def test_missing_files_give_empty_config(self):
        """Test that a component without configuration files falls back to defaults."""
        config.CONFIG_FILES = {"test": [os.path.join(CONFIG_DIR, "non-existent.conf")]}
        config.CONFIG_SNIPPETS_DIRS = {"test": []}
        self.assertEqual(config.get_config("test").sections(), [])
        self.assertEqual(config.get("test", "attribute", fallback="fallback"), "fallback")
        self.assertFalse(config.has_option("test", "attribute"))

    def test_unknown_component_gives_empty_config(self):
        config.CONFIG_FILES = {}
        config.CONFIG_SNIPPETS_DIRS = {}
        self.assertEqual(config.get_config("unknown").sections(), [])

    def test_single_config(self):
        """Test reading a single config file."""
        config.CONFIG_FILES = {"test": [os.path.join(CONFIG_DIR, "authz-1.conf")]}
        config.CONFIG_SNIPPETS_DIRS = {"test": []}
        c = config.get_config("test")
        self.assertEqual(c.get("default", "attribute_1"), "value_1")

    def test_first_base_file_used(self):
        """Test giving multiple possibilities for base file."""
        config.CONFIG_FILES = {
            "test": [
                os.path.join(CONFIG_DIR, "authz-1.conf"),
                os.path.join(CONFIG_DIR, "authz-2.conf"),
            ]
        }
        config.CONFIG_SNIPPETS_DIRS = {"test": []}
        c = config.get_config("test")
        self.assertEqual(c.get("default", "attribute_1"), "value_1")
        # Assert that if the first file is found, the second is ignored
        self.assertRaises(NoOptionError, c.get, "default", "attribute_2")

    def test_missing_base_file_ignored(self):
        """Test that if a file is missing, it tries the next."""
        config.CONFIG_FILES = {
            "test": [
                os.path.join(CONFIG_DIR, "non-existent.conf"),
                os.path.join(CONFIG_DIR, "authz-2.conf"),
            ]
        }
        config.CONFIG_SNIPPETS_DIRS = {"test": []}
        c = config.get_config("test")
        self.assertRaises(NoOptionError, c.get, "default", "attribute_1")
        self.assertEqual(c.get("default", "attribute_2"), "value_2")

    def test_merge_config(self):
        """Test reading multiple config files and merging them."""
        config.CONFIG_FILES = {"authz": [os.path.join(CONFIG_DIR, "authz.conf")]}
        config.CONFIG_SNIPPETS_DIRS = {"authz": [os.path.join(CONFIG_DIR, "authz.conf.d")]}
        c = config.get_config("authz")
        self.assertEqual(c.get("authz", "attribute_1"), "value_1_3")
        self.assertEqual(c.get("authz", "attribute_2"), "value_2")
        self.assertEqual(c.get("authz", "attribute_3"), "value_3")

    def test_cache_config(self):
        """Test the config is properly cached between calls."""
        config.CONFIG_FILES = {"authz": [os.path.join(CONFIG_DIR, "authz.conf")]}
        config.CONFIG_SNIPPETS_DIRS = {"authz": []}
        c = config.get_config("authz")
        self.assertEqual(c.get("authz", "attribute", fallback=None), None)

        c.set("authz", "attribute", "value")
        self.assertEqual(c.get("authz", "attribute"), "value")

        c_copy = config.get_config("authz")
        self.assertEqual(c_copy.get("authz", "attribute"), "value")

        config.reset()
        self.assertEqual(config.get_config("authz").get("authz", "attribute", fallback=None), None)

    def test_get(self) -> None:
        """Sanity test for config.get()"""
        config.CONFIG_FILES = {"authz": [os.path.join(CONFIG_DIR, "authz.conf")]}
        config.CONFIG_SNIPPETS_DIRS = {"authz": []}

        # Check that non-existing option will fallback
        self.assertEqual(config.get("authz", "attribute", fallback="fallback"), "fallback")

        # Check that existing option is properly obtained
        self.assertEqual(config.get("authz", "attribute_1", fallback="fallback"), "value_1")

        # Check that quoted option is unquoted
        self.assertEqual(config.get("authz", "quoted"), "unquoted")

        # Check that quotes and trailing spaces are properly removed
        self.assertEqual(config.get("authz", "quotes_spaces"), "unquoted")

        # Check options in other sections
        self.assertEqual(config.get("authz", "resource", section="stage:admin"), "admin_routes")
        self.assertTrue(config.has_option("authz", "resource", section="stage:admin"))
        self.assertFalse(config.has_option("authz", "resource", section="stage:missing"))

    def test_environment_is_ignored(self) -> None:
        """Test that environment variables neither replace files nor override options"""
        config.CONFIG_FILES = {"authz": [os.path.join(CONFIG_DIR, "authz.conf")]}
        config.CONFIG_SNIPPETS_DIRS = {"authz": []}

        env = {
            "AUTHZ_CONFIG": os.path.join(CONFIG_DIR, "authz-1.conf"),
            "AUTHZ_AUTHZ_ATTRIBUTE_1": "from_env",
            "AUTHZ_AUTHZ_STAGE_ADMIN_RESOURCE": '"staff_routes"',
        }

        with patch.dict(os.environ, env):
            self.assertEqual(config.get("authz", "attribute_1"), "value_1")
            self.assertEqual(config.get("authz", "resource", section="stage:admin"), "admin_routes")
            self.assertFalse(config.has_option("authz", "resource", section="stage:other"))


if __name__ == "__main__":
    unittest.main()
