"""Tests for utility functions."""

import logging
import os
import unittest
from unittest.mock import patch

from openapi_mcp.utils import (
    configure_logging,
    sanitize_tool_name,
    slugify_operation,
    substitute_env_vars,
    substitute_env_vars_deep,
)


class TestEnvSubstitution(unittest.TestCase):
    """Test cases for environment variable substitution."""

    @patch.dict(os.environ, {"API_TOKEN": "abc"})
    def test_substitute(self):
        self.assertEqual(substitute_env_vars("Bearer {API_TOKEN}"), "Bearer abc")

    @patch("openapi_mcp.utils.load_dotenv")
    def test_missing_variable_keeps_placeholder(self, mock_load_dotenv):
        self.assertEqual(
            substitute_env_vars("{DEFINITELY_NOT_SET_123}"), "{DEFINITELY_NOT_SET_123}"
        )
        mock_load_dotenv.assert_called_once()

    def test_non_strings(self):
        self.assertEqual(substitute_env_vars(5), 5)
        self.assertIsNone(substitute_env_vars(None))
        self.assertEqual(substitute_env_vars("plain"), "plain")

    @patch.dict(os.environ, {"A": "1"})
    def test_deep(self):
        self.assertEqual(
            substitute_env_vars_deep({"x": ["{A}", {"y": "{A}"}], "z": True}),
            {"x": ["1", {"y": "1"}], "z": True},
        )


class TestToolNames(unittest.TestCase):
    """Test cases for tool name helpers."""

    def test_sanitize(self):
        self.assertEqual(sanitize_tool_name("listPets"), "listPets")
        self.assertEqual(sanitize_tool_name("pets.list/all"), "pets_list_all")
        self.assertEqual(sanitize_tool_name("__x__"), "x")
        self.assertEqual(sanitize_tool_name("!!!"), "tool")
        self.assertEqual(len(sanitize_tool_name("a" * 100)), 64)

    def test_slugify(self):
        self.assertEqual(slugify_operation("GET", "/pets/{id}"), "get_pets_id")
        self.assertEqual(slugify_operation("post", "/"), "post")


class TestConfigureLogging(unittest.TestCase):
    """Test cases for logging setup."""

    def setUp(self):
        self.root = logging.getLogger()
        self.saved_handlers = self.root.handlers[:]
        self.saved_level = self.root.level
        self.root.handlers = []

    def tearDown(self):
        self.root.handlers = self.saved_handlers
        self.root.setLevel(self.saved_level)

    def test_debug_level(self):
        configure_logging(debug=True)
        self.assertEqual(self.root.level, logging.DEBUG)
        self.assertEqual(len(self.root.handlers), 1)

    def test_no_duplicate_handlers(self):
        configure_logging()
        configure_logging()
        self.assertEqual(len(self.root.handlers), 1)
        self.assertEqual(logging.getLogger("httpx").level, logging.WARNING)


if __name__ == "__main__":
    unittest.main()
