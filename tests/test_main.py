"""Tests for the command-line interface."""

import argparse
import io
import json
import os
import tempfile
import unittest
from contextlib import redirect_stdout
from unittest.mock import patch

from openapi_mcp.main import inspect_spec, main, serve_command
from tests.fixtures.specs import petstore_spec


class TestServeCommand(unittest.TestCase):
    """Test cases for the serve command."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.config_path = os.path.join(self.temp_dir.name, "server.json")
        with open(self.config_path, "w") as f:
            json.dump({"name": "pets", "openApiSpec": "spec.json"}, f)

    def tearDown(self):
        self.temp_dir.cleanup()

    def _args(self, **kwargs):
        values = {"config": self.config_path, "transport": None, "host": None, "port": None}
        values.update(kwargs)
        return argparse.Namespace(**values)

    @patch("openapi_mcp.main.anyio.run", return_value=0)
    def test_serve(self, mock_run):
        self.assertEqual(serve_command(self._args()), 0)

        config = mock_run.call_args[0][1]
        self.assertEqual(config.name, "pets")
        self.assertEqual(config.server.transport, "stdio")

    @patch("openapi_mcp.main.anyio.run", return_value=0)
    def test_serve_overrides(self, mock_run):
        serve_command(self._args(transport="streamable-http", port=9100))

        config = mock_run.call_args[0][1]
        self.assertEqual(config.server.transport, "streamable-http")
        self.assertEqual(config.server.port, 9100)
        self.assertEqual(config.server.host, "127.0.0.1")

    @patch("openapi_mcp.main.anyio.run")
    def test_invalid_config(self, mock_run):
        with open(self.config_path, "w") as f:
            json.dump({"name": "pets"}, f)

        self.assertEqual(serve_command(self._args()), 1)
        mock_run.assert_not_called()

    @patch("openapi_mcp.main.anyio.run")
    def test_missing_config(self, mock_run):
        self.assertEqual(serve_command(self._args(config="/nonexistent/server.json")), 1)
        mock_run.assert_not_called()


class TestInspect(unittest.IsolatedAsyncioTestCase):
    """Test cases for the inspect command."""

    def setUp(self):
        self.temp_dir = tempfile.TemporaryDirectory()
        self.spec_path = os.path.join(self.temp_dir.name, "spec.json")
        with open(self.spec_path, "w") as f:
            json.dump(petstore_spec(), f)

    def tearDown(self):
        self.temp_dir.cleanup()

    async def test_lists_tools_and_resources(self):
        out = io.StringIO()
        with redirect_stdout(out):
            code = await inspect_spec(self.spec_path)

        self.assertEqual(code, 0)
        text = out.getvalue()
        self.assertIn("Petstore (OpenAPI 3.0.3)", text)
        self.assertIn("listPets: GET /pets", text)
        self.assertIn("createPet: POST /pets [auth]", text)
        self.assertIn("schema://Pet (application/schema+json)", text)
        self.assertNotIn("Warnings:", text)

    async def test_invalid_spec(self):
        with open(self.spec_path, "w") as f:
            json.dump({"openapi": "3.0.0"}, f)

        out = io.StringIO()
        with redirect_stdout(out):
            code = await inspect_spec(self.spec_path)

        self.assertEqual(code, 1)
        self.assertEqual(out.getvalue(), "")


class TestMain(unittest.TestCase):
    """Test cases for argument parsing."""

    @patch("openapi_mcp.main.configure_logging")
    @patch("openapi_mcp.main.serve_command", return_value=0)
    def test_serve_dispatch(self, mock_serve, mock_logging):
        with patch("sys.argv", ["openapi-mcp", "serve", "--config", "x.yaml", "--debug"]):
            with self.assertRaises(SystemExit) as context:
                main()

        self.assertEqual(context.exception.code, 0)
        mock_logging.assert_called_once_with(debug=True)
        self.assertEqual(mock_serve.call_args[0][0].config, "x.yaml")

    @patch("openapi_mcp.main.configure_logging")
    @patch("openapi_mcp.main.inspect_command", return_value=1)
    def test_inspect_dispatch(self, mock_inspect, mock_logging):
        with patch("sys.argv", ["openapi-mcp", "inspect", "--spec", "s.json", "--format", "json"]):
            with self.assertRaises(SystemExit) as context:
                main()

        self.assertEqual(context.exception.code, 1)
        args = mock_inspect.call_args[0][0]
        self.assertEqual((args.spec, args.format, args.base_url), ("s.json", "json", None))

    @patch("openapi_mcp.main.configure_logging")
    def test_no_command_prints_help(self, mock_logging):
        out = io.StringIO()
        with patch("sys.argv", ["openapi-mcp"]), redirect_stdout(out):
            main()
        self.assertIn("usage:", out.getvalue())


if __name__ == "__main__":
    unittest.main()
