"""
Name: openapi-mcp package.
Description: Defines the package version and exposes the server and CLI entry points for serving OpenAPI described
REST APIs as MCP servers.
"""

__version__ = "0.1.0"

from .config import ServerConfig, load_config
from .main import main as cli_main
from .server import OpenAPIMCPServer, ServerBuildError

__all__ = ["ServerConfig", "load_config", "OpenAPIMCPServer", "ServerBuildError", "cli_main"]
