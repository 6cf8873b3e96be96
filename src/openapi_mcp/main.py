"""
Name: Command-line interface.
Description: Implements the openapi-mcp command-line interface with commands for serving an OpenAPI described API as an
MCP server and for inspecting which tools and resources a spec would produce.
"""

import argparse
import logging
import sys
from typing import Optional

import anyio
import httpx
from pydantic import ValidationError

from .config import ServerConfig, load_config
from .openapi.loader import load_spec
from .openapi.resources import synthesize_resources
from .openapi.tools import OpenAPIToolkit
from .server import OpenAPIMCPServer, ServerBuildError
from .utils import configure_logging

logger = logging.getLogger(__name__)


async def run_server(config: ServerConfig) -> int:
    """Build and run a server until its transport exits.

    Returns:
        Process exit code
    """
    server = OpenAPIMCPServer(config)
    try:
        await server.build()
        await server.start()
    except ServerBuildError as e:
        logger.error(f"Server not started: {e}")
        return 1
    finally:
        await server.stop()
    return 0


def serve_command(args) -> int:
    """Serve an API described by a configuration file."""
    try:
        config = load_config(args.config)
    except (OSError, ValueError, ValidationError) as e:
        logger.error(f"Invalid configuration {args.config}: {e}")
        return 1

    overrides = {}
    if args.transport:
        overrides["transport"] = args.transport
    if args.host:
        overrides["host"] = args.host
    if args.port:
        overrides["port"] = args.port
    if overrides:
        config = config.model_copy(
            update={"server": config.server.model_copy(update=overrides)}
        )

    return anyio.run(run_server, config)


async def inspect_spec(source: str, fmt: str = "auto", base_url: Optional[str] = None) -> int:
    """Print the tools and resources a spec produces.

    Returns:
        Process exit code
    """
    async with httpx.AsyncClient() as client:
        result = await load_spec(source, fmt=fmt, client=client)
        if result.is_err():
            logger.error(result.unwrap_err().message)
            return 1
        spec = result.unwrap()

        toolkit = OpenAPIToolkit(spec, client, base_url=base_url)
        report = synthesize_resources(spec, client=client, base_url=base_url)

    print(f"{spec.title or 'Untitled API'} (OpenAPI {spec.openapi_version})")
    print(f"Base URL: {toolkit.base_url or '<none>'}")
    print("")

    print(f"Tools ({len(toolkit.tools)}):")
    for tool in toolkit.get_tools():
        auth_marker = " [auth]" if tool.requires_auth else ""
        print(
            f"  - {tool.name}: {tool.operation.method.upper()} {tool.operation.path}{auth_marker}"
        )

    print(f"Resources ({len(report.resources)}):")
    for resource in report.resources:
        print(f"  - {resource.uri} ({resource.mime_type})")

    if toolkit.extraction_errors or report.warnings:
        print("Warnings:")
        for error in toolkit.extraction_errors:
            print(f"  - {error.message}")
        for warning in report.warnings:
            print(f"  - {warning.name}: {warning.reason}")

    return 0


def inspect_command(args) -> int:
    """Inspect a spec without starting a server."""
    return anyio.run(inspect_spec, args.spec, args.format, args.base_url)


def main():
    """Main entry point for the CLI."""
    parser = argparse.ArgumentParser(
        description="openapi-mcp - Serve OpenAPI described REST APIs as MCP servers"
    )
    subparsers = parser.add_subparsers(dest="command", help="Command to run")

    # Serve command
    serve_parser = subparsers.add_parser("serve", help="Start an MCP server")
    serve_parser.add_argument(
        "--config",
        type=str,
        required=True,
        help="Path to a JSON or YAML server configuration file",
    )
    serve_parser.add_argument(
        "--transport",
        choices=["stdio", "streamable-http"],
        help="Override the configured transport",
    )
    serve_parser.add_argument("--host", type=str, help="Override the configured host")
    serve_parser.add_argument("--port", type=int, help="Override the configured port")
    serve_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    # Inspect command
    inspect_parser = subparsers.add_parser(
        "inspect", help="List the tools and resources a spec produces"
    )
    inspect_parser.add_argument(
        "--spec", type=str, required=True, help="Path or URL of the OpenAPI document"
    )
    inspect_parser.add_argument(
        "--format",
        choices=["auto", "json", "yaml"],
        default="auto",
        help="Document format",
    )
    inspect_parser.add_argument(
        "--base-url", type=str, default=None, help="Override the spec's server URL"
    )
    inspect_parser.add_argument("--debug", action="store_true", help="Enable debug logging")

    args = parser.parse_args()
    configure_logging(debug=getattr(args, "debug", False))

    if args.command == "serve":
        sys.exit(serve_command(args))
    elif args.command == "inspect":
        sys.exit(inspect_command(args))
    else:
        parser.print_help()


if __name__ == "__main__":
    main()
