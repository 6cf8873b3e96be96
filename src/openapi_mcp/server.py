"""
Name: MCP Server.
Description: Assembles a FastMCP server from a ServerConfig. Loads the OpenAPI spec, creates the OAuth provider when one
is configured, synthesizes tools and resources and registers them on FastMCP through adapters that turn Err results
into MCP errors. With the streamable-http transport an OAuth callback route completes authorization.
"""

import json
import logging
from typing import Any, Dict, List, Optional

import httpx
from fastmcp import FastMCP
from fastmcp.exceptions import ResourceError as MCPResourceError
from fastmcp.exceptions import ToolError as MCPToolError
from fastmcp.resources import Resource as FastMCPResource
from fastmcp.tools import Tool as FastMCPTool
from fastmcp.tools.tool import ToolResult
from starlette.requests import Request
from starlette.responses import PlainTextResponse

from .auth.oauth import OAuthProvider
from .config import ServerConfig
from .constants import OAUTH_CALLBACK_PATH
from .errors import SpecError
from .openapi.loader import load_spec
from .openapi.models import Spec
from .openapi.resources import Resource, ResourceReport, synthesize_resources
from .openapi.tools import OpenAPIToolkit, RestApiTool

logger = logging.getLogger(__name__)


class ServerBuildError(Exception):
    """Raised when the server cannot be built from its spec."""

    def __init__(self, error: SpecError):
        super().__init__(error.message)
        self.error = error


class MCPToolAdapter(FastMCPTool):
    """Bridges RestApiTool -> FastMCP Tool object."""

    def __init__(self, rest_tool: RestApiTool):
        super().__init__(
            name=rest_tool.name,
            description=rest_tool.description,
            parameters=rest_tool.input_schema,
        )
        self._rest_tool = rest_tool

    async def run(self, arguments: Dict[str, Any]) -> ToolResult:
        """Invoke the wrapped tool.

        Raises:
            fastmcp.exceptions.ToolError: If the invocation returned an error
        """
        result = await self._rest_tool.invoke(arguments)
        if result.is_err():
            raise MCPToolError(result.unwrap_err().message)

        output = result.unwrap()
        if isinstance(output.body, str):
            text = output.body
        else:
            text = json.dumps(output.body, indent=2, ensure_ascii=False)
        return ToolResult(content=text)


class MCPResourceAdapter(FastMCPResource):
    """Bridges a synthesized Resource -> FastMCP Resource object."""

    def __init__(self, resource: Resource):
        super().__init__(
            uri=resource.uri,
            name=resource.name,
            description=resource.description,
            mime_type=resource.mime_type,
        )
        self._resource = resource

    async def read(self) -> str:
        """Read the wrapped resource.

        Raises:
            fastmcp.exceptions.ResourceError: If the read returned an error
        """
        result = await self._resource.read()
        if result.is_err():
            raise MCPResourceError(result.unwrap_err().message)
        return result.unwrap().text


class OpenAPIMCPServer:
    """MCP server backed by an OpenAPI described REST API."""

    def __init__(self, config: ServerConfig, client: Optional[httpx.AsyncClient] = None):
        """Initialize the server.

        Args:
            config: Server configuration
            client: HTTP client for outbound calls; one is created and owned
                by the server when omitted
        """
        self.config = config
        self._owns_client = client is None
        self.client = client if client is not None else httpx.AsyncClient()

        self.spec: Optional[Spec] = None
        self.auth: Optional[OAuthProvider] = None
        self.toolkit: Optional[OpenAPIToolkit] = None
        self.resources: Optional[ResourceReport] = None
        self.mcp: Optional[FastMCP] = None

    async def build(self) -> FastMCP:
        """Load the spec and register tools and resources.

        Returns:
            The FastMCP instance

        Raises:
            ServerBuildError: If the spec cannot be loaded or validated
        """
        result = await load_spec(
            self.config.openapi_spec,
            fmt=self.config.spec_format,
            client=self.client,
            timeout=self.config.timeout,
        )
        if result.is_err():
            error = result.unwrap_err()
            logger.error(f"Cannot build server '{self.config.name}': {error.message}")
            raise ServerBuildError(error)
        self.spec = result.unwrap()

        if self.config.oauth is not None:
            self.auth = OAuthProvider(
                self.config.oauth, self.client, timeout=self.config.timeout
            )

        self.toolkit = OpenAPIToolkit(
            self.spec,
            self.client,
            auth=self.auth,
            base_url=self.config.base_url,
            timeout=self.config.timeout,
            include_deprecated=self.config.include_deprecated,
        )
        for error in self.toolkit.extraction_errors:
            logger.warning(error.message)

        self.resources = synthesize_resources(
            self.spec,
            client=self.client,
            base_url=self.config.base_url,
            timeout=self.config.timeout,
        )

        self.mcp = self._create_mcp_instance()
        logger.info(
            f"Built server '{self.config.name}' {self.config.version} with "
            f"{len(self.toolkit.tools)} tools and {len(self.resources.resources)} resources"
        )
        return self.mcp

    def _create_mcp_instance(self) -> FastMCP:
        """Create a FastMCP instance for this server.

        Returns:
            FastMCP instance
        """
        mcp = FastMCP(self.config.name, instructions=self.spec.description or None)

        for rest_tool in self.toolkit.get_tools():
            logger.debug(f"Registering tool: {rest_tool.name}")
            mcp.add_tool(MCPToolAdapter(rest_tool))

        for resource in self.resources.resources:
            logger.debug(f"Registering resource: {resource.uri}")
            mcp.add_resource(MCPResourceAdapter(resource))

        if self.auth is not None and self.config.server.transport == "streamable-http":
            self._register_oauth_callback(mcp)

        return mcp

    def _register_oauth_callback(self, mcp: FastMCP) -> None:
        auth = self.auth

        @mcp.custom_route(OAUTH_CALLBACK_PATH, methods=["GET"])
        async def oauth_callback(request: Request) -> PlainTextResponse:
            return await handle_oauth_callback(auth, dict(request.query_params))

    def tool_names(self) -> List[str]:
        return [tool.name for tool in self.toolkit.get_tools()] if self.toolkit else []

    async def start(self):
        """Run the configured transport until it exits."""
        if self.mcp is None:
            await self.build()

        if self.auth is not None and not self.auth.is_authenticated:
            url = self.auth.begin_authorization()
            logger.info(f"Authorize access to the API by visiting: {url}")

        transport = self.config.server.transport
        logger.info(f"Starting MCP server '{self.config.name}' ({transport})")
        if transport == "stdio":
            await self.mcp.run_async(transport="stdio")
        else:
            await self.mcp.run_async(
                transport=transport,
                host=self.config.server.host,
                port=self.config.server.port,
            )

    async def stop(self):
        """Release the HTTP client if the server created it."""
        if self._owns_client:
            await self.client.aclose()
            logger.debug("Closed HTTP client")


async def handle_oauth_callback(
    auth: OAuthProvider, params: Dict[str, str]
) -> PlainTextResponse:
    """Complete an authorization from the redirect query parameters.

    Args:
        auth: Provider that started the authorization
        params: Query parameters of the redirect

    Returns:
        A plain text response for the user's browser
    """
    if params.get("error"):
        detail = params.get("error_description") or params["error"]
        logger.warning(f"Authorization was denied: {detail}")
        return PlainTextResponse(f"Authorization failed: {detail}", status_code=400)

    code = params.get("code")
    state = params.get("state")
    if not code or not state:
        return PlainTextResponse("Missing 'code' or 'state' parameter", status_code=400)

    result = await auth.complete_authorization(code, state)
    if result.is_err():
        return PlainTextResponse(result.unwrap_err().message, status_code=400)
    return PlainTextResponse("Authorization complete. You can close this window.")
