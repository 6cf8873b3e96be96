"""
Name: OpenAPI tools.
Description: Implements RestApiTool and OpenAPIToolkit for turning extracted operations into invocable tools. Each tool
carries a JSON-schema input description, validates arguments before any network call, builds the outbound request,
attaches OAuth bearer headers when the operation requires them, and retries exactly once after a 401.
"""

import json
import logging
from collections import Counter
from typing import Any, Dict, List, Optional, Tuple
from urllib.parse import quote

import anyio
import httpx
import tenacity
from jsonschema import Draft202012Validator
from pydantic import BaseModel

from ..auth.oauth import OAuthProvider
from ..constants import (
    DEFAULT_REQUEST_TIMEOUT,
    LOCATION_ANNOTATION,
    MAX_TOOL_NAME_LENGTH,
    REQUEST_BODY_KEY,
)
from ..errors import (
    ExtractionError,
    InvalidArgs,
    RequestFailed,
    Timeout,
    ToolError,
    Transport,
    Unauthenticated,
)
from ..result import Err, Ok, Result
from ..utils import sanitize_tool_name, slugify_operation
from .models import Operation, Parameter, Spec
from .spec import extract_operations

logger = logging.getLogger(__name__)


class ToolOutput(BaseModel):
    """Successful response of a tool invocation."""

    status_code: int
    body: Any = None
    content_type: str = ""


class _TokenRejected(Exception):
    """Raised inside a retry attempt when the API answers 401."""


def build_input_schema(operation: Operation) -> Tuple[Dict[str, Any], Dict[str, Parameter]]:
    """Build the JSON schema for a tool's arguments.

    Every parameter becomes a property annotated with its location, and the
    request body is placed under the reserved "body" key.

    Args:
        operation: The operation the tool is built from

    Returns:
        A tuple of (input schema, argument key -> parameter)
    """
    properties: Dict[str, Any] = {}
    required: List[str] = []
    arguments: Dict[str, Parameter] = {}
    reserved = {REQUEST_BODY_KEY} if operation.request_body_schema is not None else set()

    for param in operation.parameters:
        key = param.name
        if key in reserved or key in arguments:
            key = f"{param.name}_{param.location}"

        prop = dict(param.schema_definition) or {"type": "string"}
        if param.description and "description" not in prop:
            prop["description"] = param.description
        prop[LOCATION_ANNOTATION] = param.location

        properties[key] = prop
        arguments[key] = param
        if param.required:
            required.append(key)

    if operation.request_body_schema is not None:
        body = dict(operation.request_body_schema)
        body.setdefault("description", "Request body")
        properties[REQUEST_BODY_KEY] = body
        if operation.request_body_required:
            required.append(REQUEST_BODY_KEY)

    schema = {
        "type": "object",
        "properties": properties,
        "required": required,
        "additionalProperties": False,
    }
    return schema, arguments


def _format_scalar(value: Any) -> str:
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, (dict, list)):
        return json.dumps(value, separators=(",", ":"))
    return str(value)


class RestApiTool:
    """Tool for making requests to a REST API endpoint."""

    def __init__(
        self,
        name: str,
        description: str,
        operation: Operation,
        base_url: str,
        client: httpx.AsyncClient,
        auth: Optional[OAuthProvider] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        """Initialize a REST API tool.

        Args:
            name: Name of the tool
            description: Description of the tool
            operation: Operation the tool invokes
            base_url: Base URL for the API
            client: HTTP client used for outbound calls
            auth: OAuth provider for operations that require authorization
            timeout: Seconds allowed per outbound call
        """
        self.name = name
        self.description = description
        self.operation = operation
        self.base_url = base_url.rstrip("/")
        self.timeout = timeout
        self._client = client
        self._auth = auth

        self.input_schema, self._arguments = build_input_schema(operation)
        self._validator = Draft202012Validator(self.input_schema)

    @property
    def requires_auth(self) -> bool:
        return self.operation.requires_auth

    def to_schema(self) -> Dict[str, Any]:
        """Convert the tool to an MCP tool descriptor.

        Returns:
            A schema for the tool
        """
        return {
            "name": self.name,
            "description": self.description,
            "inputSchema": self.input_schema,
        }

    def validate_arguments(self, args: Any) -> List[str]:
        """Validate arguments against the input schema.

        Returns:
            A list of human readable violations, empty when valid
        """
        if not isinstance(args, dict):
            return [f"arguments must be an object, got {type(args).__name__}"]

        violations = []
        for error in sorted(
            self._validator.iter_errors(args), key=lambda e: list(map(str, e.absolute_path))
        ):
            location = "/".join(str(part) for part in error.absolute_path) or "<arguments>"
            violations.append(f"{location}: {error.message}")
        return violations

    def build_request(
        self, args: Dict[str, Any], auth_header: Optional[str] = None
    ) -> httpx.Request:
        """Build the outbound HTTP request for validated arguments.

        Args:
            args: Arguments that already passed validation
            auth_header: Authorization header value, if any

        Returns:
            The request, ready to send

        Raises:
            ValueError: If a header value cannot be sent as ASCII
        """
        path = self.operation.path
        query: Dict[str, Any] = {}
        headers: Dict[str, str] = {}
        cookies: List[str] = []

        for key, param in self._arguments.items():
            if key not in args or args[key] is None:
                continue
            value = args[key]

            if param.location == "path":
                if isinstance(value, list):
                    text = ",".join(_format_scalar(item) for item in value)
                else:
                    text = _format_scalar(value)
                path = path.replace(f"{{{param.name}}}", quote(text, safe=""))
            elif param.location == "query":
                if isinstance(value, list):
                    query[param.name] = [_format_scalar(item) for item in value]
                else:
                    query[param.name] = _format_scalar(value)
            elif param.location == "header":
                text = _format_scalar(value)
                if not text.isascii():
                    raise ValueError(f"header '{param.name}' must be ASCII text")
                headers[param.name] = text
            elif param.location == "cookie":
                cookies.append(f"{param.name}={quote(_format_scalar(value), safe='')}")

        if cookies:
            headers["Cookie"] = "; ".join(cookies)
        if auth_header:
            headers["Authorization"] = auth_header

        request_kwargs: Dict[str, Any] = {}
        if REQUEST_BODY_KEY in args and self.operation.request_body_schema is not None:
            body = args[REQUEST_BODY_KEY]
            content_type = self.operation.request_body_content_type
            if content_type == "application/x-www-form-urlencoded" and isinstance(body, dict):
                request_kwargs["data"] = {k: _format_scalar(v) for k, v in body.items()}
            elif isinstance(body, (str, bytes)) and "json" not in content_type:
                request_kwargs["content"] = body
                headers["Content-Type"] = content_type
            else:
                request_kwargs["json"] = body

        return self._client.build_request(
            self.operation.method.upper(),
            f"{self.base_url}{path}",
            params=query or None,
            headers=headers,
            **request_kwargs,
        )

    async def invoke(self, args: Dict[str, Any]) -> Result[ToolOutput, ToolError]:
        """Invoke the operation.

        Arguments are validated first; no request is sent when they are
        invalid. A 401 on an operation that requires authorization triggers
        one token refresh and one retry; nothing else is retried.

        Args:
            args: Tool arguments keyed as in the input schema

        Returns:
            Ok(ToolOutput) for 2xx responses, Err(ToolError) otherwise
        """
        violations = self.validate_arguments(args)
        if violations:
            logger.debug(f"Rejected arguments for {self.name}: {violations}")
            return Err(InvalidArgs(violations=violations))

        auth_header = None
        if self.requires_auth:
            if self._auth is None:
                return Err(Unauthenticated(reason="no OAuth provider configured"))
            header_result = await self._auth.get_auth_header()
            if header_result.is_err():
                return Err(Unauthenticated(reason=header_result.unwrap_err().message))
            auth_header = header_result.unwrap()

        result: Result[ToolOutput, ToolError] = Err(Transport(cause="request not sent"))
        retrying = tenacity.AsyncRetrying(
            stop=tenacity.stop_after_attempt(2),
            retry=tenacity.retry_if_exception_type(_TokenRejected),
            reraise=True,
        )
        async for attempt in retrying:
            with attempt:
                first_attempt = attempt.retry_state.attempt_number == 1
                if not first_attempt:
                    refreshed = await self._auth.refresh_after_rejection(auth_header)
                    if refreshed.is_err():
                        result = Err(Unauthenticated(reason=refreshed.unwrap_err().message))
                        break
                    auth_header = refreshed.unwrap()

                result = await self._send_once(args, auth_header, allow_reauth=first_attempt)

        return result

    async def _send_once(
        self, args: Dict[str, Any], auth_header: Optional[str], allow_reauth: bool
    ) -> Result[ToolOutput, ToolError]:
        try:
            request = self.build_request(args, auth_header)
        except ValueError as e:
            return Err(InvalidArgs(violations=[str(e)]))
        logger.debug(f"{self.name}: {request.method} {request.url}")

        try:
            with anyio.fail_after(self.timeout):
                response = await self._client.send(request)
        except (TimeoutError, httpx.TimeoutException):
            logger.warning(f"{self.name}: request timed out after {self.timeout}s")
            return Err(Timeout(seconds=self.timeout))
        except httpx.HTTPError as e:
            logger.warning(f"{self.name}: transport error: {e}")
            return Err(Transport(cause=str(e) or e.__class__.__name__))

        body = _parse_body(response)
        if response.status_code == 401 and auth_header is not None and allow_reauth:
            logger.info(f"{self.name}: access token rejected, refreshing once")
            raise _TokenRejected()

        if response.is_success:
            return Ok(
                ToolOutput(
                    status_code=response.status_code,
                    body=body,
                    content_type=response.headers.get("Content-Type", ""),
                )
            )

        logger.debug(f"{self.name}: request failed with status {response.status_code}")
        return Err(RequestFailed(status=response.status_code, body=body))


def _parse_body(response: httpx.Response) -> Any:
    if not response.content:
        return None
    content_type = response.headers.get("Content-Type", "")
    if "json" in content_type:
        try:
            return response.json()
        except ValueError:
            pass
    return response.text


def assign_tool_names(operations: List[Operation]) -> List[str]:
    """Pick a unique name for every operation.

    An operationId is used when no other operation shares it; otherwise, or
    when it is missing, the name is a slug of the method and path. Remaining
    clashes are resolved in order: the first operation keeps the name and
    later ones get "_2", "_3", ... suffixes.

    Args:
        operations: Operations in extraction order

    Returns:
        Names in the same order as operations
    """
    id_counts = Counter(
        sanitize_tool_name(op.operation_id) for op in operations if op.operation_id
    )

    names: List[str] = []
    taken = set()
    for op in operations:
        candidate = sanitize_tool_name(op.operation_id) if op.operation_id else None
        if candidate is None or id_counts[candidate] > 1:
            candidate = slugify_operation(op.method, op.path)

        name = candidate
        suffix = 2
        while name in taken:
            tail = f"_{suffix}"
            name = candidate[: MAX_TOOL_NAME_LENGTH - len(tail)] + tail
            suffix += 1

        if name != candidate:
            logger.debug(f"Tool name '{candidate}' already used, renamed to '{name}'")
        taken.add(name)
        names.append(name)

    return names


def describe_operation(operation: Operation) -> str:
    return (
        operation.summary
        or operation.description
        or f"{operation.method.upper()} {operation.path}"
    )


class OpenAPIToolkit:
    """Toolkit for creating tools from an OpenAPI specification."""

    def __init__(
        self,
        spec: Spec,
        client: httpx.AsyncClient,
        auth: Optional[OAuthProvider] = None,
        base_url: Optional[str] = None,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        include_deprecated: bool = True,
    ):
        """Initialize an OpenAPI toolkit.

        Tool synthesis performs no network I/O.

        Args:
            spec: Validated OpenAPI spec
            client: HTTP client shared by all tools
            auth: OAuth provider for operations that require authorization
            base_url: Overrides the first server URL of the spec
            timeout: Seconds allowed per outbound call
            include_deprecated: Whether deprecated operations become tools
        """
        self.spec = spec
        self.base_url = (base_url or spec.base_url).rstrip("/")
        self.auth = auth
        self.timeout = timeout
        self._client = client

        report = extract_operations(spec, include_deprecated=include_deprecated)
        self.extraction_errors: List[ExtractionError] = report.errors
        self.tools = self._create_tools(report.operations)

        if any(tool.requires_auth for tool in self.tools) and auth is None:
            logger.warning(
                "Some operations require authorization but no OAuth provider is configured"
            )

    def _create_tools(self, operations: List[Operation]) -> List[RestApiTool]:
        """Create tools from the extracted operations.

        Returns:
            List of REST API tools
        """
        names = assign_tool_names(operations)
        return [
            RestApiTool(
                name=name,
                description=describe_operation(operation),
                operation=operation,
                base_url=self.base_url,
                client=self._client,
                auth=self.auth,
                timeout=self.timeout,
            )
            for name, operation in zip(names, operations)
        ]

    def get_tools(self) -> List[RestApiTool]:
        return self.tools

    def get_tool(self, name: str) -> Optional[RestApiTool]:
        """Get a tool by name.

        Args:
            name: Name of the tool

        Returns:
            The tool if found, None otherwise
        """
        for tool in self.tools:
            if tool.name == name:
                return tool
        return None

    def get_tool_schemas(self) -> List[Dict[str, Any]]:
        return [tool.to_schema() for tool in self.tools]
