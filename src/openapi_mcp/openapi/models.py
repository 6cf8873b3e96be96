"""Common models for OpenAPI documents and the operations extracted from them."""

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field


class Parameter(BaseModel):
    """Parameter for an API request."""

    model_config = ConfigDict(frozen=True)

    name: str
    location: str  # path, query, header, cookie
    required: bool = False
    description: str = ""
    schema_definition: Dict[str, Any] = Field(default_factory=dict)


class Operation(BaseModel):
    """One (path, method) entry of an OpenAPI document."""

    model_config = ConfigDict(frozen=True)

    operation_id: Optional[str] = None
    method: str
    path: str
    summary: str = ""
    description: str = ""
    parameters: List[Parameter] = Field(default_factory=list)
    request_body_schema: Optional[Dict[str, Any]] = None
    request_body_required: bool = False
    request_body_content_type: str = "application/json"
    responses: Dict[str, Optional[Dict[str, Any]]] = Field(default_factory=dict)
    deprecated: bool = False
    tags: List[str] = Field(default_factory=list)
    # None means "inherit the document-level requirement"
    security: Optional[List[Dict[str, List[str]]]] = None
    requires_auth: bool = False


class Spec(BaseModel):
    """Normalized, dereferenced OpenAPI document."""

    model_config = ConfigDict(frozen=True)

    openapi_version: str
    info: Dict[str, Any] = Field(default_factory=dict)
    servers: List[Any] = Field(default_factory=list)
    # Path items are validated per entry during extraction
    paths: Dict[str, Any]
    schemas: Dict[str, Any] = Field(default_factory=dict)
    security_schemes: Dict[str, Any] = Field(default_factory=dict)
    security: List[Any] = Field(default_factory=list)
    documents: List[Any] = Field(default_factory=list)
    raw: Dict[str, Any] = Field(default_factory=dict)

    @property
    def title(self) -> str:
        return self.info.get("title", "")

    @property
    def description(self) -> str:
        return self.info.get("description", "")

    @property
    def base_url(self) -> str:
        """Get the base URL from the first declared server.

        Returns:
            The base URL without a trailing slash, or an empty string
        """
        servers = [server for server in self.servers if isinstance(server, dict)]
        if not servers:
            return ""

        url = servers[0].get("url", "") or ""
        if not isinstance(url, str):
            return ""
        variables = servers[0].get("variables", {}) or {}
        if not isinstance(variables, dict):
            variables = {}
        for var_name, var_spec in variables.items():
            if isinstance(var_spec, dict) and "default" in var_spec:
                url = url.replace(f"{{{var_name}}}", str(var_spec["default"]))

        return url.rstrip("/")
