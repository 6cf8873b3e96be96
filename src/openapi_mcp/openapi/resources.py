"""
Name: OpenAPI resources.
Description: Builds MCP resources from an OpenAPI spec: one per component schema, one for the whole document, and one
per document declared under the x-mcp-resources extension. Static resources are served from memory; declared documents
with a path are fetched with a bounded GET at read time. Entries that cannot be mapped are reported as warnings.
"""

import json
import logging
from typing import Any, Dict, List, Optional
from urllib.parse import quote

import anyio
import httpx
from pydantic import BaseModel, ConfigDict, Field

from ..constants import (
    DEFAULT_REQUEST_TIMEOUT,
    DOCUMENT_URI_PREFIX,
    JSON_MIME_TYPE,
    SCHEMA_MIME_TYPE,
    SCHEMA_URI_PREFIX,
    SPEC_RESOURCE_URI,
    TEXT_MIME_TYPE,
)
from ..errors import (
    ResourceError,
    ResourceRequestFailed,
    ResourceTimeout,
    ResourceTransport,
    ResourceUnavailable,
)
from ..result import Err, Ok, Result
from .models import Spec

logger = logging.getLogger(__name__)


class ResourceContent(BaseModel):
    """Content returned by reading a resource."""

    uri: str
    mime_type: str
    text: str


class SynthesisWarning(BaseModel):
    """An entry of the spec that could not be turned into a resource."""

    name: str
    reason: str


class Resource:
    """Readable MCP resource."""

    def __init__(self, uri: str, name: str, mime_type: str, description: str = ""):
        self.uri = uri
        self.name = name
        self.mime_type = mime_type
        self.description = description

    async def read(self) -> Result[ResourceContent, ResourceError]:
        raise NotImplementedError

    def to_schema(self) -> Dict[str, Any]:
        return {
            "uri": self.uri,
            "name": self.name,
            "description": self.description,
            "mimeType": self.mime_type,
        }


class StaticResource(Resource):
    """Resource whose content is known at synthesis time."""

    def __init__(
        self, uri: str, name: str, mime_type: str, text: str, description: str = ""
    ):
        super().__init__(uri, name, mime_type, description)
        self.text = text

    async def read(self) -> Result[ResourceContent, ResourceError]:
        return Ok(ResourceContent(uri=self.uri, mime_type=self.mime_type, text=self.text))


class HttpResource(Resource):
    """Resource fetched with a GET request each time it is read."""

    def __init__(
        self,
        uri: str,
        name: str,
        url: str,
        client: Optional[httpx.AsyncClient],
        mime_type: Optional[str] = None,
        description: str = "",
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
    ):
        super().__init__(uri, name, mime_type or TEXT_MIME_TYPE, description)
        self.url = url
        self.timeout = timeout
        self._declared_mime_type = mime_type
        self._client = client

    async def read(self) -> Result[ResourceContent, ResourceError]:
        if self._client is None:
            return Err(ResourceUnavailable(reason="no HTTP client configured"))

        try:
            with anyio.fail_after(self.timeout):
                response = await self._client.get(self.url)
        except (TimeoutError, httpx.TimeoutException):
            logger.warning(f"Reading {self.uri} timed out after {self.timeout}s")
            return Err(ResourceTimeout(seconds=self.timeout))
        except httpx.HTTPError as e:
            logger.warning(f"Reading {self.uri} failed: {e}")
            return Err(ResourceTransport(cause=str(e) or e.__class__.__name__))

        if not response.is_success:
            return Err(ResourceRequestFailed(status=response.status_code, body=response.text))

        mime_type = self._declared_mime_type
        if not mime_type:
            header = response.headers.get("Content-Type", "")
            mime_type = header.split(";", 1)[0].strip() or TEXT_MIME_TYPE

        return Ok(ResourceContent(uri=self.uri, mime_type=mime_type, text=response.text))


class ResourceReport(BaseModel):
    """Resources built from a spec plus the entries that could not be mapped."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    resources: List[Resource] = Field(default_factory=list)
    warnings: List[SynthesisWarning] = Field(default_factory=list)


def _to_json_text(value: Any) -> str:
    return json.dumps(value, indent=2, ensure_ascii=False, allow_nan=False)


def _schema_resources(spec: Spec, report: ResourceReport) -> None:
    for name, schema in spec.schemas.items():
        if not isinstance(schema, dict):
            report.warnings.append(
                SynthesisWarning(name=str(name), reason="schema is not an object")
            )
            continue

        try:
            text = _to_json_text(schema)
        except (TypeError, ValueError) as e:
            report.warnings.append(
                SynthesisWarning(name=str(name), reason=f"schema is not JSON serializable: {e}")
            )
            continue

        report.resources.append(
            StaticResource(
                uri=f"{SCHEMA_URI_PREFIX}{quote(str(name), safe='')}",
                name=str(name),
                mime_type=SCHEMA_MIME_TYPE,
                text=text,
                description=schema.get("description", "") or f"JSON schema for {name}",
            )
        )


def _spec_resource(spec: Spec, report: ResourceReport) -> None:
    try:
        text = _to_json_text({**spec.raw, "paths": spec.paths})
    except (TypeError, ValueError) as e:
        report.warnings.append(
            SynthesisWarning(name="openapi", reason=f"document is not JSON serializable: {e}")
        )
        return

    report.resources.append(
        StaticResource(
            uri=SPEC_RESOURCE_URI,
            name="openapi",
            mime_type=JSON_MIME_TYPE,
            text=text,
            description=f"OpenAPI document for {spec.title or 'this API'}",
        )
    )


def _declared_resource(
    entry: Any,
    client: Optional[httpx.AsyncClient],
    base_url: str,
    timeout: float,
) -> Resource:
    """Build one declared document.

    Raises:
        ValueError: If the entry cannot be mapped
    """
    if not isinstance(entry, dict):
        raise ValueError("declared resource is not an object")

    name = entry.get("name")
    if not isinstance(name, str) or not name:
        raise ValueError("declared resource has no name")

    has_content = "content" in entry
    has_path = "path" in entry
    if has_content == has_path:
        raise ValueError("declared resource needs exactly one of 'content' or 'path'")

    uri = entry.get("uri") or f"{DOCUMENT_URI_PREFIX}{quote(name, safe='')}"
    description = entry.get("description", "") or ""
    mime_type = entry.get("mimeType")

    if has_content:
        content = entry["content"]
        if isinstance(content, str):
            text = content
            mime_type = mime_type or TEXT_MIME_TYPE
        else:
            try:
                text = _to_json_text(content)
            except (TypeError, ValueError) as e:
                raise ValueError(f"content is not JSON serializable: {e}")
            mime_type = mime_type or JSON_MIME_TYPE
        return StaticResource(uri, name, mime_type, text, description)

    path = entry["path"]
    if not isinstance(path, str) or not path.startswith("/"):
        raise ValueError("'path' must be a path relative to the API base URL")
    return HttpResource(
        uri=uri,
        name=name,
        url=f"{base_url}{path}",
        client=client,
        mime_type=mime_type,
        description=description,
        timeout=timeout,
    )


def synthesize_resources(
    spec: Spec,
    client: Optional[httpx.AsyncClient] = None,
    base_url: Optional[str] = None,
    timeout: float = DEFAULT_REQUEST_TIMEOUT,
) -> ResourceReport:
    """Build every resource the spec describes.

    No network I/O happens here; HttpResource fetches only when read.

    Args:
        spec: Validated OpenAPI spec
        client: HTTP client for declared documents with a path
        base_url: Overrides the first server URL of the spec
        timeout: Seconds allowed per resource fetch

    Returns:
        A ResourceReport with resources and warnings
    """
    report = ResourceReport()
    base_url = (base_url or spec.base_url).rstrip("/")

    _schema_resources(spec, report)
    _spec_resource(spec, report)

    for index, entry in enumerate(spec.documents):
        try:
            report.resources.append(_declared_resource(entry, client, base_url, timeout))
        except ValueError as e:
            name = entry.get("name") if isinstance(entry, dict) else None
            report.warnings.append(
                SynthesisWarning(name=str(name or f"document[{index}]"), reason=str(e))
            )

    seen = set()
    unique: List[Resource] = []
    for resource in report.resources:
        if resource.uri in seen:
            report.warnings.append(
                SynthesisWarning(name=resource.name, reason=f"duplicate URI {resource.uri}")
            )
            continue
        seen.add(resource.uri)
        unique.append(resource)
    report.resources = unique

    for warning in report.warnings:
        logger.warning(f"Resource '{warning.name}' not exposed: {warning.reason}")
    logger.info(f"Synthesized {len(report.resources)} resources")
    return report
