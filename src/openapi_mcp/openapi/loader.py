"""
Name: OpenAPI specification loader.
Description: Loads OpenAPI 3.x documents from a file path, URL or in-memory mapping, validates their structure and
resolves internal $ref indirections. Every entry point returns a Result carrying either a Spec or a SpecError.
"""

import copy
import json
import logging
import os
from typing import Any, Dict, List, Optional, Tuple, Union
from urllib.parse import unquote

import anyio
import httpx
import yaml
from pydantic import ValidationError

from ..constants import (
    DEFAULT_SPEC_FETCH_TIMEOUT,
    STATIC_RESOURCES_EXTENSION,
    SUPPORTED_OPENAPI_MAJOR,
)
from ..errors import (
    CircularReferenceError,
    MissingPathsError,
    MissingVersionError,
    SpecError,
    SpecFetchError,
    SpecParseError,
    UnresolvedReferenceError,
    UnsupportedVersionError,
)
from ..result import Err, Ok, Result
from .models import Spec

logger = logging.getLogger(__name__)

SpecSource = Union[str, "os.PathLike[str]", Dict[str, Any]]


class _ReferenceFailure(Exception):
    """Unwinds the recursive resolver; converted to an Err at the module boundary."""

    def __init__(self, error: SpecError):
        super().__init__(error.message)
        self.error = error


def is_url(source: str) -> bool:
    return source.startswith(("http://", "https://"))


def detect_format(name: str, text: str, content_type: str = "") -> str:
    """Guess whether a document is JSON or YAML.

    The content type wins, then the file extension, then the first
    non-blank character of the document.

    Args:
        name: File path or URL the document came from
        text: Raw document text
        content_type: Content-Type header value, if fetched over HTTP

    Returns:
        "json" or "yaml"
    """
    content_type = content_type.lower()
    if "json" in content_type:
        return "json"
    if "yaml" in content_type or "yml" in content_type:
        return "yaml"

    path = name.split("?", 1)[0].lower()
    if path.endswith(".json"):
        return "json"
    if path.endswith((".yaml", ".yml")):
        return "yaml"

    stripped = text.lstrip()
    if stripped.startswith(("{", "[")):
        return "json"
    return "yaml"


def parse_document(text: str, fmt: str) -> Result[Dict[str, Any], SpecError]:
    """Parse raw text into a mapping.

    Args:
        text: Document text
        fmt: "json" or "yaml"

    Returns:
        Ok with the parsed mapping, or Err(SpecParseError)
    """
    try:
        if fmt == "json":
            document = json.loads(text)
        elif fmt == "yaml":
            document = yaml.safe_load(text)
        else:
            return Err(SpecParseError(cause=f"Unsupported format: {fmt}"))
    except (json.JSONDecodeError, yaml.YAMLError) as e:
        return Err(SpecParseError(cause=str(e)))

    if not isinstance(document, dict):
        return Err(
            SpecParseError(
                cause=f"Top-level value must be a mapping, got {type(document).__name__}"
            )
        )
    return Ok(document)


async def read_source(
    source: str,
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_SPEC_FETCH_TIMEOUT,
) -> Result[Tuple[str, str], SpecError]:
    """Read a document from a path or URL.

    Args:
        source: File path or http(s) URL
        client: HTTP client used for URLs; a short-lived one is created if omitted
        timeout: Seconds allowed for the fetch

    Returns:
        Ok with (text, content_type), or Err(SpecFetchError)
    """
    if not is_url(source):
        try:
            text = await anyio.Path(source).read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            return Err(SpecFetchError(source=source, cause=str(e)))
        return Ok((text, ""))

    logger.debug(f"Fetching OpenAPI spec from {source}")
    try:
        with anyio.fail_after(timeout):
            if client is not None:
                response = await client.get(source)
            else:
                async with httpx.AsyncClient() as owned_client:
                    response = await owned_client.get(source)
    except TimeoutError:
        return Err(SpecFetchError(source=source, cause=f"timed out after {timeout}s"))
    except httpx.HTTPError as e:
        return Err(SpecFetchError(source=source, cause=str(e)))

    if response.status_code >= 400:
        return Err(
            SpecFetchError(source=source, cause=f"HTTP status {response.status_code}")
        )
    return Ok((response.text, response.headers.get("Content-Type", "")))


def _check_version(document: Dict[str, Any]) -> Optional[SpecError]:
    version = document.get("openapi")
    if version is None:
        if "swagger" in document:
            return UnsupportedVersionError(version=str(document["swagger"]))
        return MissingVersionError()

    version = str(version).strip()
    major = version.split(".", 1)[0]
    if not major.isdigit() or int(major) != SUPPORTED_OPENAPI_MAJOR:
        return UnsupportedVersionError(version=version)
    return None


def _lookup_pointer(document: Dict[str, Any], ref: str) -> Any:
    """Follow an internal JSON pointer such as '#/components/schemas/Pet'."""
    if not ref.startswith("#/"):
        raise _ReferenceFailure(UnresolvedReferenceError(ref=ref))

    current: Any = document
    for raw_part in ref[2:].split("/"):
        part = unquote(raw_part).replace("~1", "/").replace("~0", "~")
        if isinstance(current, dict) and part in current:
            current = current[part]
        elif isinstance(current, list) and part.isdigit() and int(part) < len(current):
            current = current[int(part)]
        else:
            raise _ReferenceFailure(UnresolvedReferenceError(ref=ref))
    return current


def resolve_references(
    node: Any, document: Dict[str, Any]
) -> Result[Any, SpecError]:
    """Recursively replace every $ref inside node with its target.

    Resolved targets are cached by reference string. A reference that is
    reached again while it is still being expanded is reported as circular
    instead of being expanded forever.

    Args:
        node: The part of the document to resolve
        document: The whole document that references point into

    Returns:
        Ok with a resolved deep copy of node, or Err with the SpecError
    """
    cache: Dict[str, Any] = {}

    def resolve(obj: Any, stack: Tuple[str, ...]) -> Any:
        if isinstance(obj, dict):
            ref = obj.get("$ref")
            if isinstance(ref, str):
                if ref in stack:
                    chain = list(stack[stack.index(ref):]) + [ref]
                    raise _ReferenceFailure(CircularReferenceError(chain=chain))

                if ref not in cache:
                    target = _lookup_pointer(document, ref)
                    cache[ref] = resolve(target, stack + (ref,))

                resolved = copy.deepcopy(cache[ref])
                siblings = {k: v for k, v in obj.items() if k != "$ref"}
                if siblings and isinstance(resolved, dict):
                    resolved.update(resolve(siblings, stack))
                return resolved

            return {key: resolve(value, stack) for key, value in obj.items()}

        if isinstance(obj, list):
            return [resolve(item, stack) for item in obj]

        return obj

    try:
        return Ok(resolve(node, ()))
    except _ReferenceFailure as failure:
        return Err(failure.error)
    except RecursionError:
        return Err(CircularReferenceError(chain=["<nesting too deep>"]))


def check_references(node: Any, document: Dict[str, Any]) -> Optional[SpecError]:
    """Check that every $ref inside node points at an existing target.

    Targets are not expanded, so self-referencing schemas are accepted.
    """
    pending = [node]
    while pending:
        obj = pending.pop()
        if isinstance(obj, dict):
            ref = obj.get("$ref")
            if isinstance(ref, str):
                try:
                    _lookup_pointer(document, ref)
                except _ReferenceFailure as failure:
                    return failure.error
            pending.extend(obj.values())
        elif isinstance(obj, list):
            pending.extend(obj)
    return None


def _mapping(value: Any) -> Dict[str, Any]:
    return value if isinstance(value, dict) else {}


def _sequence(value: Any) -> List[Any]:
    if value is None:
        return []
    return value if isinstance(value, list) else [value]


def parse_spec(document: Dict[str, Any]) -> Result[Spec, SpecError]:
    """Validate an already-parsed OpenAPI document and build a Spec.

    Checks run in order: version field, non-empty paths, resolvable references.

    Args:
        document: The OpenAPI document as a mapping

    Returns:
        Ok(Spec) or Err(SpecError)
    """
    if not isinstance(document, dict):
        return Err(SpecParseError(cause="Top-level value must be a mapping"))

    version_error = _check_version(document)
    if version_error is not None:
        return Err(version_error)

    paths = document.get("paths")
    if not isinstance(paths, dict) or not paths:
        return Err(MissingPathsError())

    resolved_paths = resolve_references(paths, document)
    if resolved_paths.is_err():
        return resolved_paths

    components = _mapping(document.get("components"))
    schema_error = check_references(components.get("schemas") or {}, document)
    if schema_error is not None:
        return Err(schema_error)

    documents = document.get(STATIC_RESOURCES_EXTENSION) or []
    if not isinstance(documents, list):
        documents = [documents]

    try:
        spec = Spec(
            openapi_version=str(document["openapi"]),
            info=_mapping(document.get("info")),
            servers=_sequence(document.get("servers")),
            paths=resolved_paths.unwrap(),
            schemas=_mapping(components.get("schemas")),
            security_schemes=_mapping(components.get("securitySchemes")),
            security=_sequence(document.get("security")),
            documents=documents,
            raw=document,
        )
    except ValidationError as e:
        return Err(SpecParseError(cause=str(e)))
    logger.debug(
        f"Loaded OpenAPI {spec.openapi_version} document '{spec.title}' "
        f"with {len(spec.paths)} paths"
    )
    return Ok(spec)


async def load_spec(
    source: SpecSource,
    fmt: str = "auto",
    client: Optional[httpx.AsyncClient] = None,
    timeout: float = DEFAULT_SPEC_FETCH_TIMEOUT,
) -> Result[Spec, SpecError]:
    """Load, parse and validate an OpenAPI document.

    Args:
        source: File path, http(s) URL, or an already-parsed mapping
        fmt: "json", "yaml" or "auto" to detect from extension/content
        client: Optional HTTP client for URL sources
        timeout: Seconds allowed for fetching a URL

    Returns:
        Ok(Spec) or Err(SpecError)
    """
    if isinstance(source, dict):
        return parse_spec(source)

    source = os.fspath(source)
    read = await read_source(source, client=client, timeout=timeout)
    if read.is_err():
        return read

    text, content_type = read.unwrap()
    if fmt == "auto":
        fmt = detect_format(source, text, content_type)

    parsed = parse_document(text, fmt)
    if parsed.is_err():
        return parsed

    return parse_spec(parsed.unwrap())
