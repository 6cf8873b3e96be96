"""
Name: OpenAPI operation extractor.
Description: Walks the path/method table of a validated Spec and produces an ordered list of Operation descriptors.
Malformed operations are reported as ExtractionError entries without aborting the rest of the document.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import BaseModel, Field

from ..constants import HTTP_METHOD_PRECEDENCE, PARAMETER_LOCATIONS
from ..errors import ExtractionError
from .models import Operation, Parameter, Spec

logger = logging.getLogger(__name__)


class ExtractionReport(BaseModel):
    """Operations extracted from a spec plus the ones that had to be skipped."""

    operations: List[Operation] = Field(default_factory=list)
    errors: List[ExtractionError] = Field(default_factory=list)


class _MalformedOperation(ValueError):
    pass


def _parse_parameter(raw: Any) -> Parameter:
    if not isinstance(raw, dict):
        raise _MalformedOperation(f"parameter entry is not an object: {raw!r}")

    name = raw.get("name")
    if not isinstance(name, str) or not name:
        raise _MalformedOperation("parameter without a name")

    location = raw.get("in")
    if location not in PARAMETER_LOCATIONS:
        raise _MalformedOperation(f"parameter '{name}' has invalid location {location!r}")

    schema = raw.get("schema")
    if schema is None and isinstance(raw.get("content"), dict):
        # Parameters may describe their schema through a single media type
        for media in raw["content"].values():
            if isinstance(media, dict) and isinstance(media.get("schema"), dict):
                schema = media["schema"]
                break
    if schema is not None and not isinstance(schema, dict):
        raise _MalformedOperation(f"parameter '{name}' has a non-object schema")

    return Parameter(
        name=name,
        location=location,
        # Path parameters are always required
        required=bool(raw.get("required", False)) or location == "path",
        description=raw.get("description", "") or "",
        schema_definition=schema or {},
    )


def _merge_parameters(
    path_level: List[Any], operation_level: List[Any]
) -> List[Parameter]:
    merged: Dict[Tuple[str, str], Parameter] = {}
    for raw in list(path_level) + list(operation_level):
        param = _parse_parameter(raw)
        # Operation-level entries override path-level ones with the same (name, in)
        merged[(param.name, param.location)] = param
    return list(merged.values())


def _select_media_schema(content: Any) -> Tuple[Optional[Dict[str, Any]], str]:
    """Pick the JSON media type from a content map, falling back to the first one."""
    if not isinstance(content, dict) or not content:
        return None, "application/json"

    ordered = sorted(
        content.keys(),
        key=lambda media_type: (
            0
            if media_type.startswith("application/json")
            else 1
            if media_type.endswith("+json")
            else 2
        ),
    )
    media_type = ordered[0]
    media = content.get(media_type) or {}
    if not isinstance(media, dict):
        raise _MalformedOperation(f"media type '{media_type}' is not an object")

    schema = media.get("schema")
    if schema is not None and not isinstance(schema, dict):
        raise _MalformedOperation(f"media type '{media_type}' has a non-object schema")
    return schema or {}, media_type


def _parse_responses(raw: Any) -> Dict[str, Optional[Dict[str, Any]]]:
    if raw is None:
        return {}
    if not isinstance(raw, dict):
        raise _MalformedOperation("responses is not an object")

    responses: Dict[str, Optional[Dict[str, Any]]] = {}
    for status, response in raw.items():
        if not isinstance(response, dict):
            raise _MalformedOperation(f"response '{status}' is not an object")
        schema, _ = _select_media_schema(response.get("content"))
        responses[str(status)] = schema
    return responses


def _check_security(security: Any, label: str) -> None:
    if not isinstance(security, list):
        raise _MalformedOperation(f"{label} is not a list")
    for requirement in security:
        if not isinstance(requirement, dict) or not all(
            isinstance(scopes, list) for scopes in requirement.values()
        ):
            raise _MalformedOperation(f"{label} has a malformed requirement: {requirement!r}")


def _requires_auth(
    security: Optional[List[Dict[str, List[str]]]],
    global_security: List[Any],
) -> bool:
    effective = global_security if security is None else security
    if not effective:
        return False
    # An empty requirement object makes authentication optional
    return all(requirement for requirement in effective)


def build_operation(
    path: str,
    method: str,
    raw: Any,
    path_parameters: List[Any],
    global_security: List[Any],
) -> Operation:
    """Build an Operation from the raw operation object.

    Raises:
        ValueError: If the operation object is malformed
    """
    if not isinstance(raw, dict):
        raise _MalformedOperation("operation is not an object")

    raw_parameters = raw.get("parameters") or []
    if not isinstance(raw_parameters, list):
        raise _MalformedOperation("parameters is not a list")

    request_body = raw.get("requestBody")
    body_schema = None
    body_content_type = "application/json"
    body_required = False
    if request_body is not None:
        if not isinstance(request_body, dict):
            raise _MalformedOperation("requestBody is not an object")
        body_schema, body_content_type = _select_media_schema(request_body.get("content"))
        if body_schema is None:
            body_schema = {}
        body_required = bool(request_body.get("required", False))

    security = raw.get("security")
    if security is None:
        _check_security(global_security, "document-level security")
    else:
        _check_security(security, "security")

    operation_id = raw.get("operationId")
    if operation_id is not None and not isinstance(operation_id, str):
        raise _MalformedOperation("operationId is not a string")

    return Operation(
        operation_id=operation_id or None,
        method=method,
        path=path,
        summary=raw.get("summary", "") or "",
        description=raw.get("description", "") or "",
        parameters=_merge_parameters(path_parameters, raw_parameters),
        request_body_schema=body_schema,
        request_body_required=body_required,
        request_body_content_type=body_content_type,
        responses=_parse_responses(raw.get("responses")),
        deprecated=bool(raw.get("deprecated", False)),
        tags=[str(tag) for tag in raw.get("tags", []) or []],
        security=security,
        requires_auth=_requires_auth(security, global_security),
    )


def extract_operations(spec: Spec, include_deprecated: bool = True) -> ExtractionReport:
    """Extract every operation of a spec in a stable order.

    Paths are visited in sorted order and methods in HTTP_METHOD_PRECEDENCE
    order, so the output is identical across runs.

    Args:
        spec: A validated spec
        include_deprecated: Whether operations marked deprecated are kept

    Returns:
        An ExtractionReport with the operations and any per-operation errors
    """
    report = ExtractionReport()

    for path in sorted(spec.paths):
        path_item = spec.paths[path]
        if not isinstance(path_item, dict):
            error = ExtractionError(path=path, method="*", reason="path item is not an object")
            logger.warning(error.message)
            report.errors.append(error)
            continue

        path_parameters = path_item.get("parameters") or []
        if not isinstance(path_parameters, list):
            path_parameters = []
            report.errors.append(
                ExtractionError(
                    path=path, method="*", reason="path-level parameters is not a list"
                )
            )

        for method in HTTP_METHOD_PRECEDENCE:
            if method not in path_item:
                continue

            try:
                operation = build_operation(
                    path, method, path_item[method], path_parameters, spec.security
                )
            except ValueError as e:
                error = ExtractionError(path=path, method=method, reason=str(e))
                logger.warning(error.message)
                report.errors.append(error)
                continue

            if operation.deprecated and not include_deprecated:
                logger.debug(f"Skipping deprecated operation {method.upper()} {path}")
                continue

            report.operations.append(operation)

    logger.info(
        f"Extracted {len(report.operations)} operations "
        f"({len(report.errors)} skipped)"
    )
    return report
