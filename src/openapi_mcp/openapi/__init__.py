"""OpenAPI handling module for openapi-mcp."""

from .loader import load_spec, parse_spec
from .models import Operation, Parameter, Spec
from .resources import ResourceReport, SynthesisWarning, synthesize_resources
from .spec import ExtractionReport, extract_operations
from .tools import OpenAPIToolkit, RestApiTool, ToolOutput

__all__ = [
    "load_spec",
    "parse_spec",
    "Operation",
    "Parameter",
    "Spec",
    "ResourceReport",
    "SynthesisWarning",
    "synthesize_resources",
    "ExtractionReport",
    "extract_operations",
    "OpenAPIToolkit",
    "RestApiTool",
    "ToolOutput",
]
