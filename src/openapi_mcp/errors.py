"""
Name: Error taxonomy.
Description: Typed error values carried inside Err results. Each family (spec, extraction, tool, resource, auth)
has a base model and one subclass per variant so callers can branch with isinstance.
"""

from typing import Any, List, Optional

from pydantic import BaseModel, ConfigDict


class _ErrorModel(BaseModel):
    model_config = ConfigDict(frozen=True)

    @property
    def message(self) -> str:
        return self.__class__.__name__

    def __str__(self) -> str:
        return self.message


# ---------------------------------------------------------------------------
# Spec loading
# ---------------------------------------------------------------------------


class SpecError(_ErrorModel):
    """Base class for errors raised while loading or validating a spec."""


class SpecFetchError(SpecError):
    source: str
    cause: str

    @property
    def message(self) -> str:
        return f"Unable to read OpenAPI document from {self.source}: {self.cause}"


class SpecParseError(SpecError):
    cause: str

    @property
    def message(self) -> str:
        return f"OpenAPI document is not valid structured data: {self.cause}"


class MissingVersionError(SpecError):
    @property
    def message(self) -> str:
        return "OpenAPI document has no 'openapi' version field"


class UnsupportedVersionError(SpecError):
    version: str

    @property
    def message(self) -> str:
        return f"Unsupported OpenAPI version '{self.version}', only 3.x is supported"


class MissingPathsError(SpecError):
    @property
    def message(self) -> str:
        return "OpenAPI document has no 'paths' or 'paths' is empty"


class UnresolvedReferenceError(SpecError):
    ref: str

    @property
    def message(self) -> str:
        return f"Unresolved reference: {self.ref}"


class CircularReferenceError(SpecError):
    chain: List[str]

    @property
    def message(self) -> str:
        return "Circular reference: " + " -> ".join(self.chain)


# ---------------------------------------------------------------------------
# Extraction
# ---------------------------------------------------------------------------


class ExtractionError(_ErrorModel):
    """A single operation that could not be extracted."""

    path: str
    method: str
    reason: str

    @property
    def message(self) -> str:
        return f"Skipped {self.method.upper()} {self.path}: {self.reason}"


# ---------------------------------------------------------------------------
# Tool invocation
# ---------------------------------------------------------------------------


class ToolError(_ErrorModel):
    """Base class for tool invocation failures."""


class InvalidArgs(ToolError):
    violations: List[str]

    @property
    def message(self) -> str:
        return "Invalid arguments: " + "; ".join(self.violations)


class RequestFailed(ToolError):
    status: int
    body: Any = None

    @property
    def message(self) -> str:
        return f"Request failed with status {self.status}: {self.body}"


class Transport(ToolError):
    cause: str

    @property
    def message(self) -> str:
        return f"Transport error: {self.cause}"


class Timeout(ToolError):
    seconds: float

    @property
    def message(self) -> str:
        return f"Request timed out after {self.seconds}s"


class Unauthenticated(ToolError):
    reason: Optional[str] = None

    @property
    def message(self) -> str:
        text = "Authorization required; start a new authorization"
        return f"{text} ({self.reason})" if self.reason else text


# ---------------------------------------------------------------------------
# Resource reads
# ---------------------------------------------------------------------------


class ResourceError(_ErrorModel):
    """Base class for resource read failures."""


class ResourceRequestFailed(ResourceError):
    status: int
    body: Any = None

    @property
    def message(self) -> str:
        return f"Resource request failed with status {self.status}: {self.body}"


class ResourceTransport(ResourceError):
    cause: str

    @property
    def message(self) -> str:
        return f"Transport error: {self.cause}"


class ResourceTimeout(ResourceError):
    seconds: float

    @property
    def message(self) -> str:
        return f"Resource read timed out after {self.seconds}s"


class ResourceUnavailable(ResourceError):
    reason: str

    @property
    def message(self) -> str:
        return f"Resource unavailable: {self.reason}"


# ---------------------------------------------------------------------------
# OAuth
# ---------------------------------------------------------------------------


class AuthError(_ErrorModel):
    """Base class for OAuth flow failures."""


class UnknownState(AuthError):
    state: str

    @property
    def message(self) -> str:
        return "Unknown, expired or already used authorization state"


class ExchangeFailed(AuthError):
    cause: str

    @property
    def message(self) -> str:
        return f"Authorization code exchange failed: {self.cause}"


class RefreshFailed(AuthError):
    cause: str

    @property
    def message(self) -> str:
        return f"Token refresh failed: {self.cause}"


class NotAuthenticated(AuthError):
    @property
    def message(self) -> str:
        return "No access token available"
