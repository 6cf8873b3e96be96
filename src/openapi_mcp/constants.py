"""
Name: Constants and settings.
Description: Centralized location for constants and settings used throughout openapi-mcp.
This file contains default values for timeouts, OAuth token handling, naming and MIME types.
"""


# Server settings
DEFAULT_SERVER_NAME = "openapi-mcp"
DEFAULT_SERVER_VERSION = "0.1.0"
DEFAULT_TRANSPORT = "stdio"
DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 8000
OAUTH_CALLBACK_PATH = "/oauth/callback"

# Outbound request settings
DEFAULT_REQUEST_TIMEOUT = 30.0
DEFAULT_SPEC_FETCH_TIMEOUT = 30.0

# OpenAPI settings
SUPPORTED_OPENAPI_MAJOR = 3
HTTP_METHOD_PRECEDENCE = [
    "get",
    "post",
    "put",
    "patch",
    "delete",
    "head",
    "options",
    "trace",
]
PARAMETER_LOCATIONS = ("path", "query", "header", "cookie")
STATIC_RESOURCES_EXTENSION = "x-mcp-resources"

# Tool settings
REQUEST_BODY_KEY = "body"
LOCATION_ANNOTATION = "x-location"
MAX_TOOL_NAME_LENGTH = 64

# Resource settings
SCHEMA_URI_PREFIX = "schema://"
DOCUMENT_URI_PREFIX = "doc://"
SPEC_RESOURCE_URI = "openapi://spec"
SCHEMA_MIME_TYPE = "application/schema+json"
JSON_MIME_TYPE = "application/json"
TEXT_MIME_TYPE = "text/plain"

# OAuth settings
TOKEN_REFRESH_MARGIN_SECONDS = 30
# Short-lived tokens are refreshed at most this far into their lifetime
MAX_REFRESH_MARGIN_FRACTION = 0.5
PENDING_AUTHORIZATION_TTL_SECONDS = 600
DEFAULT_TOKEN_LIFETIME_SECONDS = 3600
PKCE_VERIFIER_BYTES = 48
STATE_NONCE_BYTES = 24
