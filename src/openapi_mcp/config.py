"""
Name: Configuration.
Description: Pydantic models for the server configuration surface (name, version, OpenAPI source, base URL, OAuth
settings and transport) and helpers to load them from JSON or YAML files with environment variable substitution.
"""

import json
import logging
import os
from typing import Any, Dict, List, Literal, Optional, Union

import yaml
from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

from .constants import (
    DEFAULT_HOST,
    DEFAULT_PORT,
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_SERVER_NAME,
    DEFAULT_SERVER_VERSION,
    DEFAULT_TRANSPORT,
)
from .utils import substitute_env_vars, substitute_env_vars_deep

logger = logging.getLogger(__name__)


class OAuth2Config(BaseModel):
    """OAuth 2.1 authorization code configuration."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    type: Literal["oauth2"] = "oauth2"
    client_id: str = Field(alias="clientId")
    client_secret: Optional[str] = Field(default=None, alias="clientSecret")
    authorization_url: str = Field(alias="authorizationUrl")
    token_url: str = Field(alias="tokenUrl")
    scopes: List[str] = Field(default_factory=list)
    pkce: bool = True
    redirect_uri: str = Field(alias="redirectUri")

    @field_validator("scopes", mode="before")
    @classmethod
    def split_scope_string(cls, value: Any) -> Any:
        if isinstance(value, str):
            return value.split()
        return value

    @property
    def is_confidential(self) -> bool:
        return bool(self.client_secret)


class TransportConfig(BaseModel):
    """How the MCP server is exposed."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    transport: Literal["stdio", "streamable-http"] = DEFAULT_TRANSPORT
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT


class ServerConfig(BaseModel):
    """Configuration for one OpenAPI-backed MCP server."""

    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str = DEFAULT_SERVER_NAME
    version: str = DEFAULT_SERVER_VERSION
    openapi_spec: Union[str, Dict[str, Any]] = Field(alias="openApiSpec")
    spec_format: Literal["auto", "json", "yaml"] = Field(
        default="auto", alias="specFormat"
    )
    base_url: Optional[str] = Field(default=None, alias="baseUrl")
    auth: Union[Literal["none"], OAuth2Config] = "none"
    server: TransportConfig = Field(default_factory=TransportConfig)
    timeout: float = Field(default=DEFAULT_REQUEST_TIMEOUT, gt=0)
    include_deprecated: bool = Field(default=True, alias="includeDeprecated")

    @model_validator(mode="before")
    @classmethod
    def normalize_auth(cls, data: Any) -> Any:
        """Accept `auth: null` / `{"type": "none"}` as no authentication."""
        if not isinstance(data, dict):
            return data

        auth = data.get("auth")
        if auth is None or (isinstance(auth, dict) and auth.get("type") == "none"):
            data = dict(data)
            data["auth"] = "none"
        return data

    @property
    def oauth(self) -> Optional[OAuth2Config]:
        return self.auth if isinstance(self.auth, OAuth2Config) else None

    @property
    def server_name(self) -> str:
        """Get the standardized server name (lowercase with underscores).

        Returns:
            Standardized server name for use in URLs and file paths
        """
        return self.name.lower().replace(" ", "_") if self.name else ""


def _read_config_file(config_path: str) -> Dict[str, Any]:
    _, ext = os.path.splitext(config_path)
    with open(config_path, "r", encoding="utf-8") as f:
        if ext.lower() in (".yaml", ".yml"):
            data = yaml.safe_load(f)
        elif ext.lower() == ".json":
            data = json.load(f)
        else:
            raise ValueError(f"Unsupported config file extension: {ext}")

    if not isinstance(data, dict):
        raise ValueError(f"Config file {config_path} must contain a mapping")
    return data


def process_config(config_data: Dict[str, Any], config_dir: str = "") -> ServerConfig:
    """Build a ServerConfig from raw configuration data.

    Environment variables are substituted in the auth section and base URL
    before validation, so secrets can live in the environment or a .env file.
    A relative spec path is resolved against config_dir.

    Args:
        config_data: Raw configuration mapping
        config_dir: Directory relative spec paths are resolved against

    Returns:
        Validated server configuration
    """
    config_data = dict(config_data)

    if isinstance(config_data.get("auth"), dict):
        config_data["auth"] = substitute_env_vars_deep(config_data["auth"])

    for key in ("baseUrl", "base_url"):
        if key in config_data:
            config_data[key] = substitute_env_vars(config_data[key])

    for key in ("openApiSpec", "openapi_spec"):
        source = config_data.get(key)
        if (
            isinstance(source, str)
            and config_dir
            and not source.startswith(("http://", "https://"))
            and not os.path.isabs(source)
        ):
            config_data[key] = os.path.join(config_dir, source)

    return ServerConfig(**config_data)


def load_config(config_path: str) -> ServerConfig:
    """Load a server configuration file (JSON or YAML).

    Args:
        config_path: Path to the configuration file

    Returns:
        Validated server configuration
    """
    logger.debug(f"Loading configuration from {config_path}")
    config_data = _read_config_file(config_path)
    return process_config(
        config_data, config_dir=os.path.dirname(os.path.abspath(config_path))
    )
