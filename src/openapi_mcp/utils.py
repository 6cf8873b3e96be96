"""
Name: Utility functions.
Description: Common utility functions for openapi-mcp, including logging setup, environment variable substitution
and tool-name sanitizing.
"""

import logging
import os
import re
import sys
from typing import Any

from dotenv import load_dotenv

from .constants import MAX_TOOL_NAME_LENGTH

logger = logging.getLogger(__name__)

_INVALID_NAME_CHARS = re.compile(r"[^A-Za-z0-9_-]+")


def configure_logging(debug: bool = False):
    """Configure logging for the application.

    Logs are written to stderr so that the stdio transport keeps stdout
    for protocol messages.

    Args:
        debug: Whether to enable debug mode
    """
    logging_level = logging.DEBUG if debug else logging.INFO
    root_logger = logging.getLogger()
    root_logger.setLevel(logging_level)

    # Check if handlers are already configured to prevent duplicates
    if root_logger.handlers:
        for handler in root_logger.handlers:
            if isinstance(handler, logging.StreamHandler):
                handler.setLevel(logging_level)
        return

    console_handler = logging.StreamHandler(sys.stderr)
    console_handler.setLevel(logging_level)
    formatter = logging.Formatter(
        "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    )
    console_handler.setFormatter(formatter)
    root_logger.addHandler(console_handler)

    # httpx logs every request at INFO
    logging.getLogger("httpx").setLevel(logging.DEBUG if debug else logging.WARNING)


def substitute_env_vars(value: Any) -> Any:
    """Substitute environment variables in a string.

    Handles `{VAR_NAME}`. Keeps the original placeholder if the environment
    variable is not found.

    Args:
        value: String potentially containing environment variable references

    Returns:
        String with environment variables substituted
    """
    if not value or not isinstance(value, str) or "{" not in value:
        return value

    # Make sure all .env variables are loaded
    load_dotenv()

    try:
        return value.format(**os.environ)
    except KeyError as e:
        logger.warning(f"Environment variable not found in environment: {e}")
    except (IndexError, ValueError) as e:
        logger.warning(f"Error substituting env vars in '{value}': {e}")

    return value


def substitute_env_vars_deep(data: Any) -> Any:
    """Apply substitute_env_vars to every string in a nested structure."""
    if isinstance(data, dict):
        return {key: substitute_env_vars_deep(value) for key, value in data.items()}
    if isinstance(data, list):
        return [substitute_env_vars_deep(item) for item in data]
    return substitute_env_vars(data)


def sanitize_tool_name(name: str) -> str:
    """Reduce a name to the characters MCP clients accept in tool names."""
    cleaned = _INVALID_NAME_CHARS.sub("_", name).strip("_")
    cleaned = re.sub(r"_{2,}", "_", cleaned)
    return cleaned[:MAX_TOOL_NAME_LENGTH] or "tool"


def slugify_operation(method: str, path: str) -> str:
    """Build a tool name from an HTTP method and a path template.

    Example: ("GET", "/pets/{id}") -> "get_pets_id"
    """
    path_part = path.replace("{", "").replace("}", "")
    return sanitize_tool_name(f"{method.lower()}_{path_part}")
