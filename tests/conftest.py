"""Configuration file for pytest."""

import sys
from pathlib import Path

import pytest

# Add the project root and src directory to the path so tests can import modules correctly
ROOT = Path(__file__).parent.parent
sys.path.insert(0, str(ROOT))
sys.path.insert(0, str(ROOT / "src"))

from tests.fixtures.specs import petstore_spec  # noqa: E402


@pytest.fixture
def sample_openapi_spec():
    """Return a sample OpenAPI specification for testing."""
    return petstore_spec()
