"""OAuth 2.1 + PKCE support for openapi-mcp."""

from .oauth import AuthState, OAuthProvider, TokenState
from .pkce import PkceChallenge, generate_code_challenge, generate_code_verifier

__all__ = [
    "AuthState",
    "OAuthProvider",
    "TokenState",
    "PkceChallenge",
    "generate_code_challenge",
    "generate_code_verifier",
]
