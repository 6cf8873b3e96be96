"""PKCE (RFC 7636) verifier, challenge and state generation."""

import base64
import hashlib
import secrets
import time
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from ..constants import PKCE_VERIFIER_BYTES, STATE_NONCE_BYTES

CHALLENGE_METHOD = "S256"


def generate_code_verifier() -> str:
    """Return a high-entropy verifier (64 URL-safe characters)."""
    return secrets.token_urlsafe(PKCE_VERIFIER_BYTES)


def generate_code_challenge(verifier: str) -> str:
    """Derive the S256 challenge: base64url(sha256(verifier)) without padding."""
    digest = hashlib.sha256(verifier.encode("ascii")).digest()
    return base64.urlsafe_b64encode(digest).decode("ascii").rstrip("=")


class PkceChallenge(BaseModel):
    """Per-attempt PKCE material, consumed once at code exchange."""

    model_config = ConfigDict(frozen=True)

    verifier: str
    challenge: str
    state: str
    created_at: float = Field(default_factory=time.time)

    @classmethod
    def generate(cls, now: Optional[float] = None) -> "PkceChallenge":
        """Generate a fresh verifier/challenge pair and CSRF state nonce."""
        verifier = generate_code_verifier()
        return cls(
            verifier=verifier,
            challenge=generate_code_challenge(verifier),
            state=secrets.token_urlsafe(STATE_NONCE_BYTES),
            created_at=time.time() if now is None else now,
        )

    def is_expired(self, now: float, ttl_seconds: float) -> bool:
        return now - self.created_at >= ttl_seconds
