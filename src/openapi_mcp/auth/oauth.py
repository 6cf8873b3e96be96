"""
Name: OAuth 2.1 authorization code flow with PKCE.
Description: Implements OAuthProvider, the state machine that builds authorization URLs, exchanges authorization codes
for tokens, caches the resulting TokenState and refreshes it. The provider is the only owner of the token; tools read it
through get_auth_header(), and concurrent refreshes are coalesced into a single in-flight request.
"""

import asyncio
import logging
import math
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional
from urllib.parse import urlencode

import anyio
import httpx
from pydantic import BaseModel, ConfigDict

from ..config import OAuth2Config
from ..constants import (
    DEFAULT_REQUEST_TIMEOUT,
    DEFAULT_TOKEN_LIFETIME_SECONDS,
    MAX_REFRESH_MARGIN_FRACTION,
    PENDING_AUTHORIZATION_TTL_SECONDS,
    TOKEN_REFRESH_MARGIN_SECONDS,
)
from ..errors import (
    AuthError,
    ExchangeFailed,
    NotAuthenticated,
    RefreshFailed,
    UnknownState,
)
from ..result import Err, Ok, Result
from .pkce import CHALLENGE_METHOD, PkceChallenge

logger = logging.getLogger(__name__)


class AuthState(str, Enum):
    """States of the OAuth flow."""

    UNAUTHENTICATED = "unauthenticated"
    AUTHORIZATION_PENDING = "authorization_pending"
    EXCHANGING = "exchanging"
    AUTHENTICATED = "authenticated"
    REFRESHING = "refreshing"


class TokenState(BaseModel):
    """Cached access/refresh token pair."""

    model_config = ConfigDict(frozen=True)

    access_token: str
    refresh_token: Optional[str] = None
    expires_at_ms: int
    lifetime_seconds: float = DEFAULT_TOKEN_LIFETIME_SECONDS
    scope: List[str] = []

    def expires_within(self, seconds: float, now: float) -> bool:
        """Whether the token expires within `seconds` of `now` (epoch seconds)."""
        return self.expires_at_ms - int(now * 1000) <= int(seconds * 1000)

    @property
    def authorization_header(self) -> str:
        return f"Bearer {self.access_token}"


class OAuthProvider:
    """OAuth 2.1 client that hands bearer headers to tool invocations."""

    def __init__(
        self,
        config: OAuth2Config,
        client: httpx.AsyncClient,
        clock: Callable[[], float] = time.time,
        timeout: float = DEFAULT_REQUEST_TIMEOUT,
        refresh_margin: float = TOKEN_REFRESH_MARGIN_SECONDS,
        pending_ttl: float = PENDING_AUTHORIZATION_TTL_SECONDS,
    ):
        """Initialize the provider.

        Args:
            config: OAuth client configuration
            client: HTTP client used to reach the token endpoint
            clock: Returns the current time in epoch seconds
            timeout: Seconds allowed for each token endpoint request
            refresh_margin: Refresh tokens expiring within this many seconds
            pending_ttl: Seconds an authorization attempt stays valid
        """
        self.config = config
        self._client = client
        self._clock = clock
        self._timeout = timeout
        self._refresh_margin = refresh_margin
        self._pending_ttl = pending_ttl

        self._state = AuthState.UNAUTHENTICATED
        self._token: Optional[TokenState] = None
        self._pending: Dict[str, PkceChallenge] = {}
        self._refresh_task: Optional["asyncio.Task[Result[str, AuthError]]"] = None

    @property
    def state(self) -> AuthState:
        return self._state

    @property
    def token(self) -> Optional[TokenState]:
        """Read-only snapshot of the current token."""
        return self._token

    @property
    def is_authenticated(self) -> bool:
        return self._token is not None

    @property
    def pending_count(self) -> int:
        return len(self._pending)

    # ------------------------------------------------------------------
    # Authorization
    # ------------------------------------------------------------------

    def _purge_expired(self, now: float) -> None:
        expired = [
            state
            for state, challenge in self._pending.items()
            if challenge.is_expired(now, self._pending_ttl)
        ]
        for state in expired:
            del self._pending[state]
        if expired:
            logger.debug(f"Discarded {len(expired)} expired authorization attempts")

    def begin_authorization(self) -> str:
        """Start an authorization attempt.

        Returns:
            The authorization URL the user must visit
        """
        now = self._clock()
        self._purge_expired(now)

        challenge = PkceChallenge.generate(now=now)
        self._pending[challenge.state] = challenge

        params = {
            "response_type": "code",
            "client_id": self.config.client_id,
            "redirect_uri": self.config.redirect_uri,
            "state": challenge.state,
        }
        if self.config.scopes:
            params["scope"] = " ".join(self.config.scopes)
        if self.config.pkce:
            params["code_challenge"] = challenge.challenge
            params["code_challenge_method"] = CHALLENGE_METHOD

        if self._state == AuthState.UNAUTHENTICATED:
            self._state = AuthState.AUTHORIZATION_PENDING

        separator = "&" if "?" in self.config.authorization_url else "?"
        return f"{self.config.authorization_url}{separator}{urlencode(params)}"

    async def complete_authorization(
        self, code: str, state: str
    ) -> Result[TokenState, AuthError]:
        """Exchange an authorization code for tokens.

        The state is single-use: it is removed before the exchange is
        attempted, so a replayed callback fails with UnknownState.

        Args:
            code: Authorization code from the redirect
            state: State value from the redirect

        Returns:
            Ok(TokenState) or Err(UnknownState / ExchangeFailed)
        """
        self._purge_expired(self._clock())
        challenge = self._pending.pop(state, None)
        if challenge is None:
            logger.warning("Authorization callback with unknown or consumed state")
            return Err(UnknownState(state=state))

        self._state = AuthState.EXCHANGING
        form = {
            "grant_type": "authorization_code",
            "code": code,
            "redirect_uri": self.config.redirect_uri,
            "client_id": self.config.client_id,
        }
        if self.config.pkce:
            form["code_verifier"] = challenge.verifier
        if self.config.client_secret:
            form["client_secret"] = self.config.client_secret

        result = await self._request_token(form)
        if result.is_err():
            self._state = (
                AuthState.AUTHENTICATED if self._token else AuthState.UNAUTHENTICATED
            )
            cause = result.unwrap_err()
            logger.error(f"Authorization code exchange failed: {cause}")
            return Err(ExchangeFailed(cause=cause))

        self._token = result.unwrap()
        self._state = AuthState.AUTHENTICATED
        logger.info("OAuth authorization completed")
        return Ok(self._token)

    def logout(self) -> None:
        """Forget the current token and every pending authorization attempt."""
        self._token = None
        self._pending.clear()
        self._state = AuthState.UNAUTHENTICATED

    # ------------------------------------------------------------------
    # Token access
    # ------------------------------------------------------------------

    async def get_auth_header(self) -> Result[str, AuthError]:
        """Return the Authorization header value for outbound requests.

        Refreshes first when the token is about to expire.

        Returns:
            Ok("Bearer <token>") or Err(AuthError)
        """
        token = self._token
        if token is None:
            return Err(NotAuthenticated())

        margin = min(self._refresh_margin, token.lifetime_seconds * MAX_REFRESH_MARGIN_FRACTION)
        if token.expires_within(margin, self._clock()):
            logger.debug("Access token is expiring, refreshing")
            return await self._refresh()

        return Ok(token.authorization_header)

    async def refresh_after_rejection(self, rejected_header: str) -> Result[str, AuthError]:
        """Refresh after the API rejected a request with 401.

        If another caller already replaced the rejected token, the new one
        is returned without contacting the token endpoint again.

        Args:
            rejected_header: The Authorization header value that was rejected

        Returns:
            Ok with a fresh header value or Err(AuthError)
        """
        token = self._token
        if token is None:
            return Err(NotAuthenticated())

        if token.authorization_header != rejected_header:
            return Ok(token.authorization_header)

        return await self._refresh()

    async def _refresh(self) -> Result[str, AuthError]:
        if self._refresh_task is None:
            self._refresh_task = asyncio.ensure_future(self._run_refresh())
        # Shielded so a cancelled caller does not cancel the shared refresh
        return await asyncio.shield(self._refresh_task)

    async def _run_refresh(self) -> Result[str, AuthError]:
        try:
            token = self._token
            if token is None:
                return Err(NotAuthenticated())

            if not token.refresh_token:
                self._drop_token()
                return Err(RefreshFailed(cause="no refresh token available"))

            self._state = AuthState.REFRESHING
            form = {
                "grant_type": "refresh_token",
                "refresh_token": token.refresh_token,
                "client_id": self.config.client_id,
            }
            if self.config.client_secret:
                form["client_secret"] = self.config.client_secret

            result = await self._request_token(form, previous=token)

            if self._token is not token:
                # Replaced by a new authorization or a logout while refreshing
                current = self._token
                if current is None:
                    return Err(NotAuthenticated())
                return Ok(current.authorization_header)

            if result.is_err():
                cause = result.unwrap_err()
                logger.error(f"Token refresh failed: {cause}")
                self._drop_token()
                return Err(RefreshFailed(cause=cause))

            self._token = result.unwrap()
            self._state = AuthState.AUTHENTICATED
            logger.info("Access token refreshed")
            return Ok(self._token.authorization_header)
        finally:
            self._refresh_task = None

    def _drop_token(self) -> None:
        self._token = None
        self._state = AuthState.UNAUTHENTICATED

    # ------------------------------------------------------------------
    # Token endpoint
    # ------------------------------------------------------------------

    async def _request_token(
        self, form: Dict[str, str], previous: Optional[TokenState] = None
    ) -> Result[TokenState, str]:
        """POST to the token endpoint and parse the token response.

        Returns:
            Ok(TokenState) or Err with a human readable cause
        """
        try:
            with anyio.fail_after(self._timeout):
                response = await self._client.post(
                    self.config.token_url,
                    data=form,
                    headers={"Accept": "application/json"},
                )
        except TimeoutError:
            return Err(f"token endpoint timed out after {self._timeout}s")
        except httpx.HTTPError as e:
            return Err(f"token endpoint unreachable: {e}")

        try:
            payload: Any = response.json() if response.content else {}
        except ValueError:
            payload = {}

        if not response.is_success:
            if isinstance(payload, dict) and payload.get("error"):
                detail = payload["error"]
                if payload.get("error_description"):
                    detail = f"{detail}: {payload['error_description']}"
                return Err(f"HTTP {response.status_code} ({detail})")
            return Err(f"HTTP {response.status_code}")

        if not isinstance(payload, dict) or not payload.get("access_token"):
            return Err("token response has no access_token")

        token_type = str(payload.get("token_type", "bearer"))
        if token_type.lower() != "bearer":
            logger.warning(f"Unexpected token type '{token_type}', using it as a bearer token")

        try:
            expires_in = float(payload.get("expires_in", DEFAULT_TOKEN_LIFETIME_SECONDS))
        except (TypeError, ValueError):
            expires_in = DEFAULT_TOKEN_LIFETIME_SECONDS
        if not math.isfinite(expires_in) or expires_in < 0:
            logger.warning(f"Ignoring invalid expires_in {expires_in!r} in token response")
            expires_in = DEFAULT_TOKEN_LIFETIME_SECONDS

        scope = payload.get("scope")
        if isinstance(scope, str):
            scopes = scope.split()
        elif previous is not None:
            scopes = list(previous.scope)
        else:
            scopes = list(self.config.scopes)

        # Servers may omit the refresh token on refresh; keep the old one then
        refresh_token = payload.get("refresh_token") or (
            previous.refresh_token if previous is not None else None
        )

        return Ok(
            TokenState(
                access_token=str(payload["access_token"]),
                refresh_token=refresh_token,
                expires_at_ms=int((self._clock() + expires_in) * 1000),
                lifetime_seconds=expires_in,
                scope=scopes,
            )
        )
