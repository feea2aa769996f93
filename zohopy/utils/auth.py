"""OAuth2 token lifecycle for the Zoho accounts server.

The manager owns a single access token at a time. A cached token is used
until it is within ``EXPIRY_SKEW_MS`` of expiring; after that the next caller
refreshes it. Concurrent callers share one in-flight refresh and its outcome.

Copyright (c) 2024 Felix Geilert
"""

import asyncio
import logging
import time
from collections.abc import Callable
from dataclasses import dataclass
from typing import Any
from urllib.parse import urlencode

import aiohttp

from zohopy.config import ZohoCredential
from zohopy.exceptions import AuthenticationError, ConfigurationError

logger = logging.getLogger(__name__)

EXPIRY_SKEW_MS = 60_000
DEFAULT_TIMEOUT = 30.0


@dataclass
class TokenInfo:
    """An access token and the epoch millisecond instant it expires."""

    access_token: str
    expires_at_ms: int
    refresh_token: str | None = None
    token_type: str = "Zoho-oauthtoken"
    scope: str | None = None
    api_domain: str | None = None

    @classmethod
    def from_response(cls, data: dict[str, Any], now_ms: int) -> "TokenInfo":
        """Build token info from a ``/oauth/v2/token`` response body."""
        if not data.get("access_token"):
            raise AuthenticationError("Token response did not contain an access token", response=data)
        expires_in = int(data.get("expires_in", 3600))
        return cls(
            access_token=data["access_token"],
            expires_at_ms=now_ms + expires_in * 1000,
            refresh_token=data.get("refresh_token"),
            scope=data.get("scope"),
            api_domain=data.get("api_domain"),
        )

    def is_fresh(self, now_ms: int, skew_ms: int = EXPIRY_SKEW_MS) -> bool:
        return now_ms < self.expires_at_ms - skew_ms


@dataclass
class TokenCache:
    """In-memory holder of the current access token. Never persisted."""

    token: TokenInfo | None = None

    def get(self, now_ms: int) -> TokenInfo | None:
        if self.token is not None and self.token.is_fresh(now_ms):
            return self.token
        return None

    def clear(self) -> None:
        self.token = None


class ZohoAuthManager:
    """Produces valid access tokens, refreshing exactly when necessary."""

    def __init__(
        self,
        credential: ZohoCredential,
        session: aiohttp.ClientSession | None = None,
        cache: TokenCache | None = None,
        clock: Callable[[], float] = time.time,
    ):
        """
        Initialize the auth manager.

        Args:
            credential: OAuth client credentials and default refresh token
            session: Shared HTTP session; one is created on demand if omitted
            cache: Token cache to use; a private one is created if omitted
            clock: Returns the current epoch time in seconds
        """
        self.credential = credential
        self.cache = cache or TokenCache()
        self._clock = clock
        self._session = session
        self._owns_session = session is None
        self._refresh_task: asyncio.Future[TokenInfo] | None = None

    def _now_ms(self) -> int:
        return int(self._clock() * 1000)

    async def _get_session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=DEFAULT_TIMEOUT))
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        """Close the HTTP session if this manager created it."""
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def _post_token_endpoint(self, path: str, data: dict[str, str], action: str) -> dict[str, Any]:
        session = await self._get_session()
        url = f"{self.credential.accounts_url}{path}"
        async with session.request("POST", url, data=data, headers={"Accept": "application/json"}) as response:
            try:
                body = await response.json(content_type=None)
            except ValueError:
                body = await response.text()

            # Zoho reports some rejections (e.g. invalid_code) with a 200 status
            error = body.get("error") if isinstance(body, dict) else None
            if response.status >= 400 or error:
                reason = error or (body if isinstance(body, str) and body else f"HTTP {response.status}")
                raise AuthenticationError(
                    f"Failed to {action}: {reason}",
                    response=body,
                    details={"status": response.status},
                )
            return body if isinstance(body, dict) else {}

    def get_authorization_url(self, state: str | None = None) -> str:
        """Get the consent URL that starts the authorization code flow."""
        params = {
            "client_id": self.credential.client_id,
            "response_type": "code",
            "scope": ",".join(self.credential.scopes),
            "redirect_uri": self.credential.redirect_uri,
            "access_type": "offline",
            "prompt": "consent",
        }
        if state:
            params["state"] = state
        return f"{self.credential.accounts_url}/oauth/v2/auth?{urlencode(params)}"

    async def exchange_code(self, code: str) -> TokenInfo:
        """Exchange a one-time authorization code for tokens."""
        data = await self._post_token_endpoint(
            "/oauth/v2/token",
            {
                "grant_type": "authorization_code",
                "client_id": self.credential.client_id,
                "client_secret": self.credential.client_secret,
                "redirect_uri": self.credential.redirect_uri,
                "code": code,
            },
            "exchange code for tokens",
        )
        token = TokenInfo.from_response(data, self._now_ms())
        self.cache.token = token
        return token

    async def refresh(self, refresh_token: str | None = None) -> TokenInfo:
        """
        Exchange a refresh token for a new access token.

        Only one exchange runs at a time. A call made while another exchange
        is in flight joins it and gets its result or its error.

        Args:
            refresh_token: Token to use instead of the credential's own

        Returns:
            The new token, which is also cached

        Raises:
            AuthenticationError: If the provider rejects the exchange
            ConfigurationError: If no refresh token is available
        """
        token_to_use = refresh_token or self.credential.refresh_token
        if not token_to_use:
            raise ConfigurationError("No refresh token available")

        if self._refresh_task is None:
            self._refresh_task = asyncio.ensure_future(self._exchange_refresh_token(token_to_use))
        # Shielded so one cancelled caller does not cancel the shared exchange
        return await asyncio.shield(self._refresh_task)

    async def _exchange_refresh_token(self, token_to_use: str) -> TokenInfo:
        logger.debug("Refreshing access token for data center %s", self.credential.data_center)
        try:
            data = await self._post_token_endpoint(
                "/oauth/v2/token",
                {
                    "grant_type": "refresh_token",
                    "client_id": self.credential.client_id,
                    "client_secret": self.credential.client_secret,
                    "refresh_token": token_to_use,
                },
                "refresh access token",
            )
            token = TokenInfo.from_response(data, self._now_ms())
        except Exception:
            # Unauthenticated after a failed exchange
            self.cache.clear()
            raise
        finally:
            self._refresh_task = None

        if token.refresh_token is None:
            token.refresh_token = token_to_use
        self.cache.token = token
        return token

    async def force_refresh(self, rejected_token: str) -> str:
        """
        Replace an access token the API rejected and return its successor.

        Refreshes only if ``rejected_token`` is still the cached token. When
        another caller already replaced it, the newer token is returned
        without a second exchange.
        """
        if self._refresh_task is None:
            current = self.cache.get(self._now_ms())
            if current is not None and current.access_token != rejected_token:
                return current.access_token
        token = await self.refresh()
        return token.access_token

    async def get_valid_access_token(self) -> str:
        """Return a token that stays valid for at least the expiry skew."""
        token = self.cache.get(self._now_ms())
        if token is not None:
            return token.access_token
        token = await self.refresh()
        return token.access_token

    async def revoke(self, token: str) -> None:
        """Revoke an access or refresh token."""
        await self._post_token_endpoint("/oauth/v2/token/revoke", {"token": token}, "revoke token")
        if self.cache.token is not None and token in (self.cache.token.access_token, self.cache.token.refresh_token):
            self.cache.clear()

    async def validate(self, token: str) -> bool:
        """Check whether the accounts server still accepts ``token``."""
        try:
            data = await self._post_token_endpoint("/oauth/v2/token/info", {"token": token}, "validate token")
        except AuthenticationError:
            return False
        return bool(data.get("scope"))
