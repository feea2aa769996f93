"""Authenticated HTTP transport for the Zoho REST APIs.

Every request carries a current access token. A 401 triggers one token
refresh and one replay of the identical request; throttling and other errors
are raised as typed exceptions and never retried here.

Copyright (c) 2024 Felix Geilert
"""

import logging
from typing import Any

import aiohttp

from .exceptions import AuthenticationError, ProviderAPIError, RateLimitError, TokenExpiredError
from .utils import ZohoAuthManager

logger = logging.getLogger(__name__)

REQUEST_TIMEOUT = 30.0
USER_AGENT = "zohopy/0.1.0 (Python Zoho API Client)"


def parse_retry_after(value: str | None) -> int:
    """Seconds to wait from a ``Retry-After`` header, 60 when absent or unparsable."""
    if value is None:
        return RateLimitError.DEFAULT_RETRY_AFTER
    try:
        return max(int(value), 0)
    except ValueError:
        return RateLimitError.DEFAULT_RETRY_AFTER


class AuthenticatedTransport:
    """Sends requests to one Zoho API base URL on behalf of one auth manager."""

    def __init__(
        self,
        auth: ZohoAuthManager,
        base_url: str,
        session: aiohttp.ClientSession | None = None,
        default_params: dict[str, str] | None = None,
    ):
        """
        Initialize the transport.

        Args:
            auth: Token lifecycle manager shared by all transports of a client
            base_url: API root, e.g. ``https://www.zohoapis.com/crm/v8``
            session: Shared HTTP session; one is created on demand if omitted
            default_params: Query parameters added to every request
        """
        self.auth = auth
        self.base_url = base_url.rstrip("/")
        self.default_params = default_params or {}
        self._session = session
        self._owns_session = session is None

    @staticmethod
    def create_session() -> aiohttp.ClientSession:
        """Create a session with the default headers and request timeout."""
        return aiohttp.ClientSession(
            headers={"User-Agent": USER_AGENT, "Accept": "application/json"},
            timeout=aiohttp.ClientTimeout(total=REQUEST_TIMEOUT),
        )

    @property
    def session(self) -> aiohttp.ClientSession:
        if self._session is None or self._session.closed:
            self._session = self.create_session()
            self._owns_session = True
        return self._session

    async def close(self) -> None:
        if self._owns_session and self._session is not None and not self._session.closed:
            await self._session.close()
        self._session = None

    async def check_response(self, response: aiohttp.ClientResponse) -> Any:
        """
        Map an API response to its decoded body or a typed error.

        Args:
            response: The aiohttp response object

        Returns:
            The decoded JSON body, or None for an empty response

        Raises:
            TokenExpiredError: On 401, so the caller can refresh and replay
            RateLimitError: On 429
            ProviderAPIError: On any other non-2xx status
        """
        if response.status == 204:
            return None

        try:
            body = await response.json(content_type=None)
        except ValueError:
            body = await response.text()

        if 200 <= response.status < 300:
            return body

        message = None
        if isinstance(body, dict):
            message = body.get("message") or body.get("code")
        message = message or f"Unexpected status code: {response.status}"

        if response.status == 401:
            raise TokenExpiredError(message, response=body, details={"status": 401})
        if response.status == 429:
            raise RateLimitError(
                message,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
                response=body,
                details={"status": 429},
            )
        raise ProviderAPIError(message, status_code=response.status, response=body, details={"status": response.status})

    async def _send(self, method: str, url: str, params: dict[str, Any], json_data: Any, token: str) -> Any:
        headers = {"Authorization": f"Zoho-oauthtoken {token}"}
        async with self.session.request(method, url, params=params, json=json_data, headers=headers) as response:
            return await self.check_response(response)

    async def request(
        self,
        method: str,
        path: str,
        params: dict[str, Any] | None = None,
        json_data: Any = None,
    ) -> Any:
        """
        Make an authenticated request to the API.

        Args:
            method: HTTP method
            path: API path relative to the base URL
            params: Query parameters
            json_data: JSON request body

        Returns:
            The decoded JSON body, or None for an empty response
        """
        url = f"{self.base_url}/{path.lstrip('/')}"
        query = {**self.default_params, **{k: v for k, v in (params or {}).items() if v is not None}}

        token = await self.auth.get_valid_access_token()
        try:
            return await self._send(method, url, query, json_data, token)
        except TokenExpiredError:
            logger.warning("%s %s returned 401, refreshing token and replaying once", method, path)

        token = await self.auth.force_refresh(token)
        try:
            return await self._send(method, url, query, json_data, token)
        except TokenExpiredError as e:
            raise AuthenticationError(
                f"Request rejected after token refresh: {e.message}", response=e.response, details=e.details
            ) from e

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("GET", path, params=params)

    async def post(self, path: str, json_data: Any = None, params: dict[str, Any] | None = None) -> Any:
        return await self.request("POST", path, params=params, json_data=json_data)

    async def put(self, path: str, json_data: Any = None, params: dict[str, Any] | None = None) -> Any:
        return await self.request("PUT", path, params=params, json_data=json_data)

    async def delete(self, path: str, params: dict[str, Any] | None = None) -> Any:
        return await self.request("DELETE", path, params=params)
