"""Synchronous wrapper for the async Zoho API client.

Each call runs its own event loop and client session. The token cache is
kept on the wrapper, so an access token obtained by one call is reused by
the next until it goes stale.

Copyright (c) 2024 Felix Geilert
"""

import asyncio
import contextlib
import functools
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import pandas as pd

from .client import ZohoClient
from .config import ZohoCredential, load_config
from .utils import PaginationConfig, PaginationOptions, PaginationResult, RetryConfig, TokenCache, TokenInfo
from .utils.pagination import Record

T = TypeVar("T")


def run_async(coro):
    """Run an async coroutine in a sync context."""
    loop = None
    with contextlib.suppress(RuntimeError):
        loop = asyncio.get_running_loop()

    if loop is not None:
        # We're already in an async context
        coro.close()
        raise RuntimeError("Cannot use sync wrapper from within an async context. Use ZohoClient directly instead.")

    return asyncio.run(coro)


def async_to_sync(method: Callable[..., Awaitable[T]]) -> Callable[..., T]:
    """Decorator to convert async methods to sync."""

    @functools.wraps(method)
    def wrapper(*args, **kwargs):
        coro = method(*args, **kwargs)
        return run_async(coro)

    return wrapper


def to_dataframe(result: PaginationResult) -> pd.DataFrame:
    """Flatten paginated records into a DataFrame (nested keys joined by '.')."""
    if not result.data:
        return pd.DataFrame()
    return pd.json_normalize(result.data)


class ZohoClientSync:
    """Synchronous wrapper for ZohoClient."""

    def __init__(
        self,
        credential: ZohoCredential,
        pagination_config: PaginationConfig | None = None,
        retry_config: RetryConfig | None = None,
        **pagination_overrides: Any,
    ):
        """
        Initialize the synchronous Zoho API client.

        Args:
            credential: OAuth credentials, data center and Books organization
            pagination_config: Pagination defaults for this client
            retry_config: Retry policy wrapped around each page fetch
            **pagination_overrides: Individual ``PaginationConfig`` fields
        """
        self.credential = credential
        self.pagination_config = pagination_config
        self.retry_config = retry_config
        self.pagination_overrides = pagination_overrides
        self.token_cache = TokenCache()

    def _client(self) -> ZohoClient:
        return ZohoClient(
            self.credential,
            pagination_config=self.pagination_config,
            retry_config=self.retry_config,
            token_cache=self.token_cache,
            **self.pagination_overrides,
        )

    @property
    def token_info(self) -> TokenInfo | None:
        """Get current token information."""
        return self.token_cache.token

    @async_to_sync
    async def get_valid_access_token(self) -> str:
        async with self._client() as client:
            return await client.get_valid_access_token()

    @async_to_sync
    async def refresh(self, refresh_token: str | None = None) -> TokenInfo:
        """Refresh the access token."""
        async with self._client() as client:
            return await client.refresh(refresh_token)

    @async_to_sync
    async def list_all(self, resource: str, options: PaginationOptions | None = None) -> PaginationResult:
        """Get every record of a CRM module or ``books/`` resource."""
        async with self._client() as client:
            return await client.list_all(resource, options)

    @async_to_sync
    async def search_all(
        self, resource: str, criteria: str, options: PaginationOptions | None = None
    ) -> PaginationResult:
        """Get every CRM record matching ``criteria``."""
        async with self._client() as client:
            return await client.search_all(resource, criteria, options)

    @async_to_sync
    async def get_record(self, module: str, record_id: str) -> Record:
        async with self._client() as client:
            return await client.crm.get_record(module, record_id)

    def list_all_dataframe(self, resource: str, options: PaginationOptions | None = None) -> pd.DataFrame:
        """Get every record of a resource as a pandas DataFrame."""
        return to_dataframe(self.list_all(resource, options))

    def search_all_dataframe(
        self, resource: str, criteria: str, options: PaginationOptions | None = None
    ) -> pd.DataFrame:
        """Get every matching CRM record as a pandas DataFrame."""
        return to_dataframe(self.search_all(resource, criteria, options))

    @classmethod
    def from_config(cls, config_path: str | None = None, profile: str | None = None, **kwargs: Any) -> "ZohoClientSync":
        """Create client from a configuration file."""
        return cls(load_config(config_path, profile), **kwargs)
