"""Zoho API client with async/await support.

This module provides the main client for the Zoho CRM and Zoho Books APIs.
One client owns one HTTP session and one token manager; the CRM and Books
handlers share both.

Copyright (c) 2024 Felix Geilert
"""

import logging
import time
from collections.abc import Callable
from dataclasses import replace
from typing import Any, Optional

import aiohttp

from .config import ZohoCredential, load_config
from .exceptions import ConfigurationError
from .handlers import BooksHandler, CRMHandler
from .transport import AuthenticatedTransport
from .utils import PaginationConfig, PaginationOptions, PaginationResult, RetryConfig, TokenCache, TokenInfo, ZohoAuthManager

logger = logging.getLogger(__name__)

CRM_API_VERSION = "v8"
BOOKS_API_VERSION = "v3"


class ZohoClient:
    """Async client for Zoho CRM and Zoho Books."""

    def __init__(
        self,
        credential: ZohoCredential,
        pagination_config: Optional[PaginationConfig] = None,
        retry_config: Optional[RetryConfig] = None,
        token_cache: Optional[TokenCache] = None,
        clock: Callable[[], float] = time.time,
        **pagination_overrides: Any,
    ):
        """
        Initialize the Zoho API client.

        Args:
            credential: OAuth credentials, data center and Books organization
            pagination_config: Pagination defaults for this client
            retry_config: Retry policy wrapped around each page fetch; derived
                from ``pagination_config.max_retries`` when omitted
            token_cache: Token cache to reuse across client instances
            clock: Epoch seconds source used for token expiry
            **pagination_overrides: Individual ``PaginationConfig`` fields
        """
        self.credential = credential
        self.pagination_config = replace(pagination_config or PaginationConfig(), **pagination_overrides)
        self.retry_config = retry_config or RetryConfig.from_pagination(self.pagination_config)
        self.token_cache = token_cache or TokenCache()
        self._clock = clock

        # Created in __aenter__
        self._session: Optional[aiohttp.ClientSession] = None
        self._auth: Optional[ZohoAuthManager] = None
        self._crm: Optional[CRMHandler] = None
        self._books: Optional[BooksHandler] = None

    @property
    def crm_base_url(self) -> str:
        return f"{self.credential.api_url}/crm/{CRM_API_VERSION}"

    @property
    def books_base_url(self) -> str:
        return f"{self.credential.api_url}/books/{BOOKS_API_VERSION}"

    @property
    def auth(self) -> ZohoAuthManager:
        """Get the token lifecycle manager."""
        if self._auth is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")
        return self._auth

    @property
    def crm(self) -> CRMHandler:
        """Get the CRM handler."""
        if self._crm is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")
        return self._crm

    @property
    def books(self) -> BooksHandler:
        """Get the Books handler."""
        if self._books is None:
            raise RuntimeError("Client not initialized. Use 'async with' context manager.")
        if not self.credential.organization_id:
            raise ConfigurationError("Books requires an organization_id in the credential")
        return self._books

    @property
    def token_info(self) -> Optional[TokenInfo]:
        return self.token_cache.token

    async def __aenter__(self) -> "ZohoClient":
        """Enter async context manager."""
        self._session = AuthenticatedTransport.create_session()
        self._auth = ZohoAuthManager(self.credential, session=self._session, cache=self.token_cache, clock=self._clock)

        crm_transport = AuthenticatedTransport(self._auth, self.crm_base_url, session=self._session)
        self._crm = CRMHandler(crm_transport, self.pagination_config, self.retry_config)

        books_params = {"organization_id": self.credential.organization_id} if self.credential.organization_id else {}
        books_transport = AuthenticatedTransport(
            self._auth, self.books_base_url, session=self._session, default_params=books_params
        )
        self._books = BooksHandler(books_transport, self.pagination_config, self.retry_config)

        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb):
        """Exit async context manager."""
        if self._session:
            await self._session.close()
        self._session = None
        self._auth = None
        self._crm = None
        self._books = None

    async def get_valid_access_token(self) -> str:
        """Return a current access token, refreshing if needed."""
        return await self.auth.get_valid_access_token()

    async def refresh(self, refresh_token: Optional[str] = None) -> TokenInfo:
        """Force a token refresh."""
        return await self.auth.refresh(refresh_token)

    async def list_all(self, resource: str, options: Optional[PaginationOptions] = None) -> PaginationResult:
        """
        Get every record of a resource.

        ``resource`` is a CRM module name (``Leads``), or a Books resource
        prefixed with ``books/`` (``books/invoices``).
        """
        if resource.startswith("books/"):
            return await self.books.list_all(resource.removeprefix("books/"), options)
        return await self.crm.list_all(resource, options)

    async def search_all(
        self, resource: str, criteria: str, options: Optional[PaginationOptions] = None
    ) -> PaginationResult:
        """Get every CRM record of ``resource`` matching ``criteria``."""
        return await self.crm.search_all(resource, criteria, options)

    @classmethod
    def from_config(
        cls, config_path: Optional[str] = None, profile: Optional[str] = None, **kwargs: Any
    ) -> "ZohoClient":
        """
        Create client from a configuration file.

        Args:
            config_path: Path to the JSON config file
            profile: Name of the profile to use
            **kwargs: Passed on to the constructor

        Returns:
            ZohoClient instance
        """
        return cls(load_config(config_path, profile), **kwargs)
