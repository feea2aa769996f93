"""Automatic pagination over Zoho list endpoints.

The remote's ``more_records`` flag is not trusted on its own: a run also ends
on an empty page, when ``max_records`` is reached, or after
``max_page_fetches`` requests.

Copyright (c) 2024 Felix Geilert
"""

import asyncio
import logging
import math
from collections.abc import AsyncIterator, Awaitable, Callable
from dataclasses import dataclass, field
from typing import Any

from .retry import RetryConfig, call_with_retry, page_delay_ms

logger = logging.getLogger(__name__)

Record = dict[str, Any]


@dataclass
class PaginationConfig:
    """Process wide pagination defaults, overridable per client."""

    default_page_size: int = 200
    max_page_size: int = 200
    enable_auto_pagination: bool = True
    rate_limit_delay_ms: int = 1000
    max_retries: int = 3
    use_page_tokens: bool = True
    max_records_per_batch: int = 5000
    max_page_fetches: int = 100


@dataclass
class PaginationOptions:
    """Per call overrides for a pagination run."""

    page: int | None = None
    per_page: int | None = None
    page_token: str | None = None
    max_records: int | None = None
    fields: list[str] | None = None
    sort_by: str | None = None
    sort_order: str | None = None

    def extra_params(self) -> dict[str, str]:
        """Query parameters passed through unchanged to every page request."""
        params = {}
        if self.fields:
            params["fields"] = ",".join(self.fields)
        if self.sort_by:
            params["sort_by"] = self.sort_by
        if self.sort_order:
            params["sort_order"] = self.sort_order
        return params


@dataclass
class Page:
    """One page of a list response."""

    items: list[Record] = field(default_factory=list)
    more_records: bool = False
    next_page_token: str | None = None
    page: int | None = None
    per_page: int | None = None
    count: int | None = None

    @classmethod
    def from_response(cls, body: dict[str, Any] | None, items_key: str = "data") -> "Page":
        """Parse a CRM style ``{"data": [...], "info": {...}}`` body.

        A missing ``info`` block means there is nothing after this page.
        """
        if not body:
            return cls()
        info = body.get("info") or {}
        return cls(
            items=list(body.get(items_key) or []),
            more_records=bool(info.get("more_records", False)),
            next_page_token=info.get("next_page_token"),
            page=info.get("page"),
            per_page=info.get("per_page"),
            count=info.get("count"),
        )


@dataclass
class PaginationResult:
    """A fully materialized, possibly capped, result set."""

    data: list[Record]
    total_records: int
    has_more: bool
    next_page_token: str | None = None
    current_page: int = 1
    total_pages: int | None = None

    def __len__(self) -> int:
        return len(self.data)


@dataclass
class PaginationState:
    accumulated: list[Record] = field(default_factory=list)
    request_count: int = 0
    current_page: int = 1
    next_page_token: str | None = None
    has_more: bool = True


FetchPage = Callable[[dict[str, Any]], Awaitable[Page]]


class PaginationHelper:
    """Drives a single-page fetch function until the result set is complete."""

    def __init__(
        self,
        config: PaginationConfig | None = None,
        retry_config: RetryConfig | None = None,
        sleep: Callable[[float], Awaitable[None]] | None = None,
    ):
        """
        Initialize the pagination helper.

        Args:
            config: Pagination settings
            retry_config: When given, every single page fetch is retried with
                this policy. The multi-page loop itself is never retried.
            sleep: Awaitable sleep in seconds, ``asyncio.sleep`` by default
        """
        self.config = config or PaginationConfig()
        self.retry_config = retry_config
        self._sleep = sleep or asyncio.sleep

    def page_size(self, options: PaginationOptions) -> int:
        return min(options.per_page or self.config.default_page_size, self.config.max_page_size)

    def max_records(self, options: PaginationOptions) -> int:
        return options.max_records or self.config.max_records_per_batch

    def _build_params(self, state: PaginationState, page_size: int, options: PaginationOptions) -> dict[str, Any]:
        params: dict[str, Any] = {**options.extra_params(), "per_page": page_size}
        if self.config.use_page_tokens:
            if state.next_page_token:
                params["page_token"] = state.next_page_token
        else:
            params["page"] = state.current_page
        return params

    async def _fetch(self, fetch_page: FetchPage, params: dict[str, Any]) -> Page:
        if self.retry_config is None:
            return await fetch_page(params)
        return await call_with_retry(fetch_page, self.retry_config, params, sleep=self._sleep)

    async def _pages(
        self, fetch_page: FetchPage, options: PaginationOptions, state: PaginationState
    ) -> AsyncIterator[list[Record]]:
        """Yield the records each request contributes, updating ``state``."""
        page_size = self.page_size(options)
        max_records = self.max_records(options)

        while state.has_more and len(state.accumulated) < max_records:
            delay = page_delay_ms(state.request_count, self.config.rate_limit_delay_ms)
            if delay:
                await self._sleep(delay / 1000)

            params = self._build_params(state, page_size, options)
            logger.debug("Fetching page %d with params %s", state.request_count + 1, params)

            try:
                page = await self._fetch(fetch_page, params)
            except Exception:
                logger.error(
                    "Pagination aborted on request %d (page=%s, page_token=%s)",
                    state.request_count + 1,
                    params.get("page"),
                    params.get("page_token"),
                )
                raise

            if page.items:
                room = max_records - len(state.accumulated)
                taken = page.items[:room]
                state.accumulated.extend(taken)
                # A truncated page still has records the caller has not seen
                state.has_more = page.more_records or len(taken) < len(page.items)
                state.next_page_token = page.next_page_token
                state.current_page += 1
                state.request_count += 1
                yield taken
            else:
                state.has_more = False
                state.request_count += 1

            if state.request_count > self.config.max_page_fetches:
                logger.warning(
                    "Stopping pagination after %d requests to prevent an infinite loop", state.request_count
                )
                break

    async def paginate(self, fetch_page: FetchPage, options: PaginationOptions | None = None) -> PaginationResult:
        """
        Fetch every page and return the accumulated records.

        Any error from a page fetch aborts the run; records gathered so far
        are discarded.

        Args:
            fetch_page: Fetches one page for the given query parameters
            options: Per call overrides

        Returns:
            The complete (possibly capped) result set
        """
        options = options or PaginationOptions()
        state = PaginationState(current_page=options.page or 1, next_page_token=options.page_token)

        async for _ in self._pages(fetch_page, options, state):
            pass

        total_records = len(state.accumulated)
        max_records = self.max_records(options)
        return PaginationResult(
            data=state.accumulated,
            total_records=total_records,
            has_more=total_records == max_records and state.has_more,
            next_page_token=state.next_page_token,
            current_page=state.current_page,
            total_pages=math.ceil(total_records / self.page_size(options)),
        )

    async def paginate_iter(
        self, fetch_page: FetchPage, options: PaginationOptions | None = None
    ) -> AsyncIterator[Record]:
        """Yield records one by one as pages arrive."""
        options = options or PaginationOptions()
        state = PaginationState(current_page=options.page or 1, next_page_token=options.page_token)

        async for records in self._pages(fetch_page, options, state):
            for record in records:
                yield record
