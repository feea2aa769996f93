"""Retry logic with exponential backoff for API requests.

Two independent delay schedules live here: the inter-page delay used by the
pagination engine between successful page fetches, and the retry backoff used
when a single request fails and is attempted again.

Copyright (c) 2024 Felix Geilert
"""

import asyncio
import logging
import random
from collections.abc import Awaitable, Callable
from dataclasses import dataclass
from functools import wraps
from typing import TYPE_CHECKING, TypeVar

import aiohttp

from zohopy.exceptions import AuthenticationError, ProviderAPIError, RateLimitError

if TYPE_CHECKING:
    from zohopy.utils.pagination import PaginationConfig

T = TypeVar("T")

logger = logging.getLogger(__name__)

PAGE_DELAY_GROWTH = 1.5
MAX_PAGE_DELAY_MS = 10_000


@dataclass
class RetryConfig:
    """Configuration for retry behavior."""

    max_attempts: int = 4
    base_delay: float = 1.0
    max_delay: float = 10.0
    exponential_base: float = 2.0
    jitter: bool = False
    retry_on: tuple[type[BaseException], ...] = (ProviderAPIError, aiohttp.ClientError, asyncio.TimeoutError)
    give_up_on: tuple[type[BaseException], ...] = (AuthenticationError,)

    @classmethod
    def from_pagination(cls, config: "PaginationConfig", **overrides) -> "RetryConfig":
        """Build a retry config whose attempt bound follows ``config.max_retries``."""
        return cls(max_attempts=config.max_retries + 1, **overrides)

    def should_retry(self, error: BaseException) -> bool:
        if isinstance(error, self.give_up_on):
            return False
        return isinstance(error, self.retry_on)


def page_delay_ms(request_index: int, base_delay_ms: float, max_delay_ms: float = MAX_PAGE_DELAY_MS) -> float:
    """Delay before the ``request_index``-th request of a pagination run.

    The first request (index 0) is never delayed.
    """
    if request_index <= 0:
        return 0
    return min(base_delay_ms * (PAGE_DELAY_GROWTH ** (request_index - 1)), max_delay_ms)


def calculate_backoff_delay(attempt: int, config: RetryConfig, retry_after: int | None = None) -> float:
    """Calculate the delay in seconds before the next retry attempt."""
    if retry_after is not None:
        # Server knows best: wait exactly what it asked for
        return float(retry_after)

    delay = config.base_delay * (config.exponential_base**attempt)

    if config.jitter:
        delay *= random.uniform(0.8, 1.2)

    return min(delay, config.max_delay)


async def call_with_retry(
    func: Callable[..., Awaitable[T]],
    config: RetryConfig | None = None,
    *args,
    sleep: Callable[[float], Awaitable[None]] | None = None,
    **kwargs,
) -> T:
    """Await ``func(*args, **kwargs)``, retrying failures per ``config``.

    Rate limited attempts wait exactly the server supplied ``retry_after`` and
    do not advance the exponential schedule, but every retry counts toward
    ``config.max_attempts``. When attempts run out the last error is re-raised
    unchanged.
    """
    if config is None:
        config = RetryConfig()
    if sleep is None:
        sleep = asyncio.sleep

    backoff_index = 0
    for attempt in range(config.max_attempts):
        try:
            return await func(*args, **kwargs)
        except Exception as e:
            if not config.should_retry(e) or attempt == config.max_attempts - 1:
                raise

            if isinstance(e, RateLimitError):
                delay = calculate_backoff_delay(backoff_index, config, e.retry_after)
            else:
                delay = calculate_backoff_delay(backoff_index, config)
                backoff_index += 1

            logger.warning(
                "Attempt %d/%d failed (%s), retrying in %.1fs",
                attempt + 1,
                config.max_attempts,
                e,
                delay,
            )
            await sleep(delay)

    # max_attempts < 1 means the loop never ran
    raise ValueError("RetryConfig.max_attempts must be at least 1")


def retry_with_backoff(config: RetryConfig | None = None):
    """Decorator for adding retry logic to async functions."""
    if config is None:
        config = RetryConfig()

    def decorator(func: Callable[..., Awaitable[T]]) -> Callable[..., Awaitable[T]]:
        @wraps(func)
        async def wrapper(*args, **kwargs) -> T:
            return await call_with_retry(func, config, *args, **kwargs)

        return wrapper

    return decorator
