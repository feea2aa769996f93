"""Shared plumbing for resource handlers.

Copyright (c) 2024 Felix Geilert
"""

from collections.abc import Iterator
from contextlib import contextmanager

from ..exceptions import AuthenticationError, ProviderAPIError, RateLimitError
from ..transport import AuthenticatedTransport
from ..utils import PaginationConfig, PaginationHelper, RetryConfig


@contextmanager
def error_context(context: str) -> Iterator[None]:
    """Prefix provider errors raised inside the block with ``context``.

    Rate limit and authentication errors keep their exact type and message so
    retry policies and callers can still act on them. Network errors pass
    through untouched.
    """
    try:
        yield
    except (RateLimitError, AuthenticationError):
        raise
    except ProviderAPIError as e:
        raise e.with_context(context) from e


class BaseHandler:
    """Base class for handlers that talk to one Zoho API."""

    def __init__(
        self,
        transport: AuthenticatedTransport,
        pagination_config: PaginationConfig | None = None,
        retry_config: RetryConfig | None = None,
    ):
        self.transport = transport
        self.pagination_config = pagination_config or PaginationConfig()
        self.retry_config = retry_config

    @property
    def paginator(self) -> PaginationHelper:
        return PaginationHelper(self.pagination_config, retry_config=self.retry_config)
