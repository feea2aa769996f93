"""Utility modules for the Zoho API client.

Copyright (c) 2024 Felix Geilert
"""

from .auth import TokenCache, TokenInfo, ZohoAuthManager
from .pagination import Page, PaginationConfig, PaginationHelper, PaginationOptions, PaginationResult
from .retry import RetryConfig, calculate_backoff_delay, call_with_retry, page_delay_ms, retry_with_backoff

__all__ = [
    "Page",
    "PaginationConfig",
    "PaginationHelper",
    "PaginationOptions",
    "PaginationResult",
    "RetryConfig",
    "TokenCache",
    "TokenInfo",
    "ZohoAuthManager",
    "calculate_backoff_delay",
    "call_with_retry",
    "page_delay_ms",
    "retry_with_backoff",
]
