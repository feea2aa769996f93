"""Exceptions raised by the Zoho API client.

Copyright (c) 2024 Felix Geilert
"""

from typing import Any


class ZohoException(Exception):
    """Base exception for all zohopy errors."""

    def __init__(self, message: str, details: dict[str, Any] | None = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class ConfigurationError(ZohoException):
    """Raised when client configuration is missing or invalid."""


class ProviderAPIError(ZohoException):
    """Raised when the Zoho API answers with a non-2xx status."""

    def __init__(
        self,
        message: str,
        status_code: int = 500,
        response: Any = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, details)
        self.status_code = status_code
        self.response = response

    def with_context(self, context: str) -> "ProviderAPIError":
        """Return a copy of this error with a human readable prefix."""
        return type(self)._rebuild(self, f"{context}: {self.message}")

    @classmethod
    def _rebuild(cls, error: "ProviderAPIError", message: str) -> "ProviderAPIError":
        return cls(message, status_code=error.status_code, response=error.response, details=error.details)


class AuthenticationError(ProviderAPIError):
    """Raised when a token exchange, refresh or validation is rejected."""

    def __init__(self, message: str = "Authentication failed", response: Any = None, details: dict[str, Any] | None = None):
        super().__init__(message, status_code=401, response=response, details=details)

    @classmethod
    def _rebuild(cls, error: "ProviderAPIError", message: str) -> "ProviderAPIError":
        return cls(message, response=error.response, details=error.details)


class TokenExpiredError(AuthenticationError):
    """Raised by the transport on a 401 that may be fixed by a token refresh."""


class RateLimitError(ProviderAPIError):
    """Raised when the API signals throttling (HTTP 429)."""

    DEFAULT_RETRY_AFTER = 60

    def __init__(
        self,
        message: str = "Rate limit exceeded",
        retry_after: int | None = None,
        response: Any = None,
        details: dict[str, Any] | None = None,
    ):
        super().__init__(message, status_code=429, response=response, details=details)
        self.retry_after = retry_after if retry_after is not None else self.DEFAULT_RETRY_AFTER

    @classmethod
    def _rebuild(cls, error: "ProviderAPIError", message: str) -> "ProviderAPIError":
        retry_after = getattr(error, "retry_after", None)
        return cls(message, retry_after=retry_after, response=error.response, details=error.details)
