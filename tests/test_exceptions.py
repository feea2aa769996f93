"""Tests for the exception hierarchy."""

from __future__ import annotations

from zohopy.exceptions import (
    AuthenticationError,
    ProviderAPIError,
    RateLimitError,
    TokenExpiredError,
    ZohoException,
)


class TestExceptions:
    def test_hierarchy(self) -> None:
        assert issubclass(ProviderAPIError, ZohoException)
        assert issubclass(RateLimitError, ProviderAPIError)
        assert issubclass(AuthenticationError, ProviderAPIError)
        assert issubclass(TokenExpiredError, AuthenticationError)

    def test_status_codes(self) -> None:
        assert AuthenticationError().status_code == 401
        assert RateLimitError().status_code == 429
        assert RateLimitError().retry_after == 60

    def test_with_context_keeps_type_and_payload(self) -> None:
        error = RateLimitError("slow down", retry_after=5, response={"code": "TOO_MANY_REQUESTS"})
        wrapped = error.with_context("Failed to get records from Leads")

        assert isinstance(wrapped, RateLimitError)
        assert wrapped.retry_after == 5
        assert wrapped.response == {"code": "TOO_MANY_REQUESTS"}
        assert str(wrapped) == "Failed to get records from Leads: slow down"

    def test_plain_provider_error_context(self) -> None:
        wrapped = ProviderAPIError("boom", status_code=502).with_context("Failed to get modules")
        assert type(wrapped) is ProviderAPIError
        assert wrapped.status_code == 502
        assert wrapped.message == "Failed to get modules: boom"
