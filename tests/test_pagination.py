"""Tests for the auto-pagination engine."""

from __future__ import annotations

from typing import Any
from unittest.mock import AsyncMock

import pytest

from zohopy.exceptions import ProviderAPIError, RateLimitError
from zohopy.utils import Page, PaginationConfig, PaginationHelper, PaginationOptions, RetryConfig


class FakeProvider:
    """Page fetch function serving numbered records.

    ``pages`` is the number of pages reporting records; ``more`` decides the
    ``more_records`` flag for a given 1-based call number.
    """

    def __init__(
        self,
        per_page: int = 20,
        more: Any = lambda call: True,
        empty_on: int | None = None,
        fail_on: dict[int, list[Exception]] | None = None,
    ) -> None:
        self.per_page = per_page
        self.more = more
        self.empty_on = empty_on
        self.fail_on = fail_on or {}
        self.calls: list[dict[str, Any]] = []
        self.served = 0

    async def __call__(self, params: dict[str, Any]) -> Page:
        self.calls.append(dict(params))
        call = len(self.calls)
        failures = self.fail_on.get(call)
        if failures:
            raise failures.pop(0)
        if call == self.empty_on:
            return Page(items=[], more_records=True)

        items = [{"id": self.served + i} for i in range(self.per_page)]
        self.served += self.per_page
        return Page(items=items, more_records=self.more(call), next_page_token=f"tok{call}")


@pytest.fixture
def sleep() -> AsyncMock:
    return AsyncMock()


def helper(sleep: AsyncMock, **config: Any) -> PaginationHelper:
    return PaginationHelper(PaginationConfig(**config), sleep=sleep)


class TestTermination:
    """The loop ends on any of its termination conditions."""

    @pytest.mark.asyncio
    async def test_stops_when_provider_reports_no_more(self, sleep) -> None:
        provider = FakeProvider(per_page=20, more=lambda call: call < 5)

        result = await helper(sleep).paginate(provider, PaginationOptions(max_records=1000))

        assert len(result.data) == 100
        assert len(provider.calls) == 5
        assert result.total_records == 100
        assert result.has_more is False

    @pytest.mark.asyncio
    async def test_empty_page_stops_regardless_of_flag(self, sleep) -> None:
        provider = FakeProvider(per_page=20, empty_on=2)

        result = await helper(sleep).paginate(provider)

        assert len(provider.calls) == 2
        assert len(result.data) == 20
        assert result.has_more is False

    @pytest.mark.asyncio
    async def test_safety_ceiling(self, sleep) -> None:
        provider = FakeProvider(per_page=1)

        result = await helper(sleep).paginate(provider)

        assert len(provider.calls) == 101
        assert len(result.data) == 101
        assert result.has_more is False

    @pytest.mark.asyncio
    async def test_ceiling_is_configurable(self, sleep) -> None:
        provider = FakeProvider(per_page=1)

        await helper(sleep, max_page_fetches=3).paginate(provider)

        assert len(provider.calls) == 4

    @pytest.mark.asyncio
    async def test_max_records_cap(self, sleep) -> None:
        provider = FakeProvider(per_page=20)

        result = await helper(sleep).paginate(provider, PaginationOptions(max_records=50))

        assert len(result.data) == 50
        assert result.total_records == 50
        assert result.has_more is True
        assert len(provider.calls) == 3
        assert [r["id"] for r in result.data] == list(range(50))

    @pytest.mark.asyncio
    async def test_cap_on_last_page_still_reports_more(self, sleep) -> None:
        """Records dropped from a truncated final page count as more."""
        provider = FakeProvider(per_page=20, more=lambda call: False)

        result = await helper(sleep).paginate(provider, PaginationOptions(max_records=15))

        assert len(result.data) == 15
        assert result.has_more is True

    @pytest.mark.asyncio
    async def test_config_cap_applies_without_override(self, sleep) -> None:
        provider = FakeProvider(per_page=20)

        result = await helper(sleep, max_records_per_batch=40).paginate(provider)

        assert len(result.data) == 40
        assert len(provider.calls) == 2


class TestRequests:
    """Request parameters and delays."""

    @pytest.mark.asyncio
    async def test_page_tokens(self, sleep) -> None:
        provider = FakeProvider(per_page=2, more=lambda call: call < 3)

        result = await helper(sleep, use_page_tokens=True).paginate(provider, PaginationOptions(per_page=2))

        assert provider.calls == [
            {"per_page": 2},
            {"per_page": 2, "page_token": "tok1"},
            {"per_page": 2, "page_token": "tok2"},
        ]
        assert result.next_page_token == "tok3"

    @pytest.mark.asyncio
    async def test_starting_page_token(self, sleep) -> None:
        provider = FakeProvider(per_page=2, more=lambda call: False)

        await helper(sleep).paginate(provider, PaginationOptions(page_token="resume"))

        assert provider.calls[0]["page_token"] == "resume"

    @pytest.mark.asyncio
    async def test_page_numbers(self, sleep) -> None:
        provider = FakeProvider(per_page=2, more=lambda call: call < 3)

        result = await helper(sleep, use_page_tokens=False).paginate(provider, PaginationOptions(page=4, per_page=2))

        assert [c["page"] for c in provider.calls] == [4, 5, 6]
        assert all("page_token" not in c for c in provider.calls)
        assert result.current_page == 7

    @pytest.mark.asyncio
    async def test_page_size_is_clamped(self, sleep) -> None:
        provider = FakeProvider(per_page=1, more=lambda call: False)

        await helper(sleep).paginate(provider, PaginationOptions(per_page=500))

        assert provider.calls[0]["per_page"] == 200

    @pytest.mark.asyncio
    async def test_passthrough_options(self, sleep) -> None:
        provider = FakeProvider(per_page=1, more=lambda call: False)
        options = PaginationOptions(fields=["Last_Name", "Email"], sort_by="Created_Time", sort_order="desc")

        await helper(sleep).paginate(provider, options)

        assert provider.calls[0]["fields"] == "Last_Name,Email"
        assert provider.calls[0]["sort_by"] == "Created_Time"
        assert provider.calls[0]["sort_order"] == "desc"

    @pytest.mark.asyncio
    async def test_inter_page_delays(self, sleep) -> None:
        provider = FakeProvider(per_page=1, more=lambda call: call < 4)

        await helper(sleep, rate_limit_delay_ms=1000).paginate(provider)

        assert [c.args[0] for c in sleep.await_args_list] == [1.0, 1.5, 2.25]

    @pytest.mark.asyncio
    async def test_total_pages(self, sleep) -> None:
        provider = FakeProvider(per_page=10, more=lambda call: call < 3)

        result = await helper(sleep).paginate(provider, PaginationOptions(per_page=25))

        assert result.total_records == 30
        assert result.total_pages == 2


class TestOrderingAndFailures:
    @pytest.mark.asyncio
    async def test_order_is_preserved(self, sleep) -> None:
        pages = [
            Page(items=[{"id": "c"}, {"id": "a"}], more_records=True),
            Page(items=[{"id": "b"}, {"id": "a"}], more_records=True),
            Page(items=[{"id": "z"}], more_records=False),
        ]
        fetch = AsyncMock(side_effect=pages)

        result = await helper(sleep).paginate(fetch)

        assert [r["id"] for r in result.data] == ["c", "a", "b", "a", "z"]

    @pytest.mark.asyncio
    async def test_page_failure_aborts_run(self, sleep) -> None:
        error = ProviderAPIError("Failed to get records from Leads: boom", status_code=500)
        provider = FakeProvider(per_page=5, fail_on={3: [error]})

        with pytest.raises(ProviderAPIError) as exc_info:
            await helper(sleep).paginate(provider)

        assert exc_info.value is error
        assert len(provider.calls) == 3

    @pytest.mark.asyncio
    async def test_retry_wraps_single_page_only(self, sleep) -> None:
        """A throttled page is retried with identical params; earlier pages are not refetched."""
        provider = FakeProvider(per_page=5, more=lambda call: call < 4, fail_on={2: [RateLimitError(retry_after=5)]})
        paginator = PaginationHelper(
            PaginationConfig(use_page_tokens=False, rate_limit_delay_ms=0),
            retry_config=RetryConfig(max_attempts=3),
            sleep=sleep,
        )

        result = await paginator.paginate(provider)

        assert [c["page"] for c in provider.calls] == [1, 2, 2, 3]
        assert provider.calls[1] == provider.calls[2]
        sleep.assert_awaited_once_with(5.0)
        assert len(result.data) == 15

    @pytest.mark.asyncio
    async def test_iterate_yields_records(self, sleep) -> None:
        provider = FakeProvider(per_page=3, more=lambda call: call < 2)

        records = [r async for r in helper(sleep).paginate_iter(provider)]

        assert [r["id"] for r in records] == list(range(6))


class TestPage:
    def test_from_response(self) -> None:
        body = {
            "data": [{"id": "1"}],
            "info": {"page": 1, "per_page": 200, "count": 1, "more_records": True, "next_page_token": "abc"},
        }
        page = Page.from_response(body)
        assert page.items == [{"id": "1"}]
        assert page.more_records is True
        assert page.next_page_token == "abc"
        assert page.count == 1

    def test_missing_info_means_no_more(self) -> None:
        assert Page.from_response({"data": [{"id": "1"}]}).more_records is False

    def test_empty_body(self) -> None:
        page = Page.from_response(None)
        assert page.items == []
        assert page.more_records is False
