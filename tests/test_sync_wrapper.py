"""Tests for the synchronous wrapper."""

from __future__ import annotations

from unittest.mock import AsyncMock, patch

import pytest

from zohopy import PaginationResult, ZohoClient, ZohoClientSync
from zohopy.sync_wrapper import to_dataframe


def result_of(records: list[dict]) -> PaginationResult:
    return PaginationResult(data=records, total_records=len(records), has_more=False)


class TestToDataFrame:
    def test_nested_records_are_flattened(self) -> None:
        df = to_dataframe(result_of([{"id": "1", "Owner": {"name": "Ann"}}, {"id": "2", "Owner": {"name": "Bo"}}]))
        assert list(df["Owner.name"]) == ["Ann", "Bo"]
        assert len(df) == 2

    def test_empty_result(self) -> None:
        assert to_dataframe(result_of([])).empty


class TestZohoClientSync:
    def test_list_all_dataframe(self, credential) -> None:
        client = ZohoClientSync(credential)
        records = [{"id": "1", "Last_Name": "Smith"}]

        with patch.object(ZohoClient, "list_all", AsyncMock(return_value=result_of(records))) as list_all:
            df = client.list_all_dataframe("Leads")

        assert list(df["Last_Name"]) == ["Smith"]
        assert list_all.await_args.args[0] == "Leads"

    def test_search_all(self, credential) -> None:
        client = ZohoClientSync(credential, max_records_per_batch=10)

        with patch.object(ZohoClient, "search_all", AsyncMock(return_value=result_of([{"id": "1"}]))) as search_all:
            result = client.search_all("Leads", "(Email:equals:a@b.c)")

        assert result.data == [{"id": "1"}]
        assert search_all.await_args.args[:2] == ("Leads", "(Email:equals:a@b.c)")

    @pytest.mark.asyncio
    async def test_refuses_running_loop(self, credential) -> None:
        client = ZohoClientSync(credential)
        with pytest.raises(RuntimeError, match="async context"):
            client.list_all("Leads")
