"""Shared fixtures for zohopy tests."""

from __future__ import annotations

import asyncio
from collections.abc import Callable
from typing import Any
from unittest.mock import AsyncMock, MagicMock

import pytest

from zohopy.config import ZohoCredential


def _make_response(
    status: int = 200,
    body: Any = None,
    headers: dict[str, str] | None = None,
    delay: float = 0.0,
) -> MagicMock:
    """Create a mock aiohttp response usable as ``async with`` target."""
    payload = {} if body is None else body

    async def _json(**kwargs: Any) -> Any:
        if delay:
            await asyncio.sleep(delay)
        return payload

    response = MagicMock()
    response.status = status
    response.headers = headers or {}
    response.json = AsyncMock(side_effect=_json)
    response.text = AsyncMock(return_value="")
    response.__aenter__ = AsyncMock(return_value=response)
    response.__aexit__ = AsyncMock(return_value=None)
    return response


@pytest.fixture
def make_response() -> Callable[..., MagicMock]:
    """Factory for mock aiohttp responses."""
    return _make_response


@pytest.fixture
def credential() -> ZohoCredential:
    """Credential for the .com data center with a Books organization."""
    return ZohoCredential(
        client_id="client-id",
        client_secret="client-secret",
        refresh_token="refresh-token",
        data_center="com",
        organization_id="org-1",
    )


class FakeClock:
    """Settable epoch clock in seconds."""

    def __init__(self, now: float = 1_700_000_000.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()
