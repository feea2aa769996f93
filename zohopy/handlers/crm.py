"""Zoho CRM record handler.

Copyright (c) 2024 Felix Geilert
"""

import logging
import math
from collections.abc import AsyncIterator
from typing import Any

from ..utils import Page, PaginationOptions, PaginationResult
from ..utils.pagination import Record
from .base import BaseHandler, error_context

logger = logging.getLogger(__name__)


class CRMHandler(BaseHandler):
    """Records of any CRM module (Leads, Contacts, Deals, ...)."""

    async def get_modules(self) -> list[dict[str, Any]]:
        """Get all modules available to the authenticated user."""
        with error_context("Failed to get modules"):
            body = await self.transport.get("settings/modules")
        return (body or {}).get("modules", [])

    async def get_records(self, module: str, params: dict[str, Any] | None = None) -> Page:
        """Fetch a single page of records from a module."""
        with error_context(f"Failed to get records from {module}"):
            body = await self.transport.get(module, params=params)
        return Page.from_response(body)

    async def search_records(self, module: str, criteria: str, params: dict[str, Any] | None = None) -> Page:
        """Fetch a single page of records matching ``criteria``."""
        with error_context(f"Failed to search records in {module}"):
            body = await self.transport.get(f"{module}/search", params={**(params or {}), "criteria": criteria})
        return Page.from_response(body)

    async def list_all(self, module: str, options: PaginationOptions | None = None) -> PaginationResult:
        """
        Get all records of a module, following pagination.

        Args:
            module: CRM module API name
            options: Per call pagination overrides

        Returns:
            The complete (possibly capped) result set
        """

        async def fetch(params: dict[str, Any]) -> Page:
            return await self.get_records(module, params)

        return await self.paginator.paginate(fetch, options)

    async def search_all(
        self, module: str, criteria: str, options: PaginationOptions | None = None
    ) -> PaginationResult:
        """Get all records matching ``criteria``, following pagination."""

        async def fetch(params: dict[str, Any]) -> Page:
            return await self.search_records(module, criteria, params)

        return await self.paginator.paginate(fetch, options)

    async def iterate(self, module: str, options: PaginationOptions | None = None) -> AsyncIterator[Record]:
        """Iterate over all records of a module, page by page."""

        async def fetch(params: dict[str, Any]) -> Page:
            return await self.get_records(module, params)

        async for record in self.paginator.paginate_iter(fetch, options):
            yield record

    async def get_records_with_pagination(
        self, module: str, options: PaginationOptions | None = None, auto_paginate: bool = False
    ) -> PaginationResult:
        """Get one page, or every page when ``auto_paginate`` is set and enabled."""
        options = options or PaginationOptions()
        if auto_paginate and self.pagination_config.enable_auto_pagination:
            return await self.list_all(module, options)

        page_size = options.per_page or self.pagination_config.default_page_size
        params = {
            **options.extra_params(),
            "page": options.page,
            "per_page": options.per_page,
            "page_token": options.page_token,
        }
        page = await self.get_records(module, params)
        return PaginationResult(
            data=page.items,
            total_records=len(page.items),
            has_more=page.more_records,
            next_page_token=page.next_page_token,
            current_page=page.page or 1,
            total_pages=math.ceil(page.count / page_size) if page.count else None,
        )

    async def get_record(self, module: str, record_id: str) -> Record:
        with error_context(f"Failed to get record {record_id} from {module}"):
            body = await self.transport.get(f"{module}/{record_id}")
        return body["data"][0]

    async def create_record(self, module: str, data: Record) -> Record:
        with error_context(f"Failed to create record in {module}"):
            body = await self.transport.post(module, json_data={"data": [data]})
        return body["data"][0]["details"]

    async def update_record(self, module: str, record_id: str, data: Record) -> Record:
        with error_context(f"Failed to update record {record_id} in {module}"):
            body = await self.transport.put(f"{module}/{record_id}", json_data={"data": [{"id": record_id, **data}]})
        return body["data"][0]["details"]

    async def delete_record(self, module: str, record_id: str) -> None:
        with error_context(f"Failed to delete record {record_id} from {module}"):
            await self.transport.delete(f"{module}/{record_id}")
        logger.debug("Deleted %s record %s", module, record_id)
