"""Zoho Books handler.

Books list endpoints wrap their records in a resource named key and report
pagination in ``page_context``; both are normalised into a ``Page`` so the
same pagination engine drives CRM and Books. Books pages by number only.

Copyright (c) 2024 Felix Geilert
"""

from dataclasses import replace
from typing import Any

from ..exceptions import ProviderAPIError
from ..transport import AuthenticatedTransport
from ..utils import Page, PaginationConfig, PaginationOptions, PaginationResult, RetryConfig
from ..utils.pagination import Record
from .base import BaseHandler, error_context

# resource path -> key of the single record in detail responses
RESOURCES = {
    "contacts": "contact",
    "invoices": "invoice",
    "items": "item",
    "estimates": "estimate",
    "salesorders": "salesorder",
    "purchaseorders": "purchaseorder",
    "bills": "bill",
    "creditnotes": "creditnote",
    "customerpayments": "payment",
    "vendors": "contact",
}


def page_from_books(body: dict[str, Any] | None, resource: str) -> Page:
    """Normalise a Books list body into a ``Page``."""
    if not body:
        return Page()
    items_key = "contacts" if resource == "vendors" else resource
    context = body.get("page_context") or {}
    return Page(
        items=list(body.get(items_key) or []),
        more_records=bool(context.get("has_more_page", False)),
        page=context.get("page"),
        per_page=context.get("per_page"),
        count=context.get("total"),
    )


class BooksHandler(BaseHandler):
    """Records of the Zoho Books organization the transport is bound to."""

    def __init__(
        self,
        transport: AuthenticatedTransport,
        pagination_config: PaginationConfig | None = None,
        retry_config: RetryConfig | None = None,
    ):
        config = replace(pagination_config or PaginationConfig(), use_page_tokens=False)
        super().__init__(transport, config, retry_config)

    @staticmethod
    def _check_resource(resource: str) -> None:
        if resource not in RESOURCES:
            raise ValueError(f"Unknown Books resource '{resource}'. Known: {', '.join(sorted(RESOURCES))}")

    def _hint_organization(self, error: ProviderAPIError) -> None:
        # Books answers a wrong organization_id with a CompanyID/CompanyName message
        if "CompanyID/CompanyName" in error.message:
            raise ProviderAPIError(
                f"Organization ID validation failed: {error.message}. "
                "Please verify the organization ID in the profile configuration.",
                status_code=error.status_code,
                response=error.response,
            ) from error

    async def get_page(self, resource: str, params: dict[str, Any] | None = None) -> Page:
        """Fetch a single page of a Books resource."""
        self._check_resource(resource)
        if resource == "vendors":
            params = {**(params or {}), "contact_type": "vendor"}
            path = "contacts"
        else:
            path = resource
        try:
            with error_context(f"Failed to get {resource}"):
                body = await self.transport.get(path, params=params)
        except ProviderAPIError as e:
            self._hint_organization(e)
            raise
        return page_from_books(body, resource)

    async def list_all(self, resource: str, options: PaginationOptions | None = None) -> PaginationResult:
        """Get all records of a Books resource, following pagination."""
        self._check_resource(resource)

        async def fetch(params: dict[str, Any]) -> Page:
            return await self.get_page(resource, params)

        return await self.paginator.paginate(fetch, options)

    async def get_record(self, resource: str, record_id: str) -> Record:
        self._check_resource(resource)
        path = "contacts" if resource == "vendors" else resource
        with error_context(f"Failed to get {RESOURCES[resource]} {record_id}"):
            body = await self.transport.get(f"{path}/{record_id}")
        return body[RESOURCES[resource]]

    async def create_record(self, resource: str, data: Record) -> Record:
        self._check_resource(resource)
        path = "contacts" if resource == "vendors" else resource
        if resource == "vendors":
            data = {**data, "contact_type": "vendor"}
        with error_context(f"Failed to create {RESOURCES[resource]}"):
            body = await self.transport.post(path, json_data=data)
        return body[RESOURCES[resource]]
