"""Resource handlers for the Zoho CRM and Books APIs.

Copyright (c) 2024 Felix Geilert
"""

from .books import BooksHandler
from .crm import CRMHandler

__all__ = ["BooksHandler", "CRMHandler"]
