"""Business logic services.

This module contains service-layer functions that implement business logic.
Services are called by route handlers and orchestrate database operations.
"""

from mindflow.services.bootstrap import ensure_user
from mindflow.services.entries import (
    create_entry,
    delete_entry,
    get_entry,
    list_entries,
    update_entry,
)
from mindflow.services.search import search_entries

__all__ = [
    "ensure_user",
    "create_entry",
    "delete_entry",
    "get_entry",
    "list_entries",
    "update_entry",
    "search_entries",
]
