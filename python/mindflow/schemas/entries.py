"""Journal entry Pydantic schemas.

Contains request and response models for the entry CRUD and search endpoints.
Content bounds must match the entries table check constraint.
"""

from datetime import date, datetime
from typing import Any
from uuid import UUID

from pydantic import Field, field_validator

from mindflow.contracts import MAX_ENTRY_CONTENT_LENGTH, MIN_ENTRY_CONTENT_LENGTH
from mindflow.moods import Mood
from mindflow.schemas.base import CamelModel


def _reject_blank(value: str) -> str:
    if not value.strip():
        raise ValueError("content must not be blank")
    return value


# =============================================================================
# Request Schemas
# =============================================================================


class CreateEntryRequest(CamelModel):
    """Request schema for creating an entry.

    Content is stored exactly as sent; whitespace-only content is rejected.
    """

    content: str = Field(
        ..., min_length=MIN_ENTRY_CONTENT_LENGTH, max_length=MAX_ENTRY_CONTENT_LENGTH
    )
    mood: Mood | None = None

    @field_validator("content")
    @classmethod
    def content_not_blank(cls, value: str) -> str:
        return _reject_blank(value)


class UpdateEntryRequest(CamelModel):
    """Request schema for a partial entry update.

    Only fields present in the body are applied. An explicit `mood: null`
    clears the mood; `content: null` is rejected.
    """

    content: str | None = Field(
        None, min_length=MIN_ENTRY_CONTENT_LENGTH, max_length=MAX_ENTRY_CONTENT_LENGTH
    )
    mood: Mood | None = None

    @field_validator("content")
    @classmethod
    def content_not_null(cls, value: str | None) -> str:
        if value is None:
            raise ValueError("content cannot be null")
        return _reject_blank(value)

    def changes(self) -> dict[str, Any]:
        """Return only the fields the caller actually sent."""
        return {name: getattr(self, name) for name in self.model_fields_set}


class SearchEntriesQuery(CamelModel):
    """Filters for entry search. All supplied predicates are AND-ed.

    The date range is inclusive on both ends.
    """

    q: str | None = None
    mood: Mood | None = None
    start_date: date | None = None
    end_date: date | None = None

    @property
    def terms(self) -> list[str]:
        """Whitespace-separated search terms (empty for a blank query)."""
        return (self.q or "").split()


# =============================================================================
# Response Schemas
# =============================================================================


class EntryOut(CamelModel):
    """Response schema for a journal entry."""

    id: UUID
    user_id: UUID
    content: str
    mood: Mood | None = None
    created_at: datetime
    updated_at: datetime


class PageInfo(CamelModel):
    """Pagination information for list responses."""

    has_more: bool = False
    next_cursor: str | None = None


class EntryPage(CamelModel):
    """One page of entries, newest first."""

    entries: list[EntryOut]
    page: PageInfo
