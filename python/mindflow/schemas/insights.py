"""AI insight schemas (read-only)."""

from datetime import datetime
from typing import Any
from uuid import UUID

from mindflow.schemas.base import CamelModel


class InsightOut(CamelModel):
    """Response schema for an AI insight.

    Content is opaque JSON written by the insight generator.
    """

    id: UUID
    insight_type: str
    entry_id: UUID | None = None
    content: Any
    created_at: datetime
    expires_at: datetime | None = None


class InsightList(CamelModel):
    insights: list[InsightOut]
