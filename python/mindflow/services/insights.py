"""AI insight read service.

Insights are written by an external generator; the API only reads them.
A row is live while expires_at is NULL or in the future.
"""

from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from mindflow.db.models import AIInsight, utcnow
from mindflow.schemas.base import as_utc
from mindflow.schemas.insights import InsightList, InsightOut
from mindflow.services.entries import get_entry_for_viewer_or_404


def insight_to_out(insight: AIInsight) -> InsightOut:
    """Convert AIInsight ORM model to InsightOut schema."""
    return InsightOut(
        id=insight.id,
        insight_type=insight.insight_type,
        entry_id=insight.entry_id,
        content=insight.content,
        created_at=as_utc(insight.created_at),
        expires_at=as_utc(insight.expires_at) if insight.expires_at else None,
    )


def list_insights(
    db: Session,
    viewer_id: UUID,
    insight_type: str | None = None,
    entry_id: UUID | None = None,
    include_expired: bool = False,
) -> InsightList:
    """List the viewer's insights, newest first.

    Expired insights are hidden unless include_expired is set.
    """
    stmt = select(AIInsight).where(AIInsight.user_id == viewer_id)
    if insight_type:
        stmt = stmt.where(AIInsight.insight_type == insight_type)
    if entry_id is not None:
        stmt = stmt.where(AIInsight.entry_id == entry_id)
    if not include_expired:
        stmt = stmt.where(or_(AIInsight.expires_at.is_(None), AIInsight.expires_at > utcnow()))

    stmt = stmt.order_by(AIInsight.created_at.desc(), AIInsight.id.desc())
    return InsightList(insights=[insight_to_out(row) for row in db.scalars(stmt)])


def list_entry_insights(db: Session, viewer_id: UUID, entry_id: UUID) -> InsightList:
    """List live insights for one of the viewer's entries.

    Raises:
        NotFoundError(E_ENTRY_NOT_FOUND): If the entry is not the viewer's.
    """
    get_entry_for_viewer_or_404(db, viewer_id, entry_id)
    return list_insights(db, viewer_id, entry_id=entry_id)
