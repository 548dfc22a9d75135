"""AI insight API routes (read-only)."""

from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from mindflow.api.deps import get_db
from mindflow.auth.middleware import Viewer, get_viewer
from mindflow.contracts import InsightPaths
from mindflow.responses import success_response
from mindflow.services import insights as insights_service

router = APIRouter(tags=["insights"])


@router.get(InsightPaths.LIST)
def list_insights(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    insight_type: str | None = Query(default=None, alias="type", max_length=50),
    entry_id: UUID | None = Query(default=None, alias="entryId"),
    include_expired: bool = Query(default=False, alias="includeExpired"),
) -> dict:
    """List the viewer's insights, newest first. Expired ones are hidden by default."""
    result = insights_service.list_insights(
        db=db,
        viewer_id=viewer.user_id,
        insight_type=insight_type,
        entry_id=entry_id,
        include_expired=include_expired,
    )
    return success_response(result.to_wire())
