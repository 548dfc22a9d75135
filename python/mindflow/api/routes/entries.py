"""Journal entry API routes.

Route handlers for entry CRUD, listing and search.
Routes are transport-only: each calls exactly one service function.

All routes require authentication and only ever see the viewer's entries.
"""

from datetime import date
from typing import Annotated
from uuid import UUID

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy.orm import Session

from mindflow.api.deps import get_db
from mindflow.auth.middleware import Viewer, get_viewer
from mindflow.contracts import DEFAULT_PAGE_LIMIT, EntryPaths
from mindflow.moods import Mood
from mindflow.responses import success_response
from mindflow.schemas.entries import CreateEntryRequest, SearchEntriesQuery, UpdateEntryRequest
from mindflow.services import entries as entries_service
from mindflow.services import insights as insights_service
from mindflow.services import search as search_service

router = APIRouter(tags=["entries"])


@router.get(EntryPaths.LIST)
def list_entries(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    limit: int = Query(default=DEFAULT_PAGE_LIMIT, description="Maximum results, clamped to 1-100"),
    cursor: str | None = Query(default=None, description="Pagination cursor"),
    mood: Mood | None = Query(default=None, description="Only entries with this mood"),
) -> dict:
    """List the viewer's entries ordered by created_at DESC, id DESC.

    Errors:
        E_INVALID_CURSOR (400): Cursor is malformed or unparseable.
    """
    result = entries_service.list_entries(
        db=db, viewer_id=viewer.user_id, limit=limit, cursor=cursor, mood=mood
    )
    return success_response(result.to_wire())


@router.post(EntryPaths.CREATE, status_code=201)
def create_entry(
    request: CreateEntryRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Create an entry.

    Errors:
        E_INVALID_REQUEST (400): Blank or oversize content, unknown mood.
    """
    result = entries_service.create_entry(db=db, viewer_id=viewer.user_id, request=request)
    return success_response(result.to_wire())


# Registered before /entries/{entry_id} so "search" is not parsed as an id
@router.get(EntryPaths.SEARCH)
def search_entries(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
    q: str | None = Query(default=None, max_length=500, description="Search text"),
    mood: Mood | None = Query(default=None),
    start_date: date | None = Query(default=None, alias="startDate"),
    end_date: date | None = Query(default=None, alias="endDate"),
    limit: int = Query(default=DEFAULT_PAGE_LIMIT),
    cursor: str | None = Query(default=None),
) -> dict:
    """Search the viewer's entries by text, mood and date range.

    Errors:
        E_INVALID_DATE_RANGE (400): startDate is after endDate.
        E_INVALID_CURSOR (400): Cursor is malformed or unparseable.
    """
    query = SearchEntriesQuery(q=q, mood=mood, start_date=start_date, end_date=end_date)
    result = search_service.search_entries(
        db=db, viewer_id=viewer.user_id, query=query, limit=limit, cursor=cursor
    )
    return success_response(result.to_wire())


@router.get("/entries/{entry_id}")
def get_entry(
    entry_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get an entry by ID.

    Errors:
        E_ENTRY_NOT_FOUND (404): Entry doesn't exist or viewer is not owner.
    """
    result = entries_service.get_entry(db=db, viewer_id=viewer.user_id, entry_id=entry_id)
    return success_response(result.to_wire())


@router.put("/entries/{entry_id}")
def update_entry(
    entry_id: UUID,
    request: UpdateEntryRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Partially update an entry. Only fields present in the body change.

    Errors:
        E_INVALID_REQUEST (400): Null, blank or oversize content, unknown mood.
        E_ENTRY_NOT_FOUND (404): Entry doesn't exist or viewer is not owner.
    """
    result = entries_service.update_entry(
        db=db, viewer_id=viewer.user_id, entry_id=entry_id, request=request
    )
    return success_response(result.to_wire())


@router.delete("/entries/{entry_id}", status_code=204)
def delete_entry(
    entry_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> Response:
    """Delete an entry. Deleting again returns 404.

    Errors:
        E_ENTRY_NOT_FOUND (404): Entry doesn't exist or viewer is not owner.
    """
    entries_service.delete_entry(db=db, viewer_id=viewer.user_id, entry_id=entry_id)
    return Response(status_code=204)


@router.get("/entries/{entry_id}/insights")
def list_entry_insights(
    entry_id: UUID,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """List live AI insights attached to one of the viewer's entries.

    Errors:
        E_ENTRY_NOT_FOUND (404): Entry doesn't exist or viewer is not owner.
    """
    result = insights_service.list_entry_insights(
        db=db, viewer_id=viewer.user_id, entry_id=entry_id
    )
    return success_response(result.to_wire())
