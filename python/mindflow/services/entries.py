"""Journal entry service layer.

All functions take the verified viewer id and scope every query to it.
Another user's entry is indistinguishable from a missing one (404).

Concurrent edits are last-write-wins; there is no version token.
"""

import base64
import json
from datetime import datetime, timedelta
from uuid import UUID

from sqlalchemy import Select, and_, or_, select
from sqlalchemy.orm import Session

from mindflow.contracts import DEFAULT_PAGE_LIMIT, MAX_PAGE_LIMIT
from mindflow.db.models import Entry, utcnow
from mindflow.db.session import transaction
from mindflow.errors import ApiErrorCode, InvalidRequestError, NotFoundError
from mindflow.logging import get_logger
from mindflow.moods import Mood
from mindflow.schemas.base import as_utc
from mindflow.schemas.entries import (
    CreateEntryRequest,
    EntryOut,
    EntryPage,
    PageInfo,
    UpdateEntryRequest,
)

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

MIN_LIMIT = 1
DEFAULT_LIMIT = DEFAULT_PAGE_LIMIT
MAX_LIMIT = MAX_PAGE_LIMIT


# =============================================================================
# Cursor Encoding/Decoding
# =============================================================================


def encode_entry_cursor(created_at: datetime, id: UUID) -> str:
    """Encode a cursor for entry pagination.

    Cursor payload: {"created_at": "<iso>", "id": "<uuid>"}
    Encoding: base64url without padding
    """
    payload = {"created_at": as_utc(created_at).isoformat(), "id": str(id)}
    json_bytes = json.dumps(payload).encode("utf-8")
    return base64.urlsafe_b64encode(json_bytes).decode("ascii").rstrip("=")


def decode_entry_cursor(cursor: str) -> tuple[datetime, UUID]:
    """Decode a cursor for entry pagination.

    Returns:
        Tuple of (created_at, id)

    Raises:
        InvalidRequestError(E_INVALID_CURSOR): If cursor is malformed or unparseable.
    """
    try:
        padding = 4 - len(cursor) % 4
        if padding != 4:
            cursor += "=" * padding

        json_bytes = base64.urlsafe_b64decode(cursor)
        payload = json.loads(json_bytes.decode("utf-8"))

        created_at = as_utc(datetime.fromisoformat(payload["created_at"]))
        id = UUID(payload["id"])
        return created_at, id
    except (ValueError, KeyError, TypeError, AttributeError):
        raise InvalidRequestError(ApiErrorCode.E_INVALID_CURSOR, "Invalid cursor") from None


# =============================================================================
# Helper Functions
# =============================================================================


def clamp_limit(limit: int) -> int:
    """Clamp limit to valid range [MIN_LIMIT, MAX_LIMIT]."""
    return min(max(limit, MIN_LIMIT), MAX_LIMIT)


def get_entry_for_viewer_or_404(db: Session, viewer_id: UUID, entry_id: UUID) -> Entry:
    """Load an entry and verify ownership.

    Raises:
        NotFoundError(E_ENTRY_NOT_FOUND): If the entry doesn't exist
            OR the viewer is not the owner.
    """
    entry = db.get(Entry, entry_id)
    if entry is None or entry.user_id != viewer_id:
        raise NotFoundError(ApiErrorCode.E_ENTRY_NOT_FOUND, "Entry not found")
    return entry


def entry_to_out(entry: Entry) -> EntryOut:
    """Convert Entry ORM model to EntryOut schema."""
    return EntryOut(
        id=entry.id,
        user_id=entry.user_id,
        content=entry.content,
        mood=entry.mood,
        created_at=as_utc(entry.created_at),
        updated_at=as_utc(entry.updated_at),
    )


def paginate_entries(
    db: Session,
    stmt: Select,
    limit: int = DEFAULT_LIMIT,
    cursor: str | None = None,
) -> EntryPage:
    """Apply keyset pagination to an entry query.

    Order is (created_at DESC, id DESC). One extra row is fetched to detect
    whether another page exists.

    Raises:
        InvalidRequestError(E_INVALID_CURSOR): If cursor is malformed.
    """
    limit = clamp_limit(limit)

    if cursor:
        cursor_created_at, cursor_id = decode_entry_cursor(cursor)
        stmt = stmt.where(
            or_(
                Entry.created_at < cursor_created_at,
                and_(Entry.created_at == cursor_created_at, Entry.id < cursor_id),
            )
        )

    stmt = stmt.order_by(Entry.created_at.desc(), Entry.id.desc()).limit(limit + 1)
    rows = list(db.scalars(stmt))

    has_more = len(rows) > limit
    if has_more:
        rows = rows[:limit]

    next_cursor = None
    if has_more and rows:
        last = rows[-1]
        next_cursor = encode_entry_cursor(last.created_at, last.id)

    return EntryPage(
        entries=[entry_to_out(row) for row in rows],
        page=PageInfo(has_more=has_more, next_cursor=next_cursor),
    )


# =============================================================================
# Service Functions
# =============================================================================


def create_entry(db: Session, viewer_id: UUID, request: CreateEntryRequest) -> EntryOut:
    """Create a new entry owned by the viewer.

    Returns:
        The persisted entry with server-assigned id and timestamps.
    """
    now = utcnow()
    entry = Entry(
        user_id=viewer_id,
        content=request.content,
        mood=request.mood,
        created_at=now,
        updated_at=now,
    )
    with transaction(db):
        db.add(entry)

    logger.info(
        "entry_created",
        entry_id=str(entry.id),
        mood=entry.mood.value if entry.mood else None,
        content_len=len(entry.content),
    )
    return entry_to_out(entry)


def get_entry(db: Session, viewer_id: UUID, entry_id: UUID) -> EntryOut:
    """Get a single entry owned by the viewer.

    Raises:
        NotFoundError(E_ENTRY_NOT_FOUND): If not found or not owned.
    """
    return entry_to_out(get_entry_for_viewer_or_404(db, viewer_id, entry_id))


def update_entry(
    db: Session, viewer_id: UUID, entry_id: UUID, request: UpdateEntryRequest
) -> EntryOut:
    """Apply a partial update to an entry.

    Only the fields present in the request body are merged. An empty body
    returns the entry unchanged. updated_at advances on every applied change.

    Raises:
        NotFoundError(E_ENTRY_NOT_FOUND): If not found or not owned.
    """
    entry = get_entry_for_viewer_or_404(db, viewer_id, entry_id)
    changes = request.changes()
    if not changes:
        return entry_to_out(entry)

    with transaction(db):
        for field, value in changes.items():
            setattr(entry, field, value)
        # Strictly monotonic even when the clock has not moved
        entry.updated_at = max(utcnow(), as_utc(entry.updated_at) + timedelta(microseconds=1))

    logger.info("entry_updated", entry_id=str(entry.id), fields=sorted(changes))
    return entry_to_out(entry)


def delete_entry(db: Session, viewer_id: UUID, entry_id: UUID) -> None:
    """Delete an entry.

    Cascades to entry-scoped insights via FK CASCADE.

    Raises:
        NotFoundError(E_ENTRY_NOT_FOUND): If not found, not owned, or already deleted.
    """
    entry = get_entry_for_viewer_or_404(db, viewer_id, entry_id)
    with transaction(db):
        db.delete(entry)

    logger.info("entry_deleted", entry_id=str(entry_id))


def list_entries(
    db: Session,
    viewer_id: UUID,
    limit: int = DEFAULT_LIMIT,
    cursor: str | None = None,
    mood: Mood | None = None,
) -> EntryPage:
    """List the viewer's entries, newest first.

    Args:
        db: Database session.
        viewer_id: The ID of the viewer.
        limit: Maximum number of results (clamped to 1-100).
        cursor: Opaque pagination cursor.
        mood: Optional mood filter.

    Raises:
        InvalidRequestError(E_INVALID_CURSOR): If cursor is malformed.
    """
    stmt = select(Entry).where(Entry.user_id == viewer_id)
    if mood is not None:
        stmt = stmt.where(Entry.mood == mood)
    return paginate_entries(db, stmt, limit=limit, cursor=cursor)
