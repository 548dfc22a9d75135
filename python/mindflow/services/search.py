"""Entry search service layer.

Searches the viewer's own entries by text, mood and creation date. All
supplied predicates are AND-ed and results use the same keyset pagination
as the entry list.

On PostgreSQL the text predicate is full-text search over the english
configuration, matching the GIN index on to_tsvector('english', content).
Other dialects fall back to a case-insensitive substring match of every
whitespace-separated term.

Raw queries are never logged, only a hash.
"""

import hashlib
import time as clock
from datetime import UTC, datetime, time, timedelta
from uuid import UUID

from sqlalchemy import and_, func, literal_column, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from mindflow.db.models import Entry
from mindflow.errors import ApiErrorCode, InvalidRequestError
from mindflow.logging import get_logger
from mindflow.schemas.entries import EntryPage, SearchEntriesQuery
from mindflow.services.entries import DEFAULT_LIMIT, paginate_entries

logger = get_logger(__name__)

# Must match the expression of idx_entries_search
TS_CONFIG = literal_column("'english'")


def hash_query(q: str) -> str:
    """Hash a normalized query for logging (privacy-safe).

    Never log raw queries - only the hash for debugging.
    """
    q_normalized = q.strip().lower()
    return hashlib.sha256(q_normalized.encode("utf-8")).hexdigest()[:16]


def text_predicate(dialect_name: str, q: str) -> ColumnElement[bool]:
    """Build the text-match predicate for the given SQL dialect."""
    if dialect_name == "postgresql":
        return func.to_tsvector(TS_CONFIG, Entry.content).op("@@", is_comparison=True)(
            func.websearch_to_tsquery(TS_CONFIG, q)
        )

    lowered = func.lower(Entry.content)
    return and_(*(lowered.contains(term.lower(), autoescape=True) for term in q.split()))


def _start_of_day(day) -> datetime:
    return datetime.combine(day, time.min, tzinfo=UTC)


def search_entries(
    db: Session,
    viewer_id: UUID,
    query: SearchEntriesQuery,
    limit: int = DEFAULT_LIMIT,
    cursor: str | None = None,
) -> EntryPage:
    """Search the viewer's entries.

    A blank query applies the filters only. No match is an empty page, not
    an error.

    Raises:
        InvalidRequestError(E_INVALID_DATE_RANGE): If startDate is after endDate.
        InvalidRequestError(E_INVALID_CURSOR): If cursor is malformed.
    """
    if query.start_date and query.end_date and query.start_date > query.end_date:
        raise InvalidRequestError(
            ApiErrorCode.E_INVALID_DATE_RANGE, "startDate must not be after endDate"
        )

    start_time = clock.monotonic()
    stmt = select(Entry).where(Entry.user_id == viewer_id)

    if query.terms:
        q = " ".join(query.terms)
        stmt = stmt.where(text_predicate(db.get_bind().dialect.name, q))
    if query.mood is not None:
        stmt = stmt.where(Entry.mood == query.mood)
    if query.start_date is not None:
        stmt = stmt.where(Entry.created_at >= _start_of_day(query.start_date))
    if query.end_date is not None:
        # Inclusive: everything before the start of the following day
        stmt = stmt.where(Entry.created_at < _start_of_day(query.end_date + timedelta(days=1)))

    page = paginate_entries(db, stmt, limit=limit, cursor=cursor)

    logger.info(
        "entries_searched",
        query_len=len(query.q or ""),
        query_hash=hash_query(query.q) if query.q else None,
        mood=query.mood.value if query.mood else None,
        has_date_range=bool(query.start_date or query.end_date),
        results_count=len(page.entries),
        latency_ms=int((clock.monotonic() - start_time) * 1000),
    )
    return page
