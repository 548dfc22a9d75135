"""Sessions for route handlers, the auth bootstrap and services.

Sessions keep attribute values after commit: services commit and then
build response schemas from the same ORM rows.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from functools import lru_cache

from sqlalchemy import Engine
from sqlalchemy.orm import Session, sessionmaker

from mindflow.db.engine import get_engine


def create_session_factory(engine: Engine | None = None) -> sessionmaker[Session]:
    """Session factory bound to engine, or to the cached app engine."""
    return sessionmaker(
        bind=engine if engine is not None else get_engine(),
        autoflush=False,
        expire_on_commit=False,
    )


@lru_cache
def get_session_factory() -> sessionmaker[Session]:
    """Factory shared by get_db and the auth middleware's user bootstrap."""
    return create_session_factory()


def get_db() -> Iterator[Session]:
    """FastAPI dependency: one session per request, closed when the response is sent."""
    with get_session_factory()() as db:
        yield db


@contextmanager
def transaction(db: Session) -> Iterator[Session]:
    """Commit the writes made inside the block, or roll back and re-raise.

        with transaction(db):
            db.add(entry)
    """
    try:
        yield db
        db.commit()
    except Exception:
        db.rollback()
        raise
