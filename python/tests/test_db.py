"""Database smoke tests.

Verifies basic connectivity and the schema-level guarantees the services
rely on.
"""

import pytest
from sqlalchemy import text
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mindflow.db.models import Entry, User, UserPreferences
from mindflow.db.session import transaction
from tests.factories import create_test_entry, create_test_user
from tests.helpers import create_test_user_id


class TestDatabaseConnectivity:
    """Tests for basic database operations."""

    def test_session_opens_and_executes_query(self, db_session: Session):
        """Database session can execute a simple query."""
        result = db_session.execute(text("SELECT 1 AS value"))
        row = result.fetchone()

        assert row is not None
        assert row[0] == 1


class TestSchemaConstraints:
    def test_content_length_check(self, db_session: Session):
        user_id = create_test_user(db_session, create_test_user_id())
        db_session.add(Entry(user_id=user_id, content=""))

        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_entry_requires_existing_user(self, db_session: Session):
        db_session.add(Entry(user_id=create_test_user_id(), content="orphan"))

        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_one_preferences_row_per_user(self, db_session: Session):
        user_id = create_test_user(db_session, create_test_user_id())
        db_session.add(UserPreferences(user_id=user_id))
        db_session.commit()
        db_session.add(UserPreferences(user_id=user_id))

        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_theme_check(self, db_session: Session):
        user_id = create_test_user(db_session, create_test_user_id())
        db_session.add(UserPreferences(user_id=user_id, theme="sepia"))

        with pytest.raises(IntegrityError):
            db_session.commit()
        db_session.rollback()

    def test_deleting_user_cascades_to_entries(self, db_session: Session):
        user_id = create_test_user_id()
        entry_id = create_test_entry(db_session, user_id).id

        db_session.execute(User.__table__.delete().where(User.id == user_id))
        db_session.commit()
        db_session.expire_all()

        assert db_session.get(Entry, entry_id) is None


class TestTransaction:
    def test_commits_on_success(self, db_session: Session):
        user_id = create_test_user(db_session, create_test_user_id())

        with transaction(db_session):
            db_session.add(Entry(user_id=user_id, content="kept"))

        db_session.expire_all()
        assert db_session.query(Entry).filter_by(user_id=user_id).count() == 1

    def test_rolls_back_and_reraises(self, db_session: Session):
        user_id = create_test_user(db_session, create_test_user_id())

        with pytest.raises(RuntimeError):
            with transaction(db_session):
                db_session.add(Entry(user_id=user_id, content="discarded"))
                db_session.flush()
                raise RuntimeError("boom")

        assert db_session.query(Entry).filter_by(user_id=user_id).count() == 0

    def test_attributes_survive_commit(self, db_session: Session):
        user_id = create_test_user(db_session, create_test_user_id())
        entry = Entry(user_id=user_id, content="still readable")

        with transaction(db_session):
            db_session.add(entry)

        assert "content" in entry.__dict__
