"""SQLAlchemy ORM models for MindFlow.

Defines all database tables using SQLAlchemy 2.x declarative patterns.
Column types are the portable SQLAlchemy types (Uuid, DateTime, JSON) so the
same models run against PostgreSQL in deployments and SQLite in tests.
PostgreSQL-only objects (the full-text GIN index, row-level security,
updated_at triggers) are created by the Alembic migration.
"""

from datetime import UTC, datetime, time
from typing import Any
from uuid import UUID, uuid4

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Enum,
    ForeignKey,
    Index,
    String,
    Text,
    Time,
    Uuid,
    func,
    text,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship

from mindflow.contracts import MAX_ENTRY_CONTENT_LENGTH
from mindflow.moods import Mood


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


def utcnow() -> datetime:
    return datetime.now(UTC)


def _enum_values(enum_cls: type) -> list[str]:
    return [member.value for member in enum_cls]


# Native `mood_type` enum on PostgreSQL, VARCHAR elsewhere
MoodType = Enum(
    Mood,
    name="mood_type",
    values_callable=_enum_values,
    validate_strings=True,
)

# Opaque insight payload: JSONB on PostgreSQL
InsightContent = JSON().with_variant(JSONB(), "postgresql")

THEMES = ("light", "dark")
DEFAULT_REMINDER_TIME = time(20, 0)


# =============================================================================
# Models
# =============================================================================


class User(Base):
    """Local mirror of an auth provider identity.

    The user ID matches the Supabase auth user ID (sub claim). Deleting the
    user removes every row the user owns.
    """

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    # Relationships
    entries: Mapped[list["Entry"]] = relationship(
        "Entry", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    profile: Mapped["UserProfile | None"] = relationship(
        "UserProfile", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )
    preferences: Mapped["UserPreferences | None"] = relationship(
        "UserPreferences",
        back_populates="user",
        cascade="all, delete-orphan",
        passive_deletes=True,
    )
    insights: Mapped[list["AIInsight"]] = relationship(
        "AIInsight", back_populates="user", cascade="all, delete-orphan", passive_deletes=True
    )


class UserProfile(Base):
    """Display information beyond the auth identity (1:1 with User)."""

    __tablename__ = "user_profiles"

    id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        primary_key=True,
    )
    display_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    avatar_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    user: Mapped["User"] = relationship("User", back_populates="profile")


class UserPreferences(Base):
    """Reminder and theme settings (1:1 with User, created lazily)."""

    __tablename__ = "user_preferences"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        unique=True,
    )
    reminder_enabled: Mapped[bool] = mapped_column(Boolean, default=True, nullable=False)
    reminder_time: Mapped[time] = mapped_column(
        Time, default=DEFAULT_REMINDER_TIME, nullable=False
    )
    theme: Mapped[str] = mapped_column(String(10), default="light", nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("theme IN ('light', 'dark')", name="ck_user_preferences_theme"),
    )

    user: Mapped["User"] = relationship("User", back_populates="preferences")


class Entry(Base):
    """A single journal entry owned by one user."""

    __tablename__ = "entries"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    mood: Mapped[Mood | None] = mapped_column(MoodType, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        onupdate=utcnow,
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint(
            f"length(content) BETWEEN 1 AND {MAX_ENTRY_CONTENT_LENGTH}",
            name="ck_entries_content_length",
        ),
        # Keyset pagination: (user_id, created_at DESC, id DESC)
        Index("idx_entries_user_created", "user_id", "created_at", "id"),
        Index("idx_entries_mood", "mood"),
        Index(
            "idx_entries_search",
            text("to_tsvector('english', content)"),
            postgresql_using="gin",
        ).ddl_if(dialect="postgresql"),
    )

    user: Mapped["User"] = relationship("User", back_populates="entries")
    insights: Mapped[list["AIInsight"]] = relationship(
        "AIInsight", back_populates="entry", cascade="all, delete-orphan", passive_deletes=True
    )


class AIInsight(Base):
    """Cached, externally generated annotation on a user or one of their entries.

    Rows soft-expire: an insight is live while expires_at is NULL or in the
    future. Nothing purges expired rows.
    """

    __tablename__ = "ai_insights"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    user_id: Mapped[UUID] = mapped_column(
        Uuid,
        ForeignKey("users.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    insight_type: Mapped[str] = mapped_column(String(50), nullable=False, index=True)
    entry_id: Mapped[UUID | None] = mapped_column(
        Uuid,
        ForeignKey("entries.id", ondelete="CASCADE"),
        nullable=True,
        index=True,
    )
    content: Mapped[Any] = mapped_column(InsightContent, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        default=utcnow,
        server_default=func.now(),
        nullable=False,
    )
    expires_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True, index=True
    )

    user: Mapped["User"] = relationship("User", back_populates="insights")
    entry: Mapped["Entry | None"] = relationship("Entry", back_populates="insights")
