"""Journal schema - users, profiles, preferences, entries, ai_insights

Revision ID: 0001
Revises:
Create Date: 2026-10-18

Creates the MindFlow schema. On Supabase (an `auth` schema exists) every
table also gets row-level security with auth.uid() ownership policies.
"""

from collections.abc import Sequence

import sqlalchemy as sa
from alembic import op
from sqlalchemy.dialects import postgresql

# revision identifiers, used by Alembic.
revision: str = "0001"
down_revision: str | None = None
branch_labels: str | Sequence[str] | None = None
depends_on: str | Sequence[str] | None = None

MOOD_VALUES = ("happy", "sad", "anxious", "calm", "stressed", "neutral")

# Tables with an owner column for row-level security: (table, owner column)
OWNED_TABLES = (
    ("users", "id"),
    ("user_profiles", "id"),
    ("user_preferences", "user_id"),
    ("entries", "user_id"),
    ("ai_insights", "user_id"),
)

# ai_insights is written by an external process; the API only reads it
READ_ONLY_TABLES = ("ai_insights",)

TIMESTAMPED_TABLES = ("user_profiles", "user_preferences", "entries")


def _created_at() -> sa.Column:
    return sa.Column(
        "created_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def _updated_at() -> sa.Column:
    return sa.Column(
        "updated_at",
        sa.TIMESTAMP(timezone=True),
        server_default=sa.text("now()"),
        nullable=False,
    )


def upgrade() -> None:
    # Enable pgcrypto extension for gen_random_uuid()
    op.execute("CREATE EXTENSION IF NOT EXISTS pgcrypto")

    # ==========================================================================
    # mood_type enum
    # ==========================================================================
    op.execute(f"""
        DO $$
        BEGIN
            CREATE TYPE mood_type AS ENUM ({", ".join(f"'{m}'" for m in MOOD_VALUES)});
        EXCEPTION
            WHEN duplicate_object THEN NULL;
        END $$;
    """)

    # ==========================================================================
    # users table
    # ==========================================================================
    op.create_table(
        "users",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("email", sa.Text(), nullable=True),
        _created_at(),
        sa.PrimaryKeyConstraint("id"),
    )

    # ==========================================================================
    # user_profiles table (1:1 with users)
    # ==========================================================================
    op.create_table(
        "user_profiles",
        sa.Column("id", sa.UUID(), nullable=False),
        sa.Column("display_name", sa.Text(), nullable=True),
        sa.Column("avatar_url", sa.Text(), nullable=True),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["id"], ["users.id"], ondelete="CASCADE"),
    )

    # ==========================================================================
    # user_preferences table (1:1 with users, created lazily)
    # ==========================================================================
    op.create_table(
        "user_preferences",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("reminder_enabled", sa.Boolean(), server_default="true", nullable=False),
        sa.Column(
            "reminder_time", sa.Time(), server_default=sa.text("'20:00:00'"), nullable=False
        ),
        sa.Column("theme", sa.String(10), server_default="light", nullable=False),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.UniqueConstraint("user_id", name="uq_user_preferences_user_id"),
        sa.CheckConstraint("theme IN ('light', 'dark')", name="ck_user_preferences_theme"),
    )

    # ==========================================================================
    # entries table
    # ==========================================================================
    op.create_table(
        "entries",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("content", sa.Text(), nullable=False),
        sa.Column(
            "mood",
            postgresql.ENUM(*MOOD_VALUES, name="mood_type", create_type=False),
            nullable=True,
        ),
        _created_at(),
        _updated_at(),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        # Constraint: content must be 1-50000 characters
        sa.CheckConstraint(
            "length(content) BETWEEN 1 AND 50000",
            name="ck_entries_content_length",
        ),
    )

    # Keyset pagination within one user's entries
    op.create_index(
        "idx_entries_user_created",
        "entries",
        ["user_id", sa.text("created_at DESC"), sa.text("id DESC")],
    )
    op.create_index("idx_entries_mood", "entries", ["mood"])
    op.create_index(
        "idx_entries_search",
        "entries",
        [sa.text("to_tsvector('english', content)")],
        postgresql_using="gin",
    )

    # ==========================================================================
    # ai_insights table
    # ==========================================================================
    op.create_table(
        "ai_insights",
        sa.Column(
            "id",
            sa.UUID(),
            server_default=sa.text("gen_random_uuid()"),
            nullable=False,
        ),
        sa.Column("user_id", sa.UUID(), nullable=False),
        sa.Column("insight_type", sa.String(50), nullable=False),
        sa.Column("entry_id", sa.UUID(), nullable=True),
        sa.Column("content", postgresql.JSONB(), nullable=False),
        _created_at(),
        sa.Column("expires_at", sa.TIMESTAMP(timezone=True), nullable=True),
        sa.PrimaryKeyConstraint("id"),
        sa.ForeignKeyConstraint(["user_id"], ["users.id"], ondelete="CASCADE"),
        sa.ForeignKeyConstraint(["entry_id"], ["entries.id"], ondelete="CASCADE"),
    )
    op.create_index("idx_ai_insights_user_id", "ai_insights", ["user_id"])
    op.create_index("idx_ai_insights_insight_type", "ai_insights", ["insight_type"])
    op.create_index("idx_ai_insights_entry_id", "ai_insights", ["entry_id"])
    op.create_index("idx_ai_insights_expires_at", "ai_insights", ["expires_at"])

    # ==========================================================================
    # updated_at triggers
    # Only stamps rows whose writer left updated_at untouched; the API sets
    # its own strictly increasing value.
    # ==========================================================================
    op.execute("""
        CREATE OR REPLACE FUNCTION set_updated_at()
        RETURNS TRIGGER AS $$
        BEGIN
            IF NEW.updated_at IS NOT DISTINCT FROM OLD.updated_at THEN
                NEW.updated_at = now();
            END IF;
            RETURN NEW;
        END;
        $$ LANGUAGE plpgsql;
    """)
    for table in TIMESTAMPED_TABLES:
        op.execute(f"""
            CREATE TRIGGER trg_{table}_updated_at
                BEFORE UPDATE ON {table}
                FOR EACH ROW
                EXECUTE FUNCTION set_updated_at();
        """)

    # ==========================================================================
    # Row-level security (Supabase only)
    # ==========================================================================
    for table, owner_column in OWNED_TABLES:
        commands = ("SELECT",) if table in READ_ONLY_TABLES else (
            "SELECT",
            "INSERT",
            "UPDATE",
            "DELETE",
        )
        statements = [f"ALTER TABLE {table} ENABLE ROW LEVEL SECURITY;"]
        for command in commands:
            clause = "WITH CHECK" if command == "INSERT" else "USING"
            statements.append(
                f"CREATE POLICY {table}_owner_{command.lower()} ON {table} "
                f"FOR {command} {clause} (auth.uid() = {owner_column});"
            )
        body = "\n                ".join(statements)
        op.execute(f"""
            DO $$
            BEGIN
                IF EXISTS (SELECT 1 FROM pg_namespace WHERE nspname = 'auth') THEN
                {body}
                END IF;
            END $$;
        """)


def downgrade() -> None:
    # Drop tables in reverse order (respecting foreign key dependencies)
    for table in TIMESTAMPED_TABLES:
        op.execute(f"DROP TRIGGER IF EXISTS trg_{table}_updated_at ON {table}")
    op.execute("DROP FUNCTION IF EXISTS set_updated_at()")

    op.drop_table("ai_insights")
    op.drop_index("idx_entries_search", table_name="entries")
    op.drop_index("idx_entries_mood", table_name="entries")
    op.drop_index("idx_entries_user_created", table_name="entries")
    op.drop_table("entries")
    op.drop_table("user_preferences")
    op.drop_table("user_profiles")
    op.drop_table("users")

    op.execute("DROP TYPE IF EXISTS mood_type")

    # Note: We don't drop pgcrypto extension as it may be used by other things
