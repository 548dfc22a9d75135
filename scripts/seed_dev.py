#!/usr/bin/env python
"""Seed development database with a demo user and journal entries.

Seeds the development database with one user, a profile and a week of
mood-tagged entries for local UI testing.

Constraints:
- Refuses to run in staging or prod (MINDFLOW_ENV check)
- Idempotent: fixed ids, existing rows are left alone
- Never runs automatically (manual invocation only)

Usage:
    cd python && DATABASE_URL=... python ../scripts/seed_dev.py

Authenticate as the demo user with a token whose sub is DEMO_USER_ID.
"""

import os
import sys
from datetime import UTC, datetime, timedelta
from uuid import UUID

DEMO_USER_ID = UUID("00000000-0000-4000-8000-000000000001")
DEMO_EMAIL = "demo@mindflow.local"
DEMO_DISPLAY_NAME = "Demo Writer"

# (days ago, mood, content)
DEMO_ENTRIES = [
    (6, "happy", "Long walk by the river this morning. The light was beautiful."),
    (5, "stressed", "Deadline moved up again. Too many meetings, not enough focus time."),
    (4, "anxious", "Couldn't sleep. Kept thinking about the presentation tomorrow."),
    (3, "calm", "Presentation went fine. Quiet evening with tea and a book."),
    (2, "sad", "Missing home today. Called my parents, which helped a little."),
    (1, "neutral", "Ordinary day. Groceries, laundry, a short run."),
    (0, None, "Trying out the journal without picking a mood."),
]


def entry_id(index: int) -> UUID:
    return UUID(int=DEMO_USER_ID.int + index + 1)


def main():
    # 1. Environment check (hard fail in staging/prod)
    mindflow_env = os.getenv("MINDFLOW_ENV", "local")
    if mindflow_env not in ("local", "test"):
        print(f"ERROR: seed_dev.py refuses to run in MINDFLOW_ENV={mindflow_env}")
        sys.exit(1)

    # 2. Check DATABASE_URL
    database_url = os.getenv("DATABASE_URL")
    if not database_url:
        print("ERROR: DATABASE_URL environment variable must be set")
        sys.exit(1)

    from mindflow.db.engine import create_db_engine
    from mindflow.db.models import Entry, UserProfile
    from mindflow.db.session import create_session_factory
    from mindflow.moods import parse_mood
    from mindflow.services.bootstrap import ensure_user

    engine = create_db_engine(database_url)
    db = create_session_factory(engine)()

    try:
        # 3. Idempotent seeding
        ensure_user(db, DEMO_USER_ID, DEMO_EMAIL)

        profile_created = db.get(UserProfile, DEMO_USER_ID) is None
        if profile_created:
            db.add(UserProfile(id=DEMO_USER_ID, display_name=DEMO_DISPLAY_NAME))

        now = datetime.now(UTC).replace(microsecond=0)
        entries_created = 0
        for index, (days_ago, mood, content) in enumerate(DEMO_ENTRIES):
            if db.get(Entry, entry_id(index)) is not None:
                continue
            written_at = now - timedelta(days=days_ago)
            db.add(
                Entry(
                    id=entry_id(index),
                    user_id=DEMO_USER_ID,
                    content=content,
                    mood=parse_mood(mood),
                    created_at=written_at,
                    updated_at=written_at,
                )
            )
            entries_created += 1

        db.commit()
    finally:
        db.close()

    # 4. Report
    db_display = database_url.split("@")[1] if "@" in database_url else database_url
    print(f"Database: {db_display}")
    print(f"MINDFLOW_ENV: {mindflow_env}")
    print()
    print(f"User: {DEMO_USER_ID} ({DEMO_EMAIL})")
    print(f"{'✓ Created' if profile_created else '• Exists'}: profile {DEMO_DISPLAY_NAME!r}")
    print(f"✓ Created {entries_created} of {len(DEMO_ENTRIES)} entries")


if __name__ == "__main__":
    main()
