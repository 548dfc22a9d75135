"""Database module for MindFlow.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from mindflow.db.engine import create_db_engine, get_engine
from mindflow.db.models import (
    AIInsight,
    Base,
    Entry,
    User,
    UserPreferences,
    UserProfile,
)
from mindflow.db.session import get_db, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "get_db",
    "transaction",
    # Base
    "Base",
    # Models
    "User",
    "UserProfile",
    "UserPreferences",
    "Entry",
    "AIInsight",
]
