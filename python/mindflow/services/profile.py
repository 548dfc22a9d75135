"""Profile and preferences service layer.

Profiles are created on first write (or at signup when a display name is
given). Preferences are created lazily with defaults on first read or write.
"""

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mindflow.db.models import User, UserPreferences, UserProfile
from mindflow.db.session import transaction
from mindflow.logging import get_logger
from mindflow.schemas.base import as_utc
from mindflow.schemas.profile import (
    MeOut,
    PreferencesOut,
    ProfileOut,
    UpdatePreferencesRequest,
    UpdateProfileRequest,
)

logger = get_logger(__name__)


# =============================================================================
# Helper Functions
# =============================================================================


def profile_to_out(profile: UserProfile) -> ProfileOut:
    """Convert UserProfile ORM model to ProfileOut schema."""
    return ProfileOut(
        id=profile.id,
        display_name=profile.display_name,
        avatar_url=profile.avatar_url,
        created_at=as_utc(profile.created_at),
        updated_at=as_utc(profile.updated_at),
    )


def preferences_to_out(preferences: UserPreferences) -> PreferencesOut:
    """Convert UserPreferences ORM model to PreferencesOut schema."""
    return PreferencesOut(
        reminder_enabled=preferences.reminder_enabled,
        reminder_time=preferences.reminder_time,
        theme=preferences.theme,
        updated_at=as_utc(preferences.updated_at),
    )


def _get_or_create_preferences(db: Session, viewer_id: UUID) -> UserPreferences:
    preferences = db.scalar(select(UserPreferences).where(UserPreferences.user_id == viewer_id))
    if preferences is not None:
        return preferences

    try:
        with transaction(db):
            preferences = UserPreferences(user_id=viewer_id)
            db.add(preferences)
        logger.info("preferences_created")
        return preferences
    except IntegrityError:
        # Lost race: another request created the row
        return db.scalars(
            select(UserPreferences).where(UserPreferences.user_id == viewer_id)
        ).one()


# =============================================================================
# Service Functions
# =============================================================================


def get_me(db: Session, viewer_id: UUID, email: str | None = None) -> MeOut:
    """Return the viewer's identity and profile (None until first written)."""
    user = db.get(User, viewer_id)
    profile = db.get(UserProfile, viewer_id)
    return MeOut(
        user_id=viewer_id,
        email=user.email if user is not None and user.email else email,
        profile=profile_to_out(profile) if profile is not None else None,
    )


def upsert_profile(db: Session, viewer_id: UUID, request: UpdateProfileRequest) -> ProfileOut:
    """Create or partially update the viewer's profile.

    Fields absent from the request are left unchanged.
    """
    changes = request.changes()
    profile = db.get(UserProfile, viewer_id)

    with transaction(db):
        if profile is None:
            profile = UserProfile(id=viewer_id, **changes)
            db.add(profile)
        else:
            for field, value in changes.items():
                setattr(profile, field, value)

    logger.info("profile_updated", fields=sorted(changes))
    return profile_to_out(profile)


def create_profile_for_signup(db: Session, user_id: UUID, display_name: str | None) -> None:
    """Record the display name chosen at signup. No-op without one."""
    if not display_name:
        return
    upsert_profile(db, user_id, UpdateProfileRequest(display_name=display_name))


def get_preferences(db: Session, viewer_id: UUID) -> PreferencesOut:
    """Return the viewer's preferences, creating defaults on first read."""
    return preferences_to_out(_get_or_create_preferences(db, viewer_id))


def update_preferences(
    db: Session, viewer_id: UUID, request: UpdatePreferencesRequest
) -> PreferencesOut:
    """Partially update the viewer's preferences."""
    preferences = _get_or_create_preferences(db, viewer_id)
    changes = request.changes()
    if changes:
        with transaction(db):
            for field, value in changes.items():
                setattr(preferences, field, value)
        logger.info("preferences_updated", fields=sorted(changes))
    return preferences_to_out(preferences)
