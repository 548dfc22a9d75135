"""User bootstrap service.

Provides race-safe creation of the local user row on first authenticated request.
"""

import logging
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from mindflow.db.models import User
from mindflow.db.session import transaction

logger = logging.getLogger(__name__)


def ensure_user(db: Session, user_id: UUID, email: str | None = None) -> User:
    """Ensure the local user row mirroring the auth identity exists.

    Idempotent and race-safe: a concurrent request that inserts the same
    user first turns our insert into an IntegrityError, after which the
    existing row is returned. The stored email follows the token's claim.

    Args:
        db: Database session.
        user_id: The user's ID (from JWT sub claim).
        email: The email claim, if the token carries one.

    Returns:
        The persisted User.
    """
    user = db.get(User, user_id)
    if user is not None:
        if email and user.email != email:
            with transaction(db):
                user.email = email
        return user

    try:
        with transaction(db):
            user = User(id=user_id, email=email)
            db.add(user)
        logger.info("Bootstrapped user %s", user_id)
        return user
    except IntegrityError:
        # Lost race: another request created the row
        user = db.get(User, user_id)
        if user is None:
            logger.error("Failed to find user after race recovery for %s", user_id)
            raise RuntimeError(f"Failed to bootstrap user {user_id}") from None
        return user


def create_bootstrap_callback(db: Session):
    """Create a bootstrap callback function that captures the database session.

    This is used to wire up the auth middleware with the bootstrap service.

    Args:
        db: Database session.

    Returns:
        A callback taking (user_id, email) and returning the User.
    """

    def callback(user_id: UUID, email: str | None = None) -> User:
        return ensure_user(db, user_id, email)

    return callback
