"""Current user endpoints: identity, profile and preferences."""

from typing import Annotated

from fastapi import APIRouter, Depends
from sqlalchemy.orm import Session

from mindflow.api.deps import get_db
from mindflow.auth.middleware import Viewer, get_viewer
from mindflow.contracts import MePaths
from mindflow.responses import success_response
from mindflow.schemas.profile import UpdatePreferencesRequest, UpdateProfileRequest
from mindflow.services import profile as profile_service

router = APIRouter()


@router.get(MePaths.ME)
def get_me(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get the authenticated user's id, email and profile (null until set)."""
    result = profile_service.get_me(db=db, viewer_id=viewer.user_id, email=viewer.email)
    return success_response(result.to_wire())


@router.put(MePaths.PROFILE)
def update_profile(
    request: UpdateProfileRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Create or partially update the viewer's profile."""
    result = profile_service.upsert_profile(db=db, viewer_id=viewer.user_id, request=request)
    return success_response(result.to_wire())


@router.get(MePaths.PREFERENCES)
def get_preferences(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Get the viewer's preferences, creating defaults on first read."""
    result = profile_service.get_preferences(db=db, viewer_id=viewer.user_id)
    return success_response(result.to_wire())


@router.patch(MePaths.PREFERENCES)
def update_preferences(
    request: UpdatePreferencesRequest,
    viewer: Annotated[Viewer, Depends(get_viewer)],
    db: Annotated[Session, Depends(get_db)],
) -> dict:
    """Partially update reminder and theme preferences."""
    result = profile_service.update_preferences(db=db, viewer_id=viewer.user_id, request=request)
    return success_response(result.to_wire())
