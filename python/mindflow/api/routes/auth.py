"""Authentication proxy routes.

Signup, login and reset-password are public; logout requires a bearer token.
Provider failures surface as E_AUTH_UNAVAILABLE (503).
"""

from typing import Annotated

from fastapi import APIRouter, Depends, Response
from sqlalchemy.orm import Session

from mindflow.api.deps import get_auth_provider, get_db
from mindflow.auth.middleware import Viewer, get_viewer
from mindflow.auth.provider import AuthProviderBase
from mindflow.config import get_settings
from mindflow.contracts import AuthPaths
from mindflow.responses import success_response
from mindflow.schemas.auth import LoginRequest, ResetPasswordRequest, SignupRequest
from mindflow.services import auth as auth_service

router = APIRouter(tags=["auth"])


@router.post(AuthPaths.SIGNUP, status_code=201)
async def signup(
    request: SignupRequest,
    db: Annotated[Session, Depends(get_db)],
    provider: Annotated[AuthProviderBase, Depends(get_auth_provider)],
) -> dict:
    """Register a new user.

    The session is null when the provider requires e-mail confirmation.

    Errors:
        E_INVALID_REQUEST (400): Bad e-mail or password shorter than 6 characters.
        E_EMAIL_TAKEN (409): E-mail already registered.
    """
    result = await auth_service.signup(db=db, provider=provider, request=request)
    return success_response(result.to_wire())


@router.post(AuthPaths.LOGIN)
async def login(
    request: LoginRequest,
    provider: Annotated[AuthProviderBase, Depends(get_auth_provider)],
) -> dict:
    """Log in with e-mail and password.

    Errors:
        E_INVALID_CREDENTIALS (401): Wrong e-mail or password.
    """
    result = await auth_service.login(provider=provider, request=request)
    return success_response(result.to_wire())


@router.post(AuthPaths.LOGOUT, status_code=204)
async def logout(
    viewer: Annotated[Viewer, Depends(get_viewer)],
    provider: Annotated[AuthProviderBase, Depends(get_auth_provider)],
) -> Response:
    """Revoke the caller's session at the provider."""
    await auth_service.logout(provider=provider, access_token=viewer.access_token)
    return Response(status_code=204)


@router.post(AuthPaths.RESET_PASSWORD)
async def reset_password(
    request: ResetPasswordRequest,
    provider: Annotated[AuthProviderBase, Depends(get_auth_provider)],
) -> dict:
    """Send a password reset e-mail."""
    result = await auth_service.reset_password(
        provider=provider,
        request=request,
        redirect_to=get_settings().password_reset_redirect_url,
    )
    return success_response(result.to_wire())
