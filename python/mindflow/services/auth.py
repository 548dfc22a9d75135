"""Authentication proxy service.

Forwards signup, login, logout and password reset to the auth provider and
mirrors newly registered users into the local users/user_profiles tables.
"""

from uuid import UUID

from sqlalchemy.orm import Session
from starlette.concurrency import run_in_threadpool

from mindflow.auth.provider import AuthProviderBase, ProviderAuthResult
from mindflow.logging import get_logger
from mindflow.schemas.auth import (
    AuthResult,
    AuthSessionOut,
    AuthUserOut,
    LoginRequest,
    ResetPasswordRequest,
    ResetPasswordResult,
    SignupRequest,
)
from mindflow.services.bootstrap import ensure_user
from mindflow.services.profile import create_profile_for_signup

logger = get_logger(__name__)


def auth_result_to_out(result: ProviderAuthResult) -> AuthResult:
    """Convert a provider result to the AuthResult schema."""
    session = None
    if result.session is not None:
        session = AuthSessionOut(
            access_token=result.session.access_token,
            refresh_token=result.session.refresh_token,
            token_type=result.session.token_type,
            expires_in=result.session.expires_in,
            expires_at=result.session.expires_at,
        )
    return AuthResult(
        user=AuthUserOut(
            id=result.user.id,
            email=result.user.email,
            created_at=result.user.created_at,
        ),
        session=session,
    )


def _mirror_new_user(
    db: Session, user_id: UUID, email: str | None, display_name: str | None
) -> None:
    ensure_user(db, user_id, email)
    create_profile_for_signup(db, user_id, display_name)


async def signup(db: Session, provider: AuthProviderBase, request: SignupRequest) -> AuthResult:
    """Register a user with the provider and mirror them locally.

    Raises:
        AuthProviderError: E_EMAIL_TAKEN, E_INVALID_REQUEST or E_AUTH_UNAVAILABLE.
    """
    result = await provider.sign_up(
        request.email, request.password, display_name=request.display_name
    )
    await run_in_threadpool(
        _mirror_new_user, db, result.user.id, result.user.email, request.display_name
    )

    logger.info(
        "user_signed_up",
        user_id=str(result.user.id),
        confirmation_pending=result.session is None,
    )
    return auth_result_to_out(result)


async def login(provider: AuthProviderBase, request: LoginRequest) -> AuthResult:
    """Exchange credentials for a provider session.

    Raises:
        AuthProviderError: E_INVALID_CREDENTIALS or E_AUTH_UNAVAILABLE.
    """
    result = await provider.sign_in(request.email, request.password)
    logger.info("user_logged_in", user_id=str(result.user.id))
    return auth_result_to_out(result)


async def logout(provider: AuthProviderBase, access_token: str) -> None:
    """Revoke the provider session behind the caller's access token."""
    await provider.sign_out(access_token)
    logger.info("user_logged_out")


async def reset_password(
    provider: AuthProviderBase,
    request: ResetPasswordRequest,
    redirect_to: str | None = None,
) -> ResetPasswordResult:
    """Ask the provider to send a reset e-mail.

    Reports success whether or not the address is registered.
    """
    await provider.reset_password(request.email, redirect_to=redirect_to)
    logger.info("password_reset_requested")
    return ResetPasswordResult(sent=True)
