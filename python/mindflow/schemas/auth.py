"""Authentication proxy schemas.

Request bodies for signup/login/reset and the user/session shapes returned
by the auth provider, normalized to camelCase.
"""

from datetime import datetime
from uuid import UUID

from pydantic import Field

from mindflow.contracts import MIN_PASSWORD_LENGTH
from mindflow.schemas.base import CamelModel

# Loose shape check; the auth provider does the real validation
EMAIL_PATTERN = r"^[^@\s]+@[^@\s]+\.[^@\s]+$"


# =============================================================================
# Request Schemas
# =============================================================================


class SignupRequest(CamelModel):
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=320)
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH)
    display_name: str | None = Field(None, max_length=100)


class LoginRequest(CamelModel):
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=320)
    password: str = Field(..., min_length=1)


class ResetPasswordRequest(CamelModel):
    email: str = Field(..., pattern=EMAIL_PATTERN, max_length=320)


# =============================================================================
# Response Schemas
# =============================================================================


class AuthUserOut(CamelModel):
    """Identity as reported by the auth provider."""

    id: UUID
    email: str | None = None
    created_at: datetime | None = None


class AuthSessionOut(CamelModel):
    """Provider session tokens handed back to the client."""

    access_token: str
    refresh_token: str | None = None
    token_type: str = "bearer"
    expires_in: int | None = None
    expires_at: int | None = None


class AuthResult(CamelModel):
    """Result of signup or login.

    Session is None when the provider requires e-mail confirmation first.
    """

    user: AuthUserOut
    session: AuthSessionOut | None = None


class ResetPasswordResult(CamelModel):
    sent: bool = True
