"""Supabase Auth API client abstraction.

The API proxies signup, login, logout and password recovery to the
Supabase Auth (GoTrue) REST API so clients never talk to the provider
directly. The provider owns the credential store and e-mail delivery.

Provides:
- AuthProviderBase: interface used by the auth routes
- SupabaseAuthClient: httpx.AsyncClient against {SUPABASE_URL}/auth/v1
- FakeAuthClient: in-memory provider for local development and tests
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime
from typing import Any
from uuid import UUID, uuid4

import httpx

from mindflow.config import Settings
from mindflow.errors import ApiError, ApiErrorCode
from mindflow.logging import get_logger

logger = get_logger(__name__)

# Provider request timeout in seconds
PROVIDER_TIMEOUT = 10.0

# GoTrue error codes meaning the e-mail is already registered
_EMAIL_TAKEN_CODES = {"user_already_exists", "email_exists"}


@dataclass(frozen=True)
class ProviderUser:
    id: UUID
    email: str | None
    created_at: datetime | None = None


@dataclass(frozen=True)
class ProviderSession:
    access_token: str
    refresh_token: str | None
    token_type: str = "bearer"
    expires_in: int | None = None
    expires_at: int | None = None


@dataclass(frozen=True)
class ProviderAuthResult:
    """User plus session. Session is None while e-mail confirmation is pending."""

    user: ProviderUser
    session: ProviderSession | None


class AuthProviderError(ApiError):
    """Auth provider rejected the request or could not be reached."""


class AuthProviderBase(ABC):
    """Abstract base class for auth provider implementations."""

    @abstractmethod
    async def sign_up(
        self, email: str, password: str, *, display_name: str | None = None
    ) -> ProviderAuthResult:
        """Register a new user.

        Raises:
            AuthProviderError(E_EMAIL_TAKEN): E-mail already registered.
            AuthProviderError(E_INVALID_REQUEST): Provider rejected the input.
            AuthProviderError(E_AUTH_UNAVAILABLE): Provider unreachable or failing.
        """
        ...

    @abstractmethod
    async def sign_in(self, email: str, password: str) -> ProviderAuthResult:
        """Exchange e-mail and password for a session.

        Raises:
            AuthProviderError(E_INVALID_CREDENTIALS): Wrong e-mail or password.
            AuthProviderError(E_AUTH_UNAVAILABLE): Provider unreachable or failing.
        """
        ...

    @abstractmethod
    async def sign_out(self, access_token: str) -> None:
        """Revoke the session the access token belongs to."""
        ...

    @abstractmethod
    async def reset_password(self, email: str, *, redirect_to: str | None = None) -> None:
        """Ask the provider to e-mail a password reset link."""
        ...


# =============================================================================
# Supabase
# =============================================================================


def _parse_user(data: dict[str, Any]) -> ProviderUser:
    created_at = data.get("created_at")
    return ProviderUser(
        id=UUID(data["id"]),
        email=data.get("email"),
        created_at=datetime.fromisoformat(created_at.replace("Z", "+00:00")) if created_at else None,
    )


def _parse_auth_result(data: dict[str, Any]) -> ProviderAuthResult:
    # Session responses nest the user; confirmation-pending signups return the user itself
    if "access_token" in data:
        session = ProviderSession(
            access_token=data["access_token"],
            refresh_token=data.get("refresh_token"),
            token_type=data.get("token_type", "bearer"),
            expires_in=data.get("expires_in"),
            expires_at=data.get("expires_at"),
        )
        return ProviderAuthResult(user=_parse_user(data["user"]), session=session)
    return ProviderAuthResult(user=_parse_user(data.get("user") or data), session=None)


def _error_message(response: httpx.Response) -> tuple[str, str | None]:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason_phrase, None
    if not isinstance(body, dict):
        return response.text or response.reason_phrase, None
    message = (
        body.get("msg")
        or body.get("message")
        or body.get("error_description")
        or body.get("error")
        or response.reason_phrase
    )
    return str(message), body.get("error_code")


class SupabaseAuthClient(AuthProviderBase):
    """Production Supabase Auth client.

    Uses a shared httpx.AsyncClient (owned by the app lifespan) against the
    GoTrue REST API with the project's anon key.
    """

    def __init__(
        self,
        supabase_url: str,
        anon_key: str,
        http_client: httpx.AsyncClient | None = None,
    ):
        """Initialize the auth client.

        Args:
            supabase_url: Supabase project URL (e.g., https://xxx.supabase.co).
            anon_key: Supabase anon (public) key.
            http_client: Shared async client. A private one is created if None.
        """
        self._auth_url = f"{supabase_url.rstrip('/')}/auth/v1"
        self._anon_key = anon_key
        self._client = http_client or httpx.AsyncClient(timeout=PROVIDER_TIMEOUT)
        self._headers = {"apikey": anon_key, "Content-Type": "application/json"}

    async def _post(
        self,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, str] | None = None,
        headers: dict[str, str] | None = None,
        operation: str,
    ) -> httpx.Response:
        try:
            response = await self._client.post(
                f"{self._auth_url}{path}",
                json=json,
                params=params,
                headers={**self._headers, **(headers or {})},
                timeout=PROVIDER_TIMEOUT,
            )
        except httpx.TransportError as e:
            logger.warning("auth_provider_unreachable", operation=operation, error=str(e))
            raise AuthProviderError(
                ApiErrorCode.E_AUTH_UNAVAILABLE, "Authentication service unavailable"
            ) from e

        if response.status_code >= 500:
            logger.warning(
                "auth_provider_error", operation=operation, status=response.status_code
            )
            raise AuthProviderError(
                ApiErrorCode.E_AUTH_UNAVAILABLE, "Authentication service unavailable"
            )
        if response.status_code == 429:
            raise AuthProviderError(ApiErrorCode.E_RATE_LIMITED, "Too many requests")
        return response

    async def sign_up(
        self, email: str, password: str, *, display_name: str | None = None
    ) -> ProviderAuthResult:
        payload: dict[str, Any] = {"email": email, "password": password}
        if display_name:
            payload["data"] = {"display_name": display_name}

        response = await self._post("/signup", json=payload, operation="signup")
        if response.is_success:
            return _parse_auth_result(response.json())

        message, error_code = _error_message(response)
        if error_code in _EMAIL_TAKEN_CODES or "already registered" in message.lower():
            raise AuthProviderError(ApiErrorCode.E_EMAIL_TAKEN, "Email already registered")
        raise AuthProviderError(ApiErrorCode.E_INVALID_REQUEST, message)

    async def sign_in(self, email: str, password: str) -> ProviderAuthResult:
        response = await self._post(
            "/token",
            params={"grant_type": "password"},
            json={"email": email, "password": password},
            operation="login",
        )
        if response.is_success:
            return _parse_auth_result(response.json())

        if response.status_code in (400, 401, 403):
            raise AuthProviderError(
                ApiErrorCode.E_INVALID_CREDENTIALS, "Invalid email or password"
            )
        message, _ = _error_message(response)
        raise AuthProviderError(ApiErrorCode.E_INVALID_REQUEST, message)

    async def sign_out(self, access_token: str) -> None:
        response = await self._post(
            "/logout",
            headers={"Authorization": f"Bearer {access_token}"},
            operation="logout",
        )
        # Session already gone at the provider
        if response.status_code in (401, 403, 404):
            logger.info("auth_provider_logout_noop", status=response.status_code)
            return
        if not response.is_success:
            message, _ = _error_message(response)
            raise AuthProviderError(ApiErrorCode.E_INVALID_REQUEST, message)

    async def reset_password(self, email: str, *, redirect_to: str | None = None) -> None:
        params = {"redirect_to": redirect_to} if redirect_to else None
        response = await self._post(
            "/recover", json={"email": email}, params=params, operation="recover"
        )
        if not response.is_success:
            message, _ = _error_message(response)
            raise AuthProviderError(ApiErrorCode.E_INVALID_REQUEST, message)


# =============================================================================
# Fake
# =============================================================================


@dataclass
class _FakeAccount:
    id: UUID
    email: str
    password: str
    created_at: datetime
    display_name: str | None = None


class FakeAuthClient(AuthProviderBase):
    """Fake auth provider for local development and tests.

    Accounts and sessions live in memory. Access tokens are opaque strings,
    so they do not pass JWKS verification; tests mint their own JWTs.
    """

    def __init__(self, require_confirmation: bool = False):
        self.require_confirmation = require_confirmation
        self._accounts: dict[str, _FakeAccount] = {}
        self._sessions: dict[str, UUID] = {}
        self.reset_requests: list[str] = []

    def _session_for(self, account: _FakeAccount) -> ProviderSession:
        token = f"fake-access-{uuid4()}"
        self._sessions[token] = account.id
        return ProviderSession(
            access_token=token,
            refresh_token=f"fake-refresh-{uuid4()}",
            expires_in=3600,
        )

    @staticmethod
    def _user(account: _FakeAccount) -> ProviderUser:
        return ProviderUser(id=account.id, email=account.email, created_at=account.created_at)

    async def sign_up(
        self, email: str, password: str, *, display_name: str | None = None
    ) -> ProviderAuthResult:
        key = email.lower()
        if key in self._accounts:
            raise AuthProviderError(ApiErrorCode.E_EMAIL_TAKEN, "Email already registered")

        account = _FakeAccount(
            id=uuid4(),
            email=email,
            password=password,
            created_at=datetime.now(UTC),
            display_name=display_name,
        )
        self._accounts[key] = account
        session = None if self.require_confirmation else self._session_for(account)
        return ProviderAuthResult(user=self._user(account), session=session)

    async def sign_in(self, email: str, password: str) -> ProviderAuthResult:
        account = self._accounts.get(email.lower())
        if account is None or account.password != password:
            raise AuthProviderError(
                ApiErrorCode.E_INVALID_CREDENTIALS, "Invalid email or password"
            )
        return ProviderAuthResult(user=self._user(account), session=self._session_for(account))

    async def sign_out(self, access_token: str) -> None:
        self._sessions.pop(access_token, None)

    async def reset_password(self, email: str, *, redirect_to: str | None = None) -> None:
        # Unknown addresses are accepted too
        self.reset_requests.append(email)

    # Test helper methods

    def add_account(self, email: str, password: str, user_id: UUID | None = None) -> UUID:
        """Register an account directly (test helper)."""
        account = _FakeAccount(
            id=user_id or uuid4(), email=email, password=password, created_at=datetime.now(UTC)
        )
        self._accounts[email.lower()] = account
        return account.id

    def active_sessions(self) -> int:
        return len(self._sessions)


def get_auth_client(
    settings: Settings, http_client: httpx.AsyncClient | None = None
) -> AuthProviderBase:
    """Get the configured auth provider client.

    Returns:
        SupabaseAuthClient if SUPABASE_URL and SUPABASE_ANON_KEY are set,
        FakeAuthClient otherwise.
    """
    if settings.auth_provider_configured:
        return SupabaseAuthClient(
            supabase_url=settings.supabase_url,
            anon_key=settings.supabase_anon_key,
            http_client=http_client,
        )

    # Local dev / tests without Supabase
    logger.info("auth_provider_fake")
    return FakeAuthClient()
