"""Async HTTP client for the MindFlow API.

One method per endpoint. Request bodies are validated against the shared
pydantic schemas before anything is sent, the response envelope is
unwrapped, and the payload is parsed back into the same schemas.

Failures:
- ApiClientError: the API answered with an error envelope (or garbage)
- OfflineError: the API could not be reached at all
"""

from typing import Any, TypeVar
from uuid import UUID

import httpx
from pydantic import BaseModel

from mindflow.contracts import (
    HEALTH_PATH,
    AuthPaths,
    EntryPaths,
    InsightPaths,
    MePaths,
)
from mindflow.moods import Mood
from mindflow.schemas.auth import (
    AuthResult,
    LoginRequest,
    ResetPasswordRequest,
    ResetPasswordResult,
    SignupRequest,
)
from mindflow.schemas.entries import (
    CreateEntryRequest,
    EntryOut,
    EntryPage,
    SearchEntriesQuery,
    UpdateEntryRequest,
)
from mindflow.schemas.insights import InsightList
from mindflow.schemas.profile import (
    MeOut,
    PreferencesOut,
    ProfileOut,
    UpdatePreferencesRequest,
    UpdateProfileRequest,
)

ModelT = TypeVar("ModelT", bound=BaseModel)

DEFAULT_TIMEOUT = 10.0


class ApiClientError(Exception):
    """Error envelope returned by the API.

    Attributes:
        status: HTTP status code
        code: API error code (E_...)
        message: Human-readable error message
        request_id: Server correlation ID, when provided
    """

    def __init__(self, status: int, code: str, message: str, request_id: str | None = None):
        self.status = status
        self.code = code
        self.message = message
        self.request_id = request_id
        super().__init__(message)


class OfflineError(Exception):
    """The API could not be reached (connection refused, DNS, timeout)."""


def _coerce(model: type[ModelT], value: ModelT | dict[str, Any]) -> ModelT:
    if isinstance(value, model):
        return value
    return model.model_validate(value)


def _body(model: BaseModel, *, exclude_unset: bool = False) -> dict[str, Any]:
    return model.model_dump(mode="json", by_alias=True, exclude_unset=exclude_unset)


class MindflowApiClient:
    """Client for the MindFlow HTTP API.

    Args:
        base_url: API root, e.g. http://localhost:3000.
        access_token: Bearer token for authenticated endpoints.
        http_client: Optional shared httpx.AsyncClient (not closed by aclose()).
        timeout: Per-request timeout in seconds.
    """

    def __init__(
        self,
        base_url: str,
        *,
        access_token: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        timeout: float = DEFAULT_TIMEOUT,
    ):
        self._base_url = base_url.rstrip("/")
        self._access_token = access_token
        self._owns_client = http_client is None
        self._client = http_client or httpx.AsyncClient(timeout=timeout)
        self._timeout = timeout

    @property
    def access_token(self) -> str | None:
        return self._access_token

    def set_access_token(self, token: str | None) -> None:
        self._access_token = token

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> "MindflowApiClient":
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    # =========================================================================
    # Transport
    # =========================================================================

    async def _request(
        self,
        method: str,
        path: str,
        *,
        json: dict[str, Any] | None = None,
        params: dict[str, Any] | None = None,
    ) -> Any:
        headers = {"Accept": "application/json"}
        if self._access_token:
            headers["Authorization"] = f"Bearer {self._access_token}"
        if params:
            params = {key: value for key, value in params.items() if value is not None}

        try:
            response = await self._client.request(
                method,
                f"{self._base_url}{path}",
                json=json,
                params=params,
                headers=headers,
                timeout=self._timeout,
            )
        except httpx.TransportError as e:
            raise OfflineError(f"{method} {path} failed: {e}") from e

        if response.status_code == 204:
            return None

        try:
            body = response.json()
        except ValueError:
            raise ApiClientError(
                response.status_code, "E_INTERNAL", "Invalid response from server"
            ) from None

        if not response.is_success or not isinstance(body, dict) or not body.get("success"):
            envelope = body if isinstance(body, dict) else {}
            raise ApiClientError(
                response.status_code,
                envelope.get("code", "E_INTERNAL"),
                envelope.get("error", "Request failed"),
                envelope.get("requestId"),
            )
        return body.get("data")

    # =========================================================================
    # Health & Auth
    # =========================================================================

    async def health(self) -> dict[str, Any]:
        return await self._request("GET", HEALTH_PATH)

    async def signup(self, request: SignupRequest | dict[str, Any]) -> AuthResult:
        """Register; adopts the returned session token when there is one."""
        request = _coerce(SignupRequest, request)
        result = AuthResult.model_validate(
            await self._request("POST", AuthPaths.SIGNUP, json=_body(request))
        )
        if result.session is not None:
            self.set_access_token(result.session.access_token)
        return result

    async def login(self, request: LoginRequest | dict[str, Any]) -> AuthResult:
        """Log in and adopt the returned session token."""
        request = _coerce(LoginRequest, request)
        result = AuthResult.model_validate(
            await self._request("POST", AuthPaths.LOGIN, json=_body(request))
        )
        if result.session is not None:
            self.set_access_token(result.session.access_token)
        return result

    async def logout(self) -> None:
        try:
            await self._request("POST", AuthPaths.LOGOUT)
        finally:
            self.set_access_token(None)

    async def reset_password(self, email: str) -> ResetPasswordResult:
        request = ResetPasswordRequest(email=email)
        return ResetPasswordResult.model_validate(
            await self._request("POST", AuthPaths.RESET_PASSWORD, json=_body(request))
        )

    # =========================================================================
    # Entries
    # =========================================================================

    async def list_entries(
        self, *, cursor: str | None = None, limit: int | None = None, mood: Mood | None = None
    ) -> EntryPage:
        params = {"cursor": cursor, "limit": limit, "mood": mood.value if mood else None}
        return EntryPage.model_validate(await self._request("GET", EntryPaths.LIST, params=params))

    async def search_entries(
        self,
        query: SearchEntriesQuery | dict[str, Any],
        *,
        cursor: str | None = None,
        limit: int | None = None,
    ) -> EntryPage:
        query = _coerce(SearchEntriesQuery, query)
        params = {
            **query.model_dump(mode="json", by_alias=True, exclude_none=True),
            "cursor": cursor,
            "limit": limit,
        }
        return EntryPage.model_validate(
            await self._request("GET", EntryPaths.SEARCH, params=params)
        )

    async def get_entry(self, entry_id: UUID | str) -> EntryOut:
        return EntryOut.model_validate(await self._request("GET", EntryPaths.item(entry_id)))

    async def create_entry(self, request: CreateEntryRequest | dict[str, Any]) -> EntryOut:
        request = _coerce(CreateEntryRequest, request)
        return EntryOut.model_validate(
            await self._request("POST", EntryPaths.CREATE, json=_body(request))
        )

    async def update_entry(
        self, entry_id: UUID | str, request: UpdateEntryRequest | dict[str, Any]
    ) -> EntryOut:
        """Send only the fields that were set, so omitted ones stay untouched."""
        request = _coerce(UpdateEntryRequest, request)
        return EntryOut.model_validate(
            await self._request(
                "PUT", EntryPaths.item(entry_id), json=_body(request, exclude_unset=True)
            )
        )

    async def delete_entry(self, entry_id: UUID | str) -> None:
        await self._request("DELETE", EntryPaths.item(entry_id))

    async def list_entry_insights(self, entry_id: UUID | str) -> InsightList:
        return InsightList.model_validate(
            await self._request("GET", EntryPaths.insights(entry_id))
        )

    # =========================================================================
    # Me & Insights
    # =========================================================================

    async def get_me(self) -> MeOut:
        return MeOut.model_validate(await self._request("GET", MePaths.ME))

    async def update_profile(self, request: UpdateProfileRequest | dict[str, Any]) -> ProfileOut:
        request = _coerce(UpdateProfileRequest, request)
        return ProfileOut.model_validate(
            await self._request("PUT", MePaths.PROFILE, json=_body(request, exclude_unset=True))
        )

    async def get_preferences(self) -> PreferencesOut:
        return PreferencesOut.model_validate(await self._request("GET", MePaths.PREFERENCES))

    async def update_preferences(
        self, request: UpdatePreferencesRequest | dict[str, Any]
    ) -> PreferencesOut:
        request = _coerce(UpdatePreferencesRequest, request)
        return PreferencesOut.model_validate(
            await self._request(
                "PATCH", MePaths.PREFERENCES, json=_body(request, exclude_unset=True)
            )
        )

    async def list_insights(
        self,
        *,
        insight_type: str | None = None,
        entry_id: UUID | str | None = None,
        include_expired: bool = False,
    ) -> InsightList:
        params = {
            "type": insight_type,
            "entryId": str(entry_id) if entry_id else None,
            "includeExpired": "true" if include_expired else None,
        }
        return InsightList.model_validate(
            await self._request("GET", InsightPaths.LIST, params=params)
        )
