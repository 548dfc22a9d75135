"""Tests for the auth proxy routes backed by FakeAuthClient."""

from unittest.mock import AsyncMock
from uuid import UUID

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from mindflow.api.deps import get_auth_provider
from mindflow.auth.provider import AuthProviderError, FakeAuthClient
from mindflow.db.models import User, UserProfile
from mindflow.errors import ApiErrorCode
from tests.helpers import auth_headers, create_test_user_id, mint_test_token


class TestSignup:
    def test_creates_user_and_session(
        self, authenticated_client: TestClient, db_session: Session
    ):
        response = authenticated_client.post(
            "/auth/signup", json={"email": "new@example.com", "password": "hunter22"}
        )

        assert response.status_code == 201
        data = response.json()["data"]
        assert data["user"]["email"] == "new@example.com"
        assert data["session"]["accessToken"].startswith("fake-access-")
        assert data["session"]["tokenType"] == "bearer"

        user = db_session.get(User, UUID(data["user"]["id"]))
        assert user is not None
        assert user.email == "new@example.com"

    def test_display_name_creates_profile(
        self, authenticated_client: TestClient, db_session: Session
    ):
        response = authenticated_client.post(
            "/auth/signup",
            json={"email": "ada@example.com", "password": "hunter22", "displayName": "Ada"},
        )

        user_id = UUID(response.json()["data"]["user"]["id"])
        profile = db_session.get(UserProfile, user_id)
        assert profile is not None
        assert profile.display_name == "Ada"

    def test_confirmation_pending_returns_null_session(self, authenticated_client: TestClient):
        pending = FakeAuthClient(require_confirmation=True)
        authenticated_client.app.dependency_overrides[get_auth_provider] = lambda: pending

        response = authenticated_client.post(
            "/auth/signup", json={"email": "wait@example.com", "password": "hunter22"}
        )

        assert response.status_code == 201
        assert response.json()["data"]["session"] is None

    def test_duplicate_email_conflicts(self, authenticated_client: TestClient, fake_auth):
        fake_auth.add_account("taken@example.com", "hunter22")

        response = authenticated_client.post(
            "/auth/signup", json={"email": "Taken@example.com", "password": "hunter22"}
        )

        assert response.status_code == 409
        assert response.json()["code"] == "E_EMAIL_TAKEN"

    @pytest.mark.parametrize(
        "body",
        [
            {"email": "not-an-email", "password": "hunter22"},
            {"email": "short@example.com", "password": "12345"},
            {"email": "missing@example.com"},
        ],
    )
    def test_invalid_input_rejected(self, authenticated_client: TestClient, body):
        response = authenticated_client.post("/auth/signup", json=body)

        assert response.status_code == 400
        assert response.json()["code"] == "E_INVALID_REQUEST"


class TestLogin:
    def test_returns_session(self, authenticated_client: TestClient, fake_auth):
        user_id = fake_auth.add_account("me@example.com", "hunter22")

        response = authenticated_client.post(
            "/auth/login", json={"email": "me@example.com", "password": "hunter22"}
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["user"]["id"] == str(user_id)
        assert data["session"]["refreshToken"].startswith("fake-refresh-")
        assert data["session"]["expiresIn"] == 3600

    @pytest.mark.parametrize(
        "email,password",
        [("me@example.com", "wrong-password"), ("nobody@example.com", "hunter22")],
    )
    def test_bad_credentials(self, authenticated_client: TestClient, fake_auth, email, password):
        fake_auth.add_account("me@example.com", "hunter22")

        response = authenticated_client.post(
            "/auth/login", json={"email": email, "password": password}
        )

        assert response.status_code == 401
        body = response.json()
        assert body["code"] == "E_INVALID_CREDENTIALS"
        assert body["error"] == "Invalid email or password"

    def test_provider_outage_is_503(self, authenticated_client: TestClient, fake_auth):
        fake_auth.sign_in = AsyncMock(
            side_effect=AuthProviderError(
                ApiErrorCode.E_AUTH_UNAVAILABLE, "Authentication service unavailable"
            )
        )

        response = authenticated_client.post(
            "/auth/login", json={"email": "me@example.com", "password": "hunter22"}
        )

        assert response.status_code == 503
        assert response.json()["code"] == "E_AUTH_UNAVAILABLE"


class TestLogout:
    def test_revokes_callers_token(self, authenticated_client: TestClient, fake_auth):
        fake_auth.sign_out = AsyncMock()
        token = mint_test_token(create_test_user_id())

        response = authenticated_client.post(
            "/auth/logout", headers={"Authorization": f"Bearer {token}"}
        )

        assert response.status_code == 204
        assert response.content == b""
        fake_auth.sign_out.assert_awaited_once_with(token)

    def test_requires_auth(self, authenticated_client: TestClient):
        response = authenticated_client.post("/auth/logout")

        assert response.status_code == 401
        assert response.json()["code"] == "E_UNAUTHENTICATED"

    def test_unknown_session_is_noop(self, authenticated_client: TestClient):
        response = authenticated_client.post(
            "/auth/logout", headers=auth_headers(create_test_user_id())
        )
        assert response.status_code == 204


class TestResetPassword:
    def test_sends_reset(self, authenticated_client: TestClient, fake_auth):
        fake_auth.add_account("me@example.com", "hunter22")

        response = authenticated_client.post(
            "/auth/reset-password", json={"email": "me@example.com"}
        )

        assert response.status_code == 200
        assert response.json()["data"] == {"sent": True}
        assert fake_auth.reset_requests == ["me@example.com"]

    def test_unknown_address_still_reports_sent(
        self, authenticated_client: TestClient, fake_auth
    ):
        response = authenticated_client.post(
            "/auth/reset-password", json={"email": "ghost@example.com"}
        )

        assert response.json()["data"] == {"sent": True}

    def test_invalid_email_rejected(self, authenticated_client: TestClient):
        response = authenticated_client.post("/auth/reset-password", json={"email": "nope"})
        assert response.status_code == 400
