"""Tests for /me, /me/profile and /me/preferences."""

import pytest
from fastapi.testclient import TestClient
from sqlalchemy.orm import Session

from mindflow.db.models import UserPreferences
from mindflow.schemas.profile import UpdateProfileRequest
from mindflow.services.profile import create_profile_for_signup, get_me
from tests.factories import create_test_user
from tests.helpers import auth_headers, create_test_user_id


class TestMe:
    def test_profile_null_until_written(self, authenticated_client: TestClient):
        user_id = create_test_user_id()

        response = authenticated_client.get(
            "/me", headers=auth_headers(user_id, email="writer@example.com")
        )

        assert response.status_code == 200
        assert response.json()["data"] == {
            "userId": str(user_id),
            "email": "writer@example.com",
            "profile": None,
        }

    def test_includes_profile_after_upsert(self, authenticated_client: TestClient):
        headers = auth_headers(create_test_user_id())
        authenticated_client.put("/me/profile", json={"displayName": "Ada"}, headers=headers)

        data = authenticated_client.get("/me", headers=headers).json()["data"]

        assert data["profile"]["displayName"] == "Ada"
        assert data["profile"]["avatarUrl"] is None

    def test_requires_auth(self, authenticated_client: TestClient):
        assert authenticated_client.get("/me").status_code == 401


class TestProfile:
    def test_first_put_creates_profile(self, authenticated_client: TestClient):
        user_id = create_test_user_id()

        response = authenticated_client.put(
            "/me/profile",
            json={"displayName": "Ada", "avatarUrl": "https://example.com/ada.png"},
            headers=auth_headers(user_id),
        )

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["id"] == str(user_id)
        assert data["displayName"] == "Ada"
        assert data["avatarUrl"] == "https://example.com/ada.png"

    def test_omitted_fields_unchanged(self, authenticated_client: TestClient):
        headers = auth_headers(create_test_user_id())
        authenticated_client.put(
            "/me/profile",
            json={"displayName": "Ada", "avatarUrl": "https://example.com/a.png"},
            headers=headers,
        )

        data = authenticated_client.put(
            "/me/profile", json={"displayName": "Grace"}, headers=headers
        ).json()["data"]

        assert data["displayName"] == "Grace"
        assert data["avatarUrl"] == "https://example.com/a.png"

    def test_explicit_null_clears_field(self, authenticated_client: TestClient):
        headers = auth_headers(create_test_user_id())
        authenticated_client.put(
            "/me/profile",
            json={"displayName": "Ada", "avatarUrl": "https://example.com/a.png"},
            headers=headers,
        )

        data = authenticated_client.put(
            "/me/profile", json={"avatarUrl": None}, headers=headers
        ).json()["data"]

        assert data["avatarUrl"] is None
        assert data["displayName"] == "Ada"

    def test_display_name_too_long(self, authenticated_client: TestClient):
        response = authenticated_client.put(
            "/me/profile",
            json={"displayName": "x" * 101},
            headers=auth_headers(create_test_user_id()),
        )
        assert response.status_code == 400


class TestPreferences:
    def test_defaults_created_on_first_read(
        self, authenticated_client: TestClient, db_session: Session
    ):
        user_id = create_test_user_id()

        response = authenticated_client.get("/me/preferences", headers=auth_headers(user_id))

        assert response.status_code == 200
        data = response.json()["data"]
        assert data["reminderEnabled"] is True
        assert data["reminderTime"] == "20:00:00"
        assert data["theme"] == "light"
        assert db_session.query(UserPreferences).filter_by(user_id=user_id).count() == 1

    def test_repeated_reads_create_one_row(
        self, authenticated_client: TestClient, db_session: Session
    ):
        user_id = create_test_user_id()
        for _ in range(3):
            authenticated_client.get("/me/preferences", headers=auth_headers(user_id))

        assert db_session.query(UserPreferences).filter_by(user_id=user_id).count() == 1

    def test_partial_update(self, authenticated_client: TestClient):
        headers = auth_headers(create_test_user_id())

        data = authenticated_client.patch(
            "/me/preferences", json={"theme": "dark", "reminderTime": "07:30"}, headers=headers
        ).json()["data"]

        assert data["theme"] == "dark"
        assert data["reminderTime"] == "07:30:00"
        assert data["reminderEnabled"] is True

    def test_update_persists(self, authenticated_client: TestClient):
        headers = auth_headers(create_test_user_id())
        authenticated_client.patch(
            "/me/preferences", json={"reminderEnabled": False}, headers=headers
        )

        data = authenticated_client.get("/me/preferences", headers=headers).json()["data"]

        assert data["reminderEnabled"] is False

    @pytest.mark.parametrize("body", [{"theme": "sepia"}, {"reminderTime": "25:00"}])
    def test_invalid_values_rejected(self, authenticated_client: TestClient, body):
        response = authenticated_client.patch(
            "/me/preferences", json=body, headers=auth_headers(create_test_user_id())
        )

        assert response.status_code == 400
        assert response.json()["code"] == "E_INVALID_REQUEST"


class TestProfileService:
    def test_signup_profile_skipped_without_name(self, db_session: Session):
        user_id = create_test_user(db_session, create_test_user_id())

        create_profile_for_signup(db_session, user_id, None)

        assert get_me(db_session, user_id).profile is None

    def test_signup_profile_records_name(self, db_session: Session):
        user_id = create_test_user(db_session, create_test_user_id(), email="new@example.com")

        create_profile_for_signup(db_session, user_id, "Newcomer")

        me = get_me(db_session, user_id)
        assert me.email == "new@example.com"
        assert me.profile is not None
        assert me.profile.display_name == "Newcomer"

    def test_update_request_tracks_sent_fields(self):
        request = UpdateProfileRequest.model_validate({"avatarUrl": None})
        assert request.changes() == {"avatar_url": None}
