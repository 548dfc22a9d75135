"""Tests for X-Request-ID middleware.

Tests cover:
- Request ID generation when missing
- Request ID preservation when valid
- Request ID normalization (UUID lowercase)
- Request ID replacement when invalid
- Request ID presence on auth, rate limit and body guard rejections
- Request ID in error response body
"""

from uuid import UUID

import pytest
from fastapi.testclient import TestClient

from mindflow.middleware.request_id import generate_request_id, normalize_request_id
from tests.helpers import auth_headers, create_test_user_id


class TestRequestIdMiddleware:
    def test_request_id_generated_when_missing(self, authenticated_client: TestClient):
        response = authenticated_client.get("/me", headers=auth_headers(create_test_user_id()))

        assert response.status_code == 200
        UUID(response.headers["X-Request-ID"])

    def test_request_id_preserved_when_valid(self, authenticated_client: TestClient):
        custom_id = "abc_def-123"
        response = authenticated_client.get(
            "/me", headers={**auth_headers(create_test_user_id()), "X-Request-ID": custom_id}
        )

        assert response.headers["X-Request-ID"] == custom_id

    def test_request_id_uuid_normalized_to_lowercase(self, authenticated_client: TestClient):
        response = authenticated_client.get(
            "/me",
            headers={
                **auth_headers(create_test_user_id()),
                "X-Request-ID": "550E8400-E29B-41D4-A716-446655440000",
            },
        )

        assert response.headers["X-Request-ID"] == "550e8400-e29b-41d4-a716-446655440000"

    @pytest.mark.parametrize("invalid_id", ["bad id with spaces", "a" * 200, "semi;colon"])
    def test_request_id_replaced_when_invalid(self, authenticated_client: TestClient, invalid_id):
        response = authenticated_client.get(
            "/me", headers={**auth_headers(create_test_user_id()), "X-Request-ID": invalid_id}
        )

        new_id = response.headers["X-Request-ID"]
        assert new_id != invalid_id
        UUID(new_id)

    def test_request_id_present_on_auth_failure(self, authenticated_client: TestClient):
        response = authenticated_client.get("/me")

        assert response.status_code == 401
        assert "X-Request-ID" in response.headers

    def test_error_response_includes_request_id_in_body(self, authenticated_client: TestClient):
        response = authenticated_client.get(
            "/entries/00000000-0000-0000-0000-000000000000",
            headers=auth_headers(create_test_user_id()),
        )

        assert response.status_code == 404
        body = response.json()
        assert body["code"] == "E_ENTRY_NOT_FOUND"
        assert body["requestId"] == response.headers["X-Request-ID"]

    def test_request_id_present_on_payload_too_large(self, authenticated_client: TestClient):
        response = authenticated_client.post(
            "/entries",
            content=b"x" * (1024 * 1024 + 1),
            headers={**auth_headers(create_test_user_id()), "Content-Type": "application/json"},
        )

        assert response.status_code == 413
        assert "X-Request-ID" in response.headers


class TestNormalizeRequestId:
    @pytest.mark.parametrize(
        "value,expected",
        [
            ("request.id.with.dots", "request.id.with.dots"),
            ("under_score-and-dash", "under_score-and-dash"),
            ("550E8400-E29B-41D4-A716-446655440000", "550e8400-e29b-41d4-a716-446655440000"),
            ("a" * 128, "a" * 128),
        ],
    )
    def test_valid_values(self, value, expected):
        assert normalize_request_id(value) == expected

    @pytest.mark.parametrize("value", [None, "", "a" * 129, "has space", "emoji-🙂"])
    def test_invalid_values(self, value):
        assert normalize_request_id(value) is None

    def test_generated_ids_are_uuid4(self):
        assert UUID(generate_request_id()).version == 4
