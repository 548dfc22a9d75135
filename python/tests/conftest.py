"""Pytest configuration and fixtures for MindFlow tests.

Test isolation strategy:
- The suite runs against an in-memory SQLite database by default
  (MINDFLOW_TEST_DATABASE_URL overrides it). The app, the auth bootstrap
  callback and the db_session fixture all share the one cached engine.
- Every test gets a freshly created schema that is dropped afterwards.
- Authenticated requests use MockJwtVerifier tokens (see tests/helpers.py).
- The auth provider is an in-memory FakeAuthClient.
"""

import os

os.environ["DATABASE_URL"] = os.environ.get("MINDFLOW_TEST_DATABASE_URL", "sqlite://")
os.environ["MINDFLOW_ENV"] = "test"
os.environ.setdefault(
    "SUPABASE_JWKS_URL", "http://localhost:54321/auth/v1/.well-known/jwks.json"
)
os.environ.setdefault("SUPABASE_ISSUER", "test-issuer")
os.environ.setdefault("SUPABASE_AUDIENCES", "test-audience")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ.pop("SUPABASE_URL", None)
os.environ.pop("REDIS_URL", None)

from collections.abc import Generator  # noqa: E402
from uuid import UUID  # noqa: E402

import pytest  # noqa: E402
from fastapi import FastAPI  # noqa: E402
from fastapi.testclient import TestClient  # noqa: E402
from sqlalchemy import Engine  # noqa: E402
from sqlalchemy.orm import Session  # noqa: E402

from mindflow.api.deps import get_auth_provider  # noqa: E402
from mindflow.app import add_request_id_middleware, create_app  # noqa: E402
from mindflow.auth.provider import FakeAuthClient  # noqa: E402
from mindflow.config import clear_settings_cache  # noqa: E402
from mindflow.db.engine import get_engine  # noqa: E402
from mindflow.db.models import Base  # noqa: E402
from mindflow.db.session import create_session_factory  # noqa: E402
from tests.helpers import create_test_user_id  # noqa: E402
from tests.support.mock_verifier import MockJwtVerifier  # noqa: E402


@pytest.fixture(scope="session")
def engine() -> Engine:
    """The application's cached engine, shared with the app under test."""
    return get_engine()


@pytest.fixture(autouse=True)
def schema(engine: Engine) -> Generator[None, None, None]:
    """Create all tables before each test and drop them afterwards."""
    Base.metadata.create_all(engine)
    yield
    Base.metadata.drop_all(engine)


@pytest.fixture
def db_session(engine: Engine) -> Generator[Session, None, None]:
    """Provide a database session for arranging and asserting on rows.

    Writes made through this session must be committed to be visible to
    the app. Call expire_all() before re-reading rows the app changed.
    """
    session = create_session_factory(engine)()
    try:
        yield session
    finally:
        session.close()


@pytest.fixture
def fake_auth() -> FakeAuthClient:
    """In-memory auth provider injected into the app."""
    return FakeAuthClient()


@pytest.fixture
def test_verifier() -> MockJwtVerifier:
    return MockJwtVerifier()


def build_test_app(verifier: MockJwtVerifier, auth_client: FakeAuthClient) -> FastAPI:
    """Create the full app with a test verifier and fake auth provider."""
    app = create_app(token_verifier=verifier)
    add_request_id_middleware(app, log_requests=False)
    app.dependency_overrides[get_auth_provider] = lambda: auth_client
    return app


@pytest.fixture
def app(test_verifier: MockJwtVerifier, fake_auth: FakeAuthClient) -> FastAPI:
    return build_test_app(test_verifier, fake_auth)


@pytest.fixture
def authenticated_client(app: FastAPI) -> Generator[TestClient, None, None]:
    """Client for the full app (auth, rate limit, body guard, request id).

    Use auth_headers() to generate valid tokens for requests.
    """
    with TestClient(app) as client:
        yield client


@pytest.fixture
def client() -> Generator[TestClient, None, None]:
    """Client for an app without auth middleware (public endpoints)."""
    app = create_app(skip_auth_middleware=True)
    with TestClient(app) as client:
        yield client


@pytest.fixture
def test_user_id() -> UUID:
    """Generate a random UUID for a test user."""
    return create_test_user_id()


@pytest.fixture(autouse=True)
def reset_settings_cache():
    """Reset the settings cache before each test."""
    clear_settings_cache()
    yield
    clear_settings_cache()
