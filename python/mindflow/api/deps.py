"""FastAPI dependencies for route handlers.

Common dependencies like database sessions, authentication, etc.
"""

from fastapi import Request

from mindflow.auth.provider import AuthProviderBase
from mindflow.db.session import get_db, get_session_factory

__all__ = ["get_auth_provider", "get_db", "get_session_factory"]


def get_auth_provider(request: Request) -> AuthProviderBase:
    """Get the shared auth provider client from app state.

    The client is created at app startup and wraps the shared
    httpx.AsyncClient, so provider calls reuse pooled connections.
    """
    return request.app.state.auth_client
