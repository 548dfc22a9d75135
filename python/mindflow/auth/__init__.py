"""Authentication and authorization module.

This module provides:
- Token verification (Supabase JWKS verifier)
- Auth middleware for FastAPI
- Request state with viewer identity
- Auth provider clients for the signup/login proxy

Note: Test-only verifiers are in tests/support/mock_verifier.py
"""

from mindflow.auth.middleware import AuthMiddleware, Viewer, get_viewer
from mindflow.auth.provider import (
    AuthProviderBase,
    AuthProviderError,
    FakeAuthClient,
    SupabaseAuthClient,
    get_auth_client,
)
from mindflow.auth.verifier import SupabaseJwksVerifier, TokenVerifier

__all__ = [
    "AuthMiddleware",
    "Viewer",
    "get_viewer",
    "AuthProviderBase",
    "AuthProviderError",
    "FakeAuthClient",
    "SupabaseAuthClient",
    "get_auth_client",
    "SupabaseJwksVerifier",
    "TokenVerifier",
]
