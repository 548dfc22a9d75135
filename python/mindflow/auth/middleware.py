"""Authentication middleware for FastAPI.

Provides:
- AuthMiddleware: Global middleware for bearer token verification
- get_viewer: Dependency for accessing authenticated viewer identity
"""

import logging
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import Any
from uuid import UUID

from fastapi import Depends, Request
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.types import ASGIApp

from mindflow.auth.verifier import TokenVerifier
from mindflow.contracts import HEALTH_PATH, AuthPaths
from mindflow.errors import ApiError, ApiErrorCode
from mindflow.logging import set_user_context
from mindflow.responses import error_response

logger = logging.getLogger(__name__)

# Header names
AUTHORIZATION_HEADER = "authorization"

# Paths that don't require authentication
PUBLIC_PATHS = {
    HEALTH_PATH,
    "/docs",
    "/redoc",
    "/openapi.json",
    AuthPaths.SIGNUP,
    AuthPaths.LOGIN,
    AuthPaths.RESET_PASSWORD,
}


@dataclass
class Viewer:
    """Authenticated viewer identity.

    Attributes:
        user_id: The viewer's user ID (from JWT sub claim).
        email: The email claim, when the token carries one.
        access_token: The bearer token the request was made with.
    """

    user_id: UUID
    email: str | None = None
    access_token: str = field(default="", repr=False)


def _unauthenticated(message: str = "Authentication required") -> JSONResponse:
    return JSONResponse(
        status_code=401,
        content=error_response(ApiErrorCode.E_UNAUTHENTICATED, message),
    )


def _extract_bearer_token(request: Request) -> str | None:
    """Return the bearer token, or None if the header is missing or malformed."""
    auth_header = request.headers.get(AUTHORIZATION_HEADER)
    if not auth_header:
        logger.warning("auth_failure", extra={"reason": "missing_header"})
        return None

    scheme, _, token = auth_header.partition(" ")
    token = token.strip()
    if scheme.lower() != "bearer" or not token:
        logger.warning("auth_failure", extra={"reason": "invalid_header_format"})
        return None

    return token


class AuthMiddleware(BaseHTTPMiddleware):
    """Authentication middleware for FastAPI.

    Order of checks:
    1. Skip if public path or CORS preflight
    2. Extract and parse bearer token
    3. Verify token via TokenVerifier
    4. Call bootstrap callback to ensure the local user row exists
    5. Attach Viewer to request state
    """

    def __init__(
        self,
        app: ASGIApp,
        verifier: TokenVerifier,
        bootstrap_callback: Callable[[UUID, str | None], Any] | None = None,
    ):
        """Initialize the auth middleware.

        Args:
            app: The ASGI application.
            verifier: TokenVerifier implementation for JWT verification.
            bootstrap_callback: Function(user_id, email) called after successful
                auth to ensure the user row exists.
        """
        super().__init__(app)
        self.verifier = verifier
        self.bootstrap_callback = bootstrap_callback

    async def dispatch(self, request: Request, call_next) -> JSONResponse:
        """Process the request through auth checks."""
        if request.url.path in PUBLIC_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        token = _extract_bearer_token(request)
        if token is None:
            return _unauthenticated()

        # JWKS fetches are blocking network calls
        try:
            payload = await run_in_threadpool(self.verifier.verify, token)
        except ApiError as e:
            return JSONResponse(
                status_code=e.status_code,
                content=error_response(e.code, e.message),
            )

        user_id = UUID(payload["sub"])
        email = payload.get("email") or None

        if self.bootstrap_callback:
            try:
                await run_in_threadpool(self.bootstrap_callback, user_id, email)
            except Exception as e:
                logger.exception("Bootstrap failed for user %s: %s", user_id, e)
                return JSONResponse(
                    status_code=500,
                    content=error_response(ApiErrorCode.E_INTERNAL, "Internal server error"),
                )

        request.state.viewer = Viewer(user_id=user_id, email=email, access_token=token)
        set_user_context(str(user_id))

        return await call_next(request)


def get_viewer(request: Request) -> Viewer:
    """FastAPI dependency to get the authenticated viewer.

    Raises:
        ApiError: If viewer is not set (middleware didn't run or path is public).
    """
    viewer = getattr(request.state, "viewer", None)
    if viewer is None:
        raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Authentication required")
    return viewer


# Type alias for dependency injection
ViewerDep = Depends(get_viewer)
