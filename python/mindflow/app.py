"""FastAPI application creation and configuration.

This module creates and configures the FastAPI application instance.
It registers exception handlers, middleware, and routes.

Token Verification:
- All environments use SupabaseJwksVerifier; only the env values change
- Tests pass their own verifier through create_app(token_verifier=...)

Middleware Ordering (Critical):
- Middleware runs in reverse order of registration
- RequestIDMiddleware is added LAST so it runs FIRST (outermost)

Actual execution order per request:
1. RequestIDMiddleware (sets request_id, starts timer)
2. CORSMiddleware (answers preflights)
3. RateLimitMiddleware (per-client budget, 429)
4. BodyGuardMiddleware (413 oversize, 400 malformed JSON)
5. AuthMiddleware (verifies token, bootstraps user, sets viewer)
6. Route handler

Auth Provider Lifecycle:
- A shared httpx.AsyncClient is created at startup and stored in app.state
- The auth provider client wraps it for connection pooling
- The client is closed at shutdown
"""

from contextlib import asynccontextmanager
from uuid import UUID

import httpx
from fastapi import FastAPI
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from starlette.exceptions import HTTPException as StarletteHTTPException

from mindflow.api.routes import create_api_router
from mindflow.auth.middleware import AuthMiddleware
from mindflow.auth.provider import get_auth_client
from mindflow.auth.verifier import SupabaseJwksVerifier
from mindflow.config import get_settings
from mindflow.db.models import User
from mindflow.db.session import get_session_factory
from mindflow.errors import ApiError
from mindflow.logging import configure_logging, get_logger
from mindflow.middleware.body_guard import BodyGuardMiddleware
from mindflow.middleware.rate_limit import RateLimitMiddleware
from mindflow.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware
from mindflow.responses import (
    api_error_handler,
    http_exception_handler,
    unhandled_exception_handler,
    validation_exception_handler,
)
from mindflow.services.bootstrap import ensure_user
from mindflow.services.rate_limit import build_rate_limiter

logger = get_logger(__name__)


def create_bootstrap_callback():
    """Create a bootstrap callback that creates its own database session.

    The callback is called by the auth middleware for each authenticated request.
    It creates a fresh database session, runs the bootstrap, and closes it.
    """
    session_factory = get_session_factory()

    def bootstrap(user_id: UUID, email: str | None = None) -> User:
        db = session_factory()
        try:
            return ensure_user(db, user_id, email)
        finally:
            db.close()

    return bootstrap


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Manage application lifecycle resources.

    - Creates the shared httpx.AsyncClient for auth provider calls
    - Builds the auth provider client around it
    - Closes the client on shutdown
    """
    settings = get_settings()

    app.state.httpx_client = httpx.AsyncClient(
        timeout=httpx.Timeout(10.0, connect=5.0),
        limits=httpx.Limits(max_connections=50, max_keepalive_connections=10),
    )
    app.state.auth_client = get_auth_client(settings, app.state.httpx_client)
    logger.info(
        "auth_provider_initialized",
        provider=type(app.state.auth_client).__name__,
    )

    yield

    await app.state.httpx_client.aclose()
    logger.info("httpx_client_closed")


def create_app(
    skip_auth_middleware: bool = False,
    token_verifier=None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        skip_auth_middleware: If True, skip adding auth middleware (for testing).
        token_verifier: Optional custom token verifier (for testing).

    Returns:
        Configured FastAPI application instance.
    """
    settings = get_settings()
    configure_logging(json_format=settings.log_format == "json")

    app = FastAPI(
        title="MindFlow API",
        description="Backend API for MindFlow - a mood-tagged personal journal",
        version="0.1.0",
        docs_url="/docs",
        redoc_url="/redoc",
        lifespan=lifespan,
    )

    # Register exception handlers
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(RequestValidationError, validation_exception_handler)
    app.add_exception_handler(StarletteHTTPException, http_exception_handler)
    app.add_exception_handler(Exception, unhandled_exception_handler)

    app.include_router(create_api_router())

    # Innermost first: auth runs after the cheap rejections
    if not skip_auth_middleware:
        verifier = token_verifier or SupabaseJwksVerifier.from_settings(settings)
        app.add_middleware(
            AuthMiddleware,
            verifier=verifier,
            bootstrap_callback=create_bootstrap_callback(),
        )
        logger.info("auth_middleware_enabled", env=settings.mindflow_env.value)

    app.add_middleware(BodyGuardMiddleware, max_body_bytes=settings.max_body_bytes)

    rate_limiter = build_rate_limiter(
        settings.redis_url, settings.rate_limit_requests, settings.rate_limit_window_s
    )
    app.state.rate_limiter = rate_limiter
    app.add_middleware(RateLimitMiddleware, limiter=rate_limiter)
    logger.info(
        "rate_limit_enabled",
        backend=rate_limiter.backend,
        max_requests=settings.rate_limit_requests,
        window_s=settings.rate_limit_window_s,
    )

    cors_origins = settings.cors_origin_list
    if cors_origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=cors_origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"],
            allow_headers=["Authorization", "Content-Type", REQUEST_ID_HEADER],
            expose_headers=[REQUEST_ID_HEADER, "Retry-After"],
        )
        logger.info("cors_middleware_enabled", origins=cors_origins)

    return app


def add_request_id_middleware(app: FastAPI, log_requests: bool = True) -> None:
    """Add request-id middleware to the app.

    This should be called AFTER all other middleware is added, so it runs FIRST.
    This ensures every response includes X-Request-ID, including auth failures.

    Args:
        app: The FastAPI application.
        log_requests: Whether to log access entries for each request.
    """
    app.add_middleware(RequestIDMiddleware, log_requests=log_requests)
    logger.info("request_id_middleware_enabled")
