"""API route definitions.

Uses a factory pattern to avoid import-time settings loading.
This allows tests to import modules without requiring all environment
variables to be configured upfront.
"""

from fastapi import APIRouter

from mindflow.api.routes.auth import router as auth_router
from mindflow.api.routes.entries import router as entries_router
from mindflow.api.routes.health import router as health_router
from mindflow.api.routes.insights import router as insights_router
from mindflow.api.routes.me import router as me_router


def create_api_router() -> APIRouter:
    """Create and configure the API router.

    Returns:
        Configured APIRouter with all routes registered.
    """
    api_router = APIRouter()
    api_router.include_router(health_router, tags=["health"])
    api_router.include_router(auth_router)
    api_router.include_router(me_router, tags=["user"])
    api_router.include_router(entries_router)
    api_router.include_router(insights_router)
    return api_router


__all__ = ["create_api_router"]
