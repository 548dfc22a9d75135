"""Health check endpoint (public)."""

from datetime import UTC, datetime

from fastapi import APIRouter

from mindflow.config import get_settings
from mindflow.contracts import HEALTH_PATH
from mindflow.responses import success_response

router = APIRouter()


@router.get(HEALTH_PATH)
async def health_check() -> dict:
    """Liveness check.

    Reports that the process is up; does not touch the database or the
    auth provider.
    """
    return success_response(
        {
            "status": "ok",
            "message": "MindFlow API is running",
            "timestamp": datetime.now(UTC).isoformat(),
            "environment": get_settings().mindflow_env.value,
        }
    )
