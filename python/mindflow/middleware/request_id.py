"""X-Request-ID middleware for request correlation and tracing.

This middleware:
- Accepts a well-formed incoming X-Request-ID or generates a UUID v4
- Attaches the ID to request state and the logging context
- Echoes the ID in response headers
- Logs one access entry after the response is produced

Middleware Ordering (Critical):
- Must be added LAST to run FIRST (FastAPI middleware runs in reverse order)
- Rate limit, body guard and auth rejections then still carry X-Request-ID
"""

import re
import time
import uuid

from fastapi import Request, Response
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from mindflow.logging import clear_request_context, get_logger, set_request_context

REQUEST_ID_HEADER = "X-Request-ID"
MAX_REQUEST_ID_LENGTH = 128

# Alphanumeric, dots, hyphens, underscores
VALID_REQUEST_ID_PATTERN = re.compile(r"^[A-Za-z0-9._-]{1,128}$")

logger = get_logger(__name__)


def normalize_request_id(value: str | None) -> str | None:
    """Return a canonical request ID, or None if the value is unusable.

    UUIDs are lowercased to canonical hyphenated form; other IDs matching
    the safe pattern are kept as-is.
    """
    if not value or len(value.encode("utf-8")) > MAX_REQUEST_ID_LENGTH:
        return None

    try:
        return str(uuid.UUID(value)) if len(value) == 36 else _match_plain(value)
    except ValueError:
        return _match_plain(value)


def _match_plain(value: str) -> str | None:
    return value if VALID_REQUEST_ID_PATTERN.match(value) else None


def generate_request_id() -> str:
    """Generate a new UUID v4 request ID."""
    return str(uuid.uuid4())


class RequestIDMiddleware(BaseHTTPMiddleware):
    """Middleware for X-Request-ID handling and access logging.

    Args:
        app: The ASGI application.
        log_requests: If True, log access entries for each request.
    """

    def __init__(self, app, log_requests: bool = True):
        super().__init__(app)
        self.log_requests = log_requests

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        start_time = time.monotonic()

        request_id = normalize_request_id(request.headers.get(REQUEST_ID_HEADER))
        if request_id is None:
            request_id = generate_request_id()

        request.state.request_id = request_id
        set_request_context(request_id, path=request.url.path, method=request.method)

        try:
            response = await call_next(request)

            viewer = getattr(request.state, "viewer", None)
            if viewer is not None:
                set_request_context(request_id, user_id=str(viewer.user_id))

            response.headers[REQUEST_ID_HEADER] = request_id

            if self.log_requests:
                logger.info(
                    "request_completed",
                    status_code=response.status_code,
                    duration_ms=round((time.monotonic() - start_time) * 1000, 2),
                )

            return response

        except Exception:
            # Re-raised for unhandled_exception_handler
            logger.exception("request_failed")
            raise

        finally:
            clear_request_context()
