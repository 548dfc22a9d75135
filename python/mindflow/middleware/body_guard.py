"""Request body guard middleware.

Rejects bodies larger than MAX_BODY_BYTES (413) and malformed JSON bodies
(400) before they reach route handlers.
"""

import json

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from mindflow.errors import ApiErrorCode
from mindflow.logging import get_logger
from mindflow.responses import error_response

logger = get_logger(__name__)

BODY_METHODS = {"POST", "PUT", "PATCH"}


def _too_large() -> JSONResponse:
    return JSONResponse(
        status_code=413,
        content=error_response(ApiErrorCode.E_PAYLOAD_TOO_LARGE, "Request body too large"),
    )


class BodyGuardMiddleware(BaseHTTPMiddleware):
    """Enforce the request body size cap and JSON well-formedness."""

    def __init__(self, app, max_body_bytes: int):
        super().__init__(app)
        self.max_body_bytes = max_body_bytes

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.method not in BODY_METHODS:
            return await call_next(request)

        declared = request.headers.get("content-length")
        if declared and declared.isdigit() and int(declared) > self.max_body_bytes:
            logger.warning("request_body_too_large", declared_bytes=int(declared))
            return _too_large()

        body = await request.body()
        if len(body) > self.max_body_bytes:
            logger.warning("request_body_too_large", body_bytes=len(body))
            return _too_large()

        content_type = request.headers.get("content-type", "")
        if body and "application/json" in content_type:
            try:
                json.loads(body)
            except (json.JSONDecodeError, UnicodeDecodeError):
                return JSONResponse(
                    status_code=400,
                    content=error_response(ApiErrorCode.E_INVALID_REQUEST, "Malformed JSON body"),
                )

        return await call_next(request)
