"""API response envelope helpers and exception handlers.

All API responses use a consistent envelope:
- Success: { "success": true, "data": ... }
- Error: { "success": false, "error": "...", "code": "E_...", "requestId": "..." }

Validation failures additionally carry "details": [{"field": ..., "message": ...}].
The requestId is included in error responses for debugging and support.
"""

from typing import Any

from fastapi import Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from mindflow.errors import ApiError, ApiErrorCode
from mindflow.logging import get_logger, get_request_id

logger = get_logger(__name__)

# Location prefixes FastAPI adds to validation error paths
_LOCATION_ROOTS = {"body", "query", "path", "header", "cookie"}


def success_response(data: Any) -> dict[str, Any]:
    """Create a success response envelope.

    Args:
        data: The response data to wrap.

    Returns:
        Dict with "success" flag and "data" key containing the response.
    """
    return {"success": True, "data": data}


def error_response(
    code: ApiErrorCode,
    message: str,
    request_id: str | None = None,
    details: list[dict[str, str]] | None = None,
) -> dict[str, Any]:
    """Create an error response envelope.

    Args:
        code: The error code enum value.
        message: Human-readable error message.
        request_id: Optional request ID for correlation (auto-populated from context if None).
        details: Optional field-level problems.

    Returns:
        Dict with success=False, error message, code, and request_id.
    """
    if request_id is None:
        request_id = get_request_id()

    body: dict[str, Any] = {"success": False, "error": message, "code": code.value}
    if request_id:
        body["requestId"] = request_id
    if details:
        body["details"] = details

    return body


def validation_details(errors: list[dict[str, Any]]) -> list[dict[str, str]]:
    """Flatten pydantic/FastAPI validation errors into field-level messages."""
    details = []
    for err in errors:
        loc = [str(part) for part in err.get("loc", ()) if part not in _LOCATION_ROOTS]
        details.append({"field": ".".join(loc) or "body", "message": err.get("msg", "Invalid")})
    return details


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    """Handle ApiError exceptions and return proper JSON response."""
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(exc.code, exc.message, details=exc.details),
    )


async def validation_exception_handler(
    request: Request, exc: RequestValidationError
) -> JSONResponse:
    """Handle request validation errors with a field-level message."""
    details = validation_details(list(exc.errors()))
    if details:
        first = details[0]
        message = f"{first['field']}: {first['message']}"
    else:
        message = "Invalid request body"
    return JSONResponse(
        status_code=400,
        content=error_response(ApiErrorCode.E_INVALID_REQUEST, message, details=details),
    )


async def http_exception_handler(request: Request, exc: Any) -> JSONResponse:
    """Handle FastAPI HTTPException and return proper JSON response."""
    status_to_code = {
        400: ApiErrorCode.E_INVALID_REQUEST,
        401: ApiErrorCode.E_UNAUTHENTICATED,
        403: ApiErrorCode.E_FORBIDDEN,
        404: ApiErrorCode.E_NOT_FOUND,
        405: ApiErrorCode.E_INVALID_REQUEST,
        413: ApiErrorCode.E_PAYLOAD_TOO_LARGE,
        422: ApiErrorCode.E_INVALID_REQUEST,
        429: ApiErrorCode.E_RATE_LIMITED,
    }
    code = status_to_code.get(exc.status_code, ApiErrorCode.E_INTERNAL)
    message = str(exc.detail) if exc.detail else "An error occurred"
    return JSONResponse(
        status_code=exc.status_code,
        content=error_response(code, message),
    )


async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Handle unhandled exceptions and return 500 with E_INTERNAL.

    Logs the exception server-side but never leaks details to client.
    """
    logger.exception("unhandled_exception", error_type=type(exc).__name__)

    return JSONResponse(
        status_code=500,
        content=error_response(ApiErrorCode.E_INTERNAL, "Internal server error"),
    )
