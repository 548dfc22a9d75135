"""API error definitions.

All API errors are defined here with their corresponding HTTP status codes.
"""

from enum import Enum


class ApiErrorCode(str, Enum):
    """Standardized error codes for the API.

    Format: E_CATEGORY_NAME
    """

    # Authentication errors (401)
    E_UNAUTHENTICATED = "E_UNAUTHENTICATED"
    E_INVALID_CREDENTIALS = "E_INVALID_CREDENTIALS"

    # Authorization errors (403)
    E_FORBIDDEN = "E_FORBIDDEN"

    # Not found errors (404)
    E_NOT_FOUND = "E_NOT_FOUND"
    E_ENTRY_NOT_FOUND = "E_ENTRY_NOT_FOUND"

    # Validation errors (400)
    E_INVALID_REQUEST = "E_INVALID_REQUEST"
    E_INVALID_CURSOR = "E_INVALID_CURSOR"
    E_INVALID_DATE_RANGE = "E_INVALID_DATE_RANGE"

    # Conflict (409)
    E_EMAIL_TAKEN = "E_EMAIL_TAKEN"

    # Request size (413)
    E_PAYLOAD_TOO_LARGE = "E_PAYLOAD_TOO_LARGE"

    # Throttling (429)
    E_RATE_LIMITED = "E_RATE_LIMITED"

    # Server errors
    E_AUTH_UNAVAILABLE = "E_AUTH_UNAVAILABLE"  # 503
    E_INTERNAL = "E_INTERNAL"  # 500


# Error code to HTTP status mapping
ERROR_CODE_TO_STATUS: dict[ApiErrorCode, int] = {
    ApiErrorCode.E_UNAUTHENTICATED: 401,
    ApiErrorCode.E_INVALID_CREDENTIALS: 401,
    ApiErrorCode.E_FORBIDDEN: 403,
    ApiErrorCode.E_NOT_FOUND: 404,
    ApiErrorCode.E_ENTRY_NOT_FOUND: 404,
    ApiErrorCode.E_INVALID_REQUEST: 400,
    ApiErrorCode.E_INVALID_CURSOR: 400,
    ApiErrorCode.E_INVALID_DATE_RANGE: 400,
    ApiErrorCode.E_EMAIL_TAKEN: 409,
    ApiErrorCode.E_PAYLOAD_TOO_LARGE: 413,
    ApiErrorCode.E_RATE_LIMITED: 429,
    ApiErrorCode.E_AUTH_UNAVAILABLE: 503,
    ApiErrorCode.E_INTERNAL: 500,
}


class ApiError(Exception):
    """Base exception for API errors.

    Attributes:
        code: The error code enum value
        message: Human-readable error message
        status_code: HTTP status code (derived from code)
        details: Optional field-level problems (validation errors only)
    """

    def __init__(
        self,
        code: ApiErrorCode,
        message: str,
        details: list[dict[str, str]] | None = None,
    ):
        self.code = code
        self.message = message
        self.details = details
        self.status_code = ERROR_CODE_TO_STATUS.get(code, 500)
        super().__init__(message)


class NotFoundError(ApiError):
    """Resource not found error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_NOT_FOUND, message: str = "Not found"):
        super().__init__(code, message)


class ForbiddenError(ApiError):
    """Authorization failure error."""

    def __init__(self, code: ApiErrorCode = ApiErrorCode.E_FORBIDDEN, message: str = "Forbidden"):
        super().__init__(code, message)


class InvalidRequestError(ApiError):
    """Invalid request error."""

    def __init__(
        self,
        code: ApiErrorCode = ApiErrorCode.E_INVALID_REQUEST,
        message: str = "Invalid request",
        details: list[dict[str, str]] | None = None,
    ):
        super().__init__(code, message, details)
