"""Per-client rate limiting middleware.

Clients are keyed by remote address. Over-limit requests get an immediate
429 E_RATE_LIMITED with a Retry-After header; allowed responses carry the
remaining budget in X-RateLimit-* headers.
"""

from fastapi import Request, Response
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint

from mindflow.contracts import HEALTH_PATH
from mindflow.errors import ApiErrorCode
from mindflow.responses import error_response
from mindflow.services.rate_limit import RateLimitDecision, RateLimiter

LIMIT_HEADER = "X-RateLimit-Limit"
REMAINING_HEADER = "X-RateLimit-Remaining"

# Not counted against any client
EXEMPT_PATHS = {HEALTH_PATH}


def client_key(request: Request) -> str:
    return request.client.host if request.client else "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Reject requests beyond the per-client budget."""

    def __init__(self, app, limiter: RateLimiter):
        super().__init__(app)
        self.limiter = limiter

    async def _check(self, key: str) -> RateLimitDecision:
        if self.limiter.backend == "redis":
            return await run_in_threadpool(self.limiter.hit, key)
        return self.limiter.hit(key)

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        if request.url.path in EXEMPT_PATHS or request.method == "OPTIONS":
            return await call_next(request)

        decision = await self._check(client_key(request))
        if not decision.allowed:
            return JSONResponse(
                status_code=429,
                content=error_response(
                    ApiErrorCode.E_RATE_LIMITED, "Too many requests, please try again later"
                ),
                headers={
                    "Retry-After": str(decision.retry_after),
                    LIMIT_HEADER: str(decision.limit),
                    REMAINING_HEADER: "0",
                },
            )

        response = await call_next(request)
        response.headers[LIMIT_HEADER] = str(decision.limit)
        response.headers[REMAINING_HEADER] = str(decision.remaining)
        return response
