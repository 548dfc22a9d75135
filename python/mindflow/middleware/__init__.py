"""Middleware modules for MindFlow API."""

from mindflow.middleware.body_guard import BodyGuardMiddleware
from mindflow.middleware.rate_limit import RateLimitMiddleware
from mindflow.middleware.request_id import REQUEST_ID_HEADER, RequestIDMiddleware

__all__ = ["BodyGuardMiddleware", "RateLimitMiddleware", "RequestIDMiddleware", "REQUEST_ID_HEADER"]
