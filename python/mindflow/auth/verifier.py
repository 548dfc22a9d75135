"""Token verification implementations.

Provides:
- TokenVerifier: Protocol for token verification
- SupabaseJwksVerifier: Verifier using Supabase JWKS (used in all environments)

Note: Test-only verifiers are in tests/support/mock_verifier.py
"""

import logging
import threading
from typing import Any, Protocol
from uuid import UUID

import jwt
from jwt import PyJWKClient
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
    PyJWKClientError,
)

from mindflow.config import Settings
from mindflow.errors import ApiError, ApiErrorCode

logger = logging.getLogger(__name__)

# Clock skew allowance in seconds
CLOCK_SKEW_SECONDS = 60

# Supabase cloud signs with RS256, Supabase local with ES256
ALLOWED_ALGORITHMS = ["RS256", "ES256"]

# Checked in order; subclasses must precede InvalidTokenError
_DECODE_FAILURES: tuple[tuple[type[InvalidTokenError], str, str], ...] = (
    (ExpiredSignatureError, "expired_token", "Token expired"),
    (InvalidSignatureError, "invalid_signature", "Invalid token signature"),
    (InvalidIssuerError, "invalid_issuer", "Invalid token issuer"),
    (InvalidAudienceError, "invalid_audience", "Invalid token audience"),
    (DecodeError, "decode_error", "Invalid token format"),
    (InvalidTokenError, "invalid_token", "Invalid token"),
)


def _unauthenticated(reason: str, message: str) -> ApiError:
    logger.warning("auth_failure", extra={"reason": reason})
    return ApiError(ApiErrorCode.E_UNAUTHENTICATED, message)


class TokenVerifier(Protocol):
    """Protocol for token verification.

    Implementations must verify JWT tokens and return decoded claims.
    """

    def verify(self, token: str) -> dict[str, Any]:
        """Verify token and return decoded claims.

        Raises:
            ApiError(E_UNAUTHENTICATED): Token is invalid, expired, or malformed.
            ApiError(E_AUTH_UNAVAILABLE): Infrastructure failure (JWKS unreachable).
        """
        ...


class SupabaseJwksVerifier:
    """Token verifier backed by the Supabase JWKS endpoint.

    Validates:
    - Signature via JWKS (RS256 or ES256)
    - exp with a 60s clock skew allowance
    - iss matches the configured issuer (trailing slash stripped)
    - aud is one of the configured audiences
    - sub is present and a valid UUID
    """

    def __init__(
        self,
        jwks_url: str,
        issuer: str,
        audiences: list[str],
        cache_ttl: int = 3600,
    ):
        self.jwks_url = jwks_url
        self.issuer = issuer.rstrip("/")
        self.audiences = audiences
        self.cache_ttl = cache_ttl

        self._jwks_client: PyJWKClient | None = None
        self._jwks_lock = threading.Lock()

    @classmethod
    def from_settings(cls, settings: Settings) -> "SupabaseJwksVerifier":
        return cls(
            jwks_url=settings.supabase_jwks_url,
            issuer=settings.normalized_issuer,
            audiences=settings.audience_list,
        )

    def _new_jwks_client(self) -> PyJWKClient:
        return PyJWKClient(self.jwks_url, cache_keys=True, lifespan=self.cache_ttl)

    def _get_jwks_client(self) -> PyJWKClient:
        """Get or lazily create the cached JWKS client."""
        with self._jwks_lock:
            if self._jwks_client is None:
                self._jwks_client = self._new_jwks_client()
            return self._jwks_client

    def _refresh_jwks(self) -> PyJWKClient:
        """Drop cached keys after a kid miss (keys may have rotated)."""
        with self._jwks_lock:
            self._jwks_client = self._new_jwks_client()
            return self._jwks_client

    def verify(self, token: str) -> dict[str, Any]:
        """Verify a Supabase JWT and return its claims.

        Raises:
            ApiError(E_UNAUTHENTICATED): Token is invalid.
            ApiError(E_AUTH_UNAVAILABLE): JWKS fetch failed.
        """
        signing_key = self._get_signing_key(token)

        try:
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=ALLOWED_ALGORITHMS,
                audience=self.audiences,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": ["exp", "iss", "sub"], "verify_aud": True},
            )
        except InvalidTokenError as e:
            for exc_type, reason, message in _DECODE_FAILURES:
                if isinstance(e, exc_type):
                    raise _unauthenticated(reason, message) from e
            raise

        sub = payload.get("sub")
        if not sub:
            raise _unauthenticated("missing_sub", "Invalid token: missing sub")
        try:
            UUID(str(sub))
        except ValueError as e:
            raise _unauthenticated("invalid_sub", "Invalid token: sub is not a valid UUID") from e

        return payload

    def _get_signing_key(self, token: str) -> Any:
        """Resolve the signing key for the token's kid, refreshing once on a miss.

        Raises:
            ApiError(E_UNAUTHENTICATED): Malformed header or kid unknown after refresh.
            ApiError(E_AUTH_UNAVAILABLE): JWKS endpoint unreachable.
        """
        try:
            return self._get_jwks_client().get_signing_key_from_jwt(token)
        except DecodeError as e:
            raise _unauthenticated("decode_error", "Invalid token format") from e
        except PyJWKClientError as e:
            if not _is_kid_miss(e):
                logger.warning("auth_failure", extra={"reason": "jwks_unavailable", "error": str(e)})
                raise ApiError(
                    ApiErrorCode.E_AUTH_UNAVAILABLE, "Authentication service unavailable"
                ) from e

        logger.info("Refreshing JWKS due to kid miss")
        try:
            return self._refresh_jwks().get_signing_key_from_jwt(token)
        except PyJWKClientError as e:
            if _is_kid_miss(e):
                raise _unauthenticated("kid_not_found", "Invalid token: signing key not found") from e
            logger.warning("auth_failure", extra={"reason": "jwks_unavailable", "error": str(e)})
            raise ApiError(
                ApiErrorCode.E_AUTH_UNAVAILABLE, "Authentication service unavailable"
            ) from e


def _is_kid_miss(error: PyJWKClientError) -> bool:
    message = str(error)
    return "Unable to find" in message or "kid" in message.lower()
