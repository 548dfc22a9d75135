"""Test-only token verifier backed by a locally generated RSA keypair.

Not part of the runtime code. It checks the same claims as
SupabaseJwksVerifier (exp with 60s leeway, iss, aud, UUID sub) so config
mistakes show up in tests, but signs and verifies with a key generated once
per test session instead of fetching a JWKS.
"""

import logging
import threading
from typing import Any
from uuid import UUID

import jwt
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import rsa
from jwt.exceptions import (
    DecodeError,
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidIssuerError,
    InvalidSignatureError,
    InvalidTokenError,
)

from mindflow.errors import ApiError, ApiErrorCode

logger = logging.getLogger(__name__)

CLOCK_SKEW_SECONDS = 60

DEFAULT_ISSUER = "test-issuer"
DEFAULT_AUDIENCE = "test-audience"


def generate_private_key_pem() -> bytes:
    """Generate a fresh RSA private key in PEM (PKCS8) form."""
    private_key = rsa.generate_private_key(public_exponent=65537, key_size=2048)
    return private_key.private_bytes(
        encoding=serialization.Encoding.PEM,
        format=serialization.PrivateFormat.PKCS8,
        encryption_algorithm=serialization.NoEncryption(),
    )


class MockJwtVerifier:
    """Verifies RS256 tokens minted with get_private_key().

    Usage:
        verifier = MockJwtVerifier()
        claims = verifier.verify(token)
    """

    # Class-level keypair, generated once
    _private_key: bytes | None = None
    _public_key: bytes | None = None
    _lock = threading.Lock()

    def __init__(self, issuer: str = DEFAULT_ISSUER, audiences: list[str] | None = None):
        self.issuer = issuer
        self.audiences = audiences or [DEFAULT_AUDIENCE]
        self.verified_count = 0
        self._ensure_keypair()

    @classmethod
    def _ensure_keypair(cls) -> None:
        with cls._lock:
            if cls._private_key is None:
                private_pem = generate_private_key_pem()
                private_key = serialization.load_pem_private_key(private_pem, password=None)
                cls._private_key = private_pem
                cls._public_key = private_key.public_key().public_bytes(
                    encoding=serialization.Encoding.PEM,
                    format=serialization.PublicFormat.SubjectPublicKeyInfo,
                )

    @classmethod
    def get_private_key(cls) -> bytes:
        cls._ensure_keypair()
        assert cls._private_key is not None
        return cls._private_key

    @classmethod
    def get_public_key(cls) -> bytes:
        cls._ensure_keypair()
        assert cls._public_key is not None
        return cls._public_key

    def verify(self, token: str) -> dict[str, Any]:
        """Verify a test JWT and return its claims.

        Raises:
            ApiError(E_UNAUTHENTICATED): Token is invalid.
        """
        self.verified_count += 1
        try:
            payload = jwt.decode(
                token,
                self.get_public_key(),
                algorithms=["RS256"],
                audience=self.audiences,
                issuer=self.issuer,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": ["exp", "iss", "sub"], "verify_aud": True},
            )
        except ExpiredSignatureError as e:
            logger.warning("auth_failure", extra={"reason": "expired_token"})
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Token expired") from e
        except InvalidSignatureError as e:
            logger.warning("auth_failure", extra={"reason": "invalid_signature"})
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token signature") from e
        except InvalidIssuerError as e:
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token issuer") from e
        except InvalidAudienceError as e:
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token audience") from e
        except DecodeError as e:
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token format") from e
        except InvalidTokenError as e:
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token") from e

        sub = payload.get("sub")
        try:
            UUID(str(sub))
        except ValueError as e:
            raise ApiError(
                ApiErrorCode.E_UNAUTHENTICATED, "Invalid token: sub is not a valid UUID"
            ) from e

        return payload
