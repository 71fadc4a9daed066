"""Token verification implementations.

Provides:
- TokenVerifier: Protocol for token verification
- HmacJwtVerifier: HS256 verifier using the shared AUTH_JWT_SECRET
"""

import logging
from typing import Any, Protocol
from uuid import UUID

import jwt
from jwt.exceptions import (
    ExpiredSignatureError,
    InvalidAudienceError,
    InvalidTokenError,
)

from agora.errors import ApiError, ApiErrorCode

logger = logging.getLogger(__name__)

# Clock skew allowance in seconds
CLOCK_SKEW_SECONDS = 60

ALGORITHM = "HS256"


class TokenVerifier(Protocol):
    """Protocol for token verification.

    Implementations must verify JWT tokens and return decoded claims.
    """

    def verify(self, token: str) -> dict[str, Any]:
        """Verify token and return decoded claims.

        Raises:
            ApiError(E_UNAUTHENTICATED): Token is invalid, expired, or malformed.
        """
        ...


class HmacJwtVerifier:
    """Token verifier for HS256 JWTs signed with a shared secret.

    Validates:
    - Signature and algorithm (HS256 only)
    - exp with ±60s clock skew
    - aud matches the configured audience
    - sub must be a valid UUID
    """

    def __init__(self, secret: str, audience: str):
        self.secret = secret
        self.audience = audience

    def verify(self, token: str) -> dict[str, Any]:
        try:
            payload = jwt.decode(
                token,
                self.secret,
                algorithms=[ALGORITHM],
                audience=self.audience,
                leeway=CLOCK_SKEW_SECONDS,
                options={"require": ["exp", "sub", "aud"]},
            )
        except ExpiredSignatureError:
            logger.warning("auth_failure", extra={"reason": "token_expired"})
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Token expired") from None
        except InvalidAudienceError:
            logger.warning("auth_failure", extra={"reason": "invalid_audience"})
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token audience") from None
        except InvalidTokenError:
            logger.warning("auth_failure", extra={"reason": "invalid_token"})
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token") from None

        try:
            UUID(str(payload["sub"]))
        except ValueError:
            logger.warning("auth_failure", extra={"reason": "invalid_sub"})
            raise ApiError(ApiErrorCode.E_UNAUTHENTICATED, "Invalid token subject") from None

        return payload
