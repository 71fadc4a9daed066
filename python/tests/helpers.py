"""Test helpers for authentication, settings, and common test operations.

Provides:
- Token minting for test authentication
- Header generation for test requests
- Settings construction with test defaults
"""

import time
from uuid import UUID

import jwt

from agora.config import Settings

TEST_SECRET = "test-secret-for-agora-tests-0123456789"
TEST_AUDIENCE = "agora-test"
DEFAULT_EXPIRES_IN = 3600  # 1 hour


def make_settings(**overrides) -> Settings:
    """Build a Settings instance with test defaults + overrides (env-var names)."""
    defaults = {
        "DATABASE_URL": "sqlite+pysqlite:///:memory:",
        "AGORA_ENV": "test",
        "SITE_BASE_URL": "https://forum.test",
    }
    defaults.update(overrides)
    return Settings(**defaults)


def mint_test_token(
    user_id: UUID | str,
    expires_in: int = DEFAULT_EXPIRES_IN,
    audience: str = TEST_AUDIENCE,
    secret: str = TEST_SECRET,
    **extra_claims,
) -> str:
    """Mint a valid HS256 test JWT for user_id."""
    now = int(time.time())
    payload = {
        "sub": str(user_id),
        "aud": audience,
        "iat": now,
        "exp": now + expires_in,
        **extra_claims,
    }
    return jwt.encode(payload, secret, algorithm="HS256")


def auth_headers(user_id: UUID | str, **kwargs) -> dict[str, str]:
    """Authorization header carrying a freshly minted token."""
    return {"Authorization": f"Bearer {mint_test_token(user_id, **kwargs)}"}
