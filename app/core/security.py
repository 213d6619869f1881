"""
Security utilities.

JWT access-token minting/validation shared with the identity provider,
and Redis key helpers. Passwords and credential checks live in the
identity provider, not here.
"""

from __future__ import annotations

import uuid
from datetime import UTC, datetime, timedelta
from typing import Any
from uuid import UUID

from jose import JWTError, jwt

from app.core.config import settings


# ---------------------------------------------------------------------------
# JWT tokens
# ---------------------------------------------------------------------------

def create_access_token(
    user_id: UUID | str,
    active_org_id: UUID | str | None = None,
    jti: str | None = None,
    expires_in: timedelta | None = None,
) -> str:
    """
    Create a short-lived JWT access token.

    Args:
        user_id: The user's UUID.
        active_org_id: Organization the session is bound to, if any.
        jti: Optional JWT ID. Generated if not provided.
        expires_in: Override for the configured lifetime.

    Returns:
        Signed JWT string.
    """
    now = datetime.now(UTC)
    lifetime = expires_in or timedelta(minutes=settings.JWT_ACCESS_TOKEN_EXPIRE_MINUTES)
    payload: dict[str, Any] = {
        "sub": str(user_id),
        "jti": jti or str(uuid.uuid4()),
        "type": "access",
        "iat": now,
        "exp": now + lifetime,
    }
    if active_org_id is not None:
        payload["org"] = str(active_org_id)
    return jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)


def decode_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT token.

    Raises:
        JWTError: If the token is invalid, expired, or tampered.
    """
    return jwt.decode(token, settings.JWT_SECRET_KEY, algorithms=[settings.JWT_ALGORITHM])


def decode_access_token(token: str) -> dict[str, Any]:
    """
    Decode and validate a JWT access token.

    Raises:
        JWTError: If invalid or wrong type.
    """
    payload = decode_token(token)
    if payload.get("type") != "access":
        raise JWTError("Not an access token")
    return payload


# ---------------------------------------------------------------------------
# Redis key helpers
# ---------------------------------------------------------------------------

def blacklist_redis_key(jti: str) -> str:
    """Redis key for a revoked access token JTI. Format: blacklist:{jti}"""
    return f"blacklist:{jti}"


def rate_limit_redis_key(bucket: str, client: str, window: int) -> str:
    """Redis key for a rate-limit window. Format: ratelimit:{bucket}:{client}:{window}"""
    return f"ratelimit:{bucket}:{client}:{window}"
