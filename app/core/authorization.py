"""
Authorization gateway.

The only way an API handler reaches tenant data:

1. Resolve the session from the identity provider (401 if absent).
2. Require an active organization on the session (403 if absent).
3. Resolve the caller's role in that organization and evaluate the
   permission table (403 if denied).

Routes used before a user belongs to any organization (join-request
submission, invite-link acceptance, org search) stop after step 1.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable, Iterable, Mapping
from dataclasses import dataclass
from typing import Protocol
from uuid import UUID

import redis.asyncio as aioredis
from jose import JWTError

from app.core import permissions
from app.core.errors import Forbidden, NoActiveOrganization, Unauthenticated
from app.core.security import blacklist_redis_key, decode_access_token

PermissionRequest = Mapping[str, Iterable[str]]
RoleLookup = Callable[[UUID, UUID], Awaitable[str | None]]


@dataclass(frozen=True)
class AuthSession:
    """Session as reported by the identity provider."""

    user_id: UUID
    active_org_id: UUID | None = None


@dataclass(frozen=True)
class AuthorizedSession:
    """Session that passed all three gateway steps."""

    user_id: UUID
    active_org_id: UUID
    role: str


class SessionProvider(Protocol):
    async def resolve(self, token: str | None) -> AuthSession | None: ...


class JWTSessionProvider:
    """Reads sessions from identity-provider access tokens."""

    def __init__(self, redis: aioredis.Redis) -> None:
        self.redis = redis

    async def resolve(self, token: str | None) -> AuthSession | None:
        if not token:
            return None

        try:
            payload = decode_access_token(token)
            sub_claim = payload.get("sub")
            org_claim = payload.get("org")
            if not isinstance(sub_claim, str) or not isinstance(org_claim, str | None):
                return None
            user_id = UUID(sub_claim)
            active_org_id = UUID(org_claim) if org_claim else None
        except (JWTError, ValueError):
            return None

        jti: str = payload.get("jti", "")
        if jti and await self.redis.exists(blacklist_redis_key(jti)):
            return None

        return AuthSession(user_id=user_id, active_org_id=active_org_id)


class AuthorizationGateway:
    """Read-only: never writes to the store."""

    def __init__(self, provider: SessionProvider, role_lookup: RoleLookup) -> None:
        self.provider = provider
        self.role_lookup = role_lookup

    async def authenticate(self, token: str | None) -> AuthSession:
        session = await self.provider.resolve(token)
        if session is None:
            raise Unauthenticated()
        return session

    async def authorize(
        self, token: str | None, requested: PermissionRequest
    ) -> AuthorizedSession:
        session = await self.authenticate(token)

        if session.active_org_id is None:
            raise NoActiveOrganization()

        role = await self.role_lookup(session.user_id, session.active_org_id)
        if not permissions.check(role, requested):
            raise Forbidden()

        return AuthorizedSession(
            user_id=session.user_id,
            active_org_id=session.active_org_id,
            role=str(getattr(role, "value", role)),
        )
