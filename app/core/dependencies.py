"""
FastAPI dependency injection functions.

Provides database-backed stores, Redis connections, the authorization
gateway, permission enforcement, rate limiting and the audit sink.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from uuid import UUID

import redis.asyncio as aioredis
from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authorization import (
    AuthorizationGateway,
    AuthorizedSession,
    AuthSession,
    JWTSessionProvider,
    SessionProvider,
)
from app.core.cache import ResolvedIdCache
from app.core.config import settings
from app.core.database import get_db
from app.core.errors import ReadOnlyOrganization, TooManyRequests
from app.core.rate_limit import RedisRateLimiter, WINDOW_SECONDS, bucket_for
from app.services.audit import AuditSink
from app.services.membership_store import MembershipStore

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# HTTP Bearer scheme (auto_error=False so we can return custom 401)
# ---------------------------------------------------------------------------

bearer_scheme = HTTPBearer(auto_error=False)


def _token(credentials: HTTPAuthorizationCredentials | None) -> str | None:
    return credentials.credentials if credentials is not None else None


# ---------------------------------------------------------------------------
# Redis
# ---------------------------------------------------------------------------

_redis_pool: aioredis.Redis | None = None


async def get_redis() -> aioredis.Redis:
    """
    Return a shared async Redis client.

    Uses a module-level pool so connections are reused across requests.
    """
    global _redis_pool
    if _redis_pool is None:
        _redis_pool = aioredis.from_url(
            str(settings.REDIS_URL),
            encoding="utf-8",
            decode_responses=True,
        )
    return _redis_pool


# ---------------------------------------------------------------------------
# Stores and gateway
# ---------------------------------------------------------------------------

def get_membership_store(db: AsyncSession = Depends(get_db)) -> MembershipStore:
    return MembershipStore(db)


def get_session_provider(redis: aioredis.Redis = Depends(get_redis)) -> SessionProvider:
    return JWTSessionProvider(redis)


def get_gateway(
    provider: SessionProvider = Depends(get_session_provider),
    store: MembershipStore = Depends(get_membership_store),
) -> AuthorizationGateway:
    return AuthorizationGateway(provider, store.lookup_role)


def get_audit_sink() -> AuditSink:
    return AuditSink()


# ---------------------------------------------------------------------------
# Authentication only
# ---------------------------------------------------------------------------

async def get_current_session(
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    gateway: AuthorizationGateway = Depends(get_gateway),
) -> AuthSession:
    """
    Resolve the caller's session. Raises 401 if:
    - No token provided
    - Token is invalid, expired or revoked
    """
    return await gateway.authenticate(_token(credentials))


# ---------------------------------------------------------------------------
# Read-only demo organization
# ---------------------------------------------------------------------------

WRITE_METHODS = frozenset({"POST", "PATCH", "PUT", "DELETE"})

# slug -> organization id; misses are never cached
_org_ids: ResolvedIdCache[str, UUID] = ResolvedIdCache()


async def enforce_demo_read_only(
    request: Request, session: AuthorizedSession, store: MembershipStore
) -> None:
    slug = settings.DEMO_ORG_SLUG
    if not slug or request.method.upper() not in WRITE_METHODS:
        return

    async with store.guard("resolve_demo_org", slug):
        demo_org_id = await _org_ids.get_or_resolve(slug, store.resolve_org_id)
    if demo_org_id is None:
        logger.warning("DEMO_ORG_SLUG %r does not match any organization", slug)
        return

    if session.active_org_id == demo_org_id:
        raise ReadOnlyOrganization()


# ---------------------------------------------------------------------------
# Permission enforcement
# ---------------------------------------------------------------------------

def require_permission(requested: Mapping[str, Iterable[str]]):
    """
    Dependency factory that runs the full authorization gateway.

    Usage:
        @router.post("/...")
        async def endpoint(
            session: AuthorizedSession = Depends(require_permission({"job": ["update"]})),
        ):
            org_id = session.active_org_id
    """
    frozen = {resource: tuple(actions) for resource, actions in requested.items()}

    async def permission_checker(
        request: Request,
        credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
        gateway: AuthorizationGateway = Depends(get_gateway),
        store: MembershipStore = Depends(get_membership_store),
    ) -> AuthorizedSession:
        session = await gateway.authorize(_token(credentials), frozen)
        await enforce_demo_read_only(request, session, store)
        return session

    return permission_checker


# ---------------------------------------------------------------------------
# Rate limiting
# ---------------------------------------------------------------------------

async def enforce_rate_limit(
    request: Request,
    redis: aioredis.Redis = Depends(get_redis),
) -> None:
    """Router-level admission check. No-op unless RATE_LIMIT_ENABLED."""
    if not settings.RATE_LIMIT_ENABLED:
        return

    bucket = bucket_for(request.method)
    if bucket is None:
        return

    client = request.client.host if request.client else "unknown"
    if not await RedisRateLimiter(redis).allow(bucket, client):
        raise TooManyRequests(
            "Too many requests. Please slow down.",
            headers={"Retry-After": str(WINDOW_SECONDS)},
        )
