"""
Authorization gateway tests.

Verifies that:
- Missing, malformed, expired and revoked tokens get 401
- A session without an active organization gets 403 on org-scoped routes
- Non-members and under-privileged members get 403
- Authentication-only routes work without an active organization
- Writes against the read-only demo organization are refused
"""

import uuid
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock

import pytest
from jose import jwt

from app.core.authorization import AuthorizationGateway, AuthSession, JWTSessionProvider
from app.core.config import settings
from app.core.errors import Forbidden, NoActiveOrganization, Unauthenticated
from app.core.security import create_access_token
from app.models.member import OrgRole
from tests.conftest import bearer


class StaticProvider:
    def __init__(self, session: AuthSession | None) -> None:
        self.session = session

    async def resolve(self, token):
        return self.session


# ---------------------------------------------------------------------------
# Gateway unit
# ---------------------------------------------------------------------------

class TestGateway:
    async def test_missing_session_is_unauthenticated(self):
        gateway = AuthorizationGateway(StaticProvider(None), AsyncMock())
        with pytest.raises(Unauthenticated) as exc_info:
            await gateway.authorize("t", {"job": ["read"]})
        assert exc_info.value.status_code == 401
        assert exc_info.value.headers == {"WWW-Authenticate": "Bearer"}

    async def test_no_active_org_stops_before_role_lookup(self):
        lookup = AsyncMock()
        gateway = AuthorizationGateway(StaticProvider(AuthSession(uuid.uuid4())), lookup)
        with pytest.raises(NoActiveOrganization):
            await gateway.authorize("t", {"job": ["read"]})
        lookup.assert_not_awaited()

    async def test_non_member_is_forbidden(self):
        session = AuthSession(uuid.uuid4(), uuid.uuid4())
        gateway = AuthorizationGateway(StaticProvider(session), AsyncMock(return_value=None))
        with pytest.raises(Forbidden):
            await gateway.authorize("t", {"job": ["read"]})

    async def test_returns_session_with_role(self):
        session = AuthSession(uuid.uuid4(), uuid.uuid4())
        lookup = AsyncMock(return_value=OrgRole.admin)
        gateway = AuthorizationGateway(StaticProvider(session), lookup)

        authorized = await gateway.authorize("t", {"invitation": ["create"]})

        assert authorized.user_id == session.user_id
        assert authorized.active_org_id == session.active_org_id
        assert authorized.role == "admin"
        lookup.assert_awaited_once_with(session.user_id, session.active_org_id)

    async def test_authenticate_skips_org_checks(self):
        session = AuthSession(uuid.uuid4())
        gateway = AuthorizationGateway(StaticProvider(session), AsyncMock())
        assert await gateway.authenticate("t") == session


class TestJWTSessionProvider:
    async def test_resolves_claims(self):
        user_id, org_id = uuid.uuid4(), uuid.uuid4()
        redis = AsyncMock()
        redis.exists.return_value = 0
        provider = JWTSessionProvider(redis)

        session = await provider.resolve(create_access_token(user_id, org_id))

        assert session == AuthSession(user_id=user_id, active_org_id=org_id)

    @pytest.mark.parametrize("token", [None, "", "not-a-jwt"])
    async def test_rejects_garbage(self, token):
        provider = JWTSessionProvider(AsyncMock())
        assert await provider.resolve(token) is None

    async def test_rejects_expired(self):
        provider = JWTSessionProvider(AsyncMock())
        token = create_access_token(uuid.uuid4(), expires_in=timedelta(seconds=-5))
        assert await provider.resolve(token) is None

    async def test_rejects_blacklisted(self):
        redis = AsyncMock()
        redis.exists.return_value = 1
        provider = JWTSessionProvider(redis)
        assert await provider.resolve(create_access_token(uuid.uuid4(), jti="revoked")) is None
        redis.exists.assert_awaited_once_with("blacklist:revoked")

    @pytest.mark.parametrize("claims", [
        {"sub": 12345},
        {"sub": ["not", "a", "uuid"]},
        {"org": 42},
        {"org": {"id": "nested"}},
    ])
    async def test_rejects_non_string_identity_claims(self, claims):
        redis = AsyncMock()
        redis.exists.return_value = 0
        payload = {
            "sub": str(uuid.uuid4()),
            "jti": "j1",
            "type": "access",
            "exp": datetime.now(UTC) + timedelta(minutes=5),
            **claims,
        }
        token = jwt.encode(payload, settings.JWT_SECRET_KEY, algorithm=settings.JWT_ALGORITHM)

        assert await JWTSessionProvider(redis).resolve(token) is None


# ---------------------------------------------------------------------------
# Over HTTP
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_unauthenticated_request_rejected(client):
    resp = await client.get("/api/v1/invite-links")
    assert resp.status_code == 401
    assert resp.json()["detail"]["code"] == "UNAUTHENTICATED"


@pytest.mark.asyncio
async def test_revoked_token_rejected(client, seed, redis_mock):
    owner = await seed.user()
    org = await seed.organization(owner)
    redis_mock.exists.return_value = 1

    resp = await client.get("/api/v1/invite-links", headers=bearer(owner.id, org.id))
    assert resp.status_code == 401


@pytest.mark.asyncio
async def test_session_without_active_org_rejected(client, seed):
    owner = await seed.user()
    await seed.organization(owner)

    resp = await client.get("/api/v1/invite-links", headers=bearer(owner.id))
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "NO_ACTIVE_ORGANIZATION"


@pytest.mark.asyncio
async def test_member_cannot_create_invite_link(client, seed):
    owner, member = await seed.user(), await seed.user()
    org = await seed.organization(owner)
    await seed.member(member, org, OrgRole.member)

    resp = await client.post("/api/v1/invite-links", json={}, headers=bearer(member.id, org.id))
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "FORBIDDEN"


@pytest.mark.asyncio
async def test_org_search_needs_authentication_only(client, seed):
    outsider = await seed.user()
    await seed.organization(await seed.user(), name="Globex Talent")

    resp = await client.get("/api/v1/org-search", params={"q": "globex"}, headers=bearer(outsider.id))
    assert resp.status_code == 200
    assert [org["name"] for org in resp.json()] == ["Globex Talent"]


# ---------------------------------------------------------------------------
# Read-only demo organization
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_demo_org_rejects_writes(client, seed, monkeypatch):
    owner = await seed.user()
    org = await seed.organization(owner)
    monkeypatch.setattr(settings, "DEMO_ORG_SLUG", org.slug)

    resp = await client.post(
        "/api/v1/invite-links", json={}, headers=bearer(owner.id, org.id)
    )
    assert resp.status_code == 403
    assert resp.json()["detail"]["code"] == "PREVIEW_READ_ONLY"

    resp = await client.get("/api/v1/invite-links", headers=bearer(owner.id, org.id))
    assert resp.status_code == 200


@pytest.mark.asyncio
async def test_demo_guard_leaves_other_orgs_alone(client, seed, monkeypatch):
    owner = await seed.user()
    demo = await seed.organization(await seed.user())
    org = await seed.organization(owner)
    monkeypatch.setattr(settings, "DEMO_ORG_SLUG", demo.slug)

    resp = await client.post(
        "/api/v1/invite-links", json={}, headers=bearer(owner.id, org.id)
    )
    assert resp.status_code == 201


@pytest.mark.asyncio
async def test_health_needs_no_token(client):
    resp = await client.get("/health")
    assert resp.status_code == 200
    assert resp.json()["status"] == "ok"
