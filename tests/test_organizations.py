"""
Organization creation and search tests.
"""

import pytest
from sqlalchemy import select

from app.models.member import OrgMember, OrgRole
from app.services.membership_store import MembershipStore
from app.services.organization_service import escape_like
from tests.conftest import bearer, unique_slug


@pytest.mark.asyncio
async def test_create_organization_makes_creator_owner(client, seed):
    creator = await seed.user()
    slug = unique_slug("acme")

    resp = await client.post(
        "/api/v1/organizations",
        json={"name": "Acme Hiring", "slug": slug},
        headers=bearer(creator.id),
    )

    assert resp.status_code == 201, resp.text
    org = resp.json()
    assert org["slug"] == slug
    role = await seed.scalar(
        select(OrgMember.role).where(OrgMember.user_id == creator.id)
    )
    assert role == OrgRole.owner


@pytest.mark.asyncio
async def test_duplicate_slug_conflicts(client, seed):
    first, second = await seed.user(), await seed.user()
    slug = unique_slug("dupe")

    await client.post(
        "/api/v1/organizations", json={"name": "One", "slug": slug}, headers=bearer(first.id)
    )
    resp = await client.post(
        "/api/v1/organizations", json={"name": "Two", "slug": slug}, headers=bearer(second.id)
    )

    assert resp.status_code == 409
    assert resp.json()["detail"]["code"] == "SLUG_TAKEN"
    assert await seed.scalar(select(OrgMember).where(OrgMember.user_id == second.id)) is None


@pytest.mark.asyncio
@pytest.mark.parametrize("slug", ["ab", "-acme", "acme-", "Acme", "ac me"])
async def test_invalid_slug_rejected(client, seed, slug):
    creator = await seed.user()
    resp = await client.post(
        "/api/v1/organizations", json={"name": "Acme", "slug": slug}, headers=bearer(creator.id)
    )
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_organization_gone_before_reload_is_not_found(client, seed, monkeypatch):
    creator = await seed.user()

    async def deleted_meanwhile(self, org_id):
        return None

    monkeypatch.setattr(MembershipStore, "get_organization", deleted_meanwhile)

    resp = await client.post(
        "/api/v1/organizations",
        json={"name": "Vanishing Co", "slug": unique_slug("gone")},
        headers=bearer(creator.id),
    )

    assert resp.status_code == 404
    assert resp.json()["detail"]["code"] == "ORG_NOT_FOUND"


# ---------------------------------------------------------------------------
# Search
# ---------------------------------------------------------------------------

@pytest.mark.asyncio
async def test_search_by_name_and_exact_slug(client, seed):
    user = await seed.user()
    by_name = await seed.organization(await seed.user(), name="Northwind Recruiting")
    other = await seed.organization(await seed.user(), name="Contoso")

    resp = await client.get("/api/v1/org-search", params={"q": "  NORTHWIND "}, headers=bearer(user.id))
    assert [org["id"] for org in resp.json()] == [str(by_name.id)]

    resp = await client.get("/api/v1/org-search", params={"q": other.slug}, headers=bearer(user.id))
    assert resp.json() == [{"id": str(other.id), "name": "Contoso", "slug": other.slug}]


@pytest.mark.asyncio
async def test_short_query_returns_nothing(client, seed):
    user = await seed.user()
    await seed.organization(await seed.user(), name="A Team")

    resp = await client.get("/api/v1/org-search", params={"q": "a"}, headers=bearer(user.id))
    assert resp.status_code == 200
    assert resp.json() == []


@pytest.mark.asyncio
async def test_wildcards_match_literally(client, seed):
    user = await seed.user()
    await seed.organization(await seed.user(), name="Percent Partners")

    resp = await client.get("/api/v1/org-search", params={"q": "%%"}, headers=bearer(user.id))
    assert resp.json() == []


@pytest.mark.asyncio
async def test_search_is_limited(client, seed):
    user = await seed.user()
    for i in range(7):
        await seed.organization(await seed.user(), name=f"Talent Co {i}")

    resp = await client.get("/api/v1/org-search", params={"q": "talent"}, headers=bearer(user.id))
    assert len(resp.json()) == 5


def test_escape_like():
    assert escape_like("50%_off\\") == "50\\%\\_off\\\\"
