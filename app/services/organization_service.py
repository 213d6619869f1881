"""
Organization business logic.

Creation (with the creator as owner) and discovery for the join flow.
"""

from __future__ import annotations

from uuid import UUID

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from app.models.organization import Organization
from app.schemas.organization import (
    OrganizationCreateRequest,
    OrganizationResponse,
    OrganizationSearchResult,
)
from app.services.membership_store import MembershipStore

SEARCH_MIN_LENGTH = 2
SEARCH_LIMIT = 5


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so user input matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


class OrganizationService:
    """Handles organization creation and search."""

    def __init__(self, db: AsyncSession, store: MembershipStore) -> None:
        self.db = db
        self.store = store

    async def create_organization(
        self, data: OrganizationCreateRequest, owner_id: UUID
    ) -> OrganizationResponse:
        """
        Create a new organization.

        - Slug uniqueness is decided by the unique index, not a pre-check
        - Creator becomes owner in the same transaction
        """
        org = await self.store.create_organization(data.name, data.slug, owner_id)
        return OrganizationResponse.model_validate(org)

    async def search_organizations(self, query: str) -> list[OrganizationSearchResult]:
        """Exact slug or partial name match; short queries return nothing."""
        q = query.strip().lower()
        if len(q) < SEARCH_MIN_LENGTH:
            return []

        pattern = f"%{escape_like(q)}%"
        async with self.store.guard("search_organizations"):
            result = await self.db.execute(
                select(Organization.id, Organization.name, Organization.slug)
                .where(
                    or_(
                        Organization.slug == q,
                        Organization.name.ilike(pattern, escape="\\"),
                    )
                )
                .order_by(Organization.name)
                .limit(SEARCH_LIMIT)
            )
            rows = result.all()

        return [
            OrganizationSearchResult(id=row.id, name=row.name, slug=row.slug)
            for row in rows
        ]
