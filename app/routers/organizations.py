"""
Organization endpoints.

Create an organization, search organizations to join.
"""

from __future__ import annotations

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authorization import AuthSession
from app.core.database import get_db
from app.core.dependencies import get_current_session, get_membership_store
from app.schemas.organization import (
    OrganizationCreateRequest,
    OrganizationResponse,
    OrganizationSearchResult,
)
from app.services.membership_store import MembershipStore
from app.services.organization_service import OrganizationService

router = APIRouter()


def get_org_service(
    db: AsyncSession = Depends(get_db),
    store: MembershipStore = Depends(get_membership_store),
) -> OrganizationService:
    """Dependency that constructs OrganizationService."""
    return OrganizationService(db=db, store=store)


# ---------------------------------------------------------------------------
# Create Organization
# ---------------------------------------------------------------------------

@router.post(
    "/organizations",
    response_model=OrganizationResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new organization",
)
async def create_organization(
    data: OrganizationCreateRequest,
    session: AuthSession = Depends(get_current_session),
    service: OrganizationService = Depends(get_org_service),
) -> OrganizationResponse:
    """
    Create a new organization.

    - Slug must be globally unique (3-30 chars, lowercase alphanumeric + hyphens)
    - Creator is automatically assigned Owner role
    """
    return await service.create_organization(data, session.user_id)


# ---------------------------------------------------------------------------
# Search Organizations
# ---------------------------------------------------------------------------

@router.get(
    "/org-search",
    response_model=list[OrganizationSearchResult],
    summary="Find an organization to join",
)
async def search_organizations(
    q: str = Query(default="", max_length=100),
    _: AuthSession = Depends(get_current_session),
    service: OrganizationService = Depends(get_org_service),
) -> list[OrganizationSearchResult]:
    return await service.search_organizations(q)
