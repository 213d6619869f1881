"""
Invite link endpoints.

Create, list and revoke shareable links; public info and redemption.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.authorization import AuthorizedSession, AuthSession
from app.core.database import get_db
from app.core.dependencies import (
    get_audit_sink,
    get_current_session,
    get_membership_store,
    require_permission,
)
from app.schemas.invite_link import (
    InviteLinkAcceptRequest,
    InviteLinkAcceptResponse,
    InviteLinkCreateRequest,
    InviteLinkListItem,
    InviteLinkPublicInfo,
    InviteLinkResponse,
    SuccessResponse,
)
from app.services.audit import AuditSink
from app.services.invite_link_service import InviteLinkService
from app.services.membership_store import MembershipStore

router = APIRouter()


def get_invite_link_service(
    db: AsyncSession = Depends(get_db),
    store: MembershipStore = Depends(get_membership_store),
    audit: AuditSink = Depends(get_audit_sink),
) -> InviteLinkService:
    """Dependency that constructs InviteLinkService."""
    return InviteLinkService(db=db, store=store, audit=audit)


# ---------------------------------------------------------------------------
# Create Invite Link
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=InviteLinkResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a shareable invite link",
)
async def create_invite_link(
    data: InviteLinkCreateRequest,
    session: AuthorizedSession = Depends(require_permission({"invitation": ["create"]})),
    service: InviteLinkService = Depends(get_invite_link_service),
) -> InviteLinkResponse:
    """
    Create an invite link for the active organization.

    - Role is admin or member (never owner)
    - Optional use limit, expiry 1 hour to 30 days
    """
    return await service.create(session.active_org_id, session.user_id, data)


# ---------------------------------------------------------------------------
# List Invite Links
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=list[InviteLinkListItem],
    summary="List active invite links",
)
async def list_invite_links(
    session: AuthorizedSession = Depends(require_permission({"invitation": ["create"]})),
    service: InviteLinkService = Depends(get_invite_link_service),
) -> list[InviteLinkListItem]:
    return await service.list_links(session.active_org_id)


# ---------------------------------------------------------------------------
# Public Info
# ---------------------------------------------------------------------------

@router.get(
    "/info/{token}",
    response_model=InviteLinkPublicInfo,
    summary="Public details for an invite link",
)
async def get_invite_link_info(
    token: str,
    service: InviteLinkService = Depends(get_invite_link_service),
) -> InviteLinkPublicInfo:
    """No authentication. Invalid links all look the same."""
    return await service.get_public_info(token)


# ---------------------------------------------------------------------------
# Accept Invite Link
# ---------------------------------------------------------------------------

@router.post(
    "/accept",
    response_model=InviteLinkAcceptResponse,
    summary="Join an organization with an invite link",
)
async def accept_invite_link(
    data: InviteLinkAcceptRequest,
    session: AuthSession = Depends(get_current_session),
    service: InviteLinkService = Depends(get_invite_link_service),
) -> InviteLinkAcceptResponse:
    """
    Redeem an invite link.

    - Caller only needs to be signed in; no active organization required
    - 410 if the link is used up, 409 if already a member
    """
    return await service.accept(data.token, session.user_id)


# ---------------------------------------------------------------------------
# Revoke Invite Link
# ---------------------------------------------------------------------------

@router.delete(
    "/{link_id}",
    response_model=SuccessResponse,
    summary="Revoke an invite link",
)
async def revoke_invite_link(
    link_id: UUID,
    session: AuthorizedSession = Depends(require_permission({"invitation": ["cancel"]})),
    service: InviteLinkService = Depends(get_invite_link_service),
) -> SuccessResponse:
    await service.revoke(session.active_org_id, link_id, session.user_id)
    return SuccessResponse()
