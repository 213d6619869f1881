"""
Join request endpoints.

Users submit requests; owners and admins list, approve and reject them.
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
from app.schemas.invite_link import SuccessResponse
from app.schemas.join_request import (
    JoinRequestApproveResponse,
    JoinRequestCreateRequest,
    JoinRequestListItem,
    JoinRequestResponse,
)
from app.services.audit import AuditSink
from app.services.join_request_service import JoinRequestService
from app.services.membership_store import MembershipStore

router = APIRouter()


def get_join_request_service(
    db: AsyncSession = Depends(get_db),
    store: MembershipStore = Depends(get_membership_store),
    audit: AuditSink = Depends(get_audit_sink),
) -> JoinRequestService:
    """Dependency that constructs JoinRequestService."""
    return JoinRequestService(db=db, store=store, audit=audit)


# ---------------------------------------------------------------------------
# Submit Join Request
# ---------------------------------------------------------------------------

@router.post(
    "",
    response_model=JoinRequestResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Request to join an organization",
)
async def submit_join_request(
    data: JoinRequestCreateRequest,
    session: AuthSession = Depends(get_current_session),
    service: JoinRequestService = Depends(get_join_request_service),
) -> JoinRequestResponse:
    """
    Ask to join an organization.

    - One pending request per organization
    - 429 if a previous request was declined recently
    """
    return await service.submit(session.user_id, data.organization_id, data.message)


# ---------------------------------------------------------------------------
# List Pending Requests
# ---------------------------------------------------------------------------

@router.get(
    "",
    response_model=list[JoinRequestListItem],
    summary="List pending join requests",
)
async def list_join_requests(
    session: AuthorizedSession = Depends(require_permission({"invitation": ["create"]})),
    service: JoinRequestService = Depends(get_join_request_service),
) -> list[JoinRequestListItem]:
    return await service.list_pending(session.active_org_id)


# ---------------------------------------------------------------------------
# Approve / Reject
# ---------------------------------------------------------------------------

@router.post(
    "/{request_id}/approve",
    response_model=JoinRequestApproveResponse,
    summary="Approve a join request",
)
async def approve_join_request(
    request_id: UUID,
    session: AuthorizedSession = Depends(require_permission({"invitation": ["create"]})),
    service: JoinRequestService = Depends(get_join_request_service),
) -> JoinRequestApproveResponse:
    """Approve and add the requester as a member."""
    return await service.approve(request_id, session.active_org_id, session.user_id)


@router.post(
    "/{request_id}/reject",
    response_model=SuccessResponse,
    summary="Reject a join request",
)
async def reject_join_request(
    request_id: UUID,
    session: AuthorizedSession = Depends(require_permission({"invitation": ["cancel"]})),
    service: JoinRequestService = Depends(get_join_request_service),
) -> SuccessResponse:
    await service.reject(request_id, session.active_org_id, session.user_id)
    return SuccessResponse()
