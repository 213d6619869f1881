"""
Join request business logic.

Users ask to join an organization; owners and admins approve or reject.
Pending uniqueness is enforced by a partial unique index and every
status change is a conditional update on ``status = 'pending'``.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import UUID, uuid4

from sqlalchemy import select, text, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import Conflict, NotFound, TooManyRequests
from app.models.join_request import JoinRequest, JoinRequestStatus
from app.models.member import OrgRole
from app.models.user import User
from app.schemas.join_request import (
    JoinRequestApproveResponse,
    JoinRequestListItem,
    JoinRequestResponse,
)
from app.services.audit import AuditAction, AuditSink
from app.services.membership_store import MembershipStore

REQUEST_NOT_FOUND = "Join request not found"


class JoinRequestService:
    """Handles submission, review and listing of join requests."""

    def __init__(self, db: AsyncSession, store: MembershipStore, audit: AuditSink) -> None:
        self.db = db
        self.store = store
        self.audit = audit

    # -----------------------------------------------------------------------
    # Submit
    # -----------------------------------------------------------------------

    async def submit(
        self, user_id: UUID, org_id: UUID, message: str | None = None
    ) -> JoinRequestResponse:
        """
        Create a pending request.

        - Organization must exist
        - Caller must not already be a member
        - No other pending request for the same (user, org)
        - No rejection reviewed within the cooldown window
        """
        async with self.store.guard("submit_join_request", org_id):
            org = await self.store.get_organization(org_id)
            if org is None:
                raise NotFound("Organization not found", code="ORG_NOT_FOUND")
            org_name = org.name

            if await self.store.is_member(user_id, org_id):
                raise Conflict(
                    "You are already a member of this organization", code="ALREADY_MEMBER"
                )

            pending = await self.db.execute(
                select(JoinRequest.id)
                .where(
                    JoinRequest.user_id == user_id,
                    JoinRequest.org_id == org_id,
                    JoinRequest.status == JoinRequestStatus.pending,
                )
                .limit(1)
            )
            if pending.scalar_one_or_none() is not None:
                raise Conflict(
                    "You already have a pending request for this organization",
                    code="REQUEST_PENDING",
                )

            cooldown_start = datetime.now(UTC) - timedelta(
                days=settings.JOIN_REQUEST_COOLDOWN_DAYS
            )
            recent = await self.db.execute(
                select(JoinRequest.id)
                .where(
                    JoinRequest.user_id == user_id,
                    JoinRequest.org_id == org_id,
                    JoinRequest.status == JoinRequestStatus.rejected,
                    JoinRequest.reviewed_at > cooldown_start,
                )
                .limit(1)
            )
            if recent.scalar_one_or_none() is not None:
                raise TooManyRequests(
                    "Your previous request was declined recently. Please try again later.",
                    code="REQUEST_COOLDOWN",
                )

        async with self.store.atomic("submit_join_request", org_id):
            stmt = (
                self.store.insert(JoinRequest)
                .values(
                    id=uuid4(),
                    user_id=user_id,
                    org_id=org_id,
                    message=message,
                    status=JoinRequestStatus.pending,
                )
                .on_conflict_do_nothing(
                    index_elements=["user_id", "org_id"],
                    index_where=text("status = 'pending'"),
                )
                .returning(JoinRequest.id, JoinRequest.created_at)
            )
            row = (await self.db.execute(stmt)).first()
            if row is None:
                raise Conflict(
                    "You already have a pending request for this organization",
                    code="REQUEST_PENDING",
                )

        return JoinRequestResponse(
            id=row.id,
            organization_id=org_id,
            organization_name=org_name,
            status=JoinRequestStatus.pending.value,
            message=message,
            created_at=row.created_at,
        )

    # -----------------------------------------------------------------------
    # Review
    # -----------------------------------------------------------------------

    async def _mark_reviewed(
        self, request_id: UUID, org_id: UUID, actor_id: UUID, new_status: JoinRequestStatus
    ) -> UUID | None:
        """Flip a pending request. Returns None if it was not pending in this org."""
        result = await self.db.execute(
            update(JoinRequest)
            .where(
                JoinRequest.id == request_id,
                JoinRequest.org_id == org_id,
                JoinRequest.status == JoinRequestStatus.pending,
            )
            .values(
                status=new_status,
                reviewed_by_id=actor_id,
                reviewed_at=datetime.now(UTC),
            )
            .returning(JoinRequest.user_id)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    async def approve(
        self, request_id: UUID, org_id: UUID, actor_id: UUID
    ) -> JoinRequestApproveResponse:
        """
        Approve a pending request and create the membership.

        If the user joined by another route in the meantime, the request
        is closed as rejected and the approval fails with Conflict.
        """
        async with self.store.guard("approve_join_request", request_id):
            result = await self.db.execute(
                select(JoinRequest.user_id, JoinRequest.status).where(
                    JoinRequest.id == request_id,
                    JoinRequest.org_id == org_id,
                )
            )
            row = result.first()
            if row is None:
                raise NotFound(REQUEST_NOT_FOUND, code="JOIN_REQUEST_NOT_FOUND")
            if row.status != JoinRequestStatus.pending:
                raise Conflict(
                    "Join request has already been processed", code="ALREADY_PROCESSED"
                )

            requester_id: UUID = row.user_id
            already_member = await self.store.is_member(requester_id, org_id)

        if already_member:
            async with self.store.atomic("auto_reject_join_request", request_id):
                await self._mark_reviewed(
                    request_id, org_id, actor_id, JoinRequestStatus.rejected
                )
            raise Conflict(
                "User is already a member of this organization", code="ALREADY_MEMBER"
            )

        async with self.store.atomic("approve_join_request", request_id):
            if await self._mark_reviewed(
                request_id, org_id, actor_id, JoinRequestStatus.approved
            ) is None:
                raise Conflict(
                    "Join request has already been processed", code="ALREADY_PROCESSED"
                )

            membership = await self.store.add_member_if_absent(
                requester_id, org_id, OrgRole.member
            )
            if membership is None:
                raise Conflict(
                    "User is already a member of this organization", code="ALREADY_MEMBER"
                )

        self.audit.record(
            org_id=org_id,
            actor_id=actor_id,
            action=AuditAction.created,
            resource_type="member",
            resource_id=membership.member_id,
            metadata={
                "join_method": "join_request",
                "join_request_id": str(request_id),
                "approved_user": str(requester_id),
            },
        )

        return JoinRequestApproveResponse(
            member_id=membership.member_id,
            role=membership.role.value,
        )

    async def reject(self, request_id: UUID, org_id: UUID, actor_id: UUID) -> None:
        async with self.store.atomic("reject_join_request", request_id):
            if await self._mark_reviewed(
                request_id, org_id, actor_id, JoinRequestStatus.rejected
            ) is None:
                raise NotFound(
                    "Join request not found or already processed",
                    code="JOIN_REQUEST_NOT_FOUND",
                )

        self.audit.record(
            org_id=org_id,
            actor_id=actor_id,
            action=AuditAction.deleted,
            resource_type="member",
            resource_id=request_id,
            metadata={"decision": "rejected", "join_request_id": str(request_id)},
        )

    # -----------------------------------------------------------------------
    # List
    # -----------------------------------------------------------------------

    async def list_pending(self, org_id: UUID) -> list[JoinRequestListItem]:
        """Pending requests for the organization, oldest first."""
        async with self.store.guard("list_join_requests", org_id):
            result = await self.db.execute(
                select(
                    JoinRequest.id,
                    JoinRequest.message,
                    JoinRequest.status,
                    JoinRequest.created_at,
                    User.name,
                    User.email,
                )
                .join(User, JoinRequest.user_id == User.id)
                .where(
                    JoinRequest.org_id == org_id,
                    JoinRequest.status == JoinRequestStatus.pending,
                )
                .order_by(JoinRequest.created_at, JoinRequest.id)
            )
            rows = result.all()

        return [
            JoinRequestListItem(
                id=row.id,
                message=row.message,
                status=JoinRequestStatus(row.status).value,
                created_at=row.created_at,
                user_name=row.name,
                user_email=row.email,
            )
            for row in rows
        ]
