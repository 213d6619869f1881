"""
Invite link business logic.

Shareable links that let any authenticated user join an organization at
a fixed role, bounded by expiry, an optional use limit and revocation.
All management queries are scoped by org_id.
"""

from __future__ import annotations

import secrets
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy import select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core.config import settings
from app.core.errors import BadRequest, Conflict, Exhausted, NoLongerValid, NotFound
from app.models.invite_link import InviteLink
from app.models.member import OrgRole
from app.models.organization import Organization
from app.models.user import User
from app.schemas.invite_link import (
    InviteLinkAcceptResponse,
    InviteLinkCreateRequest,
    InviteLinkListItem,
    InviteLinkPublicInfo,
    InviteLinkResponse,
)
from app.services.audit import AuditAction, AuditSink
from app.services.membership_store import MembershipStore

MAX_TOKEN_LENGTH = 128
TOKEN_BYTES = 32  # 256 bits, 64 hex chars

INVALID_LINK_MESSAGE = "Invalid, expired, or revoked invite link"


def generate_token() -> str:
    """Cryptographically secure, hex-encoded link token."""
    return secrets.token_hex(TOKEN_BYTES)


def build_invite_url(token: str) -> str:
    return f"{settings.FRONTEND_URL.rstrip('/')}/join/{token}"


class InviteLinkService:
    """Handles creation, discovery, redemption and revocation of invite links."""

    def __init__(self, db: AsyncSession, store: MembershipStore, audit: AuditSink) -> None:
        self.db = db
        self.store = store
        self.audit = audit

    # -----------------------------------------------------------------------
    # Create
    # -----------------------------------------------------------------------

    async def create(
        self, org_id: UUID, actor_id: UUID, data: InviteLinkCreateRequest
    ) -> InviteLinkResponse:
        """Persist a new link with use_count=0 and a fresh 256-bit token."""
        token = generate_token()
        expires_at = datetime.now(UTC) + timedelta(hours=data.expires_in_hours)

        async with self.store.atomic("create_invite_link", org_id):
            link = InviteLink(
                org_id=org_id,
                created_by_id=actor_id,
                token=token,
                role=OrgRole(data.role),
                max_uses=data.max_uses,
                use_count=0,
                expires_at=expires_at,
            )
            self.db.add(link)
            await self.db.flush()
            await self.db.refresh(link)

        self.audit.record(
            org_id=org_id,
            actor_id=actor_id,
            action=AuditAction.created,
            resource_type="invite_link",
            resource_id=link.id,
            metadata={"role": link.role.value, "max_uses": link.max_uses},
        )

        return InviteLinkResponse(
            id=link.id,
            token=link.token,
            url=build_invite_url(link.token),
            role=link.role.value,
            max_uses=link.max_uses,
            use_count=link.use_count,
            expires_at=link.expires_at,
            created_at=link.created_at,
        )

    # -----------------------------------------------------------------------
    # Public info
    # -----------------------------------------------------------------------

    async def get_public_info(self, token: str) -> InviteLinkPublicInfo:
        """
        Details for the accept page. No authentication.

        Unknown, revoked, expired and exhausted links are indistinguishable
        to the caller. The token itself is never echoed back.
        """
        if not token or len(token) > MAX_TOKEN_LENGTH:
            raise BadRequest("Invalid token")

        async with self.store.guard("get_invite_link_info"):
            result = await self.db.execute(
                select(InviteLink, Organization.name, Organization.slug, User.name)
                .join(Organization, InviteLink.org_id == Organization.id)
                .outerjoin(User, InviteLink.created_by_id == User.id)
                .where(
                    InviteLink.token == token,
                    InviteLink.usable_at(datetime.now(UTC)),
                )
                .limit(1)
            )
            row = result.first()

        if row is None:
            raise NotFound(INVALID_LINK_MESSAGE, code="INVITE_LINK_INVALID")

        link, org_name, org_slug, inviter_name = row
        if link.is_exhausted:
            raise NotFound(INVALID_LINK_MESSAGE, code="INVITE_LINK_INVALID")

        return InviteLinkPublicInfo(
            organization_name=org_name,
            organization_slug=org_slug,
            role=link.role.value,
            invited_by_name=inviter_name,
            expires_at=link.expires_at,
        )

    # -----------------------------------------------------------------------
    # Accept
    # -----------------------------------------------------------------------

    async def claim_use(self, link_id: UUID, now: datetime) -> int | None:
        """
        Race-safe use_count increment.

        The WHERE clause re-checks revocation, expiry and the use limit
        against the row as it stands at write time, so two redemptions of
        a single-use link cannot both succeed. Returns the new count, or
        None if the link stopped being redeemable.
        """
        result = await self.db.execute(
            update(InviteLink)
            .where(InviteLink.id == link_id, InviteLink.redeemable_at(now))
            .values(use_count=InviteLink.use_count + 1)
            .returning(InviteLink.use_count)
            .execution_options(synchronize_session=False)
        )
        return result.scalar_one_or_none()

    async def accept(self, token: str, user_id: UUID) -> InviteLinkAcceptResponse:
        """
        Redeem a link for the calling user.

        - Validates token exists, is not revoked and not expired
        - Rejects exhausted links and existing members
        - Increments use_count and inserts the membership as one unit:
          if either write fails, neither is kept
        """
        now = datetime.now(UTC)

        async with self.store.guard("accept_invite_link"):
            result = await self.db.execute(
                select(InviteLink, Organization.name)
                .join(Organization, InviteLink.org_id == Organization.id)
                .where(InviteLink.token == token, InviteLink.usable_at(now))
                .limit(1)
            )
            row = result.first()

            if row is None:
                raise NotFound(INVALID_LINK_MESSAGE, code="INVITE_LINK_INVALID")

            link, org_name = row
            link_id, org_id = link.id, link.org_id

            if link.is_exhausted:
                raise Exhausted()

            if await self.store.is_member(user_id, org_id):
                raise Conflict(
                    "You are already a member of this organization", code="ALREADY_MEMBER"
                )

        # Links never grant owner, whatever the row says.
        granted_role = OrgRole.admin if link.role == OrgRole.admin else OrgRole.member

        async with self.store.atomic("accept_invite_link", link_id):
            if await self.claim_use(link_id, now) is None:
                raise NoLongerValid()

            membership = await self.store.add_member_if_absent(user_id, org_id, granted_role)
            if membership is None:
                raise Conflict(
                    "You are already a member of this organization", code="ALREADY_MEMBER"
                )

        self.audit.record(
            org_id=org_id,
            actor_id=user_id,
            action=AuditAction.created,
            resource_type="member",
            resource_id=membership.member_id,
            metadata={
                "join_method": "invite_link",
                "invite_link_id": str(link_id),
                "role": membership.role.value,
            },
        )

        return InviteLinkAcceptResponse(
            organization_id=org_id,
            organization_name=org_name,
            role=membership.role.value,
        )

    # -----------------------------------------------------------------------
    # List
    # -----------------------------------------------------------------------

    async def list_links(self, org_id: UUID) -> list[InviteLinkListItem]:
        """Active (non-revoked) links for the organization, oldest first."""
        async with self.store.guard("list_invite_links", org_id):
            result = await self.db.execute(
                select(InviteLink, User.name)
                .outerjoin(User, InviteLink.created_by_id == User.id)
                .where(
                    InviteLink.org_id == org_id,
                    InviteLink.revoked_at.is_(None),
                )
                .order_by(InviteLink.created_at, InviteLink.id)
            )
            rows = result.all()

        return [
            InviteLinkListItem(
                id=link.id,
                token=link.token,
                role=link.role.value,
                max_uses=link.max_uses,
                use_count=link.use_count,
                expires_at=link.expires_at,
                revoked_at=link.revoked_at,
                created_at=link.created_at,
                created_by_name=creator_name,
            )
            for link, creator_name in rows
        ]

    # -----------------------------------------------------------------------
    # Revoke
    # -----------------------------------------------------------------------

    async def revoke(self, org_id: UUID, link_id: UUID, actor_id: UUID) -> None:
        """Soft delete. Revoking twice reports NotFound the second time."""
        async with self.store.atomic("revoke_invite_link", link_id):
            result = await self.db.execute(
                update(InviteLink)
                .where(
                    InviteLink.id == link_id,
                    InviteLink.org_id == org_id,
                    InviteLink.revoked_at.is_(None),
                )
                .values(revoked_at=datetime.now(UTC))
                .returning(InviteLink.id)
                .execution_options(synchronize_session=False)
            )
            revoked_id = result.scalar_one_or_none()

            if revoked_id is None:
                raise NotFound(
                    "Invite link not found or already revoked", code="INVITE_LINK_NOT_FOUND"
                )

        self.audit.record(
            org_id=org_id,
            actor_id=actor_id,
            action=AuditAction.deleted,
            resource_type="invite_link",
            resource_id=revoked_id,
        )
