"""
Invite link schemas.

Request/response models for shareable invite links.
"""

from __future__ import annotations

from datetime import datetime
from typing import Literal
from uuid import UUID

from pydantic import BaseModel, Field

from app.core.config import settings


class InviteLinkCreateRequest(BaseModel):
    """Request body for POST /invite-links."""

    role: Literal["admin", "member"] = "member"
    max_uses: int | None = Field(default=None, ge=1, le=10000)
    # Minimum 1 hour, maximum 30 days
    expires_in_hours: int = Field(
        default=settings.INVITE_LINK_DEFAULT_EXPIRY_HOURS, ge=1, le=720
    )


class InviteLinkAcceptRequest(BaseModel):
    """Request body for POST /invite-links/accept."""

    token: str = Field(min_length=1, max_length=128)


class InviteLinkResponse(BaseModel):
    """A freshly created invite link, including the secret token."""

    id: UUID
    token: str
    url: str
    role: str
    max_uses: int | None
    use_count: int
    expires_at: datetime
    created_at: datetime


class InviteLinkListItem(BaseModel):
    """Invite link as shown to owners/admins."""

    id: UUID
    token: str
    role: str
    max_uses: int | None
    use_count: int
    expires_at: datetime
    revoked_at: datetime | None
    created_at: datetime
    created_by_name: str | None


class InviteLinkPublicInfo(BaseModel):
    """Non-sensitive details shown on the accept page before sign-in."""

    organization_name: str
    organization_slug: str
    role: str
    invited_by_name: str | None
    expires_at: datetime


class InviteLinkAcceptResponse(BaseModel):
    success: bool = True
    organization_id: UUID
    organization_name: str
    role: str


class SuccessResponse(BaseModel):
    success: bool = True
