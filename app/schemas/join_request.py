"""
Join request schemas.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


class JoinRequestCreateRequest(BaseModel):
    """Request body for POST /join-requests."""

    organization_id: UUID
    message: str | None = Field(default=None, max_length=500)

    @field_validator("message")
    @classmethod
    def blank_message_is_none(cls, v: str | None) -> str | None:
        if v is None:
            return v
        return v.strip() or None


class JoinRequestResponse(BaseModel):
    """Response for a newly submitted request."""

    id: UUID
    organization_id: UUID
    organization_name: str
    status: str
    message: str | None
    created_at: datetime


class JoinRequestListItem(BaseModel):
    """Pending request with a minimal view of the requesting user."""

    id: UUID
    message: str | None
    status: str
    created_at: datetime
    user_name: str
    user_email: str


class JoinRequestApproveResponse(BaseModel):
    success: bool = True
    member_id: UUID
    role: str
