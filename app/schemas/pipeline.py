"""
Recruiting pipeline schemas.

Status updates for jobs and applications.
"""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field

from app.models.application import ApplicationStatus
from app.models.job import JobStatus


class JobUpdateRequest(BaseModel):
    """Request body for PATCH /jobs/{job_id}."""

    title: str | None = Field(default=None, min_length=1, max_length=200)
    status: JobStatus | None = None


class JobResponse(BaseModel):
    id: UUID
    title: str
    status: JobStatus
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ApplicationUpdateRequest(BaseModel):
    """Request body for PATCH /applications/{application_id}."""

    status: ApplicationStatus | None = None
    notes: str | None = Field(default=None, max_length=5000)
    score: int | None = Field(default=None, ge=0, le=100)


class ApplicationResponse(BaseModel):
    id: UUID
    job_id: UUID
    candidate_id: UUID
    status: ApplicationStatus
    score: int | None
    notes: str | None
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class TransitionTableResponse(BaseModel):
    """Allowed next states per current state, keyed by entity kind."""

    job: dict[str, list[str]]
    application: dict[str, list[str]]
