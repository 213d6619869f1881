"""
Recruiting pipeline endpoints.

Job and application updates, plus the transition hints used by clients
to render only legal status changes.
"""

from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import transitions
from app.core.authorization import AuthorizedSession
from app.core.database import get_db
from app.core.dependencies import get_audit_sink, get_membership_store, require_permission
from app.schemas.pipeline import (
    ApplicationResponse,
    ApplicationUpdateRequest,
    JobResponse,
    JobUpdateRequest,
    TransitionTableResponse,
)
from app.services.audit import AuditSink
from app.services.membership_store import MembershipStore
from app.services.pipeline_service import PipelineService

router = APIRouter()


def get_pipeline_service(
    db: AsyncSession = Depends(get_db),
    store: MembershipStore = Depends(get_membership_store),
    audit: AuditSink = Depends(get_audit_sink),
) -> PipelineService:
    """Dependency that constructs PipelineService."""
    return PipelineService(db=db, store=store, audit=audit)


# ---------------------------------------------------------------------------
# Jobs
# ---------------------------------------------------------------------------

@router.patch(
    "/jobs/{job_id}",
    response_model=JobResponse,
    summary="Update a job",
)
async def update_job(
    job_id: UUID,
    data: JobUpdateRequest,
    session: AuthorizedSession = Depends(require_permission({"job": ["update"]})),
    service: PipelineService = Depends(get_pipeline_service),
) -> JobResponse:
    """Update title and/or status. Illegal status moves return 422."""
    return await service.update_job(session.active_org_id, job_id, session.user_id, data)


# ---------------------------------------------------------------------------
# Applications
# ---------------------------------------------------------------------------

@router.patch(
    "/applications/{application_id}",
    response_model=ApplicationResponse,
    summary="Update an application",
)
async def update_application(
    application_id: UUID,
    data: ApplicationUpdateRequest,
    session: AuthorizedSession = Depends(require_permission({"application": ["update"]})),
    service: PipelineService = Depends(get_pipeline_service),
) -> ApplicationResponse:
    """Update status, notes and/or score. Illegal status moves return 422."""
    return await service.update_application(
        session.active_org_id, application_id, session.user_id, data
    )


# ---------------------------------------------------------------------------
# Transition Hints
# ---------------------------------------------------------------------------

@router.get(
    "/status-transitions",
    response_model=TransitionTableResponse,
    summary="Allowed status transitions",
)
async def get_status_transitions() -> TransitionTableResponse:
    return TransitionTableResponse(**transitions.transition_table())
