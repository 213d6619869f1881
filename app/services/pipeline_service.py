"""
Recruiting pipeline business logic.

Job and application updates, guarded by the status transition tables.
All queries scoped by org_id.
"""

from __future__ import annotations

from typing import Any
from uuid import UUID

from sqlalchemy import func, select, update
from sqlalchemy.ext.asyncio import AsyncSession

from app.core import transitions
from app.core.errors import Conflict, NotFound
from app.core.transitions import EntityKind
from app.models.application import Application
from app.models.job import Job
from app.schemas.pipeline import (
    ApplicationResponse,
    ApplicationUpdateRequest,
    JobResponse,
    JobUpdateRequest,
)
from app.services.audit import AuditAction, AuditSink
from app.services.membership_store import MembershipStore

STATUS_MOVED = "Status was changed by another request; reload and try again"


class PipelineService:
    """Handles job and application updates."""

    def __init__(self, db: AsyncSession, store: MembershipStore, audit: AuditSink) -> None:
        self.db = db
        self.store = store
        self.audit = audit

    async def _apply(
        self,
        model: type[Job] | type[Application],
        entity_id: UUID,
        org_id: UUID,
        read_status: Any,
        values: dict[str, Any],
    ) -> None:
        """Conditional write: only lands if the status is still what was read."""
        result = await self.db.execute(
            update(model)
            .where(
                model.id == entity_id,
                model.org_id == org_id,
                model.status == read_status,
            )
            .values(**values, updated_at=func.now())
            .returning(model.id)
            .execution_options(synchronize_session=False)
        )
        if result.scalar_one_or_none() is None:
            raise Conflict(STATUS_MOVED, code="STATUS_CONFLICT")

    async def _reload(
        self, model: type[Job] | type[Application], entity_id: UUID, operation: str
    ) -> Job | Application | None:
        """Fresh copy after a write; None if the row was deleted meanwhile."""
        async with self.store.guard(operation, entity_id):
            return await self.db.scalar(
                select(model)
                .where(model.id == entity_id)
                .execution_options(populate_existing=True)
            )

    def _record_update(
        self,
        org_id: UUID,
        actor_id: UUID,
        resource_type: str,
        resource_id: UUID,
        previous: Any,
        current: Any,
    ) -> None:
        if previous != current:
            self.audit.record(
                org_id=org_id,
                actor_id=actor_id,
                action=AuditAction.status_changed,
                resource_type=resource_type,
                resource_id=resource_id,
                metadata={"from": previous.value, "to": current.value},
            )
        else:
            self.audit.record(
                org_id=org_id,
                actor_id=actor_id,
                action=AuditAction.updated,
                resource_type=resource_type,
                resource_id=resource_id,
            )

    # -----------------------------------------------------------------------
    # Jobs
    # -----------------------------------------------------------------------

    async def update_job(
        self, org_id: UUID, job_id: UUID, actor_id: UUID, data: JobUpdateRequest
    ) -> JobResponse:
        async with self.store.guard("update_job", job_id):
            result = await self.db.execute(
                select(Job.status).where(Job.id == job_id, Job.org_id == org_id)
            )
            current = result.scalar_one_or_none()
        if current is None:
            raise NotFound("Job not found", code="JOB_NOT_FOUND")

        values: dict[str, Any] = data.model_dump(exclude_unset=True, exclude_none=True)
        target = values.get("status", current)
        transitions.validate(EntityKind.job, current, target)

        async with self.store.atomic("update_job", job_id):
            await self._apply(Job, job_id, org_id, current, values)

        job = await self._reload(Job, job_id, "update_job")
        if job is None:
            raise NotFound("Job not found", code="JOB_NOT_FOUND")
        self._record_update(org_id, actor_id, "job", job_id, current, job.status)
        return JobResponse.model_validate(job)

    # -----------------------------------------------------------------------
    # Applications
    # -----------------------------------------------------------------------

    async def update_application(
        self, org_id: UUID, application_id: UUID, actor_id: UUID, data: ApplicationUpdateRequest
    ) -> ApplicationResponse:
        """
        Update an application.

        - Validates the status move against the application table
        - Writes notes / score alongside the status
        - Conflict if the status changed since it was read
        """
        async with self.store.guard("update_application", application_id):
            result = await self.db.execute(
                select(Application.status).where(
                    Application.id == application_id,
                    Application.org_id == org_id,
                )
            )
            current = result.scalar_one_or_none()
        if current is None:
            raise NotFound("Application not found", code="APPLICATION_NOT_FOUND")

        values: dict[str, Any] = data.model_dump(exclude_unset=True)
        if values.get("status") is None:
            values.pop("status", None)
        target = values.get("status", current)
        transitions.validate(EntityKind.application, current, target)

        async with self.store.atomic("update_application", application_id):
            await self._apply(Application, application_id, org_id, current, values)

        application = await self._reload(Application, application_id, "update_application")
        if application is None:
            raise NotFound("Application not found", code="APPLICATION_NOT_FOUND")
        self._record_update(
            org_id, actor_id, "application", application_id, current, application.status
        )
        return ApplicationResponse.model_validate(application)
