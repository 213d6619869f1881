"""
Audit background tasks.
Writes activity records to the append-only activity log.
"""

from __future__ import annotations

import asyncio
import logging
import uuid
from typing import Any

from app.workers.celery_app import celery_app

logger = logging.getLogger(__name__)


@celery_app.task(
    name="app.workers.audit_tasks.record_activity",
    bind=True,
    max_retries=3,
    default_retry_delay=10,
)
def record_activity(
    self,
    org_id: str,
    actor_id: str,
    action: str,
    resource_type: str,
    resource_id: str,
    metadata: dict[str, Any] | None = None,
) -> dict[str, str]:
    """Insert one ActivityLog row in its own transaction."""
    try:
        # Always create a fresh event loop; forked workers can inherit a closed one.
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        try:
            activity_id = loop.run_until_complete(_insert_activity(
                org_id=org_id,
                actor_id=actor_id,
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                metadata=metadata,
            ))
        finally:
            loop.close()
        return {"status": "recorded", "activity_id": activity_id}
    except Exception as exc:
        logger.error(
            "record_activity failed for %s %s:%s: %s",
            action, resource_type, resource_id, exc,
        )
        raise self.retry(exc=exc)


async def _insert_activity(
    org_id: str,
    actor_id: str,
    action: str,
    resource_type: str,
    resource_id: str,
    metadata: dict[str, Any] | None,
) -> str:
    from app.core.database import configure_from_settings, database
    from app.models.activity_log import ActivityLog

    configure_from_settings()
    try:
        async with database.session_factory() as session:
            activity = ActivityLog(
                org_id=uuid.UUID(org_id),
                actor_id=uuid.UUID(actor_id),
                action=action,
                resource_type=resource_type,
                resource_id=resource_id,
                details=metadata,
            )
            session.add(activity)
            await session.commit()
            return str(activity.id)
    finally:
        # Pooled connections are bound to this loop, which is about to close.
        await database.dispose()
