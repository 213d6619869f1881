"""
Audit sink.

Fire-and-forget hand-off of activity records to the append-only log.
Recording happens after the primary operation has committed and can
never fail it: dispatch errors are logged and dropped.
"""

from __future__ import annotations

import enum
import logging
from collections.abc import Callable
from typing import Any
from uuid import UUID

logger = logging.getLogger(__name__)


class AuditAction(str, enum.Enum):
    created = "created"
    updated = "updated"
    deleted = "deleted"
    status_changed = "status_changed"


Dispatcher = Callable[[dict[str, Any]], object]


def _enqueue(record: dict[str, Any]) -> None:
    """
    Enqueue the Celery write task.
    Import is deferred to avoid circular imports at module load.
    """
    from app.workers.audit_tasks import record_activity

    record_activity.delay(**record)


class AuditSink:
    """Accepts activity records; never raises."""

    def __init__(self, dispatch: Dispatcher | None = None) -> None:
        self._dispatch = dispatch or _enqueue

    def record(
        self,
        *,
        org_id: UUID,
        actor_id: UUID,
        action: AuditAction,
        resource_type: str,
        resource_id: UUID | str,
        metadata: dict[str, Any] | None = None,
    ) -> None:
        record = {
            "org_id": str(org_id),
            "actor_id": str(actor_id),
            "action": action.value,
            "resource_type": resource_type,
            "resource_id": str(resource_id),
            "metadata": metadata,
        }
        try:
            self._dispatch(record)
        except Exception:
            logger.warning(
                "Failed to record activity %s %s:%s (org_id=%s)",
                action.value, resource_type, resource_id, org_id,
                exc_info=True,
            )
