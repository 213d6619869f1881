"""
Celery application instance.

Configured with Redis broker and backend.
"""

from celery import Celery
from celery.signals import worker_process_init

from app.core.config import settings

celery_app = Celery(
    "talentgate",
    broker=settings.CELERY_BROKER_URL,
    backend=settings.CELERY_RESULT_BACKEND,
    include=[
        "app.workers.audit_tasks",
    ],
)

celery_app.conf.update(
    # Serialization
    task_serializer="json",
    result_serializer="json",
    accept_content=["json"],
    # Timezone
    timezone="UTC",
    enable_utc=True,
    # Audit writes are fire-and-forget; nobody reads their results
    task_ignore_result=True,
    # Retry policy
    task_acks_late=True,
    task_reject_on_worker_lost=True,
    # Publishing must not stall a request when the broker is down
    task_publish_retry=True,
    task_publish_retry_policy={
        "max_retries": 2,
        "interval_start": 0,
        "interval_step": 0.2,
        "interval_max": 0.5,
    },
    # Concurrency
    worker_prefetch_multiplier=1,
    # Routing
    task_default_queue="default",
    task_queues={
        "default": {},
        "audit": {},
    },
    task_routes={
        "app.workers.audit_tasks.*": {"queue": "audit"},
    },
)


@worker_process_init.connect
def _configure_database(**_: object) -> None:
    from app.core.database import configure_from_settings

    configure_from_settings()
