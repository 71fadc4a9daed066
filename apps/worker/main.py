"""Celery worker and beat entrypoint.

Worker: celery -A apps.worker.main:celery_app worker -Q notifications,default --loglevel=info
Beat:   celery -A apps.worker.main:celery_app beat --loglevel=info

This module imports the Celery app and explicitly registers all tasks.
Task definitions are in the agora.tasks package - no autodiscovery.

Logging Convention:
- All task log entries include request_id, task_name, task_id when available
- Tasks accept `request_id: str | None = None` parameter for correlation
- Use configure_task_logging() at the start of each task to set up context

Queue Configuration:
- notifications: Per-user saved search notification jobs
- default: Scheduler sweep and general background tasks
"""

from celery.signals import worker_process_init

from agora.celery import celery_app
from agora.logging import configure_logging, get_logger

# =============================================================================
# Task Registration (explicit imports - no autodiscovery)
# =============================================================================

from agora.tasks import (  # noqa: F401
    saved_search_notification_job,
    schedule_saved_searches_job,
)

# =============================================================================
# Worker Lifecycle
# =============================================================================


@worker_process_init.connect
def setup_worker_logging(**kwargs):
    """Configure structlog when a worker process starts."""
    configure_logging()
    logger = get_logger(__name__)
    logger.info("celery_worker_started", queues=["notifications", "default"])


# Command: celery -A apps.worker.main:celery_app worker ...
__all__ = ["celery_app"]
