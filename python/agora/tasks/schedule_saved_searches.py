"""Celery beat task that fans out saved-search notification jobs.

Runs every SAVED_SEARCH_SCHEDULE_MINUTES. Selects users who have at least
one saved search and meet SAVED_SEARCHES_MIN_TRUST_LEVEL, then enqueues one
saved_search_notification per user. The notifier re-checks eligibility,
so a user changing between sweep and execution is harmless.
"""

from agora.celery import celery_app
from agora.config import get_settings
from agora.db.session import get_session_factory
from agora.logging import clear_task_context, configure_task_logging, get_logger
from agora.services.saved_searches import list_users_with_saved_searches
from agora.tasks.saved_search_notification import enqueue_saved_search_notification

logger = get_logger(__name__)

TASK_NAME = "schedule_saved_searches"


@celery_app.task(bind=True, max_retries=0, name=TASK_NAME)
def schedule_saved_searches_job(self, request_id: str | None = None) -> int:
    """Enqueue a notification job for every eligible user.

    Returns:
        Number of jobs successfully enqueued.
    """
    configure_task_logging(request_id=request_id, task_name=TASK_NAME, task_id=self.request.id)
    settings = get_settings()

    session_factory = get_session_factory()
    db = session_factory()
    try:
        user_ids = list_users_with_saved_searches(db, settings.saved_searches_min_trust_level)
    finally:
        db.close()

    try:
        enqueued = 0
        for user_id in user_ids:
            if enqueue_saved_search_notification(user_id, request_id=request_id):
                enqueued += 1

        logger.info(
            "saved_search_schedule_complete",
            eligible_count=len(user_ids),
            enqueued_count=enqueued,
        )
        return enqueued
    finally:
        clear_task_context()
