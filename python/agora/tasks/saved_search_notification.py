"""Celery task that runs the saved-search notifier for one user.

This task:
1. Binds task/user context for structured logs
2. Opens its own database session
3. Runs SavedSearchNotifier with settings-derived configuration
4. Returns a small status dict ("notified" or "skipped" with a reason)

Failures are logged and re-raised; max_retries=0 because the next
scheduled sweep re-runs the user anyway, and cursors only advance on a
committed notification.
"""

from uuid import UUID

from agora.celery import celery_app
from agora.config import Environment, get_settings
from agora.db.session import get_session_factory
from agora.logging import clear_task_context, configure_task_logging, get_logger
from agora.services.saved_search_notifier import SavedSearchNotifier

logger = get_logger(__name__)

TASK_NAME = "saved_search_notification"
QUEUE = "notifications"


@celery_app.task(bind=True, max_retries=0, name=TASK_NAME)
def saved_search_notification_job(
    self,
    user_id: str,
    request_id: str | None = None,
) -> dict:
    """Send a user any new saved-search results.

    Args:
        user_id: UUID of the user whose saved searches should run.
        request_id: Optional request ID for log correlation.

    Returns:
        Dict with result status.
    """
    configure_task_logging(
        request_id=request_id,
        task_name=TASK_NAME,
        task_id=self.request.id,
        user_id=user_id,
    )
    logger.info("saved_search_task_started")

    session_factory = get_session_factory()
    db = session_factory()

    try:
        outcome = SavedSearchNotifier.from_settings(db).run(UUID(user_id))
        result = outcome.as_dict()
        logger.info("saved_search_task_completed", **result)
        return result
    except Exception as exc:
        logger.error("saved_search_task_failed", error=str(exc), error_type=type(exc).__name__)
        raise
    finally:
        db.close()
        clear_task_context()


def enqueue_saved_search_notification(
    user_id: UUID,
    request_id: str | None = None,
    countdown: int | None = None,
) -> bool:
    """Best-effort enqueue of the notification task.

    Never raises. Returns True if dispatch succeeded, False otherwise.
    In test env, skips dispatch and returns False.
    """
    settings = get_settings()
    if settings.agora_env == Environment.TEST:
        logger.debug("saved_search_enqueue_skipped", reason="test_env", user_id=str(user_id))
        return False

    apply_kwargs: dict = {
        "args": [str(user_id)],
        "kwargs": {"request_id": request_id} if request_id else {},
        "queue": QUEUE,
    }
    if countdown is not None:
        apply_kwargs["countdown"] = countdown

    try:
        saved_search_notification_job.apply_async(**apply_kwargs)
    except Exception as exc:
        logger.warning(
            "saved_search_enqueue_failed",
            user_id=str(user_id),
            error=str(exc),
        )
        return False

    logger.debug("saved_search_enqueue_ok", user_id=str(user_id), countdown=countdown)
    return True
