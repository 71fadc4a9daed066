"""Celery application configuration.

Central configuration for Celery used by both the API (for enqueuing)
and the worker/beat processes (for executing and scheduling tasks).

Usage:
    from agora.celery import celery_app

    # Enqueue task:
    celery_app.send_task("saved_search_notification", args=[user_id])

    # Or import task directly:
    from agora.tasks import saved_search_notification_job
    saved_search_notification_job.apply_async(args=[user_id], queue="notifications")
"""

from datetime import timedelta

from celery import Celery

from agora.config import get_settings

settings = get_settings()

# Create Celery app
celery_app = Celery("agora")

# Configure from settings
celery_app.conf.broker_url = settings.effective_celery_broker_url
celery_app.conf.result_backend = settings.effective_celery_result_backend

# Task configuration
celery_app.conf.task_serializer = "json"
celery_app.conf.result_serializer = "json"
celery_app.conf.accept_content = ["json"]
celery_app.conf.timezone = "UTC"
celery_app.conf.enable_utc = True

# Queue routing
celery_app.conf.task_routes = {
    "saved_search_notification": {"queue": "notifications"},
    "schedule_saved_searches": {"queue": "default"},
}

# Default queue
celery_app.conf.task_default_queue = "default"

# Periodic sweep that fans out one notification job per eligible user
celery_app.conf.beat_schedule = {
    "schedule-saved-searches": {
        "task": "schedule_saved_searches",
        "schedule": timedelta(minutes=settings.saved_search_schedule_minutes),
    },
}

# For testing: allow eager mode (synchronous execution)
celery_app.conf.task_always_eager = False


def get_celery_app() -> Celery:
    """Get the Celery application instance.

    Returns:
        Configured Celery application.
    """
    return celery_app
