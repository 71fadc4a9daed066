"""Celery tasks for Agora.

Tasks are explicitly imported here to register them with Celery.
No autodiscovery - all tasks must be imported in this module.

Usage in worker:
    from agora.tasks import saved_search_notification_job, schedule_saved_searches_job

Usage in API (enqueue):
    from agora.tasks.saved_search_notification import enqueue_saved_search_notification
    enqueue_saved_search_notification(user_id, request_id=request_id)
"""

from agora.tasks.saved_search_notification import saved_search_notification_job
from agora.tasks.schedule_saved_searches import schedule_saved_searches_job

__all__ = ["saved_search_notification_job", "schedule_saved_searches_job"]
