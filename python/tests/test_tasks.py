"""Tests for saved search Celery tasks.

Tasks are invoked directly (no broker). Each test points the task modules at
the per-test database via get_session_factory.
"""

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import pytest

import agora.tasks.saved_search_notification as notification_task
import agora.tasks.schedule_saved_searches as schedule_task
from agora.celery import celery_app
from agora.services.system_messages import count_system_messages
from tests.factories import (
    create_test_post,
    create_test_topic,
    create_test_user,
    set_saved_searches,
)
from tests.helpers import make_settings


@pytest.fixture
def task_db(monkeypatch, session_factory):
    """Route task sessions to the test engine."""
    monkeypatch.setattr(notification_task, "get_session_factory", lambda: session_factory)
    monkeypatch.setattr(schedule_task, "get_session_factory", lambda: session_factory)
    return session_factory


# =============================================================================
# saved_search_notification
# =============================================================================


class TestSavedSearchNotificationTask:
    def test_notifies_user(self, task_db, db_session):
        author = create_test_user(db_session, trust_level=2)
        user = create_test_user(db_session, trust_level=1)
        topic = create_test_topic(db_session, author)
        create_test_post(
            db_session, topic, author, created_at=datetime.now(UTC) - timedelta(hours=1)
        )
        set_saved_searches(db_session, user.id, ["coupon"])

        result = notification_task.saved_search_notification_job(str(user.id))

        assert result["status"] == "notified"
        assert result["post_count"] == 1
        assert count_system_messages(db_session, recipient_id=user.id) == 1

    def test_repeat_run_is_skipped(self, task_db, db_session):
        author = create_test_user(db_session, trust_level=2)
        user = create_test_user(db_session, trust_level=1)
        topic = create_test_topic(db_session, author)
        create_test_post(
            db_session, topic, author, created_at=datetime.now(UTC) - timedelta(hours=1)
        )
        set_saved_searches(db_session, user.id, ["coupon"])

        notification_task.saved_search_notification_job(str(user.id))
        result = notification_task.saved_search_notification_job(str(user.id))

        assert result == {"status": "skipped", "reason": "no_new_results"}
        assert count_system_messages(db_session) == 1

    def test_missing_user_is_skipped(self, task_db):
        result = notification_task.saved_search_notification_job(str(uuid4()), request_id="r-1")

        assert result == {"status": "skipped", "reason": "user_not_found"}

    def test_failure_is_reraised(self, task_db, db_session, monkeypatch):
        user = create_test_user(db_session, trust_level=1)

        class Exploding:
            def run(self, user_id):
                raise RuntimeError("db went away")

        monkeypatch.setattr(
            notification_task.SavedSearchNotifier,
            "from_settings",
            classmethod(lambda cls, db, settings=None: Exploding()),
        )

        with pytest.raises(RuntimeError, match="db went away"):
            notification_task.saved_search_notification_job(str(user.id))


class TestEnqueue:
    def test_skipped_in_test_env(self):
        assert notification_task.enqueue_saved_search_notification(uuid4()) is False

    def test_dispatches_outside_test_env(self, monkeypatch):
        calls = []
        monkeypatch.setattr(
            notification_task, "get_settings", lambda: make_settings(AGORA_ENV="local")
        )
        monkeypatch.setattr(
            notification_task.saved_search_notification_job,
            "apply_async",
            lambda **kwargs: calls.append(kwargs),
        )
        user_id = uuid4()

        ok = notification_task.enqueue_saved_search_notification(
            user_id, request_id="req-1", countdown=30
        )

        assert ok is True
        assert calls == [
            {
                "args": [str(user_id)],
                "kwargs": {"request_id": "req-1"},
                "queue": "notifications",
                "countdown": 30,
            }
        ]

    def test_broker_failure_returns_false(self, monkeypatch):
        def refuse(**kwargs):
            raise ConnectionError("broker unreachable")

        monkeypatch.setattr(
            notification_task, "get_settings", lambda: make_settings(AGORA_ENV="local")
        )
        monkeypatch.setattr(notification_task.saved_search_notification_job, "apply_async", refuse)

        assert notification_task.enqueue_saved_search_notification(uuid4()) is False


# =============================================================================
# schedule_saved_searches
# =============================================================================


class TestScheduleSavedSearchesTask:
    def test_enqueues_eligible_users(self, task_db, db_session, monkeypatch):
        eligible = create_test_user(db_session, trust_level=1)
        untrusted = create_test_user(db_session, trust_level=0)
        create_test_user(db_session, trust_level=3)
        set_saved_searches(db_session, eligible.id, ["coupon"])
        set_saved_searches(db_session, untrusted.id, ["coupon"])

        enqueued = []
        monkeypatch.setattr(
            schedule_task,
            "enqueue_saved_search_notification",
            lambda user_id, request_id=None: enqueued.append(user_id) or True,
        )

        count = schedule_task.schedule_saved_searches_job()

        assert count == 1
        assert enqueued == [eligible.id]

    def test_counts_only_successful_dispatches(self, task_db, db_session, monkeypatch):
        for _ in range(2):
            user = create_test_user(db_session, trust_level=1)
            set_saved_searches(db_session, user.id, ["coupon"])
        monkeypatch.setattr(
            schedule_task,
            "enqueue_saved_search_notification",
            lambda user_id, request_id=None: False,
        )

        assert schedule_task.schedule_saved_searches_job() == 0


class TestCeleryConfig:
    def test_tasks_registered(self):
        assert "saved_search_notification" in celery_app.tasks
        assert "schedule_saved_searches" in celery_app.tasks

    def test_routes(self):
        routes = celery_app.conf.task_routes
        assert routes["saved_search_notification"] == {"queue": "notifications"}
        assert routes["schedule_saved_searches"] == {"queue": "default"}

    def test_beat_schedule(self):
        entry = celery_app.conf.beat_schedule["schedule-saved-searches"]
        assert entry["task"] == "schedule_saved_searches"
        assert entry["schedule"] == timedelta(minutes=1440)
