"""Saved search notifier.

Re-runs a user's saved search terms against recent public posts and sends
one private system message summarising anything not reported before.

Per run, for one user:
1. Missing user, trust level below the minimum, or no saved terms: no-op
2. Each distinct term is searched in stored order, bounded by the recency
   window, excluding the user's own posts, and strictly after the term's
   cursor. At most results_per_term posts are taken per term, oldest first
3. If any term has new posts: one system message, then every contributing
   term's cursor advances to the newest post it reported; both commit
   together. Posts past the per-term cap are reported by the next run
4. Otherwise nothing is written

Search and messaging failures propagate after rollback. Retry policy
belongs to the caller.
"""

from collections.abc import Callable
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from uuid import UUID

from sqlalchemy.orm import Session

from agora.config import Settings, get_settings
from agora.db.session import transaction
from agora.logging import get_logger
from agora.services import saved_searches
from agora.services.search import PostSearcher, SqlPostSearcher
from agora.services.system_messages import (
    SavedSearchSummary,
    SqlSystemMessenger,
    SystemMessenger,
    TermResults,
)

logger = get_logger(__name__)

SKIP_USER_NOT_FOUND = "user_not_found"
SKIP_TRUST_LEVEL_TOO_LOW = "trust_level_too_low"
SKIP_NO_SAVED_SEARCHES = "no_saved_searches"
SKIP_NO_NEW_RESULTS = "no_new_results"


@dataclass(frozen=True)
class NotificationOutcome:
    """What a notifier run did for one user."""

    notified: bool
    reason: str | None = None
    topic_id: int | None = None
    post_count: int = 0

    def as_dict(self) -> dict:
        if self.notified:
            return {"status": "notified", "topic_id": self.topic_id, "post_count": self.post_count}
        return {"status": "skipped", "reason": self.reason}


def _utcnow() -> datetime:
    return datetime.now(UTC)


def unique_terms(terms: list[str]) -> list[str]:
    """Drop repeated terms, keeping first-occurrence order."""
    seen: set[str] = set()
    out = []
    for term in terms:
        if term not in seen:
            seen.add(term)
            out.append(term)
    return out


class SavedSearchNotifier:
    """Sends saved-search result summaries to one user at a time.

    Collaborators are injected so the search backend and message delivery
    can be replaced in tests. Cursor state lives in the database and is
    never cached on the instance.
    """

    def __init__(
        self,
        db: Session,
        searcher: PostSearcher,
        messenger: SystemMessenger,
        *,
        min_trust_level: int,
        recency_window: timedelta,
        results_per_term: int,
        clock: Callable[[], datetime] = _utcnow,
    ):
        self.db = db
        self.searcher = searcher
        self.messenger = messenger
        self.min_trust_level = min_trust_level
        self.recency_window = recency_window
        self.results_per_term = results_per_term
        self.clock = clock

    @classmethod
    def from_settings(
        cls, db: Session, settings: Settings | None = None
    ) -> "SavedSearchNotifier":
        """Build a notifier wired to the database-backed collaborators."""
        settings = settings or get_settings()
        return cls(
            db,
            SqlPostSearcher(db),
            SqlSystemMessenger(
                db,
                base_url=settings.normalized_site_base_url,
                system_username=settings.system_username,
            ),
            min_trust_level=settings.saved_searches_min_trust_level,
            recency_window=timedelta(hours=settings.saved_search_recency_hours),
            results_per_term=settings.saved_search_results_per_term,
        )

    def execute(self, user_id: UUID) -> None:
        """Notify user_id about new saved-search results, if any."""
        self.run(user_id)

    def run(self, user_id: UUID) -> NotificationOutcome:
        """Same as execute, returning what happened."""
        log_ctx = {"user_id": str(user_id)}

        user = saved_searches.get_user(self.db, user_id)
        if user is None:
            logger.warning("saved_search_user_missing", **log_ctx)
            return NotificationOutcome(notified=False, reason=SKIP_USER_NOT_FOUND)

        if user.trust_level < self.min_trust_level:
            logger.debug(
                "saved_search_skipped",
                reason=SKIP_TRUST_LEVEL_TOO_LOW,
                trust_level=user.trust_level,
                min_trust_level=self.min_trust_level,
                **log_ctx,
            )
            return NotificationOutcome(notified=False, reason=SKIP_TRUST_LEVEL_TOO_LOW)

        terms = unique_terms(saved_searches.list_saved_search_terms(self.db, user_id))
        if not terms:
            logger.debug("saved_search_skipped", reason=SKIP_NO_SAVED_SEARCHES, **log_ctx)
            return NotificationOutcome(notified=False, reason=SKIP_NO_SAVED_SEARCHES)

        summary = self._collect(user_id, terms)
        if not summary:
            logger.info(
                "saved_search_skipped",
                reason=SKIP_NO_NEW_RESULTS,
                term_count=len(terms),
                **log_ctx,
            )
            return NotificationOutcome(notified=False, reason=SKIP_NO_NEW_RESULTS)

        with transaction(self.db):
            topic_id = self.messenger.send_saved_search_summary(user, summary)
            for term_results in summary.results:
                last_reported = max(hit.cursor for hit in term_results.hits)
                saved_searches.advance_cursor(
                    self.db, user_id, term_results.term, last_reported
                )

        logger.info(
            "saved_search_notified",
            topic_id=topic_id,
            term_count=len(summary.results),
            post_count=summary.post_count,
            **log_ctx,
        )
        return NotificationOutcome(
            notified=True, topic_id=topic_id, post_count=summary.post_count
        )

    def _collect(self, user_id: UUID, terms: list[str]) -> SavedSearchSummary:
        since = self.clock() - self.recency_window
        summary = SavedSearchSummary()

        for term in terms:
            hits = self.searcher.search_recent_posts(
                term,
                since=since,
                exclude_user_id=user_id,
                after=saved_searches.get_cursor(self.db, user_id, term),
                limit=self.results_per_term,
            )
            if hits:
                summary.results.append(TermResults(term=term, hits=hits))

        return summary
