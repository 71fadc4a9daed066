"""Post search service layer.

Implements keyword search over public forum posts for saved-search
notifications.

Search enforces visibility inside SQL, not as a post-filter:
- Only posts in regular (non-private-message), visible, non-deleted topics
- Deleted posts are never returned
- The requesting user's own posts are excluded

Matching:
- PostgreSQL: to_tsvector('english', raw) @@ websearch_to_tsquery('english', :q)
- Other dialects: case-insensitive substring match (LIKE wildcards escaped)

Results are ordered oldest first by (created_at, id). The id tie-break keeps
the order total when timestamps collide, which the saved-search cursor
depends on: a capped page ends at a cursor position and the rest of the
window follows on the next call.

No raw queries are logged (only a hash for debugging).
"""

import hashlib
from dataclasses import dataclass
from datetime import datetime
from typing import Protocol
from uuid import UUID

from sqlalchemy import and_, func, literal_column, or_, select
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from agora.db.models import Post, Topic, TopicArchetype, User
from agora.logging import get_logger

logger = get_logger(__name__)

# =============================================================================
# Constants
# =============================================================================

DEFAULT_LIMIT = 20
MAX_LIMIT = 50
MIN_QUERY_LENGTH = 2

MAX_EXCERPT_LENGTH = 200


# =============================================================================
# Types
# =============================================================================


@dataclass(frozen=True, order=True)
class SearchCursor:
    """Position of a post in (created_at, id) order."""

    created_at: datetime
    post_id: int


@dataclass(frozen=True)
class PostSearchHit:
    """A post matching a search term."""

    post_id: int
    topic_id: int
    topic_title: str
    post_number: int
    user_id: UUID
    username: str
    created_at: datetime
    excerpt: str

    @property
    def cursor(self) -> SearchCursor:
        return SearchCursor(created_at=self.created_at, post_id=self.post_id)


class PostSearcher(Protocol):
    """Search capability used by the saved-search notifier."""

    def search_recent_posts(
        self,
        term: str,
        *,
        since: datetime,
        exclude_user_id: UUID,
        after: SearchCursor | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[PostSearchHit]:
        """Return public posts matching term, oldest first.

        Only posts created at or after `since`, not written by
        `exclude_user_id`, and strictly after `after` (when given).
        When more than `limit` posts qualify, the oldest `limit` are returned.
        """
        ...


# =============================================================================
# Helpers
# =============================================================================


def hash_query(q: str) -> str:
    """Hash a normalized query for logging (privacy-safe)."""
    q_normalized = q.strip().lower()
    return hashlib.sha256(q_normalized.encode("utf-8")).hexdigest()[:16]


def clamp_limit(limit: int) -> int:
    """Clamp limit to valid range [1, MAX_LIMIT]."""
    return min(max(limit, 1), MAX_LIMIT)


def escape_like(value: str) -> str:
    """Escape LIKE wildcards so the term matches literally."""
    return value.replace("\\", "\\\\").replace("%", "\\%").replace("_", "\\_")


def make_excerpt(raw: str, max_length: int = MAX_EXCERPT_LENGTH) -> str:
    """Collapse whitespace and truncate post text for display."""
    text = " ".join(raw.split())
    if len(text) <= max_length:
        return text
    return text[: max_length - 1].rstrip() + "…"


def _match_clause(db: Session, q: str) -> ColumnElement[bool]:
    """Build the term-matching predicate for the session's dialect."""
    if db.get_bind().dialect.name == "postgresql":
        config = literal_column("'english'::regconfig")
        return func.to_tsvector(config, Post.raw).bool_op("@@")(
            func.websearch_to_tsquery(config, q)
        )
    return Post.raw.ilike(f"%{escape_like(q)}%", escape="\\")


def _after_clause(after: SearchCursor) -> ColumnElement[bool]:
    """Rows strictly after the cursor in (created_at, id) order."""
    return or_(
        Post.created_at > after.created_at,
        and_(Post.created_at == after.created_at, Post.id > after.post_id),
    )


# =============================================================================
# Service Functions
# =============================================================================


def search_recent_posts(
    db: Session,
    term: str,
    *,
    since: datetime,
    exclude_user_id: UUID,
    after: SearchCursor | None = None,
    limit: int = DEFAULT_LIMIT,
) -> list[PostSearchHit]:
    """Search public posts matching a term.

    Args:
        db: Database session.
        term: Search term. Terms shorter than MIN_QUERY_LENGTH match nothing.
        since: Lower bound (inclusive) on post creation time.
        exclude_user_id: Author whose posts are never returned.
        after: Only return posts strictly newer than this cursor.
        limit: Maximum number of results (clamped to 1-50).

    Returns:
        The oldest `limit` matching posts, ordered by (created_at, id) ascending.
    """
    q = term.strip()
    if len(q) < MIN_QUERY_LENGTH:
        return []

    stmt = (
        select(
            Post.id,
            Post.topic_id,
            Topic.title,
            Post.post_number,
            Post.user_id,
            User.username,
            Post.created_at,
            Post.raw,
        )
        .join(Topic, Topic.id == Post.topic_id)
        .join(User, User.id == Post.user_id)
        .where(
            _match_clause(db, q),
            Post.created_at >= since,
            Post.user_id != exclude_user_id,
            Post.deleted_at.is_(None),
            Topic.deleted_at.is_(None),
            Topic.visible.is_(True),
            Topic.archetype == TopicArchetype.regular.value,
        )
        .order_by(Post.created_at.asc(), Post.id.asc())
        .limit(clamp_limit(limit))
    )
    if after is not None:
        stmt = stmt.where(_after_clause(after))

    rows = db.execute(stmt).fetchall()

    logger.debug(
        "post_search_executed",
        query_hash=hash_query(q),
        result_count=len(rows),
        has_cursor=after is not None,
    )

    return [
        PostSearchHit(
            post_id=row[0],
            topic_id=row[1],
            topic_title=row[2],
            post_number=row[3],
            user_id=row[4],
            username=row[5],
            created_at=row[6],
            excerpt=make_excerpt(row[7]),
        )
        for row in rows
    ]


class SqlPostSearcher:
    """PostSearcher backed by the application database."""

    def __init__(self, db: Session):
        self.db = db

    def search_recent_posts(
        self,
        term: str,
        *,
        since: datetime,
        exclude_user_id: UUID,
        after: SearchCursor | None = None,
        limit: int = DEFAULT_LIMIT,
    ) -> list[PostSearchHit]:
        return search_recent_posts(
            self.db,
            term,
            since=since,
            exclude_user_id=exclude_user_id,
            after=after,
            limit=limit,
        )
