"""System message delivery.

A system message is a private_message topic with subtype system_message,
authored by the system user and visible only to its recipient.

Saved-search summaries render as Markdown:

    Found 2 new posts matching your saved searches.

    ### coupon

    - [Cheap stuff](https://forum.example/t/12/3) by @alice: Check out these coupon codes...
"""

from dataclasses import dataclass, field
from typing import Protocol
from uuid import UUID

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from agora.config import MAX_TRUST_LEVEL
from agora.db.models import Post, Topic, TopicAllowedUser, TopicArchetype, TopicSubtype, User
from agora.logging import get_logger
from agora.services.search import PostSearchHit

logger = get_logger(__name__)

MAX_TITLE_LENGTH = 255


# =============================================================================
# Types
# =============================================================================


@dataclass(frozen=True)
class TermResults:
    """New posts found for one saved search term, oldest first."""

    term: str
    hits: list[PostSearchHit]


@dataclass
class SavedSearchSummary:
    """Everything new across a user's saved searches for one run."""

    results: list[TermResults] = field(default_factory=list)

    @property
    def post_count(self) -> int:
        return sum(len(r.hits) for r in self.results)

    def __bool__(self) -> bool:
        return any(r.hits for r in self.results)


class SystemMessenger(Protocol):
    """Messaging capability used by the saved-search notifier."""

    def send_saved_search_summary(self, recipient: User, summary: SavedSearchSummary) -> int:
        """Create one private system message for recipient. Returns the topic id."""
        ...


# =============================================================================
# Rendering
# =============================================================================


def post_url(base_url: str, hit: PostSearchHit) -> str:
    return f"{base_url}/t/{hit.topic_id}/{hit.post_number}"


def render_summary_title(summary: SavedSearchSummary) -> str:
    terms = [r.term for r in summary.results if r.hits]
    if len(terms) == 1:
        title = f'New results for your saved search "{terms[0]}"'
    else:
        title = f"New results for {len(terms)} of your saved searches"
    return title[:MAX_TITLE_LENGTH]


def render_summary_body(summary: SavedSearchSummary, base_url: str) -> str:
    count = summary.post_count
    noun = "post" if count == 1 else "posts"
    lines = [f"Found {count} new {noun} matching your saved searches."]

    for term_results in summary.results:
        if not term_results.hits:
            continue
        lines.append("")
        lines.append(f"### {term_results.term}")
        lines.append("")
        for hit in term_results.hits:
            lines.append(
                f"- [{hit.topic_title}]({post_url(base_url, hit)}) by @{hit.username}: "
                f"{hit.excerpt}"
            )

    return "\n".join(lines)


# =============================================================================
# Delivery
# =============================================================================


def get_or_create_system_user(db: Session, username: str) -> User:
    """Return the account that authors system messages, creating it if needed.

    Does not commit.
    """
    user = db.scalar(select(User).where(User.username == username))
    if user is None:
        user = User(username=username, trust_level=MAX_TRUST_LEVEL)
        db.add(user)
        db.flush()
        logger.info("system_user_created", username=username)
    return user


def create_system_message(
    db: Session, recipient: User, title: str, raw: str, username: str
) -> Topic:
    """Create a private system-message topic with a single post.

    Does not commit; callers own the transaction.
    """
    author = get_or_create_system_user(db, username)

    topic = Topic(
        title=title,
        user_id=author.id,
        archetype=TopicArchetype.private_message.value,
        subtype=TopicSubtype.system_message.value,
        visible=True,
    )
    db.add(topic)
    db.flush()

    db.add(TopicAllowedUser(topic_id=topic.id, user_id=recipient.id))
    db.add(Post(topic_id=topic.id, user_id=author.id, post_number=1, raw=raw))
    db.flush()

    logger.info(
        "system_message_created",
        topic_id=topic.id,
        recipient_user_id=str(recipient.id),
    )
    return topic


def count_system_messages(db: Session, recipient_id: UUID | None = None) -> int:
    """Count system-message topics, optionally for one recipient."""
    stmt = (
        select(func.count())
        .select_from(Topic)
        .where(Topic.subtype == TopicSubtype.system_message.value)
    )
    if recipient_id is not None:
        stmt = stmt.join(TopicAllowedUser, TopicAllowedUser.topic_id == Topic.id).where(
            TopicAllowedUser.user_id == recipient_id
        )
    return db.scalar(stmt) or 0


class SqlSystemMessenger:
    """SystemMessenger that writes topics and posts to the application database."""

    def __init__(self, db: Session, base_url: str, system_username: str):
        self.db = db
        self.base_url = base_url.rstrip("/")
        self.system_username = system_username

    def send_saved_search_summary(self, recipient: User, summary: SavedSearchSummary) -> int:
        topic = create_system_message(
            self.db,
            recipient,
            title=render_summary_title(summary),
            raw=render_summary_body(summary, self.base_url),
            username=self.system_username,
        )
        return topic.id
