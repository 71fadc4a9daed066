"""SQLAlchemy ORM models for Agora.

Defines all database tables using SQLAlchemy 2.x declarative patterns.
Column types are kept dialect-neutral so the same models run on PostgreSQL
in production and SQLite in tests.
"""

from datetime import datetime
from enum import Enum as PyEnum
from uuid import UUID, uuid4

from sqlalchemy import (
    Boolean,
    CheckConstraint,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    Text,
    UniqueConstraint,
    Uuid,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


# =============================================================================
# Enums
# =============================================================================


class TopicArchetype(str, PyEnum):
    """Kinds of topic.

    regular topics are public; private_message topics are only visible
    to the users listed in topic_allowed_users.
    """

    regular = "regular"
    private_message = "private_message"


class TopicSubtype(str, PyEnum):
    """Subtypes of private message topics."""

    user_to_user = "user_to_user"
    system_message = "system_message"


# =============================================================================
# Models
# =============================================================================


class User(Base):
    """Forum user account."""

    __tablename__ = "users"

    id: Mapped[UUID] = mapped_column(Uuid, primary_key=True, default=uuid4)
    username: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    trust_level: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        CheckConstraint("trust_level BETWEEN 0 AND 4", name="ck_users_trust_level"),
    )

    # Relationships
    saved_searches: Mapped[list["SavedSearch"]] = relationship(
        "SavedSearch",
        back_populates="user",
        cascade="all, delete-orphan",
        order_by="SavedSearch.position",
    )


class Topic(Base):
    """A discussion topic or a private message thread."""

    __tablename__ = "topics"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    title: Mapped[str] = mapped_column(Text, nullable=False)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    archetype: Mapped[str] = mapped_column(
        Text, nullable=False, default=TopicArchetype.regular.value
    )
    subtype: Mapped[str | None] = mapped_column(Text, nullable=True)
    visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        CheckConstraint(
            "archetype IN ('regular', 'private_message')",
            name="ck_topics_archetype",
        ),
        Index("ix_topics_subtype", "subtype"),
    )

    # Relationships
    user: Mapped["User"] = relationship("User")
    posts: Mapped[list["Post"]] = relationship(
        "Post", back_populates="topic", cascade="all, delete-orphan", order_by="Post.post_number"
    )
    allowed_users: Mapped[list["TopicAllowedUser"]] = relationship(
        "TopicAllowedUser", back_populates="topic", cascade="all, delete-orphan"
    )


class TopicAllowedUser(Base):
    """Recipient of a private message topic."""

    __tablename__ = "topic_allowed_users"

    topic_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("topics.id", ondelete="CASCADE"), primary_key=True
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )

    topic: Mapped["Topic"] = relationship("Topic", back_populates="allowed_users")


class Post(Base):
    """A post within a topic.

    Post ids increase monotonically, so (created_at, id) orders posts
    totally even when timestamps collide.
    """

    __tablename__ = "posts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    topic_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("topics.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    post_number: Mapped[int] = mapped_column(Integer, nullable=False)
    raw: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
    deleted_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    __table_args__ = (
        UniqueConstraint("topic_id", "post_number", name="uq_posts_topic_post_number"),
        Index("ix_posts_created_at_id", "created_at", "id"),
    )

    topic: Mapped["Topic"] = relationship("Topic", back_populates="posts")
    user: Mapped["User"] = relationship("User")


class SavedSearch(Base):
    """A saved search term, ordered by position within a user's list.

    The same term may appear more than once.
    """

    __tablename__ = "saved_searches"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), nullable=False
    )
    position: Mapped[int] = mapped_column(Integer, nullable=False)
    term: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )

    __table_args__ = (
        UniqueConstraint("user_id", "position", name="uq_saved_searches_user_position"),
        CheckConstraint("length(term) >= 1", name="ck_saved_searches_term_nonempty"),
    )

    user: Mapped["User"] = relationship("User", back_populates="saved_searches")


class SavedSearchCursor(Base):
    """Newest post already reported to a user for a saved search term."""

    __tablename__ = "saved_search_cursors"

    user_id: Mapped[UUID] = mapped_column(
        Uuid, ForeignKey("users.id", ondelete="CASCADE"), primary_key=True
    )
    term: Mapped[str] = mapped_column(Text, primary_key=True)
    last_post_created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    last_post_id: Mapped[int] = mapped_column(Integer, nullable=False)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        server_default=func.now(),
        nullable=False,
    )
