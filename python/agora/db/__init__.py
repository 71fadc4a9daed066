"""Database module for Agora.

Provides engine creation, session management, transaction helpers, and ORM models.
"""

from agora.db.engine import create_db_engine, get_engine
from agora.db.models import (
    Base,
    Post,
    SavedSearch,
    SavedSearchCursor,
    Topic,
    TopicAllowedUser,
    TopicArchetype,
    TopicSubtype,
    User,
)
from agora.db.session import get_db, transaction

__all__ = [
    # Engine and session
    "create_db_engine",
    "get_engine",
    "get_db",
    "transaction",
    # Base
    "Base",
    # Enums
    "TopicArchetype",
    "TopicSubtype",
    # Models
    "User",
    "Topic",
    "TopicAllowedUser",
    "Post",
    "SavedSearch",
    "SavedSearchCursor",
]
