"""FastAPI dependencies for route handlers.

Common dependencies like database sessions and settings.
"""

from agora.config import get_settings
from agora.db.session import get_db, get_session_factory

__all__ = ["get_db", "get_session_factory", "get_settings"]
