"""Database models, engine, and session management."""

from aichat.db.base import Base, TimestampMixin, utcnow
from aichat.db.engine import (
    build_engine,
    dispose_engine,
    get_engine,
    verify_database_connection,
)
from aichat.db.models import (
    Conversation,
    FixedPrompt,
    Message,
    User,
    UserSession,
)
from aichat.db.session import get_db, get_session_factory
from aichat.db.store import SqlMessageStore

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    "utcnow",
    # Engine
    "build_engine",
    "get_engine",
    "verify_database_connection",
    "dispose_engine",
    # Session
    "get_db",
    "get_session_factory",
    # Store
    "SqlMessageStore",
    # Models
    "Conversation",
    "FixedPrompt",
    "Message",
    "User",
    "UserSession",
]
