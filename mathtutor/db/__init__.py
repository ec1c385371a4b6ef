"""Database module for conversation and chat history persistence."""

from mathtutor.db.connection import (
    SessionLocal,
    engine,
    get_db,
    get_session_factory,
    init_db,
    session_scope,
)
from mathtutor.db.models import (
    Base,
    ChatMessage,
    Conversation,
    MessageRole,
)

__all__ = [
    # Models
    "Base",
    "Conversation",
    "ChatMessage",
    # Enums
    "MessageRole",
    # Connection
    "engine",
    "SessionLocal",
    "get_db",
    "get_session_factory",
    "session_scope",
    "init_db",
]
