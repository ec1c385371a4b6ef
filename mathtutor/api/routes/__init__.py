"""FastAPI route modules.

Exports all route modules for inclusion in the main application.
"""

from mathtutor.api.routes import (
    approval,
    chat,
    chat_history,
    conversations,
    files,
    upload,
)

__all__ = [
    "chat",
    "conversations",
    "chat_history",
    "upload",
    "files",
    "approval",
]
