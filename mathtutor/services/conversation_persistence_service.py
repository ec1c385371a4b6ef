"""Persistence service for conversations and chat history.

Thin layer between API routes and SQLAlchemy models. All conversation and
history reads and writes go through this service.
"""

import logging

from sqlalchemy import func
from sqlalchemy.orm import Session

from mathtutor.db.models import (
    ChatMessage,
    Conversation,
    MessageRole,
    generate_uuid,
    utc_now_iso,
)
from mathtutor.errors import NotFoundError
from mathtutor.services.attachments import (
    DEFAULT_CONVERSATION_TITLE,
    title_from_message,
)

logger = logging.getLogger(__name__)


class ConversationPersistenceService:
    """CRUD operations for conversations and their chat history.

    Args:
        db: SQLAlchemy session (sync).
    """

    def __init__(self, db: Session) -> None:
        self._db = db

    def create_conversation(
        self, user_id: str, title: str | None = None
    ) -> Conversation:
        """Create a conversation owned by ``user_id``."""
        conversation = Conversation(
            id=generate_uuid(),
            user_id=user_id,
            title=title or DEFAULT_CONVERSATION_TITLE,
        )
        self._db.add(conversation)
        self._db.commit()
        logger.info("Created conversation %s for user %s", conversation.id, user_id)
        return conversation

    def get_conversation(self, conversation_id: str) -> Conversation | None:
        return self._db.get(Conversation, conversation_id)

    def list_conversations(self, user_id: str) -> list[Conversation]:
        """List a user's conversations, most recently updated first."""
        return (
            self._db.query(Conversation)
            .filter_by(user_id=user_id)
            .order_by(Conversation.updated_at.desc(), Conversation.created_at.desc())
            .all()
        )

    def rename_conversation(self, conversation_id: str, title: str) -> Conversation:
        """Set the title and bump ``updated_at``.

        Raises:
            NotFoundError: If the conversation does not exist.
        """
        conversation = self._db.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", conversation_id)
        conversation.title = title
        conversation.updated_at = utc_now_iso()
        self._db.commit()
        return conversation

    def retitle_if_default(self, conversation_id: str, message: str) -> bool:
        """Title a conversation from ``message`` if it still has the default title.

        Returns:
            True if the title changed.
        """
        conversation = self._db.get(Conversation, conversation_id)
        if conversation is None or conversation.title != DEFAULT_CONVERSATION_TITLE:
            return False
        title = title_from_message(message)
        if title == DEFAULT_CONVERSATION_TITLE:
            return False
        conversation.title = title
        conversation.updated_at = utc_now_iso()
        self._db.commit()
        return True

    def delete_conversation(self, conversation_id: str) -> None:
        """Delete a conversation and, by cascade, its messages.

        Raises:
            NotFoundError: If the conversation does not exist.
        """
        conversation = self._db.get(Conversation, conversation_id)
        if conversation is None:
            raise NotFoundError("Conversation", conversation_id)
        self._db.delete(conversation)
        self._db.commit()
        logger.info("Deleted conversation %s", conversation_id)

    def save_message(
        self,
        user_id: str,
        conversation_id: str | None,
        role: str,
        message: str,
    ) -> ChatMessage:
        """Append a history row with an auto-incrementing sequence.

        Bumps the parent conversation's ``updated_at`` in the same commit.
        """
        # SELECT+INSERT is safe under SQLite's single writer. With concurrent
        # Postgres writers, use a DB sequence or SELECT FOR UPDATE.
        max_seq = (
            self._db.query(func.max(ChatMessage.sequence))
            .filter(ChatMessage.conversation_id == conversation_id)
            .scalar()
        )
        next_seq = (max_seq or 0) + 1

        row = ChatMessage(
            id=generate_uuid(),
            user_id=user_id,
            conversation_id=conversation_id,
            message=message,
            role=MessageRole(role).value,
            sequence=next_seq,
        )
        self._db.add(row)

        if conversation_id:
            conversation = self._db.get(Conversation, conversation_id)
            if conversation is not None:
                conversation.updated_at = utc_now_iso()

        self._db.commit()
        return row

    def get_history(
        self, user_id: str, conversation_id: str | None = None
    ) -> list[ChatMessage]:
        """Return a user's history in causal order.

        When ``conversation_id`` is given only that conversation's rows are
        returned.
        """
        query = self._db.query(ChatMessage).filter(ChatMessage.user_id == user_id)
        if conversation_id:
            query = query.filter(ChatMessage.conversation_id == conversation_id)
            return query.order_by(ChatMessage.sequence, ChatMessage.created_at).all()
        return query.order_by(ChatMessage.created_at, ChatMessage.sequence).all()
