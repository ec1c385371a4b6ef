"""SQLAlchemy ORM models for the MathTutor database.

Defines conversations and their chat history. Uses SQLAlchemy 2.0 style
with Mapped and mapped_column.
"""

from datetime import UTC, datetime
from enum import Enum
from uuid import uuid4

from sqlalchemy import ForeignKey, Index, Integer, String, Text
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


def generate_uuid() -> str:
    """Generate a UUID4 string for primary keys."""
    return str(uuid4())


def utc_now_iso() -> str:
    """Generate current UTC timestamp in ISO8601 format."""
    return datetime.now(UTC).isoformat()


class MessageRole(str, Enum):
    """Speaker of a chat history row."""

    user = "user"
    assistant = "assistant"


class Base(DeclarativeBase):
    """Base class for all ORM models."""

    pass


class Conversation(Base):
    """A user's chat conversation.

    Attributes:
        id: UUID primary key.
        user_id: Owner, as issued by the external auth provider.
        title: Display title; derived from the first user message.
        created_at: ISO8601 creation timestamp.
        updated_at: ISO8601 timestamp of the latest turn or rename.
    """

    __tablename__ = "conversations"
    __table_args__ = (
        Index("ix_conversations_user_updated", "user_id", "updated_at"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    title: Mapped[str] = mapped_column(
        String(255), nullable=False, default="New Conversation"
    )
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )
    updated_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    messages: Mapped[list["ChatMessage"]] = relationship(
        "ChatMessage",
        back_populates="conversation",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="ChatMessage.sequence",
    )

    def __repr__(self) -> str:
        return f"<Conversation(id={self.id!r}, title={self.title!r})>"


class ChatMessage(Base):
    """One persisted chat turn from one speaker.

    Rows are append-only. ``sequence`` orders rows within a conversation
    when two rows share a ``created_at`` value.

    Attributes:
        id: UUID primary key.
        user_id: Owner of the conversation.
        conversation_id: FK to Conversation (nullable for legacy rows).
        message: Message text (Markdown, may contain LaTeX).
        role: 'user' or 'assistant'.
        sequence: Monotonic ordering within the conversation.
        created_at: ISO8601 creation timestamp.
    """

    __tablename__ = "chat_history"
    __table_args__ = (
        Index("ix_chat_history_user", "user_id"),
        Index("ix_chat_history_conversation_seq", "conversation_id", "sequence"),
    )

    id: Mapped[str] = mapped_column(
        String(36), primary_key=True, default=generate_uuid
    )
    user_id: Mapped[str] = mapped_column(String(255), nullable=False)
    conversation_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("conversations.id", ondelete="CASCADE"),
        nullable=True,
    )
    message: Mapped[str] = mapped_column(Text, nullable=False)
    role: Mapped[str] = mapped_column(String(20), nullable=False)
    sequence: Mapped[int] = mapped_column(Integer, nullable=False, default=1)
    created_at: Mapped[str] = mapped_column(
        String(50), nullable=False, default=utc_now_iso
    )

    conversation: Mapped["Conversation | None"] = relationship(
        "Conversation", back_populates="messages"
    )

    def __repr__(self) -> str:
        return (
            f"<ChatMessage(id={self.id!r}, role={self.role!r}, "
            f"seq={self.sequence})>"
        )
