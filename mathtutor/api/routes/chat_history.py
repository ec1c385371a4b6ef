"""Chat history route."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from mathtutor.api.schemas import ChatHistoryMessage, ChatHistoryResponse
from mathtutor.db.connection import get_db
from mathtutor.errors import MathTutorError
from mathtutor.services.conversation_persistence_service import (
    ConversationPersistenceService,
)

router = APIRouter(tags=["chat-history"])


@router.get("/chat-history", response_model=ChatHistoryResponse)
def get_chat_history(
    user_id: str | None = Query(default=None, alias="userId"),
    conversation_id: str | None = Query(default=None, alias="conversationId"),
    db: Session = Depends(get_db),
) -> ChatHistoryResponse:
    """Return a user's history in causal order, optionally for one conversation."""
    if not user_id:
        raise MathTutorError.from_code("E-1001", field="userId")
    rows = ConversationPersistenceService(db).get_history(user_id, conversation_id)
    return ChatHistoryResponse(
        history=[ChatHistoryMessage.model_validate(r) for r in rows]
    )
