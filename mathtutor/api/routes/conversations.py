"""Conversation CRUD routes.

- ``GET /api/conversations?userId=`` lists a user's conversations, most
  recently updated first.
- ``POST /api/conversations`` creates one.
- ``PATCH /api/conversations`` renames one.
- ``DELETE /api/conversations?conversationId=`` deletes one and its history.
"""

import logging

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from mathtutor.api.schemas import (
    ConversationEnvelope,
    ConversationListResponse,
    ConversationResponse,
    CreateConversationRequest,
    RenameConversationRequest,
    SuccessResponse,
)
from mathtutor.db.connection import get_db
from mathtutor.errors import MathTutorError
from mathtutor.services.conversation_persistence_service import (
    ConversationPersistenceService,
)

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/conversations", tags=["conversations"])


@router.get("", response_model=ConversationListResponse)
def list_conversations(
    user_id: str | None = Query(default=None, alias="userId"),
    db: Session = Depends(get_db),
) -> ConversationListResponse:
    if not user_id:
        raise MathTutorError.from_code("E-1001", field="userId")
    rows = ConversationPersistenceService(db).list_conversations(user_id)
    return ConversationListResponse(
        conversations=[ConversationResponse.model_validate(r) for r in rows]
    )


@router.post("", response_model=ConversationEnvelope)
def create_conversation(
    payload: CreateConversationRequest,
    db: Session = Depends(get_db),
) -> ConversationEnvelope:
    if not payload.user_id:
        raise MathTutorError.from_code("E-1001", field="userId")
    conversation = ConversationPersistenceService(db).create_conversation(
        payload.user_id, payload.title
    )
    return ConversationEnvelope(
        conversation=ConversationResponse.model_validate(conversation)
    )


@router.patch("", response_model=SuccessResponse)
def rename_conversation(
    payload: RenameConversationRequest,
    db: Session = Depends(get_db),
) -> SuccessResponse:
    """Rename a conversation.

    Raises:
        NotFoundError: If the conversation does not exist (HTTP 404).
    """
    if not payload.conversation_id:
        raise MathTutorError.from_code("E-1001", field="conversationId")
    if not payload.title:
        raise MathTutorError.from_code("E-1001", field="title")
    ConversationPersistenceService(db).rename_conversation(
        payload.conversation_id, payload.title
    )
    return SuccessResponse()


@router.delete("", response_model=SuccessResponse)
def delete_conversation(
    conversation_id: str | None = Query(default=None, alias="conversationId"),
    db: Session = Depends(get_db),
) -> SuccessResponse:
    """Delete a conversation; its chat history goes with it.

    Raises:
        NotFoundError: If the conversation does not exist (HTTP 404).
    """
    if not conversation_id:
        raise MathTutorError.from_code("E-1001", field="conversationId")
    ConversationPersistenceService(db).delete_conversation(conversation_id)
    return SuccessResponse()
