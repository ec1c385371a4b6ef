"""Pydantic schemas for the MathTutor API.

Request and response bodies use the camelCase keys the browser client
sends (``userId``, ``conversationId``...). Models accept either the alias
or the Python field name.
"""

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


# ---------------------------------------------------------------------------
# Chat
# ---------------------------------------------------------------------------


class ChatRequest(_CamelModel):
    """One user turn.

    ``message`` and ``userId`` are checked by the route so that a missing
    value maps to HTTP 400.
    """

    message: Optional[str] = None
    user_id: Optional[str] = Field(default=None, alias="userId")
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    file_ids: list[str] = Field(default_factory=list, alias="fileIds")


# ---------------------------------------------------------------------------
# Conversations and history
# ---------------------------------------------------------------------------


class ConversationResponse(BaseModel):
    """A conversation row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    title: str
    created_at: str
    updated_at: str


class ConversationListResponse(BaseModel):
    conversations: list[ConversationResponse]


class ConversationEnvelope(BaseModel):
    conversation: ConversationResponse


class CreateConversationRequest(_CamelModel):
    user_id: Optional[str] = Field(default=None, alias="userId")
    title: Optional[str] = None


class RenameConversationRequest(_CamelModel):
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")
    title: Optional[str] = None


class SuccessResponse(BaseModel):
    success: bool = True


class ChatHistoryMessage(BaseModel):
    """A chat history row."""

    model_config = ConfigDict(from_attributes=True)

    id: str
    user_id: str
    conversation_id: Optional[str] = None
    message: str
    role: str
    created_at: str


class ChatHistoryResponse(BaseModel):
    history: list[ChatHistoryMessage]


# ---------------------------------------------------------------------------
# Files
# ---------------------------------------------------------------------------


class UploadResponse(_CamelModel):
    """A user attachment accepted by the agent runtime file store."""

    file_id: str = Field(alias="fileId")
    filename: str
    bytes: int


class DownloadFileRequest(_CamelModel):
    file_id: Optional[str] = Field(default=None, alias="fileId")
    container_id: Optional[str] = Field(default=None, alias="containerId")
    file_name: Optional[str] = Field(default=None, alias="fileName")
    user_id: Optional[str] = Field(default=None, alias="userId")
    conversation_id: Optional[str] = Field(default=None, alias="conversationId")


class DownloadFileResponse(_CamelModel):
    success: bool = True
    url: str
    path: str
    file_name: str = Field(alias="fileName")


# ---------------------------------------------------------------------------
# Approval
# ---------------------------------------------------------------------------


class ApprovalDecisionRequest(_CamelModel):
    approval_id: Optional[str] = Field(default=None, alias="approvalId")
    approved: Optional[bool] = None


class ApprovalStatusResponse(BaseModel):
    approved: Optional[bool] = None
