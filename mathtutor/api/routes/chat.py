"""Chat generation route.

``POST /api/chat`` streams one tutor turn as SSE ``data:`` frames::

    {"type": "text", "content": "..."}
    {"type": "approval_request", "approvalId": "...", "message": "..."}
    {"type": "message_boundary"}
    {"type": "done", "message": "...", "conversationId": "..."}
    {"type": "error", "message": "..."}

The ``done`` frame is held back until sandbox files have been copied to
durable storage and the message links rewritten, so the client only ever
sees the reconciled message. History writes never block the response.

The turn runs in a background task that feeds a queue; the SSE response
only drains it, so a client disconnect does not stop the agent run, file
reconciliation or persistence.
"""

import asyncio
import json
import logging
from collections.abc import AsyncGenerator, Awaitable
from typing import Any

from fastapi import APIRouter, Depends
from sqlalchemy.orm import sessionmaker
from sse_starlette.sse import EventSourceResponse

from mathtutor.api.schemas import ChatRequest
from mathtutor.db.connection import get_session_factory, session_scope
from mathtutor.errors import MathTutorError
from mathtutor.orchestrator.dispatch import create_chat_stream
from mathtutor.orchestrator.models.events import (
    ApprovalRequestEvent,
    DoneEvent,
    ErrorEvent,
    MessageBoundaryEvent,
    TextEvent,
)
from mathtutor.orchestrator.workflow import WorkflowInput
from mathtutor.services.approval_store import ApprovalStore, get_approval_store
from mathtutor.services.attachments import title_from_message
from mathtutor.services.conversation_persistence_service import (
    ConversationPersistenceService,
)
from mathtutor.services.file_reconciliation import resolve_files, rewrite_segments
from mathtutor.services.file_storage import FileStorage, get_file_storage
from mathtutor.services.sandbox_files import SandboxFileClient, get_sandbox_client

logger = logging.getLogger(__name__)

router = APIRouter(tags=["chat"])

CLIENT_ERROR_MESSAGE = "Failed to process message"

_background_turns: set[asyncio.Task] = set()


def _sse(frame: dict[str, Any]) -> dict[str, str]:
    return {"data": json.dumps(frame)}


def _prepare_conversation(
    session_factory: sessionmaker,
    user_id: str,
    conversation_id: str | None,
    message: str,
) -> str | None:
    """Create or retitle the conversation for this turn.

    Returns the conversation id to use; None if creation failed.
    """
    try:
        with session_scope(session_factory) as db:
            svc = ConversationPersistenceService(db)
            if not conversation_id:
                conversation = svc.create_conversation(
                    user_id, title_from_message(message)
                )
                return conversation.id
            svc.retitle_if_default(conversation_id, message)
    except Exception as e:
        logger.error(
            "%s (%s)",
            MathTutorError.from_code("E-4001", operation="prepare the conversation"),
            e,
        )
    return conversation_id


def _persist_message(
    session_factory: sessionmaker,
    user_id: str,
    conversation_id: str | None,
    role: str,
    message: str,
) -> None:
    """Append one history row; failures are logged and swallowed."""
    try:
        with session_scope(session_factory) as db:
            ConversationPersistenceService(db).save_message(
                user_id, conversation_id, role, message
            )
    except Exception as e:
        logger.error(
            "%s (%s)",
            MathTutorError.from_code("E-4001", operation=f"save the {role} message"),
            e,
        )


def _on_turn_finished(task: asyncio.Task) -> None:
    _background_turns.discard(task)
    if not task.cancelled() and task.exception() is not None:
        logger.error("Chat turn task crashed: %s", task.exception())


async def _run_until_done(queue: asyncio.Queue, turn: Awaitable[None]) -> None:
    """Await ``turn`` and then queue ``None``, the end-of-stream marker."""
    try:
        await turn
    finally:
        queue.put_nowait(None)


async def _stream_and_persist(
    queue: asyncio.Queue,
    workflow: WorkflowInput,
    user_id: str,
    conversation_id: str | None,
    session_factory: sessionmaker,
    storage: FileStorage,
    sandbox: SandboxFileClient,
    approval_store: ApprovalStore,
) -> None:
    """Drive the workflow, reconcile files, persist, and queue frames.

    Runs as a background task so the turn finishes even if the client
    goes away.
    """
    segments: list[str] = []
    done: DoneEvent | None = None

    try:
        async for event in create_chat_stream(workflow, approval_store):
            if isinstance(event, (TextEvent, ApprovalRequestEvent)):
                queue.put_nowait(event.to_frame())
            elif isinstance(event, MessageBoundaryEvent):
                segments.append(event.message)
                queue.put_nowait(event.to_frame())
            elif isinstance(event, DoneEvent):
                done = event
            elif isinstance(event, ErrorEvent):
                raise MathTutorError.from_code("E-2001", reason=event.message)
        if done is None:
            raise MathTutorError.from_code("E-2001", reason="stream ended without a result")
    except Exception as e:
        logger.error("Chat turn failed for conversation %s: %s", conversation_id, e)
        queue.put_nowait(ErrorEvent(message=CLIENT_ERROR_MESSAGE).to_frame())
        return

    segments.append(done.message)

    if done.files:
        try:
            resolved = await resolve_files(
                done.files,
                done.container_id,
                user_id,
                conversation_id,
                sandbox,
                storage,
            )
            if resolved:
                segments = rewrite_segments(segments, resolved)
        except Exception:
            logger.exception("File reconciliation failed; keeping sandbox links")

    frame: dict[str, Any] = {
        "type": "done",
        "message": segments[-1],
        "conversationId": conversation_id,
    }
    if len(segments) > 1:
        frame["segments"] = segments
    queue.put_nowait(frame)

    for segment in segments:
        await asyncio.to_thread(
            _persist_message, session_factory, user_id, conversation_id, "assistant", segment
        )


async def _drain_frames(queue: asyncio.Queue) -> AsyncGenerator[dict, None]:
    """Relay queued frames to the client until the end marker."""
    while True:
        frame = await queue.get()
        if frame is None:
            break
        yield _sse(frame)


@router.post("/chat")
async def chat(
    payload: ChatRequest,
    session_factory: sessionmaker = Depends(get_session_factory),
    storage: FileStorage = Depends(get_file_storage),
    sandbox: SandboxFileClient = Depends(get_sandbox_client),
    approval_store: ApprovalStore = Depends(get_approval_store),
) -> EventSourceResponse:
    """Stream one tutor turn.

    Raises:
        MathTutorError: E-1001 (HTTP 400) if message or userId is missing.
    """
    if not payload.message:
        raise MathTutorError.from_code("E-1001", field="message")
    if not payload.user_id:
        raise MathTutorError.from_code("E-1001", field="userId")

    conversation_id = await asyncio.to_thread(
        _prepare_conversation,
        session_factory,
        payload.user_id,
        payload.conversation_id,
        payload.message,
    )
    await asyncio.to_thread(
        _persist_message,
        session_factory,
        payload.user_id,
        conversation_id,
        "user",
        payload.message,
    )

    workflow = WorkflowInput(input_as_text=payload.message, file_ids=payload.file_ids)
    logger.info(
        "Chat turn for user %s conversation %s (%d file(s))",
        payload.user_id,
        conversation_id,
        len(payload.file_ids),
    )
    queue: asyncio.Queue = asyncio.Queue()
    turn = _stream_and_persist(
        queue,
        workflow,
        payload.user_id,
        conversation_id,
        session_factory,
        storage,
        sandbox,
        approval_store,
    )
    task = asyncio.create_task(_run_until_done(queue, turn))
    _background_turns.add(task)
    task.add_done_callback(_on_turn_finished)
    return EventSourceResponse(_drain_frames(queue), media_type="text/event-stream")
