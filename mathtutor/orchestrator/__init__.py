"""Agent orchestration for MathTutor.

Main entry points:
    create_chat_stream: Stream one chat turn with the configured workflow.
    run_workflow: Run a single tutor turn to completion.
    adapt_agent_stream: Normalize a streamed agent run into StreamEvents.
"""

from mathtutor.orchestrator.agent.stream_adapter import adapt_agent_stream
from mathtutor.orchestrator.dispatch import create_chat_stream
from mathtutor.orchestrator.models.events import (
    ApprovalRequestEvent,
    DoneEvent,
    ErrorEvent,
    FileReference,
    MessageBoundaryEvent,
    StreamEvent,
    TextEvent,
)
from mathtutor.orchestrator.multi_agent import run_multi_agent_workflow
from mathtutor.orchestrator.workflow import (
    WorkflowError,
    WorkflowInput,
    build_conversation_history,
    create_workflow_stream,
    create_workflow_stream_with_files,
    run_workflow,
)

__all__ = [
    # Entry points
    "create_chat_stream",
    "create_workflow_stream",
    "create_workflow_stream_with_files",
    "run_workflow",
    "run_multi_agent_workflow",
    "adapt_agent_stream",
    "build_conversation_history",
    "WorkflowInput",
    "WorkflowError",
    # Events
    "StreamEvent",
    "TextEvent",
    "DoneEvent",
    "ErrorEvent",
    "MessageBoundaryEvent",
    "ApprovalRequestEvent",
    "FileReference",
]
