"""Workflow selection for a chat turn."""

import logging
from collections.abc import AsyncIterator

from mathtutor.orchestrator.agent.config import (
    MULTI_MODE,
    approval_required,
    get_workflow_mode,
)
from mathtutor.orchestrator.models.events import StreamEvent
from mathtutor.orchestrator.multi_agent import run_multi_agent_workflow
from mathtutor.orchestrator.workflow import (
    WorkflowInput,
    create_workflow_stream,
    create_workflow_stream_with_files,
)
from mathtutor.services.approval_store import ApprovalStore

logger = logging.getLogger(__name__)


def create_chat_stream(
    workflow: WorkflowInput,
    approval_store: ApprovalStore | None = None,
) -> AsyncIterator[StreamEvent]:
    """Pick the workflow for MATHTUTOR_WORKFLOW_MODE and the attached files."""
    if get_workflow_mode() == MULTI_MODE:
        logger.info("Running multi-agent workflow")
        return run_multi_agent_workflow(
            workflow,
            approval_store=approval_store,
            require_approval=approval_required(),
        )
    if workflow.file_ids:
        return create_workflow_stream_with_files(workflow)
    return create_workflow_stream(workflow)
