"""Three-agent tutor workflow with an optional human approval gate.

State machine::

    RUN_AGENT_1 -> [AWAIT_APPROVAL] -> RUN_AGENT_2_SILENT -> RUN_AGENT_3 -> DONE
                         |
                         +-> ABORTED (rejected or timed out)

Agent 1 (solver) and agent 3 (explainer) stream to the client; a
``MessageBoundaryEvent`` separates their output. Agent 2 (reviewer) runs
silently and only feeds the conversation history. On ABORTED the turn ends
with agent 1's message and agent 2 is never invoked. Nothing persists
across process restarts.
"""

import logging
import uuid
from collections.abc import AsyncIterator
from typing import Any

from agents import Runner

from mathtutor.orchestrator.agent.config import extract_tutor_message
from mathtutor.orchestrator.agent.factory import (
    create_explainer_agent,
    create_reviewer_agent,
    create_run_config,
    create_solver_agent,
)
from mathtutor.orchestrator.agent.stream_adapter import adapt_agent_stream
from mathtutor.orchestrator.models.events import (
    ApprovalRequestEvent,
    DoneEvent,
    ErrorEvent,
    MessageBoundaryEvent,
    StreamEvent,
    TextEvent,
    merge_file_references,
)
from mathtutor.orchestrator.workflow import (
    WorkflowError,
    WorkflowInput,
    build_conversation_history,
)
from mathtutor.services.approval_store import (
    APPROVAL_POLL_INTERVAL_SECONDS,
    APPROVAL_TIMEOUT_SECONDS,
    ApprovalStore,
    get_approval_store,
    wait_for_approval,
)

logger = logging.getLogger(__name__)


class _StepOutcome:
    """Collects the terminal event of one streamed agent step."""

    def __init__(self) -> None:
        self.result: Any = None
        self.done: DoneEvent | None = None
        self.error: ErrorEvent | None = None


async def _stream_step(
    agent: Any,
    history: list[Any],
    outcome: _StepOutcome,
) -> AsyncIterator[StreamEvent]:
    """Run one visible agent, forwarding text and capturing the terminal event.

    The runtime result lands in ``outcome.result`` for history folding.
    """
    result = Runner.run_streamed(agent, input=history, run_config=create_run_config())
    outcome.result = result
    async for event in adapt_agent_stream(result, extract_tutor_message):
        if isinstance(event, TextEvent):
            yield event
        elif isinstance(event, DoneEvent):
            outcome.done = event
        elif isinstance(event, ErrorEvent):
            outcome.error = event
    if outcome.error is None and not getattr(result, "final_output", None):
        outcome.error = ErrorEvent(message=WorkflowError.no_output(agent.name).message)


async def run_multi_agent_workflow(
    workflow: WorkflowInput,
    approval_store: ApprovalStore | None = None,
    require_approval: bool = True,
    approval_timeout: float = APPROVAL_TIMEOUT_SECONDS,
    poll_interval: float = APPROVAL_POLL_INTERVAL_SECONDS,
) -> AsyncIterator[StreamEvent]:
    """Run solver, silent reviewer and explainer as one streamed turn.

    Args:
        workflow: Turn input; uploaded files are mounted for every agent.
        approval_store: Store polled for the human decision. Defaults to
            the process-wide store.
        require_approval: Whether to pause for approval after agent 1.
        approval_timeout: Seconds to wait before treating the request as
            rejected.
        poll_interval: Seconds between store polls.

    Yields:
        Text, approval request and boundary events, then exactly one
        DoneEvent or ErrorEvent.
    """
    store = approval_store if approval_store is not None else get_approval_store()
    file_ids = workflow.file_ids
    history: list[Any] = build_conversation_history(workflow.input_as_text)

    try:
        # RUN_AGENT_1
        solver = create_solver_agent(file_ids)
        first = _StepOutcome()
        async for event in _stream_step(solver, history, first):
            yield event
        if first.error is not None:
            yield first.error
            return
        history = first.result.to_input_list()

        # AWAIT_APPROVAL
        if require_approval:
            approval_id = str(uuid.uuid4())
            logger.info("Requesting approval %s before review step", approval_id)
            yield ApprovalRequestEvent(
                approval_id=approval_id,
                message="Continue with a reviewed explanation of this solution?",
            )
            approved = await wait_for_approval(
                store, approval_id, timeout=approval_timeout, interval=poll_interval
            )
            if not approved:
                logger.info("Approval %s rejected; ending turn after solver", approval_id)
                yield first.done
                return

        # RUN_AGENT_2_SILENT
        reviewer = create_reviewer_agent(file_ids)
        second = await Runner.run(reviewer, input=history, run_config=create_run_config())
        if not second.final_output:
            yield ErrorEvent(message=WorkflowError.no_output(reviewer.name).message)
            return
        history = second.to_input_list()

        yield MessageBoundaryEvent(message=first.done.message)

        # RUN_AGENT_3
        explainer = create_explainer_agent(file_ids)
        third = _StepOutcome()
        async for event in _stream_step(explainer, history, third):
            yield event
        if third.error is not None:
            yield third.error
            return

        # DONE
        yield DoneEvent(
            message=third.done.message,
            output=third.done.output,
            files=merge_file_references(first.done.files, third.done.files),
            container_id=third.done.container_id or first.done.container_id,
        )

    except Exception as e:
        logger.exception("Multi-agent workflow failed")
        yield ErrorEvent(message=str(e) or "Unknown workflow error")
