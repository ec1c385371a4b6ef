"""Single-agent tutor workflow.

Builds the one-message conversation history, runs the tutor agent and
returns the adapted event stream. ``run_workflow`` is the non-streaming
variant used by the CLI and tests.
"""

import json
import logging
from collections.abc import AsyncIterator
from dataclasses import dataclass, field
from typing import Any

from agents import Runner

from mathtutor.errors import MathTutorError
from mathtutor.orchestrator.agent.config import extract_tutor_message
from mathtutor.orchestrator.agent.factory import create_run_config, create_tutor_agent
from mathtutor.orchestrator.agent.stream_adapter import adapt_agent_stream
from mathtutor.orchestrator.models.events import StreamEvent

logger = logging.getLogger(__name__)


class WorkflowError(MathTutorError):
    """An agent step finished without a final output."""

    @classmethod
    def no_output(cls, agent: str) -> "WorkflowError":
        return cls.from_code("E-2002", agent=agent)


@dataclass
class WorkflowInput:
    """Input for one tutor turn."""

    input_as_text: str
    file_ids: list[str] = field(default_factory=list)


def build_conversation_history(text: str) -> list[dict[str, Any]]:
    """One user message with a single ``input_text`` block."""
    return [
        {
            "role": "user",
            "content": [{"type": "input_text", "text": text}],
        }
    ]


def serialize_output(output: Any) -> str:
    """JSON text of a structured final output."""
    if hasattr(output, "model_dump_json"):
        return output.model_dump_json()
    return json.dumps(output, default=str)


def create_workflow_stream(workflow: WorkflowInput) -> AsyncIterator[StreamEvent]:
    """Stream a turn with the plain tutor agent."""
    agent = create_tutor_agent()
    result = Runner.run_streamed(
        agent,
        input=build_conversation_history(workflow.input_as_text),
        run_config=create_run_config(),
    )
    return adapt_agent_stream(result, extract_tutor_message)


def create_workflow_stream_with_files(
    workflow: WorkflowInput,
) -> AsyncIterator[StreamEvent]:
    """Stream a turn with uploaded files mounted in the code interpreter."""
    logger.info("Starting file-enabled workflow with %d file(s)", len(workflow.file_ids))
    agent = create_tutor_agent(workflow.file_ids)
    result = Runner.run_streamed(
        agent,
        input=build_conversation_history(workflow.input_as_text),
        run_config=create_run_config(),
    )
    return adapt_agent_stream(result, extract_tutor_message)


async def run_workflow(workflow: WorkflowInput) -> dict[str, Any]:
    """Run one tutor turn to completion.

    Returns:
        ``{"output_text": <json>, "output_parsed": <TutorOutput>}``

    Raises:
        WorkflowError: If the agent produced no final output.
    """
    agent = create_tutor_agent(workflow.file_ids)
    result = await Runner.run(
        agent,
        input=build_conversation_history(workflow.input_as_text),
        run_config=create_run_config(),
    )
    if not result.final_output:
        raise WorkflowError.no_output(agent.name)
    return {
        "output_text": serialize_output(result.final_output),
        "output_parsed": result.final_output,
    }
