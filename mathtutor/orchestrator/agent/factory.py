"""Factories for the tutor agents and their runtime configuration."""

from agents import Agent, CodeInterpreterTool, ModelSettings, RunConfig
from openai.types.shared import Reasoning

from mathtutor.orchestrator.agent.config import (
    EXPLAINER_INSTRUCTIONS,
    FILES_INSTRUCTIONS,
    REVIEWER_INSTRUCTIONS,
    SOLVER_INSTRUCTIONS,
    TUTOR_INSTRUCTIONS,
    WORKFLOW_NAME,
    get_agent_model,
    get_reasoning_effort,
)
from mathtutor.orchestrator.models.output import ReviewOutput, TutorOutput


def create_code_interpreter(file_ids: list[str] | None = None) -> CodeInterpreterTool:
    """Code interpreter with an auto container scoped to ``file_ids``."""
    return CodeInterpreterTool(
        tool_config={
            "type": "code_interpreter",
            "container": {"type": "auto", "file_ids": list(file_ids or [])},
        }
    )


def create_model_settings() -> ModelSettings:
    return ModelSettings(
        reasoning=Reasoning(effort=get_reasoning_effort(), summary="auto"),
        store=True,
    )


def _build_agent(
    name: str,
    instructions: str,
    output_type: type,
    file_ids: list[str] | None,
) -> Agent:
    if file_ids:
        instructions += FILES_INSTRUCTIONS
    return Agent(
        name=name,
        instructions=instructions,
        model=get_agent_model(),
        tools=[create_code_interpreter(file_ids)],
        output_type=output_type,
        model_settings=create_model_settings(),
    )


def create_tutor_agent(file_ids: list[str] | None = None) -> Agent:
    """Single tutor agent; uploaded files are mounted in its container."""
    return _build_agent("Math tutor", TUTOR_INSTRUCTIONS, TutorOutput, file_ids)


def create_solver_agent(file_ids: list[str] | None = None) -> Agent:
    return _build_agent("Solver", SOLVER_INSTRUCTIONS, TutorOutput, file_ids)


def create_reviewer_agent(file_ids: list[str] | None = None) -> Agent:
    return _build_agent("Reviewer", REVIEWER_INSTRUCTIONS, ReviewOutput, file_ids)


def create_explainer_agent(file_ids: list[str] | None = None) -> Agent:
    return _build_agent("Explainer", EXPLAINER_INSTRUCTIONS, TutorOutput, file_ids)


def create_run_config() -> RunConfig:
    return RunConfig(
        workflow_name=WORKFLOW_NAME,
        trace_metadata={"__trace_source__": "mathtutor"},
    )
