"""Tests for the three-agent workflow and its approval gate."""

from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from mathtutor.orchestrator.models.events import (
    ApprovalRequestEvent,
    DoneEvent,
    ErrorEvent,
    MessageBoundaryEvent,
    TextEvent,
)
from mathtutor.orchestrator.models.output import ReviewOutput, TutorOutput
from mathtutor.orchestrator.multi_agent import run_multi_agent_workflow
from mathtutor.orchestrator.workflow import WorkflowInput
from mathtutor.services.approval_store import InMemoryApprovalStore

CONTAINER = "cntr_multi"


class AgentRun:
    """Streamed run result for one agent step."""

    def __init__(self, text, final_output, history, new_items=None, error=None):
        self._text = text
        self._history = history
        self._error = error
        self.final_output = final_output
        self.new_items = new_items or []

    async def stream_events(self):
        yield SimpleNamespace(
            type="raw_response_event",
            data=SimpleNamespace(type="response.output_text.delta", delta=self._text),
        )
        if self._error is not None:
            raise self._error

    def to_input_list(self):
        return list(self._history)


def tutor(message, figure_path=""):
    return TutorOutput(message=message, figure_path=figure_path)


def file_items(text):
    return [
        SimpleNamespace(
            type="tool_call_item",
            raw_item=SimpleNamespace(type="code_interpreter_call", container_id=CONTAINER),
        ),
        SimpleNamespace(
            type="message_output_item",
            raw_item={"type": "message", "content": [{"type": "output_text", "text": text}]},
        ),
    ]


async def drive(runner_results, reviewer_result=None, approve=None, **kwargs):
    """Run the workflow, answering any approval request with ``approve``."""
    store = InMemoryApprovalStore()
    events = []
    with patch("mathtutor.orchestrator.multi_agent.Runner") as runner:
        runner.run_streamed.side_effect = runner_results
        runner.run = AsyncMock(return_value=reviewer_result)
        async for event in run_multi_agent_workflow(
            WorkflowInput("Find P(A and B)"),
            approval_store=store,
            poll_interval=0.01,
            **kwargs,
        ):
            events.append(event)
            if isinstance(event, ApprovalRequestEvent) and approve is not None:
                store.store(event.approval_id, approve)
    return events, runner, store


def reviewer(history):
    result = MagicMock()
    result.final_output = ReviewOutput(message="Correct.", is_correct=True)
    result.to_input_list.return_value = history
    return result


class TestApprovedRun:

    @pytest.mark.asyncio
    async def test_full_sequence(self):
        solver_text = "Solution ![tree](sandbox:/mnt/data/tree.png)"
        solver = AgentRun(
            "Solution", tutor(solver_text), ["h1"], new_items=file_items(solver_text)
        )
        explainer = AgentRun("Explanation", tutor("Explanation"), ["h3"])

        events, runner, store = await drive(
            [solver, explainer], reviewer_result=reviewer(["h2"]), approve=True
        )

        kinds = [type(e) for e in events]
        assert kinds == [
            TextEvent,
            ApprovalRequestEvent,
            MessageBoundaryEvent,
            TextEvent,
            DoneEvent,
        ]
        assert events[2].message == solver_text

        done = events[-1]
        assert done.message == "Explanation"
        assert done.container_id == CONTAINER
        assert [f.path for f in done.files] == ["/mnt/data/tree.png"]
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_history_folds_through_agents(self):
        solver = AgentRun("a", tutor("a"), ["after-solver"])
        explainer = AgentRun("c", tutor("c"), ["after-explainer"])

        _, runner, _ = await drive(
            [solver, explainer], reviewer_result=reviewer(["after-reviewer"]), approve=True
        )

        assert runner.run.call_args.kwargs["input"] == ["after-solver"]
        explainer_call = runner.run_streamed.call_args_list[1]
        assert explainer_call.kwargs["input"] == ["after-reviewer"]
        agent_names = [c.args[0].name for c in runner.run_streamed.call_args_list]
        assert agent_names == ["Solver", "Explainer"]
        assert runner.run.call_args.args[0].name == "Reviewer"

    @pytest.mark.asyncio
    async def test_without_approval_gate(self):
        solver = AgentRun("a", tutor("a"), ["h1"])
        explainer = AgentRun("c", tutor("c"), ["h3"])

        events, _, _ = await drive(
            [solver, explainer], reviewer_result=reviewer(["h2"]), require_approval=False
        )

        assert not any(isinstance(e, ApprovalRequestEvent) for e in events)
        assert events[-1].message == "c"


class TestRejectedRun:

    @pytest.mark.asyncio
    async def test_rejection_ends_with_solver_message(self):
        solver = AgentRun("Solution", tutor("Solution"), ["h1"])

        with patch("mathtutor.orchestrator.multi_agent.create_reviewer_agent") as make_reviewer:
            events, runner, _ = await drive([solver], approve=False)

        assert [type(e) for e in events] == [TextEvent, ApprovalRequestEvent, DoneEvent]
        assert events[-1].message == "Solution"
        make_reviewer.assert_not_called()
        runner.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_timeout_counts_as_rejection(self):
        solver = AgentRun("Solution", tutor("Solution"), ["h1"])

        events, runner, _ = await drive([solver], approval_timeout=0.05)

        assert isinstance(events[-1], DoneEvent)
        assert events[-1].message == "Solution"
        runner.run.assert_not_called()


class TestFailures:

    @pytest.mark.asyncio
    async def test_solver_error_stops_workflow(self):
        solver = AgentRun("partial", None, [], error=RuntimeError("model overloaded"))

        events, runner, _ = await drive([solver])

        assert events[-1] == ErrorEvent(message="model overloaded")
        assert not any(isinstance(e, ApprovalRequestEvent) for e in events)
        runner.run.assert_not_called()

    @pytest.mark.asyncio
    async def test_solver_without_output_is_an_error(self):
        solver = AgentRun("text only", None, [])

        events, _, _ = await drive([solver])

        assert isinstance(events[-1], ErrorEvent)
        assert "Solver" in events[-1].message

    @pytest.mark.asyncio
    async def test_reviewer_without_output_is_an_error(self):
        solver = AgentRun("a", tutor("a"), ["h1"])
        silent = MagicMock()
        silent.final_output = None

        events, runner, _ = await drive([solver], reviewer_result=silent, approve=True)

        assert isinstance(events[-1], ErrorEvent)
        assert "Reviewer" in events[-1].message
        assert runner.run_streamed.call_count == 1

    @pytest.mark.asyncio
    async def test_unexpected_exception_becomes_error_event(self):
        solver = AgentRun("a", tutor("a"), ["h1"])

        with patch("mathtutor.orchestrator.multi_agent.Runner") as runner:
            runner.run_streamed.return_value = solver
            runner.run = AsyncMock(side_effect=RuntimeError("reviewer crashed"))
            events = [
                e
                async for e in run_multi_agent_workflow(
                    WorkflowInput("q"), require_approval=False
                )
            ]

        assert events[-1] == ErrorEvent(message="reviewer crashed")
