"""Tests for stream event models and their wire frames."""

import pytest
from pydantic import ValidationError

from mathtutor.orchestrator.models import (
    TERMINAL_EVENTS,
    ApprovalRequestEvent,
    DoneEvent,
    ErrorEvent,
    FileReference,
    MessageBoundaryEvent,
    ReviewOutput,
    TextEvent,
    TutorOutput,
    merge_file_references,
)


class TestFrames:

    def test_text(self):
        assert TextEvent(content="x").to_frame() == {"type": "text", "content": "x"}

    def test_done_omits_internal_fields(self):
        event = DoneEvent(
            message="m",
            output={"message": "m"},
            files=[FileReference(path="/mnt/data/a.png")],
            container_id="cntr_1",
        )

        assert event.to_frame() == {"type": "done", "message": "m"}

    def test_error(self):
        assert ErrorEvent(message="bad").to_frame() == {"type": "error", "message": "bad"}

    def test_boundary_has_no_payload(self):
        assert MessageBoundaryEvent(message="first").to_frame() == {"type": "message_boundary"}

    def test_approval_request(self):
        frame = ApprovalRequestEvent(approval_id="ap", message="ok?").to_frame()

        assert frame == {"type": "approval_request", "approvalId": "ap", "message": "ok?"}

    def test_terminal_events(self):
        assert isinstance(DoneEvent(message=""), TERMINAL_EVENTS)
        assert isinstance(ErrorEvent(message=""), TERMINAL_EVENTS)
        assert not isinstance(TextEvent(content=""), TERMINAL_EVENTS)


class TestFileReference:

    def test_file_name_derived_from_path(self):
        ref = FileReference(path="/mnt/data/sub/tree.png")

        assert ref.file_name == "tree.png"
        assert ref.id == ""
        assert ref.container_id == ""

    def test_merge_keeps_first_per_path(self):
        first = FileReference(path="/mnt/data/a.png", container_id="cntr_1")
        dup = FileReference(path="/mnt/data/a.png", container_id="cntr_2")
        other = FileReference(path="/mnt/data/b.png")

        merged = merge_file_references([first], [dup, other])

        assert merged == [first, other]


class TestOutputModels:

    def test_tutor_output_requires_both_fields(self):
        with pytest.raises(ValidationError):
            TutorOutput(message="only message")

    def test_tutor_output_ignores_extra(self):
        out = TutorOutput.model_validate({"message": "m", "figure_path": "", "extra": 1})

        assert out.message == "m"

    def test_review_output(self):
        out = ReviewOutput(message="checked", is_correct=True)

        assert out.is_correct
