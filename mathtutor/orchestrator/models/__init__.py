"""Event and output models for the tutor workflows."""

from mathtutor.orchestrator.models.events import (
    TERMINAL_EVENTS,
    ApprovalRequestEvent,
    DoneEvent,
    ErrorEvent,
    FileReference,
    MessageBoundaryEvent,
    StreamEvent,
    TextEvent,
    merge_file_references,
)
from mathtutor.orchestrator.models.output import ReviewOutput, TutorOutput

__all__ = [
    # Events
    "StreamEvent",
    "TextEvent",
    "DoneEvent",
    "ErrorEvent",
    "MessageBoundaryEvent",
    "ApprovalRequestEvent",
    "TERMINAL_EVENTS",
    # Files
    "FileReference",
    "merge_file_references",
    # Outputs
    "TutorOutput",
    "ReviewOutput",
]
