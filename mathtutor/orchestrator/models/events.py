"""Normalized stream events produced by the workflows.

Every workflow yields a sequence of these events terminated by exactly one
``DoneEvent`` or ``ErrorEvent``. ``to_frame()`` renders the JSON payload sent
to the browser as one SSE ``data:`` line.
"""

from dataclasses import dataclass, field
from pathlib import PurePosixPath
from typing import Any, ClassVar, Union


@dataclass
class FileReference:
    """A file the agent produced inside its sandbox container.

    Attributes:
        path: Normalized absolute sandbox path, e.g. ``/mnt/data/tree.png``.
        container_id: Sandbox container id ('' when unknown).
        file_name: Basename of ``path``.
        id: Container file id; empty until matched against the container listing.
    """

    path: str
    container_id: str = ""
    file_name: str = ""
    id: str = ""

    def __post_init__(self) -> None:
        if not self.file_name:
            self.file_name = PurePosixPath(self.path).name


@dataclass(frozen=True)
class TextEvent:
    """An incremental chunk of visible assistant output."""

    type: ClassVar[str] = "text"
    content: str

    def to_frame(self) -> dict[str, Any]:
        return {"type": self.type, "content": self.content}


@dataclass(frozen=True)
class DoneEvent:
    """Terminal event carrying the display message and any file references."""

    type: ClassVar[str] = "done"
    message: str
    output: Any = None
    files: list[FileReference] = field(default_factory=list)
    container_id: str | None = None

    def to_frame(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message}


@dataclass(frozen=True)
class ErrorEvent:
    """Terminal event on failure; mutually exclusive with ``DoneEvent``."""

    type: ClassVar[str] = "error"
    message: str

    def to_frame(self) -> dict[str, Any]:
        return {"type": self.type, "message": self.message}


@dataclass(frozen=True)
class MessageBoundaryEvent:
    """Separates two visible agent segments in the multi-agent workflow.

    ``message`` is the display text of the segment that just completed.
    """

    type: ClassVar[str] = "message_boundary"
    message: str

    def to_frame(self) -> dict[str, Any]:
        return {"type": self.type}


@dataclass(frozen=True)
class ApprovalRequestEvent:
    """Sent before the workflow blocks on a human approval decision."""

    type: ClassVar[str] = "approval_request"
    approval_id: str
    message: str

    def to_frame(self) -> dict[str, Any]:
        return {
            "type": self.type,
            "approvalId": self.approval_id,
            "message": self.message,
        }


StreamEvent = Union[
    TextEvent, DoneEvent, ErrorEvent, MessageBoundaryEvent, ApprovalRequestEvent
]

TERMINAL_EVENTS = (DoneEvent, ErrorEvent)


def merge_file_references(*groups: list[FileReference]) -> list[FileReference]:
    """Concatenate reference lists, keeping the first reference per path."""
    merged: list[FileReference] = []
    seen: set[str] = set()
    for group in groups:
        for ref in group:
            if ref.path in seen:
                continue
            seen.add(ref.path)
            merged.append(ref)
    return merged
