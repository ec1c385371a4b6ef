"""E-XXXX error codes for the tutor backend.

The leading digit names the category:
- E-1xxx: Request errors (missing fields, rejected uploads)
- E-2xxx: Agent runtime errors
- E-3xxx: File reconciliation and storage errors
- E-4xxx: Persistence/system errors

The category also decides the HTTP status (see ``formatter``).
"""

from dataclasses import dataclass
from enum import Enum


class ErrorCategory(str, Enum):
    """Which part of a chat turn failed."""

    REQUEST = "request"  # E-1xxx
    AGENT = "agent"  # E-2xxx
    FILES = "files"  # E-3xxx
    SYSTEM = "system"  # E-4xxx


@dataclass
class ErrorCode:
    """One registered error.

    Attributes:
        code: Error code in E-XXXX format.
        category: Error category for grouping.
        title: Short title for display.
        message_template: Message with {placeholders} for context.
        remediation: Action user should take to resolve.
        is_retryable: Whether the operation can be retried without user action.
    """

    code: str
    category: ErrorCategory
    title: str
    message_template: str
    remediation: str
    is_retryable: bool = False


ERROR_REGISTRY: dict[str, ErrorCode] = {
    # Request errors (E-1xxx)
    "E-1001": ErrorCode(
        code="E-1001",
        category=ErrorCategory.REQUEST,
        title="Missing Required Field",
        message_template="{field} is required.",
        remediation="Include the missing field in the request body or query string.",
    ),
    "E-1002": ErrorCode(
        code="E-1002",
        category=ErrorCategory.REQUEST,
        title="Unsupported File Type",
        message_template="Unsupported file format '{extension}'. Allowed: {allowed}.",
        remediation="Upload a PDF, Word document, text file or image.",
    ),
    "E-1003": ErrorCode(
        code="E-1003",
        category=ErrorCategory.REQUEST,
        title="File Too Large",
        message_template="File exceeds the {limit_mb} MB limit ({size} bytes).",
        remediation="Upload a smaller file.",
    ),
    # Agent runtime errors (E-2xxx)
    "E-2001": ErrorCode(
        code="E-2001",
        category=ErrorCategory.AGENT,
        title="Agent Runtime Failure",
        message_template="The tutor could not complete the response: {reason}",
        remediation="Try sending the message again.",
        is_retryable=True,
    ),
    "E-2002": ErrorCode(
        code="E-2002",
        category=ErrorCategory.AGENT,
        title="Agent Returned No Output",
        message_template="Agent '{agent}' finished without a final output.",
        remediation="Try sending the message again.",
        is_retryable=True,
    ),
    "E-2003": ErrorCode(
        code="E-2003",
        category=ErrorCategory.AGENT,
        title="Agent File Upload Failed",
        message_template="Could not upload '{file_name}' to the agent runtime: {reason}",
        remediation="Check the file and try the upload again.",
        is_retryable=True,
    ),
    # File reconciliation errors (E-3xxx)
    "E-3001": ErrorCode(
        code="E-3001",
        category=ErrorCategory.FILES,
        title="Missing Sandbox Container",
        message_template="Generated files were referenced but no valid sandbox container id was found ({container_id}).",
        remediation="The files stay as sandbox links; regenerate them in a new message.",
    ),
    "E-3002": ErrorCode(
        code="E-3002",
        category=ErrorCategory.FILES,
        title="Sandbox File Not Found",
        message_template="No file matching '{path}' exists in container {container_id}.",
        remediation="Ask the tutor to regenerate the file.",
    ),
    "E-3003": ErrorCode(
        code="E-3003",
        category=ErrorCategory.FILES,
        title="File Transfer Failed",
        message_template="Could not copy '{file_name}' to durable storage: {reason}",
        remediation="Ask the tutor to regenerate the file.",
        is_retryable=True,
    ),
    "E-3004": ErrorCode(
        code="E-3004",
        category=ErrorCategory.FILES,
        title="Sandbox Listing Failed",
        message_template="Could not list files in container {container_id}: {reason}",
        remediation="The files stay as sandbox links; regenerate them in a new message.",
        is_retryable=True,
    ),
    # System errors (E-4xxx)
    "E-4001": ErrorCode(
        code="E-4001",
        category=ErrorCategory.SYSTEM,
        title="Persistence Failure",
        message_template="Failed to {operation}.",
        remediation="Try again. If the problem persists, check the database connection.",
        is_retryable=True,
    ),
}


def get_error(code: str) -> ErrorCode | None:
    """Look up ``code``; None when it is not registered."""
    return ERROR_REGISTRY.get(code)


def get_errors_by_category(category: ErrorCategory) -> list[ErrorCode]:
    """Get all errors in a category."""
    return [e for e in ERROR_REGISTRY.values() if e.category == category]
