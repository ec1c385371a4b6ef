"""MathTutorError and its renderings.

A MathTutorError is built from a registry code, logged with
``format_error`` and returned to HTTP clients as the JSON body from
``to_response_body``, with a status derived from its category.
"""

from dataclasses import dataclass, field
from typing import Any

from mathtutor.errors.registry import ErrorCategory, get_error

HTTP_STATUS_BY_CATEGORY: dict[ErrorCategory, int] = {
    ErrorCategory.REQUEST: 400,
    ErrorCategory.AGENT: 502,
    ErrorCategory.FILES: 502,
    ErrorCategory.SYSTEM: 500,
}


@dataclass
class MathTutorError(Exception):
    """Application error with code, message, and context.

    Attributes:
        code: Error code in E-XXXX format.
        message: Human-readable error message.
        remediation: Action user should take to resolve.
        category: Registry category; drives the HTTP status.
        is_retryable: Whether the operation can be retried without user action.
        details: Machine-readable context (ids, paths) for logs and clients.
    """

    code: str
    message: str
    remediation: str
    category: ErrorCategory = ErrorCategory.SYSTEM
    is_retryable: bool = False
    details: dict = field(default_factory=dict)

    def __str__(self) -> str:
        return f"{self.code}: {self.message}"

    @property
    def http_status(self) -> int:
        return HTTP_STATUS_BY_CATEGORY.get(self.category, 500)

    def to_response_body(self) -> dict[str, Any]:
        """JSON body returned by the API exception handler."""
        return {
            "error": self.message,
            "error_code": self.code,
            "remediation": self.remediation,
            "details": self.details or None,
        }

    @classmethod
    def from_code(cls, code: str, **kwargs: Any) -> "MathTutorError":
        """Build an error from a registry code.

        Keyword arguments fill the message template; a missing placeholder
        leaves the template text as is. ``details`` is stored on the error
        rather than substituted.
        """
        details = kwargs.pop("details", None)
        if not isinstance(details, dict):
            details = {}

        error_def = get_error(code)
        if error_def is None:
            return cls(
                code=code,
                message=f"Unknown error: {code}",
                remediation="Contact support.",
                details=details,
            )

        try:
            message = error_def.message_template.format(**kwargs)
        except KeyError:
            message = error_def.message_template

        return cls(
            code=error_def.code,
            message=message,
            remediation=error_def.remediation,
            category=error_def.category,
            is_retryable=error_def.is_retryable,
            details=details,
        )


def format_error(error: MathTutorError, include_remediation: bool = True) -> str:
    """Format an error for logs and the CLI.

    Details, when present, are listed on a ``Context`` line.
    """
    lines = [str(error)]
    if error.details:
        context = ", ".join(f"{k}={v}" for k, v in sorted(error.details.items()))
        lines.append(f"  Context: {context}")
    if include_remediation:
        lines.append(f"  Action: {error.remediation}")
    return "\n".join(lines)
