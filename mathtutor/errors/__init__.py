"""Errors shared by the services, the orchestrator and the API.

Two families live here:

- ``MathTutorError``: built from an E-XXXX registry code, carries a
  remediation hint and maps to an HTTP status through its category
  (E-1xxx request, E-2xxx agent, E-3xxx files, E-4xxx system).
- ``DomainError`` subclasses: plain exceptions the routes let propagate
  (``NotFoundError`` -> 404, ``ValidationError`` and
  ``StoragePathError`` -> 400).
"""

from mathtutor.errors.domain import (
    DomainError,
    NotFoundError,
    StoragePathError,
    ValidationError,
)
from mathtutor.errors.formatter import (
    HTTP_STATUS_BY_CATEGORY,
    MathTutorError,
    format_error,
)
from mathtutor.errors.registry import (
    ERROR_REGISTRY,
    ErrorCategory,
    ErrorCode,
    get_error,
    get_errors_by_category,
)

__all__ = [
    "ERROR_REGISTRY",
    "ErrorCategory",
    "ErrorCode",
    "get_error",
    "get_errors_by_category",
    "HTTP_STATUS_BY_CATEGORY",
    "MathTutorError",
    "format_error",
    "DomainError",
    "NotFoundError",
    "StoragePathError",
    "ValidationError",
]
