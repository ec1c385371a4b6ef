"""Typed domain exceptions raised by the service layer.

The app registers one handler per type, so routes can let these propagate:

    NotFoundError      -> 404  (unknown conversation)
    ValidationError    -> 400  (malformed client input)
    StoragePathError   -> 400  (storage key escapes the storage root)

Usage:
    conversation = db.get(Conversation, conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation", conversation_id)
"""


class DomainError(Exception):
    """Base exception for all domain errors."""


class NotFoundError(DomainError):
    """A referenced resource does not exist."""

    def __init__(self, resource_type: str, identifier: str) -> None:
        super().__init__(f"{resource_type} '{identifier}' not found")
        self.resource_type = resource_type
        self.identifier = identifier


class ValidationError(DomainError):
    """Client input failed validation.

    Attributes:
        field: Name of the offending parameter, when known.
    """

    def __init__(self, message: str, field: str | None = None) -> None:
        super().__init__(message)
        self.field = field


class StoragePathError(ValidationError, ValueError):
    """A storage key is empty or contains ``..`` segments."""

    def __init__(self, path: str) -> None:
        super().__init__(f"Invalid storage path: {path!r}", field="path")
        self.path = path
