class ChatError(Exception):
    """Base error for the messaging core."""


class ValidationError(ChatError, ValueError):
    """Rejected input: empty text, bad identifiers, malformed cursor."""


class InvalidParticipant(ValidationError):
    """A participant id is empty, malformed, or both ids are the same user."""


class StorageError(ChatError):
    """The message store failed. Safe to retry; nothing was half-written."""

    def __init__(self, operation: str, message: str | None = None) -> None:
        self.operation = operation
        super().__init__(message or f"Storage failure during {operation}")
