"""Typed failures raised by the messaging engine.

The API layer maps each class to an HTTP status. ``ConstraintViolationError``
only escapes when the tombstone fallback itself fails, and ``ConflictError``
never leaves the thread resolver.
"""

from __future__ import annotations


class MessagingError(RuntimeError):
    """Base exception for all messaging failures."""


class ValidationError(MessagingError):
    """Raised when input is rejected before any write happens."""


class NotFoundError(MessagingError):
    """Raised when a referenced message, listing or thread does not exist."""


class PermissionDeniedError(MessagingError):
    """Raised when the caller does not participate in the requested thread."""


class ConstraintViolationError(MessagingError):
    """Raised when a write stays blocked by a referential or length constraint."""


class TransientIOError(MessagingError):
    """Raised when the persistence layer is unreachable or timed out."""


class ConflictError(MessagingError):
    """Raised when a concurrent writer already claimed a thread key."""

    def __init__(self, message_id: str, current_key: str) -> None:
        super().__init__(
            f"Thread key for message {message_id} already set to {current_key}"
        )
        self.message_id = message_id
        self.current_key = current_key
