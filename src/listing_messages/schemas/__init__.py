"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .message import (
    BulkReadRequest,
    ContactMessageCreate,
    ConversationsResponse,
    MessageView,
    ReplyCreate,
    SendConfirmation,
    UnreadCount,
)

__all__ = [
    "BulkReadRequest",
    "ContactMessageCreate",
    "ConversationsResponse",
    "MessageView",
    "ReplyCreate",
    "SendConfirmation",
    "UnreadCount",
]
