# src/listing_messages/schemas/message.py
"""Message-related Pydantic schemas."""

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ContactMessageCreate(BaseModel):
    """Schema for contacting a seller about a listing."""

    listing_id: str = Field(..., description="Listing the buyer is asking about")
    recipient_id: str = Field(..., description="Seller of the listing")
    subject: str = Field("", description="Subject line shown in the inbox")
    body: str = Field(..., description="Message text")
    include_phone: bool = Field(False, description="Whether the sender agrees to share a phone number")


class ReplyCreate(BaseModel):
    """Schema for replying to an existing message."""

    body: str = Field(..., description="Reply text")


class BulkReadRequest(BaseModel):
    """Schema for marking several messages as read at once."""

    message_ids: list[str] = Field(default_factory=list)


class MessageView(BaseModel):
    """Message as returned by the API, enriched with display fields."""

    id: str
    listing_id: str
    sender_id: str
    recipient_id: str
    subject: str
    body: str
    include_phone: bool
    created_at: datetime
    read_at: datetime | None = None
    is_archived: bool = False
    parent_message_id: str | None = None
    thread_id: str | None = None

    listing_title: str = ""
    listing_image: str = ""
    sender_name: str | None = None
    recipient_name: str | None = None
    sender_phone: str | None = None

    model_config = ConfigDict(from_attributes=True)


class ConversationsResponse(BaseModel):
    """Every thread a user participates in, keyed by thread key."""

    conversations: dict[str, list[MessageView]]
    unread_count: int


class SendConfirmation(BaseModel):
    """Acknowledgement returned after a contact message is stored."""

    message: str
    message_id: str


class UnreadCount(BaseModel):
    """Number of unread messages in a user's inbox."""

    count: int
