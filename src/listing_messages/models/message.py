# src/listing_messages/models/message.py
"""Models describing messages exchanged about a listing."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, DateTime, ForeignKey, String, Text
from sqlalchemy.orm import Mapped, mapped_column

from listing_messages.db.session import Base
from listing_messages.db.time import utcnow

# Store-level floor for message bodies; applies to tombstones as well.
MIN_BODY_LENGTH = 20


def _new_id() -> str:
    return str(uuid.uuid4())


class Message(Base):
    """A single message between a buyer and a seller about a listing.

    Roots start without a ``thread_id``; the first reply claims the root's own
    id as the thread key for both rows. Once ``thread_id`` is set it is never
    rewritten.
    """

    __tablename__ = "messages"
    __table_args__ = (
        CheckConstraint(
            f"length(body) >= {MIN_BODY_LENGTH}",
            name="ck_messages_body_min_length",
        ),
    )

    id: Mapped[str] = mapped_column(String(36), primary_key=True, default=_new_id)
    listing_id: Mapped[str] = mapped_column(
        String(36),
        ForeignKey("listings.id"),
        nullable=False,
        index=True,
    )
    sender_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)
    # Seller of the listing for contact messages, the counterpart for replies.
    recipient_id: Mapped[str] = mapped_column(String(64), nullable=False, index=True)

    subject: Mapped[str] = mapped_column(Text, nullable=False, default="")
    body: Mapped[str] = mapped_column(Text, nullable=False)
    include_phone: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=utcnow,
    )
    read_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    # Recipient-side flag; there is no per-participant archive state.
    is_archived: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    is_deleted: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    # No ON DELETE action: a parent with live references cannot be hard-deleted.
    parent_message_id: Mapped[str | None] = mapped_column(
        String(36),
        ForeignKey("messages.id"),
        nullable=True,
        index=True,
    )
    thread_id: Mapped[str | None] = mapped_column(String(36), nullable=True, index=True)

    def is_addressed_to(self, user_id: str) -> bool:
        """Return True when ``user_id`` received this message from someone else."""
        return self.recipient_id == user_id and self.sender_id != user_id

    def involves(self, user_id: str) -> bool:
        """Return True when ``user_id`` sent or received this message."""
        return user_id in (self.sender_id, self.recipient_id)
