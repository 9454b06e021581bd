"""Conversion of message rows into enriched API views."""
from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from listing_messages.db.time import as_utc
from listing_messages.models import Message
from listing_messages.schemas.message import MessageView
from listing_messages.services.listings import ListingCatalog, ListingSummary
from listing_messages.services.participants import Participant, ParticipantDirectory


def to_message_view(
    message: Message,
    *,
    participants: dict[str, Participant] | None = None,
    listings: dict[str, ListingSummary] | None = None,
    read_at: datetime | None = None,
) -> MessageView:
    """Convert a Message ORM instance to an API schema.

    ``read_at`` fills in the timestamp for rows whose read-marking was issued
    in the same request.
    """
    listing = (listings or {}).get(message.listing_id, ListingSummary())
    sender = recipient = None
    if participants is not None:
        sender = participants.get(message.sender_id, Participant(message.sender_id, message.sender_id))
        recipient = participants.get(
            message.recipient_id, Participant(message.recipient_id, message.recipient_id)
        )

    stored_read_at = message.read_at or read_at
    return MessageView(
        id=message.id,
        listing_id=message.listing_id,
        sender_id=message.sender_id,
        recipient_id=message.recipient_id,
        subject=message.subject,
        body=message.body,
        include_phone=message.include_phone,
        created_at=as_utc(message.created_at),
        read_at=as_utc(stored_read_at) if stored_read_at else None,
        is_archived=message.is_archived,
        parent_message_id=message.parent_message_id,
        thread_id=message.thread_id,
        listing_title=listing.title,
        listing_image=listing.image,
        sender_name=sender.name if sender else None,
        recipient_name=recipient.name if recipient else None,
        sender_phone=(sender.phone or "") if sender and message.include_phone else None,
    )


class MessageEnricher:
    """Attach participant names and listing metadata to batches of messages."""

    def __init__(self, directory: ParticipantDirectory, catalog: ListingCatalog) -> None:
        self.directory = directory
        self.catalog = catalog

    def enrich(
        self,
        messages: Sequence[Message],
        *,
        with_names: bool = True,
        read_overrides: dict[str, datetime] | None = None,
    ) -> list[MessageView]:
        """Return views for ``messages`` in the same order."""
        if not messages:
            return []
        listings = self.catalog.summaries(m.listing_id for m in messages)
        participants = None
        if with_names:
            user_ids: list[str] = []
            for m in messages:
                user_ids.extend((m.sender_id, m.recipient_id))
            participants = self.directory.resolve(user_ids)

        overrides = read_overrides or {}
        return [
            to_message_view(
                m,
                participants=participants,
                listings=listings,
                read_at=overrides.get(m.id),
            )
            for m in messages
        ]
