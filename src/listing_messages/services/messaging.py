"""Message service: the operations exposed to the API layer.

Each public method handles one request against one session. Primary writes
raise typed errors from :mod:`listing_messages.core.errors`; side effects
(contact counter, notifications, profile lookups) never fail the request.
"""

from __future__ import annotations

import functools
import logging
from collections.abc import Callable, Iterable
from typing import Any, TypeVar

from sqlalchemy.exc import DBAPIError, OperationalError
from sqlalchemy.orm import Session

from listing_messages.core.errors import (
    NotFoundError,
    PermissionDeniedError,
    TransientIOError,
    ValidationError,
)
from listing_messages.core.settings import settings
from listing_messages.models import Message
from listing_messages.repositories.message_repo import MessageRepository
from listing_messages.schemas.message import ContactMessageCreate, MessageView
from listing_messages.services.conversations import ConversationAggregator, ConversationSet
from listing_messages.services.deletion import DeletionCascadeManager
from listing_messages.services.listings import ListingCatalog
from listing_messages.services.notifications import NotificationDispatcher
from listing_messages.services.participants import ParticipantDirectory
from listing_messages.services.read_state import ReadStateTracker
from listing_messages.services.replies import ReplyChainWriter
from listing_messages.services.views import MessageEnricher, to_message_view

# Configure logger for this module
logger = logging.getLogger(__name__)

SEND_CONFIRMATION = "Message sent successfully"

F = TypeVar("F", bound=Callable[..., Any])


def translate_persistence_errors(func: F) -> F:
    """Surface database outages as :class:`TransientIOError`."""

    @functools.wraps(func)
    def wrapper(self: MessageService, *args: Any, **kwargs: Any) -> Any:
        try:
            return func(self, *args, **kwargs)
        except OperationalError as e:
            self.session.rollback()
            logger.error("Persistence layer unavailable in %s: %s", func.__name__, e)
            raise TransientIOError("Message storage is temporarily unavailable") from e
        except DBAPIError as e:
            if not e.connection_invalidated:
                raise
            self.session.rollback()
            logger.error("Lost database connection in %s: %s", func.__name__, e)
            raise TransientIOError("Message storage is temporarily unavailable") from e

    return wrapper  # type: ignore[return-value]


class MessageService:
    """Service handling buyer/seller conversations about listings."""

    def __init__(
        self,
        session: Session,
        notifier: NotificationDispatcher | None = None,
    ) -> None:
        self.session = session
        self.repo = MessageRepository(session)
        self.directory = ParticipantDirectory(session)
        self.catalog = ListingCatalog(session)
        self.enricher = MessageEnricher(self.directory, self.catalog)
        self.read_state = ReadStateTracker(self.repo)
        self.replies = ReplyChainWriter(self.repo)
        self.conversations = ConversationAggregator(self.repo, self.enricher, self.read_state)
        self.deletion = DeletionCascadeManager(self.repo)
        self.notifier = notifier or NotificationDispatcher(session, directory=self.directory)

    @staticmethod
    def validate_body(body: str) -> str:
        """Reject bodies shorter than the configured minimum.

        Raises:
            ValidationError: If the stripped body is too short.
        """
        minimum = settings.message_min_body_length
        if len((body or "").strip()) < minimum:
            raise ValidationError(f"Message must be at least {minimum} characters long")
        return body

    @translate_persistence_errors
    def send_contact_message(
        self,
        listing_id: str,
        recipient_id: str,
        sender_id: str,
        data: ContactMessageCreate,
    ) -> dict[str, str]:
        """Store a new root message from a buyer to a listing's seller.

        Raises:
            ValidationError: If the body is too short or the recipient is not
                the listing's seller.
            NotFoundError: If the listing does not exist.
        """
        self.validate_body(data.body)
        listing = self.catalog.get(listing_id)
        if listing is None:
            raise NotFoundError(f"Listing {listing_id} not found")
        if recipient_id != listing.seller_id:
            raise ValidationError("Contact messages must be addressed to the listing's seller")

        message = self.repo.add(
            Message(
                listing_id=listing_id,
                sender_id=sender_id,
                recipient_id=recipient_id,
                subject=data.subject,
                body=data.body,
                include_phone=data.include_phone,
            )
        )
        self.session.commit()
        message_id = message.id
        listing_title = listing.title

        self.catalog.increment_contact_count(listing_id)
        self._notify(message, listing_title)
        return {"message": SEND_CONFIRMATION, "message_id": message_id}

    @translate_persistence_errors
    def reply_to_message(self, original_id: str, body: str, sender_id: str) -> MessageView:
        """Reply to an existing message and return the new message."""
        self.validate_body(body)
        reply = self.replies.reply(original_id, body, sender_id)
        view = to_message_view(reply)
        self._notify(reply)
        return view

    @translate_persistence_errors
    def get_sent_messages(self, user_id: str) -> list[MessageView]:
        """Return messages the user sent, including replies landing back on them."""
        return self.conversations.get_sent_messages(user_id)

    @translate_persistence_errors
    def get_received_messages(self, user_id: str) -> list[MessageView]:
        """Return the user's non-archived inbox."""
        return self.conversations.get_received_messages(user_id)

    @translate_persistence_errors
    def get_archived_messages(self, user_id: str) -> list[MessageView]:
        """Return the user's archived inbox."""
        return self.conversations.get_archived_messages(user_id)

    @translate_persistence_errors
    def get_conversations(self, user_id: str) -> ConversationSet:
        """Return every thread the user participates in and the unread total."""
        return self.conversations.get_conversations(user_id)

    @translate_persistence_errors
    def get_message_thread(self, thread_id: str, user_id: str) -> list[MessageView]:
        """Return one thread after checking the caller participates in it."""
        return self.conversations.get_message_thread(thread_id, user_id)

    @translate_persistence_errors
    def get_message_by_id(self, message_id: str) -> MessageView | None:
        """Return a live message with listing metadata, or None."""
        message = self.repo.get_live(message_id)
        if message is None:
            return None
        return self.enricher.enrich([message], with_names=False)[0]

    @translate_persistence_errors
    def get_recent_unread_messages(self, user_id: str, limit: int | None = None) -> list[MessageView]:
        """Return the newest unread messages received by the user."""
        return self.conversations.get_recent_unread_messages(
            user_id, limit or settings.recent_unread_limit
        )

    @translate_persistence_errors
    def get_unread_message_count(self, user_id: str) -> int:
        """Return how many received messages are still unread."""
        return self.read_state.get_unread_message_count(user_id)

    @translate_persistence_errors
    def mark_as_read(self, message_id: str, user_id: str | None = None) -> None:
        """Mark one message as read; repeated calls keep the first timestamp."""
        self._require_participant(message_id, user_id)
        self.read_state.mark_as_read(message_id)

    @translate_persistence_errors
    def mark_as_read_bulk(self, message_ids: Iterable[str], user_id: str | None = None) -> int:
        """Mark several messages as read and return how many changed."""
        return self.read_state.mark_as_read_bulk(message_ids, recipient_id=user_id)

    @translate_persistence_errors
    def mark_as_unread(self, message_id: str, user_id: str | None = None) -> None:
        """Mark one message as unread."""
        self._require_participant(message_id, user_id)
        self.read_state.mark_as_unread(message_id)

    @translate_persistence_errors
    def archive_message(self, message_id: str, user_id: str | None = None) -> None:
        """Archive a message on the recipient side."""
        self._set_archived(message_id, user_id, archived=True)

    @translate_persistence_errors
    def unarchive_message(self, message_id: str, user_id: str | None = None) -> None:
        """Move a message back from the recipient's archive."""
        self._set_archived(message_id, user_id, archived=False)

    @translate_persistence_errors
    def delete_message(
        self,
        message_id: str,
        cascade_related: bool = True,
        user_id: str | None = None,
    ) -> None:
        """Delete a message, removing or preserving whatever depends on it.

        Deleting a message that is already gone succeeds, so callers may retry.
        """
        message = self.repo.get_by_id(message_id)
        if message is not None and user_id is not None and not message.involves(user_id):
            raise PermissionDeniedError("You cannot delete a message you are not part of")
        self.deletion.delete_message(message_id, cascade_related)

    def _require_participant(self, message_id: str, user_id: str | None) -> None:
        if user_id is None:
            return
        message = self.repo.get_by_id(message_id)
        if message is None:
            raise NotFoundError(f"Message {message_id} not found")
        if not message.involves(user_id):
            raise PermissionDeniedError("You are not part of this message")

    def _set_archived(self, message_id: str, user_id: str | None, *, archived: bool) -> None:
        message = self.repo.get_by_id(message_id)
        if message is None:
            raise NotFoundError(f"Message {message_id} not found")
        if user_id is not None and message.recipient_id != user_id:
            raise PermissionDeniedError("Only the recipient can archive a message")
        self.repo.set_archived(message_id, archived)
        self.session.commit()

    def _notify(self, message: Message, listing_title: str | None = None) -> None:
        message_id = message.id
        try:
            if listing_title is None:
                summary = self.catalog.summaries([message.listing_id]).get(message.listing_id)
                listing_title = summary.title if summary else ""
            self.notifier.message_received(message, listing_title)
        except Exception:
            logger.exception("Error notifying recipient of message %s", message_id)
