"""Reply chain writer: links new replies into an existing thread."""

from __future__ import annotations

import logging

from listing_messages.core.errors import NotFoundError, PermissionDeniedError
from listing_messages.models import Message
from listing_messages.repositories.message_repo import MessageRepository
from listing_messages.services.threads import ThreadResolver

# Configure logger for this module
logger = logging.getLogger(__name__)

REPLY_SUBJECT_PREFIX = "Re: "
DEFAULT_SUBJECT = "No subject"


def reply_recipient(original: Message, sender_id: str) -> str:
    """Return who receives a reply to ``original`` written by ``sender_id``.

    The original recipient answering goes back to the original sender; the
    original sender writing again goes to the original recipient.
    """
    if sender_id == original.recipient_id:
        return original.sender_id
    return original.recipient_id


def reply_subject(original: Message) -> str:
    """Return the subject line for a reply to ``original``."""
    return f"{REPLY_SUBJECT_PREFIX}{original.subject or DEFAULT_SUBJECT}"


class ReplyChainWriter:
    """Create reply messages with the right direction and thread key."""

    def __init__(self, repo: MessageRepository, resolver: ThreadResolver | None = None) -> None:
        self.repo = repo
        self.resolver = resolver or ThreadResolver(repo)

    def reply(self, original_id: str, body: str, sender_id: str) -> Message:
        """Persist a reply to ``original_id`` and return it.

        Raises:
            NotFoundError: If the original message does not exist.
            PermissionDeniedError: If ``sender_id`` is not part of the original exchange.
        """
        original = self.repo.get_by_id(original_id)
        if original is None:
            raise NotFoundError(f"Message {original_id} not found")
        if not original.involves(sender_id):
            raise PermissionDeniedError("You cannot reply to a message you are not part of")

        recipient_id = reply_recipient(original, sender_id)
        # Claim the root's key before the reply row exists so the reply is
        # written once with its final thread_id.
        key = self.resolver.resolve_reply_key(original)

        reply = self.repo.add(
            Message(
                listing_id=original.listing_id,
                sender_id=sender_id,
                recipient_id=recipient_id,
                subject=reply_subject(original),
                body=body,
                include_phone=False,
                parent_message_id=original.id,
                thread_id=key,
            )
        )
        self.repo.session.commit()
        logger.debug("Stored reply %s in thread %s", reply.id, key)
        return reply
