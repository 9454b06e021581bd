"""Conversation aggregation and per-user mailbox views.

A user can take part in a thread in three ways, and all three have to be
searched to surface every conversation:

1. directly, as the sender or recipient of a message;
2. through thread membership, as any live message sharing a discovered key
   (roots without an explicit ``thread_id`` are matched by id);
3. through counterpart replies, where the other party answered one of the
   user's messages and the reply is only linked by ``thread_id`` or
   ``parent_message_id``.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from listing_messages.core.errors import NotFoundError, PermissionDeniedError
from listing_messages.db.time import as_utc
from listing_messages.models import Message
from listing_messages.repositories.message_repo import MessageRepository
from listing_messages.schemas.message import MessageView
from listing_messages.services.read_state import ReadStateTracker
from listing_messages.services.threads import thread_key
from listing_messages.services.views import MessageEnricher

# Configure logger for this module
logger = logging.getLogger(__name__)


@dataclass
class ConversationSet:
    """Threads a user participates in, plus the user's unread total."""

    conversations: dict[str, list[MessageView]]
    unread_count: int


def dedupe(messages: Iterable[Message]) -> list[Message]:
    """Drop repeated rows, keeping the first occurrence of each id."""
    seen: dict[str, Message] = {}
    for message in messages:
        seen.setdefault(message.id, message)
    return list(seen.values())


def chronological(message: Message) -> tuple:
    """Sort key ordering messages oldest first, ties broken by id."""
    return (as_utc(message.created_at), message.id)


class ConversationAggregator:
    """Discover, group and enrich the threads a user participates in."""

    def __init__(
        self,
        repo: MessageRepository,
        enricher: MessageEnricher,
        read_state: ReadStateTracker | None = None,
    ) -> None:
        self.repo = repo
        self.enricher = enricher
        self.read_state = read_state or ReadStateTracker(repo)

    def discover(self, user_id: str) -> list[Message]:
        """Return every live message in every thread ``user_id`` takes part in."""
        direct = self.repo.list_involving(user_id)

        sent = [m for m in direct if m.sender_id == user_id]
        sent_keys = {thread_key(m) for m in sent}
        sent_ids = {m.id for m in sent}
        counterpart_replies = self.repo.list_replies_from_others(user_id, sent_keys, sent_ids)

        keys = {thread_key(m) for m in direct}
        keys.update(thread_key(m) for m in counterpart_replies)

        members = self.repo.list_thread_members(keys)
        return dedupe([*members, *direct, *counterpart_replies])

    def get_conversations(self, user_id: str) -> ConversationSet:
        """Group the user's messages by thread key, oldest first in each thread."""
        messages = self.discover(user_id)
        unread_count = sum(1 for m in messages if m.is_addressed_to(user_id) and m.read_at is None)

        ordered = sorted(messages, key=chronological)
        views = self.enricher.enrich(ordered)

        conversations: dict[str, list[MessageView]] = {}
        for message, view in zip(ordered, views):
            conversations.setdefault(thread_key(message), []).append(view)

        logger.debug(
            "Found %d conversations (%d messages) for user %s",
            len(conversations),
            len(ordered),
            user_id,
        )
        return ConversationSet(conversations=conversations, unread_count=unread_count)

    def get_message_thread(self, key: str, user_id: str) -> list[MessageView]:
        """Return one thread in order, marking the caller's unread messages as read.

        Raises:
            NotFoundError: If no live message carries ``key``.
            PermissionDeniedError: If ``user_id`` is not a participant.
        """
        messages = sorted(self.repo.list_thread_members([key]), key=chronological)
        if not messages:
            raise NotFoundError(f"Thread {key} not found")
        if not any(m.involves(user_id) for m in messages):
            logger.warning("User %s is not a participant of thread %s", user_id, key)
            raise PermissionDeniedError("You do not have access to this message thread")

        read_overrides = self.read_state.auto_read(messages, user_id)
        return self.enricher.enrich(messages, read_overrides=read_overrides)

    def get_sent_messages(self, user_id: str) -> list[MessageView]:
        """Return the user's sent messages together with replies in those threads."""
        sent = self.repo.list_sent(user_id)
        replies = self.repo.list_in_threads({thread_key(m) for m in sent})
        messages = sorted(dedupe([*sent, *replies]), key=chronological, reverse=True)
        return self.enricher.enrich(messages, with_names=False)

    def get_received_messages(self, user_id: str) -> list[MessageView]:
        """Return the user's inbox: direct messages and replies in threads they started."""
        return self._mailbox(user_id, archived=False)

    def get_archived_messages(self, user_id: str) -> list[MessageView]:
        """Return the archived counterpart of :meth:`get_received_messages`."""
        return self._mailbox(user_id, archived=True)

    def get_recent_unread_messages(self, user_id: str, limit: int) -> list[MessageView]:
        """Return the newest unread messages in the user's inbox."""
        messages = self.repo.list_recent_unread(user_id, limit)
        return self.enricher.enrich(messages, with_names=False)

    def _mailbox(self, user_id: str, *, archived: bool) -> list[MessageView]:
        received = self.repo.list_received(user_id, archived=archived)
        replies = self.repo.list_in_threads(
            self.repo.list_sent_thread_keys(user_id),
            exclude_sender=user_id,
            archived=archived,
        )
        messages = sorted(dedupe([*received, *replies]), key=chronological, reverse=True)
        return self.enricher.enrich(messages)
