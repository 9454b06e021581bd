"""Thread key resolution for messages and replies."""

from __future__ import annotations

import logging

from listing_messages.core.errors import ConflictError, NotFoundError
from listing_messages.models import Message
from listing_messages.repositories.message_repo import MessageRepository

# Configure logger for this module
logger = logging.getLogger(__name__)


def thread_key(message: Message) -> str:
    """Return the explicit thread id if set, otherwise the message's own id."""
    return message.thread_id if message.thread_id is not None else message.id


class ThreadResolver:
    """Compute and claim thread keys without ever rewriting a stored one."""

    def __init__(self, repo: MessageRepository) -> None:
        self.repo = repo

    def resolve_reply_key(self, original: Message) -> str:
        """Return the key a reply to ``original`` must carry.

        When ``original`` has no ``thread_id`` yet, its own id is claimed with a
        set-if-null update. If a racing writer got there first, the stored key
        wins and is returned instead.
        """
        key = thread_key(original)
        if original.thread_id is not None:
            return key

        try:
            self._backfill(original.id, key)
        except ConflictError as e:
            logger.info("Thread key race on message %s; using %s", e.message_id, e.current_key)
            return e.current_key
        return key

    def _backfill(self, message_id: str, key: str) -> None:
        if self.repo.set_thread_id_if_null(message_id, key):
            return

        exists, current = self.repo.current_thread_id(message_id)
        if not exists:
            raise NotFoundError(f"Message {message_id} not found")
        if current is not None and current != key:
            raise ConflictError(message_id, current)
