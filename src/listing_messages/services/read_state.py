"""Read/unread transitions and unread counting."""

from __future__ import annotations

from collections.abc import Iterable
from datetime import datetime

from listing_messages.core.errors import NotFoundError
from listing_messages.db.time import utcnow
from listing_messages.models import Message
from listing_messages.repositories.message_repo import MessageRepository


class ReadStateTracker:
    """Service handling read state of messages.

    Writes are conditional on ``read_at IS NULL`` so repeated or concurrent
    read-markings keep the first timestamp.
    """

    def __init__(self, repo: MessageRepository) -> None:
        self.repo = repo

    def mark_as_read(self, message_id: str) -> None:
        """Stamp ``read_at`` on a message unless it is already read."""
        self._require(message_id)
        self.repo.mark_read([message_id], utcnow())
        self.repo.session.commit()

    def mark_as_read_bulk(self, message_ids: Iterable[str], recipient_id: str | None = None) -> int:
        """Stamp ``read_at`` on every unread message in ``message_ids``.

        With ``recipient_id`` only messages addressed to that user change.
        """
        ids = list(dict.fromkeys(message_ids))
        if not ids:
            return 0
        updated = self.repo.mark_read(ids, utcnow(), recipient_id=recipient_id)
        self.repo.session.commit()
        return updated

    def mark_as_unread(self, message_id: str) -> None:
        """Clear ``read_at`` on a message."""
        self._require(message_id)
        self.repo.mark_unread(message_id)
        self.repo.session.commit()

    def get_unread_message_count(self, user_id: str) -> int:
        """Count received, non-archived, non-deleted messages with no ``read_at``."""
        return self.repo.count_unread(user_id)

    def auto_read(self, messages: Iterable[Message], user_id: str) -> dict[str, datetime]:
        """Mark as read every unread message addressed to ``user_id``.

        Returns the ids that were targeted mapped to the timestamp used, so
        callers can show them as read without reloading.
        """
        targets = [m.id for m in messages if m.is_addressed_to(user_id) and m.read_at is None]
        if not targets:
            return {}
        now = utcnow()
        self.repo.mark_read(targets, now)
        self.repo.session.commit()
        return dict.fromkeys(targets, now)

    def _require(self, message_id: str) -> None:
        if self.repo.get_by_id(message_id) is None:
            raise NotFoundError(f"Message {message_id} not found")
