"""Deletion of messages that take part in reply graphs.

A message can be referenced by direct replies (``parent_message_id``) and by
members of a thread it roots (``thread_id``). Deleting it either tombstones it
in place or walks both edge types and removes dependents first. Every step
commits on its own, so an abandoned cascade still leaves each remaining parent
in place for the children that reference it.
"""

from __future__ import annotations

import logging

from sqlalchemy.exc import IntegrityError

from listing_messages.core.errors import ConstraintViolationError
from listing_messages.core.settings import settings
from listing_messages.models.message import MIN_BODY_LENGTH
from listing_messages.repositories.message_repo import MessageRepository

# Configure logger for this module
logger = logging.getLogger(__name__)

DELETED_PLACEHOLDER = (
    "[Message deleted] This message was deleted by its author but is kept to "
    "preserve the conversation. The original content is no longer available."
)
DELETED_PREFIX = "[DELETED] "
DELETED_FILLER = "This message has been deleted. "

# SQLSTATE codes reported by PostgreSQL drivers.
FOREIGN_KEY_VIOLATION = "23503"
CHECK_VIOLATION = "23514"


def tombstone_body(original_length: int, min_length: int = MIN_BODY_LENGTH) -> str:
    """Return replacement text at least as long as the original body.

    Args:
        original_length: Length of the body being replaced.
        min_length: Store-enforced minimum body length.
    """
    target = max(original_length, min_length)
    if target <= len(DELETED_PLACEHOLDER):
        return DELETED_PLACEHOLDER

    body = DELETED_PREFIX
    while len(body) < target:
        body += DELETED_FILLER
    return body


def _sqlstate(error: IntegrityError) -> str | None:
    orig = error.orig
    return getattr(orig, "pgcode", None) or getattr(orig, "sqlstate", None)


def is_foreign_key_violation(error: IntegrityError) -> bool:
    """Return True when ``error`` was raised by a referential constraint."""
    if _sqlstate(error) == FOREIGN_KEY_VIOLATION:
        return True
    return "FOREIGN KEY" in str(error.orig).upper()


def is_check_violation(error: IntegrityError) -> bool:
    """Return True when ``error`` was raised by a CHECK constraint."""
    if _sqlstate(error) == CHECK_VIOLATION:
        return True
    return "CHECK CONSTRAINT" in str(error.orig).upper()


class DeletionCascadeManager:
    """Delete or tombstone messages, tolerating concurrent and repeated calls."""

    def __init__(self, repo: MessageRepository, retry_min_length: int | None = None) -> None:
        self.repo = repo
        self.retry_min_length = retry_min_length or settings.tombstone_retry_min_length

    def delete_message(self, message_id: str, cascade_related: bool = True) -> None:
        """Delete ``message_id``; dependents are removed first or the message is tombstoned.

        An id that is already gone counts as deleted.

        Raises:
            ConstraintViolationError: If neither a hard delete nor a tombstone
                could be stored.
        """
        if not cascade_related:
            if self.repo.live_dependent_ids(message_id):
                self.tombstone(message_id)
            else:
                self._remove(message_id)
            return

        self._cascade(message_id)

    def _cascade(self, message_id: str) -> None:
        # Post-order walk: a node is removed once no dependent, live or
        # tombstoned, is left.
        # Nodes expanded but not finished are ancestors on the current path
        # and are never pushed again.
        stack = [message_id]
        expanded: set[str] = set()
        finished: set[str] = set()

        while stack:
            current = stack[-1]
            if current in finished:
                stack.pop()
                continue

            expanded.add(current)
            outstanding = [
                dependent
                for dependent in self.repo.dependent_ids(current)
                if dependent not in finished and dependent not in expanded
            ]
            if outstanding:
                stack.extend(outstanding)
                continue

            stack.pop()
            self._remove(current)
            finished.add(current)

    def _remove(self, message_id: str) -> None:
        """Hard delete a message, falling back to a tombstone on FK rejection."""
        try:
            deleted = self.repo.hard_delete(message_id)
            self.repo.session.commit()
        except IntegrityError as e:
            self.repo.session.rollback()
            if not is_foreign_key_violation(e):
                raise ConstraintViolationError(f"Cannot delete message {message_id}: {e.orig}") from e
            logger.info("Message %s is still referenced; tombstoning instead", message_id)
            self.tombstone(message_id)
            return

        if not deleted:
            logger.debug("Message %s was already removed", message_id)

    def tombstone(self, message_id: str) -> None:
        """Mark a message deleted and replace its body with placeholder text."""
        original = self.repo.get_body(message_id)
        if original is None:
            logger.debug("Message %s vanished before it could be tombstoned", message_id)
            return

        try:
            self.repo.tombstone(message_id, tombstone_body(len(original)))
            self.repo.session.commit()
            return
        except IntegrityError as e:
            self.repo.session.rollback()
            if not is_check_violation(e):
                raise ConstraintViolationError(
                    f"Cannot delete nor tombstone message {message_id}: {e.orig}"
                ) from e
            logger.warning("Tombstone body rejected for message %s; retrying longer", message_id)

        body = tombstone_body(len(original), max(MIN_BODY_LENGTH, self.retry_min_length))
        try:
            self.repo.tombstone(message_id, body)
            self.repo.session.commit()
        except IntegrityError as e:
            self.repo.session.rollback()
            raise ConstraintViolationError(
                f"Cannot delete nor tombstone message {message_id}: {e.orig}"
            ) from e
