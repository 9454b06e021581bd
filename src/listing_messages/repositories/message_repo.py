"""Data access helpers for working with messages."""
from __future__ import annotations

from collections.abc import Collection
from datetime import datetime

from sqlalchemy import delete, func, or_, select, update
from sqlalchemy.orm import Session

from listing_messages.models.message import Message

__all__ = ["MessageRepository"]


class MessageRepository:
    """Thin wrapper around database access for message rows.

    Every mutating helper is a single conditional statement so that it stays
    safe when interleaved with any other write in this module.
    """

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    # Reads

    def get_by_id(self, message_id: str) -> Message | None:
        """Return a message by identifier, tombstoned or not."""
        return self.session.get(Message, message_id)

    def get_live(self, message_id: str) -> Message | None:
        """Return a message unless it is missing or tombstoned."""
        return self.session.scalars(
            select(Message).where(Message.id == message_id, Message.is_deleted.is_(False))
        ).first()

    def current_thread_id(self, message_id: str) -> tuple[bool, str | None]:
        """Return ``(exists, thread_id)`` straight from the database."""
        row = self.session.execute(
            select(Message.thread_id).where(Message.id == message_id)
        ).first()
        if row is None:
            return False, None
        return True, row[0]

    def list_involving(self, user_id: str) -> list[Message]:
        """Return live messages the user sent or received."""
        return list(
            self.session.scalars(
                select(Message).where(
                    or_(Message.sender_id == user_id, Message.recipient_id == user_id),
                    Message.is_deleted.is_(False),
                )
            )
        )

    def list_replies_from_others(
        self,
        user_id: str,
        thread_keys: Collection[str],
        parent_ids: Collection[str],
    ) -> list[Message]:
        """Return live messages from other users that answer the user's messages."""
        if not thread_keys and not parent_ids:
            return []
        return list(
            self.session.scalars(
                select(Message).where(
                    Message.sender_id != user_id,
                    Message.is_deleted.is_(False),
                    or_(
                        Message.thread_id.in_(list(thread_keys)),
                        Message.parent_message_id.in_(list(parent_ids)),
                    ),
                )
            )
        )

    def list_thread_members(self, thread_keys: Collection[str]) -> list[Message]:
        """Return live messages keyed by any of ``thread_keys``.

        Roots that never received an explicit ``thread_id`` are matched by id.
        """
        if not thread_keys:
            return []
        keys = list(thread_keys)
        return list(
            self.session.scalars(
                select(Message)
                .where(
                    or_(Message.thread_id.in_(keys), Message.id.in_(keys)),
                    Message.is_deleted.is_(False),
                )
                .order_by(Message.created_at.asc(), Message.id.asc())
            )
        )

    def list_sent(self, user_id: str) -> list[Message]:
        """Return live, non-archived messages sent by the user."""
        return list(
            self.session.scalars(
                select(Message)
                .where(
                    Message.sender_id == user_id,
                    Message.is_archived.is_(False),
                    Message.is_deleted.is_(False),
                )
                .order_by(Message.created_at.desc())
            )
        )

    def list_sent_thread_keys(self, user_id: str) -> set[str]:
        """Return the canonical thread keys of every live message the user sent."""
        rows = self.session.execute(
            select(Message.id, Message.thread_id).where(
                Message.sender_id == user_id,
                Message.is_deleted.is_(False),
            )
        )
        return {thread_id or message_id for message_id, thread_id in rows}

    def list_in_threads(
        self,
        thread_keys: Collection[str],
        *,
        exclude_sender: str | None = None,
        archived: bool | None = None,
    ) -> list[Message]:
        """Return live messages whose explicit ``thread_id`` is in ``thread_keys``."""
        if not thread_keys:
            return []
        stmt = select(Message).where(
            Message.thread_id.in_(list(thread_keys)),
            Message.is_deleted.is_(False),
        )
        if exclude_sender is not None:
            stmt = stmt.where(Message.sender_id != exclude_sender)
        if archived is not None:
            stmt = stmt.where(Message.is_archived.is_(archived))
        return list(self.session.scalars(stmt.order_by(Message.created_at.desc())))

    def list_received(self, user_id: str, *, archived: bool) -> list[Message]:
        """Return live messages other users addressed to the user."""
        return list(
            self.session.scalars(
                select(Message)
                .where(
                    Message.recipient_id == user_id,
                    Message.sender_id != user_id,
                    Message.is_archived.is_(archived),
                    Message.is_deleted.is_(False),
                )
                .order_by(Message.created_at.desc())
            )
        )

    def list_recent_unread(self, user_id: str, limit: int) -> list[Message]:
        """Return the newest unread messages in the user's inbox."""
        return list(
            self.session.scalars(
                select(Message)
                .where(
                    Message.recipient_id == user_id,
                    Message.read_at.is_(None),
                    Message.is_archived.is_(False),
                    Message.is_deleted.is_(False),
                )
                .order_by(Message.created_at.desc())
                .limit(limit)
            )
        )

    def count_unread(self, user_id: str) -> int:
        """Count received, non-archived, live messages that were never read."""
        count = self.session.scalar(
            select(func.count())
            .select_from(Message)
            .where(
                Message.recipient_id == user_id,
                Message.read_at.is_(None),
                Message.is_archived.is_(False),
                Message.is_deleted.is_(False),
            )
        )
        return int(count or 0)

    def live_dependent_ids(self, message_id: str) -> list[str]:
        """Return ids of live direct replies and live members of a thread rooted here."""
        return self.dependent_ids(message_id, include_deleted=False)

    def dependent_ids(self, message_id: str, *, include_deleted: bool = True) -> list[str]:
        """Return ids of direct replies and members of a thread rooted here.

        Tombstoned rows are included by default since they still hold their
        ``parent_message_id`` reference.
        """
        stmt = select(Message.id).where(
            Message.id != message_id,
            or_(
                Message.parent_message_id == message_id,
                Message.thread_id == message_id,
            ),
        )
        if not include_deleted:
            stmt = stmt.where(Message.is_deleted.is_(False))
        return list(dict.fromkeys(self.session.scalars(stmt)))

    def get_body(self, message_id: str) -> str | None:
        """Return the stored body, or None when the row is gone."""
        return self.session.scalar(select(Message.body).where(Message.id == message_id))

    # Writes

    def add(self, message: Message) -> Message:
        """Insert a new message and return the persisted ORM instance."""
        self.session.add(message)
        self.session.flush()
        return message

    def set_thread_id_if_null(self, message_id: str, thread_key: str) -> bool:
        """Claim ``thread_key`` for a message that has none; False if already set."""
        result = self.session.execute(
            update(Message)
            .where(Message.id == message_id, Message.thread_id.is_(None))
            .values(thread_id=thread_key)
        )
        return result.rowcount > 0

    def mark_read(
        self,
        message_ids: Collection[str],
        read_at: datetime,
        *,
        recipient_id: str | None = None,
    ) -> int:
        """Stamp ``read_at`` on unread messages only."""
        if not message_ids:
            return 0
        stmt = update(Message).where(
            Message.id.in_(list(message_ids)),
            Message.read_at.is_(None),
        )
        if recipient_id is not None:
            stmt = stmt.where(Message.recipient_id == recipient_id)
        result = self.session.execute(stmt.values(read_at=read_at))
        return result.rowcount

    def mark_unread(self, message_id: str) -> int:
        """Clear ``read_at`` on a message."""
        result = self.session.execute(
            update(Message).where(Message.id == message_id).values(read_at=None)
        )
        return result.rowcount

    def set_archived(self, message_id: str, archived: bool) -> int:
        """Set the recipient-side archive flag."""
        result = self.session.execute(
            update(Message).where(Message.id == message_id).values(is_archived=archived)
        )
        return result.rowcount

    def tombstone(self, message_id: str, body: str) -> int:
        """Mark a message deleted and replace its body."""
        result = self.session.execute(
            update(Message)
            .where(Message.id == message_id)
            .values(is_deleted=True, body=body)
        )
        return result.rowcount

    def hard_delete(self, message_id: str) -> int:
        """Physically remove a message row."""
        result = self.session.execute(delete(Message).where(Message.id == message_id))
        return result.rowcount
