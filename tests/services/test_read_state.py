# mypy: ignore-errors
# tests/services/test_read_state.py
"""Tests for read/unread transitions."""

import pytest

from listing_messages.core.errors import NotFoundError
from listing_messages.repositories.message_repo import MessageRepository
from listing_messages.services.read_state import ReadStateTracker

from conftest import BUYER_ID, SELLER_ID


@pytest.fixture()
def tracker(db_session) -> ReadStateTracker:
    return ReadStateTracker(MessageRepository(db_session))


def test_mark_as_read_keeps_first_timestamp(db_session, tracker, make_message) -> None:
    """Marking a message read twice leaves the first timestamp in place."""
    message = make_message()

    tracker.mark_as_read(message.id)
    db_session.refresh(message)
    first = message.read_at
    assert first is not None

    tracker.mark_as_read(message.id)
    db_session.refresh(message)
    assert message.read_at == first


def test_mark_as_unread_clears_timestamp(db_session, tracker, make_message) -> None:
    message = make_message()
    tracker.mark_as_read(message.id)

    tracker.mark_as_unread(message.id)
    db_session.refresh(message)
    assert message.read_at is None


def test_mark_missing_message_raises(tracker) -> None:
    with pytest.raises(NotFoundError):
        tracker.mark_as_read("missing")
    with pytest.raises(NotFoundError):
        tracker.mark_as_unread("missing")


def test_mark_as_read_bulk_counts_only_changed_rows(db_session, tracker, make_message) -> None:
    """Already-read messages are not counted again."""
    first = make_message()
    second = make_message()
    tracker.mark_as_read(first.id)

    assert tracker.mark_as_read_bulk([first.id, second.id, second.id]) == 1
    assert tracker.mark_as_read_bulk([]) == 0


def test_mark_as_read_bulk_limited_to_recipient(db_session, tracker, make_message) -> None:
    """With a recipient given, messages addressed to others are left alone."""
    incoming = make_message(sender_id=BUYER_ID, recipient_id=SELLER_ID)
    outgoing = make_message(sender_id=SELLER_ID, recipient_id=BUYER_ID)

    assert tracker.mark_as_read_bulk([incoming.id, outgoing.id], recipient_id=SELLER_ID) == 1
    db_session.refresh(outgoing)
    assert outgoing.read_at is None


def test_unread_count_excludes_archived_and_deleted(tracker, make_message) -> None:
    make_message()
    make_message(is_archived=True)
    make_message(is_deleted=True)
    make_message(sender_id=SELLER_ID, recipient_id=BUYER_ID)

    assert tracker.get_unread_message_count(SELLER_ID) == 1
    assert tracker.get_unread_message_count(BUYER_ID) == 1


def test_auto_read_only_touches_incoming(db_session, tracker, make_message) -> None:
    """Only unread messages addressed to the viewer are marked."""
    incoming = make_message(sender_id=BUYER_ID, recipient_id=SELLER_ID)
    outgoing = make_message(sender_id=SELLER_ID, recipient_id=BUYER_ID)

    stamped = tracker.auto_read([incoming, outgoing], SELLER_ID)

    assert set(stamped) == {incoming.id}
    db_session.refresh(outgoing)
    assert outgoing.read_at is None
    assert tracker.auto_read([incoming], SELLER_ID) == {}
