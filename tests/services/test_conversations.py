# mypy: ignore-errors
# tests/services/test_conversations.py
"""Tests for conversation aggregation and mailbox views."""

import pytest

from listing_messages.core.errors import NotFoundError, PermissionDeniedError

from conftest import BUYER_ID, SELLER_ID, STRANGER_ID

REPLY_BODY = "Yes, it is still available to view."


def test_single_thread_for_both_participants(message_service, make_message, profiles) -> None:
    """Root and reply show up as one thread, oldest first, for each side."""
    root = make_message()
    reply = message_service.reply_to_message(root.id, REPLY_BODY, SELLER_ID)

    for user_id in (BUYER_ID, SELLER_ID):
        result = message_service.get_conversations(user_id)
        assert list(result.conversations) == [root.id]
        assert [m.id for m in result.conversations[root.id]] == [root.id, reply.id]


def test_conversations_never_repeat_a_message(message_service, make_message) -> None:
    root = make_message()
    first = message_service.reply_to_message(root.id, REPLY_BODY, SELLER_ID)
    message_service.reply_to_message(first.id, "Could we meet on Saturday morning?", BUYER_ID)

    result = message_service.get_conversations(BUYER_ID)
    ids = [m.id for m in result.conversations[root.id]]
    assert len(ids) == len(set(ids)) == 3


def test_counterpart_reply_found_through_thread_link(message_service, make_message) -> None:
    """A reply addressed elsewhere is still found through the user's own message."""
    root = make_message()
    # Linked only by thread and parent, recipient is not the buyer.
    stray = make_message(
        sender_id=SELLER_ID,
        recipient_id=STRANGER_ID,
        thread_id=root.id,
        parent_message_id=root.id,
    )

    result = message_service.get_conversations(BUYER_ID)

    assert [m.id for m in result.conversations[root.id]] == [root.id, stray.id]


def test_conversations_grouped_per_thread(message_service, make_message) -> None:
    first = make_message()
    second = make_message(subject="Another question")

    result = message_service.get_conversations(SELLER_ID)

    assert set(result.conversations) == {first.id, second.id}
    assert result.unread_count == 2


def test_conversations_include_names_and_listing(message_service, make_message, profiles) -> None:
    make_message(include_phone=True)

    view = next(iter(message_service.get_conversations(SELLER_ID).conversations.values()))[0]

    assert view.sender_name == "Bea Buyer"
    assert view.recipient_name == "Sam Seller"
    assert view.sender_phone == "555-0100"
    assert view.listing_title == "2015 Honda Civic"
    assert view.listing_image == "https://cdn.example.com/front.jpg"


def test_deleted_messages_are_hidden(message_service, make_message) -> None:
    make_message(is_deleted=True)
    assert message_service.get_conversations(BUYER_ID).conversations == {}


def test_message_thread_marks_incoming_read(db_session, message_service, make_message) -> None:
    """Opening a thread marks the viewer's unread incoming messages as read."""
    root = make_message()

    thread = message_service.get_message_thread(root.id, SELLER_ID)

    assert thread[0].read_at is not None
    db_session.refresh(root)
    assert root.read_at is not None
    assert message_service.get_unread_message_count(SELLER_ID) == 0


def test_message_thread_does_not_mark_outgoing(db_session, message_service, make_message) -> None:
    root = make_message()

    thread = message_service.get_message_thread(root.id, BUYER_ID)

    assert thread[0].read_at is None
    db_session.refresh(root)
    assert root.read_at is None


def test_message_thread_rejects_outsiders(message_service, make_message) -> None:
    root = make_message()
    with pytest.raises(PermissionDeniedError):
        message_service.get_message_thread(root.id, STRANGER_ID)


def test_message_thread_missing(message_service) -> None:
    with pytest.raises(NotFoundError):
        message_service.get_message_thread("missing", BUYER_ID)


def test_sent_messages_include_replies_newest_first(message_service, make_message) -> None:
    root = make_message()
    reply = message_service.reply_to_message(root.id, REPLY_BODY, SELLER_ID)

    sent = message_service.get_sent_messages(BUYER_ID)

    assert [m.id for m in sent] == [reply.id, root.id]
    assert all(m.sender_name is None for m in sent)


def test_received_messages_include_replies_in_own_threads(message_service, make_message) -> None:
    root = make_message()
    reply = message_service.reply_to_message(root.id, REPLY_BODY, SELLER_ID)

    assert [m.id for m in message_service.get_received_messages(BUYER_ID)] == [reply.id]
    assert [m.id for m in message_service.get_received_messages(SELLER_ID)] == [root.id]


def test_archived_messages_leave_the_inbox(message_service, make_message) -> None:
    root = make_message()
    message_service.archive_message(root.id, SELLER_ID)

    assert message_service.get_received_messages(SELLER_ID) == []
    assert [m.id for m in message_service.get_archived_messages(SELLER_ID)] == [root.id]


def test_recent_unread_messages(message_service, make_message) -> None:
    older = make_message()
    newer = make_message()
    message_service.mark_as_read(older.id)

    recent = message_service.get_recent_unread_messages(SELLER_ID)

    assert [m.id for m in recent] == [newer.id]
