# mypy: ignore-errors
# tests/services/test_notifications.py
"""Tests for best-effort notifications and e-mail delivery."""

import httpx

from listing_messages.models import Notification
from listing_messages.services.notifications import EmailSender, NotificationDispatcher

from conftest import SELLER_ID

WEBHOOK_URL = "https://mail.example.com/send"


def _client(handler) -> httpx.Client:
    return httpx.Client(transport=httpx.MockTransport(handler))


def test_email_sender_posts_payload() -> None:
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["body"] = request.read()
        return httpx.Response(202)

    sender = EmailSender(webhook_url=WEBHOOK_URL, client=_client(handler))

    assert sender.send("seller@example.com", "New message received", "Hello") is True
    assert seen["url"] == WEBHOOK_URL
    assert b"seller@example.com" in seen["body"]


def test_email_sender_swallows_http_errors() -> None:
    sender = EmailSender(
        webhook_url=WEBHOOK_URL,
        client=_client(lambda request: httpx.Response(500)),
    )
    assert sender.send("seller@example.com", "Subject", "Body") is False


def test_email_sender_without_webhook_only_logs(caplog) -> None:
    sender = EmailSender(webhook_url="")
    with caplog.at_level("INFO"):
        assert sender.send("seller@example.com", "Subject", "Body") is False
    assert "seller@example.com" in caplog.text


def test_dispatcher_writes_notification_and_emails(db_session, make_message, profiles, mocker) -> None:
    message = make_message()
    email_sender = mocker.Mock(spec=EmailSender)
    dispatcher = NotificationDispatcher(db_session, email_sender=email_sender, enabled=True)

    dispatcher.message_received(message, "2015 Honda Civic")

    notification = db_session.query(Notification).filter_by(user_id=SELLER_ID).one()
    assert notification.type == "message_received"
    assert notification.link == f"/messages?thread={message.id}"
    email_sender.send.assert_called_once()
    assert email_sender.send.call_args.args[0] == "seller@example.com"


def test_dispatcher_skips_email_without_profile(db_session, make_message, mocker) -> None:
    message = make_message()
    email_sender = mocker.Mock(spec=EmailSender)
    dispatcher = NotificationDispatcher(db_session, email_sender=email_sender, enabled=True)

    dispatcher.message_received(message)

    email_sender.send.assert_not_called()
    assert db_session.query(Notification).count() == 1


def test_disabled_dispatcher_does_nothing(db_session, make_message, mocker) -> None:
    message = make_message()
    email_sender = mocker.Mock(spec=EmailSender)
    dispatcher = NotificationDispatcher(db_session, email_sender=email_sender, enabled=False)

    dispatcher.message_received(message)

    email_sender.send.assert_not_called()
    assert db_session.query(Notification).count() == 0
