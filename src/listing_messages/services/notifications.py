"""Best-effort notifications for newly delivered messages.

Nothing in this module may fail the message write that triggered it: every
error is logged and swallowed here.
"""

from __future__ import annotations

import logging
from typing import Any

import httpx
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from listing_messages.core.settings import settings
from listing_messages.models import Message, Notification
from listing_messages.models.notification import NOTIFICATION_MESSAGE_RECEIVED
from listing_messages.services.participants import ParticipantDirectory
from listing_messages.services.threads import thread_key

# Configure logger for this module
logger = logging.getLogger(__name__)


class EmailSender:
    """Fire-and-forget e-mail delivery through an HTTP webhook."""

    def __init__(
        self,
        webhook_url: str | None = None,
        timeout_seconds: float | None = None,
        client: httpx.Client | None = None,
    ) -> None:
        self.webhook_url = webhook_url if webhook_url is not None else settings.email_webhook_url
        self.timeout_seconds = timeout_seconds or settings.email_timeout_seconds
        self._client = client

    def send(self, email: str, subject: str, content: str) -> bool:
        """Send one e-mail; returns False instead of raising on failure."""
        if not self.webhook_url:
            logger.info("[email] To: %s, Subject: %s", email, subject)
            return False

        payload: dict[str, Any] = {"to": email, "subject": subject, "content": content}
        try:
            if self._client is not None:
                response = self._client.post(self.webhook_url, json=payload)
            else:
                with httpx.Client(timeout=self.timeout_seconds) as client:
                    response = client.post(self.webhook_url, json=payload)
            response.raise_for_status()
        except httpx.HTTPError as e:
            logger.warning("Error sending e-mail to %s: %s", email, e)
            return False
        return True


class NotificationDispatcher:
    """Write an in-app notification and e-mail the recipient of a message."""

    def __init__(
        self,
        session: Session,
        directory: ParticipantDirectory | None = None,
        email_sender: EmailSender | None = None,
        enabled: bool | None = None,
    ) -> None:
        self.session = session
        self.directory = directory or ParticipantDirectory(session)
        self.email_sender = email_sender or EmailSender()
        self.enabled = settings.notifications_enabled if enabled is None else enabled

    def message_received(self, message: Message, listing_title: str = "") -> None:
        """Tell ``message.recipient_id`` that a new message is waiting."""
        if not self.enabled:
            return

        about = f" about {listing_title}" if listing_title else ""
        title = "New message received"
        body = f"You have a new message{about}: {message.subject}"
        link = f"/messages?thread={thread_key(message)}"

        try:
            self.session.add(
                Notification(
                    user_id=message.recipient_id,
                    type=NOTIFICATION_MESSAGE_RECEIVED,
                    title=title,
                    body=body,
                    link=link,
                    related_id=message.id,
                )
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.warning("Error creating notification for message %s: %s", message.id, e)

        recipient = self.directory.resolve([message.recipient_id])[message.recipient_id]
        if recipient.email:
            self.email_sender.send(recipient.email, title, body)
