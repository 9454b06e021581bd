# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from datetime import UTC, datetime, timedelta
from itertools import count
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key-for-listing-messages")
os.environ.setdefault("NOTIFICATIONS_ENABLED", "true")
os.environ.setdefault("EMAIL_WEBHOOK_URL", "")

from listing_messages.core.security import create_access_token
from listing_messages.db.session import Base, enable_sqlite_foreign_keys
from listing_messages.db.session import get_db as app_get_session
from listing_messages.main import app as fastapi_app
from listing_messages.models import Listing, ListingImage, Message, Profile
from listing_messages.services.messaging import MessageService
from listing_messages.services.notifications import EmailSender, NotificationDispatcher

TEST_DB_URL = "sqlite://"

BUYER_ID = "buyer-0001"
SELLER_ID = "seller-0001"
STRANGER_ID = "stranger-0001"

LONG_BODY = "Is this car still available for a test drive?"

_BASE_TIME = datetime(2024, 5, 1, 9, 0, tzinfo=UTC)
_MESSAGE_ORDER_COUNTER = count(1)


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    enable_sqlite_foreign_keys(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    # Services commit every step, so tests run against real commits and the
    # tables are emptied afterwards.
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Ensure each test sees a clean database even if commits occurred.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_session_dependency(app: FastAPI, db_session: Session) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    try:
        yield
    finally:
        app.dependency_overrides.pop(app_get_session, None)


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


@pytest.fixture()
def profiles(db_session: Session) -> dict[str, Profile]:
    """Persist display profiles for the buyer and the seller."""
    rows = {
        BUYER_ID: Profile(id=BUYER_ID, email="buyer@example.com", full_name="Bea Buyer", phone="555-0100"),
        SELLER_ID: Profile(id=SELLER_ID, email="seller@example.com", full_name="Sam Seller", phone="555-0199"),
    }
    db_session.add_all(rows.values())
    db_session.commit()
    return rows


@pytest.fixture()
def listing(db_session: Session) -> Listing:
    """Persist a listing owned by the seller with two images."""
    row = Listing(id="listing-0001", seller_id=SELLER_ID, title="2015 Honda Civic", contact_count=0)
    db_session.add(row)
    db_session.flush()
    db_session.add_all(
        [
            ListingImage(listing_id=row.id, url="https://cdn.example.com/side.jpg", is_primary=False, display_order=0),
            ListingImage(listing_id=row.id, url="https://cdn.example.com/front.jpg", is_primary=True, display_order=1),
        ]
    )
    db_session.commit()
    return row


@pytest.fixture()
def make_message(db_session: Session, listing: Listing) -> Callable[..., Message]:
    """Return a factory inserting messages with strictly increasing timestamps."""

    def _make(
        sender_id: str = BUYER_ID,
        recipient_id: str = SELLER_ID,
        body: str = LONG_BODY,
        **fields: Any,
    ) -> Message:
        fields.setdefault("listing_id", listing.id)
        fields.setdefault("subject", "Honda Civic")
        fields.setdefault(
            "created_at",
            _BASE_TIME + timedelta(minutes=next(_MESSAGE_ORDER_COUNTER)),
        )
        message = Message(sender_id=sender_id, recipient_id=recipient_id, body=body, **fields)
        db_session.add(message)
        db_session.commit()
        return message

    return _make


@pytest.fixture()
def email_sender() -> EmailSender:
    """E-mail sender without a webhook; deliveries are only logged."""
    return EmailSender(webhook_url="")


@pytest.fixture()
def message_service(db_session: Session, email_sender: EmailSender) -> MessageService:
    notifier = NotificationDispatcher(db_session, email_sender=email_sender, enabled=True)
    return MessageService(db_session, notifier=notifier)


@pytest.fixture()
def auth_headers() -> Callable[[str], dict[str, str]]:
    """Return a factory producing bearer headers for a user id."""

    def _headers(user_id: str) -> dict[str, str]:
        return {"Authorization": f"Bearer {create_access_token(user_id)}"}

    return _headers


@pytest.fixture()
def buyer_headers(auth_headers: Callable[[str], dict[str, str]]) -> dict[str, str]:
    return auth_headers(BUYER_ID)


@pytest.fixture()
def seller_headers(auth_headers: Callable[[str], dict[str, str]]) -> dict[str, str]:
    return auth_headers(SELLER_ID)
