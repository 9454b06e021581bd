# mypy: ignore-errors
# tests/services/test_participants.py
"""Tests for the participant directory."""

from sqlalchemy.exc import OperationalError

from listing_messages.models import Profile
from listing_messages.services.participants import ParticipantDirectory

from conftest import BUYER_ID, SELLER_ID, STRANGER_ID


def test_resolve_uses_full_name_then_email_then_id(db_session, profiles) -> None:
    """Display names fall back from full name to e-mail to the raw id."""
    db_session.add(Profile(id="email-only", email="only@example.com"))
    db_session.commit()

    directory = ParticipantDirectory(db_session)
    resolved = directory.resolve([BUYER_ID, "email-only", STRANGER_ID])

    assert resolved[BUYER_ID].name == "Bea Buyer"
    assert resolved[BUYER_ID].phone == "555-0100"
    assert resolved["email-only"].name == "only@example.com"
    assert resolved[STRANGER_ID].name == STRANGER_ID
    assert resolved[STRANGER_ID].email is None


def test_resolve_queries_in_batches(db_session, profiles, mocker) -> None:
    """Ids are looked up in groups no larger than the batch size."""
    directory = ParticipantDirectory(db_session, batch_size=1)
    spy = mocker.spy(directory, "_fetch_batch")

    resolved = directory.resolve([BUYER_ID, SELLER_ID, BUYER_ID])

    assert spy.call_count == 2
    assert {call.args[0][0] for call in spy.call_args_list} == {BUYER_ID, SELLER_ID}
    assert resolved[SELLER_ID].name == "Sam Seller"


def test_failed_batch_falls_back_to_raw_ids(db_session, profiles, mocker) -> None:
    """A failing batch does not abort the others."""
    directory = ParticipantDirectory(db_session, batch_size=1)
    real_fetch = directory._fetch_batch

    def flaky(batch):
        if batch == [BUYER_ID]:
            raise OperationalError("SELECT", {}, Exception("timeout"))
        return real_fetch(batch)

    mocker.patch.object(directory, "_fetch_batch", side_effect=flaky)

    resolved = directory.resolve([BUYER_ID, SELLER_ID])

    assert resolved[BUYER_ID].name == BUYER_ID
    assert resolved[SELLER_ID].name == "Sam Seller"


def test_resolve_ignores_empty_ids(db_session) -> None:
    assert ParticipantDirectory(db_session).resolve(["", None]) == {}
