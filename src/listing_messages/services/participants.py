"""Participant directory: batched lookup of user display data."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from listing_messages.core.settings import settings
from listing_messages.models import Profile

# Configure logger for this module
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Participant:
    """Display data for one user; used only for denormalized view fields."""

    id: str
    name: str
    email: str | None = None
    phone: str | None = None


class ParticipantDirectory:
    """Resolve user ids to display profiles in bounded batches.

    A failing batch is logged and skipped; every id that could not be
    resolved falls back to its raw value as the display name.
    """

    def __init__(self, session: Session, batch_size: int | None = None) -> None:
        self.session = session
        self.batch_size = max(1, batch_size or settings.profile_batch_size)

    def resolve(self, user_ids: Iterable[str]) -> dict[str, Participant]:
        """Return an id → participant map covering every requested id."""
        unique_ids = [user_id for user_id in dict.fromkeys(user_ids) if user_id]
        directory: dict[str, Participant] = {}

        for start in range(0, len(unique_ids), self.batch_size):
            batch = unique_ids[start:start + self.batch_size]
            try:
                profiles = self._fetch_batch(batch)
            except SQLAlchemyError as e:
                logger.warning("Profile lookup failed for batch of %d ids: %s", len(batch), e)
                continue
            for profile in profiles:
                directory[profile.id] = Participant(
                    id=profile.id,
                    name=profile.full_name or profile.email or profile.id,
                    email=profile.email,
                    phone=profile.phone,
                )

        for user_id in unique_ids:
            directory.setdefault(user_id, Participant(id=user_id, name=user_id))
        return directory

    def _fetch_batch(self, batch: list[str]) -> list[Profile]:
        return list(self.session.scalars(select(Profile).where(Profile.id.in_(batch))))
