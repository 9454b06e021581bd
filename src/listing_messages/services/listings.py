"""Listing catalog adapter used for message enrichment and contact counting."""

from __future__ import annotations

import logging
from collections.abc import Iterable
from dataclasses import dataclass

from sqlalchemy import select, update
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from listing_messages.models import Listing, ListingImage

# Configure logger for this module
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ListingSummary:
    """Title and primary image shown next to a message."""

    title: str = ""
    image: str = ""


class ListingCatalog:
    """Read listing titles/images and bump the contact counter."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def get(self, listing_id: str) -> Listing | None:
        """Return a listing by identifier."""
        return self.session.get(Listing, listing_id)

    def summaries(self, listing_ids: Iterable[str]) -> dict[str, ListingSummary]:
        """Return title and first primary image per listing id.

        Missing listings or images yield empty strings rather than errors.
        """
        ids = [listing_id for listing_id in dict.fromkeys(listing_ids) if listing_id]
        if not ids:
            return {}

        titles = {
            listing_id: title
            for listing_id, title in self.session.execute(
                select(Listing.id, Listing.title).where(Listing.id.in_(ids))
            )
        }

        images: dict[str, str] = {}
        try:
            rows = self.session.execute(
                select(ListingImage.listing_id, ListingImage.url)
                .where(ListingImage.listing_id.in_(ids), ListingImage.is_primary.is_(True))
                .order_by(ListingImage.display_order.asc(), ListingImage.id.asc())
            )
            for listing_id, url in rows:
                images.setdefault(listing_id, url)
        except SQLAlchemyError as e:
            logger.warning("Error fetching listing images: %s", e)

        return {
            listing_id: ListingSummary(
                title=titles.get(listing_id) or "",
                image=images.get(listing_id, ""),
            )
            for listing_id in ids
        }

    def increment_contact_count(self, listing_id: str) -> None:
        """Best-effort increment of the listing's contact counter."""
        try:
            self.session.execute(
                update(Listing)
                .where(Listing.id == listing_id)
                .values(contact_count=Listing.contact_count + 1)
            )
            self.session.commit()
        except SQLAlchemyError as e:
            self.session.rollback()
            logger.warning("Error incrementing contact count for listing %s: %s", listing_id, e)
