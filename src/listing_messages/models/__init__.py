# src/listing_messages/models/__init__.py
"""SQLAlchemy models for the Listing Messages application."""

from .listing import Listing, ListingImage
from .message import Message
from .notification import Notification
from .profile import Profile

__all__ = [
    "Listing", "ListingImage",
    "Message",
    "Notification",
    "Profile",
]
