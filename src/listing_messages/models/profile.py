# src/listing_messages/models/profile.py
"""SQLAlchemy model for user display profiles."""

from sqlalchemy import String, Text
from sqlalchemy.orm import Mapped, mapped_column

from listing_messages.db.session import Base


class Profile(Base):
    """Display data for a marketplace user, keyed by the auth user id."""

    __tablename__ = "profiles"

    id: Mapped[str] = mapped_column(String(64), primary_key=True)
    email: Mapped[str | None] = mapped_column(Text, nullable=True)
    full_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    phone: Mapped[str | None] = mapped_column(Text, nullable=True)
