# mypy: ignore-errors
# tests/test_migrations.py
"""Tests for the Alembic migration environment."""

from pathlib import Path

import pytest
from alembic import command
from alembic.config import Config
from sqlalchemy import create_engine, inspect, text
from sqlalchemy.exc import IntegrityError

PROJECT_ROOT = Path(__file__).resolve().parents[1]


@pytest.fixture()
def migrated_url(tmp_path, monkeypatch) -> str:
    url = f"sqlite:///{tmp_path / 'migrated.db'}"
    monkeypatch.setenv("ALEMBIC_URL", url)
    # No ini file, so logging configuration is left alone.
    config = Config()
    config.set_main_option("script_location", str(PROJECT_ROOT / "migrations"))
    command.upgrade(config, "head")
    return url


def test_upgrade_creates_schema(migrated_url) -> None:
    engine = create_engine(migrated_url)
    try:
        tables = set(inspect(engine).get_table_names())
    finally:
        engine.dispose()
    assert {"listings", "listing_images", "profiles", "messages", "notifications"} <= tables


def test_upgraded_schema_enforces_body_length(migrated_url) -> None:
    engine = create_engine(migrated_url)
    try:
        with engine.begin() as conn:
            conn.execute(
                text("INSERT INTO listings (id, seller_id, title, status) VALUES ('l1', 's1', 'Civic', 'active')")
            )
        with pytest.raises(IntegrityError), engine.begin() as conn:
            conn.execute(
                text(
                    "INSERT INTO messages (id, listing_id, sender_id, recipient_id, subject, body, created_at) "
                    "VALUES ('m1', 'l1', 'b1', 's1', '', 'short', '2024-05-01 09:00:00')"
                )
            )
    finally:
        engine.dispose()
