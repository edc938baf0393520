"""Pytest configuration and test helpers."""

from __future__ import annotations

import asyncio
import sys
from datetime import date
from pathlib import Path
from typing import Any, Callable

import pytest


# Ensure the application package is importable when running tests without an
# editable install. This mirrors the expected runtime layout where ``app`` sits
# at the project root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))


from app.config import Settings  # noqa: E402
from app.database import Database  # noqa: E402
from app.db_models import Actor, Episode, MainCast, RecurringCast, Show  # noqa: E402


TEST_SECRET = "test-session-secret"


class FixedClock:
    """Callable returning a settable calendar day."""

    def __init__(self, current: date):
        self.current = current

    def __call__(self) -> date:
        return self.current


async def seed_catalog(database: Database) -> None:
    """Populate a small catalog of shows, episodes and cast."""

    async with database.session_factory() as session:
        session.add_all(
            [
                Show(show_id="s1", title="Mad Men", genre="Drama"),
                Show(show_id="s2", title="The Office", genre="Comedy"),
                Show(show_id="s3", title="100% Fresh", genre="Cooking"),
                Show(show_id="s4", title="Batman Beyond", genre="Animation"),
                Show(show_id="s5", title="MANHUNT", genre="Crime"),
            ]
        )
        session.add_all(
            [
                Actor(actor_id="a1", first_name="Jon", last_name="Hamm"),
                Actor(actor_id="a2", first_name="Elisabeth", last_name="Moss"),
                Actor(actor_id="a3", first_name="Steve", last_name="Carell"),
                Actor(actor_id="a4", first_name="Manny", last_name="Jacinto"),
                Actor(actor_id="a5", first_name="Mary", last_name="Pickman"),
            ]
        )
        await session.flush()
        session.add_all(
            [
                Episode(show_id="s1", episode_id="102", title="Ladies Room", air_date=date(2007, 7, 26)),
                Episode(show_id="s1", episode_id="101", title="Smoke Gets in Your Eyes", air_date=date(2007, 7, 19)),
                Episode(show_id="s1", episode_id="201", title="For Those Who Think Young", air_date=date(2008, 7, 27)),
                Episode(show_id="s2", episode_id="101", title="Pilot", air_date=date(2005, 3, 24)),
            ]
        )
        await session.flush()
        session.add_all(
            [
                MainCast(show_id="s1", actor_id="a1", role="Don Draper"),
                MainCast(show_id="s1", actor_id="a2", role="Peggy Olson"),
                MainCast(show_id="s2", actor_id="a3", role="Michael Scott"),
                RecurringCast(show_id="s1", episode_id="101", actor_id="a4", role="Bartender"),
                RecurringCast(show_id="s1", episode_id="102", actor_id="a4", role="Bartender"),
                RecurringCast(show_id="s1", episode_id="201", actor_id="a4", role="Bartender"),
                RecurringCast(show_id="s1", episode_id="102", actor_id="a5", role="Secretary"),
                RecurringCast(show_id="s2", episode_id="101", actor_id="a1", role="Guest"),
            ]
        )
        await session.commit()


@pytest.fixture
def database_url(tmp_path) -> str:
    return f"sqlite+aiosqlite:///{tmp_path / 'streamtv.db'}"


@pytest.fixture
def make_settings(database_url: str) -> Callable[..., Settings]:
    def _make(**overrides: Any) -> Settings:
        values: dict[str, Any] = {
            "DATABASE_URL": database_url,
            "SESSION_SECRET": TEST_SECRET,
        }
        values.update(overrides)
        return Settings(_env_file=None, **values)

    return _make


@pytest.fixture
def seeded_database_url(database_url: str) -> str:
    """A database file with the schema and sample catalog in place."""

    async def runner() -> None:
        database = Database(database_url)
        try:
            await database.create_all()
            await seed_catalog(database)
        finally:
            await database.dispose()

    asyncio.run(runner())
    return database_url
