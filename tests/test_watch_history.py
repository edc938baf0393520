"""Watch-history recording and listing."""

from __future__ import annotations

import asyncio
from datetime import date

import pytest
from sqlalchemy import select

from app.database import Database
from app.db_models import WatchRecord
from app.errors import NotFound, Unauthenticated
from app.services.session import ANONYMOUS, AuthContext
from app.services.watch_history import WatchHistoryService

from conftest import FixedClock

ALICE = AuthContext(True, "alice", "cust0001")
BOB = AuthContext(True, "bobby", "cust0002")


def _run(make_settings, seeded_database_url, scenario) -> None:
    settings = make_settings(DATABASE_URL=seeded_database_url)
    clock = FixedClock(date(2024, 6, 10))

    async def runner() -> None:
        database = Database(settings.database_url)
        try:
            service = WatchHistoryService(settings, database, today=clock)
            await scenario(service, database, clock)
        finally:
            await database.dispose()

    asyncio.run(runner())


async def _dates(database: Database, auth: AuthContext) -> list[date]:
    async with database.session() as session:
        result = await session.scalars(
            select(WatchRecord.date_watched)
            .where(WatchRecord.customer_id == auth.customer_id)
            .order_by(WatchRecord.date_watched)
        )
        return list(result.all())


def test_same_day_repeat_is_suppressed(make_settings, seeded_database_url) -> None:
    async def scenario(service, database, clock) -> None:
        assert await service.record_watch(ALICE, "s1", "101") is True
        assert await service.record_watch(ALICE, "s1", "101") is False

        assert await _dates(database, ALICE) == [date(2024, 6, 10)]

    _run(make_settings, seeded_database_url, scenario)


def test_rewatch_on_another_day_is_kept(make_settings, seeded_database_url) -> None:
    async def scenario(service, database, clock) -> None:
        assert await service.record_watch(ALICE, "s1", "101") is True
        clock.current = date(2024, 6, 11)
        assert await service.record_watch(ALICE, "s1", "101") is True

        assert await _dates(database, ALICE) == [date(2024, 6, 10), date(2024, 6, 11)]

    _run(make_settings, seeded_database_url, scenario)


def test_customers_are_tracked_independently(make_settings, seeded_database_url) -> None:
    async def scenario(service, database, clock) -> None:
        assert await service.record_watch(ALICE, "s1", "101") is True
        assert await service.record_watch(BOB, "s1", "101") is True

        assert await _dates(database, BOB) == [date(2024, 6, 10)]

    _run(make_settings, seeded_database_url, scenario)


def test_list_watched_keeps_latest_date_per_episode(make_settings, seeded_database_url) -> None:
    async def scenario(service, database, clock) -> None:
        clock.current = date(2024, 6, 1)
        await service.record_watch(ALICE, "s1", "102")
        await service.record_watch(ALICE, "s1", "101")
        clock.current = date(2024, 6, 3)
        await service.record_watch(ALICE, "s1", "201")
        clock.current = date(2024, 6, 5)
        await service.record_watch(ALICE, "s1", "102")
        await service.record_watch(ALICE, "s2", "101")

        watched = await service.list_watched(ALICE, "s1")

        assert [(row.episode_id, row.last_watched) for row in watched] == [
            ("101", date(2024, 6, 1)),
            ("201", date(2024, 6, 3)),
            ("102", date(2024, 6, 5)),
        ]
        assert watched[0].episode_title == "Smoke Gets in Your Eyes"
        assert await service.list_watched(BOB, "s1") == []

    _run(make_settings, seeded_database_url, scenario)


def test_unknown_episode_is_not_recorded(make_settings, seeded_database_url) -> None:
    async def scenario(service, database, clock) -> None:
        with pytest.raises(NotFound):
            await service.record_watch(ALICE, "s1", "999")

        assert await _dates(database, ALICE) == []

    _run(make_settings, seeded_database_url, scenario)


def test_anonymous_history(make_settings, seeded_database_url) -> None:
    async def scenario(service, database, clock) -> None:
        assert await service.list_watched(ANONYMOUS, "s1") == []
        with pytest.raises(Unauthenticated):
            await service.record_watch(ANONYMOUS, "s1", "101")

    _run(make_settings, seeded_database_url, scenario)


def test_concurrent_same_day_insert_counts_as_recorded(
    make_settings, seeded_database_url, monkeypatch
) -> None:
    """The unique key settles a race the date check could not see."""

    async def scenario(service, database, clock) -> None:
        async with database.session() as session:
            session.add(
                WatchRecord(
                    customer_id=ALICE.customer_id,
                    show_id="s1",
                    episode_id="101",
                    date_watched=clock(),
                )
            )
            await session.commit()

        async def read_before_other_insert(session, auth, show_id, episode_id):
            return None

        monkeypatch.setattr(service, "_last_watched", read_before_other_insert)

        assert await service.record_watch(ALICE, "s1", "101") is False
        assert await _dates(database, ALICE) == [date(2024, 6, 10)]

    _run(make_settings, seeded_database_url, scenario)
