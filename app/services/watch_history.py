"""Per-episode watch history with same-day de-duplication."""

from __future__ import annotations

import logging
from datetime import date

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from ..config import Settings
from ..database import Database
from ..db_models import Episode, WatchRecord
from ..errors import NotFound, Unauthenticated
from ..models import WatchedEpisode
from ..utils import Today, today_in
from .session import AuthContext

logger = logging.getLogger(__name__)


class WatchHistoryService:
    """Records and lists the episodes a customer has watched."""

    def __init__(
        self,
        settings: Settings,
        database: Database,
        *,
        today: Today | None = None,
    ):
        self._database = database
        self._today = today or today_in(settings.zone)

    async def record_watch(
        self, auth: AuthContext, show_id: str, episode_id: str
    ) -> bool:
        """Record that the customer watched an episode today.

        Returns ``False`` when the episode was already recorded today; a
        viewing on a later day produces a new record.
        """

        if not auth.is_authenticated:
            raise Unauthenticated()

        today = self._today()
        async with self._database.session() as session:
            episode = await session.get(Episode, (show_id, episode_id))
            if episode is None:
                raise NotFound("Episode", f"{show_id}/{episode_id}")

            last_watched = await self._last_watched(session, auth, show_id, episode_id)
            if last_watched == today:
                logger.debug(
                    "Episode %s/%s already recorded today for %s",
                    show_id,
                    episode_id,
                    auth.customer_id,
                )
                return False

            session.add(
                WatchRecord(
                    customer_id=auth.customer_id,
                    show_id=show_id,
                    episode_id=episode_id,
                    date_watched=today,
                )
            )
            try:
                await session.commit()
            except IntegrityError:
                # A concurrent request recorded the same viewing first.
                await session.rollback()
                logger.debug(
                    "Episode %s/%s recorded concurrently for %s",
                    show_id,
                    episode_id,
                    auth.customer_id,
                )
                return False
        return True

    @staticmethod
    async def _last_watched(
        session: AsyncSession, auth: AuthContext, show_id: str, episode_id: str
    ) -> date | None:
        return await session.scalar(
            select(func.max(WatchRecord.date_watched)).where(
                WatchRecord.customer_id == auth.customer_id,
                WatchRecord.show_id == show_id,
                WatchRecord.episode_id == episode_id,
            )
        )

    async def list_watched(
        self, auth: AuthContext, show_id: str
    ) -> list[WatchedEpisode]:
        """Return the most recent viewing of each watched episode of a show."""

        if not auth.is_authenticated:
            return []

        last_watched = func.max(WatchRecord.date_watched).label("last_watched")
        async with self._database.session() as session:
            result = await session.execute(
                select(Episode.episode_id, Episode.title, last_watched)
                .select_from(WatchRecord)
                .join(
                    Episode,
                    (Episode.show_id == WatchRecord.show_id)
                    & (Episode.episode_id == WatchRecord.episode_id),
                )
                .where(
                    WatchRecord.customer_id == auth.customer_id,
                    WatchRecord.show_id == show_id,
                )
                .group_by(Episode.episode_id, Episode.title)
                .order_by(last_watched, Episode.episode_id)
            )
            rows = result.all()
        return [
            WatchedEpisode(
                episode_id=episode_id, episode_title=title, last_watched=watched_on
            )
            for episode_id, title, watched_on in rows
        ]
