"""A customer's list of shows to watch."""

from __future__ import annotations

import logging

from sqlalchemy import select

from ..config import Settings
from ..database import Database
from ..db_models import QueueEntry, Show
from ..errors import Unauthenticated
from ..models import QueueItem
from ..utils import Today, today_in
from .session import AuthContext

logger = logging.getLogger(__name__)


class QueueService:
    """Adds shows to, and lists, the logged-in customer's queue.

    There is no removal operation. Whether the same show may be queued more
    than once is governed by ``Settings.queue_allow_duplicates``.
    """

    def __init__(
        self,
        settings: Settings,
        database: Database,
        *,
        today: Today | None = None,
    ):
        self._database = database
        self._allow_duplicates = settings.queue_allow_duplicates
        self._today = today or today_in(settings.zone)

    async def add_to_queue(self, auth: AuthContext, show_id: str) -> bool:
        """Queue ``show_id``; returns whether a row was written."""

        if not auth.is_authenticated:
            raise Unauthenticated()

        async with self._database.session() as session:
            if not self._allow_duplicates:
                existing = await session.scalar(
                    select(QueueEntry.id)
                    .where(
                        QueueEntry.customer_id == auth.customer_id,
                        QueueEntry.show_id == show_id,
                    )
                    .limit(1)
                )
                if existing is not None:
                    return False
            session.add(
                QueueEntry(
                    customer_id=auth.customer_id,
                    show_id=show_id,
                    date_queued=self._today(),
                )
            )
            await session.commit()

        logger.info("Customer %s queued show %s", auth.customer_id, show_id)
        return True

    async def list_queue(self, auth: AuthContext) -> list[QueueItem]:
        if not auth.is_authenticated:
            return []

        async with self._database.session() as session:
            result = await session.execute(
                select(Show.show_id, Show.title, QueueEntry.date_queued)
                .select_from(QueueEntry)
                .join(Show, Show.show_id == QueueEntry.show_id)
                .where(QueueEntry.customer_id == auth.customer_id)
                .order_by(QueueEntry.id)
            )
            rows = result.all()
        return [
            QueueItem(show_id=show_id, title=title, date_queued=date_queued)
            for show_id, title, date_queued in rows
        ]

    async def is_queued(self, auth: AuthContext, show_id: str) -> bool:
        if not auth.is_authenticated:
            return False

        async with self._database.session() as session:
            existing = await session.scalar(
                select(QueueEntry.id)
                .where(
                    QueueEntry.customer_id == auth.customer_id,
                    QueueEntry.show_id == show_id,
                )
                .limit(1)
            )
        return existing is not None
