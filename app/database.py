"""Database utilities for the streamTV service."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

from sqlalchemy import MetaData, inspect, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import DeclarativeBase

from .errors import StorageError

logger = logging.getLogger(__name__)


class Base(DeclarativeBase):
    """Declarative base with consistent naming conventions."""

    metadata = MetaData(
        naming_convention={
            "ix": "ix_%(column_0_label)s",
            "uq": "uq_%(table_name)s_%(column_0_name)s",
            "pk": "pk_%(table_name)s",
            "fk": "fk_%(table_name)s_%(column_0_name)s_%(referred_table_name)s",
        }
    )


# Unique keys the services rely on; legacy tables created without them get
# a matching unique index on startup.
REQUIRED_UNIQUE_KEYS: dict[str, tuple[str, tuple[str, ...]]] = {
    "customer": ("uq_customer_username", ("username",)),
    "watched": (
        "uq_watched_customer_id",
        ("customer_id", "show_id", "episode_id", "date_watched"),
    ),
}


class Database:
    """Thin wrapper managing the SQLAlchemy async engine and sessions."""

    def __init__(self, database_url: str):
        self._engine: AsyncEngine = create_async_engine(database_url, future=True)
        self.session_factory: async_sessionmaker[AsyncSession] = async_sessionmaker(
            self._engine, expire_on_commit=False
        )

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    async def create_all(self) -> None:
        """Create database tables if they do not yet exist."""

        async with self._engine.begin() as connection:
            await connection.run_sync(Base.metadata.create_all)
            await connection.run_sync(self._apply_schema_migrations)

    @staticmethod
    def _apply_schema_migrations(sync_connection) -> None:
        """Ensure uniqueness guarantees exist on tables created elsewhere."""

        inspector = inspect(sync_connection)
        table_names = set(inspector.get_table_names())

        for table, (index_name, columns) in REQUIRED_UNIQUE_KEYS.items():
            if table not in table_names:
                continue
            wanted = set(columns)
            existing = [
                set(constraint["column_names"])
                for constraint in inspector.get_unique_constraints(table)
            ]
            existing.extend(
                set(index["column_names"])
                for index in inspector.get_indexes(table)
                if index.get("unique")
            )
            if wanted in existing:
                continue

            column_list = ", ".join(columns)
            if table == "watched":
                # Same-day repeats recorded before the key existed collapse
                # onto the earliest row.
                sync_connection.execute(
                    text(
                        f"DELETE FROM watched WHERE id NOT IN ("
                        f"SELECT MIN(id) FROM watched GROUP BY {column_list})"
                    )
                )
            logger.info("Adding unique index %s on %s(%s)", index_name, table, column_list)
            sync_connection.execute(
                text(f"CREATE UNIQUE INDEX {index_name} ON {table} ({column_list})")
            )

    async def dispose(self) -> None:
        """Dispose of the underlying database engine."""

        await self._engine.dispose()

    @asynccontextmanager
    async def session(self) -> AsyncIterator[AsyncSession]:
        """Provide a unit of work; unhandled storage failures become StorageError."""

        async with self.session_factory() as session:
            try:
                yield session
            except SQLAlchemyError as exc:
                await session.rollback()
                raise StorageError(str(exc)) from exc
