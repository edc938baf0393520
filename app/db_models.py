"""SQLAlchemy ORM models backing the persistent state."""

from __future__ import annotations

from datetime import date

from sqlalchemy import Date, ForeignKey, ForeignKeyConstraint, Integer, String, Text, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from .database import Base


class Customer(Base):
    """A registered subscriber."""

    __tablename__ = "customer"
    __table_args__ = (UniqueConstraint("username", name="uq_customer_username"),)

    customer_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    username: Mapped[str] = mapped_column(String(64), nullable=False)
    password_hash: Mapped[str] = mapped_column(String(255), nullable=False)
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))
    email: Mapped[str] = mapped_column(String(255))
    credit_card: Mapped[str] = mapped_column(String(32))
    member_since: Mapped[date] = mapped_column(Date)
    renewal_date: Mapped[date] = mapped_column(Date)


class Show(Base):
    __tablename__ = "shows"

    show_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    title: Mapped[str] = mapped_column(String(255), index=True)
    genre: Mapped[str | None] = mapped_column(String(64), nullable=True)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)


class Episode(Base):
    """An episode; the leading digit of ``episode_id`` is its season."""

    __tablename__ = "episode"

    show_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("shows.show_id"), primary_key=True
    )
    episode_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    title: Mapped[str] = mapped_column(String(255))
    air_date: Mapped[date | None] = mapped_column(Date, nullable=True)


class Actor(Base):
    __tablename__ = "actor"

    actor_id: Mapped[str] = mapped_column(String(32), primary_key=True)
    first_name: Mapped[str] = mapped_column(String(100))
    last_name: Mapped[str] = mapped_column(String(100))


class MainCast(Base):
    """Actor credited for the whole run of a show."""

    __tablename__ = "main_cast"
    __table_args__ = (
        UniqueConstraint("show_id", "actor_id", "role", name="uq_main_cast_role"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    show_id: Mapped[str] = mapped_column(String(32), ForeignKey("shows.show_id"))
    actor_id: Mapped[str] = mapped_column(String(32), ForeignKey("actor.actor_id"))
    role: Mapped[str] = mapped_column(String(255))


class RecurringCast(Base):
    """Actor credited for a single episode."""

    __tablename__ = "recurring_cast"
    __table_args__ = (
        ForeignKeyConstraint(
            ["show_id", "episode_id"], ["episode.show_id", "episode.episode_id"]
        ),
        UniqueConstraint(
            "show_id", "episode_id", "actor_id", "role", name="uq_recurring_cast_role"
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    show_id: Mapped[str] = mapped_column(String(32))
    episode_id: Mapped[str] = mapped_column(String(32))
    actor_id: Mapped[str] = mapped_column(String(32), ForeignKey("actor.actor_id"))
    role: Mapped[str] = mapped_column(String(255))


class QueueEntry(Base):
    """A show a customer intends to watch; repeats are allowed."""

    __tablename__ = "cust_queue"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("customer.customer_id"), index=True
    )
    # Not tied to the catalog: queueing never checks that the show exists.
    show_id: Mapped[str] = mapped_column(String(32))
    date_queued: Mapped[date] = mapped_column(Date)


class WatchRecord(Base):
    """One viewing of an episode, at most once per calendar day."""

    __tablename__ = "watched"
    __table_args__ = (
        ForeignKeyConstraint(
            ["show_id", "episode_id"], ["episode.show_id", "episode.episode_id"]
        ),
        UniqueConstraint(
            "customer_id",
            "show_id",
            "episode_id",
            "date_watched",
            name="uq_watched_customer_id",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    customer_id: Mapped[str] = mapped_column(
        String(32), ForeignKey("customer.customer_id")
    )
    show_id: Mapped[str] = mapped_column(String(32))
    episode_id: Mapped[str] = mapped_column(String(32))
    date_watched: Mapped[date] = mapped_column(Date)
