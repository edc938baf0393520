"""Read-only lookups over shows, episodes and actors."""

from __future__ import annotations

from sqlalchemy import func, select, union

from ..database import Database
from ..db_models import Actor, Episode, MainCast, RecurringCast, Show
from ..errors import NotFound
from ..models import (
    ActorRole,
    ActorRoles,
    ActorSummary,
    CastMember,
    EpisodeSummary,
    RecurringCastMember,
    SearchResults,
    ShowSummary,
)
from ..utils import like_term


class CatalogQueryService:
    """Pure reads; nothing here depends on who is asking."""

    def __init__(self, database: Database):
        self._database = database

    async def get_show(self, show_id: str) -> ShowSummary:
        async with self._database.session() as session:
            show = await session.get(Show, show_id)
        if show is None:
            raise NotFound("Show", show_id)
        return _show_summary(show)

    async def get_main_cast(self, show_id: str) -> list[CastMember]:
        async with self._database.session() as session:
            result = await session.execute(
                select(Actor.actor_id, Actor.first_name, Actor.last_name, MainCast.role)
                .join(MainCast, MainCast.actor_id == Actor.actor_id)
                .where(MainCast.show_id == show_id)
                .distinct()
                .order_by(Actor.last_name, Actor.first_name, MainCast.role)
            )
            rows = result.all()
        return [_cast_member(*row) for row in rows]

    async def get_recurring_cast_with_counts(
        self, show_id: str
    ) -> list[RecurringCastMember]:
        """Recurring actors of a show with the number of episodes they appear in."""

        appearances = func.count(RecurringCast.episode_id.distinct()).label(
            "appearances"
        )
        async with self._database.session() as session:
            result = await session.execute(
                select(
                    Actor.actor_id,
                    Actor.first_name,
                    Actor.last_name,
                    func.min(RecurringCast.role),
                    appearances,
                )
                .join(RecurringCast, RecurringCast.actor_id == Actor.actor_id)
                .join(
                    Episode,
                    (Episode.show_id == RecurringCast.show_id)
                    & (Episode.episode_id == RecurringCast.episode_id),
                )
                .where(RecurringCast.show_id == show_id)
                .group_by(Actor.actor_id, Actor.first_name, Actor.last_name)
                .order_by(appearances.desc(), Actor.last_name, Actor.first_name)
            )
            rows = result.all()
        return [
            RecurringCastMember(
                actor_id=actor_id,
                first_name=first_name,
                last_name=last_name,
                role=role,
                appearances=count,
            )
            for actor_id, first_name, last_name, role, count in rows
        ]

    async def get_episodes(self, show_id: str) -> list[EpisodeSummary]:
        """Episodes of a show in air-date order."""

        async with self._database.session() as session:
            result = await session.scalars(
                select(Episode)
                .where(Episode.show_id == show_id)
                .order_by(Episode.air_date, Episode.episode_id)
            )
            episodes = result.all()
        return [_episode_summary(episode) for episode in episodes]

    async def get_episode(self, show_id: str, episode_id: str) -> EpisodeSummary:
        async with self._database.session() as session:
            episode = await session.get(Episode, (show_id, episode_id))
        if episode is None:
            raise NotFound("Episode", f"{show_id}/{episode_id}")
        return _episode_summary(episode)

    async def get_episode_cast(
        self, show_id: str, episode_id: str
    ) -> list[CastMember]:
        """Recurring cast credited on a single episode."""

        async with self._database.session() as session:
            result = await session.execute(
                select(
                    Actor.actor_id, Actor.first_name, Actor.last_name, RecurringCast.role
                )
                .join(RecurringCast, RecurringCast.actor_id == Actor.actor_id)
                .where(
                    RecurringCast.show_id == show_id,
                    RecurringCast.episode_id == episode_id,
                )
                .distinct()
                .order_by(Actor.last_name, Actor.first_name, RecurringCast.role)
            )
            rows = result.all()
        return [_cast_member(*row) for row in rows]

    async def get_actor_roles(self, actor_id: str) -> ActorRoles:
        async with self._database.session() as session:
            actor = await session.get(Actor, actor_id)
            if actor is None:
                raise NotFound("Actor", actor_id)

            main = await session.execute(
                select(Show.show_id, Show.title, MainCast.role)
                .join(MainCast, MainCast.show_id == Show.show_id)
                .where(MainCast.actor_id == actor_id)
                .distinct()
                .order_by(Show.title, MainCast.role)
            )
            recurring = await session.execute(
                select(Show.show_id, Show.title, RecurringCast.role)
                .join(RecurringCast, RecurringCast.show_id == Show.show_id)
                .where(RecurringCast.actor_id == actor_id)
                .distinct()
                .order_by(Show.title, RecurringCast.role)
            )
            main_rows = main.all()
            recurring_rows = recurring.all()

        return ActorRoles(
            actor=_actor_summary(actor),
            main_roles=[
                ActorRole(show_id=show_id, title=title, role=role)
                for show_id, title, role in main_rows
            ],
            recurring_roles=[
                ActorRole(show_id=show_id, title=title, role=role)
                for show_id, title, role in recurring_rows
            ],
        )

    async def search_shows_by_title(self, term: str | None) -> list[ShowSummary]:
        cleaned = like_term(term)
        if cleaned is None:
            return []
        async with self._database.session() as session:
            result = await session.scalars(
                select(Show)
                .where(Show.title.icontains(cleaned, autoescape=True))
                .order_by(Show.title)
            )
            shows = result.all()
        return [_show_summary(show) for show in shows]

    async def search_actors_by_name(self, term: str | None) -> list[ActorSummary]:
        """Actors whose first or last name contains ``term``."""

        cleaned = like_term(term)
        if cleaned is None:
            return []
        columns = (Actor.actor_id, Actor.first_name, Actor.last_name)
        matches = union(
            select(*columns).where(Actor.last_name.icontains(cleaned, autoescape=True)),
            select(*columns).where(Actor.first_name.icontains(cleaned, autoescape=True)),
        ).subquery()
        async with self._database.session() as session:
            result = await session.execute(
                select(matches).order_by(matches.c.last_name, matches.c.first_name)
            )
            rows = result.all()
        return [
            ActorSummary(actor_id=actor_id, first_name=first_name, last_name=last_name)
            for actor_id, first_name, last_name in rows
        ]

    async def search(self, term: str | None) -> SearchResults:
        return SearchResults(
            shows=await self.search_shows_by_title(term),
            actors=await self.search_actors_by_name(term),
        )


def _show_summary(show: Show) -> ShowSummary:
    return ShowSummary(
        show_id=show.show_id,
        title=show.title,
        genre=show.genre,
        description=show.description,
    )


def _episode_summary(episode: Episode) -> EpisodeSummary:
    return EpisodeSummary(
        show_id=episode.show_id,
        episode_id=episode.episode_id,
        title=episode.title,
        air_date=episode.air_date,
    )


def _actor_summary(actor: Actor) -> ActorSummary:
    return ActorSummary(
        actor_id=actor.actor_id,
        first_name=actor.first_name,
        last_name=actor.last_name,
    )


def _cast_member(actor_id: str, first_name: str, last_name: str, role: str) -> CastMember:
    return CastMember(
        actor_id=actor_id, first_name=first_name, last_name=last_name, role=role
    )
