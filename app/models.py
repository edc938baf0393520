"""Pydantic models for submitted forms and service results."""

from __future__ import annotations

from datetime import date
from typing import Any

from pydantic import BaseModel, ConfigDict, EmailStr, Field, ValidationInfo, field_validator
from pydantic.alias_generators import to_camel


class RegistrationForm(BaseModel):
    """Fields accepted by the registration page.

    Passwords are kept exactly as typed; every other field is trimmed.
    """

    username: str = Field(min_length=5, max_length=64)
    password: str = Field(min_length=5, max_length=128)
    password_confirmation: str
    first_name: str = Field(min_length=1, max_length=100)
    last_name: str = Field(min_length=1, max_length=100)
    email: EmailStr
    credit_card: str = Field(min_length=10, max_length=32)

    @field_validator(
        "username", "first_name", "last_name", "email", "credit_card", mode="before"
    )
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value

    @field_validator("password_confirmation")
    @classmethod
    def _passwords_match(cls, value: str, info: ValidationInfo) -> str:
        password = info.data.get("password")
        if password is not None and value != password:
            raise ValueError("Password and Verify Password must match")
        return value


class LoginForm(BaseModel):
    username: str = Field(min_length=1)
    password: str = Field(min_length=1)

    @field_validator("username", mode="before")
    @classmethod
    def _strip(cls, value: Any) -> Any:
        return value.strip() if isinstance(value, str) else value


class ApiModel(BaseModel):
    """Result model serialised with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)

    def to_payload(self) -> dict[str, Any]:
        return self.model_dump(mode="json", by_alias=True)


class CustomerProfile(ApiModel):
    """Public view of a customer; never carries the hash or card."""

    customer_id: str
    username: str
    first_name: str
    last_name: str
    email: str
    member_since: date
    renewal_date: date


class QueueItem(ApiModel):
    show_id: str
    title: str
    date_queued: date


class WatchedEpisode(ApiModel):
    """Last time the customer watched one episode of a show."""

    episode_id: str
    episode_title: str
    last_watched: date


class ShowSummary(ApiModel):
    show_id: str
    title: str
    genre: str | None = None
    description: str | None = None


class EpisodeSummary(ApiModel):
    show_id: str
    episode_id: str
    title: str
    air_date: date | None = None

    @property
    def season(self) -> str:
        return self.episode_id[:1]

    def to_payload(self) -> dict[str, Any]:
        payload = super().to_payload()
        payload["season"] = self.season
        return payload


class CastMember(ApiModel):
    actor_id: str
    first_name: str
    last_name: str
    role: str


class RecurringCastMember(CastMember):
    appearances: int


class ActorSummary(ApiModel):
    actor_id: str
    first_name: str
    last_name: str


class ActorRole(ApiModel):
    show_id: str
    title: str
    role: str


class ActorRoles(ApiModel):
    actor: ActorSummary
    main_roles: list[ActorRole] = Field(default_factory=list)
    recurring_roles: list[ActorRole] = Field(default_factory=list)


class SearchResults(ApiModel):
    shows: list[ShowSummary] = Field(default_factory=list)
    actors: list[ActorSummary] = Field(default_factory=list)
