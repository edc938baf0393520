"""Application configuration models."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Literal
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


DEVELOPMENT_SESSION_SECRET = "streamtv-development-secret"


class Settings(BaseSettings):
    """Settings loaded from environment variables or a .env file."""

    app_name: str = Field(default="streamTV", alias="APP_NAME")
    server_host: str = Field(default="0.0.0.0", alias="HOST")
    server_port: int = Field(default=8000, alias="PORT")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    database_url: str = Field(
        default="sqlite+aiosqlite:///./streamtv.db", alias="DATABASE_URL"
    )

    session_secret: str = Field(
        default=DEVELOPMENT_SESSION_SECRET, alias="SESSION_SECRET", min_length=8
    )
    session_cookie: str = Field(default="streamtv_session", alias="SESSION_COOKIE")
    session_max_age_seconds: int = Field(
        default=14 * 24 * 3_600, alias="SESSION_MAX_AGE", ge=300
    )
    session_https_only: bool = Field(default=False, alias="SESSION_HTTPS_ONLY")

    timezone: str = Field(default="America/New_York", alias="TIMEZONE")

    customer_id_prefix: str = Field(
        default="cust0", alias="CUSTOMER_ID_PREFIX", min_length=1, max_length=12
    )
    customer_id_digits: int = Field(
        default=3, alias="CUSTOMER_ID_DIGITS", ge=1, le=12
    )
    registration_retry_limit: int = Field(
        default=5, alias="REGISTRATION_RETRY_LIMIT", ge=1, le=50
    )
    queue_allow_duplicates: bool = Field(
        default=True, alias="QUEUE_ALLOW_DUPLICATES"
    )

    environment: Literal["development", "production"] = Field(
        default="development", alias="ENVIRONMENT"
    )

    @field_validator("log_level", mode="before")
    @classmethod
    def _normalise_log_level(cls, value: object) -> str:
        level = str(value or "INFO").strip().upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level

    @field_validator("timezone")
    @classmethod
    def _validate_timezone(cls, value: str) -> str:
        try:
            ZoneInfo(value)
        except (ZoneInfoNotFoundError, ValueError) as exc:
            raise ValueError(f"Unknown timezone: {value}") from exc
        return value

    @field_validator("customer_id_prefix")
    @classmethod
    def _validate_prefix(cls, value: str) -> str:
        # The numeric suffix is parsed from the trailing digit run, so the
        # prefix itself may end in a digit ("cust0") but may not be all digits.
        if value.isdigit():
            raise ValueError("CUSTOMER_ID_PREFIX must contain a non-digit character")
        return value

    @model_validator(mode="after")
    def _require_production_secret(self) -> "Settings":
        """Refuse to sign production sessions with the development key."""

        if (
            self.environment == "production"
            and self.session_secret == DEVELOPMENT_SESSION_SECRET
        ):
            raise ValueError("SESSION_SECRET must be configured in production")
        return self

    @property
    def zone(self) -> ZoneInfo:
        return ZoneInfo(self.timezone)

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8")


@lru_cache
def get_settings() -> Settings:
    """Return a cached settings instance."""

    return Settings()  # type: ignore[call-arg]


settings = get_settings()
