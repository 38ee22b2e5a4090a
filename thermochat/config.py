"""Application configuration powered by Pydantic settings."""

from __future__ import annotations

from functools import lru_cache
from typing import Final
from urllib.parse import quote_plus

from pydantic import AnyUrl, Field, computed_field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Centralized configuration object with environment fallbacks."""

    model_config = SettingsConfigDict(env_prefix="THERMOCHAT_", env_file=".env", extra="allow")

    # App
    app_name: str = "ThermoChat"
    host: str = "0.0.0.0"  # noqa: S104
    port: int = 8420
    debug: bool = False
    log_level: str = Field(default="info")

    # Database
    db_host: str = Field(default="localhost")
    db_port: int = Field(default=5432)
    db_name: str = Field(default="thermochat")
    db_user: str = Field(default="thermochat")
    db_password: str = Field(default="thermochat")
    db_url: AnyUrl | str | None = Field(default=None)

    # Rooms
    default_room_temp_c: float = Field(default=22.0)
    min_temp_c: float = Field(default=-50.0)
    max_temp_c: float = Field(default=60.0)
    max_delay_minutes: float = Field(default=525_600.0, gt=0)
    announce_room_creation: bool = Field(default=True)

    # Timeouts (seconds)
    store_timeout_s: float = Field(default=5.0)
    llm_timeout_s: float = Field(default=30.0)

    # Scheduled changes
    scheduler_enabled: bool = Field(default=True)
    scheduler_interval_seconds: int = Field(default=60, ge=1)

    # LLM providers
    openai_api_key: str = Field(default="")
    anthropic_api_key: str = Field(default="")
    gemini_api_key: str = Field(default="")
    llm_model: str = Field(default="")

    # API key authentication (empty = no auth required)
    api_key: str = Field(default="")
    # Shared secret for the external tick trigger (empty = open)
    cron_secret: str = Field(default="")

    @field_validator("db_url", mode="before")
    @classmethod
    def _coerce_empty_url(cls, v: str | None) -> str | None:
        """Treat an empty string as unset so the URL is built from parts."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @computed_field  # type: ignore[prop-decorator]
    @property
    def database_url(self) -> str:
        """Return a fully qualified async SQLAlchemy database URL."""

        if self.db_url:
            return str(self.db_url)
        return (
            f"postgresql+psycopg://{quote_plus(self.db_user)}:{quote_plus(self.db_password)}@"
            f"{self.db_host}:{self.db_port}/{self.db_name}"
        )

    @computed_field  # type: ignore[prop-decorator]
    @property
    def llm_provider_config(self) -> dict[str, dict[str, str | bool]]:
        """Expose configured LLM provider metadata, in fallback order."""

        return {
            "openai": {
                "api_key": self.openai_api_key,
                "configured": bool(self.openai_api_key),
            },
            "anthropic": {
                "api_key": self.anthropic_api_key,
                "configured": bool(self.anthropic_api_key),
            },
            "gemini": {
                "api_key": self.gemini_api_key,
                "configured": bool(self.gemini_api_key),
            },
        }


@lru_cache
def get_settings() -> Settings:
    """Return cached settings instance."""

    return Settings()


SETTINGS: Final[Settings] = get_settings()
