"""Application settings loaded from the environment (and an optional .env file)."""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings for the notification service."""

    # Application
    ENVIRONMENT: Literal["local", "development", "production"] = "local"
    LOG_LEVEL: str = "INFO"

    # Data store
    DATA_STORE: Literal["supabase", "memory"] = "supabase"
    SUPABASE_URL: str = "http://localhost:54321"
    SUPABASE_SERVICE_ROLE_KEY: str = "test-service-role-key"

    # Expo push gateway
    EXPO_PUSH_URL: str = "https://exp.host/--/api/v2/push/send"
    EXPO_ACCESS_TOKEN: str | None = None
    PUSH_TIMEOUT_SECONDS: float = 10.0

    # Reminder sweep window, relative to the time of the sweep
    REMINDER_WINDOW_START_MINUTES: int = 12
    REMINDER_WINDOW_END_MINUTES: int = 18
    REMINDER_LEAD_MINUTES: int = 15

    # Fire-and-forget notification pool
    NOTIFIER_MAX_WORKERS: int = 4

    model_config = SettingsConfigDict(
        env_file=".env", env_file_encoding="utf-8", extra="ignore"
    )

    @model_validator(mode="after")
    def _window_is_ordered(self) -> Settings:
        if self.REMINDER_WINDOW_END_MINUTES <= self.REMINDER_WINDOW_START_MINUTES:
            raise ValueError(
                "REMINDER_WINDOW_END_MINUTES must be greater than "
                "REMINDER_WINDOW_START_MINUTES"
            )
        return self


@lru_cache
def get_settings() -> Settings:
    """Return the settings instance, cached."""
    return Settings()
