"""Application settings loaded from environment variables."""

import os
from datetime import timedelta
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _env_file() -> str | None:
    if os.getenv("PYTEST_CURRENT_TEST"):
        return None
    return ".env"


class Settings(BaseSettings):
    """taskpulse configuration. All values come from environment variables."""

    # Storage
    tasks_file: Path = Field(default=Path("data/tasks.json"))

    # Lifecycle timing
    sweep_interval_seconds: int = Field(default=60, gt=0)
    reminder_lead_minutes: int = Field(default=60, gt=0)
    missed_grace_minutes: int = Field(default=60, ge=0)

    # Scheduler
    scheduler_timezone: str = Field(default="UTC")

    # HTTP API
    api_enabled: bool = Field(default=True)
    api_host: str = Field(default="127.0.0.1")
    api_port: int = Field(default=3000)

    # Notifications
    desktop_notifications: bool = Field(default=False)

    # Logging
    log_level: str = Field(default="INFO")

    model_config = SettingsConfigDict(env_file=_env_file(), env_file_encoding="utf-8")

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings,
        env_settings,
        dotenv_settings,
        file_secret_settings,
    ):
        if os.getenv("PYTEST_CURRENT_TEST"):
            return (init_settings,)
        return (init_settings, env_settings, dotenv_settings, file_secret_settings)

    @property
    def sweep_interval(self) -> timedelta:
        return timedelta(seconds=self.sweep_interval_seconds)

    @property
    def reminder_lead(self) -> timedelta:
        return timedelta(minutes=self.reminder_lead_minutes)

    @property
    def missed_grace(self) -> timedelta:
        return timedelta(minutes=self.missed_grace_minutes)


settings = Settings()
