"""Application configuration settings."""
from __future__ import annotations

import os
from decimal import Decimal
from functools import lru_cache

from pydantic import AliasChoices, BaseModel, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# --- Runtime toggles -----------------------------------------------------
# Execution environment: "dev" | "test" | "staging" | "prod"
ENV = os.getenv("FH_ENV", "dev").lower()

# Legacy bootstrap key, only honoured in development environments
DEV_API_KEY = os.getenv("DEV_API_KEY") or os.getenv("API_KEY") or "dev-secret-key"
DEV_API_KEY_ALLOWED = ENV in {"dev", "local", "test"}

# Recipient sentinel for notifications addressed to every administrator
ADMIN_RECIPIENT = "admin"


class Settings(BaseSettings):
    """Environment configuration for the FreelanceHub backend."""

    app_env: str = ENV
    database_url: str = "sqlite:///freelancehub.db"
    SECRET_KEY: str = "change-me"
    DEV_API_KEY: str | None = Field(
        default=DEV_API_KEY,
        validation_alias=AliasChoices("DEV_API_KEY", "API_KEY"),
    )
    CORS_ALLOW_ORIGINS: list[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]
    SENTRY_DSN: str | None = None
    PROMETHEUS_ENABLED: bool = True
    ALLOW_DB_CREATE_ALL: bool = False
    LOG_LEVEL: str = "INFO"

    # --- Notification bus ------------------------------------------------
    NOTIFICATION_APPEND_ATTEMPTS: int = 3
    CURRENCY_SYMBOL: str = "₹"

    model_config = SettingsConfigDict(
        env_file=".env", env_prefix="", env_file_encoding="utf-8", extra="ignore"
    )

    @field_validator("NOTIFICATION_APPEND_ATTEMPTS")
    @classmethod
    def _at_least_one_attempt(cls, value: int) -> int:
        """A dispatch always tries at least once."""

        return max(1, value)

    def format_amount(self, amount: Decimal) -> str:
        return f"{self.CURRENCY_SYMBOL}{amount}"


class AppInfo(BaseModel):
    name: str = "freelancehub-backend"
    version: str = "0.1.0"


settings = Settings()


@lru_cache
def get_settings() -> Settings:
    """Return cached application settings."""

    return settings


__all__ = [
    "ENV",
    "DEV_API_KEY",
    "DEV_API_KEY_ALLOWED",
    "ADMIN_RECIPIENT",
    "Settings",
    "AppInfo",
    "settings",
    "get_settings",
]
