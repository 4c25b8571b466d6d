"""Application configuration using Pydantic Settings.

This module centralizes runtime configuration for the scheduling server. Values
can be provided via environment variables (preferred) or fall back to the
defaults below. A ``Settings`` instance is intended to be retrieved via
``get_settings`` which caches the object for reuse across the process.

Environment variable prefix: ``CLINIC_SCHEDULER_`` (e.g. ``CLINIC_SCHEDULER_REDIS_URL``).
"""

from functools import lru_cache
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Runtime application settings.

    Attributes map directly to environment variables using the ``CLINIC_SCHEDULER_``
    prefix (case-insensitive). For example, ``host`` <- ``CLINIC_SCHEDULER_HOST``.
    """

    # Server settings
    host: str = Field(
        default="0.0.0.0",
        description="Host interface to bind the server",
    )  # fmt: skip
    port: int = Field(
        default=3001,
        description="Server port",
    )  # fmt: skip
    log_level: Literal["TRACE", "DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="INFO",
        description="Application log level",
    )
    reload: bool = Field(
        default=False,
        description="Enable auto-reload in development",
    )  # fmt: skip
    sql_log: bool = Field(
        default=False,
        description="Enable SQL query logging",
    )  # fmt: skip
    database_url: str | None = Field(
        default=None,
        description="Database connection string",
    )  # fmt: skip
    cors_origins: str = Field(
        default="http://localhost:5173",
        description="Comma-separated list of origins allowed to call the API with credentials",
    )  # fmt: skip

    # Session cookie written by the login flow
    session_secret: str = Field(
        default="dev-secret-change-in-production",
        description="Secret used to sign the session cookie",
    )  # fmt: skip
    session_cookie: str = Field(
        default="clinic.sid",
        description="Name of the session cookie",
    )  # fmt: skip
    session_max_age_seconds: int = Field(
        default=7 * 24 * 60 * 60,
        description="Session cookie lifetime",
    )  # fmt: skip

    # Shared cache; when unset an in-process backend is used instead
    redis_url: str | None = Field(
        default=None,
        description="Redis connection URL for the event cache and socket tokens",
    )  # fmt: skip
    cache_ttl_seconds: int = Field(
        default=5 * 60,
        description="TTL of cached event windows and the patient directory",
    )  # fmt: skip
    socket_token_ttl_seconds: int = Field(
        default=60,
        description="Lifetime of a single-use socket token",
    )  # fmt: skip

    # Reminder scanner
    reminders_enabled: bool = Field(
        default=True,
        description="Run the reminder scanner inside the server process",
    )  # fmt: skip
    reminder_interval_seconds: float = Field(
        default=60,
        description="Period between two reminder scans",
    )  # fmt: skip
    reminder_lead_minutes: int = Field(
        default=5,
        description="How far ahead of the start a reminder is sent",
    )  # fmt: skip
    reminder_window_minutes: int = Field(
        default=1,
        description="Width of the reminder trigger window",
    )  # fmt: skip

    default_event_duration: int = Field(
        default=30,
        description="Duration in minutes used when an event is created without one",
    )  # fmt: skip

    @field_validator("log_level", mode="before")
    @classmethod
    def validate_log_level(cls, v: str | None) -> str:
        """Normalize and validate log level."""
        if v is None:
            return "INFO"

        v_upper = str(v).upper()

        allowed = {"TRACE", "DEBUG", "INFO", "WARNING", "ERROR"}
        if v_upper not in allowed:
            raise ValueError(f"Invalid log level: {v}. Must be one of: {', '.join(sorted(allowed))}")

        return v_upper

    @field_validator("default_event_duration", "cache_ttl_seconds", "socket_token_ttl_seconds")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Durations and TTLs must be strictly positive."""
        if v <= 0:
            raise ValueError("Value must be a positive integer")
        return v

    @property
    def cors_origin_list(self) -> list[str]:
        """CORS origins as a list."""
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]

    model_config = SettingsConfigDict(
        env_prefix="CLINIC_SCHEDULER_",
        case_sensitive=False,
        extra="ignore",
        env_file=".env",
        env_file_encoding="utf-8",
    )


@lru_cache
def get_settings() -> Settings:
    """Return the cached ``Settings`` instance.

    The first invocation reads environment variables / .env file; subsequent
    calls reuse the same object to ensure consistent config.
    """

    return Settings()


__all__ = ["Settings", "get_settings"]
