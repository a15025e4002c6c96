"""
Configuration module for the Blog API service.

The Settings object centralizes environment-driven configuration with strict
typing and validation rules so that the rest of the codebase can rely on a
single source of truth.
"""

from __future__ import annotations

from functools import lru_cache
from typing import Literal

from pydantic import Field, ValidationInfo, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    project_name: str = Field(default="Blog API", alias="PROJECT_NAME")
    environment: Literal["development", "test", "staging", "production"] = Field(
        default="development",
        alias="APP_ENV",
    )
    debug: bool = Field(default=False, alias="DEBUG")
    api_prefix: str = Field(default="/api/v1", alias="API_PREFIX")
    log_level: str = Field(default="HTTP", alias="LOG_LEVEL")
    log_dir: str | None = Field(
        default=None,
        alias="LOG_DIR",
        description="Directory for rotating log files; console only when unset.",
    )
    log_retention_days: int = Field(default=14, alias="LOG_RETENTION_DAYS")
    sql_echo: bool = Field(default=False, alias="SQL_ECHO")
    metrics_enabled: bool = Field(default=True, alias="METRICS_ENABLED")

    database_url: str = Field(alias="DATABASE_URL")

    host: str = Field(default="0.0.0.0", alias="HOST")  # noqa: S104
    port: int = Field(default=8000, alias="PORT", ge=1, le=65535)
    drain_timeout_seconds: float = Field(
        default=10.0,
        alias="DRAIN_TIMEOUT_SECONDS",
        description="Upper bound for in-flight requests to finish during shutdown.",
    )
    max_logged_body_bytes: int = Field(
        default=4096,
        alias="MAX_LOGGED_BODY_BYTES",
        description="Request bodies larger than this are truncated in log records.",
    )

    @field_validator("database_url", mode="before")
    @classmethod
    def _strip_string(cls, value: str | None, info: ValidationInfo) -> str:
        if value is None:
            field = (info.field_name or "value").upper()
            raise ValueError(f"{field} must be provided.")
        trimmed = value.strip()
        if not trimmed:
            field = (info.field_name or "value").upper()
            raise ValueError(f"{field} must not be empty.")
        return trimmed

    @field_validator("log_dir", mode="before")
    @classmethod
    def _blank_log_dir_is_none(cls, value: str | None) -> str | None:
        if value is None:
            return None
        trimmed = value.strip()
        return trimmed or None

    @field_validator("drain_timeout_seconds")
    @classmethod
    def _validate_drain_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("DRAIN_TIMEOUT_SECONDS must be positive.")
        return value

    @field_validator("log_retention_days", "max_logged_body_bytes")
    @classmethod
    def _validate_positive(cls, value: int, info: ValidationInfo) -> int:
        if value <= 0:
            field = (info.field_name or "value").upper()
            raise ValueError(f"{field} must be a positive integer.")
        return value

    @property
    def is_development(self) -> bool:
        """Development mode exposes stack traces in error responses."""
        return self.environment == "development"


@lru_cache
def get_settings() -> Settings:
    """Return a cached Settings instance so configuration is evaluated once."""
    # BaseSettings loads required values from env/.env during instantiation.
    return Settings()  # type: ignore[call-arg]


settings = get_settings()

__all__ = ["Settings", "get_settings", "settings"]
