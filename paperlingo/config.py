"""
Configuration settings for paperlingo.

Uses Pydantic Settings for environment variable management with .env file support.
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_DATA_DIR = Path.home() / ".paperlingo"


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Local Card Store
    # ========================================
    database_url: str = Field(
        default=f"sqlite:///{DEFAULT_DATA_DIR / 'state.db'}",
        description="SQLAlchemy URL of the local card store",
    )

    # ========================================
    # Remote Store
    # ========================================
    remote_base_url: str = Field(
        default="",
        description="Base URL of the remote keyed store (empty disables replication)",
    )
    remote_auth_token: str | None = Field(
        default=None,
        description="Optional auth token appended to remote requests",
    )
    remote_timeout: int = Field(
        default=15,
        description="Remote request timeout in seconds",
    )
    remote_fetch_retries: int = Field(
        default=2,
        description="Transport retries for remote reads (writes are never retried)",
    )
    sync_identity: str | None = Field(
        default=None,
        description="Default sync identity used by the CLI",
    )

    # ========================================
    # Scheduling
    # ========================================
    daily_limit_default: int = Field(
        default=50,
        description="Daily review cap used until the learner sets one",
    )
    learning_steps_minutes: list[int] = Field(
        default=[1, 10],
        description="Learning ladder in minutes",
    )
    hard_step_minutes: int = Field(
        default=6,
        description="Fixed delay for 'hard' while learning",
    )
    starting_ease: float = Field(
        default=2.5,
        description="Ease factor given to new cards",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )
    log_file: str | None = Field(
        default=None,
        description="Log file path (None for stderr only)",
    )

    @field_validator("learning_steps_minutes")
    @classmethod
    def _ladder_not_empty(cls, value: list[int]) -> list[int]:
        if not value or any(step <= 0 for step in value):
            raise ValueError("learning_steps_minutes needs at least one positive step")
        return value

    # ========================================
    # Helper Methods
    # ========================================
    def has_remote_configured(self) -> bool:
        """Check if a remote store is available."""
        return bool(self.remote_base_url)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
