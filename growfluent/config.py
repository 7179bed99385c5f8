"""
Configuration settings for GrowFluent.

Uses Pydantic Settings for environment variable management with .env file support.
Every variable is prefixed with ``GROWFLUENT_`` (e.g. ``GROWFLUENT_LOG_LEVEL``).
"""
from __future__ import annotations

import sys
from functools import lru_cache
from pathlib import Path
from typing import Literal

from loguru import logger
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from growfluent.srs.selector import SelectorConfig


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="GROWFLUENT_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Local Storage
    # ========================================
    data_dir: Path = Field(
        default=Path.home() / ".growfluent",
        description="Directory for the local database and log files",
    )
    db_path: Path | None = Field(
        default=None,
        description="SQLite database file (defaults to <data_dir>/state.db)",
    )

    # ========================================
    # Remote Document Store
    # ========================================
    remote_url: str = Field(
        default="",
        description="Base URL of the remote document store; empty means local only",
    )
    user_id: str = Field(
        default="local",
        description="Owner of the remote flashcards and exam history",
    )
    api_key: str = Field(
        default="",
        description="Bearer token for the remote store",
    )
    remote_timeout_seconds: float = Field(
        default=10.0,
        ge=0.5,
        description="HTTP timeout for remote store requests",
    )

    # ========================================
    # Oracle
    # ========================================
    oracle_max_retries: int = Field(
        default=2,
        ge=0,
        le=10,
        description="Retries for quota/rate-limit failures",
    )
    oracle_initial_backoff: float = Field(
        default=1.5,
        ge=0.0,
        description="Seconds before the first retry; doubled on each retry",
    )

    # ========================================
    # Sessions
    # ========================================
    daily_limit: int = Field(default=15, ge=1, description="Max cards in a daily session")
    free_limit: int = Field(default=10, ge=1, description="Max cards in free practice")
    exam_limit: int = Field(default=15, ge=1, description="Max questions in an exam")
    exam_min_cards: int = Field(
        default=5,
        ge=1,
        description="Cards a language needs before an exam can start",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Console log level",
    )
    log_file: Path | None = Field(
        default=None,
        description="Optional rotating log file",
    )

    # ========================================
    # Helper Methods
    # ========================================

    @property
    def database_path(self) -> Path:
        return self.db_path or self.data_dir / "state.db"

    def has_remote_store(self) -> bool:
        """Check if a remote document store is configured."""
        return bool(self.remote_url)

    def selector_config(self) -> SelectorConfig:
        """Session sizes for the SessionSelector."""
        return SelectorConfig(
            daily_limit=self.daily_limit,
            free_limit=self.free_limit,
            exam_limit=self.exam_limit,
            exam_min_cards=self.exam_min_cards,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


def configure_logging(settings: Settings) -> None:
    """Replace loguru's default handler with the configured sinks."""
    logger.remove()
    logger.add(
        sys.stderr,
        level=settings.log_level,
        format="<level>{message}</level>",
    )
    if settings.log_file:
        logger.add(
            settings.log_file,
            level="DEBUG",
            rotation="1 MB",
            retention=5,
            format="{time:YYYY-MM-DD HH:mm:ss} | {level: <8} | {name}:{function}:{line} - {message}",
        )
