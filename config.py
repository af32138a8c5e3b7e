"""
Configuration settings for the vocab-review CLI.

Uses Pydantic Settings for environment variable management with .env file support.
Variables are prefixed with VOCAB_REVIEW_ (e.g. VOCAB_REVIEW_MODE=api).
"""
from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

from src.core.modes import ApiConfig, OfflineConfig, OperatingMode


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_prefix="VOCAB_REVIEW_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ========================================
    # Mode
    # ========================================
    mode: OperatingMode = Field(
        default=OperatingMode.OFFLINE,
        description="Where due words come from and answers go (api | offline)",
    )

    # ========================================
    # Vocabulary Platform API
    # ========================================
    api_base_url: str = Field(
        default="http://127.0.0.1:8000",
        description="Base URL of the vocabulary platform",
    )
    api_key: str | None = Field(
        default=None,
        description="API key sent as X-API-Key",
    )
    learner_id: str | None = Field(
        default=None,
        description="Learner whose reviews are recorded",
    )
    items_endpoint: str = Field(
        default="/api/v1/words",
        description="Due words endpoint",
    )
    reviews_endpoint: str = Field(
        default="/api/v1/reviews",
        description="Review recording endpoint",
    )
    review_count_endpoint: str = Field(
        default="/api/v1/reviews/count",
        description="Remaining review count endpoint",
    )
    request_timeout_seconds: float = Field(
        default=10.0,
        description="HTTP timeout for platform calls",
    )

    # ========================================
    # Local Store
    # ========================================
    database_path: Path = Field(
        default=Path.home() / ".vocab-review" / "state.db",
        description="SQLite database for offline mode",
    )
    deck_dir: Path = Field(
        default=Path("decks"),
        description="Directory scanned for word deck JSON files",
    )

    # ========================================
    # Session
    # ========================================
    batch_limit: int = Field(
        default=50,
        description="Maximum due words fetched per session",
    )

    # ========================================
    # Logging
    # ========================================
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR"] = Field(
        default="WARNING",
        description="Logging verbosity level",
    )

    @property
    def is_connected(self) -> bool:
        return self.mode == OperatingMode.API

    def api_config(self) -> ApiConfig:
        """Build the platform client configuration."""
        return ApiConfig(
            base_url=self.api_base_url,
            api_key=self.api_key,
            learner_id=self.learner_id,
            timeout_seconds=self.request_timeout_seconds,
            batch_limit=self.batch_limit,
            items_endpoint=self.items_endpoint,
            reviews_endpoint=self.reviews_endpoint,
            review_count_endpoint=self.review_count_endpoint,
        )

    def offline_config(self) -> OfflineConfig:
        """Build the local store configuration."""
        return OfflineConfig(
            database_path=self.database_path,
            deck_dir=self.deck_dir,
            batch_limit=self.batch_limit,
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
