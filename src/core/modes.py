"""
Vocab-Review Operating Modes

Defines where a review session reads its due items and writes its answers:
1. API Mode - Synced with the vocabulary platform over HTTP
2. Offline Mode - Local-only with SQLite
"""

from __future__ import annotations

from enum import Enum
from pathlib import Path

from pydantic import BaseModel


class OperatingMode(str, Enum):
    """Operating mode for vocab-review."""

    API = "api"  # Connected to the vocabulary platform
    OFFLINE = "offline"  # Local-only, air-gapped


class ApiConfig(BaseModel):
    """Configuration for API mode."""

    base_url: str = "http://127.0.0.1:8000"
    api_key: str | None = None
    learner_id: str | None = None
    timeout_seconds: float = 10.0
    batch_limit: int = 50

    # Endpoints
    items_endpoint: str = "/api/v1/words"
    reviews_endpoint: str = "/api/v1/reviews"
    review_count_endpoint: str = "/api/v1/reviews/count"


class OfflineConfig(BaseModel):
    """Configuration for Offline mode (local-only)."""

    database_path: Path = Path.home() / ".vocab-review" / "state.db"
    deck_dir: Path = Path("decks")
    batch_limit: int = 50
