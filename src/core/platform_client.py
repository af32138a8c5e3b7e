"""
Vocabulary Platform Client

HTTP client backing a review session in API mode. Implements the three
collaborators the review engine needs: due words down, answers up, and the
remaining-count display.

Usage:
    async with PlatformClient(settings.api_config()) as client:
        items = await client.fetch_due_items()
        await client.record_review("hola", True)
"""

from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any

import httpx
from loguru import logger

from src.review.errors import FetchFailure, RecordFailure
from src.review.models import ReviewItem

from .modes import ApiConfig


class PlatformClient:
    """
    HTTP client for the vocabulary platform API.

    Supports:
    - API key authentication (X-API-Key header)
    - Due word batches
    - Review recording
    - Remaining-count updates (fire-and-forget)
    """

    def __init__(
        self,
        config: ApiConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.config = config
        self._transport = transport
        self._client: httpx.AsyncClient | None = None
        self._pending: set[asyncio.Task] = set()

    async def __aenter__(self) -> "PlatformClient":
        await self._ensure_client()
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    async def _ensure_client(self) -> httpx.AsyncClient:
        if self._client is None:
            headers = {"Content-Type": "application/json"}
            if self.config.api_key:
                headers["X-API-Key"] = self.config.api_key

            self._client = httpx.AsyncClient(
                base_url=self.config.base_url,
                headers=headers,
                timeout=self.config.timeout_seconds,
                transport=self._transport,
            )
        return self._client

    async def close(self) -> None:
        if self._pending:
            await asyncio.gather(*list(self._pending), return_exceptions=True)
        if self._client:
            await self._client.aclose()
            self._client = None

    # =========================================================================
    # Due Words
    # =========================================================================

    async def fetch_due_items(self) -> list[ReviewItem]:
        """
        Fetch the words due for review.

        Returns:
            ReviewItems in the order the platform returned them

        Raises:
            FetchFailure: connection error, non-200 status or malformed payload
        """
        try:
            client = await self._ensure_client()
            response = await client.get(
                self.config.items_endpoint,
                params={
                    "due": "true",
                    "limit": self.config.batch_limit,
                    "learner_id": self.config.learner_id,
                },
            )
        except httpx.RequestError as e:
            logger.error(f"Connection error fetching due words: {e}")
            raise FetchFailure(str(e)) from e

        if response.status_code != 200:
            logger.warning(f"Failed to fetch due words: {response.status_code}")
            raise FetchFailure(f"HTTP {response.status_code}")

        try:
            payload = response.json()
            rows = payload.get("items", []) if isinstance(payload, dict) else payload
            items = [ReviewItem.from_dict(row) for row in rows]
        except (ValueError, AttributeError, TypeError) as e:
            raise FetchFailure(f"Malformed due words payload: {e}") from e

        logger.debug(f"Fetched {len(items)} due words from platform")
        return items

    # =========================================================================
    # Reviews
    # =========================================================================

    async def record_review(self, key: str, is_correct: bool) -> None:
        """
        Record an answer on the platform.

        Raises:
            RecordFailure: connection error or non-2xx status
        """
        payload = {
            "key": key,
            "is_correct": is_correct,
            "learner_id": self.config.learner_id,
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }

        try:
            client = await self._ensure_client()
            response = await client.post(self.config.reviews_endpoint, json=payload)
        except httpx.RequestError as e:
            logger.error(f"Connection error recording review: {e}")
            raise RecordFailure(key, str(e)) from e

        if response.status_code not in (200, 201, 204):
            raise RecordFailure(key, _error_detail(response))

        logger.debug(f"Recorded review for {key}: correct={is_correct}")

    # =========================================================================
    # Remaining Count
    # =========================================================================

    async def update_review_count(self, count: int) -> bool:
        """Push the remaining review count to the platform."""
        try:
            client = await self._ensure_client()
            response = await client.put(
                self.config.review_count_endpoint,
                json={"count": count, "learner_id": self.config.learner_id},
            )
        except httpx.RequestError as e:
            logger.error(f"Connection error updating review count: {e}")
            return False

        if response.status_code not in (200, 201, 204):
            logger.warning(f"Failed to update review count: {_error_detail(response)}")
            return False
        return True

    def notify_remaining_count(self, count: int) -> None:
        """Schedule a count update without waiting for it."""
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            logger.debug("No running loop; remaining count {} not pushed", count)
            return

        task = loop.create_task(self.update_review_count(count))
        self._pending.add(task)
        task.add_done_callback(self._pending.discard)

    # =========================================================================
    # Health Check
    # =========================================================================

    async def health_check(self) -> bool:
        """Check if the platform is reachable."""
        try:
            client = await self._ensure_client()
            response = await client.get("/health", timeout=5.0)
            return response.status_code == 200
        except (httpx.RequestError, asyncio.TimeoutError):
            return False


def _error_detail(response: httpx.Response) -> str:
    try:
        data = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(data, dict) and "detail" in data:
        return str(data["detail"])
    return f"HTTP {response.status_code}"
