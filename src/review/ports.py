"""
Collaborator ports consumed by the review engine.

Any object with these methods can back a session: the HTTP platform client,
the local SQLite store, or a test double.
"""

from __future__ import annotations

from typing import Protocol, runtime_checkable

from .models import ReviewItem


@runtime_checkable
class ReviewRecorder(Protocol):
    async def record_review(self, key: str, is_correct: bool) -> None:
        """Persist an answer. Raises RecordFailure."""
        ...


@runtime_checkable
class DueItemSource(Protocol):
    async def fetch_due_items(self) -> list[ReviewItem]:
        """Return the items due now, in presentation order. Raises FetchFailure."""
        ...


@runtime_checkable
class RemainingCountSink(Protocol):
    def notify_remaining_count(self, count: int) -> None:
        """Display-only update; must not raise."""
        ...
