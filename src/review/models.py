"""
Review domain models.

ReviewItem is the card shown to the learner; SessionStats and ReviewResult
describe how a session is going.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from .errors import RecordFailure


class ItemState(str, Enum):
    """Mastery state of a card within the review cycle."""

    NEW = "new"
    LEARNED = "learned"
    RELEARNING1 = "relearning1"  # just failed, unstable
    RELEARNING2 = "relearning2"  # one correct answer since failing

    @property
    def is_relearning(self) -> bool:
        return self in {ItemState.RELEARNING1, ItemState.RELEARNING2}


@dataclass(eq=False)
class ReviewItem:
    """A vocabulary card: the word and its meanings."""

    key: str
    meanings: list[str] = field(default_factory=list)
    state: ItemState = ItemState.LEARNED

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> ReviewItem:
        """
        Build an item from its JSON shape.

        Args:
            data: {"key": ..., "meanings": [...], "state": ...}

        Raises:
            ValueError: missing key or unknown state
        """
        key = data.get("key") or data.get("word")
        if not key:
            raise ValueError(f"Review item without a key: {data!r}")

        meanings = data.get("meanings") or []
        if isinstance(meanings, str):
            meanings = [meanings]

        return cls(
            key=str(key),
            meanings=[str(m) for m in meanings],
            state=ItemState(data.get("state", ItemState.LEARNED.value)),
        )

    def to_dict(self) -> dict[str, Any]:
        return {"key": self.key, "meanings": list(self.meanings), "state": self.state.value}

    def __repr__(self) -> str:
        return f"ReviewItem({self.key!r}, state={self.state.value})"


@dataclass
class SessionStats:
    """Answer counters for one session."""

    correct: int = 0
    incorrect: int = 0
    complete: bool = False

    @property
    def total(self) -> int:
        return self.correct + self.incorrect

    @property
    def retention(self) -> int:
        """Percentage of correct answers, 0 until something was answered correctly."""
        if self.correct == 0:
            return 0
        return round(self.correct / self.total * 100)

    def record(self, is_correct: bool) -> None:
        if is_correct:
            self.correct += 1
        else:
            self.incorrect += 1


@dataclass
class ReviewResult:
    """Outcome of ReviewQueueEngine.process."""

    success: bool
    key: str
    is_correct: bool
    previous_state: ItemState
    next_state: ItemState
    requeued: bool = False
    remaining: int = 0
    error: RecordFailure | None = None

    @property
    def exited(self) -> bool:
        """Item left the session queue for good."""
        return self.success and not self.requeued
