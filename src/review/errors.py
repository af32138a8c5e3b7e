"""Review errors."""

from __future__ import annotations


class RecordFailure(Exception):
    """Persisting a review outcome failed; nothing was changed locally."""

    def __init__(self, key: str, reason: str):
        self.key = key
        self.reason = reason
        super().__init__(f"Failed to record review for {key!r}: {reason}")


class FetchFailure(Exception):
    """The due-item batch could not be loaded."""
    pass


class QueueInvariantError(AssertionError):
    """A caller broke the queue contract (empty queue or item not at the head)."""
    pass
