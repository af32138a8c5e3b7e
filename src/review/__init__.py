"""
Review: in-session queue and mastery state machine.

Components:
- ReviewItem / ItemState: the cards and their mastery state
- ReviewQueueEngine: FIFO queue, transition table, session stats
- Ports: record_review / fetch_due_items / notify_remaining_count
"""

from .engine import TRANSITIONS, ReviewQueueEngine, next_transition
from .errors import FetchFailure, QueueInvariantError, RecordFailure
from .models import ItemState, ReviewItem, ReviewResult, SessionStats
from .ports import DueItemSource, RemainingCountSink, ReviewRecorder

__all__ = [
    # Models
    "ItemState",
    "ReviewItem",
    "ReviewResult",
    "SessionStats",
    # Engine
    "ReviewQueueEngine",
    "TRANSITIONS",
    "next_transition",
    # Errors
    "RecordFailure",
    "FetchFailure",
    "QueueInvariantError",
    # Ports
    "ReviewRecorder",
    "DueItemSource",
    "RemainingCountSink",
]
