"""
Review Queue Engine.

Owns the queue of one review session and the mastery state machine that
decides whether an answered card comes back later in the same session.

Transition table (state, correct) -> (next state, requeue):

    learned      wrong -> relearning1  requeue
    relearning2  wrong -> relearning1  requeue
    relearning1  wrong -> relearning1  requeue
    new          wrong -> relearning1  requeue
    relearning1  right -> relearning2  requeue
    learned      right -> learned      exit
    relearning2  right -> relearning2  exit
    new          right -> new          exit

Leaving relearning takes two consecutive correct answers. A card that keeps
being missed cycles through the session until it is answered.

A missed `new` card joins the relearning cycle like any other miss instead
of being dropped from the session, so it is requeued and the remaining
count is left alone.
"""

from __future__ import annotations

import asyncio
from collections import deque
from collections.abc import Iterable
from dataclasses import replace

from loguru import logger

from .errors import QueueInvariantError, RecordFailure
from .models import ItemState, ReviewItem, ReviewResult, SessionStats
from .ports import DueItemSource, RemainingCountSink, ReviewRecorder

TRANSITIONS: dict[tuple[ItemState, bool], tuple[ItemState, bool]] = {
    (ItemState.LEARNED, False): (ItemState.RELEARNING1, True),
    (ItemState.RELEARNING2, False): (ItemState.RELEARNING1, True),
    (ItemState.RELEARNING1, False): (ItemState.RELEARNING1, True),
    (ItemState.NEW, False): (ItemState.RELEARNING1, True),
    (ItemState.RELEARNING1, True): (ItemState.RELEARNING2, True),
    (ItemState.LEARNED, True): (ItemState.LEARNED, False),
    (ItemState.RELEARNING2, True): (ItemState.RELEARNING2, False),
    (ItemState.NEW, True): (ItemState.NEW, False),
}


def next_transition(state: ItemState, is_correct: bool) -> tuple[ItemState, bool]:
    """Look up (next state, requeue) for an answer."""
    return TRANSITIONS[(state, is_correct)]


class ReviewQueueEngine:
    """
    In-session scheduler for review items.

    The engine is the only code that touches the queue: process() takes the
    head off, records the answer, and either requeues the item at the tail or
    lets it exit. Nothing is mutated until the recorder has succeeded.
    """

    def __init__(
        self,
        recorder: ReviewRecorder,
        source: DueItemSource | None = None,
        notifier: RemainingCountSink | None = None,
        items: Iterable[ReviewItem] | None = None,
    ):
        """
        Initialize the engine.

        Args:
            recorder: Persists each answer (record_review)
            source: Supplies due items on reset_session()
            notifier: Receives the remaining count whenever an item exits
            items: Optional initial queue
        """
        self._recorder = recorder
        self._source = source
        self._notifier = notifier
        self._queue: deque[ReviewItem] = deque()
        self._stats = SessionStats()
        self._lock = asyncio.Lock()

        if items is not None:
            self._replace_queue(items)

    # =========================================================================
    # Read-only accessors
    # =========================================================================

    @property
    def head(self) -> ReviewItem | None:
        return self._queue[0] if self._queue else None

    @property
    def queue(self) -> tuple[ReviewItem, ...]:
        return tuple(self._queue)

    @property
    def stats(self) -> SessionStats:
        return replace(self._stats)

    @property
    def complete(self) -> bool:
        return self._stats.complete

    @property
    def is_empty(self) -> bool:
        return not self._queue

    def __len__(self) -> int:
        return len(self._queue)

    # =========================================================================
    # Operations
    # =========================================================================

    async def process(
        self,
        item: ReviewItem,
        is_correct: bool,
        remaining: int | None = None,
    ) -> ReviewResult:
        """
        Apply an answer to the item at the head of the queue.

        Args:
            item: Must be the current head
            is_correct: The learner's judgment
            remaining: Caller-owned remaining count (defaults to queue length)

        Returns:
            ReviewResult; success=False with error set if recording failed

        Raises:
            QueueInvariantError: queue empty or item is not the head
        """
        async with self._lock:
            self._check_head(item)
            if remaining is None:
                remaining = len(self._queue)

            previous = item.state
            next_state, requeue = next_transition(previous, is_correct)

            try:
                await self._recorder.record_review(item.key, is_correct)
            except RecordFailure as exc:
                logger.warning(f"Review for '{item.key}' not recorded: {exc.reason}")
                return ReviewResult(
                    success=False,
                    key=item.key,
                    is_correct=is_correct,
                    previous_state=previous,
                    next_state=previous,
                    remaining=remaining,
                    error=exc,
                )

            self._queue.popleft()
            self._stats.record(is_correct)
            item.state = next_state

            if requeue:
                self._queue.append(item)
            else:
                remaining = max(0, remaining - 1)
                if self._notifier is not None:
                    self._notifier.notify_remaining_count(remaining)

            if not self._queue:
                self._stats.complete = True
                logger.info(
                    f"Session complete: {self._stats.correct} correct, "
                    f"{self._stats.incorrect} incorrect"
                )

            logger.debug(
                f"'{item.key}' {previous.value} -> {next_state.value} "
                f"({'requeued' if requeue else 'exit'}, {len(self._queue)} queued)"
            )

            return ReviewResult(
                success=True,
                key=item.key,
                is_correct=is_correct,
                previous_state=previous,
                next_state=next_state,
                requeued=requeue,
                remaining=remaining,
            )

    async def reset_session(self) -> None:
        """
        Start over with a fresh due batch.

        Stats and completion are cleared and the queue replaced only once the
        fetch has succeeded; FetchFailure propagates with nothing changed.
        """
        if self._source is None:
            raise RuntimeError("reset_session() needs a due-item source")

        async with self._lock:
            items = await self._source.fetch_due_items()
            self._stats = SessionStats()
            self._replace_queue(items)
            logger.info(f"Session reset: {len(self._queue)} items due")

    def load(self, items: Iterable[ReviewItem]) -> None:
        """Seed a new session from items already in hand."""
        self._stats = SessionStats()
        self._replace_queue(items)

    # =========================================================================
    # Internals
    # =========================================================================

    def _check_head(self, item: ReviewItem) -> None:
        if not self._queue:
            raise QueueInvariantError("process() called on an empty queue")
        if self._queue[0] is not item:
            raise QueueInvariantError(
                f"process() called with {item.key!r} but head is {self._queue[0].key!r}"
            )

    def _replace_queue(self, items: Iterable[ReviewItem]) -> None:
        seen: set[str] = set()
        self._queue.clear()
        for item in items:
            if item.key in seen:
                logger.debug(f"Dropping duplicate item '{item.key}'")
                continue
            seen.add(item.key)
            self._queue.append(item)
