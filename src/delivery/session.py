"""
Review Session: controller between input gates and the queue engine.

One ReviewSession drives one review screen:
- card gate: flips the current card (reveal / hide meanings)
- again gate: answers the current card as incorrect
- good gate: answers the current card as correct

Answers are accepted only after the card has been flipped at least once,
and only one answer is in flight at a time. The remaining-review count is
owned here and threaded through ReviewQueueEngine.process().
"""

from __future__ import annotations

import time
from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Awaitable

from loguru import logger

from config import Settings
from src.core.modes import OperatingMode
from src.core.platform_client import PlatformClient
from src.gate.dedup_gate import EventDeduplicationGate, Scheduler
from src.gate.events import InputSource, PressAction, PressEvent
from src.review.engine import ReviewQueueEngine
from src.review.errors import RecordFailure
from src.review.models import ReviewItem, ReviewResult

from .state_store import StateStore

StateSink = Callable[[ReviewItem, ReviewResult], None]


class SessionStatus(str, Enum):
    """Which screen the session is on."""

    EMPTY = "empty"  # nothing due
    REVIEWING = "reviewing"
    COMPLETE = "complete"


class ReviewSession:
    """
    Orchestrates one review screen.

    Raw input goes through one EventDeduplicationGate per control; accepted
    activations call toggle_flip() or answer().
    """

    def __init__(
        self,
        engine: ReviewQueueEngine,
        remaining: int | None = None,
        state_sink: StateSink | None = None,
        on_change: Callable[[ReviewSession], None] | None = None,
        clock: Callable[[], float] = time.monotonic,
        scheduler: Scheduler | None = None,
    ):
        """
        Initialize the session.

        Args:
            engine: Queue engine for this session
            remaining: Starting remaining-review count (defaults to queue length)
            state_sink: Called with (item, result) after each recorded answer
            on_change: Called whenever visible state changes
            clock: Time source handed to the gates
            scheduler: Timer scheduler handed to the gates
        """
        self.engine = engine
        self.remaining = len(engine) if remaining is None else remaining
        self._state_sink = state_sink
        self._on_change = on_change

        self.is_flipped = False
        self.has_flipped = False
        self.last_result: ReviewResult | None = None
        self.last_error: RecordFailure | None = None
        self._busy = False

        self.gates: dict[str, EventDeduplicationGate] = {
            "card": EventDeduplicationGate(
                self.toggle_flip, name="card", clock=clock, scheduler=scheduler
            ),
            "again": EventDeduplicationGate(
                lambda: self.answer(False), name="again", clock=clock, scheduler=scheduler
            ),
            "good": EventDeduplicationGate(
                lambda: self.answer(True), name="good", clock=clock, scheduler=scheduler
            ),
        }

    # =========================================================================
    # Read-only view
    # =========================================================================

    @property
    def current(self) -> ReviewItem | None:
        return self.engine.head

    @property
    def status(self) -> SessionStatus:
        if self.engine.complete:
            return SessionStatus.COMPLETE
        if self.engine.is_empty:
            return SessionStatus.EMPTY
        return SessionStatus.REVIEWING

    @property
    def can_answer(self) -> bool:
        return self.has_flipped and not self._busy and self.current is not None

    # =========================================================================
    # Input
    # =========================================================================

    def dispatch(self, control: str, event: PressEvent) -> bool:
        """Route a raw event to a control's gate."""
        return self.gates[control].handle(event)

    def tap(
        self,
        control: str,
        source: InputSource = InputSource.POINTER,
        timestamp: float | None = None,
    ) -> bool:
        """Feed a complete press/release pair to a control."""
        gate = self.gates[control]
        gate.handle(PressEvent(source, PressAction.DOWN, timestamp=timestamp))
        return gate.handle(PressEvent(source, PressAction.UP, timestamp=timestamp))

    async def settle(self) -> None:
        """Wait for open debounce windows and running answers."""
        for gate in self.gates.values():
            await gate.settle()

    # =========================================================================
    # Actions
    # =========================================================================

    def toggle_flip(self) -> None:
        """Reveal or hide the meanings of the current card."""
        if self.current is None:
            return
        self.is_flipped = not self.is_flipped
        self.has_flipped = True
        self._changed()

    async def answer(self, is_correct: bool) -> ReviewResult | None:
        """
        Judge the current card.

        Returns:
            The engine result, or None if no answer was possible right now
        """
        item = self.current
        if item is None or not self.has_flipped or self._busy:
            logger.debug("Answer ignored (no card, not flipped, or busy)")
            return None

        self._busy = True
        try:
            result = await self.engine.process(item, is_correct, remaining=self.remaining)
        finally:
            self._busy = False

        self.last_result = result
        if not result.success:
            self.last_error = result.error
            logger.warning(f"Answer for '{item.key}' was not saved; card stays on screen")
            self._changed()
            return result

        self.last_error = None
        self.remaining = result.remaining
        if self._state_sink is not None:
            self._state_sink(item, result)

        self.is_flipped = False
        self.has_flipped = False
        self._changed()
        return result

    async def restart(self) -> None:
        """Fetch a fresh due batch ("check again")."""
        await self.engine.reset_session()
        self.remaining = len(self.engine)
        self.is_flipped = False
        self.has_flipped = False
        self.last_result = None
        self.last_error = None
        self._changed()

    def close(self) -> None:
        for gate in self.gates.values():
            gate.close()

    def _changed(self) -> None:
        if self._on_change is not None:
            self._on_change(self)


# =============================================================================
# Backend wiring
# =============================================================================


@dataclass
class SessionBackend:
    """Collaborators behind a ReviewQueueEngine for the configured mode."""

    engine: ReviewQueueEngine
    mode: OperatingMode
    state_sink: StateSink | None = None
    store: StateStore | None = None
    _closers: list[Callable[[], Awaitable[Any] | None]] = field(default_factory=list)

    async def aclose(self) -> None:
        for closer in self._closers:
            result = closer()
            if result is not None:
                await result


def build_backend(settings: Settings, store: StateStore | None = None) -> SessionBackend:
    """
    Create the engine and its collaborators for settings.mode.

    API mode talks to the platform; offline mode uses the local store.
    """
    if settings.mode == OperatingMode.API:
        client = PlatformClient(settings.api_config())
        engine = ReviewQueueEngine(recorder=client, source=client, notifier=client)
        logger.info(f"API mode: {settings.api_base_url}")
        return SessionBackend(engine=engine, mode=settings.mode, _closers=[client.close])

    offline = settings.offline_config()
    owned = store is None
    store = store or StateStore(offline.database_path, batch_limit=offline.batch_limit)
    engine = ReviewQueueEngine(recorder=store, source=store, notifier=store)
    logger.info(f"Offline mode: {store.db_path}")
    return SessionBackend(
        engine=engine,
        mode=settings.mode,
        state_sink=store.apply_result,
        store=store,
        _closers=[store.close] if owned else [],
    )
