"""
Event Deduplication Gate.

Turns the raw press/release stream of one interactive control into at most
one logical activation per intended tap.

Suppressed:
- Synthetic pointer events a platform emits after a touch (touch latch)
- Long presses (held longer than GESTURE_MAX_MS)
- Non-primary buttons
- Extra taps landing inside an open debounce window

Gesture protocol:
    IDLE --down--> ARMED_DOWN --up (valid)--> DEBOUNCING --timer--> IDLE
                        |                                   |
                        +--up (long / wrong button)--> IDLE +-- callback

A valid release while a window is already open marks the window as
collided; when the timer expires the pending activation is dropped instead
of executed.
"""

from __future__ import annotations

import asyncio
import inspect
import time
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Awaitable, Protocol

from loguru import logger

from .events import PressAction, PressEvent

# Fixed timings; not exposed through Settings.
# Press length is compared in whole milliseconds.
GESTURE_MAX_MS = 200
GESTURE_MAX_SECONDS = GESTURE_MAX_MS / 1000
DEBOUNCE_SECONDS = 0.250


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]
ActivateCallback = Callable[[], "None | Awaitable[Any]"]


def loop_scheduler(delay: float, callback: Callable[[], None]) -> TimerHandle:
    """Schedule on the running asyncio loop."""
    return asyncio.get_running_loop().call_later(delay, callback)


# =============================================================================
# Gate State
# =============================================================================


class GatePhase(str, Enum):
    """Where the control is in the gesture protocol."""

    IDLE = "idle"
    ARMED_DOWN = "armed_down"  # press seen, waiting for release
    DEBOUNCING = "debouncing"  # debounce window open, no press in progress


@dataclass
class GateState:
    """Per-control deduplication state."""

    phase: GatePhase = GatePhase.IDLE
    press_start_time: float | None = None
    touch_latched: bool = False
    duplicate_during_window: bool = False
    window: TimerHandle | None = None

    @property
    def window_open(self) -> bool:
        return self.window is not None

    @property
    def resting_phase(self) -> GatePhase:
        """Phase to fall back to once a press is resolved."""
        return GatePhase.DEBOUNCING if self.window_open else GatePhase.IDLE


# =============================================================================
# Gate
# =============================================================================


class EventDeduplicationGate:
    """
    Deduplicates taps on a single interactive control.

    Each control gets its own gate; gates never share state. The activate
    callback may be a plain function or a coroutine function, in which case
    the coroutine is scheduled as a task on the running loop.
    """

    def __init__(
        self,
        on_activate: ActivateCallback,
        *,
        name: str = "control",
        clock: Callable[[], float] = time.monotonic,
        scheduler: Scheduler | None = None,
    ):
        """
        Initialize the gate.

        Args:
            on_activate: Called once per accepted gesture
            name: Control name used in log messages
            clock: Time source in seconds, used when an event has no timestamp
            scheduler: (delay, callback) -> handle; defaults to the running loop
        """
        self.name = name
        self._on_activate = on_activate
        self._clock = clock
        self._schedule = scheduler or loop_scheduler
        self._state = GateState()
        self._tasks: set[asyncio.Task] = set()
        self._closed = False

        # Stats
        self.activations = 0
        self.rejected = 0

    @property
    def state(self) -> GateState:
        return self._state

    @property
    def phase(self) -> GatePhase:
        return self._state.phase

    @property
    def is_debouncing(self) -> bool:
        return self._state.window_open

    @property
    def closed(self) -> bool:
        return self._closed

    def handle(self, event: PressEvent) -> bool:
        """
        Dispatch a raw event.

        Returns:
            True if the event advanced the gesture protocol
        """
        if event.action == PressAction.DOWN:
            return self.press_down(event)
        if event.action == PressAction.UP:
            return self.press_up(event)
        return self.context_menu(event)

    def press_down(self, event: PressEvent) -> bool:
        """Handle a touch-start / mouse-down."""
        state = self._state
        if self._closed:
            return False

        if not event.is_touch and state.touch_latched:
            self._reject("synthetic pointer down")
            return False

        if event.is_touch:
            state.touch_latched = True

        state.press_start_time = self._now(event)
        state.phase = GatePhase.ARMED_DOWN
        return True

    def press_up(self, event: PressEvent) -> bool:
        """Handle a touch-end / mouse-up."""
        state = self._state
        if self._closed:
            return False

        if not event.is_touch and state.touch_latched:
            self._reject("synthetic pointer up")
            return False

        if state.phase != GatePhase.ARMED_DOWN or state.press_start_time is None:
            # Release without a matching press
            return False

        elapsed_ms = round((self._now(event) - state.press_start_time) * 1000)
        state.press_start_time = None

        if elapsed_ms > GESTURE_MAX_MS or not event.is_primary:
            event.prevent_default()
            state.phase = state.resting_phase
            self._reject(
                f"long press ({elapsed_ms}ms)"
                if event.is_primary
                else f"button {event.button}"
            )
            return False

        if state.window_open:
            state.duplicate_during_window = True
            state.phase = GatePhase.DEBOUNCING
            self._reject("tap inside debounce window")
            return False

        state.phase = GatePhase.DEBOUNCING
        state.window = self._schedule(DEBOUNCE_SECONDS, self._window_expired)
        return True

    def context_menu(self, event: PressEvent) -> bool:
        """Context menus never open on a gated control."""
        event.prevent_default()
        return False

    async def settle(self, poll_interval: float = DEBOUNCE_SECONDS / 5) -> None:
        """Wait until the debounce window is closed and callbacks finished."""
        while self._state.window_open or self._tasks:
            if self._tasks:
                await asyncio.gather(*list(self._tasks))
            else:
                await asyncio.sleep(poll_interval)

    def close(self) -> None:
        """Tear the gate down with its control; a pending activation is dropped."""
        if self._state.window is not None:
            self._state.window.cancel()
        self._state = GateState(touch_latched=self._state.touch_latched)
        self._closed = True

    # =========================================================================
    # Internals
    # =========================================================================

    def _now(self, event: PressEvent) -> float:
        return event.timestamp if event.timestamp is not None else self._clock()

    def _reject(self, reason: str) -> None:
        self.rejected += 1
        logger.debug("Gate {}: gesture rejected ({})", self.name, reason)

    def _window_expired(self) -> None:
        state = self._state
        state.window = None
        collided = state.duplicate_during_window
        state.duplicate_during_window = False
        if state.phase == GatePhase.DEBOUNCING:
            state.phase = GatePhase.IDLE

        if collided:
            logger.debug("Gate {}: activation dropped after duplicate tap", self.name)
            return
        self._fire()

    def _fire(self) -> None:
        self.activations += 1
        logger.debug("Gate {}: activate #{}", self.name, self.activations)
        result = self._on_activate()
        if not inspect.isawaitable(result):
            return

        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            if inspect.iscoroutine(result):
                result.close()
            logger.error("Gate {}: async callback needs a running event loop", self.name)
            raise

        task = loop.create_task(_await(result))
        self._tasks.add(task)
        task.add_done_callback(self._task_done)

    def _task_done(self, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.opt(exception=exc).error("Gate {}: activation callback failed", self.name)


async def _await(awaitable: Awaitable[Any]) -> Any:
    return await awaitable
