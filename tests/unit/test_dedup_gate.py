"""
Unit tests for EventDeduplicationGate.

Tests:
- One activation per tap, delayed by the debounce window
- Touch latch drops synthetic pointer events
- Long presses and non-primary buttons are discarded
- Taps colliding with an open window drop the pending activation
- Context menus are always suppressed
"""

import asyncio

import pytest
from loguru import logger

from src.gate import (
    DEBOUNCE_SECONDS,
    EventDeduplicationGate,
    GatePhase,
    PressEvent,
)


class Counter:
    def __init__(self):
        self.count = 0

    def __call__(self):
        self.count += 1


@pytest.fixture
def activate():
    return Counter()


@pytest.fixture
def gate(activate, scheduler):
    return EventDeduplicationGate(activate, name="test", scheduler=scheduler)


def tap(gate, start, end=None, touch=False, button=0):
    """Feed a down/up pair at the given timestamps."""
    end = start if end is None else end
    if touch:
        gate.handle(PressEvent.touch_start(start))
        return gate.handle(PressEvent.touch_end(end))
    gate.handle(PressEvent.mouse_down(start, button=button))
    return gate.handle(PressEvent.mouse_up(end, button=button))


class TestSingleTap:
    """A clean tap activates exactly once, after the window closes."""

    def test_activation_waits_for_debounce_timer(self, gate, activate, scheduler):
        assert tap(gate, 0.0, 0.05) is True

        assert activate.count == 0
        assert gate.phase == GatePhase.DEBOUNCING
        assert scheduler.pending[0].delay == DEBOUNCE_SECONDS

        scheduler.fire()

        assert activate.count == 1
        assert gate.phase == GatePhase.IDLE
        assert not gate.is_debouncing

    def test_press_down_arms_gate(self, gate):
        gate.press_down(PressEvent.mouse_down(1.0))

        assert gate.phase == GatePhase.ARMED_DOWN
        assert gate.state.press_start_time == 1.0

    def test_release_without_press_is_ignored(self, gate, activate, scheduler):
        assert gate.press_up(PressEvent.mouse_up(0.0)) is False

        assert scheduler.pending == []
        assert activate.count == 0

    @pytest.mark.parametrize("start", [0.0, 1.0, 2.3, 10.1, 1000.7])
    def test_press_at_threshold_is_accepted(self, gate, activate, scheduler, start):
        assert tap(gate, start, start + 0.2) is True
        scheduler.fire()

        assert activate.count == 1

    @pytest.mark.parametrize("start", [0.0, 2.3, 1000.7])
    def test_press_just_over_threshold_is_discarded(self, gate, activate, scheduler, start):
        assert tap(gate, start, start + 0.202) is False
        scheduler.fire()

        assert activate.count == 0

    def test_clock_used_when_event_has_no_timestamp(self, activate, scheduler):
        ticks = iter([10.0, 10.5])
        gate = EventDeduplicationGate(activate, clock=lambda: next(ticks), scheduler=scheduler)

        gate.press_down(PressEvent.mouse_down())
        assert gate.press_up(PressEvent.mouse_up()) is False  # held 500ms


class TestSyntheticDuplicates:
    """Touch followed by emulated mouse events counts once."""

    def test_touch_then_synthetic_mouse_pair(self, gate, activate, scheduler):
        tap(gate, 0.0, 0.05, touch=True)
        assert tap(gate, 0.06, 0.07) is False

        scheduler.fire()

        assert activate.count == 1
        assert gate.state.touch_latched is True
        assert gate.rejected == 2

    def test_touch_latch_is_sticky(self, gate, activate, scheduler):
        tap(gate, 0.0, 0.05, touch=True)
        scheduler.fire()

        # Much later, a pointer-only tap is still treated as synthetic
        assert tap(gate, 5.0, 5.05) is False
        scheduler.fire()

        assert activate.count == 1

    def test_mouse_only_control_is_not_latched(self, gate, activate, scheduler):
        tap(gate, 0.0, 0.05)
        scheduler.fire()
        tap(gate, 1.0, 1.05)
        scheduler.fire()

        assert activate.count == 2
        assert gate.state.touch_latched is False


class TestDiscardedGestures:
    """Long presses and other buttons never activate."""

    def test_long_press_is_discarded(self, gate, activate, scheduler):
        gate.press_down(PressEvent.touch_start(0.0))
        release = PressEvent.touch_end(0.35)

        assert gate.press_up(release) is False

        assert release.default_prevented is True
        assert gate.phase == GatePhase.IDLE
        assert scheduler.pending == []
        assert activate.count == 0

    def test_secondary_button_is_discarded(self, gate, activate, scheduler):
        gate.press_down(PressEvent.mouse_down(0.0, button=2))
        release = PressEvent.mouse_up(0.01, button=2)

        assert gate.press_up(release) is False
        assert release.default_prevented is True
        assert activate.count == 0

    def test_context_menu_always_suppressed(self, gate):
        event = PressEvent.context_menu()

        assert gate.handle(event) is False
        assert event.default_prevented is True


class TestDebounceWindow:
    """Repeated taps inside one window."""

    def test_collision_drops_pending_activation(self, gate, activate, scheduler):
        tap(gate, 0.0, 0.05)
        assert tap(gate, 0.10, 0.12) is False

        assert gate.state.duplicate_during_window is True
        assert len(scheduler.pending) == 1

        scheduler.fire()

        assert activate.count == 0
        assert gate.state.duplicate_during_window is False
        assert gate.phase == GatePhase.IDLE

    def test_two_releases_after_activation_give_one_activation(self, gate, activate, scheduler):
        tap(gate, 0.0, 0.05)
        scheduler.fire()  # accepted activation at ~0.30

        tap(gate, 0.32, 0.34)
        tap(gate, 0.40, 0.42)
        scheduler.fire()

        assert activate.count == 1

    def test_gate_reopens_after_window(self, gate, activate, scheduler):
        tap(gate, 0.0, 0.05)
        scheduler.fire()
        tap(gate, 1.0, 1.05)
        scheduler.fire()

        assert activate.count == 2

    def test_press_held_across_window_expiry(self, gate, activate, scheduler):
        tap(gate, 0.0, 0.05)
        gate.press_down(PressEvent.mouse_down(0.2))
        scheduler.fire()

        assert activate.count == 1
        assert gate.phase == GatePhase.ARMED_DOWN

        assert gate.press_up(PressEvent.mouse_up(0.3)) is True
        scheduler.fire()

        assert activate.count == 2


class TestGateLifecycle:
    """Independence and teardown."""

    def test_gates_do_not_share_state(self, scheduler):
        first, second = Counter(), Counter()
        gate_a = EventDeduplicationGate(first, scheduler=scheduler)
        gate_b = EventDeduplicationGate(second, scheduler=scheduler)

        tap(gate_a, 0.0, 0.05, touch=True)
        tap(gate_b, 0.01, 0.06)
        scheduler.fire()

        assert first.count == 1
        assert second.count == 1
        assert gate_b.state.touch_latched is False

    def test_close_cancels_pending_activation(self, gate, activate, scheduler):
        tap(gate, 0.0, 0.05)
        gate.close()

        assert scheduler.pending == []
        assert gate.closed is True
        assert tap(gate, 1.0, 1.05) is False
        assert activate.count == 0


@pytest.mark.asyncio
async def test_async_callback_runs_on_loop():
    """Coroutine callbacks are scheduled as tasks; settle() waits for them."""
    calls = []

    async def on_activate():
        await asyncio.sleep(0)
        calls.append("activated")

    gate = EventDeduplicationGate(on_activate, name="async")
    tap(gate, 0.0, 0.05)

    await gate.settle()

    assert calls == ["activated"]
    assert gate.activations == 1


@pytest.mark.asyncio
async def test_failing_async_callback_is_logged():
    """A coroutine callback that raises is reported through loguru."""
    messages = []
    sink_id = logger.add(messages.append, level="ERROR", format="{message}")

    async def on_activate():
        raise ValueError("boom")

    gate = EventDeduplicationGate(on_activate, name="broken")
    tap(gate, 0.0, 0.05)

    try:
        with pytest.raises(ValueError):
            await gate.settle()
    finally:
        logger.remove(sink_id)

    assert any("activation callback failed" in m for m in messages)
    assert gate.activations == 1


def test_async_callback_without_loop_raises(scheduler):
    async def on_activate():
        pass

    gate = EventDeduplicationGate(on_activate, scheduler=scheduler)
    tap(gate, 0.0, 0.05)

    with pytest.raises(RuntimeError):
        scheduler.fire()
