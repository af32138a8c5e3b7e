"""
Unit tests for ReviewSession (gate -> engine wiring).

Tests:
- Card taps flip the card; answers need a flip first
- Answer taps run through the gates into the engine
- Record failures keep the card on screen
- Remaining count threading and restart
"""

from unittest.mock import MagicMock

import pytest

from src.delivery.session import ReviewSession, SessionStatus, build_backend
from src.delivery.state_store import StateStore
from src.gate import InputSource, PressEvent
from src.review import ItemState, ReviewItem, ReviewQueueEngine

from tests.fakes import FakeSource


@pytest.fixture
def engine(recorder, notifier, sample_items):
    return ReviewQueueEngine(recorder, source=FakeSource(sample_items), notifier=notifier, items=sample_items)


@pytest.fixture
def session(engine, scheduler):
    return ReviewSession(engine, remaining=10, scheduler=scheduler)


class TestFlip:
    """The card control."""

    def test_tap_flips_after_window(self, session, scheduler):
        session.tap("card", timestamp=0.0)
        assert session.is_flipped is False

        scheduler.fire()

        assert session.is_flipped is True
        assert session.has_flipped is True

    def test_flip_twice_hides_meanings(self, session, scheduler):
        session.tap("card", timestamp=0.0)
        scheduler.fire()
        session.tap("card", timestamp=1.0)
        scheduler.fire()

        assert session.is_flipped is False
        assert session.has_flipped is True

    def test_double_tap_on_card_is_dropped(self, session, scheduler):
        session.tap("card", timestamp=0.0)
        session.tap("card", timestamp=0.1)
        scheduler.fire()

        assert session.is_flipped is False
        assert session.has_flipped is False

    def test_touch_with_synthetic_mouse_flips_once(self, session, scheduler):
        session.dispatch("card", PressEvent.touch_start(0.0))
        session.dispatch("card", PressEvent.touch_end(0.05))
        session.dispatch("card", PressEvent.mouse_down(0.06))
        session.dispatch("card", PressEvent.mouse_up(0.07))
        scheduler.fire()

        assert session.is_flipped is True

    def test_on_change_called(self, engine, scheduler):
        on_change = MagicMock()
        session = ReviewSession(engine, on_change=on_change, scheduler=scheduler)

        session.toggle_flip()

        on_change.assert_called_once_with(session)


class TestAnswer:
    """Again / Good controls."""

    @pytest.mark.asyncio
    async def test_answer_before_flip_is_ignored(self, session, recorder):
        result = await session.answer(True)

        assert result is None
        assert recorder.calls == []

    @pytest.mark.asyncio
    async def test_good_tap_records_and_advances(self, session, scheduler, recorder):
        session.toggle_flip()
        session.tap("good", source=InputSource.TOUCH, timestamp=0.0)
        scheduler.fire()
        await session.settle()

        assert recorder.calls == [("hola", True)]
        assert session.current.key == "gato"
        assert session.remaining == 9
        assert session.is_flipped is False
        assert session.has_flipped is False

    @pytest.mark.asyncio
    async def test_again_tap_requeues(self, session, scheduler, engine):
        session.toggle_flip()
        session.tap("again", timestamp=0.0)
        scheduler.fire()
        await session.settle()

        assert [i.key for i in engine.queue][-1] == "hola"
        assert engine.queue[-1].state == ItemState.RELEARNING1
        assert session.remaining == 10

    @pytest.mark.asyncio
    async def test_record_failure_keeps_card(self, session, recorder):
        recorder.fail = True
        session.toggle_flip()

        result = await session.answer(False)

        assert result.success is False
        assert session.last_error is not None
        assert session.current.key == "hola"
        assert session.has_flipped is True
        assert session.remaining == 10

    @pytest.mark.asyncio
    async def test_state_sink_receives_results(self, engine, scheduler):
        sink = MagicMock()
        session = ReviewSession(engine, state_sink=sink, scheduler=scheduler)
        session.toggle_flip()

        result = await session.answer(True)

        sink.assert_called_once()
        item, passed = sink.call_args.args
        assert item.key == "hola"
        assert passed is result


class TestStatus:
    """Empty / reviewing / complete screens."""

    @pytest.mark.asyncio
    async def test_complete_then_restart(self, recorder, scheduler):
        source = FakeSource([ReviewItem("uno"), ReviewItem("dos")])
        engine = ReviewQueueEngine(recorder, source=source, items=[ReviewItem("cero")])
        session = ReviewSession(engine, scheduler=scheduler)
        assert session.status == SessionStatus.REVIEWING

        session.toggle_flip()
        await session.answer(True)
        assert session.status == SessionStatus.COMPLETE

        await session.restart()

        assert session.status == SessionStatus.REVIEWING
        assert session.remaining == 2
        assert engine.stats.total == 0

    def test_empty(self, recorder, scheduler):
        session = ReviewSession(ReviewQueueEngine(recorder), scheduler=scheduler)

        assert session.status == SessionStatus.EMPTY
        assert session.current is None
        session.toggle_flip()
        assert session.has_flipped is False


class TestBuildBackend:
    """Mode wiring."""

    @pytest.mark.asyncio
    async def test_offline_uses_store(self, tmp_path):
        from config import Settings

        settings = Settings(mode="offline", database_path=tmp_path / "state.db")
        backend = build_backend(settings)

        assert isinstance(backend.store, StateStore)
        assert backend.state_sink == backend.store.apply_result
        await backend.aclose()

    @pytest.mark.asyncio
    async def test_api_uses_platform_client(self):
        from config import Settings
        from src.core.platform_client import PlatformClient

        settings = Settings(mode="api", api_base_url="http://platform.test")
        backend = build_backend(settings)

        assert backend.store is None
        assert isinstance(backend.engine._recorder, PlatformClient)
        await backend.aclose()
