"""
Tests for the per-run progress reporter
"""
import asyncio

import pytest

from genius_machine.engine.models import RunError, RunErrorKind, RunPhase
from genius_machine.engine.progress import DEFAULT_INVOCATION_SECONDS, ProgressReporter


def make_reporter(total_layers: int = 4, archetypes: int = 2) -> ProgressReporter:
    return ProgressReporter("run-1", total_layers, archetypes, chunk_size=2)


@pytest.mark.unit
class TestEmit:
    """Ordering and event content"""

    def test_event_fields(self):
        reporter = make_reporter()
        event = reporter.emit(RunPhase.PROCESSING, 1, "The Analyst")

        assert event.run_id == "run-1"
        assert event.current_layer == 1
        assert event.total_layers == 4
        assert event.current_archetype == "The Analyst"
        assert event.chunk.current == 1
        assert event.chunk.total == 2
        assert event.message

    def test_regressions_are_dropped(self):
        reporter = make_reporter()
        reporter.emit(RunPhase.SYNTHESIZING, 2)

        assert reporter.emit(RunPhase.PROCESSING, 2) is None
        assert reporter.emit(RunPhase.PROCESSING, 1) is None
        assert reporter.last_event.phase == RunPhase.SYNTHESIZING

    def test_same_position_is_allowed(self):
        reporter = make_reporter()
        assert reporter.emit(RunPhase.PROCESSING, 1, "A") is not None
        assert reporter.emit(RunPhase.PROCESSING, 1, "B") is not None

    def test_finalizing_keeps_current_layer(self):
        reporter = make_reporter()
        reporter.emit(RunPhase.SYNTHESIZING, 3)
        event = reporter.emit(RunPhase.FINALIZING)
        assert event.current_layer == 3

    def test_terminal_events_have_zero_eta(self):
        reporter = make_reporter()
        reporter.emit(RunPhase.PROCESSING, 1)
        assert reporter.emit(RunPhase.COMPLETED).eta_seconds == 0.0

    def test_eta_uses_observed_durations(self):
        reporter = make_reporter(total_layers=3, archetypes=2)
        assert reporter.eta(1, 0) == DEFAULT_INVOCATION_SECONDS * 6

        reporter.record_duration(1.0)
        reporter.record_duration(3.0)
        assert reporter.eta(2, 1) == 2.0 * 3

    def test_events_after_finish_are_dropped(self):
        reporter = make_reporter()
        reporter.finish(RunError(run_id="run-1", kind=RunErrorKind.CANCELLED, reason="stop"))
        assert reporter.emit(RunPhase.PROCESSING, 1) is None


class TestSubscribe:
    """Subscriber queues"""

    @pytest.mark.asyncio
    async def test_subscriber_receives_events_then_outcome(self):
        reporter = make_reporter()
        received = []

        async def consume():
            async for item in reporter.subscribe():
                received.append(item)

        task = asyncio.create_task(consume())
        await asyncio.sleep(0)
        reporter.emit(RunPhase.INITIALIZING)
        reporter.emit(RunPhase.PROCESSING, 1)
        outcome = RunError(run_id="run-1", kind=RunErrorKind.TIMEOUT, reason="slow", retryable=True)
        reporter.finish(outcome)
        await asyncio.wait_for(task, timeout=1.0)

        assert [i.phase for i in received[:2]] == [RunPhase.INITIALIZING, RunPhase.PROCESSING]
        assert received[-1] is outcome

    @pytest.mark.asyncio
    async def test_outcome_is_delivered_once(self):
        reporter = make_reporter()
        first = RunError(run_id="run-1", kind=RunErrorKind.CANCELLED, reason="first")
        reporter.finish(first)
        reporter.finish(RunError(run_id="run-1", kind=RunErrorKind.INTERNAL, reason="second"))

        items = [item async for item in reporter.subscribe()]
        assert items == [first]
        assert reporter.outcome is first

    @pytest.mark.asyncio
    async def test_subscribers_are_independent(self):
        reporter = make_reporter()
        reporter.emit(RunPhase.PROCESSING, 1)

        first = reporter.subscribe()
        second = reporter.subscribe()
        assert (await first.__anext__()).current_layer == 1
        assert (await second.__anext__()).current_layer == 1
        await first.aclose()
        await second.aclose()
