"""
Property-based tests for scheduler module.

Uses Hypothesis for property-based testing of the fixed-interval check
scheduler: tick accounting, failure isolation and stopping.
"""

import asyncio
from io import StringIO

import pytest
from hypothesis import given, settings
from hypothesis import strategies as st

from domain_monitor.audit_logger import AuditLogger
from domain_monitor.enums import LogLevel
from domain_monitor.scheduler import CheckScheduler


def run_async(coro):
    """Helper to run async code in tests."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()


class TestTickProperty:
    """Property-based tests for single ticks."""

    @given(outcomes=st.lists(st.booleans(), min_size=1, max_size=10))
    @settings(max_examples=50)
    def test_failing_tick_does_not_stop_later_ticks(self, outcomes: list[bool]) -> None:
        """
        Property 1: A failing tick never prevents the next one.

        *For any* sequence of succeeding and failing callbacks, every tick
        SHALL run and report whether its callback completed.
        """
        remaining = list(outcomes)

        async def callback() -> None:
            if not remaining.pop(0):
                raise RuntimeError("bulk check failed")

        scheduler = CheckScheduler(callback, interval_seconds=60)

        async def run_all() -> list[bool]:
            return [await scheduler.run_once() for _ in outcomes]

        assert run_async(run_all()) == outcomes
        assert scheduler.run_count == len(outcomes)
        assert scheduler.last_run is not None

    def test_failure_is_logged(self) -> None:
        logger = AuditLogger(output_stream=StringIO())

        async def callback() -> None:
            raise RuntimeError("whois api down")

        scheduler = CheckScheduler(callback, interval_seconds=60, logger=logger)

        assert run_async(scheduler.run_once()) is False

        errors = [e for e in logger.entries if e.level == LogLevel.ERROR]
        assert len(errors) == 1
        assert errors[0].data["error_message"] == "whois api down"
        assert errors[0].data["run"] == 1

    @pytest.mark.parametrize("interval", [0, -1, -0.5])
    def test_non_positive_interval_is_rejected(self, interval: float) -> None:
        async def callback() -> None:
            return None

        with pytest.raises(ValueError):
            CheckScheduler(callback, interval_seconds=interval)


class TestRunLoop:
    """Tests for the scheduler loop."""

    def test_stop_event_ends_loop_after_first_tick(self) -> None:
        calls = []

        async def scenario() -> None:
            stop_event = asyncio.Event()

            async def callback() -> None:
                calls.append(1)
                stop_event.set()

            scheduler = CheckScheduler(callback, interval_seconds=3600)
            await scheduler.run(stop_event)
            assert scheduler.is_running() is False

        run_async(scenario())

        assert calls == [1]

    def test_stop_event_cuts_pause_short(self) -> None:
        calls = []

        async def scenario() -> None:
            stop_event = asyncio.Event()

            async def callback() -> None:
                calls.append(1)

            scheduler = CheckScheduler(callback, interval_seconds=3600)
            task = asyncio.ensure_future(scheduler.run(stop_event))
            await asyncio.sleep(0.05)
            assert scheduler.is_running() is True
            stop_event.set()
            await asyncio.wait_for(task, timeout=5)

        run_async(scenario())

        assert calls == [1]

    def test_stop_ends_loop(self) -> None:
        async def scenario() -> int:
            scheduler: CheckScheduler

            async def callback() -> None:
                if scheduler.run_count >= 3:
                    scheduler.stop()

            scheduler = CheckScheduler(callback, interval_seconds=0.01)
            await asyncio.wait_for(scheduler.run(), timeout=5)
            return scheduler.run_count

        assert run_async(scenario()) == 3

    def test_start_and_stop_are_logged(self) -> None:
        logger = AuditLogger(output_stream=StringIO())

        async def scenario() -> None:
            stop_event = asyncio.Event()
            stop_event.set()

            async def callback() -> None:
                return None

            await CheckScheduler(callback, interval_seconds=60, logger=logger).run(stop_event)

        run_async(scenario())

        messages = [e.message for e in logger.entries]
        assert messages == ["Scheduler started", "Scheduler stopped"]
        assert logger.entries[1].data["runs"] == 1
