"""
Scheduler module for the domain monitor.

This module provides the periodic trigger for bulk domain checks. Ticks are
fixed-interval; a failing tick is logged and the next one still runs.
"""

import asyncio
from datetime import datetime, timezone
from typing import Awaitable, Callable, Optional

from .audit_logger import AuditLogger
from .enums import LogLevel


class CheckScheduler:
    """
    Interval scheduler that runs one async callback per tick.

    The first tick runs immediately when the loop starts.
    """

    COMPONENT = "CheckScheduler"

    def __init__(
        self,
        callback: Callable[[], Awaitable[object]],
        interval_seconds: float,
        logger: Optional[AuditLogger] = None,
    ) -> None:
        """
        Initialize the scheduler.

        Args:
            callback: Async function to call on every tick
            interval_seconds: Pause between the end of one tick and the next
            logger: Optional audit logger

        Raises:
            ValueError: If the interval is not positive
        """
        if interval_seconds <= 0:
            raise ValueError(f"Interval must be positive, got {interval_seconds}")

        self._callback = callback
        self._interval_seconds = interval_seconds
        self._logger = logger
        self._running = False
        self._last_run: Optional[datetime] = None
        self._run_count = 0

    async def run_once(self) -> bool:
        """
        Execute a single tick.

        Returns:
            True if the callback completed, False if it raised
        """
        self._last_run = datetime.now(timezone.utc)
        self._run_count += 1

        try:
            await self._callback()
        except Exception as e:
            if self._logger:
                self._logger.log_error(self.COMPONENT, "Scheduled run failed", e, {"run": self._run_count})
            return False

        return True

    async def run(self, stop_event: Optional[asyncio.Event] = None) -> None:
        """
        Run the scheduler loop.

        This method runs until stop() is called or stop_event is set. A set
        stop_event also cuts the pause between ticks short.

        Args:
            stop_event: Optional event to signal the scheduler to stop
        """
        self._running = True

        if self._logger:
            self._logger.log(
                LogLevel.INFO,
                self.COMPONENT,
                "Scheduler started",
                {"interval_seconds": self._interval_seconds},
            )

        while self._running:
            await self.run_once()

            if stop_event is not None and stop_event.is_set():
                break
            if not self._running:
                break

            if stop_event is None:
                await asyncio.sleep(self._interval_seconds)
                continue

            try:
                await asyncio.wait_for(stop_event.wait(), timeout=self._interval_seconds)
            except asyncio.TimeoutError:
                continue
            break

        self._running = False

        if self._logger:
            self._logger.log(LogLevel.INFO, self.COMPONENT, "Scheduler stopped", {"runs": self._run_count})

    def stop(self) -> None:
        """Signal the scheduler to stop after the current tick."""
        self._running = False

    def is_running(self) -> bool:
        """Check if the scheduler is running."""
        return self._running

    @property
    def interval_seconds(self) -> float:
        return self._interval_seconds

    @property
    def last_run(self) -> Optional[datetime]:
        return self._last_run

    @property
    def run_count(self) -> int:
        """Number of ticks executed so far."""
        return self._run_count
