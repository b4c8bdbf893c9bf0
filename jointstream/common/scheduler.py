"""
Interval Scheduler

Provides ScheduledLoop, which fires an async callback at fixed intervals
and accounts for callback execution time to prevent drift.

Unlike asyncio.sleep()-based loops, this scheduler:
- Fires at wall-clock interval boundaries
- Never overlaps callbacks: intervals missed while a callback runs are skipped
- Stops cleanly, letting an in-progress callback finish first

Usage:
    async def tick():
        ...

    loop = ScheduledLoop(0.1, tick, name="viewer-1")
    await loop.start()

    # Later:
    await loop.stop()
"""

import asyncio
import time
from typing import Callable, Awaitable

from .logging_setup import get_service_logger

logger = get_service_logger("scheduler")


class ScheduledLoop:
    """
    Interval scheduler that accounts for execution time.

    The next iteration is scheduled relative to the original schedule,
    not relative to when the callback finished. If a callback overruns,
    the missed boundaries are skipped rather than queued.

    Attributes:
        interval: The interval in seconds between executions
        callback: Async function to call each interval
        skipped_count: Number of intervals skipped
    """

    def __init__(
        self,
        interval_seconds: float,
        callback: Callable[[], Awaitable[None]],
        name: str = "unnamed",
    ):
        if interval_seconds <= 0:
            raise ValueError(f"interval must be positive, got {interval_seconds}")

        self.interval = interval_seconds
        self.callback = callback
        self.name = name

        self._next_run: float = 0
        self._running = False
        self._in_callback = False
        self._task: asyncio.Task | None = None

        # Observability metrics
        self._drift_total: float = 0
        self._skipped_count: int = 0
        self._execution_count: int = 0
        self._last_execution_time: float = 0
        self._last_drift_ms: float = 0

    @property
    def running(self) -> bool:
        return self._running

    async def start(self) -> None:
        """Start the scheduled loop in a background task."""
        if self._running:
            return

        self._running = True
        self._task = asyncio.create_task(self._run(), name=f"scheduled:{self.name}")

    async def stop(self) -> None:
        """
        Stop the loop and wait for it to exit.

        A sleeping loop is cancelled; a callback already in progress is
        allowed to finish so no device exchange is abandoned half way.
        """
        self._running = False
        task, self._task = self._task, None
        if task is None:
            return

        if not self._in_callback:
            task.cancel()

        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _run(self) -> None:
        """Main loop that fires callback at interval boundaries."""
        now = time.time()
        self._next_run = ((now // self.interval) + 1) * self.interval

        while self._running:
            sleep_duration = self._next_run - time.time()
            if sleep_duration > 0:
                await asyncio.sleep(sleep_duration)

            if not self._running:
                break

            actual_time = time.time()
            drift = actual_time - self._next_run

            if drift > 30:
                # Clock jump (NTP sync, suspend/resume); not real drift
                logger.info(
                    f"Scheduler '{self.name}' clock jump detected ({drift:.0f}s), realigning"
                )
                self._last_drift_ms = 0
                self._next_run = actual_time
            else:
                self._drift_total += max(0, drift)
                self._last_drift_ms = drift * 1000

            self._in_callback = True
            try:
                start = time.time()
                await self.callback()
                self._last_execution_time = time.time() - start
                self._execution_count += 1
            except Exception as e:
                logger.error(f"Scheduled callback '{self.name}' error: {e}")
            finally:
                self._in_callback = False

            # Skip missed intervals (don't queue up missed executions)
            now = time.time()
            skipped = 0
            while self._next_run <= now:
                self._next_run += self.interval
                skipped += 1

            # First skip is expected (the one we just executed)
            if skipped > 1:
                self._skipped_count += skipped - 1
                logger.debug(
                    f"Scheduler '{self.name}' skipped {skipped - 1} intervals "
                    f"(execution took {self._last_execution_time:.3f}s)"
                )

    @property
    def drift_ms(self) -> float:
        """Most recent drift in milliseconds."""
        return self._last_drift_ms

    @property
    def skipped_count(self) -> int:
        """Number of intervals skipped to catch up."""
        return self._skipped_count

    @property
    def execution_count(self) -> int:
        """Total number of successful executions."""
        return self._execution_count

    def get_stats(self) -> dict:
        """Get scheduler statistics for observability."""
        return {
            "name": self.name,
            "interval_s": self.interval,
            "execution_count": self._execution_count,
            "drift_total_s": round(self._drift_total, 3),
            "drift_last_ms": round(self._last_drift_ms, 1),
            "skipped_count": self._skipped_count,
            "last_execution_s": round(self._last_execution_time, 3),
        }
