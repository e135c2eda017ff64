"""Async scheduling loop shared by every polling job."""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable

from ..logging import build_log_extra, get_logger

LOGGER = get_logger(__name__)

TickFunction = Callable[[], Awaitable[object]]


async def wait_for_stop(stop: asyncio.Event, timeout: float) -> bool:
    """Wait until ``stop`` is set or ``timeout`` elapses.

    Returns:
        True if the stop event fired, False if the interval elapsed.
    """
    try:
        await asyncio.wait_for(stop.wait(), timeout=timeout)
    except asyncio.TimeoutError:
        return False

    return True


class PeriodicTask:
    """Run a tick immediately, then once per interval until stopped.

    The interval is measured from the end of the previous tick, so ticks
    never overlap. A task can be run only once.
    """

    def __init__(self, name: str, interval_seconds: float, tick: TickFunction) -> None:
        if interval_seconds <= 0:
            raise ValueError(f"Interval for {name} must be positive, got {interval_seconds}.")

        self.name = name
        self.interval_seconds = interval_seconds
        self._tick = tick
        self._started = False

    @property
    def started(self) -> bool:
        return self._started

    async def run(self, stop: asyncio.Event) -> None:
        """Drive ticks until ``stop`` is set or the task is cancelled."""

        if self._started:
            raise RuntimeError(f"Periodic task {self.name} has already been started.")

        self._started = True

        if stop.is_set():
            LOGGER.debug(
                "Stop requested before %s started; skipping.",
                self.name,
                extra=build_log_extra(job=self.name),
            )
            return

        LOGGER.info(
            "Polling %s every %s seconds.",
            self.name,
            self.interval_seconds,
            extra=build_log_extra(job=self.name),
        )

        try:
            await self._run_tick()

            while not await wait_for_stop(stop, self.interval_seconds):
                await self._run_tick()
        except asyncio.CancelledError:
            LOGGER.debug(
                "Polling task for %s cancelled.",
                self.name,
                extra=build_log_extra(job=self.name),
            )
            raise

        LOGGER.info(
            "Polling task for %s stopped.",
            self.name,
            extra=build_log_extra(job=self.name),
        )

    async def _run_tick(self) -> None:
        try:
            await self._tick()
        except asyncio.CancelledError:
            raise
        except Exception as exc:  # noqa: BLE001
            # Per-target errors are handled inside the tick; anything reaching here is a bug.
            LOGGER.exception(
                "Unexpected error during %s poll cycle.",
                self.name,
                exc_info=exc,
                extra=build_log_extra(job=self.name),
            )


__all__ = ["PeriodicTask", "TickFunction", "wait_for_stop"]
