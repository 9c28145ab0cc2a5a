"""Cancellable repeating tasks for timed (walking-mode) capture."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, Protocol

logger = logging.getLogger(__name__)

TickCallback = Callable[[], Awaitable[Any]]


class RepeatingTask(Protocol):
    @property
    def cancelled(self) -> bool: ...

    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_every(self, interval_s: float, callback: TickCallback) -> RepeatingTask: ...


class AsyncioRepeatingTask:
    """Run ``callback`` every ``interval_s`` seconds on the running event loop.

    The first tick fires one interval after start. Each tick runs as its own
    task, so ``cancel()`` stops the timer without interrupting a tick that is
    already running; no new tick starts once ``cancel()`` has returned.
    """

    def __init__(self, interval_s: float, callback: TickCallback) -> None:
        if interval_s <= 0:
            raise ValueError(f"interval must be positive, got {interval_s!r}")
        self._interval_s = interval_s
        self._callback = callback
        self._cancelled = False
        self._ticks: set[asyncio.Task[Any]] = set()
        self._timer = asyncio.get_running_loop().create_task(self._run())

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        if self._cancelled:
            return
        self._cancelled = True
        self._timer.cancel()

    async def wait_ticks(self) -> None:
        """Wait for ticks that were already running when the timer stopped."""

        if self._ticks:
            await asyncio.gather(*self._ticks, return_exceptions=True)

    async def _run(self) -> None:
        while not self._cancelled:
            await asyncio.sleep(self._interval_s)
            if self._cancelled:
                break
            tick = asyncio.ensure_future(self._callback())
            self._ticks.add(tick)
            tick.add_done_callback(self._tick_done)

    def _tick_done(self, tick: asyncio.Task[Any]) -> None:
        self._ticks.discard(tick)
        if not tick.cancelled() and tick.exception() is not None:
            logger.error("walking tick failed", exc_info=tick.exception())


class AsyncioScheduler:
    """Scheduler backed by the running asyncio event loop."""

    def call_every(self, interval_s: float, callback: TickCallback) -> AsyncioRepeatingTask:
        return AsyncioRepeatingTask(interval_s, callback)
