"""PollingTask: explicit, cancellable handle for a periodic async callback.

The controller owns at most one of these. `stop()` is the single teardown
operation and may be called any number of times, including from inside the
tick callback itself.
"""

from __future__ import annotations

import asyncio
from typing import Awaitable, Callable, Optional

from scrapejob.core.settings import logger

# Returns True when polling is finished and the task should end.
TickCallback = Callable[[], Awaitable[bool]]


class PollingTask:
    def __init__(self, tick: TickCallback, interval: float, name: str = "poll") -> None:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._tick = tick
        self._interval = interval
        self._name = name
        self._task: Optional[asyncio.Task] = None
        self._stopped = False
        self.ticks = 0

    @property
    def name(self) -> str:
        return self._name

    @property
    def live(self) -> bool:
        """True while started and not stopped (a tick may still fire)."""
        return self._task is not None and not self._stopped and not self._task.done()

    @property
    def done(self) -> bool:
        """True once the underlying task finished, or if it never started and was stopped."""
        if self._task is None:
            return self._stopped
        return self._task.done()

    def start(self) -> None:
        if self._task is not None:
            raise RuntimeError(f"polling task {self._name} already started")
        if self._stopped:
            return
        self._task = asyncio.create_task(self._run(), name=self._name)
        logger.debug(f"[poll:{self._name}] scheduled interval={self._interval}s")

    def stop(self) -> None:
        """Stop future ticks and cancel the running task. Idempotent."""
        if self._stopped:
            return
        self._stopped = True
        task = self._task
        # A tick that stops its own task just lets the loop return.
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
        logger.debug(f"[poll:{self._name}] stopped after ticks={self.ticks}")

    async def wait_closed(self) -> None:
        """Await the underlying task after `stop()`; never raises CancelledError."""
        task = self._task
        if task is None or task is asyncio.current_task():
            return
        await asyncio.gather(task, return_exceptions=True)

    async def _run(self) -> None:
        while not self._stopped:
            await asyncio.sleep(self._interval)
            if self._stopped:
                return
            self.ticks += 1
            try:
                done = await self._tick()
            except Exception as exc:
                # The tick owns error handling; anything escaping ends polling.
                logger.error(f"[poll:{self._name}] tick raised, stopping error={exc}")
                self._stopped = True
                return
            if done:
                self._stopped = True
                return
