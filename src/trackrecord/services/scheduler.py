"""Periodic background tasks (proof sweep, rate limiter eviction)."""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Union

logger = logging.getLogger(__name__)

SweepFn = Callable[[], Union[int, Awaitable[int]]]


class PeriodicTask:
    """Runs *fn* every *interval* seconds until stopped.

    A failing run is logged and the loop keeps going.
    """

    def __init__(self, name: str, interval: float, fn: SweepFn) -> None:
        self.name = name
        self.interval = interval
        self._fn = fn
        self._task: Optional[asyncio.Task] = None
        self.runs = 0

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def run_once(self) -> int:
        result = self._fn()
        if asyncio.iscoroutine(result):
            result = await result
        self.runs += 1
        if result:
            logger.info("%s removed %d entries", self.name, result)
        return result or 0

    async def _loop(self) -> None:
        while True:
            await asyncio.sleep(self.interval)
            try:
                await self.run_once()
            except Exception:
                logger.exception("Periodic task %s failed", self.name)

    def start(self) -> None:
        if not self.running:
            self._task = asyncio.create_task(self._loop(), name=self.name)

    async def stop(self) -> None:
        if self._task is None:
            return
        self._task.cancel()
        try:
            await self._task
        except asyncio.CancelledError:
            pass
        self._task = None
