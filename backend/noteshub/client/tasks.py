"""
NotesHub Client — Repeating Task
=================================

What:  Runs an async callable immediately and then once per fixed interval
       until stopped.
How:   A loop task spawns each tick as its own task, so a slow tick never
       delays the next one. stop() cancels the loop and every tick still in
       flight.

Errors raised by a tick are logged and do not stop the loop. There is no
retry, backoff or jitter.
"""

import asyncio
import logging
from typing import Awaitable, Callable, Optional, Set

logger = logging.getLogger(__name__)


class RepeatingTask:
    """
    Cancellable fixed-interval runner.

    Usage:
        task = RepeatingTask(poll, interval=30)
        task.start()
        ...
        await task.stop()

    Or as an async context manager, which stops on exit.
    """

    def __init__(self, fn: Callable[[], Awaitable[None]], interval: float):
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.fn = fn
        self.interval = interval
        self._loop_task: Optional[asyncio.Task] = None
        self._ticks: Set[asyncio.Task] = set()

    @property
    def running(self) -> bool:
        return self._loop_task is not None and not self._loop_task.done()

    @property
    def in_flight(self) -> int:
        return len(self._ticks)

    def start(self) -> None:
        """Start ticking. Must be called from a running event loop."""
        if self.running:
            return
        self._loop_task = asyncio.get_running_loop().create_task(self._run())

    async def stop(self) -> None:
        """Cancel the loop and all in-flight ticks, then wait for them to finish."""
        tasks = list(self._ticks)
        if self._loop_task is not None:
            tasks.append(self._loop_task)
        self._loop_task = None

        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
        self._ticks.clear()

    async def _run(self) -> None:
        while True:
            tick = asyncio.get_running_loop().create_task(self._tick())
            self._ticks.add(tick)
            tick.add_done_callback(self._ticks.discard)
            await asyncio.sleep(self.interval)

    async def _tick(self) -> None:
        try:
            await self.fn()
        except asyncio.CancelledError:
            raise
        except Exception as e:
            logger.error("Repeating task tick failed: %s", str(e), exc_info=True)

    async def __aenter__(self) -> "RepeatingTask":
        self.start()
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.stop()
