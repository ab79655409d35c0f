from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Coroutine

from src.app.ports.output import Cancellable, IScheduler

logger = logging.getLogger(__name__)


class _LoopTimer(Cancellable):
    def __init__(self, handle: asyncio.TimerHandle) -> None:
        self._handle = handle
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        self._handle.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled


class _LoopTask(Cancellable):
    def __init__(self, task: asyncio.Task[None]) -> None:
        self._task = task
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True
        if not self._task.done():
            self._task.cancel()

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def done(self) -> bool:
        return self._task.done()


@dataclass(slots=True)
class AsyncioScheduler(IScheduler):
    """Scheduler backed by the running asyncio event loop.

    Must be used from inside the loop (all methods look up the running loop).
    """

    # Strong refs so fire-and-forget tasks are not garbage collected mid-flight.
    _tasks: set[asyncio.Task[None]] = field(default_factory=set, init=False, repr=False)

    def now(self) -> datetime:
        return datetime.now(timezone.utc)

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Cancellable:
        loop = asyncio.get_running_loop()
        return _LoopTimer(loop.call_later(max(0.0, float(delay_s)), callback))

    def call_every(
        self, interval_s: float, callback: Callable[[], Awaitable[None]]
    ) -> Cancellable:
        if interval_s <= 0:
            raise ValueError(f"Invalid interval: {interval_s}")

        async def _repeat() -> None:
            while True:
                await asyncio.sleep(interval_s)
                try:
                    await callback()
                except asyncio.CancelledError:
                    raise
                except Exception:
                    logger.exception("Repeating task failed")

        return self.spawn(_repeat())

    def spawn(self, coro: Coroutine[Any, Any, None]) -> Cancellable:
        task = asyncio.get_running_loop().create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._on_done)
        return _LoopTask(task)

    def _on_done(self, task: asyncio.Task[None]) -> None:
        self._tasks.discard(task)
        if task.cancelled():
            return
        exc = task.exception()
        if exc is not None:
            logger.error("Background task failed: %r", exc)

    @property
    def active_tasks(self) -> int:
        return len(self._tasks)
