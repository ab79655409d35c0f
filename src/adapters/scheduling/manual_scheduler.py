from __future__ import annotations

import itertools
import logging
from collections import deque
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Any, Awaitable, Callable, Coroutine

from src.app.ports.output import Cancellable, IScheduler

logger = logging.getLogger(__name__)


@dataclass(slots=True, eq=False)
class _Entry(Cancellable):
    due_s: float
    seq: int
    callback: Callable[[], Any]
    interval_s: float | None = None
    _cancelled: bool = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass(slots=True)
class ManualScheduler(IScheduler):
    """Virtual-time scheduler; nothing happens until `advance()` is awaited.

    Spawned coroutines run in FIFO order on the next `advance()` or
    `run_pending()`; timers fire in due-time order, each followed by any
    coroutines it spawned.
    """

    start: datetime = field(
        default_factory=lambda: datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)
    )
    elapsed_s: float = 0.0

    _entries: list[_Entry] = field(default_factory=list, init=False, repr=False)
    _pending: deque[tuple[_Entry, Coroutine[Any, Any, None]]] = field(
        default_factory=deque, init=False, repr=False
    )
    _seq: itertools.count = field(
        default_factory=itertools.count, init=False, repr=False
    )

    def now(self) -> datetime:
        return self.start + timedelta(seconds=self.elapsed_s)

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Cancellable:
        entry = _Entry(
            due_s=self.elapsed_s + max(0.0, float(delay_s)),
            seq=next(self._seq),
            callback=callback,
        )
        self._entries.append(entry)
        return entry

    def call_every(
        self, interval_s: float, callback: Callable[[], Awaitable[None]]
    ) -> Cancellable:
        if interval_s <= 0:
            raise ValueError(f"Invalid interval: {interval_s}")
        entry = _Entry(
            due_s=self.elapsed_s + float(interval_s),
            seq=next(self._seq),
            callback=callback,
            interval_s=float(interval_s),
        )
        self._entries.append(entry)
        return entry

    def spawn(self, coro: Coroutine[Any, Any, None]) -> Cancellable:
        entry = _Entry(due_s=self.elapsed_s, seq=next(self._seq), callback=lambda: None)
        self._pending.append((entry, coro))
        return entry

    async def run_pending(self) -> None:
        while self._pending:
            entry, coro = self._pending.popleft()
            if entry.cancelled:
                coro.close()
                continue
            try:
                await coro
            except Exception:
                logger.exception("Spawned task failed")
            entry.cancel()

    async def advance(self, seconds: float) -> None:
        target = self.elapsed_s + float(seconds)
        await self.run_pending()

        while True:
            due = [
                e for e in self._entries if not e.cancelled and e.due_s <= target
            ]
            if not due:
                break
            entry = min(due, key=lambda e: (e.due_s, e.seq))
            self.elapsed_s = max(self.elapsed_s, entry.due_s)

            if entry.interval_s is None:
                self._entries.remove(entry)
                entry.cancel()
                try:
                    entry.callback()
                except Exception:
                    logger.exception("Timer callback failed")
            else:
                try:
                    await entry.callback()
                except Exception:
                    logger.exception("Repeating task failed")
                entry.due_s += entry.interval_s
                entry.seq = next(self._seq)

            await self.run_pending()

        self.elapsed_s = target
        self._entries = [e for e in self._entries if not e.cancelled]

    @property
    def active_count(self) -> int:
        """Live timers, repeating tasks and not-yet-run spawned tasks."""

        timers = sum(1 for e in self._entries if not e.cancelled)
        spawned = sum(1 for e, _ in self._pending if not e.cancelled)
        return timers + spawned
