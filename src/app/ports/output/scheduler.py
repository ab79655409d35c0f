from __future__ import annotations

from abc import ABC, abstractmethod
from datetime import datetime
from typing import Any, Awaitable, Callable, Coroutine


class Cancellable(ABC):
    """Handle for a timer, repeating task, spawned task or sensor watch."""

    @abstractmethod
    def cancel(self) -> None:
        """Stop it. Cancelling twice is a no-op."""

    @property
    @abstractmethod
    def cancelled(self) -> bool:
        raise NotImplementedError


class IScheduler(ABC):
    """Port for time: wall clock, one-shot timers, repeating tasks, tasks.

    Repeating callbacks of one handle never overlap: the next tick is only
    considered once the previous invocation returned.
    """

    @abstractmethod
    def now(self) -> datetime:
        """Current UTC wall-clock time."""

    @abstractmethod
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Cancellable:
        raise NotImplementedError

    @abstractmethod
    def call_every(
        self, interval_s: float, callback: Callable[[], Awaitable[None]]
    ) -> Cancellable:
        """Run `callback` every `interval_s`, first run one interval from now."""

    @abstractmethod
    def spawn(self, coro: Coroutine[Any, Any, None]) -> Cancellable:
        """Run a coroutine in the background."""
