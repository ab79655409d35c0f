from __future__ import annotations

import logging
from typing import Callable, Generic, TypeVar

T = TypeVar("T")

logger = logging.getLogger(__name__)


class Publisher(Generic[T]):
    """Fan-out of immutable snapshots to subscribers.

    A subscriber raising does not prevent delivery to the others.
    """

    def __init__(self) -> None:
        self._subscribers: list[Callable[[T], None]] = []

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe

    def publish(self, snapshot: T) -> None:
        for callback in tuple(self._subscribers):
            try:
                callback(snapshot)
            except Exception:
                logger.exception("Subscriber failed for %s", type(snapshot).__name__)

    def __len__(self) -> int:
        return len(self._subscribers)
