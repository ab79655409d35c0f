from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from src.domain.exceptions import PositionError
from src.domain.models import PositionOptions, PositionSample

from .scheduler import Cancellable

SampleCallback = Callable[[PositionSample], None]
ErrorCallback = Callable[[PositionError], None]


class IPositionSource(ABC):
    """Port for the device positioning capability (GPS, replay, ...)."""

    @abstractmethod
    def is_available(self) -> bool:
        raise NotImplementedError

    @abstractmethod
    def get_current_position(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: PositionOptions,
    ) -> Cancellable:
        """Request a single fix; exactly one of the callbacks fires.

        Cancelling the returned handle abandons the request: neither callback
        fires afterwards.
        """

    @abstractmethod
    def watch_position(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: PositionOptions,
    ) -> Cancellable:
        """Register a continuous watch; cancel the handle to clear it."""
