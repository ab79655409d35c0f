from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime


@dataclass(frozen=True, slots=True)
class PositionSample:
    latitude: float
    longitude: float
    captured_at: datetime
    accuracy: float | None = None  # meters


@dataclass(frozen=True, slots=True)
class PositionOptions:
    """Acquisition options handed to the position source."""

    enable_high_accuracy: bool = True
    timeout_s: float = 10.0
    maximum_age_s: float = 1.0


@dataclass(frozen=True, slots=True)
class TrackingState:
    """What the location sync service publishes on every change."""

    is_tracking: bool = False
    current_position: PositionSample | None = None
    last_sync_time: datetime | None = None
    error: str | None = None
