from __future__ import annotations

from enum import Enum


class TrackingError(Exception):
    """Base exception for ride tracking failures."""


class PositionCapabilityUnavailable(TrackingError):
    """Raised when the runtime has no positioning capability at all."""


class PositionErrorCode(int, Enum):
    # Same numbering as the W3C GeolocationPositionError codes.
    PERMISSION_DENIED = 1
    POSITION_UNAVAILABLE = 2
    TIMEOUT = 3


POSITION_ERROR_MESSAGES: dict[PositionErrorCode, str] = {
    PositionErrorCode.PERMISSION_DENIED: "Location access denied by user",
    PositionErrorCode.POSITION_UNAVAILABLE: "Location information unavailable",
    PositionErrorCode.TIMEOUT: "Location request timed out",
}


class PositionError(TrackingError):
    """Sensor-level failure reported by a position source."""

    def __init__(self, code: PositionErrorCode, message: str | None = None) -> None:
        self.code = code
        super().__init__(message or POSITION_ERROR_MESSAGES[code])

    @property
    def user_message(self) -> str:
        return POSITION_ERROR_MESSAGES.get(self.code, "Unable to get location")


class TransportError(TrackingError):
    """Network/HTTP failure talking to the ride backend; carries no data."""
