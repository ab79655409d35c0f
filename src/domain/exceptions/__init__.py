from .tracking import (
    PositionCapabilityUnavailable,
    PositionError,
    PositionErrorCode,
    TrackingError,
    TransportError,
)

__all__ = [
    "PositionCapabilityUnavailable",
    "PositionError",
    "PositionErrorCode",
    "TrackingError",
    "TransportError",
]
