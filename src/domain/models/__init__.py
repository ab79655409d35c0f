from .alert import (
    Alert,
    AlertCategory,
    AlertOrigin,
    AlertSeverity,
    ServerAlert,
    ServerAlertType,
)
from .envelope import ApiEnvelope
from .geo import GeoBounds, GeoPoint
from .marker import MarkerDiff, MarkerState, MarkerStyle
from .position import PositionOptions, PositionSample, TrackingState
from .presence import MemberPresence, MemberStatus, PresenceSnapshot, RideUser
from .ride import ActiveRideContext, GroupContext, Ride, RideContext, RideStatus

__all__ = [
    "ActiveRideContext",
    "Alert",
    "AlertCategory",
    "AlertOrigin",
    "AlertSeverity",
    "ApiEnvelope",
    "GeoBounds",
    "GeoPoint",
    "GroupContext",
    "MarkerDiff",
    "MarkerState",
    "MarkerStyle",
    "MemberPresence",
    "MemberStatus",
    "PositionOptions",
    "PositionSample",
    "PresenceSnapshot",
    "Ride",
    "RideContext",
    "RideStatus",
    "RideUser",
    "ServerAlert",
    "ServerAlertType",
    "TrackingState",
]
