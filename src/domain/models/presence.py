from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum

from .geo import GeoPoint


class MemberStatus(str, Enum):
    WAITING = "waiting"
    ON_ROUTE = "on-route"
    ARRIVED = "arrived"
    UNKNOWN = "unknown"

    @classmethod
    def parse(cls, raw: str | None) -> "MemberStatus":
        value = (raw or "").strip().lower().replace("_", "-")
        for status in cls:
            if status.value == value:
                return status
        return cls.UNKNOWN


@dataclass(frozen=True, slots=True)
class RideUser:
    id: str
    name: str
    username: str


@dataclass(frozen=True, slots=True)
class MemberPresence:
    member_id: str
    user: RideUser
    status: MemberStatus = MemberStatus.UNKNOWN
    latitude: float | None = None
    longitude: float | None = None
    last_location_update_at: datetime | None = None

    @property
    def has_position(self) -> bool:
        return self.latitude is not None and self.longitude is not None

    @property
    def position(self) -> GeoPoint | None:
        if self.latitude is None or self.longitude is None:
            return None
        return GeoPoint(lat=self.latitude, lon=self.longitude)


@dataclass(frozen=True, slots=True)
class PresenceSnapshot:
    """What the presence poller publishes after every fetch attempt."""

    ride_id: str | None
    members: tuple[MemberPresence, ...] = ()
    is_connected: bool = False
    error: str | None = None
    last_update: datetime | None = None
