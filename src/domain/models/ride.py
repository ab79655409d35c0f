from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Union


class RideStatus(str, Enum):
    CREATED = "CREATED"
    STARTED = "STARTED"
    PAUSED = "PAUSED"
    ENDED = "ENDED"


@dataclass(frozen=True, slots=True)
class Ride:
    id: str
    group_id: str
    name: str
    status: RideStatus = RideStatus.CREATED
    description: str | None = None
    start_location: str | None = None
    end_location: str | None = None


@dataclass(frozen=True, slots=True)
class GroupContext:
    """A group selected on the rides screen; a ride gets created for it."""

    group_id: str
    name: str
    description: str | None = None


@dataclass(frozen=True, slots=True)
class ActiveRideContext:
    ride: Ride


RideContext = Union[GroupContext, ActiveRideContext]
