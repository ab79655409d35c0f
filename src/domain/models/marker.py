from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from .geo import GeoPoint
from .presence import MemberPresence, MemberStatus


@dataclass(frozen=True, slots=True)
class MarkerState:
    member_id: str
    position: GeoPoint
    status: MemberStatus
    rendered_at: datetime


@dataclass(frozen=True, slots=True)
class MarkerDiff:
    created: tuple[MemberPresence, ...] = ()
    updated: tuple[MemberPresence, ...] = ()
    removed: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.created or self.updated or self.removed)


@dataclass(frozen=True, slots=True)
class MarkerStyle:
    """Status-dependent treatment plus the info-window metadata."""

    color: str
    status_label: str
    title: str
    subtitle: str | None = None
