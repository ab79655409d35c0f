from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable

from src.app.ports.output import IScheduler
from src.domain.models import AlertCategory, MemberPresence, PresenceSnapshot

from .alert_engine_service import AlertEngineService

logger = logging.getLogger(__name__)


def _describe_threshold(seconds: float) -> str:
    if seconds >= 60 and seconds % 60 == 0:
        minutes = int(seconds // 60)
        return "1 minute" if minutes == 1 else f"{minutes} minutes"
    return f"{seconds:g} seconds"


def _as_utc(value: datetime) -> datetime:
    # Naive timestamps from the backend are UTC.
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


@dataclass(slots=True)
class AnomalyDetectorService:
    """Warns when a member's last reported position is too old.

    One warning per member per staleness episode: a member is flagged once,
    and only becomes eligible again after reporting a fresh position or
    leaving the roster.
    """

    alert_engine: AlertEngineService
    scheduler: IScheduler
    stale_after_s: float = 300.0
    alert_duration_ms: int = 10_000

    _flagged: set[str] = field(default_factory=set, init=False)

    @property
    def flagged_members(self) -> frozenset[str]:
        return frozenset(self._flagged)

    def on_snapshot(self, snapshot: PresenceSnapshot) -> None:
        self.evaluate(snapshot.members)

    def evaluate(self, members: Iterable[MemberPresence]) -> tuple[str, ...]:
        """Run one detection pass; returns the ids of the alerts raised."""

        now = self.scheduler.now()
        raised: list[str] = []
        present: set[str] = set()

        for member in members:
            present.add(member.member_id)
            updated_at = member.last_location_update_at
            if updated_at is None:
                continue

            age_s = (now - _as_utc(updated_at)).total_seconds()
            if age_s <= self.stale_after_s:
                self._flagged.discard(member.member_id)
                continue
            if member.member_id in self._flagged:
                continue

            self._flagged.add(member.member_id)
            logger.info(
                "Member %s stale for %.0fs", member.member_id, age_s
            )
            raised.append(
                self.alert_engine.add_alert(
                    f"Location anomaly: {member.user.name} has not updated location "
                    f"for over {_describe_threshold(self.stale_after_s)}",
                    AlertCategory.WARNING,
                    self.alert_duration_ms,
                )
            )

        self._flagged &= present
        return tuple(raised)

    def reset(self) -> None:
        self._flagged.clear()
