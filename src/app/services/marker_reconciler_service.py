from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Iterable

from src.app.ports.output import IMapRenderer, IScheduler
from src.domain.algorithms.marker_diff import diff_markers
from src.domain.models import (
    GeoBounds,
    MarkerDiff,
    MarkerState,
    MarkerStyle,
    MemberPresence,
    MemberStatus,
    PresenceSnapshot,
)

from .publisher import Publisher

logger = logging.getLogger(__name__)

STATUS_COLORS: dict[MemberStatus, str] = {
    MemberStatus.ARRIVED: "#22c55e",
    MemberStatus.ON_ROUTE: "#ea580c",
    MemberStatus.WAITING: "#eab308",
    MemberStatus.UNKNOWN: "#6b7280",
}

STATUS_LABELS: dict[MemberStatus, str] = {
    MemberStatus.ARRIVED: "Arrived",
    MemberStatus.ON_ROUTE: "On Route",
    MemberStatus.WAITING: "Waiting",
    MemberStatus.UNKNOWN: "Unknown",
}


def marker_style(member: MemberPresence) -> MarkerStyle:
    return MarkerStyle(
        color=STATUS_COLORS[member.status],
        status_label=STATUS_LABELS[member.status],
        title=member.user.name,
        subtitle=f"@{member.user.username}" if member.user.username else None,
    )


@dataclass(slots=True)
class MarkerReconcilerService:
    """Keeps the rendered member markers in line with the latest roster.

    Markers are created once per member and then moved in place; the viewport
    is refitted whenever the marker set actually changed.
    """

    renderer: IMapRenderer
    scheduler: IScheduler

    _states: dict[str, MarkerState] = field(default_factory=dict, init=False)
    _handles: dict[str, Any] = field(default_factory=dict, init=False, repr=False)
    _viewport: GeoBounds | None = field(default=None, init=False)
    _updates: Publisher[tuple[MarkerState, ...]] = field(
        default_factory=Publisher, init=False, repr=False
    )

    @property
    def markers(self) -> tuple[MarkerState, ...]:
        return tuple(self._states.values())

    @property
    def viewport(self) -> GeoBounds | None:
        return self._viewport

    def subscribe(
        self, callback: Callable[[tuple[MarkerState, ...]], None]
    ) -> Callable[[], None]:
        return self._updates.subscribe(callback)

    def on_snapshot(self, snapshot: PresenceSnapshot) -> None:
        self.reconcile(snapshot.members)

    def reconcile(self, members: Iterable[MemberPresence]) -> MarkerDiff:
        diff = diff_markers(self._states, members)
        if diff.is_empty:
            return diff

        now = self.scheduler.now()

        for member_id in diff.removed:
            self._states.pop(member_id, None)
            handle = self._handles.pop(member_id, None)
            if handle is not None:
                self.renderer.remove_marker(handle)

        for member in diff.created:
            position = member.position
            if position is None:
                continue
            self._handles[member.member_id] = self.renderer.create_marker(
                member=member, style=marker_style(member)
            )
            self._states[member.member_id] = MarkerState(
                member_id=member.member_id,
                position=position,
                status=member.status,
                rendered_at=now,
            )

        for member in diff.updated:
            position = member.position
            if position is None:
                continue
            self.renderer.update_marker(
                self._handles[member.member_id],
                member=member,
                style=marker_style(member),
            )
            self._states[member.member_id] = MarkerState(
                member_id=member.member_id,
                position=position,
                status=member.status,
                rendered_at=now,
            )

        if self._states:
            self._viewport = GeoBounds.from_points(
                s.position for s in self._states.values()
            )
            self.renderer.fit_bounds(self._viewport)

        logger.debug(
            "Markers: +%d ~%d -%d",
            len(diff.created),
            len(diff.updated),
            len(diff.removed),
        )
        self._updates.publish(self.markers)
        return diff

    def clear(self) -> None:
        for handle in self._handles.values():
            self.renderer.remove_marker(handle)
        self._handles.clear()
        self._states.clear()
        self._viewport = None
        self._updates.publish(())
