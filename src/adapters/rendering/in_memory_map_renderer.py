from __future__ import annotations

import itertools
from dataclasses import dataclass, field

from src.app.ports.output import IMapRenderer
from src.domain.models import GeoBounds, GeoPoint, MarkerStyle, MemberPresence


@dataclass(slots=True)
class RenderedMarker:
    """A drawn marker; mutated in place when the member moves."""

    marker_id: int
    member_id: str
    position: GeoPoint
    style: MarkerStyle
    info: str


def _info_text(member: MemberPresence, style: MarkerStyle) -> str:
    lines = [style.title]
    if style.subtitle:
        lines.append(style.subtitle)
    lines.append(f"Status: {style.status_label}")
    if member.last_location_update_at is not None:
        lines.append(f"Updated: {member.last_location_update_at:%H:%M:%S}")
    return "\n".join(lines)


@dataclass(slots=True)
class InMemoryMapRenderer(IMapRenderer):
    """Map surface kept in memory; backs the status API and headless runs."""

    markers: dict[int, RenderedMarker] = field(default_factory=dict)
    viewport: GeoBounds | None = None
    created_count: int = 0
    updated_count: int = 0
    removed_count: int = 0
    fit_count: int = 0

    _ids: itertools.count = field(
        default_factory=lambda: itertools.count(1), init=False, repr=False
    )

    def create_marker(self, *, member: MemberPresence, style: MarkerStyle) -> int:
        position = member.position
        if position is None:
            raise ValueError(f"Member {member.member_id} has no position")
        marker_id = next(self._ids)
        self.markers[marker_id] = RenderedMarker(
            marker_id=marker_id,
            member_id=member.member_id,
            position=position,
            style=style,
            info=_info_text(member, style),
        )
        self.created_count += 1
        return marker_id

    def update_marker(
        self, handle: int, *, member: MemberPresence, style: MarkerStyle
    ) -> None:
        marker = self.markers[handle]
        position = member.position
        if position is not None:
            marker.position = position
        marker.style = style
        marker.info = _info_text(member, style)
        self.updated_count += 1

    def remove_marker(self, handle: int) -> None:
        if self.markers.pop(handle, None) is not None:
            self.removed_count += 1

    def fit_bounds(self, bounds: GeoBounds) -> None:
        self.viewport = bounds
        self.fit_count += 1
