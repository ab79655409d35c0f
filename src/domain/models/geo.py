from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


@dataclass(frozen=True, slots=True)
class GeoPoint:
    lat: float
    lon: float

    def __post_init__(self) -> None:
        if not (-90.0 <= self.lat <= 90.0):
            raise ValueError(f"Invalid latitude: {self.lat}")
        if not (-180.0 <= self.lon <= 180.0):
            raise ValueError(f"Invalid longitude: {self.lon}")


@dataclass(frozen=True, slots=True)
class GeoBounds:
    """Axis-aligned lat/lon box (no antimeridian wrapping)."""

    south: float
    west: float
    north: float
    east: float

    @staticmethod
    def from_points(points: Iterable[GeoPoint]) -> "GeoBounds":
        pts = list(points)
        if not pts:
            raise ValueError("Cannot build bounds from zero points")
        return GeoBounds(
            south=min(p.lat for p in pts),
            west=min(p.lon for p in pts),
            north=max(p.lat for p in pts),
            east=max(p.lon for p in pts),
        )

    @property
    def center(self) -> GeoPoint:
        return GeoPoint(
            lat=(self.south + self.north) / 2.0, lon=(self.west + self.east) / 2.0
        )

    def contains(self, point: GeoPoint) -> bool:
        return (
            self.south <= point.lat <= self.north
            and self.west <= point.lon <= self.east
        )
