import pytest
from src.domain.models.geo import GeoBounds, GeoPoint


def test_geo_point_accepts_valid_coordinates() -> None:
    p = GeoPoint(lat=28.1234, lon=-15.4321)
    assert p.lat == 28.1234
    assert p.lon == -15.4321


@pytest.mark.parametrize(
    ("lat", "lon"),
    [
        (-90.0001, 0.0),
        (90.0001, 0.0),
        (0.0, -180.0001),
        (0.0, 180.0001),
    ],
)
def test_geo_point_rejects_out_of_range_coordinates(lat: float, lon: float) -> None:
    with pytest.raises(ValueError):
        GeoPoint(lat=lat, lon=lon)


def test_bounds_cover_every_point() -> None:
    pts = [
        GeoPoint(lat=28.10, lon=-15.45),
        GeoPoint(lat=28.14, lon=-15.40),
        GeoPoint(lat=28.12, lon=-15.42),
    ]
    bounds = GeoBounds.from_points(pts)

    assert (bounds.south, bounds.west, bounds.north, bounds.east) == (
        28.10,
        -15.45,
        28.14,
        -15.40,
    )
    assert all(bounds.contains(p) for p in pts)
    assert not bounds.contains(GeoPoint(lat=28.2, lon=-15.42))


def test_bounds_of_single_point_is_degenerate() -> None:
    p = GeoPoint(lat=1.0, lon=2.0)
    bounds = GeoBounds.from_points([p])

    assert bounds.center == p


def test_bounds_reject_empty_input() -> None:
    with pytest.raises(ValueError):
        GeoBounds.from_points([])
