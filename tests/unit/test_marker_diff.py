from __future__ import annotations

from datetime import datetime, timezone

from src.domain.algorithms.marker_diff import diff_markers, renderable_members
from src.domain.models import GeoPoint, MarkerState, MemberStatus

T0 = datetime(2026, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


def _state(member_id: str, lat: float, lon: float, status=MemberStatus.ON_ROUTE):
    return MarkerState(
        member_id=member_id,
        position=GeoPoint(lat=lat, lon=lon),
        status=status,
        rendered_at=T0,
    )


def test_members_without_both_coordinates_are_not_renderable(make_member) -> None:
    members = [
        make_member("a"),
        make_member("b", lat=None),
        make_member("c", lon=None),
        make_member("d", lat=None, lon=None),
    ]

    assert list(renderable_members(members)) == ["a"]


def test_diff_from_empty_creates_everything(make_member) -> None:
    diff = diff_markers({}, [make_member("a"), make_member("b", lat=28.2)])

    assert [m.member_id for m in diff.created] == ["a", "b"]
    assert diff.updated == ()
    assert diff.removed == ()


def test_unchanged_roster_yields_empty_diff(make_member) -> None:
    current = {"a": _state("a", 28.1, -15.4)}

    diff = diff_markers(current, [make_member("a", lat=28.1, lon=-15.4)])

    assert diff.is_empty


def test_moved_or_restatused_member_is_updated(make_member) -> None:
    current = {
        "a": _state("a", 28.1, -15.4),
        "b": _state("b", 28.1, -15.4),
    }

    diff = diff_markers(
        current,
        [
            make_member("a", lat=28.2, lon=-15.4),
            make_member("b", status=MemberStatus.ARRIVED),
        ],
    )

    assert [m.member_id for m in diff.updated] == ["a", "b"]
    assert diff.created == ()
    assert diff.removed == ()


def test_member_losing_coordinates_is_removed(make_member) -> None:
    current = {"a": _state("a", 28.1, -15.4), "b": _state("b", 28.1, -15.4)}

    diff = diff_markers(current, [make_member("a"), make_member("b", lat=None)])

    assert diff.removed == ("b",)
    assert diff.created == ()
