from __future__ import annotations

import asyncio
import json
from datetime import datetime, timezone

import httpx
import pytest

from src.adapters.backend import HttpRideBackend
from src.adapters.backend.http_ride_backend import parse_datetime, parse_member
from src.domain.exceptions import TransportError
from src.domain.models import AlertSeverity, MemberStatus, RideStatus, ServerAlertType


def _backend(handler) -> HttpRideBackend:
    return HttpRideBackend(
        base_url="http://rides.test/",
        token="secret",
        transport=httpx.MockTransport(handler),
    )


def _run(backend: HttpRideBackend, coro_fn):
    async def scenario():
        try:
            return await coro_fn(backend)
        finally:
            await backend.aclose()

    return asyncio.run(scenario())


def test_update_position_posts_body_with_bearer_token() -> None:
    seen: list[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append(request)
        return httpx.Response(200, json={"success": True, "data": {"ok": 1}})

    resp = _run(
        _backend(handler),
        lambda b: b.update_position("ride-1", 28.1, -15.4, 6.5),
    )

    assert resp.success
    (req,) = seen
    assert req.method == "POST"
    assert req.url.path == "/api/v1/location/update"
    assert req.headers["Authorization"] == "Bearer secret"
    assert json.loads(req.content) == {
        "rideId": "ride-1",
        "latitude": 28.1,
        "longitude": -15.4,
        "accuracy": 6.5,
    }


def test_list_members_parses_roster() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        assert request.url.path == "/api/v1/rides/ride-1/members"
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": [
                    {
                        "id": "m1",
                        "user": {"id": "u1", "name": "Ana", "username": "ana"},
                        "status": "on-route",
                        "latitude": 28.1,
                        "longitude": -15.4,
                        "lastLocationUpdateAt": "2026-01-01T11:55:00Z",
                    },
                    {
                        "memberId": "m2",
                        "user": {"id": "u2", "username": "ben"},
                        "status": "parked",
                        "location": {"lat": 28.2, "lng": -15.5},
                    },
                ],
            },
        )

    resp = _run(_backend(handler), lambda b: b.list_members("ride-1"))

    assert resp.success
    a, b = resp.data
    assert (a.member_id, a.user.name, a.status) == ("m1", "Ana", MemberStatus.ON_ROUTE)
    assert a.last_location_update_at == datetime(
        2026, 1, 1, 11, 55, tzinfo=timezone.utc
    )
    assert (b.member_id, b.user.name, b.status) == ("m2", "ben", MemberStatus.UNKNOWN)
    assert (b.latitude, b.longitude) == (28.2, -15.5)
    assert b.last_location_update_at is None


def test_rejection_is_returned_not_raised() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json={"success": False, "message": "Ride not found"})

    resp = _run(_backend(handler), lambda b: b.list_alerts("ride-9"))

    assert not resp.success
    assert resp.data is None
    assert resp.message == "Ride not found"


def test_create_alert_parses_server_alert() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        body = json.loads(request.content)
        assert request.url.path == "/api/v1/alerts"
        return httpx.Response(
            201,
            json={
                "success": True,
                "data": {
                    "id": "a1",
                    "rideId": body["rideId"],
                    "type": body["type"],
                    "message": body["message"],
                    "severity": body["severity"],
                    "createdAt": 1767268800000,
                },
            },
        )

    resp = _run(
        _backend(handler),
        lambda b: b.create_alert(
            ride_id="ride-1",
            alert_type=ServerAlertType.TRAFFIC,
            message="jam",
            severity=AlertSeverity.HIGH,
        ),
    )

    alert = resp.data
    assert alert.alert_type is ServerAlertType.TRAFFIC
    assert alert.severity is AlertSeverity.HIGH
    assert alert.created_at == datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)


def test_emergency_and_ride_lifecycle_endpoints() -> None:
    seen: list[tuple[str, str]] = []

    def handler(request: httpx.Request) -> httpx.Response:
        seen.append((request.method, request.url.path))
        if request.url.path == "/api/v1/alerts/emergency":
            return httpx.Response(
                200,
                json={
                    "success": True,
                    "data": {
                        "id": "e1",
                        "rideId": "ride-1",
                        "type": "emergency",
                        "severity": "critical",
                        "message": "help",
                        "createdAt": "2026-01-01T12:00:00",
                    },
                },
            )
        if request.url.path.endswith("/read"):
            return httpx.Response(200, json={"success": True})
        return httpx.Response(
            200,
            json={
                "success": True,
                "data": {
                    "id": "ride-1",
                    "groupId": "g1",
                    "name": "Sunday",
                    "status": "ended" if "end" in request.url.path else "created",
                },
            },
        )

    async def calls(b: HttpRideBackend):
        emergency = await b.create_emergency_alert(ride_id="ride-1", message="help")
        created = await b.create_ride(group_id="g1", name="Sunday")
        ended = await b.end_ride("ride-1")
        read = await b.mark_alert_read("e1")
        return emergency, created, ended, read

    emergency, created, ended, read = _run(_backend(handler), calls)

    assert emergency.data.alert_type is ServerAlertType.EMERGENCY
    assert created.data.status is RideStatus.CREATED
    assert ended.data.status is RideStatus.ENDED
    assert read.success
    assert seen == [
        ("POST", "/api/v1/alerts/emergency"),
        ("POST", "/api/v1/rides"),
        ("POST", "/api/v1/rides/ride-1/end"),
        ("PATCH", "/api/v1/alerts/e1/read"),
    ]


def test_http_error_becomes_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(502, text="bad gateway")

    with pytest.raises(TransportError):
        _run(_backend(handler), lambda b: b.list_members("ride-1"))


def test_network_failure_becomes_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    with pytest.raises(TransportError):
        _run(_backend(handler), lambda b: b.list_members("ride-1"))


def test_invalid_json_becomes_transport_error() -> None:
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, text="<html>")

    with pytest.raises(TransportError):
        _run(_backend(handler), lambda b: b.list_members("ride-1"))


def test_missing_base_url_raises(monkeypatch) -> None:
    monkeypatch.delenv("RIDE_API_BASE_URL", raising=False)
    backend = HttpRideBackend()

    with pytest.raises(TransportError):
        asyncio.run(backend.list_members("ride-1"))


def test_parse_member_drops_out_of_range_coordinates() -> None:
    member = parse_member({"id": "m1", "latitude": 123.0, "longitude": 10.0})

    assert member.latitude is None
    assert member.longitude == 10.0
    assert not member.has_position


def test_parse_datetime_variants() -> None:
    utc = datetime(2026, 1, 1, 12, 0, tzinfo=timezone.utc)

    assert parse_datetime("2026-01-01T12:00:00Z") == utc
    assert parse_datetime("2026-01-01T12:00:00") == utc
    assert parse_datetime(1767268800000) == utc
    assert parse_datetime(None) is None
    assert parse_datetime("") is None
