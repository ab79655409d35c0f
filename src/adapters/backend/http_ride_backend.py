from __future__ import annotations

import os
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Callable, Mapping, TypeVar
from urllib.parse import quote

import httpx

from src.app.ports.output import IRideBackend
from src.domain.exceptions import TransportError
from src.domain.models import (
    AlertSeverity,
    ApiEnvelope,
    MemberPresence,
    MemberStatus,
    Ride,
    RideStatus,
    RideUser,
    ServerAlert,
    ServerAlertType,
)

T = TypeVar("T")


@dataclass(slots=True)
class HttpRideBackend(IRideBackend):
    """Ride backend over its JSON REST API (`/api/v1/...`).

    Env vars:
      - RIDE_API_BASE_URL: backend base URL
      - RIDE_API_TOKEN: bearer token sent on every request
      - RIDE_API_TIMEOUT_S: request timeout (default 10)

    Notes:
      - One `httpx.AsyncClient` per instance; call `aclose()` when done.
      - HTTP/network errors and unparseable bodies raise `TransportError`.
    """

    base_url: str | None = None
    token: str | None = None
    timeout_s: float = 10.0
    transport: httpx.AsyncBaseTransport | None = None

    _client: httpx.AsyncClient | None = field(default=None, init=False, repr=False)

    def __post_init__(self) -> None:
        if self.base_url is None:
            self.base_url = os.getenv("RIDE_API_BASE_URL")
        if self.token is None:
            self.token = os.getenv("RIDE_API_TOKEN")
        if os.getenv("RIDE_API_TIMEOUT_S"):
            self.timeout_s = float(os.environ["RIDE_API_TIMEOUT_S"])

    def _headers(self) -> dict[str, str]:
        headers = {"Content-Type": "application/json"}
        if self.token:
            headers["Authorization"] = f"Bearer {self.token}"
        return headers

    def _http(self) -> httpx.AsyncClient:
        if not self.base_url:
            raise TransportError("Missing RIDE_API_BASE_URL")
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self.base_url.rstrip("/"),
                headers=self._headers(),
                timeout=self.timeout_s,
                transport=self.transport,
            )
        return self._client

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None

    async def _request(
        self, method: str, path: str, *, json: Mapping[str, Any] | None = None
    ) -> Mapping[str, Any]:
        client = self._http()
        try:
            resp = await client.request(method, path, json=json)
            resp.raise_for_status()
            payload = resp.json()
        except httpx.HTTPError as exc:
            raise TransportError(f"{method} {path} failed: {exc}") from exc
        except ValueError as exc:
            raise TransportError(f"{method} {path} returned invalid JSON") from exc

        if not isinstance(payload, dict):
            raise TransportError(f"{method} {path} returned a non-object body")
        return payload

    async def _call(
        self,
        method: str,
        path: str,
        parse: Callable[[Any], T],
        *,
        json: Mapping[str, Any] | None = None,
    ) -> ApiEnvelope[T]:
        payload = await self._request(method, path, json=json)
        return _envelope(payload, parse)

    async def update_position(
        self,
        ride_id: str,
        latitude: float,
        longitude: float,
        accuracy: float | None = None,
    ) -> ApiEnvelope[dict]:
        body: dict[str, Any] = {
            "rideId": ride_id,
            "latitude": latitude,
            "longitude": longitude,
        }
        if accuracy is not None:
            body["accuracy"] = accuracy
        return await self._call(
            "POST", "/api/v1/location/update", lambda d: dict(d or {}), json=body
        )

    async def list_members(self, ride_id: str) -> ApiEnvelope[tuple[MemberPresence, ...]]:
        return await self._call(
            "GET",
            f"/api/v1/rides/{quote(ride_id, safe='')}/members",
            lambda d: tuple(parse_member(m) for m in d or ()),
        )

    async def list_alerts(self, ride_id: str) -> ApiEnvelope[tuple[ServerAlert, ...]]:
        return await self._call(
            "GET",
            f"/api/v1/rides/{quote(ride_id, safe='')}/alerts",
            lambda d: tuple(parse_server_alert(a) for a in d or ()),
        )

    async def create_alert(
        self,
        *,
        ride_id: str,
        alert_type: ServerAlertType,
        message: str,
        severity: AlertSeverity,
    ) -> ApiEnvelope[ServerAlert]:
        return await self._call(
            "POST",
            "/api/v1/alerts",
            parse_server_alert,
            json={
                "rideId": ride_id,
                "type": alert_type.value,
                "message": message,
                "severity": severity.value,
            },
        )

    async def create_emergency_alert(
        self, *, ride_id: str, message: str
    ) -> ApiEnvelope[ServerAlert]:
        return await self._call(
            "POST",
            "/api/v1/alerts/emergency",
            parse_server_alert,
            json={
                "rideId": ride_id,
                "message": message,
                "type": ServerAlertType.EMERGENCY.value,
                "severity": AlertSeverity.CRITICAL.value,
            },
        )

    async def create_ride(
        self, *, group_id: str, name: str, description: str | None = None
    ) -> ApiEnvelope[Ride]:
        return await self._call(
            "POST",
            "/api/v1/rides",
            parse_ride,
            json={
                "groupId": group_id,
                "name": name,
                "description": description or "",
                "startLocation": "",
                "endLocation": "",
            },
        )

    async def end_ride(self, ride_id: str) -> ApiEnvelope[Ride]:
        return await self._call(
            "POST", f"/api/v1/rides/{quote(ride_id, safe='')}/end", parse_ride
        )

    async def mark_alert_read(self, alert_id: str) -> ApiEnvelope[None]:
        return await self._call(
            "PATCH", f"/api/v1/alerts/{quote(alert_id, safe='')}/read", lambda _: None
        )


def _envelope(payload: Mapping[str, Any], parse: Callable[[Any], T]) -> ApiEnvelope[T]:
    success = bool(payload.get("success"))
    message = payload.get("message")
    message = str(message) if message is not None else None
    if not success:
        return ApiEnvelope(success=False, data=None, message=message)

    try:
        data = parse(payload.get("data"))
    except (KeyError, TypeError, ValueError) as exc:
        raise TransportError(f"Malformed response data: {exc}") from exc
    return ApiEnvelope(success=True, data=data, message=message)


def parse_datetime(raw: Any) -> datetime | None:
    if raw is None or raw == "":
        return None
    if isinstance(raw, (int, float)):
        # Epoch milliseconds.
        return datetime.fromtimestamp(float(raw) / 1000.0, tz=timezone.utc)
    text = str(raw).strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    value = datetime.fromisoformat(text)
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value


def _coordinate(raw: Any, limit: float) -> float | None:
    if raw is None or raw == "":
        return None
    value = float(raw)
    if not (-limit <= value <= limit):
        return None
    return value


def parse_member(raw: Mapping[str, Any]) -> MemberPresence:
    user_raw = raw.get("user") or {}
    user_id = str(user_raw.get("id") or raw.get("userId") or "")
    user = RideUser(
        id=user_id,
        name=str(user_raw.get("name") or user_raw.get("username") or "Unknown rider"),
        username=str(user_raw.get("username") or ""),
    )

    location = raw.get("location") or {}
    lat = raw.get("latitude", location.get("lat"))
    lon = raw.get("longitude", location.get("lng", location.get("lon")))

    member_id = raw.get("memberId") or raw.get("id") or user_id
    if not member_id:
        raise ValueError("Member without id")

    return MemberPresence(
        member_id=str(member_id),
        user=user,
        status=MemberStatus.parse(raw.get("status")),
        latitude=_coordinate(lat, 90.0),
        longitude=_coordinate(lon, 180.0),
        last_location_update_at=parse_datetime(
            raw.get("lastLocationUpdateAt", raw.get("lastLocationUpdate"))
        ),
    )


def parse_server_alert(raw: Mapping[str, Any]) -> ServerAlert:
    created_at = parse_datetime(raw.get("createdAt"))
    if created_at is None:
        raise ValueError("Alert without createdAt")
    return ServerAlert(
        id=str(raw["id"]),
        ride_id=str(raw.get("rideId") or ""),
        alert_type=ServerAlertType(str(raw.get("type") or "system")),
        message=str(raw.get("message") or ""),
        severity=AlertSeverity(str(raw.get("severity") or "medium")),
        created_at=created_at,
        user_id=str(raw["userId"]) if raw.get("userId") else None,
        read_at=parse_datetime(raw.get("readAt")),
    )


def parse_ride(raw: Mapping[str, Any]) -> Ride:
    return Ride(
        id=str(raw["id"]),
        group_id=str(raw.get("groupId") or ""),
        name=str(raw.get("name") or ""),
        status=RideStatus(str(raw.get("status") or "CREATED").upper()),
        description=raw.get("description") or None,
        start_location=raw.get("startLocation") or None,
        end_location=raw.get("endLocation") or None,
    )
