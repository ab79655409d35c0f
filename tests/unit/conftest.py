from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Callable

import pytest

from src.adapters.scheduling import ManualScheduler
from src.domain.exceptions import PositionError, PositionErrorCode
from src.domain.models import (
    AlertSeverity,
    ApiEnvelope,
    MemberPresence,
    MemberStatus,
    PositionOptions,
    PositionSample,
    Ride,
    RideStatus,
    RideUser,
    ServerAlert,
    ServerAlertType,
)


@dataclass(slots=True)
class FakeRideBackend:
    """Records calls; answers success unless told to reject or raise."""

    members: tuple[MemberPresence, ...] = ()
    server_alerts: tuple[ServerAlert, ...] = ()
    rejections: set[str] = field(default_factory=set)
    errors: dict[str, Exception] = field(default_factory=dict)
    calls: list[tuple[str, tuple[Any, ...]]] = field(default_factory=list)
    now: datetime = datetime(2026, 1, 1, 12, 0, 0)

    def count(self, name: str) -> int:
        return sum(1 for n, _ in self.calls if n == name)

    def _respond(self, name: str, args: tuple[Any, ...], data: Any) -> ApiEnvelope:
        self.calls.append((name, args))
        if name in self.errors:
            raise self.errors[name]
        if name in self.rejections:
            return ApiEnvelope(success=False, data=None, message="rejected")
        return ApiEnvelope(success=True, data=data)

    def _server_alert(
        self, ride_id: str, alert_type: ServerAlertType, message: str, severity: AlertSeverity
    ) -> ServerAlert:
        return ServerAlert(
            id=f"srv-{len(self.calls)}",
            ride_id=ride_id,
            alert_type=alert_type,
            message=message,
            severity=severity,
            created_at=self.now,
        )

    async def update_position(self, ride_id, latitude, longitude, accuracy=None):
        return self._respond(
            "update_position", (ride_id, latitude, longitude, accuracy), {}
        )

    async def list_members(self, ride_id):
        return self._respond("list_members", (ride_id,), self.members)

    async def list_alerts(self, ride_id):
        return self._respond("list_alerts", (ride_id,), self.server_alerts)

    async def create_alert(self, *, ride_id, alert_type, message, severity):
        return self._respond(
            "create_alert",
            (ride_id, alert_type, message, severity),
            self._server_alert(ride_id, alert_type, message, severity),
        )

    async def create_emergency_alert(self, *, ride_id, message):
        return self._respond(
            "create_emergency_alert",
            (ride_id, message),
            self._server_alert(
                ride_id, ServerAlertType.EMERGENCY, message, AlertSeverity.CRITICAL
            ),
        )

    async def create_ride(self, *, group_id, name, description=None):
        return self._respond(
            "create_ride",
            (group_id, name, description),
            Ride(id="ride-new", group_id=group_id, name=name),
        )

    async def end_ride(self, ride_id):
        return self._respond(
            "end_ride",
            (ride_id,),
            Ride(id=ride_id, group_id="g1", name="Ride", status=RideStatus.ENDED),
        )

    async def mark_alert_read(self, alert_id):
        return self._respond("mark_alert_read", (alert_id,), None)


class FakeWatch:
    def __init__(self) -> None:
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    @property
    def cancelled(self) -> bool:
        return self._cancelled


@dataclass(slots=True)
class FakePositionSource:
    """Position source driven by the test: `emit`, `resolve_fix`, `fail`."""

    available: bool = True
    fix_requests: list[tuple[Callable, Callable, PositionOptions, FakeWatch]] = field(
        default_factory=list
    )
    watches: list[tuple[Callable, Callable, FakeWatch]] = field(default_factory=list)

    def is_available(self) -> bool:
        return self.available

    def get_current_position(self, on_sample, on_error, options) -> FakeWatch:
        handle = FakeWatch()
        self.fix_requests.append((on_sample, on_error, options, handle))
        return handle

    def watch_position(self, on_sample, on_error, options) -> FakeWatch:
        handle = FakeWatch()
        self.watches.append((on_sample, on_error, handle))
        return handle

    @property
    def active_watches(self) -> int:
        return sum(1 for _, _, h in self.watches if not h.cancelled)

    def resolve_fix(self, sample: PositionSample) -> None:
        on_sample, _, _, handle = self.fix_requests.pop(0)
        if not handle.cancelled:
            on_sample(sample)

    def emit(self, sample: PositionSample) -> None:
        for on_sample, _, handle in list(self.watches):
            if not handle.cancelled:
                on_sample(sample)

    def fail(self, code: PositionErrorCode) -> None:
        for _, on_error, handle in list(self.watches):
            if not handle.cancelled:
                on_error(PositionError(code))


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def backend() -> FakeRideBackend:
    return FakeRideBackend()


@pytest.fixture
def position_source() -> FakePositionSource:
    return FakePositionSource()


@pytest.fixture
def make_member() -> Callable[..., MemberPresence]:
    def _make(
        member_id: str,
        *,
        name: str | None = None,
        lat: float | None = 28.1,
        lon: float | None = -15.4,
        status: MemberStatus = MemberStatus.ON_ROUTE,
        updated_at: datetime | None = None,
    ) -> MemberPresence:
        return MemberPresence(
            member_id=member_id,
            user=RideUser(
                id=f"u-{member_id}",
                name=name or f"Rider {member_id}",
                username=f"rider{member_id}",
            ),
            status=status,
            latitude=lat,
            longitude=lon,
            last_location_update_at=updated_at,
        )

    return _make


@pytest.fixture
def make_sample(scheduler: ManualScheduler) -> Callable[..., PositionSample]:
    def _make(lat: float = 28.1, lon: float = -15.4, accuracy: float | None = 5.0):
        return PositionSample(
            latitude=lat,
            longitude=lon,
            captured_at=scheduler.now(),
            accuracy=accuracy,
        )

    return _make
