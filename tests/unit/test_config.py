from __future__ import annotations

import pytest

from src.adapters.config import RideTrackerConfig
from src.domain.models import ActiveRideContext, GroupContext, RideStatus

_ENV = (
    "RIDE_ID",
    "RIDE_GROUP_ID",
    "RIDE_NAME",
    "LOCATION_UPDATE_INTERVAL_S",
    "PRESENCE_POLL_INTERVAL_S",
    "ALERT_SYNC_INTERVAL_S",
    "ALERT_SERVER_SYNC",
    "STALE_MEMBER_THRESHOLD_S",
    "POSITION_TIMEOUT_S",
)


@pytest.fixture(autouse=True)
def _clean_env(monkeypatch) -> None:
    for name in _ENV:
        monkeypatch.delenv(name, raising=False)


def test_defaults() -> None:
    config = RideTrackerConfig.from_env()
    settings = config.tracker_settings()

    assert config.ride_context() is None
    assert settings.update_interval_s == 5.0
    assert settings.poll_interval_s == 3.0
    assert settings.alert_sync_interval_s == 10.0
    assert settings.alert_server_sync is True
    assert settings.stale_after_s == 300.0
    assert settings.position_timeout_s == 10.0


def test_overrides_from_env(monkeypatch) -> None:
    monkeypatch.setenv("PRESENCE_POLL_INTERVAL_S", "1.5")
    monkeypatch.setenv("ALERT_SERVER_SYNC", "no")
    monkeypatch.setenv("STALE_MEMBER_THRESHOLD_S", " 120 ")

    settings = RideTrackerConfig.from_env().tracker_settings()

    assert settings.poll_interval_s == 1.5
    assert settings.alert_server_sync is False
    assert settings.stale_after_s == 120.0


def test_ride_id_wins_over_group(monkeypatch) -> None:
    monkeypatch.setenv("RIDE_ID", "ride-1")
    monkeypatch.setenv("RIDE_GROUP_ID", "g1")
    monkeypatch.setenv("RIDE_NAME", "Sunday")

    context = RideTrackerConfig.from_env().ride_context()

    assert isinstance(context, ActiveRideContext)
    assert context.ride.id == "ride-1"
    assert context.ride.group_id == "g1"
    assert context.ride.status is RideStatus.STARTED


def test_group_only_resolves_to_group_context(monkeypatch) -> None:
    monkeypatch.setenv("RIDE_GROUP_ID", "g1")

    context = RideTrackerConfig.from_env().ride_context()

    assert context == GroupContext(group_id="g1", name="Group Ride")


def test_blank_ride_id_is_ignored(monkeypatch) -> None:
    monkeypatch.setenv("RIDE_ID", "   ")

    assert RideTrackerConfig.from_env().ride_context() is None
