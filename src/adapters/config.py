from __future__ import annotations

import os
from dataclasses import dataclass

from src.app.services.ride_session_service import TrackerSettings
from src.domain.models import (
    ActiveRideContext,
    GroupContext,
    Ride,
    RideContext,
    RideStatus,
)


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None:
        return default
    return raw.strip().lower() in {"1", "true", "yes", "y", "on"}


def _env_float(name: str, default: float) -> float:
    raw = (os.getenv(name) or "").strip()
    return float(raw) if raw else default


def _env_str(name: str) -> str | None:
    raw = os.getenv(name)
    if raw is None:
        return None
    return raw.strip() or None


@dataclass(frozen=True, slots=True)
class RideTrackerConfig:
    """Runtime configuration for the API app and the headless worker."""

    ride_id: str | None
    group_id: str | None
    ride_name: str | None
    update_interval_s: float
    poll_interval_s: float
    alert_sync_interval_s: float
    alert_server_sync: bool
    stale_after_s: float
    position_timeout_s: float

    @staticmethod
    def from_env() -> "RideTrackerConfig":
        return RideTrackerConfig(
            ride_id=_env_str("RIDE_ID"),
            group_id=_env_str("RIDE_GROUP_ID"),
            ride_name=_env_str("RIDE_NAME"),
            update_interval_s=_env_float("LOCATION_UPDATE_INTERVAL_S", 5.0),
            poll_interval_s=_env_float("PRESENCE_POLL_INTERVAL_S", 3.0),
            alert_sync_interval_s=_env_float("ALERT_SYNC_INTERVAL_S", 10.0),
            alert_server_sync=_env_bool("ALERT_SERVER_SYNC", True),
            stale_after_s=_env_float("STALE_MEMBER_THRESHOLD_S", 300.0),
            position_timeout_s=_env_float("POSITION_TIMEOUT_S", 10.0),
        )

    def tracker_settings(self) -> TrackerSettings:
        return TrackerSettings(
            update_interval_s=self.update_interval_s,
            poll_interval_s=self.poll_interval_s,
            alert_sync_interval_s=self.alert_sync_interval_s,
            alert_server_sync=self.alert_server_sync,
            stale_after_s=self.stale_after_s,
            position_timeout_s=self.position_timeout_s,
        )

    def ride_context(self) -> RideContext | None:
        """An existing ride wins over a group to start a ride for."""

        if self.ride_id:
            return ActiveRideContext(
                ride=Ride(
                    id=self.ride_id,
                    group_id=self.group_id or "",
                    name=self.ride_name or "Ride",
                    status=RideStatus.STARTED,
                )
            )
        if self.group_id:
            return GroupContext(
                group_id=self.group_id, name=self.ride_name or "Group Ride"
            )
        return None
