from __future__ import annotations

from abc import ABC, abstractmethod

from src.domain.models import (
    AlertSeverity,
    ApiEnvelope,
    MemberPresence,
    Ride,
    ServerAlert,
    ServerAlertType,
)


class IRideBackend(ABC):
    """Port for the ride backend.

    Every call returns an `ApiEnvelope`; `success=False` is an application
    rejection. Network/HTTP failures raise `TransportError` instead.
    """

    @abstractmethod
    async def update_position(
        self,
        ride_id: str,
        latitude: float,
        longitude: float,
        accuracy: float | None = None,
    ) -> ApiEnvelope[dict]:
        """Upsert the caller's current position for the ride."""

    @abstractmethod
    async def list_members(self, ride_id: str) -> ApiEnvelope[tuple[MemberPresence, ...]]:
        raise NotImplementedError

    @abstractmethod
    async def list_alerts(self, ride_id: str) -> ApiEnvelope[tuple[ServerAlert, ...]]:
        """Server-recorded alerts for the ride, most relevant first."""

    @abstractmethod
    async def create_alert(
        self,
        *,
        ride_id: str,
        alert_type: ServerAlertType,
        message: str,
        severity: AlertSeverity,
    ) -> ApiEnvelope[ServerAlert]:
        raise NotImplementedError

    @abstractmethod
    async def create_emergency_alert(
        self, *, ride_id: str, message: str
    ) -> ApiEnvelope[ServerAlert]:
        """Emergency type with critical severity."""

    @abstractmethod
    async def create_ride(
        self, *, group_id: str, name: str, description: str | None = None
    ) -> ApiEnvelope[Ride]:
        raise NotImplementedError

    @abstractmethod
    async def end_ride(self, ride_id: str) -> ApiEnvelope[Ride]:
        raise NotImplementedError

    @abstractmethod
    async def mark_alert_read(self, alert_id: str) -> ApiEnvelope[None]:
        raise NotImplementedError
