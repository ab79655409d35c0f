from __future__ import annotations

import logging
from dataclasses import dataclass, field
from functools import partial
from typing import Callable
from uuid import uuid4

from src.app.ports.output import Cancellable, IRideBackend, IScheduler
from src.domain.models import (
    Alert,
    AlertCategory,
    AlertSeverity,
    ServerAlertType,
)

from .publisher import Publisher

logger = logging.getLogger(__name__)

SEND_FAILED_MESSAGE = "Failed to send alert to server"
EMERGENCY_FAILED_MESSAGE = "Failed to send emergency alert"
NO_RIDE_MESSAGE = "No active ride to send the alert to"


@dataclass(slots=True)
class AlertEngineService:
    """Local ephemeral alerts plus the ride's server-side alerts.

    Local alerts live until their expiry timer fires or they are dismissed;
    emergencies never expire on their own. Server alerts are a read-only
    mirror replaced wholesale on every successful sync.

    `alerts` lists local alerts in creation order, then server alerts in the
    order the backend returned them.
    """

    backend: IRideBackend
    scheduler: IScheduler
    ride_id: str | None = None
    enable_server_sync: bool = False
    server_sync_interval_s: float = 10.0
    default_duration_ms: int = 5000

    _local: list[Alert] = field(default_factory=list, init=False)
    _server: tuple[Alert, ...] = field(default=(), init=False)
    _hidden_server_ids: set[str] = field(default_factory=set, init=False)
    _timers: dict[str, Cancellable] = field(
        default_factory=dict, init=False, repr=False
    )
    _sync: Cancellable | None = field(default=None, init=False, repr=False)
    _sync_kickoff: Cancellable | None = field(default=None, init=False, repr=False)
    _sync_generation: int = field(default=0, init=False)
    _updates: Publisher[tuple[Alert, ...]] = field(
        default_factory=Publisher, init=False, repr=False
    )

    @property
    def alerts(self) -> tuple[Alert, ...]:
        server = tuple(a for a in self._server if a.id not in self._hidden_server_ids)
        return tuple(self._local) + server

    @property
    def pending_timers(self) -> int:
        return len(self._timers)

    @property
    def _pushes_to_server(self) -> bool:
        return self.enable_server_sync and bool(self.ride_id)

    def subscribe(
        self, callback: Callable[[tuple[Alert, ...]], None]
    ) -> Callable[[], None]:
        return self._updates.subscribe(callback)

    # Local alerts

    def add_alert(
        self,
        message: str,
        category: AlertCategory = AlertCategory.INFO,
        duration_ms: int | None = None,
    ) -> str:
        duration = self.default_duration_ms if duration_ms is None else int(duration_ms)
        if duration < 0:
            raise ValueError(f"Invalid alert duration: {duration}")
        if category is AlertCategory.EMERGENCY:
            duration = 0

        alert = Alert(
            id=uuid4().hex,
            message=message,
            category=category,
            created_at=self.scheduler.now(),
            expires_after_ms=duration,
            ride_id=self.ride_id,
        )
        self._local.append(alert)

        if duration > 0:
            self._timers[alert.id] = self.scheduler.call_later(
                duration / 1000.0, partial(self._expire, alert.id)
            )

        logger.debug("Alert %s (%s): %s", alert.id, category.value, message)
        self._publish()
        return alert.id

    def dismiss(self, alert_id: str) -> bool:
        """Drop an alert from view; unknown or already expired ids are a no-op."""

        timer = self._timers.pop(alert_id, None)
        if timer is not None:
            timer.cancel()

        if self._remove_local(alert_id):
            self._publish()
            return True

        if any(a.id == alert_id for a in self._server):
            self._hidden_server_ids.add(alert_id)
            self._publish()
            return True

        return False

    def clear_all(self) -> None:
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()
        self._local.clear()
        self._publish()

    def _expire(self, alert_id: str) -> None:
        self._timers.pop(alert_id, None)
        if self._remove_local(alert_id):
            self._publish()

    def _remove_local(self, alert_id: str) -> bool:
        for i, alert in enumerate(self._local):
            if alert.id == alert_id:
                del self._local[i]
                return True
        return False

    # Server sync

    def start_server_sync(self, ride_id: str | None = None) -> None:
        if ride_id is not None:
            self.ride_id = ride_id
        if not self.enable_server_sync or not self.ride_id:
            return

        self.stop_server_sync()
        self._server = ()
        self._hidden_server_ids.clear()

        generation = self._sync_generation
        self._sync = self.scheduler.call_every(
            self.server_sync_interval_s, lambda: self._sync_server_alerts(generation)
        )
        self._sync_kickoff = self.scheduler.spawn(self._sync_server_alerts(generation))

    def stop_server_sync(self) -> None:
        self._sync_generation += 1
        if self._sync is not None:
            self._sync.cancel()
            self._sync = None
        if self._sync_kickoff is not None:
            self._sync_kickoff.cancel()
            self._sync_kickoff = None

    async def _sync_server_alerts(self, generation: int) -> None:
        ride_id = self.ride_id
        if not ride_id or generation != self._sync_generation:
            return

        try:
            response = await self.backend.list_alerts(ride_id)
        except Exception as exc:
            logger.warning("Failed to fetch server alerts for ride %s: %s", ride_id, exc)
            return

        if generation != self._sync_generation:
            return
        if not response.success:
            logger.warning(
                "Server alert fetch rejected for ride %s: %s", ride_id, response.message
            )
            return

        self._server = tuple(a.to_alert() for a in response.data or ())
        self._publish()

    async def mark_read(self, alert_id: str) -> bool:
        try:
            response = await self.backend.mark_alert_read(alert_id)
        except Exception as exc:
            logger.warning("Failed to mark alert %s as read: %s", alert_id, exc)
            return False
        if not response.success:
            logger.warning("Mark-read rejected for %s: %s", alert_id, response.message)
        return response.success

    # Senders

    async def send_server_alert(
        self,
        message: str,
        alert_type: ServerAlertType,
        severity: AlertSeverity = AlertSeverity.MEDIUM,
    ) -> str:
        """Record an alert on the backend and mirror it locally.

        Returns the id of the local alert that was added: the mirrored alert
        when the backend accepted it, an `error` alert otherwise.
        """

        ride_id = self.ride_id
        if not ride_id:
            logger.warning("Dropping server alert without a ride: %s", message)
            return self.add_alert(NO_RIDE_MESSAGE, AlertCategory.ERROR)

        try:
            response = await self.backend.create_alert(
                ride_id=ride_id,
                alert_type=alert_type,
                message=message,
                severity=severity,
            )
        except Exception as exc:
            logger.warning("Failed to send server alert: %s", exc)
            return self.add_alert(SEND_FAILED_MESSAGE, AlertCategory.ERROR)

        if not response.success:
            logger.warning("Server alert rejected: %s", response.message)
            return self.add_alert(SEND_FAILED_MESSAGE, AlertCategory.ERROR)

        category = (
            AlertCategory.EMERGENCY
            if alert_type is ServerAlertType.EMERGENCY
            else AlertCategory.INFO
        )
        return self.add_alert(message, category, 0)

    async def send_emergency_alert(self, message: str) -> str:
        ride_id = self.ride_id
        if not ride_id:
            logger.warning("Dropping emergency alert without a ride: %s", message)
            return self.add_alert(NO_RIDE_MESSAGE, AlertCategory.ERROR)

        try:
            response = await self.backend.create_emergency_alert(
                ride_id=ride_id, message=message
            )
        except Exception as exc:
            logger.error("Failed to send emergency alert: %s", exc)
            return self.add_alert(EMERGENCY_FAILED_MESSAGE, AlertCategory.ERROR)

        if not response.success:
            logger.error("Emergency alert rejected: %s", response.message)
            return self.add_alert(EMERGENCY_FAILED_MESSAGE, AlertCategory.ERROR)

        return self.add_alert(f"EMERGENCY: {message}", AlertCategory.EMERGENCY, 0)

    async def show_location_alert(self, member_name: str, action: str) -> str:
        message = f"{member_name} {action}"
        alert_id = self.add_alert(message, AlertCategory.INFO)
        if self._pushes_to_server:
            await self.send_server_alert(
                message, ServerAlertType.LOCATION_UPDATE, AlertSeverity.LOW
            )
        return alert_id

    async def show_traffic_alert(self, message: str) -> str:
        alert_message = f"Traffic Alert: {message}"
        alert_id = self.add_alert(alert_message, AlertCategory.WARNING)
        if self._pushes_to_server:
            await self.send_server_alert(
                alert_message, ServerAlertType.TRAFFIC, AlertSeverity.MEDIUM
            )
        return alert_id

    async def show_error_alert(self, message: str) -> str:
        alert_message = f"Error: {message}"
        alert_id = self.add_alert(alert_message, AlertCategory.ERROR)
        if self._pushes_to_server:
            await self.send_server_alert(
                alert_message, ServerAlertType.SYSTEM, AlertSeverity.HIGH
            )
        return alert_id

    async def show_success_alert(self, message: str) -> str:
        alert_id = self.add_alert(message, AlertCategory.SUCCESS)
        if self._pushes_to_server:
            await self.send_server_alert(
                message, ServerAlertType.SYSTEM, AlertSeverity.LOW
            )
        return alert_id

    def close(self) -> None:
        """Stop syncing and cancel every pending expiry timer."""

        self.stop_server_sync()
        for timer in self._timers.values():
            timer.cancel()
        self._timers.clear()

    def _publish(self) -> None:
        self._updates.publish(self.alerts)
