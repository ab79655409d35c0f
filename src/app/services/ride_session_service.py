from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Callable

from src.app.ports.output import IMapRenderer, IPositionSource, IRideBackend, IScheduler
from src.domain.exceptions import PositionCapabilityUnavailable
from src.domain.models import (
    ActiveRideContext,
    AlertCategory,
    GroupContext,
    PositionOptions,
    Ride,
    RideContext,
)

from .alert_engine_service import AlertEngineService
from .anomaly_detector_service import AnomalyDetectorService
from .location_sync_service import LocationSyncService
from .marker_reconciler_service import MarkerReconcilerService
from .presence_poller_service import PresencePollerService

logger = logging.getLogger(__name__)

DEFAULT_EMERGENCY_MESSAGE = "Emergency assistance needed!"


@dataclass(frozen=True, slots=True)
class TrackerSettings:
    update_interval_s: float = 5.0
    poll_interval_s: float = 3.0
    alert_sync_interval_s: float = 10.0
    alert_server_sync: bool = True
    stale_after_s: float = 300.0
    stale_alert_duration_ms: int = 10_000
    position_timeout_s: float = 10.0
    high_accuracy: bool = True


@dataclass(slots=True)
class RideSessionService:
    """One rider's live view of a ride.

    Resolves the ride context once, then wires the roster poller into the
    anomaly detector and the marker reconciler, and owns location sharing
    and the alert engine for that ride.
    """

    backend: IRideBackend
    scheduler: IScheduler
    position_source: IPositionSource
    renderer: IMapRenderer
    settings: TrackerSettings = field(default_factory=TrackerSettings)

    alerts: AlertEngineService = field(init=False)
    poller: PresencePollerService = field(init=False)
    detector: AnomalyDetectorService = field(init=False)
    reconciler: MarkerReconcilerService = field(init=False)
    tracker: LocationSyncService | None = field(default=None, init=False)

    _ride: Ride | None = field(default=None, init=False)
    _unsubscribers: list[Callable[[], None]] = field(
        default_factory=list, init=False, repr=False
    )

    def __post_init__(self) -> None:
        self.alerts = AlertEngineService(
            backend=self.backend,
            scheduler=self.scheduler,
            enable_server_sync=self.settings.alert_server_sync,
            server_sync_interval_s=self.settings.alert_sync_interval_s,
        )
        self.poller = PresencePollerService(
            backend=self.backend,
            scheduler=self.scheduler,
            poll_interval_s=self.settings.poll_interval_s,
        )
        self.detector = AnomalyDetectorService(
            alert_engine=self.alerts,
            scheduler=self.scheduler,
            stale_after_s=self.settings.stale_after_s,
            alert_duration_ms=self.settings.stale_alert_duration_ms,
        )
        self.reconciler = MarkerReconcilerService(
            renderer=self.renderer, scheduler=self.scheduler
        )

    @property
    def ride(self) -> Ride | None:
        return self._ride

    @property
    def is_tracking(self) -> bool:
        return self.tracker is not None and self.tracker.is_tracking

    async def activate(self, context: RideContext) -> Ride | None:
        """Resolve `context` into a ride and start following it.

        A group gets a fresh ride created for it; failures surface as error
        alerts and leave the session inactive.
        """

        self.deactivate()

        if isinstance(context, GroupContext):
            ride = await self._create_ride_for_group(context)
            if ride is None:
                return None
        elif isinstance(context, ActiveRideContext):
            ride = context.ride
        else:
            raise TypeError(f"Unsupported ride context: {type(context).__name__}")

        self._ride = ride
        self.alerts.start_server_sync(ride.id)
        self._unsubscribers.append(self.poller.subscribe(self.detector.on_snapshot))
        self._unsubscribers.append(self.poller.subscribe(self.reconciler.on_snapshot))
        self.poller.start(ride.id)

        self.tracker = LocationSyncService(
            backend=self.backend,
            position_source=self.position_source,
            scheduler=self.scheduler,
            ride_id=ride.id,
            update_interval_s=self.settings.update_interval_s,
            options=PositionOptions(
                enable_high_accuracy=self.settings.high_accuracy,
                timeout_s=self.settings.position_timeout_s,
            ),
        )
        logger.info("Ride session active: %s (%s)", ride.name, ride.id)

        if isinstance(context, GroupContext):
            await self.alerts.show_success_alert("Ride started successfully!")
        return ride

    async def _create_ride_for_group(self, group: GroupContext) -> Ride | None:
        try:
            response = await self.backend.create_ride(
                group_id=group.group_id,
                name=group.name or "Group Ride",
                description=group.description or "",
            )
        except Exception as exc:
            logger.error("Error initializing ride for group %s: %s", group.group_id, exc)
            await self.alerts.show_error_alert("Failed to initialize ride")
            return None

        if not response.success or response.data is None:
            logger.warning("Ride creation rejected: %s", response.message)
            await self.alerts.show_error_alert("Failed to start ride")
            return None
        return response.data

    async def toggle_tracking(self) -> bool:
        """Start or stop sharing this device's position; returns the new state."""

        if self.tracker is None:
            await self.alerts.show_error_alert("No active ride")
            return False

        if self.tracker.is_tracking:
            self.tracker.stop_tracking()
            self.alerts.add_alert("Location sharing stopped", AlertCategory.INFO)
            return False

        try:
            self.tracker.start_tracking()
        except PositionCapabilityUnavailable as exc:
            await self.alerts.show_error_alert(str(exc))
            return False

        if self.tracker.is_tracking:
            await self.alerts.show_success_alert(
                "Location sharing started - your position is now visible to group members"
            )
        return self.tracker.is_tracking

    async def send_emergency(self, message: str = DEFAULT_EMERGENCY_MESSAGE) -> str:
        return await self.alerts.send_emergency_alert(message)

    async def end_ride(self) -> bool:
        ride = self._ride
        if ride is None:
            return False

        try:
            response = await self.backend.end_ride(ride.id)
        except Exception as exc:
            logger.error("Error ending ride %s: %s", ride.id, exc)
            await self.alerts.show_error_alert("Failed to end ride")
            return False

        if not response.success:
            await self.alerts.show_error_alert("Failed to end ride")
            return False

        await self.alerts.show_success_alert("Ride ended successfully")
        self.deactivate()
        return True

    def deactivate(self) -> None:
        """Release every timer, watch and subscription owned by the session."""

        for unsubscribe in self._unsubscribers:
            unsubscribe()
        self._unsubscribers.clear()

        if self.tracker is not None:
            self.tracker.stop_tracking()
            self.tracker = None
        self.poller.stop()
        self.alerts.stop_server_sync()
        self.detector.reset()
        self.reconciler.clear()
        if self._ride is not None:
            logger.info("Ride session closed: %s", self._ride.id)
        self._ride = None

    def close(self) -> None:
        self.deactivate()
        self.alerts.close()
