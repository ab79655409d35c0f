from __future__ import annotations

import itertools
import logging
from dataclasses import dataclass, field
from datetime import datetime
from functools import partial
from typing import Callable

from src.app.ports.output import Cancellable, IPositionSource, IRideBackend, IScheduler
from src.domain.exceptions import PositionCapabilityUnavailable, PositionError
from src.domain.models import PositionOptions, PositionSample, TrackingState

from .publisher import Publisher

logger = logging.getLogger(__name__)

UNSUPPORTED_MESSAGE = "Geolocation is not supported by this device"
SYNC_REJECTED_MESSAGE = "Failed to sync location to server"
SYNC_NETWORK_MESSAGE = "Network error while syncing location"


@dataclass(slots=True)
class LocationSyncService:
    """Captures this device's position and keeps the ride backend up to date.

    - Every accepted sample (initial fix or continuous watch) is uploaded.
    - Independently, the latest sample is re-uploaded every
      `update_interval_s` so stationary riders do not look stale.
    - Upload failures only set `error`; tracking keeps going and the next
      sample or tick retries.

    Each `start_tracking()` opens a new session; callbacks and uploads from an
    older session are ignored, so nothing can revive state after a stop.
    """

    backend: IRideBackend
    position_source: IPositionSource
    scheduler: IScheduler
    ride_id: str
    update_interval_s: float = 5.0
    options: PositionOptions = field(default_factory=PositionOptions)

    upload_attempts: int = field(default=0, init=False)

    _is_tracking: bool = field(default=False, init=False)
    _current: PositionSample | None = field(default=None, init=False)
    _last_sync: datetime | None = field(default=None, init=False)
    _error: str | None = field(default=None, init=False)
    _session: int = field(default=0, init=False)
    _fix: Cancellable | None = field(default=None, init=False, repr=False)
    _watch: Cancellable | None = field(default=None, init=False, repr=False)
    _interval: Cancellable | None = field(default=None, init=False, repr=False)
    _uploads: dict[int, Cancellable] = field(
        default_factory=dict, init=False, repr=False
    )
    _upload_ids: itertools.count = field(
        default_factory=itertools.count, init=False, repr=False
    )
    _updates: Publisher[TrackingState] = field(
        default_factory=Publisher, init=False, repr=False
    )

    @property
    def is_tracking(self) -> bool:
        return self._is_tracking

    @property
    def current_position(self) -> PositionSample | None:
        return self._current

    @property
    def last_sync_time(self) -> datetime | None:
        return self._last_sync

    @property
    def error(self) -> str | None:
        return self._error

    def snapshot(self) -> TrackingState:
        return TrackingState(
            is_tracking=self._is_tracking,
            current_position=self._current,
            last_sync_time=self._last_sync,
            error=self._error,
        )

    def subscribe(self, callback: Callable[[TrackingState], None]) -> Callable[[], None]:
        return self._updates.subscribe(callback)

    def start_tracking(self) -> None:
        if self._is_tracking:
            return

        if not self.position_source.is_available():
            self._error = UNSUPPORTED_MESSAGE
            self._publish()
            raise PositionCapabilityUnavailable(UNSUPPORTED_MESSAGE)

        self._session += 1
        session = self._session
        self._is_tracking = True
        self._error = None

        on_sample = partial(self._on_sample, session)
        on_error = partial(self._on_error, session)

        # Either call may report an error synchronously and end the session.
        fix = self.position_source.get_current_position(
            partial(self._on_fix, session), on_error, self.options
        )
        if not self._active(session):
            fix.cancel()
            return
        self._fix = fix

        watch = self.position_source.watch_position(on_sample, on_error, self.options)
        if not self._active(session):
            watch.cancel()
            return
        self._watch = watch

        self._interval = self.scheduler.call_every(
            self.update_interval_s, partial(self._tick, session)
        )
        logger.info("Location tracking started for ride %s", self.ride_id)
        self._publish()

    def stop_tracking(self) -> None:
        was_tracking = self._is_tracking
        self._teardown()
        self._current = None
        self._error = None
        if was_tracking:
            logger.info("Location tracking stopped for ride %s", self.ride_id)
        self._publish()

    def _active(self, session: int) -> bool:
        return self._is_tracking and session == self._session

    def _teardown(self) -> None:
        self._session += 1
        self._is_tracking = False
        if self._fix is not None:
            self._fix.cancel()
            self._fix = None
        if self._watch is not None:
            self._watch.cancel()
            self._watch = None
        if self._interval is not None:
            self._interval.cancel()
            self._interval = None
        for handle in self._uploads.values():
            handle.cancel()
        self._uploads.clear()

    def _on_fix(self, session: int, sample: PositionSample) -> None:
        if self._active(session) and self._fix is not None:
            self._fix.cancel()
            self._fix = None
        self._on_sample(session, sample)

    def _on_sample(self, session: int, sample: PositionSample) -> None:
        if not self._active(session):
            return
        self._current = sample
        self._publish()

        upload_id = next(self._upload_ids)
        self.upload_attempts += 1
        self._uploads[upload_id] = self.scheduler.spawn(
            self._upload(session, sample, upload_id)
        )

    def _on_error(self, session: int, error: PositionError) -> None:
        if not self._active(session):
            return
        logger.warning("Position error (%s): %s", error.code.name, error)
        self._teardown()
        self._error = error.user_message
        self._publish()

    async def _tick(self, session: int) -> None:
        sample = self._current
        if sample is None or not self._active(session):
            return
        self.upload_attempts += 1
        await self._upload(session, sample)

    async def _upload(
        self, session: int, sample: PositionSample, upload_id: int | None = None
    ) -> None:
        try:
            try:
                response = await self.backend.update_position(
                    self.ride_id,
                    sample.latitude,
                    sample.longitude,
                    sample.accuracy,
                )
            except Exception as exc:
                if self._active(session):
                    logger.warning("Location sync error: %s", exc)
                    self._error = SYNC_NETWORK_MESSAGE
                    self._publish()
                return

            if not self._active(session):
                return

            if response.success:
                self._last_sync = self.scheduler.now()
                self._error = None
            else:
                logger.warning(
                    "Location sync rejected for ride %s: %s",
                    self.ride_id,
                    response.message,
                )
                self._error = SYNC_REJECTED_MESSAGE
            self._publish()
        finally:
            if upload_id is not None:
                self._uploads.pop(upload_id, None)

    def _publish(self) -> None:
        self._updates.publish(self.snapshot())
