from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from typing import Callable

from src.app.ports.output import Cancellable, IRideBackend, IScheduler
from src.domain.models import MemberPresence, PresenceSnapshot

from .publisher import Publisher

logger = logging.getLogger(__name__)

FETCH_REJECTED_MESSAGE = "Failed to fetch ride updates"
FETCH_NETWORK_MESSAGE = "Network error while fetching updates"


@dataclass(slots=True)
class PresencePollerService:
    """Keeps a fresh copy of the ride roster by polling the backend.

    A successful poll replaces the snapshot wholesale. A failed poll only
    flips `is_connected` and records the error: the last good roster stays.
    """

    backend: IRideBackend
    scheduler: IScheduler
    poll_interval_s: float = 3.0

    fetch_count: int = field(default=0, init=False)

    _ride_id: str | None = field(default=None, init=False)
    _members: tuple[MemberPresence, ...] = field(default=(), init=False)
    _is_connected: bool = field(default=False, init=False)
    _error: str | None = field(default=None, init=False)
    _last_update: datetime | None = field(default=None, init=False)
    _generation: int = field(default=0, init=False)
    _interval: Cancellable | None = field(default=None, init=False, repr=False)
    _out_of_band: list[Cancellable] = field(
        default_factory=list, init=False, repr=False
    )
    _updates: Publisher[PresenceSnapshot] = field(
        default_factory=Publisher, init=False, repr=False
    )

    @property
    def ride_id(self) -> str | None:
        return self._ride_id

    @property
    def members(self) -> tuple[MemberPresence, ...]:
        return self._members

    @property
    def is_connected(self) -> bool:
        return self._is_connected

    @property
    def error(self) -> str | None:
        return self._error

    @property
    def last_update(self) -> datetime | None:
        return self._last_update

    @property
    def is_polling(self) -> bool:
        return self._interval is not None

    def snapshot(self) -> PresenceSnapshot:
        return PresenceSnapshot(
            ride_id=self._ride_id,
            members=self._members,
            is_connected=self._is_connected,
            error=self._error,
            last_update=self._last_update,
        )

    def subscribe(
        self, callback: Callable[[PresenceSnapshot], None]
    ) -> Callable[[], None]:
        return self._updates.subscribe(callback)

    def start(self, ride_id: str) -> None:
        """Poll `ride_id` now and then every `poll_interval_s`.

        Starting with a different ride drops everything known about the
        previous one.
        """

        if ride_id == self._ride_id and self.is_polling:
            return

        self._halt()
        if ride_id != self._ride_id:
            self._members = ()
            self._error = None
            self._last_update = None
        self._ride_id = ride_id

        generation = self._generation
        self._interval = self.scheduler.call_every(
            self.poll_interval_s, lambda: self._fetch(generation)
        )
        self._out_of_band.append(self.scheduler.spawn(self._fetch(generation)))
        logger.info(
            "Polling ride %s every %.1fs", ride_id, float(self.poll_interval_s)
        )

    def stop(self) -> None:
        was_polling = self.is_polling
        self._halt()
        if was_polling:
            logger.info("Stopped polling ride %s", self._ride_id)
            self._publish()

    def _halt(self) -> None:
        self._generation += 1
        if self._interval is not None:
            self._interval.cancel()
            self._interval = None
        for handle in self._out_of_band:
            handle.cancel()
        self._out_of_band.clear()
        self._is_connected = False

    async def refresh(self) -> None:
        """Out-of-band fetch; the polling schedule is left untouched.

        Does nothing unless polling, so a stopped poller stays disconnected.
        """

        if self._ride_id is None or not self.is_polling:
            return
        await self._fetch(self._generation)

    async def _fetch(self, generation: int) -> None:
        ride_id = self._ride_id
        if ride_id is None or generation != self._generation:
            return

        self.fetch_count += 1
        try:
            response = await self.backend.list_members(ride_id)
        except Exception as exc:
            if generation != self._generation:
                return
            logger.warning("Real-time update error for ride %s: %s", ride_id, exc)
            self._is_connected = False
            self._error = FETCH_NETWORK_MESSAGE
            self._publish()
            return

        # The ride may have changed while the request was in flight.
        if generation != self._generation:
            return

        if response.success:
            self._members = tuple(response.data or ())
            self._last_update = self.scheduler.now()
            self._error = None
            self._is_connected = True
        else:
            logger.warning(
                "Roster fetch rejected for ride %s: %s", ride_id, response.message
            )
            self._is_connected = False
            self._error = FETCH_REJECTED_MESSAGE
        self._publish()

    def _publish(self) -> None:
        self._updates.publish(self.snapshot())
