from __future__ import annotations

import csv
import logging
import os
from dataclasses import dataclass, field
from pathlib import Path

from src.app.ports.output import (
    Cancellable,
    ErrorCallback,
    IPositionSource,
    IScheduler,
    SampleCallback,
)
from src.domain.exceptions import PositionError, PositionErrorCode
from src.domain.models import PositionOptions, PositionSample

logger = logging.getLogger(__name__)

TrackPoint = tuple[float, float, "float | None"]


@dataclass(slots=True)
class ReplayPositionSource(IPositionSource):
    """Replays a recorded track as if it came from a GPS receiver.

    The track is a CSV file with `latitude`, `longitude` and an optional
    `accuracy` column (meters). Rows with missing/out-of-range values are
    skipped.

    Env vars:
      - POSITION_REPLAY_FILE: path to the CSV track
      - POSITION_REPLAY_INTERVAL_S: seconds between watch samples (default 2)

    Notes:
      - After the last point the source keeps reporting it (rider stopped),
        unless `loop` is set.
      - A fix that takes longer than `options.timeout_s` (see `fix_delay_s`)
        is reported as a TIMEOUT error instead.
    """

    scheduler: IScheduler
    path: str | Path | None = None
    interval_s: float = 2.0
    fix_delay_s: float = 0.0
    loop: bool = False

    _track: tuple[TrackPoint, ...] | None = field(default=None, init=False, repr=False)
    _cursor: int = field(default=0, init=False)

    def __post_init__(self) -> None:
        if self.path is None:
            self.path = os.getenv("POSITION_REPLAY_FILE") or None
        if os.getenv("POSITION_REPLAY_INTERVAL_S"):
            self.interval_s = float(os.environ["POSITION_REPLAY_INTERVAL_S"])

    def is_available(self) -> bool:
        return self.path is not None and Path(self.path).is_file()

    def _load(self) -> tuple[TrackPoint, ...]:
        if self._track is not None:
            return self._track

        points: list[TrackPoint] = []
        if self.path is not None:
            with Path(self.path).open("r", encoding="utf-8", newline="") as fp:
                reader = csv.DictReader(fp)
                for row in reader:
                    try:
                        lat = float((row.get("latitude") or "").strip())
                        lon = float((row.get("longitude") or "").strip())
                    except ValueError:
                        continue
                    if not (-90.0 <= lat <= 90.0 and -180.0 <= lon <= 180.0):
                        continue
                    raw_acc = (row.get("accuracy") or "").strip()
                    accuracy = float(raw_acc) if raw_acc else None
                    points.append((lat, lon, accuracy))

        logger.info("Loaded %d replay points from %s", len(points), self.path)
        self._track = tuple(points)
        return self._track

    def _next_sample(self) -> PositionSample | None:
        track = self._load()
        if not track:
            return None

        lat, lon, accuracy = track[self._cursor]
        if self._cursor + 1 < len(track):
            self._cursor += 1
        elif self.loop:
            self._cursor = 0

        return PositionSample(
            latitude=lat,
            longitude=lon,
            captured_at=self.scheduler.now(),
            accuracy=accuracy,
        )

    def get_current_position(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: PositionOptions,
    ) -> Cancellable:
        if self.fix_delay_s > options.timeout_s:
            return self.scheduler.call_later(
                options.timeout_s,
                lambda: on_error(PositionError(PositionErrorCode.TIMEOUT)),
            )

        sample = self._next_sample()
        if sample is None:
            return self.scheduler.call_later(
                0.0,
                lambda: on_error(PositionError(PositionErrorCode.POSITION_UNAVAILABLE)),
            )
        return self.scheduler.call_later(self.fix_delay_s, lambda: on_sample(sample))

    def watch_position(
        self,
        on_sample: SampleCallback,
        on_error: ErrorCallback,
        options: PositionOptions,
    ) -> Cancellable:
        async def _emit() -> None:
            sample = self._next_sample()
            if sample is None:
                on_error(PositionError(PositionErrorCode.POSITION_UNAVAILABLE))
                return
            on_sample(sample)

        return self.scheduler.call_every(self.interval_s, _emit)
