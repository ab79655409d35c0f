from __future__ import annotations

import asyncio
import logging
import os

from src.adapters.backend import HttpRideBackend
from src.adapters.config import RideTrackerConfig
from src.adapters.position import ReplayPositionSource
from src.adapters.rendering import InMemoryMapRenderer
from src.adapters.scheduling import AsyncioScheduler
from src.app.services.ride_session_service import RideSessionService
from src.domain.models import Alert

logger = logging.getLogger("ridetracker.worker")


def _log_new_alerts(seen: set[str]):
    def _on_alerts(alerts: tuple[Alert, ...]) -> None:
        for alert in alerts:
            if alert.id in seen:
                continue
            seen.add(alert.id)
            logger.info("[%s] %s", alert.category.value.upper(), alert.message)
        # Forget dismissed/expired ids.
        seen.intersection_update(a.id for a in alerts)

    return _on_alerts


async def run(config: RideTrackerConfig, *, run_seconds: float | None = None) -> None:
    context = config.ride_context()
    if context is None:
        raise RuntimeError("Missing RIDE_ID or RIDE_GROUP_ID")

    backend = HttpRideBackend()
    scheduler = AsyncioScheduler()
    position_source = ReplayPositionSource(scheduler=scheduler)
    session = RideSessionService(
        backend=backend,
        scheduler=scheduler,
        position_source=position_source,
        renderer=InMemoryMapRenderer(),
        settings=config.tracker_settings(),
    )
    session.alerts.subscribe(_log_new_alerts(set()))

    try:
        ride = await session.activate(context)
        if ride is None:
            return

        if position_source.is_available():
            await session.toggle_tracking()
        else:
            logger.info("No replay track configured; following the ride read-only")

        if run_seconds is None:
            await asyncio.Event().wait()
        else:
            await asyncio.sleep(run_seconds)
    finally:
        session.close()
        await backend.aclose()


def main() -> None:
    logging.basicConfig(
        level=os.getenv("LOG_LEVEL", "INFO").upper(),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )

    raw = (os.getenv("WORKER_RUN_SECONDS") or "").strip()
    run_seconds = float(raw) if raw else None

    try:
        asyncio.run(run(RideTrackerConfig.from_env(), run_seconds=run_seconds))
    except KeyboardInterrupt:
        logger.info("Interrupted; ride session closed")


if __name__ == "__main__":
    main()
