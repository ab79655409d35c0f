from __future__ import annotations

import logging
import os
from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from src.adapters.api.controllers.session import router as session_router
from src.adapters.backend import HttpRideBackend
from src.adapters.config import RideTrackerConfig
from src.adapters.position import ReplayPositionSource
from src.adapters.rendering import InMemoryMapRenderer
from src.adapters.scheduling import AsyncioScheduler
from src.app.services.ride_session_service import RideSessionService

logger = logging.getLogger("uvicorn.error")


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Follow the configured ride for the lifetime of the app.

    Without RIDE_ID / RIDE_GROUP_ID the app still serves /health and the
    session routes answer 503.
    """

    config = RideTrackerConfig.from_env()
    context = config.ride_context()
    if context is None:
        app.state.ride_session = None
        yield
        return

    backend = HttpRideBackend()
    scheduler = AsyncioScheduler()
    session = RideSessionService(
        backend=backend,
        scheduler=scheduler,
        position_source=ReplayPositionSource(scheduler=scheduler),
        renderer=InMemoryMapRenderer(),
        settings=config.tracker_settings(),
    )
    ride = await session.activate(context)
    if ride is None:
        logger.warning("Ride session could not be activated")
    app.state.ride_session = session
    try:
        yield
    finally:
        session.close()
        await backend.aclose()


app = FastAPI(title="RideTracker", lifespan=lifespan)
app.include_router(session_router)


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Ensure API errors are JSON so the dashboard can display them."""

    logger.exception("Unhandled exception", extra={"path": str(request.url.path)})

    reveal = (os.getenv("RIDETRACKER_REVEAL_ERRORS") or "").strip().lower() in {
        "1",
        "true",
        "yes",
        "on",
    }

    if reveal or isinstance(exc, (RuntimeError, ValueError)):
        detail = str(exc) or exc.__class__.__name__
    else:
        detail = "Internal Server Error"

    return JSONResponse(status_code=500, content={"detail": detail})


@app.get("/health")
def health() -> dict[str, str]:
    return {"status": "ok"}
