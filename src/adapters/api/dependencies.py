from __future__ import annotations

from fastapi import HTTPException, Request

from src.app.services.ride_session_service import RideSessionService


def get_ride_session(request: Request) -> RideSessionService:
    session = getattr(request.app.state, "ride_session", None)
    if session is None:
        raise HTTPException(status_code=503, detail="Ride session not configured")
    return session
