from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException

from src.adapters.api.dependencies import get_ride_session
from src.adapters.api.schemas.session import (
    AlertCreatedSchema,
    AlertSchema,
    AlertsResponseSchema,
    BoundsSchema,
    EmergencyRequestSchema,
    GeoPointSchema,
    MapResponseSchema,
    MarkerSchema,
    MembersResponseSchema,
    MemberSchema,
    PositionSampleSchema,
    RideSchema,
    RideUserSchema,
    SessionSchema,
    TrackingSchema,
)
from src.app.services.marker_reconciler_service import STATUS_COLORS, STATUS_LABELS
from src.app.services.ride_session_service import RideSessionService
from src.domain.models import Alert, AlertCategory, Ride

router = APIRouter(prefix="/session", tags=["session"])


def _ride_schema(ride: Ride) -> RideSchema:
    return RideSchema(
        id=ride.id,
        group_id=ride.group_id,
        name=ride.name,
        status=ride.status.value,
        description=ride.description,
        start_location=ride.start_location,
        end_location=ride.end_location,
    )


def _alert_schema(a: Alert) -> AlertSchema:
    return AlertSchema(
        id=a.id,
        message=a.message,
        category=a.category.value,
        created_at=a.created_at,
        expires_after_ms=a.expires_after_ms,
        ride_id=a.ride_id,
        severity=a.severity.value if a.severity else None,
        origin=a.origin.value,
    )


def _tracking_schema(session: RideSessionService) -> TrackingSchema:
    if session.tracker is None:
        return TrackingSchema(is_tracking=False)
    state = session.tracker.snapshot()
    pos = state.current_position
    return TrackingSchema(
        is_tracking=state.is_tracking,
        current_position=(
            PositionSampleSchema(
                latitude=pos.latitude,
                longitude=pos.longitude,
                accuracy=pos.accuracy,
                captured_at=pos.captured_at,
            )
            if pos
            else None
        ),
        last_sync_time=state.last_sync_time,
        error=state.error,
    )


@router.get("", response_model=SessionSchema)
def get_session(
    session: RideSessionService = Depends(get_ride_session),
) -> SessionSchema:
    return SessionSchema(
        ride=_ride_schema(session.ride) if session.ride else None,
        is_connected=session.poller.is_connected,
        member_count=len(session.poller.members),
        alert_count=len(session.alerts.alerts),
        tracking=_tracking_schema(session),
    )


@router.get("/members", response_model=MembersResponseSchema)
def list_members(
    session: RideSessionService = Depends(get_ride_session),
) -> MembersResponseSchema:
    snap = session.poller.snapshot()
    return MembersResponseSchema(
        ride_id=snap.ride_id,
        is_connected=snap.is_connected,
        error=snap.error,
        last_update=snap.last_update,
        members=[
            MemberSchema(
                member_id=m.member_id,
                user=RideUserSchema(
                    id=m.user.id, name=m.user.name, username=m.user.username
                ),
                status=m.status.value,
                latitude=m.latitude,
                longitude=m.longitude,
                last_location_update_at=m.last_location_update_at,
            )
            for m in snap.members
        ],
    )


@router.post("/refresh", response_model=MembersResponseSchema)
async def refresh_members(
    session: RideSessionService = Depends(get_ride_session),
) -> MembersResponseSchema:
    await session.poller.refresh()
    return list_members(session)


@router.get("/alerts", response_model=AlertsResponseSchema)
def list_alerts(
    session: RideSessionService = Depends(get_ride_session),
) -> AlertsResponseSchema:
    alerts = session.alerts.alerts
    return AlertsResponseSchema(
        emergency_count=sum(1 for a in alerts if a.category is AlertCategory.EMERGENCY),
        alerts=[_alert_schema(a) for a in alerts],
    )


@router.delete("/alerts/{alert_id}", status_code=204)
def dismiss_alert(
    alert_id: str,
    session: RideSessionService = Depends(get_ride_session),
) -> None:
    session.alerts.dismiss(alert_id)


@router.post("/alerts/emergency", response_model=AlertCreatedSchema)
async def send_emergency(
    body: EmergencyRequestSchema,
    session: RideSessionService = Depends(get_ride_session),
) -> AlertCreatedSchema:
    alert_id = await session.send_emergency(body.message)
    return AlertCreatedSchema(alert_id=alert_id)


@router.get("/map", response_model=MapResponseSchema)
def get_map(
    session: RideSessionService = Depends(get_ride_session),
) -> MapResponseSchema:
    viewport = session.reconciler.viewport
    return MapResponseSchema(
        viewport=(
            BoundsSchema(
                south=viewport.south,
                west=viewport.west,
                north=viewport.north,
                east=viewport.east,
            )
            if viewport
            else None
        ),
        markers=[
            MarkerSchema(
                member_id=m.member_id,
                position=GeoPointSchema(lat=m.position.lat, lon=m.position.lon),
                status=m.status.value,
                color=STATUS_COLORS[m.status],
                label=STATUS_LABELS[m.status],
                rendered_at=m.rendered_at,
            )
            for m in session.reconciler.markers
        ],
    )


@router.post("/tracking/start", response_model=TrackingSchema)
async def start_tracking(
    session: RideSessionService = Depends(get_ride_session),
) -> TrackingSchema:
    if session.tracker is None:
        raise HTTPException(status_code=409, detail="No active ride")
    if not session.is_tracking:
        await session.toggle_tracking()
    return _tracking_schema(session)


@router.post("/tracking/stop", response_model=TrackingSchema)
async def stop_tracking(
    session: RideSessionService = Depends(get_ride_session),
) -> TrackingSchema:
    if session.is_tracking:
        await session.toggle_tracking()
    return _tracking_schema(session)
