from __future__ import annotations

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, Field


class GeoPointSchema(BaseModel):
    lat: float = Field(..., ge=-90.0, le=90.0)
    lon: float = Field(..., ge=-180.0, le=180.0)


class BoundsSchema(BaseModel):
    south: float
    west: float
    north: float
    east: float


class RideSchema(BaseModel):
    id: str
    group_id: str
    name: str
    status: Literal["CREATED", "STARTED", "PAUSED", "ENDED"]
    description: str | None = None
    start_location: str | None = None
    end_location: str | None = None


class RideUserSchema(BaseModel):
    id: str
    name: str
    username: str


class MemberSchema(BaseModel):
    member_id: str
    user: RideUserSchema
    status: Literal["waiting", "on-route", "arrived", "unknown"]
    latitude: float | None = None
    longitude: float | None = None
    last_location_update_at: datetime | None = None


class MembersResponseSchema(BaseModel):
    ride_id: str | None = None
    is_connected: bool
    error: str | None = None
    last_update: datetime | None = None
    members: list[MemberSchema]


class AlertSchema(BaseModel):
    id: str
    message: str
    category: Literal["info", "warning", "error", "success", "emergency"]
    created_at: datetime
    expires_after_ms: int
    ride_id: str | None = None
    severity: Literal["low", "medium", "high", "critical"] | None = None
    origin: Literal["local", "server"]


class AlertsResponseSchema(BaseModel):
    emergency_count: int
    alerts: list[AlertSchema]


class EmergencyRequestSchema(BaseModel):
    message: str = Field(default="Emergency assistance needed!", min_length=1)


class AlertCreatedSchema(BaseModel):
    alert_id: str


class MarkerSchema(BaseModel):
    member_id: str
    position: GeoPointSchema
    status: Literal["waiting", "on-route", "arrived", "unknown"]
    color: str
    label: str
    rendered_at: datetime


class MapResponseSchema(BaseModel):
    viewport: BoundsSchema | None = None
    markers: list[MarkerSchema]


class PositionSampleSchema(BaseModel):
    latitude: float
    longitude: float
    accuracy: float | None = None
    captured_at: datetime


class TrackingSchema(BaseModel):
    is_tracking: bool
    current_position: PositionSampleSchema | None = None
    last_sync_time: datetime | None = None
    error: str | None = None


class SessionSchema(BaseModel):
    ride: RideSchema | None = None
    is_connected: bool
    member_count: int
    alert_count: int
    tracking: TrackingSchema
