from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class AlertCategory(str, Enum):
    INFO = "info"
    WARNING = "warning"
    ERROR = "error"
    SUCCESS = "success"
    EMERGENCY = "emergency"


class AlertSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


class AlertOrigin(str, Enum):
    LOCAL = "local"
    SERVER = "server"


class ServerAlertType(str, Enum):
    """Alert kinds as recorded by the backend."""

    LOCATION_UPDATE = "location_update"
    STATUS_CHANGE = "status_change"
    EMERGENCY = "emergency"
    TRAFFIC = "traffic"
    SYSTEM = "system"


@dataclass(frozen=True, slots=True)
class Alert:
    id: str
    message: str
    category: AlertCategory
    created_at: datetime
    expires_after_ms: int = 0  # 0 = never
    ride_id: str | None = None
    severity: AlertSeverity | None = None
    origin: AlertOrigin = AlertOrigin.LOCAL

    def __post_init__(self) -> None:
        if self.expires_after_ms < 0:
            raise ValueError(f"Invalid expiry: {self.expires_after_ms}")
        # Emergencies stay until dismissed.
        if self.category is AlertCategory.EMERGENCY and self.expires_after_ms:
            object.__setattr__(self, "expires_after_ms", 0)


@dataclass(frozen=True, slots=True)
class ServerAlert:
    id: str
    ride_id: str
    alert_type: ServerAlertType
    message: str
    severity: AlertSeverity
    created_at: datetime
    user_id: str | None = None
    read_at: datetime | None = None

    def to_alert(self) -> Alert:
        category = (
            AlertCategory.EMERGENCY
            if self.alert_type is ServerAlertType.EMERGENCY
            else AlertCategory.INFO
        )
        return Alert(
            id=self.id,
            message=self.message,
            category=category,
            created_at=self.created_at,
            expires_after_ms=0,
            ride_id=self.ride_id,
            severity=self.severity,
            origin=AlertOrigin.SERVER,
        )
