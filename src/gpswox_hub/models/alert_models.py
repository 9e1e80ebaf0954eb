# gpswox_hub/models/alert_models.py
"""
Alert models for the `gpswox-alerts` entry point.

Like the reports payload, alerts keep snake_case keys (`device_name`,
`message_ar`). Messages are produced in French with an Arabic variant, the
two languages of the fleet management front end.
"""

from datetime import datetime
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict

__all__: list[str] = [
    'Alert',
    'AlertSeverity',
    'AlertSource',
    'AlertType',
    'AlertsResponse',
]

AlertType = Literal['speed', 'geofence', 'disconnect', 'fuel', 'maintenance']
AlertSeverity = Literal['high', 'medium', 'low']
AlertSource = Literal['events', 'devices']


class Alert(BaseModel):
    """
    One alert, either mapped from a provider event or derived from a device.

    Attributes:
        id: Event id, or '<kind>-<device id>' for derived alerts.
        timestamp: Provider time string or ISO-8601, kept as received.
        raw: The provider event the alert was mapped from; None when derived.
    """

    model_config = ConfigDict(extra='forbid')

    id: int | str
    type: AlertType
    severity: AlertSeverity
    device_id: int | str | None
    device_name: str
    message: str
    message_ar: str | None = None
    timestamp: str
    lat: float | None = None
    lng: float | None = None
    speed: float | None = None
    acknowledged: bool = False
    raw: dict[str, Any] | None = None


class AlertsResponse(BaseModel):
    """Success envelope of the `gpswox-alerts` entry point."""

    model_config = ConfigDict(extra='forbid')

    success: Literal[True] = True
    alerts: list[Alert]
    source: AlertSource
    total: int
    timestamp: datetime
