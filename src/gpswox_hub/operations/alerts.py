# gpswox_hub/operations/alerts.py
"""
Alert building for the `gpswox-alerts` entry point.

Alerts come from one of two sources:
    events   provider events, mapped one to one by `alert_from_event`
    devices  derived from the live device list by `alerts_from_devices`,
             used when no event endpoint answered with at least one event

Design Decisions:
-----------------
- Event types are free text and differ between servers. They are matched
  by substring, first rule wins, and anything unrecognized is reported as
  a medium maintenance alert rather than dropped.

- Derived alerts read speed and coordinates through `device_motion`, so a
  legacy device or one without coordinates is treated like the fleet report
  treats it.

- A device yields at most one alert of each kind. Long stops are reported
  with type 'geofence', which is what the front end filters on for parked
  vehicles.
"""

import logging
import math
from collections.abc import Iterable, Sequence
from datetime import UTC, datetime
from typing import Any, Final

from gpswox_hub.config import AlertConfig
from gpswox_hub.models import (
    Alert,
    AlertSeverity,
    AlertType,
    DeviceRecord,
    coerce_float,
)
from gpswox_hub.operations.normalize import DeviceMotion, device_motion, scan_sensors

__all__: list[str] = [
    'alert_from_event',
    'alerts_from_devices',
    'classify_event_type',
    'sort_alerts',
]

logger: logging.Logger = logging.getLogger(__name__)

SECONDS_PER_MINUTE: Final[int] = 60
MINUTES_PER_HOUR: Final[int] = 60

SEVERITY_RANK: Final[dict[str, int]] = {'high': 0, 'medium': 1, 'low': 2}

# (fragments, type, severity), first match wins
EVENT_TYPE_RULES: Final[tuple[tuple[tuple[str, ...], AlertType, AlertSeverity], ...]] = (
    (('speed', 'overspeed'), 'speed', 'high'),
    (('geofence', 'zone'), 'geofence', 'medium'),
    (('offline', 'disconnect'), 'disconnect', 'high'),
    (('fuel',), 'fuel', 'medium'),
    (('sos', 'alarm'), 'speed', 'high'),
)
DEFAULT_EVENT_TYPE: Final[tuple[AlertType, AlertSeverity]] = ('maintenance', 'medium')

DEFAULT_EVENT_MESSAGE: Final[str] = 'Alerte GPSwox'


# =============================================================================
# Provider Events
# =============================================================================


def classify_event_type(event_type: str) -> tuple[AlertType, AlertSeverity]:
    """
    Map a provider event type to an alert type and severity.

    Example:
        >>> classify_event_type('Overspeed')
        ('speed', 'high')
        >>> classify_event_type('ignition_on')
        ('maintenance', 'medium')
    """
    lowered: str = event_type.lower()
    for fragments, alert_type, severity in EVENT_TYPE_RULES:
        if any(fragment in lowered for fragment in fragments):
            return alert_type, severity
    return DEFAULT_EVENT_TYPE


def _first_present(event: dict[str, Any], *keys: str) -> Any:
    """Value of the first key holding a truthy value, else None."""
    for key in keys:
        value: Any = event.get(key)
        if value:
            return value
    return None


def _first_number(event: dict[str, Any], *keys: str) -> float | None:
    """First non-zero numeric value among keys."""
    for key in keys:
        number: float | None = coerce_float(event.get(key))
        if number:
            return number
    return None


def alert_from_event(event: dict[str, Any], index: int, now: datetime) -> Alert:
    """
    Map one provider event to an Alert.

    Args:
        event: Raw event object.
        index: Position of the event in its page, used for the fallback id.
        now: Timestamp used when the event carries none.

    Returns:
        The alert, unacknowledged, with the event attached as `raw`.
    """
    alert_type, severity = classify_event_type(
        str(_first_present(event, 'alert_type', 'type') or 'maintenance')
    )

    event_id: Any = event.get('id')
    device_id: Any = _first_present(event, 'device_id', 'object_id')
    timestamp: Any = _first_present(event, 'created_at', 'time', 'timestamp')

    return Alert(
        id=event_id if isinstance(event_id, int | str) and event_id else f'event-{index}',
        type=alert_type,
        severity=severity,
        device_id=device_id if isinstance(device_id, int | str) else None,
        device_name=str(
            _first_present(event, 'device_name', 'name') or f'Device {device_id}'
        ),
        message=str(
            _first_present(event, 'message', 'alert_name', 'description')
            or DEFAULT_EVENT_MESSAGE
        ),
        timestamp=str(timestamp) if timestamp else now.isoformat(),
        lat=_first_number(event, 'lat', 'latitude'),
        lng=_first_number(event, 'lng', 'longitude'),
        speed=_first_number(event, 'speed'),
        raw=event,
    )


# =============================================================================
# Device-Derived Alerts
# =============================================================================


def _format_number(value: float) -> str:
    """Render a reading without a trailing '.0'."""
    return f'{value:.15g}'


def _device_alerts(device: DeviceRecord, config: AlertConfig, now: datetime) -> list[Alert]:
    motion: DeviceMotion = device_motion(device)
    name: str = device.name

    def alert(
        kind: str,
        alert_type: AlertType,
        severity: AlertSeverity,
        message: str,
        message_ar: str,
        speed: float | None = None,
    ) -> Alert:
        return Alert(
            id=f'{kind}-{device.id}',
            type=alert_type,
            severity=severity,
            device_id=device.id,
            device_name=name,
            message=message,
            message_ar=message_ar,
            timestamp=device.time or now.isoformat(),
            lat=motion.lat or None,
            lng=motion.lng or None,
            speed=speed,
        )

    alerts: list[Alert] = []

    if device.online == 'offline':
        alerts.append(
            alert('offline', 'disconnect', 'high', f'{name} est déconnecté', f'{name} غير متصل')
        )

    if motion.speed > config.speed_alert_threshold:
        speed_text: str = _format_number(motion.speed)
        alerts.append(
            alert(
                'speed',
                'speed',
                'high',
                f'{name} - Excès de vitesse: {speed_text} km/h',
                f'{name} - تجاوز السرعة: {speed_text} كم/س',
                speed=motion.speed,
            )
        )

    if device.online == 'ack' and device.timestamp:
        stopped_minutes: float = (now.timestamp() - device.timestamp) / SECONDS_PER_MINUTE
        if stopped_minutes > config.long_stop_minutes:
            hours: int = math.floor(stopped_minutes / MINUTES_PER_HOUR + 0.5)
            alerts.append(
                alert(
                    'stop',
                    'geofence',
                    'medium',
                    f'{name} - Arrêt prolongé ({hours}h)',
                    f'{name} - توقف مطول ({hours} ساعة)',
                )
            )

    battery: float | None = scan_sensors(device.sensors).battery
    if battery is not None and battery < config.low_battery_threshold:
        battery_text: str = _format_number(battery)
        alerts.append(
            alert(
                'battery',
                'maintenance',
                'medium',
                f'{name} - Batterie faible: {battery_text}%',
                f'{name} - بطارية منخفضة: {battery_text}%',
            )
        )

    return alerts


def alerts_from_devices(
    devices: Iterable[DeviceRecord],
    config: AlertConfig | None = None,
    now: datetime | None = None,
) -> list[Alert]:
    """
    Derive alerts from the current device list.

    Per device, in this order:
        offline         disconnect, high
        speed above speed_alert_threshold   speed, high
        'ack' for longer than long_stop_minutes   geofence, medium
        battery sensor below low_battery_threshold   maintenance, medium

    Args:
        devices: Devices as returned by get_devices.
        config: Thresholds; defaults to AlertConfig().
        now: Reference time for stop durations and missing timestamps.

    Returns:
        Alerts ordered by `sort_alerts`.
    """
    config = config or AlertConfig()
    now = now or datetime.now(UTC)

    alerts: list[Alert] = []
    for device in devices:
        alerts.extend(_device_alerts(device, config, now))

    logger.info('Derived %d alerts from devices', len(alerts))
    return sort_alerts(alerts)


# =============================================================================
# Ordering
# =============================================================================


def _timestamp_seconds(value: str) -> float | None:
    """Unix seconds of an ISO-8601 or 'YYYY-MM-DD HH:MM:SS' string; naive is UTC."""
    numeric: float | None = coerce_float(value)
    if numeric is not None:
        return numeric
    try:
        parsed: datetime = datetime.fromisoformat(value.strip())
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed.timestamp()


def sort_alerts(alerts: Sequence[Alert]) -> list[Alert]:
    """
    Order alerts by severity (high first), then newest first.

    Alerts whose timestamp cannot be parsed go last within their severity.
    """

    def sort_key(alert: Alert) -> tuple[int, float]:
        seconds: float | None = _timestamp_seconds(alert.timestamp)
        return (
            SEVERITY_RANK[alert.severity],
            -seconds if seconds is not None else math.inf,
        )

    return sorted(alerts, key=sort_key)
