# gpswox_hub/operations/reports.py
"""
Fleet report builder.

Reduces the current device list into fleet-wide counters and per-category
vehicle lists in a single pass. Nothing is persisted; the report is built for
one request and discarded.

Classification per device:
    moving   speed > moving_speed_threshold
    idle     online == 'ack', or neither moving nor offline
    stopped  not offline and stopped for more than stopped_minutes_threshold
    overspeed speed > overspeed_threshold, graded medium / high / critical

Stop duration is the time since the device's last report, rounded to whole
minutes. It is only computed for devices that are not moving (or report
'ack') and carry a timestamp.
"""

import logging
import math
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Final

from gpswox_hub.config import ReportConfig
from gpswox_hub.models import (
    DeviceRecord,
    FleetReport,
    FleetSummary,
    FuelEntry,
    MovingVehicleEntry,
    OfflineVehicleEntry,
    OverspeedEntry,
    OverspeedSeverity,
    StoppedVehicleEntry,
    Vehicle,
    VehicleReport,
)
from gpswox_hub.operations.normalize import DeviceMotion, device_motion, normalize_device

__all__: list[str] = [
    'build_report',
    'classify_overspeed',
    'format_stop_duration',
    'stop_duration_minutes',
]

logger: logging.Logger = logging.getLogger(__name__)

SECONDS_PER_MINUTE: Final[int] = 60
MINUTES_PER_HOUR: Final[int] = 60


def format_stop_duration(minutes: int) -> str:
    """
    Human-readable stop duration.

    Example:
        >>> format_stop_duration(45), format_stop_duration(135)
        ('45min', '2h 15min')
    """
    if minutes >= MINUTES_PER_HOUR:
        return f'{minutes // MINUTES_PER_HOUR}h {minutes % MINUTES_PER_HOUR}min'
    return f'{minutes}min'


def classify_overspeed(speed: float, config: ReportConfig) -> OverspeedSeverity:
    """Grade an overspeed: critical above 120, high above 100, else medium."""
    if speed > config.critical_severity_speed:
        return 'critical'
    if speed > config.high_severity_speed:
        return 'high'
    return 'medium'


def stop_duration_minutes(timestamp: float, now: datetime) -> int:
    """Whole minutes between a Unix timestamp and now, rounded half up."""
    elapsed_minutes: float = (now.timestamp() - timestamp) / SECONDS_PER_MINUTE
    return math.floor(elapsed_minutes + 0.5)


def build_report(
    devices: Sequence[DeviceRecord],
    config: ReportConfig | None = None,
    now: datetime | None = None,
) -> FleetReport:
    """
    Build the fleet report from the current device list.

    Args:
        devices: Devices as returned by get_devices.
        config: Thresholds; defaults to ReportConfig().
        now: Reference time for stop durations; defaults to the current UTC
            time. Injected by tests.

    Returns:
        FleetReport with overspeeds sorted by speed and stopped vehicles by
        stop duration, both descending.
    """
    config = config or ReportConfig()
    now = now or datetime.now(UTC)

    summary = FleetSummary(total_vehicles=len(devices))
    report = FleetReport(fleet_summary=summary)

    for device in devices:
        vehicle: Vehicle = normalize_device(device)
        motion: DeviceMotion = device_motion(device)

        speed: float = motion.speed
        lat: float | None = motion.lat
        lng: float | None = motion.lng
        course: float = motion.course
        altitude: float = motion.altitude
        last_update: str | None = motion.last_update

        is_online: bool = device.online == 'online'
        is_offline: bool = device.online == 'offline'
        is_ack: bool = device.online == 'ack'
        is_moving: bool = speed > config.moving_speed_threshold

        # Counters
        if is_online:
            summary.online += 1
        elif is_offline:
            summary.offline += 1

        if is_ack or (not is_moving and not is_offline):
            summary.idle += 1
        if is_moving:
            summary.moving += 1

        summary.total_speed += speed
        if speed > summary.max_speed:
            summary.max_speed = speed
            summary.max_speed_device = device.name

        summary.total_distance_today += device.distance_today or 0.0
        summary.total_distance_week += device.distance_week or 0.0
        summary.total_distance_month += device.distance_month or 0.0

        stopped_minutes: int = 0
        if (is_ack or not is_moving) and device.timestamp:
            stopped_minutes = stop_duration_minutes(device.timestamp, now)

        report.vehicles.append(
            VehicleReport(
                id=device.id,
                name=device.name,
                status='moving' if is_moving else 'offline' if is_offline else 'stopped',
                online=device.online,
                speed=speed,
                lat=lat,
                lng=lng,
                altitude=altitude,
                course=course,
                last_update=last_update,
                timestamp=device.timestamp or None,
                distance_today=device.distance_today or 0.0,
                distance_week=device.distance_week or 0.0,
                distance_month=device.distance_month or 0.0,
                odometer=vehicle.mileage,
                battery=vehicle.battery,
                fuel=vehicle.fuel_quantity,
                stop_duration_minutes=stopped_minutes,
                current_driver=(
                    device.current_driver.model_dump(exclude_unset=True)
                    if device.current_driver is not None
                    else None
                ),
            )
        )

        # Category lists
        if speed > config.overspeed_threshold:
            report.overspeeds.append(
                OverspeedEntry(
                    device_id=device.id,
                    device_name=device.name,
                    speed=speed,
                    lat=lat,
                    lng=lng,
                    timestamp=last_update,
                    severity=classify_overspeed(speed, config),
                )
            )

        if stopped_minutes > config.stopped_minutes_threshold and not is_offline:
            report.stopped_vehicles.append(
                StoppedVehicleEntry(
                    device_id=device.id,
                    device_name=device.name,
                    stop_duration_minutes=stopped_minutes,
                    stop_duration_formatted=format_stop_duration(stopped_minutes),
                    lat=lat,
                    lng=lng,
                    last_update=last_update,
                )
            )

        if is_offline:
            report.offline_vehicles.append(
                OfflineVehicleEntry(
                    device_id=device.id,
                    device_name=device.name,
                    last_update=last_update,
                    lat=lat,
                    lng=lng,
                )
            )

        if is_moving:
            report.moving_vehicles.append(
                MovingVehicleEntry(
                    device_id=device.id,
                    device_name=device.name,
                    speed=speed,
                    course=course,
                    lat=lat,
                    lng=lng,
                    last_update=last_update,
                )
            )

        if vehicle.fuel_quantity is not None:
            report.fuel_data.append(
                FuelEntry(
                    device_id=device.id,
                    device_name=device.name,
                    fuel_level=vehicle.fuel_quantity,
                    timestamp=last_update,
                )
            )

    report.overspeeds.sort(key=lambda entry: entry.speed, reverse=True)
    report.stopped_vehicles.sort(key=lambda entry: entry.stop_duration_minutes, reverse=True)

    logger.info(
        'Built fleet report: %d vehicles, %d moving, %d offline, %d overspeeds',
        summary.total_vehicles,
        summary.moving,
        summary.offline,
        len(report.overspeeds),
    )
    return report
