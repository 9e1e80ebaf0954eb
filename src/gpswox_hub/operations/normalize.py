# gpswox_hub/operations/normalize.py
"""
Normalization of raw GPSwox devices into the fleet Vehicle model.

Everything here is pure: no I/O, no logging of payloads, no clock. Both HTTP
entry points run devices through `normalize_device` so the vehicle list and
the fleet report agree on fuel and battery.

Design Decisions:
-----------------
- Sensors are scanned once. For each category (battery, gsm, odometer, fuel)
  the first usable sensor wins; later matches are ignored rather than
  averaged.

- Sensor values come from `val` (raw reading), never from `value` (the
  provider's display string such as '12.4 V').

- Direct device fields beat sensors for fuel and odometer. A direct odometer
  of 0 is treated as missing, as the provider sends 0 for "no odometer".
"""

from dataclasses import dataclass
from typing import Any, Final

from gpswox_hub.models import (
    DeviceRecord,
    DriverDetails,
    DriverRecord,
    DriverSummary,
    LegacyDeviceData,
    Position,
    Sensor,
    Vehicle,
    VehicleStatus,
    coerce_float,
)
from gpswox_hub.operations.correlate import DriverIndex, resolve_driver

__all__: list[str] = [
    'DeviceMotion',
    'SensorReadings',
    'build_position',
    'device_motion',
    'first_vehicle_sample',
    'map_status',
    'normalize_device',
    'scan_sensors',
    'summarize_driver',
]

BATTERY_SENSOR_TYPES: Final[frozenset[str]] = frozenset({'battery'})
NETWORK_SENSOR_TYPES: Final[frozenset[str]] = frozenset({'gsm'})
ODOMETER_SENSOR_TYPES: Final[frozenset[str]] = frozenset({'odometer'})
FUEL_SENSOR_TYPES: Final[frozenset[str]] = frozenset(
    {'fuel', 'fuel_tank', 'fuel_tank_calibration'}
)
# French names are common on North African deployments
FUEL_NAME_FRAGMENTS: Final[tuple[str, ...]] = ('fuel', 'carburant', 'tank', 'réservoir')

STATUS_BY_ONLINE: Final[dict[str, VehicleStatus]] = {
    'online': VehicleStatus.ACTIVE,
    'offline': VehicleStatus.INACTIVE,
}


# =============================================================================
# Sensors
# =============================================================================


@dataclass(frozen=True, slots=True)
class SensorReadings:
    """Numeric readings extracted from a sensor array; None when absent."""

    battery: float | None = None
    network: float | None = None
    odometer: float | None = None
    fuel: float | None = None


def _sensor_reading(sensor: Sensor) -> float | None:
    """Numeric `val` of a sensor, or None for null, boolean or unparseable."""
    if sensor.val is None or isinstance(sensor.val, bool):
        return None
    return coerce_float(sensor.val)


def _is_fuel_sensor(sensor_type: str, sensor_name: str) -> bool:
    if sensor_type in FUEL_SENSOR_TYPES:
        return True
    return any(fragment in sensor_name for fragment in FUEL_NAME_FRAGMENTS)


def scan_sensors(sensors: list[Sensor] | None) -> SensorReadings:
    """
    Extract battery, network, odometer and fuel readings in one pass.

    Types are matched exactly (case-insensitive). Fuel additionally matches
    on name fragments, so a sensor of type 'numerical' named 'Niveau
    carburant' is read as fuel.

    Args:
        sensors: The device's sensor array, possibly None.

    Returns:
        SensorReadings with the first usable reading of each category.

    Example:
        >>> readings = scan_sensors([Sensor(type='battery', val='12.6')])
        >>> readings.battery
        12.6
    """
    found: dict[str, float] = {}

    for sensor in sensors or []:
        reading: float | None = _sensor_reading(sensor)
        if reading is None:
            continue

        sensor_type: str = (sensor.type or '').lower()
        sensor_name: str = (sensor.name or '').lower()

        if sensor_type in BATTERY_SENSOR_TYPES:
            found.setdefault('battery', reading)
        if sensor_type in NETWORK_SENSOR_TYPES:
            found.setdefault('network', reading)
        if sensor_type in ODOMETER_SENSOR_TYPES:
            found.setdefault('odometer', reading)
        if _is_fuel_sensor(sensor_type, sensor_name):
            found.setdefault('fuel', reading)

    return SensorReadings(**found)


# =============================================================================
# Position and Status
# =============================================================================


def _format_coordinate(value: float) -> str:
    """Render a coordinate without a trailing '.0'."""
    return f'{value:.15g}'


def _legacy_float(value: str | None) -> float:
    parsed: float | None = coerce_float(value)
    return parsed if parsed is not None else 0.0


def build_position(device: DeviceRecord) -> Position | None:
    """
    Build the last position from flat fields, else from legacy device_data.

    Returns:
        Position, or None when the device carries neither shape.
    """
    if device.lat is not None and device.lng is not None:
        return Position(
            lat=device.lat,
            lng=device.lng,
            city=f'{_format_coordinate(device.lat)}, {_format_coordinate(device.lng)}',
            speed=device.speed or 0.0,
            altitude=device.altitude or 0.0,
            course=device.course or 0.0,
            timestamp=device.time,
        )

    legacy: LegacyDeviceData | None = device.device_data
    if legacy is None:
        return None

    return Position(
        lat=_legacy_float(legacy.lat),
        lng=_legacy_float(legacy.lng),
        city=f'{legacy.lat}, {legacy.lng}',
        speed=_legacy_float(legacy.speed),
        altitude=_legacy_float(legacy.altitude),
        course=_legacy_float(legacy.course),
        timestamp=legacy.time,
        move_status=legacy.move_status,
        stop_duration=legacy.stop_duration,
    )


@dataclass(frozen=True, slots=True)
class DeviceMotion:
    """Live kinematics of a device, independent of whether it has a position."""

    speed: float = 0.0
    lat: float | None = None
    lng: float | None = None
    course: float = 0.0
    altitude: float = 0.0
    last_update: str | None = None


def device_motion(device: DeviceRecord) -> DeviceMotion:
    """
    Read speed, coordinates, course and altitude field by field.

    Each flat device field is used when present, else the same field of the
    legacy device_data block. Unlike build_position, a device reporting speed
    without coordinates keeps its speed.

    Example:
        >>> device_motion(DeviceRecord(id=1, speed=95)).speed
        95.0
    """
    legacy: LegacyDeviceData | None = device.device_data

    def pick(direct: float | None, legacy_field: str) -> float | None:
        if direct is not None:
            return direct
        if legacy is None:
            return None
        return coerce_float(getattr(legacy, legacy_field))

    return DeviceMotion(
        speed=pick(device.speed, 'speed') or 0.0,
        lat=pick(device.lat, 'lat'),
        lng=pick(device.lng, 'lng'),
        course=pick(device.course, 'course') or 0.0,
        altitude=pick(device.altitude, 'altitude') or 0.0,
        last_update=device.time or (legacy.time if legacy is not None else None),
    )


def map_status(online: str | None) -> VehicleStatus:
    """'online' -> active, 'offline' -> inactive, anything else -> maintenance."""
    return STATUS_BY_ONLINE.get(online or '', VehicleStatus.MAINTENANCE)


# =============================================================================
# Vehicle
# =============================================================================


def normalize_device(device: DeviceRecord, index: DriverIndex | None = None) -> Vehicle:
    """
    Normalize one raw device into a Vehicle.

    Args:
        device: Validated raw device.
        index: Driver lookup maps for driver tiers 2 and 3.

    Returns:
        The normalized vehicle.
    """
    readings: SensorReadings = scan_sensors(device.sensors)
    driver: DriverDetails | None = resolve_driver(device, index)

    fuel_quantity: float | None = (
        device.fuel_quantity if device.fuel_quantity is not None else readings.fuel
    )
    mileage: float = device.odometer or readings.odometer or 0.0

    return Vehicle(
        id=str(device.id),
        plate=device.name,
        imei=device.imei or '',
        model=device.name,
        status=map_status(device.online),
        last_position=build_position(device),
        mileage=mileage,
        fuel_quantity=fuel_quantity,
        driver=driver.name if driver is not None and driver.name else None,
        driver_details=driver,
        icon_type=device.icon_type,
        online=device.online,
        battery=readings.battery,
        network=readings.network,
        protocol=device.protocol or None,
        distance_today=device.distance_today or None,
        distance_week=device.distance_week or None,
        distance_month=device.distance_month or None,
        sensors=(
            [sensor.model_dump(exclude_unset=True) for sensor in device.sensors]
            if device.sensors is not None
            else None
        ),
    )


def summarize_driver(driver: DriverRecord) -> DriverSummary:
    """Map a driver record to the `drivers` entry of the vehicles response."""
    return DriverSummary(
        id=driver.id,
        name=driver.name,
        email=driver.email or '',
        phone=driver.phone or '',
        device_id=driver.device_id or None,
        device_name=driver.device_name or None,
        rfid=driver.rfid or None,
        description=driver.description or None,
    )


def first_vehicle_sample(devices: list[DeviceRecord]) -> dict[str, Any] | None:
    """Driver-related fields of the first device, for the debug block."""
    if not devices:
        return None

    device: DeviceRecord = devices[0]
    return {
        'id': device.id,
        'current_driver': (
            device.current_driver.model_dump(exclude_unset=True)
            if device.current_driver is not None
            else None
        ),
        'current_driver_id': device.current_driver_id,
        'driver_data': (
            device.driver_data.model_dump(exclude_unset=True)
            if device.driver_data is not None
            else None
        ),
    }
