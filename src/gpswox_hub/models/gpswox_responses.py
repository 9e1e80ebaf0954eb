# gpswox_hub/models/gpswox_responses.py
"""
Pydantic models for raw GPSwox API payloads.

Design Notes:
    - GPSwox is a PHP application and its JSON is loosely typed: numbers
      arrive as strings, empty objects arrive as [], and the same field can be
      a number on one server and a string on another. Numeric fields are
      coerced leniently; unparseable values become None instead of failing
      the whole device list.
    - Two device shapes exist. Current servers send flat `lat`/`lng`/`speed`
      fields; legacy servers nest them as strings under `device_data`.
    - Models use extra='allow' so fields the hub does not interpret are kept
      and can be passed through to consumers (notably the sensor array).
"""

import logging
from typing import Any

from pydantic import BaseModel, ConfigDict, field_validator

logger: logging.Logger = logging.getLogger(__name__)

__all__: list[str] = [
    'DeviceRecord',
    'DriverRecord',
    'EmbeddedDriver',
    'GeofenceRecord',
    'LegacyDeviceData',
    'LoginResponse',
    'Sensor',
    'coerce_float',
]


def coerce_float(value: Any) -> float | None:
    """
    Leniently convert a provider value to float.

    Booleans, None, empty strings and unparseable strings yield None.

    Example:
        >>> coerce_float('12.5'), coerce_float(7), coerce_float('n/a')
        (12.5, 7.0, None)
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, int | float):
        return float(value)
    if isinstance(value, str):
        try:
            return float(value.strip())
        except ValueError:
            return None
    return None


def _coerce_optional_str(value: Any) -> str | None:
    """Stringify scalars and strip whitespace; containers become None."""
    if value is None or isinstance(value, dict | list):
        return None
    return str(value).strip()


# =============================================================================
# Base Configuration
# =============================================================================


class ResponseModelBase(BaseModel):
    """
    Base class for GPSwox payload models.

    Configuration:
        - extra='allow': Keep unknown fields for pass-through.
        - populate_by_name=True: Allow initialization by field name or alias.
    """

    model_config = ConfigDict(
        extra='allow',
        populate_by_name=True,
    )


# =============================================================================
# Authentication
# =============================================================================


class LoginResponse(ResponseModelBase):
    """Body of GET /api/login."""

    status: int | None = None
    user_api_hash: str | None = None
    message: str | None = None

    @field_validator('status', mode='before')
    @classmethod
    def coerce_status(cls, value: Any) -> int | None:
        """Status is sometimes sent as a string."""
        number: float | None = coerce_float(value)
        return int(number) if number is not None else None


# =============================================================================
# Embedded Objects
# =============================================================================


class Sensor(ResponseModelBase):
    """
    One entry of a device's sensor array.

    `value` is the provider's formatted string ('12.4 V'); `val` is the raw
    reading and may be a number, a numeric string, a boolean or null.
    """

    id: int | str | None = None
    name: str | None = None
    type: str | None = None
    value: Any = None
    val: Any = None
    tag_name: str | None = None
    scale_value: float | None = None

    @field_validator('name', 'type', 'tag_name', mode='before')
    @classmethod
    def coerce_text(cls, value: Any) -> str | None:
        """Sensor labels are occasionally numeric."""
        return _coerce_optional_str(value)

    @field_validator('scale_value', mode='before')
    @classmethod
    def coerce_scale(cls, value: Any) -> float | None:
        """Lenient float conversion."""
        return coerce_float(value)


class EmbeddedDriver(ResponseModelBase):
    """Driver object embedded in a device (`current_driver` / `driver_data`)."""

    id: int | str | None = None
    name: str | None = None
    email: str | None = None
    phone: str | None = None

    @field_validator('name', 'email', 'phone', mode='before')
    @classmethod
    def coerce_text(cls, value: Any) -> str | None:
        """Phone numbers in particular arrive as integers."""
        return _coerce_optional_str(value)


class LegacyDeviceData(ResponseModelBase):
    """Position block of legacy servers; every value is a string."""

    lat: str | None = None
    lng: str | None = None
    altitude: str | None = None
    speed: str | None = None
    course: str | None = None
    time: str | None = None
    stop_duration: str | None = None
    move_status: str | None = None

    @field_validator('*', mode='before')
    @classmethod
    def coerce_text(cls, value: Any) -> str | None:
        """Some legacy builds already send numbers."""
        return _coerce_optional_str(value)


# =============================================================================
# Devices
# =============================================================================


class DeviceRecord(ResponseModelBase):
    """
    A tracking device as returned by /api/get_devices.

    Attributes:
        id: Provider device id.
        name: Display name, usually the plate number.
        online: 'online', 'offline', 'ack' (engine off, still reporting), or
            another provider-specific value.
        time: Last report time as a server-local 'YYYY-MM-DD HH:MM:SS' string.
        timestamp: Last report time as Unix seconds.
        device_data: Legacy position block.
        sensors: Heterogeneous sensor array.
        current_driver: Driver currently bound to the device.
        driver_data: Legacy spelling of current_driver.
    """

    id: int | str
    name: str = ''
    imei: str | None = None
    icon_type: str | None = None
    alarm: int | None = None
    online: str | None = None
    time: str | None = None
    timestamp: float | None = None
    lat: float | None = None
    lng: float | None = None
    speed: float | None = None
    altitude: float | None = None
    course: float | None = None
    device_data: LegacyDeviceData | None = None
    fuel_quantity: float | None = None
    odometer: float | None = None
    protocol: str | None = None
    distance_today: float | None = None
    distance_week: float | None = None
    distance_month: float | None = None
    sensors: list[Sensor] | None = None
    current_driver: EmbeddedDriver | None = None
    current_driver_id: int | str | None = None
    driver_data: EmbeddedDriver | None = None

    @field_validator(
        'timestamp',
        'lat',
        'lng',
        'speed',
        'altitude',
        'course',
        'fuel_quantity',
        'odometer',
        'distance_today',
        'distance_week',
        'distance_month',
        mode='before',
    )
    @classmethod
    def coerce_numbers(cls, value: Any) -> float | None:
        """Lenient float conversion for every numeric field."""
        return coerce_float(value)

    @field_validator('name', mode='before')
    @classmethod
    def coerce_name(cls, value: Any) -> str:
        """Missing names become empty strings."""
        return _coerce_optional_str(value) or ''

    @field_validator('imei', 'icon_type', 'online', 'time', 'protocol', mode='before')
    @classmethod
    def coerce_text(cls, value: Any) -> str | None:
        """Lenient string conversion."""
        return _coerce_optional_str(value)

    @field_validator('alarm', mode='before')
    @classmethod
    def coerce_alarm(cls, value: Any) -> int | None:
        """Alarm flag as integer."""
        number: float | None = coerce_float(value)
        return int(number) if number is not None else None

    @field_validator('device_data', 'current_driver', 'driver_data', mode='before')
    @classmethod
    def drop_non_objects(cls, value: Any) -> Any:
        """PHP serializes an empty object as []; treat anything but a dict as absent."""
        return value if isinstance(value, dict) else None

    @field_validator('sensors', mode='before')
    @classmethod
    def keep_sensor_objects(cls, value: Any) -> list[Any] | None:
        """Drop non-object entries from the sensor array."""
        if not isinstance(value, list):
            return None
        return [sensor for sensor in value if isinstance(sensor, dict)]

    @property
    def embedded_driver(self) -> EmbeddedDriver | None:
        """The device's own driver object, current spelling first."""
        if self.current_driver is not None:
            return self.current_driver
        return self.driver_data


# =============================================================================
# Drivers
# =============================================================================


class DriverRecord(ResponseModelBase):
    """
    A driver as returned by one of the driver endpoints, or synthesized from
    a device's embedded driver.
    """

    id: int | str | None = None
    name: str = ''
    email: str | None = None
    phone: str | None = None
    device_id: int | str | None = None
    device_name: str | None = None
    rfid: str | None = None
    description: str | None = None

    @field_validator('name', mode='before')
    @classmethod
    def coerce_name(cls, value: Any) -> str:
        """Missing names become empty strings."""
        return _coerce_optional_str(value) or ''

    @field_validator('email', 'phone', 'device_name', 'rfid', 'description', mode='before')
    @classmethod
    def coerce_text(cls, value: Any) -> str | None:
        """Lenient string conversion."""
        return _coerce_optional_str(value)


# =============================================================================
# Geofences
# =============================================================================


class GeofenceRecord(ResponseModelBase):
    """A geofence as returned by /api/get_geofences."""

    id: int | str
    name: str = ''
    group_id: int | str | None = None
    polygon_color: str | None = None
    active: bool | None = None

    @field_validator('name', mode='before')
    @classmethod
    def coerce_name(cls, value: Any) -> str:
        """Missing names become empty strings."""
        return _coerce_optional_str(value) or ''

    @field_validator('polygon_color', mode='before')
    @classmethod
    def coerce_color(cls, value: Any) -> str | None:
        """Lenient string conversion."""
        return _coerce_optional_str(value)

    @field_validator('active', mode='before')
    @classmethod
    def coerce_active(cls, value: Any) -> bool | None:
        """The flag arrives as a boolean, 0/1 or '0'/'1'."""
        if value is None or isinstance(value, bool):
            return value
        number: float | None = coerce_float(value)
        if number is not None:
            return number != 0
        if isinstance(value, str):
            return value.strip().lower() == 'true'
        return None
