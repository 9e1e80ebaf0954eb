# gpswox_hub/models/fleet_models.py
"""
Normalized fleet models returned by the `gpswox`, `gpswox-geofences` and
`gpswox-map` entry points.

These are the stable shapes consumed by the fleet management front end. They
serialize with camelCase keys (`lastPosition`, `fuelQuantity`) via an alias
generator; Python code uses the snake_case attribute names.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

__all__: list[str] = [
    'DebugInfo',
    'DriverDetails',
    'DriverSummary',
    'ErrorResponse',
    'GeofenceSummary',
    'GeofencesResponse',
    'MapResponse',
    'Position',
    'Vehicle',
    'VehicleStatus',
    'VehiclesResponse',
]


class VehicleStatus(str, Enum):
    """Vehicle status derived from the device's online field."""

    ACTIVE = 'active'
    INACTIVE = 'inactive'
    MAINTENANCE = 'maintenance'


class CamelModel(BaseModel):
    """Base for output models: camelCase on the wire, snake_case in Python."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        extra='forbid',
    )


class Position(CamelModel):
    """Last known position of a vehicle."""

    lat: float
    lng: float
    city: str
    speed: float
    altitude: float
    course: float
    timestamp: str | None = None
    move_status: str | None = None
    stop_duration: str | None = None


class DriverDetails(CamelModel):
    """Driver identity attached to a vehicle."""

    id: int | str | None = None
    name: str | None = None
    email: str = ''
    phone: str = ''


class Vehicle(CamelModel):
    """
    A GPSwox device normalized for the fleet application.

    Attributes:
        id: Device id as string.
        plate: Device name (operators name devices after plates).
        status: active / inactive / maintenance.
        last_position: Position or None when the device never reported.
        mileage: Odometer reading, 0 when unknown.
        fuel_quantity: Fuel level, None when no source reports it.
        driver: Display name of the resolved driver.
        battery: Battery sensor reading.
        network: GSM signal sensor reading.
        online: Raw provider online string.
        sensors: Raw sensor array, passed through untouched.
    """

    id: str
    plate: str
    imei: str = ''
    brand: str = 'GPS Device'
    model: str
    status: VehicleStatus
    last_position: Position | None = None
    mileage: float = 0.0
    fuel_quantity: float | None = None
    driver: str | None = None
    driver_details: DriverDetails | None = None
    icon_type: str | None = None
    online: str | None = None
    battery: float | None = None
    network: float | None = None
    protocol: str | None = None
    distance_today: float | None = None
    distance_week: float | None = None
    distance_month: float | None = None
    sensors: list[dict[str, Any]] | None = None


class DriverSummary(CamelModel):
    """Driver entry of the `drivers` list in the vehicles response."""

    id: int | str | None = None
    name: str
    email: str = ''
    phone: str = ''
    device_id: int | str | None = None
    device_name: str | None = None
    rfid: str | None = None
    description: str | None = None


class DebugInfo(CamelModel):
    """Diagnostics returned with every vehicles response."""

    driver_fetch_error: str | None = None
    drivers_source: Literal['api', 'devices_fallback']
    extracted_count: int
    logs: list[str] = Field(default_factory=list)
    first_vehicle_sample: dict[str, Any] | None = None


class VehiclesResponse(CamelModel):
    """Success envelope of the `gpswox` entry point."""

    success: Literal[True] = True
    vehicles: list[Vehicle]
    drivers: list[DriverSummary]
    debug: DebugInfo
    timestamp: datetime


class GeofenceSummary(CamelModel):
    """One geofence of the `gpswox-geofences` list."""

    id: str
    name: str
    group_id: int | str | None = None
    color: str | None = None
    active: bool | None = None


class GeofencesResponse(CamelModel):
    """Success envelope of the `gpswox-geofences` entry point."""

    success: Literal[True] = True
    geofences: list[GeofenceSummary]
    timestamp: datetime


class MapResponse(CamelModel):
    """Success envelope of the `gpswox-map` entry point."""

    success: Literal[True] = True
    map_url: str
    timestamp: datetime


class ErrorResponse(CamelModel):
    """Failure envelope shared by every entry point (always HTTP 200)."""

    success: Literal[False] = False
    error: str
