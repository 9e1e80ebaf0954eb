# gpswox_hub/models/report_models.py
"""
Report models for the `gpswox-reports` entry point.

The reports payload keeps the provider's snake_case naming; the front end
reads `fleet_summary.max_speed_device` and friends directly.
"""

from datetime import datetime
from enum import Enum
from typing import Any, Literal, Self

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator

__all__: list[str] = [
    'DailyStat',
    'FleetReport',
    'FleetSummary',
    'FuelEntry',
    'MovingVehicleEntry',
    'OfflineVehicleEntry',
    'OverspeedEntry',
    'OverspeedSeverity',
    'ReportRequest',
    'ReportType',
    'ReportsResponse',
    'StoppedVehicleEntry',
    'VehicleReport',
    'normalize_date_value',
]


class ReportType(str, Enum):
    """Report variants served by gpswox-reports."""

    SUMMARY = 'summary'
    HISTORY = 'history'
    DAILY_STATS = 'daily_stats'


OverspeedSeverity = Literal['medium', 'high', 'critical']


def normalize_date_value(value: str | None, is_end: bool) -> str:
    """
    Expand a bare date into the datetime format GPSwox history expects.

    Values that already carry a time part are returned unchanged:

        normalize_date_value('2025-03-01', is_end=False) -> '2025-03-01 00:00:00'
        normalize_date_value('2025-03-01', is_end=True)  -> '2025-03-01 23:59:59'
    """
    if not value:
        return ''
    value = value.strip()
    if ' ' in value:
        return value
    return f'{value} {"23:59:59" if is_end else "00:00:00"}'


class ReportModelBase(BaseModel):
    """Base for report rows."""

    model_config = ConfigDict(extra='forbid')


# =============================================================================
# Request
# =============================================================================


class ReportRequest(ReportModelBase):
    """
    Parameters of a gpswox-reports call.

    `history` needs a device and a date range; `daily_stats` needs a date
    range. Dates are normalized by `normalize_date_value`.
    """

    model_config = ConfigDict(extra='ignore')

    type: ReportType = ReportType.SUMMARY
    device_id: int | str | None = None
    date_from: str = ''
    date_to: str = ''

    @field_validator('type', mode='before')
    @classmethod
    def default_blank_type(cls, value: Any) -> Any:
        """An empty type parameter means summary."""
        return value or ReportType.SUMMARY

    @field_validator('device_id', mode='before')
    @classmethod
    def blank_device_is_none(cls, value: Any) -> Any:
        """Query strings deliver '' for absent values."""
        return None if value in ('', None) else value

    @field_validator('date_from', mode='before')
    @classmethod
    def normalize_date_from(cls, value: Any) -> str:
        """Bare start dates begin at midnight."""
        return normalize_date_value(str(value) if value else None, is_end=False)

    @field_validator('date_to', mode='before')
    @classmethod
    def normalize_date_to(cls, value: Any) -> str:
        """Bare end dates end one second before midnight."""
        return normalize_date_value(str(value) if value else None, is_end=True)

    @model_validator(mode='after')
    def validate_required_parameters(self) -> Self:
        """Check parameters required by the selected report type."""
        if self.type in (ReportType.HISTORY, ReportType.DAILY_STATS) and not (
            self.date_from and self.date_to
        ):
            raise ValueError(f"Report type '{self.type.value}' requires date_from and date_to")
        if self.type == ReportType.HISTORY and self.device_id is None:
            raise ValueError("Report type 'history' requires device_id")
        return self


# =============================================================================
# Fleet Report
# =============================================================================


class FleetSummary(ReportModelBase):
    """Fleet-wide counters."""

    total_vehicles: int = 0
    online: int = 0
    offline: int = 0
    idle: int = 0
    moving: int = 0
    total_speed: float = 0.0
    max_speed: float = 0.0
    max_speed_device: str = ''
    total_distance_today: float = 0.0
    total_distance_week: float = 0.0
    total_distance_month: float = 0.0


class VehicleReport(ReportModelBase):
    """Per-device row of the fleet report."""

    id: int | str
    name: str
    status: Literal['moving', 'offline', 'stopped']
    online: str | None
    speed: float
    lat: float | None
    lng: float | None
    altitude: float
    course: float
    last_update: str | None
    timestamp: float | None
    distance_today: float
    distance_week: float
    distance_month: float
    odometer: float
    battery: float | None
    fuel: float | None
    stop_duration_minutes: int
    current_driver: dict[str, Any] | None


class OverspeedEntry(ReportModelBase):
    """Device currently above the overspeed threshold."""

    device_id: int | str
    device_name: str
    speed: float
    lat: float | None
    lng: float | None
    timestamp: str | None
    severity: OverspeedSeverity


class StoppedVehicleEntry(ReportModelBase):
    """Device reporting but stationary for longer than the threshold."""

    device_id: int | str
    device_name: str
    stop_duration_minutes: int
    stop_duration_formatted: str
    lat: float | None
    lng: float | None
    last_update: str | None


class OfflineVehicleEntry(ReportModelBase):
    """Device the provider reports as offline."""

    device_id: int | str
    device_name: str
    last_update: str | None
    lat: float | None
    lng: float | None


class MovingVehicleEntry(ReportModelBase):
    """Device above the moving speed threshold."""

    device_id: int | str
    device_name: str
    speed: float
    course: float
    lat: float | None
    lng: float | None
    last_update: str | None


class FuelEntry(ReportModelBase):
    """Current fuel level of one device."""

    device_id: int | str
    device_name: str
    fuel_level: float
    timestamp: str | None


class FleetReport(ReportModelBase):
    """Fleet report built fresh for every request."""

    fleet_summary: FleetSummary = Field(default_factory=FleetSummary)
    vehicles: list[VehicleReport] = Field(default_factory=list)
    overspeeds: list[OverspeedEntry] = Field(default_factory=list)
    stopped_vehicles: list[StoppedVehicleEntry] = Field(default_factory=list)
    offline_vehicles: list[OfflineVehicleEntry] = Field(default_factory=list)
    moving_vehicles: list[MovingVehicleEntry] = Field(default_factory=list)
    fuel_data: list[FuelEntry] = Field(default_factory=list)


# =============================================================================
# Daily Stats and Response
# =============================================================================


class DailyStat(ReportModelBase):
    """Distance (km) and fuel consumed by one device on one day."""

    distance: float = 0.0
    fuel: float = 0.0


class ReportsResponse(ReportModelBase):
    """Success envelope of the gpswox-reports entry point."""

    success: Literal[True] = True
    report_type: ReportType
    reports: FleetReport
    history: list[Any] | None = None
    daily_stats: dict[str, dict[str, DailyStat]] = Field(default_factory=dict)
    timestamp: datetime
