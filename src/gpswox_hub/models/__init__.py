# gpswox_hub/models/__init__.py

from gpswox_hub.models.alert_models import (
    Alert,
    AlertSeverity,
    AlertSource,
    AlertsResponse,
    AlertType,
)
from gpswox_hub.models.fleet_models import (
    DebugInfo,
    DriverDetails,
    DriverSummary,
    ErrorResponse,
    GeofenceSummary,
    GeofencesResponse,
    MapResponse,
    Position,
    Vehicle,
    VehiclesResponse,
    VehicleStatus,
)
from gpswox_hub.models.gpswox_responses import (
    DeviceRecord,
    DriverRecord,
    EmbeddedDriver,
    GeofenceRecord,
    LegacyDeviceData,
    LoginResponse,
    Sensor,
    coerce_float,
)
from gpswox_hub.models.report_models import (
    DailyStat,
    FleetReport,
    FleetSummary,
    FuelEntry,
    MovingVehicleEntry,
    OfflineVehicleEntry,
    OverspeedEntry,
    OverspeedSeverity,
    ReportRequest,
    ReportsResponse,
    ReportType,
    StoppedVehicleEntry,
    VehicleReport,
    normalize_date_value,
)

__all__: list[str] = [
    'Alert',
    'AlertSeverity',
    'AlertSource',
    'AlertType',
    'AlertsResponse',
    'DailyStat',
    'DebugInfo',
    'DeviceRecord',
    'DriverDetails',
    'DriverRecord',
    'DriverSummary',
    'EmbeddedDriver',
    'ErrorResponse',
    'FleetReport',
    'FleetSummary',
    'FuelEntry',
    'GeofenceRecord',
    'GeofenceSummary',
    'GeofencesResponse',
    'LegacyDeviceData',
    'LoginResponse',
    'MapResponse',
    'MovingVehicleEntry',
    'OfflineVehicleEntry',
    'OverspeedEntry',
    'OverspeedSeverity',
    'Position',
    'ReportRequest',
    'ReportType',
    'ReportsResponse',
    'Sensor',
    'StoppedVehicleEntry',
    'Vehicle',
    'VehicleReport',
    'VehicleStatus',
    'VehiclesResponse',
    'coerce_float',
    'normalize_date_value',
]
