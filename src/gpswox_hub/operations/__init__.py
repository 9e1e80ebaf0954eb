# gpswox_hub/operations/__init__.py

from gpswox_hub.operations.alerts import (
    alert_from_event,
    alerts_from_devices,
    classify_event_type,
    sort_alerts,
)
from gpswox_hub.operations.correlate import (
    DriverIndex,
    resolve_driver,
    synthesize_drivers,
)
from gpswox_hub.operations.daily_stats import haversine_km, reduce_history
from gpswox_hub.operations.extractors import (
    DRIVER_EXTRACTORS,
    EVENT_EXTRACTORS,
    GEOFENCE_EXTRACTORS,
    HISTORY_EXTRACTORS,
    first_extraction,
    flatten_groups,
)
from gpswox_hub.operations.fetch_data import (
    get_device_history,
    get_devices,
    get_drivers,
    get_events,
    get_geofences,
    root_url_for,
)
from gpswox_hub.operations.normalize import (
    SensorReadings,
    first_vehicle_sample,
    normalize_device,
    scan_sensors,
    summarize_driver,
)
from gpswox_hub.operations.probing import build_candidate_urls, probe_candidates
from gpswox_hub.operations.reports import build_report, format_stop_duration

__all__: list[str] = [
    'DRIVER_EXTRACTORS',
    'EVENT_EXTRACTORS',
    'GEOFENCE_EXTRACTORS',
    'HISTORY_EXTRACTORS',
    'DriverIndex',
    'SensorReadings',
    'alert_from_event',
    'alerts_from_devices',
    'build_candidate_urls',
    'build_report',
    'classify_event_type',
    'first_extraction',
    'first_vehicle_sample',
    'flatten_groups',
    'format_stop_duration',
    'get_device_history',
    'get_devices',
    'get_drivers',
    'get_events',
    'get_geofences',
    'haversine_km',
    'normalize_device',
    'probe_candidates',
    'reduce_history',
    'resolve_driver',
    'root_url_for',
    'scan_sensors',
    'sort_alerts',
    'summarize_driver',
    'synthesize_drivers',
]
