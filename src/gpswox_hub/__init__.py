# gpswox_hub/__init__.py
"""
GPSwox Tracking Hub - normalized vehicles, fleet reports and alerts from GPSwox.

The hub sits between a fleet management front end and a GPSwox tracking
server. It logs in with account credentials, caches the session token,
fetches devices and drivers, and returns them in a stable shape:

1. **Vehicles** (`TrackingService.fetch_vehicles`, route `/gpswox`)
   - Current and legacy device payloads normalized into one Vehicle model
   - Battery, GSM, odometer and fuel read from heterogeneous sensor arrays
   - Drivers resolved per device through three fallback tiers

2. **Reports** (`TrackingService.fetch_reports`, route `/gpswox-reports`)
   - Fleet summary: online/offline/idle/moving counts, speeds, distances
   - Overspeed, stopped, offline, moving and fuel lists
   - Per-day distance and fuel consumption from position history

3. **Alerts** (`TrackingService.fetch_alerts`, route `/gpswox-alerts`)
   - Provider events mapped to typed, graded alerts
   - Offline, overspeed, long-stop and low-battery alerts derived from the
     device list when the server exposes no events

4. **Geofences and map** (routes `/gpswox-geofences`, `/gpswox-map`)
   - Geofence list flattened from grouped payloads
   - Signed URL of the provider's web map

Quick Start:
    >>> from gpswox_hub import TrackingService, load_config
    >>>
    >>> config = load_config()  # GPSWOX_API_URL / GPSWOX_EMAIL / GPSWOX_PASSWORD
    >>> async with TrackingService.from_config(config) as service:
    ...     response = await service.fetch_vehicles()
    ...     for vehicle in response.vehicles:
    ...         print(vehicle.plate, vehicle.status)

Serving:
    $ gpswox-hub --config config/gpswox_config.yaml
"""

__version__ = '0.1.0'

from gpswox_hub.client import (
    AuthenticationError,
    GpswoxClient,
    GpswoxError,
    NetworkError,
    ParseError,
    ProviderError,
)
from gpswox_hub.common import setup_logger
from gpswox_hub.config import ConfigurationError, load_config
from gpswox_hub.service import TrackingService
from gpswox_hub.session import Authenticator, SessionCache

__all__: list[str] = [
    'AuthenticationError',
    'Authenticator',
    'ConfigurationError',
    'GpswoxClient',
    'GpswoxError',
    'NetworkError',
    'ParseError',
    'ProviderError',
    'SessionCache',
    'TrackingService',
    '__version__',
    'load_config',
    'setup_logger',
]
