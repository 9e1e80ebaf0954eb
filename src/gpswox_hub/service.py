# gpswox_hub/service.py
"""
Request orchestration for the HTTP entry points.

A TrackingService owns the long-lived pieces (HTTP client, session cache,
authenticator) and runs one request of any entry point:

    fetch_vehicles()        -> VehiclesResponse   (gpswox)
    fetch_reports(request)  -> ReportsResponse    (gpswox-reports)
    fetch_alerts()          -> AlertsResponse     (gpswox-alerts)
    fetch_geofences()       -> GeofencesResponse  (gpswox-geofences)
    fetch_map_url()         -> MapResponse        (gpswox-map)

Usage:
------
    config = load_config()
    async with TrackingService.from_config(config) as service:
        response = await service.fetch_vehicles()

Design Decisions:
-----------------
- Devices and drivers are fetched concurrently. A driver failure never fails
  the request: it is logged, reported in the debug block, and the driver list
  is synthesized from the devices instead.

- Per-device history for daily stats is fetched in sequential batches
  (`reports.history_batch_size`, default 5) with the devices of a batch
  fetched concurrently. A failing device is logged and left out.

- Any failure of fetch_vehicles, fetch_alerts, fetch_geofences or
  fetch_map_url evicts the session token so the next call logs in again.
  fetch_reports evicts it on authentication failures only.

- The probe log shown in the debug block is created per request; concurrent
  requests never share it.
"""

import asyncio
import logging
from collections.abc import Awaitable, Callable
from datetime import UTC, datetime
from types import TracebackType
from typing import Any, Self
from urllib.parse import quote

import httpx

from gpswox_hub.client import AuthenticationError, GpswoxClient
from gpswox_hub.config import TrackingConfig
from gpswox_hub.models import (
    Alert,
    AlertSource,
    AlertsResponse,
    DailyStat,
    DebugInfo,
    DeviceRecord,
    DriverRecord,
    FleetReport,
    GeofencesResponse,
    GeofenceSummary,
    MapResponse,
    ReportRequest,
    ReportsResponse,
    ReportType,
    VehiclesResponse,
)
from gpswox_hub.operations import (
    DriverIndex,
    alert_from_event,
    alerts_from_devices,
    build_report,
    first_vehicle_sample,
    get_device_history,
    get_devices,
    get_drivers,
    get_events,
    get_geofences,
    normalize_device,
    reduce_history,
    root_url_for,
    summarize_driver,
    synthesize_drivers,
)
from gpswox_hub.session import Authenticator, SessionCache

__all__: list[str] = ['TrackingService']

logger: logging.Logger = logging.getLogger(__name__)

type Clock = Callable[[], datetime]

type DailyStats = dict[str, dict[str, DailyStat]]


def _utc_now() -> datetime:
    return datetime.now(UTC)


class TrackingService:
    """
    Runs the vehicles and reports workflows against one GPSwox account.

    Attributes:
        config: The validated configuration (read-only).
        cache: The session cache shared by every request of this service.

    Example:
        >>> service = TrackingService.from_config(config)
        >>> vehicles = await service.fetch_vehicles()
        >>> report = await service.fetch_reports(ReportRequest(type='summary'))
        >>> await service.aclose()
    """

    def __init__(
        self,
        config: TrackingConfig,
        client: GpswoxClient,
        cache: SessionCache | None = None,
        clock: Clock = _utc_now,
    ) -> None:
        """
        Args:
            config: Validated configuration.
            client: HTTP client; closed by aclose().
            cache: Session cache. A fresh one is created when omitted.
            clock: Source of the current UTC time. Injected by tests.
        """
        self._config: TrackingConfig = config
        self._client: GpswoxClient = client
        self._cache: SessionCache = cache if cache is not None else SessionCache()
        self._clock: Clock = clock
        self._authenticator: Authenticator = Authenticator.from_config(
            client, config.provider, self._cache
        )

    @classmethod
    def from_config(
        cls,
        config: TrackingConfig,
        transport: httpx.AsyncBaseTransport | None = None,
        cache: SessionCache | None = None,
        clock: Clock = _utc_now,
    ) -> Self:
        """Create a service and its HTTP client from configuration."""
        client: GpswoxClient = GpswoxClient.from_config(config.provider, transport=transport)
        return cls(config, client, cache=cache, clock=clock)

    @property
    def config(self) -> TrackingConfig:
        """The configuration this service was built from."""
        return self._config

    @property
    def cache(self) -> SessionCache:
        """The process-wide session cache."""
        return self._cache

    # -------------------------------------------------------------------------
    # Lifecycle
    # -------------------------------------------------------------------------

    async def aclose(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # -------------------------------------------------------------------------
    # Vehicles
    # -------------------------------------------------------------------------

    async def fetch_vehicles(self) -> VehiclesResponse:
        """
        Fetch devices and drivers and normalize them into vehicles.

        Returns:
            VehiclesResponse with vehicles, the effective driver list and the
            debug block.

        Raises:
            GpswoxError: If login or the device fetch fails. The session
                cache is invalidated first.
        """
        return await self._invalidate_on_failure(self._fetch_vehicles())

    async def _fetch_vehicles(self) -> VehiclesResponse:
        probe_log: list[str] = []
        api_hash, base_url = await self._authenticator.login(self._config.provider.api_url)
        logger.info('Using API URL: %s', base_url)

        driver_errors: list[str] = []
        devices, api_drivers = await asyncio.gather(
            self._get_devices(base_url, api_hash),
            self._get_drivers_or_empty(base_url, api_hash, probe_log, driver_errors),
        )
        logger.info('Fetched %d devices and %d drivers', len(devices), len(api_drivers))

        drivers: list[DriverRecord] = list(api_drivers)
        if not drivers:
            logger.info('Drivers list empty, extracting drivers from devices')
            drivers = synthesize_drivers(devices)

        index: DriverIndex = DriverIndex.from_drivers(drivers)
        vehicles = [normalize_device(device, index) for device in devices]
        logger.info('Transformed %d vehicles', len(vehicles))

        return VehiclesResponse(
            vehicles=vehicles,
            drivers=[summarize_driver(driver) for driver in drivers],
            debug=DebugInfo(
                driver_fetch_error=driver_errors[0] if driver_errors else None,
                drivers_source='api' if api_drivers else 'devices_fallback',
                extracted_count=len(drivers),
                logs=probe_log,
                first_vehicle_sample=first_vehicle_sample(devices),
            ),
            timestamp=self._clock(),
        )

    async def _invalidate_on_failure[ResultT](self, work: Awaitable[ResultT]) -> ResultT:
        """Await work, evicting the session token if it raises."""
        try:
            return await work
        except Exception:
            self._cache.invalidate()
            raise

    async def _get_devices(self, base_url: str, api_hash: str) -> list[DeviceRecord]:
        """get_devices, evicting the token when the provider rejects it."""
        try:
            return await get_devices(self._client, base_url, api_hash)
        except AuthenticationError:
            self._cache.invalidate()
            raise

    async def _get_drivers_or_empty(
        self,
        base_url: str,
        api_hash: str,
        probe_log: list[str],
        errors: list[str],
    ) -> list[DriverRecord]:
        """get_drivers, degrading any failure to an empty list."""
        try:
            return await get_drivers(
                self._client,
                base_url,
                api_hash,
                self._config.endpoints,
                probe_log=probe_log,
            )
        except Exception as error:
            logger.exception('Failed to fetch drivers (non-fatal)')
            errors.append(str(error))
            return []

    # -------------------------------------------------------------------------
    # Reports
    # -------------------------------------------------------------------------

    async def fetch_reports(self, request: ReportRequest) -> ReportsResponse:
        """
        Build the fleet report and, depending on the type, history or stats.

        Args:
            request: Validated report parameters.

        Returns:
            ReportsResponse. `history` is only set for type 'history' and
            `daily_stats` is only filled for type 'daily_stats'.

        Raises:
            GpswoxError: If login or the device fetch fails.
        """
        api_hash, base_url = await self._authenticator.login(self._config.provider.api_url)

        devices: list[DeviceRecord] = await self._get_devices(base_url, api_hash)
        logger.info('Fetched %d devices for reports', len(devices))

        now: datetime = self._clock()
        report: FleetReport = build_report(devices, self._config.reports, now)

        history: list[Any] | None = None
        daily_stats: DailyStats = {}

        if request.type == ReportType.HISTORY and request.device_id is not None:
            history = await get_device_history(
                self._client,
                base_url,
                api_hash,
                request.device_id,
                request.date_from,
                request.date_to,
                self._config.endpoints,
            )
        elif request.type == ReportType.DAILY_STATS:
            daily_stats = await self._collect_daily_stats(base_url, api_hash, devices, request)

        return ReportsResponse(
            report_type=request.type,
            reports=report,
            history=history,
            daily_stats=daily_stats,
            timestamp=now,
        )

    async def _collect_daily_stats(
        self,
        base_url: str,
        api_hash: str,
        devices: list[DeviceRecord],
        request: ReportRequest,
    ) -> DailyStats:
        """Fetch and reduce every device's history, batch by batch."""
        batch_size: int = self._config.reports.history_batch_size
        daily_stats: DailyStats = {}

        for batch_start in range(0, len(devices), batch_size):
            batch: list[DeviceRecord] = devices[batch_start : batch_start + batch_size]
            logger.debug(
                'Fetching history batch %d-%d of %d devices',
                batch_start + 1,
                batch_start + len(batch),
                len(devices),
            )

            batch_results: list[dict[str, DailyStat]] = await asyncio.gather(
                *(
                    self._device_daily_stats(base_url, api_hash, device, request)
                    for device in batch
                )
            )

            for device, device_stats in zip(batch, batch_results, strict=True):
                for day, stat in device_stats.items():
                    daily_stats.setdefault(day, {})[str(device.id)] = stat

        return daily_stats

    async def _device_daily_stats(
        self,
        base_url: str,
        api_hash: str,
        device: DeviceRecord,
        request: ReportRequest,
    ) -> dict[str, DailyStat]:
        """Daily stats of one device; failures are logged and yield {}."""
        try:
            history: list[Any] | None = await get_device_history(
                self._client,
                base_url,
                api_hash,
                device.id,
                request.date_from,
                request.date_to,
                self._config.endpoints,
            )
            return reduce_history(history) if history else {}
        except Exception:
            logger.exception('Error fetching history for device %s', device.id)
            return {}

    # -------------------------------------------------------------------------
    # Alerts
    # -------------------------------------------------------------------------

    async def fetch_alerts(self) -> AlertsResponse:
        """
        Fetch provider events as alerts, or derive alerts from the devices.

        Event endpoints are probed first. When none answers with at least one
        event, alerts are derived from the live device list and sorted by
        severity, then newest first. Provider events keep their order.

        Raises:
            GpswoxError: If login fails, or the device fetch fails while
                deriving alerts. The session cache is invalidated first.
        """
        return await self._invalidate_on_failure(self._fetch_alerts())

    async def _fetch_alerts(self) -> AlertsResponse:
        api_hash, base_url = await self._authenticator.login(self._config.provider.api_url)
        now: datetime = self._clock()

        events: list[dict[str, Any]] | None = await get_events(
            self._client, base_url, api_hash, self._config.endpoints
        )

        alerts: list[Alert]
        source: AlertSource
        if events:
            alerts = [alert_from_event(event, index, now) for index, event in enumerate(events)]
            source = 'events'
        else:
            logger.info('No events available, deriving alerts from devices')
            devices: list[DeviceRecord] = await self._get_devices(base_url, api_hash)
            alerts = alerts_from_devices(devices, self._config.alerts, now)
            source = 'devices'

        logger.info('Returning %d alerts from %s', len(alerts), source)
        return AlertsResponse(alerts=alerts, source=source, total=len(alerts), timestamp=now)

    # -------------------------------------------------------------------------
    # Geofences and Map
    # -------------------------------------------------------------------------

    async def fetch_geofences(self) -> GeofencesResponse:
        """
        Fetch the account's geofences.

        Raises:
            GpswoxError: If login or the geofence fetch fails. The session
                cache is invalidated first.
        """
        return await self._invalidate_on_failure(self._fetch_geofences())

    async def _fetch_geofences(self) -> GeofencesResponse:
        api_hash, base_url = await self._authenticator.login(self._config.provider.api_url)
        geofences = await get_geofences(self._client, base_url, api_hash)

        return GeofencesResponse(
            geofences=[
                GeofenceSummary(
                    id=str(geofence.id),
                    name=geofence.name,
                    group_id=geofence.group_id,
                    color=geofence.polygon_color,
                    active=geofence.active,
                )
                for geofence in geofences
            ],
            timestamp=self._clock(),
        )

    async def fetch_map_url(self) -> MapResponse:
        """
        Build the URL of the provider's web map, signed with the session token.

        Raises:
            GpswoxError: If login fails. The session cache is invalidated first.
        """
        return await self._invalidate_on_failure(self._fetch_map_url())

    async def _fetch_map_url(self) -> MapResponse:
        api_hash, base_url = await self._authenticator.login(self._config.provider.api_url)
        map_url: str = f'{root_url_for(base_url)}/map?user_api_hash={quote(api_hash, safe="")}'
        logger.info('Built map URL for %s', root_url_for(base_url))
        return MapResponse(map_url=map_url, timestamp=self._clock())
