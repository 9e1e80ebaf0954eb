# gpswox_hub/operations/fetch_data.py
"""
Fetch functions for GPSwox devices, drivers, position history, events and
geofences.

Each function takes the shared client, the effective base URL returned by
`Authenticator.login` and the session token, and returns validated models
(or raw history samples and events). None of them touches the session cache; callers
invalidate it when an AuthenticationError propagates.

Strictness differs by endpoint:
- get_devices is authoritative. Unexpected payloads raise.
- get_geofences raises on a non-JSON body; an unknown shape means no
  geofences.
- get_drivers, get_device_history and get_events probe undocumented routes.
  They never raise for a bad candidate; they return [] / None when nothing
  answered.
"""

import logging
from typing import Any, Final

import httpx
from pydantic import BaseModel, ValidationError

from gpswox_hub.client import (
    BODY_PREVIEW_LENGTH,
    AuthenticationError,
    GpswoxClient,
    ParseError,
    ProviderError,
    decode_json,
)
from gpswox_hub.config import EndpointCandidatesConfig
from gpswox_hub.models import DeviceRecord, DriverRecord, GeofenceRecord
from gpswox_hub.operations.extractors import (
    DRIVER_EXTRACTORS,
    EVENT_EXTRACTORS,
    GEOFENCE_EXTRACTORS,
    HISTORY_EXTRACTORS,
    extract_path,
    first_extraction,
    flatten_groups,
    is_status_ok,
)
from gpswox_hub.operations.probing import build_candidate_urls, probe_candidates

__all__: list[str] = [
    'get_device_history',
    'get_devices',
    'get_drivers',
    'get_events',
    'get_geofences',
    'history_date_variants',
    'root_url_for',
]

logger: logging.Logger = logging.getLogger(__name__)

AUTH_FAILURE_STATUS_CODES: Final[frozenset[int]] = frozenset(
    {httpx.codes.UNAUTHORIZED, httpx.codes.FORBIDDEN}
)


def root_url_for(base_url: str) -> str:
    """Server root: the API base URL without its '/api' suffix."""
    return base_url.removesuffix('/api')


def _raise_for_auth_failure(response: httpx.Response) -> None:
    """Turn a 401/403 into AuthenticationError."""
    if response.status_code in AUTH_FAILURE_STATUS_CODES:
        raise AuthenticationError(
            f'GPSwox rejected the session token (HTTP {response.status_code})',
            status_code=response.status_code,
            response_body=response.text[:BODY_PREVIEW_LENGTH],
        )


def _validate_records[RecordT: BaseModel](
    raw_records: list[Any], model: type[RecordT], label: str
) -> list[RecordT]:
    """Validate raw objects, dropping entries that cannot be parsed."""
    records: list[RecordT] = []
    for raw_record in raw_records:
        if not isinstance(raw_record, dict):
            continue
        try:
            records.append(model.model_validate(raw_record))
        except ValidationError as error:
            logger.warning(
                'Skipping %s %s: %d validation error(s)',
                label,
                raw_record.get('id', '<no id>'),
                error.error_count(),
            )
    return records


# =============================================================================
# Devices
# =============================================================================


async def get_devices(
    client: GpswoxClient,
    base_url: str,
    api_hash: str,
) -> list[DeviceRecord]:
    """
    Fetch every device visible to the account.

    Two response shapes are handled:
        - Grouped: [{id, title, items: [device, ...]}, ...], flattened in order.
        - Flat: {status: 1, items: [device, ...]}.

    Args:
        client: Shared HTTP client.
        base_url: Effective API base URL.
        api_hash: Session token.

    Returns:
        Validated devices. Entries that fail validation are logged and skipped.

    Raises:
        AuthenticationError: On HTTP 401/403.
        ParseError: If the body is not JSON or not a list/object.
        ProviderError: If the object shape carries a status other than 1.
        NetworkError: If the request fails at the transport level.
    """
    logger.info('Fetching devices from GPSwox API')

    response: httpx.Response = await client.fetch_with_retry(
        f'{base_url}/get_devices',
        params={'user_api_hash': api_hash},
    )
    _raise_for_auth_failure(response)

    logger.debug('Devices raw response: %s', response.text[:BODY_PREVIEW_LENGTH])
    payload: Any = decode_json(response.text)

    if isinstance(payload, list):
        devices: list[DeviceRecord] = _validate_records(
            flatten_groups(payload), DeviceRecord, 'device'
        )
        logger.info('Extracted %d devices from %d groups', len(devices), len(payload))
        return devices

    if not isinstance(payload, dict):
        raise ParseError(
            f'Unexpected devices payload type: {type(payload).__name__}',
            status_code=response.status_code,
            response_body=response.text[:BODY_PREVIEW_LENGTH],
        )

    if not is_status_ok(payload):
        raise ProviderError(
            str(payload.get('message') or 'Failed to fetch devices'),
            status_code=response.status_code,
            response_body=response.text[:BODY_PREVIEW_LENGTH],
        )

    devices = _validate_records(extract_path(payload, 'items') or [], DeviceRecord, 'device')
    logger.info('Fetched %d devices', len(devices))
    return devices


# =============================================================================
# Drivers
# =============================================================================


async def get_drivers(
    client: GpswoxClient,
    base_url: str,
    api_hash: str,
    endpoints: EndpointCandidatesConfig,
    probe_log: list[str] | None = None,
) -> list[DriverRecord]:
    """
    Probe the candidate driver endpoints and return the first driver list.

    Args:
        client: Shared HTTP client.
        base_url: Effective API base URL.
        api_hash: Session token.
        endpoints: Candidate URL templates and probe timeout.
        probe_log: Optional per-request log receiving each probing step.

    Returns:
        Drivers from the first candidate yielding a non-empty list, or []
        when none does. An empty result is not an error.
    """
    log_lines: list[str] = probe_log if probe_log is not None else []
    log_lines.append('Fetching drivers from GPSwox API...')

    urls: list[str] = build_candidate_urls(
        endpoints.driver_endpoints,
        base_url=base_url,
        root_url=root_url_for(base_url),
        api_hash=api_hash,
    )

    raw_drivers: list[Any] | None = await probe_candidates(
        client,
        urls,
        accept=lambda payload: first_extraction(payload, DRIVER_EXTRACTORS),
        timeout_seconds=endpoints.driver_timeout_seconds,
        probe_log=log_lines,
        label='drivers',
        token=api_hash,
    )

    if raw_drivers is None:
        log_lines.append('No drivers endpoint found or all returned empty')
        return []

    drivers: list[DriverRecord] = _validate_records(raw_drivers, DriverRecord, 'driver')

    logger.info('Fetched %d drivers', len(drivers))
    return drivers


# =============================================================================
# History
# =============================================================================


def history_date_variants(value: str) -> list[str]:
    """
    Date forms tried for a history bound: as given, then the bare date.

    Example:
        >>> history_date_variants('2025-03-01 00:00:00')
        ['2025-03-01 00:00:00', '2025-03-01']
        >>> history_date_variants('2025-03-01')
        ['2025-03-01']
    """
    return list(dict.fromkeys([value, value.split(' ')[0]]))


async def get_device_history(
    client: GpswoxClient,
    base_url: str,
    api_hash: str,
    device_id: int | str,
    date_from: str,
    date_to: str,
    endpoints: EndpointCandidatesConfig,
    probe_log: list[str] | None = None,
) -> list[Any] | None:
    """
    Fetch raw position samples of one device for a date range.

    Candidates are every history template crossed with every date form
    (full datetime and bare date, for both bounds), in that order:
    date forms outermost, templates innermost.

    Args:
        client: Shared HTTP client.
        base_url: Effective API base URL.
        api_hash: Session token.
        device_id: Provider device id.
        date_from: Range start, 'YYYY-MM-DD HH:MM:SS' or 'YYYY-MM-DD'.
        date_to: Range end, same formats.
        endpoints: Candidate URL templates and probe timeout.
        probe_log: Optional log receiving each probing step.

    Returns:
        Raw history samples from the first candidate whose payload matches a
        known shape (possibly empty), or None when no candidate did.
    """
    urls: list[str] = []
    for from_value in history_date_variants(date_from):
        for to_value in history_date_variants(date_to):
            urls.extend(
                build_candidate_urls(
                    endpoints.history_endpoints,
                    base_url=base_url,
                    root_url=root_url_for(base_url),
                    api_hash=api_hash,
                    device_id=device_id,
                    date_from=from_value,
                    date_to=to_value,
                )
            )

    history: list[Any] | None = await probe_candidates(
        client,
        urls,
        accept=lambda payload: first_extraction(payload, HISTORY_EXTRACTORS),
        timeout_seconds=endpoints.history_timeout_seconds,
        probe_log=probe_log,
        label='history',
        token=api_hash,
    )

    if history is None:
        logger.info('No history endpoint answered for device %s', device_id)
    else:
        logger.debug('Fetched %d history samples for device %s', len(history), device_id)
    return history


# =============================================================================
# Events
# =============================================================================


async def get_events(
    client: GpswoxClient,
    base_url: str,
    api_hash: str,
    endpoints: EndpointCandidatesConfig,
    probe_log: list[str] | None = None,
) -> list[dict[str, Any]] | None:
    """
    Probe the candidate event endpoints and return the first event page.

    Args:
        client: Shared HTTP client.
        base_url: Effective API base URL.
        api_hash: Session token.
        endpoints: Candidate URL templates and probe timeout.
        probe_log: Optional log receiving each probing step.

    Returns:
        Raw event objects from the first candidate whose payload matches a
        known shape (possibly empty), or None when no candidate did.
    """
    urls: list[str] = build_candidate_urls(
        endpoints.event_endpoints,
        base_url=base_url,
        root_url=root_url_for(base_url),
        api_hash=api_hash,
    )

    events: list[Any] | None = await probe_candidates(
        client,
        urls,
        accept=lambda payload: first_extraction(payload, EVENT_EXTRACTORS),
        timeout_seconds=endpoints.event_timeout_seconds,
        probe_log=probe_log,
        label='events',
        token=api_hash,
    )

    if events is None:
        logger.info('No events endpoint answered')
        return None

    logger.info('Fetched %d events', len(events))
    return [event for event in events if isinstance(event, dict)]


# =============================================================================
# Geofences
# =============================================================================


async def get_geofences(
    client: GpswoxClient,
    base_url: str,
    api_hash: str,
) -> list[GeofenceRecord]:
    """
    Fetch the account's geofences.

    Three response shapes are handled: grouped ([{items: [...]}, ...]),
    {items: {geofences: [...]}} and {items: [...]}. Any other JSON payload
    yields an empty list.

    Raises:
        AuthenticationError: On HTTP 401/403.
        ParseError: If the body is not JSON.
        NetworkError: If the request fails at the transport level.
    """
    logger.info('Fetching geofences from GPSwox API')

    response: httpx.Response = await client.fetch_with_retry(
        f'{base_url}/get_geofences',
        params={'user_api_hash': api_hash},
    )
    _raise_for_auth_failure(response)

    try:
        payload: Any = decode_json(response.text)
    except ParseError as error:
        raise ParseError(
            'Invalid response format from geofences API',
            status_code=response.status_code,
            response_body=error.response_body,
        ) from error

    raw_geofences: list[Any] | None = first_extraction(payload, GEOFENCE_EXTRACTORS)
    if raw_geofences is None:
        logger.warning('Unexpected geofences payload shape; returning no geofences')
        return []

    geofences: list[GeofenceRecord] = _validate_records(
        raw_geofences, GeofenceRecord, 'geofence'
    )
    logger.info('Fetched %d geofences', len(geofences))
    return geofences
