# gpswox_hub/operations/extractors.py
"""
Shape extractors for GPSwox payloads.

The same logical list (drivers, history samples, devices, events,
geofences) arrives in several envelopes depending on server version and
endpoint. Rather than one function with nested conditionals per payload
type, each envelope is described by a small extractor that returns the
list when the payload has that shape and None otherwise. `first_extraction`
runs an ordered list of extractors and keeps the first hit.

Design Decisions:
-----------------
- Driver extractors treat an empty list as "no result" so probing moves on to
  the next candidate endpoint. History extractors accept an empty list: an
  endpoint that answers with an empty history has still answered, and the
  same holds for events and geofences.

- Status flags are compared after numeric coercion since PHP servers send
  both 1 and "1".
"""

import logging
from collections.abc import Callable, Iterable, Sequence
from typing import Any

from gpswox_hub.models import coerce_float

__all__: list[str] = [
    'DRIVER_EXTRACTORS',
    'EVENT_EXTRACTORS',
    'GEOFENCE_EXTRACTORS',
    'HISTORY_EXTRACTORS',
    'Extractor',
    'extract_path',
    'first_extraction',
    'flatten_groups',
    'is_status_ok',
]

logger: logging.Logger = logging.getLogger(__name__)

type Extractor = Callable[[Any], list[Any] | None]


# =============================================================================
# Helpers
# =============================================================================


def is_status_ok(payload: Any) -> bool:
    """True when payload is an object whose status flag equals 1."""
    return isinstance(payload, dict) and coerce_float(payload.get('status')) == 1


def extract_path(payload: Any, *keys: str) -> list[Any] | None:
    """
    Follow a chain of object keys and return the value if it is a list.

    Args:
        payload: Decoded JSON payload.
        *keys: Keys to follow. No keys means the payload itself.

    Returns:
        The list found at the path, or None when any step is missing or the
        final value is not a list.

    Example:
        >>> extract_path({'items': {'data': [1, 2]}}, 'items', 'data')
        [1, 2]
        >>> extract_path({'items': {'data': 'x'}}, 'items', 'data') is None
        True
    """
    node: Any = payload
    for key in keys:
        if not isinstance(node, dict):
            return None
        node = node.get(key)
    return node if isinstance(node, list) else None


def _path_extractor(*keys: str) -> Extractor:
    """Build an extractor for a fixed key path."""

    def extractor(payload: Any) -> list[Any] | None:
        return extract_path(payload, *keys)

    extractor.__name__ = '.'.join(keys) or '<root>'
    return extractor


def first_extraction(payload: Any, extractors: Iterable[Extractor]) -> list[Any] | None:
    """
    Return the result of the first extractor that recognizes the payload.

    Args:
        payload: Decoded JSON payload.
        extractors: Extractors in priority order.

    Returns:
        The first non-None extraction, or None if no shape matched.
    """
    for extractor in extractors:
        extracted: list[Any] | None = extractor(payload)
        if extracted is not None:
            logger.debug(
                'Payload matched shape %s (%d items)',
                getattr(extractor, '__name__', repr(extractor)),
                len(extracted),
            )
            return extracted
    return None


# =============================================================================
# Drivers
# =============================================================================


def _non_empty(items: list[Any] | None) -> list[Any] | None:
    return items if items else None


def drivers_flat_array(payload: Any) -> list[Any] | None:
    """[driver, ...]"""
    return _non_empty(extract_path(payload))


def drivers_status_items(payload: Any) -> list[Any] | None:
    """{status: 1, items: [driver, ...]}"""
    if not is_status_ok(payload):
        return None
    return _non_empty(extract_path(payload, 'items'))


def drivers_items_drivers_data(payload: Any) -> list[Any] | None:
    """{status: 1, items: {drivers: {data: [driver, ...]}}}"""
    if not is_status_ok(payload):
        return None
    return _non_empty(extract_path(payload, 'items', 'drivers', 'data'))


def drivers_drivers_data(payload: Any) -> list[Any] | None:
    """{status: 1, drivers: {data: [driver, ...]}}"""
    if not is_status_ok(payload):
        return None
    return _non_empty(extract_path(payload, 'drivers', 'data'))


DRIVER_EXTRACTORS: Sequence[Extractor] = (
    drivers_flat_array,
    drivers_status_items,
    drivers_items_drivers_data,
    drivers_drivers_data,
)


# =============================================================================
# History
# =============================================================================

HISTORY_EXTRACTORS: Sequence[Extractor] = tuple(
    _path_extractor(*path)
    for path in (
        (),
        ('items',),
        ('items', 'items'),
        ('items', 'data'),
        ('items', 'history'),
        ('data',),
        ('data', 'items'),
        ('data', 'history'),
        ('history',),
        ('history', 'items'),
        ('history', 'data'),
        ('result',),
        ('result', 'items'),
    )
)


# =============================================================================
# Events
# =============================================================================

# {status: 1, items: [...]} is covered by the plain items path.
EVENT_EXTRACTORS: Sequence[Extractor] = tuple(
    _path_extractor(*path)
    for path in (
        ('items', 'events'),
        ('items',),
        (),
        ('data',),
    )
)


# =============================================================================
# Geofences
# =============================================================================


def geofences_grouped(payload: Any) -> list[Any] | None:
    """[{items: [geofence, ...]}, ...]"""
    groups: list[Any] | None = extract_path(payload)
    if groups is None:
        return None
    return flatten_groups(groups)


GEOFENCE_EXTRACTORS: Sequence[Extractor] = (
    geofences_grouped,
    _path_extractor('items', 'geofences'),
    _path_extractor('items'),
)


# =============================================================================
# Grouped Lists
# =============================================================================


def flatten_groups(groups: list[Any]) -> list[dict[str, Any]]:
    """
    Flatten a grouped listing (devices, geofences) into one list.

    Groups without an `items` array contribute nothing; item order is
    preserved group by group.

    Example:
        >>> flatten_groups([{'items': [{'id': 1}]}, {'items': [{'id': 2}]}])
        [{'id': 1}, {'id': 2}]
    """
    flattened: list[dict[str, Any]] = []
    for group in groups:
        items: list[Any] | None = extract_path(group, 'items')
        if items is None:
            continue
        flattened.extend(item for item in items if isinstance(item, dict))
    return flattened
