# gpswox_hub/operations/correlate.py
"""
Device/driver correlation.

A device's driver is resolved through three tiers, first hit wins:

    1. The device's own embedded driver (`current_driver`, legacy `driver_data`)
    2. A driver whose `device_id` is this device's id
    3. The driver whose id equals the device's `current_driver_id`

Ids are compared as strings since GPSwox mixes integer and string ids.
"""

import logging
from dataclasses import dataclass, field
from typing import Self

from gpswox_hub.models import (
    DeviceRecord,
    DriverDetails,
    DriverRecord,
    EmbeddedDriver,
)

__all__: list[str] = [
    'DriverIndex',
    'resolve_driver',
    'synthesize_drivers',
]

logger: logging.Logger = logging.getLogger(__name__)


def _driver_key(driver: EmbeddedDriver) -> str:
    """Dedup key: the id, or the lowercased name when the id is missing."""
    if driver.id not in (None, '', 0):
        return str(driver.id)
    return f'name:{(driver.name or "").lower()}'


def synthesize_drivers(devices: list[DeviceRecord]) -> list[DriverRecord]:
    """
    Build a driver list from the drivers embedded in devices.

    Used when no driver endpoint returned anything. Each distinct driver is
    recorded once, bound to the first device it was found on.

    Args:
        devices: Devices in provider order.

    Returns:
        Synthesized drivers, deduplicated by id or lowercased name.
    """
    drivers: dict[str, DriverRecord] = {}

    for device in devices:
        embedded: EmbeddedDriver | None = device.embedded_driver
        if embedded is None or not (embedded.id or embedded.name):
            continue

        key: str = _driver_key(embedded)
        if key in drivers:
            continue

        drivers[key] = DriverRecord(
            id=embedded.id if embedded.id not in (None, '') else key,
            name=embedded.name or 'Unknown',
            email=embedded.email or '',
            phone=embedded.phone or '',
            device_id=device.id,
            device_name=device.name,
        )

    if drivers:
        logger.info('Extracted %d drivers from devices', len(drivers))
    return list(drivers.values())


@dataclass(frozen=True)
class DriverIndex:
    """
    Lookup maps over a driver list, keyed by stringified ids.

    Attributes:
        by_id: Driver id -> driver.
        by_device_id: Bound device id -> driver. Later drivers win when two
            claim the same device.
    """

    by_id: dict[str, DriverRecord] = field(default_factory=dict)
    by_device_id: dict[str, DriverRecord] = field(default_factory=dict)

    @classmethod
    def from_drivers(cls, drivers: list[DriverRecord]) -> Self:
        """Index drivers by id and by bound device id."""
        by_id: dict[str, DriverRecord] = {}
        by_device_id: dict[str, DriverRecord] = {}

        for driver in drivers:
            by_id[str(driver.id)] = driver
            if driver.device_id not in (None, '', 0):
                by_device_id[str(driver.device_id)] = driver

        return cls(by_id=by_id, by_device_id=by_device_id)


def _details_from_record(driver: DriverRecord) -> DriverDetails:
    return DriverDetails(
        id=driver.id,
        name=driver.name,
        email=driver.email or '',
        phone=driver.phone or '',
    )


def resolve_driver(
    device: DeviceRecord,
    index: DriverIndex | None = None,
) -> DriverDetails | None:
    """
    Resolve the driver of one device.

    Args:
        device: Device to resolve.
        index: Driver lookup maps. Without an index only the embedded
            driver is considered.

    Returns:
        Driver details, or None when no tier matched.

    Example:
        >>> index = DriverIndex.from_drivers([DriverRecord(id=7, name='Ana', device_id=3)])
        >>> resolve_driver(DeviceRecord(id=3), index).name
        'Ana'
    """
    embedded: EmbeddedDriver | None = device.embedded_driver
    if embedded is not None:
        return DriverDetails(
            id=embedded.id,
            name=embedded.name,
            email=embedded.email or '',
            phone=embedded.phone or '',
        )

    if index is None:
        return None

    by_device: DriverRecord | None = index.by_device_id.get(str(device.id))
    if by_device is not None:
        return _details_from_record(by_device)

    if device.current_driver_id not in (None, '', 0):
        by_id: DriverRecord | None = index.by_id.get(str(device.current_driver_id))
        if by_id is not None:
            return _details_from_record(by_id)

    return None
