# gpswox_hub/operations/daily_stats.py
"""
Per-day distance and fuel statistics from raw history samples.

A history payload is a list of position samples, each carrying some of:
`time` ('YYYY-MM-DD HH:MM:SS'), `raw_time`, `timestamp` (Unix seconds),
`lat`, `lng`, a provider-computed `distance` (km) and a `sensors` array.

Reduction rules:
    - Samples are stably sorted by timestamp (missing timestamps sort first).
    - The sample's day is the date part of `time`, else of `raw_time`, else
      the UTC date of `timestamp`. Samples without any are dropped before
      anything else, so they never act as the "previous" sample.
    - Distance is the provider's `distance` when present, else the haversine
      distance from the previous sample when both carry non-zero coordinates.
    - Fuel consumed is the sum of positive drops between a reading and the
      last earlier reading. Rises (refills) are ignored and samples without
      a reading keep the previous baseline.

Example:
    Fuel readings 80, 60, 90, 70 on one day consume (80-60) + (90-70) = 40.
"""

import logging
from collections.abc import Sequence
from datetime import UTC, datetime
from typing import Any, Final

import numpy as np
import pandas as pd

from gpswox_hub.models import DailyStat, coerce_float

__all__: list[str] = [
    'EARTH_RADIUS_KM',
    'haversine_km',
    'reduce_history',
    'sample_date',
    'sample_fuel',
]

logger: logging.Logger = logging.getLogger(__name__)

EARTH_RADIUS_KM: Final[float] = 6371.0

HISTORY_FUEL_SENSOR_TYPES: Final[frozenset[str]] = frozenset({'fuel', 'fuel_tank'})

SAMPLE_COLUMNS: Final[list[str]] = [
    'timestamp',
    'date',
    'lat',
    'lng',
    'has_distance',
    'distance',
    'fuel',
]


# =============================================================================
# Per-sample Extraction
# =============================================================================


def sample_date(sample: dict[str, Any]) -> str:
    """
    Day of a history sample as 'YYYY-MM-DD', or '' when undeterminable.

    Example:
        >>> sample_date({'time': '2025-03-01 08:15:00'})
        '2025-03-01'
        >>> sample_date({'timestamp': 0})
        ''
    """
    for key in ('time', 'raw_time'):
        value: Any = sample.get(key)
        if value:
            return str(value).split(' ')[0]

    timestamp: float | None = coerce_float(sample.get('timestamp'))
    if timestamp:
        return datetime.fromtimestamp(timestamp, tz=UTC).date().isoformat()
    return ''


def sample_fuel(sample: dict[str, Any]) -> float | None:
    """
    Fuel reading of a history sample.

    Uses the first sensor typed fuel/fuel_tank, or whose name contains
    'fuel', that has a truthy value.
    """
    sensors: Any = sample.get('sensors')
    if not isinstance(sensors, list):
        return None

    for sensor in sensors:
        if not isinstance(sensor, dict):
            continue
        sensor_type: str = str(sensor.get('type') or '')
        sensor_name: str = str(sensor.get('name') or '').lower()
        if (
            sensor_type in HISTORY_FUEL_SENSOR_TYPES or 'fuel' in sensor_name
        ) and sensor.get('val'):
            return coerce_float(sensor.get('val'))
    return None


def haversine_km(
    lat1: np.ndarray | float,
    lng1: np.ndarray | float,
    lat2: np.ndarray | float,
    lng2: np.ndarray | float,
) -> np.ndarray:
    """Great-circle distance in kilometres; works element-wise on arrays."""
    lat1_rad, lng1_rad, lat2_rad, lng2_rad = (
        np.radians(np.asarray(value, dtype=np.float64)) for value in (lat1, lng1, lat2, lng2)
    )
    half_chord: np.ndarray = (
        np.sin((lat2_rad - lat1_rad) / 2) ** 2
        + np.cos(lat1_rad) * np.cos(lat2_rad) * np.sin((lng2_rad - lng1_rad) / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * np.arctan2(np.sqrt(half_chord), np.sqrt(1 - half_chord))


def _sample_row(sample: dict[str, Any]) -> dict[str, Any]:
    provider_distance: Any = sample.get('distance')
    return {
        'timestamp': coerce_float(sample.get('timestamp')) or 0.0,
        'date': sample_date(sample),
        'lat': coerce_float(sample.get('lat')),
        'lng': coerce_float(sample.get('lng')),
        'has_distance': provider_distance is not None,
        'distance': coerce_float(provider_distance),
        'fuel': sample_fuel(sample),
    }


# =============================================================================
# Reduction
# =============================================================================


def reduce_history(samples: Sequence[Any] | None) -> dict[str, DailyStat]:
    """
    Reduce one device's history samples into per-day distance and fuel.

    Args:
        samples: Raw history samples; non-object entries are ignored.

    Returns:
        Mapping of 'YYYY-MM-DD' to DailyStat, in chronological order of each
        day's first sample. Empty input yields an empty mapping.
    """
    rows: list[dict[str, Any]] = [
        _sample_row(sample) for sample in samples or [] if isinstance(sample, dict)
    ]
    if not rows:
        return {}

    frame: pd.DataFrame = pd.DataFrame(rows, columns=SAMPLE_COLUMNS)
    frame = frame.sort_values('timestamp', kind='stable')
    frame = frame[frame['date'] != ''].reset_index(drop=True)
    if frame.empty:
        return {}

    for column in ('lat', 'lng', 'distance', 'fuel'):
        frame[column] = frame[column].astype(np.float64)

    # Distance
    has_coordinates: pd.Series = frame['lat'].fillna(0.0).ne(0.0) & frame['lng'].fillna(0.0).ne(0.0)
    previous_has_coordinates: pd.Series = has_coordinates.shift(1, fill_value=False).astype(bool)
    segment_km: np.ndarray = haversine_km(
        frame['lat'].shift(1).fillna(0.0),
        frame['lng'].shift(1).fillna(0.0),
        frame['lat'].fillna(0.0),
        frame['lng'].fillna(0.0),
    )
    frame['distance_km'] = np.where(
        frame['has_distance'],
        frame['distance'].fillna(0.0),
        np.where(has_coordinates & previous_has_coordinates, segment_km, 0.0),
    )

    # Fuel: baseline is the last reading strictly before each sample
    baseline: pd.Series = frame['fuel'].ffill().shift(1)
    drop: pd.Series = baseline - frame['fuel']
    frame['fuel_used'] = drop.where(drop > 0, 0.0).fillna(0.0)

    totals: pd.DataFrame = frame.groupby('date', sort=False)[['distance_km', 'fuel_used']].sum()

    logger.debug('Reduced %d history samples into %d days', len(frame), len(totals))

    return {
        str(day): DailyStat(distance=float(row.distance_km), fuel=float(row.fuel_used))
        for day, row in totals.iterrows()
    }
