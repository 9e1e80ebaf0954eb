"""
Tests for gpswox_hub.operations.normalize module.
"""

from typing import Any

import pytest
from conftest import make_device

from gpswox_hub.models import DeviceRecord, DriverRecord, Sensor, VehicleStatus
from gpswox_hub.operations.correlate import DriverIndex
from gpswox_hub.operations.normalize import (
    build_position,
    first_vehicle_sample,
    map_status,
    normalize_device,
    scan_sensors,
    summarize_driver,
)


def _device(**overrides: Any) -> DeviceRecord:
    return DeviceRecord.model_validate(make_device(**overrides))


class TestMapStatus:
    """Test online -> status mapping."""

    @pytest.mark.parametrize(
        ('online', 'expected'),
        [
            ('online', VehicleStatus.ACTIVE),
            ('offline', VehicleStatus.INACTIVE),
            ('ack', VehicleStatus.MAINTENANCE),
            ('engine', VehicleStatus.MAINTENANCE),
            (None, VehicleStatus.MAINTENANCE),
        ],
    )
    def test_mapping(self, online: str | None, expected: VehicleStatus) -> None:
        """Should map online/offline and treat everything else as maintenance."""
        assert map_status(online) == expected


class TestScanSensors:
    """Test scan_sensors."""

    def test_battery_string_value(self) -> None:
        """Should read battery from a numeric string val."""
        readings = scan_sensors([Sensor(type='battery', name='Battery', val='12.6', value='12.6 V')])

        assert readings.battery == 12.6  # noqa: PLR2004
        assert readings.fuel is None

    def test_null_and_boolean_skipped(self) -> None:
        """Should skip null and boolean values and keep scanning."""
        readings = scan_sensors(
            [
                Sensor(type='battery', val=None),
                Sensor(type='battery', val=True),
                Sensor(type='battery', val=11.9),
            ]
        )

        assert readings.battery == 11.9  # noqa: PLR2004

    def test_unparseable_skipped(self) -> None:
        """Should skip values that are not numbers."""
        readings = scan_sensors([Sensor(type='gsm', val='n/a'), Sensor(type='gsm', val='4')])

        assert readings.network == 4  # noqa: PLR2004

    def test_first_match_wins(self) -> None:
        """Should keep the first fuel sensor found."""
        readings = scan_sensors(
            [Sensor(type='fuel_tank', val='55'), Sensor(type='fuel', val='70')]
        )

        assert readings.fuel == 55  # noqa: PLR2004

    @pytest.mark.parametrize('name', ['Fuel level', 'Niveau Carburant', 'Main TANK', 'Réservoir 1'])
    def test_fuel_by_name(self, name: str) -> None:
        """Should classify fuel sensors by name fragment."""
        assert scan_sensors([Sensor(type='numerical', name=name, val='40')]).fuel == 40  # noqa: PLR2004

    def test_type_match_case_insensitive(self) -> None:
        """Should match sensor types regardless of case."""
        assert scan_sensors([Sensor(type='Odometer', val='120345')]).odometer == 120345  # noqa: PLR2004

    def test_empty(self) -> None:
        """Should return all None without sensors."""
        readings = scan_sensors(None)

        assert (readings.battery, readings.network, readings.odometer, readings.fuel) == (
            None,
            None,
            None,
            None,
        )


class TestBuildPosition:
    """Test build_position."""

    def test_flat_fields(self) -> None:
        """Should use flat lat/lng and render city as 'lat, lng'."""
        position = build_position(_device(lat=33.5, lng=-7.25, speed=42, time='2025-03-01 10:00:00'))

        assert position is not None
        assert position.city == '33.5, -7.25'
        assert position.speed == 42  # noqa: PLR2004
        assert position.timestamp == '2025-03-01 10:00:00'
        assert position.move_status is None

    def test_legacy_device_data(self) -> None:
        """Should parse legacy string fields and keep move status."""
        device = _device(
            lat=None,
            lng=None,
            device_data={
                'lat': '34.02',
                'lng': '-6.83',
                'speed': '61',
                'altitude': 'bad',
                'course': '180',
                'time': '2025-03-01 09:00:00',
                'move_status': 'moving',
                'stop_duration': '0s',
            },
        )

        position = build_position(device)

        assert position is not None
        assert position.lat == 34.02  # noqa: PLR2004
        assert position.speed == 61  # noqa: PLR2004
        assert position.altitude == 0
        assert position.city == '34.02, -6.83'
        assert position.move_status == 'moving'
        assert position.stop_duration == '0s'

    def test_no_position(self) -> None:
        """Should return None when neither shape is present."""
        assert build_position(_device(lat=None, lng=None)) is None

    def test_php_empty_array_device_data(self) -> None:
        """Should treat device_data=[] as absent."""
        assert build_position(_device(lat=None, lng=None, device_data=[])) is None


class TestNormalizeDevice:
    """Test normalize_device."""

    def test_basic_fields(self) -> None:
        """Should map identity, status and constants."""
        vehicle = normalize_device(_device(id=42, name='AB-123-CD', icon_type='car', protocol='gt06'))

        assert vehicle.id == '42'
        assert vehicle.plate == vehicle.model == 'AB-123-CD'
        assert vehicle.brand == 'GPS Device'
        assert vehicle.status == VehicleStatus.ACTIVE
        assert vehicle.icon_type == 'car'
        assert vehicle.protocol == 'gt06'

    def test_direct_fuel_preferred_over_sensor(self) -> None:
        """Should prefer fuel_quantity over the fuel sensor."""
        vehicle = normalize_device(
            _device(fuel_quantity='62.5', sensors=[{'type': 'fuel', 'val': '10'}])
        )

        assert vehicle.fuel_quantity == 62.5  # noqa: PLR2004

    def test_sensor_fuel_fallback(self) -> None:
        """Should fall back to the fuel sensor without fuel_quantity."""
        vehicle = normalize_device(_device(sensors=[{'type': 'fuel', 'val': '10'}]))

        assert vehicle.fuel_quantity == 10  # noqa: PLR2004

    def test_odometer_fallbacks(self) -> None:
        """Should use direct odometer, then sensor, then 0."""
        sensors = [{'type': 'odometer', 'val': '900'}]

        assert normalize_device(_device(odometer=1200, sensors=sensors)).mileage == 1200  # noqa: PLR2004
        assert normalize_device(_device(odometer=0, sensors=sensors)).mileage == 900  # noqa: PLR2004
        assert normalize_device(_device()).mileage == 0

    def test_sensors_passed_through(self) -> None:
        """Should keep raw sensor fields, including unknown ones."""
        raw_sensor = {'id': 3, 'type': 'battery', 'val': '12', 'value': '12 V', 'show_in_popup': 1}

        vehicle = normalize_device(_device(sensors=[raw_sensor]))

        assert vehicle.sensors == [raw_sensor]
        assert vehicle.battery == 12  # noqa: PLR2004

    def test_embedded_driver_wins(self) -> None:
        """Should prefer the embedded driver over index lookups."""
        index = DriverIndex.from_drivers([DriverRecord(id=2, name='Mapped', device_id=1)])
        device = _device(id=1, current_driver={'id': 5, 'name': 'Embedded', 'phone': 600112233})

        vehicle = normalize_device(device, index)

        assert vehicle.driver == 'Embedded'
        assert vehicle.driver_details is not None
        assert vehicle.driver_details.phone == '600112233'

    def test_camel_case_serialization(self) -> None:
        """Should serialize with camelCase keys."""
        payload = normalize_device(_device(distance_today=12.5)).model_dump(by_alias=True)

        assert 'lastPosition' in payload
        assert payload['distanceToday'] == 12.5  # noqa: PLR2004
        assert payload['lastPosition']['city']


class TestResponseHelpers:
    """Test summarize_driver and first_vehicle_sample."""

    def test_summarize_driver_defaults(self) -> None:
        """Should blank email/phone and null optional fields."""
        summary = summarize_driver(DriverRecord(id=1, name='Ana'))

        assert summary.email == ''
        assert summary.phone == ''
        assert summary.device_id is None
        assert summary.model_dump(by_alias=True)['deviceName'] is None

    def test_first_vehicle_sample(self) -> None:
        """Should expose the driver fields of the first device."""
        sample = first_vehicle_sample([_device(id=3, current_driver_id=8)])

        assert sample == {
            'id': 3,
            'current_driver': None,
            'current_driver_id': 8,
            'driver_data': None,
        }

    def test_first_vehicle_sample_empty(self) -> None:
        """Should return None without devices."""
        assert first_vehicle_sample([]) is None
