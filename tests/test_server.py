"""
Tests for gpswox_hub.server module.

Exercises the HTTP routes with FastAPI's TestClient. The provider is a
MockTransport; max_retries is 1 so no test ever waits on a real backoff.
"""

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import Any

import httpx
import pytest
from conftest import RoutingHandler, login_ok, make_device
from fastapi.testclient import TestClient

from gpswox_hub.config import TrackingConfig
from gpswox_hub.server import create_app


@pytest.fixture
def server_config(tracking_config: TrackingConfig) -> TrackingConfig:
    provider = tracking_config.provider.model_copy(update={'max_retries': 1})
    return tracking_config.model_copy(update={'provider': provider})


@contextmanager
def _serve(config: TrackingConfig, routes: dict[str, Any]) -> Iterator[TestClient]:
    handler = RoutingHandler({'/api/login': login_ok, **routes})
    app = create_app(config=config, transport=httpx.MockTransport(handler))
    with TestClient(app) as client:
        yield client


@pytest.fixture
def client(server_config: TrackingConfig) -> Iterator[TestClient]:
    with _serve(
        server_config,
        {
            '/api/get_devices': {
                'status': 1,
                'items': [
                    make_device(id=1, name='Fast', speed=105),
                    make_device(id=2, name='Parked', online='offline'),
                ],
            },
            '/api/get_history': {'items': [{'time': '2025-03-01 08:00:00', 'distance': 3.5}]},
        },
    ) as test_client:
        yield test_client


class TestVehiclesRoute:
    """Test /gpswox."""

    @pytest.mark.parametrize('method', ['GET', 'POST'])
    def test_success(self, client: TestClient, method: str) -> None:
        """Should answer the camelCase success envelope."""
        response = client.request(method, '/gpswox')

        assert response.status_code == 200  # noqa: PLR2004
        body = response.json()
        assert body['success'] is True
        assert [vehicle['plate'] for vehicle in body['vehicles']] == ['Fast', 'Parked']
        assert body['vehicles'][1]['status'] == 'inactive'
        assert body['debug']['driversSource'] == 'devices_fallback'
        assert 'timestamp' in body

    def test_provider_failure_envelope(self, server_config: TrackingConfig) -> None:
        """Should report a rejected login as HTTP 200 with success false."""
        with _serve(
            server_config,
            {'/api/login': {'status': 0, 'message': 'Wrong credentials'}},
        ) as test_client:
            response = test_client.get('/gpswox')

        assert response.status_code == 200  # noqa: PLR2004
        assert response.json() == {'success': False, 'error': 'Wrong credentials'}

    def test_missing_configuration(self, tmp_path: Path) -> None:
        """Should answer the failure envelope when configuration is missing."""
        app = create_app(config_path=tmp_path / 'missing.yaml')

        with TestClient(app) as test_client:
            response = test_client.get('/gpswox')

        assert response.status_code == 200  # noqa: PLR2004
        body = response.json()
        assert body['success'] is False
        assert 'missing.yaml' in body['error']


class TestReportsRoute:
    """Test /gpswox-reports."""

    def test_summary_default(self, client: TestClient) -> None:
        """Should default to the summary report."""
        response = client.get('/gpswox-reports')

        body = response.json()
        assert body['success'] is True
        assert body['report_type'] == 'summary'
        assert body['reports']['fleet_summary']['total_vehicles'] == 2  # noqa: PLR2004
        assert body['reports']['overspeeds'][0]['severity'] == 'high'
        assert body['history'] is None

    def test_history_requires_device(self, client: TestClient) -> None:
        """Should answer the failure envelope without device_id."""
        response = client.get(
            '/gpswox-reports',
            params={'type': 'history', 'date_from': '2025-03-01', 'date_to': '2025-03-02'},
        )

        assert response.status_code == 200  # noqa: PLR2004
        assert response.json() == {
            'success': False,
            'error': "Report type 'history' requires device_id",
        }

    def test_history_from_json_body(self, client: TestClient) -> None:
        """Should read parameters from a POSTed JSON body."""
        response = client.post(
            '/gpswox-reports',
            json={
                'type': 'history',
                'device_id': 1,
                'date_from': '2025-03-01',
                'date_to': '2025-03-01',
            },
        )

        body = response.json()
        assert body['success'] is True
        assert body['history'] == [{'time': '2025-03-01 08:00:00', 'distance': 3.5}]

    def test_daily_stats(self, client: TestClient) -> None:
        """Should key daily stats by day, then device id."""
        response = client.get(
            '/gpswox-reports',
            params={'type': 'daily_stats', 'date_from': '2025-03-01', 'date_to': '2025-03-01'},
        )

        body = response.json()
        assert body['success'] is True
        assert body['daily_stats'] == {
            '2025-03-01': {
                '1': {'distance': 3.5, 'fuel': 0.0},
                '2': {'distance': 3.5, 'fuel': 0.0},
            }
        }

    def test_daily_stats_requires_dates(self, client: TestClient) -> None:
        """Should reject daily stats without a date range."""
        body = client.get('/gpswox-reports', params={'type': 'daily_stats'}).json()

        assert body['success'] is False
        assert 'date_from and date_to' in body['error']


class TestAlertsRoute:
    """Test /gpswox-alerts."""

    @pytest.mark.parametrize('method', ['GET', 'POST'])
    def test_device_alerts(self, client: TestClient, method: str) -> None:
        """Should derive alerts when the server exposes no events."""
        body = client.request(method, '/gpswox-alerts').json()

        assert body['success'] is True
        assert body['source'] == 'devices'
        assert body['total'] == 2  # noqa: PLR2004
        assert [alert['id'] for alert in body['alerts']] == ['speed-1', 'offline-2']
        assert body['alerts'][1]['message_ar'] == 'Parked غير متصل'

    def test_provider_failure_envelope(self, server_config: TrackingConfig) -> None:
        """Should report a rejected login in the failure envelope."""
        with _serve(
            server_config,
            {'/api/login': {'status': 0, 'message': 'Wrong credentials'}},
        ) as test_client:
            response = test_client.get('/gpswox-alerts')

        assert response.json() == {'success': False, 'error': 'Wrong credentials'}


class TestGeofencesAndMapRoutes:
    """Test /gpswox-geofences and /gpswox-map."""

    def test_geofences(self, server_config: TrackingConfig) -> None:
        """Should answer the camelCase geofence list."""
        with _serve(
            server_config,
            {'/api/get_geofences': [{'items': [{'id': 8, 'name': 'Port', 'group_id': 2}]}]},
        ) as test_client:
            body = test_client.get('/gpswox-geofences').json()

        assert body['success'] is True
        assert body['geofences'] == [
            {'id': '8', 'name': 'Port', 'groupId': 2, 'color': None, 'active': None}
        ]

    def test_geofences_non_json(self, server_config: TrackingConfig) -> None:
        """Should report a non-JSON geofence body in the failure envelope."""
        with _serve(
            server_config, {'/api/get_geofences': httpx.Response(200, text='<html>')}
        ) as test_client:
            body = test_client.get('/gpswox-geofences').json()

        assert body == {
            'success': False,
            'error': 'Invalid response format from geofences API',
        }

    def test_map(self, client: TestClient) -> None:
        """Should answer the map URL at the server root."""
        body = client.post('/gpswox-map').json()

        assert body['success'] is True
        assert body['mapUrl'] == 'https://tracking.example.com/map?user_api_hash=hash-abc123'

    def test_missing_configuration(self, tmp_path: Path) -> None:
        """Should answer the failure envelope when configuration is missing."""
        app = create_app(config_path=tmp_path / 'missing.yaml')

        with TestClient(app) as test_client:
            body = test_client.get('/gpswox-map').json()

        assert body['success'] is False
        assert 'missing.yaml' in body['error']


class TestHealthRoute:
    """Test /health."""

    def test_health(self, client: TestClient) -> None:
        """Should answer ok."""
        assert client.get('/health').json() == {'status': 'ok'}
