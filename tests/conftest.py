"""
Shared pytest fixtures for gpswox_hub tests.

HTTP is never real: every client is built on httpx.MockTransport with a
handler that routes on the request path. Coroutines are driven with
asyncio.run so no async pytest plugin is needed.
"""

from collections.abc import Callable
from datetime import UTC, datetime
from typing import Any

import httpx
import pytest

from gpswox_hub.client import GpswoxClient
from gpswox_hub.config import ProviderConfig, TrackingConfig

type Handler = Callable[[httpx.Request], httpx.Response]

API_URL: str = 'https://tracking.example.com/api'
API_HASH: str = 'hash-abc123'
FIXED_NOW: datetime = datetime(2025, 3, 1, 12, 0, 0, tzinfo=UTC)


# =============================================================================
# Helpers
# =============================================================================


class RecordingSleep:
    """Async sleep replacement that records requested delays."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, seconds: float) -> None:
        self.delays.append(seconds)


class RoutingHandler:
    """
    MockTransport handler dispatching on URL path.

    Unknown paths answer 404 with a Laravel-style body. Every request is
    recorded in `requests`.
    """

    def __init__(self, routes: dict[str, Handler | httpx.Response | Any]) -> None:
        self.routes: dict[str, Handler | httpx.Response | Any] = routes
        self.requests: list[httpx.Request] = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        route: Any = self.routes.get(request.url.path)

        if route is None:
            return httpx.Response(404, json={'statusCode': 404, 'message': 'Route not found'})
        if isinstance(route, httpx.Response):
            return route
        if callable(route):
            return route(request)
        return httpx.Response(200, json=route)

    def paths(self) -> list[str]:
        """Request paths in call order."""
        return [request.url.path for request in self.requests]


def login_ok(_request: httpx.Request) -> httpx.Response:
    return httpx.Response(200, json={'status': 1, 'user_api_hash': API_HASH})


def make_client(handler: Handler, max_retries: int = 3) -> GpswoxClient:
    """Client on a mock transport that never really sleeps."""
    return GpswoxClient(
        max_retries=max_retries,
        transport=httpx.MockTransport(handler),
        sleep=RecordingSleep(),
    )


def make_device(**overrides: Any) -> dict[str, Any]:
    """Raw current-shape device payload."""
    device: dict[str, Any] = {
        'id': 1,
        'name': 'AB-123-CD',
        'imei': '359633100000001',
        'online': 'online',
        'time': '2025-03-01 11:55:00',
        'timestamp': FIXED_NOW.timestamp() - 300,
        'lat': 33.5731,
        'lng': -7.5898,
        'speed': 0,
        'altitude': 50,
        'course': 90,
        'sensors': [],
    }
    device.update(overrides)
    return device


# =============================================================================
# Fixtures
# =============================================================================


@pytest.fixture
def provider_config() -> ProviderConfig:
    """Provider configuration pointing at the mock server."""
    return ProviderConfig(
        api_url='tracking.example.com',
        email='fleet.manager@example.com',
        password='s3cret',  # noqa: S106
    )


@pytest.fixture
def tracking_config(provider_config: ProviderConfig) -> TrackingConfig:
    """Root configuration with default endpoints and thresholds."""
    return TrackingConfig(provider=provider_config)


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    """Fresh sleep recorder."""
    return RecordingSleep()
