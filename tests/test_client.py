"""
Tests for gpswox_hub.client module.

Tests GpswoxClient retries, backoff delays, timeouts and JSON decoding.
"""
# pyright: reportPrivateUsage=false

import asyncio

import httpx
import pytest
from conftest import RecordingSleep

from gpswox_hub.client import (
    GpswoxClient,
    NetworkError,
    ParseError,
    decode_json,
)
from gpswox_hub.config import ProviderConfig

URL: str = 'https://tracking.example.com/api/get_devices'


def _client(handler, sleep: RecordingSleep, max_retries: int = 3) -> GpswoxClient:
    return GpswoxClient(
        max_retries=max_retries,
        transport=httpx.MockTransport(handler),
        sleep=sleep,
    )


class TestRetryBehavior:
    """Test transport-failure retries."""

    def test_exhausted_retries_raise_network_error(self, recording_sleep: RecordingSleep) -> None:
        """Should wait 1s then 2s and raise NetworkError after three attempts."""
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            raise httpx.ConnectError('connection refused', request=request)

        async def run() -> None:
            async with _client(handler, recording_sleep) as client:
                await client.fetch_with_retry(URL)

        with pytest.raises(NetworkError) as exc_info:
            asyncio.run(run())

        assert len(calls) == 3  # noqa: PLR2004
        assert recording_sleep.delays == [1.0, 2.0]
        assert isinstance(exc_info.value.last_error, httpx.ConnectError)
        assert isinstance(exc_info.value.__cause__, httpx.ConnectError)

    def test_recovers_after_transient_failure(self, recording_sleep: RecordingSleep) -> None:
        """Should return the response of the first successful attempt."""
        attempts: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            if len(attempts) == 1:
                raise httpx.ConnectError('reset', request=request)
            return httpx.Response(200, json={'status': 1})

        async def run() -> httpx.Response:
            async with _client(handler, recording_sleep) as client:
                return await client.fetch_with_retry(URL)

        response = asyncio.run(run())

        assert response.status_code == 200  # noqa: PLR2004
        assert recording_sleep.delays == [1.0]

    def test_succeeds_on_third_attempt(self, recording_sleep: RecordingSleep) -> None:
        """Should survive two failures within three attempts, waiting 1s then 2s."""
        attempts: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            attempts.append(1)
            if len(attempts) < 3:  # noqa: PLR2004
                raise httpx.ReadTimeout('slow', request=request)
            return httpx.Response(200, json={'status': 1, 'items': []})

        async def run() -> httpx.Response:
            async with _client(handler, recording_sleep) as client:
                return await client.fetch_with_retry(URL)

        response = asyncio.run(run())

        assert response.json() == {'status': 1, 'items': []}
        assert len(attempts) == 3  # noqa: PLR2004
        assert recording_sleep.delays == [1.0, 2.0]

    def test_backoff_is_capped_at_five_seconds(self, recording_sleep: RecordingSleep) -> None:
        """Should grow delays exponentially up to 5s."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError('down', request=request)

        async def run() -> None:
            async with _client(handler, recording_sleep, max_retries=5) as client:
                await client.fetch_with_retry(URL)

        with pytest.raises(NetworkError):
            asyncio.run(run())

        assert recording_sleep.delays == [1.0, 2.0, 4.0, 5.0]

    def test_per_call_attempts_override(self, recording_sleep: RecordingSleep) -> None:
        """Should make a single attempt when max_retries=1 is passed."""
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            raise httpx.ConnectError('down', request=request)

        async def run() -> None:
            async with _client(handler, recording_sleep) as client:
                await client.fetch_with_retry(URL, max_retries=1)

        with pytest.raises(NetworkError):
            asyncio.run(run())

        assert len(calls) == 1
        assert recording_sleep.delays == []


class TestHttpErrors:
    """Test that HTTP-level errors are not retried."""

    @pytest.mark.parametrize('status_code', [401, 404, 500, 503])
    def test_error_status_returned_without_retry(
        self,
        recording_sleep: RecordingSleep,
        status_code: int,
    ) -> None:
        """Should hand 4xx/5xx responses back after one attempt."""
        calls: list[int] = []

        def handler(request: httpx.Request) -> httpx.Response:
            calls.append(1)
            return httpx.Response(status_code, text='error')

        async def run() -> httpx.Response:
            async with _client(handler, recording_sleep) as client:
                return await client.fetch_with_retry(URL)

        response = asyncio.run(run())

        assert response.status_code == status_code
        assert len(calls) == 1
        assert recording_sleep.delays == []


class TestTimeouts:
    """Test timeout handling."""

    def test_httpx_timeout_becomes_network_error(self, recording_sleep: RecordingSleep) -> None:
        """Should convert httpx timeouts into NetworkError after retries."""

        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ReadTimeout('timed out', request=request)

        async def run() -> None:
            async with _client(handler, recording_sleep, max_retries=2) as client:
                await client.fetch_with_retry(URL, timeout_seconds=0.5)

        with pytest.raises(NetworkError, match='timeout'):
            asyncio.run(run())

        assert recording_sleep.delays == [1.0]

    def test_slow_response_cancelled(self, recording_sleep: RecordingSleep) -> None:
        """Should cancel an attempt exceeding the timeout."""

        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(5)
            return httpx.Response(200)

        async def run() -> None:
            async with _client(handler, recording_sleep, max_retries=1) as client:
                await client.fetch_with_retry(URL, timeout_seconds=0.05)

        with pytest.raises(NetworkError, match='timeout'):
            asyncio.run(run())


class TestRequestShape:
    """Test what the client sends."""

    def test_sends_query_params_and_accept_header(self, recording_sleep: RecordingSleep) -> None:
        """Should pass params through and ask for JSON."""
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json=[])

        async def run() -> None:
            async with _client(handler, recording_sleep) as client:
                await client.fetch_with_retry(URL, params={'user_api_hash': 'abc'})

        asyncio.run(run())

        assert seen[0].url.params['user_api_hash'] == 'abc'
        assert seen[0].headers['accept'] == 'application/json'

    def test_from_config_uses_provider_settings(self, provider_config: ProviderConfig) -> None:
        """Should take timeout and attempts from the provider config."""
        client = GpswoxClient.from_config(provider_config)

        assert client._timeout_seconds == provider_config.request_timeout_seconds
        assert client._max_retries == provider_config.max_retries

        asyncio.run(client.aclose())


class TestDecodeJson:
    """Test decode_json."""

    def test_valid_json(self) -> None:
        """Should parse valid JSON."""
        assert decode_json('{"status": 1}') == {'status': 1}

    def test_invalid_json_raises_parse_error(self) -> None:
        """Should raise ParseError carrying a body preview."""
        with pytest.raises(ParseError) as exc_info:
            decode_json('<html>Server Error</html>')

        assert exc_info.value.response_body == '<html>Server Error</html>'
