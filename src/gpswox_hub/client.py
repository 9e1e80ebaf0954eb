# gpswox_hub/client.py
"""
Async HTTP client for the GPSwox tracking API.

The client only moves bytes: it sends a request, bounds it with a timeout and
retries transport failures. Authentication, endpoint probing and payload
interpretation live in `session.py` and `operations/`.

Retry Behavior:
---------------
Only transport-level failures are retried:
- Timeouts (the in-flight request is cancelled)
- Connection errors (DNS, refused, reset, TLS handshake)

Delays between attempts grow exponentially and are capped:
    min(1s * 2 ** (attempt - 1), 5s)  ->  1s, 2s, 4s, 5s, 5s, ...

An HTTP response is never retried, whatever its status code. A 4xx or 5xx is
handed back to the caller like any other response; GPSwox reports most
failures inside a 200 body anyway.

Error Taxonomy:
---------------
- NetworkError: transport failure after all attempts
- AuthenticationError: credentials rejected, or session token no longer valid
- ProviderError: well-formed response carrying a failure status
- ParseError: body is not valid JSON
"""

import asyncio
import json
import logging
from collections.abc import Awaitable, Callable
from ssl import SSLContext
from types import TracebackType
from typing import Any, Final, Self

import httpx
from tenacity import (
    AsyncRetrying,
    RetryCallState,
    retry_if_exception_type,
    stop_after_attempt,
)

from gpswox_hub.common import build_truststore_ssl_context
from gpswox_hub.config import ProviderConfig

__all__: list[str] = [
    'AuthenticationError',
    'GpswoxClient',
    'GpswoxError',
    'NetworkError',
    'ParseError',
    'ProviderError',
    'decode_json',
]

logger: logging.Logger = logging.getLogger(__name__)

# Retry configuration
DEFAULT_MAX_ATTEMPTS: Final[int] = 3
DEFAULT_TIMEOUT_SECONDS: Final[float] = 15.0
RETRY_BACKOFF_BASE_SECONDS: Final[float] = 1.0
RETRY_BACKOFF_MAX_SECONDS: Final[float] = 5.0

# Bytes of a response body kept on exceptions and in log lines
BODY_PREVIEW_LENGTH: Final[int] = 500

type SleepFunction = Callable[[float], Awaitable[None]]


# =============================================================================
# Exception Hierarchy
# =============================================================================


class GpswoxError(Exception):
    """
    Base exception for GPSwox API failures.

    Attributes:
        status_code: HTTP status code if a response was received.
        response_body: Truncated response body for debugging.
    """

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        response_body: str | None = None,
    ) -> None:
        super().__init__(message)
        self.status_code: int | None = status_code
        self.response_body: str | None = response_body


class NetworkError(GpswoxError):
    """
    Raised when a request fails at the transport level.

    After retries are exhausted, `last_error` holds the final underlying
    httpx or timeout exception (also available as __cause__).
    """

    def __init__(self, message: str, last_error: BaseException | None = None) -> None:
        super().__init__(message)
        self.last_error: BaseException | None = last_error


class AuthenticationError(GpswoxError):
    """Raised when the provider rejects the credentials or session token."""


class ProviderError(GpswoxError):
    """Raised when a well-formed response reports a failure status."""


class ParseError(GpswoxError):
    """Raised when a response body is not valid JSON."""


# =============================================================================
# Helpers
# =============================================================================


def _exponential_backoff(retry_state: RetryCallState) -> float:
    """
    Wait strategy: 1s, 2s, 4s ... capped at RETRY_BACKOFF_MAX_SECONDS.

    Args:
        retry_state: Tenacity state; attempt_number is the attempt that just
            failed (1-based).

    Returns:
        Seconds to wait before the next attempt.
    """
    attempt_number: int = retry_state.attempt_number
    exponential_wait: float = RETRY_BACKOFF_BASE_SECONDS * (2 ** (attempt_number - 1))
    return min(exponential_wait, RETRY_BACKOFF_MAX_SECONDS)


def _log_before_sleep(retry_state: RetryCallState) -> None:
    """Log each failed attempt before tenacity sleeps."""
    exception: BaseException | None = (
        retry_state.outcome.exception() if retry_state.outcome else None
    )
    next_sleep: float = retry_state.next_action.sleep if retry_state.next_action else 0.0
    logger.warning(
        'Fetch attempt %d failed: %s (retrying in %.0fms)',
        retry_state.attempt_number,
        exception,
        next_sleep * 1000,
    )


def decode_json(response_text: str) -> Any:
    """
    Parse a response body as JSON.

    Raises:
        ParseError: If the body is not valid JSON.
    """
    try:
        return json.loads(response_text)
    except ValueError as parse_error:
        raise ParseError(
            f'Invalid JSON in response: {parse_error}',
            response_body=response_text[:BODY_PREVIEW_LENGTH],
        ) from parse_error


# =============================================================================
# HTTP Client
# =============================================================================


class GpswoxClient:
    """
    Async HTTP client with per-attempt timeout and transport retries.

    One instance owns one httpx.AsyncClient connection pool and is meant to
    live as long as the service that uses it.

    Example:
        >>> async with GpswoxClient.from_config(config.provider) as client:
        ...     response = await client.fetch_with_retry(
        ...         'https://tracking.example.com/api/get_devices',
        ...         params={'user_api_hash': token},
        ...     )
    """

    def __init__(
        self,
        timeout_seconds: float = DEFAULT_TIMEOUT_SECONDS,
        max_retries: int = DEFAULT_MAX_ATTEMPTS,
        verify_ssl: bool | str = True,
        use_truststore: bool = False,
        transport: httpx.AsyncBaseTransport | None = None,
        sleep: SleepFunction = asyncio.sleep,
    ) -> None:
        """
        Initialize the client.

        Args:
            timeout_seconds: Default per-attempt timeout.
            max_retries: Default total attempts per request.
            verify_ssl: SSL verification (bool or CA bundle path).
            use_truststore: Verify against the OS trust store instead.
            transport: Custom httpx transport (tests use httpx.MockTransport).
            sleep: Coroutine used to wait between attempts.

        Raises:
            RuntimeError: If use_truststore is set but truststore is missing.
        """
        self._timeout_seconds: float = timeout_seconds
        self._max_retries: int = max_retries
        self._sleep: SleepFunction = sleep

        ssl_verify: SSLContext | bool | str = (
            build_truststore_ssl_context() if use_truststore else verify_ssl
        )

        self._http_client: httpx.AsyncClient = httpx.AsyncClient(
            timeout=httpx.Timeout(timeout_seconds),
            verify=ssl_verify,
            transport=transport,
            headers={'Accept': 'application/json'},
            follow_redirects=True,
        )

        logger.debug(
            'Initialized GpswoxClient: timeout=%.1fs, max_retries=%d',
            timeout_seconds,
            max_retries,
        )

    @classmethod
    def from_config(
        cls,
        provider_config: ProviderConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> Self:
        """Create a client from the provider section of the configuration."""
        return cls(
            timeout_seconds=provider_config.request_timeout_seconds,
            max_retries=provider_config.max_retries,
            verify_ssl=provider_config.verify_ssl,
            use_truststore=provider_config.use_truststore,
            transport=transport,
        )

    # -------------------------------------------------------------------------
    # Context Manager Protocol
    # -------------------------------------------------------------------------

    async def aclose(self) -> None:
        """Close the connection pool. Safe to call more than once."""
        await self._http_client.aclose()
        logger.debug('GpswoxClient closed')

    async def __aenter__(self) -> Self:
        """Enter async context manager, returning self."""
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        """Exit async context manager, closing the HTTP client."""
        await self.aclose()

    # -------------------------------------------------------------------------
    # Fetch
    # -------------------------------------------------------------------------

    async def fetch_with_retry(
        self,
        url: str,
        params: dict[str, Any] | None = None,
        method: str = 'GET',
        json_body: dict[str, Any] | None = None,
        max_retries: int | None = None,
        timeout_seconds: float | None = None,
    ) -> httpx.Response:
        """
        Send a request, retrying transport failures with exponential backoff.

        Args:
            url: Absolute URL.
            params: Query parameters.
            method: HTTP method.
            json_body: JSON body for POST requests.
            max_retries: Total attempts; None uses the instance default.
            timeout_seconds: Per-attempt timeout; None uses the default.

        Returns:
            The first response received, whatever its status code.

        Raises:
            NetworkError: When every attempt failed at the transport level.
        """
        attempts: int = max_retries if max_retries is not None else self._max_retries
        timeout: float = (
            timeout_seconds if timeout_seconds is not None else self._timeout_seconds
        )

        retrying = AsyncRetrying(
            retry=retry_if_exception_type(NetworkError),
            wait=_exponential_backoff,
            stop=stop_after_attempt(attempts),
            sleep=self._sleep,
            before_sleep=_log_before_sleep,
            reraise=True,
        )

        return await retrying(self._send, method, url, params, json_body, timeout)

    async def _send(
        self,
        method: str,
        url: str,
        params: dict[str, Any] | None,
        json_body: dict[str, Any] | None,
        timeout_seconds: float,
    ) -> httpx.Response:
        """
        Send one attempt, converting transport failures to NetworkError.

        The attempt is wrapped in asyncio.timeout so the whole exchange
        (connect, send, read) is bounded, not just each socket operation.
        """
        try:
            async with asyncio.timeout(timeout_seconds):
                return await self._http_client.request(
                    method=method,
                    url=url,
                    params=params,
                    json=json_body,
                    timeout=timeout_seconds,
                )
        except (TimeoutError, httpx.TimeoutException) as error:
            logger.debug('Request timeout after %.1fs: %s', timeout_seconds, url)
            raise NetworkError(
                f'Request timeout after {timeout_seconds:g}s', last_error=error
            ) from error
        except httpx.RequestError as error:
            logger.debug('Connection error: %s', error)
            raise NetworkError(f'Connection error: {error}', last_error=error) from error
