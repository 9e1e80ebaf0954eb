# gpswox_hub/session.py
"""
Session token caching and authentication against the GPSwox API.

GPSwox issues a `user_api_hash` in exchange for email/password; every other
call carries it as a query parameter. Logging in on every request is slow and
noisy on the provider side, so the token is cached for an hour.

Design Decisions:
-----------------
- SessionCache is a plain object constructed once at process start and
  handed to the Authenticator. There is exactly one token per process; it is
  never written to disk.

- The cache is only touched from the event loop, so a read-check-then-write
  needs no lock. Separate worker processes keep separate caches, which at
  worst costs a redundant login.

- Any authentication failure evicts the token, so the next request logs in
  again instead of replaying a stale hash.
"""

import logging
import time
from collections.abc import Callable
from typing import Any, Final, Self

from pydantic import SecretStr

from gpswox_hub.client import (
    AuthenticationError,
    GpswoxClient,
    GpswoxError,
    decode_json,
)
from gpswox_hub.common import mask_email
from gpswox_hub.config import ProviderConfig
from gpswox_hub.models import LoginResponse

__all__: list[str] = ['Authenticator', 'SessionCache']

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_SESSION_TTL_SECONDS: Final[float] = 3600.0
HTTPS_PREFIX: Final[str] = 'https://'
HTTP_PREFIX: Final[str] = 'http://'


# =============================================================================
# Session Cache
# =============================================================================


class SessionCache:
    """
    Holds at most one provider session token with an absolute expiry.

    A token is only returned while `clock() < expires_at`.

    Example:
        >>> cache = SessionCache()
        >>> cache.set('abc123', ttl_seconds=3600)
        >>> cache.get()
        'abc123'
        >>> cache.invalidate()
        >>> cache.get() is None
        True
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic) -> None:
        """
        Args:
            clock: Monotonic seconds source. Injected by tests.
        """
        self._clock: Callable[[], float] = clock
        self._token: str | None = None
        self._expires_at: float = 0.0

    def get(self) -> str | None:
        """Return the cached token, or None if absent or expired."""
        if self._token is not None and self._clock() < self._expires_at:
            return self._token
        return None

    def set(self, token: str, ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS) -> None:
        """Store a token that expires ttl_seconds from now."""
        self._token = token
        self._expires_at = self._clock() + ttl_seconds

    def invalidate(self) -> None:
        """Drop the cached token so the next call re-authenticates."""
        if self._token is not None:
            logger.info('Session token invalidated')
        self._token = None
        self._expires_at = 0.0

    @property
    def is_valid(self) -> bool:
        """True while a token is cached and unexpired."""
        return self.get() is not None

    def __repr__(self) -> str:
        """Never shows the token itself."""
        return f'SessionCache(valid={self.is_valid})'


# =============================================================================
# Authenticator
# =============================================================================


class Authenticator:
    """
    Exchanges credentials for a session token through the SessionCache.

    Example:
        >>> authenticator = Authenticator.from_config(client, config.provider, cache)
        >>> token, base_url = await authenticator.login(config.provider.api_url)
    """

    def __init__(
        self,
        client: GpswoxClient,
        email: str,
        password: SecretStr,
        cache: SessionCache,
        ttl_seconds: float = DEFAULT_SESSION_TTL_SECONDS,
    ) -> None:
        self._client: GpswoxClient = client
        self._email: str = email
        self._password: SecretStr = password
        self._cache: SessionCache = cache
        self._ttl_seconds: float = ttl_seconds

    @classmethod
    def from_config(
        cls,
        client: GpswoxClient,
        provider_config: ProviderConfig,
        cache: SessionCache,
    ) -> Self:
        """Create an authenticator from the provider configuration."""
        return cls(
            client=client,
            email=provider_config.email,
            password=provider_config.password,
            cache=cache,
            ttl_seconds=provider_config.session_ttl_seconds,
        )

    @property
    def cache(self) -> SessionCache:
        """The process-wide session cache."""
        return self._cache

    async def get_api_hash(self, base_url: str) -> str:
        """
        Return a valid session token, logging in only when needed.

        Args:
            base_url: Normalized API base URL (ending in /api).

        Returns:
            The provider's user_api_hash.

        Raises:
            AuthenticationError: If the provider rejects the login.
            ParseError: If the login response is not JSON.
            NetworkError: If the login request fails at the transport level.
        """
        cached_token: str | None = self._cache.get()
        if cached_token is not None:
            logger.debug('Using cached API hash')
            return cached_token

        logger.info('Logging in to GPSwox API with email: %s', mask_email(self._email))

        response = await self._client.fetch_with_retry(
            f'{base_url}/login',
            params={
                'email': self._email,
                'password': self._password.get_secret_value(),
            },
        )

        payload: Any = decode_json(response.text)
        if not isinstance(payload, dict):
            self._cache.invalidate()
            raise AuthenticationError(
                f'Unexpected login response type: {type(payload).__name__}',
                status_code=response.status_code,
            )

        login = LoginResponse.model_validate(payload)
        logger.debug('Login response status: %s', login.status)

        if login.status != 1 or not login.user_api_hash:
            self._cache.invalidate()
            raise AuthenticationError(
                login.message or 'Login failed',
                status_code=response.status_code,
            )

        self._cache.set(login.user_api_hash, self._ttl_seconds)
        return login.user_api_hash

    async def login(self, base_url: str) -> tuple[str, str]:
        """
        Authenticate, falling back from https:// to http:// once.

        Some self-hosted GPSwox servers have broken TLS but a working plain
        HTTP listener. When the https login fails for any reason, the same
        login is retried over http and, if that works, http is used for every
        following call of the request.

        Args:
            base_url: Normalized API base URL.

        Returns:
            Tuple of (session token, base URL that succeeded).

        Raises:
            GpswoxError: The http failure when both schemes fail, or the
                original failure when base_url was not https.
        """
        try:
            return await self.get_api_hash(base_url), base_url
        except GpswoxError as error:
            self._cache.invalidate()
            if not base_url.startswith(HTTPS_PREFIX):
                raise

            http_url: str = HTTP_PREFIX + base_url.removeprefix(HTTPS_PREFIX)
            logger.warning('Login over https failed (%s); retrying over http', error)

        try:
            return await self.get_api_hash(http_url), http_url
        except GpswoxError:
            self._cache.invalidate()
            raise
