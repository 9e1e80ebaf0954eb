# gpswox_hub/config/config_models.py
"""
Configuration models for the GPSwox tracking hub.

Design Decisions:
-----------------
- All models use `extra='forbid'` so typos in the YAML file fail at load time
  instead of silently falling back to defaults.

- No logging occurs within this module because the logging configuration
  itself is defined here.

- The account password is a SecretStr and never appears in repr() or logs.
  Access it via `.get_secret_value()`.

- The GPSwox API does not document a single stable endpoint for drivers or
  position history, and paths differ between deployments. The candidate URLs
  probed for both are therefore configuration (`EndpointCandidatesConfig`),
  with defaults that cover the variants seen in the field.

Usage:
------
    import yaml
    from gpswox_hub.config.config_models import TrackingConfig

    with open('config/gpswox_config.yaml', encoding='utf-8') as config_file:
        raw_config = yaml.safe_load(config_file)

    config = TrackingConfig.model_validate(raw_config)
"""

from pathlib import Path
from string import Formatter
from typing import Literal, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)

__all__: list[str] = [
    'AlertConfig',
    'DEFAULT_DRIVER_ENDPOINTS',
    'DEFAULT_EVENT_ENDPOINTS',
    'DEFAULT_HISTORY_ENDPOINTS',
    'EndpointCandidatesConfig',
    'LogLevelName',
    'LoggingConfig',
    'ProviderConfig',
    'ReportConfig',
    'ServerConfig',
    'TrackingConfig',
    'normalize_api_url',
]

# =============================================================================
# Type Aliases and Constants
# =============================================================================

LogLevelName = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

LOG_LEVEL_VALUES: frozenset[int] = frozenset({10, 20, 30, 40, 50})

LOG_LEVEL_NAME_TO_INT: dict[LogLevelName, int] = {
    'DEBUG': 10,
    'INFO': 20,
    'WARNING': 30,
    'ERROR': 40,
    'CRITICAL': 50,
}

# Placeholders available to candidate URL templates.
#   base_url:  normalized API URL, always ending in /api
#   root_url:  base_url without its /api suffix
#   api_hash:  session token from the login call
#   device_id, date_from, date_to: history probing only
TEMPLATE_FIELDS: frozenset[str] = frozenset(
    {'base_url', 'root_url', 'api_hash', 'device_id', 'date_from', 'date_to'}
)

DEFAULT_DRIVER_ENDPOINTS: tuple[str, ...] = (
    '{base_url}/get_drivers?user_api_hash={api_hash}',
    '{base_url}/drivers?user_api_hash={api_hash}',
    '{base_url}/driver/list?user_api_hash={api_hash}',
    '{base_url}/get_user_drivers?user_api_hash={api_hash}',
    '{root_url}/get_drivers?user_api_hash={api_hash}',
)

DEFAULT_HISTORY_ENDPOINTS: tuple[str, ...] = (
    '{base_url}/get_history?user_api_hash={api_hash}&device_id={device_id}'
    '&from_date={date_from}&to_date={date_to}',
    '{base_url}/get_history?user_api_hash={api_hash}&device_id={device_id}'
    '&from={date_from}&to={date_to}',
    '{base_url}/history?user_api_hash={api_hash}&device_id={device_id}'
    '&from={date_from}&to={date_to}',
    '{base_url}/history?user_api_hash={api_hash}&device_id={device_id}'
    '&from_date={date_from}&to_date={date_to}',
    '{base_url}/get_history/{device_id}?user_api_hash={api_hash}'
    '&from_date={date_from}&to_date={date_to}',
)

DEFAULT_EVENT_ENDPOINTS: tuple[str, ...] = (
    '{base_url}/get_events?user_api_hash={api_hash}&page=1',
    '{base_url}/events?user_api_hash={api_hash}&page=1',
    '{base_url}/get_history_events?user_api_hash={api_hash}&page=1',
)


def normalize_api_url(api_url: str) -> str:
    """Normalize a GPSwox server address into the API base URL.

    The scheme defaults to https://, one trailing slash is removed and the
    '/api' suffix is appended when missing:

        'tracking.example.com/'      -> 'https://tracking.example.com/api'
        'http://10.0.0.5/api'        -> 'http://10.0.0.5/api'

    Raises:
        ValueError: If the address is empty.
    """
    normalized: str = api_url.strip()
    if not normalized:
        raise ValueError('api_url cannot be empty')

    if not normalized.startswith(('http://', 'https://')):
        normalized = f'https://{normalized}'

    normalized = normalized.removesuffix('/')

    if not normalized.endswith('/api'):
        normalized = f'{normalized}/api'

    return normalized


def _validate_templates(templates: list[str]) -> list[str]:
    """Reject URL templates that reference unknown placeholders."""
    formatter = Formatter()
    for template in templates:
        field_names: set[str] = {
            field_name
            for _, field_name, _, _ in formatter.parse(template)
            if field_name is not None
        }
        unknown: set[str] = field_names - TEMPLATE_FIELDS
        if unknown:
            raise ValueError(
                f'Unknown placeholder(s) {sorted(unknown)} in endpoint template '
                f'{template!r}. Allowed: {sorted(TEMPLATE_FIELDS)}'
            )
    return templates


# =============================================================================
# Provider Configuration
# =============================================================================


class ProviderConfig(BaseModel):
    """Connection settings for the GPSwox server.

    Network Resilience:
        Transport failures (timeouts, connection errors) are retried with
        exponential backoff: 1s, 2s, 4s, capped at 5s. max_retries counts
        total attempts, so 3 means one initial try plus two retries.

    Attributes:
        api_url: Server address; normalized by `normalize_api_url`.
        email: Account login.
        password: Account password (masked in logs and repr).
        request_timeout_seconds: Upper bound for a single HTTP attempt.
        max_retries: Total attempts for a request before NetworkError.
        session_ttl_seconds: How long a login token is reused.
        verify_ssl: True, False, or a path to a CA bundle.
        use_truststore: Verify TLS against the OS trust store.
    """

    model_config = ConfigDict(extra='forbid')

    api_url: str = Field(description='GPSwox server address')
    email: str = Field(description='Account email used for /login')
    password: SecretStr = Field(description='Account password (masked)')
    request_timeout_seconds: float = Field(
        default=15.0,
        gt=0.0,
        le=300.0,
        description='Per-attempt timeout in seconds',
    )
    max_retries: int = Field(
        default=3,
        ge=1,
        le=10,
        description='Total attempts per request on transport failures (1-10)',
    )
    session_ttl_seconds: float = Field(
        default=3600.0,
        gt=0.0,
        description='Lifetime of a cached session token in seconds',
    )
    verify_ssl: bool | str = Field(
        default=True,
        description='False to disable SSL, True for system CA, or path to CA bundle',
    )
    use_truststore: bool = Field(
        default=False,
        description='Use the truststore library for OS certificate validation',
    )

    @field_validator('api_url')
    @classmethod
    def validate_api_url(cls, api_url: str) -> str:
        """Normalize the server address into the API base URL."""
        return normalize_api_url(api_url)

    @field_validator('email')
    @classmethod
    def validate_email_not_empty(cls, email: str) -> str:
        """Ensure the login email is not blank."""
        if not email.strip():
            raise ValueError('email cannot be empty or whitespace-only')
        return email.strip()

    @field_validator('password')
    @classmethod
    def validate_password_not_empty(cls, password: SecretStr) -> SecretStr:
        """Ensure the password is not empty."""
        if not password.get_secret_value():
            raise ValueError('password cannot be empty')
        return password

    @field_validator('verify_ssl')
    @classmethod
    def validate_ssl_configuration(cls, verify_ssl: bool | str) -> bool | str:
        """Check that a CA bundle path points at an existing file."""
        if isinstance(verify_ssl, str):
            cert_path = Path(verify_ssl)

            if not cert_path.exists():
                raise ValueError(f'SSL certificate bundle file not found: {verify_ssl}')
            if not cert_path.is_file():
                raise ValueError(
                    f'SSL certificate path must be a file, not directory: {verify_ssl}'
                )

        return verify_ssl


# =============================================================================
# Endpoint Probing Configuration
# =============================================================================


class EndpointCandidatesConfig(BaseModel):
    """Candidate URL templates probed for drivers, position history and events.

    Templates are tried in order and the first one yielding data wins. Each
    probe is a single attempt with its own short timeout, so a long list of
    dead candidates costs seconds, not minutes.
    """

    model_config = ConfigDict(extra='forbid')

    driver_endpoints: list[str] = Field(
        default_factory=lambda: list(DEFAULT_DRIVER_ENDPOINTS),
        min_length=1,
    )
    history_endpoints: list[str] = Field(
        default_factory=lambda: list(DEFAULT_HISTORY_ENDPOINTS),
        min_length=1,
    )
    event_endpoints: list[str] = Field(
        default_factory=lambda: list(DEFAULT_EVENT_ENDPOINTS),
        min_length=1,
    )
    driver_timeout_seconds: float = Field(default=5.0, gt=0.0, le=60.0)
    history_timeout_seconds: float = Field(default=15.0, gt=0.0, le=120.0)
    event_timeout_seconds: float = Field(default=10.0, gt=0.0, le=60.0)

    @field_validator('driver_endpoints', 'history_endpoints', 'event_endpoints')
    @classmethod
    def validate_template_placeholders(cls, templates: list[str]) -> list[str]:
        """Ensure templates only use supported placeholders."""
        return _validate_templates(templates)


# =============================================================================
# Report Configuration
# =============================================================================


class ReportConfig(BaseModel):
    """Thresholds used by the fleet report builder.

    Speeds are in the unit reported by the provider (km/h on stock servers).
    """

    model_config = ConfigDict(extra='forbid')

    moving_speed_threshold: float = Field(default=2.0, ge=0.0)
    overspeed_threshold: float = Field(default=80.0, gt=0.0)
    high_severity_speed: float = Field(default=100.0, gt=0.0)
    critical_severity_speed: float = Field(default=120.0, gt=0.0)
    stopped_minutes_threshold: int = Field(default=30, ge=0)
    history_batch_size: int = Field(
        default=5,
        ge=1,
        le=50,
        description='Devices whose history is fetched concurrently per batch',
    )

    @model_validator(mode='after')
    def validate_severity_ordering(self) -> Self:
        """Severity thresholds must increase: overspeed <= high <= critical."""
        if not (
            self.overspeed_threshold
            <= self.high_severity_speed
            <= self.critical_severity_speed
        ):
            raise ValueError(
                'Speed thresholds must satisfy overspeed_threshold <= '
                'high_severity_speed <= critical_severity_speed'
            )
        return self


# =============================================================================
# Alert Configuration
# =============================================================================


class AlertConfig(BaseModel):
    """Thresholds for alerts derived from device state.

    Used only when no event endpoint answers and alerts are generated from
    the live device list instead.
    """

    model_config = ConfigDict(extra='forbid')

    speed_alert_threshold: float = Field(default=100.0, gt=0.0)
    long_stop_minutes: int = Field(default=120, ge=0)
    low_battery_threshold: float = Field(default=20.0, ge=0.0, le=100.0)


# =============================================================================
# Server Configuration
# =============================================================================


class ServerConfig(BaseModel):
    """Bind address and CORS policy for the HTTP entry points."""

    model_config = ConfigDict(extra='forbid')

    host: str = '0.0.0.0'  # noqa: S104
    port: int = Field(default=8000, ge=1, le=65535)
    cors_origins: list[str] = Field(default_factory=lambda: ['*'])


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Configuration for application logging output.

    Console output is always enabled. File output is enabled by providing
    file_path; file_level then defaults to DEBUG.

    Attributes:
        file_path: Log file path (.log appended if missing). None disables it.
        console_level: Level name or numeric value for stdout output.
        file_level: Level for file output. Requires file_path.
    """

    model_config = ConfigDict(extra='forbid')

    file_path: Path | None = Field(default=None)
    console_level: LogLevelName | int = Field(default='INFO')
    file_level: LogLevelName | int | None = Field(default=None)

    @field_validator('file_path', mode='before')
    @classmethod
    def normalize_log_file_path(cls, path_value: str | Path | None) -> Path | None:
        """Normalize path and ensure .log extension."""
        if path_value is None:
            return None

        path_string: str = str(path_value)

        if not path_string.lower().endswith('.log'):
            path_string = f'{path_string}.log'

        return Path(path_string)

    @field_validator('console_level', 'file_level', mode='after')
    @classmethod
    def validate_numeric_log_level(
        cls, level_value: LogLevelName | int | None
    ) -> LogLevelName | int | None:
        """Numeric levels must be one of the standard logging values."""
        if level_value is None or isinstance(level_value, str):
            return level_value

        if level_value not in LOG_LEVEL_VALUES:
            raise ValueError(
                f'Numeric log level must be one of {sorted(LOG_LEVEL_VALUES)}, '
                f'got: {level_value}'
            )

        return level_value

    @model_validator(mode='after')
    def ensure_file_logging_configuration_consistency(self) -> Self:
        """Default file_level to DEBUG; reject file_level without file_path."""
        if self.file_path is not None and self.file_level is None:
            self.file_level = 'DEBUG'

        if self.file_level is not None and self.file_path is None:
            raise ValueError(
                'file_level is specified but file_path is missing. '
                'Provide file_path to enable file logging, or remove file_level.'
            )

        return self

    def get_console_level_int(self) -> int:
        """Console level as a logging module integer."""
        if isinstance(self.console_level, int):
            return self.console_level
        return LOG_LEVEL_NAME_TO_INT[self.console_level]

    def get_file_level_int(self) -> int | None:
        """File level as a logging module integer, or None when disabled."""
        if self.file_level is None:
            return None
        if isinstance(self.file_level, int):
            return self.file_level
        return LOG_LEVEL_NAME_TO_INT[self.file_level]


# =============================================================================
# Root Configuration
# =============================================================================


class TrackingConfig(BaseModel):
    """Root configuration model for the tracking hub.

    Only the provider section is required; every other section has working
    defaults.

    Attributes:
        provider: GPSwox server address, credentials and network settings.
        endpoints: Candidate URL templates for driver, history and event probing.
        reports: Fleet report thresholds and history batching.
        alerts: Thresholds for alerts derived from device state.
        server: HTTP bind address and CORS origins.
        logging: Console and file logging settings.
    """

    model_config = ConfigDict(extra='forbid')

    provider: ProviderConfig
    endpoints: EndpointCandidatesConfig = Field(
        default_factory=EndpointCandidatesConfig
    )
    reports: ReportConfig = Field(default_factory=ReportConfig)
    alerts: AlertConfig = Field(default_factory=AlertConfig)
    server: ServerConfig = Field(default_factory=ServerConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)
