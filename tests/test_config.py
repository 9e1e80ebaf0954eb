"""
Tests for gpswox_hub.config package.

Tests URL normalization, config models validation and load_config layering.
"""

from pathlib import Path

import pytest
from pydantic import ValidationError

from gpswox_hub.config import (
    AlertConfig,
    ConfigurationError,
    EndpointCandidatesConfig,
    LoggingConfig,
    ProviderConfig,
    ReportConfig,
    load_config,
    normalize_api_url,
)

CREDENTIAL_ENV: dict[str, str] = {
    'GPSWOX_API_URL': 'tracking.example.com',
    'GPSWOX_EMAIL': 'fleet.manager@example.com',
    'GPSWOX_PASSWORD': 's3cret',
}


class TestNormalizeApiUrl:
    """Test normalize_api_url."""

    @pytest.mark.parametrize(
        ('raw', 'expected'),
        [
            ('tracking.example.com', 'https://tracking.example.com/api'),
            ('tracking.example.com/', 'https://tracking.example.com/api'),
            ('http://10.0.0.5', 'http://10.0.0.5/api'),
            ('https://tracking.example.com/api', 'https://tracking.example.com/api'),
            ('https://tracking.example.com/api/', 'https://tracking.example.com/api'),
            ('  tracking.example.com  ', 'https://tracking.example.com/api'),
        ],
    )
    def test_normalization(self, raw: str, expected: str) -> None:
        """Should default the scheme, strip the slash and append /api."""
        assert normalize_api_url(raw) == expected

    def test_empty_rejected(self) -> None:
        """Should reject an empty address."""
        with pytest.raises(ValueError, match='empty'):
            normalize_api_url('   ')


class TestProviderConfig:
    """Test ProviderConfig validation."""

    def test_defaults(self, provider_config: ProviderConfig) -> None:
        """Should apply network defaults."""
        assert provider_config.api_url == 'https://tracking.example.com/api'
        assert provider_config.max_retries == 3  # noqa: PLR2004
        assert provider_config.session_ttl_seconds == 3600  # noqa: PLR2004
        assert provider_config.verify_ssl is True

    def test_password_masked(self, provider_config: ProviderConfig) -> None:
        """Should keep the password out of repr."""
        assert 's3cret' not in repr(provider_config)
        assert provider_config.password.get_secret_value() == 's3cret'  # noqa: S105

    def test_blank_email_rejected(self) -> None:
        """Should reject whitespace-only email."""
        with pytest.raises(ValidationError):
            ProviderConfig(api_url='x.example.com', email='  ', password='p')  # noqa: S106

    def test_missing_ca_bundle_rejected(self, tmp_path: Path) -> None:
        """Should reject a verify_ssl path that does not exist."""
        with pytest.raises(ValidationError, match='not found'):
            ProviderConfig(
                api_url='x.example.com',
                email='a@b.c',
                password='p',  # noqa: S106
                verify_ssl=str(tmp_path / 'missing.pem'),
            )

    def test_extra_fields_forbidden(self) -> None:
        """Should fail on typos instead of ignoring them."""
        with pytest.raises(ValidationError):
            ProviderConfig.model_validate(
                {'api_url': 'x', 'email': 'a@b.c', 'password': 'p', 'max_retry': 2}
            )


class TestEndpointCandidatesConfig:
    """Test EndpointCandidatesConfig."""

    def test_default_driver_candidates(self) -> None:
        """Should probe five driver endpoints, ending with the server root."""
        config = EndpointCandidatesConfig()

        assert len(config.driver_endpoints) == 5  # noqa: PLR2004
        assert config.driver_endpoints[-1].startswith('{root_url}/get_drivers')
        assert config.driver_timeout_seconds == 5  # noqa: PLR2004

    def test_unknown_placeholder_rejected(self) -> None:
        """Should reject templates with unsupported placeholders."""
        with pytest.raises(ValidationError, match='token'):
            EndpointCandidatesConfig(driver_endpoints=['{base_url}/drivers?hash={token}'])

    def test_default_event_candidates(self) -> None:
        """Should request the first event page of three endpoints within 10s."""
        config = EndpointCandidatesConfig()

        assert len(config.event_endpoints) == 3  # noqa: PLR2004
        assert all(template.endswith('&page=1') for template in config.event_endpoints)
        assert config.event_timeout_seconds == 10  # noqa: PLR2004

    def test_event_placeholders_validated(self) -> None:
        """Should validate event templates like the others."""
        with pytest.raises(ValidationError, match='page'):
            EndpointCandidatesConfig(event_endpoints=['{base_url}/events?page={page}'])


class TestReportConfig:
    """Test ReportConfig."""

    def test_defaults(self) -> None:
        """Should use the standard fleet thresholds."""
        config = ReportConfig()

        assert config.moving_speed_threshold == 2  # noqa: PLR2004
        assert config.overspeed_threshold == 80  # noqa: PLR2004
        assert config.stopped_minutes_threshold == 30  # noqa: PLR2004
        assert config.history_batch_size == 5  # noqa: PLR2004

    def test_threshold_ordering_enforced(self) -> None:
        """Should reject severity thresholds that do not increase."""
        with pytest.raises(ValidationError, match='Speed thresholds'):
            ReportConfig(high_severity_speed=130, critical_severity_speed=120)


class TestAlertConfig:
    """Test AlertConfig."""

    def test_defaults(self) -> None:
        """Should alert above 100 km/h, after 2h stopped and below 20% battery."""
        config = AlertConfig()

        assert config.speed_alert_threshold == 100  # noqa: PLR2004
        assert config.long_stop_minutes == 120  # noqa: PLR2004
        assert config.low_battery_threshold == 20  # noqa: PLR2004

    def test_battery_threshold_is_a_percentage(self) -> None:
        """Should reject a battery threshold above 100."""
        with pytest.raises(ValidationError):
            AlertConfig(low_battery_threshold=150)


class TestLoggingConfig:
    """Test LoggingConfig."""

    def test_file_level_defaults_to_debug(self, tmp_path: Path) -> None:
        """Should enable DEBUG file logging when only file_path is set."""
        config = LoggingConfig(file_path=tmp_path / 'hub')

        assert config.file_path == tmp_path / 'hub.log'
        assert config.get_file_level_int() == 10  # noqa: PLR2004

    def test_file_level_without_path_rejected(self) -> None:
        """Should reject file_level without file_path."""
        with pytest.raises(ValidationError, match='file_path'):
            LoggingConfig(file_level='INFO')


class TestLoadConfig:
    """Test load_config layering."""

    def test_environment_only(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should build a configuration from the three environment variables."""
        monkeypatch.chdir(tmp_path)

        config = load_config(environ=CREDENTIAL_ENV)

        assert config.provider.api_url == 'https://tracking.example.com/api'
        assert config.provider.email == 'fleet.manager@example.com'

    def test_environment_overrides_file(self, tmp_path: Path) -> None:
        """Should let environment credentials win over the file."""
        config_file = tmp_path / 'gpswox.yaml'
        config_file.write_text(
            'provider:\n'
            '  api_url: old.example.com\n'
            '  email: old@example.com\n'
            '  password: old\n'
            '  max_retries: 5\n'
            'reports:\n'
            '  overspeed_threshold: 90\n',
            encoding='utf-8',
        )

        config = load_config(config_file, environ={'GPSWOX_API_URL': 'new.example.com'})

        assert config.provider.api_url == 'https://new.example.com/api'
        assert config.provider.email == 'old@example.com'
        assert config.provider.max_retries == 5  # noqa: PLR2004
        assert config.reports.overspeed_threshold == 90  # noqa: PLR2004

    def test_missing_credentials(self, tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
        """Should raise ConfigurationError naming the missing variables."""
        monkeypatch.chdir(tmp_path)

        with pytest.raises(ConfigurationError, match='GPSWOX_PASSWORD'):
            load_config(environ={'GPSWOX_API_URL': 'x', 'GPSWOX_EMAIL': 'a@b.c'})

    def test_missing_explicit_file(self, tmp_path: Path) -> None:
        """Should raise FileNotFoundError for an explicit missing path."""
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / 'nope.yaml', environ=CREDENTIAL_ENV)

    def test_invalid_values_wrapped(self, tmp_path: Path) -> None:
        """Should wrap pydantic errors in ConfigurationError."""
        config_file = tmp_path / 'gpswox.yaml'
        config_file.write_text('provider:\n  max_retries: 0\n', encoding='utf-8')

        with pytest.raises(ConfigurationError, match='validation failed'):
            load_config(config_file, environ=CREDENTIAL_ENV)

    def test_empty_file_uses_environment(self, tmp_path: Path) -> None:
        """Should treat an empty YAML file as no settings."""
        config_file = tmp_path / 'gpswox.yaml'
        config_file.write_text('', encoding='utf-8')

        config = load_config(config_file, environ=CREDENTIAL_ENV)

        assert config.reports.history_batch_size == 5  # noqa: PLR2004
