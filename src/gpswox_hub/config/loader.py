# gpswox_hub/config/loader.py
"""
Configuration loading logic.

Configuration comes from two layers:
    1.  An optional YAML file (default: config/gpswox_config.yaml).
    2.  The environment variables GPSWOX_API_URL, GPSWOX_EMAIL and
        GPSWOX_PASSWORD, which override the file's provider section.

Deployments that only set the three environment variables need no file.
"""

import logging
import os
from collections.abc import Mapping
from pathlib import Path
from typing import Any, Final

import yaml
from pydantic import ValidationError

from gpswox_hub.config.config_models import TrackingConfig

__all__: list[str] = ['ENV_VARIABLES', 'ConfigurationError', 'load_config']

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH: Final[Path] = Path('config/gpswox_config.yaml')

# Environment variable -> provider field
ENV_VARIABLES: Final[dict[str, str]] = {
    'GPSWOX_API_URL': 'api_url',
    'GPSWOX_EMAIL': 'email',
    'GPSWOX_PASSWORD': 'password',
}


class ConfigurationError(ValueError):
    """Raised when the configuration is missing or fails validation."""


def _read_yaml(config_path: Path) -> dict[str, Any]:
    """Parse a YAML file into a dictionary, treating an empty file as {}."""
    try:
        with Path.open(config_path, encoding='utf-8') as config_file:
            raw_config_data: Any = yaml.safe_load(config_file)
    except yaml.YAMLError as error:
        error_message: str = f'Failed to parse YAML configuration: {error}'
        logger.error(error_message)
        raise ConfigurationError(error_message) from error

    if raw_config_data is None:
        return {}

    if not isinstance(raw_config_data, dict):
        raise ConfigurationError(
            f'Configuration root must be a mapping, got {type(raw_config_data).__name__}'
        )

    return raw_config_data


def _apply_environment(
    raw_config: dict[str, Any],
    environ: Mapping[str, str],
) -> dict[str, Any]:
    """Overlay GPSWOX_* environment variables onto the provider section."""
    provider_section: dict[str, Any] = dict(raw_config.get('provider') or {})

    for variable_name, field_name in ENV_VARIABLES.items():
        value: str | None = environ.get(variable_name)
        if value:
            provider_section[field_name] = value
            logger.debug('Provider %s taken from %s', field_name, variable_name)

    missing: list[str] = [
        variable_name
        for variable_name, field_name in ENV_VARIABLES.items()
        if not provider_section.get(field_name)
    ]
    if missing:
        raise ConfigurationError(
            'GPSwox credentials not configured: set '
            f'{", ".join(missing)} or the provider section of the config file'
        )

    return {**raw_config, 'provider': provider_section}


def load_config(
    config_path: Path | str | None = None,
    environ: Mapping[str, str] | None = None,
) -> TrackingConfig:
    """Load and validate the tracking hub configuration.

    Args:
        config_path: YAML file to read. When None, the default path is used
            if it exists; otherwise configuration comes from the environment
            alone.
        environ: Environment mapping, defaults to os.environ. Injected by
            tests.

    Returns:
        Validated TrackingConfig instance.

    Raises:
        FileNotFoundError: If an explicit config_path does not exist.
        ConfigurationError: If YAML is malformed, credentials are missing, or
            validation fails.

    Example:
        >>> config = load_config('config/gpswox_config.yaml')
        >>> config.provider.api_url
        'https://tracking.example.com/api'
    """
    if environ is None:
        environ = os.environ

    raw_config: dict[str, Any] = {}

    if config_path is not None:
        path = Path(config_path)
        if not path.exists():
            error_message: str = f'Configuration file not found: {path}'
            logger.error(error_message)
            raise FileNotFoundError(error_message)
        logger.info('Loading GPSwox configuration from: %s', path)
        raw_config = _read_yaml(path)
    elif DEFAULT_CONFIG_PATH.exists():
        logger.info('Loading GPSwox configuration from: %s', DEFAULT_CONFIG_PATH)
        raw_config = _read_yaml(DEFAULT_CONFIG_PATH)
    else:
        logger.debug('No config file found, using environment only')

    raw_config = _apply_environment(raw_config, environ)

    try:
        validated_config = TrackingConfig.model_validate(raw_config)
    except ValidationError as error:
        error_message = f'Configuration validation failed: {error}'
        logger.error(error_message)
        raise ConfigurationError(error_message) from error

    logger.info(
        'Configuration loaded: api_url=%r',
        validated_config.provider.api_url,
    )
    return validated_config
