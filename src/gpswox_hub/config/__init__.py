"""
Configuration package for the GPSwox tracking hub.

Exposes the configuration models and the loader function.
"""

from gpswox_hub.config.config_models import (
    AlertConfig,
    EndpointCandidatesConfig,
    LoggingConfig,
    ProviderConfig,
    ReportConfig,
    ServerConfig,
    TrackingConfig,
    normalize_api_url,
)
from gpswox_hub.config.loader import ConfigurationError, load_config

__all__: list[str] = [
    'AlertConfig',
    'ConfigurationError',
    'EndpointCandidatesConfig',
    'LoggingConfig',
    'ProviderConfig',
    'ReportConfig',
    'ServerConfig',
    'TrackingConfig',
    'load_config',
    'normalize_api_url',
]
