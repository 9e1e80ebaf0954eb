# gpswox_hub/common/logger.py
"""
Logging configuration for the gpswox_hub package.

Every module logs through `logging.getLogger(__name__)`, so configuring the
package-level logger once is enough for the whole hub (client, operations,
service and server alike).
"""

import logging
import sys
from pathlib import Path

from gpswox_hub.config import LoggingConfig

__all__: list[str] = ['mask_email', 'setup_logger']

PACKAGE_LOGGER_NAME: str = 'gpswox_hub'


def setup_logger(
    logging_level: int | None = None,
    config: LoggingConfig | None = None,
) -> logging.Logger:
    """
    Set up logging for the gpswox_hub package.

    Idempotent: existing handlers on the package logger are cleared before
    new ones are attached, so repeated calls never duplicate output.

    Args:
        logging_level: Console level used when no config object is given.
            Defaults to logging.INFO.
        config: Validated logging configuration. When provided, the console
            level comes from config.console_level and a file handler is added
            if config.file_path is set. logging_level is then ignored.

    Returns:
        The package-level logger ('gpswox_hub').

    Example:
        >>> setup_logger(logging_level=logging.DEBUG)
        >>> setup_logger(config=load_config().logging)
    """
    package_logger: logging.Logger = logging.getLogger(PACKAGE_LOGGER_NAME)
    package_logger.handlers.clear()

    log_format: logging.Formatter = logging.Formatter(
        fmt='%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    if logging_level is None:
        logging_level = logging.INFO
    if config:
        console_level: int = config.get_console_level_int()
    else:
        console_level = logging_level

    console_handler: logging.Handler = logging.StreamHandler(sys.stdout)
    console_handler.setFormatter(log_format)
    console_handler.setLevel(console_level)
    package_logger.addHandler(console_handler)

    file_level: int | None = config.get_file_level_int() if config else None

    if config and config.file_path and file_level is not None:
        log_file_path: Path = config.file_path
        log_file_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler: logging.FileHandler = logging.FileHandler(
            filename=str(log_file_path),
            mode='a',
            encoding='utf-8',
        )
        file_handler.setFormatter(log_format)
        file_handler.setLevel(file_level)
        package_logger.addHandler(file_handler)

    # The logger must pass the most verbose level any handler wants
    effective_level: int = console_level
    if file_level is not None:
        effective_level = min(console_level, file_level)

    package_logger.setLevel(effective_level)

    return package_logger


def mask_email(email: str | None) -> str:
    """
    Mask an account email for log output.

    Keeps the first three characters of the local part and the domain:
    'fleet.manager@example.com' becomes 'fle***@example.com'.
    """
    if not email:
        return 'EMPTY'

    local_part, _, domain = email.partition('@')
    return f'{local_part[:3]}***@{domain or "???"}'
