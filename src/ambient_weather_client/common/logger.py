# ambient_weather_client/common/logger.py
"""
Logging configuration for the ambient_weather_client package.

Every module logs through `logging.getLogger(__name__)`; configuring the
package logger here gives them all the same format and destinations.
"""

import logging
import sys
from pathlib import Path

from ambient_weather_client.config import LoggingConfig

__all__: list[str] = ['PACKAGE_LOGGER_NAME', 'setup_logger']

PACKAGE_LOGGER_NAME: str = 'ambient_weather_client'

# httpx logs full request URLs, and ours carry the API keys in the query
_QUIETED_LOGGERS: tuple[str, ...] = ('httpx', 'httpcore', 'socketio', 'engineio')


def setup_logger(
    logging_level: int | None = None,
    config: LoggingConfig | None = None,
) -> logging.Logger:
    """
    Set up logging for the ambient_weather_client package.

    Idempotent: calling it again replaces the handlers installed by the
    previous call. Transport libraries (httpx, python-socketio) are held at
    WARNING or above so request URLs with keys never reach the logs.

    Args:
        logging_level: Console level (e.g., logging.INFO) to use when NO
                      config object is provided. Defaults to INFO.
        config: Optional validated configuration object. If provided:
                - Console logging uses config.console_level
                - File logging is enabled if config.file_path is set
                - The 'logging_level' argument is ignored.

    Returns:
        The package-level logger ('ambient_weather_client').

    Example:
        >>> setup_logger(logging_level=logging.DEBUG)

        >>> config = load_config()
        >>> setup_logger(config=config.logging)
    """
    package_logger: logging.Logger = logging.getLogger(PACKAGE_LOGGER_NAME)

    # Clear existing handlers so repeated calls don't duplicate output
    package_logger.handlers.clear()

    log_format: logging.Formatter = logging.Formatter(
        fmt='%(asctime)s - %(levelname)-8s - [%(name)s] - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
    )

    # --- 1. Console Handler ---
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

    # --- 2. File Handler (Config Only) ---
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

        package_logger.debug('Logging to file: %s', log_file_path)
    else:
        file_level = None

    # --- 3. Package Logger Level ---
    # The logger must pass the most verbose level any handler wants.
    effective_level: int = console_level
    if file_level is not None:
        effective_level = min(console_level, file_level)

    package_logger.setLevel(effective_level)

    for logger_name in _QUIETED_LOGGERS:
        logging.getLogger(logger_name).setLevel(max(logging.WARNING, effective_level))

    return package_logger
