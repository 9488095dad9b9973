# ambient_weather_client/config/loader.py
"""
Configuration Loading Logic.

Bridges raw YAML files on disk and the Pydantic models in `config_models.py`:
locate and read the file, parse it, validate it into a `ClientConfig`, and
log every failure with context before raising it.
"""

import logging
from pathlib import Path
from typing import Any

import yaml

from ambient_weather_client.config.config_models import ClientConfig

logger: logging.Logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH: Path = Path('config/ambient_config.yaml')


def load_config(config_path: Path | str | None = None) -> ClientConfig:
    """Load and validate client configuration from a YAML file.

    Args:
        config_path: Path to the YAML configuration file (relative or absolute).
                    If None, defaults to 'config/ambient_config.yaml' relative
                    to the current working directory.

    Returns:
        Validated ClientConfig instance ready for use.

    Raises:
        FileNotFoundError: If config file does not exist at the specified path.
        yaml.YAMLError: If YAML file is malformed or cannot be parsed.
        ValueError: If configuration fails Pydantic validation, or the file
            does not contain a mapping.

    Example:
        >>> config = load_config('config/ambient_config.yaml')
        >>> config.ambient.base_url
        'https://rt.ambientweather.net'
    """
    if config_path is None:
        config_path = DEFAULT_CONFIG_PATH
        logger.debug('No config path provided, using default: %s', config_path)
    else:
        config_path = Path(config_path)

    logger.info('Loading Ambient Weather configuration from: %s', config_path)

    if not config_path.exists():
        error_message: str = f'Configuration file not found: {config_path}'
        logger.error(error_message)
        raise FileNotFoundError(error_message)

    try:
        with Path.open(config_path, encoding='utf-8') as config_file:
            raw_config_data: Any = yaml.safe_load(config_file)
    except yaml.YAMLError as error:
        error_message = f'Failed to parse YAML configuration: {error}'
        logger.error(error_message)
        raise yaml.YAMLError(error_message) from error

    if not isinstance(raw_config_data, dict):
        error_message = (
            f'Configuration file must contain a mapping, '
            f'got {type(raw_config_data).__name__}'
        )
        logger.error(error_message)
        raise ValueError(error_message)

    try:
        validated_config = ClientConfig(**raw_config_data)
    except ValueError as error:
        error_message = f'Configuration validation failed: {error}'
        logger.error(error_message)
        raise ValueError(error_message) from error

    logger.info('Configuration loaded and validated successfully')
    return validated_config
