"""
Configuration Package for the Ambient Weather client.

Exposes the configuration models and the loader function.
"""

from ambient_weather_client.config.config_models import (
    AmbientConfig,
    ClientConfig,
    HistoryConfig,
    LoggingConfig,
    RealtimeConfig,
    ResilienceConfig,
)
from ambient_weather_client.config.loader import load_config

__all__: list[str] = [
    'AmbientConfig',
    'ClientConfig',
    'HistoryConfig',
    'LoggingConfig',
    'RealtimeConfig',
    'ResilienceConfig',
    'load_config',
]
