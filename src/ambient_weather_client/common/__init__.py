# ambient_weather_client/common/__init__.py

from ambient_weather_client.common.logger import PACKAGE_LOGGER_NAME, setup_logger
from ambient_weather_client.common.truststore_context import (
    build_truststore_ssl_context,
)

__all__: list[str] = [
    'PACKAGE_LOGGER_NAME',
    'build_truststore_ssl_context',
    'setup_logger',
]
