# ambient_weather_client/__init__.py
"""
Ambient Weather Client - async client for the Ambient Weather cloud API.

Three layers, each usable on its own:

1. **REST with resilience**: ResilientClient runs every request through a
   client-side rate limiter, jittered retries for HTTP 429 and transient
   failures, and circuit breakers for sustained 5xx and for 401.
   DeviceDataClient adds typed readings, the account's device list and
   an existence probe on top.

2. **History walks**: DeviceHistoryWalker pages through a station's history
   one day at a time, lazily, with pacing between days.

3. **Realtime**: RealtimeClient subscribes to the Socket.IO push feed and
   dispatches typed readings to listeners.

Quick Start:
    >>> from ambient_weather_client import DeviceDataClient, load_config, setup_logger
    >>>
    >>> config = load_config('config/ambient_config.yaml')
    >>> setup_logger(config=config.logging)
    >>>
    >>> async with DeviceDataClient.from_config(config) as devices:
    ...     readings = await devices.fetch_device_data(limit=12)

Results:
    Network-facing methods return a ServiceResponse (Ok / Fail / Empty) or a
    plain list that is empty on failure. Argument errors raise ValueError.
    Task cancellation always propagates as asyncio.CancelledError.
"""

__version__ = '0.1.0'

from ambient_weather_client.client import (
    APIError,
    CircuitOpenError,
    RateLimitError,
    ResilientClient,
    TransientAPIError,
    UnauthorizedError,
)
from ambient_weather_client.common import setup_logger
from ambient_weather_client.config import ClientConfig, load_config
from ambient_weather_client.device_data import DeviceDataClient
from ambient_weather_client.history import DeviceHistoryWalker, history_to_dataframe
from ambient_weather_client.models import (
    AmbientCredentials,
    DeviceReading,
    ServiceResponse,
    SubscriptionPayload,
    UserDevice,
)
from ambient_weather_client.realtime import RealtimeClient, RealtimeState
from ambient_weather_client.resilience import (
    CircuitBreaker,
    CircuitState,
    IntervalRateLimiter,
)

__all__: list[str] = [
    'APIError',
    'AmbientCredentials',
    'CircuitBreaker',
    'CircuitOpenError',
    'CircuitState',
    'ClientConfig',
    'DeviceDataClient',
    'DeviceHistoryWalker',
    'DeviceReading',
    'IntervalRateLimiter',
    'RateLimitError',
    'RealtimeClient',
    'RealtimeState',
    'ResilientClient',
    'ServiceResponse',
    'SubscriptionPayload',
    'TransientAPIError',
    'UnauthorizedError',
    'UserDevice',
    '__version__',
    'history_to_dataframe',
    'load_config',
    'setup_logger',
]
