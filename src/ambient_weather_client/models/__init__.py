# ambient_weather_client/models/__init__.py

from ambient_weather_client.models.credentials import (
    DEFAULT_BASE_URL,
    DEFAULT_REALTIME_URL,
    AmbientCredentials,
)
from ambient_weather_client.models.device_models import (
    Coordinates,
    DeviceInfo,
    DeviceReading,
    Geo,
    StationLocation,
    SubscriptionPayload,
    UserDevice,
)
from ambient_weather_client.models.endpoints import (
    MAX_READINGS_PER_DAY,
    AmbientEndpoints,
    EndpointDefinition,
    ParameterType,
    PathParameterSpec,
    QueryParameterSpec,
    to_epoch_milliseconds,
)
from ambient_weather_client.models.service_response import ServiceResponse
from ambient_weather_client.models.shared_request_models import (
    HTTPMethod,
    RequestSpec,
)

__all__: list[str] = [
    'DEFAULT_BASE_URL',
    'DEFAULT_REALTIME_URL',
    'MAX_READINGS_PER_DAY',
    'AmbientCredentials',
    'AmbientEndpoints',
    'Coordinates',
    'DeviceInfo',
    'DeviceReading',
    'EndpointDefinition',
    'Geo',
    'HTTPMethod',
    'ParameterType',
    'PathParameterSpec',
    'QueryParameterSpec',
    'RequestSpec',
    'ServiceResponse',
    'StationLocation',
    'SubscriptionPayload',
    'UserDevice',
    'to_epoch_milliseconds',
]
