# ambient_weather_client/models/endpoints.py
"""
Self-describing endpoint definitions for the Ambient Weather REST API.

An EndpointDefinition encapsulates what is needed to call one endpoint:
path construction, query parameter serialization (including the vendor's
camelCase names and epoch-millisecond dates) and credential injection. The
device data wrapper asks an endpoint for a RequestSpec and hands it to the
ResilientClient without knowing any of these details.

Endpoints:
    - DEVICE_DATA:  GET /v1/devices/{mac_address}
                    ?apiKey=&applicationKey=&endDate=<epoch ms>&limit=<1..288>
    - USER_DEVICES: GET /v1/devices?apiKey=&applicationKey=
"""

import logging
from collections.abc import Callable
from datetime import UTC, date, datetime, time
from enum import Enum
from typing import Any, Final

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ambient_weather_client.models.credentials import AmbientCredentials
from ambient_weather_client.models.shared_request_models import (
    HTTPMethod,
    RequestSpec,
)

__all__: list[str] = [
    'MAX_READINGS_PER_DAY',
    'AmbientEndpoints',
    'EndpointDefinition',
    'ParameterType',
    'PathParameterSpec',
    'QueryParameterSpec',
    'to_epoch_milliseconds',
]

logger: logging.Logger = logging.getLogger(__name__)

# Readings are stored every 5 minutes, so 288 readings make one day. This is
# also the largest page the vendor serves.
MAX_READINGS_PER_DAY: Final[int] = 288


def to_epoch_milliseconds(value: datetime | date) -> int:
    """
    Convert a datetime or date into Unix epoch milliseconds.

    Naive datetimes are treated as UTC. Plain dates are taken at midnight UTC.

    Args:
        value: The point in time to convert.

    Returns:
        Milliseconds since 1970-01-01T00:00:00Z.
    """
    if not isinstance(value, datetime):
        value = datetime.combine(value, time.min, tzinfo=UTC)
    elif value.tzinfo is None:
        value = value.replace(tzinfo=UTC)

    return int(value.timestamp() * 1000)


# =============================================================================
# Parameter Specifications
# =============================================================================


class ParameterType(str, Enum):
    """Supported parameter types for automatic serialization."""

    STRING = 'string'
    INTEGER = 'integer'
    EPOCH_MILLISECONDS = 'epoch_milliseconds'


class PathParameterSpec(BaseModel):
    """Specification for a URL path parameter placeholder."""

    model_config = ConfigDict(extra='forbid', frozen=True)

    name: str
    parameter_type: ParameterType = ParameterType.STRING
    description: str = ''


class QueryParameterSpec(BaseModel):
    """Specification for a URL query parameter."""

    model_config = ConfigDict(extra='forbid', frozen=True)

    name: str
    parameter_type: ParameterType
    required: bool = False
    description: str = ''
    api_name: str | None = Field(
        default=None,
        description='Parameter name sent to API if different from internal name',
    )

    def get_api_parameter_name(self) -> str:
        """Return the parameter name to use in API requests."""
        return self.api_name if self.api_name is not None else self.name


# =============================================================================
# Endpoint Definition
# =============================================================================


class EndpointDefinition(BaseModel):
    """
    Ambient Weather endpoint with credential injection.

    Authentication is carried in the query string: every endpoint receives
    ``apiKey`` and ``applicationKey`` taken from the credentials, then its
    own query parameters.

    Attributes:
        endpoint_path: Relative URL path (may contain {placeholders}).
        http_method: HTTP verb for requests.
        description: Human-readable endpoint description.
        path_parameters: Specifications for path placeholders.
        query_parameters: Specifications for query string parameters.
        device_scoped: Whether the endpoint addresses a single station and
            therefore needs a MAC address.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    endpoint_path: str
    http_method: HTTPMethod = HTTPMethod.GET
    description: str

    path_parameters: tuple[PathParameterSpec, ...] = Field(default_factory=tuple)
    query_parameters: tuple[QueryParameterSpec, ...] = Field(default_factory=tuple)

    device_scoped: bool = False

    @field_validator('endpoint_path')
    @classmethod
    def validate_endpoint_path_format(cls, endpoint_path: str) -> str:
        """Ensure endpoint path starts with forward slash."""
        if not endpoint_path:
            raise ValueError('endpoint_path cannot be empty')
        if not endpoint_path.startswith('/'):
            endpoint_path = f'/{endpoint_path}'
        return endpoint_path

    # -------------------------------------------------------------------------
    # URL Construction
    # -------------------------------------------------------------------------

    def build_url(self, base_url: str, **path_params: Any) -> str:
        """
        Construct the full URL for this endpoint.

        Args:
            base_url: API base URL (e.g., "https://rt.ambientweather.net").
            **path_params: Values for path parameter placeholders.

        Returns:
            Complete URL ready for HTTP request.

        Raises:
            ValueError: If required path parameters are missing.
        """
        return f'{base_url.rstrip("/")}{self.build_resource_path(**path_params)}'

    def build_resource_path(self, **path_params: Any) -> str:
        """
        Construct the relative resource path with placeholders replaced.

        Used for logging: identifies the resource without the base URL and
        without the query string, which carries the account keys.

        Raises:
            ValueError: If required path parameters are missing.
        """
        resolved_path: str = self.endpoint_path

        for param_spec in self.path_parameters:
            placeholder: str = f'{{{param_spec.name}}}'

            if param_spec.name not in path_params:
                raise ValueError(f'Missing required path parameter: {param_spec.name}')

            serialized_value: str = self._serialize_parameter_value(
                path_params[param_spec.name], param_spec.parameter_type
            )
            resolved_path = resolved_path.replace(placeholder, serialized_value)

        return resolved_path

    def build_query_params(
        self,
        credentials: AmbientCredentials,
        **user_params: Any,
    ) -> dict[str, str]:
        """
        Build the query parameter dictionary for this endpoint.

        The account keys come first, followed by the endpoint's own
        parameters. Parameters passed as None are omitted.

        Args:
            credentials: Source of the API and application keys.
            **user_params: Endpoint query parameter values.

        Returns:
            Dictionary of query parameters (all values as strings).

        Raises:
            ValueError: If required query parameters are missing.

        Example:
            >>> AmbientEndpoints.DEVICE_DATA.build_query_params(
            ...     credentials, end_date=date(2024, 3, 2), limit=288
            ... )
            {'apiKey': '...', 'applicationKey': '...',
             'endDate': '1709337600000', 'limit': '288'}
        """
        query_params: dict[str, str] = {
            'apiKey': credentials.api_key,
            'applicationKey': credentials.application_key.get_secret_value(),
        }

        for param_spec in self.query_parameters:
            param_name: str = param_spec.name
            api_name: str = param_spec.get_api_parameter_name()

            if param_name in user_params:
                param_value: Any = user_params[param_name]
                if param_value is not None:
                    query_params[api_name] = self._serialize_parameter_value(
                        param_value, param_spec.parameter_type
                    )
            elif param_spec.required:
                raise ValueError(f'Missing required query parameter: {param_name}')

        return query_params

    def build_request_spec(
        self,
        credentials: AmbientCredentials,
        **params: Any,
    ) -> RequestSpec:
        """
        Build a complete request specification ready for HTTP execution.

        Path parameters not supplied by the caller are filled from the
        credentials (the MAC address for device-scoped endpoints).

        Args:
            credentials: Account keys and connection settings.
            **params: Path parameters and query parameters combined.

        Returns:
            RequestSpec ready for the ResilientClient.
        """
        path_param_names: set[str] = {p.name for p in self.path_parameters}
        path_params: dict[str, Any] = {
            k: v for k, v in params.items() if k in path_param_names
        }
        query_params_input: dict[str, Any] = {
            k: v for k, v in params.items() if k not in path_param_names
        }

        if self.device_scoped:
            path_params.setdefault('mac_address', credentials.mac_address)

        resource_path: str = self.build_resource_path(**path_params)

        logger.debug(
            'Built request spec for %s %s',
            self.http_method.value,
            resource_path,
        )

        return RequestSpec(
            url=self.build_url(credentials.base_url, **path_params),
            method=self.http_method,
            headers={'Accept': 'application/json'},
            query_params=self.build_query_params(credentials, **query_params_input),
            resource_path=resource_path,
            timeout=credentials.timeout,
        )

    # -------------------------------------------------------------------------
    # Serialization
    # -------------------------------------------------------------------------

    def _serialize_parameter_value(
        self,
        value: Any,
        parameter_type: ParameterType,
    ) -> str:
        """Serialize a parameter value to string for HTTP transmission."""
        handler_map: dict[ParameterType, Callable[[Any], str]] = {
            ParameterType.EPOCH_MILLISECONDS: self._serialize_epoch_milliseconds,
        }

        handler: Callable[[Any], str] = handler_map.get(parameter_type, str)
        return handler(value)

    def _serialize_epoch_milliseconds(self, value: Any) -> str:
        """Serialize dates and datetimes to epoch milliseconds."""
        if isinstance(value, (datetime, date)):
            return str(to_epoch_milliseconds(value))
        return str(value)


# =============================================================================
# Endpoint Catalog
# =============================================================================


class AmbientEndpoints:
    """
    Catalog of Ambient Weather REST endpoints.

    Usage:
        spec = AmbientEndpoints.DEVICE_DATA.build_request_spec(
            credentials, end_date=datetime.now(UTC), limit=288
        )
    """

    DEVICE_DATA: EndpointDefinition = EndpointDefinition(
        endpoint_path='/v1/devices/{mac_address}',
        description='Readings for one station, most recent first',
        device_scoped=True,
        path_parameters=(
            PathParameterSpec(
                name='mac_address',
                description='Weather station MAC address',
            ),
        ),
        query_parameters=(
            QueryParameterSpec(
                name='end_date',
                api_name='endDate',
                parameter_type=ParameterType.EPOCH_MILLISECONDS,
                description='Readings recorded before this instant; omitted means now',
            ),
            QueryParameterSpec(
                name='limit',
                parameter_type=ParameterType.INTEGER,
                required=True,
                description=f'Number of readings, 1..{MAX_READINGS_PER_DAY}',
            ),
        ),
    )

    USER_DEVICES: EndpointDefinition = EndpointDefinition(
        endpoint_path='/v1/devices',
        description='Devices on the account with their most recent reading',
    )
