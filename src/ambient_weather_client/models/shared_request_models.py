# ambient_weather_client/models/shared_request_models.py
"""
Request specification models.

This module defines the contract between EndpointDefinitions (which build
request specs) and the ResilientClient (which executes them). The client
never needs to know how the vendor's query string or authentication works.
"""

import logging
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

logger: logging.Logger = logging.getLogger(__name__)


class HTTPMethod(str, Enum):
    """HTTP methods used against the vendor API."""

    GET = 'GET'


class RequestSpec(BaseModel):
    """
    Complete specification for an HTTP request.

    The EndpointDefinition is responsible for:
    - Building the full URL
    - Serializing query parameters, including the API and application keys
    - Setting timeouts from the credentials

    The ResilientClient is responsible for:
    - Rate limiting, retries and circuit breaking
    - Executing the HTTP request
    - Wrapping the outcome in a ServiceResponse

    Attributes:
        url: Complete URL ready for HTTP request.
        method: HTTP method.
        headers: Request headers.
        query_params: Serialized query parameters (all strings). Contains
            secrets; never log this mapping.
        resource_path: Relative path with placeholders resolved, safe to log.
        timeout: Tuple of (connect_timeout, read_timeout) in seconds.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    url: str
    method: HTTPMethod = HTTPMethod.GET
    headers: dict[str, str] = Field(default_factory=dict)
    query_params: dict[str, str] = Field(default_factory=dict)
    resource_path: str = ''
    timeout: tuple[int, int] = Field(
        default=(10, 30),
        description='(connect_timeout, read_timeout) in seconds',
    )
