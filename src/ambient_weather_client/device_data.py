# ambient_weather_client/device_data.py
"""
Typed access to station readings and the account's device list.

DeviceDataClient sits on top of a ResilientClient. It validates credentials
and arguments, builds requests through AmbientEndpoints, and turns response
bodies into DeviceReading / UserDevice models.

Empty Marker:
-------------
The vendor answers a valid request for a period without data with HTTP 200
and the literal body ``[]``. That is the expected "no data" answer, not an
error:
    - list methods return an empty list;
    - *_response and *_as_json methods return ServiceResponse.empty();
    - does_device_data_exist returns False.

Argument Errors:
----------------
Blank keys or a blank MAC address raise ValueError before any network
activity. They are never retried or wrapped. The limit is passed through
as given; the vendor enforces its own maximum of 288 per page.
"""

import logging
from datetime import date, datetime
from types import TracebackType
from typing import Self

import httpx
from pydantic import TypeAdapter, ValidationError

from ambient_weather_client.client import ResilientClient
from ambient_weather_client.config import ClientConfig
from ambient_weather_client.models import (
    MAX_READINGS_PER_DAY,
    AmbientCredentials,
    AmbientEndpoints,
    DeviceReading,
    RequestSpec,
    ServiceResponse,
    UserDevice,
)

__all__: list[str] = ['EMPTY_RESPONSE_MARKER', 'DeviceDataClient']

logger: logging.Logger = logging.getLogger(__name__)

EMPTY_RESPONSE_MARKER: str = '[]'

_READINGS_ADAPTER: TypeAdapter[list[DeviceReading]] = TypeAdapter(list[DeviceReading])
_DEVICES_ADAPTER: TypeAdapter[list[UserDevice]] = TypeAdapter(list[UserDevice])


def _is_empty_marker(body: str) -> bool:
    # A blank 200 body carries no readings either
    return body.strip() in ('', EMPTY_RESPONSE_MARKER)


class DeviceDataClient:
    """
    Device data wrapper for one credential set.

    The ResilientClient is passed in explicitly. When built through
    from_config() the wrapper owns the client and closes it on exit.

    Example:
        >>> async with DeviceDataClient.from_config(load_config()) as devices:
        ...     readings = await devices.fetch_device_data(limit=12)
        ...     stations = await devices.fetch_user_devices()
    """

    def __init__(
        self,
        credentials: AmbientCredentials,
        client: ResilientClient,
        owns_client: bool = False,
    ) -> None:
        self._credentials: AmbientCredentials = credentials
        self._client: ResilientClient = client
        self._owns_client: bool = owns_client

    @classmethod
    def from_config(
        cls,
        config: ClientConfig,
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> Self:
        """
        Build a wrapper and its own ResilientClient from configuration.

        Args:
            config: Validated client configuration.
            transport: Optional httpx transport passed to the client.
        """
        credentials: AmbientCredentials = config.ambient.to_credentials()
        client = ResilientClient(
            credentials,
            resilience=config.resilience,
            transport=transport,
        )
        return cls(credentials, client, owns_client=True)

    @property
    def credentials(self) -> AmbientCredentials:
        return self._credentials

    @property
    def client(self) -> ResilientClient:
        return self._client

    async def aclose(self) -> None:
        """Close the underlying client if this wrapper created it."""
        if self._owns_client:
            await self._client.aclose()

    async def __aenter__(self) -> Self:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    # -------------------------------------------------------------------------
    # Device Readings
    # -------------------------------------------------------------------------

    async def fetch_device_data(
        self,
        end_date: datetime | date | None = None,
        limit: int = MAX_READINGS_PER_DAY,
    ) -> list[DeviceReading]:
        """
        Fetch readings for the configured station, most recent first.

        Args:
            end_date: Only readings before this instant. Naive datetimes are
                UTC, plain dates mean midnight UTC. None means now.
            limit: Number of readings, sent as given (the vendor serves at
                most 288). A limit of zero or less returns [] without calling
                the network.

        Returns:
            The readings. Empty for no data and for failed calls (logged).

        Raises:
            ValueError: If the MAC address or a key is blank.
        """
        response: ServiceResponse[list[DeviceReading]] = (
            await self.fetch_device_data_response(end_date, limit)
        )

        if response.failure:
            logger.error('Fetching device data failed: %s', response.error_message)
            return []

        return response.value or []

    async def fetch_device_data_response(
        self,
        end_date: datetime | date | None = None,
        limit: int = MAX_READINGS_PER_DAY,
    ) -> ServiceResponse[list[DeviceReading]]:
        """
        Fetch readings as a three-way result.

        Returns:
            Ok with the readings, Empty for the no-data marker or a limit
            of zero or less, Fail when the call or the parsing failed.

        Raises:
            ValueError: If the MAC address or a key is blank.
        """
        json_response: ServiceResponse[str] = await self.fetch_device_data_as_json(
            end_date, limit
        )
        if json_response.failure:
            return ServiceResponse.fail(json_response.error_message)
        if json_response.is_empty:
            return ServiceResponse.empty()

        try:
            readings: list[DeviceReading] = _READINGS_ADAPTER.validate_json(
                json_response.value or ''
            )
        except ValidationError as error:
            logger.error(
                'Device data response could not be parsed: %d error(s)',
                error.error_count(),
            )
            return ServiceResponse.fail(f'Invalid device data response: {error}')

        logger.debug('Fetched %d readings', len(readings))
        return ServiceResponse.ok(readings)

    async def fetch_device_data_as_json(
        self,
        end_date: datetime | date | None = None,
        limit: int = MAX_READINGS_PER_DAY,
    ) -> ServiceResponse[str]:
        """
        Fetch readings as the raw JSON body.

        Returns:
            Ok with the body, Empty for the no-data marker or a limit of
            zero or less, Fail when the call failed.

        Raises:
            ValueError: If the MAC address or a key is blank.
        """
        self._credentials.check_device_scope()

        if limit <= 0:
            logger.debug('limit=%d, skipping request', limit)
            return ServiceResponse.empty()

        request_spec: RequestSpec = AmbientEndpoints.DEVICE_DATA.build_request_spec(
            self._credentials,
            end_date=end_date,
            limit=limit,
        )
        return await self._get_json(request_spec)

    # -------------------------------------------------------------------------
    # User Devices
    # -------------------------------------------------------------------------

    async def fetch_user_devices(self) -> list[UserDevice]:
        """
        Fetch the devices registered on the account.

        Returns:
            The devices with their last reading. Empty on failure (logged).

        Raises:
            ValueError: If the API key or application key is blank.
        """
        response: ServiceResponse[list[UserDevice]] = (
            await self.fetch_user_devices_response()
        )

        if response.failure:
            logger.error('Fetching user devices failed: %s', response.error_message)
            return []

        return response.value or []

    async def fetch_user_devices_response(self) -> ServiceResponse[list[UserDevice]]:
        """Fetch the account's devices as a three-way result."""
        json_response: ServiceResponse[str] = await self.fetch_user_devices_as_json()
        if json_response.failure:
            return ServiceResponse.fail(json_response.error_message)
        if json_response.is_empty:
            return ServiceResponse.empty()

        try:
            devices: list[UserDevice] = _DEVICES_ADAPTER.validate_json(
                json_response.value or ''
            )
        except ValidationError as error:
            logger.error(
                'User devices response could not be parsed: %d error(s)',
                error.error_count(),
            )
            return ServiceResponse.fail(f'Invalid user devices response: {error}')

        logger.debug('Fetched %d user devices', len(devices))
        return ServiceResponse.ok(devices)

    async def fetch_user_devices_as_json(self) -> ServiceResponse[str]:
        """
        Fetch the account's devices as the raw JSON body.

        Raises:
            ValueError: If the API key or application key is blank.
        """
        self._credentials.check_account_scope()

        request_spec: RequestSpec = AmbientEndpoints.USER_DEVICES.build_request_spec(
            self._credentials
        )
        return await self._get_json(request_spec)

    # -------------------------------------------------------------------------
    # Existence Probe
    # -------------------------------------------------------------------------

    async def does_device_data_exist(
        self,
        end_date: datetime | date | None = None,
    ) -> bool:
        """
        Report whether the station has data before `end_date`.

        Fetches a single reading. The no-data answer is the common case and
        returns False. A failed call also returns False and is logged; use
        check_device_data() to tell the two apart.

        Raises:
            ValueError: If the MAC address or a key is blank.
        """
        response: ServiceResponse[bool] = await self.check_device_data(end_date)

        if response.failure:
            logger.warning(
                'Could not determine whether device data exists: %s',
                response.error_message,
            )
            return False

        return bool(response.value)

    async def check_device_data(
        self,
        end_date: datetime | date | None = None,
    ) -> ServiceResponse[bool]:
        """
        Existence probe that keeps "call failed" distinct from "no data".

        Returns:
            Ok(True) when data exists, Ok(False) for the no-data marker,
            Fail when the call failed.
        """
        json_response: ServiceResponse[str] = await self.fetch_device_data_as_json(
            end_date, limit=1
        )

        if json_response.failure:
            return ServiceResponse.fail(json_response.error_message)

        return ServiceResponse.ok(not json_response.is_empty)

    # -------------------------------------------------------------------------
    # Internals
    # -------------------------------------------------------------------------

    async def _get_json(self, request_spec: RequestSpec) -> ServiceResponse[str]:
        """Run a request and map the empty marker to an Empty result."""
        response: ServiceResponse[str] = await self._client.get(request_spec)

        if response.failure:
            return response

        body: str = response.value or ''
        if _is_empty_marker(body):
            logger.debug('No data for %r', request_spec.resource_path)
            return ServiceResponse.empty()

        return response
