"""
Tests for ambient_weather_client.models.

Tests wire-format parsing of readings and devices, credential checks, and
request building by the endpoint definitions.
"""

from datetime import UTC, date, datetime, timedelta, timezone
from typing import Any

import pytest
from conftest import TEST_API_KEY, TEST_APPLICATION_KEY, TEST_MAC_ADDRESS
from pydantic import SecretStr, ValidationError

from ambient_weather_client.models import (
    AmbientCredentials,
    AmbientEndpoints,
    DeviceReading,
    HTTPMethod,
    RequestSpec,
    SubscriptionPayload,
    UserDevice,
    to_epoch_milliseconds,
)

# 2024-03-02T00:00:00Z
MARCH_2_EPOCH_MS: int = 1709337600000


class TestDeviceReading:
    """Test DeviceReading parsing."""

    def test_parses_wire_names(self, reading_payload: dict[str, Any]) -> None:
        """Should map vendor field names onto model fields."""
        reading: DeviceReading = DeviceReading.model_validate(reading_payload)

        assert reading.date_utc == 1709294400000  # noqa: PLR2004
        assert reading.outdoor_temperature_f == 68.5  # noqa: PLR2004
        assert reading.outdoor_humidity == 45  # noqa: PLR2004
        assert reading.temperature_1_f == 70.1  # noqa: PLR2004
        assert reading.battery_1 == 1
        assert reading.time_zone == 'America/Chicago'

    def test_coerces_numeric_strings(self, reading_payload: dict[str, Any]) -> None:
        """Should coerce numbers delivered as strings."""
        reading: DeviceReading = DeviceReading.model_validate(reading_payload)

        assert reading.relative_pressure_inhg == 29.92  # noqa: PLR2004

    def test_ignores_unknown_fields(self) -> None:
        """Should ignore fields the model does not know."""
        reading: DeviceReading = DeviceReading.model_validate(
            {'dateutc': 1, 'brandNewSensor': 42}
        )

        assert reading.date_utc == 1

    def test_all_fields_optional(self) -> None:
        """Should accept an empty payload."""
        reading: DeviceReading = DeviceReading.model_validate({})

        assert reading.date_utc is None
        assert reading.mac_address is None
        assert reading.observed_at is None

    def test_observed_at_is_aware_utc(self) -> None:
        """Should convert epoch milliseconds to an aware UTC datetime."""
        reading = DeviceReading(dateutc=MARCH_2_EPOCH_MS)

        assert reading.observed_at == datetime(2024, 3, 2, tzinfo=UTC)

    def test_reading_is_immutable(self, reading_payload: dict[str, Any]) -> None:
        """Should reject assignment after parsing."""
        reading: DeviceReading = DeviceReading.model_validate(reading_payload)

        with pytest.raises(ValidationError):
            reading.outdoor_temperature_f = 0.0  # type: ignore[misc]

    def test_dump_by_alias_restores_wire_names(
        self, reading_payload: dict[str, Any]
    ) -> None:
        """Should dump back to vendor field names."""
        dumped: dict[str, Any] = DeviceReading.model_validate(
            reading_payload
        ).model_dump(by_alias=True)

        assert dumped['tempf'] == 68.5  # noqa: PLR2004
        assert dumped['dateutc'] == 1709294400000  # noqa: PLR2004


class TestUserDeviceAndSubscription:
    """Test station metadata and realtime subscription payloads."""

    def test_user_device_nested_parsing(
        self, user_device_payload: dict[str, Any]
    ) -> None:
        """Should parse nested info, coordinates and last reading."""
        device: UserDevice = UserDevice.model_validate(user_device_payload)

        assert device.mac_address == TEST_MAC_ADDRESS
        assert device.info is not None
        assert device.info.name == 'Backyard'
        assert device.info.coords is not None
        assert device.info.coords.coords is not None
        assert device.info.coords.coords.latitude == 41.88  # noqa: PLR2004
        assert device.info.coords.geo is not None
        assert device.info.coords.geo.geo_type == 'Point'
        assert device.last_data is not None
        assert device.last_data.outdoor_temperature_f == 68.5  # noqa: PLR2004

    def test_subscription_null_lists_become_empty(self) -> None:
        """Should turn null device and key lists into empty lists."""
        payload: SubscriptionPayload = SubscriptionPayload.model_validate(
            {'devices': None, 'invalidApiKeys': None, 'method': 'subscribe'}
        )

        assert payload.devices == []
        assert payload.invalid_api_keys == []
        assert payload.has_invalid_api_keys is False

    def test_subscription_reports_invalid_keys(
        self, user_device_payload: dict[str, Any]
    ) -> None:
        """Should expose keys the vendor rejected."""
        payload: SubscriptionPayload = SubscriptionPayload.model_validate(
            {'devices': [user_device_payload], 'invalidApiKeys': ['bad_key']}
        )

        assert len(payload.devices) == 1
        assert payload.invalid_api_keys == ['bad_key']
        assert payload.has_invalid_api_keys is True


class TestAmbientCredentials:
    """Test per-call credential validation."""

    def test_blank_values_accepted_at_construction(self) -> None:
        """Should build credentials even when keys are blank."""
        credentials = AmbientCredentials(api_keys=[SecretStr(' ')])

        assert credentials.api_key == ' '

    def test_api_key_is_first_key(self, credentials: AmbientCredentials) -> None:
        """Should use the first configured key for REST calls."""
        assert credentials.api_key == TEST_API_KEY
        assert credentials.api_key_values() == [TEST_API_KEY, 'second_api_key']

    def test_device_scope_requires_mac(
        self, account_credentials: AmbientCredentials
    ) -> None:
        """Should name the MAC address when it is missing."""
        with pytest.raises(ValueError, match='mac_address'):
            account_credentials.check_device_scope()

    def test_device_scope_requires_application_key(
        self, credentials: AmbientCredentials
    ) -> None:
        """Should name the application key when it is blank."""
        blank = credentials.model_copy(update={'application_key': SecretStr('')})

        with pytest.raises(ValueError, match='application_key'):
            blank.check_device_scope()

    def test_account_scope_requires_api_key(self) -> None:
        """Should reject missing API keys for account calls."""
        credentials = AmbientCredentials(
            application_key=SecretStr(TEST_APPLICATION_KEY),
        )

        with pytest.raises(ValueError, match='api_key'):
            credentials.check_account_scope()

    def test_account_scope_ignores_mac(
        self, account_credentials: AmbientCredentials
    ) -> None:
        """Should not require a MAC address for account calls."""
        account_credentials.check_account_scope()

    def test_realtime_scope_checks_every_key(
        self, credentials: AmbientCredentials
    ) -> None:
        """Should reject a blank key anywhere in the list."""
        with_blank = credentials.model_copy(
            update={'api_keys': [SecretStr(TEST_API_KEY), SecretStr('  ')]}
        )

        with pytest.raises(ValueError, match=r'api_keys\[1\]'):
            with_blank.check_realtime_scope()

    def test_realtime_scope_requires_keys(self) -> None:
        """Should reject an empty key list."""
        credentials = AmbientCredentials(
            application_key=SecretStr(TEST_APPLICATION_KEY),
        )

        with pytest.raises(ValueError, match='at least one key'):
            credentials.check_realtime_scope()

    def test_secrets_hidden_in_repr(self, credentials: AmbientCredentials) -> None:
        """Should never expose keys in repr."""
        assert TEST_API_KEY not in repr(credentials)
        assert TEST_APPLICATION_KEY not in repr(credentials)


class TestEpochMilliseconds:
    """Test date serialization for endDate."""

    def test_date_is_midnight_utc(self) -> None:
        """Should treat a plain date as midnight UTC."""
        assert to_epoch_milliseconds(date(2024, 3, 2)) == MARCH_2_EPOCH_MS

    def test_naive_datetime_is_utc(self) -> None:
        """Should treat a naive datetime as UTC."""
        assert to_epoch_milliseconds(datetime(2024, 3, 2)) == MARCH_2_EPOCH_MS  # noqa: DTZ001

    def test_aware_datetime_converted(self) -> None:
        """Should convert aware datetimes from their own offset."""
        plus_one = timezone(timedelta(hours=1))

        assert (
            to_epoch_milliseconds(datetime(2024, 3, 2, 1, tzinfo=plus_one))
            == MARCH_2_EPOCH_MS
        )


class TestAmbientEndpoints:
    """Test request building."""

    def test_device_data_request_spec(self, credentials: AmbientCredentials) -> None:
        """Should build URL, query and headers for device data."""
        spec: RequestSpec = AmbientEndpoints.DEVICE_DATA.build_request_spec(
            credentials,
            end_date=date(2024, 3, 2),
            limit=288,
        )

        assert spec.url == f'https://api.test/v1/devices/{TEST_MAC_ADDRESS}'
        assert spec.method == HTTPMethod.GET
        assert spec.query_params == {
            'apiKey': TEST_API_KEY,
            'applicationKey': TEST_APPLICATION_KEY,
            'endDate': str(MARCH_2_EPOCH_MS),
            'limit': '288',
        }
        assert spec.headers['Accept'] == 'application/json'
        assert spec.timeout == credentials.timeout

    def test_end_date_omitted_when_none(self, credentials: AmbientCredentials) -> None:
        """Should leave endDate out of the query when not given."""
        spec: RequestSpec = AmbientEndpoints.DEVICE_DATA.build_request_spec(
            credentials, end_date=None, limit=10
        )

        assert 'endDate' not in spec.query_params
        assert spec.query_params['limit'] == '10'

    def test_limit_is_required(self, credentials: AmbientCredentials) -> None:
        """Should reject a device data request without limit."""
        with pytest.raises(ValueError, match='limit'):
            AmbientEndpoints.DEVICE_DATA.build_request_spec(credentials)

    def test_resource_path_has_no_secrets(self, credentials: AmbientCredentials) -> None:
        """Should produce a loggable path without keys."""
        spec: RequestSpec = AmbientEndpoints.DEVICE_DATA.build_request_spec(
            credentials, limit=1
        )

        assert spec.resource_path == f'/v1/devices/{TEST_MAC_ADDRESS}'
        assert TEST_API_KEY not in spec.resource_path

    def test_user_devices_request_spec(
        self, account_credentials: AmbientCredentials
    ) -> None:
        """Should build the account-scoped device list request."""
        spec: RequestSpec = AmbientEndpoints.USER_DEVICES.build_request_spec(
            account_credentials
        )

        assert spec.url == 'https://api.test/v1/devices'
        assert spec.query_params == {
            'apiKey': TEST_API_KEY,
            'applicationKey': TEST_APPLICATION_KEY,
        }

    def test_missing_path_parameter(self) -> None:
        """Should reject building a device path without a MAC address."""
        with pytest.raises(ValueError, match='mac_address'):
            AmbientEndpoints.DEVICE_DATA.build_resource_path()
