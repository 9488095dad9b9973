"""
Shared pytest fixtures for ambient_weather_client tests.

HTTP traffic is simulated with httpx.MockTransport through ScriptedTransport,
which replays a script of responses and records every request it receives.
"""

import time
from collections.abc import AsyncIterator, Callable
from datetime import UTC, datetime
from pathlib import Path
from typing import Any

import httpx
import pytest
from pydantic import SecretStr

from ambient_weather_client.client import ResilientClient
from ambient_weather_client.config import HistoryConfig, LoggingConfig, ResilienceConfig
from ambient_weather_client.device_data import DeviceDataClient
from ambient_weather_client.models import AmbientCredentials

TEST_MAC_ADDRESS: str = 'AA:BB:CC:DD:EE:FF'
TEST_API_KEY: str = 'test_api_key'
TEST_APPLICATION_KEY: str = 'test_application_key'
TEST_BASE_URL: str = 'https://api.test'

# A scripted step is a (status_code, body) pair or an exception to raise
type ScriptStep = tuple[int, str] | Exception


# =============================================================================
# HTTP Simulation
# =============================================================================


class ScriptedTransport:
    """
    Replay scripted responses and record the requests that produced them.

    Steps are consumed in order; once the script runs out, `default` is
    returned for every further request.
    """

    def __init__(
        self,
        script: list[ScriptStep] | None = None,
        default: ScriptStep = (200, '[]'),
        responder: Callable[[httpx.Request], ScriptStep] | None = None,
    ) -> None:
        self.requests: list[httpx.Request] = []
        self.timestamps: list[float] = []
        self._script: list[ScriptStep] = list(script or [])
        self._default: ScriptStep = default
        self._responder: Callable[[httpx.Request], ScriptStep] | None = responder
        self.transport: httpx.MockTransport = httpx.MockTransport(self._handle)

    @property
    def call_count(self) -> int:
        return len(self.requests)

    def query(self, index: int = -1) -> dict[str, str]:
        """Query parameters of a recorded request."""
        return dict(self.requests[index].url.params)

    def _handle(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        self.timestamps.append(time.monotonic())

        if self._responder is not None:
            step: ScriptStep = self._responder(request)
        elif self._script:
            step = self._script.pop(0)
        else:
            step = self._default

        if isinstance(step, Exception):
            raise step

        status_code, body = step
        return httpx.Response(status_code, text=body)


class FakeClock:
    """Manually advanced monotonic clock."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now: float = start

    def __call__(self) -> float:
        return self.now

    def advance(self, seconds: float) -> None:
        self.now += seconds


# =============================================================================
# Configuration Fixtures
# =============================================================================


@pytest.fixture
def temp_log_file(tmp_path: Path) -> Path:
    """Path to a .log file in a temp directory (file not created)."""
    return tmp_path / 'test.log'


@pytest.fixture
def logging_config(temp_log_file: Path) -> LoggingConfig:
    return LoggingConfig(
        file_path=temp_log_file,
        console_level='INFO',
        file_level='DEBUG',
    )


@pytest.fixture
def fast_resilience() -> ResilienceConfig:
    """
    Vendor-default retry budgets without any waiting.

    Returns:
        ResilienceConfig with zero rate-limit interval and zero backoff.
    """
    return ResilienceConfig(
        rate_limit_interval_seconds=0.0,
        median_first_retry_delay_seconds=0.0,
        max_retry_delay_seconds=0.01,
    )


@pytest.fixture
def fast_history() -> HistoryConfig:
    return HistoryConfig(request_delay_seconds=0.0)


@pytest.fixture
def credentials() -> AmbientCredentials:
    """Device-scoped credentials pointing at the mock base URL."""
    return AmbientCredentials(
        api_keys=[SecretStr(TEST_API_KEY), SecretStr('second_api_key')],
        application_key=SecretStr(TEST_APPLICATION_KEY),
        mac_address=TEST_MAC_ADDRESS,
        base_url=TEST_BASE_URL,
    )


@pytest.fixture
def account_credentials(credentials: AmbientCredentials) -> AmbientCredentials:
    """Credentials without a MAC address (account scope only)."""
    return credentials.model_copy(update={'mac_address': None})


@pytest.fixture
def sample_config_data() -> dict[str, Any]:
    """Raw configuration mapping as it would come out of YAML."""
    return {
        'ambient': {
            'api_keys': [TEST_API_KEY],
            'application_key': TEST_APPLICATION_KEY,
            'mac_address': TEST_MAC_ADDRESS,
            'base_url': f'{TEST_BASE_URL}/',
        },
        'resilience': {
            'rate_limit_interval_seconds': 0.0,
            'median_first_retry_delay_seconds': 0.0,
        },
        'history': {'request_delay_seconds': 0.0},
    }


# =============================================================================
# Payload Fixtures
# =============================================================================


def make_reading_payload(date_utc: int, **overrides: Any) -> dict[str, Any]:
    """One reading in wire format."""
    payload: dict[str, Any] = {
        'dateutc': date_utc,
        'tempf': 68.5,
        'humidity': 45,
        'baromrelin': '29.92',
        'windspeedmph': 3.4,
        'dailyrainin': 0.0,
        'temp1f': 70.1,
        'batt1': 1,
        'tz': 'America/Chicago',
        'date': '2024-03-01T12:00:00.000Z',
    }
    payload.update(overrides)
    return payload


@pytest.fixture
def reading_payload() -> dict[str, Any]:
    return make_reading_payload(1709294400000)


@pytest.fixture
def user_device_payload(reading_payload: dict[str, Any]) -> dict[str, Any]:
    return {
        'macAddress': TEST_MAC_ADDRESS,
        'lastData': reading_payload,
        'info': {
            'name': 'Backyard',
            'coords': {
                'coords': {'lat': 41.88, 'lon': -87.63},
                'address': '1 Main St',
                'location': 'Chicago',
                'elevation': 181.5,
                'geo': {'type': 'Point', 'coordinates': [-87.63, 41.88]},
            },
        },
    }


@pytest.fixture
def fixed_now() -> datetime:
    return datetime(2024, 3, 10, 15, 30, tzinfo=UTC)


# =============================================================================
# Client Fixtures
# =============================================================================


@pytest.fixture
async def make_client(
    credentials: AmbientCredentials,
    fast_resilience: ResilienceConfig,
) -> AsyncIterator[Callable[..., ResilientClient]]:
    """
    Factory building ResilientClients on a ScriptedTransport.

    Every client created through the factory is closed after the test.
    """
    created: list[ResilientClient] = []

    def _make(
        transport: ScriptedTransport,
        resilience: ResilienceConfig | None = None,
        client_credentials: AmbientCredentials | None = None,
    ) -> ResilientClient:
        client = ResilientClient(
            client_credentials or credentials,
            resilience=resilience or fast_resilience,
            transport=transport.transport,
        )
        created.append(client)
        return client

    yield _make

    for client in created:
        await client.aclose()


@pytest.fixture
def make_device_data(
    credentials: AmbientCredentials,
    make_client: Callable[..., ResilientClient],
) -> Callable[..., DeviceDataClient]:
    """Factory building a DeviceDataClient on a ScriptedTransport."""

    def _make(
        transport: ScriptedTransport,
        client_credentials: AmbientCredentials | None = None,
        resilience: ResilienceConfig | None = None,
    ) -> DeviceDataClient:
        effective_credentials: AmbientCredentials = client_credentials or credentials
        client: ResilientClient = make_client(
            transport,
            resilience=resilience,
            client_credentials=effective_credentials,
        )
        return DeviceDataClient(effective_credentials, client)

    return _make
