# ambient_weather_client/config/config_models.py
"""
Configuration models for the Ambient Weather client.

This module provides the Pydantic models for the YAML configuration file
that controls the account keys, the resilience policy numbers, history
walking, the realtime connection and logging.

Design Decisions:
-----------------
- All models use `extra='forbid'` to catch typos and invalid fields in YAML
  configuration files early, preventing silent misconfiguration.

- No logging occurs within this module because the logging configuration itself
  is defined here. Logging must be configured by the caller after loading config.

- SSL verification supports three modes to handle corporate proxy environments:
  1. `True` - Standard verification using system CA bundle
  2. `False` - Disabled verification (use with caution)
  3. String path - Custom CA bundle (e.g., exported Zscaler root certificate)

- SecretStr is used for API and application keys to prevent accidental
  exposure in logs, repr(), or error messages.

- Every section except `ambient` has defaults matching the vendor's published
  limits, so a minimal file only needs the keys.

Usage:
------
    import yaml
    from ambient_weather_client.config.config_models import ClientConfig

    with open('ambient_config.yaml', 'r') as config_file:
        raw_config = yaml.safe_load(config_file)

    config = ClientConfig.model_validate(raw_config)
"""

from pathlib import Path
from typing import Literal, Self

from pydantic import (
    BaseModel,
    ConfigDict,
    Field,
    SecretStr,
    field_validator,
    model_validator,
)

from ambient_weather_client.models.credentials import (
    DEFAULT_BASE_URL,
    DEFAULT_REALTIME_URL,
    AmbientCredentials,
)

# =============================================================================
# Public API
# =============================================================================

__all__: list[str] = [
    'AmbientConfig',
    'ClientConfig',
    'HistoryConfig',
    'LogLevelName',
    'LoggingConfig',
    'RealtimeConfig',
    'ResilienceConfig',
]

# =============================================================================
# Type Aliases
# =============================================================================

# Valid logging level names recognized by Python's logging module.
LogLevelName = Literal['DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL']

LOG_LEVEL_VALUES: frozenset[int] = frozenset({10, 20, 30, 40, 50})

LOG_LEVEL_NAME_TO_INT: dict[LogLevelName, int] = {
    'DEBUG': 10,
    'INFO': 20,
    'WARNING': 30,
    'ERROR': 40,
    'CRITICAL': 50,
}


def _validate_http_url(field_name: str, url: str) -> str:
    """Require an http(s) scheme and strip the trailing slash."""
    if not url:
        raise ValueError(f'{field_name} cannot be empty')

    if not url.startswith(('http://', 'https://')):
        raise ValueError(
            f"{field_name} must start with 'http://' or 'https://', got: {url!r}"
        )

    return url.rstrip('/')


# =============================================================================
# Account Configuration
# =============================================================================


class AmbientConfig(BaseModel):
    """Account keys and connection settings for the Ambient Weather API.

    Attributes:
        api_keys: Ordered API keys. REST calls use the first key; the
            realtime subscription sends every key.
        application_key: Account application key (masked in logs and repr).
        mac_address: Station MAC address. Omit to work at account scope
            (device list and realtime only).
        base_url: REST API root. Must include scheme (https://); trailing
            slash is removed.
        realtime_url: Socket.IO endpoint root.
        request_timeout: Connection and read timeout as [connect, read] seconds.
        verify_ssl: SSL certificate verification mode. False disables (insecure),
            True uses system CA store, or provide path to custom CA bundle.
        use_truststore: Build the SSLContext from the OS certificate store.
            Required behind TLS-inspecting proxies such as Zscaler.
    """

    model_config = ConfigDict(extra='forbid')

    api_keys: list[SecretStr] = Field(
        min_length=1,
        description='API keys (masked in logs and repr); the first is used for REST',
    )
    application_key: SecretStr = Field(
        description='Application key (masked in logs and repr)',
    )
    mac_address: str | None = Field(
        default=None,
        description='Station MAC address; None means account scope',
    )
    base_url: str = Field(
        default=DEFAULT_BASE_URL,
        description='REST API root URL with scheme, without trailing slash',
    )
    realtime_url: str = Field(
        default=DEFAULT_REALTIME_URL,
        description='Socket.IO endpoint root URL with scheme',
    )
    request_timeout: tuple[int, int] = Field(
        default=(10, 30),
        description='[connect_timeout, read_timeout] in seconds; both must be positive',
    )
    verify_ssl: bool | str = Field(
        default=True,
        description='False to disable SSL, True for system CA, or path to CA bundle',
    )
    use_truststore: bool = Field(
        default=False,
        description='Use truststore library for system CA certificates',
    )

    @field_validator('base_url')
    @classmethod
    def validate_base_url(cls, base_url: str) -> str:
        """Validate and normalize the REST base URL.

        Raises:
            ValueError: If URL is empty or missing http/https scheme.
        """
        return _validate_http_url('base_url', base_url)

    @field_validator('realtime_url')
    @classmethod
    def validate_realtime_url(cls, realtime_url: str) -> str:
        """Validate and normalize the realtime URL."""
        return _validate_http_url('realtime_url', realtime_url)

    @field_validator('api_keys')
    @classmethod
    def validate_api_keys_not_empty(cls, api_keys: list[SecretStr]) -> list[SecretStr]:
        """Ensure no API key is empty or whitespace-only.

        Args:
            api_keys: The API keys to validate.

        Returns:
            The validated API keys.

        Raises:
            ValueError: If any key is empty or contains only whitespace.
        """
        for position, api_key in enumerate(api_keys):
            secret_value: str = api_key.get_secret_value()
            if not secret_value or not secret_value.strip():
                raise ValueError(
                    f'api_keys[{position}] cannot be empty or whitespace-only'
                )
        return api_keys

    @field_validator('application_key')
    @classmethod
    def validate_application_key_not_empty(cls, application_key: SecretStr) -> SecretStr:
        """Ensure the application key is not empty or whitespace-only."""
        secret_value: str = application_key.get_secret_value()
        if not secret_value or not secret_value.strip():
            raise ValueError('application_key cannot be empty or whitespace-only')
        return application_key

    @field_validator('mac_address')
    @classmethod
    def validate_mac_address(cls, mac_address: str | None) -> str | None:
        """Reject a MAC address that is present but blank."""
        if mac_address is not None and not mac_address.strip():
            raise ValueError(
                'mac_address cannot be empty or whitespace-only; omit it instead'
            )
        return mac_address.strip() if mac_address is not None else None

    @field_validator('request_timeout')
    @classmethod
    def validate_timeout_values_positive(
        cls, timeout: tuple[int, int]
    ) -> tuple[int, int]:
        """Ensure both timeout values are positive integers.

        Raises:
            ValueError: If either timeout value is non-positive.
        """
        connect_timeout, read_timeout = timeout

        if connect_timeout <= 0:
            raise ValueError(
                f'connect_timeout must be positive, got: {connect_timeout}'
            )
        if read_timeout <= 0:
            raise ValueError(f'read_timeout must be positive, got: {read_timeout}')

        return timeout

    @field_validator('verify_ssl')
    @classmethod
    def validate_ssl_configuration(cls, verify_ssl: bool | str) -> bool | str:
        """Validate SSL verification configuration.

        When a string path is provided (for custom CA bundles), verifies
        the file exists and is a regular file (not a directory).

        Raises:
            ValueError: If string path does not exist or is not a file.
        """
        if isinstance(verify_ssl, str):
            cert_path = Path(verify_ssl)

            if not cert_path.exists():
                raise ValueError(f'SSL certificate bundle file not found: {verify_ssl}')
            if not cert_path.is_file():
                raise ValueError(
                    f'SSL certificate path must be a file, not directory: {verify_ssl}'
                )

        return verify_ssl

    def to_credentials(self) -> AmbientCredentials:
        """Build the runtime credentials object from this section."""
        return AmbientCredentials(
            api_keys=list(self.api_keys),
            application_key=self.application_key,
            mac_address=self.mac_address,
            base_url=self.base_url,
            realtime_url=self.realtime_url,
            timeout=self.request_timeout,
            verify_ssl=self.verify_ssl,
            use_truststore=self.use_truststore,
        )


# =============================================================================
# Resilience Configuration
# =============================================================================


class ResilienceConfig(BaseModel):
    """Numbers for the per-request resilience policy chain.

    Defaults follow the vendor's published limit of one request per second
    per API key, with headroom.

    Backoff:
        Both retry policies use decorrelated jitter. The first retry waits
        about `median_first_retry_delay_seconds` (median); later retries
        grow roughly exponentially with random spread, each capped at
        `max_retry_delay_seconds`.

    Attributes:
        rate_limit_interval_seconds: Minimum spacing between two requests
            leaving the client.
        too_many_requests_retries: Retries after HTTP 429.
        transient_retries: Retries after 5xx, 408, timeouts and connection
            errors.
        median_first_retry_delay_seconds: Median delay before the first retry.
        max_retry_delay_seconds: Upper bound for any single backoff delay.
        circuit_breaker_failure_threshold: Consecutive transient failures
            that open the transient breaker.
        circuit_breaker_duration_seconds: How long the transient breaker
            stays open.
        unauthorized_break_duration_seconds: How long the breaker stays open
            after a single HTTP 401.
    """

    model_config = ConfigDict(extra='forbid')

    rate_limit_interval_seconds: float = Field(
        default=1.5,
        ge=0.0,
        le=60.0,
        description='Minimum seconds between outbound requests',
    )
    too_many_requests_retries: int = Field(
        default=5,
        ge=0,
        le=20,
        description='Retries after HTTP 429 (0-20)',
    )
    transient_retries: int = Field(
        default=6,
        ge=0,
        le=20,
        description='Retries after 5xx/408/timeouts (0-20)',
    )
    median_first_retry_delay_seconds: float = Field(
        default=1.0,
        ge=0.0,
        le=60.0,
        description='Median delay before the first retry in seconds',
    )
    max_retry_delay_seconds: float = Field(
        default=60.0,
        gt=0.0,
        le=600.0,
        description='Cap for a single backoff delay in seconds',
    )
    circuit_breaker_failure_threshold: int = Field(
        default=6,
        ge=1,
        le=100,
        description='Consecutive transient failures before the breaker opens',
    )
    circuit_breaker_duration_seconds: float = Field(
        default=60.0,
        ge=0.0,
        le=3600.0,
        description='Seconds the transient breaker stays open',
    )
    unauthorized_break_duration_seconds: float = Field(
        default=60.0,
        ge=0.0,
        le=3600.0,
        description='Seconds the breaker stays open after HTTP 401',
    )


# =============================================================================
# History Configuration
# =============================================================================


class HistoryConfig(BaseModel):
    """Settings for day-by-day history walks.

    Attributes:
        request_delay_seconds: Pause between two day requests, on top of
            the client's own rate limiting.
        default_limit: Readings per day when the caller does not pass one
            (288 = a full day at 5-minute resolution).
    """

    model_config = ConfigDict(extra='forbid')

    request_delay_seconds: float = Field(
        default=1.5,
        ge=0.0,
        le=60.0,
        description='Delay between day requests in seconds (0-60)',
    )
    default_limit: int = Field(
        default=288,
        ge=1,
        description='Readings per day; the vendor caps a page at 288',
    )


# =============================================================================
# Realtime Configuration
# =============================================================================


class RealtimeConfig(BaseModel):
    """Reconnection behavior of the realtime Socket.IO connection.

    Attributes:
        reconnection_delay_seconds: First reconnection delay.
        reconnection_delay_max_seconds: Upper bound the delay escalates to.
    """

    model_config = ConfigDict(extra='forbid')

    reconnection_delay_seconds: float = Field(
        default=5.0,
        gt=0.0,
        le=300.0,
        description='Initial delay before reconnecting in seconds',
    )
    reconnection_delay_max_seconds: float = Field(
        default=30.0,
        gt=0.0,
        le=3600.0,
        description='Maximum delay between reconnection attempts in seconds',
    )

    @model_validator(mode='after')
    def validate_delay_ordering(self) -> Self:
        """Ensure the maximum delay is not below the initial delay."""
        if self.reconnection_delay_max_seconds < self.reconnection_delay_seconds:
            raise ValueError(
                'reconnection_delay_max_seconds must be >= reconnection_delay_seconds'
            )
        return self


# =============================================================================
# Logging Configuration
# =============================================================================


class LoggingConfig(BaseModel):
    """Configuration for application logging output.

    Supports dual-destination logging: console (always enabled) and optional
    file output. Console output is typically set to INFO, while file output
    captures DEBUG-level detail such as every retry and breaker transition.

    Attributes:
        file_path: Path to log file. None disables file logging.
            Extension .log is appended automatically if missing.
        console_level: Minimum log level for console output.
            Accepts level name or numeric value.
        file_level: Minimum log level for file output. Defaults to DEBUG
            if file_path is provided.
    """

    model_config = ConfigDict(extra='forbid')

    file_path: Path | None = Field(
        default=None,
        description='Log file path (.log extension auto-added). None disables file logging.',
    )
    console_level: LogLevelName | int = Field(
        default='INFO',
        description="Console log level: 'DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL', or int",
    )
    file_level: LogLevelName | int | None = Field(
        default=None,
        description='File log level. None disables file logging.',
    )

    @field_validator('file_path', mode='before')
    @classmethod
    def normalize_log_file_path(cls, path_value: str | Path | None) -> Path | None:
        """Normalize path and ensure .log extension."""
        if path_value is None:
            return None

        path_string: str = str(path_value)

        if not path_string.lower().endswith('.log'):
            path_string = f'{path_string}.log'

        return Path(path_string)

    @field_validator('console_level', 'file_level', mode='after')
    @classmethod
    def validate_numeric_log_level(
        cls, level_value: LogLevelName | int | None
    ) -> LogLevelName | int | None:
        """Validate numeric log levels are standard Python logging values.

        Raises:
            ValueError: If numeric level is not a standard logging value.
        """
        if level_value is None or isinstance(level_value, str):
            return level_value

        if level_value not in LOG_LEVEL_VALUES:
            raise ValueError(
                f'Numeric log level must be one of {sorted(LOG_LEVEL_VALUES)}, '
                f'got: {level_value}'
            )

        return level_value

    @model_validator(mode='after')
    def ensure_file_logging_configuration_consistency(self) -> Self:
        """Ensure file_path and file_level are consistently configured.

        If file_path is provided without file_level, defaults to DEBUG.
        If file_level is provided without file_path, raises an error since
        there's nowhere to write the logs.

        Raises:
            ValueError: If file_level is set but file_path is missing.
        """
        has_file_path: bool = self.file_path is not None
        has_file_level: bool = self.file_level is not None

        if has_file_path and not has_file_level:
            # Cannot log here, logging isn't configured yet
            self.file_level = 'DEBUG'

        if has_file_level and not has_file_path:
            raise ValueError(
                'file_level is specified but file_path is missing. '
                'Provide file_path to enable file logging, or remove file_level.'
            )

        return self

    def get_console_level_int(self) -> int:
        """Convert console_level to numeric value for logging module."""
        if isinstance(self.console_level, int):
            return self.console_level
        return LOG_LEVEL_NAME_TO_INT[self.console_level]

    def get_file_level_int(self) -> int | None:
        """Convert file_level to numeric value, or None if file logging is off."""
        if self.file_level is None:
            return None
        if isinstance(self.file_level, int):
            return self.file_level
        return LOG_LEVEL_NAME_TO_INT[self.file_level]


# =============================================================================
# Root Configuration
# =============================================================================


class ClientConfig(BaseModel):
    """Root configuration model for the Ambient Weather client.

    Only the `ambient` section is required; every other section falls back
    to its defaults.

    Loading Example:
        >>> import yaml
        >>> with open('ambient_config.yaml', encoding='utf-8') as config_file:
        ...     raw_config = yaml.safe_load(config_file)
        >>> config = ClientConfig.model_validate(raw_config)

    Attributes:
        ambient: Account keys and connection settings.
        resilience: Rate limit, retry and circuit breaker numbers.
        history: History walk pacing and default page size.
        realtime: Socket.IO reconnection settings.
        logging: Console and file logging.
    """

    model_config = ConfigDict(extra='forbid')

    ambient: AmbientConfig = Field(
        description='Account keys and connection settings',
    )
    resilience: ResilienceConfig = Field(
        default_factory=ResilienceConfig,
        description='Resilience policy chain numbers',
    )
    history: HistoryConfig = Field(
        default_factory=HistoryConfig,
        description='History walk settings',
    )
    realtime: RealtimeConfig = Field(
        default_factory=RealtimeConfig,
        description='Realtime connection settings',
    )
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig,
        description='Application logging configuration',
    )
