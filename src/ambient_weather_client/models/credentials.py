# ambient_weather_client/models/credentials.py
"""
Credentials and connection settings for the Ambient Weather API.

Unlike the configuration models, AmbientCredentials does not reject blank
values when it is built. Credentials are checked by each outbound call for
exactly the fields that call needs, so a blank MAC address only matters to
device-scoped requests. The check_* methods raise ValueError before any
network activity happens.
"""

from pydantic import BaseModel, ConfigDict, Field, SecretStr

__all__: list[str] = [
    'DEFAULT_BASE_URL',
    'DEFAULT_REALTIME_URL',
    'AmbientCredentials',
]

DEFAULT_BASE_URL: str = 'https://rt.ambientweather.net'
DEFAULT_REALTIME_URL: str = 'https://rt2.ambientweather.net'


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


class AmbientCredentials(BaseModel):
    """
    Account keys plus connection settings for one credential set.

    Attributes:
        api_keys: Ordered API keys. REST calls use the first one; the
            realtime subscription sends all of them.
        application_key: Account application key.
        mac_address: Weather station MAC address. None means the account's
            devices as a whole (only account-scoped calls are possible).
        base_url: REST API root (no trailing slash).
        realtime_url: Socket.IO endpoint root.
        timeout: Tuple of (connect_timeout, read_timeout) in seconds.
        verify_ssl: SSL verification (bool or path to CA bundle).
        use_truststore: Build the SSLContext from the OS trust store.
    """

    model_config = ConfigDict(extra='forbid', frozen=True)

    api_keys: list[SecretStr] = Field(default_factory=list)
    application_key: SecretStr = SecretStr('')
    mac_address: str | None = None
    base_url: str = DEFAULT_BASE_URL
    realtime_url: str = DEFAULT_REALTIME_URL
    timeout: tuple[int, int] = (10, 30)
    verify_ssl: bool | str = True
    use_truststore: bool = False

    @property
    def api_key(self) -> str:
        """The API key used for REST calls (first configured key)."""
        if not self.api_keys:
            return ''
        return self.api_keys[0].get_secret_value()

    def api_key_values(self) -> list[str]:
        """Plain values of every configured API key."""
        return [key.get_secret_value() for key in self.api_keys]

    # -------------------------------------------------------------------------
    # Per-call validation
    # -------------------------------------------------------------------------

    def check_account_scope(self) -> None:
        """
        Validate the keys needed for account-scoped REST calls.

        Raises:
            ValueError: If the first API key or the application key is blank.
        """
        if _is_blank(self.api_key):
            raise ValueError('api_key cannot be empty or whitespace-only')
        if _is_blank(self.application_key.get_secret_value()):
            raise ValueError('application_key cannot be empty or whitespace-only')

    def check_device_scope(self) -> None:
        """
        Validate the keys and MAC address needed for device-scoped REST calls.

        Raises:
            ValueError: If the MAC address, first API key or application key
                is blank.
        """
        if _is_blank(self.mac_address):
            raise ValueError('mac_address cannot be empty or whitespace-only')
        self.check_account_scope()

    def check_realtime_scope(self) -> None:
        """
        Validate the keys needed to open a realtime subscription.

        Raises:
            ValueError: If the application key is blank, no API key is
                configured, or any configured API key is blank.
        """
        if _is_blank(self.application_key.get_secret_value()):
            raise ValueError('application_key cannot be empty or whitespace-only')
        if not self.api_keys:
            raise ValueError('api_keys must contain at least one key')
        for position, key in enumerate(self.api_keys):
            if _is_blank(key.get_secret_value()):
                raise ValueError(
                    f'api_keys[{position}] cannot be empty or whitespace-only'
                )
