# ambient_weather_client/models/device_models.py
"""
Pydantic response models for Ambient Weather device data.

Design Notes:
    - Every reading field is optional: station models (WS-2902, WS-5000,
      add-on sensors) each populate a different subset.
    - Field names are Pythonic; the wire name is kept as the alias, so
      ``model_validate`` reads vendor JSON and ``model_dump(by_alias=True)``
      writes it back unchanged.
    - Per-channel sensors (temp1f..temp10f, batt1..batt10, ...) mirror the
      vendor's flat wire format one field per channel.
    - Numbers sent as strings are coerced by pydantic's lax mode.
    - Models are frozen: records are immutable once deserialized.
    - extra='ignore' keeps parsing working when the vendor adds fields.
"""

import logging
from datetime import UTC, datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field, field_validator

__all__: list[str] = [
    'Coordinates',
    'DeviceInfo',
    'DeviceReading',
    'Geo',
    'ResponseModelBase',
    'StationLocation',
    'SubscriptionPayload',
    'UserDevice',
]

logger: logging.Logger = logging.getLogger(__name__)


# =============================================================================
# Base Configuration for Response Models
# =============================================================================


class ResponseModelBase(BaseModel):
    """
    Base class for all Ambient Weather response models.

    Configuration:
        - extra='ignore': Silently ignore unknown fields from API responses.
        - populate_by_name=True: Allow initialization by field name OR alias.
        - str_strip_whitespace=True: Trim whitespace from string fields.
        - frozen=True: Records are immutable value objects.
    """

    model_config = ConfigDict(
        extra='ignore',
        populate_by_name=True,
        str_strip_whitespace=True,
        frozen=True,
    )


# =============================================================================
# Device Reading
# =============================================================================


class DeviceReading(ResponseModelBase):
    """
    One weather observation from a station, as returned by the REST API or
    pushed by a realtime ``data`` event.

    Readings are recorded in 5-minute increments; 288 readings cover one day.
    Only ``date_utc`` (epoch milliseconds) and ``mac_address`` (set on
    realtime events, null on REST responses) identify a reading.
    """

    date_utc: int | None = Field(default=None, alias='dateutc')
    observed_date: datetime | None = Field(default=None, alias='date')
    time_zone: str | None = Field(default=None, alias='tz')
    loc: str | None = Field(default=None, alias='loc')
    mac_address: str | None = Field(default=None, alias='macAddress')

    # Base station
    indoor_temperature_f: float | None = Field(default=None, alias='tempinf')
    indoor_humidity: int | None = Field(default=None, alias='humidityin')
    indoor_feels_like_f: float | None = Field(default=None, alias='feelsLikein')
    indoor_dew_point_f: float | None = Field(default=None, alias='dewPointin')
    relative_pressure_inhg: float | None = Field(default=None, alias='baromrelin')
    absolute_pressure_inhg: float | None = Field(default=None, alias='baromabsin')

    # Outdoor sensor array
    outdoor_temperature_f: float | None = Field(default=None, alias='tempf')
    outdoor_humidity: int | None = Field(default=None, alias='humidity')
    feels_like_f: float | None = Field(default=None, alias='feelsLike')
    dew_point_f: float | None = Field(default=None, alias='dewPoint')
    outdoor_battery: int | None = Field(default=None, alias='battout')
    solar_radiation: float | None = Field(default=None, alias='solarradiation')
    uv_index: int | None = Field(default=None, alias='uv')

    # Wind
    wind_direction: int | None = Field(default=None, alias='winddir')
    wind_speed_mph: float | None = Field(default=None, alias='windspeedmph')
    wind_gust_mph: float | None = Field(default=None, alias='windgustmph')
    wind_gust_direction: int | None = Field(default=None, alias='windgustdir')
    max_daily_gust_mph: float | None = Field(default=None, alias='maxdailygust')
    wind_speed_avg_2m_mph: float | None = Field(
        default=None, alias='windspdmph_avg2m'
    )
    wind_direction_avg_2m: int | None = Field(default=None, alias='winddir_avg2m')
    wind_speed_avg_10m_mph: float | None = Field(
        default=None, alias='windspdmph_avg10m'
    )
    wind_direction_avg_10m: int | None = Field(default=None, alias='winddir_avg10m')

    # Rain accumulation windows
    hourly_rain_in: float | None = Field(default=None, alias='hourlyrainin')
    event_rain_in: float | None = Field(default=None, alias='eventrainin')
    daily_rain_in: float | None = Field(default=None, alias='dailyrainin')
    weekly_rain_in: float | None = Field(default=None, alias='weeklyrainin')
    monthly_rain_in: float | None = Field(default=None, alias='monthlyrainin')
    yearly_rain_in: float | None = Field(default=None, alias='yearlyrainin')
    total_rain_in: float | None = Field(default=None, alias='totalrainin')
    rain_24h_in: float | None = Field(default=None, alias='24hourrainin')
    last_rain: datetime | None = Field(default=None, alias='lastRain')

    # Air quality
    pm25: float | None = Field(default=None, alias='pm25')
    pm25_24h: float | None = Field(default=None, alias='pm25_24h')
    pm25_indoor: float | None = Field(default=None, alias='pm25_in')
    pm25_indoor_24h: float | None = Field(default=None, alias='pm25_in_24h')
    pm25_battery: int | None = Field(default=None, alias='batt_25')
    co2_ppm: float | None = Field(default=None, alias='co2')
    co2_battery: int | None = Field(default=None, alias='batt_co2')

    # Add-on temperature/humidity sensors (channels 1-10)
    temperature_1_f: float | None = Field(default=None, alias='temp1f')
    temperature_2_f: float | None = Field(default=None, alias='temp2f')
    temperature_3_f: float | None = Field(default=None, alias='temp3f')
    temperature_4_f: float | None = Field(default=None, alias='temp4f')
    temperature_5_f: float | None = Field(default=None, alias='temp5f')
    temperature_6_f: float | None = Field(default=None, alias='temp6f')
    temperature_7_f: float | None = Field(default=None, alias='temp7f')
    temperature_8_f: float | None = Field(default=None, alias='temp8f')
    temperature_9_f: float | None = Field(default=None, alias='temp9f')
    temperature_10_f: float | None = Field(default=None, alias='temp10f')

    humidity_1: int | None = Field(default=None, alias='humidity1')
    humidity_2: int | None = Field(default=None, alias='humidity2')
    humidity_3: int | None = Field(default=None, alias='humidity3')
    humidity_4: int | None = Field(default=None, alias='humidity4')
    humidity_5: int | None = Field(default=None, alias='humidity5')
    humidity_6: int | None = Field(default=None, alias='humidity6')
    humidity_7: int | None = Field(default=None, alias='humidity7')
    humidity_8: int | None = Field(default=None, alias='humidity8')
    humidity_9: int | None = Field(default=None, alias='humidity9')
    humidity_10: int | None = Field(default=None, alias='humidity10')

    feels_like_1_f: float | None = Field(default=None, alias='feelsLike1')
    feels_like_2_f: float | None = Field(default=None, alias='feelsLike2')
    feels_like_3_f: float | None = Field(default=None, alias='feelsLike3')
    feels_like_4_f: float | None = Field(default=None, alias='feelsLike4')
    feels_like_5_f: float | None = Field(default=None, alias='feelsLike5')
    feels_like_6_f: float | None = Field(default=None, alias='feelsLike6')
    feels_like_7_f: float | None = Field(default=None, alias='feelsLike7')
    feels_like_8_f: float | None = Field(default=None, alias='feelsLike8')
    feels_like_9_f: float | None = Field(default=None, alias='feelsLike9')
    feels_like_10_f: float | None = Field(default=None, alias='feelsLike10')

    dew_point_1_f: float | None = Field(default=None, alias='dewPoint1')
    dew_point_2_f: float | None = Field(default=None, alias='dewPoint2')
    dew_point_3_f: float | None = Field(default=None, alias='dewPoint3')
    dew_point_4_f: float | None = Field(default=None, alias='dewPoint4')
    dew_point_5_f: float | None = Field(default=None, alias='dewPoint5')
    dew_point_6_f: float | None = Field(default=None, alias='dewPoint6')
    dew_point_7_f: float | None = Field(default=None, alias='dewPoint7')
    dew_point_8_f: float | None = Field(default=None, alias='dewPoint8')
    dew_point_9_f: float | None = Field(default=None, alias='dewPoint9')
    dew_point_10_f: float | None = Field(default=None, alias='dewPoint10')

    # Soil probes (channels 1-10)
    soil_temperature_1_f: float | None = Field(default=None, alias='soiltemp1f')
    soil_temperature_2_f: float | None = Field(default=None, alias='soiltemp2f')
    soil_temperature_3_f: float | None = Field(default=None, alias='soiltemp3f')
    soil_temperature_4_f: float | None = Field(default=None, alias='soiltemp4f')
    soil_temperature_5_f: float | None = Field(default=None, alias='soiltemp5f')
    soil_temperature_6_f: float | None = Field(default=None, alias='soiltemp6f')
    soil_temperature_7_f: float | None = Field(default=None, alias='soiltemp7f')
    soil_temperature_8_f: float | None = Field(default=None, alias='soiltemp8f')
    soil_temperature_9_f: float | None = Field(default=None, alias='soiltemp9f')
    soil_temperature_10_f: float | None = Field(default=None, alias='soiltemp10f')

    soil_humidity_1: int | None = Field(default=None, alias='soilhum1')
    soil_humidity_2: int | None = Field(default=None, alias='soilhum2')
    soil_humidity_3: int | None = Field(default=None, alias='soilhum3')
    soil_humidity_4: int | None = Field(default=None, alias='soilhum4')
    soil_humidity_5: int | None = Field(default=None, alias='soilhum5')
    soil_humidity_6: int | None = Field(default=None, alias='soilhum6')
    soil_humidity_7: int | None = Field(default=None, alias='soilhum7')
    soil_humidity_8: int | None = Field(default=None, alias='soilhum8')
    soil_humidity_9: int | None = Field(default=None, alias='soilhum9')
    soil_humidity_10: int | None = Field(default=None, alias='soilhum10')

    # Sensor battery flags (1 = OK, 0 = low on most models)
    battery_1: int | None = Field(default=None, alias='batt1')
    battery_2: int | None = Field(default=None, alias='batt2')
    battery_3: int | None = Field(default=None, alias='batt3')
    battery_4: int | None = Field(default=None, alias='batt4')
    battery_5: int | None = Field(default=None, alias='batt5')
    battery_6: int | None = Field(default=None, alias='batt6')
    battery_7: int | None = Field(default=None, alias='batt7')
    battery_8: int | None = Field(default=None, alias='batt8')
    battery_9: int | None = Field(default=None, alias='batt9')
    battery_10: int | None = Field(default=None, alias='batt10')

    # Relays
    relay_1: int | None = Field(default=None, alias='relay1')
    relay_2: int | None = Field(default=None, alias='relay2')
    relay_3: int | None = Field(default=None, alias='relay3')
    relay_4: int | None = Field(default=None, alias='relay4')
    relay_5: int | None = Field(default=None, alias='relay5')
    relay_6: int | None = Field(default=None, alias='relay6')
    relay_7: int | None = Field(default=None, alias='relay7')
    relay_8: int | None = Field(default=None, alias='relay8')
    relay_9: int | None = Field(default=None, alias='relay9')
    relay_10: int | None = Field(default=None, alias='relay10')

    @property
    def observed_at(self) -> datetime | None:
        """Observation time as a timezone-aware UTC datetime."""
        if self.date_utc is None:
            return None
        return datetime.fromtimestamp(self.date_utc / 1000, tz=UTC)


# =============================================================================
# Station Metadata
# =============================================================================


class Geo(ResponseModelBase):
    """
    GeoJSON point for a station.

    Attributes:
        geo_type: GeoJSON type, normally "Point".
        coordinates: [longitude, latitude].
    """

    geo_type: str | None = Field(default=None, alias='type')
    coordinates: list[float] | None = None


class Coordinates(ResponseModelBase):
    """Latitude/longitude pair."""

    latitude: float | None = Field(default=None, alias='lat')
    longitude: float | None = Field(default=None, alias='lon')


class StationLocation(ResponseModelBase):
    """
    Geo-located station information configured in the vendor dashboard.

    Attributes:
        coords: Latitude/longitude of the station.
        address: Street address.
        location: City.
        elevation: Elevation above sea level in meters.
        geo: GeoJSON representation of the position.
    """

    coords: Coordinates | None = None
    address: str | None = None
    location: str | None = None
    elevation: float | None = None
    geo: Geo | None = None


class DeviceInfo(ResponseModelBase):
    """Station name and location."""

    name: str | None = None
    coords: StationLocation | None = None


class UserDevice(ResponseModelBase):
    """
    A device registered on the account, with its last known reading.

    Attributes:
        mac_address: Station MAC address.
        info: Name and location metadata.
        last_data: Most recent reading for the station.
        api_key: API key the device was resolved with (realtime only).
    """

    mac_address: str | None = Field(default=None, alias='macAddress')
    info: DeviceInfo | None = None
    last_data: DeviceReading | None = Field(default=None, alias='lastData')
    api_key: str | None = Field(default=None, alias='apiKey')


class SubscriptionPayload(ResponseModelBase):
    """
    Body of the realtime ``subscribed`` event.

    The vendor reports rejected keys here instead of failing the
    subscription, so callers should check ``invalid_api_keys``.

    Attributes:
        devices: Devices covered by the subscription.
        invalid_api_keys: API keys the vendor did not accept.
        method: Event type echoed by the vendor ("subscribe"/"unsubscribe").
    """

    devices: list[UserDevice] = Field(default_factory=list)
    invalid_api_keys: list[str] = Field(default_factory=list, alias='invalidApiKeys')
    method: str | None = None

    @property
    def has_invalid_api_keys(self) -> bool:
        """Whether the vendor rejected any of the subscribed keys."""
        return bool(self.invalid_api_keys)

    @field_validator('devices', 'invalid_api_keys', mode='before')
    @classmethod
    def convert_null_to_empty_list(cls, value: Any) -> Any:
        """The vendor sends null instead of an empty list on some events."""
        return [] if value is None else value
