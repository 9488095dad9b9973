#!/usr/bin/env python3
"""
Usage examples for ambient_weather_client.

This file demonstrates the different ways to talk to the Ambient Weather
API, from the raw request layer up to history walks and realtime events.
"""

import asyncio
from datetime import date, timedelta

from ambient_weather_client import (
    ClientConfig,
    DeviceDataClient,
    DeviceHistoryWalker,
    DeviceReading,
    RealtimeClient,
    ServiceResponse,
    SubscriptionPayload,
    history_to_dataframe,
    load_config,
    setup_logger,
)

CONFIG_PATH: str = 'config/ambient_config.yaml'

# =============================================================================
# Level 1: Request Specs and the Resilient Client (Most Control)
# =============================================================================


async def example_1_resilient_client() -> None:
    """
    Lowest level: build a request and run it through the policy chain.

    Use this when you need the raw JSON body.
    """
    from ambient_weather_client import ResilientClient
    from ambient_weather_client.models import AmbientEndpoints

    config: ClientConfig = load_config(CONFIG_PATH)
    credentials = config.ambient.to_credentials()

    async with ResilientClient(credentials, resilience=config.resilience) as client:
        spec = AmbientEndpoints.DEVICE_DATA.build_request_spec(credentials, limit=12)
        response: ServiceResponse[str] = await client.get(spec)

        if response.success:
            print(response.value)
        else:
            print(f'Request failed: {response.error_message}')

        print(f'Transient circuit: {client.transient_circuit_state.value}')


# =============================================================================
# Level 2: Device Data Wrapper (Recommended for Most Use Cases)
# =============================================================================


async def example_2_device_data() -> None:
    """Typed readings, the account's stations and the existence probe."""
    config: ClientConfig = load_config(CONFIG_PATH)

    async with DeviceDataClient.from_config(config) as devices:
        for station in await devices.fetch_user_devices():
            name: str | None = station.info.name if station.info else None
            print(f'{station.mac_address}: {name}')

        readings: list[DeviceReading] = await devices.fetch_device_data(limit=12)
        for reading in readings:
            print(f'{reading.observed_at}: {reading.outdoor_temperature_f} F')

        if await devices.does_device_data_exist(date(2020, 1, 1)):
            print('Station has data from before 2020')


async def example_3_three_way_results() -> None:
    """Tell "no data" apart from "call failed"."""
    config: ClientConfig = load_config(CONFIG_PATH)

    async with DeviceDataClient.from_config(config) as devices:
        response = await devices.fetch_device_data_response(date(2024, 3, 2), 288)

        if response.failure:
            print(f'Call failed: {response.error_message}')
        elif response.is_empty:
            print('No readings for that day')
        else:
            print(f'{len(response.value or [])} readings')


# =============================================================================
# Level 3: History Walks
# =============================================================================


async def example_4_history_walk() -> None:
    """Walk a date range one day at a time."""
    config: ClientConfig = load_config(CONFIG_PATH)

    async with DeviceDataClient.from_config(config) as devices:
        walker = DeviceHistoryWalker(devices, config=config.history)

        async for day in walker.fetch_device_history(date(2024, 3, 1), date(2024, 3, 8)):
            print(f'{len(day)} readings')

        # Yesterday and the six days before it, first hour of each day only
        async for day in walker.fetch_recent_history(
            timedelta(days=7),
            include_today=False,
            slice_from_start_of_day=True,
            limit=12,
        ):
            print([reading.date_utc for reading in day])


async def example_5_history_dataframe() -> None:
    """Collect a range walk into a pandas DataFrame."""
    import pandas as pd

    config: ClientConfig = load_config(CONFIG_PATH)

    async with DeviceDataClient.from_config(config) as devices:
        walker = DeviceHistoryWalker(devices, config=config.history)
        readings_df: pd.DataFrame = await history_to_dataframe(
            walker, date(2024, 3, 1), date(2024, 3, 8)
        )

    if not readings_df.empty:
        print(readings_df[['dateutc', 'tempf', 'humidity']].describe())


# =============================================================================
# Level 4: Realtime Events
# =============================================================================


async def example_6_realtime() -> None:
    """Receive readings as the stations push them."""
    config: ClientConfig = load_config(CONFIG_PATH)

    def print_reading(reading: DeviceReading) -> None:
        print(f'{reading.mac_address}: {reading.outdoor_temperature_f} F')

    def print_subscription(payload: SubscriptionPayload) -> None:
        print(f'Subscribed to {len(payload.devices)} device(s)')

    def print_rejected(api_keys: list[str]) -> None:
        print(f'Rejected API keys: {len(api_keys)}')

    realtime = RealtimeClient(config.ambient.to_credentials(), config=config.realtime)
    realtime.on_subscribed(print_subscription)
    realtime.on_invalid_api_keys(print_rejected)
    remove_reading_listener = realtime.on_data(print_reading)

    async with realtime:
        await asyncio.sleep(300)
        remove_reading_listener()


# =============================================================================
# Main
# =============================================================================


def main() -> None:
    """Run example demonstrating recommended usage."""
    print('=' * 80)
    print('Ambient Weather Client - Usage Examples')
    print('=' * 80)

    try:
        config: ClientConfig = load_config(CONFIG_PATH)
        setup_logger(config=config.logging)

        print(f'Base URL: {config.ambient.base_url}')
        print(f'Station: {config.ambient.mac_address or "(account scope)"}')

        asyncio.run(example_2_device_data())

    except FileNotFoundError:
        print(f'Config file not found. Please create {CONFIG_PATH}')
    except Exception as exc:
        print(f'Error: {exc}')


if __name__ == '__main__':
    main()
