# ambient_weather_client/history.py
"""
Day-by-day history walks over a station's readings.

The REST API serves at most one day (288 readings) per request, ordered most
recent first. DeviceHistoryWalker turns that single-day primitive into a
lazy async sequence with one element per day.

Range walk (fetch_device_history):
    Oldest day first. Day i is fetched with cutoff start + (i + 1) days.

Recent walk (fetch_recent_history):
    Newest day first. With include_today the first cutoff is now and the
    walk covers today plus `days_back` previous days; without it the walk
    starts at yesterday and covers `days_back` days.

Slicing from the start of the day:
    The number of readings a day really has is unknown until it arrives, so
    the walker fetches the full 288 and keeps the last `limit` readings,
    which are the oldest ones.

Failures never stop a walk: a failed day yields [] and is logged.
"""

import asyncio
import logging
from collections.abc import AsyncIterator, Callable
from datetime import UTC, date, datetime, time, timedelta
from typing import Any

import pandas as pd

from ambient_weather_client.config import HistoryConfig
from ambient_weather_client.device_data import DeviceDataClient
from ambient_weather_client.models import (
    MAX_READINGS_PER_DAY,
    DeviceReading,
    ServiceResponse,
)

__all__: list[str] = ['DeviceHistoryWalker', 'history_to_dataframe']

logger: logging.Logger = logging.getLogger(__name__)

ONE_DAY: timedelta = timedelta(days=1)


def _utc_now() -> datetime:
    return datetime.now(UTC)


def _as_utc_datetime(value: datetime | date) -> datetime:
    """Naive datetimes are UTC; plain dates mean midnight UTC."""
    if not isinstance(value, datetime):
        return datetime.combine(value, time.min, tzinfo=UTC)
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value.astimezone(UTC)


def _take_oldest(readings: list[DeviceReading], count: int) -> list[DeviceReading]:
    """Last `count` readings of a most-recent-first list."""
    if count <= 0:
        return []
    return readings[-count:]


class DeviceHistoryWalker:
    """
    Lazy multi-day iteration over a station's readings.

    Both walk methods validate their arguments when called and return an
    async iterator; nothing is fetched until iteration starts. Days are
    fetched strictly one after another, with `request_delay_seconds` of
    pacing between requests on top of the client's rate limiter.

    Example:
        >>> walker = DeviceHistoryWalker(device_data)
        >>> async for day in walker.fetch_recent_history(3, include_today=False):
        ...     print(len(day))
    """

    def __init__(
        self,
        device_data: DeviceDataClient,
        config: HistoryConfig | None = None,
        clock: Callable[[], datetime] = _utc_now,
    ) -> None:
        """
        Args:
            device_data: Wrapper used for each single-day fetch.
            config: Pacing and default limit. None uses the defaults.
            clock: Returns the current aware UTC time; injectable for tests.
        """
        self._device_data: DeviceDataClient = device_data
        self._config: HistoryConfig = config or HistoryConfig()
        self._clock: Callable[[], datetime] = clock

    # -------------------------------------------------------------------------
    # Public API
    # -------------------------------------------------------------------------

    def fetch_device_history(
        self,
        start_date: datetime | date,
        end_date: datetime | date | None = None,
        *,
        slice_from_start_of_day: bool = False,
        limit: int | None = None,
    ) -> AsyncIterator[list[DeviceReading]]:
        """
        Walk forward from `start_date`, one day per element.

        Args:
            start_date: First day of the walk.
            end_date: End of the range. None means now (UTC). The span is
                truncated to whole days.
            slice_from_start_of_day: Keep the oldest `limit` readings of each
                day instead of the newest.
            limit: Readings per day. None uses the configured default.

        Returns:
            Async iterator yielding each day's readings, oldest day first.

        Raises:
            ValueError: If end_date is before start_date, the span is shorter
                than one day, or credentials are blank.
        """
        start: datetime = _as_utc_datetime(start_date)
        end: datetime = _as_utc_datetime(end_date) if end_date is not None else self._clock()

        if end < start:
            raise ValueError(
                f'end_date ({end.isoformat()}) must not be before '
                f'start_date ({start.isoformat()})'
            )

        day_count: int = (end - start).days
        if day_count <= 0:
            raise ValueError(
                f'The range from {start.isoformat()} to {end.isoformat()} '
                'must span at least one whole day'
            )

        effective_limit: int = self._validate_walk(limit)
        cutoffs: list[datetime] = [start + ONE_DAY * (i + 1) for i in range(day_count)]

        logger.debug(
            'History range walk: start=%s, days=%d, slice=%s, limit=%d',
            start.isoformat(),
            day_count,
            slice_from_start_of_day,
            effective_limit,
        )
        return self._walk(cutoffs, slice_from_start_of_day, effective_limit)

    def fetch_recent_history(
        self,
        days_back: int | timedelta,
        *,
        slice_from_start_of_day: bool = False,
        include_today: bool = True,
        limit: int | None = None,
    ) -> AsyncIterator[list[DeviceReading]]:
        """
        Walk backward from now, newest day first.

        Args:
            days_back: Number of previous days, as an int or a timedelta
                (whole days only).
            slice_from_start_of_day: Keep the oldest `limit` readings of each
                day instead of the newest.
            include_today: Start with today (day zero) followed by
                `days_back` previous days. When False, start at yesterday.
            limit: Readings per day. None uses the configured default.

        Raises:
            ValueError: If days_back is less than one day, or credentials are
                blank.
        """
        day_count: int = days_back.days if isinstance(days_back, timedelta) else days_back
        if day_count <= 0:
            raise ValueError(f'days_back must be at least 1 day, got: {days_back}')

        effective_limit: int = self._validate_walk(limit)

        now: datetime = self._clock()
        if include_today:
            cutoffs: list[datetime] = [now - ONE_DAY * i for i in range(day_count + 1)]
        else:
            cutoffs = [now - ONE_DAY * (i + 1) for i in range(day_count)]

        logger.debug(
            'History recent walk: days_back=%d, include_today=%s, slice=%s, limit=%d',
            day_count,
            include_today,
            slice_from_start_of_day,
            effective_limit,
        )
        return self._walk(cutoffs, slice_from_start_of_day, effective_limit)

    # -------------------------------------------------------------------------
    # Walk
    # -------------------------------------------------------------------------

    def _validate_walk(self, limit: int | None) -> int:
        """Check credentials eagerly; return the limit to use."""
        self._device_data.credentials.check_device_scope()
        return self._config.default_limit if limit is None else limit

    async def _walk(
        self,
        cutoffs: list[datetime],
        slice_from_start_of_day: bool,
        limit: int,
    ) -> AsyncIterator[list[DeviceReading]]:
        request_limit: int = MAX_READINGS_PER_DAY if slice_from_start_of_day else limit
        delay_seconds: float = self._config.request_delay_seconds
        has_requested: bool = False
        total_readings: int = 0

        for cutoff in cutoffs:
            if limit <= 0:
                yield []
                continue

            if has_requested and delay_seconds > 0:
                await asyncio.sleep(delay_seconds)
            has_requested = True

            readings: list[DeviceReading] = await self._fetch_day(cutoff, request_limit)
            if slice_from_start_of_day:
                readings = _take_oldest(readings, limit)

            total_readings += len(readings)
            yield readings

        logger.info(
            'History walk complete: %d readings across %d days',
            total_readings,
            len(cutoffs),
        )

    async def _fetch_day(self, cutoff: datetime, limit: int) -> list[DeviceReading]:
        response: ServiceResponse[list[DeviceReading]] = (
            await self._device_data.fetch_device_data_response(cutoff, limit)
        )

        if response.failure:
            logger.warning(
                'Day ending %s failed, yielding no readings: %s',
                cutoff.isoformat(),
                response.error_message,
            )
            return []

        if response.is_empty:
            logger.debug('No readings for day ending %s', cutoff.isoformat())
            return []

        return response.value or []


# =============================================================================
# DataFrame Export
# =============================================================================


async def history_to_dataframe(
    walker: DeviceHistoryWalker,
    start_date: datetime | date,
    end_date: datetime | date | None = None,
    *,
    slice_from_start_of_day: bool = False,
    limit: int | None = None,
) -> pd.DataFrame:
    """
    Collect a range walk into a pandas DataFrame.

    Columns use the vendor's wire names (``dateutc``, ``tempf``, ...). This
    loads the whole range into memory; iterate the walker directly for
    large ranges.

    Returns:
        One row per reading, oldest day first. An empty DataFrame with no
        columns if no readings were found.

    Raises:
        ValueError: For the same argument errors as fetch_device_history.

    Example:
        >>> dataframe = await history_to_dataframe(walker, date(2024, 3, 1), date(2024, 3, 8))
        >>> dataframe['tempf'].describe()
    """
    records: list[dict[str, Any]] = []

    async for day in walker.fetch_device_history(
        start_date,
        end_date,
        slice_from_start_of_day=slice_from_start_of_day,
        limit=limit,
    ):
        records.extend(reading.model_dump(by_alias=True) for reading in day)

    if not records:
        logger.warning('No readings found between %s and %s', start_date, end_date)
        return pd.DataFrame()

    dataframe = pd.DataFrame(records)

    logger.info(
        'Created DataFrame: %d rows, %d columns',
        len(dataframe),
        len(dataframe.columns),
    )

    return dataframe
