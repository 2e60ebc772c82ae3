# Project: weather-history
# Owner: GreenUnicorn
"""
history.py — Fetch historical daily/hourly weather from the Open-Meteo Archive API.
API docs: https://open-meteo.com/en/docs/historical-weather-api

The archive answers with parallel arrays keyed by a `time` array; we turn them
into DailyRecord / HourlyRecord lists. Missing values stay None.
"""

import requests
from datetime import date, datetime

from weather_history.config import ARCHIVE_API_URL
from weather_history.records import DailyRecord, HourlyRecord
from weather_history.utils import with_retry

# ERA5 coverage starts in 1940
ARCHIVE_MIN_DATE = date(1940, 1, 1)

DAILY_VARIABLES = [
    "temperature_2m_max",
    "temperature_2m_min",
    "temperature_2m_mean",
    "precipitation_sum",
    "wind_speed_10m_max",
    "relative_humidity_2m_mean",
    "sunshine_duration",
    "weather_code",
]

HOURLY_VARIABLES = [
    "temperature_2m",
    "precipitation",
    "wind_speed_10m",
    "relative_humidity_2m",
    "sunshine_duration",
    "weather_code",
]


class ArchiveError(RuntimeError):
    """The archive rejected the request or answered with an unexpected shape."""


def validate_date_range(start: date, end: date) -> None:
    """Raise ValueError for a reversed range or one starting before 1940."""
    if start > end:
        raise ValueError(f"start_date {start} is after end_date {end}")
    if start < ARCHIVE_MIN_DATE:
        raise ValueError(f"start_date {start} is before {ARCHIVE_MIN_DATE} (no archive data)")


def _query(
    latitude: float,
    longitude: float,
    start: date,
    end: date,
    kind: str,
    variables: list[str],
    url: str,
    timezone: str,
    timeout: float,
    attempts: int,
    delay: float,
) -> dict:
    validate_date_range(start, end)
    params = {
        "latitude": latitude,
        "longitude": longitude,
        "start_date": start.isoformat(),
        "end_date": end.isoformat(),
        kind: ",".join(variables),
        "timezone": timezone,
    }

    def _call() -> dict:
        r = requests.get(url, params=params, timeout=timeout)
        r.raise_for_status()
        return r.json()

    data = with_retry(
        _call,
        label=f"Open-Meteo archive ({kind})",
        attempts=attempts,
        delay=delay,
    )
    if not isinstance(data, dict):
        raise ArchiveError("Unexpected API response structure: not a JSON object")
    if data.get("error"):
        raise ArchiveError(f"Archive API error: {data.get('reason') or data['error']}")
    return data


def fetch_daily_archive(
    latitude: float,
    longitude: float,
    start: date,
    end: date,
    url: str = ARCHIVE_API_URL,
    timezone: str = "auto",
    timeout: float = 30.0,
    attempts: int = 3,
    delay: float = 0.3,
) -> list[DailyRecord]:
    """Fetch daily records for [start, end] (inclusive).

    Raises:
        ValueError: For an invalid date range.
        ArchiveError: If the API returns an error payload or no daily block.
        RuntimeError: If all retries fail.
    """
    data = _query(latitude, longitude, start, end, "daily", DAILY_VARIABLES,
                  url, timezone, timeout, attempts, delay)
    return _parse_daily(data)


def fetch_hourly_archive(
    latitude: float,
    longitude: float,
    start: date,
    end: date,
    url: str = ARCHIVE_API_URL,
    timezone: str = "auto",
    timeout: float = 30.0,
    attempts: int = 3,
    delay: float = 0.3,
) -> list[HourlyRecord]:
    """Fetch hourly records for every hour of [start, end].

    Raises:
        ValueError: For an invalid date range.
        ArchiveError: If the API returns an error payload or no hourly block.
        RuntimeError: If all retries fail.
    """
    data = _query(latitude, longitude, start, end, "hourly", HOURLY_VARIABLES,
                  url, timezone, timeout, attempts, delay)
    return _parse_hourly(data)


def _column(block: dict, name: str, n: int) -> list:
    values = block.get(name) or []
    return list(values) + [None] * (n - len(values))


def _num(value) -> float | None:
    return float(value) if value is not None else None


def _sunshine_hours(seconds) -> float | None:
    return round(float(seconds) / 3600, 1) if seconds is not None else None


def _code(value) -> int | None:
    return int(value) if value is not None else None


def _parse_daily(data: dict) -> list[DailyRecord]:
    """Parse an archive response into DailyRecords; entries without a date are dropped."""
    daily = data.get("daily")
    if not isinstance(daily, dict) or "time" not in daily:
        raise ArchiveError("Unexpected API response structure: missing 'daily.time'")

    dates      = daily["time"] or []
    n          = len(dates)
    temp_max   = _column(daily, "temperature_2m_max", n)
    temp_min   = _column(daily, "temperature_2m_min", n)
    temp_mean  = _column(daily, "temperature_2m_mean", n)
    precip     = _column(daily, "precipitation_sum", n)
    wind_max   = _column(daily, "wind_speed_10m_max", n)
    humidity   = _column(daily, "relative_humidity_2m_mean", n)
    sunshine   = _column(daily, "sunshine_duration", n)
    codes      = _column(daily, "weather_code", n)

    records = []
    for i, date_str in enumerate(dates):
        try:
            day = date.fromisoformat(date_str)
        except (TypeError, ValueError):
            continue
        records.append(DailyRecord(
            date=day,
            temp_avg=_num(temp_mean[i]),
            temp_min=_num(temp_min[i]),
            temp_max=_num(temp_max[i]),
            precipitation=_num(precip[i]),
            wind_speed=_num(wind_max[i]),
            humidity=_num(humidity[i]),
            sunshine_hours=_sunshine_hours(sunshine[i]),
            weather_code=_code(codes[i]),
        ))
    return records


def _parse_hourly(data: dict) -> list[HourlyRecord]:
    """Parse an archive response into HourlyRecords ('YYYY-MM-DDTHH:MM' timestamps)."""
    hourly = data.get("hourly")
    if not isinstance(hourly, dict) or "time" not in hourly:
        raise ArchiveError("Unexpected API response structure: missing 'hourly.time'")

    times    = hourly["time"] or []
    n        = len(times)
    temps    = _column(hourly, "temperature_2m", n)
    precip   = _column(hourly, "precipitation", n)
    wind     = _column(hourly, "wind_speed_10m", n)
    humidity = _column(hourly, "relative_humidity_2m", n)
    sunshine = _column(hourly, "sunshine_duration", n)
    codes    = _column(hourly, "weather_code", n)

    records = []
    for i, time_str in enumerate(times):
        try:
            stamp = datetime.fromisoformat(time_str)
        except (TypeError, ValueError):
            continue
        records.append(HourlyRecord(
            date=stamp.date(),
            timestamp=stamp,
            hour=stamp.hour,
            temp_avg=_num(temps[i]),
            temp_min=_num(temps[i]),
            temp_max=_num(temps[i]),
            precipitation=_num(precip[i]),
            wind_speed=_num(wind[i]),
            humidity=_num(humidity[i]),
            sunshine_hours=_sunshine_hours(sunshine[i]),
            weather_code=_code(codes[i]),
        ))
    return records
