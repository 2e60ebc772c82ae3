# Project: weather-history
# Owner: GreenUnicorn
"""
sources.py — The data sources the pipeline tries, in priority order.

    PrimaryServiceSource  an injected weather data service
    RemoteArchiveSource   the Open-Meteo archive, queried directly
    SyntheticSource       deterministic placeholder data (last resort)

Each source returns a list of records; an empty list means "nothing here,
try the next one". Exceptions are left to the pipeline, which logs them.
"""

from __future__ import annotations

import asyncio
import calendar
import inspect
import logging
import random
from datetime import date, timedelta
from typing import Any, Optional, Protocol

from weather_history.config import DEFAULT_CONFIG
from weather_history.history import fetch_daily_archive, fetch_hourly_archive
from weather_history.records import (
    DailyRecord,
    HourlyRecord,
    Location,
    normalize_daily,
    normalize_hourly,
)

logger = logging.getLogger(__name__)


class WeatherDataService(Protocol):
    """Collaborator contract. Methods may be plain functions or coroutines."""

    def load_history(self, lat: float, lon: float, start_date: str, end_date: str) -> Any: ...

    def load_hourly_history(self, lat: float, lon: float, start_date: str, end_date: str) -> Any: ...


class DataSource:
    """Base class: a named producer of daily and hourly records."""

    name = "base"

    async def fetch_daily(self, location: Location, start: date, end: date) -> list[DailyRecord]:
        raise NotImplementedError

    async def fetch_hourly(self, location: Location, start: date, end: date) -> list[HourlyRecord]:
        return []


async def _resolve(value: Any) -> Any:
    if inspect.isawaitable(value):
        return await value
    return value


class PrimaryServiceSource(DataSource):
    """Adapter for the application's weather data service."""

    name = "primary"

    def __init__(self, service: WeatherDataService) -> None:
        self.service = service

    async def fetch_daily(self, location: Location, start: date, end: date) -> list[DailyRecord]:
        result = await _resolve(self.service.load_history(
            location.latitude, location.longitude, start.isoformat(), end.isoformat(),
        ))
        return normalize_daily(result)

    async def fetch_hourly(self, location: Location, start: date, end: date) -> list[HourlyRecord]:
        result = await _resolve(self.service.load_hourly_history(
            location.latitude, location.longitude, start.isoformat(), end.isoformat(),
        ))
        if not isinstance(result, dict):
            return normalize_hourly(result)
        if result.get("error"):
            logger.warning("Primary hourly history error (%s): %s",
                           result.get("source", "unknown"), result["error"])
            return []
        return normalize_hourly(result.get("hourly"))


class RemoteArchiveSource(DataSource):
    """Queries the Open-Meteo archive in a worker thread."""

    name = "remote-archive"

    def __init__(self, fetch_config: Optional[dict] = None) -> None:
        cfg = dict(DEFAULT_CONFIG["fetch"])
        cfg.update(fetch_config or {})
        self.url = cfg["archive_url"]
        self.timezone = cfg["timezone"]
        self.timeout = float(cfg["timeout_seconds"])
        self.attempts = int(cfg["retry_attempts"])
        self.delay = float(cfg["retry_delay_seconds"])

    def _kwargs(self) -> dict:
        return {
            "url": self.url,
            "timezone": self.timezone,
            "timeout": self.timeout,
            "attempts": self.attempts,
            "delay": self.delay,
        }

    async def fetch_daily(self, location: Location, start: date, end: date) -> list[DailyRecord]:
        return await asyncio.to_thread(
            fetch_daily_archive, location.latitude, location.longitude, start, end,
            **self._kwargs(),
        )

    async def fetch_hourly(self, location: Location, start: date, end: date) -> list[HourlyRecord]:
        return await asyncio.to_thread(
            fetch_hourly_archive, location.latitude, location.longitude, start, end,
            **self._kwargs(),
        )


# ─────────────────────────────────────────────────────────────
# Synthetic data
# ─────────────────────────────────────────────────────────────

# Seasonal (min, max) temperature baselines in °C, by month 1-12
SEASONAL_BASELINES = {
    1: (-5, 5),
    2: (-3, 7),
    3: (0, 12),
    4: (4, 16),
    5: (8, 20),
    6: (12, 24),
    7: (15, 28),
    8: (14, 27),
    9: (10, 21),
    10: (6, 14),
    11: (2, 9),
    12: (-2, 5),
}


def generate_month(year: int, month: int) -> list[DailyRecord]:
    """Plausible daily values for a whole month, identical for the same (year, month)."""
    rng = random.Random(year * 100 + month)
    base_min, base_max = SEASONAL_BASELINES[month]
    days_in_month = calendar.monthrange(year, month)[1]

    records = []
    for day in range(1, days_in_month + 1):
        variance = rng.random() * 6 - 3
        temp_min = base_min + variance + rng.random() * 3
        temp_max = base_max + variance + rng.random() * 4
        rainy = rng.random() < 0.3
        rain = round(rng.random() * 15, 1)
        clear = rng.random() < 0.7
        code = rng.randrange(95)
        records.append(DailyRecord(
            date=date(year, month, day),
            temp_max=round(temp_max, 1),
            temp_min=round(temp_min, 1),
            temp_avg=round((temp_min + temp_max) / 2, 1),
            precipitation=rain if rainy else 0.0,
            wind_speed=round(5 + rng.random() * 30, 1),
            humidity=float(round(40 + rng.random() * 50)),
            sunshine_hours=round(rng.random() * 12, 1),
            weather_code=0 if clear else code,
        ))
    return records


def generate_range(start: date, end: date) -> list[DailyRecord]:
    """Synthetic days for [start, end], each taken from its month's series."""
    records: list[DailyRecord] = []
    months: dict[tuple[int, int], list[DailyRecord]] = {}
    current = start
    while current <= end:
        key = (current.year, current.month)
        if key not in months:
            months[key] = generate_month(*key)
        records.append(months[key][current.day - 1])
        current += timedelta(days=1)
    return records


class SyntheticSource(DataSource):
    """Last-resort placeholder data. There is no synthetic hourly series."""

    name = "synthetic"

    async def fetch_daily(self, location: Location, start: date, end: date) -> list[DailyRecord]:
        logger.info("Using synthetic data for %s to %s", start, end)
        return generate_range(start, end)
