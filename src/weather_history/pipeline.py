# Project: weather-history
# Owner: GreenUnicorn
"""
pipeline.py — Resolve a (location, date range) request to weather records.

Resolution order for a request:

    1. TTL cache (exact key match)
    2. an identical request that is already in flight (its result is shared)
    3. the configured sources in priority order, each call (retries included)
       bounded by fetch.source_timeout_seconds
    4. synthetic data, which is cached like any other result

Hourly requests that no source can answer degrade to one pseudo-hourly sample
per day, built from the daily data for the same range.

Failures never reach the caller: every request resolves to some dataset.
`source_of()` tells a stricter consumer where a cached dataset came from.
"""

from __future__ import annotations

import asyncio
import calendar
import logging
import time
from collections.abc import Callable, Sequence
from datetime import date
from typing import Optional

from weather_history.cache import TTLCache
from weather_history.config import default_config, location_from_config
from weather_history.records import Location, pseudo_hourly_from_daily
from weather_history.sources import (
    DataSource,
    PrimaryServiceSource,
    RemoteArchiveSource,
    SyntheticSource,
    WeatherDataService,
)
from weather_history.utils import parse_iso_date

logger = logging.getLogger(__name__)

DAILY = "daily"
HOURLY = "hourly"
KINDS = (DAILY, HOURLY)

# Provenance tag for hourly data derived from daily records
DAILY_FALLBACK = "daily-fallback"


def cache_key(kind: str, start: date, end: date, location: Location) -> str:
    return f"{kind}:{start.isoformat()}:{end.isoformat()}:{location.cache_token}"


class CachePipeline:
    """Owns the cache and the in-flight request map for one application session.

    Args:
        sources: Data sources in priority order. Defaults to the primary
            service (when `service` is given) followed by the remote archive.
            Synthetic data is always the last resort and need not be listed.
        service: Weather data service wrapped as the primary source.
        config: Merged configuration dict (see config.py).
        clock: Monotonic time function for the cache, injectable for tests.
    """

    def __init__(
        self,
        sources: Optional[Sequence[DataSource]] = None,
        service: Optional[WeatherDataService] = None,
        config: Optional[dict] = None,
        clock: Optional[Callable[[], float]] = None,
    ) -> None:
        self.config = config if config is not None else default_config()
        if sources is None:
            sources = []
            if service is not None:
                sources.append(PrimaryServiceSource(service))
            sources.append(RemoteArchiveSource(self.config["fetch"]))
        self.sources = [s for s in sources if not isinstance(s, SyntheticSource)]
        self.synthetic = SyntheticSource()
        # Bounds a whole source call; each HTTP request has its own, shorter timeout
        self.source_timeout = float(self.config["fetch"]["source_timeout_seconds"])
        self.default_location = location_from_config(self.config)
        self._cache = TTLCache(
            ttl=float(self.config["cache"]["ttl_minutes"]) * 60,
            time_func=clock or time.monotonic,
        )
        self._pending: dict[str, asyncio.Task] = {}

    # ── public API ───────────────────────────────────────────

    async def load(
        self,
        location: Location,
        start: date | str,
        end: date | str,
        kind: str = DAILY,
    ) -> list:
        """Return records for [start, end] at the given location.

        Raises:
            ValueError: For an unknown kind, a malformed date or start > end.
        """
        if kind not in KINDS:
            raise ValueError(f"Unknown record kind: {kind!r} (expected one of {KINDS})")
        start, end = parse_iso_date(start), parse_iso_date(end)
        if start > end:
            raise ValueError(f"start date {start} is after end date {end}")

        key = cache_key(kind, start, end, location)
        cached = self._cache.get(key)
        if cached is not None:
            logger.debug("Cache hit: %s", key)
            return list(cached)

        task = self._pending.get(key)
        if task is None:
            logger.debug("Cache miss: %s", key)
            task = asyncio.ensure_future(self._resolve(key, kind, location, start, end))
            self._pending[key] = task
            task.add_done_callback(lambda t, k=key: self._forget(k, t))
        else:
            logger.debug("Joining in-flight request: %s", key)

        # Shielded so a cancelled caller does not cancel the shared fetch
        records = await asyncio.shield(task)
        return list(records)

    async def load_historical_data(
        self, year: int, month: int, location: Optional[Location] = None
    ) -> list:
        """Daily records for a whole calendar month (month is 1-12)."""
        if not 1 <= month <= 12:
            raise ValueError(f"month must be between 1 and 12, got {month}")
        last_day = calendar.monthrange(year, month)[1]
        return await self.load(
            location or self.default_location,
            date(year, month, 1),
            date(year, month, last_day),
            DAILY,
        )

    async def load_date_range(
        self, start: date | str, end: date | str, location: Optional[Location] = None
    ) -> list:
        return await self.load(location or self.default_location, start, end, DAILY)

    async def load_hourly_date_range(
        self, start: date | str, end: date | str, location: Optional[Location] = None
    ) -> list:
        return await self.load(location or self.default_location, start, end, HOURLY)

    def clear_cache(self) -> None:
        """Drop every cached dataset (call this when the location changes)."""
        logger.info("Clearing %d cached dataset(s)", len(self._cache))
        self._cache.clear()

    def source_of(
        self,
        location: Location,
        start: date | str,
        end: date | str,
        kind: str = DAILY,
    ) -> Optional[str]:
        """Provenance tag of a cached dataset, or None when it is not cached."""
        key = cache_key(kind, parse_iso_date(start), parse_iso_date(end), location)
        return self._cache.source(key)

    def cache_stats(self) -> dict:
        stats = self._cache.stats()
        stats["in_flight"] = len(self._pending)
        return stats

    # ── resolution ───────────────────────────────────────────

    def _forget(self, key: str, task: asyncio.Task) -> None:
        if self._pending.get(key) is task:
            del self._pending[key]

    async def _fetch(
        self, source: DataSource, kind: str, location: Location, start: date, end: date
    ) -> list:
        fetch = source.fetch_hourly if kind == HOURLY else source.fetch_daily
        try:
            return await asyncio.wait_for(fetch(location, start, end), timeout=self.source_timeout)
        except asyncio.TimeoutError:
            logger.warning("%s %s fetch timed out after %.1fs", source.name, kind, self.source_timeout)
        except Exception as e:
            logger.warning("%s %s fetch failed: %s", source.name, kind, e)
        return []

    async def _resolve(
        self, key: str, kind: str, location: Location, start: date, end: date
    ) -> list:
        for source in self.sources:
            records = await self._fetch(source, kind, location, start, end)
            if records:
                logger.info("Loaded %d %s record(s) from %s", len(records), kind, source.name)
                self._cache.set(key, records, source=source.name)
                return records
            logger.info("No %s data from %s, trying next source", kind, source.name)

        if kind == HOURLY:
            logger.warning("No hourly data for %s to %s, deriving it from daily data", start, end)
            daily = await self.load(location, start, end, DAILY)
            records = pseudo_hourly_from_daily(daily)
            self._cache.set(key, records, source=DAILY_FALLBACK)
            return records

        logger.warning("All sources failed for %s to %s, using synthetic data", start, end)
        records = await self.synthetic.fetch_daily(location, start, end)
        self._cache.set(key, records, source=self.synthetic.name)
        return records
