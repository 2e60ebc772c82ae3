# Project: weather-history
# Owner: GreenUnicorn
"""
stats.py — Descriptive statistics over daily weather records.

calculate_stats() runs one pass with running sum/min/max accumulators.
calculate_stats_async() feeds the same accumulator in slices of CHUNK_SIZE
records and yields to the event loop between slices, so a large dataset does
not block other tasks. Both produce equal StatisticsSummary values.
"""

from __future__ import annotations

import asyncio
import logging
import math
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import Any, Optional

logger = logging.getLogger(__name__)

CHUNK_SIZE = 100
LARGE_DATASET_HINT = 365
TREND_DEAD_ZONE = 0.5

# Day-type thresholds (°C, mm, km/h, %, hours)
FROST_BELOW = 0.0
ICE_BELOW = 0.0
TROPICAL_NIGHT_MIN = 20.0
HOT_DAY_MAX = 30.0
SUMMER_DAY_MAX = 25.0
RAIN_DAY_MM = 0.1
HEAVY_RAIN_MM = 10.0
STORM_KMH = 62.0
WINDY_KMH = 39.0
CALM_BELOW_KMH = 12.0
HUMID_PCT = 85.0
CLOUDY_BELOW_H = 1.0
SUNNY_H = 8.0

Scheduler = Callable[[], Awaitable[None]]
ProgressCallback = Callable[[int], None]


async def yield_to_scheduler() -> None:
    """Hand control back to the event loop for one iteration."""
    await asyncio.sleep(0)


# ─────────────────────────────────────────────────────────────
# Value objects
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Trend:
    percent_change: Optional[float] = None
    direction: str = "stable"
    raw_delta: Optional[float] = None


@dataclass(frozen=True)
class WeekStats:
    avg_temp: Optional[float]
    total_precip: Optional[float]
    avg_wind: Optional[float]
    total_sunshine: Optional[float]
    avg_humidity: Optional[float]
    days: int


@dataclass(frozen=True)
class WeekComparison:
    current_week: Optional[WeekStats] = None
    previous_week: Optional[WeekStats] = None
    days_in_current_week: int = 0
    days_in_previous_week: int = 0


# trend name → WeekStats attribute
TREND_METRICS = {
    "temperature": "avg_temp",
    "precipitation": "total_precip",
    "wind": "avg_wind",
    "sunshine": "total_sunshine",
    "humidity": "avg_humidity",
}


def _stable_trends() -> dict[str, Trend]:
    return {name: Trend() for name in TREND_METRICS}


@dataclass(frozen=True)
class StatisticsSummary:
    """Aggregate statistics for one dataset. Aggregates with no samples are None."""

    avg_temp: Optional[float] = None
    max_temp: Optional[float] = None
    min_temp: Optional[float] = None
    temp_range: Optional[float] = None
    frost_days: int = 0
    ice_days: int = 0
    tropical_nights: int = 0
    hot_days: int = 0
    summer_days: int = 0
    total_precip: Optional[float] = None
    avg_precip: Optional[float] = None
    max_precip: Optional[float] = None
    rain_days: int = 0
    heavy_rain_days: int = 0
    dry_days: int = 0
    avg_wind: Optional[float] = None
    max_wind: Optional[float] = None
    storm_days: int = 0
    windy_days: int = 0
    calm_days: int = 0
    avg_humidity: Optional[float] = None
    max_humidity: Optional[float] = None
    min_humidity: Optional[float] = None
    humid_days: int = 0
    total_sunshine: Optional[float] = None
    avg_sunshine: Optional[float] = None
    max_sunshine: Optional[float] = None
    cloudy_days: int = 0
    sunny_days: int = 0
    total_days: int = 0
    data_quality: float = 0.0
    trends: dict[str, Trend] = field(default_factory=_stable_trends)
    week_comparison: WeekComparison = field(default_factory=WeekComparison)


# ─────────────────────────────────────────────────────────────
# Accumulation
# ─────────────────────────────────────────────────────────────

class _Metric:
    """Running sum/count/min/max over non-null values."""

    __slots__ = ("total", "count", "low", "high")

    def __init__(self) -> None:
        self.total = 0.0
        self.count = 0
        self.low: Optional[float] = None
        self.high: Optional[float] = None

    def add(self, value: Optional[float]) -> bool:
        if value is None or (isinstance(value, float) and math.isnan(value)):
            return False
        self.total += value
        self.count += 1
        if self.low is None or value < self.low:
            self.low = value
        if self.high is None or value > self.high:
            self.high = value
        return True

    @property
    def mean(self) -> Optional[float]:
        return self.total / self.count if self.count else None

    @property
    def sum(self) -> Optional[float]:
        return self.total if self.count else None


class StatsAccumulator:
    """Single-pass accumulator shared by the sync and chunked code paths."""

    def __init__(self) -> None:
        self.temp_avg = _Metric()
        self.temp_min = _Metric()
        self.temp_max = _Metric()
        self.precipitation = _Metric()
        self.wind_speed = _Metric()
        self.humidity = _Metric()
        self.sunshine = _Metric()
        self.records = 0
        self.counts = dict.fromkeys(
            (
                "frost_days", "ice_days", "tropical_nights", "hot_days", "summer_days",
                "rain_days", "heavy_rain_days", "dry_days",
                "storm_days", "windy_days", "calm_days",
                "humid_days", "cloudy_days", "sunny_days",
            ),
            0,
        )

    def add(self, record: Any) -> None:
        self.records += 1
        c = self.counts

        self.temp_avg.add(getattr(record, "temp_avg", None))

        tmin = getattr(record, "temp_min", None)
        if self.temp_min.add(tmin):
            if tmin < FROST_BELOW:
                c["frost_days"] += 1
            if tmin >= TROPICAL_NIGHT_MIN:
                c["tropical_nights"] += 1

        tmax = getattr(record, "temp_max", None)
        if self.temp_max.add(tmax):
            if tmax < ICE_BELOW:
                c["ice_days"] += 1
            if tmax >= HOT_DAY_MAX:
                c["hot_days"] += 1
            if tmax >= SUMMER_DAY_MAX:
                c["summer_days"] += 1

        precip = getattr(record, "precipitation", None)
        if self.precipitation.add(precip):
            if precip >= RAIN_DAY_MM:
                c["rain_days"] += 1
            else:
                c["dry_days"] += 1
            if precip >= HEAVY_RAIN_MM:
                c["heavy_rain_days"] += 1
        else:
            c["dry_days"] += 1

        wind = getattr(record, "wind_speed", None)
        if self.wind_speed.add(wind):
            if wind >= STORM_KMH:
                c["storm_days"] += 1
            if wind >= WINDY_KMH:
                c["windy_days"] += 1
            if wind < CALM_BELOW_KMH:
                c["calm_days"] += 1

        humidity = getattr(record, "humidity", None)
        if self.humidity.add(humidity) and humidity >= HUMID_PCT:
            c["humid_days"] += 1

        sunshine = getattr(record, "sunshine_hours", None)
        if self.sunshine.add(sunshine):
            if sunshine < CLOUDY_BELOW_H:
                c["cloudy_days"] += 1
            if sunshine >= SUNNY_H:
                c["sunny_days"] += 1

    def summary(
        self,
        trends: dict[str, Trend],
        week_comparison: WeekComparison,
    ) -> StatisticsSummary:
        high, low = self.temp_max.high, self.temp_min.low
        return StatisticsSummary(
            avg_temp=self.temp_avg.mean,
            max_temp=high,
            min_temp=low,
            temp_range=high - low if high is not None and low is not None else None,
            total_precip=self.precipitation.sum,
            avg_precip=self.precipitation.mean,
            max_precip=self.precipitation.high,
            avg_wind=self.wind_speed.mean,
            max_wind=self.wind_speed.high,
            avg_humidity=self.humidity.mean,
            max_humidity=self.humidity.high,
            min_humidity=self.humidity.low,
            total_sunshine=self.sunshine.sum,
            avg_sunshine=self.sunshine.mean,
            max_sunshine=self.sunshine.high,
            total_days=self.records,
            data_quality=self.temp_avg.count / self.records if self.records else 0.0,
            trends=trends,
            week_comparison=week_comparison,
            **self.counts,
        )


# ─────────────────────────────────────────────────────────────
# Week-over-week trends
# ─────────────────────────────────────────────────────────────

def split_by_week(records: Sequence[Any]) -> tuple[list, list]:
    """Split into (current, previous) 7-day windows ending on the latest date.

    Input order is preserved inside each window.
    """
    if not records:
        return [], []
    latest: date = max(r.date for r in records)
    current_start = latest - timedelta(days=6)
    previous_start = latest - timedelta(days=13)

    current, previous = [], []
    for r in records:
        if r.date >= current_start:
            current.append(r)
        elif r.date >= previous_start:
            previous.append(r)
    return current, previous


def week_stats(records: Sequence[Any]) -> Optional[WeekStats]:
    if not records:
        return None
    temp, precip, wind, sun, hum = _Metric(), _Metric(), _Metric(), _Metric(), _Metric()
    for r in records:
        temp.add(getattr(r, "temp_avg", None))
        precip.add(getattr(r, "precipitation", None))
        wind.add(getattr(r, "wind_speed", None))
        sun.add(getattr(r, "sunshine_hours", None))
        hum.add(getattr(r, "humidity", None))
    return WeekStats(
        avg_temp=temp.mean,
        total_precip=precip.sum,
        avg_wind=wind.mean,
        total_sunshine=sun.sum,
        avg_humidity=hum.mean,
        days=len(records),
    )


def calculate_trend(current: Optional[float], previous: Optional[float]) -> Trend:
    """Week-over-week change with a ±0.5 dead zone.

    A delta of exactly ±0.5 is 'stable'. percent_change is None when the
    previous value is 0.
    """
    if current is None or previous is None:
        return Trend()
    delta = current - previous
    if delta > TREND_DEAD_ZONE:
        direction = "up"
    elif delta < -TREND_DEAD_ZONE:
        direction = "down"
    else:
        direction = "stable"
    percent = round(delta / abs(previous) * 100, 1) if previous != 0 else None
    return Trend(percent_change=percent, direction=direction, raw_delta=round(delta, 2))


def _trends(records: Sequence[Any]) -> tuple[dict[str, Trend], WeekComparison]:
    current, previous = split_by_week(records)
    current_stats = week_stats(current)
    previous_stats = week_stats(previous)
    comparison = WeekComparison(
        current_week=current_stats,
        previous_week=previous_stats,
        days_in_current_week=len(current),
        days_in_previous_week=len(previous),
    )
    if current_stats is None or previous_stats is None:
        return _stable_trends(), comparison
    trends = {
        name: calculate_trend(getattr(current_stats, attr), getattr(previous_stats, attr))
        for name, attr in TREND_METRICS.items()
    }
    return trends, comparison


# ─────────────────────────────────────────────────────────────
# Public entry points
# ─────────────────────────────────────────────────────────────

def calculate_stats(records: Sequence[Any]) -> StatisticsSummary:
    """Compute a StatisticsSummary in one synchronous pass."""
    if not records:
        return StatisticsSummary()
    if len(records) > LARGE_DATASET_HINT:
        logger.debug(
            "calculate_stats on %d records; calculate_stats_async keeps the loop responsive",
            len(records),
        )
    acc = StatsAccumulator()
    for record in records:
        acc.add(record)
    trends, comparison = _trends(records)
    return acc.summary(trends, comparison)


async def calculate_stats_async(
    records: Sequence[Any],
    on_progress: Optional[ProgressCallback] = None,
    scheduler: Scheduler = yield_to_scheduler,
    chunk_size: int = CHUNK_SIZE,
) -> StatisticsSummary:
    """Compute the same summary as calculate_stats, yielding between slices.

    Args:
        records: Daily records.
        on_progress: Called with the percentage (0-100) of slices processed.
        scheduler: Awaited between slices; defaults to one event-loop turn.
        chunk_size: Records per slice. Inputs no larger than this are
            computed directly.
    """
    if not records:
        return StatisticsSummary()
    if len(records) <= chunk_size:
        result = calculate_stats(records)
        if on_progress is not None:
            on_progress(100)
        return result

    acc = StatsAccumulator()
    total_chunks = math.ceil(len(records) / chunk_size)
    for index, start in enumerate(range(0, len(records), chunk_size), start=1):
        for record in records[start:start + chunk_size]:
            acc.add(record)
        if on_progress is not None:
            on_progress(round(index / total_chunks * 100))
        if index < total_chunks:
            await scheduler()

    trends, comparison = _trends(records)
    return acc.summary(trends, comparison)


# ─────────────────────────────────────────────────────────────
# Extremes and comparisons
# ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class Extremes:
    hottest_day: Any = None
    coldest_day: Any = None
    wettest_day: Any = None
    windiest_day: Any = None


def _first_extreme(records: Sequence[Any], attr: str, highest: bool) -> Any:
    best, best_value = None, None
    for r in records:
        value = getattr(r, attr, None)
        if value is None:
            continue
        if best_value is None or (value > best_value if highest else value < best_value):
            best, best_value = r, value
    return best


def find_extremes(records: Sequence[Any]) -> Extremes:
    """Record with max temp_max, min temp_min, max precipitation, max wind_speed.

    Each is searched independently; ties go to the earliest record in input order.
    """
    return Extremes(
        hottest_day=_first_extreme(records, "temp_max", highest=True),
        coldest_day=_first_extreme(records, "temp_min", highest=False),
        wettest_day=_first_extreme(records, "precipitation", highest=True),
        windiest_day=_first_extreme(records, "wind_speed", highest=True),
    )


@dataclass(frozen=True)
class PeriodDifference:
    a: Optional[float]
    b: Optional[float]
    diff: Optional[float]


COMPARED_FIELDS = (
    "avg_temp", "max_temp", "min_temp",
    "total_precip", "rain_days",
    "avg_wind", "max_wind",
    "avg_humidity", "total_sunshine", "sunny_days",
    "frost_days", "hot_days",
)


def compare_periods(a: StatisticsSummary, b: StatisticsSummary) -> dict[str, PeriodDifference]:
    """Per-field a - b for two summaries; diff is None if either side is None."""
    result = {}
    for name in COMPARED_FIELDS:
        va, vb = getattr(a, name), getattr(b, name)
        diff = round(va - vb, 2) if va is not None and vb is not None else None
        result[name] = PeriodDifference(a=va, b=vb, diff=diff)
    return result


# ─────────────────────────────────────────────────────────────
# Terminal report
# ─────────────────────────────────────────────────────────────

_ARROWS = {"up": "↑", "down": "↓", "stable": "→"}


def _fmt(value: Optional[float], unit: str = "", decimals: int = 1) -> str:
    if value is None:
        return "n/a"
    return f"{value:.{decimals}f}{unit}"


def _fmt_trend(trend: Trend) -> str:
    arrow = _ARROWS.get(trend.direction, "→")
    if trend.raw_delta is None:
        return f"{arrow} stable"
    sign = "+" if trend.raw_delta >= 0 else ""
    return f"{arrow} {sign}{trend.raw_delta} vs previous week"


def terminal_summary(
    location_name: str,
    summary: StatisticsSummary,
    extremes: Extremes,
    period: str = "",
) -> str:
    """Return a formatted multi-line terminal summary string."""
    if summary.total_days == 0:
        return f"📍 {location_name} — No historical data available."

    header = f"📍 {location_name} — {summary.total_days}-day statistics"
    if period:
        header += f" ({period})"
    sep = "─" * 62

    def day_of(record: Any, attr: str, unit: str) -> str:
        if record is None:
            return "unknown"
        return f"{_fmt(getattr(record, attr), unit)} on {record.date.day} {record.date:%b %Y}"

    trends = summary.trends
    lines = [
        header,
        sep,
        f"🌡  Average temp:      {_fmt(summary.avg_temp, '°C')}  "
        f"(range: {_fmt(summary.min_temp, '°C')} to {_fmt(summary.max_temp, '°C')})",
        f"    Trend:             {_fmt_trend(trends['temperature'])}",
        f"❄️  Frost / ice days:  {summary.frost_days} / {summary.ice_days}",
        f"🔥  Hot days (≥30°C):  {summary.hot_days}",
        "",
        f"🌧  Precipitation:     {_fmt(summary.total_precip, ' mm')}  ({summary.rain_days} rain days)",
        f"💨  Wind:              avg {_fmt(summary.avg_wind, ' km/h')}, "
        f"max {_fmt(summary.max_wind, ' km/h')}  ({summary.storm_days} storm days)",
        f"☀️  Sunshine:          {_fmt(summary.total_sunshine, ' h')}  ({summary.sunny_days} sunny days)",
        "",
        f"🔥  Hottest day:       {day_of(extremes.hottest_day, 'temp_max', '°C')}",
        f"🥶  Coldest day:       {day_of(extremes.coldest_day, 'temp_min', '°C')}",
        f"🌊  Wettest day:       {day_of(extremes.wettest_day, 'precipitation', ' mm')}",
        f"🌬  Windiest day:      {day_of(extremes.windiest_day, 'wind_speed', ' km/h')}",
        f"📊  Data quality:      {summary.data_quality:.0%}",
        sep,
    ]
    return "\n".join(lines)
