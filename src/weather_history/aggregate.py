# Project: weather-history
# Owner: GreenUnicorn
"""
aggregate.py — Re-bucket raw daily/hourly records into coarser time units.

The aggregator reduces each bucket to one AggregatedBucket:
    temp_avg, wind_speed, humidity  → mean of non-null member values
    temp_min                        → min of non-null member values
    temp_max                        → max of non-null member values
    precipitation, sunshine_hours   → sum of non-null member values
A metric with no non-null member value is None (never 0 or NaN).

The selector picks the coarsest unit that keeps a chart renderable.
"""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import date, datetime
from typing import Any, Optional

from weather_history.granularity import (
    Granularity,
    UnknownGranularityError,
    bucket_key,
    parse_granularity,
)
from weather_history.records import record_moment

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AggregatedBucket:
    """One granularity bucket. `date` is the first member's date."""

    date: date
    key: str
    temp_avg: Optional[float]
    temp_min: Optional[float]
    temp_max: Optional[float]
    precipitation: Optional[float]
    wind_speed: Optional[float]
    humidity: Optional[float]
    sunshine_hours: Optional[float]
    sample_count: int
    start: datetime


def _present(values: list[Optional[float]]) -> list[float]:
    return [v for v in values if v is not None]


def _mean(values: list[Optional[float]]) -> Optional[float]:
    present = _present(values)
    if not present:
        return None
    return sum(present) / len(present)


def _sum(values: list[Optional[float]]) -> Optional[float]:
    present = _present(values)
    if not present:
        return None
    return sum(present)


def _min(values: list[Optional[float]]) -> Optional[float]:
    present = _present(values)
    return min(present) if present else None


def _max(values: list[Optional[float]]) -> Optional[float]:
    present = _present(values)
    return max(present) if present else None


def _reduce(key: str, members: list[Any]) -> AggregatedBucket:
    def column(name: str) -> list[Optional[float]]:
        return [getattr(m, name, None) for m in members]

    first = members[0]
    return AggregatedBucket(
        date=first.date,
        key=key,
        temp_avg=_mean(column("temp_avg")),
        temp_min=_min(column("temp_min")),
        temp_max=_max(column("temp_max")),
        precipitation=_sum(column("precipitation")),
        wind_speed=_mean(column("wind_speed")),
        humidity=_mean(column("humidity")),
        sunshine_hours=_sum(column("sunshine_hours")),
        sample_count=len(members),
        start=record_moment(first),
    )


def aggregate_by_granularity(
    records: Sequence[Any],
    granularity: Granularity | str,
    strict: bool = False,
) -> list:
    """Group records into `granularity` buckets and reduce each bucket.

    Args:
        records: DailyRecord or HourlyRecord instances, in any order.
        granularity: Target unit. 'day' returns `records` itself unchanged.
        strict: Raise on an unknown granularity instead of passing through.

    Returns:
        AggregatedBucket list sorted by the first member's timestamp, or the
        input list for 'day' (and for an unknown unit when not strict).

    Raises:
        UnknownGranularityError: Only when strict=True.
    """
    if not records:
        return []

    try:
        g = parse_granularity(granularity)
    except UnknownGranularityError:
        if strict:
            raise
        logger.warning(
            "Unknown granularity %r — returning %d records unaggregated",
            granularity, len(records),
        )
        return records

    if g is Granularity.DAY:
        return records

    groups: dict[str, list[Any]] = {}
    for record in records:
        groups.setdefault(bucket_key(g, record_moment(record)), []).append(record)

    buckets = [_reduce(key, members) for key, members in groups.items()]
    buckets.sort(key=lambda b: (b.start, b.key))

    logger.debug(
        "Aggregated %d records into %d %s buckets", len(records), len(buckets), g.value
    )
    return buckets


def select_granularity(total_raw_points: int) -> Granularity:
    """Coarsest unit that keeps a chart to roughly 10-120 points."""
    if total_raw_points > 10_000:
        return Granularity.DECADE
    if total_raw_points > 2_000:
        return Granularity.YEAR
    if total_raw_points > 730:
        return Granularity.MONTH
    if total_raw_points >= 180:
        return Granularity.WEEK
    return Granularity.DAY


def aggregate_for_display(
    records: Sequence[Any],
    granularity: Granularity | str | None = None,
) -> tuple[Granularity | str, list]:
    """Reduce records for a chart.

    With an explicit granularity the selector is bypassed; otherwise it picks
    one from the number of raw points. A known override is returned as a
    Granularity; an unknown name is handed to the aggregator unchanged.
    """
    if granularity is None:
        chosen = select_granularity(len(records))
    else:
        try:
            chosen = parse_granularity(granularity)
        except UnknownGranularityError:
            chosen = granularity
    return chosen, aggregate_by_granularity(records, chosen)
