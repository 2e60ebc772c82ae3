# Project: weather-history
# Owner: GreenUnicorn
"""
granularity.py — The seven time units used to bucket records (hour → century).

Each unit has a bucket-key function, short/long label formatters and
data-point guidance for charts. Bucket keys are zero-padded so that plain
string ordering matches chronological ordering.
"""

from __future__ import annotations

import calendar
from collections.abc import Callable
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from enum import Enum


class UnknownGranularityError(ValueError):
    """Raised when a granularity name is not one of the seven supported units."""


class Granularity(str, Enum):
    HOUR = "hour"
    DAY = "day"
    WEEK = "week"
    MONTH = "month"
    YEAR = "year"
    DECADE = "decade"
    CENTURY = "century"

    def __str__(self) -> str:
        return self.value


def parse_granularity(name: "Granularity | str") -> Granularity:
    """Return the Granularity for a name such as 'month' (case-insensitive).

    Raises:
        UnknownGranularityError: If the name is not a supported unit.
    """
    if isinstance(name, Granularity):
        return name
    try:
        return Granularity(str(name).strip().lower())
    except ValueError:
        valid = ", ".join(g.value for g in Granularity)
        raise UnknownGranularityError(
            f"Unknown granularity {name!r}. Expected one of: {valid}"
        ) from None


def _as_datetime(moment: date | datetime) -> datetime:
    if isinstance(moment, datetime):
        return moment
    return datetime(moment.year, moment.month, moment.day)


def iso_week_number(moment: date | datetime) -> int:
    """ISO-8601 calendar week (1-53)."""
    return moment.isocalendar()[1]


def bucket_key(granularity: Granularity | str, moment: date | datetime) -> str:
    """Identity of the bucket `moment` falls into.

    Examples for 2024-01-05 13:20: hour '2024-01-05T13', day '2024-01-05',
    week '2024-W01', month '2024-01', year '2024', decade '2020',
    century '2000'.
    """
    g = parse_granularity(granularity)
    dt = _as_datetime(moment)
    if g is Granularity.HOUR:
        return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}T{dt.hour:02d}"
    if g is Granularity.DAY:
        return f"{dt.year:04d}-{dt.month:02d}-{dt.day:02d}"
    if g is Granularity.WEEK:
        iso_year, iso_week, _ = dt.isocalendar()
        return f"{iso_year:04d}-W{iso_week:02d}"
    if g is Granularity.MONTH:
        return f"{dt.year:04d}-{dt.month:02d}"
    if g is Granularity.YEAR:
        return f"{dt.year:04d}"
    if g is Granularity.DECADE:
        return f"{dt.year // 10 * 10:04d}"
    return f"{dt.year // 100 * 100:04d}"


# ─────────────────────────────────────────────────────────────
# Stepping
# ─────────────────────────────────────────────────────────────

def _add_months(dt: datetime, months: int) -> datetime:
    index = dt.year * 12 + (dt.month - 1) + months
    year, month = divmod(index, 12)
    last_day = calendar.monthrange(year, month + 1)[1]
    return dt.replace(year=year, month=month + 1, day=min(dt.day, last_day))


def _step_hours(dt: datetime, n: int) -> datetime:
    return dt + timedelta(hours=n)


def _step_days(dt: datetime, n: int) -> datetime:
    return dt + timedelta(days=n)


def _step_weeks(dt: datetime, n: int) -> datetime:
    return dt + timedelta(weeks=n)


def _step_months(dt: datetime, n: int) -> datetime:
    return _add_months(dt, n)


def _step_years(dt: datetime, n: int) -> datetime:
    return _add_months(dt, 12 * n)


def _step_decades(dt: datetime, n: int) -> datetime:
    return _add_months(dt, 120 * n)


def _step_centuries(dt: datetime, n: int) -> datetime:
    return _add_months(dt, 1200 * n)


# ─────────────────────────────────────────────────────────────
# Labels
# ─────────────────────────────────────────────────────────────

def _ordinal(n: int) -> str:
    if 10 <= n % 100 <= 20:
        suffix = "th"
    else:
        suffix = {1: "st", 2: "nd", 3: "rd"}.get(n % 10, "th")
    return f"{n}{suffix}"


def _century_of(year: int) -> int:
    # Same boundary as bucket_key: 2000-2099 is the 21st century
    return year // 100 + 1


def _decade_of(year: int) -> int:
    return year // 10 * 10


@dataclass(frozen=True)
class GranularitySpec:
    label: str
    singular: str
    unit: str
    min_data_points: int
    max_data_points: int
    format_label: Callable[[datetime], str]
    format_full: Callable[[datetime], str]
    step: Callable[[datetime, int], datetime]


GRANULARITY_CONFIG: dict[Granularity, GranularitySpec] = {
    Granularity.HOUR: GranularitySpec(
        label="Hours", singular="Hour", unit="h",
        min_data_points=24, max_data_points=168,
        format_label=lambda dt: dt.strftime("%H:%M"),
        format_full=lambda dt: dt.strftime("%d %b, %H:%M"),
        step=_step_hours,
    ),
    Granularity.DAY: GranularitySpec(
        label="Days", singular="Day", unit="d",
        min_data_points=7, max_data_points=365,
        format_label=lambda dt: dt.strftime("%d %b"),
        format_full=lambda dt: dt.strftime("%A, %d %B %Y"),
        step=_step_days,
    ),
    Granularity.WEEK: GranularitySpec(
        label="Weeks", singular="Week", unit="W",
        min_data_points=4, max_data_points=52,
        format_label=lambda dt: f"W {iso_week_number(dt)}",
        format_full=lambda dt: f"W {iso_week_number(dt)}, {dt.isocalendar()[0]}",
        step=_step_weeks,
    ),
    Granularity.MONTH: GranularitySpec(
        label="Months", singular="Month", unit="M",
        min_data_points=3, max_data_points=120,
        format_label=lambda dt: dt.strftime("%b %y"),
        format_full=lambda dt: dt.strftime("%B %Y"),
        step=_step_months,
    ),
    Granularity.YEAR: GranularitySpec(
        label="Years", singular="Year", unit="y",
        min_data_points=2, max_data_points=100,
        format_label=lambda dt: str(dt.year),
        format_full=lambda dt: f"Year {dt.year}",
        step=_step_years,
    ),
    Granularity.DECADE: GranularitySpec(
        label="Decades", singular="Decade", unit="dec",
        min_data_points=2, max_data_points=20,
        format_label=lambda dt: f"{_decade_of(dt.year)}s",
        format_full=lambda dt: f"{_decade_of(dt.year)}–{_decade_of(dt.year) + 9}",
        step=_step_decades,
    ),
    Granularity.CENTURY: GranularitySpec(
        label="Centuries", singular="Century", unit="c",
        min_data_points=2, max_data_points=10,
        format_label=lambda dt: f"{_ordinal(_century_of(dt.year))} c.",
        format_full=lambda dt: (
            f"{_ordinal(_century_of(dt.year))} century "
            f"({(_century_of(dt.year) - 1) * 100}–{(_century_of(dt.year) - 1) * 100 + 99})"
        ),
        step=_step_centuries,
    ),
}


def format_label(granularity: Granularity | str, moment: date | datetime) -> str:
    return GRANULARITY_CONFIG[parse_granularity(granularity)].format_label(_as_datetime(moment))


def format_full(granularity: Granularity | str, moment: date | datetime) -> str:
    return GRANULARITY_CONFIG[parse_granularity(granularity)].format_full(_as_datetime(moment))


def step(granularity: Granularity | str, moment: date | datetime, n: int = 1) -> datetime:
    """Move `moment` forward (or back, for negative n) by n units."""
    return GRANULARITY_CONFIG[parse_granularity(granularity)].step(_as_datetime(moment), n)


# ─────────────────────────────────────────────────────────────
# Range helpers
# ─────────────────────────────────────────────────────────────

def detect_optimal_granularity(start: date | datetime, end: date | datetime) -> Granularity:
    """Pick a unit from the length of the requested span."""
    span_days = (_as_datetime(end) - _as_datetime(start)).total_seconds() / 86400
    if span_days <= 7:
        return Granularity.HOUR
    if span_days <= 31:
        return Granularity.DAY
    if span_days <= 90:
        return Granularity.WEEK
    if span_days <= 730:
        return Granularity.MONTH
    if span_days <= 3650:
        return Granularity.YEAR
    if span_days <= 36500:
        return Granularity.DECADE
    return Granularity.CENTURY


def time_range_label(
    start: date | datetime,
    end: date | datetime,
    granularity: Granularity | str,
) -> str:
    """Human-readable label for a range, e.g. '05 Jan – 12 Jan' or 'Year 2020 – Year 2024'."""
    g = parse_granularity(granularity)
    spec = GRANULARITY_CONFIG[g]
    s, e = _as_datetime(start), _as_datetime(end)

    if g in (Granularity.HOUR, Granularity.DAY):
        if s.date() == e.date():
            return spec.format_full(s)
        return f"{spec.format_label(s)} – {spec.format_label(e)}"
    if g in (Granularity.WEEK, Granularity.MONTH) and s.year == e.year:
        return f"{spec.format_label(s)} – {spec.format_label(e)}"
    return f"{spec.format_full(s)} – {spec.format_full(e)}"


@dataclass(frozen=True)
class TimeRangePreset:
    id: str
    label: str
    granularity: Granularity
    start: datetime
    end: datetime


def time_range_presets(now: datetime | None = None) -> list[TimeRangePreset]:
    """Quick-pick ranges relative to `now` (defaults to the current time).

    Rolling ranges end on the last full day before `now`: the archive lags
    behind today.
    """
    now = now or datetime.now()
    today = now.replace(hour=0, minute=0, second=0, microsecond=0)
    yesterday = today - timedelta(days=1)
    first_of_month = today.replace(day=1)
    last_month_end = first_of_month - timedelta(days=1)
    last_month_start = last_month_end.replace(day=1)

    return [
        TimeRangePreset("last-24h", "Last 24 hours", Granularity.HOUR,
                        yesterday, today - timedelta(hours=1)),
        TimeRangePreset("last-7d", "Last 7 days", Granularity.DAY,
                        yesterday - timedelta(days=6), yesterday),
        TimeRangePreset("last-month", "Last month", Granularity.DAY,
                        last_month_start, last_month_end),
        TimeRangePreset("last-year", "Last year", Granularity.MONTH,
                        datetime(now.year - 1, 1, 1), datetime(now.year - 1, 12, 31)),
        TimeRangePreset("last-decade", "Last 10 years", Granularity.YEAR,
                        datetime(now.year - 10, 1, 1), yesterday),
    ]
