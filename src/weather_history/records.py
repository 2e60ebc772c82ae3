# Project: weather-history
# Owner: GreenUnicorn
"""
records.py — Normalised daily/hourly weather records and location.

Collaborators hand us dicts in a handful of shapes (the archive parser, the
primary data service, older cached payloads). Everything is coerced into the
frozen dataclasses below before it reaches the cache or the statistics code.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping
from dataclasses import dataclass, fields
from datetime import date, datetime, time
from typing import Any, Optional


@dataclass(frozen=True)
class Location:
    """A point on the map. Cache keys use 4 decimals (~11 m)."""

    latitude: float
    longitude: float
    name: str = ""

    @property
    def cache_token(self) -> str:
        return f"{self.latitude:.4f}:{self.longitude:.4f}"


@dataclass(frozen=True)
class DailyRecord:
    """One calendar day at a location. Any metric may be None (no measurement).

    Units: °C, mm, km/h, %, hours of sunshine.
    """

    date: date
    temp_avg: Optional[float] = None
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    precipitation: Optional[float] = None
    wind_speed: Optional[float] = None
    humidity: Optional[float] = None
    sunshine_hours: Optional[float] = None
    weather_code: Optional[int] = None


@dataclass(frozen=True)
class HourlyRecord:
    """One hour at a location.

    is_synthetic_from_daily marks a record derived from a daily value (placed at
    noon) because no real hourly data was available.
    """

    date: date
    timestamp: datetime
    hour: int
    temp_avg: Optional[float] = None
    temp_min: Optional[float] = None
    temp_max: Optional[float] = None
    precipitation: Optional[float] = None
    wind_speed: Optional[float] = None
    humidity: Optional[float] = None
    sunshine_hours: Optional[float] = None
    weather_code: Optional[int] = None
    is_synthetic_from_daily: bool = False


METRIC_FIELDS = (
    "temp_avg",
    "temp_min",
    "temp_max",
    "precipitation",
    "wind_speed",
    "humidity",
    "sunshine_hours",
)

# Alternative key names seen in collaborator payloads, mapped to our field names.
_ALIASES = {
    "tempAvg": "temp_avg",
    "temp_mean": "temp_avg",
    "temp": "temp_avg",
    "tempMin": "temp_min",
    "tempMax": "temp_max",
    "precip": "precipitation",
    "precipitation_sum": "precipitation",
    "windSpeed": "wind_speed",
    "wind_max": "wind_speed",
    "sunshine": "sunshine_hours",
    "sunshineHours": "sunshine_hours",
    "weatherCode": "weather_code",
    "weathercode": "weather_code",
    "isSyntheticFromDaily": "is_synthetic_from_daily",
    "_dailyFallback": "is_synthetic_from_daily",
}


def _to_float(value: Any) -> Optional[float]:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    if result != result:  # NaN
        return None
    return result


def _to_int(value: Any) -> Optional[int]:
    number = _to_float(value)
    return int(number) if number is not None else None


def _to_date(value: Any) -> Optional[date]:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value:
        try:
            return date.fromisoformat(value[:10])
        except ValueError:
            return None
    return None


def _to_datetime(value: Any) -> Optional[datetime]:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time())
    if isinstance(value, str) and value:
        try:
            return datetime.fromisoformat(value)
        except ValueError:
            return None
    return None


def _canonical(mapping: Mapping[str, Any]) -> dict[str, Any]:
    """Rename aliased keys; a canonical key wins over its alias."""
    result: dict[str, Any] = {}
    for key, value in mapping.items():
        target = _ALIASES.get(key, key)
        if target != key and target in mapping:
            continue
        result[target] = value
    return result


def _metrics(raw: Mapping[str, Any]) -> dict[str, Any]:
    values: dict[str, Any] = {name: _to_float(raw.get(name)) for name in METRIC_FIELDS}
    values["weather_code"] = _to_int(raw.get("weather_code"))
    return values


def coerce_daily(obj: Any) -> Optional[DailyRecord]:
    """Build a DailyRecord from a record or mapping; None if it has no usable date."""
    if isinstance(obj, DailyRecord):
        return obj
    if isinstance(obj, HourlyRecord):
        return DailyRecord(
            date=obj.date,
            **{f.name: getattr(obj, f.name) for f in fields(DailyRecord) if f.name != "date"},
        )
    if not isinstance(obj, Mapping):
        return None
    raw = _canonical(obj)
    day = _to_date(raw.get("date"))
    if day is None:
        return None
    return DailyRecord(date=day, **_metrics(raw))


def coerce_hourly(obj: Any) -> Optional[HourlyRecord]:
    """Build an HourlyRecord; the timestamp may come from `timestamp` or `date` + `hour`."""
    if isinstance(obj, HourlyRecord):
        return obj
    if not isinstance(obj, Mapping):
        return None
    raw = _canonical(obj)
    stamp = _to_datetime(raw.get("timestamp") or raw.get("time"))
    if stamp is None:
        day = _to_date(raw.get("date"))
        hour = _to_int(raw.get("hour"))
        if day is None:
            return None
        stamp = datetime.combine(day, time(hour=hour if hour is not None and 0 <= hour <= 23 else 0))
    return HourlyRecord(
        date=stamp.date(),
        timestamp=stamp,
        hour=stamp.hour,
        is_synthetic_from_daily=bool(raw.get("is_synthetic_from_daily", False)),
        **_metrics(raw),
    )


def normalize_daily(items: Optional[Iterable[Any]]) -> list[DailyRecord]:
    """Coerce a collaborator payload, silently dropping records without a date."""
    if not items:
        return []
    return [r for r in (coerce_daily(item) for item in items) if r is not None]


def normalize_hourly(items: Optional[Iterable[Any]]) -> list[HourlyRecord]:
    if not items:
        return []
    return [r for r in (coerce_hourly(item) for item in items) if r is not None]


def pseudo_hourly_from_daily(records: Iterable[DailyRecord]) -> list[HourlyRecord]:
    """Replicate each daily record as one hourly sample at 12:00."""
    return [
        HourlyRecord(
            date=day.date,
            timestamp=datetime.combine(day.date, time(hour=12)),
            hour=12,
            temp_avg=day.temp_avg,
            temp_min=day.temp_min,
            temp_max=day.temp_max,
            precipitation=day.precipitation,
            wind_speed=day.wind_speed,
            humidity=day.humidity,
            sunshine_hours=day.sunshine_hours,
            weather_code=day.weather_code,
            is_synthetic_from_daily=True,
        )
        for day in records
    ]


def record_moment(record: Any) -> datetime:
    """Timestamp of an hourly record, or midnight of a daily record's date."""
    stamp = getattr(record, "timestamp", None)
    if isinstance(stamp, datetime):
        return stamp
    return datetime.combine(record.date, time())
