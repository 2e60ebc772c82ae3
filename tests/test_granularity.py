# Project: weather-history
# Owner: GreenUnicorn
"""Tests for granularity.py — bucket keys, labels, stepping and range helpers."""

import pytest
from datetime import date, datetime

from weather_history.granularity import (
    GRANULARITY_CONFIG,
    Granularity,
    UnknownGranularityError,
    bucket_key,
    detect_optimal_granularity,
    format_full,
    format_label,
    parse_granularity,
    step,
    time_range_label,
    time_range_presets,
)


MOMENT = datetime(2024, 1, 5, 13, 20)


# ---------------------------------------------------------------------------
# parse_granularity
# ---------------------------------------------------------------------------

def test_parse_is_case_insensitive():
    assert parse_granularity("Month") is Granularity.MONTH
    assert parse_granularity(" WEEK ") is Granularity.WEEK


def test_parse_passes_enum_through():
    assert parse_granularity(Granularity.DECADE) is Granularity.DECADE


def test_parse_unknown_raises_value_error():
    with pytest.raises(UnknownGranularityError, match="fortnight"):
        parse_granularity("fortnight")
    assert issubclass(UnknownGranularityError, ValueError)


def test_every_granularity_is_configured():
    assert set(GRANULARITY_CONFIG) == set(Granularity)


# ---------------------------------------------------------------------------
# bucket_key
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("granularity, expected", [
    ("hour", "2024-01-05T13"),
    ("day", "2024-01-05"),
    ("week", "2024-W01"),
    ("month", "2024-01"),
    ("year", "2024"),
    ("decade", "2020"),
    ("century", "2000"),
])
def test_bucket_keys(granularity, expected):
    assert bucket_key(granularity, MOMENT) == expected


def test_week_key_uses_iso_year_at_year_boundary():
    # 2024-12-30 is a Monday in ISO week 1 of 2025
    assert bucket_key("week", date(2024, 12, 30)) == "2025-W01"
    # 2021-01-01 belongs to ISO week 53 of 2020
    assert bucket_key("week", date(2021, 1, 1)) == "2020-W53"


def test_keys_sort_chronologically():
    days = [date(1999, 12, 31), date(2000, 1, 1), date(2009, 6, 1), date(2010, 1, 1)]
    for g in ("month", "year", "decade", "century"):
        keys = [bucket_key(g, d) for d in days]
        assert keys == sorted(keys)


def test_date_and_midnight_datetime_share_a_key():
    assert bucket_key("hour", date(2024, 1, 5)) == "2024-01-05T00"


# ---------------------------------------------------------------------------
# Labels
# ---------------------------------------------------------------------------

class TestLabels:

    def test_month_labels(self):
        assert format_label("month", MOMENT) == "Jan 24"
        assert format_full("month", MOMENT) == "January 2024"

    def test_week_labels(self):
        assert format_label("week", MOMENT) == "W 1"
        assert format_full("week", MOMENT) == "W 1, 2024"

    def test_decade_labels(self):
        assert format_label("decade", MOMENT) == "2020s"
        assert format_full("decade", MOMENT) == "2020–2029"

    def test_century_labels_match_bucket_boundaries(self):
        assert format_label("century", MOMENT) == "21st c."
        assert format_full("century", datetime(2000, 1, 1)) == "21st century (2000–2099)"
        assert format_label("century", datetime(1999, 12, 31)) == "20th c."

    def test_hour_label(self):
        assert format_label("hour", MOMENT) == "13:20"
        assert format_full("hour", MOMENT) == "05 Jan, 13:20"


# ---------------------------------------------------------------------------
# step
# ---------------------------------------------------------------------------

def test_step_month_clamps_day():
    assert step("month", datetime(2024, 1, 31)) == datetime(2024, 2, 29)


def test_step_backwards():
    assert step("year", datetime(2024, 2, 29), -1) == datetime(2023, 2, 28)


def test_step_week_and_decade():
    assert step("week", date(2024, 1, 1)) == datetime(2024, 1, 8)
    assert step("decade", date(2024, 1, 1)) == datetime(2034, 1, 1)


# ---------------------------------------------------------------------------
# Range helpers
# ---------------------------------------------------------------------------

@pytest.mark.parametrize("days, expected", [
    (7, Granularity.HOUR),
    (8, Granularity.DAY),
    (31, Granularity.DAY),
    (90, Granularity.WEEK),
    (730, Granularity.MONTH),
    (3650, Granularity.YEAR),
    (36500, Granularity.DECADE),
    (36501, Granularity.CENTURY),
])
def test_detect_optimal_granularity(days, expected):
    start = datetime(1900, 1, 1)
    end = datetime.fromordinal(start.toordinal() + days)
    assert detect_optimal_granularity(start, end) is expected


def test_time_range_label_same_day():
    assert time_range_label(date(2024, 1, 5), date(2024, 1, 5), "day") == "Friday, 05 January 2024"


def test_time_range_label_months_in_same_year():
    assert time_range_label(date(2024, 1, 1), date(2024, 6, 1), "month") == "Jan 24 – Jun 24"


def test_time_range_presets():
    now = datetime(2024, 3, 15, 10, 0)
    presets = {p.id: p for p in time_range_presets(now)}

    assert list(presets) == ["last-24h", "last-7d", "last-month", "last-year", "last-decade"]
    assert presets["last-month"].start == datetime(2024, 2, 1)
    assert presets["last-month"].end == datetime(2024, 2, 29)
    assert presets["last-year"].granularity is Granularity.MONTH
    assert presets["last-decade"].start == datetime(2014, 1, 1)


def test_rolling_presets_end_yesterday():
    now = datetime(2024, 3, 15, 10, 0)
    presets = {p.id: p for p in time_range_presets(now)}

    assert presets["last-24h"].start == datetime(2024, 3, 14)
    assert presets["last-24h"].end == datetime(2024, 3, 14, 23)
    assert presets["last-7d"].start.date() == date(2024, 3, 8)
    assert presets["last-7d"].end.date() == date(2024, 3, 14)
    assert presets["last-decade"].end.date() == date(2024, 3, 14)
    assert all(p.end < datetime(2024, 3, 15) for p in presets.values())
