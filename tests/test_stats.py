# Project: weather-history
# Owner: GreenUnicorn
"""Tests for stats.py — summaries, chunked equivalence, trends, extremes."""

import asyncio
import pytest
from datetime import date, timedelta

from weather_history.records import DailyRecord
from weather_history.stats import (
    StatisticsSummary,
    Trend,
    calculate_stats,
    calculate_stats_async,
    calculate_trend,
    compare_periods,
    find_extremes,
    split_by_week,
    terminal_summary,
)


def _series(n: int, start: date = date(2023, 1, 1)) -> list[DailyRecord]:
    """Deterministic varied records with some gaps."""
    records = []
    for i in range(n):
        records.append(DailyRecord(
            date=start + timedelta(days=i),
            temp_avg=None if i % 17 == 0 else (i % 23) - 5 + 0.1 * (i % 7),
            temp_min=(i % 19) - 8.3,
            temp_max=(i % 29) + 0.7,
            precipitation=None if i % 11 == 0 else (i % 13) * 0.9,
            wind_speed=(i % 70) * 1.1,
            humidity=40 + (i % 50),
            sunshine_hours=(i % 13) * 0.8,
        ))
    return records


# ---------------------------------------------------------------------------
# calculate_stats
# ---------------------------------------------------------------------------

class TestCalculateStats:

    def test_empty_input_is_empty_summary(self):
        summary = calculate_stats([])
        assert summary == StatisticsSummary()
        assert summary.total_days == 0
        assert summary.data_quality == 0.0
        assert summary.avg_temp is None

    def test_all_null_dataset(self):
        records = [DailyRecord(date=date(2023, 1, d)) for d in range(1, 6)]
        summary = calculate_stats(records)

        assert summary.total_days == 5
        assert summary.data_quality == 0
        assert summary.avg_temp is None
        assert summary.max_temp is None
        assert summary.total_precip is None
        assert summary.dry_days == 5
        assert summary.rain_days == 0

    def test_metric_semantics(self):
        records = [
            DailyRecord(date=date(2023, 7, 1), temp_avg=20.0, temp_min=-1.0, temp_max=31.0,
                        precipitation=0.1, wind_speed=62.0, sunshine_hours=8.0, humidity=90.0),
            DailyRecord(date=date(2023, 7, 2), temp_avg=10.0, temp_min=21.0, temp_max=-0.5,
                        precipitation=0.0, wind_speed=5.0, sunshine_hours=0.5, humidity=50.0),
            DailyRecord(date=date(2023, 7, 3), temp_avg=None, temp_min=5.0, temp_max=25.0,
                        precipitation=12.0, wind_speed=40.0, sunshine_hours=None),
        ]
        summary = calculate_stats(records)

        assert summary.avg_temp == pytest.approx(15.0)
        assert summary.max_temp == 31.0
        assert summary.min_temp == -1.0
        assert summary.temp_range == pytest.approx(32.0)
        assert summary.frost_days == 1
        assert summary.ice_days == 1
        assert summary.tropical_nights == 1
        assert summary.hot_days == 1
        assert summary.summer_days == 2
        assert summary.rain_days == 2
        assert summary.heavy_rain_days == 1
        assert summary.dry_days == 1
        assert summary.total_precip == pytest.approx(12.1)
        assert summary.max_precip == 12.0
        assert summary.storm_days == 1
        assert summary.windy_days == 2
        assert summary.calm_days == 1
        assert summary.humid_days == 1
        assert summary.sunny_days == 1
        assert summary.cloudy_days == 1
        assert summary.total_sunshine == pytest.approx(8.5)
        assert summary.data_quality == pytest.approx(2 / 3)
        assert summary.total_days == 3


# ---------------------------------------------------------------------------
# calculate_stats_async
# ---------------------------------------------------------------------------

class TestCalculateStatsAsync:

    @pytest.mark.parametrize("n", [0, 1, 99, 100, 101, 365, 1234])
    def test_equals_sync_result(self, n):
        records = _series(n)
        assert asyncio.run(calculate_stats_async(records)) == calculate_stats(records)

    def test_reports_progress_per_chunk(self):
        progress = []
        asyncio.run(calculate_stats_async(_series(250), on_progress=progress.append))
        assert progress == [33, 67, 100]

    def test_small_input_reports_100_once(self):
        progress = []
        asyncio.run(calculate_stats_async(_series(10), on_progress=progress.append))
        assert progress == [100]

    def test_yields_between_chunks_only(self):
        calls = []

        async def scheduler():
            calls.append(1)

        asyncio.run(calculate_stats_async(_series(350), scheduler=scheduler))
        # 4 chunks → 3 yields
        assert len(calls) == 3

    def test_custom_chunk_size(self):
        records = _series(50)
        progress = []
        result = asyncio.run(calculate_stats_async(records, on_progress=progress.append, chunk_size=10))
        assert result == calculate_stats(records)
        assert progress == [20, 40, 60, 80, 100]

    def test_other_tasks_run_while_computing(self):
        order = []

        async def other():
            order.append("other")

        async def main():
            task = asyncio.create_task(other())
            await calculate_stats_async(_series(500))
            order.append("stats")
            await task

        asyncio.run(main())
        assert order == ["other", "stats"]


# ---------------------------------------------------------------------------
# Trends
# ---------------------------------------------------------------------------

class TestTrends:

    def test_dead_zone_edge_is_stable(self):
        assert calculate_trend(10.5, 10.0).direction == "stable"
        assert calculate_trend(9.5, 10.0).direction == "stable"

    def test_beyond_dead_zone(self):
        up = calculate_trend(10.6, 10.0)
        down = calculate_trend(9.0, 10.0)
        assert up.direction == "up"
        assert up.raw_delta == pytest.approx(0.6)
        assert up.percent_change == pytest.approx(6.0)
        assert down.direction == "down"
        assert down.percent_change == pytest.approx(-10.0)

    def test_zero_previous_has_no_percent(self):
        trend = calculate_trend(3.0, 0.0)
        assert trend.percent_change is None
        assert trend.direction == "up"
        assert trend.raw_delta == 3.0

    def test_missing_value_is_stable_null(self):
        assert calculate_trend(None, 1.0) == Trend()

    def test_split_by_week(self):
        records = _series(20)
        current, previous = split_by_week(records)
        assert [r.date for r in current] == [date(2023, 1, 14) + timedelta(days=i) for i in range(7)]
        assert [r.date for r in previous] == [date(2023, 1, 7) + timedelta(days=i) for i in range(7)]

    def test_single_week_gives_stable_trends(self):
        summary = calculate_stats(_series(5))
        assert set(summary.trends) == {"temperature", "precipitation", "wind", "sunshine", "humidity"}
        assert all(t == Trend() for t in summary.trends.values())
        assert summary.week_comparison.days_in_previous_week == 0

    def test_week_over_week_temperature_trend(self):
        start = date(2023, 6, 1)
        records = [DailyRecord(date=start + timedelta(days=i), temp_avg=10.0) for i in range(7)]
        records += [DailyRecord(date=start + timedelta(days=7 + i), temp_avg=12.0) for i in range(7)]
        trend = calculate_stats(records).trends["temperature"]
        assert trend.direction == "up"
        assert trend.raw_delta == 2.0
        assert trend.percent_change == 20.0

    def test_exact_half_degree_change_is_stable(self):
        start = date(2023, 6, 1)
        records = [DailyRecord(date=start + timedelta(days=i), temp_avg=10.0) for i in range(7)]
        records += [DailyRecord(date=start + timedelta(days=7 + i), temp_avg=10.5) for i in range(7)]
        assert calculate_stats(records).trends["temperature"].direction == "stable"


# ---------------------------------------------------------------------------
# Extremes
# ---------------------------------------------------------------------------

class TestExtremes:

    def test_first_occurrence_wins_ties(self):
        first = DailyRecord(date=date(2023, 8, 2), temp_max=35.0)
        second = DailyRecord(date=date(2023, 8, 1), temp_max=35.0)
        assert find_extremes([first, second]).hottest_day is first

    def test_each_extreme_is_independent(self):
        records = [
            DailyRecord(date=date(2023, 1, 1), temp_max=5.0, temp_min=-10.0, precipitation=None, wind_speed=80.0),
            DailyRecord(date=date(2023, 1, 2), temp_max=9.0, temp_min=1.0, precipitation=20.0, wind_speed=None),
        ]
        extremes = find_extremes(records)
        assert extremes.hottest_day is records[1]
        assert extremes.coldest_day is records[0]
        assert extremes.wettest_day is records[1]
        assert extremes.windiest_day is records[0]

    def test_empty_input(self):
        extremes = find_extremes([])
        assert extremes.hottest_day is None
        assert extremes.windiest_day is None


# ---------------------------------------------------------------------------
# Comparison and report
# ---------------------------------------------------------------------------

def test_compare_periods():
    a = StatisticsSummary(avg_temp=12.0, total_precip=None, rain_days=4)
    b = StatisticsSummary(avg_temp=10.5, total_precip=30.0, rain_days=6)
    diff = compare_periods(a, b)
    assert diff["avg_temp"].diff == pytest.approx(1.5)
    assert diff["total_precip"].diff is None
    assert diff["rain_days"].diff == -2


def test_terminal_summary_no_data():
    text = terminal_summary("Berlin", StatisticsSummary(), find_extremes([]))
    assert "No historical data available" in text


def test_terminal_summary_contents():
    records = _series(30)
    summary = calculate_stats(records)
    text = terminal_summary("Berlin", summary, find_extremes(records), period="January")
    assert "Berlin" in text
    assert "30-day statistics" in text
    assert "(January)" in text
    assert "Hottest day" in text
