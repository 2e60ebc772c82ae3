# Project: weather-history
# Owner: GreenUnicorn
"""Tests for sources.py — primary service adapter, archive source, synthetic data."""

import asyncio
import pytest
from datetime import date
from unittest.mock import patch

from weather_history.records import DailyRecord, Location
from weather_history.sources import (
    SEASONAL_BASELINES,
    PrimaryServiceSource,
    RemoteArchiveSource,
    SyntheticSource,
    generate_month,
    generate_range,
)

BERLIN = Location(52.52, 13.41, "Berlin")


class SyncService:
    def __init__(self, daily=None, hourly=None):
        self.daily = daily
        self.hourly = hourly
        self.calls = []

    def load_history(self, lat, lon, start_date, end_date):
        self.calls.append(("daily", lat, lon, start_date, end_date))
        return self.daily

    def load_hourly_history(self, lat, lon, start_date, end_date):
        self.calls.append(("hourly", lat, lon, start_date, end_date))
        return self.hourly


class AsyncService(SyncService):
    async def load_history(self, lat, lon, start_date, end_date):
        return super().load_history(lat, lon, start_date, end_date)

    async def load_hourly_history(self, lat, lon, start_date, end_date):
        return super().load_hourly_history(lat, lon, start_date, end_date)


# ---------------------------------------------------------------------------
# PrimaryServiceSource
# ---------------------------------------------------------------------------

class TestPrimaryServiceSource:

    def test_sync_service_daily_is_normalised(self):
        service = SyncService(daily=[{"date": "2024-01-01", "tempAvg": 3.0}, {"tempAvg": 9.9}])
        result = asyncio.run(PrimaryServiceSource(service).fetch_daily(BERLIN, date(2024, 1, 1), date(2024, 1, 2)))

        assert result == [DailyRecord(date=date(2024, 1, 1), temp_avg=3.0)]
        assert service.calls == [("daily", 52.52, 13.41, "2024-01-01", "2024-01-02")]

    def test_async_service_is_awaited(self):
        service = AsyncService(daily=[{"date": "2024-01-01"}])
        result = asyncio.run(PrimaryServiceSource(service).fetch_daily(BERLIN, date(2024, 1, 1), date(2024, 1, 1)))
        assert len(result) == 1

    def test_hourly_envelope_is_unwrapped(self):
        service = SyncService(hourly={"hourly": [{"timestamp": "2024-01-01T05:00"}], "source": "api"})
        result = asyncio.run(PrimaryServiceSource(service).fetch_hourly(BERLIN, date(2024, 1, 1), date(2024, 1, 1)))
        assert [r.hour for r in result] == [5]

    def test_hourly_error_means_no_data(self):
        service = SyncService(hourly={"hourly": [{"timestamp": "2024-01-01T05:00"}], "error": "quota"})
        result = asyncio.run(PrimaryServiceSource(service).fetch_hourly(BERLIN, date(2024, 1, 1), date(2024, 1, 1)))
        assert result == []

    def test_none_response_is_empty(self):
        service = SyncService(daily=None)
        result = asyncio.run(PrimaryServiceSource(service).fetch_daily(BERLIN, date(2024, 1, 1), date(2024, 1, 1)))
        assert result == []


# ---------------------------------------------------------------------------
# RemoteArchiveSource
# ---------------------------------------------------------------------------

class TestRemoteArchiveSource:

    def test_config_overrides_defaults(self):
        source = RemoteArchiveSource({"timeout_seconds": 2, "retry_attempts": 1})
        assert source.timeout == 2.0
        assert source.attempts == 1
        assert source.url.startswith("https://archive-api.open-meteo.com")

    @patch("weather_history.sources.fetch_daily_archive")
    def test_fetch_daily_delegates_to_archive_client(self, mock_fetch):
        mock_fetch.return_value = [DailyRecord(date=date(2024, 1, 1))]
        source = RemoteArchiveSource({"retry_attempts": 1})

        result = asyncio.run(source.fetch_daily(BERLIN, date(2024, 1, 1), date(2024, 1, 1)))

        assert result == mock_fetch.return_value
        args, kwargs = mock_fetch.call_args
        assert args == (52.52, 13.41, date(2024, 1, 1), date(2024, 1, 1))
        assert kwargs["attempts"] == 1

    @patch("weather_history.sources.fetch_hourly_archive")
    def test_fetch_hourly_delegates_to_archive_client(self, mock_fetch):
        mock_fetch.return_value = []
        asyncio.run(RemoteArchiveSource().fetch_hourly(BERLIN, date(2024, 1, 1), date(2024, 1, 1)))
        mock_fetch.assert_called_once()


# ---------------------------------------------------------------------------
# Synthetic data
# ---------------------------------------------------------------------------

class TestSynthetic:

    def test_month_has_one_record_per_day(self):
        assert len(generate_month(2024, 2)) == 29
        assert len(generate_month(2023, 2)) == 28

    def test_same_month_is_deterministic(self):
        assert generate_month(2020, 7) == generate_month(2020, 7)

    def test_different_months_differ(self):
        jan = [r.temp_max for r in generate_month(2020, 1)]
        feb = [r.temp_max for r in generate_month(2020, 2)[:31]]
        assert jan[:28] != feb[:28]

    @pytest.mark.parametrize("month", range(1, 13))
    def test_values_are_plausible(self, month):
        base_min, base_max = SEASONAL_BASELINES[month]
        for r in generate_month(2021, month):
            assert base_min - 3 <= r.temp_min <= base_min + 6.1
            assert base_max - 3 <= r.temp_max <= base_max + 7.1
            assert r.temp_min <= r.temp_avg <= r.temp_max
            assert 0 <= r.precipitation <= 15
            assert 5 <= r.wind_speed <= 35
            assert 40 <= r.humidity <= 90
            assert 0 <= r.sunshine_hours <= 12
            assert 0 <= r.weather_code <= 94

    def test_range_spans_months(self):
        result = generate_range(date(2024, 1, 30), date(2024, 2, 2))
        assert [r.date for r in result] == [
            date(2024, 1, 30), date(2024, 1, 31), date(2024, 2, 1), date(2024, 2, 2),
        ]
        assert result[0] == generate_month(2024, 1)[29]

    def test_source_has_no_hourly_data(self):
        source = SyntheticSource()
        assert asyncio.run(source.fetch_hourly(BERLIN, date(2024, 1, 1), date(2024, 1, 1))) == []
        assert len(asyncio.run(source.fetch_daily(BERLIN, date(2024, 1, 1), date(2024, 1, 7)))) == 7
