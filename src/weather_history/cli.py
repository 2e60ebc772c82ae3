# Project: weather-history
# Owner: GreenUnicorn
"""
cli.py — Command-line interface for weather-history.

argparse (stdlib) is enough for four subcommands that share one option set.

Commands:
  weather-history stats      — statistics summary with trends and extremes
  weather-history chart      — aggregated bar chart (and table) of one metric
  weather-history extremes   — hottest / coldest / wettest / windiest day
  weather-history hourly     — hourly records, aggregated for display
"""

import argparse
import asyncio
import logging
import sys
from datetime import date, timedelta
from pathlib import Path

from weather_history.aggregate import aggregate_by_granularity, aggregate_for_display
from weather_history.chart import METRIC_TITLES, render_bucket_chart, render_bucket_table
from weather_history.config import DEFAULT_CONFIG_PATH, default_config, load_config, location_from_config
from weather_history.geocode import LocationNotFoundError, geocode
from weather_history.granularity import (
    Granularity,
    UnknownGranularityError,
    parse_granularity,
    time_range_label,
)
from weather_history.pipeline import HOURLY, CachePipeline
from weather_history.records import Location
from weather_history.stats import calculate_stats_async, find_extremes, terminal_summary
from weather_history.utils import configure_logging, parse_iso_date

logger = logging.getLogger(__name__)

DEFAULT_SPAN_DAYS = 30

HOURLY_TABLE_UNITS = [g.value for g in Granularity if g is not Granularity.DAY]


def _load_config(path: Path | None) -> dict:
    """Explicit --config must exist; the default config.toml is optional."""
    if path is None:
        if not DEFAULT_CONFIG_PATH.exists():
            return default_config()
        path = DEFAULT_CONFIG_PATH
    return load_config(path)


def _resolve_location(args, config: dict) -> Location:
    if args.location:
        return geocode(args.location)
    return location_from_config(config)


def _resolve_range(args) -> tuple[date, date]:
    # The archive lags a few days behind today; end yesterday by default
    end = parse_iso_date(args.end) if args.end else date.today() - timedelta(days=1)
    start = parse_iso_date(args.start) if args.start else end - timedelta(days=DEFAULT_SPAN_DAYS - 1)
    if start > end:
        raise ValueError(f"--start {start} is after --end {end}")
    return start, end


def _progress(percent: int) -> None:
    logger.debug("Statistics: %d%%", percent)


def _provenance_note(pipeline: CachePipeline, location: Location, start: date, end: date, kind: str) -> str:
    source = pipeline.source_of(location, start, end, kind)
    if source == "synthetic":
        return "⚠️  No real data could be fetched; showing synthetic placeholder values."
    if source == "daily-fallback":
        return "⚠️  No hourly data available; showing one midday sample per day."
    return ""


async def _run_stats(pipeline, location, start, end, args) -> str:
    records = await pipeline.load_date_range(start, end, location)
    summary = await calculate_stats_async(
        records,
        on_progress=_progress,
        chunk_size=pipeline.config["stats"]["chunk_size"],
    )
    period = f"{start.isoformat()} to {end.isoformat()}"
    return terminal_summary(location.name or "Selected location", summary, find_extremes(records), period)


async def _run_chart(pipeline, location, start, end, args) -> str:
    records = await pipeline.load_date_range(start, end, location)
    granularity = parse_granularity(args.granularity) if args.granularity else None
    granularity, buckets = aggregate_for_display(records, granularity)
    parts = [
        f"📍 {location.name or 'Selected location'} — {time_range_label(start, end, granularity)}",
        "",
        render_bucket_chart(buckets, granularity, args.metric),
    ]
    if args.table:
        parts += ["", render_bucket_table(buckets, granularity)]
    return "\n".join(parts)


async def _run_extremes(pipeline, location, start, end, args) -> str:
    records = await pipeline.load_date_range(start, end, location)
    extremes = find_extremes(records)
    rows = [
        ("Hottest day", extremes.hottest_day, "temp_max", "°C"),
        ("Coldest day", extremes.coldest_day, "temp_min", "°C"),
        ("Wettest day", extremes.wettest_day, "precipitation", " mm"),
        ("Windiest day", extremes.windiest_day, "wind_speed", " km/h"),
    ]
    lines = [f"📍 {location.name or 'Selected location'} — extremes {start} to {end}"]
    for label, record, attr, unit in rows:
        if record is None:
            lines.append(f"  {label:<13} unknown")
        else:
            lines.append(f"  {label:<13} {getattr(record, attr):.1f}{unit} on {record.date.isoformat()}")
    return "\n".join(lines)


async def _run_hourly(pipeline, location, start, end, args) -> str:
    records = await pipeline.load_hourly_date_range(start, end, location)
    granularity = parse_granularity(args.granularity)
    buckets = aggregate_by_granularity(records, granularity)
    return render_bucket_table(
        buckets,
        granularity,
        title=f"📍 {location.name or 'Selected location'} — {len(records)} hourly record(s)",
    )


COMMANDS = {
    "stats": _run_stats,
    "chart": _run_chart,
    "extremes": _run_extremes,
    "hourly": _run_hourly,
}


async def run_command(args, config: dict, pipeline: CachePipeline | None = None) -> str:
    """Run one subcommand and return its printable output."""
    pipeline = pipeline or CachePipeline(config=config)
    location = _resolve_location(args, config)
    start, end = _resolve_range(args)
    output = await COMMANDS[args.command](pipeline, location, start, end, args)

    kind = HOURLY if args.command == "hourly" else "daily"
    note = _provenance_note(pipeline, location, start, end, kind)
    return f"{output}\n{note}" if note else output


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="weather-history",
        description="Historical weather statistics and charts using the Open-Meteo archive",
    )
    subparsers = parser.add_subparsers(dest="command", metavar="command")
    subparsers.required = True

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument("--start", metavar="YYYY-MM-DD", default=None,
                        help=f"First day (default: {DEFAULT_SPAN_DAYS} days before --end)")
    common.add_argument("--end", metavar="YYYY-MM-DD", default=None,
                        help="Last day (default: yesterday)")
    common.add_argument(
        "--location",
        metavar="PLACE",
        default=None,
        help='Look up coordinates by place name, e.g. "Tokyo" or "London, UK"',
    )
    common.add_argument("--config", metavar="PATH", type=Path, default=None,
                        help=f"TOML config file (default: {DEFAULT_CONFIG_PATH} if present)")
    common.add_argument("-v", "--verbose", action="store_true", help="Log debug output to stderr")

    subparsers.add_parser("stats", parents=[common], help="Statistics summary for a date range")
    p_chart = subparsers.add_parser("chart", parents=[common], help="Bar chart of one metric")
    p_chart.add_argument("--granularity", metavar="UNIT", default=None,
                         help="hour, day, week, month, year, decade or century (default: automatic)")
    p_chart.add_argument("--metric", choices=sorted(METRIC_TITLES), default="temp_avg",
                         help="Metric to chart (default: temp_avg)")
    p_chart.add_argument("--table", action="store_true", help="Also print the bucket table")
    subparsers.add_parser("extremes", parents=[common], help="Extreme days in a date range")
    p_hourly = subparsers.add_parser("hourly", parents=[common], help="Hourly data, aggregated")
    # "day" is the aggregator's passthrough and would not merge hours into days
    p_hourly.add_argument("--granularity", choices=HOURLY_TABLE_UNITS, default=Granularity.HOUR.value,
                          help="Bucket size for the table; hour lists every record (default: hour)")
    return parser


def main(argv: list[str] | None = None) -> None:
    args = build_parser().parse_args(argv)

    try:
        config = _load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"[error] {e}", file=sys.stderr)
        raise SystemExit(1)

    configure_logging(Path(config["log"]["path"]), config["log"]["level"], args.verbose)

    try:
        output = asyncio.run(run_command(args, config))
    except (LocationNotFoundError, UnknownGranularityError, ValueError, RuntimeError) as e:
        # RuntimeError: geocoding retries exhausted
        print(f"[error] {e}", file=sys.stderr)
        raise SystemExit(1)

    print(output)


if __name__ == "__main__":
    main()
