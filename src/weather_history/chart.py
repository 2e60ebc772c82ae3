# Project: weather-history
# Owner: GreenUnicorn
"""
chart.py — ASCII chart and table rendering for aggregated history.

Uses only the Python standard library (os).
All rendering functions return strings ready to print.
"""

import os
from typing import Any

from weather_history.granularity import Granularity, format_full, format_label, parse_granularity
from weather_history.records import record_moment

FALLBACK_TERMINAL_WIDTH: int = 80
BAR_LABEL_RESERVE: int = 30  # characters reserved for label + value outside the bar

# metric attribute → (chart title, unit suffix)
METRIC_TITLES = {
    "temp_avg": ("Average temperature", "°C"),
    "temp_max": ("Maximum temperature", "°C"),
    "temp_min": ("Minimum temperature", "°C"),
    "precipitation": ("Precipitation", " mm"),
    "wind_speed": ("Wind speed", " km/h"),
    "humidity": ("Humidity", "%"),
    "sunshine_hours": ("Sunshine", " h"),
}


def _terminal_bar_width() -> int:
    try:
        terminal_width = os.get_terminal_size().columns
    except OSError:
        terminal_width = FALLBACK_TERMINAL_WIDTH
    return max(10, terminal_width - BAR_LABEL_RESERVE)


def _bar(value: float, max_value: float, bar_width: int) -> str:
    """Render a single filled/empty bar scaled to bar_width.

    Args:
        value: The data value to represent.
        max_value: The maximum value (maps to full bar width).
        bar_width: Total character width of the bar.

    Returns:
        String of '█' and '░' characters of length bar_width.
    """
    if max_value == 0:
        filled = 0
    else:
        filled = round((value / max_value) * bar_width)
    filled = max(0, min(filled, bar_width))
    return "█" * filled + "░" * (bar_width - filled)


def _bucket_moment(bucket: Any):
    start = getattr(bucket, "start", None)
    return start if start is not None else record_moment(bucket)


def render_bucket_chart(
    buckets: list,
    granularity: Granularity | str,
    metric: str = "temp_avg",
    bar_width: int | None = None,
) -> str:
    """Render one metric of aggregated buckets (or raw records) as a bar chart.

    Buckets whose metric is None are skipped. Negative values (temperatures)
    are shifted so the minimum maps to an empty bar; the printed value is the
    real one.

    Raises:
        ValueError: If `metric` is not a chartable field.
    """
    if metric not in METRIC_TITLES:
        raise ValueError(f"Cannot chart metric {metric!r}; choose one of {', '.join(METRIC_TITLES)}")
    g = parse_granularity(granularity)
    title, unit = METRIC_TITLES[metric]
    title = f"{title} per {g.value}"

    rows = [
        (format_label(g, _bucket_moment(b)), getattr(b, metric))
        for b in buckets
        if getattr(b, metric, None) is not None
    ]
    if not rows:
        return f"{title}\n  (no data)"

    if bar_width is None:
        bar_width = _terminal_bar_width()

    values = [v for _, v in rows]
    low = min(values)
    offset = -low if low < 0 else 0
    max_shifted = max(v + offset for v in values) or 1

    label_w = max(len(label) for label, _ in rows)
    lines = [title]
    for label, value in rows:
        bar = _bar(value + offset, max_shifted, bar_width)
        val_str = f"{value:.1f}{unit}"
        lines.append(f"  {label:<{label_w}} │{bar}│ {val_str:>9}")
    return "\n".join(lines)


def _cell(value, width: int, decimals: int = 1) -> str:
    if value is None:
        return f"{'—':>{width}}"
    return f"{value:>{width}.{decimals}f}"


def render_bucket_table(buckets: list, granularity: Granularity | str, title: str = "") -> str:
    """Render buckets as a fixed-width table: one row per bucket."""
    g = parse_granularity(granularity)
    header_label = title or f"{len(buckets)} {g.value} bucket(s)"
    headers = ["Period       ", " Avg°C", " Min°C", " Max°C", " Rain mm", " Wind", " Hum%", " Sun h"]
    header_row = "  ".join(headers)
    sep = "─" * len(header_row)

    # Hour rows span several days, so they carry the day as well
    label = format_full if g is Granularity.HOUR else format_label

    lines = [header_label, sep, header_row, sep]
    for b in buckets:
        row_parts = [
            f"{label(g, _bucket_moment(b)):<13}",
            _cell(b.temp_avg, 6),
            _cell(b.temp_min, 6),
            _cell(b.temp_max, 6),
            _cell(b.precipitation, 8),
            _cell(b.wind_speed, 5, 0),
            _cell(b.humidity, 5, 0),
            _cell(b.sunshine_hours, 6),
        ]
        lines.append("  ".join(row_parts))
    lines.append(sep)
    return "\n".join(lines)
