# Project: weather-history
# Owner: GreenUnicorn
"""
history.py — Streamlit historical weather dashboard.

Run with:
    streamlit run app/history.py
    streamlit run app/history.py -- --location "Soldeu, Andorra" --start 2020-01-01 --end 2024-12-31

Requires: pip install -e ".[ui]"
Data source: Open-Meteo Historical Weather API, with synthetic fallback.
"""

import sys
from pathlib import Path

# Ensure the src/ package is importable when running from the project root
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

import argparse
import asyncio
from datetime import date, timedelta

import pandas as pd
import plotly.graph_objects as go
import streamlit as st
from plotly.subplots import make_subplots

from weather_history.aggregate import aggregate_for_display
from weather_history.config import DEFAULT_CONFIG_PATH, default_config, load_config
from weather_history.geocode import LocationNotFoundError, geocode
from weather_history.granularity import Granularity, format_label, time_range_label, time_range_presets
from weather_history.pipeline import CachePipeline
from weather_history.stats import calculate_stats_async, find_extremes
from weather_history.utils import configure_logging


# ─────────────────────────────────────────────────────────────
# Page config: must be the first Streamlit call
# ─────────────────────────────────────────────────────────────

st.set_page_config(
    page_title="Historical Weather",
    page_icon="📅",
    layout="wide",
    initial_sidebar_state="collapsed",
)

DARK_CSS = """
<style>
  #MainMenu, footer, header { visibility: hidden; }
  .block-container { padding-top: 2rem; padding-bottom: 4rem; max-width: 960px; }
  html, body, [class*="css"] {
    font-family: -apple-system, BlinkMacSystemFont, "SF Pro Display", "Segoe UI", Roboto, sans-serif;
    background-color: #0a0a0a;
    color: #f5f5f7;
  }
  .stat-pill { background: #2c2c2e; border-radius: 12px; padding: 14px 18px; width: 100%; }
  .stat-label {
    font-size: 0.68rem; text-transform: uppercase; letter-spacing: 0.08em;
    color: #8e8e93; font-weight: 500;
  }
  .stat-value { font-size: 1.6rem; font-weight: 700; color: #f5f5f7; line-height: 1.2; }
  .stat-unit { font-size: 0.9rem; color: #8e8e93; font-weight: 400; }
  .section-label {
    font-size: 0.72rem; text-transform: uppercase; letter-spacing: 0.1em;
    color: #636366; font-weight: 600; margin: 1.5rem 0 0.5rem;
  }
  .notice-card {
    background: rgba(255, 159, 10, 0.1); border: 1px solid rgba(255, 159, 10, 0.3);
    border-radius: 12px; color: #ff9f0a; padding: 14px 20px; margin: 1rem 0;
  }
  .error-card {
    background: rgba(255, 69, 58, 0.1); border: 1px solid rgba(255, 69, 58, 0.3);
    border-radius: 12px; color: #ff453a; padding: 20px 24px; text-align: center;
  }
  .wa-footer { text-align: center; color: #48484a; font-size: 0.8rem; padding: 3rem 0 1rem; }
</style>
"""

st.markdown(DARK_CSS, unsafe_allow_html=True)

PLOTLY_LAYOUT = dict(
    paper_bgcolor="rgba(0,0,0,0)",
    plot_bgcolor="rgba(0,0,0,0)",
    font=dict(family="-apple-system, BlinkMacSystemFont, sans-serif", color="#8e8e93", size=12),
    margin=dict(l=8, r=8, t=32, b=8),
    legend=dict(bgcolor="rgba(0,0,0,0)", font=dict(color="#8e8e93")),
    xaxis=dict(showgrid=False, zeroline=False, tickfont=dict(color="#636366")),
    yaxis=dict(gridcolor="#2c2c2e", zeroline=False, tickfont=dict(color="#636366")),
)

AUTO = "auto"


def stat_html(label: str, value, unit: str = "", decimals: int = 1) -> str:
    """Render a stat pill as HTML; None shows as '—'."""
    text = "—" if value is None else (f"{value:.{decimals}f}" if isinstance(value, float) else str(value))
    return f"""
    <div class="stat-pill">
      <div class="stat-label">{label}</div>
      <div class="stat-value">{text}<span class="stat-unit"> {unit}</span></div>
    </div>
    """


# ─────────────────────────────────────────────────────────────
# CLI args (streamlit run app/history.py -- --location X --start ... --end ...)
# ─────────────────────────────────────────────────────────────


def _parse_cli_args() -> argparse.Namespace:
    """Parse dashboard flags from sys.argv after the '--' separator."""
    parser = argparse.ArgumentParser(add_help=False)
    parser.add_argument("--location", type=str, default=None)
    parser.add_argument("--start", type=date.fromisoformat, default=None)
    parser.add_argument("--end", type=date.fromisoformat, default=None)

    try:
        sep = sys.argv.index("--")
        script_args = sys.argv[sep + 1:]
    except ValueError:
        script_args = []

    args, _ = parser.parse_known_args(script_args)
    return args


CLI_ARGS = _parse_cli_args()


# ─────────────────────────────────────────────────────────────
# Session pipeline and loader
# ─────────────────────────────────────────────────────────────


@st.cache_resource
def get_pipeline() -> CachePipeline:
    """One pipeline (and so one TTL cache) per server process."""
    config = load_config(DEFAULT_CONFIG_PATH) if DEFAULT_CONFIG_PATH.exists() else default_config()
    configure_logging(Path(config["log"]["path"]), config["log"]["level"])
    return CachePipeline(config=config)


async def _load(pipeline: CachePipeline, location, start: date, end: date) -> dict:
    records = await pipeline.load_date_range(start, end, location)
    summary = await calculate_stats_async(records)
    return {
        "records": records,
        "summary": summary,
        "extremes": find_extremes(records),
        "source": pipeline.source_of(location, start, end),
    }


def load_data(place: str, start: date, end: date) -> dict:
    """Geocode `place` and load [start, end]; on a geocoding error returns {"error": str}."""
    pipeline = get_pipeline()
    try:
        location = geocode(place)
    except LocationNotFoundError as exc:
        return {"error": str(exc)}
    except RuntimeError as exc:
        return {"error": f"Geocoding error: {exc}"}

    if st.session_state.get("hist_location") != location.cache_token:
        # Cached ranges for the previous location are no longer relevant
        pipeline.clear_cache()
        st.session_state["hist_location"] = location.cache_token

    data = asyncio.run(_load(pipeline, location, start, end))
    data["location"] = location
    return data


# ─────────────────────────────────────────────────────────────
# Main dashboard
# ─────────────────────────────────────────────────────────────


def _range_inputs() -> tuple[date, date, str]:
    presets = {p.label: p for p in time_range_presets()}
    choice = st.radio("Range", ["Custom", *presets], horizontal=True, label_visibility="collapsed")
    if choice != "Custom":
        preset = presets[choice]
        return preset.start.date(), preset.end.date(), preset.granularity.value

    yesterday = date.today() - timedelta(days=1)
    col_s, col_e, col_g = st.columns(3)
    with col_s:
        start = st.date_input("From", value=CLI_ARGS.start or yesterday - timedelta(days=364),
                              min_value=date(1940, 1, 1), max_value=yesterday)
    with col_e:
        end = st.date_input("To", value=CLI_ARGS.end or yesterday,
                            min_value=date(1940, 1, 1), max_value=yesterday)
    with col_g:
        granularity = st.selectbox("Granularity", [AUTO, *(g.value for g in Granularity)])
    return start, end, granularity


def _bucket_chart(buckets, granularity: Granularity) -> go.Figure:
    labels = [format_label(granularity, getattr(b, "start", None) or b.date) for b in buckets]
    fig = make_subplots(specs=[[{"secondary_y": True}]])
    fig.add_trace(
        go.Bar(
            x=labels,
            y=[b.precipitation for b in buckets],
            name="Precipitation (mm)",
            marker_color="rgba(10,132,255,0.55)",
            marker_line_width=0,
        ),
        secondary_y=False,
    )
    for attr, name, color in (
        ("temp_max", "Max (°C)", "#ff453a"),
        ("temp_avg", "Avg (°C)", "#ff9f0a"),
        ("temp_min", "Min (°C)", "#64d2ff"),
    ):
        fig.add_trace(
            go.Scatter(
                x=labels,
                y=[getattr(b, attr) for b in buckets],
                name=name,
                mode="lines+markers",
                line=dict(color=color, width=2),
                marker=dict(color=color, size=4),
                connectgaps=False,
            ),
            secondary_y=True,
        )
    fig.update_layout(**PLOTLY_LAYOUT, height=360, barmode="group")
    fig.update_yaxes(ticksuffix=" mm", gridcolor="#2c2c2e", zeroline=False, secondary_y=False)
    fig.update_yaxes(ticksuffix="°C", showgrid=False, zeroline=False, secondary_y=True)
    return fig


def main() -> None:
    """Render the historical weather dashboard."""
    place = st.text_input(
        label="location",
        value=CLI_ARGS.location or "",
        placeholder="Enter a location (e.g. Soldeu, Andorra)",
        label_visibility="collapsed",
        key="hist_location_input",
    )
    start, end, granularity_choice = _range_inputs()

    if not place.strip():
        return
    if start > end:
        st.markdown('<div class="error-card">The start date is after the end date.</div>',
                    unsafe_allow_html=True)
        return

    with st.spinner("Loading history..."):
        data = load_data(place.strip(), start, end)
    if "error" in data:
        st.markdown(f'<div class="error-card">{data["error"]}</div>', unsafe_allow_html=True)
        return

    records, summary, extremes = data["records"], data["summary"], data["extremes"]
    override = None if granularity_choice == AUTO else granularity_choice
    granularity, buckets = aggregate_for_display(records, override)

    st.markdown(
        f'<div class="section-label">{data["location"].name} · '
        f'{time_range_label(start, end, granularity)}</div>',
        unsafe_allow_html=True,
    )
    if data["source"] == "synthetic":
        st.markdown(
            '<div class="notice-card">No archive data could be fetched. '
            "The values below are synthetic placeholders.</div>",
            unsafe_allow_html=True,
        )

    # ── Stat pills ───────────────────────────────────────────
    pills = [
        ("Avg temp", summary.avg_temp, "°C"),
        ("Max temp", summary.max_temp, "°C"),
        ("Min temp", summary.min_temp, "°C"),
        ("Precipitation", summary.total_precip, "mm"),
        ("Rain days", summary.rain_days, ""),
        ("Sunny days", summary.sunny_days, ""),
    ]
    for col, (label, value, unit) in zip(st.columns(len(pills)), pills):
        with col:
            st.markdown(stat_html(label, value, unit), unsafe_allow_html=True)

    # ── Aggregated chart ─────────────────────────────────────
    st.markdown(
        f'<div class="section-label">Per {granularity.value} · {len(buckets)} points</div>',
        unsafe_allow_html=True,
    )
    st.plotly_chart(_bucket_chart(buckets, granularity), use_container_width=True,
                    config={"displayModeBar": False})

    # ── Trends ───────────────────────────────────────────────
    st.markdown('<div class="section-label">Last 7 days vs previous 7</div>', unsafe_allow_html=True)
    trend_rows = [
        {
            "Metric": metric.capitalize(),
            "Direction": trend.direction,
            "Change": trend.raw_delta,
            "Change %": trend.percent_change,
        }
        for metric, trend in summary.trends.items()
    ]
    st.dataframe(pd.DataFrame(trend_rows), use_container_width=True, hide_index=True)

    # ── Extremes ─────────────────────────────────────────────
    st.markdown('<div class="section-label">Extreme days</div>', unsafe_allow_html=True)
    extremes_rows = []
    for label, record, attr, unit in (
        ("Hottest day", extremes.hottest_day, "temp_max", "°C"),
        ("Coldest day", extremes.coldest_day, "temp_min", "°C"),
        ("Wettest day", extremes.wettest_day, "precipitation", "mm"),
        ("Windiest day", extremes.windiest_day, "wind_speed", "km/h"),
    ):
        extremes_rows.append({
            "Category": label,
            "Date": record.date.isoformat() if record else "—",
            "Value": f"{getattr(record, attr)} {unit}" if record else "—",
        })
    st.dataframe(pd.DataFrame(extremes_rows), use_container_width=True, hide_index=True)

    st.markdown(
        '<div class="wa-footer">'
        'Powered by <a href="https://open-meteo.com" style="color:#0a84ff;'
        'text-decoration:none;">Open-Meteo</a> Historical Weather API'
        f" &nbsp;·&nbsp; {summary.total_days} days &nbsp;·&nbsp; "
        f"data quality {summary.data_quality:.0%} &nbsp;·&nbsp; source: {data['source'] or '—'}"
        "</div>",
        unsafe_allow_html=True,
    )


main()
