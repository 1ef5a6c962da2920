"""
Result display components.
Statistics metrics, per-waterbody chart panels and the recent-measurements table.
"""
from __future__ import annotations

from typing import Any, Dict, List, Optional

import pandas as pd
import streamlit as st

from waterbodies.charts import WaterbodyChart
from waterbodies.observations import MeasurementIndex, observations_to_frame
from waterbodies.stats import ItemAmount, ObservationStats


def render_metrics_row(metrics: List[Dict[str, Any]], num_columns: Optional[int] = None) -> None:
    """
    Render a row of metrics in columns.

    Args:
        metrics: List of dicts with 'label' and 'value' keys, optionally 'delta'
        num_columns: Number of columns (defaults to len(metrics))

    Example:
        render_metrics_row([
            {"label": "Observations", "value": 150},
            {"label": "Average FU", "value": "9.4"},
        ])
    """
    if not metrics:
        return

    cols = st.columns(num_columns or len(metrics))
    for i, metric in enumerate(metrics):
        with cols[i]:
            st.metric(
                label=metric.get('label', ''),
                value=metric.get('value', ''),
                delta=metric.get('delta')
            )


def _format_item(item: ItemAmount) -> str:
    if item.item is None:
        return "-"
    return f"{item.item} ({item.amount})"


def stats_metrics(stats: ObservationStats) -> List[Dict[str, Any]]:
    """Metric dicts for render_metrics_row, in display order."""
    return [
        {"label": "EOW Australia", "value": stats.eow_au},
        {"label": "EOW Global", "value": stats.eow_global},
        {"label": "iPhone / Android", "value": f"{stats.iphones} / {stats.androids}"},
        {"label": "Average FU", "value": f"{stats.avg_fu:.1f}"},
        {"label": "Most reported FU", "value": _format_item(stats.most_reported_fu)},
        {"label": "Most used device", "value": _format_item(stats.most_used_device)},
        {"label": "Most active user", "value": _format_item(stats.most_active_user)},
    ]


def render_stats(stats: ObservationStats) -> None:
    st.markdown("### Observation Statistics")
    metrics = stats_metrics(stats)
    render_metrics_row(metrics[:4])
    render_metrics_row(metrics[4:])


def pie_frame(chart: WaterbodyChart) -> pd.DataFrame:
    """FU value counts of one chart as a DataFrame indexed by FU value."""
    return pd.DataFrame(
        {"FU": [item["name"] for item in chart.pie_data],
         "count": [item["y"]["count"] for item in chart.pie_data]}
    ).set_index("FU")


def time_series_frame(chart: WaterbodyChart) -> pd.DataFrame:
    """FU values of one chart indexed by photo date."""
    if not chart.time_series:
        return pd.DataFrame(columns=["fu"])
    df = pd.DataFrame(chart.time_series)
    df["date"] = pd.to_datetime(df["date"], utc=True, format="ISO8601")
    return df.set_index("date")[["fu"]]


def render_chart_panel(chart: WaterbodyChart) -> None:
    """FU distribution and FU over time for one waterbody."""
    with st.expander(f"{chart.waterbody_name} ({len(chart.observations)} observations)"):
        col1, col2 = st.columns(2)
        with col1:
            st.markdown("##### FU distribution")
            st.bar_chart(pie_frame(chart))
        with col2:
            st.markdown("##### FU over time")
            st.line_chart(time_series_frame(chart))


def render_layer_charts(layer_key: str, charts: List[WaterbodyChart]) -> None:
    st.markdown(f"### {layer_key}")
    if not charts:
        st.info("No observations fall within this layer's waterbodies.")
        return
    for chart in charts:
        render_chart_panel(chart)


def render_recent_measurements(index: MeasurementIndex, n: int = 20, owner: Optional[str] = None) -> None:
    """
    Render the most recent measurements as a table with a CSV download button.

    Args:
        index: Measurement index over the current observations
        n: Number of measurements to show
        owner: Restrict to one user (None = everyone)
    """
    recent = index.recent(n, owner=owner)
    if not recent:
        return

    df = observations_to_frame(recent)
    with st.expander(f"Recent measurements ({len(recent)})"):
        display_columns = ["code", "date_photo", "fu_value", "device_model", "user_n_code", "x", "y"]
        st.dataframe(df[[c for c in display_columns if c in df.columns]], use_container_width=True)
        st.download_button(
            label="Download CSV",
            data=df.to_csv(index=False),
            file_name="eow_recent_measurements.csv",
            mime="text/csv",
            key=f"recent_{owner or 'all'}"
        )
