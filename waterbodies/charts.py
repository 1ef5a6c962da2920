"""
Chart data preparation.
Reduces the observations found in one waterbody to pie-chart input (FU value counts)
and time-series input (FU values in photo-date order), placed at the observations' centroid.
"""
from __future__ import annotations

import math
import uuid
from dataclasses import dataclass, field
from functools import cmp_to_key
from typing import Any, Dict, List, Optional, Sequence, Set, Tuple

import pandas as pd
from loguru import logger

from waterbodies.geometry import calculate_centroid
from waterbodies.intersection import WaterbodyIntersection
from waterbodies.margins import point_key
from waterbodies.observations import Observation

Coords = Tuple[float, float]


def prepare_chart_data(observations: Sequence[Observation]) -> List[Dict[str, Any]]:
    """
    Aggregate FU values for a pie chart.

    Returns:
        [{"name": "<fu value>", "y": {"count": n, "points": [coords, ...]}}, ...]
        one entry per FU value present, in ascending FU order.
        Observations without an FU value are ignored.
    """
    rows = [
        {"fu": obs.fu_value, "point": list(obs.coordinates)}
        for obs in observations
        if obs.fu_value is not None
    ]
    if not rows:
        return []

    df = pd.DataFrame(rows)
    chart_data = []
    for fu, group in df.groupby("fu", sort=True):
        chart_data.append({
            "name": str(fu),
            "y": {"count": int(len(group)), "points": group["point"].tolist()},
        })
    logger.debug(f"Chart data: {chart_data}")
    return chart_data


def _compare_time_series(a: Dict[str, Any], b: Dict[str, Any]) -> int:
    # Equal dates order by the numeric difference of FU values
    if a["_ts"] != b["_ts"]:
        return -1 if a["_ts"] < b["_ts"] else 1
    return (a["fu"] or 0) - (b["fu"] or 0)


def prepare_time_series_data(observations: Sequence[Observation]) -> List[Dict[str, Any]]:
    """
    FU values in chronological order for a time-series chart.

    Sorted by date_photo ascending, ties by FU value ascending. Each item gets an
    `index` giving its position after sorting.

    Returns:
        [{"fu": 10, "date": "2020-02-21T01:00:00Z", "index": 0}, ...]
    """
    items = []
    for obs in observations:
        stamp = pd.to_datetime(obs.date_photo, utc=True, errors="coerce")
        if pd.isna(stamp):
            logger.warning(f"Observation {obs.code} has no usable date_photo, left out of time series")
            continue
        items.append({"fu": obs.fu_value, "date": obs.date_photo, "_ts": stamp})

    items.sort(key=cmp_to_key(_compare_time_series))
    return [{"fu": item["fu"], "date": item["date"], "index": i} for i, item in enumerate(items)]


@dataclass
class WaterbodyChart:
    """Everything a chart renderer needs for one waterbody."""
    chart_id: str
    layer_name: str
    waterbody_name: str
    location: Coords
    pie_data: List[Dict[str, Any]]
    time_series: List[Dict[str, Any]]
    observations: List[Observation] = field(default_factory=list)


class ChartRegistry:
    """Positions that already carry a chart, so a chart is only built once per position."""

    def __init__(self) -> None:
        self._positions: Set[str] = set()

    def __contains__(self, location: Coords) -> bool:
        return point_key(location) in self._positions

    def add(self, location: Coords) -> None:
        self._positions.add(point_key(location))

    def clear(self) -> None:
        self._positions.clear()


def create_chart_id(prefix: str = "pieChart-") -> str:
    return f"{prefix}{uuid.uuid4().hex[:8]}"


def build_waterbody_charts(intersections: Sequence[WaterbodyIntersection], layer_name: str,
                           registry: Optional[ChartRegistry] = None) -> List[WaterbodyChart]:
    """
    Build chart data for every waterbody that has observations.

    Waterbodies without observations produce nothing. The chart sits at the planar
    centroid of the waterbody's observations.

    Args:
        intersections: Output of intersect() for one layer
        layer_name: Layer the intersections belong to
        registry: If given, positions already charted are skipped and new ones recorded
    """
    charts: List[WaterbodyChart] = []
    for intersection in intersections:
        observations = intersection.observations
        if not observations:
            continue

        location = calculate_centroid([o.coordinates for o in observations])
        if location is None or any(math.isnan(v) for v in location):
            logger.debug(f"No centroid to draw at for {intersection.waterbody.name}")
            continue
        if registry is not None and location in registry:
            logger.debug(f"Chart already exists at {location}")
            continue

        pie_data = prepare_chart_data(observations)
        if not pie_data:
            logger.debug(f"No FU values in {intersection.waterbody.name}")
            continue

        chart = WaterbodyChart(
            chart_id=create_chart_id(),
            layer_name=layer_name,
            waterbody_name=intersection.waterbody.name,
            location=location,
            pie_data=pie_data,
            time_series=prepare_time_series_data(observations),
            observations=list(observations),
        )
        if registry is not None:
            registry.add(location)
        logger.info(f"Chart {chart.chart_id} for '{chart.waterbody_name}' at {location}")
        charts.append(chart)
    return charts
