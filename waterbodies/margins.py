"""
Error-margin expansion.

Each observation is surrounded by a small geodesic ring of
synthetic points; a Points Map resolves every ring point back to its observation.
"""
from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from loguru import logger
from pyproj import Geod

from waterbodies.observations import Observation
from waterbodies.reactive import Stage

Coords = Tuple[float, float]
PointsMap = Dict[str, Observation]

DEFAULT_ERROR_MARGIN_METERS = 135
DEFAULT_ERROR_MARGIN_POINTS = 4
POINT_KEY_PRECISION = 6

WGS84 = Geod(ellps="WGS84")


def point_key(coords: Sequence[float], precision: int = POINT_KEY_PRECISION) -> str:
    """Canonical string for a coordinate, rounded so float noise maps to the same key."""
    x = round(float(coords[0]), precision) + 0.0
    y = round(float(coords[1]), precision) + 0.0
    return f"{x:.{precision}f}+{y:.{precision}f}"


@dataclass
class SourcePointMargins:
    """One observation and the ring of margin points generated around it."""
    source: Observation
    margins: List[Coords]


@dataclass
class ExpandedPoints:
    """Result of expanding a point snapshot."""
    per_point_margins: List[SourcePointMargins]
    all_points: List[Coords]
    points_map: PointsMap

    def resolve(self, coords: Sequence[float]) -> Optional[Observation]:
        return self.points_map.get(point_key(coords))


def margin_ring(center: Coords, radius_meters: float = DEFAULT_ERROR_MARGIN_METERS,
                count: int = DEFAULT_ERROR_MARGIN_POINTS) -> List[Coords]:
    """
    `count` points at `radius_meters` around a lon/lat centre, at evenly spaced azimuths.

    The radius is a true ground distance on the WGS84 ellipsoid.
    """
    azimuths = [i * 360.0 / count for i in range(count)]
    lons, lats, _ = WGS84.fwd([center[0]] * count, [center[1]] * count, azimuths, [radius_meters] * count)
    return list(zip(lons, lats))


def expand_points(points: Sequence[Observation], radius_meters: float = DEFAULT_ERROR_MARGIN_METERS,
                  count: int = DEFAULT_ERROR_MARGIN_POINTS) -> ExpandedPoints:
    """
    Generate margin rings for a set of observations.

    Args:
        points: Observations with lon/lat coordinates
        radius_meters: Ring radius in metres
        count: Points per ring

    Returns:
        ExpandedPoints: per-observation rings, every source and ring point in
        source order (source first, then its ring), and the Points Map
    """
    per_point: List[SourcePointMargins] = []
    all_points: List[Coords] = []
    points_map: PointsMap = {}

    for obs in points:
        x, y = obs.coordinates
        if x is None or y is None or math.isnan(x) or math.isnan(y):
            logger.warning(f"Skipping degenerate point {obs.code}: {obs.coordinates}")
            continue
        ring = margin_ring((x, y), radius_meters, count)
        per_point.append(SourcePointMargins(source=obs, margins=ring))
        all_points.append((x, y))
        all_points.extend(ring)
        for coords in [(x, y), *ring]:
            key = point_key(coords)
            if key in points_map and points_map[key] != obs:
                logger.debug(f"Point key {key} shared by {points_map[key].code} and {obs.code}")
            points_map[key] = obs

    return ExpandedPoints(per_point_margins=per_point, all_points=all_points, points_map=points_map)


class ErrorMarginExpander(Stage[ExpandedPoints]):
    """Recomputes margin rings whenever the point store emits a new snapshot."""

    def __init__(self, point_store: Stage, radius_meters: float = DEFAULT_ERROR_MARGIN_METERS,
                 count: int = DEFAULT_ERROR_MARGIN_POINTS) -> None:
        super().__init__("ErrorMarginExpander")
        self.point_store = point_store
        self.radius_meters = radius_meters
        self.count = count
        point_store.subscribe(lambda _: self.recompute())

    def recompute(self) -> bool:
        points = self.point_store.value or []
        expanded = expand_points(points, self.radius_meters, self.count)
        return self.emit_if_changed(expanded, key=len(expanded.all_points))
