"""
Intersection engine.
Assigns observations to the waterbodies of one layer by point-in-polygon containment,
optionally through their error-margin rings, and de-duplicates back to observations.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

import geopandas as gpd
from loguru import logger
from shapely.geometry import MultiPoint

from waterbodies.geometry import TARGET_CRS, points_to_geodataframe
from waterbodies.layers import Waterbody
from waterbodies.margins import PointsMap, point_key
from waterbodies.observations import Observation

Coords = Tuple[float, float]


@dataclass
class WaterbodyIntersection:
    """A waterbody and the observations inside it (None when nothing matched)."""
    waterbody: Waterbody
    observations: Optional[List[Observation]]

    @property
    def has_observations(self) -> bool:
        return self.observations is not None


def _candidates(points: Sequence[Observation], margin_points: Optional[Sequence[Coords]],
                points_map: PointsMap) -> Tuple[List[Coords], List[Optional[Observation]]]:
    """Coordinates to test and the observation each one stands for."""
    if margin_points is None:
        return [p.coordinates for p in points], list(points)

    owners: List[Optional[Observation]] = []
    for coords in margin_points:
        owner = points_map.get(point_key(coords))
        if owner is None:
            logger.warning(f"Margin point {coords} has no entry in the points map")
        owners.append(owner)
    return list(margin_points), owners


def _layer_frame(layer: Sequence[Waterbody]) -> gpd.GeoDataFrame:
    return gpd.GeoDataFrame(geometry=[w.geometry for w in layer], crs=TARGET_CRS)


def _matches_by_polygon(coords: List[Coords], layer: Sequence[Waterbody]) -> Dict[int, List[int]]:
    """Map polygon position -> ascending positions of the coordinates it covers (edges count as inside)."""
    points_gdf = points_to_geodataframe(coords)
    joined = gpd.sjoin(points_gdf, _layer_frame(layer), how="inner", predicate="intersects")
    matches: Dict[int, List[int]] = {}
    for point_pos, polygon_pos in zip(joined.index, joined["index_right"]):
        matches.setdefault(int(polygon_pos), []).append(int(point_pos))
    for positions in matches.values():
        positions.sort()
    return matches


def intersect(points: Sequence[Observation], margin_points: Optional[Sequence[Coords]],
              points_map: PointsMap, layer: Sequence[Waterbody], layer_name: str) -> List[WaterbodyIntersection]:
    """
    Find the observations within each waterbody of a layer.

    Args:
        points: Observations for this layer
        margin_points: Error-margin expanded coordinates, or None for exact containment
        points_map: point_key -> observation, used to resolve margin points
        layer: Waterbodies of the layer, in layer order
        layer_name: Name for logging

    Returns:
        One WaterbodyIntersection per waterbody, in layer order. An observation appears
        at most once per waterbody however many of its margin points are inside.
    """
    if not layer:
        return []

    coords, owners = _candidates(points, margin_points, points_map)
    matches = _matches_by_polygon(coords, layer) if coords else {}

    results: List[WaterbodyIntersection] = []
    for pos, waterbody in enumerate(layer):
        found: Dict[str, Observation] = {}
        for point_pos in matches.get(pos, []):
            owner = owners[point_pos]
            if owner is not None and owner.code not in found:
                found[owner.code] = owner
        results.append(WaterbodyIntersection(waterbody, list(found.values()) if found else None))

    matched = sum(1 for r in results if r.has_observations)
    logger.info(f"{layer_name}: {matched} of {len(layer)} waterbodies contain observations")
    return results


def filter_layer_to_points_bbox(layer: Sequence[Waterbody], points: Sequence[Observation]) -> List[Waterbody]:
    """
    Keep only the waterbodies that touch the bounding box of the given observations.

    Returns an empty list when there are no observations.
    """
    if not points:
        return []
    # envelope degrades to a point or line for degenerate extents
    bbox = MultiPoint([p.coordinates for p in points]).envelope
    return [w for w in layer if w.geometry.intersects(bbox)]
