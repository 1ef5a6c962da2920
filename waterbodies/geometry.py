"""
Geometry adapter.
Converts GeoJSON-shaped native geometries into normalized shapely features, closing
line work into polygon rings so that waterbody outlines can be used for containment.
"""
from __future__ import annotations

import math
from dataclasses import dataclass, field
from functools import lru_cache
from typing import Any, Iterable, List, Optional, Sequence, Tuple

import geopandas as gpd
from loguru import logger
from pyproj import CRS, Transformer
from pyproj.exceptions import CRSError
from shapely.geometry import Polygon, shape
from shapely.geometry.base import BaseGeometry
from shapely.ops import transform as shp_transform

from waterbodies.errors import MalformedGeometry, UnsupportedGeometryKind

Coords = Tuple[float, float]

TARGET_CRS = "EPSG:4326"

# Geometry kinds the adapter understands, keyed by lower-cased GeoJSON type
POINT = "point"
LINE = "linestring"
MULTI_LINE = "multilinestring"
POLYGON = "polygon"
MULTI_POLYGON = "multipolygon"


@dataclass
class NormalizedFeature:
    """A normalized area geometry with the property bag of its source feature."""
    geometry: BaseGeometry
    properties: dict = field(default_factory=dict)


# =============================================================================
# COORDINATE VALIDATION
# =============================================================================

def _check_position(position: Any) -> None:
    if not isinstance(position, (list, tuple)) or len(position) < 2:
        raise MalformedGeometry(f"Invalid position: {position!r}")
    for value in position[:2]:
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            raise MalformedGeometry(f"Non-numeric coordinate in {position!r}")
        if math.isnan(value) or math.isinf(value):
            raise MalformedGeometry(f"Non-finite coordinate in {position!r}")


def _check_nested(coordinates: Any, depth: int) -> None:
    """Validate a coordinate array nested `depth` levels above positions."""
    if coordinates is None:
        raise MalformedGeometry("Geometry has no coordinates")
    if depth == 0:
        _check_position(coordinates)
        return
    if not isinstance(coordinates, (list, tuple)):
        raise MalformedGeometry(f"Expected a coordinate array, got {type(coordinates).__name__}")
    for item in coordinates:
        _check_nested(item, depth - 1)


# =============================================================================
# LINE -> POLYGON COERCION
# =============================================================================

def _close_ring(line: Sequence[Sequence[float]]) -> list:
    ring = [tuple(p[:2]) for p in line]
    if ring[0] != ring[-1]:
        ring.append(ring[0])
    return ring


def _bbox_area(ring: Sequence[Coords]) -> float:
    xs = [p[0] for p in ring]
    ys = [p[1] for p in ring]
    return abs((max(xs) - min(xs)) * (max(ys) - min(ys)))


def line_to_polygon(line: Sequence[Sequence[float]]) -> Polygon:
    """Close a single line into a polygon ring."""
    try:
        return Polygon(_close_ring(line))
    except ValueError as e:
        raise MalformedGeometry(f"Cannot close line into a ring: {e}") from e


def multi_line_to_polygon(lines: Sequence[Sequence[Sequence[float]]]) -> Polygon:
    """
    Close each line into a ring and assemble them into one polygon.

    The ring with the largest bounding box seen so far is moved to the front,
    so it becomes the exterior; all other rings become interior rings.
    """
    rings: List[list] = []
    largest_area = 0.0
    for line in lines:
        ring = _close_ring(line)
        area = _bbox_area(ring)
        if area > largest_area:
            rings.insert(0, ring)
            largest_area = area
        else:
            rings.append(ring)
    try:
        return Polygon(rings[0], rings[1:])
    except ValueError as e:
        raise MalformedGeometry(f"Cannot close multi-line into rings: {e}") from e


# =============================================================================
# ADAPTER
# =============================================================================

def geometry_kind(geometry: Any) -> str:
    """Return the lower-cased GeoJSON type of a geometry dict or geo-interface object."""
    if hasattr(geometry, "__geo_interface__"):
        geometry = geometry.__geo_interface__
    if not isinstance(geometry, dict):
        raise MalformedGeometry(f"Not a geometry: {geometry!r}")
    return str(geometry.get("type", "")).lower()


def normalize_geometry(geometry: Any, properties: Optional[dict] = None) -> Optional[NormalizedFeature]:
    """
    Convert one native geometry into a normalized polygon feature.

    Args:
        geometry: GeoJSON geometry dict (or an object exposing __geo_interface__)
        properties: Property bag carried through to the normalized feature

    Returns:
        NormalizedFeature, or None for points and lines too short to enclose an area

    Raises:
        UnsupportedGeometryKind: For kinds other than point, line, multi-line, polygon, multi-polygon
        MalformedGeometry: For missing or non-numeric coordinates
    """
    if geometry is None:
        raise MalformedGeometry("Feature has no geometry")
    if hasattr(geometry, "__geo_interface__"):
        geometry = geometry.__geo_interface__
    kind = geometry_kind(geometry)
    coordinates = geometry.get("coordinates")
    properties = dict(properties or {})

    if kind == POINT:
        # Points are observations, not waterbodies
        return None

    if kind == LINE:
        _check_nested(coordinates, 1)
        if len(coordinates) < 3:
            logger.warning(f"Line has < 3 coords: {len(coordinates)} - {coordinates}")
            return None
        return NormalizedFeature(line_to_polygon(coordinates), properties)

    if kind == MULTI_LINE:
        _check_nested(coordinates, 2)
        lines = [line for line in coordinates if len(line) > 2]
        if not lines:
            logger.warning(f"Multi-line has no line with > 2 coords ({len(coordinates)} lines)")
            return None
        for line in lines:
            logger.trace(f"multi-line part with {len(line)} coords")
        return NormalizedFeature(multi_line_to_polygon(lines), properties)

    if kind == POLYGON:
        _check_nested(coordinates, 2)
        return NormalizedFeature(_shape(geometry), properties)

    if kind == MULTI_POLYGON:
        _check_nested(coordinates, 3)
        return NormalizedFeature(_shape(geometry), properties)

    raise UnsupportedGeometryKind(geometry.get("type"))


def _shape(geometry: dict) -> BaseGeometry:
    try:
        return shape(geometry)
    except (ValueError, TypeError) as e:
        raise MalformedGeometry(str(e)) from e


def normalize_features(features: Iterable[dict], layer_name: str = "") -> List[NormalizedFeature]:
    """
    Normalize a batch of GeoJSON features, skipping any that fail.

    One corrupt feature is logged and dropped; it never aborts the batch.
    """
    normalized: List[NormalizedFeature] = []
    for idx, feature in enumerate(features):
        if not isinstance(feature, dict):
            logger.warning(f"{layer_name}: feature #{idx} is not an object, skipped")
            continue
        try:
            result = normalize_geometry(feature.get("geometry"), feature.get("properties"))
        except (UnsupportedGeometryKind, MalformedGeometry) as e:
            logger.warning(f"{layer_name}: feature #{idx} skipped - {e}")
            continue
        if result is not None:
            normalized.append(result)
    return normalized


# =============================================================================
# COORDINATE SYSTEMS
# =============================================================================

@lru_cache(maxsize=16)
def _transformer(source_crs: str, target_crs: str) -> Transformer:
    return Transformer.from_crs(source_crs, target_crs, always_xy=True)


def reproject(geometry: BaseGeometry, source_crs: Optional[str], target_crs: str = TARGET_CRS) -> BaseGeometry:
    """
    Reproject a shapely geometry; no-op when the source CRS already matches.

    Args:
        geometry: Geometry to transform
        source_crs: CRS of the input (e.g. "EPSG:3857"); None means already in target_crs
        target_crs: Output CRS (default: EPSG:4326, lon/lat)
    """
    if not source_crs or CRS.from_user_input(source_crs) == CRS.from_user_input(target_crs):
        return geometry
    return shp_transform(_transformer(source_crs, target_crs).transform, geometry)


def crs_from_geojson(payload: dict) -> Optional[str]:
    """Read the legacy GeoJSON 'crs' member (e.g. urn:ogc:def:crs:EPSG::3857), if any."""
    crs = payload.get("crs")
    if not isinstance(crs, dict):
        return None
    name = (crs.get("properties") or {}).get("name")
    if not name:
        return None
    try:
        return CRS.from_user_input(name).to_string()
    except CRSError as e:
        logger.warning(f"Ignoring unrecognised CRS '{name}': {e}")
        return None


# =============================================================================
# POINT HELPERS
# =============================================================================

def calculate_centroid(points: Sequence[Sequence[float]]) -> Optional[Coords]:
    """
    Planar centroid of a set of points: the mean of x's and the mean of y's.

    Returns the point itself for a single point and None for no points.
    """
    if not points:
        return None
    if len(points) == 1:
        return (points[0][0], points[0][1])
    n = len(points)
    return (sum(p[0] for p in points) / n, sum(p[1] for p in points) / n)


def points_to_geodataframe(coords: Sequence[Sequence[float]], crs: str = TARGET_CRS) -> gpd.GeoDataFrame:
    """Build a point GeoDataFrame whose index is the position in `coords`."""
    xs = [c[0] for c in coords]
    ys = [c[1] for c in coords]
    return gpd.GeoDataFrame(geometry=gpd.points_from_xy(xs, ys), crs=crs)
