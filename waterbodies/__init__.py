"""
Waterbodies Module
Assigns Eye on Water observations to waterbody polygons and prepares per-waterbody chart data.
"""
from waterbodies.errors import (
    MalformedGeometry,
    NetworkOrParseFailure,
    UnknownLayer,
    UnsupportedGeometryKind,
    WaterbodyError,
)

from waterbodies.geometry import (
    NormalizedFeature,
    calculate_centroid,
    normalize_features,
    normalize_geometry,
    reproject,
)

from waterbodies.layers import (
    PolygonLayerStore,
    Waterbody,
    normalize_layer_name,
)

from waterbodies.observations import (
    MeasurementIndex,
    Observation,
    ObservationAttributes,
)

from waterbodies.feature_source import (
    GeoJSONFeatureSource,
    WfsFeatureSource,
)

from waterbodies.points import PointFeatureStore

from waterbodies.margins import (
    ErrorMarginExpander,
    ExpandedPoints,
    expand_points,
    point_key,
)

from waterbodies.intersection import (
    WaterbodyIntersection,
    filter_layer_to_points_bbox,
    intersect,
)

from waterbodies.charts import (
    ChartRegistry,
    WaterbodyChart,
    build_waterbody_charts,
    prepare_chart_data,
    prepare_time_series_data,
)

from waterbodies.stats import (
    ItemAmount,
    ObservationStats,
    calculate_stats,
)

from waterbodies.pipeline import (
    PipelineConfig,
    WaterbodyPipeline,
)

__all__ = [
    # Errors
    "MalformedGeometry",
    "NetworkOrParseFailure",
    "UnknownLayer",
    "UnsupportedGeometryKind",
    "WaterbodyError",
    # Geometry
    "NormalizedFeature",
    "calculate_centroid",
    "normalize_features",
    "normalize_geometry",
    "reproject",
    # Layers
    "PolygonLayerStore",
    "Waterbody",
    "normalize_layer_name",
    # Observations
    "MeasurementIndex",
    "Observation",
    "ObservationAttributes",
    "GeoJSONFeatureSource",
    "WfsFeatureSource",
    "PointFeatureStore",
    # Error margins
    "ErrorMarginExpander",
    "ExpandedPoints",
    "expand_points",
    "point_key",
    # Intersection and charts
    "WaterbodyIntersection",
    "filter_layer_to_points_bbox",
    "intersect",
    "ChartRegistry",
    "WaterbodyChart",
    "build_waterbody_charts",
    "prepare_chart_data",
    "prepare_time_series_data",
    # Stats
    "ItemAmount",
    "ObservationStats",
    "calculate_stats",
    # Pipeline
    "PipelineConfig",
    "WaterbodyPipeline",
]
