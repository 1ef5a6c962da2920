"""
Waterbody pipeline.
Wires the point store, the error-margin expander and the polygon layers together and
publishes per-layer chart data whenever the expanded points change.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import TYPE_CHECKING, Dict, List, Mapping, Optional

from loguru import logger

from waterbodies.charts import ChartRegistry, WaterbodyChart, build_waterbody_charts
from waterbodies.intersection import filter_layer_to_points_bbox, intersect
from waterbodies.layers import PolygonLayerStore, normalize_layer_name
from waterbodies.margins import (
    DEFAULT_ERROR_MARGIN_METERS,
    DEFAULT_ERROR_MARGIN_POINTS,
    ErrorMarginExpander,
    ExpandedPoints,
)
from waterbodies.points import PointFeatureStore
from waterbodies.reactive import Stage

if TYPE_CHECKING:
    from layer_registry import LayerSpec

ChartsByLayer = Dict[str, List[WaterbodyChart]]


@dataclass
class PipelineConfig:
    error_margin_meters: float = DEFAULT_ERROR_MARGIN_METERS
    error_margin_points: int = DEFAULT_ERROR_MARGIN_POINTS
    clip_layers_to_points: bool = False


class WaterbodyPipeline(Stage[ChartsByLayer]):
    """
    Recomputes intersections and charts for every enabled layer.

    Subscribers receive {layer_key: [WaterbodyChart, ...]}. A position charted by an earlier
    layer is not charted again by a later one. Layers that are disabled
    or not loaded into the layer store produce no entry.

    Example:
        store = PointFeatureStore(source)
        pipeline = WaterbodyPipeline(store, layer_store, build_registry())
        pipeline.subscribe(render)
        source.set_features(features)
    """

    def __init__(self, point_store: PointFeatureStore, layer_store: PolygonLayerStore,
                 registry: Mapping[str, "LayerSpec"], config: Optional[PipelineConfig] = None,
                 expander: Optional[ErrorMarginExpander] = None) -> None:
        super().__init__("WaterbodyPipeline")
        self.point_store = point_store
        self.layer_store = layer_store
        self.registry = registry
        self.config = config or PipelineConfig()
        self.expander = expander or ErrorMarginExpander(
            point_store, self.config.error_margin_meters, self.config.error_margin_points
        )
        self._emissions = 0
        self.expander.subscribe(self._on_expanded)

    def _on_expanded(self, expanded: ExpandedPoints) -> None:
        self.recompute(expanded)

    def _charts_for_layer(self, spec: "LayerSpec", expanded: ExpandedPoints,
                          charted: ChartRegistry) -> Optional[List[WaterbodyChart]]:
        layer_name = normalize_layer_name(spec.key)
        if not self.layer_store.has_layer(layer_name):
            logger.debug(f"Layer '{layer_name}' not loaded, no charts")
            return None

        points = [p.source for p in expanded.per_point_margins]
        layer = self.layer_store.get_layer(layer_name)
        if self.config.clip_layers_to_points:
            layer = filter_layer_to_points_bbox(layer, points)

        margin_points = expanded.all_points if spec.use_error_margin else None
        intersections = intersect(points, margin_points, expanded.points_map, layer, layer_name)
        return build_waterbody_charts(intersections, layer_name, charted)

    def recompute(self, expanded: Optional[ExpandedPoints] = None) -> bool:
        """
        Build charts for all enabled layers from the latest expanded points.

        Returns:
            True if a result was published
        """
        expanded = expanded or self.expander.value
        if expanded is None:
            logger.debug("WaterbodyPipeline: no expanded points yet")
            return False

        charts: ChartsByLayer = {}
        # one position holds at most one chart across all layers
        charted = ChartRegistry()
        for key, spec in self.registry.items():
            if not spec.enabled:
                continue
            layer_charts = self._charts_for_layer(spec, expanded, charted)
            if layer_charts is not None:
                charts[key] = layer_charts

        total = sum(len(c) for c in charts.values())
        logger.info(f"Pipeline produced {total} charts over {len(charts)} layers")
        # every recompute is published; suppression already happened upstream
        self._emissions += 1
        return self.emit_if_changed(charts, key=self._emissions)
