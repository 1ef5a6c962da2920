"""
Session state management for the waterbody pipeline.
Keeps one pipeline per browser session across streamlit reruns.
"""
from __future__ import annotations

import asyncio
from typing import Any, Dict, List, Optional, Sequence

import streamlit as st
from loguru import logger

from layer_registry import LayerSpec, layer_crs, layer_sources
from waterbodies.charts import WaterbodyChart
from waterbodies.feature_source import WfsFeatureSource
from waterbodies.layers import PolygonLayerStore
from waterbodies.pipeline import PipelineConfig, WaterbodyPipeline
from waterbodies.points import PointFeatureStore


class PipelineState:
    """
    Manages the pipeline objects and latest results in session state.

    Example:
        state = PipelineState(build_registry())
        state.ensure_layers_loaded()
        state.load_bbox((148.9, -35.5, 149.3, -35.1))

        if state.has_results:
            charts = state.get_charts()
    """

    def __init__(self, registry: Dict[str, LayerSpec], config: Optional[PipelineConfig] = None,
                 prefix: str = "waterbodies"):
        """
        Initialize state manager.

        Args:
            registry: Layer registry from build_registry()
            config: Pipeline configuration used when the pipeline is first created
            prefix: Session state key prefix
        """
        self.registry = registry
        self.prefix = prefix
        self._pipeline_key = f"{prefix}_pipeline"
        self._charts_key = f"{prefix}_charts"
        self._loaded_key = f"{prefix}_layers_loaded"
        if self._pipeline_key not in st.session_state:
            self._create(config or PipelineConfig())

    def _create(self, config: PipelineConfig) -> None:
        source = WfsFeatureSource()
        point_store = PointFeatureStore(source)
        layer_store = PolygonLayerStore()
        pipeline = WaterbodyPipeline(point_store, layer_store, self.registry, config)
        pipeline.subscribe(self._store_charts)
        st.session_state[self._pipeline_key] = pipeline
        st.session_state[self._charts_key] = {}
        logger.info("Created waterbody pipeline for session")

    def _store_charts(self, charts: Dict[str, List[WaterbodyChart]]) -> None:
        st.session_state[self._charts_key] = charts

    @property
    def pipeline(self) -> WaterbodyPipeline:
        return st.session_state[self._pipeline_key]

    @property
    def source(self) -> WfsFeatureSource:
        return self.pipeline.point_store.source

    @property
    def has_results(self) -> bool:
        return bool(st.session_state.get(self._charts_key))

    def get_charts(self) -> Dict[str, List[WaterbodyChart]]:
        return st.session_state.get(self._charts_key, {})

    def ensure_layers_loaded(self) -> Dict[str, bool]:
        """Load every enabled layer once per session; returns the per-layer outcome."""
        loaded = st.session_state.get(self._loaded_key)
        if loaded is None:
            layer_store = self.pipeline.layer_store
            loaded = asyncio.run(layer_store.load_layers(layer_sources(self.registry), layer_crs(self.registry)))
            st.session_state[self._loaded_key] = loaded
            self.pipeline.recompute()
        return loaded

    def load_bbox(self, bbox: Sequence[float]) -> bool:
        """Fetch observations for a bounding box; the pipeline recomputes through its subscriptions."""
        return self.source.load(bbox)

    def reset(self) -> None:
        """Drop the session's pipeline and results."""
        for key in (self._pipeline_key, self._charts_key, self._loaded_key):
            if key in st.session_state:
                del st.session_state[key]

    def get(self, key: str, default: Any = None) -> Any:
        """Get a custom session state value under this prefix."""
        return st.session_state.get(f"{self.prefix}_{key}", default)

    def set(self, key: str, value: Any) -> None:
        """Set a custom session state value under this prefix."""
        st.session_state[f"{self.prefix}_{key}"] = value
