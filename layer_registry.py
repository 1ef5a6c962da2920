"""
Layer Registry - Centralized configuration for all waterbody layers
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Optional

PROJECT_DIR = os.path.dirname(os.path.abspath(__file__))
ASSETS_DIR = os.path.join(PROJECT_DIR, "assets", "waterbodies")


@dataclass(frozen=True)
class LayerSpec:
    """Specification for one waterbody layer"""
    key: str
    label: str
    source: str
    use_error_margin: bool = True
    enabled: bool = True
    source_crs: Optional[str] = None  # If None, the GeoJSON crs member or EPSG:4326


def _asset(*parts: str) -> str:
    return os.path.join(ASSETS_DIR, *parts)


def build_registry() -> dict[str, LayerSpec]:
    """
    Build the layer registry.

    Keys are the layer names as shown to users; the layer store keeps them with
    whitespace replaced by underscores.
    """
    specs = [
        # Australia-wide 1:250k hydrography
        LayerSpec(
            key="Waterbodies shape",
            label="Waterbodies (outlines)",
            source=_asset("Australia", "aus25wgd_l.geojson"),
            use_error_margin=False,
        ),
        LayerSpec(
            key="Waterbodies fill",
            label="Waterbodies (areas)",
            source=_asset("Australia", "aus25wgd_r.geojson"),
            use_error_margin=False,
        ),
        LayerSpec(
            key="Waterbodies name",
            label="Waterbodies (labels)",
            source=_asset("Australia", "aus25wgd_p.geojson"),
            use_error_margin=False,
            enabled=False,  # point features only
        ),
        # ACT and surroundings
        LayerSpec(
            key="i5516 flats",
            label="Flats",
            source=_asset("Canberra", "i5516_flats.geojson"),
        ),
        LayerSpec(
            key="i5516 pondages",
            label="Pondages",
            source=_asset("Canberra", "i5516_pondageareas.geojson"),
        ),
        LayerSpec(
            key="i5516 waterCourseLines",
            label="Watercourse lines",
            source=_asset("Canberra", "i5516_watercourselines.geojson"),
        ),
        LayerSpec(
            key="i5516 waterCourseAreas",
            label="Watercourse areas",
            source=_asset("Canberra", "i5516_watercourseareas.geojson"),
        ),
        LayerSpec(
            key="i5516 lakes",
            label="Lakes",
            source=_asset("Canberra", "i5516_waterholes.geojson"),
        ),
        LayerSpec(
            key="i5516 reservoirs",
            label="Reservoirs",
            source=_asset("Canberra", "i5516_reservoirs.geojson"),
        ),
    ]

    # Ensure unique keys
    registry = {s.key: s for s in specs}
    if len(registry) != len(specs):
        dupes = [s.key for s in specs if [x.key for x in specs].count(s.key) > 1]
        raise ValueError(f"Duplicate layer keys found: {sorted(set(dupes))}")

    return registry


def layer_sources(registry: dict[str, LayerSpec]) -> dict[str, str]:
    """Source path or URL per enabled layer, ready for PolygonLayerStore.load_layers()."""
    return {k: s.source for k, s in registry.items() if s.enabled}


def layer_crs(registry: dict[str, LayerSpec]) -> dict[str, str]:
    """Declared source CRS per enabled layer that has one."""
    return {k: s.source_crs for k, s in registry.items() if s.enabled and s.source_crs}
