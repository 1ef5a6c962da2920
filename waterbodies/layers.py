"""
Polygon layer store.
Holds, per named layer, the waterbody polygons loaded from static files or remote GeoJSON.
Layers are loaded once and treated as immutable; re-loading a name replaces it.
"""
from __future__ import annotations

import asyncio
import json
import re
from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional

import requests
from loguru import logger
from shapely.geometry.base import BaseGeometry

from waterbodies.errors import NetworkOrParseFailure, UnknownLayer
from waterbodies.geometry import NormalizedFeature, crs_from_geojson, normalize_features, reproject

# Property keys tried, in order, for a waterbody's display name
NAME_PROPERTIES = ("name", "NAME", "Name", "FEATURENAME", "featurename", "label")


@dataclass
class Waterbody:
    """A named polygon (or multi-polygon) representing a body of water."""
    name: str
    geometry: BaseGeometry
    layer: str
    properties: dict = field(default_factory=dict)


def normalize_layer_name(name: str) -> str:
    """Collapse every whitespace run to a single underscore: 'i5516 lakes' -> 'i5516_lakes'."""
    return re.sub(r"\s+", "_", name.strip())


def _display_name(properties: dict, layer: str, idx: int) -> str:
    for key in NAME_PROPERTIES:
        value = properties.get(key)
        if value:
            return str(value)
    return f"{layer} #{idx}"


def _fetch_geojson(source: str, timeout: Optional[float] = None) -> dict:
    """Read a GeoJSON payload from an http(s) URL or a local file path."""
    if source.startswith(("http://", "https://")):
        response = requests.get(source, timeout=timeout)
        if response.status_code != 200:
            raise NetworkOrParseFailure(source, f"HTTP {response.status_code}")
        return response.json()
    with open(source, "r", encoding="utf-8") as f:
        return json.load(f)


class PolygonLayerStore:
    """
    Registry of waterbody layers.

    Example:
        store = PolygonLayerStore()
        await store.load_layers({"i5516 lakes": "assets/i5516_waterholes.geojson"})
        lakes = store.get_layer("i5516 lakes")
    """

    def __init__(self) -> None:
        self._layers: Dict[str, List[Waterbody]] = {}

    def add_layer(self, name: str, features: Iterable[NormalizedFeature], source_crs: Optional[str] = None) -> List[Waterbody]:
        """
        Store normalized features as the waterbodies of a layer (last writer wins).

        Args:
            name: Layer name; whitespace is collapsed for the storage key
            features: Normalized area features
            source_crs: CRS of the features if not EPSG:4326

        Returns:
            The stored list of waterbodies
        """
        key = normalize_layer_name(name)
        waterbodies = [
            Waterbody(
                name=_display_name(feature.properties, key, idx),
                geometry=reproject(feature.geometry, source_crs),
                layer=key,
                properties=feature.properties,
            )
            for idx, feature in enumerate(features)
        ]
        self._layers[key] = waterbodies
        logger.info(f"Layer '{key}' stored with {len(waterbodies)} waterbodies")
        return waterbodies

    def add_geojson(self, name: str, payload: dict, source_crs: Optional[str] = None) -> List[Waterbody]:
        """Normalize a GeoJSON FeatureCollection (or single Feature) and store it."""
        if not isinstance(payload, dict):
            raise NetworkOrParseFailure(name, "payload is not a GeoJSON object")
        if payload.get("type") == "Feature":
            raw_features = [payload]
        else:
            raw_features = payload.get("features")
        if not isinstance(raw_features, list):
            raise NetworkOrParseFailure(name, "payload has no 'features' array")
        crs = source_crs or crs_from_geojson(payload)
        return self.add_layer(name, normalize_features(raw_features, name), source_crs=crs)

    async def load_layer(self, name: str, source: str, source_crs: Optional[str] = None,
                         timeout: Optional[float] = None) -> bool:
        """
        Fetch, normalize and store one layer.

        Failures are logged and leave the layer absent (or as it was); they never raise.

        Args:
            name: Layer name
            source: http(s) URL or local path of a GeoJSON file
            source_crs: Override for the payload CRS
            timeout: Request timeout in seconds (None = transport default)

        Returns:
            True if the layer was stored
        """
        logger.info(f"Loading layer '{name}' from {source}")
        try:
            payload = await asyncio.to_thread(_fetch_geojson, source, timeout)
            await asyncio.to_thread(self.add_geojson, name, payload, source_crs)
        except requests.exceptions.RequestException as e:
            logger.error(f"Network error loading layer '{name}' from {source}: {e}")
            return False
        except (NetworkOrParseFailure, OSError, ValueError) as e:
            logger.error(f"Could not load layer '{name}' from {source}: {e}")
            return False
        return True

    async def load_layers(self, sources: Dict[str, str], source_crs: Optional[Dict[str, str]] = None) -> Dict[str, bool]:
        """Load several layers concurrently; one failure does not affect the others."""
        source_crs = source_crs or {}
        names = list(sources)
        results = await asyncio.gather(
            *(self.load_layer(n, sources[n], source_crs.get(n)) for n in names)
        )
        loaded = dict(zip(names, results))
        logger.info(f"Layer geometries: {self.layer_names()}")
        return loaded

    def get_layer(self, name: str) -> List[Waterbody]:
        """
        Get the waterbodies of a layer.

        Raises:
            UnknownLayer: If the layer was never successfully loaded
        """
        key = normalize_layer_name(name)
        if key not in self._layers:
            raise UnknownLayer(name)
        return self._layers[key]

    def has_layer(self, name: str) -> bool:
        return normalize_layer_name(name) in self._layers

    def layer_names(self) -> List[str]:
        return list(self._layers)
