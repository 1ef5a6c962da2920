"""
Observation feature sources.

A feature source holds the currently loaded point features and tells listeners when
they change; listeners re-pull with get_features(). The WFS source fetches the
Eye on Water GeoServer layer for a bounding box.
"""
from __future__ import annotations

from typing import Callable, List, Optional, Sequence

import requests
from loguru import logger

EOW_WFS_URL = "https://geoservice.maris.nl/wms/project/eyeonwater_australia"
EOW_WFS_TYPENAME = "eow_australia"


class GeoJSONFeatureSource:
    """In-memory source of GeoJSON point features."""

    def __init__(self, features: Optional[Sequence[dict]] = None) -> None:
        self._features: List[dict] = list(features or [])
        self._listeners: List[Callable[[], None]] = []

    def get_features(self) -> List[dict]:
        return list(self._features)

    def on_change(self, listener: Callable[[], None]) -> None:
        """Register a no-argument callback fired whenever the features are replaced."""
        self._listeners.append(listener)

    def set_features(self, features: Sequence[dict]) -> None:
        """Replace all features and notify listeners."""
        self._features = list(features)
        self._notify()

    def _notify(self) -> None:
        for listener in list(self._listeners):
            listener()


class WfsFeatureSource(GeoJSONFeatureSource):
    """
    Observation features fetched from a WFS endpoint per viewport bounding box.

    Example:
        source = WfsFeatureSource()
        source.load((148.9, -35.5, 149.3, -35.1))
        features = source.get_features()
    """

    def __init__(self, url: str = EOW_WFS_URL, typename: str = EOW_WFS_TYPENAME,
                 timeout: Optional[float] = None) -> None:
        super().__init__()
        self.url = url
        self.typename = typename
        self.timeout = timeout

    def build_params(self, bbox: Sequence[float], srs: str = "EPSG:4326") -> dict:
        """WFS 1.1.0 GetFeature parameters for one bounding box (minx, miny, maxx, maxy)."""
        return {
            "service": "WFS",
            "version": "1.1.0",
            "request": "GetFeature",
            "typename": self.typename,
            "outputFormat": "application/json",
            "srsname": srs,
            "bbox": f"{','.join(str(v) for v in bbox)},{srs}",
        }

    def load(self, bbox: Sequence[float], srs: str = "EPSG:4326") -> bool:
        """
        Fetch features for a bounding box and replace the held features.

        Any failure is logged and leaves the previous features untouched.

        Returns:
            True if new features were stored
        """
        params = self.build_params(bbox, srs)
        try:
            response = requests.get(self.url, params=params, timeout=self.timeout)
            if response.status_code != 200:
                logger.error(f"WFS error {response.status_code}: {response.text[:500]}")
                return False
            payload = response.json()
        except requests.exceptions.RequestException as e:
            logger.error(f"WFS network error: {e}")
            return False
        except ValueError as e:
            logger.error(f"WFS response is not JSON: {e}")
            return False

        features = payload.get("features") if isinstance(payload, dict) else None
        if not isinstance(features, list):
            logger.error("WFS response has no 'features' array")
            return False

        logger.info(f"WFS loaded {len(features)} features for bbox {list(bbox)}")
        self.set_features(features)
        return True
