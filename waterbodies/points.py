"""
Point feature store.
Re-reads the feature source on every change notification and publishes the
observation snapshot when its size changes.
"""
from __future__ import annotations

from typing import List

from loguru import logger

from waterbodies.errors import MalformedGeometry
from waterbodies.observations import Observation
from waterbodies.reactive import Stage


class PointFeatureStore(Stage[List[Observation]]):
    """
    Current snapshot of observation points.

    The change signal is the feature count: a snapshot with the same number of
    observations as the last emission is not published, even if its content differs.
    """

    def __init__(self, source) -> None:
        super().__init__("PointFeatureStore")
        self.source = source
        self.initialized = False
        source.on_change(self.recompute)

    def recompute(self) -> bool:
        """Re-read all features from the source, wrap them, and emit if the count changed."""
        observations: List[Observation] = []
        for idx, feature in enumerate(self.source.get_features()):
            try:
                observations.append(Observation.from_feature(feature, fallback_id=f"feature-{idx}"))
            except MalformedGeometry as e:
                logger.warning(f"Skipping observation feature #{idx}: {e}")

        emitted = self.emit_if_changed(observations, key=len(observations))
        if emitted:
            logger.info(f"Point snapshot: {len(observations)} observations")
        self.initialized = True
        return emitted
