"""
Tests for layer_registry and logging setup.
"""
from __future__ import annotations

import os
import unittest

from loguru import logger

from layer_registry import LayerSpec, build_registry, layer_crs, layer_sources
from waterbodies.log import configure_logging


class TestBuildRegistry(unittest.TestCase):

    def test_contains_waterbody_layers(self):
        registry = build_registry()
        self.assertIn("i5516 reservoirs", registry)
        self.assertIn("Waterbodies shape", registry)
        for key, spec in registry.items():
            self.assertEqual(key, spec.key)
            self.assertTrue(spec.source.endswith(".geojson"))

    def test_point_only_layer_is_disabled(self):
        registry = build_registry()
        self.assertFalse(registry["Waterbodies name"].enabled)
        self.assertNotIn("Waterbodies name", layer_sources(registry))

    def test_sources_are_under_assets(self):
        source = build_registry()["i5516 lakes"].source
        self.assertEqual(os.path.basename(source), "i5516_waterholes.geojson")
        self.assertIn(os.path.join("assets", "waterbodies", "Canberra"), source)

    def test_layer_crs_only_lists_declared(self):
        registry = {
            "a": LayerSpec(key="a", label="A", source="a.geojson", source_crs="EPSG:3857"),
            "b": LayerSpec(key="b", label="B", source="b.geojson"),
        }
        self.assertEqual(layer_crs(registry), {"a": "EPSG:3857"})

    def test_spec_is_frozen(self):
        spec = LayerSpec(key="a", label="A", source="a.geojson")
        with self.assertRaises(AttributeError):
            spec.key = "b"


class TestConfigureLogging(unittest.TestCase):

    def tearDown(self):
        configure_logging("WARNING")

    def test_single_sink_at_level(self):
        messages = []
        configure_logging("WARNING", sink=messages.append)
        logger.info("hidden")
        logger.warning("shown")
        self.assertEqual(len(messages), 1)
        self.assertIn("shown", messages[0])


if __name__ == "__main__":
    unittest.main()
