"""
Tests for waterbodies.margins (geodesic rings and the points map).
"""
from __future__ import annotations

import unittest

from pyproj import Geod

from waterbodies.margins import (
    DEFAULT_ERROR_MARGIN_METERS,
    expand_points,
    margin_ring,
    point_key,
)
from waterbodies.observations import Observation

GEOD = Geod(ellps="WGS84")


def _obs(code: str, x: float, y: float, fu: int = 10) -> Observation:
    return Observation.from_feature({
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [x, y]},
        "properties": {"n_code": code, "fu_value": fu},
    })


class TestPointKey(unittest.TestCase):

    def test_fixed_precision(self):
        self.assertEqual(point_key((149.1, -35.3)), "149.100000+-35.300000")

    def test_float_noise_maps_to_same_key(self):
        self.assertEqual(point_key((0.1 + 0.2, 1.0)), point_key((0.3, 1.0)))

    def test_negative_zero(self):
        self.assertEqual(point_key((-0.0, 0.0)), point_key((0.0, 0.0)))


class TestMarginRing(unittest.TestCase):

    def test_ring_points_are_at_radius(self):
        center = (149.13, -35.29)
        ring = margin_ring(center)
        self.assertEqual(len(ring), 4)
        for lon, lat in ring:
            _, _, dist = GEOD.inv(center[0], center[1], lon, lat)
            self.assertAlmostEqual(dist, DEFAULT_ERROR_MARGIN_METERS, places=3)

    def test_first_point_is_due_north(self):
        lon, lat = margin_ring((149.13, -35.29), 135, 4)[0]
        self.assertAlmostEqual(lon, 149.13, places=9)
        self.assertGreater(lat, -35.29)

    def test_custom_count(self):
        self.assertEqual(len(margin_ring((0, 0), 50, 8)), 8)


class TestExpandPoints(unittest.TestCase):

    def test_points_map_resolves_every_ring_point_to_its_source(self):
        a = _obs("a", 149.10, -35.30)
        b = _obs("b", 149.20, -35.25)
        expanded = expand_points([a, b])

        self.assertEqual(len(expanded.per_point_margins), 2)
        for entry in expanded.per_point_margins:
            self.assertIs(expanded.resolve(entry.source.coordinates), entry.source)
            for coords in entry.margins:
                self.assertIs(expanded.resolve(coords), entry.source)

    def test_all_points_lists_source_then_ring(self):
        a = _obs("a", 149.10, -35.30)
        expanded = expand_points([a], count=4)
        self.assertEqual(len(expanded.all_points), 5)
        self.assertEqual(expanded.all_points[0], a.coordinates)
        self.assertEqual(expanded.all_points[1:], expanded.per_point_margins[0].margins)

    def test_empty_input(self):
        expanded = expand_points([])
        self.assertEqual(expanded.all_points, [])
        self.assertEqual(expanded.points_map, {})

    def test_degenerate_point_is_skipped(self):
        good = _obs("good", 149.10, -35.30)
        bad = Observation(code="bad", coordinates=(float("nan"), -35.0))
        expanded = expand_points([bad, good])
        self.assertEqual([e.source.code for e in expanded.per_point_margins], ["good"])
        self.assertEqual(len(expanded.all_points), 5)


if __name__ == "__main__":
    unittest.main()
