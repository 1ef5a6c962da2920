"""
Tests for waterbodies.stats.
"""
from __future__ import annotations

import unittest

from waterbodies.observations import Observation
from waterbodies.stats import ItemAmount, calculate_stats, largest_amount


def _obs(code: str, fu: int, platform: str = "iOS", model: str = "iPhone 8",
         application: str = "australia", user: str = "u1") -> Observation:
    return Observation.from_feature({
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [149.1, -35.3]},
        "properties": {
            "n_code": code,
            "fu_value": fu,
            "device_platform": platform,
            "device_model": model,
            "application": application,
            "user_n_code": user,
        },
    })


class TestLargestAmount(unittest.TestCase):

    def test_first_maximum_wins(self):
        self.assertEqual(largest_amount({"a": 2, "b": 3, "c": 3}), ItemAmount("b", 3))

    def test_empty(self):
        self.assertEqual(largest_amount({}), ItemAmount(None, -1))


class TestCalculateStats(unittest.TestCase):

    def test_counts_and_most_common(self):
        observations = [
            _obs("1", 10, user="alice"),
            _obs("2", 10, platform="Android", model="Pixel 4", user="bob"),
            _obs("3", 4, user="alice"),
            _obs("4", 4, application="global", user="carol"),
            _obs("5", 4, application="global", user="carol"),
        ]
        stats = calculate_stats(observations)

        self.assertEqual(stats.iphones, 4)
        self.assertEqual(stats.androids, 1)
        self.assertEqual(stats.eow_au, 3)
        self.assertEqual(stats.eow_global, 2)
        self.assertEqual(stats.most_reported_fu, ItemAmount("4", 3))
        self.assertEqual(stats.most_used_device, ItemAmount("iPhone 8", 4))
        # carol only uses the global application
        self.assertEqual(stats.most_active_user, ItemAmount("alice", 2))
        self.assertAlmostEqual(stats.avg_fu, (10 * 2 + 4 * 3) / 5)

    def test_fu_tie_keeps_lowest_value(self):
        stats = calculate_stats([_obs("1", 12), _obs("2", 3), _obs("3", 12), _obs("4", 3)])
        self.assertEqual(stats.most_reported_fu, ItemAmount("3", 2))

    def test_device_tie_keeps_first_seen(self):
        stats = calculate_stats([_obs("1", 5, model="Pixel 4"), _obs("2", 5, model="iPhone 8")])
        self.assertEqual(stats.most_used_device, ItemAmount("Pixel 4", 1))

    def test_empty(self):
        stats = calculate_stats([])
        self.assertEqual(stats.iphones, 0)
        self.assertEqual(stats.most_reported_fu, ItemAmount(None, -1))
        self.assertEqual(stats.avg_fu, 0.0)


if __name__ == "__main__":
    unittest.main()
