"""
Tests for waterbodies.charts (pie data, time series, chart building).
"""
from __future__ import annotations

import unittest

from shapely.geometry import box

from waterbodies.charts import (
    ChartRegistry,
    build_waterbody_charts,
    prepare_chart_data,
    prepare_time_series_data,
)
from waterbodies.intersection import WaterbodyIntersection
from waterbodies.layers import Waterbody
from waterbodies.observations import Observation


def _obs(code: str, x: float = 0.0, y: float = 0.0, fu=10, date: str = None) -> Observation:
    props = {"n_code": code, "fu_value": fu}
    if date is not None:
        props["date_photo"] = date
    return Observation.from_feature({
        "type": "Feature",
        "geometry": {"type": "Point", "coordinates": [x, y]},
        "properties": props,
    })


def _waterbody(name: str) -> Waterbody:
    return Waterbody(name=name, geometry=box(0, 0, 10, 10), layer="lakes")


class TestPrepareChartData(unittest.TestCase):

    def test_counts_per_fu_in_ascending_fu_order(self):
        observations = [
            _obs("a", 1, 1, fu=12),
            _obs("b", 2, 2, fu=3),
            _obs("c", 3, 3, fu=12),
        ]
        data = prepare_chart_data(observations)
        self.assertEqual(data, [
            {"name": "3", "y": {"count": 1, "points": [[2.0, 2.0]]}},
            {"name": "12", "y": {"count": 2, "points": [[1.0, 1.0], [3.0, 3.0]]}},
        ])

    def test_no_zero_filling_and_missing_fu_ignored(self):
        data = prepare_chart_data([_obs("a", fu=5), _obs("b", fu=None)])
        self.assertEqual([d["name"] for d in data], ["5"])

    def test_empty(self):
        self.assertEqual(prepare_chart_data([]), [])


class TestPrepareTimeSeriesData(unittest.TestCase):

    def test_sorted_by_date(self):
        observations = [
            _obs("a", fu=12, date="2020-02-22T01:00:00Z"),
            _obs("b", fu=10, date="2020-02-21T01:00:00Z"),
        ]
        expected = [
            {"fu": 10, "date": "2020-02-21T01:00:00Z", "index": 0},
            {"fu": 12, "date": "2020-02-22T01:00:00Z", "index": 1},
        ]
        self.assertEqual(prepare_time_series_data(observations), expected)
        self.assertEqual(prepare_time_series_data(list(reversed(observations))), expected)

    def test_equal_dates_order_by_fu(self):
        date = "2020-02-21T01:00:00Z"
        for fus in ([12, 10], [10, 12]):
            observations = [_obs(str(fu), fu=fu, date=date) for fu in fus]
            result = prepare_time_series_data(observations)
            self.assertEqual([r["fu"] for r in result], [10, 12])
            self.assertEqual([r["index"] for r in result], [0, 1])

    def test_mixed_date_formats_compare_as_instants(self):
        observations = [
            _obs("a", fu=1, date="2020-02-21T12:00:00+10:00"),
            _obs("b", fu=2, date="2020-02-21T01:30:00Z"),
        ]
        # 12:00+10:00 is 02:00Z, after 01:30Z
        self.assertEqual([r["fu"] for r in prepare_time_series_data(observations)], [2, 1])

    def test_undated_observations_are_left_out(self):
        observations = [_obs("a", fu=1, date="2020-02-21"), _obs("b", fu=2), _obs("c", fu=3, date="garbage")]
        result = prepare_time_series_data(observations)
        self.assertEqual(result, [{"fu": 1, "date": "2020-02-21", "index": 0}])


class TestBuildWaterbodyCharts(unittest.TestCase):

    def test_chart_per_waterbody_with_observations(self):
        intersections = [
            WaterbodyIntersection(_waterbody("Lake Burley Griffin"), [_obs("a", 0, 0, 10), _obs("b", 2, 2, 11)]),
            WaterbodyIntersection(_waterbody("Dry Pond"), None),
            WaterbodyIntersection(_waterbody("Lake Ginninderra"), [_obs("c", 5, 5, 4)]),
        ]
        charts = build_waterbody_charts(intersections, "i5516_lakes")

        self.assertEqual([c.waterbody_name for c in charts], ["Lake Burley Griffin", "Lake Ginninderra"])
        self.assertEqual(charts[0].location, (1.0, 1.0))
        self.assertEqual(charts[1].location, (5.0, 5.0))
        self.assertTrue(charts[0].chart_id.startswith("pieChart-"))
        self.assertNotEqual(charts[0].chart_id, charts[1].chart_id)
        self.assertEqual(charts[0].layer_name, "i5516_lakes")
        self.assertEqual(len(charts[0].pie_data), 2)

    def test_registry_skips_positions_already_charted(self):
        registry = ChartRegistry()
        first = [WaterbodyIntersection(_waterbody("A"), [_obs("a", 3, 3)])]
        second = [WaterbodyIntersection(_waterbody("B"), [_obs("a", 3, 3)])]

        self.assertEqual(len(build_waterbody_charts(first, "lakes", registry)), 1)
        self.assertIn((3.0, 3.0), registry)
        self.assertEqual(build_waterbody_charts(second, "lakes", registry), [])

        registry.clear()
        self.assertEqual(len(build_waterbody_charts(second, "lakes", registry)), 1)

    def test_waterbody_without_fu_values_has_no_chart(self):
        intersections = [WaterbodyIntersection(_waterbody("A"), [_obs("a", 1, 1, fu=None)])]
        self.assertEqual(build_waterbody_charts(intersections, "lakes"), [])


if __name__ == "__main__":
    unittest.main()
