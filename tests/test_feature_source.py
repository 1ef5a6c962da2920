"""
Tests for waterbodies.feature_source (in-memory and WFS sources).

Uses unittest and mocks requests to avoid network calls.
"""
from __future__ import annotations

import unittest
from unittest.mock import MagicMock, patch

import requests

from waterbodies.feature_source import EOW_WFS_TYPENAME, EOW_WFS_URL, GeoJSONFeatureSource, WfsFeatureSource

BBOX = (148.95, -35.5, 149.3, -35.1)


def _response(status: int, payload=None, text: str = "") -> MagicMock:
    r = MagicMock()
    r.status_code = status
    r.json.return_value = payload
    r.text = text
    return r


def _feature(code: str) -> dict:
    return {"type": "Feature", "geometry": {"type": "Point", "coordinates": [149.1, -35.3]},
            "properties": {"n_code": code}}


class TestGeoJSONFeatureSource(unittest.TestCase):

    def test_set_features_notifies_listeners(self):
        source = GeoJSONFeatureSource()
        calls = []
        source.on_change(lambda: calls.append(len(source.get_features())))
        source.set_features([_feature("a"), _feature("b")])
        self.assertEqual(calls, [2])

    def test_get_features_returns_copy(self):
        source = GeoJSONFeatureSource([_feature("a")])
        source.get_features().clear()
        self.assertEqual(len(source.get_features()), 1)


class TestWfsFeatureSource(unittest.TestCase):

    def test_build_params(self):
        params = WfsFeatureSource().build_params(BBOX)
        self.assertEqual(params["service"], "WFS")
        self.assertEqual(params["version"], "1.1.0")
        self.assertEqual(params["request"], "GetFeature")
        self.assertEqual(params["typename"], EOW_WFS_TYPENAME)
        self.assertEqual(params["outputFormat"], "application/json")
        self.assertEqual(params["srsname"], "EPSG:4326")
        self.assertEqual(params["bbox"], "148.95,-35.5,149.3,-35.1,EPSG:4326")

    @patch("waterbodies.feature_source.requests.get")
    def test_load_replaces_features_and_notifies(self, mock_get):
        mock_get.return_value = _response(200, {"type": "FeatureCollection", "features": [_feature("a")]})
        source = WfsFeatureSource(timeout=5)
        notified = []
        source.on_change(lambda: notified.append(True))

        self.assertTrue(source.load(BBOX))
        self.assertEqual(source.get_features()[0]["properties"]["n_code"], "a")
        self.assertEqual(notified, [True])
        args, kwargs = mock_get.call_args
        self.assertEqual(args[0], EOW_WFS_URL)
        self.assertEqual(kwargs["timeout"], 5)

    @patch("waterbodies.feature_source.requests.get")
    def test_failures_keep_previous_features(self, mock_get):
        source = WfsFeatureSource()
        source.set_features([_feature("old")])
        notified = []
        source.on_change(lambda: notified.append(True))

        bad_json = _response(200)
        bad_json.json.side_effect = ValueError("not json")
        failures = [
            _response(500, text="Internal error"),
            requests.exceptions.Timeout("slow"),
            bad_json,
            _response(200, {"type": "FeatureCollection"}),
        ]
        for failure in failures:
            with self.subTest(failure=failure):
                if isinstance(failure, Exception):
                    mock_get.side_effect = failure
                else:
                    mock_get.side_effect = None
                    mock_get.return_value = failure
                self.assertFalse(source.load(BBOX))
                self.assertEqual(source.get_features()[0]["properties"]["n_code"], "old")

        self.assertEqual(notified, [])


if __name__ == "__main__":
    unittest.main()
