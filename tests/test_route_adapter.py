"""
Tests for OSRM route estimation and the straight-line fallback.
"""

import httpx

from utils.geo_cache import TTLCache
from utils.route_adapter import (
    MIN_FALLBACK_DURATION_SECONDS,
    RouteAdapter,
    fallback_route,
    haversine_distance_meters,
)

TEL_AVIV = (32.0853, 34.7818)
JERUSALEM = (31.7683, 35.2137)
DEPARTURE = "2026-03-01T09:10:00Z"


def make_adapter(handler, cache=None):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return RouteAdapter("http://osrm.test", "FieldCRM-Test", 5.0, cache=cache, client=client)


class TestHaversine:
    def test_tel_aviv_to_jerusalem(self):
        distance = haversine_distance_meters(*TEL_AVIV, *JERUSALEM)
        assert 50_000 < distance < 60_000

    def test_same_point(self):
        assert haversine_distance_meters(*TEL_AVIV, *TEL_AVIV) == 0

    def test_fallback_uses_45_kmh(self):
        route = fallback_route(*TEL_AVIV, *JERUSALEM)
        expected = round(route["distance_meters"] / (45 * 1000 / 3600))

        assert route["provider"] == "fallback"
        assert abs(route["duration_seconds"] - expected) <= 1

    def test_fallback_minimum_duration(self):
        route = fallback_route(*TEL_AVIV, *TEL_AVIV)
        assert route["duration_seconds"] == MIN_FALLBACK_DURATION_SECONDS


class TestOsrm:
    def test_successful_route(self):
        seen = []

        def handler(request):
            seen.append(request)
            return httpx.Response(200, json={"routes": [{"duration": 3120.4, "distance": 61234.6}]})

        result = make_adapter(handler).estimate(*TEL_AVIV, *JERUSALEM, departure_time=DEPARTURE)

        assert result == {
            "duration_seconds": 3120,
            "distance_meters": 61235,
            "provider": "osrm",
            "departure_bucket": "2026-03-01T09:00:00.000Z",
            "cached": False,
        }
        assert seen[0].url.path == "/route/v1/driving/34.7818,32.0853;35.2137,31.7683"
        assert seen[0].url.params["overview"] == "false"

    def test_server_error_uses_fallback(self):
        result = make_adapter(lambda r: httpx.Response(500)).estimate(*TEL_AVIV, *JERUSALEM)
        assert result["provider"] == "fallback"
        assert result["cached"] is False

    def test_network_error_uses_fallback(self):
        def boom(request):
            raise httpx.ConnectTimeout("timed out", request=request)

        assert make_adapter(boom).estimate(*TEL_AVIV, *JERUSALEM)["provider"] == "fallback"

    def test_empty_routes_use_fallback(self):
        result = make_adapter(lambda r: httpx.Response(200, json={"routes": []})).estimate(
            *TEL_AVIV, *JERUSALEM
        )
        assert result["provider"] == "fallback"

    def test_zero_duration_uses_fallback(self):
        def handler(request):
            return httpx.Response(200, json={"routes": [{"duration": 0, "distance": 0}]})

        assert make_adapter(handler).estimate(*TEL_AVIV, *JERUSALEM)["provider"] == "fallback"


class TestRouteCache:
    def test_same_bucket_is_cached(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"routes": [{"duration": 600, "distance": 8000}]})

        adapter = make_adapter(handler, cache=TTLCache(3600, 100))
        first = adapter.estimate(*TEL_AVIV, *JERUSALEM, departure_time="2026-03-01T09:05:00Z")
        second = adapter.estimate(*TEL_AVIV, *JERUSALEM, departure_time="2026-03-01T09:25:00Z")

        assert first["cached"] is False
        assert second["cached"] is True
        assert second["provider"] == "osrm"
        assert len(calls) == 1

    def test_different_bucket_is_a_miss(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"routes": [{"duration": 600, "distance": 8000}]})

        adapter = make_adapter(handler, cache=TTLCache(3600, 100))
        adapter.estimate(*TEL_AVIV, *JERUSALEM, departure_time="2026-03-01T09:05:00Z")
        adapter.estimate(*TEL_AVIV, *JERUSALEM, departure_time="2026-03-01T09:35:00Z")

        assert len(calls) == 2

    def test_fallback_results_are_cached(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(503)

        adapter = make_adapter(handler, cache=TTLCache(3600, 100))
        adapter.estimate(*TEL_AVIV, *JERUSALEM, departure_time=DEPARTURE)
        second = adapter.estimate(*TEL_AVIV, *JERUSALEM, departure_time=DEPARTURE)

        assert second["provider"] == "fallback"
        assert second["cached"] is True
        assert len(calls) == 1
