"""
Tool-level tests for geocode_address and estimate_route.

Adapters are injected with an httpx.MockTransport client so no request
leaves the process.
"""

import httpx
import pytest

from tools.estimate_route import estimate_route
from tools.geocode_address import geocode_address
from utils.geo_cache import TTLCache
from utils.geocode_adapter import GeocodeAdapter
from utils.route_adapter import RouteAdapter

TEL_AVIV = {"lat": 32.0853, "lng": 34.7818}
JERUSALEM = {"lat": 31.7683, "lng": 35.2137}


def geocoder(handler):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return GeocodeAdapter(
        "http://nominatim.test", "FieldCRM-Test", 5.0, country_suffix="Israel", client=client
    )


def router(handler, cache=None):
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return RouteAdapter("http://osrm.test", "FieldCRM-Test", 5.0, cache=cache, client=client)


def nominatim_hit(lat, lon, name="Herzl 10, Tel Aviv-Yafo"):
    def handler(request):
        return httpx.Response(200, json=[{"lat": lat, "lon": lon, "display_name": name}])

    return handler


class TestGeocodeAddress:
    def test_autofix_and_usable_result(self):
        result = geocode_address(
            {"address": "Herzl 10 Tel Aviv"}, adapter=geocoder(nominatim_hit("32.0853", "34.7818"))
        )

        assert result["query"] == "Herzl 10, Tel Aviv"
        assert result["fixes"] == ["add_city_comma"]
        assert result["address"] == "Herzl 10 Tel Aviv"
        assert result["lat"] == 32.0853
        assert result["provider"] == "nominatim"
        assert result["usable"] is True

    def test_autofix_disabled_only_collapses_spaces(self):
        result = geocode_address(
            {"address": "Herzl  10   Tel Aviv", "autofix": False},
            adapter=geocoder(nominatim_hit("32.0853", "34.7818")),
        )

        assert result["query"] == "Herzl 10 Tel Aviv"
        assert result["fixes"] == []

    def test_result_outside_service_area_is_not_usable(self):
        result = geocode_address(
            {"address": "Broadway 1, New York"},
            adapter=geocoder(nominatim_hit("40.7128", "-74.0060", "New York")),
        )

        assert result["usable"] is False
        assert result["normalized_address"] == "New York"

    def test_unknown_address(self):
        result = geocode_address(
            {"address": "Nowhere 1, Atlantis"},
            adapter=geocoder(lambda request: httpx.Response(200, json=[])),
        )

        assert result["error"]["code"] == "NOT_FOUND"
        assert "Nowhere 1, Atlantis" in result["error"]["message"]

    def test_provider_failure(self):
        result = geocode_address(
            {"address": "Herzl 10, Tel Aviv"},
            adapter=geocoder(lambda request: httpx.Response(503, text="busy")),
        )

        assert result["error"]["code"] == "UPSTREAM_ERROR"
        assert result["error"]["retryable"] is True

    @pytest.mark.parametrize(
        "args, fragment",
        [({"address": "   "}, "Invalid address"), ({}, "address"), ({"address": 12}, "address")],
    )
    def test_validation_errors(self, args, fragment):
        result = geocode_address(args, adapter=geocoder(nominatim_hit("32.0", "34.8")))

        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert fragment in result["error"]["message"]


class TestEstimateRoute:
    DEPARTURE = "2026-03-02T09:47:00Z"

    def test_osrm_route(self):
        def handler(request):
            return httpx.Response(
                200, json={"code": "Ok", "routes": [{"duration": 3721.4, "distance": 65432.6}]}
            )

        result = estimate_route(
            {"origin": TEL_AVIV, "destination": JERUSALEM, "departure_time": self.DEPARTURE},
            adapter=router(handler),
        )

        assert result == {
            "duration_seconds": 3721,
            "distance_meters": 65433,
            "provider": "osrm",
            "departure_bucket": "2026-03-02T09:30:00.000Z",
            "cached": False,
        }

    def test_second_call_is_cached(self):
        calls = []

        def handler(request):
            calls.append(request)
            return httpx.Response(200, json={"routes": [{"duration": 600, "distance": 5000}]})

        adapter = router(handler, cache=TTLCache(3600, 16))
        args = {"origin": TEL_AVIV, "destination": JERUSALEM, "departure_time": self.DEPARTURE}

        estimate_route(args, adapter=adapter)
        result = estimate_route(args, adapter=adapter)

        assert result["cached"] is True
        assert len(calls) == 1

    def test_router_down_uses_fallback(self):
        result = estimate_route(
            {"origin": TEL_AVIV, "destination": JERUSALEM},
            adapter=router(lambda request: httpx.Response(502)),
        )

        assert result["provider"] == "fallback"
        assert result["duration_seconds"] >= 60
        assert result["distance_meters"] > 50000

    def test_numeric_strings_are_accepted(self):
        result = estimate_route(
            {"origin": {"lat": "32.0853", "lng": "34.7818"}, "destination": JERUSALEM},
            adapter=router(lambda request: httpx.Response(500)),
        )
        assert result["provider"] == "fallback"

    @pytest.mark.parametrize(
        "args, fragment",
        [
            ({"origin": {"lat": 95, "lng": 34.7}, "destination": JERUSALEM}, "outside [-90, 90]"),
            ({"origin": TEL_AVIV, "destination": {"lat": 31.7, "lng": 190}}, "outside [-180, 180]"),
            ({"origin": TEL_AVIV}, "destination"),
            ({"origin": {"lat": "nan", "lng": 34.7}, "destination": JERUSALEM}, "origin.lat"),
            ({"origin": TEL_AVIV, "destination": {"lat": 31.7, "lng": "inf"}}, "destination.lng"),
        ],
    )
    def test_validation_errors(self, args, fragment):
        result = estimate_route(args, adapter=router(lambda request: httpx.Response(500)))

        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert fragment in result["error"]["message"]
