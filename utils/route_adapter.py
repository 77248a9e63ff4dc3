"""
Drive time estimation through OSRM with a straight-line fallback.

Lookup order: cache -> OSRM -> haversine estimate. The fallback always
produces a value so dispatch views never lack an estimate; it is cached
like a real route.
"""

import logging
import math
from typing import Any, Dict, Optional

import httpx

from models.errors import ToolError
from utils.geo_cache import TTLCache, route_cache_key, to_departure_bucket
from utils.http_client import HttpAdapter

logger = logging.getLogger(__name__)

EARTH_RADIUS_METERS = 6371000
FALLBACK_SPEED_KMH = 45
MIN_FALLBACK_DURATION_SECONDS = 60


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def haversine_distance_meters(
    origin_lat: float, origin_lng: float, dest_lat: float, dest_lng: float
) -> int:
    """Great-circle distance in whole meters."""
    d_lat = math.radians(dest_lat - origin_lat)
    d_lng = math.radians(dest_lng - origin_lng)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(math.radians(origin_lat))
        * math.cos(math.radians(dest_lat))
        * math.sin(d_lng / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return _round_half_up(EARTH_RADIUS_METERS * c)


def fallback_route(
    origin_lat: float, origin_lng: float, dest_lat: float, dest_lng: float
) -> Dict[str, Any]:
    """
    Estimate a route from straight-line distance at 45 km/h.

    Durations are never shorter than one minute.
    """
    distance_meters = haversine_distance_meters(origin_lat, origin_lng, dest_lat, dest_lng)
    speed_mps = FALLBACK_SPEED_KMH * 1000 / 3600
    duration_seconds = max(
        MIN_FALLBACK_DURATION_SECONDS, _round_half_up(distance_meters / speed_mps)
    )
    return {
        "duration_seconds": duration_seconds,
        "distance_meters": distance_meters,
        "provider": "fallback",
    }


class RouteAdapter(HttpAdapter):
    """OSRM driving-route client."""

    provider = "osrm"

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout_seconds: float,
        cache: Optional[TTLCache] = None,
        client: Optional[httpx.Client] = None,
    ):
        super().__init__(base_url, user_agent, timeout_seconds, client)
        self.cache = cache

    def _osrm_route(self, key) -> Optional[Dict[str, Any]]:
        origin_lat, origin_lng, dest_lat, dest_lng, _ = key
        url = (
            f"{self.base_url}/route/v1/driving/"
            f"{origin_lng},{origin_lat};{dest_lng},{dest_lat}"
        )
        response = self._request(
            "GET", url, params={"overview": "false", "alternatives": "false", "steps": "false"}
        )
        if not response.is_success:
            raise self._status_error(response, "route")

        body = self._json(response, "route")
        routes = body.get("routes") if isinstance(body, dict) else None
        route = routes[0] if isinstance(routes, list) and routes else None
        if not isinstance(route, dict):
            return None

        duration = route.get("duration")
        distance = route.get("distance")
        if not isinstance(duration, (int, float)) or not isinstance(distance, (int, float)):
            return None
        if duration <= 0 or distance <= 0:
            return None

        return {
            "duration_seconds": _round_half_up(duration),
            "distance_meters": _round_half_up(distance),
            "provider": self.provider,
        }

    def estimate(
        self,
        origin_lat: float,
        origin_lng: float,
        dest_lat: float,
        dest_lng: float,
        departure_time: Any = None,
    ) -> Dict[str, Any]:
        """
        Estimate drive duration and distance between two points.

        Args:
            origin_lat, origin_lng: Start coordinates
            dest_lat, dest_lng: End coordinates
            departure_time: Optional ISO 8601 departure; bucketed to 30 minutes

        Returns:
            {"duration_seconds", "distance_meters", "provider",
             "departure_bucket", "cached"}
        """
        bucket = to_departure_bucket(departure_time)
        key = route_cache_key(origin_lat, origin_lng, dest_lat, dest_lng, bucket)

        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return {**cached, "departure_bucket": bucket, "cached": True}

        try:
            result = self._osrm_route(key)
        except ToolError as e:
            logger.warning(f"OSRM unavailable, using fallback estimate: {e.message}")
            result = None

        if result is None:
            result = fallback_route(origin_lat, origin_lng, dest_lat, dest_lng)

        if self.cache is not None:
            self.cache.set(key, result)
        return {**result, "departure_bucket": bucket, "cached": False}
