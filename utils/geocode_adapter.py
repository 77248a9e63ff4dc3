"""
Address geocoding through Nominatim with an optional Google fallback.

Lookup order: cache -> Nominatim -> Google Geocoding (only when an API key
is configured). Successful lookups are cached by the hash of the
normalized address.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from models.errors import ToolError, create_validation_error
from utils.coords_policy import parse_coord
from utils.geo_cache import TTLCache, geocode_cache_key, normalize_address_key
from utils.http_client import HttpAdapter

logger = logging.getLogger(__name__)

GOOGLE_GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"


class GoogleGeocoder(HttpAdapter):
    """Fallback geocoder backed by the Google Geocoding API."""

    provider = "google"

    def __init__(
        self,
        api_key: str,
        user_agent: str,
        timeout_seconds: float,
        client: Optional[httpx.Client] = None,
        base_url: str = GOOGLE_GEOCODE_URL,
    ):
        super().__init__(base_url, user_agent, timeout_seconds, client)
        self.api_key = api_key

    def _secrets(self) -> tuple:
        return (self.api_key,)

    def lookup(self, query: str) -> Optional[Dict[str, Any]]:
        """
        Geocode one query string.

        Returns:
            {"lat", "lng", "normalized_address", "provider"} or None when
            the address is unknown

        Raises:
            ToolError: UPSTREAM_ERROR on transport, HTTP or API status failures
        """
        response = self._request("GET", self.base_url, params={"address": query, "key": self.api_key})
        if not response.is_success:
            raise self._status_error(response, "geocode")

        body = self._json(response, "geocode")
        status = body.get("status") if isinstance(body, dict) else None
        if status == "ZERO_RESULTS":
            return None
        if status != "OK":
            raise self._status_error(response, f"geocode ({status or 'unknown status'})")

        for item in body.get("results") or []:
            location = (item.get("geometry") or {}).get("location") or {}
            lat, lng = parse_coord(location.get("lat")), parse_coord(location.get("lng"))
            if lat is None or lng is None:
                continue
            return {
                "lat": lat,
                "lng": lng,
                "normalized_address": item.get("formatted_address") or query,
                "provider": self.provider,
            }
        return None


class GeocodeAdapter(HttpAdapter):
    """
    Primary geocoder (Nominatim search API) with cache and fallback.

    Usage:
        adapter = GeocodeAdapter(base_url, user_agent, 8.0, cache=TTLCache(86400, 2048))
        result = adapter.geocode("Herzl 10, Tel Aviv")
    """

    provider = "nominatim"

    def __init__(
        self,
        base_url: str,
        user_agent: str,
        timeout_seconds: float,
        cache: Optional[TTLCache] = None,
        country_suffix: Optional[str] = None,
        fallback: Optional[GoogleGeocoder] = None,
        client: Optional[httpx.Client] = None,
    ):
        super().__init__(base_url, user_agent, timeout_seconds, client)
        self.cache = cache
        self.country_suffix = (country_suffix or "").strip()
        self.fallback = fallback

    def build_query(self, normalized: str) -> str:
        """Append the country suffix unless the address already ends with it."""
        if not self.country_suffix:
            return normalized
        if normalized.lower().endswith(self.country_suffix.lower()):
            return normalized
        return f"{normalized}, {self.country_suffix}"

    def _search(self, query: str) -> Optional[Dict[str, Any]]:
        response = self._request(
            "GET",
            f"{self.base_url}/search",
            params={"q": query, "format": "json", "limit": "1"},
        )
        if not response.is_success:
            raise self._status_error(response, "geocode")

        body = self._json(response, "geocode")
        first = body[0] if isinstance(body, list) and body else None
        if not isinstance(first, dict):
            return None

        lat, lng = parse_coord(first.get("lat")), parse_coord(first.get("lon"))
        if lat is None or lng is None:
            return None

        return {
            "lat": lat,
            "lng": lng,
            "normalized_address": first.get("display_name") or query,
            "provider": self.provider,
        }

    def geocode(self, address: str) -> Optional[Dict[str, Any]]:
        """
        Resolve an address to coordinates.

        Returns:
            {"lat", "lng", "normalized_address", "provider"}, where provider
            is "cache", "nominatim" or "google"; None when no provider knows
            the address

        Raises:
            ToolError: VALIDATION_ERROR for a blank address, UPSTREAM_ERROR
                when the providers fail and nothing was found
        """
        normalized = normalize_address_key(address)
        if not normalized:
            raise create_validation_error("Invalid address: cannot be empty")

        key = geocode_cache_key(normalized)
        if self.cache is not None:
            cached = self.cache.get(key)
            if cached is not None:
                return {**cached, "provider": "cache"}

        query = self.build_query(normalized)
        primary_error: Optional[ToolError] = None
        try:
            result = self._search(query)
        except ToolError as e:
            primary_error = e
            result = None

        if result is None and self.fallback is not None:
            logger.info(f"Falling back to {self.fallback.provider} geocoding")
            result = self.fallback.lookup(query)

        if result is None:
            if primary_error is not None:
                raise primary_error
            return None

        if self.cache is not None:
            self.cache.set(key, result)
        return dict(result)
