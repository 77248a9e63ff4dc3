"""
MCP tool handler for geocode_address.

Cleans up a free-text address, resolves it to coordinates and reports
whether the result is usable for routing (inside the service area).
"""

from typing import Any, Dict, Optional

from pydantic import ValidationError

from config import get_config
from models.errors import ErrorCode, ToolError, create_internal_error
from schemas.geo import GeocodeAddressRequest, GeocodeAddressResponse
from utils.coords_policy import autofix_address_text, is_usable_job_coords
from utils.geo_cache import TTLCache
from utils.geocode_adapter import GeocodeAdapter, GoogleGeocoder
from utils.pydantic_error_mapper import map_pydantic_validation_error

_cache: Optional[TTLCache] = None


def _get_cache() -> TTLCache:
    global _cache
    if _cache is None:
        config = get_config()
        _cache = TTLCache(config.cache_ttl_seconds, config.cache_max_entries)
    return _cache


def build_geocode_adapter() -> GeocodeAdapter:
    """Build the configured geocoder sharing the process-wide cache."""
    config = get_config()

    fallback = None
    if config.geocode_fallback_api_key:
        fallback = GoogleGeocoder(
            api_key=config.geocode_fallback_api_key,
            user_agent=config.http_user_agent,
            timeout_seconds=config.http_timeout_seconds,
        )

    return GeocodeAdapter(
        base_url=config.geocode_base_url,
        user_agent=config.http_user_agent,
        timeout_seconds=config.http_timeout_seconds,
        cache=_get_cache(),
        country_suffix=config.geocode_country_suffix,
        fallback=fallback,
    )


def geocode_address(
    args: Dict[str, Any], adapter: Optional[GeocodeAdapter] = None
) -> Dict[str, Any]:
    """
    Geocode one address.

    Args:
        args: Dictionary containing parameters:
            - address (str): Free-text address
            - autofix (bool, optional): Apply address cleanup first (default True)
        adapter: Geocoder override, used by tests

    Returns:
        {"address", "query", "lat", "lng", "normalized_address", "provider",
         "usable", "fixes"}

        On error:
        {"error": {"code": str, "message": str, "retryable": bool}}
    """
    try:
        request = GeocodeAddressRequest.model_validate(args)

        if request.autofix:
            fixed = autofix_address_text(request.address)
            query, fixes = fixed["value"], fixed["fixes"]
        else:
            query, fixes = " ".join(request.address.split()), []

        geocoder = adapter or build_geocode_adapter()
        result = geocoder.geocode(query)
        if result is None:
            raise ToolError(ErrorCode.NOT_FOUND, f"No coordinates found for address: {query}")

        return GeocodeAddressResponse(
            address=request.address,
            query=query,
            lat=result["lat"],
            lng=result["lng"],
            normalized_address=result["normalized_address"],
            provider=result["provider"],
            usable=is_usable_job_coords(result["lat"], result["lng"]),
            fixes=fixes,
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
