"""
MCP tool handler for estimate_route.

Drive time between two points via OSRM, falling back to a straight-line
estimate when the router is unreachable.
"""

from typing import Any, Dict, Optional

from pydantic import ValidationError

from config import get_config
from models.errors import ToolError, create_internal_error
from schemas.geo import EstimateRouteRequest, EstimateRouteResponse
from utils.geo_cache import TTLCache
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.route_adapter import RouteAdapter

_cache: Optional[TTLCache] = None


def build_route_adapter() -> RouteAdapter:
    """Build the configured router sharing the process-wide cache."""
    global _cache
    config = get_config()
    if _cache is None:
        _cache = TTLCache(config.cache_ttl_seconds, config.cache_max_entries)

    return RouteAdapter(
        base_url=config.route_base_url,
        user_agent=config.http_user_agent,
        timeout_seconds=config.http_timeout_seconds,
        cache=_cache,
    )


def estimate_route(args: Dict[str, Any], adapter: Optional[RouteAdapter] = None) -> Dict[str, Any]:
    """
    Estimate the drive between origin and destination.

    Args:
        args: Dictionary containing parameters:
            - origin ({"lat", "lng"}): Start point
            - destination ({"lat", "lng"}): End point
            - departure_time (str, optional): ISO 8601 departure, bucketed
              to 30 minutes for caching
        adapter: Router override, used by tests

    Returns:
        {"duration_seconds", "distance_meters", "provider", "departure_bucket", "cached"}
        where provider is "osrm" or "fallback"
    """
    try:
        request = EstimateRouteRequest.model_validate(args)

        router = adapter or build_route_adapter()
        result = router.estimate(
            request.origin.lat,
            request.origin.lng,
            request.destination.lat,
            request.destination.lng,
            departure_time=request.departure_time,
        )

        return EstimateRouteResponse(**result).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
