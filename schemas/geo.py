"""Pydantic schemas for geocode_address and estimate_route."""

from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, field_validator, model_validator

from schemas.common import StrictIgnoreRequest, StrictResponse


class GeocodeAddressRequest(StrictIgnoreRequest):
    """Request schema for geocode_address."""

    address: str
    autofix: bool = True

    @field_validator("address")
    @classmethod
    def validate_address(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("cannot be empty")
        return value


class GeocodeAddressResponse(StrictResponse):
    """Success response schema for geocode_address."""

    address: str
    query: str
    lat: float
    lng: float
    normalized_address: str
    provider: str
    usable: bool
    fixes: list[str] = []


class Point(BaseModel):
    """A latitude/longitude pair; numeric strings are accepted."""

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    lat: float
    lng: float

    @model_validator(mode="after")
    def validate_ranges(self) -> "Point":
        if not -90 <= self.lat <= 90:
            raise ValueError(f"lat {self.lat} is outside [-90, 90]")
        if not -180 <= self.lng <= 180:
            raise ValueError(f"lng {self.lng} is outside [-180, 180]")
        return self


class EstimateRouteRequest(StrictIgnoreRequest):
    """Request schema for estimate_route."""

    origin: Point
    destination: Point
    departure_time: Optional[str] = None


class EstimateRouteResponse(StrictResponse):
    """Success response schema for estimate_route."""

    duration_seconds: int
    distance_meters: int
    provider: str
    departure_bucket: str
    cached: bool
