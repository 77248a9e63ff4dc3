"""Shared schema primitives for MCP tool request/response models."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from utils.validation import DEFAULT_LIMIT, MAX_LIMIT, MIN_LIMIT


def validate_optional_non_empty_str(value: Optional[str], field_name: str) -> Optional[str]:
    """Validate optional string fields that cannot be empty/whitespace."""
    if value is None:
        return None
    if not value.strip():
        raise ValueError(f"Invalid {field_name}: cannot be empty")
    return value


def validate_positive_id(value: Optional[int], field_name: str) -> Optional[int]:
    """Validate optional primary keys (must be >= 1 when present)."""
    if value is None:
        return None
    if value < 1:
        raise ValueError(f"Invalid {field_name}: {value} must be a positive integer (>= 1)")
    return value


class StrictIgnoreRequest(BaseModel):
    """Request base with strict typing and ignored unknown fields."""

    model_config = ConfigDict(extra="ignore", strict=True)


class StrictResponse(BaseModel):
    """Response/result base with strict typing and forbidden unknown fields."""

    model_config = ConfigDict(extra="forbid")


class DbPathMixin(BaseModel):
    """Reusable db_path field validation."""

    db_path: Optional[str] = None

    @field_validator("db_path")
    @classmethod
    def validate_db_path(cls, value: Optional[str]) -> Optional[str]:
        return validate_optional_non_empty_str(value, "db_path")


class LimitMixin(BaseModel):
    """Reusable page-size field: None means the default."""

    limit: int = DEFAULT_LIMIT

    @field_validator("limit", mode="before")
    @classmethod
    def coerce_limit_none(cls, value: Any) -> Any:
        if value is None:
            return DEFAULT_LIMIT
        return value

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, value: int) -> int:
        if value < MIN_LIMIT:
            raise ValueError(f"Invalid limit: {value} is below minimum of {MIN_LIMIT}")
        if value > MAX_LIMIT:
            raise ValueError(f"Invalid limit: {value} exceeds maximum of {MAX_LIMIT}")
        return value


class StatusChangeResponse(StrictResponse):
    """Common fields of single-record status change responses."""

    previous_status: str
    target_status: str
    action: str
    success: bool
    dry_run: bool
    error: Optional[str] = None
    updated_at: Optional[str] = None
