"""Pydantic schemas for the job listing and calendar tools."""

from __future__ import annotations

import re
from typing import Any, Optional

from pydantic import ConfigDict, field_validator, model_validator

from schemas.common import (
    DbPathMixin,
    LimitMixin,
    StrictIgnoreRequest,
    StrictResponse,
    validate_positive_id,
)
from utils.status_policy import JOB_STATUS_VALUES, is_job_status

_BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/=]+$")


class JobRecord(StrictResponse):
    """Job record returned by list_jobs and list_schedule.

    Accepts raw joined database rows: extra columns are ignored and empty
    strings become None.
    """

    model_config = ConfigDict(extra="ignore")

    id: int
    account_id: Optional[int] = None
    account_name: Optional[str] = None
    title: Optional[str] = None
    description: Optional[str] = None
    status: Optional[str] = None
    status_label: Optional[str] = None
    status_color: Optional[str] = None
    next_action: Optional[dict[str, str]] = None
    priority: Optional[str] = None
    address_text: Optional[str] = None
    arrival_notes: Optional[str] = None
    lat: Optional[float] = None
    lng: Optional[float] = None
    has_usable_coords: bool = False
    scheduled_start_at: Optional[str] = None
    estimated_duration_minutes: Optional[int] = None
    line_items: list[dict[str, Any]] = []
    line_items_subtotal: float = 0.0
    created_at: Optional[str] = None
    updated_at: Optional[str] = None

    @model_validator(mode="before")
    @classmethod
    def empty_strings_to_none(cls, data: Any) -> Any:
        if isinstance(data, dict):
            return {k: (None if v == "" else v) for k, v in data.items()}
        return data


class ListJobsRequest(LimitMixin, DbPathMixin, StrictIgnoreRequest):
    """Request schema for list_jobs."""

    cursor: Optional[str] = None
    status: Optional[str] = None
    account_id: Optional[int] = None

    @field_validator("cursor")
    @classmethod
    def validate_cursor(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if not value.strip():
            raise ValueError("Invalid cursor: cannot be empty")
        if not _BASE64_PATTERN.match(value):
            raise ValueError("Invalid cursor format: must be a valid base64 string")
        return value

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        if not is_job_status(value):
            allowed = ", ".join(sorted(JOB_STATUS_VALUES))
            raise ValueError(f"Invalid status value: '{value}'. Allowed values are: {allowed}")
        return value

    @field_validator("account_id")
    @classmethod
    def validate_account_id(cls, value: Optional[int]) -> Optional[int]:
        return validate_positive_id(value, "account_id")


class ListJobsResponse(StrictResponse):
    """Success response schema for list_jobs."""

    jobs: list[JobRecord]
    count: int
    has_more: bool
    next_cursor: Optional[str] = None


class ListScheduleRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for list_schedule.

    range_start / range_end are ISO 8601 timestamps; the range is inclusive.
    """

    range_start: str
    range_end: str
    include_unscheduled: bool = True
    limit: Optional[int] = None

    @field_validator("range_start", "range_end")
    @classmethod
    def validate_range_bound(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("cannot be empty")
        return value

    @field_validator("limit")
    @classmethod
    def validate_limit(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 1:
            raise ValueError(f"Invalid limit: {value} is below minimum of 1")
        return value


class ListScheduleResponse(StrictResponse):
    """Success response schema for list_schedule."""

    range_start: str
    range_end: str
    scheduled: list[JobRecord]
    scheduled_count: int
    unscheduled: list[JobRecord]
    unscheduled_count: int
