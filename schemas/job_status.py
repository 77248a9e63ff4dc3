"""Pydantic schemas for the job status tools (single, bulk and scheduling)."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import field_validator

from schemas.common import (
    DbPathMixin,
    StatusChangeResponse,
    StrictIgnoreRequest,
    StrictResponse,
    validate_positive_id,
)


class UpdateJobStatusRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for update_job_status.

    status is checked against the JobStatus set by the tool so the error
    message lists the allowed values.
    """

    job_id: int
    status: Any
    dry_run: bool = False

    @field_validator("job_id")
    @classmethod
    def validate_job_id(cls, value: int) -> int:
        return validate_positive_id(value, "job_id")


class UpdateJobStatusResponse(StatusChangeResponse):
    """Response for update_job_status (action: updated, noop, would_update, blocked)."""

    job_id: int


class BulkUpdateJobStatusRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for bulk_update_job_status."""

    updates: list[Any]


class BulkUpdateJobStatusResultItem(StrictResponse):
    """Per-item result schema for bulk_update_job_status."""

    id: int | str
    success: bool
    previous_status: Optional[str] = None
    status: Optional[str] = None
    error: Optional[str] = None


class BulkUpdateJobStatusResponse(StrictResponse):
    """Success/failure response schema for bulk_update_job_status."""

    updated_count: int
    failed_count: int
    results: list[BulkUpdateJobStatusResultItem]


class ScheduleJobRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for schedule_job.

    scheduled_start_at=None unschedules the job.
    """

    job_id: int
    scheduled_start_at: Optional[str] = None
    estimated_duration_minutes: Optional[int] = None
    dry_run: bool = False

    @field_validator("job_id")
    @classmethod
    def validate_job_id(cls, value: int) -> int:
        return validate_positive_id(value, "job_id")

    @field_validator("estimated_duration_minutes")
    @classmethod
    def validate_duration(cls, value: Optional[int]) -> Optional[int]:
        if value is not None and value < 1:
            raise ValueError(f"Invalid estimated_duration_minutes: {value} must be at least 1")
        return value


class ScheduleJobResponse(StatusChangeResponse):
    """Response for schedule_job."""

    job_id: int
    scheduled_start_at: Optional[str] = None
    previous_scheduled_start_at: Optional[str] = None
    estimated_duration_minutes: Optional[int] = None
