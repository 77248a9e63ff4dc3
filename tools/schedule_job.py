"""
MCP tool handler for schedule_job.

Sets or clears a job's scheduled start time. The job status is always
derived from the scheduling policy, never passed in by the caller.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from db.jobs_writer import JobsWriter
from models.errors import (
    ToolError,
    create_internal_error,
    create_not_found_error,
    create_validation_error,
)
from models.status import JobStatus
from schemas.job_status import ScheduleJobRequest, ScheduleJobResponse
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.schedule_validity import LEGACY_SCHEDULE_CUTOFF_ISO, normalize_scheduled_at
from utils.status_policy import get_status_for_scheduling, is_job_status
from utils.validation import get_current_utc_timestamp

logger = logging.getLogger(__name__)


def get_status_for_unscheduling(current_status: Any) -> Optional[str]:
    """
    Derive the status a job adopts when its start time is cleared.

    Returns:
        The new status, or None when a done job would lose its schedule
    """
    if not is_job_status(current_status):
        return JobStatus.WAITING_SCHEDULE.value
    if current_status == JobStatus.DONE.value:
        return None
    if current_status == JobStatus.WAITING_EXECUTION.value:
        return JobStatus.WAITING_SCHEDULE.value
    return current_status


def schedule_job(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Schedule or unschedule a job.

    With a start time the new status is get_status_for_scheduling(current):
    quote -> waiting_schedule, waiting_schedule/waiting_execution ->
    waiting_execution, done stays done. Without one the schedule is cleared
    and waiting_execution falls back to waiting_schedule; done jobs cannot
    be unscheduled.

    Args:
        args: Dictionary containing parameters:
            - job_id (int): Job to schedule
            - scheduled_start_at (str|None): ISO 8601 start, None to unschedule
            - estimated_duration_minutes (int, optional): New duration
            - dry_run (bool, optional): Preview without writing (default False)
            - db_path (str, optional): Database path override

    Returns:
        {"job_id", "previous_status", "target_status", "action", "success",
         "dry_run", "scheduled_start_at", "previous_scheduled_start_at",
         "estimated_duration_minutes", "error"?, "updated_at"?}

        On error:
        {"error": {"code": str, "message": str, "retryable": bool}}
    """
    try:
        request = ScheduleJobRequest.model_validate(args)

        scheduled_start_at = None
        if request.scheduled_start_at is not None and request.scheduled_start_at.strip():
            scheduled_start_at = normalize_scheduled_at(request.scheduled_start_at)
            if scheduled_start_at is None:
                raise create_validation_error(
                    f"Invalid scheduled_start_at: '{request.scheduled_start_at}' is not a valid "
                    f"ISO 8601 timestamp on or after {LEGACY_SCHEDULE_CUTOFF_ISO}"
                )

        with JobsWriter(request.db_path) as writer:
            writer.ensure_updated_at_column()

            state = writer.get_job_schedule_state(request.job_id)
            if state is None:
                raise create_not_found_error("Job", request.job_id)

            current_status = state["status"]
            previous_start = normalize_scheduled_at(state["scheduled_start_at"])
            duration = request.estimated_duration_minutes or state["estimated_duration_minutes"]

            def respond(action: str, success: bool, target: str, **extra: Any) -> Dict[str, Any]:
                return ScheduleJobResponse(
                    job_id=request.job_id,
                    previous_status=str(current_status),
                    target_status=target,
                    action=action,
                    success=success,
                    dry_run=request.dry_run,
                    scheduled_start_at=scheduled_start_at,
                    previous_scheduled_start_at=previous_start,
                    estimated_duration_minutes=duration,
                    **extra,
                ).model_dump(exclude_none=True)

            if scheduled_start_at is not None:
                target_status = get_status_for_scheduling(current_status).value
            else:
                target_status = get_status_for_unscheduling(current_status)
                if target_status is None:
                    message = f"Job {request.job_id} is done and cannot be unscheduled"
                    logger.info(message)
                    return respond("blocked", False, str(current_status), error=message)

            duration_unchanged = (
                request.estimated_duration_minutes is None
                or request.estimated_duration_minutes == state["estimated_duration_minutes"]
            )
            if (
                target_status == current_status
                and scheduled_start_at == previous_start
                and duration_unchanged
            ):
                return respond("noop", True, target_status)

            if request.dry_run:
                return respond("would_update", True, target_status)

            timestamp = get_current_utc_timestamp()
            writer.schedule_job(
                job_id=request.job_id,
                scheduled_start_at=scheduled_start_at,
                status=target_status,
                timestamp=timestamp,
                estimated_duration_minutes=request.estimated_duration_minutes,
            )
            writer.commit()

            return respond("updated", True, target_status, updated_at=timestamp)

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
