"""
MCP tool handler for update_job_status.

Moves one job to a new status after checking the job transition table.
Policy refusals are returned as action="blocked", not as errors.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from db.jobs_writer import JobsWriter
from models.errors import ToolError, create_internal_error, create_not_found_error
from schemas.job_status import UpdateJobStatusRequest, UpdateJobStatusResponse
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.status_policy import validate_job_transition
from utils.validation import get_current_utc_timestamp, validate_job_status

logger = logging.getLogger(__name__)


def _build_response(
    job_id: int,
    previous_status: str,
    target_status: str,
    action: str,
    success: bool,
    dry_run: bool,
    error_message: Optional[str] = None,
    updated_at: Optional[str] = None,
) -> Dict[str, Any]:
    return UpdateJobStatusResponse(
        job_id=job_id,
        previous_status=previous_status,
        target_status=target_status,
        action=action,
        success=success,
        dry_run=dry_run,
        error=error_message,
        updated_at=updated_at,
    ).model_dump(exclude_none=True)


def update_job_status(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Update a single job's status with transition policy checks.

    Steps:
    1. Validates job_id, status and dry_run
    2. Reads the job's current status (NOT_FOUND if missing)
    3. target == current -> action "noop"
    4. Edge not in the job transition table -> action "blocked"
    5. dry_run -> action "would_update"
    6. Otherwise writes status + updated_at -> action "updated"

    Args:
        args: Dictionary containing parameters:
            - job_id (int): Job to update
            - status (str): Target JobStatus
            - dry_run (bool, optional): Preview without writing (default False)
            - db_path (str, optional): Database path override

    Returns:
        {"job_id", "previous_status", "target_status", "action", "success",
         "dry_run", "error"?, "updated_at"?}

        On system error:
        {"error": {"code": str, "message": str, "retryable": bool}}
    """
    try:
        request = UpdateJobStatusRequest.model_validate(args)
        target_status = validate_job_status(request.status)

        with JobsWriter(request.db_path) as writer:
            writer.ensure_updated_at_column()

            statuses = writer.get_job_statuses([request.job_id])
            if request.job_id not in statuses:
                raise create_not_found_error("Job", request.job_id)
            current_status = statuses[request.job_id]

            transition = validate_job_transition(current_status, target_status)
            if not transition.allowed:
                logger.info(f"Blocked job {request.job_id} status change: {transition.error_message}")
                return _build_response(
                    request.job_id,
                    str(current_status),
                    target_status,
                    action="blocked",
                    success=False,
                    dry_run=request.dry_run,
                    error_message=transition.error_message,
                )

            if transition.is_noop:
                return _build_response(
                    request.job_id, current_status, target_status, "noop", True, request.dry_run
                )

            if request.dry_run:
                return _build_response(
                    request.job_id, current_status, target_status, "would_update", True, True
                )

            timestamp = get_current_utc_timestamp()
            writer.update_job_status(request.job_id, target_status, timestamp)
            writer.commit()

        return _build_response(
            request.job_id,
            current_status,
            target_status,
            action="updated",
            success=True,
            dry_run=False,
            updated_at=timestamp,
        )

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
