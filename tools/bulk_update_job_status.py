"""
MCP tool handler for bulk_update_job_status.

Applies a batch of job status changes in one atomic transaction. Every item
must pass validation, exist, and follow the job transition table from its
current status; otherwise nothing is written.
"""

from typing import Any, Dict, List, Optional

from pydantic import ValidationError

from db.jobs_writer import JobsWriter
from models.errors import ToolError, create_internal_error
from schemas.job_status import BulkUpdateJobStatusRequest, BulkUpdateJobStatusResponse
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.status_policy import validate_job_transition
from utils.validation import (
    get_current_utc_timestamp,
    validate_batch_size,
    validate_job_id,
    validate_job_status,
    validate_unique_job_ids,
)


def _item_key(update: Any, index: int) -> Any:
    if isinstance(update, dict) and isinstance(update.get("id"), (int, str)):
        return update["id"]
    return f"item_{index}"


def validate_update_item(update: Any, index: int) -> Optional[str]:
    """
    Validate a single update item structure and values.

    Returns:
        None if valid, error message string if invalid
    """
    if not isinstance(update, dict):
        return f"Update item at index {index} is not an object"

    if "id" not in update:
        return "Missing required field: 'id'"

    if "status" not in update:
        return "Missing required field: 'status'"

    try:
        validate_job_id(update["id"])
        validate_job_status(update["status"])
    except ToolError as e:
        return e.message

    return None


def collect_item_failures(
    updates: List[Any], writer: JobsWriter
) -> tuple[Dict[Any, str], Dict[int, str]]:
    """
    Collect per-item validation, existence and transition failures.

    Returns:
        (failures, current_statuses): failures maps item key to error
        message; current_statuses maps job id to its stored status
    """
    failures: Dict[Any, str] = {}

    for index, update in enumerate(updates):
        error = validate_update_item(update, index)
        if error:
            failures[_item_key(update, index)] = error

    # Existence and policy checks only make sense on a well-formed batch
    if failures:
        return failures, {}

    job_ids = [update["id"] for update in updates]
    current_statuses = writer.get_job_statuses(job_ids)

    for update in updates:
        job_id = update["id"]
        if job_id not in current_statuses:
            failures[job_id] = f"Job ID {job_id} does not exist"
            continue

        transition = validate_job_transition(current_statuses[job_id], update["status"])
        if not transition.allowed:
            failures[job_id] = transition.error_message

    return failures, current_statuses


def build_success_response(
    updates: List[Dict[str, Any]], current_statuses: Dict[int, str], written_count: int
) -> Dict[str, Any]:
    results = [
        {
            "id": update["id"],
            "success": True,
            "previous_status": current_statuses[update["id"]],
            "status": update["status"],
        }
        for update in updates
    ]
    return BulkUpdateJobStatusResponse(
        updated_count=written_count, failed_count=0, results=results
    ).model_dump(exclude_none=True)


def build_failure_response(updates: List[Any], failures: Dict[Any, str]) -> Dict[str, Any]:
    """
    Build a failure response with one result per input item.

    Items without their own failure are reported as not applied, since the
    batch is rolled back as a whole.
    """
    results = []
    for index, update in enumerate(updates):
        key = _item_key(update, index)
        error_msg = failures.get(key) or "Not applied: another item in the batch failed"
        results.append({"id": key, "success": False, "error": error_msg})

    return BulkUpdateJobStatusResponse(
        updated_count=0, failed_count=len(failures), results=results
    ).model_dump(exclude_none=True)


def bulk_update_job_status(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Update multiple job statuses in a single atomic transaction.

    Steps:
    1. Validates request shape and batch size (max 100)
    2. Rejects duplicate job IDs
    3. Opens a transaction and runs the updated_at schema preflight
    4. Validates every item, checks existence and the transition table
    5. On any failure: rollback, return per-item results
    6. Otherwise writes all non-noop changes with one shared timestamp

    Args:
        args: Dictionary containing parameters:
            - updates (list): Items of {"id": int, "status": str}
            - db_path (str, optional): Database path override

    Returns:
        {"updated_count": int, "failed_count": int, "results": [...]}

        On system error:
        {"error": {"code": str, "message": str, "retryable": bool}}
    """
    try:
        request = BulkUpdateJobStatusRequest.model_validate(args)
        updates = request.updates

        validate_batch_size(updates)
        if not updates:
            return {"updated_count": 0, "failed_count": 0, "results": []}

        validate_unique_job_ids(updates)

        with JobsWriter(request.db_path) as writer:
            writer.ensure_updated_at_column()

            failures, current_statuses = collect_item_failures(updates, writer)
            if failures:
                writer.rollback()
                return build_failure_response(updates, failures)

            timestamp = get_current_utc_timestamp()
            written = 0
            for update in updates:
                if current_statuses[update["id"]] == update["status"]:
                    continue
                writer.update_job_status(
                    job_id=update["id"], status=update["status"], timestamp=timestamp
                )
                written += 1

            writer.commit()
            return build_success_response(updates, current_statuses, written)

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
