"""
Input validation utilities for the FieldCRM MCP tools.

Validates limits, ids, cursors, status values and batch shapes. Every
validator raises ToolError(VALIDATION_ERROR) on bad input.
"""

import re
from datetime import datetime, timezone
from typing import Optional

from models.errors import create_validation_error
from models.status import JobStatus, QuoteStatus

# Constants for validation
DEFAULT_LIMIT = 50
MIN_LIMIT = 1
MAX_LIMIT = 1000

MAX_BATCH_SIZE = 100

_BASE64_PATTERN = re.compile(r"^[A-Za-z0-9+/=]+$")


def validate_limit(limit: Optional[int], default: int = DEFAULT_LIMIT) -> int:
    """
    Validate the limit parameter.

    Args:
        limit: The requested batch size (None for default)
        default: Value used when limit is None

    Returns:
        Validated limit value

    Raises:
        ToolError: If limit is invalid
    """
    if limit is None:
        return default

    # bool is a subclass of int in Python, reject explicitly
    if isinstance(limit, bool) or not isinstance(limit, int):
        raise create_validation_error(
            f"Invalid limit type: expected integer, got {type(limit).__name__}"
        )

    if limit < MIN_LIMIT:
        raise create_validation_error(f"Invalid limit: {limit} is below minimum of {MIN_LIMIT}")

    if limit > MAX_LIMIT:
        raise create_validation_error(f"Invalid limit: {limit} exceeds maximum of {MAX_LIMIT}")

    return limit


def validate_db_path(db_path: Optional[str]) -> Optional[str]:
    """
    Validate the db_path parameter.

    Returns:
        Validated db_path or None for default

    Raises:
        ToolError: If db_path is invalid
    """
    if db_path is None:
        return None

    if not isinstance(db_path, str):
        raise create_validation_error(
            f"Invalid db_path type: expected string, got {type(db_path).__name__}"
        )

    if not db_path.strip():
        raise create_validation_error("Invalid db_path: cannot be empty")

    return db_path


def validate_cursor(cursor: Optional[str]) -> Optional[str]:
    """
    Validate the cursor parameter format.

    This performs basic format validation. Full decoding is done by cursor.py.

    Raises:
        ToolError: If cursor format is invalid
    """
    if cursor is None:
        return None

    if not isinstance(cursor, str):
        raise create_validation_error(
            f"Invalid cursor type: expected string, got {type(cursor).__name__}"
        )

    if not cursor.strip():
        raise create_validation_error("Invalid cursor: cannot be empty")

    if not _BASE64_PATTERN.match(cursor):
        raise create_validation_error("Invalid cursor format: must be a valid base64 string")

    return cursor


def _validate_status_literal(status, field: str) -> str:
    if status is None:
        raise create_validation_error(f"Invalid {field}: cannot be null")

    if not isinstance(status, str):
        raise create_validation_error(
            f"Invalid {field} type: expected string, got {type(status).__name__}"
        )

    if not status:
        raise create_validation_error(f"Invalid {field}: cannot be empty")

    if status != status.strip():
        raise create_validation_error(
            f"Invalid {field}: '{status}' contains leading or trailing whitespace"
        )

    return status


def validate_job_status(status) -> str:
    """
    Validate a target job status (case-sensitive).

    Returns:
        Validated status string

    Raises:
        ToolError: If status is not a JobStatus literal
    """
    status = _validate_status_literal(status, "status")

    try:
        JobStatus(status)
    except ValueError:
        allowed = ", ".join(sorted(s.value for s in JobStatus))
        raise create_validation_error(
            f"Invalid status value: '{status}'. Allowed values are: {allowed}"
        )

    return status


def validate_quote_status(status) -> str:
    """
    Validate a target quote status (case-sensitive).

    Raises:
        ToolError: If status is not a QuoteStatus literal
    """
    status = _validate_status_literal(status, "status")

    try:
        QuoteStatus(status)
    except ValueError:
        allowed = ", ".join(sorted(s.value for s in QuoteStatus))
        raise create_validation_error(
            f"Invalid status value: '{status}'. Allowed values are: {allowed}"
        )

    return status


def validate_record_id(record_id, label: str = "job ID") -> int:
    """
    Validate a positive integer primary key.

    Args:
        record_id: The ID value to validate
        label: Name used in error messages, e.g. "job ID" or "quote ID"

    Returns:
        Validated ID as integer

    Raises:
        ToolError: If the ID is invalid
    """
    if record_id is None:
        raise create_validation_error(f"Invalid {label}: cannot be null")

    if isinstance(record_id, bool) or not isinstance(record_id, int):
        raise create_validation_error(
            f"Invalid {label} type: expected integer, got {type(record_id).__name__}"
        )

    if record_id < 1:
        raise create_validation_error(
            f"Invalid {label}: {record_id} must be a positive integer (>= 1)"
        )

    return record_id


def validate_job_id(job_id) -> int:
    """Validate a job primary key."""
    return validate_record_id(job_id, "job ID")


def validate_batch_size(updates: list) -> None:
    """
    Validate the batch size for bulk update operations.

    Empty batches are valid; more than MAX_BATCH_SIZE items are rejected.

    Raises:
        ToolError: If batch size exceeds the maximum
    """
    if not updates:
        return

    if len(updates) > MAX_BATCH_SIZE:
        raise create_validation_error(
            f"Batch size too large: {len(updates)} updates exceeds maximum of {MAX_BATCH_SIZE}"
        )


def validate_unique_job_ids(updates: list) -> None:
    """
    Validate that all job IDs in the batch are unique.

    Raises:
        ToolError: If duplicate job IDs are found
    """
    if not updates:
        return

    seen = set()
    duplicates = set()
    for update in updates:
        if not isinstance(update, dict) or "id" not in update:
            continue
        job_id = update["id"]
        # Unhashable ids are reported later by per-item validation
        if not isinstance(job_id, (int, str)):
            continue
        if job_id in seen:
            duplicates.add(job_id)
        else:
            seen.add(job_id)

    if duplicates:
        duplicate_list = ", ".join(sorted(str(dup_id) for dup_id in duplicates))
        raise create_validation_error(f"Duplicate job IDs found in batch: {duplicate_list}")


def get_current_utc_timestamp() -> str:
    """
    Generate a UTC timestamp in ISO 8601 format with millisecond precision.

    Example: 2026-02-04T03:47:36.966Z

    All records touched by one request receive the same timestamp.
    """
    now = datetime.now(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")
