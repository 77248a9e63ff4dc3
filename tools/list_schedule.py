"""
MCP tool handler for list_schedule.

Calendar view: jobs whose start time falls inside a range, plus the backlog
of jobs that have no usable start time yet.
"""

from datetime import datetime
from typing import Any, Dict, List, Tuple

from pydantic import ValidationError

from config import get_config
from db.jobs_reader import get_connection, query_dated_jobs, query_undated_jobs
from models.errors import ToolError, create_internal_error, create_validation_error
from models.job import to_job_schema
from schemas.jobs import ListScheduleRequest, ListScheduleResponse
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.schedule_validity import (
    LEGACY_SCHEDULE_CUTOFF_ISO,
    get_schedule_query_from,
    normalize_scheduled_at,
    parse_valid_scheduled_at,
)


def split_dated_jobs(
    rows: List[Dict[str, Any]], start: datetime, end: datetime
) -> Tuple[List[Dict[str, Any]], List[Dict[str, Any]]]:
    """
    Partition dated rows by their parsed start time.

    Returns:
        (in_range, unusable): in_range holds rows inside [start, end] in
        calendar order; unusable holds rows whose value is unparsable or a
        legacy placeholder. Valid rows outside the window are dropped.
    """
    in_range = []
    unusable = []
    for row in rows:
        scheduled = parse_valid_scheduled_at(row.get("scheduled_start_at"))
        if scheduled is None:
            unusable.append(row)
        elif start <= scheduled <= end:
            in_range.append((scheduled, row))

    in_range.sort(key=lambda pair: (pair[0], pair[1]["id"]))
    return [row for _, row in in_range], unusable


def _newest_first(rows: List[Dict[str, Any]], limit: int) -> List[Dict[str, Any]]:
    ordered = sorted(rows, key=lambda row: (row.get("created_at") or "", row["id"]), reverse=True)
    return ordered[:limit]


def list_schedule(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return scheduled jobs in [range_start, range_end] and unscheduled jobs.

    A range_start that is unparsable or earlier than 2000-01-01 is clamped
    to the legacy cutoff, so placeholder dates never appear as scheduled.
    Jobs whose start time is NULL, unparsable or a legacy placeholder are
    listed as unscheduled instead. Stored start times are compared as
    instants, so any ISO spelling with an offset lands on the right day.

    Args:
        args: Dictionary containing parameters:
            - range_start (str): ISO 8601 lower bound (inclusive)
            - range_end (str): ISO 8601 upper bound (inclusive)
            - include_unscheduled (bool, optional): Default True
            - limit (int, optional): Max rows per list (default FIELDCRM_SCHEDULE_LIMIT)
            - db_path (str, optional): Database path override

    Returns:
        {"range_start", "range_end", "scheduled": [...], "scheduled_count",
         "unscheduled": [...], "unscheduled_count"}

        On error:
        {"error": {"code": str, "message": str, "retryable": bool}}
    """
    try:
        request = ListScheduleRequest.model_validate(args)

        range_start = get_schedule_query_from(request.range_start)
        range_end = normalize_scheduled_at(request.range_end)
        if range_end is None:
            raise create_validation_error(
                f"Invalid range_end: '{request.range_end}' is not a valid ISO 8601 timestamp "
                f"on or after {LEGACY_SCHEDULE_CUTOFF_ISO}"
            )
        if parse_valid_scheduled_at(range_end) < parse_valid_scheduled_at(range_start):
            raise create_validation_error(
                f"Invalid range: range_end {range_end} is before range_start {range_start}"
            )

        limit = request.limit or get_config().schedule_limit

        with get_connection(request.db_path) as conn:
            dated_rows = query_dated_jobs(conn)
            undated_rows = query_undated_jobs(conn, limit) if request.include_unscheduled else []

        in_range, unusable = split_dated_jobs(
            dated_rows, parse_valid_scheduled_at(range_start), parse_valid_scheduled_at(range_end)
        )
        scheduled = [to_job_schema(row) for row in in_range[:limit]]
        unscheduled = (
            [to_job_schema(row) for row in _newest_first(undated_rows + unusable, limit)]
            if request.include_unscheduled
            else []
        )

        return ListScheduleResponse(
            range_start=range_start,
            range_end=range_end,
            scheduled=scheduled,
            scheduled_count=len(scheduled),
            unscheduled=unscheduled,
            unscheduled_count=len(unscheduled),
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
