"""
MCP tool handler for list_jobs.

Read-only, cursor-paginated job listing with optional status and account
filters, newest jobs first.
"""

from typing import Any, Dict

from pydantic import ValidationError

from db.jobs_reader import get_connection, query_jobs
from models.errors import ToolError, create_internal_error
from models.job import to_job_schema
from schemas.jobs import ListJobsRequest, ListJobsResponse
from utils.cursor import decode_cursor
from utils.pagination import paginate_results
from utils.pydantic_error_mapper import map_pydantic_validation_error


def list_jobs(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    List jobs in deterministic pages.

    Steps:
    1. Validates input parameters (limit, cursor, status, account_id, db_path)
    2. Decodes the pagination cursor if provided
    3. Queries limit+1 rows ordered by (created_at DESC, id DESC)
    4. Computes has_more / next_cursor and maps rows to the job schema

    Args:
        args: Dictionary containing optional parameters:
            - limit (int): Page size (1-1000, default 50)
            - cursor (str): Opaque cursor from a previous page
            - status (str): Only jobs in this JobStatus
            - account_id (int): Only jobs of this client
            - db_path (str): Database path override

    Returns:
        {"jobs": [...], "count": int, "has_more": bool, "next_cursor": str|None}

        On error:
        {"error": {"code": str, "message": str, "retryable": bool}}
    """
    try:
        request = ListJobsRequest.model_validate(args)
        cursor_state = decode_cursor(request.cursor)

        with get_connection(request.db_path) as conn:
            rows = query_jobs(
                conn=conn,
                limit=request.limit,
                cursor=cursor_state,
                status=request.status,
                account_id=request.account_id,
            )

        page, has_more, next_cursor = paginate_results(rows, request.limit)
        jobs = [to_job_schema(row) for row in page]

        return ListJobsResponse(
            jobs=jobs,
            count=len(jobs),
            has_more=has_more,
            next_cursor=next_cursor,
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
