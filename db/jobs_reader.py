"""
Database reader layer for job listing and calendar tools.

Provides read-only access to the jobs table with connection management
and deterministic query execution.
"""

import json
import logging
import sqlite3
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

from db.schema import resolve_db_path
from models.errors import create_db_error, create_db_not_found_error

logger = logging.getLogger(__name__)

JOB_COLUMNS = """
    jobs.id,
    jobs.account_id,
    accounts.account_name,
    jobs.title,
    jobs.description,
    jobs.status,
    jobs.priority,
    jobs.address_text,
    jobs.arrival_notes,
    jobs.lat,
    jobs.lng,
    jobs.scheduled_start_at,
    jobs.estimated_duration_minutes,
    jobs.line_items,
    jobs.created_at,
    jobs.updated_at
"""

JOB_FROM = "FROM jobs LEFT JOIN accounts ON accounts.id = jobs.account_id"


@contextmanager
def get_connection(db_path: Optional[str] = None):
    """
    Context manager for read-only SQLite connections.

    Ensures connections are always properly closed, even on errors.

    Args:
        db_path: Optional database path override

    Yields:
        sqlite3.Connection: Database connection

    Raises:
        ToolError: If database file doesn't exist or connection fails
    """
    resolved_path = resolve_db_path(db_path)

    if not resolved_path.exists() or not resolved_path.is_file():
        raise create_db_not_found_error(str(resolved_path))

    conn = None
    try:
        # URI mode allows the read-only flag
        uri = f"file:{resolved_path}?mode=ro"
        conn = sqlite3.connect(uri, uri=True)
        conn.row_factory = sqlite3.Row

        yield conn

    except sqlite3.OperationalError as e:
        error_msg = str(e)
        if "unable to open database" in error_msg.lower():
            raise create_db_not_found_error(str(resolved_path)) from e
        raise create_db_error(error_msg, retryable=True, original_error=e) from e

    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e

    finally:
        if conn is not None:
            conn.close()


def _decode_line_items(raw: Optional[str], job_id: Any) -> List[Dict[str, Any]]:
    if not raw:
        return []
    try:
        items = json.loads(raw)
    except (TypeError, ValueError):
        logger.warning(f"Job {job_id} has unparsable line_items; treating as empty")
        return []
    return items if isinstance(items, list) else []


def row_to_job_dict(row: sqlite3.Row) -> Dict[str, Any]:
    """Convert a joined jobs row into a plain dictionary with decoded line items."""
    record = {key: row[key] for key in row.keys()}
    record["line_items"] = _decode_line_items(record.get("line_items"), record.get("id"))
    return record


def query_jobs(
    conn: sqlite3.Connection,
    limit: int,
    cursor: Optional[Tuple[str, int]] = None,
    status: Optional[str] = None,
    account_id: Optional[int] = None,
) -> List[Dict[str, Any]]:
    """
    Query jobs newest first with optional filters.

    Results are ordered by (created_at DESC, id DESC) so pagination is
    deterministic and free of duplicates across pages.

    Args:
        conn: Database connection
        limit: Page size (limit+1 rows are fetched to compute has_more)
        cursor: Optional pagination cursor (created_at, id) tuple
        status: Optional exact status filter
        account_id: Optional account filter

    Returns:
        List of job records as dictionaries

    Raises:
        ToolError: If query execution fails
    """
    clauses: List[str] = []
    params: List[Any] = []

    if status is not None:
        clauses.append("jobs.status = ?")
        params.append(status)

    if account_id is not None:
        clauses.append("jobs.account_id = ?")
        params.append(account_id)

    if cursor is not None:
        cursor_ts, cursor_id = cursor
        clauses.append("(jobs.created_at < ? OR (jobs.created_at = ? AND jobs.id < ?))")
        params.extend([cursor_ts, cursor_ts, cursor_id])

    where = f"WHERE {' AND '.join(clauses)}" if clauses else ""
    query = f"""
        SELECT {JOB_COLUMNS}
        {JOB_FROM}
        {where}
        ORDER BY jobs.created_at DESC, jobs.id DESC
        LIMIT ?
    """
    params.append(limit + 1)

    try:
        rows = conn.execute(query, params).fetchall()
        return [row_to_job_dict(row) for row in rows]
    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e


def query_dated_jobs(conn: sqlite3.Connection) -> List[Dict[str, Any]]:
    """
    Query every job that carries a scheduled_start_at value.

    Stored values are not guaranteed to share one ISO spelling, so callers
    parse them before comparing against a window.

    Raises:
        ToolError: If query execution fails
    """
    query = f"""
        SELECT {JOB_COLUMNS}
        {JOB_FROM}
        WHERE jobs.scheduled_start_at IS NOT NULL
          AND TRIM(jobs.scheduled_start_at) != ''
        ORDER BY jobs.id ASC
    """
    try:
        rows = conn.execute(query).fetchall()
        return [row_to_job_dict(row) for row in rows]
    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e


def query_undated_jobs(conn: sqlite3.Connection, limit: int) -> List[Dict[str, Any]]:
    """
    Query jobs with an empty scheduled_start_at, newest first.

    Raises:
        ToolError: If query execution fails
    """
    query = f"""
        SELECT {JOB_COLUMNS}
        {JOB_FROM}
        WHERE jobs.scheduled_start_at IS NULL
           OR TRIM(jobs.scheduled_start_at) = ''
        ORDER BY jobs.created_at DESC, jobs.id DESC
        LIMIT ?
    """
    try:
        rows = conn.execute(query, (limit,)).fetchall()
        return [row_to_job_dict(row) for row in rows]
    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e

def query_job_coordinates(conn: sqlite3.Connection) -> List[Dict[str, Any]]:
    """
    Query id, title, address and coordinates of every job, newest first.

    Used by the coordinate repair script, which decides usability itself.

    Raises:
        ToolError: If query execution fails
    """
    query = """
        SELECT id, title, address_text, lat, lng, created_at
        FROM jobs
        ORDER BY created_at DESC, id DESC
    """
    try:
        rows = conn.execute(query).fetchall()
        return [{key: row[key] for key in row.keys()} for row in rows]
    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e


def get_job(conn: sqlite3.Connection, job_id: int) -> Optional[Dict[str, Any]]:
    """
    Fetch a single job by primary key.

    Returns:
        Job dictionary, or None when no such job exists

    Raises:
        ToolError: If query execution fails
    """
    query = f"""
        SELECT {JOB_COLUMNS}
        {JOB_FROM}
        WHERE jobs.id = ?
    """
    try:
        row = conn.execute(query, (job_id,)).fetchone()
        return row_to_job_dict(row) if row is not None else None
    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e
