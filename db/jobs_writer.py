"""
Database writer layer for job status, scheduling and coordinate updates.

Provides write access to the jobs table with transaction management and
atomic batch update semantics. Status values written here must already
have passed the status policy in utils/status_policy.py.
"""

import sqlite3
from typing import Any, Dict, List, Optional

from db.base_writer import TransactionalWriter, status_value
from models.errors import create_db_error


class JobsWriter(TransactionalWriter):
    """
    Context manager for write operations on the jobs table.

    Provides transaction management with automatic rollback on exceptions
    and guaranteed connection cleanup.

    Usage:
        with JobsWriter(db_path) as writer:
            writer.ensure_updated_at_column()
            statuses = writer.get_job_statuses([1, 2, 3])
            writer.update_job_status(1, "waiting_schedule", timestamp)
            writer.commit()
    """

    def ensure_updated_at_column(self) -> None:
        """
        Verify that the jobs table has an updated_at column.

        This is a schema preflight check that must pass before any updates
        are executed.

        Raises:
            ToolError: If the updated_at column is missing
        """
        conn = self._require_conn()

        try:
            columns = conn.execute("PRAGMA table_info(jobs)").fetchall()
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        column_names = [col["name"] for col in columns]
        if "updated_at" not in column_names:
            raise create_db_error(
                "Schema error: jobs table is missing required 'updated_at' column. "
                "Database migration required.",
                retryable=False,
            )

    def get_job_statuses(self, job_ids: List[int]) -> Dict[int, str]:
        """
        Read the current status of each requested job.

        Args:
            job_ids: Job IDs to look up

        Returns:
            Mapping of job ID to its stored status; missing jobs are absent

        Raises:
            ToolError: If query execution fails
        """
        conn = self._require_conn()

        if not job_ids:
            return {}

        placeholders = ",".join("?" * len(job_ids))
        query = f"SELECT id, status FROM jobs WHERE id IN ({placeholders})"

        try:
            rows = conn.execute(query, job_ids).fetchall()
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        return {row["id"]: row["status"] for row in rows}

    def get_job_schedule_state(self, job_id: int) -> Optional[Dict[str, Any]]:
        """
        Read the fields schedule_job compares against.

        Returns:
            {"id", "status", "scheduled_start_at", "estimated_duration_minutes"}
            or None if the job does not exist

        Raises:
            ToolError: If query execution fails
        """
        conn = self._require_conn()

        try:
            row = conn.execute(
                """
                SELECT id, status, scheduled_start_at, estimated_duration_minutes
                FROM jobs
                WHERE id = ?
                """,
                (job_id,),
            ).fetchone()
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        return {key: row[key] for key in row.keys()} if row is not None else None

    def update_job_status(self, job_id: int, status: str, timestamp: str) -> None:
        """
        Execute UPDATE of status and updated_at for a single job.

        Raises:
            ToolError: If UPDATE execution fails or the job does not exist
        """
        conn = self._require_conn()

        try:
            cursor = conn.execute(
                """
                UPDATE jobs
                SET status = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (status_value(status), timestamp, job_id),
            )
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        if cursor.rowcount == 0:
            raise create_db_error(f"No job found with id {job_id}", retryable=False)

    def schedule_job(
        self,
        job_id: int,
        scheduled_start_at: Optional[str],
        status: str,
        timestamp: str,
        estimated_duration_minutes: Optional[int] = None,
    ) -> None:
        """
        Write a job's scheduled start time together with its derived status.

        Passing scheduled_start_at=None clears the schedule.

        Args:
            job_id: The job ID to update
            scheduled_start_at: Normalized ISO 8601 UTC start, or None
            status: Status derived by the scheduling policy
            timestamp: ISO 8601 UTC timestamp for updated_at
            estimated_duration_minutes: Optional new duration; None keeps the stored one

        Raises:
            ToolError: If UPDATE execution fails or the job does not exist
        """
        conn = self._require_conn()

        try:
            cursor = conn.execute(
                """
                UPDATE jobs
                SET scheduled_start_at = ?,
                    status = ?,
                    estimated_duration_minutes = COALESCE(?, estimated_duration_minutes),
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    scheduled_start_at,
                    status_value(status),
                    estimated_duration_minutes,
                    timestamp,
                    job_id,
                ),
            )
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        if cursor.rowcount == 0:
            raise create_db_error(f"No job found with id {job_id}", retryable=False)

    def update_job_coordinates(
        self, job_id: int, lat: Optional[float], lng: Optional[float], timestamp: str
    ) -> None:
        """
        Store geocoded coordinates on a job; None clears them.

        Raises:
            ToolError: If UPDATE execution fails or the job does not exist
        """
        conn = self._require_conn()

        try:
            cursor = conn.execute(
                """
                UPDATE jobs
                SET lat = ?,
                    lng = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (lat, lng, timestamp, job_id),
            )
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        if cursor.rowcount == 0:
            raise create_db_error(f"No job found with id {job_id}", retryable=False)

