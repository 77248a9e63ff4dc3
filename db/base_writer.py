"""
Transactional SQLite writer base shared by the jobs and quotes writers.

Subclasses add table-specific statements; this class owns the connection
lifecycle, explicit transactions and rollback-on-exception semantics.
"""

import logging
import sqlite3
from enum import Enum
from pathlib import Path
from typing import Optional

from db.schema import resolve_db_path
from models.errors import create_db_error, create_db_not_found_error

logger = logging.getLogger(__name__)


def status_value(status) -> str:
    """Unwrap Enum members so SQLite stores the plain literal."""
    return status.value if isinstance(status, Enum) else status


class TransactionalWriter:
    """
    Context manager that opens a read-write connection inside a transaction.

    The database file must already exist; writers never create it.
    """

    def __init__(self, db_path: Optional[str] = None):
        self.db_path = db_path
        self.resolved_path: Optional[Path] = None
        self.conn: Optional[sqlite3.Connection] = None
        self._in_transaction = False

    def __enter__(self):
        """
        Open connection and begin transaction.

        Raises:
            ToolError: If database file doesn't exist or connection fails
        """
        self.resolved_path = resolve_db_path(self.db_path)

        if not self.resolved_path.exists() or not self.resolved_path.is_file():
            raise create_db_not_found_error(str(self.resolved_path))

        try:
            self.conn = sqlite3.connect(str(self.resolved_path))
            self.conn.row_factory = sqlite3.Row
            # No-op once a transaction is open
            self.conn.execute("PRAGMA foreign_keys = ON")
            self.conn.execute("BEGIN")
            self._in_transaction = True

            return self

        except sqlite3.OperationalError as e:
            error_msg = str(e)
            if "unable to open database" in error_msg.lower():
                raise create_db_not_found_error(str(self.resolved_path)) from e
            raise create_db_error(error_msg, retryable=True, original_error=e) from e

        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Rollback on exception, close connection always."""
        try:
            if exc_type is not None and self._in_transaction:
                self.rollback()
        finally:
            if self.conn is not None:
                self.conn.close()
                self.conn = None

        return False

    def _require_conn(self) -> sqlite3.Connection:
        if self.conn is None:
            raise create_db_error("Connection not established", retryable=False)
        return self.conn

    def commit(self) -> None:
        """
        Commit the transaction and open a new one so the writer stays usable.

        Raises:
            ToolError: If commit fails
        """
        conn = self._require_conn()

        if not self._in_transaction:
            return

        try:
            conn.commit()
            conn.execute("BEGIN")
            self._in_transaction = True
        except sqlite3.Error as e:
            raise create_db_error(
                f"Failed to commit transaction: {str(e)}", retryable=True, original_error=e
            ) from e

    def rollback(self) -> None:
        """
        Rollback the transaction.

        Rollback failures are logged, not raised, since rollback runs during
        error handling.
        """
        if self.conn is None or not self._in_transaction:
            return

        try:
            self.conn.rollback()
            self._in_transaction = False
        except sqlite3.Error as e:
            logger.warning(f"Rollback failed: {e}")
