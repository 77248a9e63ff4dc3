"""
Database reader layer for locally recorded invoices.

Connections come from db.jobs_reader.get_connection (read-only).
"""

import sqlite3
from typing import Any, Dict, List, Optional

from models.errors import create_db_error

INVOICE_COLUMNS = """
    id, job_id, account_id, doc_type, status, total, vat_amount, grand_total, currency,
    provider_doc_id, provider_doc_number, provider_doc_url, error_message,
    created_at, updated_at
"""


def list_invoices_by_job(conn: sqlite3.Connection, job_id: int) -> List[Dict[str, Any]]:
    """
    List a job's invoices newest first.

    Raises:
        ToolError: If query execution fails
    """
    try:
        rows = conn.execute(
            f"""
            SELECT {INVOICE_COLUMNS}
            FROM invoices
            WHERE job_id = ?
            ORDER BY created_at DESC, id DESC
            """,
            (job_id,),
        ).fetchall()
    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e

    return [{key: row[key] for key in row.keys()} for row in rows]


def get_latest_invoice_for_job(
    conn: sqlite3.Connection, job_id: int
) -> Optional[Dict[str, Any]]:
    invoices = list_invoices_by_job(conn, job_id)
    return invoices[0] if invoices else None


def get_invoice(conn: sqlite3.Connection, invoice_id: int) -> Optional[Dict[str, Any]]:
    """
    Fetch one invoice record.

    Raises:
        ToolError: If query execution fails
    """
    try:
        row = conn.execute(
            f"SELECT {INVOICE_COLUMNS} FROM invoices WHERE id = ?", (invoice_id,)
        ).fetchone()
    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e

    return {key: row[key] for key in row.keys()} if row is not None else None
