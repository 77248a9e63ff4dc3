"""
Database path resolution and schema bootstrap for the CRM database.

The CRM stores accounts with their contacts, jobs, quotes, quote line items
and invoice records in a single SQLite file. Readers and writers share the resolution rules below.
"""

import os
import sqlite3
from pathlib import Path
from typing import Dict, Optional

from models.errors import create_db_error

# Default database path relative to repository root
DEFAULT_DB_PATH = "data/crm.db"


def resolve_db_path(db_path: Optional[str] = None) -> Path:
    """
    Resolve the database path with support for overrides and defaults.

    Resolution order:
    1. Provided db_path parameter
    2. FIELDCRM_DB environment variable
    3. FIELDCRM_ROOT/data/crm.db
    4. Default path: data/crm.db

    Args:
        db_path: Optional database path override

    Returns:
        Resolved absolute Path to the database
    """
    if db_path is not None:
        path_str = db_path
    else:
        db_env = os.getenv("FIELDCRM_DB")
        if db_env:
            path_str = db_env
        else:
            root_env = os.getenv("FIELDCRM_ROOT")
            if root_env:
                return Path(root_env) / "data" / "crm.db"
            path_str = DEFAULT_DB_PATH

    path = Path(path_str)

    # Relative paths resolve from the repository root (db/ -> repo/)
    if not path.is_absolute():
        repo_root = Path(__file__).resolve().parents[1]
        path = repo_root / path

    return path


def ensure_parent_dirs(db_path: Path) -> None:
    """
    Ensure parent directories exist for the database file.

    Raises:
        ToolError: If directory creation fails
    """
    try:
        db_path.parent.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise create_db_error(
            f"Failed to create parent directories: {str(e)}", retryable=False, original_error=e
        ) from e


def _ensure_columns(conn: sqlite3.Connection, table: str, columns: Dict[str, str]) -> None:
    """Add columns missing from databases created before they existed."""
    existing = {row[1] for row in conn.execute(f"PRAGMA table_info({table})").fetchall()}
    for name, column_type in columns.items():
        if name not in existing:
            conn.execute(f"ALTER TABLE {table} ADD COLUMN {name} {column_type}")


def bootstrap_schema(conn: sqlite3.Connection) -> None:
    """
    Create the CRM tables and indexes if they don't exist.

    Creates:
    - accounts / contacts: client records and their people, one primary
    - jobs: units of field work with status, schedule, coordinates and
      JSON-encoded line items
    - quotes / quote_items: price quotations and their ordered lines
    - invoices: local record of every invoice document requested for a job

    This operation is idempotent - safe to call on existing databases.

    Raises:
        ToolError: If schema creation fails
    """
    try:
        conn.execute("""
            CREATE TABLE IF NOT EXISTS accounts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                account_name TEXT NOT NULL,
                client_type TEXT,
                status TEXT,
                notes TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT
            )
        """)
        _ensure_columns(conn, "accounts", {"notes": "TEXT", "updated_at": "TEXT"})

        conn.execute("""
            CREATE TABLE IF NOT EXISTS contacts (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                account_id INTEGER NOT NULL REFERENCES accounts(id),
                full_name TEXT NOT NULL,
                phone TEXT,
                email TEXT,
                address_text TEXT,
                notes TEXT,
                is_primary INTEGER NOT NULL DEFAULT 0,
                created_at TEXT NOT NULL,
                updated_at TEXT
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS jobs (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                account_id INTEGER REFERENCES accounts(id),
                title TEXT NOT NULL,
                description TEXT,
                status TEXT NOT NULL DEFAULT 'quote',
                priority TEXT NOT NULL DEFAULT 'normal',
                address_text TEXT,
                arrival_notes TEXT,
                lat REAL,
                lng REAL,
                scheduled_start_at TEXT,
                estimated_duration_minutes INTEGER,
                line_items TEXT NOT NULL DEFAULT '[]',
                created_at TEXT NOT NULL,
                updated_at TEXT
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS quotes (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                account_id INTEGER REFERENCES accounts(id),
                status TEXT NOT NULL DEFAULT 'draft',
                title TEXT,
                notes TEXT,
                converted_job_id INTEGER REFERENCES jobs(id),
                created_at TEXT NOT NULL,
                updated_at TEXT
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS quote_items (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                quote_id INTEGER NOT NULL REFERENCES quotes(id),
                description TEXT NOT NULL,
                quantity REAL NOT NULL,
                unit_price REAL NOT NULL,
                line_total REAL NOT NULL,
                sort_order INTEGER NOT NULL DEFAULT 0
            )
        """)

        conn.execute("""
            CREATE TABLE IF NOT EXISTS invoices (
                id INTEGER PRIMARY KEY AUTOINCREMENT,
                job_id INTEGER NOT NULL REFERENCES jobs(id),
                account_id INTEGER REFERENCES accounts(id),
                doc_type INTEGER NOT NULL,
                status TEXT NOT NULL DEFAULT 'pending',
                total REAL NOT NULL,
                vat_amount REAL NOT NULL,
                grand_total REAL NOT NULL,
                currency TEXT NOT NULL,
                provider_doc_id TEXT,
                provider_doc_number TEXT,
                provider_doc_url TEXT,
                error_message TEXT,
                created_at TEXT NOT NULL,
                updated_at TEXT
            )
        """)

        conn.execute("CREATE INDEX IF NOT EXISTS idx_jobs_status ON jobs(status)")
        conn.execute(
            "CREATE INDEX IF NOT EXISTS idx_jobs_scheduled_start_at ON jobs(scheduled_start_at)"
        )
        conn.execute("CREATE INDEX IF NOT EXISTS idx_jobs_account_id ON jobs(account_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_quotes_account_id ON quotes(account_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_quote_items_quote_id ON quote_items(quote_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_contacts_account_id ON contacts(account_id)")
        conn.execute("CREATE INDEX IF NOT EXISTS idx_invoices_job_id ON invoices(job_id)")

        conn.commit()

    except sqlite3.Error as e:
        raise create_db_error(
            f"Failed to bootstrap schema: {str(e)}", retryable=False, original_error=e
        ) from e
