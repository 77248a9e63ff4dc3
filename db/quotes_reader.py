"""
Database reader layer for quotes and their line items.

Connections come from db.jobs_reader.get_connection (read-only).
"""

import sqlite3
from typing import Any, Dict, List, Optional

from db.accounts_reader import get_account_label
from models.errors import create_db_error

QUOTE_COLUMNS = """
    quotes.id,
    quotes.account_id,
    accounts.account_name,
    quotes.status,
    quotes.title,
    quotes.notes,
    quotes.converted_job_id,
    quotes.created_at,
    quotes.updated_at
"""


def get_quote_account_name(quote: Optional[Dict[str, Any]]) -> str:
    """Return the quote's client name, or a neutral label when unlinked."""
    return get_account_label(quote)


def _load_items(conn: sqlite3.Connection, quote_ids: List[int]) -> Dict[int, List[Dict[str, Any]]]:
    if not quote_ids:
        return {}

    placeholders = ",".join("?" * len(quote_ids))
    rows = conn.execute(
        f"""
        SELECT id, quote_id, description, quantity, unit_price, line_total, sort_order
        FROM quote_items
        WHERE quote_id IN ({placeholders})
        ORDER BY quote_id, sort_order, id
        """,
        quote_ids,
    ).fetchall()

    items: Dict[int, List[Dict[str, Any]]] = {quote_id: [] for quote_id in quote_ids}
    for row in rows:
        items[row["quote_id"]].append({key: row[key] for key in row.keys()})
    return items


def list_quotes(
    conn: sqlite3.Connection, account_id: Optional[int] = None
) -> List[Dict[str, Any]]:
    """
    List quotes newest first, each with its items ordered by sort_order.

    Args:
        conn: Database connection
        account_id: Optional account filter

    Raises:
        ToolError: If query execution fails
    """
    where = "WHERE quotes.account_id = ?" if account_id is not None else ""
    params = (account_id,) if account_id is not None else ()

    try:
        rows = conn.execute(
            f"""
            SELECT {QUOTE_COLUMNS}
            FROM quotes LEFT JOIN accounts ON accounts.id = quotes.account_id
            {where}
            ORDER BY quotes.created_at DESC, quotes.id DESC
            """,
            params,
        ).fetchall()

        quotes = [{key: row[key] for key in row.keys()} for row in rows]
        items = _load_items(conn, [quote["id"] for quote in quotes])
    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e

    for quote in quotes:
        quote["quote_items"] = items.get(quote["id"], [])
    return quotes


def get_quote(conn: sqlite3.Connection, quote_id: int) -> Optional[Dict[str, Any]]:
    """
    Fetch a single quote with its ordered items.

    Returns:
        Quote dictionary, or None when no such quote exists

    Raises:
        ToolError: If query execution fails
    """
    try:
        row = conn.execute(
            f"""
            SELECT {QUOTE_COLUMNS}
            FROM quotes LEFT JOIN accounts ON accounts.id = quotes.account_id
            WHERE quotes.id = ?
            """,
            (quote_id,),
        ).fetchone()

        if row is None:
            return None

        quote = {key: row[key] for key in row.keys()}
        quote["quote_items"] = _load_items(conn, [quote_id]).get(quote_id, [])
        return quote

    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e
