"""
Database writer layer for quote status changes and draft editing.
"""

import sqlite3
from typing import Any, Dict, List, Optional

from db.base_writer import TransactionalWriter, status_value
from models.errors import (
    create_db_error,
    create_not_found_error,
    create_validation_error,
)
from models.status import QuoteStatus
from utils.line_items import to_number


class QuotesWriter(TransactionalWriter):
    """
    Context manager for write operations on quotes and quote_items.

    Usage:
        with QuotesWriter(db_path) as writer:
            state = writer.get_quote_state(7)
            writer.update_quote_status(7, "sent", timestamp)
            writer.commit()
    """

    def get_quote_state(self, quote_id: int) -> Optional[Dict[str, Any]]:
        """
        Read the status and conversion link of one quote.

        Returns:
            {"id", "status", "converted_job_id"} or None if the quote is missing

        Raises:
            ToolError: If query execution fails
        """
        conn = self._require_conn()

        try:
            row = conn.execute(
                "SELECT id, status, converted_job_id FROM quotes WHERE id = ?", (quote_id,)
            ).fetchone()
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        if row is None:
            return None
        return {"id": row["id"], "status": row["status"], "converted_job_id": row["converted_job_id"]}

    def update_quote_status(self, quote_id: int, status: str, timestamp: str) -> None:
        """
        Execute UPDATE of status and updated_at for a single quote.

        Raises:
            ToolError: If UPDATE execution fails or the quote does not exist
        """
        conn = self._require_conn()

        try:
            cursor = conn.execute(
                "UPDATE quotes SET status = ?, updated_at = ? WHERE id = ?",
                (status_value(status), timestamp, quote_id),
            )
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        if cursor.rowcount == 0:
            raise create_db_error(f"No quote found with id {quote_id}", retryable=False)

    def save_draft_quote(
        self,
        account_id: int,
        items: List[Dict[str, Any]],
        timestamp: str,
        quote_id: Optional[int] = None,
        title: Optional[str] = None,
        notes: Optional[str] = None,
    ) -> int:
        """
        Create a new draft quote or overwrite an existing draft.

        Existing quotes are editable only while in 'draft' status and before
        they have been converted into a job. Line items are replaced
        wholesale and re-numbered in input order.

        Args:
            account_id: Client account the quote belongs to
            items: Lines with description, quantity and unit_price
            timestamp: ISO 8601 UTC timestamp for created_at/updated_at
            quote_id: Existing draft to overwrite, or None to create one
            title: Optional quote title
            notes: Optional free-text notes

        Returns:
            The ID of the saved quote

        Raises:
            ToolError: NOT_FOUND if the account or quote is missing,
                VALIDATION_ERROR if the quote is not an editable draft,
                DB_ERROR on query failures
        """
        conn = self._require_conn()

        try:
            account = conn.execute(
                "SELECT id FROM accounts WHERE id = ?", (account_id,)
            ).fetchone()
            if account is None:
                raise create_not_found_error("Account", account_id)

            if quote_id is not None:
                state = self.get_quote_state(quote_id)
                if state is None:
                    raise create_not_found_error("Quote", quote_id)
                if state["status"] != QuoteStatus.DRAFT.value:
                    raise create_validation_error(
                        f"Quote {quote_id} can only be edited in 'draft' status "
                        f"(current: '{state['status']}')"
                    )
                if state["converted_job_id"]:
                    raise create_validation_error(
                        f"Quote {quote_id} was converted to job {state['converted_job_id']} "
                        "and can no longer be edited"
                    )

                conn.execute(
                    """
                    UPDATE quotes
                    SET account_id = ?, title = ?, notes = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (account_id, title, notes, timestamp, quote_id),
                )
            else:
                cursor = conn.execute(
                    """
                    INSERT INTO quotes (account_id, status, title, notes, created_at, updated_at)
                    VALUES (?, ?, ?, ?, ?, ?)
                    """,
                    (account_id, QuoteStatus.DRAFT.value, title, notes, timestamp, timestamp),
                )
                quote_id = cursor.lastrowid

            conn.execute("DELETE FROM quote_items WHERE quote_id = ?", (quote_id,))

            rows = []
            for index, item in enumerate(items):
                quantity = to_number(item.get("quantity"))
                unit_price = to_number(item.get("unit_price"))
                rows.append(
                    (
                        quote_id,
                        item.get("description") or "",
                        quantity,
                        unit_price,
                        quantity * unit_price,
                        index,
                    )
                )

            conn.executemany(
                """
                INSERT INTO quote_items
                    (quote_id, description, quantity, unit_price, line_total, sort_order)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                rows,
            )

        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        return quote_id
