"""
Database writer layer for invoice records.

A record is written as pending before the invoicing provider is called and
updated with the provider's answer afterwards, so every attempt leaves a row.
"""

import sqlite3
from typing import Optional

from db.base_writer import TransactionalWriter, status_value
from models.errors import create_db_error
from models.status import InvoiceStatus


class InvoicesWriter(TransactionalWriter):
    """
    Context manager for write operations on the invoices table.

    Usage:
        with InvoicesWriter(db_path) as writer:
            invoice_id = writer.create_invoice_record(7, 1, 305, 600, 108, 708, "ILS", ts)
            writer.commit()
            ...
            writer.record_provider_result(invoice_id, "draft", ts, provider_doc_id="abc")
            writer.commit()
    """

    def create_invoice_record(
        self,
        job_id: int,
        account_id: Optional[int],
        doc_type: int,
        total: float,
        vat_amount: float,
        grand_total: float,
        currency: str,
        timestamp: str,
    ) -> int:
        """
        Insert a pending invoice row.

        Returns:
            The new invoice ID

        Raises:
            ToolError: If the INSERT fails
        """
        conn = self._require_conn()

        try:
            cursor = conn.execute(
                """
                INSERT INTO invoices
                    (job_id, account_id, doc_type, status, total, vat_amount, grand_total,
                     currency, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
                """,
                (
                    job_id,
                    account_id,
                    doc_type,
                    InvoiceStatus.PENDING.value,
                    total,
                    vat_amount,
                    grand_total,
                    currency,
                    timestamp,
                    timestamp,
                ),
            )
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        return cursor.lastrowid

    def record_provider_result(
        self,
        invoice_id: int,
        status: str,
        timestamp: str,
        provider_doc_id: Optional[str] = None,
        provider_doc_number: Optional[str] = None,
        provider_doc_url: Optional[str] = None,
        error_message: Optional[str] = None,
    ) -> None:
        """
        Store the provider outcome on an invoice row.

        Document fields left as None keep their stored value; error_message
        is always overwritten.

        Raises:
            ToolError: If the UPDATE fails or the invoice does not exist
        """
        conn = self._require_conn()

        try:
            cursor = conn.execute(
                """
                UPDATE invoices
                SET status = ?,
                    provider_doc_id = COALESCE(?, provider_doc_id),
                    provider_doc_number = COALESCE(?, provider_doc_number),
                    provider_doc_url = COALESCE(?, provider_doc_url),
                    error_message = ?,
                    updated_at = ?
                WHERE id = ?
                """,
                (
                    status_value(status),
                    provider_doc_id,
                    provider_doc_number,
                    provider_doc_url,
                    error_message,
                    timestamp,
                    invoice_id,
                ),
            )
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        if cursor.rowcount == 0:
            raise create_db_error(f"No invoice found with id {invoice_id}", retryable=False)
