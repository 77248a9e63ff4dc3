"""
Database writer layer for client accounts and their primary contact.
"""

import sqlite3
from typing import Optional

from db.base_writer import TransactionalWriter, status_value
from models.errors import create_db_error, create_not_found_error, create_validation_error


class AccountsWriter(TransactionalWriter):
    """
    Context manager for write operations on accounts and contacts.

    The account name and the primary contact's full name are kept equal;
    both come from the client's full name.

    Usage:
        with AccountsWriter(db_path) as writer:
            account_id = writer.create_client("Dana Levi", timestamp, phone="050-1234567")
            writer.commit()
    """

    def account_exists(self, account_id: int) -> bool:
        conn = self._require_conn()
        try:
            row = conn.execute("SELECT 1 FROM accounts WHERE id = ?", (account_id,)).fetchone()
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e
        return row is not None

    def create_client(
        self,
        full_name: str,
        timestamp: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        address_text: Optional[str] = None,
        notes: Optional[str] = None,
        status: str = "active",
        client_type: str = "private",
    ) -> int:
        """
        Insert an account and its primary contact.

        Returns:
            The new account ID

        Raises:
            ToolError: If an INSERT fails
        """
        conn = self._require_conn()

        try:
            cursor = conn.execute(
                """
                INSERT INTO accounts
                    (account_name, client_type, status, notes, created_at, updated_at)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (
                    full_name,
                    status_value(client_type),
                    status_value(status),
                    notes,
                    timestamp,
                    timestamp,
                ),
            )
            account_id = cursor.lastrowid
            self._insert_primary_contact(
                account_id, full_name, phone, email, address_text, timestamp
            )
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        return account_id

    def update_client(
        self,
        account_id: int,
        full_name: str,
        timestamp: str,
        phone: Optional[str] = None,
        email: Optional[str] = None,
        address_text: Optional[str] = None,
        notes: Optional[str] = None,
        status: str = "active",
        client_type: str = "private",
    ) -> None:
        """
        Overwrite an account and its primary contact.

        Accounts that have no primary contact get one.

        Raises:
            ToolError: NOT_FOUND if the account is missing, DB_ERROR on query failures
        """
        conn = self._require_conn()

        if not self.account_exists(account_id):
            raise create_not_found_error("Account", account_id)

        try:
            conn.execute(
                """
                UPDATE accounts
                SET account_name = ?, client_type = ?, status = ?, notes = ?, updated_at = ?
                WHERE id = ?
                """,
                (
                    full_name,
                    status_value(client_type),
                    status_value(status),
                    notes,
                    timestamp,
                    account_id,
                ),
            )

            primary = conn.execute(
                """
                SELECT id FROM contacts
                WHERE account_id = ? AND is_primary = 1
                ORDER BY id
                LIMIT 1
                """,
                (account_id,),
            ).fetchone()

            if primary is None:
                self._insert_primary_contact(
                    account_id, full_name, phone, email, address_text, timestamp
                )
            else:
                conn.execute(
                    """
                    UPDATE contacts
                    SET full_name = ?, phone = ?, email = ?, address_text = ?, updated_at = ?
                    WHERE id = ?
                    """,
                    (full_name, phone, email, address_text, timestamp, primary["id"]),
                )
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

    def check_deletable(self, account_id: int) -> int:
        """
        Verify an account can be deleted.

        Accounts still referenced by jobs or quotes are kept.

        Returns:
            Number of contacts that a delete would remove

        Raises:
            ToolError: NOT_FOUND if the account is missing, VALIDATION_ERROR if
                jobs or quotes still reference it, DB_ERROR on query failures
        """
        conn = self._require_conn()

        if not self.account_exists(account_id):
            raise create_not_found_error("Account", account_id)

        try:
            jobs = conn.execute(
                "SELECT COUNT(*) FROM jobs WHERE account_id = ?", (account_id,)
            ).fetchone()[0]
            quotes = conn.execute(
                "SELECT COUNT(*) FROM quotes WHERE account_id = ?", (account_id,)
            ).fetchone()[0]
            contacts = conn.execute(
                "SELECT COUNT(*) FROM contacts WHERE account_id = ?", (account_id,)
            ).fetchone()[0]
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        if jobs or quotes:
            raise create_validation_error(
                f"Account {account_id} is referenced by {jobs} job(s) and "
                f"{quotes} quote(s) and cannot be deleted"
            )
        return contacts

    def delete_client(self, account_id: int) -> int:
        """
        Delete an account together with its contacts.

        Returns:
            Number of contacts deleted

        Raises:
            ToolError: see check_deletable
        """
        conn = self._require_conn()
        self.check_deletable(account_id)

        try:
            cursor = conn.execute("DELETE FROM contacts WHERE account_id = ?", (account_id,))
            deleted_contacts = cursor.rowcount
            conn.execute("DELETE FROM accounts WHERE id = ?", (account_id,))
        except sqlite3.Error as e:
            raise create_db_error(str(e), retryable=False, original_error=e) from e

        return deleted_contacts

    def _insert_primary_contact(
        self,
        account_id: int,
        full_name: str,
        phone: Optional[str],
        email: Optional[str],
        address_text: Optional[str],
        timestamp: str,
    ) -> None:
        self._require_conn().execute(
            """
            INSERT INTO contacts
                (account_id, full_name, phone, email, address_text, is_primary,
                 created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, 1, ?, ?)
            """,
            (account_id, full_name, phone, email, address_text, timestamp, timestamp),
        )
