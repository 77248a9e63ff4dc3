"""
Database reader layer for client accounts and their contacts.

A client profile is an account plus its contacts, with the primary contact
picked out. Connections come from db.jobs_reader.get_connection (read-only).
"""

import re
import sqlite3
from typing import Any, Dict, List, Optional

from models.errors import create_db_error

NO_CLIENT_LABEL = "No client"

ACCOUNT_COLUMNS = "id, account_name, client_type, status, notes, created_at, updated_at"

CONTACT_COLUMNS = """
    id, account_id, full_name, phone, email, address_text, notes, is_primary,
    created_at, updated_at
"""

_NON_DIGITS = re.compile(r"\D")


def get_account_label(account: Optional[Dict[str, Any]]) -> str:
    """Return the trimmed account name, or a neutral label when there is none."""
    if not account:
        return NO_CLIENT_LABEL
    return str(account.get("account_name") or "").strip() or NO_CLIENT_LABEL


def normalize_phone(phone: Any) -> str:
    """Keep digits only, so "050-123 4567" and "0501234567" compare equal."""
    if phone is None:
        return ""
    return _NON_DIGITS.sub("", str(phone))


def _contact_dict(row: sqlite3.Row) -> Dict[str, Any]:
    contact = {key: row[key] for key in row.keys()}
    contact["is_primary"] = bool(contact["is_primary"])
    return contact


def _load_contacts(
    conn: sqlite3.Connection, account_ids: List[int]
) -> Dict[int, List[Dict[str, Any]]]:
    if not account_ids:
        return {}

    placeholders = ",".join("?" * len(account_ids))
    rows = conn.execute(
        f"""
        SELECT {CONTACT_COLUMNS}
        FROM contacts
        WHERE account_id IN ({placeholders})
        ORDER BY account_id, is_primary DESC, created_at ASC, id ASC
        """,
        account_ids,
    ).fetchall()

    contacts: Dict[int, List[Dict[str, Any]]] = {account_id: [] for account_id in account_ids}
    for row in rows:
        contacts[row["account_id"]].append(_contact_dict(row))
    return contacts


def _to_profile(account: Dict[str, Any], contacts: List[Dict[str, Any]]) -> Dict[str, Any]:
    primary = next((contact for contact in contacts if contact["is_primary"]), None)
    if primary is None and contacts:
        primary = contacts[0]
    return {"account": account, "primary_contact": primary, "contacts": contacts}


def _matches(profile: Dict[str, Any], search: str) -> bool:
    query = search.lower()
    account_name = profile["account"].get("account_name") or ""
    contact = profile["primary_contact"] or {}
    return (
        query in account_name.lower()
        or query in (contact.get("full_name") or "").lower()
        or query in (contact.get("phone") or "")
        or query in (contact.get("email") or "").lower()
    )


def list_clients(conn: sqlite3.Connection, search: Optional[str] = None) -> List[Dict[str, Any]]:
    """
    List client profiles newest first.

    Args:
        conn: Database connection
        search: Optional case-insensitive text matched against the account
            name and the primary contact's name, phone and email

    Raises:
        ToolError: If query execution fails
    """
    try:
        rows = conn.execute(
            f"SELECT {ACCOUNT_COLUMNS} FROM accounts ORDER BY created_at DESC, id DESC"
        ).fetchall()
        accounts = [{key: row[key] for key in row.keys()} for row in rows]
        contacts = _load_contacts(conn, [account["id"] for account in accounts])
    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e

    profiles = [_to_profile(account, contacts.get(account["id"], [])) for account in accounts]
    if search and search.strip():
        profiles = [profile for profile in profiles if _matches(profile, search.strip())]
    return profiles


def get_client(conn: sqlite3.Connection, account_id: int) -> Optional[Dict[str, Any]]:
    """
    Fetch one client profile.

    Returns:
        {"account", "primary_contact", "contacts"}, or None when the account
        does not exist

    Raises:
        ToolError: If query execution fails
    """
    try:
        row = conn.execute(
            f"SELECT {ACCOUNT_COLUMNS} FROM accounts WHERE id = ?", (account_id,)
        ).fetchone()
        if row is None:
            return None
        account = {key: row[key] for key in row.keys()}
        contacts = _load_contacts(conn, [account_id]).get(account_id, [])
    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e

    return _to_profile(account, contacts)


def find_client_by_phone(conn: sqlite3.Connection, phone: Any) -> Optional[Dict[str, Any]]:
    """
    Find the contact whose phone has the same digits as phone.

    Primary contacts win over secondary ones, then the oldest contact.

    Returns:
        The matching contact, or None when phone has no digits or nothing matches

    Raises:
        ToolError: If query execution fails
    """
    normalized = normalize_phone(phone)
    if not normalized:
        return None

    try:
        rows = conn.execute(
            f"""
            SELECT {CONTACT_COLUMNS}
            FROM contacts
            WHERE phone IS NOT NULL
            ORDER BY is_primary DESC, created_at ASC, id ASC
            """
        ).fetchall()
    except sqlite3.Error as e:
        raise create_db_error(str(e), retryable=False, original_error=e) from e

    for row in rows:
        if normalize_phone(row["phone"]) == normalized:
            return _contact_dict(row)
    return None
