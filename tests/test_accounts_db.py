"""
Unit tests for the accounts reader and AccountsWriter.
"""

import os
import sqlite3
import tempfile

import pytest

from db.accounts_reader import (
    NO_CLIENT_LABEL,
    find_client_by_phone,
    get_account_label,
    get_client,
    list_clients,
    normalize_phone,
)
from db.accounts_writer import AccountsWriter
from db.jobs_reader import get_connection
from db.schema import bootstrap_schema
from models.errors import ErrorCode, ToolError

TIMESTAMP = "2026-02-01T12:00:00.000Z"


@pytest.fixture
def temp_db():
    """Three accounts: two with contacts, one referenced by a job and a quote."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    conn = sqlite3.connect(path)
    bootstrap_schema(conn)
    conn.executemany(
        "INSERT INTO accounts (account_name, client_type, status, created_at) VALUES (?, ?, ?, ?)",
        [
            ("Dana Levi", "private", "active", "2026-01-01T00:00:00.000Z"),
            ("Cohen Baths Ltd", "bath_company", "lead", "2026-01-02T00:00:00.000Z"),
            ("Old Client", "private", "inactive", "2026-01-03T00:00:00.000Z"),
        ],
    )
    conn.executemany(
        """
        INSERT INTO contacts (account_id, full_name, phone, email, is_primary, created_at)
        VALUES (?, ?, ?, ?, ?, ?)
        """,
        [
            (1, "Dana Levi", "050-123 4567", "dana@example.com", 1, "2026-01-01T00:00:00.000Z"),
            (2, "Office", "03-5550000", None, 0, "2026-01-02T00:00:00.000Z"),
            (2, "Moshe Cohen", "052-7654321", "moshe@cohen.example", 0, "2026-01-02T01:00:00.000Z"),
        ],
    )
    conn.execute(
        "INSERT INTO jobs (account_id, title, created_at) VALUES (3, 'Leak check', ?)",
        ("2026-01-04T00:00:00.000Z",),
    )
    conn.execute(
        "INSERT INTO quotes (account_id, status, created_at) VALUES (3, 'draft', ?)",
        ("2026-01-04T00:00:00.000Z",),
    )
    conn.commit()
    conn.close()

    yield path

    try:
        os.unlink(path)
    except OSError:
        pass


def _count(path, table):
    conn = sqlite3.connect(path)
    try:
        return conn.execute(f"SELECT COUNT(*) FROM {table}").fetchone()[0]
    finally:
        conn.close()


class TestHelpers:
    def test_account_label(self):
        assert get_account_label({"account_name": "  Dana  "}) == "Dana"
        assert get_account_label({"account_name": "   "}) == NO_CLIENT_LABEL
        assert get_account_label(None) == NO_CLIENT_LABEL

    @pytest.mark.parametrize(
        "raw, digits",
        [("050-123 4567", "0501234567"), ("+972 (50) 123", "97250123"), (None, ""), ("abc", "")],
    )
    def test_normalize_phone(self, raw, digits):
        assert normalize_phone(raw) == digits


class TestAccountsReader:
    def test_list_newest_first(self, temp_db):
        with get_connection(temp_db) as conn:
            profiles = list_clients(conn)

        assert [p["account"]["id"] for p in profiles] == [3, 2, 1]
        assert profiles[2]["primary_contact"]["full_name"] == "Dana Levi"
        assert profiles[2]["primary_contact"]["is_primary"] is True
        assert profiles[0]["primary_contact"] is None
        assert profiles[0]["contacts"] == []

    def test_first_contact_is_primary_when_none_flagged(self, temp_db):
        with get_connection(temp_db) as conn:
            profile = get_client(conn, 2)

        assert profile["primary_contact"]["full_name"] == "Office"
        assert [c["full_name"] for c in profile["contacts"]] == ["Office", "Moshe Cohen"]

    @pytest.mark.parametrize(
        "search, expected",
        [
            ("dana", [1]),
            ("BATHS", [2]),
            ("050-123", [1]),
            ("example.com", [1]),
            ("moshe", []),
            ("   ", [3, 2, 1]),
        ],
    )
    def test_search(self, temp_db, search, expected):
        with get_connection(temp_db) as conn:
            profiles = list_clients(conn, search=search)
        assert [p["account"]["id"] for p in profiles] == expected

    def test_get_missing_client(self, temp_db):
        with get_connection(temp_db) as conn:
            assert get_client(conn, 99) is None

    def test_find_by_phone_ignores_formatting(self, temp_db):
        with get_connection(temp_db) as conn:
            contact = find_client_by_phone(conn, "0501234567")
            assert contact["account_id"] == 1
            assert find_client_by_phone(conn, "(052) 765-4321")["full_name"] == "Moshe Cohen"
            assert find_client_by_phone(conn, "0500000000") is None
            assert find_client_by_phone(conn, "no digits") is None


class TestAccountsWriter:
    def test_create_client_adds_primary_contact(self, temp_db):
        with AccountsWriter(temp_db) as writer:
            account_id = writer.create_client(
                "Yael Mizrahi", TIMESTAMP, phone="054-1112222", client_type="company"
            )
            writer.commit()

        with get_connection(temp_db) as conn:
            profile = get_client(conn, account_id)

        assert profile["account"]["account_name"] == "Yael Mizrahi"
        assert profile["account"]["client_type"] == "company"
        assert profile["account"]["status"] == "active"
        assert profile["account"]["updated_at"] == TIMESTAMP
        assert profile["primary_contact"]["full_name"] == "Yael Mizrahi"
        assert profile["primary_contact"]["phone"] == "054-1112222"

    def test_update_client_overwrites_primary_contact(self, temp_db):
        with AccountsWriter(temp_db) as writer:
            writer.update_client(1, "Dana Levi-Katz", TIMESTAMP, phone=None, status="inactive")
            writer.commit()

        with get_connection(temp_db) as conn:
            profile = get_client(conn, 1)

        assert profile["account"]["account_name"] == "Dana Levi-Katz"
        assert profile["account"]["status"] == "inactive"
        assert profile["primary_contact"]["full_name"] == "Dana Levi-Katz"
        assert profile["primary_contact"]["phone"] is None
        assert len(profile["contacts"]) == 1

    def test_update_client_without_primary_inserts_one(self, temp_db):
        with AccountsWriter(temp_db) as writer:
            writer.update_client(2, "Cohen Baths Ltd", TIMESTAMP, phone="03-1234567")
            writer.commit()

        with get_connection(temp_db) as conn:
            profile = get_client(conn, 2)

        assert len(profile["contacts"]) == 3
        assert profile["primary_contact"]["is_primary"] is True
        assert profile["primary_contact"]["phone"] == "03-1234567"

    def test_update_missing_client(self, temp_db):
        with pytest.raises(ToolError) as exc_info:
            with AccountsWriter(temp_db) as writer:
                writer.update_client(99, "Nobody", TIMESTAMP)

        assert exc_info.value.code == ErrorCode.NOT_FOUND
        assert exc_info.value.message == "Account 99 does not exist"

    def test_delete_client_with_contacts(self, temp_db):
        with AccountsWriter(temp_db) as writer:
            assert writer.delete_client(2) == 2
            writer.commit()

        assert _count(temp_db, "accounts") == 2
        assert _count(temp_db, "contacts") == 1

    def test_referenced_client_is_kept(self, temp_db):
        with pytest.raises(ToolError) as exc_info:
            with AccountsWriter(temp_db) as writer:
                writer.delete_client(3)

        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR
        assert "referenced by 1 job(s) and 1 quote(s)" in exc_info.value.message
        assert _count(temp_db, "accounts") == 3

    def test_check_deletable_counts_contacts(self, temp_db):
        with AccountsWriter(temp_db) as writer:
            assert writer.check_deletable(1) == 1
            assert writer.account_exists(1) is True
            assert writer.account_exists(99) is False


class TestSchemaUpgrade:
    def test_old_accounts_table_gains_columns(self, tmp_path):
        path = str(tmp_path / "old.db")
        conn = sqlite3.connect(path)
        conn.execute(
            "CREATE TABLE accounts (id INTEGER PRIMARY KEY AUTOINCREMENT, "
            "account_name TEXT NOT NULL, client_type TEXT, status TEXT, created_at TEXT NOT NULL)"
        )
        conn.commit()

        bootstrap_schema(conn)
        columns = {row[1] for row in conn.execute("PRAGMA table_info(accounts)").fetchall()}
        conn.close()

        assert {"notes", "updated_at"} <= columns
