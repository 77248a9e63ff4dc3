"""
Integration tests for the client tools: list_clients, get_client,
save_client and delete_client.
"""

import os
import sqlite3
import tempfile

import pytest

from db.schema import bootstrap_schema
from tools.delete_client import delete_client
from tools.get_client import get_client
from tools.list_clients import list_clients
from tools.save_client import save_client


@pytest.fixture
def temp_db():
    """Dana (with a primary contact) and a company with a quote and no contacts."""
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    conn = sqlite3.connect(path)
    bootstrap_schema(conn)
    conn.executemany(
        "INSERT INTO accounts (account_name, client_type, status, created_at) VALUES (?, ?, ?, ?)",
        [
            ("Dana Levi", "private", "active", "2026-01-01T00:00:00.000Z"),
            ("Hadar Baths", "bath_company", "lead", "2026-01-02T00:00:00.000Z"),
        ],
    )
    conn.execute(
        """
        INSERT INTO contacts (account_id, full_name, phone, email, is_primary, created_at)
        VALUES (1, 'Dana Levi', '050-123 4567', 'dana@example.com', 1, ?)
        """,
        ("2026-01-01T00:00:00.000Z",),
    )
    conn.execute(
        "INSERT INTO quotes (account_id, status, created_at) VALUES (2, 'sent', ?)",
        ("2026-01-03T00:00:00.000Z",),
    )
    conn.commit()
    conn.close()

    yield path

    try:
        os.unlink(path)
    except OSError:
        pass


class TestListClients:
    def test_all_clients(self, temp_db):
        result = list_clients({"db_path": temp_db})

        assert result["count"] == 2
        assert [c["account"]["account_name"] for c in result["clients"]] == [
            "Hadar Baths",
            "Dana Levi",
        ]
        assert result["clients"][0]["primary_contact"] is None

    def test_search(self, temp_db):
        result = list_clients({"db_path": temp_db, "search": "dana@"})
        assert [c["account"]["id"] for c in result["clients"]] == [1]

    def test_phone_lookup(self, temp_db):
        result = list_clients({"db_path": temp_db, "phone": "+0501234567", "search": "Hadar"})

        assert result["count"] == 1
        assert result["clients"][0]["account"]["id"] == 1
        assert result["clients"][0]["primary_contact"]["phone"] == "050-123 4567"

    def test_unknown_phone(self, temp_db):
        result = list_clients({"db_path": temp_db, "phone": "054-0000000"})
        assert result == {"clients": [], "count": 0}

    def test_blank_phone_rejected(self, temp_db):
        result = list_clients({"db_path": temp_db, "phone": "  "})
        assert result["error"]["message"] == "Invalid phone: cannot be empty"


class TestGetClient:
    def test_profile(self, temp_db):
        result = get_client({"db_path": temp_db, "account_id": 1})

        assert set(result) == {"account", "primary_contact", "contacts"}
        assert result["account"]["status"] == "active"
        assert result["primary_contact"]["email"] == "dana@example.com"
        assert len(result["contacts"]) == 1

    def test_missing_client(self, temp_db):
        result = get_client({"db_path": temp_db, "account_id": 42})

        assert result["error"]["code"] == "NOT_FOUND"
        assert result["error"]["message"] == "Account 42 does not exist"

    def test_invalid_account_id(self, temp_db):
        result = get_client({"db_path": temp_db, "account_id": 0})
        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert "Invalid account_id" in result["error"]["message"]


class TestSaveClient:
    def test_create(self, temp_db):
        result = save_client(
            {
                "db_path": temp_db,
                "full_name": "  Noa Peretz ",
                "phone": "052-9998888",
                "email": " ",
                "client_type": "company",
            }
        )

        assert result["action"] == "created"
        account = result["client"]["account"]
        assert account["id"] == 3
        assert account["account_name"] == "Noa Peretz"
        assert account["status"] == "active"
        assert account["client_type"] == "company"

        contact = result["client"]["primary_contact"]
        assert contact["full_name"] == "Noa Peretz"
        assert contact["email"] is None
        assert contact["is_primary"] is True

        found = list_clients({"db_path": temp_db, "phone": "0529998888"})
        assert found["clients"][0]["account"]["id"] == 3

    def test_update(self, temp_db):
        result = save_client(
            {
                "db_path": temp_db,
                "account_id": 1,
                "full_name": "Dana Cohen",
                "phone": "050-1234567",
                "status": "inactive",
                "notes": "Moved to Haifa",
            }
        )

        assert result["action"] == "updated"
        assert result["client"]["account"]["account_name"] == "Dana Cohen"
        assert result["client"]["account"]["notes"] == "Moved to Haifa"
        assert result["client"]["account"]["status"] == "inactive"
        assert result["client"]["primary_contact"]["email"] is None
        assert len(result["client"]["contacts"]) == 1

    def test_update_adds_missing_primary_contact(self, temp_db):
        result = save_client(
            {"db_path": temp_db, "account_id": 2, "full_name": "Hadar Baths", "status": "lead"}
        )

        assert result["client"]["primary_contact"]["full_name"] == "Hadar Baths"
        assert result["client"]["account"]["client_type"] == "private"

    def test_update_missing_client(self, temp_db):
        result = save_client({"db_path": temp_db, "account_id": 42, "full_name": "Nobody"})
        assert result["error"]["code"] == "NOT_FOUND"

    @pytest.mark.parametrize(
        "overrides, message",
        [
            ({"full_name": "   "}, "Invalid full_name: cannot be empty"),
            ({"status": "vip"}, "Invalid status: 'vip' is not one of lead, active, inactive"),
            (
                {"client_type": "government"},
                "Invalid client_type: 'government' is not one of private, company, bath_company",
            ),
            ({"email": "dana.example.com"}, "Invalid email: 'dana.example.com' has no '@'"),
        ],
    )
    def test_invalid_fields(self, temp_db, overrides, message):
        args = {"db_path": temp_db, "full_name": "Noa Peretz", **overrides}
        result = save_client(args)

        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert result["error"]["message"] == message
        assert list_clients({"db_path": temp_db})["count"] == 2

    def test_missing_full_name(self, temp_db):
        result = save_client({"db_path": temp_db})
        assert "full_name" in result["error"]["message"]


class TestDeleteClient:
    def test_dry_run(self, temp_db):
        result = delete_client({"db_path": temp_db, "account_id": 1, "dry_run": True})

        assert result == {
            "account_id": 1,
            "action": "would_delete",
            "dry_run": True,
            "deleted_contacts": 1,
        }
        assert get_client({"db_path": temp_db, "account_id": 1})["account"]["id"] == 1

    def test_delete(self, temp_db):
        result = delete_client({"db_path": temp_db, "account_id": 1})

        assert result["action"] == "deleted"
        assert result["deleted_contacts"] == 1
        assert get_client({"db_path": temp_db, "account_id": 1})["error"]["code"] == "NOT_FOUND"
        assert list_clients({"db_path": temp_db, "phone": "0501234567"})["count"] == 0

    @pytest.mark.parametrize("dry_run", [True, False])
    def test_client_with_quote_is_kept(self, temp_db, dry_run):
        result = delete_client({"db_path": temp_db, "account_id": 2, "dry_run": dry_run})

        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert result["error"]["message"] == (
            "Account 2 is referenced by 0 job(s) and 1 quote(s) and cannot be deleted"
        )
        assert list_clients({"db_path": temp_db})["count"] == 2

    def test_missing_client(self, temp_db):
        result = delete_client({"db_path": temp_db, "account_id": 42})
        assert result["error"]["message"] == "Account 42 does not exist"
