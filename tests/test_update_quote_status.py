"""
Integration tests for the update_quote_status MCP tool.
"""

import os
import sqlite3
import tempfile

import pytest

from db.schema import bootstrap_schema
from tools.update_quote_status import update_quote_status


@pytest.fixture
def temp_db():
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    conn = sqlite3.connect(path)
    bootstrap_schema(conn)
    conn.executemany(
        "INSERT INTO quotes (status, title, created_at) VALUES (?, ?, ?)",
        [
            ("draft", "Kitchen sink", "2026-01-01T00:00:00.000Z"),
            ("sent", "Water heater", "2026-01-02T00:00:00.000Z"),
            ("approved", "Bathroom", "2026-01-03T00:00:00.000Z"),
            ("rejected", "Roof drain", "2026-01-04T00:00:00.000Z"),
            ("pending", "Imported", "2026-01-05T00:00:00.000Z"),
        ],
    )
    conn.commit()
    conn.close()

    yield path

    try:
        os.unlink(path)
    except OSError:
        pass


def _stored(db_path, quote_id):
    conn = sqlite3.connect(db_path)
    try:
        return conn.execute(
            "SELECT status, updated_at FROM quotes WHERE id = ?", (quote_id,)
        ).fetchone()
    finally:
        conn.close()


class TestQuoteTransitions:
    @pytest.mark.parametrize(
        "quote_id, target",
        [(1, "sent"), (1, "approved"), (2, "rejected"), (2, "draft"), (4, "draft")],
    )
    def test_allowed(self, temp_db, quote_id, target):
        result = update_quote_status({"db_path": temp_db, "quote_id": quote_id, "status": target})

        assert result["action"] == "updated"
        assert result["quote_id"] == quote_id
        status, updated_at = _stored(temp_db, quote_id)
        assert status == target
        assert updated_at == result["updated_at"]

    @pytest.mark.parametrize("quote_id, target", [(3, "draft"), (3, "rejected"), (4, "sent")])
    def test_blocked(self, temp_db, quote_id, target):
        before = _stored(temp_db, quote_id)
        result = update_quote_status({"db_path": temp_db, "quote_id": quote_id, "status": target})

        assert result["action"] == "blocked"
        assert result["success"] is False
        assert "violates policy" in result["error"]
        assert _stored(temp_db, quote_id) == before

    def test_approved_is_terminal(self, temp_db):
        result = update_quote_status({"db_path": temp_db, "quote_id": 3, "status": "sent"})
        assert result["error"].endswith("Allowed transitions from 'approved': 'approved'")

    def test_noop(self, temp_db):
        result = update_quote_status({"db_path": temp_db, "quote_id": 3, "status": "approved"})

        assert result["action"] == "noop"
        assert _stored(temp_db, 3) == ("approved", None)

    def test_dry_run(self, temp_db):
        result = update_quote_status(
            {"db_path": temp_db, "quote_id": 1, "status": "sent", "dry_run": True}
        )

        assert result["action"] == "would_update"
        assert _stored(temp_db, 1) == ("draft", None)

    def test_unknown_stored_status(self, temp_db):
        result = update_quote_status({"db_path": temp_db, "quote_id": 5, "status": "draft"})

        assert result["action"] == "blocked"
        assert result["previous_status"] == "pending"
        assert "Unknown current quote status" in result["error"]


class TestQuoteStatusErrors:
    def test_job_status_is_not_a_quote_status(self, temp_db):
        result = update_quote_status({"db_path": temp_db, "quote_id": 1, "status": "done"})

        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert "Allowed values are: approved, draft, rejected, sent" in result["error"]["message"]

    def test_missing_quote(self, temp_db):
        result = update_quote_status({"db_path": temp_db, "quote_id": 42, "status": "sent"})

        assert result["error"]["code"] == "NOT_FOUND"
        assert result["error"]["message"] == "Quote 42 does not exist"

    def test_invalid_quote_id(self, temp_db):
        result = update_quote_status({"db_path": temp_db, "quote_id": -1, "status": "sent"})
        assert "Invalid quote_id" in result["error"]["message"]
