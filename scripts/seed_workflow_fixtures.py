#!/usr/bin/env python3
"""
Seed the CRM database with workflow fixtures for manual testing.

Fixtures are read from a YAML file (default: scripts/fixtures/workflow_fixtures.yaml).
Every fixture account, quote and job title carries the file's prefix, so a
re-run deletes the previous batch before inserting a fresh one.

Without --apply the script only reports what it would delete.
"""

import argparse
import json
import sqlite3
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List

import yaml

# Add repository root to path for imports
REPO_ROOT = Path(__file__).resolve().parents[1]
sys.path.insert(0, str(REPO_ROOT))

from db.schema import bootstrap_schema, ensure_parent_dirs, resolve_db_path  # noqa: E402
from utils.line_items import to_number  # noqa: E402
from utils.schedule_validity import to_iso_utc  # noqa: E402
from utils.status_policy import is_job_status, is_quote_status  # noqa: E402

DEFAULT_FIXTURES = REPO_ROOT / "scripts" / "fixtures" / "workflow_fixtures.yaml"
DEFAULT_PREFIX = "[UAT-FIXTURE]"


def parse_args():
    parser = argparse.ArgumentParser(description="Seed workflow fixtures into the CRM database.")
    parser.add_argument(
        "--fixtures",
        default=str(DEFAULT_FIXTURES),
        help="Path to the YAML fixture file.",
    )
    parser.add_argument(
        "--db",
        default=None,
        help="SQLite DB path (default: FIELDCRM_DB or data/crm.db).",
    )
    parser.add_argument(
        "--apply",
        action="store_true",
        help="Delete old fixtures and insert new ones (default: dry run).",
    )
    return parser.parse_args()


def load_fixtures(path: Path) -> Dict[str, Any]:
    data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    if not isinstance(data, dict):
        raise ValueError(f"Fixture file {path} must contain a mapping at the top level")
    return data


def scheduled_at(job: Dict[str, Any], now: datetime):
    """Resolve a fixture's schedule: explicit timestamp or a day offset from today."""
    if "scheduled_start_at" in job:
        return job["scheduled_start_at"]
    if "scheduled_in_days" not in job:
        return None

    hour, minute = (int(part) for part in str(job.get("scheduled_time", "09:00")).split(":"))
    day = now + timedelta(days=int(job["scheduled_in_days"]))
    return to_iso_utc(day.replace(hour=hour, minute=minute, second=0, microsecond=0))


def line_items_payload(lines: List[Dict[str, Any]]) -> str:
    items = []
    for index, line in enumerate(lines or []):
        quantity = to_number(line.get("quantity")) or 1
        unit_price = to_number(line.get("unit_price"))
        items.append(
            {
                "id": line.get("id") or f"line-{index + 1}",
                "description": line.get("description") or "",
                "quantity": quantity,
                "unit_price": unit_price,
                "line_total": quantity * unit_price,
            }
        )
    return json.dumps(items, ensure_ascii=False)


def cleanup_fixtures(conn: sqlite3.Connection, prefix: str) -> Dict[str, int]:
    """Delete fixture accounts and everything attached to them."""
    account_ids = [
        row[0]
        for row in conn.execute(
            "SELECT id FROM accounts WHERE account_name LIKE ?", (f"{prefix}%",)
        ).fetchall()
    ]
    if not account_ids:
        return {"deleted_accounts": 0, "deleted_quotes": 0, "deleted_jobs": 0}

    placeholders = ",".join("?" * len(account_ids))
    quote_ids = [
        row[0]
        for row in conn.execute(
            f"SELECT id FROM quotes WHERE account_id IN ({placeholders})", account_ids
        ).fetchall()
    ]
    job_count = conn.execute(
        f"SELECT COUNT(*) FROM jobs WHERE account_id IN ({placeholders})", account_ids
    ).fetchone()[0]

    if quote_ids:
        quote_placeholders = ",".join("?" * len(quote_ids))
        conn.execute(f"DELETE FROM quote_items WHERE quote_id IN ({quote_placeholders})", quote_ids)
        conn.execute(f"DELETE FROM quotes WHERE id IN ({quote_placeholders})", quote_ids)
    conn.execute(
        "DELETE FROM invoices WHERE job_id IN "
        f"(SELECT id FROM jobs WHERE account_id IN ({placeholders}))",
        account_ids,
    )
    conn.execute(f"DELETE FROM jobs WHERE account_id IN ({placeholders})", account_ids)
    conn.execute(f"DELETE FROM contacts WHERE account_id IN ({placeholders})", account_ids)
    conn.execute(f"DELETE FROM accounts WHERE id IN ({placeholders})", account_ids)

    return {
        "deleted_accounts": len(account_ids),
        "deleted_quotes": len(quote_ids),
        "deleted_jobs": job_count,
    }


def insert_fixtures(
    conn: sqlite3.Connection, fixtures: Dict[str, Any], prefix: str, now: datetime
) -> Dict[str, int]:
    created_at = to_iso_utc(now)
    accounts: Dict[str, int] = {}

    for account in fixtures.get("accounts") or []:
        cursor = conn.execute(
            """
            INSERT INTO accounts (account_name, client_type, status, created_at)
            VALUES (?, ?, ?, ?)
            """,
            (
                f"{prefix} {account['account_name']}",
                account.get("client_type"),
                account.get("status"),
                created_at,
            ),
        )
        conn.execute(
            """
            INSERT INTO contacts (account_id, full_name, phone, is_primary, created_at)
            VALUES (?, ?, ?, 1, ?)
            """,
            (
                cursor.lastrowid,
                f"{prefix} {account['account_name']}",
                account.get("phone"),
                created_at,
            ),
        )
        accounts[account["key"]] = cursor.lastrowid

    quotes = 0
    converted = 0
    for quote in fixtures.get("quotes") or []:
        status = quote.get("status", "draft")
        if not is_quote_status(status):
            raise ValueError(f"Fixture quote {quote.get('key')!r} has invalid status {status!r}")

        account_id = accounts[quote["account"]]
        cursor = conn.execute(
            """
            INSERT INTO quotes (account_id, status, title, notes, created_at, updated_at)
            VALUES (?, ?, ?, ?, ?, ?)
            """,
            (account_id, status, f"{prefix} {quote['title']}", quote.get("notes"), created_at, created_at),
        )
        quote_id = cursor.lastrowid
        quotes += 1

        items = quote.get("items") or []
        for index, item in enumerate(items):
            quantity = to_number(item.get("quantity"))
            unit_price = to_number(item.get("unit_price"))
            conn.execute(
                """
                INSERT INTO quote_items
                    (quote_id, description, quantity, unit_price, line_total, sort_order)
                VALUES (?, ?, ?, ?, ?, ?)
                """,
                (quote_id, item["description"], quantity, unit_price, quantity * unit_price, index),
            )

        if quote.get("convert_to_job"):
            job_cursor = conn.execute(
                """
                INSERT INTO jobs (account_id, title, status, address_text, line_items, created_at, updated_at)
                VALUES (?, ?, 'waiting_schedule', ?, ?, ?, ?)
                """,
                (
                    account_id,
                    f"{prefix} {quote['title']}",
                    quote.get("address_text"),
                    line_items_payload(items),
                    created_at,
                    created_at,
                ),
            )
            conn.execute(
                "UPDATE quotes SET converted_job_id = ? WHERE id = ?",
                (job_cursor.lastrowid, quote_id),
            )
            converted += 1

    jobs = 0
    for job in fixtures.get("jobs") or []:
        status = job.get("status", "quote")
        if not is_job_status(status):
            raise ValueError(f"Fixture job {job.get('title')!r} has invalid status {status!r}")

        conn.execute(
            """
            INSERT INTO jobs (
                account_id, title, description, status, priority, address_text, arrival_notes,
                lat, lng, scheduled_start_at, estimated_duration_minutes, line_items,
                created_at, updated_at
            ) VALUES (?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?, ?)
            """,
            (
                accounts[job["account"]],
                f"{prefix} {job['title']}",
                job.get("description"),
                status,
                job.get("priority", "normal"),
                job.get("address_text"),
                job.get("arrival_notes"),
                job.get("lat"),
                job.get("lng"),
                scheduled_at(job, now),
                job.get("estimated_duration_minutes"),
                line_items_payload(job.get("line_items")),
                created_at,
                created_at,
            ),
        )
        jobs += 1

    return {
        "accounts": len(accounts),
        "quotes": quotes,
        "converted_jobs": converted,
        "manual_jobs": jobs,
    }


def main() -> int:
    args = parse_args()
    fixtures = load_fixtures(Path(args.fixtures))
    prefix = fixtures.get("prefix") or DEFAULT_PREFIX

    db_path = resolve_db_path(args.db)
    ensure_parent_dirs(db_path)
    conn = sqlite3.connect(db_path)
    try:
        bootstrap_schema(conn)
        cleanup_stats = cleanup_fixtures(conn, prefix)

        if not args.apply:
            conn.rollback()
            print("[seed_workflow_fixtures] dry-run")
            print(json.dumps({"cleanup": cleanup_stats}, ensure_ascii=False, indent=2))
            print("Run with --apply to insert fixtures.")
            return 0

        seeded = insert_fixtures(conn, fixtures, prefix, datetime.now(timezone.utc))
        conn.commit()
        print("[seed_workflow_fixtures] done")
        print(
            json.dumps({"cleanup": cleanup_stats, "seeded": seeded}, ensure_ascii=False, indent=2)
        )
        return 0
    except Exception:
        conn.rollback()
        raise
    finally:
        conn.close()


if __name__ == "__main__":
    raise SystemExit(main())
