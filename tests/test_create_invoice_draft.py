"""
Integration tests for the create_invoice_draft MCP tool.
"""

import json
import os
import sqlite3
import tempfile

import httpx
import pytest

from db.invoices_reader import list_invoices_by_job
from db.jobs_reader import get_connection
from db.schema import bootstrap_schema
from tools.create_invoice_draft import VAT_RATE, build_income_lines, create_invoice_draft
from utils.invoice_client import DOC_TYPE_TAX_INVOICE, InvoiceClient

LINE_ITEMS = json.dumps(
    [
        {"id": "a1", "description": "Drain cleaning", "quantity": 1, "unit_price": 450},
        {"id": "a2", "description": "Camera inspection", "quantity": "2", "unit_price": "75"},
    ]
)


@pytest.fixture
def temp_db():
    fd, path = tempfile.mkstemp(suffix=".db")
    os.close(fd)

    conn = sqlite3.connect(path)
    bootstrap_schema(conn)
    conn.execute(
        "INSERT INTO accounts (account_name, created_at) VALUES ('Dana Levi', ?)",
        ("2026-01-01T00:00:00.000Z",),
    )
    conn.executemany(
        "INSERT INTO jobs (account_id, title, status, line_items, created_at) VALUES (?, ?, ?, ?, ?)",
        [
            (1, "Drain cleaning", "done", LINE_ITEMS, "2026-01-02T00:00:00.000Z"),
            (1, "Site visit", "done", "[]", "2026-01-03T00:00:00.000Z"),
            (None, "Walk-in repair", "done", LINE_ITEMS, "2026-01-04T00:00:00.000Z"),
        ],
    )
    conn.commit()
    conn.close()

    yield path

    try:
        os.unlink(path)
    except OSError:
        pass


class InvoiceApi:
    """MockTransport handler for the token and documents endpoints."""

    def __init__(self, document_status=0, document=None):
        self.document_status = document_status
        self.document = document or {}
        self.requests = []

    def __call__(self, request):
        self.requests.append(request)
        if request.url.path.endswith("/account/token"):
            return httpx.Response(200, json={"token": "tok-1"})
        body = json.loads(request.content)
        return httpx.Response(
            200,
            json={
                "id": "doc-77",
                "status": self.document_status,
                "type": body["type"],
                **self.document,
            },
        )


def make_client(api, api_key="key", api_secret="secret"):
    return InvoiceClient(
        api_key,
        api_secret,
        "http://invoice.test/api/v1",
        "FieldCRM-Test",
        5.0,
        client=httpx.Client(transport=httpx.MockTransport(api)),
        sleep=lambda seconds: None,
    )


def _invoices(path, job_id):
    with get_connection(path) as conn:
        return list_invoices_by_job(conn, job_id)


class TestTotals:
    def test_dry_run_returns_request_body(self, temp_db):
        api = InvoiceApi()
        result = create_invoice_draft(
            {"db_path": temp_db, "job_id": 1, "client_email": "dana@example.com", "dry_run": True},
            client=make_client(api),
        )

        assert result["dry_run"] is True
        assert result["subtotal"] == 600.0
        assert result["vat_amount"] == 108.0
        assert result["grand_total"] == 708.0
        assert "document_id" not in result
        assert api.requests == []

        body = result["request_body"]
        assert body["type"] == DOC_TYPE_TAX_INVOICE
        assert body["status"] == 0
        assert body["currency"] == "ILS"
        assert body["description"] == "Job: Drain cleaning"
        assert body["client"]["name"] == "Dana Levi"
        assert body["client"]["emails"] == ["dana@example.com"]
        assert [line["price"] for line in body["income"]] == [450.0, 75.0]
        assert [line["quantity"] for line in body["income"]] == [1.0, 2.0]

    def test_vat_rate(self):
        assert VAT_RATE == 0.18

    def test_job_without_account_uses_default_client_name(self, temp_db):
        result = create_invoice_draft(
            {"db_path": temp_db, "job_id": 3, "dry_run": True}, client=make_client(InvoiceApi())
        )
        assert result["request_body"]["client"]["name"] == "Client"


class TestCreateDraft:
    def test_creates_document(self, temp_db):
        api = InvoiceApi(document={"number": "50012", "url": {"origin": "https://docs.test/77"}})
        result = create_invoice_draft({"db_path": temp_db, "job_id": 1}, client=make_client(api))

        assert result["dry_run"] is False
        assert result["document_id"] == "doc-77"
        assert result["document_status"] == "draft"
        assert result["document"]["type"] == DOC_TYPE_TAX_INVOICE
        assert "request_body" not in result
        assert [r.url.path for r in api.requests] == [
            "/api/v1/account/token",
            "/api/v1/documents",
        ]
        assert api.requests[1].headers["Authorization"] == "Bearer tok-1"

        invoice = result["invoice"]
        assert invoice["id"] == result["invoice_id"]
        assert invoice["status"] == "draft"
        assert invoice["provider_doc_id"] == "doc-77"
        assert invoice["provider_doc_number"] == "50012"
        assert invoice["provider_doc_url"] == "https://docs.test/77"
        assert invoice["account_id"] == 1
        assert invoice["grand_total"] == 708.0
        assert "error_message" not in invoice

    def test_dry_run_records_nothing(self, temp_db):
        create_invoice_draft(
            {"db_path": temp_db, "job_id": 1, "dry_run": True}, client=make_client(InvoiceApi())
        )
        assert _invoices(temp_db, 1) == []

    def test_missing_credentials(self, temp_db):
        result = create_invoice_draft(
            {"db_path": temp_db, "job_id": 1},
            client=make_client(InvoiceApi(), api_key=None, api_secret=None),
        )

        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert "credentials are not configured" in result["error"]["message"]

        [invoice] = _invoices(temp_db, 1)
        assert invoice["status"] == "error"
        assert invoice["error_message"] == result["error"]["message"]
        assert invoice["provider_doc_id"] is None

    def test_provider_rejects_document(self, temp_db):
        def handler(request):
            if request.url.path.endswith("/account/token"):
                return httpx.Response(200, json={"token": "tok-1"})
            return httpx.Response(400, json={"errorMessage": "bad client"})

        result = create_invoice_draft(
            {"db_path": temp_db, "job_id": 1}, client=make_client(handler)
        )

        assert result["error"]["code"] == "UPSTREAM_ERROR"
        assert result["error"]["retryable"] is False

        [invoice] = _invoices(temp_db, 1)
        assert invoice["status"] == "error"
        assert invoice["error_message"] == result["error"]["message"]


class TestDuplicateInvoices:
    def test_second_draft_is_refused(self, temp_db):
        api = InvoiceApi()
        first = create_invoice_draft({"db_path": temp_db, "job_id": 1}, client=make_client(api))
        second = create_invoice_draft({"db_path": temp_db, "job_id": 1}, client=make_client(api))

        assert second["error"]["code"] == "VALIDATION_ERROR"
        assert second["error"]["message"] == (
            f"Job 1 already has invoice {first['invoice_id']} in 'draft' status; "
            "pass allow_duplicate=true to create another"
        )
        assert len(_invoices(temp_db, 1)) == 1

    def test_dry_run_is_refused_too(self, temp_db):
        create_invoice_draft({"db_path": temp_db, "job_id": 1}, client=make_client(InvoiceApi()))
        result = create_invoice_draft(
            {"db_path": temp_db, "job_id": 1, "dry_run": True}, client=make_client(InvoiceApi())
        )
        assert result["error"]["code"] == "VALIDATION_ERROR"

    def test_allow_duplicate(self, temp_db):
        create_invoice_draft({"db_path": temp_db, "job_id": 1}, client=make_client(InvoiceApi()))
        result = create_invoice_draft(
            {"db_path": temp_db, "job_id": 1, "allow_duplicate": True},
            client=make_client(InvoiceApi()),
        )

        assert result["invoice"]["status"] == "draft"
        invoices = _invoices(temp_db, 1)
        assert [i["id"] for i in invoices] == [result["invoice_id"], result["invoice_id"] - 1]

    def test_failed_attempt_does_not_block_retry(self, temp_db):
        create_invoice_draft(
            {"db_path": temp_db, "job_id": 1},
            client=make_client(InvoiceApi(), api_key=None, api_secret=None),
        )
        result = create_invoice_draft(
            {"db_path": temp_db, "job_id": 1}, client=make_client(InvoiceApi())
        )

        assert result["invoice"]["status"] == "draft"
        assert [i["status"] for i in _invoices(temp_db, 1)] == ["draft", "error"]


class TestErrors:
    def test_job_without_line_items(self, temp_db):
        result = create_invoice_draft(
            {"db_path": temp_db, "job_id": 2, "dry_run": True}, client=make_client(InvoiceApi())
        )

        assert result["error"]["code"] == "VALIDATION_ERROR"
        assert result["error"]["message"] == "Job 2 has no line items to invoice"

    def test_missing_job(self, temp_db):
        result = create_invoice_draft(
            {"db_path": temp_db, "job_id": 99, "dry_run": True}, client=make_client(InvoiceApi())
        )
        assert result["error"]["code"] == "NOT_FOUND"

    def test_invalid_job_id(self, temp_db):
        result = create_invoice_draft({"db_path": temp_db, "job_id": 0})
        assert "Invalid job_id" in result["error"]["message"]


class TestBuildIncomeLines:
    def test_maps_unit_price_to_price(self):
        lines = build_income_lines(
            [{"id": "x", "description": "Labor", "quantity": "3", "unit_price": ""}]
        )
        assert lines == [{"description": "Labor", "quantity": 3.0, "price": 0.0, "currency": "ILS"}]
