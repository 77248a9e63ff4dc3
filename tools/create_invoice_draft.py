"""
MCP tool handler for create_invoice_draft.

Turns a job's billable line items into a draft tax invoice at the invoicing
provider. Drafts are never closed here; closing assigns the official
document number and happens in the provider's UI.

Every provider call is recorded in the invoices table: the row is written
as pending first, then updated to the document's state or to error.
"""

import logging
from typing import Any, Dict, List, Optional, Tuple

from pydantic import ValidationError

from config import get_config
from db.invoices_reader import get_invoice, get_latest_invoice_for_job
from db.invoices_writer import InvoicesWriter
from db.jobs_reader import get_connection, get_job
from models.errors import (
    ToolError,
    create_internal_error,
    create_not_found_error,
    create_validation_error,
)
from models.status import InvoiceStatus
from schemas.invoices import CreateInvoiceDraftRequest, CreateInvoiceDraftResponse
from utils.invoice_client import (
    DEFAULT_CURRENCY,
    DOC_TYPE_TAX_INVOICE,
    InvoiceClient,
    map_document_status,
)
from utils.line_items import get_line_items_subtotal, normalize_job_line_items, to_number
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.validation import get_current_utc_timestamp

logger = logging.getLogger(__name__)

VAT_RATE = 0.18
DEFAULT_CLIENT_NAME = "Client"

# An earlier invoice in one of these states blocks a new one
BLOCKING_INVOICE_STATUSES = frozenset(
    {
        InvoiceStatus.PENDING.value,
        InvoiceStatus.DRAFT.value,
        InvoiceStatus.OPEN.value,
        InvoiceStatus.CLOSED.value,
    }
)

_INVOICE_STATUS_VALUES = frozenset(status.value for status in InvoiceStatus)


def build_invoice_client() -> InvoiceClient:
    config = get_config()
    return InvoiceClient(
        api_key=config.invoice_api_key,
        api_secret=config.invoice_api_secret,
        base_url=config.invoice_base_url,
        user_agent=config.http_user_agent,
        timeout_seconds=config.http_timeout_seconds,
    )


def build_income_lines(line_items: List[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Map job line items to invoice income lines (unit_price -> price)."""
    return [
        {
            "description": item["description"],
            "quantity": to_number(item["quantity"]),
            "price": to_number(item["unit_price"]),
            "currency": DEFAULT_CURRENCY,
        }
        for item in line_items
    ]


def provider_status(code: Any, fallback: str) -> str:
    """Local invoice status for a provider status code; fallback when unknown."""
    status = map_document_status(code)
    return status if status in _INVOICE_STATUS_VALUES else fallback


def document_reference(
    document: Dict[str, Any],
) -> Tuple[Optional[str], Optional[str], Optional[str]]:
    """Extract (id, number, url) from a provider document."""
    doc_id = document.get("id")
    number = document.get("number") or document.get("documentNumber")
    url = document.get("url")
    if isinstance(url, dict):
        url = url.get("origin") or next(iter(url.values()), None)
    return (
        str(doc_id) if doc_id else None,
        str(number) if number else None,
        str(url) if url else None,
    )


def create_invoice_draft(
    args: Dict[str, Any], client: Optional[InvoiceClient] = None
) -> Dict[str, Any]:
    """
    Create a draft tax invoice for a job.

    Steps:
    1. Loads the job with its client name and line items (NOT_FOUND if missing)
    2. Rejects jobs without line items
    3. Rejects jobs whose latest invoice is still pending or live, unless
       allow_duplicate is set
    4. Computes subtotal, VAT (18%) and grand total
    5. dry_run -> returns the request body that would be sent
    6. Otherwise records a pending invoice, creates the draft and stores the
       document reference (or the failure) on the record

    Args:
        args: Dictionary containing parameters:
            - job_id (int): Job to invoice
            - client_email (str, optional): Recipient email
            - client_phone (str, optional): Recipient phone
            - allow_duplicate (bool, optional): Invoice again despite a live invoice
            - dry_run (bool, optional): Build the body without calling the API
            - db_path (str, optional): Database path override
        client: Invoice API client override, used by tests

    Returns:
        {"job_id", "dry_run", "subtotal", "vat_amount", "grand_total",
         "invoice_id"?, "invoice"?, "document_id"?, "document_status"?,
         "document"?, "request_body"?}

        On error:
        {"error": {"code": str, "message": str, "retryable": bool}}
    """
    try:
        request = CreateInvoiceDraftRequest.model_validate(args)

        with get_connection(request.db_path) as conn:
            job = get_job(conn, request.job_id)
            latest = get_latest_invoice_for_job(conn, request.job_id) if job else None
        if job is None:
            raise create_not_found_error("Job", request.job_id)

        line_items = normalize_job_line_items(job.get("line_items"))
        if not line_items:
            raise create_validation_error(
                f"Job {request.job_id} has no line items to invoice"
            )

        if (
            latest is not None
            and latest["status"] in BLOCKING_INVOICE_STATUSES
            and not request.allow_duplicate
        ):
            raise create_validation_error(
                f"Job {request.job_id} already has invoice {latest['id']} in "
                f"'{latest['status']}' status; pass allow_duplicate=true to create another"
            )

        subtotal = round(get_line_items_subtotal(line_items), 2)
        vat_amount = round(subtotal * VAT_RATE, 2)
        grand_total = round(subtotal + vat_amount, 2)

        client_info = {
            "name": job.get("account_name") or DEFAULT_CLIENT_NAME,
            "emails": [request.client_email] if request.client_email else [],
            "phone": request.client_phone or "",
        }
        income = build_income_lines(line_items)
        description = f"Job: {job.get('title') or request.job_id}"

        invoice_client = client or build_invoice_client()

        if request.dry_run:
            body = invoice_client.build_document_body(
                doc_type=DOC_TYPE_TAX_INVOICE,
                client_info=client_info,
                income=income,
                description=description,
            )
            return CreateInvoiceDraftResponse(
                job_id=request.job_id,
                dry_run=True,
                subtotal=subtotal,
                vat_amount=vat_amount,
                grand_total=grand_total,
                request_body=body,
            ).model_dump(exclude_none=True)

        with InvoicesWriter(request.db_path) as writer:
            invoice_id = writer.create_invoice_record(
                job_id=request.job_id,
                account_id=job.get("account_id"),
                doc_type=DOC_TYPE_TAX_INVOICE,
                total=subtotal,
                vat_amount=vat_amount,
                grand_total=grand_total,
                currency=DEFAULT_CURRENCY,
                timestamp=get_current_utc_timestamp(),
            )
            writer.commit()

            try:
                document = invoice_client.create_draft_tax_invoice(
                    client_info=client_info, income=income, description=description
                )
            except ToolError as e:
                writer.record_provider_result(
                    invoice_id,
                    InvoiceStatus.ERROR,
                    get_current_utc_timestamp(),
                    error_message=e.message,
                )
                writer.commit()
                logger.warning(
                    f"Invoice {invoice_id} for job {request.job_id} failed: {e.message}"
                )
                raise

            document_id, document_number, document_url = document_reference(document)
            writer.record_provider_result(
                invoice_id,
                provider_status(document.get("status"), InvoiceStatus.DRAFT.value),
                get_current_utc_timestamp(),
                provider_doc_id=document_id,
                provider_doc_number=document_number,
                provider_doc_url=document_url,
            )
            writer.commit()

        logger.info(
            f"Created draft invoice {document_id} (record {invoice_id}) for job {request.job_id}"
        )

        with get_connection(request.db_path) as conn:
            invoice = get_invoice(conn, invoice_id)

        return CreateInvoiceDraftResponse(
            job_id=request.job_id,
            dry_run=False,
            subtotal=subtotal,
            vat_amount=vat_amount,
            grand_total=grand_total,
            invoice_id=invoice_id,
            invoice=invoice,
            document_id=document_id,
            document_status=map_document_status(document.get("status")),
            document=document,
        ).model_dump(exclude_none=True)

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
