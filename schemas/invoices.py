"""Pydantic schemas for the invoice tools."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import ConfigDict, field_validator

from schemas.common import DbPathMixin, StrictIgnoreRequest, StrictResponse, validate_positive_id


class InvoiceRecord(StrictResponse):
    """A locally recorded invoice attempt and the provider document it produced."""

    model_config = ConfigDict(extra="ignore")

    id: int
    job_id: int
    account_id: Optional[int] = None
    doc_type: int
    status: str
    total: float
    vat_amount: float
    grand_total: float
    currency: str
    provider_doc_id: Optional[str] = None
    provider_doc_number: Optional[str] = None
    provider_doc_url: Optional[str] = None
    error_message: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class CreateInvoiceDraftRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for create_invoice_draft.

    allow_duplicate permits a new invoice while an earlier one for the same
    job is still pending or live at the provider.
    """

    job_id: int
    client_email: Optional[str] = None
    client_phone: Optional[str] = None
    allow_duplicate: bool = False
    dry_run: bool = False

    @field_validator("job_id")
    @classmethod
    def validate_job_id(cls, value: int) -> int:
        return validate_positive_id(value, "job_id")


class CreateInvoiceDraftResponse(StrictResponse):
    """Response for create_invoice_draft.

    document is the raw API document and invoice the local record; both are
    absent in dry-run mode, where request_body shows what would have been sent.
    """

    job_id: int
    dry_run: bool
    subtotal: float
    vat_amount: float
    grand_total: float
    invoice_id: Optional[int] = None
    invoice: Optional[InvoiceRecord] = None
    document_id: Optional[str] = None
    document_status: Optional[str] = None
    document: Optional[dict[str, Any]] = None
    request_body: Optional[dict[str, Any]] = None


class GetJobInvoicesRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for get_job_invoices.

    refresh re-reads the latest invoice's document from the provider and
    stores its current status.
    """

    job_id: int
    refresh: bool = False

    @field_validator("job_id")
    @classmethod
    def validate_job_id(cls, value: int) -> int:
        return validate_positive_id(value, "job_id")


class GetJobInvoicesResponse(StrictResponse):
    job_id: int
    latest: Optional[InvoiceRecord] = None
    invoices: list[InvoiceRecord]
    count: int
    refreshed: bool
