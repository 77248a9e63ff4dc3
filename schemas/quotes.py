"""Pydantic schemas for the quote tools."""

from __future__ import annotations

from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, field_validator

from schemas.common import (
    DbPathMixin,
    StatusChangeResponse,
    StrictIgnoreRequest,
    StrictResponse,
    validate_optional_non_empty_str,
    validate_positive_id,
)


class QuoteItemInput(BaseModel):
    """One line of a draft quote.

    Lax typing so numeric strings from form inputs ("2", "150.5") are accepted.
    """

    model_config = ConfigDict(extra="ignore", allow_inf_nan=False)

    description: str
    quantity: float
    unit_price: float

    @field_validator("description")
    @classmethod
    def validate_description(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("cannot be empty")
        return value.strip()

    @field_validator("quantity")
    @classmethod
    def validate_quantity(cls, value: float) -> float:
        if value <= 0:
            raise ValueError(f"must be greater than 0, got {value}")
        return value

    @field_validator("unit_price")
    @classmethod
    def validate_unit_price(cls, value: float) -> float:
        if value < 0:
            raise ValueError(f"cannot be negative, got {value}")
        return value


class SaveDraftQuoteRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for save_draft_quote.

    Omit quote_id to create a new draft; pass it to overwrite an existing one.
    """

    account_id: Optional[int] = None
    items: list[QuoteItemInput] = []
    quote_id: Optional[int] = None
    title: Optional[str] = None
    notes: Optional[str] = None

    @field_validator("account_id")
    @classmethod
    def validate_account_id(cls, value: Optional[int]) -> Optional[int]:
        return validate_positive_id(value, "account_id")

    @field_validator("quote_id")
    @classmethod
    def validate_quote_id(cls, value: Optional[int]) -> Optional[int]:
        return validate_positive_id(value, "quote_id")

    @field_validator("title")
    @classmethod
    def validate_title(cls, value: Optional[str]) -> Optional[str]:
        return validate_optional_non_empty_str(value, "title")


class QuoteItemRecord(StrictResponse):
    model_config = ConfigDict(extra="ignore")

    id: int
    description: str
    quantity: float
    unit_price: float
    line_total: float
    sort_order: int


class QuoteRecord(StrictResponse):
    """Quote with its ordered items."""

    model_config = ConfigDict(extra="ignore")

    id: int
    account_id: Optional[int] = None
    account_name: str
    status: str
    status_label: str
    status_color: str
    title: Optional[str] = None
    notes: Optional[str] = None
    converted_job_id: Optional[int] = None
    subtotal: float
    created_at: Optional[str] = None
    updated_at: Optional[str] = None
    quote_items: list[QuoteItemRecord]


class SaveDraftQuoteResponse(StrictResponse):
    """Response for save_draft_quote (action: created or updated)."""

    action: str
    quote: QuoteRecord


class ListQuotesRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for list_quotes."""

    account_id: Optional[int] = None

    @field_validator("account_id")
    @classmethod
    def validate_account_id(cls, value: Optional[int]) -> Optional[int]:
        return validate_positive_id(value, "account_id")


class ListQuotesResponse(StrictResponse):
    quotes: list[QuoteRecord]
    count: int


class UpdateQuoteStatusRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for update_quote_status."""

    quote_id: int
    status: Any
    dry_run: bool = False

    @field_validator("quote_id")
    @classmethod
    def validate_quote_id(cls, value: int) -> int:
        return validate_positive_id(value, "quote_id")


class UpdateQuoteStatusResponse(StatusChangeResponse):
    """Response for update_quote_status (action: updated, noop, would_update, blocked)."""

    quote_id: int
