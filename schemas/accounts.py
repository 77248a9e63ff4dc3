"""Pydantic schemas for the client tools."""

from __future__ import annotations

from enum import Enum
from typing import Optional

from pydantic import ConfigDict, field_validator

from models.status import AccountStatus, ClientType
from schemas.common import (
    DbPathMixin,
    StrictIgnoreRequest,
    StrictResponse,
    validate_optional_non_empty_str,
    validate_positive_id,
)


def _validate_choice(value: str, choices: type[Enum], field_name: str) -> str:
    allowed = [member.value for member in choices]
    if value not in allowed:
        raise ValueError(
            f"Invalid {field_name}: '{value}' is not one of {', '.join(allowed)}"
        )
    return value


def _blank_to_none(value: Optional[str]) -> Optional[str]:
    if value is None or not value.strip():
        return None
    return value.strip()


class ContactRecord(StrictResponse):
    model_config = ConfigDict(extra="ignore")

    id: int
    account_id: int
    full_name: str
    phone: Optional[str] = None
    email: Optional[str] = None
    address_text: Optional[str] = None
    notes: Optional[str] = None
    is_primary: bool
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class AccountRecord(StrictResponse):
    model_config = ConfigDict(extra="ignore")

    id: int
    account_name: str
    client_type: Optional[str] = None
    status: Optional[str] = None
    notes: Optional[str] = None
    created_at: Optional[str] = None
    updated_at: Optional[str] = None


class ClientProfileRecord(StrictResponse):
    """An account, its primary contact (if any) and all of its contacts."""

    account: AccountRecord
    primary_contact: Optional[ContactRecord] = None
    contacts: list[ContactRecord]


class ListClientsRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for list_clients.

    search matches names, phone and email; phone matches by digits only.
    """

    search: Optional[str] = None
    phone: Optional[str] = None

    @field_validator("phone")
    @classmethod
    def validate_phone(cls, value: Optional[str]) -> Optional[str]:
        return validate_optional_non_empty_str(value, "phone")


class ListClientsResponse(StrictResponse):
    clients: list[ClientProfileRecord]
    count: int


class GetClientRequest(DbPathMixin, StrictIgnoreRequest):
    account_id: int

    @field_validator("account_id")
    @classmethod
    def validate_account_id(cls, value: int) -> int:
        return validate_positive_id(value, "account_id")


class SaveClientRequest(DbPathMixin, StrictIgnoreRequest):
    """Request schema for save_client.

    Omit account_id to create a client; pass it to overwrite an existing one.
    Blank optional fields are stored as NULL.
    """

    full_name: str
    account_id: Optional[int] = None
    phone: Optional[str] = None
    email: Optional[str] = None
    address_text: Optional[str] = None
    notes: Optional[str] = None
    status: str = AccountStatus.ACTIVE.value
    client_type: str = ClientType.PRIVATE.value

    @field_validator("full_name")
    @classmethod
    def validate_full_name(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("Invalid full_name: cannot be empty")
        return value.strip()

    @field_validator("account_id")
    @classmethod
    def validate_account_id(cls, value: Optional[int]) -> Optional[int]:
        return validate_positive_id(value, "account_id")

    @field_validator("phone", "email", "address_text", "notes")
    @classmethod
    def normalize_optional_text(cls, value: Optional[str]) -> Optional[str]:
        return _blank_to_none(value)

    @field_validator("email")
    @classmethod
    def validate_email(cls, value: Optional[str]) -> Optional[str]:
        if value is not None and "@" not in value:
            raise ValueError(f"Invalid email: '{value}' has no '@'")
        return value

    @field_validator("status")
    @classmethod
    def validate_status(cls, value: str) -> str:
        return _validate_choice(value, AccountStatus, "status")

    @field_validator("client_type")
    @classmethod
    def validate_client_type(cls, value: str) -> str:
        return _validate_choice(value, ClientType, "client_type")


class SaveClientResponse(StrictResponse):
    """Response for save_client (action: created or updated)."""

    action: str
    client: ClientProfileRecord


class DeleteClientRequest(DbPathMixin, StrictIgnoreRequest):
    account_id: int
    dry_run: bool = False

    @field_validator("account_id")
    @classmethod
    def validate_account_id(cls, value: int) -> int:
        return validate_positive_id(value, "account_id")


class DeleteClientResponse(StrictResponse):
    """Response for delete_client (action: deleted or would_delete)."""

    account_id: int
    action: str
    dry_run: bool
    deleted_contacts: int
