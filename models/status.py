"""
Centralized, type-safe status definitions for the FieldCRM workflow.

This module is the single source of truth for all lifecycle status values
stored on CRM records:

- ``JobStatus``: Lifecycle stage of a unit of field work.
- ``QuoteStatus``: Lifecycle stage of a price quotation.
- ``AccountStatus`` and ``ClientType``: Classification of client accounts.
- ``InvoiceStatus``: State of a locally recorded invoice document.

All Enums inherit from ``(str, Enum)`` so that members are directly
comparable to plain strings and serialize naturally to JSON at API
boundaries, preserving the external contract.
"""

from enum import Enum


class JobStatus(str, Enum):
    """Enum for statuses used in the 'jobs' table.

    Canonical transitions (see utils/status_policy.py):
        quote  ->  waiting_schedule
        waiting_schedule  ->  waiting_execution | quote
        waiting_execution  ->  done | waiting_schedule
        done  ->  done
    """

    QUOTE = "quote"
    WAITING_SCHEDULE = "waiting_schedule"
    WAITING_EXECUTION = "waiting_execution"
    DONE = "done"


class QuoteStatus(str, Enum):
    """Enum for statuses used in the 'quotes' table.

    An approved quote is converted into a job by an external operation and
    never cycles back.
    """

    DRAFT = "draft"
    SENT = "sent"
    APPROVED = "approved"
    REJECTED = "rejected"


class AccountStatus(str, Enum):
    """Enum for the 'accounts.status' column."""

    LEAD = "lead"
    ACTIVE = "active"
    INACTIVE = "inactive"


class ClientType(str, Enum):
    """Enum for the 'accounts.client_type' column."""

    PRIVATE = "private"
    COMPANY = "company"
    BATH_COMPANY = "bath_company"


class InvoiceStatus(str, Enum):
    """Enum for statuses used in the 'invoices' table.

    A row starts as pending before the provider is called, then becomes
    error or takes the provider document's state.
    """

    PENDING = "pending"
    DRAFT = "draft"
    OPEN = "open"
    CLOSED = "closed"
    CANCELLED = "cancelled"
    ERROR = "error"
