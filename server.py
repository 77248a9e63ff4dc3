#!/usr/bin/env python3
"""
MCP Server entry point for the FieldCRM job and quote workflow.

This server exposes FieldCRM records (clients, jobs, quotes, the schedule,
invoices) and the supporting geo and invoicing services as MCP tools. Every
status change goes through the job/quote status policy in utils/status_policy.py.

Usage:
    python server.py

The server runs in stdio mode by default, which is the standard transport
for MCP servers that are invoked by LLM agents.
"""

import logging
from typing import Any

from mcp.server.fastmcp import FastMCP

from config import get_config
from tools.bulk_update_job_status import bulk_update_job_status
from tools.create_invoice_draft import create_invoice_draft
from tools.delete_client import delete_client
from tools.estimate_route import estimate_route
from tools.geocode_address import geocode_address
from tools.get_client import get_client
from tools.get_job_invoices import get_job_invoices
from tools.list_clients import list_clients
from tools.list_jobs import list_jobs
from tools.list_quotes import list_quotes
from tools.list_schedule import list_schedule
from tools.save_client import save_client
from tools.save_draft_quote import save_draft_quote
from tools.schedule_job import schedule_job
from tools.update_job_status import update_job_status
from tools.update_quote_status import update_quote_status

# Create FastMCP server instance
config = get_config()
mcp = FastMCP(
    name=config.server_name,
    instructions=(
        "This server provides tools for FieldCRM job and quote operations."
        "\n\n"
        "JOB LIFECYCLE:\n"
        "Jobs move quote -> waiting_schedule -> waiting_execution -> done. "
        "waiting_schedule may go back to quote and waiting_execution back to waiting_schedule. "
        "done is terminal. Use update_job_status or bulk_update_job_status for explicit moves. "
        "Use schedule_job to set or clear a start time; it derives the status itself "
        "(scheduling a waiting_schedule job makes it waiting_execution). "
        "Refused moves come back with action='blocked' and an explanation, not as errors."
        "\n\n"
        "QUOTE LIFECYCLE:\n"
        "Quotes move draft -> sent -> approved/rejected. approved is terminal; "
        "rejected and sent quotes may return to draft. Only drafts can be edited with save_draft_quote."
        "\n\n"
        "READ TOOLS:\n"
        "list_jobs pages through jobs, list_schedule returns the calendar view, "
        "list_quotes returns quotes with their line items."
        "\n\n"
        "CLIENTS:\n"
        "list_clients searches clients (or looks one up by phone), get_client returns one profile, "
        "save_client creates or overwrites a client and its primary contact, "
        "delete_client removes a client that no job or quote references."
        "\n\n"
        "GEO AND BILLING:\n"
        "geocode_address resolves addresses to coordinates, estimate_route estimates drive time, "
        "create_invoice_draft creates a draft tax invoice from a job's line items "
        "(use dry_run=true to preview) and records every attempt; "
        "get_job_invoices lists those records and can refresh the latest one from the provider."
    ),
)


def _provided(**kwargs: Any) -> dict:
    """Keep only the arguments the caller actually provided."""
    return {key: value for key, value in kwargs.items() if value is not None}


@mcp.tool(
    name="list_jobs",
    description=(
        "List jobs newest first in cursor-paginated pages. "
        "Optional filters: status and account_id. "
        "Each job includes status label/color, next action, coordinates usability and line item subtotal."
    ),
)
def list_jobs_tool(
    limit: int | None = None,
    cursor: str | None = None,
    status: str | None = None,
    account_id: int | None = None,
    db_path: str | None = None,
) -> dict:
    """
    List jobs in deterministic pages.

    Args:
        limit: Page size (1-1000, default 50).
        cursor: Opaque cursor returned by a previous call.
        status: Only jobs in this status (quote, waiting_schedule, waiting_execution, done).
        account_id: Only jobs of this client account.
        db_path: Optional database path override (default: data/crm.db).

    Returns:
        {"jobs": [...], "count": int, "has_more": bool, "next_cursor": str|None}

        On error, returns:
        {"error": {"code": str, "message": str, "retryable": bool}}
    """
    return list_jobs(
        _provided(
            limit=limit, cursor=cursor, status=status, account_id=account_id, db_path=db_path
        )
    )


@mcp.tool(
    name="list_schedule",
    description=(
        "Calendar view: jobs scheduled between range_start and range_end (inclusive, ISO 8601), "
        "plus unscheduled jobs. Placeholder dates before 2000-01-01 count as unscheduled."
    ),
)
def list_schedule_tool(
    range_start: str,
    range_end: str,
    include_unscheduled: bool = True,
    limit: int | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Return scheduled jobs in a time range and the unscheduled backlog.

    Args:
        range_start: Lower bound, ISO 8601.
        range_end: Upper bound, ISO 8601.
        include_unscheduled: Also return jobs without a start time (default true).
        limit: Max rows per list (default FIELDCRM_SCHEDULE_LIMIT).
        db_path: Optional database path override.

    Returns:
        {"range_start", "range_end", "scheduled": [...], "scheduled_count",
         "unscheduled": [...], "unscheduled_count"}
    """
    args = _provided(range_start=range_start, range_end=range_end, limit=limit, db_path=db_path)
    args["include_unscheduled"] = include_unscheduled
    return list_schedule(args)


@mcp.tool(
    name="update_job_status",
    description=(
        "Move one job to a new status. The move must follow the job lifecycle; "
        "otherwise the response has action='blocked'. Supports dry_run."
    ),
)
def update_job_status_tool(
    job_id: int,
    status: str,
    dry_run: bool = False,
    db_path: str | None = None,
) -> dict:
    """
    Update a single job's status.

    Args:
        job_id: Job ID (positive integer).
        status: Target status: quote, waiting_schedule, waiting_execution or done.
        dry_run: Report what would happen without writing (default false).
        db_path: Optional database path override.

    Returns:
        {
            "job_id": int,
            "previous_status": str,
            "target_status": str,
            "action": "updated" | "noop" | "would_update" | "blocked",
            "success": bool,
            "dry_run": bool,
            "error": str,         # only when blocked
            "updated_at": str     # only when updated
        }

    Examples:
        # Job was quoted and the client accepted
        update_job_status_tool(job_id=12, status="waiting_schedule")

        # Check whether a done job could be reopened (it cannot)
        update_job_status_tool(job_id=12, status="waiting_execution", dry_run=True)
    """
    args = {"job_id": job_id, "status": status, "dry_run": dry_run}
    if db_path is not None:
        args["db_path"] = db_path
    return update_job_status(args)


@mcp.tool(
    name="bulk_update_job_status",
    description=(
        "Update multiple job statuses in a single atomic transaction. "
        "Every item must follow the job lifecycle from that job's current status; "
        "if any item fails, nothing is written. Returns per-job results."
    ),
)
def bulk_update_job_status_tool(
    updates: list[dict],
    db_path: str | None = None,
) -> dict:
    """
    Update multiple job statuses in a single atomic transaction.

    Args:
        updates: Array of update items, each containing:
            - id (int): Job ID to update (must be positive integer)
            - status (str): Target status (quote, waiting_schedule,
                            waiting_execution, done)
        db_path: Optional database path override.

    Returns:
        Success:
        {"updated_count": int, "failed_count": 0,
         "results": [{"id", "success": true, "previous_status", "status"}, ...]}

        Validation or policy failure (nothing written):
        {"updated_count": 0, "failed_count": int,
         "results": [{"id", "success": false, "error"}, ...]}

    Validation Rules:
        - Batch size: 0-100 updates (empty batch returns success with zero counts)
        - Job IDs: Must be positive integers and exist in database
        - No duplicate job IDs within one batch
        - Each item must be an allowed transition from the job's current status
    """
    args = {"updates": updates}
    if db_path is not None:
        args["db_path"] = db_path
    return bulk_update_job_status(args)


@mcp.tool(
    name="schedule_job",
    description=(
        "Set or clear a job's scheduled start time. The status is derived automatically: "
        "quote -> waiting_schedule, waiting_schedule -> waiting_execution, done stays done. "
        "Pass scheduled_start_at=null to unschedule (waiting_execution returns to waiting_schedule)."
    ),
)
def schedule_job_tool(
    job_id: int,
    scheduled_start_at: str | None = None,
    estimated_duration_minutes: int | None = None,
    dry_run: bool = False,
    db_path: str | None = None,
) -> dict:
    """
    Schedule or unschedule a job.

    Args:
        job_id: Job ID.
        scheduled_start_at: ISO 8601 start time, or null to unschedule.
        estimated_duration_minutes: Optional new duration in minutes.
        dry_run: Report what would happen without writing.
        db_path: Optional database path override.
    """
    args = _provided(
        job_id=job_id,
        scheduled_start_at=scheduled_start_at,
        estimated_duration_minutes=estimated_duration_minutes,
        db_path=db_path,
    )
    args["dry_run"] = dry_run
    return schedule_job(args)


@mcp.tool(
    name="list_quotes",
    description="List quotes newest first with their ordered line items. Optional account_id filter.",
)
def list_quotes_tool(account_id: int | None = None, db_path: str | None = None) -> dict:
    return list_quotes(_provided(account_id=account_id, db_path=db_path))


@mcp.tool(
    name="save_draft_quote",
    description=(
        "Create a draft quote, or overwrite an existing draft when quote_id is given. "
        "Line items replace the previous ones. Sent, approved, rejected or converted quotes cannot be edited."
    ),
)
def save_draft_quote_tool(
    account_id: int,
    items: list[dict],
    quote_id: int | None = None,
    title: str | None = None,
    notes: str | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Save a draft quote.

    Args:
        account_id: Client account ID.
        items: Lines of {"description": str, "quantity": number, "unit_price": number}.
        quote_id: Existing draft to overwrite (omit to create).
        title: Optional title.
        notes: Optional notes.
        db_path: Optional database path override.

    Returns:
        {"action": "created" | "updated", "quote": {...}}
    """
    args = _provided(quote_id=quote_id, title=title, notes=notes, db_path=db_path)
    args.update({"account_id": account_id, "items": items})
    return save_draft_quote(args)


@mcp.tool(
    name="update_quote_status",
    description=(
        "Move one quote to a new status (draft, sent, approved, rejected). "
        "approved is terminal. Refused moves return action='blocked'. Supports dry_run."
    ),
)
def update_quote_status_tool(
    quote_id: int,
    status: str,
    dry_run: bool = False,
    db_path: str | None = None,
) -> dict:
    args = {"quote_id": quote_id, "status": status, "dry_run": dry_run}
    if db_path is not None:
        args["db_path"] = db_path
    return update_quote_status(args)


@mcp.tool(
    name="geocode_address",
    description=(
        "Resolve a free-text address to latitude/longitude. Cleans up the address first "
        "(autofix) and reports whether the coordinates are usable for routing."
    ),
)
def geocode_address_tool(address: str, autofix: bool = True) -> dict:
    """
    Geocode an address.

    Lookup order: in-process cache, Nominatim, then Google when
    FIELDCRM_GEOCODE_FALLBACK_API_KEY is set.

    Returns:
        {"address", "query", "lat", "lng", "normalized_address", "provider",
         "usable", "fixes"}
    """
    return geocode_address({"address": address, "autofix": autofix})


@mcp.tool(
    name="estimate_route",
    description=(
        "Estimate driving duration and distance between two points. "
        "Falls back to a straight-line estimate at 45 km/h when the router is unavailable."
    ),
)
def estimate_route_tool(
    origin: dict,
    destination: dict,
    departure_time: str | None = None,
) -> dict:
    """
    Estimate a drive.

    Args:
        origin: {"lat": float, "lng": float}
        destination: {"lat": float, "lng": float}
        departure_time: Optional ISO 8601 departure time.

    Returns:
        {"duration_seconds", "distance_meters", "provider", "departure_bucket", "cached"}
    """
    return estimate_route(
        _provided(origin=origin, destination=destination, departure_time=departure_time)
    )


@mcp.tool(
    name="create_invoice_draft",
    description=(
        "Create a draft tax invoice for a job from its line items (VAT 18%, ILS). "
        "Use dry_run=true to see totals and the request body without calling the invoicing API."
        " Each attempt is recorded; a job whose latest invoice is pending, draft, open or closed "
        "is refused unless allow_duplicate=true."
    ),
)
def create_invoice_draft_tool(
    job_id: int,
    client_email: str | None = None,
    client_phone: str | None = None,
    allow_duplicate: bool = False,
    dry_run: bool = False,
    db_path: str | None = None,
) -> dict:
    """
    Create a draft invoice for a job.

    Args:
        job_id: Job to invoice.
        client_email: Optional recipient email.
        client_phone: Optional recipient phone.
        allow_duplicate: Create another invoice although the job already has a live one.
        dry_run: Build totals and request body only.
        db_path: Optional database path override.

    Returns:
        {"job_id", "dry_run", "subtotal", "vat_amount", "grand_total",
         "invoice_id", "invoice", "document_id", "document_status", "document"}
        or, in dry-run mode,
        {"job_id", "dry_run", "subtotal", "vat_amount", "grand_total", "request_body"}
    """
    args = _provided(
        job_id=job_id, client_email=client_email, client_phone=client_phone, db_path=db_path
    )
    args["allow_duplicate"] = allow_duplicate
    args["dry_run"] = dry_run
    return create_invoice_draft(args)


@mcp.tool(
    name="get_job_invoices",
    description=(
        "List the invoices recorded for a job, newest first, with the latest one picked out. "
        "refresh=true re-reads the latest invoice's document from the invoicing API "
        "and stores its current status."
    ),
)
def get_job_invoices_tool(job_id: int, refresh: bool = False, db_path: str | None = None) -> dict:
    args = _provided(job_id=job_id, db_path=db_path)
    args["refresh"] = refresh
    return get_job_invoices(args)


@mcp.tool(
    name="list_clients",
    description=(
        "List clients newest first, each with its primary contact and all contacts. "
        "search matches the client name and the primary contact's name, phone and email; "
        "phone looks up the single client whose contact phone has the same digits."
    ),
)
def list_clients_tool(
    search: str | None = None, phone: str | None = None, db_path: str | None = None
) -> dict:
    return list_clients(_provided(search=search, phone=phone, db_path=db_path))


@mcp.tool(
    name="get_client",
    description="Return one client: the account, its primary contact and all of its contacts.",
)
def get_client_tool(account_id: int, db_path: str | None = None) -> dict:
    return get_client(_provided(account_id=account_id, db_path=db_path))


@mcp.tool(
    name="save_client",
    description=(
        "Create a client (account plus primary contact), or overwrite one when account_id is given. "
        "status: lead, active or inactive. client_type: private, company or bath_company."
    ),
)
def save_client_tool(
    full_name: str,
    account_id: int | None = None,
    phone: str | None = None,
    email: str | None = None,
    address_text: str | None = None,
    notes: str | None = None,
    status: str | None = None,
    client_type: str | None = None,
    db_path: str | None = None,
) -> dict:
    """
    Save a client profile.

    Args:
        full_name: Client name, stored on the account and the primary contact.
        account_id: Existing client to overwrite (omit to create).
        phone: Primary contact phone.
        email: Primary contact email.
        address_text: Primary contact address.
        notes: Internal notes.
        status: lead, active or inactive (default active).
        client_type: private, company or bath_company (default private).
        db_path: Optional database path override.

    Returns:
        {"action": "created" | "updated", "client": {"account", "primary_contact", "contacts"}}
    """
    return save_client(
        _provided(
            full_name=full_name,
            account_id=account_id,
            phone=phone,
            email=email,
            address_text=address_text,
            notes=notes,
            status=status,
            client_type=client_type,
            db_path=db_path,
        )
    )


@mcp.tool(
    name="delete_client",
    description=(
        "Delete a client and its contacts. Clients referenced by jobs or quotes are refused. "
        "Supports dry_run."
    ),
)
def delete_client_tool(account_id: int, dry_run: bool = False, db_path: str | None = None) -> dict:
    args = _provided(account_id=account_id, db_path=db_path)
    args["dry_run"] = dry_run
    return delete_client(args)


def main():
    """
    Main entry point for the MCP server.

    Runs the server in stdio mode, which is the standard transport
    for MCP servers that are invoked by LLM agents.
    """
    # Load and setup configuration
    config.setup_logging()

    # Log startup information
    logger = logging.getLogger(__name__)
    logger.info("Starting FieldCRM MCP Server")
    logger.info(f"Server name: {config.server_name}")
    logger.info(f"Database path: {config.db_path}")
    if not config.invoice_configured:
        logger.info("Invoicing credentials not set; create_invoice_draft only works in dry_run mode")

    # Validate configuration and log warnings
    warnings = config.validate()
    for warning in warnings:
        logger.warning(warning)

    # Start the server
    logger.info("Server starting in stdio mode")
    mcp.run(transport="stdio")


if __name__ == "__main__":
    main()
