"""
MCP tool handler for get_job_invoices.

Lists the invoices recorded for a job, newest first. With refresh, the
latest invoice's document is fetched from the provider and its current
status (and number, once closed) is stored before listing.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from db.invoices_reader import list_invoices_by_job
from db.invoices_writer import InvoicesWriter
from db.jobs_reader import get_connection, get_job
from models.errors import ToolError, create_internal_error, create_not_found_error
from schemas.invoices import GetJobInvoicesRequest, GetJobInvoicesResponse
from tools.create_invoice_draft import build_invoice_client, document_reference, provider_status
from utils.invoice_client import InvoiceClient
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.validation import get_current_utc_timestamp

logger = logging.getLogger(__name__)


def get_job_invoices(
    args: Dict[str, Any], client: Optional[InvoiceClient] = None
) -> Dict[str, Any]:
    """
    Return a job's invoice records and the latest one.

    Args:
        args: Dictionary containing parameters:
            - job_id (int): Job whose invoices to list
            - refresh (bool, optional): Sync the latest invoice from the provider
            - db_path (str, optional): Database path override
        client: Invoice API client override, used by tests

    Returns:
        {"job_id", "latest": {...}|None, "invoices": [...], "count", "refreshed"}

        refreshed is true only when a provider document was actually fetched;
        invoices without a document id (pending or error) are not synced.
    """
    try:
        request = GetJobInvoicesRequest.model_validate(args)

        with get_connection(request.db_path) as conn:
            if get_job(conn, request.job_id) is None:
                raise create_not_found_error("Job", request.job_id)
            invoices = list_invoices_by_job(conn, request.job_id)

        refreshed = False
        latest = invoices[0] if invoices else None

        if request.refresh and latest is not None and latest.get("provider_doc_id"):
            invoice_client = client or build_invoice_client()
            document = invoice_client.get_document(latest["provider_doc_id"])
            _, document_number, document_url = document_reference(document)

            with InvoicesWriter(request.db_path) as writer:
                writer.record_provider_result(
                    latest["id"],
                    provider_status(document.get("status"), latest["status"]),
                    get_current_utc_timestamp(),
                    provider_doc_number=document_number,
                    provider_doc_url=document_url,
                )
                writer.commit()
            refreshed = True
            logger.info(f"Synced invoice {latest['id']} for job {request.job_id}")

            with get_connection(request.db_path) as conn:
                invoices = list_invoices_by_job(conn, request.job_id)
            latest = invoices[0]

        return GetJobInvoicesResponse(
            job_id=request.job_id,
            latest=latest,
            invoices=invoices,
            count=len(invoices),
            refreshed=refreshed,
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
