"""
MCP tool handler for update_quote_status.
"""

import logging
from typing import Any, Dict, Optional

from pydantic import ValidationError

from db.quotes_writer import QuotesWriter
from models.errors import ToolError, create_internal_error, create_not_found_error
from schemas.quotes import UpdateQuoteStatusRequest, UpdateQuoteStatusResponse
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.status_policy import validate_quote_transition
from utils.validation import get_current_utc_timestamp, validate_quote_status

logger = logging.getLogger(__name__)


def _build_response(
    quote_id: int,
    previous_status: str,
    target_status: str,
    action: str,
    success: bool,
    dry_run: bool,
    error_message: Optional[str] = None,
    updated_at: Optional[str] = None,
) -> Dict[str, Any]:
    return UpdateQuoteStatusResponse(
        quote_id=quote_id,
        previous_status=previous_status,
        target_status=target_status,
        action=action,
        success=success,
        dry_run=dry_run,
        error=error_message,
        updated_at=updated_at,
    ).model_dump(exclude_none=True)


def update_quote_status(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Move a quote to a new status after checking the quote transition table.

    approved is terminal; rejected quotes may be reopened as draft; sent
    quotes may be pulled back to draft.

    Args:
        args: Dictionary containing parameters:
            - quote_id (int): Quote to update
            - status (str): Target QuoteStatus
            - dry_run (bool, optional): Preview without writing (default False)
            - db_path (str, optional): Database path override

    Returns:
        {"quote_id", "previous_status", "target_status", "action", "success",
         "dry_run", "error"?, "updated_at"?}

        On error:
        {"error": {"code": str, "message": str, "retryable": bool}}
    """
    try:
        request = UpdateQuoteStatusRequest.model_validate(args)
        target_status = validate_quote_status(request.status)

        with QuotesWriter(request.db_path) as writer:
            state = writer.get_quote_state(request.quote_id)
            if state is None:
                raise create_not_found_error("Quote", request.quote_id)
            current_status = state["status"]

            transition = validate_quote_transition(current_status, target_status)
            if not transition.allowed:
                logger.info(f"Blocked quote {request.quote_id} status change: {transition.error_message}")
                return _build_response(
                    request.quote_id,
                    str(current_status),
                    target_status,
                    action="blocked",
                    success=False,
                    dry_run=request.dry_run,
                    error_message=transition.error_message,
                )

            if transition.is_noop:
                return _build_response(
                    request.quote_id, current_status, target_status, "noop", True, request.dry_run
                )

            if request.dry_run:
                return _build_response(
                    request.quote_id, current_status, target_status, "would_update", True, True
                )

            timestamp = get_current_utc_timestamp()
            writer.update_quote_status(request.quote_id, target_status, timestamp)
            writer.commit()

        return _build_response(
            request.quote_id,
            current_status,
            target_status,
            action="updated",
            success=True,
            dry_run=False,
            updated_at=timestamp,
        )

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
