"""
MCP tool handler for save_draft_quote.

Creates a draft quote or overwrites the lines of an existing draft. Quotes
that left draft status or were converted into a job are read-only.
"""

from typing import Any, Dict

from pydantic import ValidationError

from db.jobs_reader import get_connection
from db.quotes_reader import get_quote
from db.quotes_writer import QuotesWriter
from models.errors import ToolError, create_internal_error, create_validation_error
from models.job import to_quote_schema
from schemas.quotes import SaveDraftQuoteRequest, SaveDraftQuoteResponse
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.validation import get_current_utc_timestamp


def save_draft_quote(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Save a draft quote with its line items.

    Args:
        args: Dictionary containing parameters:
            - account_id (int): Client account (required)
            - items (list): Lines of {"description", "quantity", "unit_price"}
            - quote_id (int, optional): Existing draft to overwrite
            - title (str, optional): Quote title
            - notes (str, optional): Free-text notes
            - db_path (str, optional): Database path override

    Returns:
        {"action": "created"|"updated", "quote": {...}}

        On error:
        {"error": {"code": str, "message": str, "retryable": bool}}
    """
    try:
        request = SaveDraftQuoteRequest.model_validate(args)

        if request.account_id is None:
            raise create_validation_error("account_id is required")
        if not request.items:
            raise create_validation_error("A quote needs at least one line item")

        items = [item.model_dump() for item in request.items]

        with QuotesWriter(request.db_path) as writer:
            quote_id = writer.save_draft_quote(
                account_id=request.account_id,
                items=items,
                timestamp=get_current_utc_timestamp(),
                quote_id=request.quote_id,
                title=request.title,
                notes=request.notes,
            )
            writer.commit()

        with get_connection(request.db_path) as conn:
            quote = get_quote(conn, quote_id)

        return SaveDraftQuoteResponse(
            action="created" if request.quote_id is None else "updated",
            quote=to_quote_schema(quote),
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
