"""
MCP tool handler for list_quotes.
"""

from typing import Any, Dict

from pydantic import ValidationError

from db.jobs_reader import get_connection
from db.quotes_reader import list_quotes as query_quotes
from models.errors import ToolError, create_internal_error
from models.job import to_quote_schema
from schemas.quotes import ListQuotesRequest, ListQuotesResponse
from utils.pydantic_error_mapper import map_pydantic_validation_error


def list_quotes(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    List quotes newest first with their ordered line items.

    Args:
        args: Dictionary containing optional parameters:
            - account_id (int): Only quotes of this client
            - db_path (str): Database path override

    Returns:
        {"quotes": [...], "count": int}
    """
    try:
        request = ListQuotesRequest.model_validate(args)

        with get_connection(request.db_path) as conn:
            rows = query_quotes(conn, account_id=request.account_id)

        quotes = [to_quote_schema(row) for row in rows]
        return ListQuotesResponse(quotes=quotes, count=len(quotes)).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
