"""
MCP tool handler for list_clients.
"""

from typing import Any, Dict

from pydantic import ValidationError

from db.accounts_reader import find_client_by_phone, get_client, list_clients as query_clients
from db.jobs_reader import get_connection
from models.errors import ToolError, create_internal_error
from schemas.accounts import ListClientsRequest, ListClientsResponse
from utils.pydantic_error_mapper import map_pydantic_validation_error


def list_clients(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    List client profiles newest first.

    With phone, returns at most the one client whose contact has the same
    digits ("050-123 4567" matches "0501234567"); search is ignored then.

    Args:
        args: Dictionary containing optional parameters:
            - search (str): Text matched against names, phone and email
            - phone (str): Exact phone lookup by digits
            - db_path (str): Database path override

    Returns:
        {"clients": [{"account", "primary_contact", "contacts"}], "count": int}
    """
    try:
        request = ListClientsRequest.model_validate(args)

        with get_connection(request.db_path) as conn:
            if request.phone is not None:
                contact = find_client_by_phone(conn, request.phone)
                profile = get_client(conn, contact["account_id"]) if contact else None
                profiles = [profile] if profile else []
            else:
                profiles = query_clients(conn, search=request.search)

        return ListClientsResponse(clients=profiles, count=len(profiles)).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
