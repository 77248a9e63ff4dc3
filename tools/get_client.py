"""
MCP tool handler for get_client.
"""

from typing import Any, Dict

from pydantic import ValidationError

from db.accounts_reader import get_client as query_client
from db.jobs_reader import get_connection
from models.errors import ToolError, create_internal_error, create_not_found_error
from schemas.accounts import ClientProfileRecord, GetClientRequest
from utils.pydantic_error_mapper import map_pydantic_validation_error


def get_client(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Return one client profile: the account, its primary contact and all contacts.

    The primary contact is the one flagged primary, else the oldest contact,
    else null.
    """
    try:
        request = GetClientRequest.model_validate(args)

        with get_connection(request.db_path) as conn:
            profile = query_client(conn, request.account_id)
        if profile is None:
            raise create_not_found_error("Account", request.account_id)

        return ClientProfileRecord.model_validate(profile).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
