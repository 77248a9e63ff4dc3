"""
MCP tool handler for save_client.

Creates a client (account plus primary contact) or overwrites an existing
one. The full name is written to both the account and the primary contact.
"""

import logging
from typing import Any, Dict

from pydantic import ValidationError

from db.accounts_reader import get_client
from db.accounts_writer import AccountsWriter
from db.jobs_reader import get_connection
from models.errors import ToolError, create_internal_error
from schemas.accounts import SaveClientRequest, SaveClientResponse
from utils.pydantic_error_mapper import map_pydantic_validation_error
from utils.validation import get_current_utc_timestamp

logger = logging.getLogger(__name__)


def save_client(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Save a client profile.

    Args:
        args: Dictionary containing parameters:
            - full_name (str): Client name (required)
            - account_id (int, optional): Existing client to overwrite
            - phone, email, address_text (str, optional): Primary contact details
            - notes (str, optional): Internal notes on the account
            - status (str, optional): lead | active | inactive (default active)
            - client_type (str, optional): private | company | bath_company
              (default private)
            - db_path (str, optional): Database path override

    Returns:
        {"action": "created"|"updated", "client": {"account", "primary_contact", "contacts"}}

        On error:
        {"error": {"code": str, "message": str, "retryable": bool}}
    """
    try:
        request = SaveClientRequest.model_validate(args)

        fields = {
            "full_name": request.full_name,
            "phone": request.phone,
            "email": request.email,
            "address_text": request.address_text,
            "notes": request.notes,
            "status": request.status,
            "client_type": request.client_type,
        }
        timestamp = get_current_utc_timestamp()

        with AccountsWriter(request.db_path) as writer:
            if request.account_id is None:
                account_id = writer.create_client(timestamp=timestamp, **fields)
                action = "created"
            else:
                account_id = request.account_id
                writer.update_client(account_id, timestamp=timestamp, **fields)
                action = "updated"
            writer.commit()

        logger.info(f"Client {account_id} {action}")

        with get_connection(request.db_path) as conn:
            profile = get_client(conn, account_id)

        return SaveClientResponse(action=action, client=profile).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
