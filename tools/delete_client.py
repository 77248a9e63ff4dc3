"""
MCP tool handler for delete_client.
"""

from typing import Any, Dict

from pydantic import ValidationError

from db.accounts_writer import AccountsWriter
from models.errors import ToolError, create_internal_error
from schemas.accounts import DeleteClientRequest, DeleteClientResponse
from utils.pydantic_error_mapper import map_pydantic_validation_error


def delete_client(args: Dict[str, Any]) -> Dict[str, Any]:
    """
    Delete a client account and its contacts.

    Clients still referenced by jobs or quotes cannot be deleted. dry_run
    runs the same checks and reports how many contacts would go.

    Returns:
        {"account_id", "action": "deleted"|"would_delete", "dry_run", "deleted_contacts"}

        On error:
        {"error": {"code": str, "message": str, "retryable": bool}}
    """
    try:
        request = DeleteClientRequest.model_validate(args)

        with AccountsWriter(request.db_path) as writer:
            if request.dry_run:
                deleted_contacts = writer.check_deletable(request.account_id)
                action = "would_delete"
            else:
                deleted_contacts = writer.delete_client(request.account_id)
                writer.commit()
                action = "deleted"

        return DeleteClientResponse(
            account_id=request.account_id,
            action=action,
            dry_run=request.dry_run,
            deleted_contacts=deleted_contacts,
        ).model_dump()

    except ValidationError as e:
        return map_pydantic_validation_error(e).to_dict()

    except ToolError as e:
        return e.to_dict()

    except Exception as e:
        return create_internal_error(message=str(e), original_error=e).to_dict()
