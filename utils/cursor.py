"""
Cursor encoding/decoding utilities for list_jobs pagination.

Cursors are opaque base64 strings that encode the (created_at, id) of the
last job on the previous page.
"""

import base64
import binascii
import json
from typing import Optional, Tuple

from pydantic import BaseModel, ConfigDict, ValidationError

from models.errors import ToolError, create_validation_error


class CursorPayload(BaseModel):
    """Decoded cursor contents.

    Strict mode rejects "123" for ``id`` and 123 for ``created_at``;
    unknown keys are forbidden.
    """

    model_config = ConfigDict(strict=True, extra="forbid")

    created_at: str
    id: int


def encode_cursor(created_at: str, record_id: int) -> str:
    """
    Encode pagination state into an opaque cursor string.

    Args:
        created_at: ISO 8601 timestamp of the last row
        record_id: Primary key of the last row
    """
    payload = {"created_at": created_at, "id": record_id}
    json_str = json.dumps(payload, separators=(",", ":"))
    return base64.b64encode(json_str.encode("utf-8")).decode("ascii")


def _map_cursor_validation_error(error: ValidationError) -> ToolError:
    issues = error.errors()
    if not issues:
        return create_validation_error("Invalid cursor format")

    first = issues[0]
    field = first.get("loc", ("",))[0]
    msg = first.get("msg", "invalid value")

    if first.get("type") == "missing":
        return create_validation_error(f"Invalid cursor format: missing '{field}' field")
    return create_validation_error(f"Invalid cursor format: '{field}' {msg.lower()}")


def decode_cursor(cursor: Optional[str]) -> Optional[Tuple[str, int]]:
    """
    Decode an opaque cursor string into pagination state.

    Returns:
        (created_at, id), or None for the first page

    Raises:
        ToolError: If cursor is malformed or invalid
    """
    if cursor is None:
        return None

    try:
        decoded_bytes = base64.b64decode(cursor.encode("ascii"), validate=True)
        payload = json.loads(decoded_bytes.decode("utf-8"))

        if not isinstance(payload, dict):
            raise create_validation_error("Invalid cursor format: payload must be a JSON object")

        cursor_data = CursorPayload.model_validate(payload)
        return (cursor_data.created_at, cursor_data.id)

    except ValidationError as e:
        raise _map_cursor_validation_error(e) from e
    except json.JSONDecodeError as e:
        raise create_validation_error(f"Invalid cursor format: malformed JSON - {str(e)}") from e
    except UnicodeDecodeError as e:
        raise create_validation_error(
            f"Invalid cursor format: invalid UTF-8 encoding - {str(e)}"
        ) from e
    except (binascii.Error, ValueError) as e:
        raise create_validation_error(f"Invalid cursor format: malformed base64 - {str(e)}") from e
