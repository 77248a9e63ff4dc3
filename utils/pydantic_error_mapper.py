"""Convert Pydantic validation errors to the ToolError contract."""

from __future__ import annotations

from typing import Any

from pydantic import ValidationError

from models.errors import ToolError, create_validation_error


def _loc_to_field(loc: tuple[Any, ...]) -> str:
    """Render ("updates", 0, "status") as "updates[0].status"."""
    field = ""
    for part in loc:
        if part == "__root__":
            continue
        if isinstance(part, int):
            field += f"[{part}]"
        else:
            field = f"{field}.{part}" if field else str(part)
    return field


def _clean_pydantic_message(message: str) -> str:
    if message.startswith("Value error, "):
        return message[len("Value error, ") :]
    return message


def map_pydantic_validation_error(error: ValidationError) -> ToolError:
    """Map the first Pydantic issue to a VALIDATION_ERROR ToolError."""
    issues = error.errors()
    if not issues:
        return create_validation_error("Invalid input")

    first = issues[0]
    field = _loc_to_field(tuple(first.get("loc", ())))
    message = _clean_pydantic_message(first.get("msg", "Invalid input"))

    # Field validators already name the field
    if field and not message.startswith("Invalid "):
        return create_validation_error(f"Invalid {field}: {message}")
    return create_validation_error(message)
