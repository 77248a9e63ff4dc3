"""
Job and quote record mapping for tool responses.

Database rows are enriched with presentation fields (label, color, next
action), coordinate usability and line item totals, then passed through the
response models so only the fixed schema fields leave the server.
"""

from typing import Any, Dict

from db.quotes_reader import get_quote_account_name
from schemas.jobs import JobRecord
from schemas.quotes import QuoteRecord
from utils.coords_policy import is_usable_job_coords
from utils.line_items import get_line_items_subtotal, normalize_job_line_items, to_number
from utils.status_presentation import (
    get_job_status_presentation,
    get_next_action,
    get_quote_status_presentation,
)


def to_job_schema(row: Dict[str, Any]) -> Dict[str, Any]:
    """
    Map a joined jobs row to the fixed job output schema.

    Unknown/legacy status values keep their raw value and get the neutral
    presentation; extra columns are dropped.
    """
    record = dict(row)
    presentation = get_job_status_presentation(record.get("status"))
    line_items = normalize_job_line_items(record.get("line_items"))

    record.update(
        {
            "status_label": presentation["label"],
            "status_color": presentation["color"],
            "next_action": get_next_action(record.get("status")),
            "has_usable_coords": is_usable_job_coords(record.get("lat"), record.get("lng")),
            "line_items": line_items,
            "line_items_subtotal": get_line_items_subtotal(line_items),
        }
    )
    return JobRecord.model_validate(record).model_dump()


def to_quote_schema(quote: Dict[str, Any]) -> Dict[str, Any]:
    """Map a quote (with quote_items) to the fixed quote output schema."""
    record = dict(quote)
    presentation = get_quote_status_presentation(record.get("status"))
    items = record.get("quote_items") or []

    record.update(
        {
            "account_name": get_quote_account_name(quote),
            "status_label": presentation["label"],
            "status_color": presentation["color"],
            "subtotal": sum(to_number(item.get("line_total")) for item in items),
            "quote_items": items,
        }
    )
    return QuoteRecord.model_validate(record).model_dump()
