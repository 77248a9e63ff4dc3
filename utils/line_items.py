"""
Billable line item helpers shared by jobs, quotes and invoices.

Quantities and prices arrive as numbers, numeric strings or junk from older
records. Anything that does not parse to a finite number counts as 0.
"""

import math
import uuid
from typing import Any, Dict, List


def to_number(value: Any) -> float:
    if value is None or isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    return number if math.isfinite(number) else 0.0


def get_line_item_total(item: Any) -> float:
    """quantity * unit_price for one line item dict."""
    if not isinstance(item, dict):
        return 0.0
    return to_number(item.get("quantity")) * to_number(item.get("unit_price"))


def get_line_items_subtotal(line_items: Any) -> float:
    if not isinstance(line_items, list):
        return 0.0
    return sum(get_line_item_total(item) for item in line_items)


def normalize_job_line_items(raw_line_items: Any) -> List[Dict[str, Any]]:
    """
    Bring stored line items into a uniform shape.

    Missing ids get a fresh UUID, descriptions become strings, quantity
    defaults to 1 and unit_price to an empty string.
    """
    if not isinstance(raw_line_items, list):
        return []

    normalized = []
    for item in raw_line_items:
        item = item if isinstance(item, dict) else {}
        quantity = item.get("quantity")
        unit_price = item.get("unit_price")
        normalized.append(
            {
                "id": item.get("id") or str(uuid.uuid4()),
                "description": str(item.get("description") or ""),
                "quantity": 1 if quantity is None else quantity,
                "unit_price": "" if unit_price is None else unit_price,
            }
        )
    return normalized
