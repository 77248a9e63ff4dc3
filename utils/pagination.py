"""
Pagination helpers for list_jobs.

Queries fetch limit+1 rows; the extra row only signals that another page
exists and is never returned.
"""

from typing import Any, Dict, List, Optional, Tuple

from utils.cursor import encode_cursor


def compute_has_more(rows: List[Dict[str, Any]], limit: int) -> bool:
    return len(rows) > limit


def build_next_cursor(last_row: Optional[Dict[str, Any]]) -> Optional[str]:
    """Build a cursor from the last row of the current page (None for an empty page)."""
    if last_row is None:
        return None
    return encode_cursor(last_row["created_at"], last_row["id"])


def paginate_results(
    rows: List[Dict[str, Any]], limit: int
) -> Tuple[List[Dict[str, Any]], bool, Optional[str]]:
    """
    Apply pagination logic to query results.

    Args:
        rows: Records from the database query (up to limit+1)
        limit: The requested page size

    Returns:
        Tuple of (page, has_more, next_cursor); next_cursor is None on the
        terminal page
    """
    if not rows:
        return ([], False, None)

    has_more = compute_has_more(rows, limit)
    page = rows[:limit]

    next_cursor = build_next_cursor(page[-1]) if has_more and page else None
    return (page, has_more, next_cursor)
