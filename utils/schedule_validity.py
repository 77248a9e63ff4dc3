"""
Scheduled start time parsing and legacy-date filtering.

Older records carry placeholder schedule dates (e.g. 1970-01-01) that mean
"not scheduled". Anything earlier than LEGACY_SCHEDULE_CUTOFF_ISO is treated
as no schedule at all.
"""

from datetime import datetime, timezone
from typing import Any, Optional

LEGACY_SCHEDULE_CUTOFF_ISO = "2000-01-01T00:00:00.000Z"
LEGACY_SCHEDULE_CUTOFF = datetime(2000, 1, 1, tzinfo=timezone.utc)


def to_iso_utc(value: datetime) -> str:
    """Format an aware datetime as YYYY-MM-DDTHH:MM:SS.mmmZ."""
    return (
        value.astimezone(timezone.utc)
        .isoformat(timespec="milliseconds")
        .replace("+00:00", "Z")
    )


def parse_valid_scheduled_at(value: Any) -> Optional[datetime]:
    """
    Parse a schedule value into an aware UTC datetime.

    Accepts ISO 8601 strings (with "Z" or an offset; naive values are read
    as UTC) and datetime objects.

    Returns:
        The parsed datetime, or None when the value is empty, unparsable or
        earlier than the legacy cutoff
    """
    if not value:
        return None

    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str):
        text = value.strip()
        if text.endswith("Z") or text.endswith("z"):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)

    if parsed < LEGACY_SCHEDULE_CUTOFF:
        return None
    return parsed.astimezone(timezone.utc)


def normalize_scheduled_at(value: Any) -> Optional[str]:
    """Return the canonical UTC ISO string for a valid schedule, else None."""
    parsed = parse_valid_scheduled_at(value)
    return to_iso_utc(parsed) if parsed else None


def get_schedule_query_from(from_iso: Any) -> str:
    """
    Lower bound for calendar queries.

    Falls back to the legacy cutoff so placeholder dates never show up on
    the calendar.
    """
    parsed = parse_valid_scheduled_at(from_iso)
    if parsed is None:
        return LEGACY_SCHEDULE_CUTOFF_ISO
    return to_iso_utc(parsed)
