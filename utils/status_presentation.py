"""
Status labels, colors and next-action hints for jobs and quotes.

Every map covers its whole enumeration; lookups for anything else (legacy
values, None) return a neutral fallback instead of failing.
"""

from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional

from models.status import JobStatus, QuoteStatus

STATUS_NEUTRAL_COLOR = "#64748b"
UNKNOWN_STATUS_LABEL = "Unknown"

JOB_STATUS_PRESENTATION: Mapping[JobStatus, Mapping[str, str]] = MappingProxyType(
    {
        JobStatus.QUOTE: {"label": "Quote", "short_label": "Quote", "color": "#6366f1"},
        JobStatus.WAITING_SCHEDULE: {
            "label": "Waiting to be scheduled",
            "short_label": "To schedule",
            "color": "#f59e0b",
        },
        JobStatus.WAITING_EXECUTION: {
            "label": "Scheduled",
            "short_label": "Scheduled",
            "color": "#0284c7",
        },
        JobStatus.DONE: {"label": "Completed", "short_label": "Done", "color": "#10b981"},
    }
)

QUOTE_STATUS_PRESENTATION: Mapping[QuoteStatus, Mapping[str, str]] = MappingProxyType(
    {
        QuoteStatus.DRAFT: {"label": "Draft", "short_label": "Draft", "color": "#64748b"},
        QuoteStatus.SENT: {"label": "Sent", "short_label": "Sent", "color": "#8b5cf6"},
        QuoteStatus.APPROVED: {"label": "Approved", "short_label": "Approved", "color": "#10b981"},
        QuoteStatus.REJECTED: {"label": "Rejected", "short_label": "Rejected", "color": "#ef4444"},
    }
)

NEXT_ACTION_TONE_COLORS: Mapping[str, str] = MappingProxyType(
    {"warning": "#d97706", "info": "#0284c7", "neutral": "#6366f1"}
)

_NEXT_ACTIONS: Mapping[JobStatus, Mapping[str, str]] = MappingProxyType(
    {
        JobStatus.QUOTE: {"key": "promote_to_job", "label": "Promote to job", "tone": "neutral"},
        JobStatus.WAITING_SCHEDULE: {"key": "schedule", "label": "Schedule job", "tone": "warning"},
        JobStatus.WAITING_EXECUTION: {"key": "open_job", "label": "Open for work", "tone": "info"},
    }
)


def _fallback(status: Any) -> Dict[str, str]:
    label = status if isinstance(status, str) and status else UNKNOWN_STATUS_LABEL
    return {"label": label, "short_label": label, "color": STATUS_NEUTRAL_COLOR}


def _lookup(table: Mapping, enum_cls, status: Any) -> Dict[str, str]:
    try:
        member = enum_cls(status)
    except (ValueError, TypeError):
        return _fallback(status)
    return dict(table[member])


def get_job_status_presentation(status: Any) -> Dict[str, str]:
    """
    Presentation for a job status.

    Examples:
        >>> get_job_status_presentation("done")["color"]
        '#10b981'
        >>> get_job_status_presentation("archived")["color"]
        '#64748b'
    """
    return _lookup(JOB_STATUS_PRESENTATION, JobStatus, status)


def get_quote_status_presentation(status: Any) -> Dict[str, str]:
    """Presentation for a quote status."""
    return _lookup(QUOTE_STATUS_PRESENTATION, QuoteStatus, status)


def get_next_action(status: Any) -> Optional[Dict[str, str]]:
    """
    Suggested next workflow step for a job in the given status.

    Returns None for done jobs and unknown values.
    """
    try:
        member = JobStatus(status)
    except (ValueError, TypeError):
        return None

    action = _NEXT_ACTIONS.get(member)
    if action is None:
        return None
    result = dict(action)
    result["color"] = NEXT_ACTION_TONE_COLORS[result["tone"]]
    return result
