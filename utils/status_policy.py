"""
Status policy for job and quote lifecycles.

This module is the authoritative finite-state policy for record status:
- Membership checks for JobStatus / QuoteStatus literals
- Allowed-successor tables for jobs and quotes
- Scheduling-status derivation used whenever a job gets a start time

All functions are pure. Invalid input (None, non-strings, case-mismatched
strings, legacy values) is treated as "not allowed" and never raises.
"""

from types import MappingProxyType
from typing import Any, Dict, FrozenSet, List, Mapping, Optional

from models.errors import create_validation_error
from models.status import JobStatus, QuoteStatus


JOB_STATUS_VALUES: FrozenSet[str] = frozenset(s.value for s in JobStatus)
QUOTE_STATUS_VALUES: FrozenSet[str] = frozenset(s.value for s in QuoteStatus)

# current_status -> allowed next statuses
JOB_ALLOWED_TRANSITIONS: Mapping[JobStatus, FrozenSet[JobStatus]] = MappingProxyType(
    {
        JobStatus.QUOTE: frozenset({JobStatus.WAITING_SCHEDULE}),
        JobStatus.WAITING_SCHEDULE: frozenset({JobStatus.WAITING_EXECUTION, JobStatus.QUOTE}),
        JobStatus.WAITING_EXECUTION: frozenset({JobStatus.DONE, JobStatus.WAITING_SCHEDULE}),
        JobStatus.DONE: frozenset({JobStatus.DONE}),
    }
)

QUOTE_ALLOWED_TRANSITIONS: Mapping[QuoteStatus, FrozenSet[QuoteStatus]] = MappingProxyType(
    {
        QuoteStatus.DRAFT: frozenset(
            {QuoteStatus.SENT, QuoteStatus.APPROVED, QuoteStatus.REJECTED}
        ),
        QuoteStatus.SENT: frozenset(
            {QuoteStatus.APPROVED, QuoteStatus.REJECTED, QuoteStatus.DRAFT}
        ),
        QuoteStatus.APPROVED: frozenset({QuoteStatus.APPROVED}),
        QuoteStatus.REJECTED: frozenset({QuoteStatus.REJECTED, QuoteStatus.DRAFT}),
    }
)


def is_job_status(value: Any) -> bool:
    """Return True iff value is exactly one of the JobStatus literals."""
    return isinstance(value, str) and value in JOB_STATUS_VALUES


def is_quote_status(value: Any) -> bool:
    """Return True iff value is exactly one of the QuoteStatus literals."""
    return isinstance(value, str) and value in QUOTE_STATUS_VALUES


def can_transition_job_status(from_status: Any, to_status: Any) -> bool:
    """
    Check whether a job may move from one status to another.

    Returns False when either side is not a valid JobStatus.

    Examples:
        >>> can_transition_job_status("quote", "waiting_schedule")
        True
        >>> can_transition_job_status("done", "waiting_execution")
        False
    """
    if not is_job_status(from_status) or not is_job_status(to_status):
        return False
    return JobStatus(to_status) in JOB_ALLOWED_TRANSITIONS[JobStatus(from_status)]


def can_transition_quote_status(from_status: Any, to_status: Any) -> bool:
    """
    Check whether a quote may move from one status to another.

    Returns False when either side is not a valid QuoteStatus.

    Examples:
        >>> can_transition_quote_status("rejected", "draft")
        True
        >>> can_transition_quote_status("approved", "draft")
        False
    """
    if not is_quote_status(from_status) or not is_quote_status(to_status):
        return False
    return QuoteStatus(to_status) in QUOTE_ALLOWED_TRANSITIONS[QuoteStatus(from_status)]


def get_status_for_scheduling(current_status: Any) -> JobStatus:
    """
    Derive the status a job adopts when it receives a scheduled start time.

    Rules, in order:
    1. done -> done
    2. quote -> waiting_schedule
    3. waiting_schedule -> waiting_execution
    4. waiting_execution -> waiting_execution
    5. anything else -> waiting_schedule

    Examples:
        >>> get_status_for_scheduling("waiting_schedule").value
        'waiting_execution'
        >>> get_status_for_scheduling(None).value
        'waiting_schedule'
    """
    if not is_job_status(current_status):
        return JobStatus.WAITING_SCHEDULE

    status = JobStatus(current_status)
    if status == JobStatus.DONE:
        return JobStatus.DONE
    if status == JobStatus.QUOTE:
        return JobStatus.WAITING_SCHEDULE
    return JobStatus.WAITING_EXECUTION


class TransitionResult:
    """Result of a transition policy check."""

    def __init__(
        self,
        allowed: bool,
        is_noop: bool = False,
        error_message: Optional[str] = None,
    ):
        self.allowed = allowed
        self.is_noop = is_noop
        self.error_message = error_message

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary format."""
        result = {"allowed": self.allowed, "is_noop": self.is_noop}
        if self.error_message:
            result["error_message"] = self.error_message
        return result


def _describe_blocked(
    entity: str, current_status: str, target_status: str, allowed: List[str]
) -> str:
    allowed_str = ", ".join(f"'{s}'" for s in sorted(allowed))
    return (
        f"{entity} transition from '{current_status}' to '{target_status}' "
        f"violates policy. Allowed transitions from '{current_status}': {allowed_str}"
    )


def validate_job_transition(current_status: Any, target_status: Any) -> TransitionResult:
    """
    Validate a job status change according to the transition table.

    Policy rules:
    1. Unknown current or target status is blocked
    2. target == current is a noop (nothing would be written)
    3. Edges present in JOB_ALLOWED_TRANSITIONS are allowed
    4. Everything else is blocked with the list of allowed successors

    Examples:
        >>> validate_job_transition("quote", "waiting_schedule").allowed
        True
        >>> validate_job_transition("done", "waiting_execution").allowed
        False
    """
    if not is_job_status(current_status):
        return TransitionResult(
            allowed=False, error_message=f"Unknown current job status: {current_status!r}"
        )
    if not is_job_status(target_status):
        return TransitionResult(
            allowed=False, error_message=f"Unknown target job status: {target_status!r}"
        )

    if target_status == current_status:
        return TransitionResult(allowed=True, is_noop=True)

    if can_transition_job_status(current_status, target_status):
        return TransitionResult(allowed=True)

    allowed = [s.value for s in JOB_ALLOWED_TRANSITIONS[JobStatus(current_status)]]
    return TransitionResult(
        allowed=False,
        error_message=_describe_blocked(
            "Job", JobStatus(current_status).value, JobStatus(target_status).value, allowed
        ),
    )


def validate_quote_transition(current_status: Any, target_status: Any) -> TransitionResult:
    """
    Validate a quote status change according to the transition table.

    Same rules as validate_job_transition, over QUOTE_ALLOWED_TRANSITIONS.
    """
    if not is_quote_status(current_status):
        return TransitionResult(
            allowed=False, error_message=f"Unknown current quote status: {current_status!r}"
        )
    if not is_quote_status(target_status):
        return TransitionResult(
            allowed=False, error_message=f"Unknown target quote status: {target_status!r}"
        )

    if target_status == current_status:
        return TransitionResult(allowed=True, is_noop=True)

    if can_transition_quote_status(current_status, target_status):
        return TransitionResult(allowed=True)

    allowed = [s.value for s in QUOTE_ALLOWED_TRANSITIONS[QuoteStatus(current_status)]]
    return TransitionResult(
        allowed=False,
        error_message=_describe_blocked(
            "Quote", QuoteStatus(current_status).value, QuoteStatus(target_status).value, allowed
        ),
    )


def check_job_transition_or_raise(current_status: Any, target_status: Any) -> TransitionResult:
    """
    Validate a job transition and raise ToolError if blocked.

    Raises:
        ToolError: With VALIDATION_ERROR code if transition is blocked
    """
    result = validate_job_transition(current_status, target_status)
    if not result.allowed:
        raise create_validation_error(result.error_message)
    return result


def check_quote_transition_or_raise(current_status: Any, target_status: Any) -> TransitionResult:
    """
    Validate a quote transition and raise ToolError if blocked.

    Raises:
        ToolError: With VALIDATION_ERROR code if transition is blocked
    """
    result = validate_quote_transition(current_status, target_status)
    if not result.allowed:
        raise create_validation_error(result.error_message)
    return result
