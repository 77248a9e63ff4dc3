"""
Error model for FieldCRM MCP tools.

Provides structured error codes and sanitized error messages.
"""

import os
import re
from enum import Enum
from typing import Optional


class ErrorCode(str, Enum):
    """Structured error codes for the MCP tools."""
    VALIDATION_ERROR = "VALIDATION_ERROR"
    NOT_FOUND = "NOT_FOUND"
    DB_NOT_FOUND = "DB_NOT_FOUND"
    DB_ERROR = "DB_ERROR"
    UPSTREAM_ERROR = "UPSTREAM_ERROR"
    INTERNAL_ERROR = "INTERNAL_ERROR"


class ToolError(Exception):
    """Base exception for tool errors with structured error information."""

    def __init__(
        self,
        code: ErrorCode,
        message: str,
        retryable: bool = False,
        original_error: Optional[Exception] = None
    ):
        """
        Initialize a tool error.

        Args:
            code: The error code
            message: Human-readable error message
            retryable: Whether the operation can be retried
            original_error: The original exception if this wraps another error
        """
        self.code = code
        self.message = message
        self.retryable = retryable
        self.original_error = original_error
        super().__init__(message)

    def to_dict(self) -> dict:
        """Convert error to dictionary format for MCP response."""
        return {
            "error": {
                "code": self.code.value,
                "message": self.message,
                "retryable": self.retryable
            }
        }


def sanitize_path(path: str) -> str:
    """
    Sanitize file paths to avoid exposing sensitive system details.

    Returns only the basename for absolute paths, keeps relative paths.
    """
    if os.path.isabs(path):
        return os.path.basename(path)
    return path


def sanitize_sql_error(error_msg: str) -> str:
    """
    Sanitize SQL error messages to remove statements and absolute paths.

    Args:
        error_msg: The original error message

    Returns:
        Sanitized error message
    """
    sanitized = re.sub(r'SQL:.*', '', error_msg, flags=re.IGNORECASE)
    sanitized = re.sub(r'"[^"]*SELECT[^"]*"', '[SQL query]', sanitized, flags=re.IGNORECASE)
    sanitized = re.sub(r"'[^']*SELECT[^']*'", '[SQL query]', sanitized, flags=re.IGNORECASE)
    sanitized = re.sub(
        r'\b(SELECT|INSERT|UPDATE|DELETE)\b.*', '[SQL query]', sanitized, flags=re.IGNORECASE
    )
    sanitized = re.sub(r'/[^\s]+/', '[path]/', sanitized)

    return sanitized.strip()


def sanitize_stack_trace(error_msg: str) -> str:
    """Keep only the first line of a multi-line error message."""
    lines = error_msg.split('\n')
    if lines:
        return lines[0].strip()
    return error_msg


def sanitize_secret(error_msg: str, secret: Optional[str]) -> str:
    """Mask an API key or token if it was echoed back by an upstream service."""
    if not secret:
        return error_msg
    return error_msg.replace(secret, "***")


def create_validation_error(message: str) -> ToolError:
    """Create a VALIDATION_ERROR (never retryable)."""
    return ToolError(
        code=ErrorCode.VALIDATION_ERROR,
        message=message,
        retryable=False
    )


def create_not_found_error(entity: str, record_id) -> ToolError:
    """
    Create a not-found error for a missing job or quote record.

    Args:
        entity: Record type, e.g. "Job" or "Quote"
        record_id: The identifier that was looked up

    Returns:
        ToolError with NOT_FOUND code
    """
    return ToolError(
        code=ErrorCode.NOT_FOUND,
        message=f"{entity} {record_id} does not exist",
        retryable=False
    )


def create_db_not_found_error(db_path: str) -> ToolError:
    """Create a DB_NOT_FOUND error with a sanitized path."""
    sanitized_path = sanitize_path(db_path)
    return ToolError(
        code=ErrorCode.DB_NOT_FOUND,
        message=f"Database not found: {sanitized_path}",
        retryable=False
    )


def create_db_error(
    message: str, retryable: bool = False, original_error: Optional[Exception] = None
) -> ToolError:
    """
    Create a database error.

    Args:
        message: Description of the database error
        retryable: Whether the operation can be retried
        original_error: The original exception

    Returns:
        ToolError with DB_ERROR code
    """
    sanitized_message = sanitize_sql_error(message)
    sanitized_message = sanitize_stack_trace(sanitized_message)

    return ToolError(
        code=ErrorCode.DB_ERROR,
        message=f"Database error: {sanitized_message}",
        retryable=retryable,
        original_error=original_error
    )


def create_upstream_error(
    provider: str,
    message: str,
    retryable: bool = True,
    original_error: Optional[Exception] = None,
) -> ToolError:
    """
    Create an error for a failed call to a geocoding, routing or invoicing API.

    Args:
        provider: Short provider tag, e.g. "nominatim", "osrm", "invoice"
        message: Description of the failure
        retryable: Whether the call can be retried
        original_error: The original exception

    Returns:
        ToolError with UPSTREAM_ERROR code
    """
    return ToolError(
        code=ErrorCode.UPSTREAM_ERROR,
        message=f"{provider} error: {sanitize_stack_trace(message)}",
        retryable=retryable,
        original_error=original_error
    )


def create_internal_error(message: str, original_error: Optional[Exception] = None) -> ToolError:
    """Wrap an unexpected exception as a retryable INTERNAL_ERROR."""
    sanitized_message = sanitize_stack_trace(message)

    return ToolError(
        code=ErrorCode.INTERNAL_ERROR,
        message=f"Internal error: {sanitized_message}",
        retryable=True,
        original_error=original_error
    )
