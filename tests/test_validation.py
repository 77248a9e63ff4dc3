"""
Unit tests for input validation utilities.

Tests limits, ids, cursors, status values and batch shapes.
"""

import re

import pytest

from models.errors import ErrorCode, ToolError
from utils.validation import (
    DEFAULT_LIMIT,
    MAX_BATCH_SIZE,
    MAX_LIMIT,
    get_current_utc_timestamp,
    validate_batch_size,
    validate_cursor,
    validate_db_path,
    validate_job_id,
    validate_job_status,
    validate_limit,
    validate_quote_status,
    validate_record_id,
    validate_unique_job_ids,
)


class TestValidateLimit:
    def test_none_returns_default(self):
        assert validate_limit(None) == DEFAULT_LIMIT
        assert validate_limit(None, default=500) == 500

    def test_bounds(self):
        assert validate_limit(1) == 1
        assert validate_limit(MAX_LIMIT) == MAX_LIMIT

    @pytest.mark.parametrize("limit", [0, -1, MAX_LIMIT + 1])
    def test_out_of_range(self, limit):
        with pytest.raises(ToolError) as exc_info:
            validate_limit(limit)
        assert exc_info.value.code == ErrorCode.VALIDATION_ERROR

    @pytest.mark.parametrize("limit", [True, "10", 10.0])
    def test_wrong_type(self, limit):
        with pytest.raises(ToolError) as exc_info:
            validate_limit(limit)
        assert "type" in exc_info.value.message


class TestValidateDbPathAndCursor:
    def test_db_path(self):
        assert validate_db_path(None) is None
        assert validate_db_path("data/crm.db") == "data/crm.db"
        with pytest.raises(ToolError):
            validate_db_path("   ")
        with pytest.raises(ToolError):
            validate_db_path(123)

    def test_cursor(self):
        assert validate_cursor(None) is None
        assert validate_cursor("eyJhIjoxfQ==") == "eyJhIjoxfQ=="
        with pytest.raises(ToolError):
            validate_cursor("")
        with pytest.raises(ToolError) as exc_info:
            validate_cursor("not base64!")
        assert "base64" in exc_info.value.message


class TestValidateStatus:
    @pytest.mark.parametrize("status", ["quote", "waiting_schedule", "waiting_execution", "done"])
    def test_valid_job_status(self, status):
        assert validate_job_status(status) == status

    @pytest.mark.parametrize("status", ["draft", "sent", "approved", "rejected"])
    def test_valid_quote_status(self, status):
        assert validate_quote_status(status) == status

    def test_invalid_job_status_lists_allowed_values(self):
        with pytest.raises(ToolError) as exc_info:
            validate_job_status("scheduled")
        assert exc_info.value.message == (
            "Invalid status value: 'scheduled'. Allowed values are: "
            "done, quote, waiting_execution, waiting_schedule"
        )

    def test_quote_status_is_not_a_job_status(self):
        with pytest.raises(ToolError):
            validate_job_status("draft")
        with pytest.raises(ToolError):
            validate_quote_status("done")

    def test_case_sensitive(self):
        with pytest.raises(ToolError):
            validate_job_status("Done")

    def test_whitespace_rejected(self):
        with pytest.raises(ToolError) as exc_info:
            validate_quote_status(" sent")
        assert "whitespace" in exc_info.value.message

    @pytest.mark.parametrize("status, fragment", [(None, "null"), ("", "empty"), (3, "type")])
    def test_bad_shapes(self, status, fragment):
        with pytest.raises(ToolError) as exc_info:
            validate_job_status(status)
        assert fragment in exc_info.value.message


class TestValidateIds:
    def test_valid(self):
        assert validate_job_id(1) == 1
        assert validate_record_id(9, "quote ID") == 9

    @pytest.mark.parametrize("value", [0, -5])
    def test_non_positive(self, value):
        with pytest.raises(ToolError) as exc_info:
            validate_job_id(value)
        assert ">= 1" in exc_info.value.message

    @pytest.mark.parametrize("value", [None, "1", 1.5, True])
    def test_wrong_type(self, value):
        with pytest.raises(ToolError):
            validate_job_id(value)

    def test_label_in_message(self):
        with pytest.raises(ToolError) as exc_info:
            validate_record_id(None, "quote ID")
        assert "quote ID" in exc_info.value.message


class TestBatchValidation:
    def test_empty_batch_is_valid(self):
        validate_batch_size([])

    def test_max_batch_is_valid(self):
        validate_batch_size([{}] * MAX_BATCH_SIZE)

    def test_oversized_batch(self):
        with pytest.raises(ToolError) as exc_info:
            validate_batch_size([{}] * (MAX_BATCH_SIZE + 1))
        assert "exceeds maximum" in exc_info.value.message

    def test_unique_ids(self):
        validate_unique_job_ids([{"id": 1}, {"id": 2}, "junk", {"status": "done"}])

    def test_duplicate_ids(self):
        with pytest.raises(ToolError) as exc_info:
            validate_unique_job_ids([{"id": 3}, {"id": 1}, {"id": 3}, {"id": 1}])
        assert exc_info.value.message == "Duplicate job IDs found in batch: 1, 3"

    def test_unhashable_ids_are_skipped(self):
        validate_unique_job_ids([{"id": [1]}, {"id": [1]}])


class TestTimestamp:
    def test_format(self):
        timestamp = get_current_utc_timestamp()
        assert re.fullmatch(r"\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z", timestamp)
