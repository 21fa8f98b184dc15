"""
Tests for logging helpers.
"""

import pytest

from banana_api.logging_config import (MAX_LOGGED_VALUE_LENGTH, clear_request_id,
                                       get_request_id, sanitize_for_logging,
                                       set_request_id)


class TestSanitizeForLogging:
    """Tests for sanitize_for_logging."""

    @pytest.mark.parametrize("value", [None, "", "   "])
    def test_blank_values(self, value):
        assert sanitize_for_logging(value) == ""

    def test_line_breaks_cannot_forge_records(self):
        assert sanitize_for_logging("East\r\nAfrica\nINFO fake") == "East Africa INFO fake"

    def test_long_values_are_truncated(self):
        result = sanitize_for_logging("x" * 500)

        assert result == "x" * MAX_LOGGED_VALUE_LENGTH + "..."

    def test_short_values_unchanged(self):
        assert sanitize_for_logging("Caribbean") == "Caribbean"


class TestRequestId:
    """Tests for request ID context binding."""

    def test_set_and_clear(self):
        assert set_request_id("req-1") == "req-1"
        assert get_request_id() == "req-1"

        clear_request_id()
        assert get_request_id() is None

    def test_generated_when_missing(self):
        request_id = set_request_id()
        try:
            assert len(request_id) == 36
            assert get_request_id() == request_id
        finally:
            clear_request_id()
