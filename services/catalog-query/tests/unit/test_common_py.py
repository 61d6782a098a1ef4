"""
Unit tests for the shared logging and error code helpers.
"""
import json
import logging

import pytest

from common_py.error_codes import ErrorCode
from common_py.logging_config import (
    JsonFormatter,
    configure_logging,
    redact_headers,
    set_correlation_id,
)
from services.exceptions import ContinuationTokenMissing, PrimaryApiError

pytestmark = pytest.mark.unit


class TestRedactHeaders:
    def test_credentials_masked_scheme_kept(self):
        redacted = redact_headers({
            "Authorization": "Bearer abc.def.ghi",
            "Content-Type": "application/json",
            "Cookie": "session=1",
        })
        assert redacted == {
            "Authorization": "Bearer ***",
            "Content-Type": "application/json",
            "Cookie": "***",
        }


class TestErrorCodes:
    def test_retryable_and_fatal_split(self):
        assert ErrorCode.AUTHENTICATION_EXPIRED.is_retryable
        assert ErrorCode.CONTINUATION_TOKEN_MISSING.is_fatal
        assert not ErrorCode.SIGNING_FAILED.is_retryable

    def test_rate_limit_code_for_429(self):
        assert PrimaryApiError("slow down", status_code=429).error_code is ErrorCode.EXTERNAL_API_RATE_LIMIT
        assert PrimaryApiError("down", status_code=503).error_code is ErrorCode.TEMPORARY_SERVICE_UNAVAILABLE

    def test_to_dict(self):
        data = ContinuationTokenMissing(3).to_dict()
        assert data["error_code"] == "FATAL_2008"
        assert data["details"] == {"page_number": 3}
        assert data["fatal"] and not data["retryable"]


class TestLogging:
    def test_json_formatter_includes_correlation_id_and_kwargs(self):
        set_correlation_id("abc123")
        try:
            record = logging.LogRecord("catalog-query:test", logging.INFO, __file__, 1,
                                       "Fetched page", None, None)
            record.extra_kwargs = {"page": 2}
            payload = json.loads(JsonFormatter().format(record))
        finally:
            set_correlation_id(None)

        assert payload["correlation_id"] == "abc123"
        assert payload["page"] == 2
        assert payload["message"] == "Fetched page"

    def test_context_logger_accepts_kwargs(self, caplog):
        logger = configure_logging("catalog-query:test", log_level="DEBUG")
        logger._base.propagate = True

        with caplog.at_level(logging.INFO, logger="catalog-query:test"):
            logger.info("Fetched page", page=2, mode="visual_search")

        assert "Fetched page - page=2 - mode=visual_search" in caplog.text
