import logging

import pytest

from insight_stream.core.error_handler import (
    StructuredLogger,
    correlation_scope,
    get_correlation_id,
    set_correlation_id,
)


def test_structured_logger_redacts_sensitive_keys():
    logger = StructuredLogger("tests")

    # allowlist: test fixture values, not real secrets
    data = {
        "access_token": "placeholder_token",  # pragma: allowlist secret
        "Authorization": "Bearer placeholder",  # pragma: allowlist secret
        "email": "me@example.com",
        "url": "http://localhost:3001/api/analyze-keywords/stream",
    }
    sanitized = logger._sanitize_data(data)

    assert sanitized["access_token"] == "[REDACTED]"
    assert sanitized["Authorization"] == "[REDACTED]"
    assert sanitized["email"] == "[REDACTED]"
    assert sanitized["url"].endswith("/stream")


def test_structured_logger_redacts_nested_values():
    logger = StructuredLogger("tests")

    sanitized = logger._sanitize_data(
        {"request": {"channelId": "UC1", "oauth": [{"refresh_token": "x"}]}}
    )

    assert sanitized["request"]["channelId"] == "UC1"
    assert sanitized["request"]["oauth"][0]["refresh_token"] == "[REDACTED]"


def test_correlation_scope_restores_previous_id():
    set_correlation_id("outer")

    with correlation_scope("session-1") as bound:
        assert bound == "session-1"
        assert get_correlation_id() == "session-1"

    assert get_correlation_id() == "outer"
    set_correlation_id(None)


def test_log_lines_carry_correlation_id(caplog: pytest.LogCaptureFixture):
    logger = StructuredLogger("tests.correlation")

    with caplog.at_level(logging.INFO, logger="tests.correlation"):
        with correlation_scope("abc123"):
            logger.info("Analysis session started", token="secret-value")

    record = caplog.records[-1]
    assert record.getMessage() == "[abc123] Analysis session started"
    assert record.structured_data["correlation_id"] == "abc123"
    assert record.structured_data["token"] == "[REDACTED]"
