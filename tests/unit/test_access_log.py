"""
Unit tests for access records and the access logger.
"""

import json
import logging
from datetime import datetime, timezone

import pytest

from minihttpd.access_log import ACCESS_LOGGER_NAME, AccessLogger, AccessRecord


@pytest.fixture
def record() -> AccessRecord:
    return AccessRecord(
        remote_address="127.0.0.1",
        status_code=200,
        body_length=1545,
        method="GET",
        path="/",
        protocol="HTTP/1.0",
        timestamp=datetime(2017, 2, 8, 19, 28, 31, tzinfo=timezone.utc),
        duration_ms=1.234,
    )


class TestAccessRecord:
    """Tests for AccessRecord formatting."""

    def test_text_line(self, record: AccessRecord):
        """Common-log style line with ISO timestamp."""
        assert record.to_text() == '127.0.0.1 - - [2017-02-08T19:28:31Z] "GET / HTTP/1.0" 200 1545'

    def test_unparsed_request_fields(self):
        """Fields of a request that never parsed are '-'."""
        record = AccessRecord(
            remote_address="10.0.0.7",
            status_code=400,
            body_length=15,
            timestamp=datetime(2026, 1, 8, 19, 30, 2, tzinfo=timezone.utc),
        )
        assert record.to_text() == '10.0.0.7 - - [2026-01-08T19:30:02Z] "- - -" 400 15'

    def test_to_dict(self, record: AccessRecord):
        """Dict form carries every field."""
        data = record.to_dict()

        assert data["remote_address"] == "127.0.0.1"
        assert data["timestamp"] == "2017-02-08T19:28:31Z"
        assert data["status_code"] == 200
        assert data["body_length"] == 1545
        assert data["duration_ms"] == 1.23

    def test_default_timestamp_is_utc(self):
        """A record without a timestamp gets the current UTC time."""
        record = AccessRecord(remote_address="::1", status_code=200)
        assert record.timestamp.tzinfo is not None


class TestAccessLogger:
    """Tests for AccessLogger."""

    def test_text_format(self, record: AccessRecord, caplog):
        """Text lines go to the access logger."""
        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER_NAME):
            AccessLogger()(record)

        assert caplog.records[-1].name == ACCESS_LOGGER_NAME
        assert caplog.records[-1].getMessage() == record.to_text()

    def test_json_format(self, record: AccessRecord, caplog):
        """JSON lines parse back to the record's dict."""
        with caplog.at_level(logging.INFO, logger=ACCESS_LOGGER_NAME):
            AccessLogger(log_format="json")(record)

        assert json.loads(caplog.records[-1].getMessage()) == record.to_dict()

    def test_unknown_format_rejected(self):
        """Only text and json are accepted."""
        with pytest.raises(ValueError):
            AccessLogger(log_format="xml")
