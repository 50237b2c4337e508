"""
=============================================================================
ACCESS LOG
=============================================================================

Exactly one record per connection, written after the response (or the
decision not to send one) and before the socket closes.

=============================================================================
LOG FORMATS
=============================================================================

    TEXT (default), common-log style:
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [2026-01-08T19:28:31Z] "GET / HTTP/1.0" 200 1545      │
    │ ─────────     ──────────────────────  ──────────────  ─── ────      │
    │ client IP     UTC timestamp           request line    code body     │
    └─────────────────────────────────────────────────────────────────────┘

    JSON, one object per line for log aggregators:
    ┌─────────────────────────────────────────────────────────────────────┐
    │ {"remote_address": "127.0.0.1", "timestamp": "2026-01-08T19:28:31Z",│
    │  "method": "GET", "path": "/", "protocol": "HTTP/1.0",              │
    │  "status_code": 200, "body_length": 1545, "duration_ms": 0.84}      │
    └─────────────────────────────────────────────────────────────────────┘

When the request never parsed, method, path and protocol are "-":

    10.0.0.7 - - [2026-01-08T19:30:02Z] "- - -" 400 15

A read timeout is logged as 408 with a body length of 0: nothing was
written, but the line still shows why the connection ended.

=============================================================================
CONFIGURING OUTPUT
=============================================================================

Records go to the "minihttpd.access" logger, separate from the
operational loggers, so access lines can be routed on their own:

    logging.getLogger("minihttpd.access").addHandler(file_handler)

=============================================================================
"""

import json
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Callable


ACCESS_LOGGER_NAME = "minihttpd.access"

# Placeholder for request fields that were never parsed
UNKNOWN = "-"

TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"

LOG_FORMATS = ("text", "json")


@dataclass
class AccessRecord:
    """
    One served (or refused) connection.

    Attributes:
        remote_address: Client IP
        status_code:    Status sent, or 408 for a silent timeout close
        body_length:    Response body bytes, 0 when nothing was written
        method:         Request method, "-" if the request never parsed
        path:           Request path, "-" if the request never parsed
        protocol:       Request protocol, "-" if the request never parsed
        timestamp:      When the record was produced (UTC)
        duration_ms:    Time from accept to record
    """

    remote_address: str
    status_code: int
    body_length: int = 0
    method: str = UNKNOWN
    path: str = UNKNOWN
    protocol: str = UNKNOWN
    timestamp: datetime = field(default_factory=lambda: datetime.now(timezone.utc))
    duration_ms: float = 0.0

    @property
    def formatted_timestamp(self) -> str:
        return self.timestamp.astimezone(timezone.utc).strftime(TIMESTAMP_FORMAT)

    def to_dict(self) -> dict:
        """Plain dict for JSON serialization."""
        return {
            "remote_address": self.remote_address,
            "timestamp": self.formatted_timestamp,
            "method": self.method,
            "path": self.path,
            "protocol": self.protocol,
            "status_code": int(self.status_code),
            "body_length": self.body_length,
            "duration_ms": round(self.duration_ms, 2),
        }

    def to_text(self) -> str:
        """Common-log style line."""
        return (
            f'{self.remote_address} - - [{self.formatted_timestamp}] '
            f'"{self.method} {self.path} {self.protocol}" '
            f'{int(self.status_code)} {self.body_length}'
        )


class AccessLogger:
    """
    Callable sink for AccessRecords.

    The connection handler only sees Callable[[AccessRecord], None]; tests
    pass a list's append method instead of an AccessLogger.

        access_log = AccessLogger(log_format="json")
        access_log(record)
    """

    def __init__(
        self,
        log_format: str = "text",
        log_level: int = logging.INFO,
        logger: logging.Logger = None,
    ):
        if log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {log_format!r}")

        self.log_format = log_format
        self.log_level = log_level
        self.logger = logger or logging.getLogger(ACCESS_LOGGER_NAME)

    def format(self, record: AccessRecord) -> str:
        if self.log_format == "json":
            return json.dumps(record.to_dict())
        return record.to_text()

    def __call__(self, record: AccessRecord) -> None:
        self.logger.log(self.log_level, self.format(record))


AccessSink = Callable[[AccessRecord], None]
