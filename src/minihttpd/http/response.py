"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Turns a structured ResponseData into the exact bytes written to the wire.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  STATUS LINE      HTTP/1.1 404 Not Found\r\n                        │
    │                   ───┬──── ─┬─ ────┬────                            │
    │                   Protocol Code  Reason   (all caller-supplied)     │
    ├─────────────────────────────────────────────────────────────────────┤
    │  HEADERS          Content-Type: text/html\r\n     ← caller          │
    │                   Content-Length: 143\r\n         ← ALWAYS ours     │
    │                   Date: Wed, 01 Jan 2026 ...\r\n  ← ours if absent  │
    │                   Server: minihttpd/1.0\r\n       ← ALWAYS ours     │
    │                   Connection: close\r\n           ← ours if absent  │
    ├─────────────────────────────────────────────────────────────────────┤
    │  SEPARATOR        \r\n                                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │  BODY             <!DOCTYPE html>...              (verbatim bytes)  │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHO OWNS WHICH HEADER
=============================================================================

Content-Length and Server are owned by the builder. Whatever the caller put
under those names, in ANY case ("content-length", "CONTENT-LENGTH", ...),
is dropped before serialization, so the output always carries exactly one
of each and Content-Length always equals len(body). A responder that lies
about its body length simply cannot produce a lying response.

Date and Connection are defaults: the caller's value wins when present.
The server answers one request per connection, so the default is
"Connection: close".

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from .status_codes import HTTPStatus


DEFAULT_PROTOCOL = "HTTP/1.1"
DEFAULT_SERVER_NAME = "minihttpd/1.0"

CRLF = "\r\n"

# Header names the builder always writes itself (compared lowercase)
_OWNED_HEADERS = ("content-length", "server")


@dataclass
class Reply:
    """
    What a responder hands back for a request.

    The connection handler turns a Reply into a ResponseData, echoing the
    request's protocol and setting Content-Type from content_type.
    """

    status_code: int = HTTPStatus.OK
    reason: str = "OK"
    body: bytes = b""
    content_type: str = "text/html; charset=utf-8"


@dataclass
class ResponseData:
    """
    An outbound response, prior to serialization.

    Attributes:
        protocol:     Status-line version token, echoes the request
        status_code:  Numeric status, any integer the responder chooses
        reason:       Reason phrase, any text the responder chooses
        headers:      Caller headers, serialized in insertion order
        body:         Raw body bytes
    """

    protocol: str = DEFAULT_PROTOCOL
    status_code: int = HTTPStatus.OK
    reason: str = "OK"
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @classmethod
    def from_reply(cls, reply: Reply, protocol: str = DEFAULT_PROTOCOL) -> "ResponseData":
        """Wrap a responder's Reply for the given request protocol."""
        return cls(
            protocol=protocol,
            status_code=int(reply.status_code),
            reason=reply.reason,
            headers={"Content-Type": reply.content_type},
            body=reply.body,
        )

    @property
    def status_line(self) -> str:
        """
        The first line of the response, without its CRLF.

        Example: "HTTP/1.1 200 OK"
        """
        return f"{self.protocol} {int(self.status_code)} {self.reason}"

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the response for socket.sendall().

        Never fails for well-formed input and does not validate header
        characters. The original headers dict is left untouched.

        Args:
            server_name: Value for the Server header.

        Returns:
            Status line, headers, blank line and body, as bytes.
        """
        response_headers = {
            name: value
            for name, value in self.headers.items()
            if name.lower() not in _OWNED_HEADERS
        }
        present = {name.lower() for name in response_headers}

        response_headers["Content-Length"] = str(len(self.body))

        # RFC 7231: origin servers with a clock must send Date
        if "date" not in present:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        response_headers["Server"] = server_name

        if "connection" not in present:
            response_headers["Connection"] = "close"

        lines = [self.status_line]
        lines.extend(f"{name}: {value}" for name, value in response_headers.items())

        head = (CRLF.join(lines) + CRLF + CRLF).encode("utf-8")
        return head + self.body


def build_response(response: ResponseData, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
    """Function form of ResponseData.to_bytes()."""
    return response.to_bytes(server_name)


# =============================================================================
# CANNED RESPONSES
# =============================================================================

def error_response(
    status: HTTPStatus,
    protocol: str = DEFAULT_PROTOCOL,
    message: Optional[str] = None,
) -> ResponseData:
    """
    Plain-text response the core sends when it cannot serve a request.

    Used for parse failures (400/413/431), responder crashes (500) and
    connection-cap rejections (503).

        error_response(HTTPStatus.PAYLOAD_TOO_LARGE)
        →  HTTP/1.1 413 Payload Too Large
           Content-Type: text/plain; charset=utf-8
           ...
           413 Payload Too Large
    """
    text = message or f"{int(status)} {status.phrase}"
    return ResponseData(
        protocol=protocol,
        status_code=status,
        reason=status.phrase,
        headers={"Content-Type": "text/plain; charset=utf-8"},
        body=text.encode("utf-8"),
    )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

_DAYS = ("Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun")
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Wed, 01 Jan 2026 12:00:00 GMT

    Built by hand rather than with strftime, whose day and month names
    follow the process locale.

    Args:
        dt: Datetime to format, in UTC.
    """
    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
