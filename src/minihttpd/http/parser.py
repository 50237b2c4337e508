"""
=============================================================================
INCREMENTAL REQUEST PARSER
=============================================================================

TCP delivers a byte STREAM, not messages. One request can arrive in one
recv() or in fifty, split at any byte:

    recv() → b"GET /index.html HT"
    recv() → b"TP/1.1\r\nHo"
    recv() → b"st: x\r"
    recv() → b"\n\r\n"

RequestParser accepts those chunks one at a time via feed() and keeps the
partial-line state between calls. It never assumes a single read holds a
whole request, and it produces the same RequestData no matter where the
stream was cut.

=============================================================================
STATE MACHINE
=============================================================================

    ┌───────────────────────┐   first CRLF    ┌──────────────────┐
    │ AWAITING_REQUEST_LINE │ ──────────────► │ AWAITING_HEADERS │ ◄─┐
    └───────────────────────┘                 └────────┬─────────┘   │
                                                       │  header     │
                                                       │  line ──────┘
                                      empty line       │
                          ┌────────────────────────────┤
                          │ content-length > 0         │ no body
                          ▼                            ▼
                 ┌────────────────┐  body done  ┌──────────┐
                 │ AWAITING_BODY  │ ──────────► │ COMPLETE │
                 └────────────────┘             └──────────┘

Any error raised by feed() is final: the parser is not meant to be fed
again after it has raised.

=============================================================================
MEMORY BOUNDS
=============================================================================

Two caps keep a hostile peer from making us allocate without limit:

1. max_header_size covers the request line, every header line and the
   terminating blank line. A peer that keeps sending header bytes without
   ever finishing the block gets HeaderBlockTooLarge as soon as the
   running total crosses the cap, even in the middle of a line.

2. max_body_size is checked against Content-Length BEFORE any body byte
   is read, so an announced 10 GB body is refused up front.

With the reader feeding fixed-size chunks, the header buffer never holds
more than max_header_size + one chunk.

=============================================================================
"""

from enum import Enum
from typing import Dict, Optional, Tuple

from .errors import (
    BodyTooLarge,
    HeaderBlockTooLarge,
    IncompleteRequest,
    MalformedHeaderLine,
)
from .request import RequestData, parse_header_line, parse_request_line


CRLF = b"\r\n"

DEFAULT_MAX_HEADER_SIZE = 8 * 1024        # 8 KiB, the common server default
DEFAULT_MAX_BODY_SIZE = 1024 * 1024       # 1 MiB


class ParserState(Enum):
    """Where the parser is within the request."""
    AWAITING_REQUEST_LINE = "awaiting_request_line"
    AWAITING_HEADERS = "awaiting_headers"
    AWAITING_BODY = "awaiting_body"
    COMPLETE = "complete"


class RequestParser:
    """
    Incremental HTTP/1.x request parser.

    Usage:

        parser = RequestParser(max_header_size=8192)
        while not parser.is_complete:
            parser.feed(sock.recv(1024))
        request = parser.result(client_address)

    Attributes:
        state: Current ParserState.
        max_header_size: Cap on the header block in bytes.
        max_body_size: Cap on Content-Length in bytes.
    """

    def __init__(
        self,
        max_header_size: int = DEFAULT_MAX_HEADER_SIZE,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
    ):
        self.max_header_size = max_header_size
        self.max_body_size = max_body_size
        self.state = ParserState.AWAITING_REQUEST_LINE

        # Bytes received but not yet consumed as a complete line
        self._buffer = bytearray()
        # Header-block bytes consumed so far (lines plus their CRLFs)
        self._header_bytes = 0

        self._method: Optional[str] = None
        self._path: Optional[str] = None
        self._protocol: Optional[str] = None
        self._query: Dict[str, str] = {}
        self._headers: Dict[str, str] = {}

        self._expected_body = 0
        self._body = bytearray()

    @property
    def is_complete(self) -> bool:
        """True once a whole request has been parsed."""
        return self.state is ParserState.COMPLETE

    @property
    def body_remaining(self) -> int:
        """Body bytes still expected (0 outside AWAITING_BODY)."""
        if self.state is not ParserState.AWAITING_BODY:
            return 0
        return self._expected_body - len(self._body)

    # =========================================================================
    # FEEDING
    # =========================================================================

    def feed(self, data: bytes) -> ParserState:
        """
        Consume the next chunk of the stream.

        Args:
            data: Bytes exactly as they came off the connection.

        Returns:
            The parser state after consuming the chunk.

        Raises:
            MalformedRequestLine: Bad request line.
            MalformedHeaderLine: Bad header line or Content-Length value.
            HeaderBlockTooLarge: Header block crossed max_header_size.
            BodyTooLarge: Content-Length above max_body_size.
        """
        if self.state is ParserState.COMPLETE:
            # Single request per connection: anything after it is ignored
            return self.state

        self._buffer += data

        if self.state in (ParserState.AWAITING_REQUEST_LINE, ParserState.AWAITING_HEADERS):
            self._consume_header_lines()

        if self.state is ParserState.AWAITING_BODY:
            self._consume_body()

        return self.state

    def _consume_header_lines(self):
        """Pull complete lines out of the buffer until headers end or data runs out."""
        while self.state in (ParserState.AWAITING_REQUEST_LINE, ParserState.AWAITING_HEADERS):
            line_end = self._buffer.find(CRLF)

            if line_end == -1:
                # ─────────────────────────────────────────────────────────
                # PARTIAL LINE
                # ─────────────────────────────────────────────────────────
                # Keep it for the next feed(), but count it against the
                # cap now so a single endless line is caught early.
                if self._header_bytes + len(self._buffer) > self.max_header_size:
                    raise HeaderBlockTooLarge(
                        f"Header block exceeds {self.max_header_size} bytes"
                    )
                return

            line = bytes(self._buffer[:line_end])
            del self._buffer[:line_end + len(CRLF)]
            self._header_bytes += line_end + len(CRLF)

            if self._header_bytes > self.max_header_size:
                raise HeaderBlockTooLarge(
                    f"Header block exceeds {self.max_header_size} bytes"
                )

            if self.state is ParserState.AWAITING_REQUEST_LINE:
                self._method, self._path, self._query, self._protocol = (
                    parse_request_line(line)
                )
                self.state = ParserState.AWAITING_HEADERS
            elif not line:
                self._finish_headers()
            else:
                name, value = parse_header_line(line)
                self._headers[name] = value

    def _finish_headers(self):
        """Blank line seen: decide whether a body follows."""
        self._expected_body = self._declared_body_length()

        if self._expected_body > self.max_body_size:
            raise BodyTooLarge(
                f"Content-Length {self._expected_body} exceeds {self.max_body_size} bytes"
            )

        if self._expected_body > 0:
            self.state = ParserState.AWAITING_BODY
        else:
            self.state = ParserState.COMPLETE
            self._buffer.clear()

    def _declared_body_length(self) -> int:
        """Content-Length as an int, 0 when absent."""
        raw = self._headers.get("content-length")
        if raw is None:
            return 0

        # int() would also accept "+5", " 5" and "1_000"; HTTP only allows digits
        if not (raw.isascii() and raw.isdigit()):
            raise MalformedHeaderLine(f"Invalid Content-Length: {raw!r}")
        return int(raw)

    def _consume_body(self):
        """Move buffered bytes into the body, up to Content-Length."""
        wanted = self._expected_body - len(self._body)
        self._body += self._buffer[:wanted]
        self._buffer.clear()

        if len(self._body) == self._expected_body:
            self.state = ParserState.COMPLETE

    # =========================================================================
    # RESULT
    # =========================================================================

    def result(self, client_address: Tuple[str, int] = ("", 0)) -> RequestData:
        """
        Build the RequestData for a completed parse.

        Raises:
            IncompleteRequest: If called before the parser reached COMPLETE.
        """
        if not self.is_complete:
            raise IncompleteRequest(f"Request incomplete (state: {self.state.value})")

        return RequestData(
            method=self._method,
            path=self._path,
            protocol=self._protocol,
            query=dict(self._query),
            headers=dict(self._headers),
            body=bytes(self._body),
            client_address=client_address,
        )


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_header_size: int = DEFAULT_MAX_HEADER_SIZE,
    max_body_size: int = DEFAULT_MAX_BODY_SIZE,
) -> RequestData:
    """
    Parse a complete request held in memory.

    Useful for tests and for callers that already have the whole message.
    Connection handling goes through RequestReader instead.

    Raises:
        IncompleteRequest: If data ends before the request does.
        HTTPError subclasses: For any malformed or oversized input.
    """
    parser = RequestParser(max_header_size=max_header_size, max_body_size=max_body_size)
    parser.feed(data)
    return parser.result(client_address)
