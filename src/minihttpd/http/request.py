"""
=============================================================================
HTTP REQUEST DATA AND LINE PARSERS
=============================================================================

This module holds the parsed request value (RequestData) and the two
line-level parsers the incremental RequestParser is built from:

    parse_request_line()   "GET /search?q=a HTTP/1.1"  → method/path/query/protocol
    parse_header_line()    "Host: example.com"         → ("host", "example.com")

Neither function knows anything about sockets, chunks or buffering. They
receive one complete line (CRLF already removed) and either return the
parsed pieces or raise a typed error. Everything about "where does the line
end" lives in parser.py.

=============================================================================
REQUEST LINE ANATOMY
=============================================================================

    GET /search?q=a&lang=en HTTP/1.1
    ─┬─ ──────────┬──────── ────┬───
     │            │             │
   Method       Target       Protocol
                  │
       ┌──────────┴──────────┐
       │                     │
     Path                  Query
    /search             q=a&lang=en  →  {"q": "a", "lang": "en"}

Exactly ONE space separates the three tokens. "GET  / HTTP/1.1" (two
spaces) produces an empty token, and an empty token is a malformed
request line, never something we silently skip over.

=============================================================================
WHY ISO-8859-1?
=============================================================================

HTTP/1.1 header text is historically ISO-8859-1 (Latin-1). Decoding with
Latin-1 maps every byte 0x00-0xFF to exactly one code point, so decoding
never fails and never loses information: a UTF-8 path like "/caf\xc3\xa9"
comes through byte for byte and the responder can re-encode it if it
cares. Decoding as UTF-8 would force us to choose between raising on bad
input and corrupting it with replacement characters.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from .errors import MalformedHeaderLine, MalformedRequestLine


# Encoding for request-line and header bytes (see module docstring)
HEADER_ENCODING = "iso-8859-1"


@dataclass
class RequestData:
    """
    A fully parsed inbound request.

    =========================================================================
    INVARIANT
    =========================================================================

    method, path and protocol are always set together. The reader either
    returns a complete RequestData or raises; there is no half-built value
    for a caller to trip over.

    =========================================================================
    ATTRIBUTES
    =========================================================================

        method:          Uppercase token, never empty ("GET", "POST", ...)
        path:            Target path without the query, always starts with "/"
        protocol:        Version token, echoed into the response status line
        query:           {"key": "value"}, last occurrence of a key wins
        headers:         {"lowercase-name": "trimmed value"}, last duplicate wins
        body:            Exactly Content-Length bytes, or b"" without the header
        client_address:  (ip, port) of the peer, for the access log

    =========================================================================
    """

    method: str
    path: str
    protocol: str
    query: Dict[str, str] = field(default_factory=dict)
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    client_address: Tuple[str, int] = ("", 0)

    @property
    def content_length(self) -> int:
        """Declared body length, 0 when the header is absent."""
        try:
            return int(self.headers.get("content-length", 0))
        except ValueError:
            return 0

    def get_header(self, name: str, default: str = "") -> str:
        """
        Case-insensitive header lookup.

        Header names are stored lowercase, so "Host", "HOST" and "host"
        all find the same entry.
        """
        return self.headers.get(name.lower(), default)

    def get_query(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Query parameter value, or default when the key is missing."""
        return self.query.get(name, default)


# =============================================================================
# REQUEST LINE
# =============================================================================

def parse_request_line(line: bytes) -> Tuple[str, str, Dict[str, str], str]:
    """
    Split a request line into its parts.

    =====================================================================
    RULES
    =====================================================================

    1. Split on single spaces. Exactly three tokens, none empty.
    2. Method is uppercased ("get" → "GET").
    3. Target splits on the FIRST "?" into path and raw query.
    4. Path must start with "/".
    5. Query splits on "&" into pairs, each pair on its first "=".

    =====================================================================

    Args:
        line: The request line without its terminating CRLF.

    Returns:
        Tuple of (method, path, query, protocol).

    Raises:
        MalformedRequestLine: If any rule above is broken.
    """
    text = line.decode(HEADER_ENCODING)
    tokens = text.split(" ")

    if len(tokens) != 3 or not all(tokens):
        raise MalformedRequestLine(f"Invalid request line: {text!r}")

    method, target, protocol = tokens
    method = method.upper()

    path, _, raw_query = target.partition("?")
    if not path.startswith("/"):
        raise MalformedRequestLine(f"Request target must start with '/': {target!r}")

    return method, path, parse_query(raw_query), protocol


def parse_query(raw_query: str) -> Dict[str, str]:
    """
    Parse a raw query string into a flat mapping.

        "q=a&lang=en"   → {"q": "a", "lang": "en"}
        "flag&q=a"      → {"flag": "", "q": "a"}
        "q=1&q=2"       → {"q": "2"}          (last one wins)
        "q=a=b"         → {"q": "a=b"}        (split on first "=")

    Percent-encoding is NOT decoded: "q=hello%20world" stays
    "hello%20world". Decoding is left to whoever consumes the value.
    Empty pairs from "&&" or a trailing "&" are skipped.
    """
    query: Dict[str, str] = {}
    if not raw_query:
        return query

    for pair in raw_query.split("&"):
        if not pair:
            continue
        key, _, value = pair.partition("=")
        query[key] = value

    return query


# =============================================================================
# HEADER LINES
# =============================================================================

HEADER_SEPARATOR = b": "


def parse_header_line(line: bytes) -> Tuple[str, str]:
    """
    Parse one header line into a (name, value) pair.

    The separator is the two bytes ": " (colon, space). The name is
    everything before the first separator, trimmed and lowercased; the
    value is everything after it, trimmed.

        b"Content-Type: text/html"      → ("content-type", "text/html")
        b"  X-Padded :  spaced  "       → ("x-padded", "spaced")
        b"Time: 12: 30"                 → ("time", "12: 30")

    Args:
        line: One header line without its CRLF.

    Returns:
        Tuple of (lowercase name, trimmed value).

    Raises:
        MalformedHeaderLine: If there is no ": " or the name is empty.
    """
    name, separator, value = line.partition(HEADER_SEPARATOR)
    if not separator:
        raise MalformedHeaderLine(
            f"Header line missing ': ' separator: {line.decode(HEADER_ENCODING)!r}"
        )

    name_text = name.decode(HEADER_ENCODING).strip().lower()
    if not name_text:
        raise MalformedHeaderLine(
            f"Header line has an empty name: {line.decode(HEADER_ENCODING)!r}"
        )

    return name_text, value.decode(HEADER_ENCODING).strip()
