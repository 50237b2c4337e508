"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes this server actually produces, with their reason phrases.

    HTTP/1.1 404 Not Found\r\n
             ─┬─ ────┬────
              │      └── Reason phrase (HTTPStatus.phrase)
              └───────── Status code   (int(HTTPStatus.NOT_FOUND))

Responders are free to send any integer code with any reason phrase;
ResponseData does not require an HTTPStatus member. The enum exists so the
core's own canned responses never misspell a phrase.

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    HTTP status codes used by the server core and the static responder.

    IntEnum members compare equal to plain integers:

        >>> HTTPStatus.NOT_FOUND == 404
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    # 2xx
    OK = 200

    # 4xx - the client sent something we will not serve
    BAD_REQUEST = 400
    FORBIDDEN = 403
    NOT_FOUND = 404
    REQUEST_TIMEOUT = 408                   # Client took too long to send
    PAYLOAD_TOO_LARGE = 413                 # Body over the configured cap
    REQUEST_HEADER_FIELDS_TOO_LARGE = 431   # Header block over the cap

    # 5xx - we failed
    INTERNAL_SERVER_ERROR = 500
    SERVICE_UNAVAILABLE = 503               # Connection cap reached

    @property
    def phrase(self) -> str:
        """Reason phrase for the status line."""
        return _STATUS_PHRASES[self]


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Payload Too Large",
    HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE: "Request Header Fields Too Large",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
}
