"""
=============================================================================
REQUEST ERROR TAXONOMY
=============================================================================

Every way a connection can fail while we read or answer it has its own
exception class. Each class carries the HTTP status the connection handler
should answer with, and whether an answer should be attempted at all.

=============================================================================
ERROR MAP
=============================================================================

    ┌──────────────────────────┬────────┬──────────────────────────────────┐
    │  Exception               │ Status │ What the handler does            │
    ├──────────────────────────┼────────┼──────────────────────────────────┤
    │  MalformedRequestLine    │  400   │ canned response, close           │
    │  MalformedHeaderLine     │  400   │ canned response, close           │
    │  IncompleteRequest       │  400   │ canned response (best effort)    │
    │  HeaderBlockTooLarge     │  431   │ canned response, close           │
    │  BodyTooLarge            │  413   │ canned response, close           │
    │  ReadTimeout             │  408   │ close WITHOUT writing anything   │
    │  TransportWriteFailure   │   -    │ logged and swallowed             │
    └──────────────────────────┴────────┴──────────────────────────────────┘

All parse-phase errors are terminal for the connection: there is no retry
and no partial recovery. None of them is fatal to the process.

=============================================================================
WHY NO RESPONSE ON TIMEOUT?
=============================================================================

A peer that opens a connection, sends half a header block and then goes
quiet is either gone or running a slow-send ("slowloris") attack. Writing
a 408 would mean blocking on yet another socket operation for a client we
already know is not cooperating, so we simply hang up.

=============================================================================
"""

from typing import Optional

from .status_codes import HTTPStatus


class HTTPError(Exception):
    """
    Base class for every failure raised while serving a connection.

    Attributes:
        status_code: HTTP status the canned error response should carry.
        send_response: Whether the handler should try to write that response.
    """

    status_code: HTTPStatus = HTTPStatus.BAD_REQUEST
    send_response: bool = True

    def __init__(self, message: str, status_code: Optional[HTTPStatus] = None):
        super().__init__(message)
        if status_code is not None:
            self.status_code = status_code


class MalformedRequestLine(HTTPError):
    """The request line is not exactly ``METHOD SP TARGET SP PROTOCOL``."""

    status_code = HTTPStatus.BAD_REQUEST


class MalformedHeaderLine(HTTPError):
    """A header line has no ``": "`` separator or carries an unusable value."""

    status_code = HTTPStatus.BAD_REQUEST


class IncompleteRequest(HTTPError):
    """The peer closed its side before a complete request arrived."""

    status_code = HTTPStatus.BAD_REQUEST


class HeaderBlockTooLarge(HTTPError):
    """The header block grew past the configured cap without ending."""

    status_code = HTTPStatus.REQUEST_HEADER_FIELDS_TOO_LARGE


class BodyTooLarge(HTTPError):
    """The announced Content-Length exceeds the configured body cap."""

    status_code = HTTPStatus.PAYLOAD_TOO_LARGE


class ReadTimeout(HTTPError):
    """A read on the byte source exceeded its idle deadline."""

    status_code = HTTPStatus.REQUEST_TIMEOUT
    send_response = False


class TransportWriteFailure(HTTPError):
    """Writing to the byte source failed (peer reset, broken pipe, timeout)."""

    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
    send_response = False
