"""
HTTP protocol layer: request parsing, response serialization and errors.
"""

from .errors import (
    BodyTooLarge,
    HeaderBlockTooLarge,
    HTTPError,
    IncompleteRequest,
    MalformedHeaderLine,
    MalformedRequestLine,
    ReadTimeout,
    TransportWriteFailure,
)
from .parser import ParserState, RequestParser, parse_request
from .reader import RequestReader
from .request import RequestData, parse_header_line, parse_request_line
from .response import Reply, ResponseData, build_response, error_response
from .status_codes import HTTPStatus

__all__ = [
    "BodyTooLarge",
    "HeaderBlockTooLarge",
    "HTTPError",
    "HTTPStatus",
    "IncompleteRequest",
    "MalformedHeaderLine",
    "MalformedRequestLine",
    "ParserState",
    "ReadTimeout",
    "Reply",
    "RequestData",
    "RequestParser",
    "RequestReader",
    "ResponseData",
    "TransportWriteFailure",
    "build_response",
    "error_response",
    "parse_header_line",
    "parse_request",
    "parse_request_line",
]
