"""
=============================================================================
CONNECTION HANDLER
=============================================================================

Serves exactly one request on one connection, then closes it.

=============================================================================
CONNECTION PHASES
=============================================================================

    ┌─────────┐  request parsed   ┌────────────┐  response written  ┌─────────┐
    │ READING │ ────────────────► │ RESPONDING │ ─────────────────► │ CLOSING │
    └────┬────┘                   └────────────┘                    └─────────┘
         │                                                               ▲
         │  HTTPError: canned error response (or nothing on timeout)     │
         └───────────────────────────────────────────────────────────────┘

No phase is ever retried. Whatever happens, the handler:

    1. emits exactly ONE access record, and
    2. closes the byte source,

in that order, on every exit path, including exceptions nobody expected.
Those are logged with their traceback and never propagated, so a bad
request can cost at most its own connection, never the worker thread.

=============================================================================
"""

import logging
import time
from enum import Enum
from typing import Callable, Optional, Union

from .access_log import AccessRecord, AccessSink
from .core.connection import ByteSource
from .http.errors import HTTPError, TransportWriteFailure
from .http.reader import RequestReader
from .http.request import RequestData
from .http.response import (
    DEFAULT_SERVER_NAME,
    Reply,
    ResponseData,
    error_response,
)
from .http.status_codes import HTTPStatus


logger = logging.getLogger(__name__)


Responder = Callable[[RequestData], Union[Reply, ResponseData]]


class ConnectionPhase(Enum):
    """Where a connection is in its single request/response cycle."""
    READING = "reading"
    RESPONDING = "responding"
    CLOSING = "closing"


class ConnectionHandler:
    """
    Runs the read → respond → close cycle for one connection at a time.

    The handler keeps no per-connection state on self, so one instance
    is shared by every worker thread.

    Usage:

        handler = ConnectionHandler(
            responder=StaticFileResponder("./public"),
            access_log=AccessLogger(),
        )
        handler.handle(connection)

    Attributes:
        responder: Maps a RequestData to a Reply.
        access_log: Receives one AccessRecord per connection.
        reader: Reads the request from the byte source.
        server_name: Value of the Server response header.
    """

    def __init__(
        self,
        responder: Responder,
        access_log: AccessSink,
        reader: Optional[RequestReader] = None,
        server_name: str = DEFAULT_SERVER_NAME,
    ):
        self.responder = responder
        self.access_log = access_log
        self.reader = reader or RequestReader()
        self.server_name = server_name

    def handle(self, source: ByteSource) -> AccessRecord:
        """
        Serve one connection and close it.

        Never raises.

        Returns:
            The access record that was emitted.
        """
        started = time.perf_counter()
        phase = ConnectionPhase.READING
        request: Optional[RequestData] = None
        response: Optional[ResponseData] = None
        status_code = HTTPStatus.INTERNAL_SERVER_ERROR

        with source:
            try:
                # ─────────────────────────────────────────────────────────
                # READING
                # ─────────────────────────────────────────────────────────
                try:
                    request = self.reader.read(source)
                except HTTPError as e:
                    status_code = e.status_code
                    if e.send_response:
                        logger.info(f"Rejecting request from {self._peer(source)}: {e}")
                        response = error_response(e.status_code)
                        self._write(source, response)
                    else:
                        logger.info(f"Closing {self._peer(source)} without response: {e}")

                # ─────────────────────────────────────────────────────────
                # RESPONDING
                # ─────────────────────────────────────────────────────────
                if request is not None:
                    phase = ConnectionPhase.RESPONDING
                    response = self._respond(request)
                    status_code = response.status_code
                    self._write(source, response)

            except Exception as e:
                logger.exception(
                    f"Unexpected error while {phase.value} {self._peer(source)}: {e}"
                )
                if response is None:
                    status_code = HTTPStatus.INTERNAL_SERVER_ERROR
                    response = error_response(
                        HTTPStatus.INTERNAL_SERVER_ERROR,
                        protocol=request.protocol if request else "HTTP/1.1",
                    )
                    try:
                        self._write(source, response)
                    except Exception as write_error:
                        logger.warning(f"Could not send 500 to {self._peer(source)}: {write_error}")

            # ─────────────────────────────────────────────────────────────
            # CLOSING: log first, then leave the with-block
            # ─────────────────────────────────────────────────────────────
            phase = ConnectionPhase.CLOSING
            record = AccessRecord(
                remote_address=self._peer(source),
                status_code=int(status_code),
                body_length=len(response.body) if response is not None else 0,
                method=request.method if request else "-",
                path=request.path if request else "-",
                protocol=request.protocol if request else "-",
                duration_ms=(time.perf_counter() - started) * 1000,
            )
            self._emit(record)

        return record

    def reject(self, source: ByteSource, status: HTTPStatus = HTTPStatus.SERVICE_UNAVAILABLE) -> AccessRecord:
        """
        Answer a connection with a canned error without reading from it.

        Used when the server is at its connection cap. The record and the
        close follow the same rules as handle().
        """
        response = error_response(status)
        with source:
            self._write(source, response)
            record = AccessRecord(
                remote_address=self._peer(source),
                status_code=int(status),
                body_length=len(response.body),
            )
            self._emit(record)
        return record

    def _respond(self, request: RequestData) -> ResponseData:
        """Ask the responder for a reply; a crashing responder becomes a 500."""
        try:
            reply = self.responder(request)
        except Exception as e:
            logger.exception(f"Responder failed for {request.method} {request.path}: {e}")
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, protocol=request.protocol)

        if isinstance(reply, ResponseData):
            return reply
        return ResponseData.from_reply(reply, protocol=request.protocol)

    def _write(self, source: ByteSource, response: ResponseData) -> bool:
        """Write a response once; failures are logged, never retried."""
        try:
            source.write(response.to_bytes(self.server_name))
            return True
        except TransportWriteFailure as e:
            logger.warning(f"Could not send {response.status_code} to {self._peer(source)}: {e}")
            return False

    def _emit(self, record: AccessRecord):
        try:
            self.access_log(record)
        except Exception as e:
            logger.exception(f"Access log sink failed: {e}")

    @staticmethod
    def _peer(source: ByteSource) -> str:
        return source.remote_address[0] or "-"
