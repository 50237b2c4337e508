"""
=============================================================================
REQUEST READER
=============================================================================

Pulls bytes from a ByteSource and feeds them to a RequestParser until one
complete request has arrived.

    ┌──────────────┐  read(chunk, timeout)   ┌──────────────┐
    │  ByteSource  │ ──────────────────────► │ RequestReader│
    └──────────────┘                         └──────┬───────┘
                                                    │ feed(chunk)
                                                    ▼
                                             ┌──────────────┐
                                             │RequestParser │ → RequestData
                                             └──────────────┘

=============================================================================
DEADLINES
=============================================================================

Two clocks bound how long a peer can keep us waiting:

    idle_timeout     Longest silence allowed between two reads.
    request_timeout  Longest time for the WHOLE request, from first read.

Each read waits for min(idle_timeout, time left on request_timeout). The
idle timeout alone would let a peer that sends one byte every nine
seconds hold a worker forever; the request timeout puts a ceiling on that.

=============================================================================
"""

import time
from typing import TYPE_CHECKING, Callable, Optional

from .errors import IncompleteRequest, ReadTimeout
from .parser import DEFAULT_MAX_BODY_SIZE, DEFAULT_MAX_HEADER_SIZE, RequestParser
from .request import RequestData

if TYPE_CHECKING:
    # core.connection imports http.errors; a runtime import would be circular
    from ..core.connection import ByteSource


class RequestReader:
    """
    Reads exactly one request from a byte source.

    A reader holds configuration only, so one instance can serve every
    connection concurrently.

    Attributes:
        chunk_size: Bytes requested per read.
        idle_timeout: Seconds allowed per read.
        request_timeout: Seconds allowed for the whole request, or None.
        max_header_size: Header block cap passed to the parser.
        max_body_size: Body cap passed to the parser.
    """

    def __init__(
        self,
        chunk_size: int = 1024,
        idle_timeout: Optional[float] = 10.0,
        request_timeout: Optional[float] = 30.0,
        max_header_size: int = DEFAULT_MAX_HEADER_SIZE,
        max_body_size: int = DEFAULT_MAX_BODY_SIZE,
        clock: Callable[[], float] = time.monotonic,
    ):
        self.chunk_size = chunk_size
        self.idle_timeout = idle_timeout
        self.request_timeout = request_timeout
        self.max_header_size = max_header_size
        self.max_body_size = max_body_size
        self._clock = clock

    @classmethod
    def from_config(cls, config) -> "RequestReader":
        """Build a reader from a ServerConfig."""
        return cls(
            chunk_size=config.read_chunk_size,
            idle_timeout=config.idle_timeout,
            request_timeout=config.request_timeout,
            max_header_size=config.max_header_size,
            max_body_size=config.max_body_size,
        )

    def read(self, source: "ByteSource") -> RequestData:
        """
        Read and parse one request.

        Returns:
            A fully populated RequestData. Bytes the peer sent after the
            request are left unread or discarded.

        Raises:
            ReadTimeout: A read waited past its deadline.
            IncompleteRequest: The peer closed before the request ended.
            MalformedRequestLine, MalformedHeaderLine: Syntax errors.
            HeaderBlockTooLarge, BodyTooLarge: Size caps exceeded.
        """
        parser = RequestParser(
            max_header_size=self.max_header_size,
            max_body_size=self.max_body_size,
        )
        deadline = None
        if self.request_timeout is not None:
            deadline = self._clock() + self.request_timeout

        while not parser.is_complete:
            chunk = source.read(self.chunk_size, self._next_timeout(deadline))
            if not chunk:
                raise IncompleteRequest(
                    f"Peer closed the connection mid-request (state: {parser.state.value})"
                )
            parser.feed(chunk)

        return parser.result(source.remote_address)

    def _next_timeout(self, deadline: Optional[float]) -> Optional[float]:
        """Timeout for the next read, never past the request deadline."""
        if deadline is None:
            return self.idle_timeout

        remaining = deadline - self._clock()
        if remaining <= 0:
            raise ReadTimeout(f"Request not complete within {self.request_timeout}s")

        if self.idle_timeout is None:
            return remaining
        return min(self.idle_timeout, remaining)
