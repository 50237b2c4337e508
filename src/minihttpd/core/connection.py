"""
=============================================================================
BYTE SOURCES
=============================================================================

The request reader and the connection handler never touch a socket
directly. They talk to a ByteSource: anything that can hand out chunks of
bytes with a deadline, accept response bytes, and be closed.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ByteSource contract                           │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  read(max_bytes, timeout)  → up to max_bytes, b"" on EOF             │
    │                              raises ReadTimeout past the deadline    │
    │                                                                      │
    │  write(data)               → sends ALL of data                       │
    │                              raises TransportWriteFailure on error   │
    │                                                                      │
    │  close()                   → idempotent, never raises                │
    │                                                                      │
    │  remote_address            → (ip, port) for the access log           │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Connection is the TCP implementation. Tests use an in-memory source that
replays scripted chunks, so every parse and timeout path runs without a
network.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL
=============================================================================

A read returns whatever the kernel has buffered, from one byte up to
max_bytes. A request sent with one send() can come back in many reads, and
one read can hold the end of the headers and the start of the body. The
byte source makes no attempt to find message boundaries; that is the
parser's job.

=============================================================================
"""

import logging
import socket
import time
import uuid
from abc import ABC, abstractmethod
from typing import Optional, Tuple

from ..http.errors import ReadTimeout, TransportWriteFailure


logger = logging.getLogger(__name__)


# Upper bounds on the drain in Connection.close(), whatever the peer does
DRAIN_TIMEOUT = 0.5
DRAIN_LIMIT = 64 * 1024


class ByteSource(ABC):
    """
    Abstract bidirectional byte stream for one client.

    Usable as a context manager; leaving the block always closes it:

        with source:
            request = reader.read(source)
            source.write(response_bytes)
        # closed here, even if reading raised
    """

    @property
    @abstractmethod
    def remote_address(self) -> Tuple[str, int]:
        """Peer (ip, port)."""

    @abstractmethod
    def read(self, max_bytes: int, timeout: Optional[float] = None) -> bytes:
        """
        Read up to max_bytes.

        Args:
            max_bytes: Upper bound on the returned length.
            timeout: Seconds to wait for data; None waits forever.

        Returns:
            The bytes read, or b"" once the peer has closed its side.

        Raises:
            ReadTimeout: If no data arrived within timeout.
        """

    @abstractmethod
    def write(self, data: bytes) -> None:
        """
        Write all of data.

        Raises:
            TransportWriteFailure: If the peer is gone or the write timed out.
        """

    @abstractmethod
    def close(self) -> None:
        """Release the underlying resource. Safe to call more than once."""

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class Connection(ByteSource):
    """
    ByteSource over an accepted TCP socket.

    Attributes:
        socket: The client socket returned by accept().
        address: Client's (ip, port) tuple.
        write_timeout: Seconds allowed for a whole sendall().
        id: Short identifier for log lines.
    """

    def __init__(
        self,
        sock: socket.socket,
        address: Tuple[str, int],
        write_timeout: Optional[float] = 10.0,
    ):
        self.socket = sock
        self.address = address
        self.write_timeout = write_timeout
        self.id = str(uuid.uuid4())[:8]
        self._closed = False

        # Blocking mode; every read and write sets its own timeout
        self.socket.setblocking(True)

    @property
    def remote_address(self) -> Tuple[str, int]:
        return self.address

    @property
    def closed(self) -> bool:
        return self._closed

    def read(self, max_bytes: int, timeout: Optional[float] = None) -> bytes:
        self.socket.settimeout(timeout)
        try:
            return self.socket.recv(max_bytes)
        except socket.timeout as e:
            raise ReadTimeout(f"No data from {self.address[0]} within {timeout}s") from e
        except (ConnectionResetError, BrokenPipeError):
            # Abrupt disconnect reads as EOF
            return b""

    def write(self, data: bytes) -> None:
        self.socket.settimeout(self.write_timeout)
        try:
            # sendall() loops until every byte is handed to the kernel
            self.socket.sendall(data)
        except socket.timeout as e:
            raise TransportWriteFailure(
                f"Write to {self.address[0]} timed out after {self.write_timeout}s"
            ) from e
        except OSError as e:
            raise TransportWriteFailure(f"Write to {self.address[0]} failed: {e}") from e

    def close(self) -> None:
        """
        Close gracefully.

        1. shutdown(SHUT_WR) sends FIN: "no more data from us"
        2. Drain briefly so unread request bytes do not turn the close
           into a RST that could discard the response in flight
        3. close() releases the file descriptor

        The drain stops after DRAIN_TIMEOUT seconds or DRAIN_LIMIT bytes
        in total, so a peer that keeps sending cannot hold the caller.
        """
        if self._closed:
            return
        self._closed = True

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        self._drain()

        try:
            self.socket.close()
        except OSError:
            pass

        logger.debug(f"[{self.id}] Connection from {self.address[0]} closed")

    def _drain(self):
        deadline = time.monotonic() + DRAIN_TIMEOUT
        drained = 0

        try:
            while drained < DRAIN_LIMIT:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                chunk = self.socket.recv(4096)
                if not chunk:
                    break
                drained += len(chunk)
        except OSError:
            pass

        if drained:
            logger.debug(f"[{self.id}] Discarded {drained} unread bytes on close")
