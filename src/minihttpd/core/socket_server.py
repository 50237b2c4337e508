"""
=============================================================================
TCP ACCEPT LOOP
=============================================================================

Owns the listening socket. It accepts connections, wraps each one in a
Connection and hands it to a callback. It never reads from a client
itself.

    socket() → setsockopt() → bind() → listen() → accept() ... → close()
                                                     │
                                                     ▼
                                      connection_handler(Connection)

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR   Restarting the server does not fail with "Address already
               in use" while old sockets sit in TIME_WAIT.

TCP_NODELAY    Responses are written in one sendall(); Nagle's algorithm
               would only delay the tail of it.

=============================================================================
INTERRUPTIBLE ACCEPT
=============================================================================

accept() blocks. The listening socket gets a one-second timeout so the
loop wakes up regularly to check whether shutdown() was called:

    while running:
        try:
            accept()          # at most 1 second
        except timeout:
            continue          # re-check running

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd) call shutdown(). The
loop stops accepting; connections already handed off finish on their own.
Signal handlers can only be installed from the main thread, so a server
started from any other thread (tests do this) skips them.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


# How often the accept loop re-checks the running flag
ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Listening socket plus accept loop.

    Usage:

        server = SocketServer(config)
        server.start(handle_connection)     # blocks until shutdown()

    Attributes:
        config: Provides host, port, backlog and write_timeout.
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False

        # Set once the socket is listening, and again once it is closed
        self._ready_event = threading.Event()
        self._shutdown_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        Bound (host, port).

        With port 0 in the config the OS picks a free port; this reports
        the port actually bound once the server is listening.
        """
        if self._socket is not None:
            host, port = self._socket.getsockname()[:2]
            return host, port
        return self.config.host, self.config.port

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    # =========================================================================
    # SIGNALS
    # =========================================================================

    def _setup_signals(self):
        """Route SIGINT and SIGTERM to shutdown() (main thread only)."""
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, skipping signal handlers")
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, shutting down...")
            self.shutdown()

        for sig in (signal.SIGTERM, signal.SIGINT):
            self._original_handlers[sig] = signal.signal(sig, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept until shutdown() is called.

        Args:
            connection_handler: Called on the accept thread with each new
                Connection. It must hand the connection off quickly.

        Raises:
            OSError: If the address cannot be bound.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)
        self._running = True
        self._shutdown_event.clear()
        self._setup_signals()

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                client_socket,
                client_address,
                write_timeout=self.config.write_timeout,
            )
            try:
                connection_handler(conn)
            except Exception as e:
                # One bad hand-off must not stop the listener
                logger.exception(f"Connection hand-off failed: {e}")
                conn.close()

    def shutdown(self):
        """Stop accepting. Safe to call from any thread, any number of times."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket is not None:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._running = False
        self._shutdown_event.set()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is listening. True if it is."""
        return self._ready_event.wait(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is closed. True if it is."""
        return self._shutdown_event.wait(timeout)
