"""
=============================================================================
HTTP SERVER
=============================================================================

Wires the pieces together:

    ┌──────────────┐  Connection  ┌───────────────────┐  thread  ┌───────────────────┐
    │ SocketServer │ ───────────► │ ConnectionWorkers │ ───────► │ ConnectionHandler │
    └──────────────┘              └─────────┬─────────┘          └─────────┬─────────┘
                                            │ cap reached                  │
                                            ▼                              ├─► RequestReader
                                     503 + close                           ├─► responder
                                                                           └─► access log

=============================================================================
REQUEST FLOW
=============================================================================

    1. SocketServer accepts, wraps the socket in a Connection
    2. ConnectionWorkers starts a thread, or refuses at max_connections
    3. ConnectionHandler reads ONE request, asks the responder, writes
       the response, logs one access record and closes

One request per connection; there is no keep-alive.

=============================================================================
"""

import logging
import threading
from typing import Optional, Tuple

from .access_log import AccessLogger, AccessSink
from .config import ServerConfig
from .core.connection import Connection
from .core.socket_server import SocketServer
from .core.workers import ConnectionWorkers
from .handler import ConnectionHandler, Responder
from .handlers.static import StaticFileResponder
from .http.reader import RequestReader


logger = logging.getLogger(__name__)


# How long shutdown waits for in-flight connections
SHUTDOWN_TIMEOUT = 30.0


class HTTPServer:
    """
    The whole server.

    Usage:

        server = HTTPServer(ServerConfig(port=8080, root="./public"))
        server.run()                    # blocks until SIGINT/SIGTERM

    Any callable taking a RequestData and returning a Reply can replace
    the static files:

        def hello(request):
            return Reply(body=b"hello")

        HTTPServer(config, responder=hello).run()
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        responder: Optional[Responder] = None,
        access_log: Optional[AccessSink] = None,
    ):
        self.config = config or ServerConfig()
        self.config.validate()

        self.responder = responder or StaticFileResponder(
            self.config.root,
            index_file=self.config.index_file,
        )
        self.access_log = access_log or AccessLogger(log_format=self.config.log_format)

        self._handler = ConnectionHandler(
            responder=self.responder,
            access_log=self.access_log,
            reader=RequestReader.from_config(self.config),
            server_name=self.config.server_name,
        )
        self._socket_server = SocketServer(self.config)
        self._workers = ConnectionWorkers(max_connections=self.config.max_connections)

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); the real port once listening with port 0."""
        return self._socket_server.address

    @property
    def stats(self) -> dict:
        return self._workers.stats

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self, configure_logging: bool = True):
        """
        Serve until shutdown() or a signal.

        Args:
            configure_logging: Call logging.basicConfig from the config.
                Embedders with their own logging setup pass False.
        """
        if configure_logging:
            self._setup_logging()

        logger.info(
            f"Starting {self.config.server_name} on {self.config.host}:{self.config.port} "
            f"(max {self.config.max_connections} connections)"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def shutdown(self):
        """Ask the accept loop to stop. Returns immediately."""
        self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def wait_for_shutdown(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_for_shutdown(timeout)

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("minihttpd").setLevel(level)

    def _shutdown(self):
        """Stop accepting, then give in-flight connections time to finish."""
        logger.info("Shutting down server...")
        self._workers.shutdown(timeout=SHUTDOWN_TIMEOUT)
        logger.info(f"Server stopped ({self._workers.connections_served} connections served)")

    # =========================================================================
    # CONNECTION HAND-OFF
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """
        Runs on the accept thread: start a worker or refuse with 503.

        The 503 is written and the socket closed on a short-lived thread of
        its own, outside the cap, so a refused peer never holds up accept().
        Its cost is bounded by write_timeout plus the drain on close.
        """
        if not self._workers.submit(self._handler.handle, conn):
            logger.warning(f"[{conn.id}] Connection limit reached, rejecting {conn.address[0]}")
            threading.Thread(
                target=self._handler.reject,
                args=(conn,),
                name=f"reject-{conn.id}",
                daemon=True,
            ).start()
