"""
=============================================================================
MINIHTTPD - A Minimal HTTP/1.x Server Core on Raw Sockets
=============================================================================

Accepts a TCP connection, reads ONE request off the byte stream, asks a
responder for an answer, writes it back, logs one access line and hangs
up. No keep-alive, no chunked encoding, no TLS.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    minihttpd/
    ├── __main__.py          # CLI (python -m minihttpd)
    ├── server.py            # HTTPServer: wires everything together
    ├── config.py            # ServerConfig dataclass
    ├── handler.py           # ConnectionHandler: read → respond → close
    ├── access_log.py        # AccessRecord + AccessLogger
    ├── core/
    │   ├── connection.py    # ByteSource contract, socket Connection
    │   ├── socket_server.py # Accept loop, signals
    │   └── workers.py       # Thread per connection, capped
    ├── http/
    │   ├── request.py       # RequestData, request-line/header parsers
    │   ├── parser.py        # Incremental RequestParser
    │   ├── reader.py        # RequestReader: ByteSource → RequestData
    │   ├── response.py      # Reply, ResponseData, serialization
    │   ├── errors.py        # Error taxonomy with status codes
    │   ├── status_codes.py  # HTTPStatus
    │   └── mime_types.py    # Extension → Content-Type
    └── handlers/
        └── static.py        # StaticFileResponder

=============================================================================
QUICK START
=============================================================================

    from minihttpd import HTTPServer, ServerConfig

    HTTPServer(ServerConfig(root="./public")).run()

    # Or with your own responder
    from minihttpd import Reply

    def hello(request):
        return Reply(body=f"Hello from {request.path}".encode(),
                     content_type="text/plain; charset=utf-8")

    HTTPServer(ServerConfig(), responder=hello).run()

=============================================================================
"""

__version__ = "1.0.0"

from .access_log import AccessLogger, AccessRecord
from .config import ServerConfig
from .handler import ConnectionHandler, ConnectionPhase
from .handlers.static import StaticFileResponder
from .http.request import RequestData
from .http.response import Reply, ResponseData
from .http.status_codes import HTTPStatus
from .server import HTTPServer

__all__ = [
    "AccessLogger",
    "AccessRecord",
    "ConnectionHandler",
    "ConnectionPhase",
    "HTTPServer",
    "HTTPStatus",
    "Reply",
    "RequestData",
    "ResponseData",
    "ServerConfig",
    "StaticFileResponder",
    "__version__",
]
