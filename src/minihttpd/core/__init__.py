"""
=============================================================================
CORE NETWORKING
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SocketServer       listening socket, accept loop, signals          │
    └──────────────────────────────┬──────────────────────────────────────┘
                                   │ Connection
                                   ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  ConnectionWorkers  one thread per connection, capped               │
    └──────────────────────────────┬──────────────────────────────────────┘
                                   │
                                   ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  Connection         ByteSource over a client socket                 │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .connection import ByteSource, Connection
from .socket_server import SocketServer
from .workers import ConnectionWorkers

__all__ = ["ByteSource", "Connection", "ConnectionWorkers", "SocketServer"]
