"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Every tunable of the server lives in one dataclass. It is filled from
defaults, then the environment, then the command line:

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest)                                       │
    │                                                                      │
    │   1. Command-line flags      python -m minihttpd --port 3000         │
    │   2. Environment variables   HTTP_PORT=3000 python -m minihttpd      │
    │   3. Defaults below                                                  │
    └─────────────────────────────────────────────────────────────────────┘

Values are checked once, at startup, by validate(). A bad timeout fails
the launch instead of the ten-thousandth request.

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Mapping, Optional


LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")
LOG_FORMATS = ("text", "json")


@dataclass
class ServerConfig:
    """
    Configuration for the HTTP server.

    Development:
        ServerConfig(root="./public", log_level="DEBUG")

    Behind a container runtime:
        ServerConfig(host="0.0.0.0", port=80, max_connections=256)
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    Address to bind.
    - "127.0.0.1" - this machine only
    - "0.0.0.0" - every interface
    """

    port: int = 8080
    """Port to listen on. 0 lets the OS pick a free one."""

    backlog: int = 128
    """Connections the kernel queues before accept() picks them up."""

    max_connections: int = 64
    """Connections served at once. Past this, clients get 503."""

    # ─────────────────────────────────────────────────────────────────────
    # READING REQUESTS
    # ─────────────────────────────────────────────────────────────────────

    read_chunk_size: int = 1024
    """Bytes asked for per read on a client socket."""

    idle_timeout: Optional[float] = 10.0
    """Longest silence (seconds) between two reads of a request."""

    request_timeout: Optional[float] = 30.0
    """Longest time (seconds) for a whole request to arrive. None = no cap."""

    max_header_size: int = 8 * 1024
    """
    Cap on request line + headers + blank line, in bytes.
    Larger header blocks are answered with 431.
    """

    max_body_size: int = 1024 * 1024
    """Cap on Content-Length in bytes. Larger bodies are answered with 413."""

    # ─────────────────────────────────────────────────────────────────────
    # WRITING RESPONSES
    # ─────────────────────────────────────────────────────────────────────

    write_timeout: Optional[float] = 10.0
    """Longest time (seconds) for a response to be handed to the kernel."""

    server_name: str = "minihttpd/1.0"
    """Value of the Server response header."""

    # ─────────────────────────────────────────────────────────────────────
    # STATIC FILES
    # ─────────────────────────────────────────────────────────────────────

    root: str = "."
    """Directory files are served from."""

    index_file: str = "index.html"
    """File served for "/"."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """DEBUG, INFO, WARNING, ERROR or CRITICAL."""

    log_format: str = "text"
    """
    Access log format.
    - "text" - one common-log line per connection
    - "json" - one JSON object per connection
    """

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES
        =====================================================================

        HTTP_HOST             Bind address        (default: 127.0.0.1)
        HTTP_PORT             Listen port         (default: 8080)
        HTTP_ROOT             Document root       (default: .)
        HTTP_IDLE_TIMEOUT     Seconds per read    (default: 10)
        HTTP_MAX_CONNECTIONS  Concurrent clients  (default: 64)
        HTTP_LOG_LEVEL        Logging level       (default: INFO)
        HTTP_LOG_FORMAT       text or json        (default: text)

        =====================================================================

        Args:
            environ: Mapping to read instead of os.environ.
        """
        env = os.environ if environ is None else environ
        defaults = cls()
        return cls(
            host=env.get("HTTP_HOST", defaults.host),
            port=int(env.get("HTTP_PORT", defaults.port)),
            root=env.get("HTTP_ROOT", defaults.root),
            idle_timeout=float(env.get("HTTP_IDLE_TIMEOUT", defaults.idle_timeout)),
            max_connections=int(env.get("HTTP_MAX_CONNECTIONS", defaults.max_connections)),
            log_level=env.get("HTTP_LOG_LEVEL", defaults.log_level),
            log_format=env.get("HTTP_LOG_FORMAT", defaults.log_format),
        )

    def validate(self) -> None:
        """
        Check every value, raising ValueError on the first bad one.
        """
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.backlog < 1:
            raise ValueError("backlog must be >= 1")

        if self.max_connections < 1:
            raise ValueError("max_connections must be >= 1")

        if self.read_chunk_size < 1:
            raise ValueError("read_chunk_size must be >= 1")

        for name in ("idle_timeout", "request_timeout", "write_timeout"):
            value = getattr(self, name)
            if value is not None and value <= 0:
                raise ValueError(f"{name} must be > 0")

        # The request line alone needs room
        if self.max_header_size < 64:
            raise ValueError("max_header_size must be >= 64")

        if self.max_body_size < 0:
            raise ValueError("max_body_size must be >= 0")

        if not self.index_file or "/" in self.index_file:
            raise ValueError(f"index_file must be a plain file name, got {self.index_file!r}")

        if self.log_level.upper() not in LOG_LEVELS:
            raise ValueError(f"log_level must be one of {LOG_LEVELS}, got {self.log_level!r}")

        if self.log_format not in LOG_FORMATS:
            raise ValueError(f"log_format must be one of {LOG_FORMATS}, got {self.log_format!r}")
