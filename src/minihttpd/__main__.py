"""
=============================================================================
COMMAND-LINE ENTRY POINT
=============================================================================

    # Serve the current directory on localhost:8080
    python -m minihttpd

    # Serve ./public to the whole network
    python -m minihttpd --host 0.0.0.0 --root ./public

    # Machine-readable access log
    python -m minihttpd --log-format json

Every flag falls back to its HTTP_* environment variable, then to the
ServerConfig default.

=============================================================================
"""

import argparse
import sys
from typing import List, Optional

from . import __version__
from .config import LOG_FORMATS, LOG_LEVELS, ServerConfig
from .server import HTTPServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="minihttpd",
        description="Minimal one-request-per-connection HTTP/1.x file server",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m minihttpd                          # ./ on 127.0.0.1:8080
  python -m minihttpd --port 3000              # Custom port
  python -m minihttpd --host 0.0.0.0 -r www    # Serve ./www on all interfaces
  python -m minihttpd --log-format json        # JSON access log
        """,
    )

    # Defaults are None so unset flags keep the environment's value
    parser.add_argument(
        "--host", "-H",
        help="Host to bind to (default: 127.0.0.1, use 0.0.0.0 for containers)",
    )
    parser.add_argument(
        "--port", "-p",
        type=int,
        help="Port to listen on (default: 8080)",
    )
    parser.add_argument(
        "--root", "-r",
        help="Directory to serve files from (default: current directory)",
    )
    parser.add_argument(
        "--idle-timeout",
        type=float,
        help="Seconds a client may stay silent while sending a request (default: 10)",
    )
    parser.add_argument(
        "--max-connections",
        type=int,
        help="Connections served at once before answering 503 (default: 64)",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=LOG_LEVELS,
        help="Logging level (default: INFO)",
    )
    parser.add_argument(
        "--log-format",
        choices=LOG_FORMATS,
        help="Access log format (default: text)",
    )
    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"minihttpd {__version__}",
    )
    return parser


def config_from_args(args: argparse.Namespace, base: Optional[ServerConfig] = None) -> ServerConfig:
    """Overlay the flags that were given onto base (the environment by default)."""
    config = base or ServerConfig.from_env()

    overrides = {
        "host": args.host,
        "port": args.port,
        "root": args.root,
        "idle_timeout": args.idle_timeout,
        "max_connections": args.max_connections,
        "log_level": args.log_level,
        "log_format": args.log_format,
    }
    for name, value in overrides.items():
        if value is not None:
            setattr(config, name, value)

    return config


def main(argv: Optional[List[str]] = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        server = HTTPServer(config)
    except ValueError as e:
        print(f"minihttpd: {e}", file=sys.stderr)
        return 2

    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
