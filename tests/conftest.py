"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Generator, List

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from minihttpd import AccessRecord, HTTPServer, ServerConfig
from minihttpd.core.connection import ByteSource
from minihttpd.http.errors import ReadTimeout, TransportWriteFailure


class ScriptedSource(ByteSource):
    """
    In-memory ByteSource that replays scripted chunks.

    Each script item is either bytes (handed out across as many reads as
    max_bytes requires) or ScriptedSource.SILENCE, which makes that read
    raise ReadTimeout. When the script runs out, reads return b"" (EOF).
    """

    SILENCE = object()

    def __init__(self, chunks=(), address=("127.0.0.1", 54321), fail_writes=False):
        self.script = list(chunks)
        self.address = address
        self.fail_writes = fail_writes
        self.written = bytearray()
        self.write_calls = 0
        self.read_timeouts: List[float] = []
        self.close_calls = 0

    @property
    def remote_address(self):
        return self.address

    @property
    def closed(self) -> bool:
        return self.close_calls > 0

    def read(self, max_bytes, timeout=None):
        self.read_timeouts.append(timeout)
        if not self.script:
            return b""

        item = self.script[0]
        if item is self.SILENCE:
            self.script.pop(0)
            raise ReadTimeout(f"scripted silence after {timeout}s")

        chunk, rest = item[:max_bytes], item[max_bytes:]
        if rest:
            self.script[0] = rest
        else:
            self.script.pop(0)
        return chunk

    def write(self, data):
        self.write_calls += 1
        if self.fail_writes:
            raise TransportWriteFailure("scripted write failure")
        self.written += data

    def close(self):
        self.close_calls += 1


@pytest.fixture
def make_source():
    """Factory for ScriptedSource instances."""
    return ScriptedSource


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def docroot(tmp_path: Path) -> Path:
    """Document root with an index page and a few files."""
    (tmp_path / "index.html").write_bytes(b"<h1>home</h1>")
    (tmp_path / "hello.txt").write_bytes(b"hello world")
    (tmp_path / "docs").mkdir()
    (tmp_path / "docs" / "index.html").write_bytes(b"<h1>docs</h1>")
    (tmp_path / "empty").mkdir()
    return tmp_path


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class LiveServer:
    """Server running on a background thread, with its access records."""

    def __init__(self, server: HTTPServer, records: List[AccessRecord]):
        self.server = server
        self.records = records
        self._thread: threading.Thread = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"configure_logging": False},
            daemon=True,
        )
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        self.server.wait_for_shutdown(timeout=5.0)
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw bytes and read until the server closes."""
        with socket.create_connection(("127.0.0.1", self.port), timeout=timeout) as sock:
            sock.sendall(raw)
            return recv_all(sock)


def recv_all(sock: socket.socket) -> bytes:
    """Read until EOF."""
    data = b""
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return data
        data += chunk


def start_dripping(sock: socket.socket, stop: threading.Event, interval: float = 0.2) -> threading.Thread:
    """Send one byte every interval until stop is set or the socket dies."""
    def drip():
        while not stop.is_set():
            try:
                sock.send(b"x")
            except OSError:
                return
            stop.wait(interval)

    thread = threading.Thread(target=drip, daemon=True)
    thread.start()
    return thread


@pytest.fixture
def live_server(docroot: Path) -> Generator[LiveServer, None, None]:
    """Server on an OS-assigned port serving docroot, short timeouts."""
    records: List[AccessRecord] = []
    server = HTTPServer(
        ServerConfig(
            host="127.0.0.1",
            port=0,
            root=str(docroot),
            idle_timeout=0.5,
            request_timeout=2.0,
            max_connections=4,
            log_level="WARNING",
        ),
        access_log=records.append,
    )

    live = LiveServer(server, records)
    live.start()

    yield live

    live.stop()
