"""
=============================================================================
PER-CONNECTION WORKER THREADS
=============================================================================

Every accepted connection gets its own thread, capped at max_connections:

    accept loop                 ConnectionWorkers
    ───────────                 ─────────────────
    conn ─── submit(conn) ───►  slot free?  ── yes ──►  Thread(handle, conn)
                                    │
                                    no
                                    │
                                    ▼
                           False: caller answers 503 and closes

=============================================================================
WHY A CAP AND NOT A QUEUE?
=============================================================================

A connection waiting in a queue still holds an open socket and a client
that is counting down its own timeout. Past the cap the client gets an
immediate 503 instead, and the server never has more than
max_connections requests in memory at once.

The counter (a BoundedSemaphore) is the only state shared between
connections. Everything else a connection touches is its own.

=============================================================================
"""

import logging
import threading
from typing import Callable, Optional, Set

from .connection import Connection


logger = logging.getLogger(__name__)


class ConnectionWorkers:
    """
    Thread-per-connection runner with a concurrency cap.

    Usage:

        workers = ConnectionWorkers(max_connections=64)
        if not workers.submit(handler.handle, conn):
            reject(conn)
        ...
        workers.shutdown(timeout=30.0)

    Attributes:
        max_connections: Most connections served at the same time.
    """

    def __init__(self, max_connections: int = 64):
        if max_connections < 1:
            raise ValueError(f"max_connections must be >= 1, got {max_connections}")

        self.max_connections = max_connections
        self._slots = threading.BoundedSemaphore(max_connections)
        self._lock = threading.Lock()    # Protects _threads and counters
        self._threads: Set[threading.Thread] = set()
        self._accepting = True

        self.connections_served = 0
        self.connections_rejected = 0

    @property
    def active(self) -> int:
        """Connections currently being served."""
        with self._lock:
            return len(self._threads)

    @property
    def stats(self) -> dict:
        with self._lock:
            return {
                "active": len(self._threads),
                "max": self.max_connections,
                "served": self.connections_served,
                "rejected": self.connections_rejected,
            }

    def submit(self, func: Callable[[Connection], object], conn: Connection) -> bool:
        """
        Run func(conn) on a new thread if a slot is free.

        Returns:
            True if the connection was handed to a thread, False if the
            cap is reached or shutdown() was called. On False the caller
            still owns conn.
        """
        if not self._accepting or not self._slots.acquire(blocking=False):
            with self._lock:
                self.connections_rejected += 1
            return False

        thread = threading.Thread(
            target=self._run,
            args=(func, conn),
            name=f"conn-{getattr(conn, 'id', '?')}",
            daemon=True,
        )
        with self._lock:
            self._threads.add(thread)

        try:
            thread.start()
        except RuntimeError as e:
            # Interpreter out of threads: give the slot back
            logger.error(f"Could not start worker thread: {e}")
            with self._lock:
                self._threads.discard(thread)
                self.connections_rejected += 1
            self._slots.release()
            return False

        return True

    def _run(self, func: Callable[[Connection], object], conn: Connection):
        try:
            func(conn)
        except Exception as e:
            logger.exception(f"Worker for {threading.current_thread().name} failed: {e}")
        finally:
            with self._lock:
                self._threads.discard(threading.current_thread())
                self.connections_served += 1
            self._slots.release()

    def shutdown(self, timeout: Optional[float] = None) -> bool:
        """
        Stop taking connections and wait for the running ones.

        Running connections are not interrupted; they are bounded by their
        own read and write timeouts.

        Returns:
            True if every worker finished within timeout.
        """
        self._accepting = False

        with self._lock:
            threads = list(self._threads)

        if threads:
            logger.info(f"Waiting for {len(threads)} connection(s) to finish...")

        for thread in threads:
            thread.join(timeout)

        finished = not any(thread.is_alive() for thread in threads)
        if not finished:
            logger.warning("Shutdown timeout, some connections are still open")
        return finished
