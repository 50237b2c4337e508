"""
Unit tests for ConnectionWorkers.
"""

import threading

import pytest

from minihttpd.core.workers import ConnectionWorkers


class FakeConn:
    id = "fake"


class TestSubmit:
    """Tests for submitting connections."""

    def test_runs_function_on_thread(self):
        """Submitted work runs and the slot is released afterwards."""
        done = threading.Event()
        workers = ConnectionWorkers(max_connections=1)

        assert workers.submit(lambda conn: done.set(), FakeConn())
        assert done.wait(timeout=5.0)
        assert workers.shutdown(timeout=5.0)
        assert workers.active == 0
        assert workers.connections_served == 1

    def test_cap_rejects(self):
        """Past max_connections, submit() returns False."""
        release = threading.Event()
        started = threading.Event()
        workers = ConnectionWorkers(max_connections=1)

        def block(conn):
            started.set()
            release.wait(timeout=5.0)

        assert workers.submit(block, FakeConn())
        assert started.wait(timeout=5.0)
        assert workers.submit(block, FakeConn()) is False
        assert workers.stats["rejected"] == 1

        release.set()
        assert workers.shutdown(timeout=5.0)

    def test_slot_freed_after_failure(self):
        """A function that raises still gives its slot back."""
        workers = ConnectionWorkers(max_connections=1)

        def explode(conn):
            raise RuntimeError("boom")

        workers.submit(explode, FakeConn())
        assert workers.shutdown(timeout=5.0)

        workers._accepting = True
        ran = threading.Event()
        assert workers.submit(lambda conn: ran.set(), FakeConn())
        assert ran.wait(timeout=5.0)

    def test_no_submissions_after_shutdown(self):
        """shutdown() stops new work."""
        workers = ConnectionWorkers(max_connections=2)
        workers.shutdown()
        assert workers.submit(lambda conn: None, FakeConn()) is False

    def test_invalid_cap(self):
        """The cap must be positive."""
        with pytest.raises(ValueError):
            ConnectionWorkers(max_connections=0)
