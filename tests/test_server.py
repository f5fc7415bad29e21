import http.client
import logging
import os
import signal
import socket
import threading
import time
from datetime import timedelta

import pytest
from flask import Blueprint

from app.peerreview import create_app
from app.peerreview.errors import ListenError
from app.peerreview.server import Listener, ServerLifecycle, State, parse_args, parse_duration


@pytest.mark.parametrize(
    "raw,seconds",
    [("15s", 15), ("1m", 60), ("1m30s", 90), ("250ms", 0.25), ("1.5h", 5400), ("0", 0), (" 2s ", 2)],
)
def test_parse_duration(raw, seconds):
    assert parse_duration(raw) == timedelta(seconds=seconds)


@pytest.mark.parametrize("raw", ["", "15", "-1s", "1d", "s", "1m foo"])
def test_parse_duration_rejects(raw):
    with pytest.raises(ValueError):
        parse_duration(raw)


def test_graceful_timeout_flag():
    assert parse_args([]).graceful_timeout == timedelta(seconds=15)
    assert parse_args(["--graceful-timeout", "1m"]).graceful_timeout == timedelta(minutes=1)
    with pytest.raises(SystemExit):
        parse_args(["--graceful-timeout", "soon"])


class _RecordingListener:
    def __init__(self, events: list) -> None:
        self.events = events

    def start(self) -> None:
        self.events.append("start")

    def shutdown(self, timeout: float) -> bool:
        self.events.append(("shutdown", timeout))
        return True


def test_drain_closes_database_before_listener():
    events: list = []
    lifecycle = ServerLifecycle(
        _RecordingListener(events),
        lambda: events.append("db_closed"),
        graceful_timeout=timedelta(seconds=5),
    )
    assert lifecycle.state is State.INITIALIZING
    lifecycle.start()
    assert lifecycle.state is State.RUNNING
    assert lifecycle.drain() is True
    assert lifecycle.state is State.STOPPED
    assert events[:2] == ["start", "db_closed"]
    kind, timeout = events[2]
    assert kind == "shutdown"
    assert 0 < timeout <= 5


def test_drain_requires_running():
    lifecycle = ServerLifecycle(_RecordingListener([]), lambda: None)
    with pytest.raises(RuntimeError):
        lifecycle.drain()


@pytest.fixture()
def restore_sigint():
    previous = signal.getsignal(signal.SIGINT)
    yield
    signal.signal(signal.SIGINT, previous)


def test_only_sigint_is_intercepted(restore_sigint):
    term_before = signal.getsignal(signal.SIGTERM)
    lifecycle = ServerLifecycle(_RecordingListener([]), lambda: None)
    lifecycle.install_signal_handler()
    assert signal.getsignal(signal.SIGTERM) is term_before
    assert lifecycle.wait_for_signal(timeout=0.3) is False

    os.kill(os.getpid(), signal.SIGINT)
    assert lifecycle.wait_for_signal(timeout=2) is True


def test_run_waits_for_sigint_then_drains(restore_sigint):
    events: list = []
    lifecycle = ServerLifecycle(_RecordingListener(events), lambda: events.append("db_closed"))
    timer = threading.Timer(0.3, os.kill, args=(os.getpid(), signal.SIGINT))
    timer.start()
    try:
        assert lifecycle.run() is True
    finally:
        timer.cancel()
    assert lifecycle.state is State.STOPPED
    assert events[0] == "start"
    assert events[1] == "db_closed"


def test_bind_failure_is_fatal(app):
    blocker = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    blocker.bind(("127.0.0.1", 0))
    blocker.listen(1)
    try:
        port = blocker.getsockname()[1]
        lifecycle = ServerLifecycle(Listener(app, "127.0.0.1", port), lambda: None)
        with pytest.raises(ListenError):
            lifecycle.start()
        assert lifecycle.state is State.INITIALIZING
    finally:
        blocker.close()


def test_serve_loop_error_is_only_logged(app, caplog, monkeypatch):
    listener = Listener(app, "127.0.0.1", 0)
    listener.bind()

    def _boom(*args, **kwargs):
        raise OSError("accept loop died")

    monkeypatch.setattr(listener.server, "serve_forever", _boom)
    lifecycle = ServerLifecycle(listener, lambda: None, graceful_timeout=timedelta(seconds=1))
    with caplog.at_level(logging.ERROR, logger="app.peerreview.server"):
        lifecycle.start()
        listener._thread.join(timeout=2)
    assert lifecycle.state is State.RUNNING
    assert "HTTP listener stopped with an error" in caplog.text
    assert lifecycle.drain() is True


class _SlowGroup:
    def __init__(self) -> None:
        self.release = threading.Event()

    def register(self, bp: Blueprint) -> None:
        @bp.get("/slow")
        def slow():
            self.release.wait(10)
            return {"done": True}

        @bp.get("/fast")
        def fast():
            return {"done": True}


def _get(port: int, path: str, results: list) -> None:
    conn = http.client.HTTPConnection("127.0.0.1", port, timeout=10)
    try:
        conn.request("GET", path)
        results.append(conn.getresponse().status)
    except (OSError, http.client.HTTPException) as e:
        results.append(e)
    finally:
        conn.close()


def _listener_for(ctx, group):
    app = create_app(ctx, groups=[("/test", group)])
    listener = Listener(app, "127.0.0.1", 0, request_timeout=5)
    return listener


def test_listener_serves_and_drains_cleanly(ctx):
    listener = _listener_for(ctx, _SlowGroup())
    lifecycle = ServerLifecycle(listener, ctx.db.close, graceful_timeout=timedelta(seconds=2))
    lifecycle.start()
    port = listener.address[1]

    results: list = []
    _get(port, "/health", results)
    _get(port, "/test/fast", results)
    assert results == [200, 200]

    assert lifecycle.drain() is True
    assert ctx.db.closed
    with pytest.raises(OSError):
        socket.create_connection(("127.0.0.1", port), timeout=1).close()


def test_drain_is_bounded_with_slow_requests(ctx):
    group = _SlowGroup()
    listener = _listener_for(ctx, group)
    order: list = []
    real_shutdown = listener.shutdown

    def _close_db():
        order.append(("db_closed", listener.server.draining))
        ctx.db.close()

    def _shutdown(timeout):
        order.append(("listener_shutdown", timeout))
        return real_shutdown(timeout)

    listener.shutdown = _shutdown
    lifecycle = ServerLifecycle(listener, _close_db, graceful_timeout=timedelta(milliseconds=300))
    lifecycle.start()
    port = listener.address[1]

    results: list = []
    clients = [threading.Thread(target=_get, args=(port, "/test/slow", results)) for _ in range(3)]
    for t in clients:
        t.start()
    try:
        deadline = time.monotonic() + 5
        while listener.server.in_flight < 3 and time.monotonic() < deadline:
            time.sleep(0.02)
        assert listener.server.in_flight == 3

        started = time.monotonic()
        assert lifecycle.drain() is False
        elapsed = time.monotonic() - started
        # serve_forever polls for shutdown every 0.5s
        assert elapsed < 2.0
    finally:
        group.release.set()
        for t in clients:
            t.join(timeout=5)

    assert order[0] == ("db_closed", False)
    assert order[1][0] == "listener_shutdown"
    assert order[1][1] <= 0.3
    assert lifecycle.state is State.STOPPED
    # the dropped clients never saw a 200
    assert 200 not in results


def test_database_close_failure_still_stops_listener(caplog):
    events: list = []

    def _close_db():
        events.append("db_close_attempted")
        raise RuntimeError("pool already gone")

    lifecycle = ServerLifecycle(_RecordingListener(events), _close_db, graceful_timeout=timedelta(seconds=1))
    lifecycle.start()
    with caplog.at_level(logging.ERROR, logger="app.peerreview.server"):
        assert lifecycle.drain() is True
    assert events[1] == "db_close_attempted"
    assert events[2][0] == "shutdown"
    assert lifecycle.state is State.STOPPED
    assert "Closing the database pool failed" in caplog.text


def test_database_close_failure_frees_the_port(ctx):
    listener = _listener_for(ctx, _SlowGroup())

    def _close_db():
        raise RuntimeError("pool already gone")

    lifecycle = ServerLifecycle(listener, _close_db, graceful_timeout=timedelta(seconds=1))
    lifecycle.start()
    port = listener.address[1]
    assert lifecycle.drain() is True
    assert lifecycle.state is State.STOPPED
    with pytest.raises(OSError):
        socket.create_connection(("127.0.0.1", port), timeout=1).close()


def test_sigint_handler_is_in_place_before_listening(restore_sigint):
    seen: list = []

    class _CheckingListener(_RecordingListener):
        def start(self) -> None:
            seen.append(signal.getsignal(signal.SIGINT))
            super().start()

    lifecycle = ServerLifecycle(_CheckingListener([]), lambda: None)
    timer = threading.Timer(0.3, os.kill, args=(os.getpid(), signal.SIGINT))
    timer.start()
    try:
        assert lifecycle.run() is True
    finally:
        timer.cancel()
    assert seen == [lifecycle._on_interrupt]


def test_request_with_partial_headers_is_waited_for(ctx):
    listener = _listener_for(ctx, _SlowGroup())
    lifecycle = ServerLifecycle(listener, lambda: None, graceful_timeout=timedelta(seconds=3))
    lifecycle.start()
    port = listener.address[1]

    conn = socket.create_connection(("127.0.0.1", port), timeout=5)
    try:
        conn.sendall(b"GET /health HTTP/1.1\r\nHost: localhost\r\n")
        deadline = time.monotonic() + 5
        while listener.server.in_flight < 1 and time.monotonic() < deadline:
            time.sleep(0.02)
        assert listener.server.in_flight == 1

        outcome: list = []
        drainer = threading.Thread(target=lambda: outcome.append(lifecycle.drain()))
        drainer.start()
        time.sleep(0.3)
        assert drainer.is_alive()

        conn.sendall(b"\r\n")
        reply = b""
        while True:
            chunk = conn.recv(4096)
            if not chunk:
                break
            reply += chunk
        drainer.join(timeout=5)
    finally:
        conn.close()

    assert reply.startswith(b"HTTP/1.1 200")
    assert b"Server is healthy" in reply
    assert outcome == [True]
    assert lifecycle.state is State.STOPPED
