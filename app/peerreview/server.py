"""
HTTP listener and server lifecycle.

The lifecycle runs INITIALIZING -> RUNNING -> DRAINING -> STOPPED:

- start():  bind the listening socket (a bind failure is fatal and raises
  ListenError), then serve on a background thread.
- wait for SIGINT on the main thread. Other signals are left alone.
- drain():  close the database pool first, then stop accepting, wait for
  in-flight requests until the graceful deadline, and force-close whatever
  connections remain.

Errors from the serve loop after a successful bind are logged on the
listener thread only; they never reach the state machine.
"""

from __future__ import annotations

import argparse
import enum
import logging
import re
import signal
import socket
import threading
import time
from collections.abc import Callable, Generator
from contextlib import contextmanager
from datetime import timedelta

from werkzeug.serving import ThreadedWSGIServer, WSGIRequestHandler

from app.peerreview.errors import ListenError

logger = logging.getLogger(__name__)

DEFAULT_GRACEFUL_TIMEOUT = timedelta(seconds=15)

_DURATION_UNITS = {
    "ns": 1e-9,
    "us": 1e-6,
    "µs": 1e-6,
    "ms": 1e-3,
    "s": 1.0,
    "m": 60.0,
    "h": 3600.0,
}
_DURATION_PART = re.compile(r"(\d+(?:\.\d*)?|\.\d+)(ns|us|µs|ms|s|m|h)")


def parse_duration(raw: str) -> timedelta:
    """
    Parse a duration literal such as `15s`, `1m`, `1m30s`, `250ms` or `1.5h`.

    A bare `0` is accepted. Negative durations are not.
    """
    text = (raw or "").strip()
    if text == "0":
        return timedelta(0)
    if not text:
        raise ValueError("empty duration")
    pos = 0
    total = 0.0
    while pos < len(text):
        m = _DURATION_PART.match(text, pos)
        if m is None:
            raise ValueError(f"invalid duration {raw!r}")
        total += float(m.group(1)) * _DURATION_UNITS[m.group(2)]
        pos = m.end()
    return timedelta(seconds=total)


def _duration_arg(raw: str) -> timedelta:
    try:
        return parse_duration(raw)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e)) from e


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Peer review API server")
    parser.add_argument(
        "--graceful-timeout",
        type=_duration_arg,
        default=DEFAULT_GRACEFUL_TIMEOUT,
        help="the duration for which the server gracefully waits for existing connections to finish - e.g. 15s or 1m",
    )
    return parser.parse_args(argv)


class _RequestHandler(WSGIRequestHandler):
    def setup(self) -> None:
        # StreamRequestHandler applies this to the connection socket
        self.timeout = self.server.request_timeout
        super().setup()

    def handle_one_request(self) -> None:
        # Blocks while the connection is idle. The request counts as in
        # flight from its first byte, before the headers are complete.
        if not self.rfile.peek(1):
            self.close_connection = True
            return
        with self.server.track_request():
            super().handle_one_request()
        if self.server.draining:
            self.close_connection = True


class DrainingWSGIServer(ThreadedWSGIServer):
    """
    Threaded werkzeug server that knows how many requests are in flight.

    Connection threads are daemons and server_close() does not join them;
    Listener.shutdown() decides how long to wait instead.
    """

    daemon_threads = True
    block_on_close = False

    def __init__(self, host: str, port: int, app, *, fd: int, request_timeout: float) -> None:
        self.request_timeout = request_timeout
        self.draining = False
        self._cond = threading.Condition()
        self._busy = 0
        self._connections: set[socket.socket] = set()
        super().__init__(host, port, app, handler=_RequestHandler, fd=fd)

    def process_request_thread(self, request, client_address) -> None:
        with self._cond:
            self._connections.add(request)
        try:
            super().process_request_thread(request, client_address)
        finally:
            with self._cond:
                self._connections.discard(request)

    @contextmanager
    def track_request(self) -> Generator[None, None, None]:
        with self._cond:
            self._busy += 1
        try:
            yield
        finally:
            with self._cond:
                self._busy -= 1
                self._cond.notify_all()

    @property
    def in_flight(self) -> int:
        with self._cond:
            return self._busy

    def wait_idle(self, timeout: float) -> bool:
        with self._cond:
            return self._cond.wait_for(lambda: self._busy == 0, timeout=max(0.0, timeout))

    def close_connections(self) -> int:
        with self._cond:
            remaining = list(self._connections)
        for conn in remaining:
            try:
                conn.shutdown(socket.SHUT_RDWR)
            except OSError:
                pass
        return len(remaining)


class Listener:
    """The bound HTTP server plus the thread that runs its accept loop."""

    def __init__(self, app, host: str, port: int, *, request_timeout: float = 15.0) -> None:
        self.app = app
        self.host = host
        self.port = port
        self.request_timeout = request_timeout
        self.server: DrainingWSGIServer | None = None
        self._thread: threading.Thread | None = None

    @property
    def address(self) -> tuple[str, int]:
        if self.server is None:
            return self.host, self.port
        return self.server.server_address[:2]

    def bind(self) -> None:
        try:
            sock = socket.create_server((self.host, self.port))
        except OSError as e:
            raise ListenError(f"cannot listen on {self.host}:{self.port}: {e.strerror or e}") from e
        try:
            self.server = DrainingWSGIServer(
                self.host,
                self.port,
                self.app,
                fd=sock.fileno(),
                request_timeout=self.request_timeout,
            )
        finally:
            # werkzeug dup()s the descriptor
            sock.close()

    def start(self) -> None:
        if self.server is None:
            self.bind()
        self._thread = threading.Thread(target=self._serve, name="http-listener", daemon=True)
        self._thread.start()
        host, port = self.address
        logger.info("Listening on http://%s:%s", host, port)

    def _serve(self) -> None:
        try:
            self.server.serve_forever()
        except Exception:
            logger.exception("HTTP listener stopped with an error")
        else:
            logger.info("HTTP listener closed")

    def shutdown(self, timeout: float) -> bool:
        """
        Stop accepting, then wait up to `timeout` seconds for in-flight requests.

        Returns True when everything finished in time. Connections still open
        at the deadline (including idle keep-alives) are closed either way.
        """
        deadline = time.monotonic() + timeout
        server = self.server
        if server is None:
            return True
        server.draining = True
        if self._thread is not None and self._thread.is_alive():
            server.shutdown()
        server.server_close()
        drained = server.wait_idle(deadline - time.monotonic())
        dropped = server.close_connections()
        if not drained:
            logger.warning("Graceful timeout reached with %s request(s) in flight; dropping %s connection(s)", server.in_flight, dropped)
        if self._thread is not None:
            self._thread.join(timeout=max(0.0, deadline - time.monotonic()))
        return drained


class State(enum.Enum):
    INITIALIZING = "initializing"
    RUNNING = "running"
    DRAINING = "draining"
    STOPPED = "stopped"


class ServerLifecycle:
    def __init__(
        self,
        listener: Listener,
        close_db: Callable[[], None],
        *,
        graceful_timeout: timedelta = DEFAULT_GRACEFUL_TIMEOUT,
    ) -> None:
        self.listener = listener
        self.close_db = close_db
        self.graceful_timeout = graceful_timeout
        self.state = State.INITIALIZING
        self._interrupted = threading.Event()

    def start(self) -> None:
        if self.state is not State.INITIALIZING:
            raise RuntimeError(f"cannot start from state {self.state.value}")
        logger.info("Starting server")
        self.listener.start()
        self.state = State.RUNNING

    def _on_interrupt(self, signum, _frame) -> None:
        logger.info("Received signal %s", signal.Signals(signum).name)
        self._interrupted.set()

    def install_signal_handler(self) -> None:
        # SIGTERM, SIGQUIT and SIGKILL keep their default behaviour.
        signal.signal(signal.SIGINT, self._on_interrupt)

    def wait_for_signal(self, timeout: float | None = None) -> bool:
        deadline = None if timeout is None else time.monotonic() + timeout
        # short waits keep the main thread responsive to signal handlers
        while not self._interrupted.wait(0.2):
            if deadline is not None and time.monotonic() >= deadline:
                return False
        return True

    def drain(self) -> bool:
        if self.state is not State.RUNNING:
            raise RuntimeError(f"cannot drain from state {self.state.value}")
        self.state = State.DRAINING
        deadline = time.monotonic() + self.graceful_timeout.total_seconds()

        # Release DB connections immediately; in-flight requests may fail.
        try:
            self.close_db()
        except Exception:
            logger.exception("Closing the database pool failed; shutting the listener down anyway")

        drained = self.listener.shutdown(max(0.0, deadline - time.monotonic()))
        self.state = State.STOPPED
        logger.info("shutting down")
        return drained

    def run(self) -> bool:
        self.install_signal_handler()
        self.start()
        self.wait_for_signal()
        return self.drain()
