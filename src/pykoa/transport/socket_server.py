"""
=============================================================================
LISTENER
=============================================================================

The listening socket and the loop that accepts from it. Nothing in here
knows about HTTP: every accepted socket is wrapped in a Connection and
handed to a callback.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer.start(on_connection)              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   open_listener(config)    bind + listen, OSError to the caller     │
    │           │                                                          │
    │   shutdown_on_signals()    SIGINT/SIGTERM → stop (main thread only) │
    │           │                                                          │
    │   accept ──► Connection ──► on_connection(conn)                      │
    │           │        ▲                                                 │
    │           └────────┘  until stop is requested                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

accept() times out every ACCEPT_POLL seconds so a stop requested from
another thread is noticed without closing the socket under the loop.

=============================================================================
"""

from contextlib import contextmanager
from typing import Callable, Iterator, Optional, Tuple
import logging
import signal
import socket
import threading

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ACCEPT_POLL = 1.0

ConnectionCallback = Callable[[Connection], None]


def open_listener(config: ServerConfig) -> socket.socket:
    """
    Create a bound, listening TCP socket.

    Raises:
        OSError: If the address is unavailable or already in use.
    """
    sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
    try:
        # TIME_WAIT sockets from a previous run must not block a restart
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.bind((config.host, config.port))
        sock.listen(config.backlog)
    except OSError:
        sock.close()
        raise

    sock.settimeout(ACCEPT_POLL)
    return sock


@contextmanager
def shutdown_on_signals(stop: Callable[[], None]) -> Iterator[None]:
    """
    Route SIGINT and SIGTERM to stop() for the duration of the block.

    signal.signal() is only allowed on the main thread. Anywhere else the
    block runs without handlers and the caller stops the server directly.
    """
    if threading.current_thread() is not threading.main_thread():
        logger.debug("Listener not on the main thread, signal handlers not installed")
        yield
        return

    def on_signal(signum, frame):
        logger.info(f"Received {signal.Signals(signum).name}, stopping")
        stop()

    previous = {sig: signal.signal(sig, on_signal) for sig in (signal.SIGINT, signal.SIGTERM)}
    try:
        yield
    finally:
        for sig, handler in previous.items():
            signal.signal(sig, handler)


class SocketServer:
    """
    Accept loop over one listening socket.

    Usage:
        server = SocketServer(config)
        server.start(on_connection)   # blocks until shutdown()
    """

    def __init__(self, config: ServerConfig):
        self.config = config
        self._listener: Optional[socket.socket] = None
        self._bound: Optional[Tuple[str, int]] = None
        self._stop = threading.Event()

    @property
    def is_running(self) -> bool:
        return self._listener is not None and not self._stop.is_set()

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port). With port 0 this is the port the OS picked."""
        return self._bound or (self.config.host, self.config.port)

    def start(self, on_connection: ConnectionCallback):
        """
        Listen and accept until shutdown() is called.

        Raises:
            OSError: If binding fails.
        """
        try:
            listener = open_listener(self.config)
        except OSError as e:
            logger.error(f"Cannot bind {self.config.host}:{self.config.port}: {e}")
            raise

        self._bound = listener.getsockname()[:2]
        self._stop.clear()
        self._listener = listener
        logger.info(f"Listening on {self._bound[0]}:{self._bound[1]}")

        try:
            with shutdown_on_signals(self.shutdown):
                self._serve(on_connection)
        finally:
            self._listener.close()
            self._listener = None
            logger.info("Listener closed")

    def _serve(self, on_connection: ConnectionCallback):
        while not self._stop.is_set():
            try:
                client, peer = self._listener.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if not self._stop.is_set():
                    logger.error(f"accept() failed: {e}")
                return

            logger.debug(f"Connection from {peer[0]}:{peer[1]}")
            on_connection(Connection(
                socket=client,
                address=peer,
                buffer_size=self.config.buffer_size,
                timeout=self.config.timeout,
                max_request_size=self.config.max_request_size,
            ))

    def shutdown(self):
        """Ask the accept loop to stop. Safe from any thread, any number of times."""
        if not self._stop.is_set():
            logger.info("Stopping listener")
        self._stop.set()
