"""
=============================================================================
SOCKET TRANSPORT SERVER
=============================================================================

Glues the pieces of the socket transport together and drives an
application callback:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      REQUEST LIFECYCLE                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  SocketServer (accept loop, calling thread)                         │
    │       │ Connection                                                   │
    │       ▼                                                              │
    │  ThreadPool.submit() ──full──► 503 written directly, close          │
    │       │                                                              │
    │       ▼  worker thread                                               │
    │  Connection.read_request()    timeout → 408, too large → 413        │
    │       │                                                              │
    │  RequestParser.parse()        HTTPParseError → its status code      │
    │       │ IncomingRequest                                              │
    │       ▼                                                              │
    │  handler(request, SocketResponseSink)                               │
    │       │                                                              │
    │       ├── sink committed   → serialize and send                     │
    │       └── nothing written  → close without a response               │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Errors the transport answers itself (408, 413, 400, 405, 505, 503) never
reach the application.

=============================================================================
"""

from typing import Callable, Optional, Tuple
import logging

from ..config import ServerConfig
from ..http.status_codes import HTTPStatus
from .base import ResponseSink, TransportRequest
from .connection import Connection, ConnectionState, RequestTooLarge
from .parser import HTTPParseError, RequestParser
from .sink import SocketResponseSink
from .socket_server import SocketServer
from .thread_pool import ThreadPool


logger = logging.getLogger(__name__)


RequestHandler = Callable[[TransportRequest, ResponseSink], None]


class TransportServer:
    """
    Threaded HTTP/1.1 server for any (request, sink) handler.

    Usage:
        server = TransportServer(app.callback(), ServerConfig(port=3000))
        server.serve()      # blocks until shutdown()
    """

    def __init__(self, handler: RequestHandler, config: Optional[ServerConfig] = None):
        self.handler = handler
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
        )
        self._parser = RequestParser(max_request_size=self.config.max_request_size)

    @property
    def is_running(self) -> bool:
        return self._socket_server.is_running

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    def serve(self):
        """
        Serve until shutdown() is called or a signal arrives.

        Raises:
            OSError: If binding fails.
        """
        self._thread_pool.start()
        try:
            self._socket_server.start(self._handle_connection)
        finally:
            self._thread_pool.shutdown(wait=True, timeout=self.config.timeout)
            logger.info("Server stopped")

    def shutdown(self):
        self._socket_server.shutdown()

    def _handle_connection(self, conn: Connection):
        """Hand a connection to the pool (accept thread)."""
        if not self._thread_pool.submit(self._process_connection, args=(conn,)):
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Serve exactly one request on conn (worker thread)."""
        with conn:
            try:
                raw_request = conn.read_request()
            except TimeoutError:
                self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                return
            except RequestTooLarge as e:
                self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
                return

            if raw_request is None:
                return

            try:
                request = self._parser.parse(raw_request, conn.address)
            except HTTPParseError as e:
                logger.debug(f"[{conn.id}] Parse error: {e}")
                self._send_error(conn, e.status_code, str(e))
                return

            conn.state = ConnectionState.PROCESSING
            sink = SocketResponseSink(method=request.method, server_name=self.config.server_name)

            try:
                self.handler(request, sink)
            except Exception as e:
                logger.exception(f"[{conn.id}] Handler error: {e}")
                return

            if not sink.committed:
                logger.debug(f"[{conn.id}] No response written, closing connection")
                return

            conn.send_response(sink.to_bytes())

    def _send_error(self, conn: Connection, status: int, message: str):
        """Answer a request the application never saw."""
        sink = SocketResponseSink(server_name=self.config.server_name)
        sink.headers.set("Content-Type", "text/plain; charset=utf-8")
        sink.write_status(status)
        sink.write(message.encode("utf-8"))
        conn.send_response(sink.to_bytes())
