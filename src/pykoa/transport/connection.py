"""
=============================================================================
CONNECTION
=============================================================================

Wraps one accepted client socket with buffered reading of a complete HTTP
request and a single response write.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

TCP does not preserve message boundaries. One request can arrive in many
recv() chunks, so the connection buffers until it has seen the end of the
headers and then reads exactly Content-Length more bytes:

    ┌─────────────────────────────────────────────────────────────────┐
    │  request line + headers  │ \r\n\r\n │  body (Content-Length)    │
    └─────────────────────────────────────────────────────────────────┘
      read until the separator             then read exactly N bytes

=============================================================================
ONE REQUEST PER CONNECTION
=============================================================================

Every connection serves exactly one request and is then closed
(responses carry "Connection: close"):

    NEW ──► READING ──► PROCESSING ──► WRITING ──► CLOSING ──► CLOSED
              │                                       ▲
              └───────────── error / EOF ─────────────┘

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from typing import Optional, Tuple
import logging
import socket
import time
import uuid


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and cleanup."""

    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSING = "closing"
    CLOSED = "closed"


class RequestTooLarge(ValueError):
    """The client sent more bytes than max_request_size allows."""


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket.
        address: Client (ip, port).
        id: Short identifier used in log lines.
        state: Current lifecycle state.
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        # Accepted sockets can inherit the listener's timeout; reset it
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request.

        Returns:
            The request bytes, or None if the client closed the connection
            before sending a full header block.

        Raises:
            TimeoutError: If the client is too slow.
            RequestTooLarge: If the request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._append(chunk)

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    # Short body; the parser reports it
                    break
                self._append(chunk)

            request_data = self._buffer[:body_start + content_length]
            self._buffer = b""
            return request_data

        except socket.timeout:
            raise TimeoutError("Request read timeout") from None

    def _append(self, chunk: bytes) -> None:
        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise RequestTooLarge(f"Request too large: {len(self._buffer)} bytes")

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    @staticmethod
    def _parse_content_length(headers: bytes) -> int:
        """
        Find Content-Length in raw header bytes.

        Only used to know how much to read. A bad value reads no body and
        the parser rejects the request.
        """
        for line in headers.decode("latin-1").lower().split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(int(line.split(":", 1)[1].strip()), 0)
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send a serialized response.

        Returns:
            True if everything was sent, False if the client went away.
        """
        self.state = ConnectionState.WRITING
        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection: send FIN, drain what the client still sends,
        release the descriptor. Safe to call more than once.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Peer already gone

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # Includes socket.timeout

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
