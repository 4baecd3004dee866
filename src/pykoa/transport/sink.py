"""
=============================================================================
SOCKET RESPONSE SINK
=============================================================================

The socket transport's ResponseSink. The application writes status,
headers and body into it; the server serializes it once the application
callback has returned:

    HTTP/1.1 200 OK\r\n                 ← status line
    Content-Type: text\r\n               ← headers set by middleware
    Content-Length: 5\r\n                ← computed when not set
    Date: Mon, 19 Oct 2026 12:00:00 GMT\r\n
    Server: pykoa\r\n
    Connection: close\r\n
    \r\n
    hello                                ← body (omitted for HEAD)

A sink nobody wrote to is "uncommitted": the server closes the connection
without sending anything.

=============================================================================
"""

from email.utils import formatdate
from typing import List, Optional

from ..http.headers import Headers
from ..http.status_codes import HTTPStatus, is_empty_status, reason_phrase


class SocketResponseSink:
    """
    Buffers one response for a socket connection.

    Args:
        method: Request method; HEAD responses keep their headers
                (including Content-Length) but send no body bytes.
        server_name: Value of the Server header.
    """

    def __init__(self, method: str = "GET", server_name: str = "pykoa"):
        self.method = method
        self.server_name = server_name
        self.headers = Headers()
        self.status: Optional[int] = None
        self._chunks: List[bytes] = []

    @property
    def committed(self) -> bool:
        """True once a status or body bytes were written."""
        return self.status is not None

    def write_status(self, status_code: int) -> None:
        if self.status is None:
            self.status = int(status_code)

    def write(self, data: bytes) -> None:
        # Writing without a status implies 200
        if self.status is None:
            self.status = HTTPStatus.OK
        if data:
            self._chunks.append(bytes(data))

    @property
    def body(self) -> bytes:
        return b"".join(self._chunks)

    def to_bytes(self) -> bytes:
        """Serialize as an HTTP/1.1 response."""
        status = int(self.status) if self.status is not None else int(HTTPStatus.OK)
        body = self.body

        headers = Headers(self.headers.items())
        if is_empty_status(status):
            headers.delete("Content-Length")
            body = b""
        elif not headers.has("Content-Length"):
            headers.set("Content-Length", str(len(body)))

        if not headers.has("Date"):
            headers.set("Date", formatdate(usegmt=True))
        if not headers.has("Server"):
            headers.set("Server", self.server_name)
        headers.set("Connection", "close")

        lines = [f"HTTP/1.1 {status} {reason_phrase(status)}"]
        lines.extend(f"{name}: {value}" for name, value in headers.items())
        head = ("\r\n".join(lines) + "\r\n\r\n").encode("latin-1", errors="replace")

        if self.method == "HEAD":
            return head
        return head + body

    def __repr__(self) -> str:
        return f"SocketResponseSink(status={self.status}, body={len(self.body)} bytes)"
