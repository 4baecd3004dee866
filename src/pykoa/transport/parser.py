"""
=============================================================================
HTTP/1.x REQUEST PARSER
=============================================================================

Turns the raw bytes read from a connection into an IncomingRequest, the
socket transport's implementation of TransportRequest.

=============================================================================
HTTP REQUEST FORMAT (RFC 7230)
=============================================================================

    GET /users?page=2 HTTP/1.1\r\n        ← request line
    Host: example.com\r\n                  ← headers
    Content-Length: 13\r\n
    \r\n                                   ← blank line
    {"name":"x"}                           ← body (Content-Length bytes)

=============================================================================
ERROR MAPPING
=============================================================================

Malformed input raises HTTPParseError carrying the status the transport
answers with. The application is never invoked for such requests.

    Reason                              Status
    ─────────────────────────────────   ──────
    Malformed request line / header     400
    Bad or short Content-Length body    400
    Unknown method                      405
    Request larger than the limit       413
    HTTP version other than 1.0 / 1.1   505

=============================================================================
"""

from dataclasses import dataclass, field
from io import BytesIO
from typing import BinaryIO, List, Tuple
import re

from ..errors import PyKoaError
from ..http.headers import Headers
from ..http.status_codes import HTTPStatus


class HTTPParseError(PyKoaError):
    """
    Raised when a request cannot be parsed.

    status_code is what the transport sends back (400 unless stated).
    """

    def __init__(self, message: str, status_code: int = HTTPStatus.BAD_REQUEST):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class IncomingRequest:
    """
    A parsed request, ready to hand to an application callback.

    Attributes:
        method: Request method ("GET").
        url: Request target as sent ("/users?page=2").
        version: Protocol version ("HTTP/1.1").
        headers: Case-insensitive header store.
        body: Request body as a readable stream.
        remote_address: Peer (ip, port).
    """

    method: str
    url: str
    version: str = "HTTP/1.1"
    headers: Headers = field(default_factory=Headers)
    body: BinaryIO = field(default_factory=BytesIO)
    remote_address: Tuple[str, int] = ("", 0)

    def __repr__(self) -> str:
        return f"IncomingRequest({self.method} {self.url} {self.version})"


class RequestParser:
    """
    Parser for HTTP/1.0 and HTTP/1.1 requests.

    Usage:
        parser = RequestParser(max_request_size=1024 * 1024)
        request = parser.parse(raw_bytes, ("127.0.0.1", 51234))
    """

    VALID_METHODS = {
        "GET",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "HEAD",
        "OPTIONS",
        "TRACE",
        "CONNECT",
    }

    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    # Compiled once at class load time
    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 10 * 1024 * 1024):
        self.max_request_size = max_request_size

    def parse(self, data: bytes, client_address: Tuple[str, int] = ("", 0)) -> IncomingRequest:
        """
        Parse raw request bytes.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        # Header bytes outside ASCII are kept readable rather than rejected
        header_section = data[:header_end].decode("latin-1")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, url, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        content_length = self._content_length(headers)
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )

        return IncomingRequest(
            method=method,
            url=url,
            version=version,
            headers=headers,
            body=BytesIO(body[:content_length]),
            remote_address=client_address,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str]:
        """
        Parse "METHOD SP REQUEST-TARGET SP HTTP-VERSION".

            "GET /users?page=1 HTTP/1.1"
             ─┬─ ──────┬────── ────┬───
              │        │           │
            Method   Target     Version
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, url, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(
                f"Invalid method: {method}",
                status_code=HTTPStatus.METHOD_NOT_ALLOWED,
            )

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=HTTPStatus.HTTP_VERSION_NOT_SUPPORTED,
            )

        return method, url, version

    def _parse_headers(self, lines: List[str]) -> Headers:
        """
        Parse header lines into a Headers store.

        Repeated headers are joined with ", ". Obsolete line folding
        (continuation lines starting with whitespace) is appended to the
        previous header.
        """
        headers = Headers()
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers.set(current_name, f"{headers.get(current_name)} {line.strip()}")
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Malformed header line: {line!r}")

            name, value = match.groups()
            current_name = name.strip()
            headers.add(current_name, value.strip())

        return headers

    @staticmethod
    def _content_length(headers: Headers) -> int:
        value = headers.get("Content-Length")
        if value is None:
            return 0
        try:
            length = int(value)
        except ValueError:
            raise HTTPParseError(f"Invalid Content-Length: {value!r}") from None
        if length < 0:
            raise HTTPParseError(f"Invalid Content-Length: {value!r}")
        return length
