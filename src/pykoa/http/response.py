"""
=============================================================================
RESPONSE VIEW
=============================================================================

The only mutable output surface middleware has. It holds the status and
the body bytes itself and delegates headers to the transport's sink.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        RESPONSE VIEW                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   status     int, 404 until something sets it                       │
    │   body       bytes or None                                          │
    │   headers    ──► sink.headers (HeaderStore owned by the transport)  │
    │                                                                      │
    │   Nothing is written to the client from here. The application's     │
    │   finalizer reads status and body once the chain has finished.     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BODY COERCION (set_body)
=============================================================================

    Variant      Status   Content-Type             Content-Length
    ─────────    ──────   ──────────────────────   ──────────────
    Empty        204 *    removed                  removed (and T-E)
    Text         200      "html" / "text" **       byte length
    Bytes        200      "bin" **                 byte length
    Stream       200      "bin" **                 removed
    Structured   200      "json" (always)          removed

    *  unless the status is already 204, 205 or 304
    ** only when no Content-Type is set yet

Status 200 is assigned BEFORE the Content-Type check in every non-empty
branch: "has content" is recorded even if the branch then only touches
headers.

=============================================================================
"""

from typing import TYPE_CHECKING, Any, Optional

from ..errors import InvalidContentLength
from .body import (
    BytesBody,
    EmptyBody,
    StreamBody,
    StructuredBody,
    TextBody,
    classify,
)
from .headers import HeaderStore
from .status_codes import HTTPStatus, is_empty_status

if TYPE_CHECKING:
    from ..application import Application
    from ..context import Context
    from ..transport.base import ResponseSink
    from .request import Request


class Response:
    """
    Response view bound to one exchange.

    Usage (inside middleware):
        ctx.response.status = 201
        ctx.response.set("X-Custom", "value")
        ctx.response.set_body({"id": 1})
    """

    def __init__(self, res: Optional["ResponseSink"] = None):
        self.res = res
        self.request: Optional["Request"] = None
        self.ctx: Optional["Context"] = None
        self.app: Optional["Application"] = None

        self._status: int = HTTPStatus.NOT_FOUND
        self._body: Optional[bytes] = None

    # =========================================================================
    # STATUS
    # =========================================================================

    @property
    def status(self) -> int:
        return self._status

    @status.setter
    def status(self, status_code: int) -> None:
        self.set_status(status_code)

    def get_status(self) -> int:
        return self._status

    def set_status(self, status_code: int) -> None:
        """
        Assign the status code.

        Raises:
            TypeError: If status_code is not an int (bools rejected).
            ValueError: If status_code is outside 100-999.
        """
        if isinstance(status_code, bool) or not isinstance(status_code, int):
            raise TypeError(f"Status code must be an int, got {type(status_code).__name__}")
        if not 100 <= status_code <= 999:
            raise ValueError(f"Invalid status code: {status_code}")
        self._status = int(status_code)

    @property
    def message(self) -> str:
        """Reason phrase for the current status."""
        try:
            return HTTPStatus(self._status).phrase
        except ValueError:
            return ""

    # =========================================================================
    # BODY
    # =========================================================================

    @property
    def body(self) -> Optional[bytes]:
        return self._body

    @body.setter
    def body(self, value: Any) -> None:
        self.set_body(value)

    def get_body(self) -> Optional[bytes]:
        return self._body

    def set_body(self, value: Any) -> None:
        """
        Normalize any supported value into body bytes plus headers.

        Args:
            value: None, str, bytes-like, readable stream, mapping, or a
                   Body variant from pykoa.http.body.

        Raises:
            TypeError: Unsupported value type (nothing is modified).
            BodyEncodingFailure: Stream read or JSON encoding failed.
        """
        body = classify(value)

        if isinstance(body, EmptyBody):
            if not is_empty_status(self._status):
                self.set_status(HTTPStatus.NO_CONTENT)
            self.remove("Content-Type")
            self.remove("Content-Length")
            self.remove("Transfer-Encoding")
            self._body = None
            return

        self.set_status(HTTPStatus.OK)
        type_set = self.has("Content-Type")

        if isinstance(body, TextBody):
            data = body.encode()
            if not type_set:
                self.set_type("html" if body.is_html else "text")
            self.set_length(len(data))

        elif isinstance(body, BytesBody):
            data = body.data
            if not type_set:
                self.set_type("bin")
            self.set_length(len(data))

        elif isinstance(body, StreamBody):
            data = body.drain()
            if not type_set:
                self.set_type("bin")
            self.remove("Content-Length")

        elif isinstance(body, StructuredBody):
            data = body.encode()
            self.set_type("json")
            self.remove("Content-Length")

        else:  # pragma: no cover - classify() only returns the variants above
            raise TypeError(f"Unhandled body variant: {body!r}")

        self._body = data

    # =========================================================================
    # HEADERS
    # =========================================================================

    @property
    def headers(self) -> HeaderStore:
        return self.res.headers

    def get(self, name: str) -> str:
        """Get a response header, "" when absent."""
        value = self.res.headers.get(name)
        return value if value is not None else ""

    def has(self, name: str) -> bool:
        return self.get(name) != ""

    def set(self, name: str, value: str) -> None:
        self.res.headers.set(name, str(value))

    def remove(self, name: str) -> None:
        self.res.headers.delete(name)

    # =========================================================================
    # LENGTH AND TYPE
    # =========================================================================

    def get_length(self) -> Optional[int]:
        """
        Parse the Content-Length header.

        Returns:
            The length, or None when the header is absent.

        Raises:
            InvalidContentLength: If the header is present but not a
                                  non-negative integer.
        """
        value = self.get("Content-Length")
        if value == "":
            return None
        try:
            length = int(value.strip())
        except ValueError:
            raise InvalidContentLength(value) from None
        if length < 0:
            raise InvalidContentLength(value)
        return length

    def set_length(self, length: int) -> None:
        self.set("Content-Length", str(length))

    @property
    def length(self) -> Optional[int]:
        return self.get_length()

    @length.setter
    def length(self, length: int) -> None:
        self.set_length(length)

    @property
    def type(self) -> str:
        return self.get("Content-Type")

    @type.setter
    def type(self, content_type: str) -> None:
        self.set_type(content_type)

    def set_type(self, content_type: str) -> None:
        self.set("Content-Type", content_type)

    def __repr__(self) -> str:
        size = "None" if self._body is None else f"{len(self._body)} bytes"
        return f"Response(status={self._status}, body={size})"
