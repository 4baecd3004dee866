"""
=============================================================================
IN-MEMORY TRANSPORT
=============================================================================

Drive an Application without a socket: build a request with
make_request(), hand it to the callback together with a ResponseRecorder,
then inspect what was written.

    app = Application().use(hello)
    recorder = ResponseRecorder()
    app.callback()(make_request("GET", "/"), recorder)

    assert recorder.status == 200
    assert recorder.text == "hello"

Used by the test suite and handy for embedding pykoa behind another
server.

=============================================================================
"""

from io import BytesIO
from typing import Mapping, Optional, Tuple, Union

from ..http.headers import Headers
from ..http.status_codes import HTTPStatus
from .parser import IncomingRequest


class ResponseRecorder:
    """
    ResponseSink that keeps everything in memory.

    Attributes:
        status: Status passed to write_status(), or None if never called.
        headers: The header store the Response view mutates.
        body: Concatenation of all write() calls.
        written: Whether write() was called at all.
    """

    def __init__(self):
        self.headers = Headers()
        self.status: Optional[int] = None
        self.body = b""
        self.written = False
        self.status_writes = 0

    def write_status(self, status_code: int) -> None:
        self.status_writes += 1
        if self.status is None:
            self.status = int(status_code)

    def write(self, data: bytes) -> None:
        if self.status is None:
            self.status = int(HTTPStatus.OK)
        self.written = True
        self.body += bytes(data)

    @property
    def text(self) -> str:
        return self.body.decode("utf-8")

    def __repr__(self) -> str:
        return f"ResponseRecorder(status={self.status}, body={self.body!r})"


def make_request(
    method: str = "GET",
    url: str = "/",
    headers: Optional[Mapping[str, str]] = None,
    body: Union[bytes, str] = b"",
    remote_address: Tuple[str, int] = ("127.0.0.1", 0),
) -> IncomingRequest:
    """
    Build a TransportRequest without going through the parser.

    A str body is UTF-8 encoded; Content-Length is filled in when there is
    a body and the caller did not set one.
    """
    if isinstance(body, str):
        body = body.encode("utf-8")

    header_store = Headers(headers or {})
    if body and not header_store.has("Content-Length"):
        header_store.set("Content-Length", str(len(body)))

    return IncomingRequest(
        method=method.upper(),
        url=url,
        headers=header_store,
        body=BytesIO(body),
        remote_address=remote_address,
    )
