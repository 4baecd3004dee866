"""
=============================================================================
TRANSPORT CONTRACT
=============================================================================

The application never talks to sockets. It talks to two small objects a
transport hands it for every exchange:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       TRANSPORT CONTRACT                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   TransportRequest  (read side)                                     │
    │     method           "GET", "HEAD", ...                             │
    │     url              "/path?query"                                  │
    │     headers          HeaderStore                                    │
    │     body             readable byte stream                           │
    │     remote_address   (ip, port) of the peer                         │
    │                                                                      │
    │   ResponseSink  (write side)                                        │
    │     headers          HeaderStore, mutated by the Response view      │
    │     write_status(n)  status line, called once by the finalizer      │
    │     write(data)      body bytes                                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Anything satisfying these protocols can drive an Application:

    handler = app.callback()
    handler(request, sink)

The bundled socket server (pykoa.transport.server) and the in-memory
ResponseRecorder (pykoa.transport.recorder) are two such transports.

=============================================================================
"""

from typing import BinaryIO, Protocol, Tuple, runtime_checkable

from ..http.headers import HeaderStore


@runtime_checkable
class TransportRequest(Protocol):
    """Incoming request as produced by a transport."""

    method: str
    url: str
    headers: HeaderStore
    body: BinaryIO
    remote_address: Tuple[str, int]


@runtime_checkable
class ResponseSink(Protocol):
    """Writable response surface provided by a transport."""

    headers: HeaderStore

    def write_status(self, status_code: int) -> None:
        ...

    def write(self, data: bytes) -> None:
        ...
