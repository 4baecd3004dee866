"""
=============================================================================
TRANSPORT
=============================================================================

Everything that touches sockets, plus the in-memory stand-in used by
tests:

    base           TransportRequest / ResponseSink protocols
    parser         RequestParser, IncomingRequest, HTTPParseError
    connection     Buffered client connection
    thread_pool    Worker threads for connection handling
    socket_server  Listening socket and accept loop
    sink           SocketResponseSink (HTTP/1.1 serialization)
    server         TransportServer tying the above together
    recorder       ResponseRecorder and make_request()

=============================================================================
"""

from .base import ResponseSink, TransportRequest
from .connection import Connection, ConnectionState, RequestTooLarge
from .parser import HTTPParseError, IncomingRequest, RequestParser
from .recorder import ResponseRecorder, make_request
from .server import RequestHandler, TransportServer
from .sink import SocketResponseSink
from .socket_server import SocketServer
from .thread_pool import ThreadPool

__all__ = [
    # Contract
    "TransportRequest",
    "ResponseSink",
    "RequestHandler",

    # Socket transport
    "TransportServer",
    "SocketServer",
    "Connection",
    "ConnectionState",
    "RequestTooLarge",
    "ThreadPool",
    "RequestParser",
    "IncomingRequest",
    "HTTPParseError",
    "SocketResponseSink",

    # In-memory transport
    "ResponseRecorder",
    "make_request",
]
