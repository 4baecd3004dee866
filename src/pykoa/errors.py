"""
=============================================================================
ERROR KINDS
=============================================================================

Every failure the framework itself raises derives from PyKoaError, so
application code can catch "anything pykoa complained about" with one
except clause and still tell the kinds apart.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                        ERROR HIERARCHY                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   PyKoaError                                                        │
    │     ├── ChainProtocolViolation     next() called twice             │
    │     ├── BodyEncodingFailure        stream read / JSON encode       │
    │     ├── ConfigurationTypeMismatch  wrong kind for an option        │
    │     ├── ListenFailure              cannot bind / serve             │
    │     └── InvalidContentLength       header is not an integer        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Where an error happens decides who sees it:

    - Construction errors never reach request handling.
    - Listen errors go back to whoever called listen().
    - Everything raised during dispatch goes to the error observer
      registered with Application.on_error(), exactly once.

=============================================================================
"""

from typing import Any, Optional


class PyKoaError(Exception):
    """Base class for all framework errors."""


class ChainProtocolViolation(PyKoaError):
    """
    Raised when a middleware calls its continuation more than once.

    The dispatcher sets the response status to 500 before raising, so if a
    middleware swallows this error the client still sees a server error.
    """

    status_code = 500

    def __init__(self, message: str = "next() called multiple times", position: Optional[int] = None):
        super().__init__(message)
        self.position = position


class BodyEncodingFailure(PyKoaError):
    """
    Raised when a response body cannot be turned into bytes.

    Two things can go wrong: draining a readable stream fails, or a
    structured value cannot be serialized to JSON. The original exception
    is always chained as __cause__.
    """

    def __init__(self, message: str, kind: str = ""):
        super().__init__(message)
        self.kind = kind


class ConfigurationTypeMismatch(PyKoaError, TypeError):
    """A recognized construction option was given a value of the wrong kind."""

    def __init__(self, option: str, expected: str, actual: Any):
        super().__init__(
            f"Invalid value for option '{option}': expected {expected}, "
            f"got {type(actual).__name__} ({actual!r})"
        )
        self.option = option
        self.expected = expected
        self.actual = actual


class ListenFailure(PyKoaError):
    """The transport could not bind to, or serve on, the requested address."""

    def __init__(self, message: str, host: str = "", port: int = 0):
        super().__init__(message)
        self.host = host
        self.port = port


class InvalidContentLength(PyKoaError, ValueError):
    """The Content-Length header is present but is not a non-negative integer."""

    def __init__(self, value: str):
        super().__init__(f"Invalid Content-Length header: {value!r}")
        self.value = value
