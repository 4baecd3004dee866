"""
=============================================================================
PYKOA - ONION-STYLE MIDDLEWARE FRAMEWORK
=============================================================================

A small HTTP framework built around one idea: an application is an
ordered chain of middleware, and each middleware wraps everything that
comes after it.

    from pykoa import Application

    app = Application()

    def timing(ctx, next):
        start = time.time()
        next()
        ctx.response.set("X-Response-Time", f"{(time.time() - start) * 1000:.1f}ms")

    def hello(ctx, next):
        ctx.body = "hello pykoa"

    app.use(timing).use(hello)
    app.listen(8080)

=============================================================================
PACKAGE LAYOUT
=============================================================================

    pykoa/
    ├── application.py    Application: use, on_error, callback, listen
    ├── context.py        Per-request Context
    ├── config.py         ApplicationConfig, ServerConfig
    ├── errors.py         Error kinds
    ├── http/             Request and Response views, body coercion,
    │                     headers, status codes
    ├── middleware/       Dispatch engine, LoggingMiddleware
    └── transport/        Socket server, parser, thread pool, sinks

=============================================================================
"""

__version__ = "0.1.0"

from .application import Application, ErrorHandler, default_error_handler
from .config import ApplicationConfig, ServerConfig
from .context import Context
from .errors import (
    BodyEncodingFailure,
    ChainProtocolViolation,
    ConfigurationTypeMismatch,
    InvalidContentLength,
    ListenFailure,
    PyKoaError,
)
from .http import HTTPStatus, Request, Response
from .middleware import (
    FunctionMiddleware,
    LoggingMiddleware,
    Middleware,
    Next,
    compose,
    function_middleware,
)

__all__ = [
    "__version__",
    "Application",
    "ErrorHandler",
    "default_error_handler",
    "ApplicationConfig",
    "ServerConfig",
    "Context",
    "Request",
    "Response",
    "HTTPStatus",
    "Middleware",
    "FunctionMiddleware",
    "function_middleware",
    "Next",
    "compose",
    "LoggingMiddleware",
    "PyKoaError",
    "ChainProtocolViolation",
    "BodyEncodingFailure",
    "ConfigurationTypeMismatch",
    "ListenFailure",
    "InvalidContentLength",
]
