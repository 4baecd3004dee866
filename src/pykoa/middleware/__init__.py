"""
=============================================================================
MIDDLEWARE
=============================================================================

The dispatch engine and the middleware that ships with the framework.

    Middleware            Abstract base: __call__(ctx, next)
    FunctionMiddleware    Adapter for plain (ctx, next) functions
    function_middleware   Decorator form of the adapter
    Next                  The continuation object passed as `next`
    compose()             Freeze a list of middleware into one handler
    LoggingMiddleware     Access log with timing and request ids

=============================================================================
"""

from .base import (
    ComposedHandler,
    Dispatcher,
    FunctionMiddleware,
    Middleware,
    MiddlewareFunc,
    Next,
    as_middleware,
    compose,
    function_middleware,
)
from .logging import LoggingMiddleware

__all__ = [
    # Dispatch engine
    "Middleware",
    "MiddlewareFunc",
    "FunctionMiddleware",
    "function_middleware",
    "as_middleware",
    "Next",
    "Dispatcher",
    "ComposedHandler",
    "compose",

    # Built-in middleware
    "LoggingMiddleware",
]
