"""
=============================================================================
MIDDLEWARE AND DISPATCH
=============================================================================

Defines the middleware interface and the engine that runs a chain of
middleware against one Context.

=============================================================================
THE ONION MODEL
=============================================================================

Each middleware receives the context and a continuation, `next`. Calling
next() runs everything registered after it; when next() returns, the
middleware gets to act again on the way out.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    ONION - ONE REQUEST                              │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   app.use(logger).use(auth).use(hello)                              │
    │                                                                      │
    │   ┌───────────────────────────────────────────────────────────┐    │
    │   │ logger: start timer                                        │    │
    │   │   ┌───────────────────────────────────────────────────┐   │    │
    │   │   │ auth: check token                                  │   │    │
    │   │   │   ┌───────────────────────────────────────────┐   │   │    │
    │   │   │   │ hello: ctx.body = "hello"                  │   │   │    │
    │   │   │   │        (does not call next)                │   │   │    │
    │   │   │   └───────────────────────────────────────────┘   │   │    │
    │   │   │ auth: (nothing after next)                         │   │    │
    │   │   └───────────────────────────────────────────────────┘   │    │
    │   │ logger: log status + elapsed time                          │    │
    │   └───────────────────────────────────────────────────────────┘    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Three things a middleware can do with `next`:

    call it once      → delegate, then continue after it returns
    not call it       → SHORT-CIRCUIT: nothing after this one runs,
                        which is not an error
    call it twice     → ChainProtocolViolation, status becomes 500

Raising an exception aborts the chain: nothing after the raise point runs
and the exception propagates to whoever invoked the composed handler.

=============================================================================
THE DISPATCH CURSOR
=============================================================================

A Dispatcher is created per request. It remembers the highest chain
position it has entered (`index`, starting at -1):

    dispatch(i):
        i <= index          → protocol violation (position revisited)
        index = i
        i == len(chain)     → end of chain, return
        chain[i](ctx, Next(dispatcher, i))

    Next(dispatcher, i)() → dispatcher.dispatch(i + 1)

The cursor only ever moves forward, so the second call of the same `next`
is detected no matter how deep the chain has gone in between.

Nothing here is shared between requests: compose() snapshots the
middleware list into a tuple once, and every call of the composed handler
gets its own Dispatcher.

=============================================================================
"""

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Callable, Iterable, Iterator, Optional, Tuple, Union
import logging

from ..errors import ChainProtocolViolation
from ..http.status_codes import HTTPStatus

if TYPE_CHECKING:
    from ..context import Context


logger = logging.getLogger(__name__)


class Next:
    """
    Continuation handed to a middleware.

    Calling it runs the rest of the chain after the middleware's position
    and returns once that is done (or raises whatever it raised).
    """

    __slots__ = ("_dispatcher", "_position")

    def __init__(self, dispatcher: "Dispatcher", position: int):
        self._dispatcher = dispatcher
        self._position = position

    def __call__(self) -> None:
        self._dispatcher.dispatch(self._position + 1)

    @property
    def position(self) -> int:
        """Chain position of the middleware this continuation belongs to."""
        return self._position

    def __repr__(self) -> str:
        return f"Next(position={self._position})"


class Middleware(ABC):
    """
    Abstract base class for middleware.

    =========================================================================
    MIDDLEWARE ANATOMY
    =========================================================================

        class Timing(Middleware):
            def __call__(self, ctx: Context, next: Next) -> None:
                start = time.time()          # before

                next()                       # delegate (at most once!)

                elapsed = time.time() - start
                ctx.response.set("X-Response-Time", f"{elapsed * 1000:.1f}ms")

    A middleware reports failure by raising. Its return value is ignored.

    =========================================================================
    """

    @abstractmethod
    def __call__(self, ctx: "Context", next: Next) -> None:
        """
        Process one request.

        Args:
            ctx: The exchange context.
            next: Continuation running the remainder of the chain.
        """

    @property
    def name(self) -> str:
        """Middleware name for logging."""
        return self.__class__.__name__


MiddlewareFunc = Callable[["Context", Next], None]


class FunctionMiddleware(Middleware):
    """
    Wraps a plain function as middleware.

    Application.use() does this automatically, so most code never
    constructs one directly:

        def hello(ctx, next):
            ctx.body = "hello"

        app.use(hello)
    """

    def __init__(self, func: MiddlewareFunc, name: Optional[str] = None):
        self._func = func
        self._name = name or getattr(func, "__name__", type(func).__name__)

    def __call__(self, ctx: "Context", next: Next) -> None:
        self._func(ctx, next)

    @property
    def name(self) -> str:
        return self._name


def function_middleware(func: MiddlewareFunc) -> FunctionMiddleware:
    """
    Decorator to create middleware from a function.

        @function_middleware
        def powered_by(ctx, next):
            next()
            ctx.response.set("X-Powered-By", "pykoa")
    """
    return FunctionMiddleware(func)


def as_middleware(candidate: Union[Middleware, MiddlewareFunc]) -> Middleware:
    """
    Normalize a middleware argument.

    Raises:
        TypeError: If candidate is not callable.
    """
    if isinstance(candidate, Middleware):
        return candidate
    if not callable(candidate):
        raise TypeError(f"Middleware must be callable, got {type(candidate).__name__}")
    return FunctionMiddleware(candidate)


class Dispatcher:
    """
    Runs one chain against one context. Never reused across requests.
    """

    __slots__ = ("chain", "ctx", "index")

    def __init__(self, chain: Tuple[Middleware, ...], ctx: "Context"):
        self.chain = chain
        self.ctx = ctx
        # Highest position entered so far; -1 = nothing entered yet
        self.index = -1

    def dispatch(self, position: int) -> None:
        """
        Enter the chain at `position`.

        Raises:
            ChainProtocolViolation: If `position` was already entered,
                                    i.e. some next() was called twice.
            Exception: Anything a middleware raises.
        """
        if position <= self.index:
            self.ctx.response.set_status(HTTPStatus.INTERNAL_SERVER_ERROR)
            raise ChainProtocolViolation(position=position - 1)

        self.index = position

        if position == len(self.chain):
            return

        middleware = self.chain[position]
        middleware(self.ctx, Next(self, position))


class ComposedHandler:
    """
    A frozen middleware chain, callable with a Context.

    Safe to share between threads: it holds only an immutable tuple and
    creates a fresh Dispatcher per call.
    """

    __slots__ = ("_chain",)

    def __init__(self, chain: Iterable[Middleware]):
        self._chain: Tuple[Middleware, ...] = tuple(chain)

    def __call__(self, ctx: "Context") -> None:
        Dispatcher(self._chain, ctx).dispatch(0)

    def __len__(self) -> int:
        return len(self._chain)

    def __iter__(self) -> Iterator[Middleware]:
        return iter(self._chain)


def compose(middleware: Iterable[Union[Middleware, MiddlewareFunc]]) -> ComposedHandler:
    """
    Compose middleware into one handler.

    The list is copied, so appending to it afterwards does not affect the
    returned handler.

    Example:
        handler = compose([logger_mw, auth_mw, hello_mw])
        handler(ctx)   # runs logger → auth → hello
    """
    chain = [as_middleware(mw) for mw in middleware]
    logger.debug(f"Composed chain: {' -> '.join(mw.name for mw in chain) or '(empty)'}")
    return ComposedHandler(chain)
