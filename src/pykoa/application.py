"""
=============================================================================
APPLICATION
=============================================================================

The Application holds the middleware chain, the error observer and the
configuration, and turns them into a handler a transport can call.

=============================================================================
ONE REQUEST, END TO END
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   transport ──(request, sink)──► callback                           │
    │                                     │                                │
    │                          create_context()                            │
    │                          Context + Request + Response, bound        │
    │                                     │                                │
    │                          handle_request()                            │
    │                                     │                                │
    │                   composed chain (dispatch engine)                   │
    │                          │                    │                      │
    │                     returns              raises                      │
    │                          │                    │                      │
    │                     respond()          error observer                │
    │                  (finalizer writes)    (nothing written)             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THE FINALIZER
=============================================================================

    status in {204, 205, 304}  → empty body, whatever was assigned
    method HEAD                → body cut to Content-Length (when set
                                 and non-zero), b"" if there is none
    body is None               → the status code as text ("404")
    otherwise                  → the body bytes

=============================================================================
USAGE
=============================================================================

    from pykoa import Application, LoggingMiddleware

    app = Application({"proxy": True})

    app.use(LoggingMiddleware())

    def hello(ctx, next):
        ctx.body = "hello pykoa"

    app.use(hello)
    app.listen(8080)

=============================================================================
"""

from dataclasses import replace
from typing import Any, Callable, List, Mapping, Optional, Tuple, Union
import logging
import threading

from .config import ApplicationConfig, ServerConfig
from .context import Context
from .errors import ListenFailure
from .http.request import Request
from .http.response import Response
from .http.status_codes import is_empty_status
from .middleware.base import ComposedHandler, Middleware, MiddlewareFunc, as_middleware, compose
from .transport.base import ResponseSink, TransportRequest
from .transport.server import RequestHandler, TransportServer


logger = logging.getLogger(__name__)


ErrorHandler = Callable[[Exception], None]


def default_error_handler(err: Exception) -> None:
    """Log the error with its traceback. Nothing reaches the client."""
    logger.error(f"Unhandled error: {type(err).__name__}: {err}", exc_info=err)


class Application:
    """
    A middleware-based HTTP application.

    Args:
        config: None for defaults, an ApplicationConfig, or a mapping of
                option names ({"proxy": True, "subdomainOffset": 3}).

    Raises:
        ConfigurationTypeMismatch: If an option has a wrong-kind value.
    """

    def __init__(self, config: Union[None, ApplicationConfig, Mapping[str, Any]] = None):
        if isinstance(config, ApplicationConfig):
            config.validate()
        else:
            config = ApplicationConfig.from_mapping(config)

        self.config: ApplicationConfig = config
        self.middleware: List[Middleware] = []
        self.error_handler: ErrorHandler = default_error_handler

        self._server: Optional[TransportServer] = None
        self._lock = threading.Lock()

    # =========================================================================
    # CONFIGURATION SHORTCUTS
    # =========================================================================

    @property
    def env(self) -> str:
        return self.config.env

    @property
    def keys(self) -> List[str]:
        return self.config.keys

    @property
    def proxy(self) -> bool:
        return self.config.proxy

    @property
    def subdomain_offset(self) -> int:
        return self.config.subdomain_offset

    # =========================================================================
    # REGISTRATION
    # =========================================================================

    def use(self, middleware: Union[Middleware, MiddlewareFunc]) -> "Application":
        """
        Append middleware to the chain.

        Plain (ctx, next) functions are wrapped automatically. Returns the
        application so calls can be chained:

            app.use(logger).use(auth).use(handler)

        Raises:
            TypeError: If middleware is not callable.
            RuntimeError: If the application is already serving.
        """
        if self.is_serving:
            raise RuntimeError("Cannot register middleware while the application is serving")

        mw = as_middleware(middleware)
        self.middleware.append(mw)
        logger.debug(f"use {mw.name}")
        return self

    def on_error(self, handler: ErrorHandler) -> "Application":
        """
        Replace the error observer.

        The observer receives every exception that escapes the middleware
        chain, exactly once per failed request.
        """
        if not callable(handler):
            raise TypeError(f"Error handler must be callable, got {type(handler).__name__}")
        self.error_handler = handler
        return self

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def callback(self) -> RequestHandler:
        """
        Compose the current chain into a transport handler.

        The chain is snapshotted here: middleware added later is not seen
        by the returned handler.
        """
        handler = compose(self.middleware)

        def handle(req: TransportRequest, res: ResponseSink) -> None:
            ctx = self.create_context(req, res)
            self.handle_request(ctx, handler)

        return handle

    def create_context(self, req: TransportRequest, res: ResponseSink) -> Context:
        """Create a Context with its Request and Response, all cross-linked."""
        ctx = Context()
        ctx.app = self

        request = Request(req)
        request.app = self
        request.ctx = ctx

        response = Response(res)
        response.app = self
        response.ctx = ctx

        request.response = response
        response.request = request

        ctx.request = request
        ctx.response = response
        return ctx

    def handle_request(self, ctx: Context, handler: ComposedHandler) -> None:
        """
        Run the chain, then finalize.

        An exception from either step goes to the error observer once and
        nothing is written to the sink.
        """
        try:
            handler(ctx)
            self.respond(ctx)
        except Exception as err:
            self.error_handler(err)

    def respond(self, ctx: Context) -> None:
        """
        Write status and body bytes to the transport sink.

        Raises:
            InvalidContentLength: HEAD request with a malformed
                                  Content-Length. Nothing is written.
        """
        response = ctx.response
        status = response.status
        payload = self._payload(ctx)

        sink = response.res
        sink.write_status(status)
        sink.write(payload)

    def _payload(self, ctx: Context) -> bytes:
        """Body bytes the finalizer sends for the current status and method."""
        response = ctx.response
        status = response.status
        body = response.body

        if is_empty_status(status):
            return b""

        if ctx.request.method == "HEAD":
            length = response.get_length()
            if body is not None and length:
                body = body[:length]
            return body or b""

        if body is None:
            return str(status).encode("ascii")

        return body

    # =========================================================================
    # SERVING
    # =========================================================================

    @property
    def is_serving(self) -> bool:
        return self._server is not None

    @property
    def address(self) -> Optional[Tuple[str, int]]:
        """Bound (host, port) while serving, else None."""
        server = self._server
        return server.address if server is not None else None

    def listen(
        self,
        port: Optional[int] = None,
        host: Optional[str] = None,
        server_config: Optional[ServerConfig] = None,
    ) -> None:
        """
        Serve on the bundled socket transport. Blocks until close() is
        called or SIGINT/SIGTERM arrives (main thread only).

        Args:
            port: Overrides the configured port.
            host: Overrides the configured host.
            server_config: Transport settings; defaults to ServerConfig.from_env().

        Raises:
            ListenFailure: If the address cannot be bound.
            RuntimeError: If this application is already listening.
        """
        config = server_config or ServerConfig.from_env()
        if port is not None:
            config = replace(config, port=port)
        if host is not None:
            config = replace(config, host=host)

        self._setup_logging(config.log_level)
        server = TransportServer(self.callback(), config)

        with self._lock:
            if self._server is not None:
                raise RuntimeError("Application is already listening")
            self._server = server

        logger.info(
            f"Starting application on {config.host}:{config.port} "
            f"(env={self.env}, {len(self.middleware)} middleware)"
        )

        try:
            server.serve()
        except OSError as e:
            raise ListenFailure(
                f"Cannot listen on {config.host}:{config.port}: {e}",
                host=config.host,
                port=config.port,
            ) from e
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            with self._lock:
                self._server = None

    def close(self) -> None:
        """Stop a running listen() from any thread. No-op when not serving."""
        server = self._server
        if server is not None:
            server.shutdown()

    def _setup_logging(self, log_level: str) -> None:
        level = getattr(logging, log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("pykoa").setLevel(level)

    def __repr__(self) -> str:
        return (
            f"Application(env={self.env!r}, proxy={self.proxy}, "
            f"subdomain_offset={self.subdomain_offset}, middleware={len(self.middleware)})"
        )
