"""
=============================================================================
PYKOA CLI ENTRY POINT
=============================================================================

Runs a hello-world application, handy for checking an installation or a
deployment target:

    python -m pykoa                       # 127.0.0.1:8080
    python -m pykoa --port 3000
    python -m pykoa --host 0.0.0.0        # all interfaces (containers)
    python -m pykoa --workers 8 --log-level DEBUG

Settings not given on the command line come from the environment
(PYKOA_HOST, PYKOA_PORT, PYKOA_WORKERS, PYKOA_TIMEOUT, PYKOA_LOG_LEVEL).

=============================================================================
"""

from dataclasses import replace
import argparse
import sys

from . import __version__
from .application import Application
from .config import ServerConfig
from .errors import ListenFailure
from .middleware import LoggingMiddleware


def hello(ctx, next):
    ctx.body = "hello pykoa"


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pykoa",
        description="Serve a hello-world pykoa application",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m pykoa                      # Run with defaults
  python -m pykoa --port 3000          # Custom port
  python -m pykoa --host 0.0.0.0       # Listen on all interfaces
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", default=None, help="Host to bind to (default: 127.0.0.1)")
    parser.add_argument("--port", "-p", type=int, default=None, help="Port to listen on (default: 8080)")

    # ─────────────────────────────────────────────────────────────────────
    # PERFORMANCE / LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Minimum worker threads; the pool grows to twice this",
    )
    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Logging level (default: INFO)",
    )
    parser.add_argument("--version", "-v", action="version", version=f"pykoa {__version__}")

    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    config = ServerConfig.from_env()
    if args.host is not None:
        config = replace(config, host=args.host)
    if args.port is not None:
        config = replace(config, port=args.port)
    if args.workers is not None:
        config = replace(config, min_workers=args.workers, max_workers=args.workers * 2)
    if args.log_level is not None:
        config = replace(config, log_level=args.log_level)

    try:
        config.validate()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    app = Application()
    app.use(LoggingMiddleware()).use(hello)

    try:
        app.listen(server_config=config)
    except ListenFailure as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
