"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

Logs one line per request with method, path, status, body size and how
long the downstream chain took. Register it FIRST so that its timing
covers everything else and it sees requests other middleware reject:

    app.use(LoggingMiddleware())    # outermost
    app.use(auth)
    app.use(handler)

Example output (text format):

    127.0.0.1 - "GET /users?page=2" 200 512B 3.41ms [a1b2c3d4]

=============================================================================
"""

from dataclasses import dataclass
from typing import TYPE_CHECKING
import json
import logging
import time
import uuid

from .base import Middleware, Next

if TYPE_CHECKING:
    from ..context import Context


# Namespaced logger, separate from framework diagnostics:
#   logging.getLogger("pykoa.access").addHandler(file_handler)
logger = logging.getLogger("pykoa.access")


@dataclass
class RequestLog:
    """Structured log entry for one request."""

    request_id: str
    method: str
    url: str
    client_ip: str
    status_code: int
    content_length: int
    duration_ms: float

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "method": self.method,
            "url": self.url,
            "client_ip": self.client_ip,
            "status": self.status_code,
            "content_length": self.content_length,
            "duration_ms": round(self.duration_ms, 2),
        }

    def to_text(self) -> str:
        return (
            f'{self.client_ip or "-"} - "{self.method} {self.url}" '
            f"{self.status_code} {self.content_length}B "
            f"{self.duration_ms:.2f}ms [{self.request_id}]"
        )


class LoggingMiddleware(Middleware):
    """
    Request logging middleware.

    Args:
        log_format: "text" (human readable) or "json" (one JSON object
                    per line, for log aggregators).
        include_request_id: Set X-Request-ID on the response.
        log_level: Level used for successful requests.
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
    ):
        if log_format not in ("text", "json"):
            raise ValueError(f"log_format must be 'text' or 'json', got {log_format!r}")
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level

    def __call__(self, ctx: "Context", next: Next) -> None:
        request_id = str(uuid.uuid4())[:8]
        ctx.state["request_id"] = request_id
        if self.include_request_id:
            ctx.response.set("X-Request-ID", request_id)

        start_time = time.time()
        try:
            next()
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {ctx.request.method} {ctx.request.url} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms) [{request_id}]"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000
        body = ctx.response.body

        entry = RequestLog(
            request_id=request_id,
            method=ctx.request.method,
            url=ctx.request.url,
            client_ip=ctx.request.ip,
            status_code=ctx.response.status,
            content_length=len(body) if body is not None else 0,
            duration_ms=duration_ms,
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(entry.to_dict()))
        else:
            logger.log(self.log_level, entry.to_text())
