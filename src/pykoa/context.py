"""
=============================================================================
EXCHANGE CONTEXT
=============================================================================

One Context per request. It bundles the Request view, the Response view
and a free-form `state` dict middleware can use to pass data along the
chain:

    def authenticate(ctx, next):
        ctx.state["user"] = load_user(ctx.request.get("Authorization"))
        next()

    def greet(ctx, next):
        ctx.body = f"hello {ctx.state['user'].name}"

The accessors on Context (status, body, method) are plain delegations to
the bound views; they hold no state of their own.

Lifetime:
    created  → right before dispatch starts
    bound    → request/response attached, still before any middleware
    dropped  → after the response is finalized (never reused)

=============================================================================
"""

from typing import TYPE_CHECKING, Any, Dict, Optional

if TYPE_CHECKING:
    from .application import Application
    from .http.request import Request
    from .http.response import Response


class Context:
    """Per-request exchange context."""

    def __init__(self):
        self.request: Optional["Request"] = None
        self.response: Optional["Response"] = None
        self.app: Optional["Application"] = None

        # Recommended namespace for passing information between middleware
        self.state: Dict[str, Any] = {}

    # ─────────────────────────────────────────────────────────────────────
    # Response delegation
    # ─────────────────────────────────────────────────────────────────────

    @property
    def status(self) -> int:
        return self.response.status

    @status.setter
    def status(self, status_code: int) -> None:
        self.response.set_status(status_code)

    def get_status(self) -> int:
        return self.response.get_status()

    def set_status(self, status_code: int) -> None:
        self.response.set_status(status_code)

    @property
    def body(self) -> Optional[bytes]:
        return self.response.body

    @body.setter
    def body(self, value: Any) -> None:
        self.response.set_body(value)

    def get_body(self) -> Optional[bytes]:
        return self.response.get_body()

    def set_body(self, value: Any) -> None:
        self.response.set_body(value)

    # ─────────────────────────────────────────────────────────────────────
    # Request delegation
    # ─────────────────────────────────────────────────────────────────────

    @property
    def method(self) -> str:
        return self.request.method

    def __repr__(self) -> str:
        return f"Context(request={self.request!r}, response={self.response!r})"
