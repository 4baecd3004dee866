"""
Unit tests for the exchange Context.
"""

from pykoa import Context
from pykoa.middleware import compose


class TestContext:
    """Tests for Context delegation and state."""

    def test_status_delegates_to_response(self, ctx: Context):
        ctx.status = 418
        assert ctx.response.status == 418
        assert ctx.get_status() == 418

        ctx.set_status(201)
        assert ctx.status == 201

    def test_body_delegates_to_response(self, ctx: Context):
        ctx.body = "hello"
        assert ctx.response.body == b"hello"
        assert ctx.get_body() == b"hello"

        ctx.set_body(b"bytes")
        assert ctx.body == b"bytes"

    def test_method(self, ctx: Context):
        assert ctx.method == "GET"

    def test_state_passes_data_between_middleware(self, ctx: Context):
        """state is shared by every middleware of one request."""
        def auth(ctx, next):
            ctx.state["user"] = "alice"
            next()

        def greet(ctx, next):
            ctx.body = f"hello {ctx.state['user']}"

        compose([auth, greet])(ctx)

        assert ctx.body == b"hello alice"

    def test_state_is_per_context(self, app):
        """Two contexts never share state."""
        from pykoa.transport import ResponseRecorder, make_request

        first = app.create_context(make_request(), ResponseRecorder())
        second = app.create_context(make_request(), ResponseRecorder())
        first.state["key"] = "value"

        assert second.state == {}
        assert first.request is not second.request
        assert first.response is not second.response

    def test_fresh_context_is_unbound(self):
        ctx = Context()
        assert ctx.request is None
        assert ctx.response is None
        assert ctx.app is None
        assert ctx.state == {}
