"""
Unit tests for the Application: registration, error observer, finalizer.

Requests are driven through app.callback() with an in-memory recorder.
"""

import logging

import pytest

from pykoa import (
    Application,
    BodyEncodingFailure,
    ChainProtocolViolation,
    InvalidContentLength,
    ListenFailure,
    ServerConfig,
)


class TestRegistration:
    """Tests for use() and on_error()."""

    def test_use_chains(self):
        """use() returns the application itself."""
        app = Application()
        noop = lambda ctx, next: next()

        result = app.use(noop).use(noop).use(noop)

        assert result is app
        assert len(app.middleware) == 3

    def test_use_rejects_non_callable(self):
        with pytest.raises(TypeError):
            Application().use(42)

    def test_on_error_replaces_observer(self):
        app = Application()
        seen = []
        app.on_error(seen.append)
        assert app.error_handler == seen.append

    def test_on_error_rejects_non_callable(self):
        with pytest.raises(TypeError):
            Application().on_error("log it")

    def test_callback_snapshots_chain(self, run):
        """Middleware added after callback() is not part of that handler."""
        app = Application()
        handler = app.callback()
        app.use(lambda ctx, next: ctx.set_body("late"))

        from pykoa.transport import ResponseRecorder, make_request
        recorder = ResponseRecorder()
        handler(make_request(), recorder)

        assert recorder.status == 404

    def test_repr(self):
        assert "middleware=0" in repr(Application())


class TestFinalizer:
    """End-to-end behavior of the response finalizer."""

    def test_no_middleware_gives_404(self, run):
        """An empty application answers 404 with body "404"."""
        recorder = run(Application(), "GET", "/")

        assert recorder.status == 404
        assert recorder.body == b"404"

    def test_body_is_written(self, run):
        app = Application().use(lambda ctx, next: ctx.set_body("hello pykoa"))

        recorder = run(app)

        assert recorder.status == 200
        assert recorder.text == "hello pykoa"
        assert recorder.headers.get("Content-Type") == "text"
        assert recorder.headers.get("Content-Length") == "11"

    def test_status_without_body_writes_status_text(self, run):
        def teapot(ctx, next):
            ctx.status = 418

        recorder = run(Application().use(teapot))

        assert recorder.status == 418
        assert recorder.body == b"418"

    def test_short_circuit_path(self, run):
        """The first middleware stops the chain: only its body is sent."""
        calls = []

        def first(ctx, next):
            calls.append(1)
            ctx.body = "response body 1"

        def second(ctx, next):
            calls.append(2)
            ctx.body = ctx.body.decode() + " response body 2"

        recorder = run(Application().use(first).use(second))

        assert calls == [1]
        assert recorder.text == "response body 1"

    def test_full_chain_path(self, run):
        """Every middleware appends; the last one stops."""
        def append(text, call_next=True):
            def mw(ctx, next):
                current = ctx.body.decode() if ctx.body else ""
                ctx.body = current + text
                if call_next:
                    next()
            return mw

        app = Application()
        app.use(append("response body 1")).use(append(" response body 2")).use(append(" response body 3", False))

        recorder = run(app)

        assert recorder.text == "response body 1 response body 2 response body 3"

    def test_post_next_code_runs(self, run):
        """Upstream middleware can modify the response on the way out."""
        def wrapper(ctx, next):
            next()
            ctx.response.set("X-After", "yes")
            ctx.body = ctx.body.upper()

        def inner(ctx, next):
            ctx.body = b"quiet"

        recorder = run(Application().use(wrapper).use(inner))

        assert recorder.body == b"QUIET"
        assert recorder.headers.get("X-After") == "yes"

    @pytest.mark.parametrize("status", [204, 205, 304])
    def test_empty_status_drops_body(self, run, status):
        """Empty statuses are written with zero body bytes."""
        def mw(ctx, next):
            ctx.body = "will be dropped"
            ctx.status = status

        recorder = run(Application().use(mw))

        assert recorder.status == status
        assert recorder.body == b""
        assert recorder.written

    def test_head_truncates_to_content_length(self, run):
        """HEAD writes the body cut to the declared Content-Length."""
        def mw(ctx, next):
            ctx.body = "hello world"
            ctx.response.set_length(5)

        recorder = run(Application().use(mw), "HEAD", "/")

        assert recorder.status == 200
        assert recorder.body == b"hello"

    def test_head_without_length_writes_body(self, run):
        """JSON bodies carry no Content-Length, so nothing is cut."""
        recorder = run(Application().use(lambda ctx, next: ctx.set_body({"a": 1})), "HEAD")
        assert recorder.body == b'{"a":1}'

    def test_head_without_body_writes_nothing(self, run):
        recorder = run(Application(), "HEAD", "/")

        assert recorder.status == 404
        assert recorder.body == b""

    def test_head_with_zero_length_is_not_truncated(self, run):
        def mw(ctx, next):
            ctx.body = "abc"
            ctx.response.set_length(0)

        recorder = run(Application().use(mw), "HEAD")
        assert recorder.body == b"abc"

    def test_status_written_once(self, run):
        recorder = run(Application().use(lambda ctx, next: ctx.set_body("x")))
        assert recorder.status_writes == 1


class TestErrorObserver:
    """Tests for error propagation to the observer."""

    def test_error_goes_to_observer_once(self, run):
        seen = []
        app = Application().on_error(seen.append)

        def boom(ctx, next):
            raise RuntimeError("boom")

        recorder = run(app.use(boom))

        assert len(seen) == 1
        assert str(seen[0]) == "boom"
        # Finalizer skipped: nothing written
        assert recorder.status is None
        assert recorder.written is False

    def test_protocol_violation_reaches_observer(self, run):
        seen = []

        def twice(ctx, next):
            next()
            next()

        recorder = run(Application().on_error(seen.append).use(twice))

        assert len(seen) == 1
        assert isinstance(seen[0], ChainProtocolViolation)
        assert recorder.written is False

    def test_swallowed_violation_responds_500(self, run):
        """A middleware that ignores the violation gets a 500 response."""
        def twice(ctx, next):
            next()
            try:
                next()
            except ChainProtocolViolation:
                pass

        recorder = run(Application().use(twice))

        assert recorder.status == 500
        assert recorder.body == b"500"

    def test_encoding_failure_reaches_observer(self, run):
        seen = []

        def bad_json(ctx, next):
            ctx.body = {"value": {1, 2}}

        run(Application().on_error(seen.append).use(bad_json))

        assert isinstance(seen[0], BodyEncodingFailure)

    def test_later_middleware_not_run_after_error(self, run):
        ran = []

        def boom(ctx, next):
            raise ValueError("early")

        app = Application().on_error(lambda err: None)
        app.use(boom).use(lambda ctx, next: ran.append(True))
        run(app)

        assert ran == []

    @pytest.mark.parametrize("length", ["abc", "-2"])
    def test_head_with_bad_length_reaches_observer(self, run, length):
        """A finalizer failure is reported like a chain failure."""
        seen = []

        def mw(ctx, next):
            ctx.body = "hello"
            ctx.response.set("Content-Length", length)

        recorder = run(Application().on_error(seen.append).use(mw), "HEAD")

        assert len(seen) == 1
        assert isinstance(seen[0], InvalidContentLength)
        assert recorder.status is None
        assert recorder.written is False

    def test_get_ignores_bad_length(self, run):
        """Content-Length is only consulted for HEAD."""
        def mw(ctx, next):
            ctx.body = "hello"
            ctx.response.set("Content-Length", "abc")

        recorder = run(Application().use(mw), "GET")
        assert recorder.body == b"hello"

    def test_default_observer_logs(self, run, caplog):
        def boom(ctx, next):
            raise RuntimeError("logged failure")

        with caplog.at_level(logging.ERROR, logger="pykoa.application"):
            recorder = run(Application().use(boom))

        assert "logged failure" in caplog.text
        assert recorder.written is False


class TestServing:
    """Tests for listen() failure paths and use() while serving."""

    def test_listen_failure_on_busy_port(self):
        import socket

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            app = Application()
            with pytest.raises(ListenFailure) as exc_info:
                app.listen(server_config=ServerConfig(host="127.0.0.1", port=port, log_level="WARNING"))

        assert exc_info.value.port == port
        assert isinstance(exc_info.value.__cause__, OSError)
        assert app.is_serving is False

    def test_close_when_not_serving_is_noop(self):
        app = Application()
        app.close()
        assert app.address is None
