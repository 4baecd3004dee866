"""
pytest configuration and fixtures.
"""

import socket
import threading
import time
from typing import Callable, Dict, Generator, Mapping, Optional, Tuple
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from pykoa import Application, Context, ServerConfig
from pykoa.transport import ResponseRecorder, make_request


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


@pytest.fixture
def app() -> Application:
    """Fresh application with default configuration."""
    return Application()


@pytest.fixture
def ctx(app: Application) -> Context:
    """Context bound to a GET / request and an in-memory sink."""
    return app.create_context(make_request("GET", "/"), ResponseRecorder())


@pytest.fixture
def run() -> Callable[..., ResponseRecorder]:
    """
    Drive an application through its callback without a socket.

        recorder = run(app, "HEAD", "/", headers={"Host": "example.com"})
    """
    def _run(
        application: Application,
        method: str = "GET",
        url: str = "/",
        headers: Optional[Mapping[str, str]] = None,
        body: bytes = b"",
        remote_address: Tuple[str, int] = ("127.0.0.1", 50000),
    ) -> ResponseRecorder:
        recorder = ResponseRecorder()
        request = make_request(method, url, headers=headers, body=body, remote_address=remote_address)
        application.callback()(request, recorder)
        return recorder

    return _run


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def parse_raw_response(raw: bytes) -> Tuple[int, Dict[str, str], bytes]:
    """Split a raw HTTP/1.1 response into (status, headers, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode("latin-1").split("\r\n")
    status = int(lines[0].split(" ", 2)[1])
    headers = {}
    for line in lines[1:]:
        name, _, value = line.partition(":")
        headers[name.strip().lower()] = value.strip()
    return status, headers, body


@pytest.fixture
def parse_response() -> Callable[[bytes], Tuple[int, Dict[str, str], bytes]]:
    """Parser for raw responses read off a socket."""
    return parse_raw_response


class TestServer:
    """Test server helper that runs an application in a background thread."""

    def __init__(self, app: Application, port: int):
        self.app = app
        self.port = port
        self._thread: threading.Thread = None

    def start(self):
        """Start server in background thread."""
        config = ServerConfig(
            host="127.0.0.1",
            port=self.port,
            min_workers=2,
            max_workers=4,
            timeout=5.0,
            log_level="WARNING",
        )
        self._thread = threading.Thread(
            target=self.app.listen,
            kwargs={"server_config": config},
            daemon=True,
        )
        self._thread.start()

        # Wait for server to be ready
        for _ in range(50):  # 5 seconds max
            try:
                with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
                    s.connect(('127.0.0.1', self.port))
                    return
            except ConnectionRefusedError:
                time.sleep(0.1)

        raise RuntimeError("Server failed to start")

    def request(self, raw: bytes, timeout: float = 5.0) -> bytes:
        """Send raw request bytes and read until the server closes."""
        with socket.create_connection(('127.0.0.1', self.port), timeout=timeout) as s:
            s.sendall(raw)
            chunks = []
            while True:
                chunk = s.recv(4096)
                if not chunk:
                    break
                chunks.append(chunk)
        return b"".join(chunks)

    def stop(self):
        """Stop the server."""
        self.app.close()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def serve_app(free_port: int) -> Generator[Callable[[Application], TestServer], None, None]:
    """Start any application on a free port; stopped at teardown."""
    started = []

    def _serve(application: Application) -> TestServer:
        srv = TestServer(application, free_port)
        srv.start()
        started.append(srv)
        return srv

    yield _serve

    for srv in started:
        srv.stop()


@pytest.fixture
def test_server(free_port: int) -> Generator[TestServer, None, None]:
    """An application serving on a real socket."""
    application = Application()

    def fail_on_boom(ctx, next):
        if ctx.request.path == "/boom":
            raise RuntimeError("boom")
        next()

    def hello(ctx, next):
        if ctx.request.path == "/json":
            ctx.body = {"status": "ok"}
        elif ctx.request.path == "/empty":
            ctx.status = 204
        elif ctx.request.path != "/missing":
            ctx.body = "hello pykoa"

    application.use(fail_on_boom).use(hello)
    application.on_error(lambda err: None)

    test_srv = TestServer(application, free_port)
    test_srv.start()

    yield test_srv

    test_srv.stop()
