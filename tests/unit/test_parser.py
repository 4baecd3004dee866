"""
Unit tests for the raw request parser.
"""

import pytest

from pykoa.http import HTTPStatus
from pykoa.transport import HTTPParseError, RequestParser


class TestRequestParser:
    """Tests for RequestParser.parse()."""

    def test_parse_get(self, sample_get_request):
        request = RequestParser().parse(sample_get_request, ("127.0.0.1", 5000))

        assert request.method == "GET"
        assert request.url == "/api/users?page=1&limit=10"
        assert request.version == "HTTP/1.1"
        assert request.headers.get("host") == "localhost:8080"
        assert request.remote_address == ("127.0.0.1", 5000)
        assert request.body.read() == b""

    def test_parse_post_body(self, sample_post_request):
        request = RequestParser().parse(sample_post_request)

        assert request.method == "POST"
        assert request.headers.get("Content-Type") == "application/json"
        assert request.body.read() == b'{"name": "John", "email": "john@example.com"}'

    def test_body_cut_to_content_length(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: 3\r\n\r\nabcdef"
        assert RequestParser().parse(raw).body.read() == b"abc"

    def test_repeated_headers_are_joined(self):
        raw = b"GET / HTTP/1.1\r\nAccept: text/html\r\nAccept: application/json\r\n\r\n"
        request = RequestParser().parse(raw)
        assert request.headers.get("Accept") == "text/html, application/json"

    def test_folded_header(self):
        raw = b"GET / HTTP/1.1\r\nX-Long: first\r\n  second\r\n\r\n"
        request = RequestParser().parse(raw)
        assert request.headers.get("X-Long") == "first second"

    def test_http_10_accepted(self):
        request = RequestParser().parse(b"GET / HTTP/1.0\r\n\r\n")
        assert request.version == "HTTP/1.0"

    @pytest.mark.parametrize("raw, status", [
        (b"GETT / HTTP/1.1\r\n\r\n", HTTPStatus.METHOD_NOT_ALLOWED),
        (b"GET / HTTP/2.0\r\n\r\n", HTTPStatus.HTTP_VERSION_NOT_SUPPORTED),
        (b"GET /\r\n\r\n", HTTPStatus.BAD_REQUEST),
        (b"get / HTTP/1.1\r\n\r\n", HTTPStatus.BAD_REQUEST),
        (b"GET / HTTP/1.1\r\nHost: x", HTTPStatus.BAD_REQUEST),
        (b"GET / HTTP/1.1\r\nno colon here\r\n\r\n", HTTPStatus.BAD_REQUEST),
        (b"POST / HTTP/1.1\r\nContent-Length: abc\r\n\r\n", HTTPStatus.BAD_REQUEST),
        (b"POST / HTTP/1.1\r\nContent-Length: -1\r\n\r\n", HTTPStatus.BAD_REQUEST),
        (b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nshort", HTTPStatus.BAD_REQUEST),
    ])
    def test_malformed_requests(self, raw, status):
        with pytest.raises(HTTPParseError) as exc_info:
            RequestParser().parse(raw)

        assert exc_info.value.status_code == status

    def test_too_large(self):
        parser = RequestParser(max_request_size=16)

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(b"GET / HTTP/1.1\r\nHost: localhost\r\n\r\n")

        assert exc_info.value.status_code == HTTPStatus.PAYLOAD_TOO_LARGE
