"""
Unit tests for the Request view.
"""

import io

import pytest

from pykoa import Application
from pykoa.transport import ResponseRecorder, make_request


def request_for(app=None, method="GET", url="/", headers=None, remote_address=("10.0.0.1", 4242)):
    app = app or Application()
    ctx = app.create_context(
        make_request(method, url, headers=headers, remote_address=remote_address),
        ResponseRecorder(),
    )
    return ctx.request


class TestRequestLine:
    """Tests for method, url and query parsing."""

    def test_method(self):
        request = request_for(method="post")
        assert request.method == "POST"
        assert request.get_method() == "POST"

    def test_path_and_querystring(self):
        request = request_for(url="/api/users?page=1&limit=10")

        assert request.url == "/api/users?page=1&limit=10"
        assert request.path == "/api/users"
        assert request.querystring == "page=1&limit=10"

    def test_query_single_and_repeated(self):
        """Single values are strings, repeated keys become lists."""
        request = request_for(url="/search?q=koa&tag=a&tag=b&empty=")

        assert request.query == {"q": "koa", "tag": ["a", "b"], "empty": ""}

    def test_empty_path_defaults_to_root(self):
        assert request_for(url="?x=1").path == "/"


class TestHeadersAndBody:
    """Tests for header access and the body stream."""

    def test_get_is_case_insensitive(self):
        request = request_for(headers={"Content-Type": "application/json; charset=utf-8"})

        assert request.get("content-type") == "application/json; charset=utf-8"
        assert request.has("CONTENT-TYPE")
        assert request.type == "application/json"

    def test_missing_header_is_empty_string(self):
        request = request_for()
        assert request.get("X-Missing") == ""
        assert request.has("X-Missing") is False

    def test_body_is_a_stream(self):
        app = Application()
        ctx = app.create_context(make_request("POST", "/", body=b"payload"), ResponseRecorder())

        assert isinstance(ctx.request.body, io.BytesIO)
        assert ctx.request.body.read() == b"payload"
        assert ctx.request.length == 7

    def test_length_absent_or_malformed(self):
        assert request_for().length is None
        assert request_for(headers={"Content-Length": "abc"}).length is None


class TestClientAddress:
    """Tests for ip / ips with and without proxy trust."""

    def test_ip_without_proxy_is_peer(self):
        """Forwarded headers are ignored unless proxy is trusted."""
        request = request_for(headers={"X-Forwarded-For": "1.1.1.1, 2.2.2.2"})

        assert request.ips == []
        assert request.ip == "10.0.0.1"

    def test_ips_with_proxy(self):
        app = Application({"proxy": True})
        request = request_for(app, headers={"X-Forwarded-For": "1.1.1.1, 2.2.2.2 ,3.3.3.3"})

        assert request.ips == ["1.1.1.1", "2.2.2.2", "3.3.3.3"]
        assert request.ip == "1.1.1.1"

    def test_max_ips_count_keeps_last_entries(self):
        app = Application({"proxy": True, "maxIpsCount": 2})
        request = request_for(app, headers={"X-Forwarded-For": "1.1.1.1, 2.2.2.2, 3.3.3.3"})

        assert request.ips == ["2.2.2.2", "3.3.3.3"]
        assert request.ip == "2.2.2.2"

    def test_custom_proxy_ip_header(self):
        app = Application({"proxy": True, "proxyIpHeader": "X-Real-IP"})
        request = request_for(app, headers={"X-Real-IP": "9.9.9.9", "X-Forwarded-For": "1.1.1.1"})

        assert request.ips == ["9.9.9.9"]

    def test_proxy_without_header_falls_back_to_peer(self):
        app = Application({"proxy": True})
        assert request_for(app).ip == "10.0.0.1"


class TestHost:
    """Tests for host, hostname and subdomains."""

    def test_host_and_hostname(self):
        request = request_for(headers={"Host": "example.com:8080"})

        assert request.host == "example.com:8080"
        assert request.hostname == "example.com"

    def test_forwarded_host_needs_proxy(self):
        headers = {"Host": "internal:8080", "X-Forwarded-Host": "public.example.com"}

        assert request_for(headers=headers).hostname == "internal"
        assert request_for(Application({"proxy": True}), headers=headers).hostname == "public.example.com"

    def test_ipv6_hostname(self):
        assert request_for(headers={"Host": "[::1]:3000"}).hostname == "::1"

    def test_missing_host(self):
        request = request_for()
        assert request.host == ""
        assert request.hostname == ""
        assert request.subdomains == []

    def test_subdomains_default_offset(self):
        request = request_for(headers={"Host": "tobi.ferrets.example.com"})
        assert request.subdomains == ["ferrets", "tobi"]

    def test_subdomains_custom_offset(self):
        app = Application({"subdomainOffset": 3})
        request = request_for(app, headers={"Host": "tobi.ferrets.example.co.uk"})
        assert request.subdomains == ["ferrets", "tobi"]

    @pytest.mark.parametrize("host", ["127.0.0.1:8080", "[::1]", "192.168.1.10"])
    def test_ip_hosts_have_no_subdomains(self, host):
        assert request_for(headers={"Host": host}).subdomains == []


class TestBackReferences:
    """Tests for the links between views."""

    def test_views_are_cross_linked(self):
        app = Application()
        ctx = app.create_context(make_request(), ResponseRecorder())

        assert ctx.request.ctx is ctx
        assert ctx.request.app is app
        assert ctx.request.response is ctx.response
        assert ctx.response.request is ctx.request

    def test_unbound_request_uses_default_config(self):
        from pykoa.http import Request

        request = Request(make_request(headers={"X-Forwarded-For": "1.1.1.1"}))
        assert request.config.proxy is False
        assert request.ips == []
