"""
=============================================================================
REQUEST VIEW
=============================================================================

A read-mostly wrapper around the request the transport parsed. Middleware
never sees raw sockets or parser output directly; it sees this.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         REQUEST VIEW                                │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Transport request ───────►  Request                                │
    │     method                      .method                              │
    │     url                         .url / .path / .query               │
    │     headers (HeaderStore)       .get(name) / .headers               │
    │     body (byte stream)          .body                                │
    │     remote_address              .ip / .ips (proxy aware)            │
    │                                 .host / .hostname / .subdomains     │
    │                                                                      │
    │   Back-references (non-owning, lookups only):                       │
    │     .response   the Response view of the same exchange              │
    │     .ctx        the owning Context                                  │
    │     .app        the Application (for its configuration)             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PROXY AWARENESS
=============================================================================

Behind a reverse proxy, the socket peer is the proxy, not the client.
Proxies append the real client address to a header:

    X-Forwarded-For: client, proxy1, proxy2

These fields are only trusted when ApplicationConfig.proxy is True;
otherwise anyone could claim any address. max_ips_count keeps only the
LAST n entries (the ones added by proxies you control), which limits
how much of a spoofed prefix gets through.

=============================================================================
"""

from typing import TYPE_CHECKING, BinaryIO, Dict, List, Optional, Union
from urllib.parse import parse_qs, urlsplit
import ipaddress

from ..config import ApplicationConfig
from .headers import HeaderStore

if TYPE_CHECKING:
    from ..application import Application
    from ..context import Context
    from ..transport.base import TransportRequest
    from .response import Response


class Request:
    """
    Request view bound to one exchange.

    Created empty by the application, then bound to the transport request
    (``req``) and to its sibling views before any middleware runs.
    """

    def __init__(self, req: Optional["TransportRequest"] = None):
        self.req = req
        self.response: Optional["Response"] = None
        self.ctx: Optional["Context"] = None
        self.app: Optional["Application"] = None

    @property
    def config(self) -> ApplicationConfig:
        """Configuration of the owning application (defaults when unbound)."""
        if self.app is not None:
            return self.app.config
        return ApplicationConfig()

    # =========================================================================
    # REQUEST LINE
    # =========================================================================

    @property
    def method(self) -> str:
        return self.req.method

    def get_method(self) -> str:
        """Return the HTTP request method."""
        return self.method

    @property
    def url(self) -> str:
        """Request target as sent by the client ("/path?query")."""
        return self.req.url

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def querystring(self) -> str:
        return urlsplit(self.url).query

    @property
    def query(self) -> Dict[str, Union[str, List[str]]]:
        """
        Parsed query string.

        Single values come back as plain strings, repeated keys as lists:
            "?page=1&tag=a&tag=b" → {"page": "1", "tag": ["a", "b"]}
        """
        parsed = parse_qs(self.querystring, keep_blank_values=True)
        return {key: values[0] if len(values) == 1 else values for key, values in parsed.items()}

    # =========================================================================
    # HEADERS AND BODY
    # =========================================================================

    @property
    def headers(self) -> HeaderStore:
        return self.req.headers

    def get(self, name: str) -> str:
        """Get a request header, "" when absent."""
        value = self.req.headers.get(name)
        return value if value is not None else ""

    def has(self, name: str) -> bool:
        return self.req.headers.has(name)

    @property
    def body(self) -> BinaryIO:
        """Readable byte stream of the request body."""
        return self.req.body

    @property
    def length(self) -> Optional[int]:
        """Request Content-Length, or None when absent or malformed."""
        value = self.get("Content-Length")
        if not value:
            return None
        try:
            return int(value)
        except ValueError:
            return None

    @property
    def type(self) -> str:
        """Request Content-Type without parameters ("application/json")."""
        return self.get("Content-Type").split(";")[0].strip().lower()

    # =========================================================================
    # CLIENT ADDRESS
    # =========================================================================

    @property
    def ips(self) -> List[str]:
        """
        Client address chain from the proxy header, when proxies are trusted.

        Returns [] when ApplicationConfig.proxy is False or the header is
        missing. With max_ips_count > 0 only the last max_ips_count entries
        are kept.
        """
        config = self.config
        if not config.proxy:
            return []

        value = self.get(config.proxy_ip_header)
        if not value:
            return []

        ips = [part.strip() for part in value.split(",") if part.strip()]
        if config.max_ips_count > 0:
            ips = ips[-config.max_ips_count:]
        return ips

    @property
    def ip(self) -> str:
        """Best guess at the client address: first proxy entry, else the peer."""
        ips = self.ips
        if ips:
            return ips[0]
        address = getattr(self.req, "remote_address", None)
        return address[0] if address else ""

    # =========================================================================
    # HOST
    # =========================================================================

    @property
    def host(self) -> str:
        """
        Host header including port ("example.com:8080").

        Honors X-Forwarded-Host (first entry) when proxies are trusted.
        """
        host = ""
        if self.config.proxy:
            host = self.get("X-Forwarded-Host")
        if not host:
            host = self.get("Host")
        return host.split(",")[0].strip()

    @property
    def hostname(self) -> str:
        """Host without the port. IPv6 literals keep their brackets stripped."""
        host = self.host
        if not host:
            return ""
        if host.startswith("["):
            # "[::1]:8080" → "::1"
            return host[1:].split("]", 1)[0]
        return host.split(":", 1)[0]

    @property
    def subdomains(self) -> List[str]:
        """
        Subdomain labels, most significant first.

        With the default subdomain_offset of 2, "tobi.ferrets.example.com"
        gives ["ferrets", "tobi"]: the last two labels (the registrable
        domain) are dropped and the rest reversed. IP hosts have none.
        """
        hostname = self.hostname
        if not hostname or _is_ip(hostname):
            return []
        labels = list(reversed(hostname.split(".")))
        return labels[self.config.subdomain_offset:]

    def __repr__(self) -> str:
        if self.req is None:
            return "Request(unbound)"
        return f"Request({self.method} {self.url})"


def _is_ip(value: str) -> bool:
    try:
        ipaddress.ip_address(value)
    except ValueError:
        return False
    return True
