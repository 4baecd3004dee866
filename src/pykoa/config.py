"""
=============================================================================
CONFIGURATION
=============================================================================

Two configuration objects, resolved once and never mutated while serving:

    ApplicationConfig   Options of the Application itself
                        (env, keys, proxy trust, subdomain offset, ...)

    ServerConfig        Settings of the bundled socket transport
                        (host, port, workers, timeouts, log level)

Both are plain dataclasses passed explicitly at construction. There is no
process-wide default object anyone could mutate behind your back.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Explicit values in code                                        │
    │      └── Application({"proxy": True})                              │
    │                                                                      │
    │   2. Command-line arguments (python -m pykoa --port 3000)           │
    │                                                                      │
    │   3. Environment variables                                          │
    │      └── PYKOA_ENV=production, PYKOA_PORT=3000                     │
    │                                                                      │
    │   4. Defaults in the dataclasses below                              │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
FAIL FAST
=============================================================================

A value of the wrong kind for a known option (proxy="yes", keys="secret")
raises ConfigurationTypeMismatch when the Application is constructed,
never in the middle of handling a request.

=============================================================================
"""

import logging
import os
from dataclasses import dataclass, field
from typing import Any, List, Mapping, Optional

from .errors import ConfigurationTypeMismatch


logger = logging.getLogger(__name__)


ENV_VARIABLE = "PYKOA_ENV"
DEFAULT_ENV = "development"


def _default_env() -> str:
    return os.environ.get(ENV_VARIABLE, DEFAULT_ENV)


@dataclass
class ApplicationConfig:
    """
    Options of an Application.

    =========================================================================
    OPTIONS
    =========================================================================

        env              Deployment environment. Defaults to $PYKOA_ENV,
                         else "development".
        keys             Signing keys, newest first. Default [].
        proxy            Trust X-Forwarded-* headers. Default False.
        subdomain_offset Number of trailing host labels that are NOT
                         subdomains. Default 2 ("example.com").
        proxy_ip_header  Header carrying the client address chain.
                         Default "X-Forwarded-For".
        max_ips_count    Keep at most this many (trailing) entries from
                         proxy_ip_header. Default 0 = unlimited.

    =========================================================================
    """

    env: str = field(default_factory=_default_env)
    keys: List[str] = field(default_factory=list)
    proxy: bool = False
    subdomain_offset: int = 2
    proxy_ip_header: str = "X-Forwarded-For"
    max_ips_count: int = 0

    # Option names accepted by from_mapping(). The camelCase spellings are
    # the documented ones; snake_case works too.
    ALIASES = {
        "env": "env",
        "keys": "keys",
        "proxy": "proxy",
        "subdomainOffset": "subdomain_offset",
        "subdomain_offset": "subdomain_offset",
        "proxyIpHeader": "proxy_ip_header",
        "proxy_ip_header": "proxy_ip_header",
        "maxIpsCount": "max_ips_count",
        "max_ips_count": "max_ips_count",
    }

    @classmethod
    def from_mapping(cls, options: Optional[Mapping[str, Any]]) -> "ApplicationConfig":
        """
        Build a config from a mapping of option names.

        Missing options take their defaults. Unknown names are ignored
        (with a warning) so typos are visible without being fatal.

        Raises:
            ConfigurationTypeMismatch: A known option has a wrong-kind value.
        """
        kwargs = {}
        for name, value in (options or {}).items():
            attr = cls.ALIASES.get(name)
            if attr is None:
                logger.warning(f"Ignoring unknown application option: {name!r}")
                continue
            kwargs[attr] = value

        config = cls(**kwargs)
        config.validate()
        return config

    def validate(self) -> None:
        """
        Check every option has the right kind of value.

        bool is a subclass of int in Python, so proxy=1 and
        subdomain_offset=True are both rejected explicitly.
        """
        _expect_str("env", self.env)
        _expect_str("proxy_ip_header", self.proxy_ip_header)

        if not isinstance(self.keys, (list, tuple)) or not all(isinstance(k, str) for k in self.keys):
            raise ConfigurationTypeMismatch("keys", "a list of str", self.keys)
        self.keys = list(self.keys)

        if not isinstance(self.proxy, bool):
            raise ConfigurationTypeMismatch("proxy", "bool", self.proxy)

        _expect_int("subdomain_offset", self.subdomain_offset)
        _expect_int("max_ips_count", self.max_ips_count)


def _expect_str(option: str, value: Any) -> None:
    if not isinstance(value, str):
        raise ConfigurationTypeMismatch(option, "str", value)


def _expect_int(option: str, value: Any) -> None:
    if isinstance(value, bool) or not isinstance(value, int):
        raise ConfigurationTypeMismatch(option, "int", value)


@dataclass
class ServerConfig:
    """
    Settings of the bundled socket transport.

    =========================================================================
    PRODUCTION VS DEVELOPMENT
    =========================================================================

    Development:
        ServerConfig(
            host="127.0.0.1",    # Localhost only
            port=8080,
            log_level="DEBUG",
        )

    Production:
        ServerConfig(
            host="0.0.0.0",      # All interfaces (containers)
            port=80,
            log_level="INFO",
            max_workers=32,
        )

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    port: int = 8080

    backlog: int = 128
    """Maximum number of queued, not yet accepted connections."""

    buffer_size: int = 8192
    """Bytes requested per recv() call."""

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds for reading a request."""

    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    """Hard ceiling on buffered request bytes; beyond it the request is refused."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = 4
    max_workers: int = 16

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    server_name: str = "pykoa"

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

            PYKOA_HOST       Server host (default: 127.0.0.1)
            PYKOA_PORT       Server port (default: 8080)
            PYKOA_WORKERS    Max worker threads (default: 16)
            PYKOA_TIMEOUT    Request read timeout in seconds (default: 30)
            PYKOA_LOG_LEVEL  Logging level (default: INFO)
        """
        return cls(
            host=os.getenv("PYKOA_HOST", "127.0.0.1"),
            port=int(os.getenv("PYKOA_PORT", "8080")),
            max_workers=int(os.getenv("PYKOA_WORKERS", "16")),
            timeout=float(os.getenv("PYKOA_TIMEOUT", "30")),
            log_level=os.getenv("PYKOA_LOG_LEVEL", "INFO"),
        )

    def validate(self) -> None:
        """Reject impossible values at startup rather than at first use."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.min_workers < 1:
            raise ValueError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ValueError("max_workers must be >= min_workers")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
