"""
=============================================================================
CONFIGURATION
=============================================================================

Two dataclasses, one per layer:

    StaticConfig  - what the static pipeline serves and how
                    (router, root, index, methods, cache, etag, zip, ...)
    ServerConfig  - how the host server listens and logs
                    (host, port, workers, timeouts, logging)

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    Priority (highest to lowest):

    1. Command-line arguments
       └── python -m staticserve --root ./public --zip gzip,br

    2. Environment variables
       └── STATIC_ROOT=./public HTTP_PORT=3000 python -m staticserve

    3. Default values (in these dataclasses)

Both classes validate eagerly: call validate() at startup so a typo in
the root directory fails before the first request, not during it.

=============================================================================
"""

import os
from dataclasses import dataclass, field
from typing import Dict, FrozenSet, Iterable, Optional, Tuple, Union

from .static.streams import DEFAULT_CHUNK_SIZE, DEFAULT_COMPRESSION_LEVEL


CachePolicy = Union[bool, int]
ZipPolicy = Union[bool, str, Tuple[str, ...]]

DEFAULT_METHODS = frozenset({"GET", "HEAD"})


@dataclass(frozen=True)
class StaticConfig:
    """
    Configuration for one static pipeline. Immutable once built.

    Values are normalized in __post_init__, so the stored fields are
    always in canonical form:

        StaticConfig(router="/static/", root="./public")
            .router == "/static"
            .root   == "/abs/path/to/public"
    """

    router: str = ""
    """URL prefix served by this pipeline. Trailing slashes are stripped."""

    root: str = "."
    """Directory files are served from. Stored absolute and normalized."""

    index: str = "index.html"
    """File served for paths ending in "/"."""

    methods: FrozenSet[str] = DEFAULT_METHODS
    """Methods answered with files. Others get 405 unless handled downstream."""

    cache: CachePolicy = False
    """False = no cache headers, True = 7200 seconds, N = N seconds."""

    etag: bool = False
    """Send an ETag and honour If-None-Match."""

    zip: ZipPolicy = False
    """
    Compression offered for text files:
    False, True (deflate + gzip), one encoding name, or a list of names.
    """

    charset: str = "utf-8"
    """Charset appended to text Content-Types."""

    headers: Dict[str, str] = field(default_factory=dict)
    """Extra headers added to every file response (CORS, security headers)."""

    chunk_size: int = DEFAULT_CHUNK_SIZE
    """Bytes read from disk per chunk."""

    compression_level: int = DEFAULT_COMPRESSION_LEVEL
    """zlib level / brotli quality."""

    def __post_init__(self):
        # Frozen dataclass: normalize through object.__setattr__
        object.__setattr__(self, "router", self.router.rstrip("/"))
        object.__setattr__(self, "root", os.path.normpath(os.path.abspath(self.root)))
        object.__setattr__(
            self, "methods", frozenset(m.strip().upper() for m in self.methods if m.strip())
        )
        if isinstance(self.zip, list):
            object.__setattr__(self, "zip", tuple(self.zip))
        object.__setattr__(self, "headers", dict(self.headers))

    @classmethod
    def from_env(cls) -> "StaticConfig":
        """
        Create configuration from environment variables.

            STATIC_ROOT     Directory to serve (default: .)
            STATIC_ROUTER   URL prefix (default: "")
            STATIC_INDEX    Index filename (default: index.html)
            STATIC_METHODS  Comma-separated methods (default: GET,HEAD)
            STATIC_ZIP      false | true | gzip | deflate,gzip,br
            STATIC_CACHE    false | true | seconds
            STATIC_ETAG     true | false
        """
        methods = os.getenv("STATIC_METHODS")
        return cls(
            router=os.getenv("STATIC_ROUTER", ""),
            root=os.getenv("STATIC_ROOT", "."),
            index=os.getenv("STATIC_INDEX", "index.html"),
            methods=split_list(methods) if methods else DEFAULT_METHODS,
            cache=parse_cache_option(os.getenv("STATIC_CACHE", "false")),
            etag=parse_bool(os.getenv("STATIC_ETAG", "false")),
            zip=parse_zip_option(os.getenv("STATIC_ZIP", "false")),
        )

    def validate(self) -> None:
        """
        Validate configuration values.

        Raises:
            ValueError: Describing the first invalid value found.
        """
        if self.router and not self.router.startswith("/"):
            raise ValueError(f"router must start with '/': {self.router!r}")

        if not os.path.isdir(self.root):
            raise ValueError(f"root is not a directory: {self.root}")

        if not self.index or "/" in self.index or self.index in (".", ".."):
            raise ValueError(f"index must be a plain filename: {self.index!r}")

        if not self.methods:
            raise ValueError("methods must not be empty")

        if not isinstance(self.cache, bool):
            if not isinstance(self.cache, (int, float)) or self.cache <= 0:
                raise ValueError(f"cache must be a bool or positive seconds: {self.cache!r}")

        if not isinstance(self.zip, (bool, str, tuple)):
            raise ValueError(f"zip must be a bool, a name or a list of names: {self.zip!r}")

        if self.chunk_size < 1:
            raise ValueError("chunk_size must be >= 1")

        if not 0 <= self.compression_level <= 9:
            raise ValueError("compression_level must be between 0 and 9")


@dataclass
class ServerConfig:
    """Configuration for the host HTTP server."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    """
    The IP address to bind to.
    - "127.0.0.1" - Localhost only (development)
    - "0.0.0.0" - All network interfaces
    """

    port: int = 8080
    """Port to listen on. 0 asks the OS for a free port (tests)."""

    backlog: int = 128
    """Maximum number of queued connections."""

    buffer_size: int = 8192
    """Bytes per recv() call while reading the request head."""

    timeout: Optional[float] = 30.0
    """Per-connection socket timeout in seconds."""

    max_request_size: int = 64 * 1024
    """Largest request head accepted (413 beyond this)."""

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    max_workers: int = 16
    """
    Maximum number of worker threads.
    File serving is I/O bound: a few threads per core is reasonable.
    """

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    """Logging level (DEBUG, INFO, WARNING, ERROR, CRITICAL)."""

    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    # ─────────────────────────────────────────────────────────────────────
    # SERVER IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    server_name: str = "staticserve/1.0"
    """Value of the Server header."""

    @classmethod
    def from_env(cls) -> "ServerConfig":
        """
        Create configuration from environment variables.

            HTTP_HOST        Server host (default: 127.0.0.1)
            HTTP_PORT        Server port (default: 8080)
            HTTP_WORKERS     Max worker threads (default: 16)
            HTTP_TIMEOUT     Socket timeout in seconds (default: 30)
            HTTP_LOG_LEVEL   Logging level (default: INFO)
            HTTP_LOG_FORMAT  text | json (default: text)
        """
        return cls(
            host=os.getenv("HTTP_HOST", "127.0.0.1"),
            port=int(os.getenv("HTTP_PORT", "8080")),
            max_workers=int(os.getenv("HTTP_WORKERS", "16")),
            timeout=float(os.getenv("HTTP_TIMEOUT", "30")),
            log_level=os.getenv("HTTP_LOG_LEVEL", "INFO"),
            log_format=os.getenv("HTTP_LOG_FORMAT", "text"),
        )

    def validate(self) -> None:
        """Fail fast on invalid values."""
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be positive")

        if self.log_level.upper() not in ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"):
            raise ValueError(f"Invalid log_level: {self.log_level}")

        if self.log_format not in ("text", "json"):
            raise ValueError(f"Invalid log_format: {self.log_format}")


# =============================================================================
# OPTION PARSING (shared by from_env() and the CLI)
# =============================================================================

_TRUE = {"1", "true", "yes", "on"}
_FALSE = {"0", "false", "no", "off", ""}


def parse_bool(value: str) -> bool:
    """Parse "true"/"false"/"1"/"0"/"yes"/"no"/"on"/"off"."""
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"Expected a boolean, got {value!r}")


def split_list(value: str) -> Tuple[str, ...]:
    return tuple(item.strip() for item in value.split(",") if item.strip())


def parse_cache_option(value: str) -> CachePolicy:
    """Parse the cache option: a boolean word or a number of seconds."""
    text = value.strip().lower()
    if text in _TRUE or text in _FALSE:
        return parse_bool(text)
    if text.isdigit():
        return int(text)
    raise ValueError(f"Expected a boolean or seconds, got {value!r}")


def parse_zip_option(value: str) -> ZipPolicy:
    """Parse the zip option: a boolean word, one encoding, or a comma list."""
    lowered = value.strip().lower()
    if lowered in _TRUE or lowered in _FALSE:
        return parse_bool(lowered)
    names = split_list(lowered)
    return names[0] if len(names) == 1 else names


def parse_header_option(values: Iterable[str]) -> Dict[str, str]:
    """Parse repeated "Name: value" strings into a header dict."""
    headers = {}
    for item in values:
        name, sep, value = item.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Expected 'Name: value', got {item!r}")
        headers[name.strip()] = value.strip()
    return headers
