"""
=============================================================================
HTTP RESPONSE MODEL AND STREAMING SERIALIZATION
=============================================================================

A response is written in two parts: the head (status line + headers),
then the body, which is either a small in-memory bytes value or a
ByteStream drained chunk by chunk.

    HTTPResponse(status, headers, body | stream)
          │
          ├── head_bytes() ──► b"HTTP/1.1 206 Partial Content\\r\\n"
          │                    b"Content-Range: bytes 0-1023/4096\\r\\n"
          │                    b"...\\r\\n\\r\\n"
          │
          └── iter_body() ───► chunk, chunk, chunk ...
                                 │
                                 └─ Transfer-Encoding: chunked?
                                    "<hex-len>\\r\\n<chunk>\\r\\n" ... "0\\r\\n\\r\\n"

=============================================================================
CONTENT-LENGTH RULES
=============================================================================

    ┌──────────────────────────────────┬────────────────────────────────┐
    │ Response                         │ Content-Length added?          │
    ├──────────────────────────────────┼────────────────────────────────┤
    │ bytes body                       │ yes, len(body)                 │
    │ stream body                      │ only if the producer set it    │
    │ Transfer-Encoding: chunked       │ never (RFC 7230 3.3.2)         │
    │ 204 / 304                        │ never                          │
    └──────────────────────────────────┴────────────────────────────────┘

Header names are kept in the case they were set. Lookups through
get_header() / has_header() are case-insensitive.

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional, Dict, Any, Iterator
import json

from .status_codes import HTTPStatus
from ..static.streams import ByteStream


DEFAULT_SERVER_NAME = "staticserve/1.0"


@dataclass
class HTTPResponse:
    """
    An HTTP response waiting to be written to a client.

    The response owns its stream until the transport has drained it.
    Whoever ends up holding the response must call close(), even when
    the body is never sent (HEAD, client went away).
    """

    status: HTTPStatus = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    stream: Optional[ByteStream] = None
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """Example: "HTTP/1.1 304 Not Modified"."""
        return f"{self.version} {int(self.status)} {self.status.phrase}"

    @property
    def is_chunked(self) -> bool:
        return (self.get_header("Transfer-Encoding") or "").lower() == "chunked"

    # =========================================================================
    # HEADERS
    # =========================================================================

    def _find_header(self, name: str) -> Optional[str]:
        lowered = name.lower()
        for key in self.headers:
            if key.lower() == lowered:
                return key
        return None

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Case-insensitive header lookup."""
        key = self._find_header(name)
        return self.headers[key] if key is not None else default

    def has_header(self, name: str) -> bool:
        return self._find_header(name) is not None

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Set a header, replacing any existing one regardless of case."""
        key = self._find_header(name)
        if key is not None:
            del self.headers[key]
        self.headers[name] = value
        return self

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def head_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """
        Serialize the status line and headers, including the blank line.

        Date, Server and (when the rules above allow it) Content-Length
        are added if the producer did not set them.
        """
        response_headers = dict(self.headers)

        if (
            self.stream is None
            and self.status.allows_body
            and not self.is_chunked
            and not self.has_header("Content-Length")
        ):
            response_headers["Content-Length"] = str(len(self.body))

        if not self.has_header("Date"):
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))

        if not self.has_header("Server"):
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        return "\r\n".join(lines).encode("latin-1") + b"\r\n"

    def iter_body(self) -> Iterator[bytes]:
        """
        Yield the body as it should appear on the wire.

        When Transfer-Encoding is chunked every piece is framed and the
        terminating zero-length chunk is emitted at the end.
        """
        if not self.status.allows_body:
            return

        chunked = self.is_chunked
        for chunk in self._raw_chunks():
            if not chunk:
                continue
            if chunked:
                yield f"{len(chunk):x}\r\n".encode("ascii") + chunk + b"\r\n"
            else:
                yield chunk
        if chunked:
            yield b"0\r\n\r\n"

    def _raw_chunks(self) -> Iterator[bytes]:
        if self.stream is not None:
            yield from self.stream
        elif self.body:
            yield self.body

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME) -> bytes:
        """Serialize the complete response (drains and closes the stream)."""
        try:
            return self.head_bytes(server_name) + b"".join(self.iter_body())
        finally:
            self.close()

    def close(self) -> None:
        """Release the body stream, if any. Safe to call more than once."""
        if self.stream is not None:
            self.stream.close()


class ResponseBuilder:
    """
    Fluent builder for HTTP responses.

        response = (ResponseBuilder()
            .status(HTTPStatus.MOVED_PERMANENTLY)
            .header("Location", "/docs/")
            .build())

    Every method except build() returns self.
    """

    def __init__(self):
        self._status = HTTPStatus.OK
        self._headers: Dict[str, str] = {}
        self._body: bytes = b""

    def status(self, status: HTTPStatus) -> "ResponseBuilder":
        self._status = status
        return self

    def header(self, name: str, value: str) -> "ResponseBuilder":
        self._headers[name] = value
        return self

    def json(self, data: Any) -> "ResponseBuilder":
        """Serialize ``data`` as the JSON body and set Content-Type."""
        self._body = json.dumps(data, ensure_ascii=False).encode("utf-8")
        self._headers["Content-Type"] = "application/json; charset=utf-8"
        return self

    def redirect(self, location: str, permanent: bool = False) -> "ResponseBuilder":
        """301 when ``permanent`` else 302, with a Location header."""
        self._status = HTTPStatus.MOVED_PERMANENTLY if permanent else HTTPStatus.FOUND
        self._headers["Location"] = location
        return self

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers,
            body=self._body,
        )


# =============================================================================
# UTILITY FUNCTIONS
# =============================================================================

def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231 IMF-fixdate).

    Example: Wed, 01 Jan 2026 12:00:00 GMT

    HTTP dates are always GMT. Aware datetimes are converted to UTC,
    naive ones are taken to be UTC already.
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)

    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def format_timestamp(timestamp: float) -> str:
    """Format a POSIX timestamp as an HTTP-date."""
    return format_http_date(datetime.fromtimestamp(timestamp, tz=timezone.utc))


# =============================================================================
# CONVENIENCE FUNCTIONS
# =============================================================================

def status_only(status: HTTPStatus) -> HTTPResponse:
    """A response with no body (Content-Length: 0 where a body is allowed)."""
    return HTTPResponse(status=status)


def redirect(location: str, permanent: bool = False) -> HTTPResponse:
    return ResponseBuilder().redirect(location, permanent).build()


def not_found(message: str = "Not Found") -> HTTPResponse:
    return ResponseBuilder().status(HTTPStatus.NOT_FOUND).json({"error": message}).build()


def method_not_allowed(allowed_methods: list[str]) -> HTTPResponse:
    """405 with the Allow header required by RFC 7231 section 6.5.5."""
    return (ResponseBuilder()
        .status(HTTPStatus.METHOD_NOT_ALLOWED)
        .header("Allow", ", ".join(allowed_methods))
        .json({"error": "Method Not Allowed", "allowed": allowed_methods})
        .build())


def error_response(status: HTTPStatus, message: Optional[str] = None) -> HTTPResponse:
    """Any error status with a small JSON body."""
    return ResponseBuilder().status(status).json({"error": message or status.phrase}).build()


def internal_error(message: str = "Internal Server Error") -> HTTPResponse:
    return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, message)
