"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses the header section of an HTTP/1.1 request into an HTTPRequest.
Implements the parts of RFC 7230 a static file server needs.

    ┌─ REQUEST LINE ───────────────────────────────────────────────────┐
    │    GET /static/caf%C3%A9.css?v=3 HTTP/1.1\r\n                    │
    │    ─┬─ ──────────┬───────────────── ────┬───                     │
    │   Method        URI                  Version                     │
    │                  │                                               │
    │        ┌─────────┴──────────────┐                                │
    │     raw_path                 query (dropped)                     │
    │  /static/caf%C3%A9.css        v=3                                │
    │        │                                                         │
    │     unquote()                                                    │
    │        ▼                                                         │
    │      path = /static/café.css                                     │
    ├─ HEADERS ────────────────────────────────────────────────────────┤
    │    Host: example.com\r\n                                         │
    │    Range: bytes=0-1023\r\n                                       │
    │    Accept-Encoding: br, gzip;q=0.8\r\n                           │
    │    If-None-Match: "1f4-18c2a9e1b40"\r\n                          │
    ├─ EMPTY LINE ─────────────────────────────────────────────────────┤
    │    \r\n                                                          │
    └──────────────────────────────────────────────────────────────────┘

=============================================================================
PATH HANDLING
=============================================================================

Two forms of the path are kept:

    path      - percent-decoded, used to find the file on disk
    raw_path  - exactly as sent, used to build redirect Locations

The parser does NOT reject ".." segments. Containment is the static
resolver's job: it normalizes the path and checks the result against the
root directory, which also catches encoded forms such as %2e%2e.

=============================================================================
"""

from dataclasses import dataclass, field
from typing import Optional, Dict
from urllib.parse import urlparse, unquote
import re


class HTTPParseError(Exception):
    """
    Raised when HTTP request parsing fails.

    Carries the HTTP status code to send back:

        400 Bad Request                - Malformed request syntax
        405 Method Not Allowed         - Unknown method token
        413 Payload Too Large          - Request exceeds size limit
        505 HTTP Version Not Supported - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass
class HTTPRequest:
    """
    A parsed HTTP request.

    Attributes:
        method: Request method, upper case ("GET", "HEAD", ...).
        path: Percent-decoded path without the query string.
        raw_path: Path exactly as it appeared on the request line.
        version: "HTTP/1.1" or "HTTP/1.0".
        headers: Header name (lower case) to value.
        body: Request body bytes (static serving ignores it).
        client_address: (ip, port) of the client.
    """

    method: str
    path: str
    raw_path: str = ""
    version: str = "HTTP/1.1"

    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    client_address: tuple[str, int] = ("", 0)

    def __post_init__(self):
        if not self.raw_path:
            self.raw_path = self.path

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a header value (case-insensitive lookup).

        Returns ``default`` (None unless given) when the header is absent,
        so callers can tell "missing" apart from "present but empty".
        """
        return self.headers.get(name.lower(), default)


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

        Raw Request Bytes
              │
              ▼
        1. Size check ─────────────── too large?  → HTTPParseError(413)
        2. Find \\r\\n\\r\\n ─────────── missing?    → HTTPParseError(400)
        3. Request line ────────────── invalid?    → HTTPParseError(400/405/505)
        4. Headers (lower-cased names, repeated headers joined with ", ")
        5. Body, bounded by Content-Length
              │
              ▼
        HTTPRequest
    """

    VALID_METHODS = {
        "GET",
        "POST",
        "PUT",
        "DELETE",
        "PATCH",
        "HEAD",
        "OPTIONS",
        "TRACE",
        "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")

    def __init__(self, max_request_size: int = 64 * 1024):
        """
        Args:
            max_request_size: Maximum accepted request size in bytes.
                A file server only needs the header section, so the
                default is much lower than for an API server.
        """
        self.max_request_size = max_request_size

    def parse(
        self,
        data: bytes,
        client_address: tuple[str, int] = ("", 0)
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        if len(data) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(data)} bytes",
                status_code=413
            )

        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        header_section = data[:header_end].decode("utf-8", errors="replace")
        body = data[header_end + 4:]

        lines = header_section.split("\r\n")
        method, path, raw_path, version = self._parse_request_line(lines[0])
        headers = self._parse_headers(lines[1:])

        try:
            content_length = int(headers.get("content-length", 0))
        except ValueError:
            raise HTTPParseError("Invalid Content-Length header")
        body = body[:content_length]

        return HTTPRequest(
            method=method,
            path=path,
            raw_path=raw_path,
            version=version,
            headers=headers,
            body=body,
            client_address=client_address,
        )

    def _parse_request_line(
        self,
        line: str
    ) -> tuple[str, str, str, str]:
        """
        Parse "METHOD SP REQUEST-URI SP HTTP-VERSION".

        Returns:
            Tuple of (method, path, raw_path, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line}")

        method, uri, version = match.groups()

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}", status_code=405)

        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(
                f"Unsupported HTTP version: {version}",
                status_code=505
            )

        parsed = urlparse(uri)
        raw_path = parsed.path or "/"
        if not raw_path.startswith("/"):
            raise HTTPParseError(f"Invalid request target: {uri}")

        path = unquote(raw_path)

        return method, path, raw_path, version

    def _parse_headers(self, lines: list[str]) -> Dict[str, str]:
        """
        Parse header lines into a dictionary with lower-case names.

        Obsolete line folding (a line starting with whitespace) continues
        the previous header. Repeated headers are combined with ", ".
        """
        headers: Dict[str, str] = {}
        current_name = None

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if current_name is not None:
                    headers[current_name] += " " + line.strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue  # lenient

            name, value = match.groups()
            name = name.strip().lower()
            value = value.strip()
            current_name = name

            if name in headers:
                headers[name] += ", " + value
            else:
                headers[name] = value

        return headers


def parse_request(
    data: bytes,
    client_address: tuple[str, int] = ("", 0),
    max_size: int = 64 * 1024
) -> HTTPRequest:
    """Parse an HTTP request with a one-off RequestParser."""
    parser = RequestParser(max_request_size=max_size)
    return parser.parse(data, client_address)
