"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One log line per request on the "staticserve.access" logger.

    TEXT (Apache-like):
    ┌─────────────────────────────────────────────────────────────────────┐
    │ 127.0.0.1 - - [10/Jun/2026:10:55:36 +0000] "GET /app.js" 206 1024 0.41ms│
    │ IP            Timestamp                   Method/Path  Status Size Time │
    └─────────────────────────────────────────────────────────────────────┘

    JSON (for log aggregators):
    {"request_id": "a1b2c3d4", "method": "GET", "path": "/app.js",
     "status_code": 206, "content_length": 1024, "encoding": null, ...}

=============================================================================
STREAMED BODIES
=============================================================================

The line is written when the handler returns, which is before the body
stream is drained. The size logged is the Content-Length header, or "-"
when the length is not known up front (compressed, chunked responses).
Time is time-to-headers, not time-to-last-byte.

=============================================================================
"""

import time
import json
import uuid
import logging
from typing import Optional
from dataclasses import dataclass

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


# Configure separately from module loggers, e.g.
#   logging.getLogger("staticserve.access").addHandler(file_handler)
logger = logging.getLogger("staticserve.access")


@dataclass
class RequestLog:
    """Structured access log entry."""

    request_id: str
    method: str
    path: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: Optional[int]
    encoding: Optional[str]
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        return {
            "request_id": self.request_id,
            "method": self.method,
            "path": self.path,
            "client_ip": self.client_ip,
            "user_agent": self.user_agent,
            "status_code": self.status_code,
            "content_length": self.content_length,
            "encoding": self.encoding,
            "duration_ms": round(self.duration_ms, 2),
            "timestamp": self.timestamp,
        }

    def to_text(self) -> str:
        size = "-" if self.content_length is None else str(self.content_length)
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {self.path}" {self.status_code} '
            f'{size} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Access logging middleware. Add it first so it sees every request:

        pipeline.add(LoggingMiddleware(log_format="json"))
        pipeline.add(StaticFileHandler(config))
    """

    def __init__(
        self,
        log_format: str = "text",
        include_request_id: bool = True,
        log_level: int = logging.INFO,
        skip_paths: Optional[list[str]] = None,
    ):
        """
        Args:
            log_format: "text" or "json".
            include_request_id: Add an X-Request-ID header to the response.
            log_level: Level used for access lines.
            skip_paths: Paths that are never logged (e.g. ["/favicon.ico"]).
        """
        self.log_format = log_format
        self.include_request_id = include_request_id
        self.log_level = log_level
        self.skip_paths = set(skip_paths or [])

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.time()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.time() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.path} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.time() - start_time) * 1000

        if self.include_request_id:
            response.set_header("X-Request-ID", request_id)

        if request.path in self.skip_paths:
            return response

        log_entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=_content_length(response),
            encoding=response.get_header("Content-Encoding"),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

        return response


def _content_length(response: HTTPResponse) -> Optional[int]:
    """Bytes the body will have, when known before sending."""
    header = response.get_header("Content-Length")
    if header is not None:
        try:
            return int(header)
        except ValueError:
            return None
    if response.stream is None and not response.is_chunked:
        return len(response.body)
    return None
