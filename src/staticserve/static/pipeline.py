"""
=============================================================================
STATIC FILE PIPELINE
=============================================================================

Turns one request into one StaticResult. No I/O happens here beyond a
stat() call: the body is a lazy stream the transport drains later.

    request
       │
       ▼
    RouterCheck ── outside prefix ──────────────► ROUTING_MISS (no response)
       │
    MethodCheck ── not allowed ─────────────────► METHOD_NOT_ALLOWED   405
       │
    PathResolve ── escapes root ────────────────► NOT_FOUND            404
       │
    Stat ───────── error ───────────────────────► NOT_FOUND            404
       ├── directory ───────────────────────────► REDIRECT_REQUIRED    301
       ├── other ───────────────────────────────► NOT_A_FILE_OR_DIRECTORY 400
       │
       ▼ file
    CacheCheck ─── client copy fresh ───────────► CACHE_HIT            304
       │
    RangeCheck ─── no usable range ─────────────► RANGE_UNSATISFIABLE  416
       ├── range ───────────────────────────────► PARTIAL_CONTENT      206
       └── no Range header ─────────────────────► OK                   200
                                                    │
                                         BodyNegotiator may wrap the
                                         stream in a compressor

Only 200 and 206 carry a stream; every other branch answers without
opening the file.

=============================================================================
"""

import logging
import os
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Dict, Optional
from urllib.parse import quote

from ..config import StaticConfig
from ..http.mime_types import build_content_type
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, method_not_allowed, redirect, status_only
from ..http.status_codes import HTTPStatus
from .cache import evaluate_cache
from .encoding import negotiate, parse_accept_encoding
from .filesystem import LocalFileSystem
from .ranges import RangeKind, parse_range
from .resolver import ResolutionKind, resolve_path


logger = logging.getLogger(__name__)

# Characters left as-is when a raw path is echoed into Location
LOCATION_SAFE = "/%:@!$&'()*+,;=-._~"


class Outcome(Enum):
    """How the pipeline answered a request."""

    ROUTING_MISS = "routing_miss"
    METHOD_NOT_ALLOWED = "method_not_allowed"
    NOT_FOUND = "not_found"
    NOT_A_FILE_OR_DIRECTORY = "not_a_file_or_directory"
    REDIRECT_REQUIRED = "redirect_required"
    CACHE_HIT = "cache_hit"
    RANGE_UNSATISFIABLE = "range_unsatisfiable"
    PARTIAL_CONTENT = "partial_content"
    OK = "ok"


@dataclass
class StaticResult:
    """
    The pipeline's answer to one request.

    ``response`` is None only for ROUTING_MISS. Whoever receives a
    response owns its stream and must close it.
    """

    outcome: Outcome
    response: Optional[HTTPResponse] = None

    @property
    def handled(self) -> bool:
        return self.outcome is not Outcome.ROUTING_MISS


class StaticPipeline:
    """
    Serve files below ``config.root`` for requests under ``config.router``.

    Args:
        config: Immutable configuration, shared by every request.
        filesystem: Object providing stat() and open_read();
            defaults to the local disk.
        clock: Returns the current POSIX time (Date / Expires headers).

    Example:
        pipeline = StaticPipeline(StaticConfig(root="public", cache=True))
        result = pipeline.serve(request)
    """

    def __init__(
        self,
        config: StaticConfig,
        filesystem=None,
        clock: Callable[[], float] = time.time,
    ):
        self.config = config
        self.filesystem = filesystem or LocalFileSystem(chunk_size=config.chunk_size)
        self.clock = clock

    def serve(self, request: HTTPRequest) -> StaticResult:
        """Run the request through the pipeline. Never raises for I/O errors."""
        config = self.config
        resolution = resolve_path(request.path, config)

        if resolution.kind is ResolutionKind.OUTSIDE_ROUTER:
            return StaticResult(Outcome.ROUTING_MISS)

        if request.method not in config.methods:
            logger.debug(f"{request.method} not allowed for {request.path}")
            return StaticResult(
                Outcome.METHOD_NOT_ALLOWED,
                method_not_allowed(sorted(config.methods)),
            )

        if resolution.kind is ResolutionKind.OUTSIDE_ROOT:
            return StaticResult(Outcome.NOT_FOUND, status_only(HTTPStatus.NOT_FOUND))

        candidate = resolution.candidate
        try:
            metadata = self.filesystem.stat(candidate)
        except (OSError, ValueError) as e:
            logger.debug(f"stat failed for {candidate}: {e}")
            return StaticResult(Outcome.NOT_FOUND, status_only(HTTPStatus.NOT_FOUND))

        if metadata.is_directory:
            location = quote(request.raw_path, safe=LOCATION_SAFE) + "/"
            logger.debug(f"Directory {candidate}, redirecting to {location}")
            return StaticResult(
                Outcome.REDIRECT_REQUIRED, redirect(location, permanent=True)
            )

        if not metadata.is_file:
            logger.debug(f"Not a regular file: {candidate}")
            return StaticResult(
                Outcome.NOT_A_FILE_OR_DIRECTORY,
                status_only(HTTPStatus.BAD_REQUEST),
            )

        return self._serve_file(request, candidate, metadata)

    def _serve_file(self, request: HTTPRequest, path: str, metadata) -> StaticResult:
        config = self.config

        cache = evaluate_cache(
            metadata, config, request.headers, request.method, self.clock()
        )
        headers: Dict[str, str] = dict(config.headers)
        headers.update(cache.headers)

        if cache.is_valid:
            logger.debug(f"Cache hit for {path}")
            return StaticResult(
                Outcome.CACHE_HIT,
                HTTPResponse(status=HTTPStatus.NOT_MODIFIED, headers=headers),
            )

        headers["Content-Type"] = build_content_type(path, config.charset)
        range_result = parse_range(request.get_header("range"), metadata.size)

        if range_result.kind is RangeKind.UNSATISFIABLE:
            logger.debug(f"Unsatisfiable range {request.get_header('range')!r} for {path}")
            headers["Content-Range"] = f"{range_result.unit} */{metadata.size}"
            return StaticResult(
                Outcome.RANGE_UNSATISFIABLE,
                HTTPResponse(status=HTTPStatus.RANGE_NOT_SATISFIABLE, headers=headers),
            )

        if range_result.is_satisfiable:
            spec = range_result.spec
            chosen = spec.first
            stream = self.filesystem.open_read(path, chosen.start, chosen.end)
            status = HTTPStatus.PARTIAL_CONTENT
            outcome = Outcome.PARTIAL_CONTENT
            headers["Accept-Ranges"] = spec.unit
            headers["Content-Range"] = spec.content_range
            headers["Content-Length"] = str(spec.content_length)
        else:
            stream = self.filesystem.open_read(path, 0, metadata.size - 1)
            status = HTTPStatus.OK
            outcome = Outcome.OK
            headers["Content-Length"] = str(metadata.size)

        negotiation = negotiate(
            stream,
            os.path.splitext(path)[1],
            parse_accept_encoding(request.get_header("accept-encoding")),
            config.zip,
            level=config.compression_level,
        )
        if negotiation.drops_content_length:
            del headers["Content-Length"]
        headers.update(negotiation.headers)

        logger.debug(
            f"{status.value} {path} ({outcome.value}, "
            f"encoding={negotiation.decision.encoding or 'identity'})"
        )
        return StaticResult(
            outcome,
            HTTPResponse(status=status, headers=headers, stream=negotiation.stream),
        )
