"""
=============================================================================
STATIC FILE HANDLER
=============================================================================

Plugs a StaticPipeline into the middleware chain.

    request ──► StaticFileHandler ──► pipeline.serve(request)
                                          │
            ┌─────────────────────────────┼─────────────────────────────┐
            │ ROUTING_MISS                │ METHOD_NOT_ALLOWED          │ anything else
            ▼                             ▼                             ▼
     return next(request)      downstream = next(request)        return response
                               404 from downstream?
                                 yes → close it, return the 405
                                 no  → return downstream

Every path either returns one response or calls next() exactly once, so
the chain can never hang on this handler.

=============================================================================
SECURITY: PATH TRAVERSAL
=============================================================================

    GET /static/../../../etc/passwd HTTP/1.1

The resolver normalizes the path before joining it onto the root, so
the request above looks up <root>/etc/passwd and gets a plain 404. See
staticserve.static.resolver.

=============================================================================
"""

import logging
from typing import Optional

from ..config import StaticConfig
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus
from ..middleware.base import Middleware, NextHandler
from ..static.pipeline import Outcome, StaticPipeline


logger = logging.getLogger(__name__)


class StaticFileHandler(Middleware):
    """
    Serve files for requests under ``config.router``; pass the rest on.

    Usage:
        pipeline = MiddlewarePipeline()
        pipeline.add(StaticFileHandler(StaticConfig(router="/static", root="public")))
        pipeline.add(StaticFileHandler(StaticConfig(root="site", zip=True)))
        handler = pipeline.wrap(not_found_handler)

    Several handlers can be stacked; each one only answers requests under
    its own router prefix.
    """

    def __init__(self, config: StaticConfig, pipeline: Optional[StaticPipeline] = None):
        self.config = config
        self.pipeline = pipeline or StaticPipeline(config)

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        result = self.pipeline.serve(request)

        if result.outcome is Outcome.ROUTING_MISS:
            return next(request)

        if result.outcome is Outcome.METHOD_NOT_ALLOWED:
            downstream = next(request)
            if downstream.status == HTTPStatus.NOT_FOUND:
                downstream.close()
                return result.response
            logger.debug(
                f"{request.method} {request.path} handled downstream "
                f"({int(downstream.status)}), dropping 405"
            )
            return downstream

        return result.response

    @property
    def name(self) -> str:
        return f"StaticFileHandler({self.config.router or '/'} -> {self.config.root})"
