"""
=============================================================================
STATICSERVE - Static File Delivery for a Raw-Socket HTTP Server
=============================================================================

Serves a directory tree over HTTP/1.1: path mapping under a URL prefix,
index files, method filtering, cache headers with conditional requests,
byte ranges, content-encoding negotiation and streamed bodies.

=============================================================================
REQUEST FLOW
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │  StaticPipeline.serve(request)                                      │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │   1. resolve    /static/css/app.css → <root>/css/app.css            │
    │                 outside router → passed on to the next handler      │
    │   2. method     not allowed → 405 (unless downstream answers)       │
    │   3. stat       missing → 404, directory → 301 "path/"              │
    │   4. cache      Last-Modified, Expires, Cache-Control, ETag         │
    │                 fresh → 304                                         │
    │   5. range      206 with Content-Range, 416 when unsatisfiable      │
    │   6. encoding   gzip / deflate / br for text types                  │
    │   7. stream     file read in chunks, compressed on the fly          │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    staticserve/
    ├── __main__.py          # CLI entry point (python -m staticserve)
    ├── server.py            # StaticServer: sockets + workers + middleware
    ├── config.py            # StaticConfig, ServerConfig
    ├── static/              # The delivery pipeline
    │   ├── pipeline.py      # StaticPipeline, Outcome
    │   ├── resolver.py      # URL path → file path
    │   ├── cache.py         # Cache headers and freshness
    │   ├── ranges.py        # Range header parsing
    │   ├── encoding.py      # Accept-Encoding negotiation
    │   ├── streams.py       # File and compression streams
    │   └── filesystem.py    # stat() and open_read()
    ├── http/                # Request parsing, response building
    ├── middleware/          # Middleware chain, access logging
    ├── handlers/            # StaticFileHandler (pipeline as middleware)
    └── core/                # Accept loop, connections

=============================================================================
QUICK START
=============================================================================

    from staticserve import StaticServer, ServerConfig, StaticConfig

    server = StaticServer(ServerConfig(port=8080))
    server.mount(StaticConfig(router="/static", root="public", cache=True, zip=True))
    server.run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig, StaticConfig
from .handlers.static import StaticFileHandler
from .server import StaticServer, create_server
from .static.pipeline import Outcome, StaticPipeline, StaticResult

__all__ = [
    "ServerConfig",
    "StaticConfig",
    "StaticFileHandler",
    "StaticPipeline",
    "StaticResult",
    "Outcome",
    "StaticServer",
    "create_server",
    "__version__",
]
