"""
=============================================================================
STATIC FILE SERVER
=============================================================================

Wires the pieces together:

    ┌──────────────┐   Connection   ┌───────────────────┐
    │ SocketServer │ ─────────────► │ThreadPoolExecutor │
    │ accept loop  │                │  _process_connection
    └──────────────┘                └─────────┬─────────┘
                                              │
                   read_request() → RequestParser.parse()
                                              │
                                              ▼
                 LoggingMiddleware → StaticFileHandler(s) → not_found
                                              │
                                              ▼
                   Connection.send_response() (streams, then closes)

One request per connection. Anything escaping the middleware chain is
logged with its traceback and answered with 500; a connection that
cannot get a worker is answered with 503.

=============================================================================
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional

from .config import ServerConfig, StaticConfig
from .core.connection import Connection, ConnectionState
from .core.socket_server import SocketServer
from .handlers.static import StaticFileHandler
from .http.request import HTTPRequest, HTTPParseError, RequestParser
from .http.response import HTTPResponse, error_response, internal_error, not_found
from .http.status_codes import HTTPStatus
from .middleware.base import Middleware, MiddlewarePipeline
from .middleware.logging import LoggingMiddleware


logger = logging.getLogger(__name__)

# Connections allowed to wait for a worker, per worker
QUEUE_FACTOR = 4


def not_found_handler(request: HTTPRequest) -> HTTPResponse:
    """Final handler: nothing in the chain answered."""
    return not_found(f"No file for {request.path}")


class StaticServer:
    """
    HTTP server for one or more static file trees.

    Usage:
        server = StaticServer(ServerConfig(port=8080))
        server.mount(StaticConfig(router="/assets", root="build/assets", cache=True))
        server.mount(StaticConfig(root="public", zip=True))
        server.run()
    """

    def __init__(self, config: Optional[ServerConfig] = None, access_log: bool = True):
        self.config = config or ServerConfig()
        self.config.validate()

        self._socket_server = SocketServer(self.config)
        self._parser = RequestParser(max_request_size=self.config.max_request_size)
        self._middleware = MiddlewarePipeline()
        if access_log:
            self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))

        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._executor: Optional[ThreadPoolExecutor] = None
        self._slots = threading.BoundedSemaphore(self.config.max_workers * QUEUE_FACTOR)

    @property
    def address(self):
        """Bound (host, port); valid once the server is listening."""
        return self._socket_server.address

    def use(self, middleware: Middleware) -> "StaticServer":
        """Add middleware; runs in the order added."""
        self._middleware.add(middleware)
        return self

    def mount(self, static_config: StaticConfig) -> "StaticServer":
        """Serve a directory. Validates the configuration first."""
        static_config.validate()
        logger.info(
            f"Serving {static_config.root} at {static_config.router or '/'} "
            f"(cache={static_config.cache}, etag={static_config.etag}, zip={static_config.zip})"
        )
        return self.use(StaticFileHandler(static_config))

    @property
    def mounts(self) -> List[StaticFileHandler]:
        return [mw for mw in self._middleware if isinstance(mw, StaticFileHandler)]

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def run(self):
        """Start serving. Blocks until shutdown() or SIGINT/SIGTERM."""
        self._setup_logging()
        self._handler = self._middleware.wrap(not_found_handler)
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix="staticserve",
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def _setup_logging(self):
        """Configure root logging once, from ServerConfig.log_level."""
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)
        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("staticserve").setLevel(level)

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Ask the accept loop to stop; run() returns shortly after."""
        self._socket_server.shutdown()

    def _shutdown(self):
        logger.info("Shutting down server...")
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        logger.info("Server stopped")

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called by the accept loop; hands the connection to a worker."""
        if not self._slots.acquire(blocking=False):
            logger.warning(f"[{conn.id}] Too many pending connections, rejecting {conn.client_ip}")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
            conn.close()
            return

        try:
            self._executor.submit(self._process_connection, conn)
        except RuntimeError as e:
            # Pool already shut down
            self._slots.release()
            logger.warning(f"[{conn.id}] Cannot schedule {conn.client_ip}: {e}")
            self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server shutting down")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Read one request, answer it, close (runs in a worker thread)."""
        try:
            with conn:
                self._serve_one(conn)
        except Exception as e:
            # Futures swallow exceptions; log before the worker moves on
            logger.exception(f"[{conn.id}] Connection error: {e}")
        finally:
            self._slots.release()

    def _serve_one(self, conn: Connection):
        try:
            raw_request = conn.read_request()
        except TimeoutError:
            self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
            return
        except ValueError as e:
            self._send_error(conn, HTTPStatus.PAYLOAD_TOO_LARGE, str(e))
            return

        if raw_request is None:
            return

        try:
            request = self._parser.parse(raw_request, conn.address)
        except HTTPParseError as e:
            logger.debug(f"[{conn.id}] Bad request: {e}")
            self._send_error(conn, HTTPStatus(e.status_code), str(e))
            return

        conn.state = ConnectionState.PROCESSING
        try:
            response = self._handler(request)
        except Exception as e:
            logger.exception(f"[{conn.id}] Handler error: {e}")
            response = internal_error()

        conn.send_response(
            response,
            include_body=request.method != "HEAD",
            server_name=self.config.server_name,
        )

    def _send_error(self, conn: Connection, status: HTTPStatus, message: str):
        """Answer errors that happen before a request reached the chain."""
        conn.send_response(error_response(status, message), server_name=self.config.server_name)


def create_server(
    static_config: Optional[StaticConfig] = None,
    config: Optional[ServerConfig] = None,
) -> StaticServer:
    """Build a server with one mounted directory (from the environment by default)."""
    server = StaticServer(config or ServerConfig.from_env())
    server.mount(static_config or StaticConfig.from_env())
    return server
