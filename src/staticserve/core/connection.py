"""
=============================================================================
CONNECTION
=============================================================================

Wraps one accepted client socket: read one request head, stream one
response, close. There is no keep-alive; every response carries
"Connection: close".

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

recv() may return any slice of what the client sent, so the request is
buffered until the blank line that ends the headers shows up:

    recv() → "GET /app.j"
    recv() → "s HTTP/1.1\\r\\nHost: x\\r\\n"
    recv() → "\\r\\n"                      ← \\r\\n\\r\\n found, stop

=============================================================================
STREAMING A RESPONSE
=============================================================================

    send_response(response)
         │
         ├── sendall(head_bytes)
         ├── for chunk in response.iter_body(): sendall(chunk)
         │        (skipped entirely for HEAD)
         └── response.close()      ← always, even if the client vanished

If the client goes away mid-body the loop stops, the stream is closed
and its file descriptor released. A file that cannot be read once the
head is out truncates the response; that case is logged as a warning.

=============================================================================
"""

import socket
import logging
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional
import uuid

from ..http.response import HTTPResponse, DEFAULT_SERVER_NAME


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    """Connection lifecycle states (for logging and debugging)."""

    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        id: Short identifier for log lines.
        state: Current connection state.
        bytes_sent: Body and head bytes written so far.
    """

    socket: socket.socket
    address: tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    bytes_sent: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    max_request_size: int = 64 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one request from the socket.

        Reads up to the end of the header section plus any body announced
        by Content-Length (a file server ignores request bodies, but they
        must not be left unread in the socket).

        Returns:
            Raw request bytes, or None if the client closed first.

        Raises:
            TimeoutError: If the client is too slow.
            ValueError: If the request exceeds max_request_size.
        """
        self.state = ConnectionState.READING

        try:
            while b"\r\n\r\n" not in self._buffer:
                chunk = self._recv()
                if not chunk:
                    return None
                self._buffer += chunk
                if len(self._buffer) > self.max_request_size:
                    raise ValueError(f"Request too large: {len(self._buffer)} bytes")

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            content_length = self._parse_content_length(self._buffer[:header_end])

            if body_start + content_length > self.max_request_size:
                raise ValueError(f"Request too large: {body_start + content_length} bytes")

            while len(self._buffer) - body_start < content_length:
                chunk = self._recv()
                if not chunk:
                    break
                self._buffer += chunk

            request_end = body_start + content_length
            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]
            return request_data

        except socket.timeout:
            raise TimeoutError("Request read timeout")

    def _recv(self) -> bytes:
        try:
            return self.socket.recv(self.buffer_size)
        except (ConnectionResetError, BrokenPipeError):
            return b""

    def _parse_content_length(self, headers: bytes) -> int:
        """Find Content-Length in raw header bytes; 0 if absent or invalid."""
        header_str = headers.decode("latin-1").lower()
        for line in header_str.split("\r\n"):
            if line.startswith("content-length:"):
                try:
                    return max(0, int(line.split(":", 1)[1].strip()))
                except ValueError:
                    return 0
        return 0

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(
        self,
        response: HTTPResponse,
        include_body: bool = True,
        server_name: str = DEFAULT_SERVER_NAME,
    ) -> bool:
        """
        Write a response and release its stream.

        Args:
            response: The response to send. Closed before returning.
            include_body: False for HEAD: headers only, stream never read.
            server_name: Value for the Server header.

        Returns:
            True if everything was written, False if the client went away
            or the body stream failed (logged at warning level).
        """
        self.state = ConnectionState.WRITING
        response.set_header("Connection", "close")

        try:
            self._send(response.head_bytes(server_name))
            if include_body:
                body = response.iter_body()
                while True:
                    try:
                        chunk = next(body, None)
                    except OSError as e:
                        logger.warning(
                            f"[{self.id}] Body stream failed after {self.bytes_sent} bytes: {e}"
                        )
                        return False
                    if chunk is None:
                        break
                    self._send(chunk)
            return True
        except OSError as e:
            logger.info(f"[{self.id}] Client disconnected after {self.bytes_sent} bytes: {e}")
            return False
        finally:
            response.close()

    def _send(self, data: bytes) -> None:
        self.socket.sendall(data)
        self.bytes_sent += len(data)

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection: shutdown(SHUT_WR), drain briefly, close().

        Draining stops the kernel from answering unread client bytes
        with a RST that could destroy the response in flight.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # already disconnected

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass  # closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed ({self.bytes_sent} bytes sent)")

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
