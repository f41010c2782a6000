"""
pytest configuration and fixtures.
"""

import os
import socket
import threading
from pathlib import Path
from typing import Dict, Generator, Optional

import pytest

# Add src to path for imports
import sys
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from staticserve import ServerConfig, StaticConfig, StaticServer
from staticserve.http import HTTPRequest


# Fixed times: files were modified at MTIME, requests arrive one hour later
MTIME = 1_700_000_000          # Tue, 14 Nov 2023 22:13:20 GMT
NOW = MTIME + 3600             # Tue, 14 Nov 2023 23:13:20 GMT

HELLO = b"Hello, World!\n"
BINARY = bytes(range(256)) * 4
CSS = b"body { color: #333; }\n" * 200


@pytest.fixture
def site(tmp_path: Path) -> Path:
    """
    A small document root:

        public/
        ├── index.html
        ├── hello.txt
        ├── empty.txt
        ├── data.bin
        ├── css/app.css
        └── docs/index.html
    """
    root = tmp_path / "public"
    (root / "css").mkdir(parents=True)
    (root / "docs").mkdir()

    files = {
        "index.html": b"<h1>home</h1>\n",
        "hello.txt": HELLO,
        "empty.txt": b"",
        "data.bin": BINARY,
        "css/app.css": CSS,
        "docs/index.html": b"<h1>docs</h1>\n",
    }
    for name, content in files.items():
        path = root / name
        path.write_bytes(content)
        os.utime(path, (MTIME, MTIME))

    return root


@pytest.fixture
def clock():
    """A clock frozen at NOW."""
    return lambda: float(NOW)


def make_request(
    path: str,
    method: str = "GET",
    headers: Optional[Dict[str, str]] = None,
    raw_path: str = "",
) -> HTTPRequest:
    """Build a parsed request; header names are lower-cased like the parser does."""
    return HTTPRequest(
        method=method,
        path=path,
        raw_path=raw_path,
        headers={k.lower(): v for k, v in (headers or {}).items()},
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(("127.0.0.1", 0))
        return s.getsockname()[1]


class RunningServer:
    """Test server helper that runs in a background thread."""

    def __init__(self, server: StaticServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def start(self):
        self._thread = threading.Thread(target=self.server.run, daemon=True)
        self._thread.start()
        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def running_server(site: Path) -> Generator[RunningServer, None, None]:
    """
    A live server on a free port:

        /static/...  → site, cached, with ETags, gzip/deflate/br
        /            → site, plain
    """
    server = StaticServer(ServerConfig(
        host="127.0.0.1",
        port=0,
        max_workers=4,
        timeout=5.0,
        log_level="WARNING",
    ))
    server.mount(StaticConfig(
        router="/static",
        root=str(site),
        cache=True,
        etag=True,
        zip=("gzip", "deflate", "br"),
    ))
    server.mount(StaticConfig(root=str(site)))

    running = RunningServer(server)
    running.start()

    yield running

    running.stop()
