"""
=============================================================================
BODY STREAMS AND COMPRESSION TRANSFORMS
=============================================================================

A response body is never read into memory. It is an iterable of byte
chunks that the transport drains and then closes:

    FileStream(path, start, end)            CompressedStream(source, "gzip")
    ┌──────────────────────────┐            ┌──────────────────────────────┐
    │ open() on first next()   │  chunks    │ compressor.compress(chunk)   │
    │ seek(start)              │ ─────────► │ ...                          │
    │ read(min(chunk, left))   │            │ compressor.flush()           │
    │ close() when exhausted   │            │ source.close() in finally    │
    └──────────────────────────┘            └──────────────────────────────┘

=============================================================================
RESOURCE OWNERSHIP
=============================================================================

The file descriptor is opened lazily, on the first chunk. A stream that
is built but never iterated (HEAD requests, aborted responses) holds no
descriptor at all, and close() is always safe to call. Closing a
CompressedStream closes the stream it wraps.

Backpressure is the iterator protocol itself: the next chunk is read
only when the transport asks for it.

=============================================================================
"""

import logging
import zlib
from abc import ABC, abstractmethod
from typing import BinaryIO, Callable, Dict, Iterator, Optional

import brotli


logger = logging.getLogger(__name__)

# 64 KiB reads: large enough to keep syscalls cheap, small enough
# that a slow client does not pin much memory per connection.
DEFAULT_CHUNK_SIZE = 64 * 1024

DEFAULT_COMPRESSION_LEVEL = 6


class ByteStream(ABC):
    """An iterable of byte chunks that owns an underlying resource."""

    @abstractmethod
    def __iter__(self) -> Iterator[bytes]:
        """Yield the body chunk by chunk."""

    @abstractmethod
    def close(self) -> None:
        """Release the underlying resource. Safe to call more than once."""

    def read_all(self) -> bytes:
        """Drain the stream into one bytes object (tests and small bodies)."""
        try:
            return b"".join(self)
        finally:
            self.close()

    def __enter__(self) -> "ByteStream":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class FileStream(ByteStream):
    """
    Stream a file, or the inclusive byte range [start, end] of it.

    Args:
        path: Absolute path of a regular file.
        start: First byte offset (None = beginning of file).
        end: Last byte offset, inclusive (None = end of file).
        chunk_size: Maximum bytes per chunk.
    """

    def __init__(
        self,
        path: str,
        start: Optional[int] = None,
        end: Optional[int] = None,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
    ):
        self.path = path
        self.start = start or 0
        self.end = end
        self.chunk_size = chunk_size
        self.bytes_read = 0
        self._file: Optional[BinaryIO] = None
        self._closed = False

    @property
    def length(self) -> Optional[int]:
        """Number of bytes this stream will produce, None if unbounded."""
        if self.end is None:
            return None
        return self.end - self.start + 1

    @property
    def closed(self) -> bool:
        return self._closed

    def __iter__(self) -> Iterator[bytes]:
        if self._closed:
            return

        self._file = open(self.path, "rb")
        try:
            if self.start:
                self._file.seek(self.start)

            remaining = self.length
            while remaining is None or remaining > 0:
                size = self.chunk_size if remaining is None else min(self.chunk_size, remaining)
                chunk = self._file.read(size)
                if not chunk:
                    break
                self.bytes_read += len(chunk)
                if remaining is not None:
                    remaining -= len(chunk)
                yield chunk

            if remaining:
                # File shrank between stat() and read()
                logger.warning(
                    f"Short read on {self.path}: {remaining} bytes missing "
                    f"from range {self.start}-{self.end}"
                )
        finally:
            self.close()

    def close(self) -> None:
        if self._file is not None:
            self._file.close()
            self._file = None
        self._closed = True

    def __repr__(self) -> str:
        return f"FileStream({self.path!r}, start={self.start}, end={self.end})"


# =============================================================================
# COMPRESSORS
# =============================================================================
#
# Every codec is driven through the zlib compressobj interface:
#
#     compressor.compress(chunk) -> bytes   (may be b"" while buffering)
#     compressor.flush()         -> bytes   (final block + trailer)
#
# "deflate" in HTTP means the zlib container (RFC 1950), not raw DEFLATE.
# "gzip" is the same algorithm with the gzip header (wbits + 16).
#
# =============================================================================

class _BrotliCompressor:
    """Adapt brotli.Compressor (process/finish) to compress/flush."""

    def __init__(self, level: int):
        self._compressor = brotli.Compressor(quality=max(0, min(level, 11)))

    def compress(self, data: bytes) -> bytes:
        return self._compressor.process(data)

    def flush(self) -> bytes:
        return self._compressor.finish()


def _gzip_compressor(level: int):
    return zlib.compressobj(level, zlib.DEFLATED, 16 + zlib.MAX_WBITS)


def _deflate_compressor(level: int):
    return zlib.compressobj(level, zlib.DEFLATED, zlib.MAX_WBITS)


COMPRESSORS: Dict[str, Callable[[int], object]] = {
    "gzip": _gzip_compressor,
    "deflate": _deflate_compressor,
    "br": _BrotliCompressor,
}


def is_supported_encoding(encoding: str) -> bool:
    """Check if a Content-Encoding token has a compressor available."""
    return encoding in COMPRESSORS


class CompressedStream(ByteStream):
    """
    Compress another stream on the fly.

    The compressor is created on first iteration and fed one chunk at a
    time, so memory use stays bounded by the codec window.
    """

    def __init__(
        self,
        source: ByteStream,
        encoding: str,
        level: int = DEFAULT_COMPRESSION_LEVEL,
    ):
        if encoding not in COMPRESSORS:
            raise ValueError(f"Unsupported content encoding: {encoding}")
        self.source = source
        self.encoding = encoding
        self.level = level

    def __iter__(self) -> Iterator[bytes]:
        compressor = COMPRESSORS[self.encoding](self.level)
        try:
            for chunk in self.source:
                data = compressor.compress(chunk)
                if data:
                    yield data
            tail = compressor.flush()
            if tail:
                yield tail
        finally:
            self.source.close()

    def close(self) -> None:
        self.source.close()

    def __repr__(self) -> str:
        return f"CompressedStream({self.source!r}, encoding={self.encoding!r})"
