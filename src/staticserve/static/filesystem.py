"""
Filesystem capability used by the static pipeline.

The pipeline never touches ``os`` directly: it asks a filesystem object
for metadata and for a byte stream. ``LocalFileSystem`` is the real
implementation; tests can pass any object with the same two methods.
"""

import os
import stat as stat_module
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .streams import DEFAULT_CHUNK_SIZE, FileStream


class FileKind(Enum):
    """What stat() says a path is."""

    FILE = "file"
    DIRECTORY = "directory"
    OTHER = "other"          # FIFO, socket, device...


@dataclass(frozen=True)
class FileMetadata:
    """
    Metadata for one path, queried fresh for every request.

    Attributes:
        size: Size in bytes (>= 0).
        mtime: Modification time as a POSIX timestamp (float seconds).
        kind: File, directory or anything else.
    """

    size: int
    mtime: float
    kind: FileKind

    @property
    def is_file(self) -> bool:
        return self.kind is FileKind.FILE

    @property
    def is_directory(self) -> bool:
        return self.kind is FileKind.DIRECTORY

    @classmethod
    def from_stat_result(cls, result: os.stat_result) -> "FileMetadata":
        if stat_module.S_ISREG(result.st_mode):
            kind = FileKind.FILE
        elif stat_module.S_ISDIR(result.st_mode):
            kind = FileKind.DIRECTORY
        else:
            kind = FileKind.OTHER
        return cls(size=result.st_size, mtime=result.st_mtime, kind=kind)


class LocalFileSystem:
    """Metadata and streams backed by the local disk."""

    def __init__(self, chunk_size: int = DEFAULT_CHUNK_SIZE):
        self.chunk_size = chunk_size

    def stat(self, path: str) -> FileMetadata:
        """
        Stat a path, following symlinks.

        Raises:
            OSError: Missing file, permission denied, ...
            ValueError: Path contains a NUL byte.
        """
        return FileMetadata.from_stat_result(os.stat(path))

    def open_read(
        self,
        path: str,
        start: Optional[int] = None,
        end: Optional[int] = None,
    ) -> FileStream:
        """Return a lazily opened stream over [start, end] (inclusive)."""
        return FileStream(path, start=start, end=end, chunk_size=self.chunk_size)
