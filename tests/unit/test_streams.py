"""
Unit tests for file streams, compression streams and the filesystem.
"""

import gzip
import os

import pytest

from staticserve.static.filesystem import FileKind, LocalFileSystem
from staticserve.static.streams import CompressedStream, FileStream, is_supported_encoding

from conftest import BINARY, HELLO, MTIME


class TestFileStream:
    """Tests for FileStream."""

    def test_whole_file(self, site):
        """Without bounds the entire file is produced."""
        stream = FileStream(str(site / "data.bin"), chunk_size=100)
        assert stream.read_all() == BINARY
        assert stream.closed

    def test_range(self, site):
        """start and end are inclusive."""
        stream = FileStream(str(site / "data.bin"), start=10, end=19)

        assert stream.length == 10
        assert stream.read_all() == BINARY[10:20]

    def test_chunking(self, site):
        """Chunks never exceed chunk_size and stop exactly at end."""
        stream = FileStream(str(site / "data.bin"), start=0, end=249, chunk_size=100)
        chunks = list(stream)

        assert [len(c) for c in chunks] == [100, 100, 50]
        assert stream.bytes_read == 250

    def test_lazy_open(self, tmp_path):
        """Nothing is opened until iteration starts."""
        stream = FileStream(str(tmp_path / "missing.txt"))
        stream.close()
        assert list(stream) == []

    def test_missing_file_raises_on_read(self, tmp_path):
        """A file deleted after stat() fails when the body is read."""
        stream = FileStream(str(tmp_path / "missing.txt"))
        with pytest.raises(FileNotFoundError):
            list(stream)

    def test_close_mid_iteration(self, site):
        """Closing while iterating releases the descriptor."""
        stream = FileStream(str(site / "data.bin"), chunk_size=10)
        iterator = iter(stream)
        next(iterator)

        stream.close()
        iterator.close()

        assert stream.closed
        assert stream._file is None

    def test_short_read_logged(self, site, caplog):
        """A file that shrank produces fewer bytes and a warning."""
        stream = FileStream(str(site / "hello.txt"), start=0, end=99)

        assert stream.read_all() == HELLO
        assert "Short read" in caplog.text


class TestCompressedStream:
    """Tests for CompressedStream."""

    def test_round_trip(self, site):
        """The gzip output decompresses to the source bytes."""
        source = FileStream(str(site / "css" / "app.css"), chunk_size=256)
        stream = CompressedStream(source, "gzip")

        body = stream.read_all()

        assert gzip.decompress(body) == (site / "css" / "app.css").read_bytes()
        assert source.closed

    def test_close_closes_source(self, site):
        """Closing the wrapper releases the file."""
        source = FileStream(str(site / "hello.txt"))
        CompressedStream(source, "deflate").close()
        assert source.closed

    def test_unknown_encoding(self, site):
        """Only gzip, deflate and br are available."""
        with pytest.raises(ValueError):
            CompressedStream(FileStream(str(site / "hello.txt")), "compress")

    def test_supported_encodings(self):
        """The codec table."""
        assert is_supported_encoding("gzip")
        assert is_supported_encoding("deflate")
        assert is_supported_encoding("br")
        assert not is_supported_encoding("identity")


class TestLocalFileSystem:
    """Tests for LocalFileSystem."""

    def test_stat_file(self, site):
        """Regular files report size, mtime and kind."""
        meta = LocalFileSystem().stat(str(site / "hello.txt"))

        assert meta.kind is FileKind.FILE
        assert meta.size == len(HELLO)
        assert meta.mtime == MTIME

    def test_stat_directory(self, site):
        """Directories are classified as such."""
        assert LocalFileSystem().stat(str(site / "docs")).is_directory

    @pytest.mark.skipif(not hasattr(os, "mkfifo"), reason="needs mkfifo")
    def test_stat_other(self, tmp_path):
        """A FIFO is neither file nor directory."""
        fifo = tmp_path / "pipe"
        os.mkfifo(fifo)
        assert LocalFileSystem().stat(str(fifo)).kind is FileKind.OTHER

    def test_stat_missing(self, tmp_path):
        """Missing paths raise OSError."""
        with pytest.raises(OSError):
            LocalFileSystem().stat(str(tmp_path / "nope"))

    def test_open_read_uses_chunk_size(self, site):
        """Streams inherit the filesystem's chunk size."""
        stream = LocalFileSystem(chunk_size=4).open_read(str(site / "hello.txt"), 0, 7)

        assert list(stream) == [b"Hell", b"o, W"]
