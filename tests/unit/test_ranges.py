"""
Unit tests for Range header parsing.
"""

import pytest

from staticserve.static.ranges import ByteRange, RangeKind, parse_range


class TestParseRange:
    """Tests for parse_range()."""

    def test_absent_header(self):
        """No header means the whole file."""
        assert parse_range(None, 1000).kind is RangeKind.NO_RANGE
        assert parse_range("", 1000).kind is RangeKind.NO_RANGE

    def test_header_without_equals(self):
        """A header with no "=" is ignored rather than rejected."""
        assert parse_range("bytes 0-10", 1000).kind is RangeKind.NO_RANGE

    def test_simple_range(self):
        """bytes=0-499 selects the first 500 bytes."""
        result = parse_range("bytes=0-499", 1000)

        assert result.is_satisfiable
        assert result.spec.first == ByteRange(0, 499)
        assert result.spec.content_range == "bytes 0-499/1000"
        assert result.spec.content_length == 500

    def test_open_ended_range(self):
        """bytes=900- runs to the last byte."""
        result = parse_range("bytes=900-", 1000)

        assert result.spec.first == ByteRange(900, 999)
        assert result.spec.content_length == 100

    def test_suffix_range(self):
        """bytes=-100 selects the last 100 bytes."""
        result = parse_range("bytes=-100", 1000)

        assert result.spec.first == ByteRange(900, 999)
        assert result.spec.content_range == "bytes 900-999/1000"

    def test_suffix_longer_than_file(self):
        """A suffix larger than the file has a negative start and is rejected."""
        result = parse_range("bytes=-2000", 1000)
        assert result.kind is RangeKind.UNSATISFIABLE

    def test_end_clamped_to_size(self):
        """An end past the last byte is clamped."""
        result = parse_range("bytes=500-5000", 1000)
        assert result.spec.first == ByteRange(500, 999)

    def test_single_byte(self):
        """start == end is a one-byte range."""
        result = parse_range("bytes=0-0", 1000)

        assert result.spec.first == ByteRange(0, 0)
        assert result.spec.content_length == 1

    def test_start_past_end_of_file(self):
        """A start beyond the file cannot be satisfied."""
        result = parse_range("bytes=1000-", 1000)

        assert result.kind is RangeKind.UNSATISFIABLE
        assert result.unit == "bytes"

    def test_reversed_range(self):
        """start > end is rejected."""
        assert parse_range("bytes=500-100", 1000).kind is RangeKind.UNSATISFIABLE

    def test_garbage_values(self):
        """Neither side numeric: no range accepted."""
        assert parse_range("bytes=abc-def", 1000).kind is RangeKind.UNSATISFIABLE
        assert parse_range("bytes=-", 1000).kind is RangeKind.UNSATISFIABLE

    def test_lenient_integer_prefix(self):
        """Numbers are read from their leading digits, like parseInt."""
        result = parse_range("bytes= 10abc-20xyz", 1000)
        assert result.spec.first == ByteRange(10, 20)

    def test_multiple_ranges_keep_order(self):
        """All accepted ranges are kept; the first one builds the body."""
        result = parse_range("bytes=500-599, 0-99", 1000)

        assert result.spec.ranges == [ByteRange(500, 599), ByteRange(0, 99)]
        assert result.spec.first == ByteRange(500, 599)

    def test_unsatisfiable_entries_are_skipped(self):
        """Bad entries are dropped when another entry is usable."""
        result = parse_range("bytes=5000-6000, 10-19", 1000)
        assert result.spec.ranges == [ByteRange(10, 19)]

    def test_unit_is_preserved(self):
        """Whatever precedes "=" is echoed back in Content-Range."""
        result = parse_range("items=0-4", 10)

        assert result.spec.unit == "items"
        assert result.spec.content_range == "items 0-4/10"

    @pytest.mark.parametrize("header", ["bytes=0-", "bytes=0-0", "bytes=-1"])
    def test_empty_file_is_unsatisfiable(self, header):
        """A zero-byte file has no byte to select."""
        assert parse_range(header, 0).kind is RangeKind.UNSATISFIABLE


class TestByteRange:
    """Tests for ByteRange."""

    def test_length_is_inclusive(self):
        """Both ends count."""
        assert ByteRange(0, 0).length == 1
        assert ByteRange(10, 19).length == 10
