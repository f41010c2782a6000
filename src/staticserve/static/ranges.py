"""
=============================================================================
HTTP RANGE HEADER PARSING (RFC 7233)
=============================================================================

Turns a Range header into a validated list of byte ranges for a file of
known size. Only the first accepted range is ever served: there are no
multipart/byteranges responses.

    size = 1000

    "bytes=0-499"        → [0-499]              first half
    "bytes=500-"         → [500-999]            open-ended
    "bytes=-200"         → [800-999]            last 200 bytes (suffix)
    "bytes=900-5000"     → [900-999]            end clamped to size - 1
    "bytes=0-9,100-"     → [0-9, 100-999]       only 0-9 is served
    "bytes=500-400"      → UNSATISFIABLE        start > end → 416
    "bytes=-2000"        → UNSATISFIABLE        suffix longer than the file
    "bytes"              → NO_RANGE             no "=", ignored
    (no header)          → NO_RANGE

=============================================================================
NUMBER PARSING
=============================================================================

Each bound is read leniently: optional whitespace, then the leading run
of digits. "12abc" reads as 12, "abc" and "" read as missing. A missing
start means a suffix range, a missing end means "to the end of file".

=============================================================================
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


_LEADING_INT = re.compile(r"\s*\+?(\d+)")


@dataclass(frozen=True)
class ByteRange:
    """An inclusive byte range; always 0 <= start <= end < size."""

    start: int
    end: int

    @property
    def length(self) -> int:
        return self.end - self.start + 1


@dataclass(frozen=True)
class RangeSpec:
    """
    The accepted ranges of a Range header, in the order they were sent.

    Attributes:
        unit: Text before "=" (normally "bytes").
        ranges: Accepted ranges, never empty.
        size: Total size of the file the ranges apply to.
    """

    unit: str
    ranges: List[ByteRange]
    size: int

    @property
    def first(self) -> ByteRange:
        """The range used to build the response."""
        return self.ranges[0]

    @property
    def content_range(self) -> str:
        """Content-Range value for the first range: "bytes 0-499/1000"."""
        chosen = self.first
        return f"{self.unit} {chosen.start}-{chosen.end}/{self.size}"

    @property
    def content_length(self) -> int:
        return self.first.length


class RangeKind(Enum):
    NO_RANGE = "no_range"
    UNSATISFIABLE = "unsatisfiable"
    SATISFIABLE = "satisfiable"


@dataclass(frozen=True)
class RangeResult:
    """Tagged result of parse_range(); ``spec`` is set only when SATISFIABLE."""

    kind: RangeKind
    spec: Optional[RangeSpec] = None
    unit: str = field(default="bytes")

    @property
    def is_satisfiable(self) -> bool:
        return self.kind is RangeKind.SATISFIABLE


NO_RANGE = RangeResult(RangeKind.NO_RANGE)


def parse_range(header: Optional[str], size: int) -> RangeResult:
    """
    Parse a Range header against a file size.

    Args:
        header: Raw Range header value, or None when absent.
        size: File size in bytes (>= 0).

    Returns:
        RangeResult tagged NO_RANGE, UNSATISFIABLE or SATISFIABLE.
    """
    if not header:
        return NO_RANGE

    unit, sep, spec = header.partition("=")
    if not sep:
        return NO_RANGE

    accepted = []
    for candidate in spec.split(","):
        byte_range = _parse_candidate(candidate, size)
        if byte_range is not None:
            accepted.append(byte_range)

    if not accepted:
        return RangeResult(RangeKind.UNSATISFIABLE, unit=unit)

    return RangeResult(
        RangeKind.SATISFIABLE,
        spec=RangeSpec(unit=unit, ranges=accepted, size=size),
        unit=unit,
    )


def _parse_candidate(candidate: str, size: int) -> Optional[ByteRange]:
    """Parse one "start-end" entry; None when it cannot be satisfied."""
    parts = candidate.split("-")
    start = _parse_int(parts[0])
    end = _parse_int(parts[1]) if len(parts) > 1 else None

    if start is None:
        if end is None:
            return None
        # Suffix: the last `end` bytes
        start = size - end
        end = size - 1
    elif end is None:
        end = size - 1

    if end > size - 1:
        end = size - 1

    if 0 <= start <= end:
        return ByteRange(start, end)
    return None


def _parse_int(text: str) -> Optional[int]:
    match = _LEADING_INT.match(text)
    return int(match.group(1)) if match else None
