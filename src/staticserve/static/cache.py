"""
=============================================================================
CACHE HEADERS AND CONDITIONAL REQUESTS
=============================================================================

Computes the caching headers for a file and decides whether the client's
cached copy can be reused (304 Not Modified).

    FileMetadata(size=500, mtime=1700000000.25)    cache=True, etag=True
          │
          ▼
    Last-Modified: Tue, 14 Nov 2023 22:13:20 GMT
    Date:          <now>
    Expires:       <now + 7200s>
    Cache-Control: max-age=7200
    ETag:          "1f4-18bcfe568fa"
                    ─┬─ ──────┬────
                   size    mtime in ms (both hex)

=============================================================================
VALIDATION ORDER (RFC 7232 section 6)
=============================================================================

    1. Only GET and HEAD can be answered with 304.
    2. "Cache-Control: no-cache" on the request forces a full response.
    3. If-None-Match present  → compare entity tags (weak comparison),
                                If-Modified-Since is ignored.
    4. If-Modified-Since only → fresh when the file is not newer than
                                the given date (whole seconds).
    5. Neither                → not fresh.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import timezone
from email.utils import parsedate_to_datetime
from typing import Dict, Mapping, Optional, Union

from ..config import StaticConfig
from ..http.response import format_timestamp
from .filesystem import FileMetadata


logger = logging.getLogger(__name__)

# Duration used when the cache policy is just "on"
DEFAULT_CACHE_SECONDS = 7200

CONDITIONAL_METHODS = frozenset({"GET", "HEAD"})


@dataclass
class CacheEvaluation:
    """
    Cache headers for one file plus the validity decision.

    Attributes:
        headers: Headers to put on the response (empty when caching is off).
        etag: The quoted entity tag, or None.
        last_modified: HTTP-date of the file's mtime, or None.
        is_valid: True when the client copy is fresh (answer 304).
    """

    headers: Dict[str, str] = field(default_factory=dict)
    etag: Optional[str] = None
    last_modified: Optional[str] = None
    is_valid: bool = False


def resolve_cache_duration(policy: Union[bool, int, float, None]) -> Optional[int]:
    """
    Map a cache policy value to an effective max-age in seconds.

        False / None   → None (caching off)
        True           → DEFAULT_CACHE_SECONDS
        positive number→ that many whole seconds
        anything else  → None
    """
    if policy is None or policy is False:
        return None
    if policy is True:
        return DEFAULT_CACHE_SECONDS
    if isinstance(policy, (int, float)) and policy > 0:
        return int(policy)
    return None


def make_etag(metadata: FileMetadata) -> str:
    """Build a strong entity tag from size and mtime: "<hex-size>-<hex-mtime-ms>"."""
    return f'"{metadata.size:x}-{int(metadata.mtime * 1000):x}"'


def evaluate_cache(
    metadata: FileMetadata,
    config: StaticConfig,
    request_headers: Mapping[str, str],
    method: str,
    now: float,
) -> CacheEvaluation:
    """
    Compute cache headers for a file and check the request's validators.

    Args:
        metadata: Fresh stat() result of the file.
        config: Pipeline configuration (cache policy, etag flag).
        request_headers: Request headers with lower-case names.
        method: Request method.
        now: Current time as a POSIX timestamp.

    Returns:
        CacheEvaluation. When caching is off the headers are empty and
        the copy is never valid.
    """
    duration = resolve_cache_duration(config.cache)
    if duration is None:
        return CacheEvaluation()

    last_modified = format_timestamp(metadata.mtime)
    headers = {
        "Last-Modified": last_modified,
        "Date": format_timestamp(now),
        "Expires": format_timestamp(now + duration),
        "Cache-Control": f"max-age={duration}",
    }

    etag = None
    if config.etag:
        etag = make_etag(metadata)
        headers["ETag"] = etag

    valid = is_fresh(request_headers, method, etag, metadata.mtime)
    return CacheEvaluation(
        headers=headers,
        etag=etag,
        last_modified=last_modified,
        is_valid=valid,
    )


def is_fresh(
    request_headers: Mapping[str, str],
    method: str,
    etag: Optional[str],
    mtime: float,
) -> bool:
    """Check the request's conditional headers against the file's validators."""
    if method not in CONDITIONAL_METHODS:
        return False

    cache_control = request_headers.get("cache-control", "")
    if "no-cache" in cache_control.lower():
        return False

    if_none_match = request_headers.get("if-none-match")
    if if_none_match is not None:
        return _etag_matches(if_none_match, etag)

    if_modified_since = request_headers.get("if-modified-since")
    if if_modified_since is not None:
        since = _parse_http_date(if_modified_since)
        if since is None:
            return False
        return int(mtime) <= since

    return False


def _etag_matches(header: str, etag: Optional[str]) -> bool:
    """Weak comparison of an If-None-Match list against our tag."""
    if header.strip() == "*":
        return True
    if etag is None:
        return False

    ours = _opaque_tag(etag)
    for candidate in header.split(","):
        if _opaque_tag(candidate.strip()) == ours:
            return True
    return False


def _opaque_tag(tag: str) -> str:
    if tag.startswith("W/"):
        return tag[2:]
    return tag


def _parse_http_date(value: str) -> Optional[int]:
    """Parse an HTTP-date to a POSIX timestamp, None when unparseable."""
    try:
        parsed = parsedate_to_datetime(value)
    except (TypeError, ValueError, IndexError):
        logger.debug(f"Ignoring unparseable date: {value!r}")
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return int(parsed.timestamp())
