"""
=============================================================================
PATH RESOLUTION
=============================================================================

Maps a decoded URL path onto a file below the configured root.

    router = "/static"          root = "/srv/www"        index = "index.html"

    "/static/css/app.css"  ──► RESOLVED      /srv/www/css/app.css
    "/static/docs/"        ──► RESOLVED      /srv/www/docs/index.html
    "/static/../etc/passwd"──► RESOLVED      /srv/www/etc/passwd
    "/api/users"           ──► OUTSIDE_ROUTER   (next handler's business)
    "/static/a\\x00b"       ──► OUTSIDE_ROOT     (answered with 404)

=============================================================================
CONTAINMENT
=============================================================================

The remainder after the router prefix is normalized lexically as an
absolute POSIX path, so ".." can never climb above "/". Only then is it
joined onto the root, and the joined result is checked once more with
os.path.commonpath(). Nothing here touches the filesystem; symlinks
inside the root are followed later by stat() as usual.

=============================================================================
"""

import logging
import os
import posixpath
from dataclasses import dataclass
from enum import Enum
from typing import Optional

from ..config import StaticConfig


logger = logging.getLogger(__name__)


class ResolutionKind(Enum):
    RESOLVED = "resolved"
    OUTSIDE_ROUTER = "outside_router"
    OUTSIDE_ROOT = "outside_root"


@dataclass(frozen=True)
class PathResolution:
    """
    Result of resolve_path().

    ``candidate`` is only set when ``kind`` is RESOLVED.
    """

    kind: ResolutionKind
    candidate: Optional[str] = None

    @property
    def is_resolved(self) -> bool:
        return self.kind is ResolutionKind.RESOLVED

    @classmethod
    def resolved(cls, candidate: str) -> "PathResolution":
        return cls(ResolutionKind.RESOLVED, candidate)


OUTSIDE_ROUTER = PathResolution(ResolutionKind.OUTSIDE_ROUTER)
OUTSIDE_ROOT = PathResolution(ResolutionKind.OUTSIDE_ROOT)


def resolve_path(decoded_path: str, config: StaticConfig) -> PathResolution:
    """
    Resolve a percent-decoded request path to a candidate file path.

    Args:
        decoded_path: Request path, already percent-decoded.
        config: Pipeline configuration (router, root, index).

    Returns:
        PathResolution tagged RESOLVED, OUTSIDE_ROUTER or OUTSIDE_ROOT.
    """
    if not decoded_path.startswith(config.router):
        return OUTSIDE_ROUTER

    remainder = decoded_path[len(config.router):]
    if remainder.endswith("/"):
        remainder += config.index

    if "\x00" in remainder:
        logger.warning(f"Rejected path with NUL byte: {decoded_path!r}")
        return OUTSIDE_ROOT

    # "/" prefix makes normpath drop any leading ".." segments
    normalized = posixpath.normpath("/" + remainder)
    relative = normalized.lstrip("/")

    if os.sep != "/":
        relative = relative.replace("/", os.sep)

    candidate = os.path.normpath(os.path.join(config.root, relative))

    if not _is_within(candidate, config.root):
        logger.warning(f"Path escapes root: {decoded_path!r} -> {candidate!r}")
        return OUTSIDE_ROOT

    if ".." in remainder.split("/"):
        logger.debug(f"Normalized traversal segments in {decoded_path!r}")

    return PathResolution.resolved(candidate)


def _is_within(candidate: str, root: str) -> bool:
    """Check that ``candidate`` is ``root`` or lies below it."""
    try:
        return os.path.commonpath([candidate, root]) == root
    except ValueError:
        # Different drives on Windows
        return False
