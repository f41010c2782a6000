"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to MIME types and MIME types to a default charset.

    Path ──lookup_type()──► "text/html" ──lookup_charset()──► "UTF-8"
                                  │                              │
                                  └────────── build_content_type ┘
                                                   │
                                                   ▼
                                    "text/html; charset=utf-8"

A wrong MIME type makes browsers refuse to run scripts or render images,
so the table covers the common web formats. Unknown extensions return
None and the caller falls back to application/octet-stream.

=============================================================================
"""

from pathlib import Path
from typing import Optional, Union


MIME_TYPES = {
    # ---------------------------------------------------------------------
    # TEXT
    # ---------------------------------------------------------------------
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".js": "application/javascript",
    ".mjs": "application/javascript",
    ".json": "application/json",
    ".xml": "application/xml",
    ".txt": "text/plain",
    ".md": "text/markdown",
    ".csv": "text/csv",
    ".map": "application/json",     # Source maps

    # ---------------------------------------------------------------------
    # IMAGES
    # ---------------------------------------------------------------------
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",
    ".avif": "image/avif",
    ".bmp": "image/bmp",

    # ---------------------------------------------------------------------
    # FONTS
    # ---------------------------------------------------------------------
    ".woff": "font/woff",
    ".woff2": "font/woff2",
    ".ttf": "font/ttf",
    ".otf": "font/otf",

    # ---------------------------------------------------------------------
    # AUDIO / VIDEO (the usual targets of Range requests)
    # ---------------------------------------------------------------------
    ".mp3": "audio/mpeg",
    ".wav": "audio/wav",
    ".ogg": "audio/ogg",
    ".m4a": "audio/mp4",
    ".flac": "audio/flac",
    ".mp4": "video/mp4",
    ".webm": "video/webm",
    ".mov": "video/quicktime",
    ".mkv": "video/x-matroska",

    # ---------------------------------------------------------------------
    # DOCUMENTS / ARCHIVES
    # ---------------------------------------------------------------------
    ".pdf": "application/pdf",
    ".zip": "application/zip",
    ".tar": "application/x-tar",
    ".gz": "application/gzip",
    ".7z": "application/x-7z-compressed",
    ".wasm": "application/wasm",
}

# Default MIME type when the extension is unknown
DEFAULT_MIME_TYPE = "application/octet-stream"

# Non text/* types that are still text and carry a charset
_TEXT_APPLICATION_TYPES = {
    "application/javascript",
    "application/json",
    "application/xml",
}


def lookup_type(path: Union[str, Path]) -> Optional[str]:
    """
    Look up the MIME type for a file from its extension.

    Examples:
        >>> lookup_type("/srv/www/app.JS")
        'application/javascript'
        >>> lookup_type("archive.unknown") is None
        True
    """
    if isinstance(path, str):
        path = Path(path)
    return MIME_TYPES.get(path.suffix.lower())


def lookup_charset(mime_type: Optional[str]) -> Optional[str]:
    """
    Return the default charset for a MIME type, or None for binary types.

    All text/* types and the text-based application types are UTF-8.
    """
    if not mime_type:
        return None
    base = mime_type.split(";")[0].strip().lower()
    if base.startswith("text/") or base in _TEXT_APPLICATION_TYPES:
        return "UTF-8"
    return None


def build_content_type(path: Union[str, Path], charset: Optional[str] = None) -> str:
    """
    Build the full, lower-cased Content-Type header value for a file.

    Args:
        path: File path or name with extension.
        charset: Charset to use for text types instead of the table default.

    Returns:
        "text/html; charset=utf-8", "image/png", or the octet-stream default.
    """
    mime_type = lookup_type(path)
    if mime_type is None:
        return DEFAULT_MIME_TYPE

    default_charset = lookup_charset(mime_type)
    if default_charset:
        mime_type = f"{mime_type}; charset={charset or default_charset}"
    return mime_type.lower()
