"""Request handlers that plug into the middleware chain."""

from .static import StaticFileHandler

__all__ = ["StaticFileHandler"]
