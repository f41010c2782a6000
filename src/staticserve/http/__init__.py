"""HTTP/1.1 request parsing, response building, status codes and MIME types."""

from .request import HTTPParseError, HTTPRequest, RequestParser, parse_request
from .response import HTTPResponse, ResponseBuilder, format_http_date
from .status_codes import HTTPStatus
from .mime_types import build_content_type, lookup_type

__all__ = [
    "HTTPParseError",
    "HTTPRequest",
    "RequestParser",
    "parse_request",
    "HTTPResponse",
    "ResponseBuilder",
    "format_http_date",
    "HTTPStatus",
    "build_content_type",
    "lookup_type",
]
