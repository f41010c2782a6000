"""
Unit tests for HTTP response building and serialization.
"""

import json
from datetime import datetime, timedelta, timezone

import pytest

from staticserve.http.response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    format_http_date,
    format_timestamp,
    internal_error,
    method_not_allowed,
    not_found,
    redirect,
    status_only,
)
from staticserve.http.status_codes import HTTPStatus
from staticserve.static.streams import ByteStream


class ChunkStream(ByteStream):
    def __init__(self, *chunks: bytes):
        self.chunks = chunks
        self.closed = False

    def __iter__(self):
        yield from self.chunks

    def close(self):
        self.closed = True


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        assert HTTPResponse(status=HTTPStatus.OK).status_line == "HTTP/1.1 200 OK"
        assert (
            HTTPResponse(status=HTTPStatus.RANGE_NOT_SATISFIABLE).status_line
            == "HTTP/1.1 416 Range Not Satisfiable"
        )

    def test_to_bytes_includes_headers(self):
        """Test that to_bytes includes all headers."""
        response = HTTPResponse(
            status=HTTPStatus.OK,
            headers={"X-Custom": "value"},
            body=b"test",
        )

        result = response.to_bytes()

        assert b"HTTP/1.1 200 OK\r\n" in result
        assert b"X-Custom: value\r\n" in result
        assert b"Content-Length: 4\r\n" in result
        assert b"Server: staticserve/1.0\r\n" in result
        assert b"\r\n\r\ntest" in result

    def test_empty_body_gets_zero_length(self):
        """Status-only responses announce an empty body."""
        assert b"Content-Length: 0\r\n" in status_only(HTTPStatus.NOT_FOUND).to_bytes()

    def test_not_modified_has_no_length(self):
        """304 never carries Content-Length or a body."""
        result = HTTPResponse(status=HTTPStatus.NOT_MODIFIED, body=b"ignored").to_bytes()

        assert b"Content-Length" not in result
        assert result.endswith(b"\r\n\r\n")

    def test_stream_body(self):
        """Streamed bodies keep the producer's Content-Length and are closed."""
        stream = ChunkStream(b"abc", b"def")
        response = HTTPResponse(headers={"Content-Length": "6"}, stream=stream)

        result = response.to_bytes()

        assert result.endswith(b"\r\n\r\nabcdef")
        assert result.count(b"Content-Length") == 1
        assert stream.closed

    def test_chunked_framing(self):
        """Transfer-Encoding: chunked frames every chunk and terminates."""
        stream = ChunkStream(b"hello", b"", b"world!")
        response = HTTPResponse(headers={"Transfer-Encoding": "chunked"}, stream=stream)

        assert list(response.iter_body()) == [
            b"5\r\nhello\r\n",
            b"6\r\nworld!\r\n",
            b"0\r\n\r\n",
        ]

    def test_header_case_insensitive(self):
        """Header helpers ignore case; set_header replaces."""
        response = HTTPResponse(headers={"content-length": "5"})

        assert response.get_header("Content-Length") == "5"
        response.set_header("Content-Length", "7")
        assert response.headers == {"Content-Length": "7"}
        assert response.has_header("content-length")
        assert not response.has_header("Content-Type")

    def test_set_header_chaining(self):
        """Test method chaining for headers."""
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers["X-One"] == "1"
        assert response.headers["X-Two"] == "2"


class TestResponseBuilder:
    """Tests for ResponseBuilder class."""

    def test_json_body(self):
        """Test JSON body encoding."""
        data = {"error": "Not Found"}
        response = ResponseBuilder().json(data).build()

        assert response.headers["Content-Type"] == "application/json; charset=utf-8"
        assert json.loads(response.body) == data

    def test_redirect(self):
        """Test redirect response."""
        response = ResponseBuilder().redirect("/new-location").build()

        assert response.status == HTTPStatus.FOUND
        assert response.headers["Location"] == "/new-location"

    def test_redirect_permanent(self):
        """Test permanent redirect."""
        response = redirect("/docs/", permanent=True)

        assert response.status == HTTPStatus.MOVED_PERMANENTLY
        assert response.headers["Location"] == "/docs/"
        assert b"Content-Length: 0" in response.head_bytes()

    def test_method_chaining(self):
        """Test fluent API chaining."""
        response = (ResponseBuilder()
            .status(HTTPStatus.OK)
            .header("X-Custom", "value")
            .json({"key": "value"})
            .build())

        assert response.status == HTTPStatus.OK
        assert response.headers["X-Custom"] == "value"
        assert b'"key"' in response.body


class TestConvenienceFunctions:
    """Tests for convenience response functions."""

    def test_not_found(self):
        """Test not_found() function."""
        response = not_found("Resource not found")
        assert response.status == HTTPStatus.NOT_FOUND
        assert b"Resource not found" in response.body

    def test_method_not_allowed(self):
        """405 lists the allowed methods."""
        response = method_not_allowed(["GET", "HEAD"])

        assert response.status == HTTPStatus.METHOD_NOT_ALLOWED
        assert response.headers["Allow"] == "GET, HEAD"
        assert json.loads(response.body)["allowed"] == ["GET", "HEAD"]

    def test_error_response_default_message(self):
        """The reason phrase is used when no message is given."""
        response = error_response(HTTPStatus.SERVICE_UNAVAILABLE)
        assert json.loads(response.body) == {"error": "Service Unavailable"}

    def test_internal_error(self):
        """Test internal_error() function."""
        assert internal_error().status == HTTPStatus.INTERNAL_SERVER_ERROR


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        """Test that statuses have phrases."""
        assert HTTPStatus.OK.phrase == "OK"
        assert HTTPStatus.PARTIAL_CONTENT.phrase == "Partial Content"
        assert HTTPStatus.NOT_MODIFIED.phrase == "Not Modified"

    def test_status_categories(self):
        """Test status category helpers."""
        assert HTTPStatus.PARTIAL_CONTENT.is_success
        assert HTTPStatus.MOVED_PERMANENTLY.is_redirect
        assert HTTPStatus.NOT_FOUND.is_error
        assert not HTTPStatus.OK.is_error

    @pytest.mark.parametrize("status,allowed", [
        (HTTPStatus.OK, True),
        (HTTPStatus.RANGE_NOT_SATISFIABLE, True),
        (HTTPStatus.NO_CONTENT, False),
        (HTTPStatus.NOT_MODIFIED, False),
    ])
    def test_allows_body(self, status, allowed):
        """204 and 304 never have a body."""
        assert status.allows_body is allowed


class TestFormatHTTPDate:
    """Tests for HTTP date formatting."""

    def test_format(self):
        """Test HTTP date format."""
        dt = datetime(2026, 1, 15, 12, 30, 45, tzinfo=timezone.utc)
        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"

    def test_converts_to_gmt(self):
        """Aware datetimes in other zones are converted."""
        dt = datetime(2026, 1, 15, 14, 30, 45, tzinfo=timezone(timedelta(hours=2)))
        assert format_http_date(dt) == "Thu, 15 Jan 2026 12:30:45 GMT"

    def test_timestamp(self):
        """POSIX timestamps format the same way."""
        assert format_timestamp(1_700_000_000) == "Tue, 14 Nov 2023 22:13:20 GMT"
