"""
Unit tests for HTTP request parsing.
"""

import pytest

from staticserve.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_request,
)


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request for a static asset."""
    return (
        b"GET /static/css/app.css?v=3 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept-Encoding: gzip, br\r\n"
        b"Range: bytes=0-99\r\n"
        b"\r\n"
    )


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        """Test parsing a simple GET request."""
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/static/css/app.css"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, sample_get_request: bytes):
        """Test that headers are parsed correctly."""
        request = parse_request(sample_get_request)

        assert request.host == "localhost:8080"
        assert request.user_agent == "pytest"
        assert request.headers["accept-encoding"] == "gzip, br"
        assert request.get_header("Range") == "bytes=0-99"

    def test_query_string_dropped(self, sample_get_request: bytes):
        """Query strings are split off both forms of the path."""
        request = parse_request(sample_get_request)

        assert request.path == "/static/css/app.css"
        assert request.raw_path == "/static/css/app.css"

    def test_percent_decoding(self):
        """path is decoded; raw_path keeps the original text."""
        raw = b"GET /static/my%20file.txt HTTP/1.1\r\nHost: test\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/static/my file.txt"
        assert request.raw_path == "/static/my%20file.txt"

    def test_dot_segments_left_for_resolver(self):
        """The parser does not reject ".."; path resolution contains it."""
        raw = b"GET /static/../../etc/passwd HTTP/1.1\r\nHost: test\r\n\r\n"
        assert parse_request(raw).path == "/static/../../etc/passwd"

    def test_parse_invalid_method(self):
        """Test that invalid methods are rejected."""
        raw = b"INVALID /path HTTP/1.1\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 405

    def test_parse_invalid_request_line(self):
        """Test handling of malformed request line."""
        raw = b"GET\r\nHost: test\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_incomplete_request(self):
        """No blank line after the headers → 400."""
        with pytest.raises(HTTPParseError):
            parse_request(b"GET / HTTP/1.1\r\nHost: test\r\n")

    def test_unsupported_version(self):
        """Only HTTP/1.0 and HTTP/1.1 are accepted."""
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GET / HTTP/2.0\r\n\r\n")

        assert exc_info.value.status_code == 505

    def test_absolute_form_target(self):
        """An absolute URI keeps only its path."""
        request = parse_request(b"GET http://example.com/a.txt HTTP/1.1\r\n\r\n")
        assert request.path == "/a.txt"

    def test_parse_missing_headers(self):
        """Test parsing request with no headers."""
        raw = b"GET / HTTP/1.1\r\n\r\n"
        request = parse_request(raw)

        assert request.method == "GET"
        assert request.path == "/"
        assert len(request.headers) == 0

    def test_parse_request_too_large(self):
        """Test that oversized requests are rejected."""
        parser = RequestParser(max_request_size=100)
        raw = b"GET / HTTP/1.1\r\n" + b"X-Large: " + b"A" * 200 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == 413

    def test_content_length_handling(self):
        """The body is cut at Content-Length."""
        raw = b"POST / HTTP/1.1\r\nContent-Length: 4\r\n\r\nbodyEXTRA"
        assert parse_request(raw).body == b"body"

    def test_invalid_content_length(self):
        """A non-numeric Content-Length is a bad request."""
        with pytest.raises(HTTPParseError):
            parse_request(b"POST / HTTP/1.1\r\nContent-Length: ten\r\n\r\n")

    def test_case_insensitive_headers(self):
        """Test that header names are case-insensitive."""
        raw = b"GET / HTTP/1.1\r\nIF-NONE-MATCH: \"abc\"\r\n\r\n"
        request = parse_request(raw)

        assert request.headers["if-none-match"] == '"abc"'
        assert request.get_header("If-None-Match") == '"abc"'

    def test_repeated_headers_joined(self):
        """Repeated headers are combined into one list value."""
        raw = b"GET / HTTP/1.1\r\nAccept-Encoding: gzip\r\nAccept-Encoding: br\r\n\r\n"
        assert parse_request(raw).headers["accept-encoding"] == "gzip, br"

    def test_folded_header(self):
        """Obsolete line folding continues the previous header."""
        raw = b"GET / HTTP/1.1\r\nIf-None-Match: \"a\",\r\n \"b\"\r\n\r\n"
        assert parse_request(raw).headers["if-none-match"] == '"a", "b"'


class TestHTTPRequest:
    """Tests for HTTPRequest dataclass."""

    def test_get_header_default(self):
        """Missing headers are None unless a default is given."""
        request = HTTPRequest(method="GET", path="/")

        assert request.get_header("X-Missing") is None
        assert request.get_header("X-Missing", "default") == "default"

    def test_raw_path_defaults_to_path(self):
        """Requests built in code need not repeat the path."""
        assert HTTPRequest(method="GET", path="/a b").raw_path == "/a b"
