"""
Unit tests for HTTP request parsing.
"""

import pytest

from echoserver.http.request import (
    HTTPRequest,
    RequestParser,
    HTTPParseError,
    parse_request,
)

from conftest import make_request


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        parser = RequestParser()
        request = parser.parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/api/users"
        assert request.query_string == "page=1&limit=10"
        assert request.target == "/api/users?page=1&limit=10"
        assert request.version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_headers(self, sample_get_request: bytes):
        request = parse_request(sample_get_request)

        assert request.host == "localhost:3001"
        assert request.user_agent == "pytest"
        assert request.headers["accept"] == "application/json"
        assert request.is_keep_alive is True

    def test_headers_keep_casing_order_and_repeats(self):
        raw = b"GET / HTTP/1.1\r\nx-b: 1\r\nX-A: 2\r\nX-B: 3\r\n\r\n"

        request = parse_request(raw)

        assert request.headers.items() == [("x-b", "1"), ("X-A", "2"), ("X-B", "3")]

    def test_parse_post_with_body(self, sample_post_request: bytes):
        request = parse_request(sample_post_request)

        assert request.method == "POST"
        assert request.body == b'{"name": "John", "email": "john@example.com"}'
        assert request.content_length == len(request.body)
        assert request.get_header("Content-Length") == str(len(request.body))
        assert request.get_header("internal.status-code") == "201"
        assert request.is_keep_alive is False

    @pytest.mark.parametrize("method", ["PURGE", "PROPFIND", "M-SEARCH", "brew"])
    def test_any_method_token(self, method: str):
        raw = f"{method} /x HTTP/1.1\r\n\r\n".encode()

        assert parse_request(raw).method == method

    def test_target_is_not_decoded(self):
        raw = b"GET /a%20b?q=hello%20world HTTP/1.1\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/a%20b"
        assert request.query_string == "q=hello%20world"

    def test_absolute_form_target(self):
        raw = b"GET http://example.com/x?y=1 HTTP/1.1\r\n\r\n"
        request = parse_request(raw)

        assert request.path == "/x"
        assert request.query_string == "y=1"

    def test_asterisk_form_target(self):
        assert parse_request(b"OPTIONS * HTTP/1.1\r\n\r\n").path == "*"

    @pytest.mark.parametrize("raw", [
        b"GET\r\nHost: test\r\n\r\n",
        b"GET  / HTTP/1.1\r\n\r\n",
        b"G(T / HTTP/1.1\r\n\r\n",
        b"GET / HTTP/1.1",
    ])
    def test_malformed_is_400(self, raw: bytes):
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_unsupported_version_is_505(self):
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GET / HTTP/2.0\r\n\r\n")

        assert exc_info.value.status_code == 505

    def test_parse_missing_headers(self):
        request = parse_request(b"GET / HTTP/1.1\r\n\r\n")

        assert request.path == "/"
        assert len(request.headers) == 0

    def test_obsolete_line_folding(self):
        raw = b"GET / HTTP/1.1\r\nX-Long: first\r\n  second\r\n\r\n"

        assert parse_request(raw).headers["X-Long"] == "first second"

    def test_header_bytes_survive(self):
        raw = b"GET / HTTP/1.1\r\nX-Latin: caf\xe9\r\n\r\n"

        value = parse_request(raw).headers["X-Latin"]

        assert value.encode("iso-8859-1") == b"caf\xe9"

    def test_parse_request_too_large(self):
        parser = RequestParser(max_request_size=100)
        raw = b"GET / HTTP/1.1\r\n" + b"X-Large: " + b"A" * 200 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == 413

    def test_header_section_too_large(self):
        parser = RequestParser(max_header_size=50)
        raw = b"GET / HTTP/1.1\r\n" + b"X-Large: " + b"A" * 100 + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parser.parse(raw)

        assert exc_info.value.status_code == 431

    def test_http_version_parsing(self):
        request_10 = parse_request(b"GET / HTTP/1.0\r\nHost: test\r\n\r\n")
        assert request_10.version == "HTTP/1.0"
        assert request_10.is_keep_alive is False

        request_10_ka = parse_request(b"GET / HTTP/1.0\r\nConnection: Keep-Alive\r\n\r\n")
        assert request_10_ka.is_keep_alive is True

        request_11 = parse_request(b"GET / HTTP/1.1\r\nConnection: foo, close\r\n\r\n")
        assert request_11.is_keep_alive is False


class TestBodyFraming:
    """Tests for Content-Length and chunked bodies."""

    def test_content_length(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: 9\r\n\r\ntest body"

        request = parse_request(raw)

        assert request.content_length == 9
        assert request.body == b"test body"

    def test_chunked(self):
        raw = (
            b"POST / HTTP/1.1\r\n"
            b"Transfer-Encoding: chunked\r\n"
            b"\r\n"
            b"5\r\nhello\r\n6\r\n world\r\n0\r\n\r\n"
        )

        assert parse_request(raw).body == b"hello world"

    def test_chunked_wins_over_content_length(self):
        raw = (
            b"POST / HTTP/1.1\r\n"
            b"Content-Length: 100\r\n"
            b"Transfer-Encoding: chunked\r\n"
            b"\r\n"
            b"2\r\nok\r\n0\r\n\r\n"
        )

        assert parse_request(raw).body == b"ok"

    def test_unknown_transfer_coding_is_501(self):
        raw = b"POST / HTTP/1.1\r\nTransfer-Encoding: gzip\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 501

    @pytest.mark.parametrize("value", [b"abc", b"5, 6", b"-1"])
    def test_bad_content_length_is_400(self, value: bytes):
        raw = b"POST / HTTP/1.1\r\nContent-Length: " + value + b"\r\n\r\nhello"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_incomplete_body_is_400(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nshort")


class TestHTTPRequest:
    """Tests for the HTTPRequest dataclass."""

    def test_get_header_default(self):
        request = HTTPRequest(method="GET", path="/")

        assert request.get_header("X-Missing") == ""
        assert request.get_header("X-Missing", "default") == "default"

    def test_content_length_ignores_garbage(self):
        assert make_request(headers=[("Content-Length", "²")]).content_length == 0

    def test_is_frozen(self):
        request = HTTPRequest(method="GET", path="/")

        with pytest.raises(AttributeError):
            request.method = "POST"
