"""
Unit tests for request head parsing and resource limits.
"""

import io

import pytest

from httpmessage.config import ListenerConfig
from httpmessage.errors import HTTPParseError, LimitExceededError
from httpmessage.http.entity import BodyStream
from httpmessage.http.limits import ResourceLimitGuard
from httpmessage.http.parser import RequestParser, parse_request


def parser_with(max_uri_length=4096, max_header_size=8192, max_entity_body_size=-1):
    return RequestParser(ResourceLimitGuard(max_uri_length, max_header_size,
                                            max_entity_body_size))


def header_block_of(size: int) -> bytes:
    """One header line whose line plus CRLF is exactly `size` bytes."""
    name = b"X-Pad: "
    return name + b"v" * (size - len(name) - 2) + b"\r\n"


class TestRequestParser:
    """Tests for RequestParser class."""

    def test_parse_simple_get(self, sample_get_request: bytes):
        request = RequestParser().parse(sample_get_request, ("127.0.0.1", 12345))

        assert request.method == "GET"
        assert request.path == "/api/users"
        assert request.http_version == "HTTP/1.1"
        assert request.client_address == ("127.0.0.1", 12345)

    def test_parse_duplicate_headers_preserved(self):
        raw = (b"GET / HTTP/1.1\r\n"
               b"Accept: text/html\r\n"
               b"accept: application/json\r\n"
               b"\r\n")

        request = parse_request(raw)

        assert request.get_headers("Accept") == ["text/html", "application/json"]

    def test_parse_obs_fold(self):
        raw = b"GET / HTTP/1.1\r\nX-Long: part one\r\n  part two\r\n\r\n"

        request = parse_request(raw)

        assert request.get_header("X-Long") == "part one part two"

    def test_parse_missing_headers(self):
        request = parse_request(b"GET / HTTP/1.1\r\n\r\n")

        assert request.get_header_names() == []
        assert not request.has_entity_body()

    def test_parse_invalid_method(self):
        """Unknown method tokens are rejected with 405."""
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"BREW /pot HTTP/1.1\r\nHost: test\r\n\r\n")

        assert exc_info.value.status_code == 405

    def test_parse_invalid_request_line(self):
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GET\r\nHost: test\r\n\r\n")

        assert exc_info.value.status_code == 400

    def test_parse_unsupported_version(self):
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GET / HTTP/2.0\r\n\r\n")

        assert exc_info.value.status_code == 505

    def test_parse_invalid_header_line(self):
        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(b"GET / HTTP/1.1\r\nno colon here\r\n\r\n")

        assert exc_info.value.status_code == 400

    def test_parse_incomplete_head(self):
        with pytest.raises(HTTPParseError):
            parse_request(b"GET / HTTP/1.1\r\nHost: x\r\n")

    def test_transfer_encoding_not_implemented(self):
        raw = b"POST / HTTP/1.1\r\nTransfer-Encoding: chunked\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 501

    @pytest.mark.parametrize("value", [b"abc", b"-1", b"\xb2", b"1\xb2"])
    def test_bad_content_length(self, value):
        raw = b"POST / HTTP/1.1\r\nContent-Length: " + value + b"\r\n\r\n"

        with pytest.raises(HTTPParseError) as exc_info:
            parse_request(raw)

        assert exc_info.value.status_code == 400

    def test_conflicting_content_length(self):
        raw = (b"POST / HTTP/1.1\r\nContent-Length: 1\r\n"
               b"Content-Length: 2\r\n\r\nab")

        with pytest.raises(HTTPParseError):
            parse_request(raw)

    def test_short_body(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\nabc"

        with pytest.raises(HTTPParseError):
            parse_request(raw)

    def test_parse_streaming_attaches_stream(self):
        opened = []

        def open_body(length):
            opened.append(length)
            return io.BytesIO(b"hello")

        request = RequestParser().parse_streaming(
            b"POST /up HTTP/1.1\r\nContent-Length: 5", open_body
        )

        assert opened == [5]
        assert isinstance(request.get_entity().body, BodyStream)
        assert request.get_binary_payload() == b"hello"

    def test_parse_streaming_no_body(self):
        def open_body(length):
            raise AssertionError("no body to open")

        request = RequestParser().parse_streaming(b"GET / HTTP/1.1", open_body)

        assert not request.has_entity_body()


class TestURILimit:
    """414 boundaries for the request-target."""

    def test_at_limit_accepted(self):
        """A target exactly max_uri_length long passes."""
        request = parser_with(max_uri_length=2).parse(b"GET /a HTTP/1.1\r\n\r\n")

        assert request.raw_path == "/a"

    def test_one_over_limit_rejected(self):
        with pytest.raises(LimitExceededError) as exc_info:
            parser_with(max_uri_length=2).parse(b"GET /ab HTTP/1.1\r\n\r\n")

        assert exc_info.value.status_code == 414
        assert exc_info.value.limit == 2
        assert exc_info.value.actual == 3

    def test_query_counts_toward_limit(self):
        with pytest.raises(LimitExceededError) as exc_info:
            parser_with(max_uri_length=10).parse(b"GET /a?b=cdefghij HTTP/1.1\r\n\r\n")

        assert exc_info.value.status_code == 414

    def test_uri_checked_before_method(self):
        """An oversized target is a 414 even with an unknown method."""
        with pytest.raises(LimitExceededError):
            parser_with(max_uri_length=2).parse(b"BREW /abc HTTP/1.1\r\n\r\n")


class TestHeaderLimit:
    """413 boundaries for the header block."""

    def test_at_limit_accepted(self):
        raw = b"GET / HTTP/1.1\r\n" + header_block_of(30) + b"\r\n"

        request = parser_with(max_header_size=30).parse(raw)

        assert request.has_header("X-Pad")

    def test_one_over_limit_rejected(self):
        raw = b"GET / HTTP/1.1\r\n" + header_block_of(31) + b"\r\n"

        with pytest.raises(LimitExceededError) as exc_info:
            parser_with(max_header_size=30).parse(raw)

        assert exc_info.value.status_code == 413
        assert exc_info.value.actual == 31

    def test_many_small_headers_sum(self):
        """The whole block counts, not individual lines."""
        raw = b"GET / HTTP/1.1\r\n" + header_block_of(20) * 2 + b"\r\n"

        with pytest.raises(LimitExceededError):
            parser_with(max_header_size=30).parse(raw)

    def test_request_line_not_counted(self):
        raw = b"GET /" + b"a" * 100 + b" HTTP/1.1\r\n\r\n"

        request = parser_with(max_header_size=1).parse(raw)

        assert request.get_header_names() == []


class TestBodyLimit:
    """413 for declared bodies over max_entity_body_size."""

    def test_over_limit(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: 11\r\n\r\n" + b"x" * 11

        with pytest.raises(LimitExceededError) as exc_info:
            parser_with(max_entity_body_size=10).parse(raw)

        assert exc_info.value.status_code == 413

    def test_at_limit(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: 10\r\n\r\n" + b"x" * 10

        request = parser_with(max_entity_body_size=10).parse(raw)

        assert request.get_binary_payload() == b"x" * 10

    def test_unlimited(self):
        raw = b"POST / HTTP/1.1\r\nContent-Length: 5\r\n\r\nhello"

        assert parser_with(max_entity_body_size=-1).parse(raw).has_entity_body()


class TestResourceLimitGuard:
    """Tests for the guard itself."""

    def test_invalid_limits(self):
        with pytest.raises(ValueError):
            ResourceLimitGuard(0, 100)
        with pytest.raises(ValueError):
            ResourceLimitGuard(100, -1)

    def test_from_config(self):
        guard = ResourceLimitGuard.from_config(
            ListenerConfig(max_uri_length=10, max_header_size=20, max_entity_body_size=30)
        )

        assert (guard.max_uri_length, guard.max_header_size,
                guard.max_entity_body_size) == (10, 20, 30)

    def test_request_line_buffer(self):
        guard = ResourceLimitGuard(10, 100)

        guard.check_request_line_buffer(guard.max_request_line_bytes)
        with pytest.raises(LimitExceededError) as exc_info:
            guard.check_request_line_buffer(guard.max_request_line_bytes + 1)

        assert exc_info.value.status_code == 414

    def test_independent_guards(self):
        """Two guards enforce their own limits."""
        strict = parser_with(max_uri_length=5)
        lenient = parser_with(max_uri_length=50)
        raw = b"GET /0123456789 HTTP/1.1\r\n\r\n"

        assert lenient.parse(raw).raw_path == "/0123456789"
        with pytest.raises(LimitExceededError):
            strict.parse(raw)
