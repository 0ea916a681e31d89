"""
Unit tests for HTTP response serialization.
"""

import json
from datetime import datetime, timezone

from httpmessage.http.response import (
    HTTPResponse,
    continue_response,
    error_response,
    format_http_date,
    json_response,
    text_response,
)
from httpmessage.http.status_codes import HTTPStatus, reason_phrase


class TestHTTPResponse:
    """Tests for HTTPResponse class."""

    def test_status_line(self):
        """Test status line generation."""
        response = HTTPResponse(status=HTTPStatus.OK)
        assert response.status_line == "HTTP/1.1 200 OK"

        response = HTTPResponse(status=HTTPStatus.URI_TOO_LONG)
        assert response.status_line == "HTTP/1.1 414 Request-URI Too Long"

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
        assert b"Server: httpmessage/1.0\r\n" in result
        assert b"\r\n\r\ntest" in result

    def test_to_bytes_keeps_explicit_headers(self):
        response = HTTPResponse(headers={"Server": "custom", "Content-Length": "0"})
        result = response.to_bytes("ignored/1.0")

        assert b"Server: custom\r\n" in result
        assert b"ignored" not in result

    def test_set_header_chaining(self):
        """Test method chaining for headers."""
        response = (HTTPResponse()
            .set_header("X-One", "1")
            .set_header("X-Two", "2"))

        assert response.headers == {"X-One": "1", "X-Two": "2"}


class TestConvenienceFunctions:
    """Tests for the response factory functions."""

    def test_json_response(self):
        response = json_response({"ok": True}, HTTPStatus.OK, {"X-Extra": "1"})

        assert response.headers["Content-Type"] == "application/json"
        assert response.headers["X-Extra"] == "1"
        assert json.loads(response.body) == {"ok": True}

    def test_text_response(self):
        response = text_response("héllo")

        assert response.body == "héllo".encode("utf-8")
        assert response.headers["Content-Type"].startswith("text/plain")

    def test_error_response_closes(self):
        """Rejection responses always close the connection."""
        response = error_response(HTTPStatus.PAYLOAD_TOO_LARGE, "too big")

        assert response.status == 413
        assert response.headers["Connection"] == "close"
        assert json.loads(response.body) == {"error": "too big"}

    def test_continue_response(self):
        assert continue_response() == b"HTTP/1.1 100 Continue\r\n\r\n"


class TestHTTPStatus:
    """Tests for HTTPStatus enum."""

    def test_status_phrases(self):
        assert HTTPStatus.PAYLOAD_TOO_LARGE.phrase == "Request Entity Too Large"
        assert HTTPStatus.NOT_IMPLEMENTED.phrase == "Not Implemented"

    def test_status_categories(self):
        assert HTTPStatus.URI_TOO_LONG.is_error
        assert not HTTPStatus.CONTINUE.is_error

    def test_reason_phrase_unknown(self):
        assert reason_phrase(418) == "Unknown"
        assert reason_phrase(404) == "Not Found"


class TestFormatHTTPDate:
    """Tests for HTTP date formatting."""

    def test_format(self):
        dt = datetime(2026, 10, 18, 10, 0, 0, tzinfo=timezone.utc)

        assert format_http_date(dt) == "Sun, 18 Oct 2026 10:00:00 GMT"
