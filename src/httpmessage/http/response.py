"""
=============================================================================
HTTP RESPONSE
=============================================================================

Minimal response model used by the listener: the handler's answer, the
interim "100 Continue", and the error responses for requests rejected at
the transport boundary (414, 413, 400, ...).

    HTTPResponse(status=414, body=b'{"error": "URI too long: 5000 > 4096"}')
        │
        └── to_bytes()
              │
              ▼
        HTTP/1.1 414 Request-URI Too Long\r\n
        Content-Type: application/json\r\n
        Content-Length: 38\r\n
        Date: Sun, 18 Oct 2026 10:00:00 GMT\r\n
        Server: httpmessage/1.0\r\n
        \r\n
        {"error": "URI too long: 5000 > 4096"}

=============================================================================
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from email.utils import format_datetime
from typing import Any, Dict, Optional, Union

from .status_codes import HTTPStatus, reason_phrase


@dataclass
class HTTPResponse:
    """A response to be written to the client connection."""

    status: int = HTTPStatus.OK
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        return f"{self.version} {int(self.status)} {reason_phrase(self.status)}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        self.headers[name] = value
        return self

    def to_bytes(self, server_name: str = "httpmessage/1.0") -> bytes:
        """
        Serialize for socket.sendall().

        Content-Length, Date and Server are added when missing.
        """
        response_headers = dict(self.headers)

        if "Content-Length" not in response_headers:
            response_headers["Content-Length"] = str(len(self.body))
        if "Date" not in response_headers:
            response_headers["Date"] = format_http_date(datetime.now(timezone.utc))
        if "Server" not in response_headers:
            response_headers["Server"] = server_name

        lines = [self.status_line]
        for name, value in response_headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")

        header_bytes = "\r\n".join(lines).encode("latin-1") + b"\r\n"
        return header_bytes + self.body


def format_http_date(dt: datetime) -> str:
    """RFC 7231 IMF-fixdate, e.g. "Sun, 18 Oct 2026 10:00:00 GMT"."""
    return format_datetime(dt.astimezone(timezone.utc), usegmt=True)


def continue_response() -> bytes:
    """Interim "100 Continue" line sent before the client streams a body."""
    return b"HTTP/1.1 100 Continue\r\n\r\n"


def json_response(data: Any, status: int = HTTPStatus.OK,
                  headers: Optional[Dict[str, str]] = None) -> HTTPResponse:
    response = HTTPResponse(
        status=status,
        headers={"Content-Type": "application/json"},
        body=json.dumps(data).encode("utf-8"),
    )
    response.headers.update(headers or {})
    return response


def text_response(text: Union[str, bytes], status: int = HTTPStatus.OK,
                  content_type: str = "text/plain; charset=utf-8") -> HTTPResponse:
    body = text.encode("utf-8") if isinstance(text, str) else text
    return HTTPResponse(status=status, headers={"Content-Type": content_type}, body=body)


def error_response(status: int, message: str) -> HTTPResponse:
    """
    Error response that also closes the connection.

    Used for requests rejected before (or instead of) reaching a handler.
    """
    return json_response({"error": message}, status, {"Connection": "close"})
