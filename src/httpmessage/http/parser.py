"""
=============================================================================
REQUEST HEAD PARSER (TRANSPORT BOUNDARY)
=============================================================================

Turns the raw request head into a Request, enforcing the listener's
resource limits on the way. This is the last point where a request can be
rejected with a bare status code; once a Request is built, failures are
the message layer's typed errors.

=============================================================================
PIPELINE
=============================================================================

        raw head bytes (everything before \r\n\r\n)
              │
              ▼
        ┌───────────────────────────────────────────────────────────────┐
        │  1. Request line   METHOD SP target SP version   → 400        │
        │  2. URI limit      len(target) > max_uri_length  → 414        │
        │  3. Method         not a known token             → 405        │
        │  4. Version        not HTTP/1.0 or HTTP/1.1      → 505        │
        │  5. Header limit   header block > max_header_size → 413       │
        │  6. Headers        "Name: value" into HeaderTable            │
        │  7. Body framing   Content-Length checks          → 400/413   │
        └───────────────────────────────────────────────────────────────┘
              │
              ▼
        Request(method, raw_path, http_version, headers, body)

Steps 2 and 5 run before any header is parsed: an oversized request never
produces a message object.

=============================================================================
"""

import logging
import re
from dataclasses import dataclass
from typing import BinaryIO, Callable, Optional, Tuple

from ..errors import HTTPParseError
from .entity import BodyStream
from .headers import HeaderTable
from .limits import ResourceLimitGuard
from .request import MutualTLSOutcome, Request
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


HEAD_TERMINATOR = b"\r\n\r\n"
_DIGITS = re.compile(r"[0-9]+")

# Generous defaults used when no listener config is supplied
DEFAULT_MAX_URI_LENGTH = 4096
DEFAULT_MAX_HEADER_SIZE = 8192


@dataclass
class RequestHead:
    """The parsed request line and headers, before a body is attached."""

    method: str
    target: str
    version: str
    headers: HeaderTable
    header_block_size: int = 0

    @property
    def content_length(self) -> int:
        """
        Declared Content-Length, 0 when absent.

        Raises:
            HTTPParseError: 400 for non-numeric or conflicting values.
        """
        if not self.headers.has("Content-Length"):
            return 0
        values = {v.strip() for v in self.headers.get_all("Content-Length")}
        if len(values) != 1:
            raise HTTPParseError("Conflicting Content-Length headers")
        value = values.pop()
        if not _DIGITS.fullmatch(value):
            raise HTTPParseError(f"Invalid Content-Length: {value}")
        return int(value)


class RequestParser:
    """
    Parses request heads and builds Request objects for one listener.

    Args:
        guard: The listener's ResourceLimitGuard. A generous default guard
               is used when omitted.
    """

    VALID_METHODS = {
        "GET", "POST", "PUT", "DELETE", "PATCH",
        "HEAD", "OPTIONS", "TRACE", "CONNECT",
    }

    REQUEST_LINE_PATTERN = re.compile(r"^([A-Z]+) ([^ ]+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(r"^([^:\s]+):\s*(.*)$")

    def __init__(self, guard: Optional[ResourceLimitGuard] = None):
        self.guard = guard or ResourceLimitGuard(
            DEFAULT_MAX_URI_LENGTH, DEFAULT_MAX_HEADER_SIZE
        )

    def parse_head(self, head: bytes) -> RequestHead:
        """
        Parse a request head.

        Args:
            head: Bytes before the blank line, request line included,
                  without the final \\r\\n\\r\\n.

        Raises:
            HTTPParseError: For malformed heads (400/405/505).
            LimitExceededError: For heads over the listener limits (414/413).
        """
        line_end = head.find(b"\r\n")
        request_line_bytes = head if line_end == -1 else head[:line_end]
        header_bytes = b"" if line_end == -1 else head[line_end + 2:]

        # ---------------------------------------------------------------------
        # Request line
        # ---------------------------------------------------------------------
        request_line = request_line_bytes.decode("latin-1")
        match = self.REQUEST_LINE_PATTERN.match(request_line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {request_line[:100]!r}")
        method, target, version = match.groups()

        self.guard.check_uri(target)

        if method not in self.VALID_METHODS:
            raise HTTPParseError(f"Invalid method: {method}",
                                 status_code=HTTPStatus.METHOD_NOT_ALLOWED)
        if version not in ("HTTP/1.0", "HTTP/1.1"):
            raise HTTPParseError(f"Unsupported HTTP version: {version}",
                                 status_code=HTTPStatus.HTTP_VERSION_NOT_SUPPORTED)

        # ---------------------------------------------------------------------
        # Header block: every header line plus its CRLF
        # ---------------------------------------------------------------------
        header_block_size = len(header_bytes) + 2 if header_bytes else 0
        self.guard.check_header_block(header_block_size)

        headers = self._parse_headers(header_bytes.decode("latin-1"))

        return RequestHead(method, target, version, headers, header_block_size)

    def _parse_headers(self, section: str) -> HeaderTable:
        """
        Parse header lines into a HeaderTable.

        Unlike a dict, the table keeps every repeated line as its own
        value and remembers the casing each name arrived with. Obsolete
        line folding (continuation lines starting with space or tab) is
        joined onto the previous value.
        """
        fields = []

        for line in section.split("\r\n"):
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if fields:
                    name, value = fields[-1]
                    fields[-1] = (name, f"{value} {line.strip()}")
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                raise HTTPParseError(f"Invalid header line: {line[:100]!r}")

            name, value = match.groups()
            fields.append((name, value.strip()))

        return HeaderTable(fields)

    def build_request(
        self,
        head: RequestHead,
        body: Optional[object] = None,
        client_address: Tuple[str, int] = ("", 0),
        mutual_tls_outcome: MutualTLSOutcome = MutualTLSOutcome.NONE,
    ) -> Request:
        """Wrap a parsed head and its body source in a Request."""
        return Request(
            method=head.method,
            raw_path=head.target,
            http_version=head.version,
            headers=head.headers,
            body=body,
            mutual_tls_outcome=mutual_tls_outcome,
            client_address=client_address,
        )

    def check_body_framing(self, head: RequestHead) -> int:
        """
        Validate how the body is delimited and return its length.

        Raises:
            HTTPParseError: 501 for Transfer-Encoding, 400 for a bad length.
            LimitExceededError: 413 for a body over max_entity_body_size.
        """
        if head.headers.has("Transfer-Encoding"):
            raise HTTPParseError("Transfer-Encoding is not supported",
                                 status_code=HTTPStatus.NOT_IMPLEMENTED)
        length = head.content_length
        self.guard.check_body_length(length)
        return length

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> Request:
        """
        Parse a complete, in-memory request (head and body).

        The body becomes an in-memory entity body, readable any number of
        times. For requests still arriving on a socket see
        core.connection.Connection.read_request(), which attaches a
        BodyStream instead.

        Raises:
            HTTPParseError / LimitExceededError: See parse_head().
        """
        head_end = data.find(HEAD_TERMINATOR)
        if head_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")

        head = self.parse_head(data[:head_end])
        length = self.check_body_framing(head)

        body_start = head_end + len(HEAD_TERMINATOR)
        body = data[body_start:body_start + length]
        if len(body) < length:
            raise HTTPParseError(
                f"Incomplete body: expected {length} bytes, got {len(body)}"
            )

        logger.debug(f"Parsed {head.method} {head.target} ({length} body bytes)")
        return self.build_request(head, body if length else None, client_address)

    def parse_streaming(
        self,
        head_bytes: bytes,
        open_body: Callable[[int], BinaryIO],
        client_address: Tuple[str, int] = ("", 0),
        mutual_tls_outcome: MutualTLSOutcome = MutualTLSOutcome.NONE,
    ) -> Request:
        """
        Parse a head and attach a not-yet-read body stream.

        Args:
            head_bytes: Request head without the final \\r\\n\\r\\n.
            open_body: Called with the validated Content-Length; returns a
                       reader positioned at the first body byte. Not called
                       for requests without a body.
        """
        head = self.parse_head(head_bytes)
        length = self.check_body_framing(head)
        body = BodyStream(open_body(length), length) if length else None
        return self.build_request(head, body, client_address, mutual_tls_outcome)


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    guard: Optional[ResourceLimitGuard] = None,
) -> Request:
    """One-shot convenience wrapper around RequestParser.parse()."""
    return RequestParser(guard).parse(data, client_address)
