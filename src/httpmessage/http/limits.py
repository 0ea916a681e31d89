"""
=============================================================================
RESOURCE LIMIT GUARD
=============================================================================

Per-listener size limits, checked at the transport boundary BEFORE a
Request object exists.

=============================================================================
LIMITS
=============================================================================

    ┌────────────────────────┬────────┬─────────────────────────────────────┐
    │ Limit                  │ Status │ Measures                            │
    ├────────────────────────┼────────┼─────────────────────────────────────┤
    │ max_uri_length         │  414   │ characters of the request-target    │
    │                        │        │ (path + query, as sent)             │
    │ max_header_size        │  413   │ bytes of all header lines, CRLFs    │
    │                        │        │ included, request line excluded     │
    │ max_entity_body_size   │  413   │ declared Content-Length (-1 = off)  │
    └────────────────────────┴────────┴─────────────────────────────────────┘

Limits are INCLUSIVE: a value equal to the limit is accepted.

    max_uri_length = 2
        GET /a HTTP/1.1    → len("/a")  == 2 → accepted
        GET /ab HTTP/1.1   → len("/ab") == 3 → 414 URI Too Long

=============================================================================
WHY BEFORE THE REQUEST EXISTS?
=============================================================================

The whole point of a limit is to stop work early. If we built a Request
for a 1 MB URL we would already have paid for buffering, decoding and
allocating it. The connection checks the same limits while it is still
buffering (see core/connection.py) so an attacker cannot make us hold an
unbounded head in memory.

=============================================================================
"""

import logging

from ..errors import LimitExceededError
from .status_codes import HTTPStatus


logger = logging.getLogger(__name__)


# Room for the method token, two spaces, the version and CRLF around the
# request-target on the request line.
REQUEST_LINE_OVERHEAD = 32


class ResourceLimitGuard:
    """
    Enforces one listener's size limits.

    Args:
        max_uri_length: Maximum request-target length in characters (> 0).
        max_header_size: Maximum header block size in bytes (> 0).
        max_entity_body_size: Maximum declared body size in bytes,
                              -1 for no limit.
    """

    def __init__(self, max_uri_length: int, max_header_size: int,
                 max_entity_body_size: int = -1):
        if max_uri_length <= 0:
            raise ValueError(f"max_uri_length must be > 0, got {max_uri_length}")
        if max_header_size <= 0:
            raise ValueError(f"max_header_size must be > 0, got {max_header_size}")
        self.max_uri_length = max_uri_length
        self.max_header_size = max_header_size
        self.max_entity_body_size = max_entity_body_size

    @classmethod
    def from_config(cls, config) -> "ResourceLimitGuard":
        """Build a guard from a ListenerConfig."""
        return cls(
            max_uri_length=config.max_uri_length,
            max_header_size=config.max_header_size,
            max_entity_body_size=config.max_entity_body_size,
        )

    @property
    def max_request_line_bytes(self) -> int:
        """Longest request line that can still carry an acceptable target."""
        return self.max_uri_length + REQUEST_LINE_OVERHEAD

    def check_uri(self, target: str) -> None:
        """
        Raises:
            LimitExceededError: 414 if the request-target is too long.
        """
        if len(target) > self.max_uri_length:
            logger.warning(
                f"Rejecting request: URI length {len(target)} exceeds {self.max_uri_length}"
            )
            raise LimitExceededError(
                f"URI too long: {len(target)} > {self.max_uri_length}",
                status_code=HTTPStatus.URI_TOO_LONG,
                limit=self.max_uri_length,
                actual=len(target),
            )

    def check_request_line_buffer(self, buffered: int) -> None:
        """
        Early check while the request line is still incomplete.

        If this many bytes arrived without a line terminator, the target
        can only be longer than the limit.
        """
        if buffered > self.max_request_line_bytes:
            logger.warning(f"Rejecting request: request line exceeds {buffered} bytes")
            raise LimitExceededError(
                "URI too long: request line not terminated",
                status_code=HTTPStatus.URI_TOO_LONG,
                limit=self.max_uri_length,
                actual=buffered,
            )

    def check_header_block(self, size: int) -> None:
        """
        Raises:
            LimitExceededError: 413 if the header block is too large.
        """
        if size > self.max_header_size:
            logger.warning(
                f"Rejecting request: header block {size} bytes exceeds {self.max_header_size}"
            )
            raise LimitExceededError(
                f"Request headers too large: {size} > {self.max_header_size}",
                status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
                limit=self.max_header_size,
                actual=size,
            )

    def check_body_length(self, length: int) -> None:
        """
        Raises:
            LimitExceededError: 413 if the declared body is too large.
        """
        if 0 <= self.max_entity_body_size < length:
            logger.warning(
                f"Rejecting request: body {length} bytes exceeds {self.max_entity_body_size}"
            )
            raise LimitExceededError(
                f"Request entity too large: {length} > {self.max_entity_body_size}",
                status_code=HTTPStatus.PAYLOAD_TOO_LARGE,
                limit=self.max_entity_body_size,
                actual=length,
            )

    def __repr__(self) -> str:
        return (f"ResourceLimitGuard(max_uri_length={self.max_uri_length}, "
                f"max_header_size={self.max_header_size}, "
                f"max_entity_body_size={self.max_entity_body_size})")
