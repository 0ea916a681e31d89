"""
=============================================================================
REQUEST MESSAGE ERRORS
=============================================================================

Every failure the request message layer can report has its own exception
class, so handler code can branch on the KIND of failure:

    try:
        data = request.get_json_payload()
    except EntityConsumedError:
        ...   # somebody already read the stream
    except PayloadDecodingError:
        ...   # body is not valid JSON

=============================================================================
ERROR TAXONOMY
=============================================================================

    RequestError
    ├── EntityConstructionError    body could not be materialized
    ├── EntityConsumedError        streamed body read a second time
    ├── HeaderNotFoundError        lookup miss on a required header
    ├── ContentTypeError
    │   ├── MissingContentTypeError   no Content-Type header at all
    │   └── InvalidContentTypeError   Content-Type present but wrong
    └── PayloadDecodingError       JSON / XML / text / multipart decode failed

Size limit violations (414 / 413) are NOT in this tree. They happen before a
Request exists and are reported by the transport boundary as
HTTPParseError / LimitExceededError, defined at the bottom of this module.

=============================================================================
"""

from typing import Optional


class RequestError(Exception):
    """Base class for errors raised by the request message layer."""


class EntityConstructionError(RequestError):
    """
    The entity body could not be materialized.

    Raised when the transport stream backing the body was closed, failed
    mid-read (client disconnect, timeout) or delivered fewer bytes than
    Content-Length promised.
    """


class EntityConsumedError(RequestError):
    """A streamed body was already handed to a reader and cannot be read again."""


class HeaderNotFoundError(RequestError, KeyError):
    """
    A header lookup found nothing.

    Also a KeyError, so mapping-style callers can catch it the usual way.
    """

    def __init__(self, name: str):
        super().__init__(f"Header not found: {name}")
        self.name = name

    def __str__(self) -> str:
        # KeyError.__str__ would repr() the message
        return self.args[0]


class ContentTypeError(RequestError):
    """Base for Content-Type precondition failures."""

    def __init__(self, message: str, expected: str, actual: Optional[str] = None):
        super().__init__(message)
        self.expected = expected
        self.actual = actual


class MissingContentTypeError(ContentTypeError):
    """The operation needs a Content-Type header and the request has none."""

    def __init__(self, expected: str):
        super().__init__(f"Content-Type header is not available, expected {expected}",
                         expected)


class InvalidContentTypeError(ContentTypeError):
    """The Content-Type header does not match what the operation requires."""

    def __init__(self, expected: str, actual: str):
        super().__init__(f"Invalid content type: expected {expected}, got {actual}",
                         expected, actual)


class PayloadDecodingError(RequestError):
    """
    Content-type specific decoding failed.

    The original exception (json.JSONDecodeError, ParseError, ...) is
    chained as __cause__.
    """

    def __init__(self, message: str, content_type: Optional[str] = None):
        super().__init__(message)
        self.content_type = content_type


# =============================================================================
# TRANSPORT BOUNDARY ERRORS
# =============================================================================
#
# These never reach handler code. The listener turns them into an HTTP
# error response and closes the connection.
#

class HTTPParseError(Exception):
    """
    Raised when an inbound request cannot become a Request.

    Carries the HTTP status code to answer with:

        400 Bad Request                 - Malformed request syntax
        405 Method Not Allowed          - Unknown method token
        413 Payload Too Large           - Header block / body over limit
        414 URI Too Long                - Request-target over limit
        505 HTTP Version Not Supported  - Unknown HTTP version
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


class LimitExceededError(HTTPParseError):
    """A per-listener resource limit was exceeded."""

    def __init__(self, message: str, status_code: int, limit: int, actual: int):
        super().__init__(message, status_code)
        self.limit = limit
        self.actual = actual
