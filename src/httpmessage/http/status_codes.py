"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The status codes the listener itself can answer with. Handlers may return
any integer status; only these need a reason phrase from us.

    ┌────────┬──────────────────────────────────────────────────────────┐
    │  100   │ interim answer to "Expect: 100-continue"                 │
    │  200   │ default handler response                                 │
    │  400   │ malformed request line or headers                        │
    │  405   │ unknown method token                                     │
    │  408   │ client too slow to send the request head                 │
    │  413   │ header block or declared body over the listener limit    │
    │  414   │ request-target over the listener limit                   │
    │  500   │ handler raised                                           │
    │  501   │ Transfer-Encoding on a request (not supported)           │
    │  505   │ unsupported HTTP version                                 │
    └────────┴──────────────────────────────────────────────────────────┘

=============================================================================
"""

from enum import IntEnum


class HTTPStatus(IntEnum):
    """
    Status codes as integers with a .phrase property.

        >>> HTTPStatus.URI_TOO_LONG == 414
        True
        >>> HTTPStatus.URI_TOO_LONG.phrase
        'Request-URI Too Long'
    """

    CONTINUE = 100

    OK = 200
    NO_CONTENT = 204

    BAD_REQUEST = 400
    NOT_FOUND = 404
    METHOD_NOT_ALLOWED = 405
    REQUEST_TIMEOUT = 408
    PAYLOAD_TOO_LARGE = 413
    URI_TOO_LONG = 414

    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    HTTP_VERSION_NOT_SUPPORTED = 505

    @property
    def phrase(self) -> str:
        return _STATUS_PHRASES.get(self, "Unknown")

    @property
    def is_error(self) -> bool:
        return self >= 400


# Reason phrases are informational (RFC 7230 §3.1.2); the status code is
# the contract. 413/414 use the RFC 2616 wording.
_STATUS_PHRASES = {
    HTTPStatus.CONTINUE: "Continue",
    HTTPStatus.OK: "OK",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.METHOD_NOT_ALLOWED: "Method Not Allowed",
    HTTPStatus.REQUEST_TIMEOUT: "Request Timeout",
    HTTPStatus.PAYLOAD_TOO_LARGE: "Request Entity Too Large",
    HTTPStatus.URI_TOO_LONG: "Request-URI Too Long",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
    HTTPStatus.HTTP_VERSION_NOT_SUPPORTED: "HTTP Version Not Supported",
}


def reason_phrase(status: int) -> str:
    """Reason phrase for any integer status, "Unknown" if we have none."""
    try:
        return HTTPStatus(status).phrase
    except ValueError:
        return "Unknown"
