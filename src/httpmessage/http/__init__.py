"""
=============================================================================
HTTP MESSAGE MODEL
=============================================================================

The request side of HTTP/1.x as objects, plus the transport boundary that
builds them.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST (request.py)                                                │
    │   method, raw path, version, headers, entity                        │
    │   typed payload getters/setters (JSON, XML, text, binary, stream,   │
    │   multipart), query / matrix / form params, Cache-Control           │
    ├─────────────────────────────────────────────────────────────────────┤
    │ ENTITY (entity.py)                                                  │
    │   headers + body; BodyStream for single-consumption bodies          │
    ├─────────────────────────────────────────────────────────────────────┤
    │ HEADERS (headers.py)                                                │
    │   case-insensitive, multi-valued, order-preserving HeaderTable      │
    ├─────────────────────────────────────────────────────────────────────┤
    │ CACHE-CONTROL (cache_control.py)                                    │
    │   request directives as an immutable CacheControl value             │
    ├─────────────────────────────────────────────────────────────────────┤
    │ TRANSPORT BOUNDARY (parser.py, limits.py)                           │
    │   raw head → Request; 414 / 413 before the Request exists           │
    ├─────────────────────────────────────────────────────────────────────┤
    │ RESPONSE (response.py, status_codes.py)                             │
    │   what the listener writes back                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .headers import HeaderTable
from .cache_control import ANY_AGE, CacheControl, parse_cache_control
from .entity import BodyStream, Entity, PayloadKind
from .request import MutualTLSOutcome, Request, payload_kind_of
from .limits import ResourceLimitGuard
from .parser import RequestHead, RequestParser, parse_request
from .response import (
    HTTPResponse,
    continue_response,
    error_response,
    json_response,
    text_response,
)
from .status_codes import HTTPStatus, reason_phrase

__all__ = [
    # Message model
    "Request",
    "Entity",
    "BodyStream",
    "PayloadKind",
    "payload_kind_of",
    "MutualTLSOutcome",
    "HeaderTable",
    "CacheControl",
    "ANY_AGE",
    "parse_cache_control",
    # Transport boundary
    "RequestParser",
    "RequestHead",
    "ResourceLimitGuard",
    "parse_request",
    # Response
    "HTTPResponse",
    "HTTPStatus",
    "reason_phrase",
    "json_response",
    "text_response",
    "error_response",
    "continue_response",
]
