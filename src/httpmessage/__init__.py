"""
=============================================================================
HTTPMESSAGE - HTTP/1.x Request Message Model
=============================================================================

An inbound HTTP request as a Python object: headers, a typed entity body,
query / matrix / form parameters and Cache-Control directives. A small
socket listener sits in front of it and rejects oversized requests (414,
413) before any Request is built.

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    httpmessage/
    ├── __init__.py          # Package exports
    ├── __main__.py          # CLI entry point (python -m httpmessage)
    ├── server.py            # Listener: socket + limits + handler
    ├── config.py            # ListenerConfig dataclass
    ├── errors.py            # RequestError family, HTTPParseError
    ├── core/                # Socket-level components
    │   ├── socket_server.py # Bind / accept loop
    │   └── connection.py    # Head buffering, body streaming
    └── http/                # Message model
        ├── request.py       # Request
        ├── entity.py        # Entity, BodyStream, PayloadKind
        ├── headers.py       # HeaderTable
        ├── cache_control.py # CacheControl
        ├── parser.py        # Raw head → Request
        ├── limits.py        # ResourceLimitGuard (414 / 413)
        ├── response.py      # HTTPResponse
        └── status_codes.py  # HTTPStatus

=============================================================================
QUICK START
=============================================================================

    from httpmessage import Listener, ListenerConfig
    from httpmessage.http import json_response

    def handler(request):
        return json_response({
            "path": request.path,
            "query": request.get_query_params(),
            "body": request.get_json_payload() if request.has_entity_body() else None,
        })

    Listener(handler, ListenerConfig(port=8080, max_uri_length=2048)).run()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ListenerConfig
from .errors import (
    ContentTypeError,
    EntityConstructionError,
    EntityConsumedError,
    HeaderNotFoundError,
    HTTPParseError,
    InvalidContentTypeError,
    LimitExceededError,
    MissingContentTypeError,
    PayloadDecodingError,
    RequestError,
)
from .http import CacheControl, Entity, HeaderTable, PayloadKind, Request
from .server import Listener

__all__ = [
    "Listener",
    "ListenerConfig",
    "Request",
    "Entity",
    "HeaderTable",
    "CacheControl",
    "PayloadKind",
    "RequestError",
    "EntityConstructionError",
    "EntityConsumedError",
    "HeaderNotFoundError",
    "ContentTypeError",
    "MissingContentTypeError",
    "InvalidContentTypeError",
    "PayloadDecodingError",
    "HTTPParseError",
    "LimitExceededError",
    "__version__",
]
