"""
=============================================================================
HTTP REQUEST MESSAGE
=============================================================================

The object handler code receives for every inbound request. It wraps one
Entity (headers + body) and adds request metadata plus a few values that
are derived on demand.

=============================================================================
REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                          Request                                    │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │  METADATA (fixed at construction)                                   │
    │    method, raw_path, http_version, user_agent, extra_path_info,    │
    │    mutual_tls_outcome, client_address                               │
    │                                                                     │
    │  ENTITY (exclusively owned)                                         │
    │    ┌───────────────────────────────────────────────────────────┐    │
    │    │  HeaderTable      Content-Type, Accept, Cache-Control ... │    │
    │    │  body             bytes | BodyStream | [Entity, ...]      │    │
    │    └───────────────────────────────────────────────────────────┘    │
    │                                                                     │
    │  DERIVED (computed on first access, then cached)                    │
    │    query params   "?a=1&a=2"      → {"a": ["1", "2"]}              │
    │    matrix params  "/cars;color=red" → {"/cars": {"color": "red"}}  │
    │    cache control  "no-cache"      → CacheControl(no_cache=True)    │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PAYLOAD ACCESS
=============================================================================

    get_json_payload()    → Any                  application/json
    get_xml_payload()     → ElementTree.Element  application/xml
    get_text_payload()    → str                  text/plain
    get_binary_payload()  → bytes                application/octet-stream
    get_byte_stream()     → file-like            application/octet-stream
    get_body_parts()      → list[Entity]         multipart/form-data

A body still on the wire can be consumed ONCE: the first getter reads it,
any later getter raises EntityConsumedError. In-memory bodies (including
everything set through a set_*_payload method) can be read repeatedly.

=============================================================================
CONCURRENCY
=============================================================================

A Request belongs to one handler task at a time. There is no locking: do
not share an instance between threads.

=============================================================================
"""

import json
import logging
from enum import Enum
from typing import Any, BinaryIO, Dict, List, Optional, Tuple
from urllib.parse import parse_qs, unquote, unquote_plus
from xml.etree import ElementTree

from ..errors import InvalidContentTypeError, MissingContentTypeError
from .cache_control import CacheControl, parse_cache_control
from .entity import (
    DEFAULT_CONTENT_TYPES,
    BodyStream,
    Entity,
    PayloadKind,
    charset_of,
    media_type_of,
)
from .headers import HeaderTable


logger = logging.getLogger(__name__)


CACHE_CONTROL = "Cache-Control"
EXPECT = "Expect"
COOKIE = "Cookie"
USER_AGENT = "User-Agent"

FORM_URLENCODED = "application/x-www-form-urlencoded"
CONTINUE_EXPECTATION = "100-continue"


class MutualTLSOutcome(Enum):
    """Result of the client certificate check, decided by the transport."""
    PASSED = "passed"
    FAILED = "failed"
    NONE = "none"


def payload_kind_of(payload: Any) -> PayloadKind:
    """
    Classify a payload for set_payload().

    The set of kinds is closed; anything that fits none of them is a
    TypeError rather than a guess.
    """
    if isinstance(payload, str):
        return PayloadKind.TEXT
    if isinstance(payload, ElementTree.Element):
        return PayloadKind.XML
    if isinstance(payload, (bytes, bytearray, memoryview)):
        return PayloadKind.BINARY
    if isinstance(payload, BodyStream) or callable(getattr(payload, "read", None)):
        return PayloadKind.STREAM
    if isinstance(payload, list) and payload and all(isinstance(p, Entity) for p in payload):
        return PayloadKind.PARTS
    if payload is None or isinstance(payload, (dict, list, int, float, bool)):
        return PayloadKind.JSON
    raise TypeError(f"Unsupported payload type: {type(payload).__name__}")


class Request:
    """
    An inbound HTTP request.

    Created once per request by the transport boundary (see
    http/parser.py) and discarded when handling completes.

    Args:
        method: HTTP method ("GET", "POST", ...).
        raw_path: Request-target as received: path, matrix params and query.
        http_version: Protocol version, e.g. "HTTP/1.1".
        headers: Parsed header table.
        body: In-memory bytes, a BodyStream, or None for no body.
        extra_path_info: Path remainder below the matched resource.
        mutual_tls_outcome: Client certificate verification result.
        client_address: Client's (ip, port).
    """

    def __init__(
        self,
        method: str = "GET",
        raw_path: str = "/",
        http_version: str = "HTTP/1.1",
        headers: Optional[HeaderTable] = None,
        body: Optional[Any] = None,
        *,
        extra_path_info: str = "",
        mutual_tls_outcome: MutualTLSOutcome = MutualTLSOutcome.NONE,
        client_address: Tuple[str, int] = ("", 0),
    ):
        self._method = method
        self._raw_path = raw_path
        self._http_version = http_version
        self._extra_path_info = extra_path_info
        self._mutual_tls_outcome = mutual_tls_outcome
        self._client_address = client_address

        self._entity = Entity(headers, body)
        self._entity_body_present = body is not None
        self._user_agent = self._entity.headers.get_first(USER_AGENT, "")

        # Memoization cells for derived state
        self._cache_control: Optional[CacheControl] = None
        self._query_params: Optional[Dict[str, List[str]]] = None
        self._matrix_params: Optional[Dict[str, Dict[str, str]]] = None

    # =========================================================================
    # METADATA
    # =========================================================================

    @property
    def method(self) -> str:
        return self._method

    @property
    def raw_path(self) -> str:
        return self._raw_path

    @property
    def http_version(self) -> str:
        return self._http_version

    @property
    def user_agent(self) -> str:
        return self._user_agent

    @property
    def extra_path_info(self) -> str:
        return self._extra_path_info

    @property
    def mutual_tls_outcome(self) -> MutualTLSOutcome:
        return self._mutual_tls_outcome

    @property
    def client_address(self) -> Tuple[str, int]:
        return self._client_address

    @property
    def path(self) -> str:
        """
        Decoded path without query string or matrix parameters.

            "/cars;color=red/a%20b?x=1"  →  "/cars/a b"
        """
        raw = self._raw_path.partition("?")[0]
        return "/".join(unquote(segment.split(";")[0]) for segment in raw.split("/")) or "/"

    @property
    def query_string(self) -> str:
        return self._raw_path.partition("?")[2]

    # =========================================================================
    # ENTITY
    # =========================================================================

    def get_entity(self) -> Entity:
        """
        Get the owned entity.

        Raises:
            EntityConstructionError: If the body stream was closed or failed
                                     before it could be read.
        """
        self._entity.ensure_available()
        return self._entity

    def set_entity(self, entity: Entity) -> None:
        """Replace the owned entity. The previous one is discarded."""
        self._entity = entity
        self._entity_body_present = self._entity_body_present or entity.has_body

    def has_entity_body(self) -> bool:
        """True if a body was ever attached, whether or not it was read."""
        return self._entity_body_present

    # =========================================================================
    # HEADERS
    # =========================================================================

    def has_header(self, name: str) -> bool:
        return self._entity.has_header(name)

    def get_header(self, name: str) -> str:
        """
        First value of a header (case-insensitive).

        Raises:
            HeaderNotFoundError: If the header is absent.
        """
        return self._entity.get_header(name)

    def get_headers(self, name: str) -> List[str]:
        """
        All values of a header, in order.

        Raises:
            HeaderNotFoundError: If the header is absent.
        """
        return self._entity.get_headers(name)

    def set_header(self, name: str, value: str) -> None:
        self._entity.set_header(name, value)

    def add_header(self, name: str, value: str) -> None:
        self._entity.add_header(name, value)

    def remove_header(self, name: str) -> None:
        self._entity.remove_header(name)

    def remove_all_headers(self) -> None:
        self._entity.remove_all_headers()

    def get_header_names(self) -> List[str]:
        return self._entity.get_header_names()

    def get_content_type(self) -> Optional[str]:
        return self._entity.get_content_type()

    def set_content_type(self, content_type: str) -> None:
        self._entity.set_content_type(content_type)

    def expects_100_continue(self) -> bool:
        """True iff the Expect header is exactly "100-continue"."""
        return (self.has_header(EXPECT)
                and self.get_header(EXPECT) == CONTINUE_EXPECTATION)

    def get_cookies(self) -> List[Tuple[str, str]]:
        """
        Cookies from every Cookie header line, in order.

            "Cookie: sid=abc; theme=dark"  →  [("sid", "abc"), ("theme", "dark")]
        """
        cookies = []
        if not self.has_header(COOKIE):
            return cookies
        for line in self.get_headers(COOKIE):
            for pair in line.split(";"):
                name, sep, value = pair.partition("=")
                if sep and name.strip():
                    cookies.append((name.strip(), value.strip()))
        return cookies

    # =========================================================================
    # PAYLOAD GETTERS
    # =========================================================================

    def _decode(self, kind: PayloadKind) -> Any:
        return self.get_entity().decode(kind)

    def get_json_payload(self) -> Any:
        return self._decode(PayloadKind.JSON)

    def get_xml_payload(self) -> ElementTree.Element:
        return self._decode(PayloadKind.XML)

    def get_text_payload(self) -> str:
        return self._decode(PayloadKind.TEXT)

    def get_binary_payload(self) -> bytes:
        return self._decode(PayloadKind.BINARY)

    def get_byte_stream(self) -> BinaryIO:
        return self._decode(PayloadKind.STREAM)

    def get_body_parts(self) -> List[Entity]:
        return self._decode(PayloadKind.PARTS)

    # =========================================================================
    # PAYLOAD SETTERS
    # =========================================================================
    #
    # Every setter replaces the body and the Content-Type header outright.
    #

    def _set_body(self, body: Any, kind: PayloadKind, content_type: Optional[str]) -> None:
        self._entity.set_body(body, content_type or DEFAULT_CONTENT_TYPES[kind])
        self._entity_body_present = True

    def set_json_payload(self, payload: Any, content_type: Optional[str] = None) -> None:
        ct = content_type or DEFAULT_CONTENT_TYPES[PayloadKind.JSON]
        self._set_body(json.dumps(payload).encode(charset_of(ct)), PayloadKind.JSON, ct)

    def set_xml_payload(self, payload: ElementTree.Element,
                        content_type: Optional[str] = None) -> None:
        self._set_body(ElementTree.tostring(payload), PayloadKind.XML, content_type)

    def set_text_payload(self, payload: str, content_type: Optional[str] = None) -> None:
        ct = content_type or DEFAULT_CONTENT_TYPES[PayloadKind.TEXT]
        self._set_body(payload.encode(charset_of(ct)), PayloadKind.TEXT, ct)

    def set_binary_payload(self, payload: bytes, content_type: Optional[str] = None) -> None:
        self._set_body(bytes(payload), PayloadKind.BINARY, content_type)

    def set_byte_stream_payload(self, payload: Any, content_type: Optional[str] = None) -> None:
        stream = payload if isinstance(payload, BodyStream) else BodyStream(payload)
        self._set_body(stream, PayloadKind.STREAM, content_type)

    def set_body_parts(self, parts: List[Entity], content_type: Optional[str] = None) -> None:
        self._set_body(list(parts), PayloadKind.PARTS, content_type)

    def set_payload(self, payload: Any) -> None:
        """
        Set the payload, picking the typed setter from the payload's shape.

            str                     → set_text_payload
            ElementTree.Element     → set_xml_payload
            dict / list / number    → set_json_payload
            bytes                   → set_binary_payload
            readable stream         → set_byte_stream_payload
            [Entity, ...]           → set_body_parts

        Raises:
            TypeError: For anything outside those six shapes.
        """
        setters = {
            PayloadKind.TEXT: self.set_text_payload,
            PayloadKind.XML: self.set_xml_payload,
            PayloadKind.JSON: self.set_json_payload,
            PayloadKind.BINARY: self.set_binary_payload,
            PayloadKind.STREAM: self.set_byte_stream_payload,
            PayloadKind.PARTS: self.set_body_parts,
        }
        setters[payload_kind_of(payload)](payload)

    # =========================================================================
    # QUERY / MATRIX / FORM PARAMETERS
    # =========================================================================

    def get_query_params(self) -> Dict[str, List[str]]:
        """
        Query parameters as name → values, repeated keys kept in order.

            "?a=1&a=2&b=x"  →  {"a": ["1", "2"], "b": ["x"]}
        """
        if self._query_params is None:
            self._query_params = parse_qs(self.query_string, keep_blank_values=True)
        return {name: list(values) for name, values in self._query_params.items()}

    def get_query_param_value(self, key: str) -> Optional[str]:
        """First value of a query parameter, or None if absent."""
        values = self.get_query_param_values(key)
        return values[0] if values else None

    def get_query_param_values(self, key: str) -> List[str]:
        return self.get_query_params().get(key, [])

    def get_matrix_params(self, path: str) -> Dict[str, str]:
        """
        Matrix parameters attached to one path segment.

        Keys are the decoded path up to and including the segment, with
        every matrix parameter stripped:

            raw_path = "/cars;color=red/seats;count=4"
            get_matrix_params("/cars")        → {"color": "red"}
            get_matrix_params("/cars/seats")  → {"count": "4"}
        """
        if self._matrix_params is None:
            self._matrix_params = self._parse_matrix_params()
        return dict(self._matrix_params.get(path, {}))

    def _parse_matrix_params(self) -> Dict[str, Dict[str, str]]:
        result: Dict[str, Dict[str, str]] = {}
        raw = self._raw_path.partition("?")[0]
        current = ""

        for segment in raw.split("/")[1:]:
            name, *params = segment.split(";")
            current += "/" + unquote(name)
            values = {}
            for param in params:
                key, sep, value = param.partition("=")
                if sep and key.strip():
                    values[unquote(key.strip())] = unquote(value.strip())
            if values:
                result[current] = values

        return result

    def get_form_params(self) -> Dict[str, str]:
        """
        Parse an application/x-www-form-urlencoded body.

        =====================================================================
        RULES
        =====================================================================

        1. Split the text body on "&"
        2. Split each entry on the FIRST "="; entries without "=" are skipped
        3. Trim and percent-decode name and value
        4. Entries whose value is empty after trimming are dropped

            "name=John%20Doe&age=&city=NYC"
                → {"name": "John Doe", "city": "NYC"}

        =====================================================================

        Raises:
            MissingContentTypeError: No Content-Type header.
            InvalidContentTypeError: Content-Type is not form-urlencoded.
            PayloadDecodingError / EntityConsumedError /
            EntityConstructionError: Reading the text body failed.
        """
        content_type = self.get_content_type()
        if content_type is None:
            raise MissingContentTypeError(FORM_URLENCODED)
        if media_type_of(content_type) != FORM_URLENCODED:
            raise InvalidContentTypeError(FORM_URLENCODED, content_type)

        params: Dict[str, str] = {}
        for entry in self.get_text_payload().split("&"):
            name, sep, value = entry.partition("=")
            if not sep:
                continue
            name = unquote_plus(name.strip())
            value = unquote_plus(value.strip())
            if value.strip():
                params[name] = value
        return params

    # =========================================================================
    # CACHE-CONTROL
    # =========================================================================

    @property
    def cache_control(self) -> Optional[CacheControl]:
        """
        Request Cache-Control directives, parsed on first access.

        Returns None when the request has no Cache-Control header.

        Only the first Cache-Control header line is parsed. Once parsed the
        result is kept: changing the header afterwards with set_header() or
        add_header() is NOT reflected here. Use set_cache_control() to
        replace both the header and the parsed value.
        """
        if self._cache_control is None and self.has_header(CACHE_CONTROL):
            self._cache_control = parse_cache_control(self.get_header(CACHE_CONTROL))
            logger.debug(f"Parsed Cache-Control for {self._raw_path}: {self._cache_control}")
        return self._cache_control

    def set_cache_control(self, directives: CacheControl) -> None:
        """Write directives to the Cache-Control header and cache them."""
        value = directives.to_header_value()
        if value:
            self.set_header(CACHE_CONTROL, value)
        else:
            self.remove_header(CACHE_CONTROL)
        self._cache_control = directives

    def __repr__(self) -> str:
        return f"Request({self._method} {self._raw_path} {self._http_version})"
