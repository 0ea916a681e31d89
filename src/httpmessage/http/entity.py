"""
=============================================================================
ENTITY - HEADERS PLUS A TYPED BODY
=============================================================================

An Entity is the MIME-style container a Request owns: a HeaderTable and a
body source. The Request never decodes anything itself; it asks the Entity.

=============================================================================
BODY SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         Entity._body                                │
    ├───────────────────┬─────────────────────────────────────────────────┤
    │  None             │  no body attached                               │
    │  bytes            │  in-memory, can be read any number of times     │
    │  BodyStream       │  transport stream, can be read exactly ONCE     │
    │  list[Entity]     │  body parts of a multipart message              │
    └───────────────────┴─────────────────────────────────────────────────┘

=============================================================================
SINGLE CONSUMPTION
=============================================================================

A socket can only be read once. BodyStream models that as a MOVE: take()
hands the underlying reader to the caller and flips the stream into the
CONSUMED state. Any later take() raises EntityConsumedError, without ever
touching the (possibly closed) socket again.

    OPEN ──take()──► CONSUMED ──take()──► EntityConsumedError
      │
      └──read error──► FAILED ──take()──► EntityConstructionError

=============================================================================
"""

import io
import json
import logging
from email import policy
from email.message import Message
from email.parser import BytesParser
from enum import Enum
from typing import Any, BinaryIO, List, Optional, Union
from xml.etree import ElementTree

from ..errors import (
    EntityConstructionError,
    EntityConsumedError,
    PayloadDecodingError,
)
from .headers import HeaderTable


logger = logging.getLogger(__name__)


CONTENT_TYPE = "Content-Type"
DEFAULT_CHARSET = "utf-8"


class PayloadKind(Enum):
    """The six shapes a request payload can take."""
    TEXT = "text"
    XML = "xml"
    JSON = "json"
    BINARY = "binary"
    STREAM = "stream"
    PARTS = "parts"


DEFAULT_CONTENT_TYPES = {
    PayloadKind.JSON: "application/json",
    PayloadKind.XML: "application/xml",
    PayloadKind.TEXT: "text/plain",
    PayloadKind.BINARY: "application/octet-stream",
    PayloadKind.STREAM: "application/octet-stream",
    PayloadKind.PARTS: "multipart/form-data",
}


def media_type_of(content_type: Optional[str]) -> str:
    """'Application/JSON; charset=utf-8' -> 'application/json'"""
    if not content_type:
        return ""
    return content_type.split(";")[0].strip().lower()


def charset_of(content_type: Optional[str], default: str = DEFAULT_CHARSET) -> str:
    """Extract the charset parameter of a Content-Type value."""
    if content_type:
        for param in content_type.split(";")[1:]:
            name, _, value = param.partition("=")
            if name.strip().lower() == "charset" and value.strip():
                return value.strip().strip('"')
    return default


class StreamState(Enum):
    OPEN = "open"
    CONSUMED = "consumed"
    FAILED = "failed"


class BodyStream:
    """
    A body that is still on the wire.

    Args:
        source: Anything with a read(n) method (socket reader, file, BytesIO).
        length: Declared Content-Length, or None when unknown.
    """

    def __init__(self, source: BinaryIO, length: Optional[int] = None):
        self._source = source
        self.length = length
        self.state = StreamState.OPEN

    @property
    def consumed(self) -> bool:
        return self.state is StreamState.CONSUMED

    @property
    def available(self) -> bool:
        """False if the transport already closed or failed the stream."""
        if self.state is StreamState.FAILED:
            return False
        return not getattr(self._source, "closed", False)

    def take(self) -> BinaryIO:
        """
        Move the reader out of this stream.

        Raises:
            EntityConsumedError: If the stream was already taken.
            EntityConstructionError: If the transport closed or failed it.
        """
        if self.state is StreamState.CONSUMED:
            raise EntityConsumedError("Entity body stream has already been consumed")
        if not self.available:
            raise EntityConstructionError("Entity body stream is closed")

        self.state = StreamState.CONSUMED
        logger.debug(f"Body stream consumed (length={self.length})")
        return self._source

    def read_all(self) -> bytes:
        """
        Take the stream and read it to the end.

        Transport read errors (disconnect, timeout) are terminal: the
        stream moves to FAILED and EntityConstructionError is raised.
        Nothing is retried here.
        """
        source = self.take()
        chunks = []
        received = 0

        try:
            while self.length is None or received < self.length:
                size = -1 if self.length is None else self.length - received
                chunk = source.read(size)
                if not chunk:
                    break
                chunks.append(chunk)
                received += len(chunk)
        except (OSError, ValueError) as e:
            # ValueError: read on a file object closed underneath us
            self.state = StreamState.FAILED
            raise EntityConstructionError(f"Error reading entity body: {e}") from e

        if self.length is not None and received < self.length:
            self.state = StreamState.FAILED
            raise EntityConstructionError(
                f"Incomplete entity body: expected {self.length} bytes, got {received}"
            )

        return b"".join(chunks)


Body = Union[None, bytes, BodyStream, List["Entity"]]


def _as_body(body: Any) -> Body:
    """Store bytes-like bodies as immutable bytes."""
    if isinstance(body, (bytearray, memoryview)):
        return bytes(body)
    return body


class Entity:
    """
    Header table plus body source.

    =========================================================================
    DECODING CAPABILITY
    =========================================================================

        entity.decode(PayloadKind.JSON)    → dict / list / ...
        entity.decode(PayloadKind.XML)     → ElementTree.Element
        entity.decode(PayloadKind.TEXT)    → str
        entity.decode(PayloadKind.BINARY)  → bytes
        entity.decode(PayloadKind.STREAM)  → file-like reader
        entity.decode(PayloadKind.PARTS)   → list[Entity]

    Failures are raised as PayloadDecodingError, EntityConsumedError or
    EntityConstructionError, never as the underlying library exception.

    =========================================================================
    """

    def __init__(self, headers: Optional[HeaderTable] = None, body: Body = None):
        self.headers = headers if headers is not None else HeaderTable()
        self._body: Body = _as_body(body)

    # =========================================================================
    # HEADERS
    # =========================================================================

    def has_header(self, name: str) -> bool:
        return self.headers.has(name)

    def get_header(self, name: str) -> str:
        return self.headers.get(name)

    def get_headers(self, name: str) -> List[str]:
        return self.headers.get_all(name)

    def set_header(self, name: str, value: str) -> None:
        self.headers.set(name, value)

    def add_header(self, name: str, value: str) -> None:
        self.headers.add(name, value)

    def remove_header(self, name: str) -> None:
        self.headers.remove(name)

    def remove_all_headers(self) -> None:
        self.headers.clear()

    def get_header_names(self) -> List[str]:
        return self.headers.names()

    def get_content_type(self) -> Optional[str]:
        return self.headers.get_first(CONTENT_TYPE)

    def set_content_type(self, content_type: str) -> None:
        self.headers.set(CONTENT_TYPE, content_type)

    # =========================================================================
    # BODY STATE
    # =========================================================================

    @property
    def body(self) -> Body:
        return self._body

    @property
    def has_body(self) -> bool:
        return self._body is not None

    def ensure_available(self) -> None:
        """
        Check that the body can still be materialized.

        A stream that was consumed is fine here (the typed getter will
        report EntityConsumedError); a stream the transport closed or
        failed before anyone read it is not.
        """
        body = self._body
        if isinstance(body, BodyStream) and not body.consumed and not body.available:
            raise EntityConstructionError("Entity body stream is closed")

    def set_body(self, body: Body, content_type: str) -> None:
        """Replace the body and the Content-Type header. No merging."""
        self._body = _as_body(body)
        self.set_content_type(content_type)

    # =========================================================================
    # DECODING
    # =========================================================================

    def decode(self, kind: PayloadKind) -> Any:
        """Decode the body as the given payload kind."""
        if kind is PayloadKind.JSON:
            return self.get_body_as_json()
        if kind is PayloadKind.XML:
            return self.get_body_as_xml()
        if kind is PayloadKind.TEXT:
            return self.get_body_as_text()
        if kind is PayloadKind.BINARY:
            return self.get_body_as_bytes()
        if kind is PayloadKind.STREAM:
            return self.get_body_as_stream()
        return self.get_body_parts()

    def get_body_as_bytes(self) -> bytes:
        body = self._body
        if body is None:
            return b""
        if isinstance(body, bytes):
            return body
        if isinstance(body, BodyStream):
            return body.read_all()
        raise PayloadDecodingError(
            "Entity body is held as body parts, not bytes",
            self.get_content_type(),
        )

    def get_body_as_text(self) -> str:
        content_type = self.get_content_type()
        data = self.get_body_as_bytes()
        try:
            return data.decode(charset_of(content_type))
        except (UnicodeDecodeError, LookupError) as e:
            raise PayloadDecodingError(f"Error decoding text payload: {e}",
                                       content_type) from e

    def get_body_as_json(self) -> Any:
        content_type = self.get_content_type()
        text = self.get_body_as_text()
        try:
            return json.loads(text)
        except json.JSONDecodeError as e:
            raise PayloadDecodingError(f"Error decoding json payload: {e}",
                                       content_type) from e

    def get_body_as_xml(self) -> ElementTree.Element:
        content_type = self.get_content_type()
        data = self.get_body_as_bytes()
        try:
            return ElementTree.fromstring(data)
        except ElementTree.ParseError as e:
            raise PayloadDecodingError(f"Error decoding xml payload: {e}",
                                       content_type) from e

    def get_body_as_stream(self) -> BinaryIO:
        body = self._body
        if isinstance(body, BodyStream):
            return body.take()
        return io.BytesIO(self.get_body_as_bytes())

    def get_body_parts(self) -> List["Entity"]:
        """
        Get the body parts of a multipart entity.

        Parts set directly are returned as-is. A raw multipart body is
        split with the standard library email parser.

        Raises:
            PayloadDecodingError: If the content type is not multipart/*
                                  or the body is not valid multipart.
        """
        if isinstance(self._body, list):
            return list(self._body)

        content_type = self.get_content_type()
        if not media_type_of(content_type).startswith("multipart/"):
            raise PayloadDecodingError(
                f"Entity body is not a multipart message: {content_type}",
                content_type,
            )

        data = self.get_body_as_bytes()
        head = f"{CONTENT_TYPE}: {content_type}\r\n\r\n".encode("latin-1")
        message = BytesParser(policy=policy.HTTP).parsebytes(head + data)
        if not message.is_multipart() or message.defects:
            raise PayloadDecodingError("Error decoding multipart payload", content_type)

        return [_entity_from_part(part) for part in message.get_payload()]

    def __repr__(self) -> str:
        return f"Entity(content_type={self.get_content_type()!r}, body={type(self._body).__name__})"


def _entity_from_part(part: Message) -> Entity:
    headers = HeaderTable((name, str(value)) for name, value in part.items())
    if part.is_multipart():
        return Entity(headers, [_entity_from_part(p) for p in part.get_payload()])
    return Entity(headers, part.get_payload(decode=True) or b"")
