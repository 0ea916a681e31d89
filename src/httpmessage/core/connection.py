"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one client socket: buffers the request head, enforces the listener
limits while buffering, and exposes the body as a length-bounded stream
that the Request reads lazily.

=============================================================================
TCP IS A BYTE STREAM
=============================================================================

recv() returns whatever arrived, not whole messages. The head is buffered
until the blank line (\r\n\r\n) shows up; whatever followed it in the same
chunk is the start of the body and stays in _buffer.

    recv() #1   "GET /upload HTTP/1.1\r\nContent-Le"
    recv() #2   "ngth: 11\r\n\r\nhello"          ← head complete
                                   └── body bytes, left in _buffer
    body.read() "hello" from _buffer, " world" from recv() #3

=============================================================================
LIMITS WHILE BUFFERING
=============================================================================

Waiting for the blank line before checking limits would let a client make
us buffer an arbitrarily long head. So on every recv():

    no CRLF yet     → request line too long?  → 414
    request line    → target over the limit?  → 414
    headers partial → already over the limit? → 413

The exact checks run again in RequestParser.parse_head().

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──► READING ──► PROCESSING ──► WRITING ──► KEEP_ALIVE ──┐
     │         │                          │                      │
     │         ▼                          ▼                      │
     └─────► CLOSING ◄────────────────────┴──────────────────────┘
                │
                ▼
              CLOSED

=============================================================================
"""

import logging
import socket
import ssl
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..errors import HTTPParseError
from ..http.limits import ResourceLimitGuard
from ..http.parser import HEAD_TERMINATOR, RequestParser
from ..http.request import MutualTLSOutcome, Request


logger = logging.getLogger(__name__)


class ConnectionState(Enum):
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


class SocketBodyReader:
    """
    Reads exactly `length` body bytes from a connection.

    Leftover bytes from head buffering are served first, then the socket.
    A short read (client went away) returns b"" early; the BodyStream
    wrapping this reader turns that into EntityConstructionError. Socket
    timeouts propagate as OSError.
    """

    def __init__(self, connection: "Connection", length: int):
        self._connection = connection
        self.remaining = length
        self.closed = False

    def read(self, size: int = -1) -> bytes:
        if self.closed or self.remaining <= 0:
            return b""

        if size is None or size < 0:
            chunks = []
            while self.remaining > 0:
                chunk = self._read_chunk(self.remaining)
                if not chunk:
                    break
                chunks.append(chunk)
            return b"".join(chunks)

        return self._read_chunk(min(size, self.remaining))

    def _read_chunk(self, size: int) -> bytes:
        chunk = self._connection.take_buffered(size)
        if not chunk:
            chunk = self._connection.recv_body(size)
        self.remaining -= len(chunk)
        return chunk

    def drain(self) -> int:
        """Discard unread body bytes so the next request parses cleanly."""
        drained = 0
        while self.remaining > 0:
            chunk = self._read_chunk(self.remaining)
            if not chunk:
                break
            drained += len(chunk)
        return drained

    def close(self) -> None:
        self.closed = True


@dataclass
class Connection:
    """
    A client connection.

    Attributes:
        socket: The client socket (plain or TLS).
        address: Client's (ip, port) tuple.
        id: Short connection identifier for log lines.
        state: Current lifecycle state.
        requests_handled: Requests served on this connection so far.
    """

    socket: socket.socket
    address: tuple

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0

    _buffer: bytes = field(default=b"", repr=False)
    _body: Optional[SocketBodyReader] = field(default=None, repr=False)

    def __post_init__(self):
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def mutual_tls_outcome(self) -> MutualTLSOutcome:
        """
        Client certificate result as seen by the transport.

        Plain sockets → NONE. TLS sockets → PASSED if the peer presented a
        certificate the handshake accepted, FAILED otherwise.
        """
        if not isinstance(self.socket, ssl.SSLSocket):
            return MutualTLSOutcome.NONE
        try:
            return MutualTLSOutcome.PASSED if self.socket.getpeercert() else MutualTLSOutcome.FAILED
        except (ValueError, ssl.SSLError):
            return MutualTLSOutcome.FAILED

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self, parser: RequestParser) -> Optional[Request]:
        """
        Read the next request head and build a Request over a body stream.

        Returns:
            The Request, or None if the client closed the connection (or
            went idle on keep-alive) before sending anything.

        Raises:
            HTTPParseError / LimitExceededError: Head rejected; the caller
                answers with e.status_code and closes.
            TimeoutError: The first request did not arrive in time.
        """
        head = self._read_head(parser.guard)
        if head is None:
            return None

        self._body = None
        request = parser.parse_streaming(
            head,
            self.open_body,
            client_address=self.address,
            mutual_tls_outcome=self.mutual_tls_outcome,
        )
        self.requests_handled += 1
        return request

    def open_body(self, length: int) -> SocketBodyReader:
        """Reader for the body of the request whose head was just read."""
        self._body = SocketBodyReader(self, length)
        return self._body

    def _read_head(self, guard: ResourceLimitGuard) -> Optional[bytes]:
        """
        Buffer until the end of the request head, checking limits as we go.

        Returns:
            Head bytes without the terminating blank line, or None if the
            connection closed cleanly before a new request started.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            while HEAD_TERMINATOR not in self._buffer:
                self._check_partial_head(guard)

                chunk = self._recv()
                if not chunk:
                    if self._buffer:
                        raise HTTPParseError("Incomplete request: connection closed")
                    return None
                self._buffer += chunk

            head_end = self._buffer.find(HEAD_TERMINATOR)
            head = self._buffer[:head_end]
            self._buffer = self._buffer[head_end + len(HEAD_TERMINATOR):]
            self.last_activity = time.time()
            return head

        except socket.timeout:
            if self.requests_handled > 0 and not self._buffer:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _check_partial_head(self, guard: ResourceLimitGuard) -> None:
        line_end = self._buffer.find(b"\r\n")
        if line_end == -1:
            guard.check_request_line_buffer(len(self._buffer))
            return

        parts = self._buffer[:line_end].split(b" ")
        if len(parts) == 3:
            guard.check_uri(parts[1].decode("latin-1"))

        # A trailing "\r" may belong to the blank line, not the block
        header_bytes = len(self._buffer) - (line_end + 2)
        guard.check_header_block(max(0, header_bytes - 1))

    def take_buffered(self, size: int) -> bytes:
        """Pop up to `size` bytes that were read ahead while buffering the head."""
        chunk, self._buffer = self._buffer[:size], self._buffer[size:]
        return chunk

    def recv_body(self, size: int) -> bytes:
        return self._recv(min(size, self.buffer_size))

    def drain_body(self) -> None:
        """Skip whatever the handler did not read of the current body."""
        if self._body is not None:
            drained = self._body.drain()
            if drained:
                logger.debug(f"[{self.id}] Drained {drained} unread body bytes")
            self._body = None

    def _recv(self, size: Optional[int] = None) -> bytes:
        try:
            data = self.socket.recv(size or self.buffer_size)
            self.last_activity = time.time()
            return data
        except (ConnectionResetError, BrokenPipeError):
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            True if sent, False if the client is gone.
        """
        self.state = ConnectionState.WRITING
        self.last_activity = time.time()

        try:
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """Shut down the write side, drain briefly, release the socket."""
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def set_keep_alive(self):
        self.state = ConnectionState.KEEP_ALIVE

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


