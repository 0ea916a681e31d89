"""
=============================================================================
TCP SOCKET SERVER
=============================================================================

Binds one listening socket and hands every accepted client to a callback
as a Connection. It knows nothing about HTTP; the Listener (server.py)
does the request handling.

    ┌─────────────────────────────────────────────────────────────────────┐
    │   start(callback)                                                   │
    │       ├──► _create_socket()   SO_REUSEADDR, TCP_NODELAY, 1s timeout │
    │       ├──► bind() / listen()                                        │
    │       ├──► _setup_signals()   SIGTERM / SIGINT → shutdown()         │
    │       └──► _accept_loop()     accept() → Connection → callback      │
    │                                                                     │
    │   shutdown()                  flag the loop to stop (idempotent)    │
    └─────────────────────────────────────────────────────────────────────┘

The accept timeout of one second lets the loop notice shutdown() without
needing a wake-up connection.

=============================================================================
"""

import logging
import signal
import socket
import threading
from typing import Callable, Optional, Tuple

from ..config import ListenerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP server for one listener.

    Usage:
        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(self, config: ListenerConfig):
        self.config = config
        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port); reflects the OS-assigned port when port=0."""
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(1.0)
        return sock

    def _setup_signals(self):
        """
        Install SIGTERM / SIGINT handlers for graceful shutdown.

        Python only allows this from the main thread; listeners started in
        a background thread (tests, several listeners per process) are
        stopped with shutdown() instead.
        """
        if threading.current_thread() is not threading.main_thread():
            return

        def shutdown_handler(signum, frame):
            logger.info(f"Received {signal.Signals(signum).name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Bind, listen and accept connections. BLOCKS until shutdown().

        Args:
            connection_handler: Called with each accepted Connection.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.config.backlog)

        self._running = True
        self._setup_signals()

        host, port = self.address
        logger.info(f"Listening on {host}:{port}")
        self._ready.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
                logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

                conn = Connection(
                    socket=client_socket,
                    address=client_address,
                    buffer_size=self.config.buffer_size,
                    timeout=self.config.timeout,
                    keep_alive_timeout=self.config.keep_alive_timeout,
                )
                connection_handler(conn)

            except socket.timeout:
                continue

            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the socket is bound and listening."""
        return self._ready.wait(timeout)

    def shutdown(self):
        """Stop accepting connections. Safe to call more than once."""
        logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()
        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None
        self._ready.clear()
        logger.info("Socket server stopped")
