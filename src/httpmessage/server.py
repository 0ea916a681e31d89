"""
=============================================================================
LISTENER
=============================================================================

A Listener is one listening endpoint: a socket, a ListenerConfig with its
own resource limits, a worker pool, and a single handler callable that
turns a Request into an HTTPResponse.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                           Listener                                  │
    │                                                                     │
    │   SocketServer ──accept──► Connection ──submit──► worker thread     │
    │                                                      │              │
    │                                                      ▼              │
    │                          ResourceLimitGuard ◄── RequestParser       │
    │                           414 / 413 here            │               │
    │                                                      ▼              │
    │                                         handler(Request)            │
    │                                                      │              │
    │                                                      ▼              │
    │                                              HTTPResponse           │
    └─────────────────────────────────────────────────────────────────────┘

Two Listeners in the same process share nothing: each one builds its own
guard and parser from its own config.

=============================================================================
REQUEST LIFECYCLE (per connection, in a worker thread)
=============================================================================

    1. READ HEAD       Connection buffers until \\r\\n\\r\\n, checking limits
    2. PARSE           RequestParser builds a Request over a BodyStream
                       (rejections answered with e.status_code, then close)
    3. 100-CONTINUE    "Expect: 100-continue" with a body → interim 100
    4. HANDLE          handler(request); an exception becomes a 500
    5. SEND            Connection / Keep-Alive headers, then sendall()
    6. DRAIN           discard body bytes the handler did not read
    7. KEEP-ALIVE      loop for the next request, or close

=============================================================================
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, Optional, Tuple

from .config import ListenerConfig
from .core import Connection, SocketServer
from .errors import HTTPParseError
from .http import (
    HTTPResponse, HTTPStatus, Request, RequestParser, ResourceLimitGuard,
    continue_response, error_response,
)


logger = logging.getLogger(__name__)


Handler = Callable[[Request], HTTPResponse]


class Listener:
    """
    One HTTP/1.x listening endpoint.

    =========================================================================
    USAGE
    =========================================================================

        def handler(request):
            return json_response({"path": request.path})

        public = Listener(handler, ListenerConfig(port=8080))
        admin = Listener(handler, ListenerConfig(port=9090, max_uri_length=256))

        threading.Thread(target=admin.run, daemon=True).start()
        public.run()  # Blocks until SIGINT / SIGTERM / shutdown()

    =========================================================================
    """

    def __init__(self, handler: Handler, config: Optional[ListenerConfig] = None):
        """
        Args:
            handler: Called with each Request; returns the HTTPResponse.
            config: Listener configuration. Defaults are used when omitted.

        Raises:
            ValueError: If the configuration is invalid.
        """
        self.config = config or ListenerConfig()
        self.config.validate()

        self.handler = handler
        self.guard = ResourceLimitGuard.from_config(self.config)
        self.parser = RequestParser(self.guard)

        self._socket_server = SocketServer(self.config)
        self._executor: Optional[ThreadPoolExecutor] = None
        self._running = False

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """Bound (host, port). With port=0 this is the OS-assigned port."""
        return self._socket_server.address

    def run(self, host: Optional[str] = None, port: Optional[int] = None):
        """
        Start the listener (blocking).

        Args:
            host: Override config host.
            port: Override config port.
        """
        if host:
            self.config.host = host
        if port is not None:
            self.config.port = port

        self._setup_logging()
        self._running = True
        self._executor = ThreadPoolExecutor(
            max_workers=self.config.max_workers,
            thread_name_prefix=f"listener-{self.config.port}",
        )

        logger.info(
            f"Starting listener on {self.config.host}:{self.config.port} "
            f"({self.guard!r})"
        )

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the listening socket is bound."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Ask a running listener to stop. run() returns once it has."""
        self._running = False
        self._socket_server.shutdown()

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
        logging.getLogger("httpmessage").setLevel(level)

    def _shutdown(self):
        logger.info("Shutting down listener...")
        self._running = False
        if self._executor is not None:
            self._executor.shutdown(wait=True)
            self._executor = None
        logger.info("Listener stopped")

    # =========================================================================
    # REQUEST HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Called by SocketServer for each accepted connection."""
        try:
            self._executor.submit(self._process_connection, conn)
        except RuntimeError:
            # Executor already shut down
            logger.warning(f"[{conn.id}] Listener stopping, rejecting connection")
            conn.close()

    def _process_connection(self, conn: Connection):
        """Keep-alive loop for one connection (runs in a worker thread)."""
        with conn:
            while self._running:
                # True once a final response for the current request went out
                responded = False
                try:
                    try:
                        request = conn.read_request(self.parser)
                    except HTTPParseError as e:
                        logger.info(f"[{conn.id}] Rejected request: {e.status_code} {e}")
                        self._send_error(conn, e.status_code, str(e))
                        break

                    if request is None:
                        break

                    if request.has_entity_body() and request.expects_100_continue():
                        logger.debug(f"[{conn.id}] Sending 100 Continue")
                        conn.send_response(continue_response())

                    conn.state = conn.state.PROCESSING
                    response = self.dispatch(request)

                    keep_alive = self._keep_alive(request)
                    if keep_alive:
                        response.headers.setdefault("Connection", "keep-alive")
                        response.headers.setdefault(
                            "Keep-Alive",
                            f"timeout={int(self.config.keep_alive_timeout)}",
                        )
                    else:
                        response.headers["Connection"] = "close"

                    logger.info(
                        f"[{conn.id}] {request.method} {request.raw_path} "
                        f"→ {int(response.status)}"
                    )
                    responded = True
                    if not conn.send_response(response.to_bytes(self.config.server_name)):
                        break

                    if not keep_alive:
                        break

                    conn.drain_body()
                    conn.set_keep_alive()

                except TimeoutError:
                    if responded:
                        logger.debug(f"[{conn.id}] Timed out draining request body")
                    else:
                        self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break

                except OSError as e:
                    logger.warning(f"[{conn.id}] Connection error: {e}")
                    break

                except Exception as e:
                    logger.exception(f"[{conn.id}] Unexpected error: {e}")
                    if not responded:
                        self._send_error(conn, HTTPStatus.INTERNAL_SERVER_ERROR,
                                         "Internal Server Error")
                    break

    def dispatch(self, request: Request) -> HTTPResponse:
        """
        Run the handler for one request.

        Any exception the handler lets escape (including the message
        layer's RequestError family) is logged and answered with 500.
        """
        try:
            return self.handler(request)
        except Exception as e:
            logger.exception(f"Handler error for {request.method} {request.raw_path}: {e}")
            return error_response(HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error")

    def handle_bytes(self, data: bytes,
                     client_address: Tuple[str, int] = ("", 0)) -> HTTPResponse:
        """
        Run one complete in-memory request through this listener's limits,
        parser and handler, without a socket.
        """
        try:
            request = self.parser.parse(data, client_address)
        except HTTPParseError as e:
            return error_response(e.status_code, str(e))
        return self.dispatch(request)

    def _keep_alive(self, request: Request) -> bool:
        if not self.config.keep_alive:
            return False
        connection = ""
        if request.has_header("Connection"):
            connection = request.get_header("Connection").strip().lower()
        if request.http_version == "HTTP/1.0":
            return connection == "keep-alive"
        return connection != "close"

    def _send_error(self, conn: Connection, status: int, message: str):
        response = error_response(status, message)
        conn.send_response(response.to_bytes(self.config.server_name))


def serve_in_thread(listener: Listener, timeout: float = 5.0) -> threading.Thread:
    """
    Start a listener on a daemon thread and wait until it is bound.

    Raises:
        RuntimeError: If the socket is not listening within `timeout`.
    """
    thread = threading.Thread(target=listener.run, daemon=True)
    thread.start()
    if not listener.wait_until_ready(timeout):
        raise RuntimeError("Listener did not start in time")
    return thread
