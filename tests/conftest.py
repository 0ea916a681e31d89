"""
pytest configuration and fixtures.
"""

import socket
from typing import Callable, Generator, List

import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from httpmessage import Listener, ListenerConfig
from httpmessage.http import HTTPResponse, Request, json_response
from httpmessage.server import serve_in_thread


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"Cache-Control: no-cache, max-age=60\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:8080\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


@pytest.fixture
def config() -> ListenerConfig:
    """Default test listener configuration."""
    return ListenerConfig(
        host="127.0.0.1",
        port=0,  # Let OS pick a free port
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=1.0,
        log_level="WARNING",
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


def echo_path(request: Request) -> HTTPResponse:
    return json_response({"method": request.method, "path": request.path})


def send_raw(port: int, data: bytes, timeout: float = 5.0) -> bytes:
    """Send raw bytes, return everything the server writes until it closes."""
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as s:
        s.sendall(data)
        chunks = []
        while True:
            try:
                chunk = s.recv(65536)
            except ConnectionResetError:
                break
            if not chunk:
                break
            chunks.append(chunk)
    return b"".join(chunks)


def status_of(response: bytes) -> int:
    """Status code from the first status line of a raw response."""
    return int(response.split(b" ", 2)[1])


def body_of(response: bytes) -> bytes:
    return response.split(b"\r\n\r\n", 1)[1]


@pytest.fixture
def start_listener(config: ListenerConfig) -> Generator[Callable[..., Listener], None, None]:
    """
    Factory fixture: start_listener(handler, **overrides) runs a Listener
    on a background thread and returns it once its socket is bound.
    """
    started: List[Listener] = []
    threads = []

    def start(handler=echo_path, **overrides) -> Listener:
        listener_config = ListenerConfig(**{**config.__dict__, **overrides})
        listener = Listener(handler, listener_config)
        threads.append(serve_in_thread(listener))
        started.append(listener)
        return listener

    yield start

    for listener in started:
        listener.shutdown()
    for thread in threads:
        thread.join(timeout=5.0)
