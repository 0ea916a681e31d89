"""
=============================================================================
CORE TRANSPORT COMPONENTS
=============================================================================

The socket-level plumbing beneath a Listener.

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SOCKET SERVER                                                      │
    │  • Binds and listens on one (host, port)                            │
    │  • Runs the accept() loop, wraps each client in a Connection        │
    │  • SIGTERM / SIGINT → graceful stop (main thread only)              │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  CONNECTION                                                         │
    │  • Buffers the request head, enforcing limits as bytes arrive       │
    │  • Hands the body to the Request as a length-bounded stream         │
    │  • Keep-alive, drain of unread bodies, orderly close                │
    └─────────────────────────────────────────────────────────────────────┘

Worker threads come from concurrent.futures.ThreadPoolExecutor, owned by
the Listener (server.py).

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, SocketBodyReader

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "SocketBodyReader",
]
