"""
=============================================================================
LISTENER CONFIGURATION
=============================================================================

One ListenerConfig per listening endpoint. Limits are NOT global: two
listeners in the same process can enforce different ones.

    public = ListenerConfig(port=8080)                       # defaults
    admin  = ListenerConfig(port=9090, max_uri_length=256,
                            max_header_size=2048)            # stricter

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │   Priority (highest to lowest):                                     │
    │                                                                     │
    │   1. Command-line arguments                                         │
    │      └── python -m httpmessage --max-uri-length 2048                │
    │                                                                     │
    │   2. Environment variables                                          │
    │      └── HTTP_MAX_URI_LENGTH=2048 python -m httpmessage             │
    │                                                                     │
    │   3. Default values (in this dataclass)                             │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

import os
from dataclasses import dataclass
from typing import Optional


@dataclass
class ListenerConfig:
    """
    Configuration for one listening endpoint.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    NETWORK
    - host, port, backlog, buffer_size, timeout

    HTTP
    - keep_alive, keep_alive_timeout

    RESOURCE LIMITS (checked before a Request is constructed)
    - max_uri_length        → 414 when exceeded
    - max_header_size       → 413 when exceeded
    - max_entity_body_size  → 413 when exceeded (-1 = unlimited)

    WORKERS / LOGGING / IDENTITY
    - max_workers, log_level, server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    host: str = "127.0.0.1"
    port: int = 8080
    backlog: int = 128

    buffer_size: int = 8192
    """Bytes requested per recv() call."""

    timeout: Optional[float] = 30.0
    """Socket timeout in seconds for the first request on a connection."""

    # ─────────────────────────────────────────────────────────────────────
    # HTTP SETTINGS
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0

    # ─────────────────────────────────────────────────────────────────────
    # RESOURCE LIMITS
    # ─────────────────────────────────────────────────────────────────────

    max_uri_length: int = 4096
    """
    Maximum request-target length in characters (path + query).
    Longer targets are answered with 414 Request-URI Too Long.
    """

    max_header_size: int = 8192
    """
    Maximum size of the header block in bytes.
    Larger blocks are answered with 413 Request Entity Too Large.
    """

    max_entity_body_size: int = 10 * 1024 * 1024  # 10 MB
    """
    Maximum declared Content-Length. -1 disables the check.
    """

    # ─────────────────────────────────────────────────────────────────────
    # WORKERS / LOGGING / IDENTITY
    # ─────────────────────────────────────────────────────────────────────

    max_workers: int = 16
    log_level: str = "INFO"
    server_name: str = "httpmessage/1.0"

    @classmethod
    def from_env(cls, prefix: str = "HTTP_") -> "ListenerConfig":
        """
        Create configuration from environment variables.

        =====================================================================
        ENVIRONMENT VARIABLES (default prefix HTTP_)
        =====================================================================

        HTTP_HOST                   Listener host (default: 127.0.0.1)
        HTTP_PORT                   Listener port (default: 8080)
        HTTP_MAX_URI_LENGTH         414 threshold (default: 4096)
        HTTP_MAX_HEADER_SIZE        413 header threshold (default: 8192)
        HTTP_MAX_ENTITY_BODY_SIZE   413 body threshold (default: 10 MB)
        HTTP_WORKERS                Worker threads (default: 16)
        HTTP_TIMEOUT                Socket timeout seconds (default: 30)
        HTTP_LOG_LEVEL              Logging level (default: INFO)

        A different prefix lets each listener read its own variables:

            admin = ListenerConfig.from_env(prefix="ADMIN_HTTP_")

        =====================================================================
        """
        defaults = cls()

        def env(name: str, default):
            return os.getenv(prefix + name, default)

        return cls(
            host=env("HOST", defaults.host),
            port=int(env("PORT", defaults.port)),
            max_uri_length=int(env("MAX_URI_LENGTH", defaults.max_uri_length)),
            max_header_size=int(env("MAX_HEADER_SIZE", defaults.max_header_size)),
            max_entity_body_size=int(
                env("MAX_ENTITY_BODY_SIZE", defaults.max_entity_body_size)
            ),
            max_workers=int(env("WORKERS", defaults.max_workers)),
            timeout=float(env("TIMEOUT", defaults.timeout)),
            log_level=env("LOG_LEVEL", defaults.log_level),
        )

    def validate(self) -> None:
        """
        Validate configuration values. Called once at listener startup.

        Raises:
            ValueError: On the first invalid value.
        """
        # port 0 asks the OS for a free port
        if not 0 <= self.port < 65536:
            raise ValueError(f"Invalid port: {self.port}. Must be 0-65535.")

        if self.max_uri_length <= 0:
            raise ValueError(f"max_uri_length must be > 0, got {self.max_uri_length}")

        if self.max_header_size <= 0:
            raise ValueError(f"max_header_size must be > 0, got {self.max_header_size}")

        if self.max_entity_body_size < -1:
            raise ValueError("max_entity_body_size must be -1 (unlimited) or >= 0")

        if self.max_workers < 1:
            raise ValueError("max_workers must be >= 1")

        if self.buffer_size < 1024:
            raise ValueError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ValueError("timeout must be > 0")
