"""
=============================================================================
CLI ENTRY POINT
=============================================================================

Runs a single listener with an echo handler that reports what the message
model made of each request. Useful for poking at limits and parsing with
curl.

    python -m httpmessage --port 8080
    python -m httpmessage --max-uri-length 64 --max-header-size 512

    curl 'http://127.0.0.1:8080/cars;color=red/x?y=1' -H 'Cache-Control: max-age=60'

Settings resolve CLI flag → HTTP_* environment variable → default.

=============================================================================
"""

import argparse
import sys

from . import __version__
from .config import ListenerConfig
from .errors import RequestError
from .http import HTTPResponse, HTTPStatus, Request, json_response
from .server import Listener


def echo_handler(request: Request) -> HTTPResponse:
    """Describe the request back to the client as JSON."""
    cache_control = request.cache_control
    echo = {
        "method": request.method,
        "path": request.path,
        "raw_path": request.raw_path,
        "http_version": request.http_version,
        "query_params": request.get_query_params(),
        "cache_control": cache_control.to_header_value() if cache_control else None,
        "headers": [[name, value] for name, value in request.get_entity().headers.items()],
        "cookies": request.get_cookies(),
    }

    if request.has_entity_body():
        try:
            echo["body"] = request.get_text_payload()
        except RequestError as e:
            return json_response({"error": str(e)}, HTTPStatus.BAD_REQUEST)

    return json_response(echo)


def build_parser() -> argparse.ArgumentParser:
    defaults = ListenerConfig.from_env()

    parser = argparse.ArgumentParser(
        prog="python -m httpmessage",
        description="HTTP/1.x echo listener for the httpmessage request model",
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--host", "-H", default=defaults.host,
                        help=f"Host to bind to (default: {defaults.host})")
    parser.add_argument("--port", "-p", type=int, default=defaults.port,
                        help=f"Port to listen on (default: {defaults.port})")
    parser.add_argument("--workers", "-w", type=int, default=defaults.max_workers,
                        help=f"Worker threads (default: {defaults.max_workers})")

    # ─────────────────────────────────────────────────────────────────────
    # RESOURCE LIMITS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--max-uri-length", type=int, default=defaults.max_uri_length,
                        help="Longest request-target before 414 "
                             f"(default: {defaults.max_uri_length})")
    parser.add_argument("--max-header-size", type=int, default=defaults.max_header_size,
                        help="Largest header block in bytes before 413 "
                             f"(default: {defaults.max_header_size})")
    parser.add_argument("--max-entity-body-size", type=int,
                        default=defaults.max_entity_body_size,
                        help="Largest Content-Length before 413, -1 for no limit "
                             f"(default: {defaults.max_entity_body_size})")

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING / META
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument("--log-level", "-l", default=defaults.log_level,
                        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
                        help=f"Logging level (default: {defaults.log_level})")
    parser.add_argument("--version", "-v", action="version",
                        version=f"httpmessage {__version__}")

    return parser


def main(argv=None):
    args = build_parser().parse_args(argv)

    config = ListenerConfig(
        host=args.host,
        port=args.port,
        max_workers=args.workers,
        max_uri_length=args.max_uri_length,
        max_header_size=args.max_header_size,
        max_entity_body_size=args.max_entity_body_size,
        log_level=args.log_level,
    )

    try:
        listener = Listener(echo_handler, config)
        listener.run()
    except (ValueError, OSError) as e:
        print(f"Error: {e}", file=sys.stderr)
        sys.exit(1)


if __name__ == "__main__":
    main()
