"""
=============================================================================
SIMPLEHTTP DEMO SERVER
=============================================================================

Runs a small example application so the server can be poked at with curl.

=============================================================================
USAGE
=============================================================================

    # Run with defaults (0.0.0.0:3030)
    python -m simplehttp

    # Custom port, verbose logging
    python -m simplehttp --port 8080 --log-level DEBUG

    # Serve a real file on GET /file
    python -m simplehttp --file ./public/index.html

Settings not given on the command line come from SIMPLEHTTP_* environment
variables (see ServerConfig.from_env), then from the defaults.

=============================================================================
DEMO ROUTES
=============================================================================

    GET  /              HTML page plus a Custom-Header
    GET  /json-string   JSON body from a pre-encoded string
    GET  /json-any      JSON body serialized from a dict
    GET  /file          Contents of --file (200 with empty body without it)
    POST /              201 Created, empty body
    GET  /error         Handler raises → 500 Internal Server Error

=============================================================================
"""

import argparse
import json
import logging
import sys
from typing import Optional, Sequence

from . import __version__
from .config import ServerConfig
from .http import FileAccessError, HTTPStatus, Request, Response
from .logger import StandardLogger
from .server import Server


logger = logging.getLogger("simplehttp.demo")


DEMO_USER = {"Name": "foo", "Age": 42, "Email": "baz@email.com"}


def build_demo_server(config: ServerConfig, file_path: Optional[str] = None) -> Server:
    """
    Create a Server with the demo routes registered.

    Args:
        config: Server settings.
        file_path: File served by GET /file.
    """
    server = Server(config=config, logger=StandardLogger())

    @server.get("/")
    def index(request: Request, response: Response):
        response.set_html("<h1>Hello, world!</h1>")
        response.set_header("Custom-Header", "custom-header-value")

    @server.get("/json-string")
    def json_string(request: Request, response: Response):
        response.set_json(json.dumps(DEMO_USER))

    @server.get("/json-any")
    def json_any(request: Request, response: Response):
        response.set_json(DEMO_USER)

    @server.get("/file")
    def file(request: Request, response: Response):
        if file_path is None:
            return
        try:
            response.set_file(file_path)
        except FileAccessError as e:
            # Unknown type is not fatal; the bytes still go out
            logger.warning(f"{e}; sending as text/plain")
            response.set_file_with_content_type(file_path, "text/plain; charset=utf-8")

    @server.post("/")
    def create(request: Request, response: Response):
        response.set_status(HTTPStatus.CREATED)

    @server.get("/error")
    def error(request: Request, response: Response):
        raise RuntimeError("i am an error within a user callback")

    return server


def setup_logging(level_name: str) -> None:
    """Configure the root logger for console output."""
    level = getattr(logging, level_name.upper(), logging.INFO)

    logging.basicConfig(
        level=level,
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )
    logging.getLogger("simplehttp").setLevel(level)


def build_parser(defaults: ServerConfig) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="simplehttp",
        description="Minimal HTTP/1.0 server with a demo application",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  python -m simplehttp                       # Run with defaults
  python -m simplehttp --port 8080           # Custom port
  python -m simplehttp --read-timeout 0      # No read deadline
  python -m simplehttp --file index.html     # Serve a file on GET /file
        """
    )

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--host", "-H",
        default=defaults.host,
        help=f"Host to bind to (default: {defaults.host})"
    )

    parser.add_argument(
        "--port", "-p",
        type=int,
        default=defaults.port,
        help=f"Port to listen on (default: {defaults.port})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # REQUEST LIMITS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--max-request-bytes",
        type=int,
        default=defaults.max_request_bytes,
        help=f"Largest request accepted, in bytes (default: {defaults.max_request_bytes})"
    )

    parser.add_argument(
        "--read-timeout",
        type=float,
        default=defaults.read_timeout_seconds,
        help=f"Seconds allowed to receive a request, 0 to disable (default: {defaults.read_timeout_seconds})"
    )

    # ─────────────────────────────────────────────────────────────────────
    # DEMO / LOGGING
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--file", "-f",
        default=None,
        help="File to serve on GET /file"
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=defaults.log_level.upper(),
        help=f"Logging level (default: {defaults.log_level})"
    )

    parser.add_argument(
        "--version", "-v",
        action="version",
        version=f"simplehttp {__version__}"
    )

    return parser


def main(argv: Optional[Sequence[str]] = None) -> int:
    """CLI entry point. Returns the process exit code."""
    try:
        defaults = ServerConfig.from_env()
    except ValueError as e:
        print(f"Error: invalid environment configuration: {e}", file=sys.stderr)
        return 2

    args = build_parser(defaults).parse_args(argv)

    config = ServerConfig(
        host=args.host,
        port=args.port,
        max_request_bytes=args.max_request_bytes,
        read_timeout_seconds=args.read_timeout,
        log_level=args.log_level,
    )
    try:
        config.validate()
    except ValueError as e:
        print(f"Error: {e}", file=sys.stderr)
        return 2

    setup_logging(config.log_level)

    server = build_demo_server(config, args.file)
    try:
        server.start()
    except OSError as e:
        print(f"There was an error starting the server: {e}", file=sys.stderr)
        return 1

    return 0


if __name__ == "__main__":
    sys.exit(main())
