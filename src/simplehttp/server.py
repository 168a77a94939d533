"""
=============================================================================
SIMPLEHTTP SERVER
=============================================================================

The public face of the package: register handlers, start the server.

    from simplehttp import Server, StandardLogger

    server = Server(port=3030)
    server.logger = StandardLogger()

    @server.get("/")
    def index(request, response):
        response.set_html("<h1>Hello</h1>")

    server.start()  # Blocks until SIGINT/SIGTERM or shutdown()

=============================================================================
ONE CONNECTION, ONE EXCHANGE
=============================================================================

Every accepted connection runs handle_connection() on its own thread:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                   handle_connection() States                        │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   READING ─── read_request() fails ──► READ_FAILED ─────────┐      │
    │      │         (bad request, too big, EOF, timeout)          │      │
    │      │         nothing is sent back                          │      │
    │      ▼                                                        │      │
    │   DISPATCHING  default Response → handler(request, response) │      │
    │      │                                                        │      │
    │      ├─ handler ok ─────────► RESPONDING                     │      │
    │      │                        send the handler's response ──┤      │
    │      │                                                        │      │
    │      └─ handler raised, ────► ERROR_RESPONDING               │      │
    │         or no handler         send a fresh 500 ─────────────┤      │
    │                                                               ▼      │
    │                                                            CLOSED    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A failure only ever affects its own connection. Handlers may run
concurrently; they share nothing but the (frozen) callback registry.

=============================================================================
"""

import logging
import threading
from typing import Callable, Optional, Tuple

from .config import ServerConfig
from .core import Connection, ConnectionState, RequestReadError, SocketServer
from .http import (
    CallbackError,
    CallbackRegistry,
    CallbackRuntimeError,
    Handler,
    HTTPMethod,
    Response,
)
from .logger import Logger, NullLogger


logger = logging.getLogger(__name__)

REQUEST_MARKER = "<<<<<<<<"
RESPONSE_MARKER = ">>>>>>>>"


class Server:
    """
    HTTP/1.0 server dispatching (method, path) to registered handlers.

    The attributes below may be changed freely until start() is called:

        port                  TCP port (0 lets the OS pick one)
        host                  Bind address, "0.0.0.0" for all interfaces
        max_request_bytes     Largest request accepted (default 1 MiB)
        read_timeout_seconds  Deadline for receiving a request
                              (default 60, 0 or less disables it)
        server_name           Value of the Server response header
        logger                Where diagnostic messages go
                              (default NullLogger, which drops them)

    Args:
        port: Overrides config.port when given.
        config: Initial values for the attributes above.
        logger: Initial value of `logger`.
    """

    def __init__(
        self,
        port: Optional[int] = None,
        config: Optional[ServerConfig] = None,
        logger: Optional[Logger] = None,
    ):
        config = config or ServerConfig()

        self.host = config.host
        self.port = config.port if port is None else port
        self.max_request_bytes = config.max_request_bytes
        self.read_timeout_seconds = config.read_timeout_seconds
        self.server_name = config.server_name
        self.backlog = config.backlog
        self.logger: Logger = logger or NullLogger()

        self._callbacks = CallbackRegistry()
        self._socket_server: Optional[SocketServer] = None
        self._ready = threading.Event()

    # =========================================================================
    # HANDLER REGISTRATION
    # =========================================================================
    #
    # Each method works two ways:
    #
    #     server.get("/", index)          # direct
    #
    #     @server.get("/")                # decorator
    #     def index(request, response):
    #         ...
    #
    # Registering a (method, path) pair twice raises
    # CallbackAlreadyRegisteredError; registering after start() raises
    # CallbackRegistryFrozenError.
    # =========================================================================

    def route(self, method: HTTPMethod, path: str, handler: Optional[Handler] = None):
        """Register `handler` for `method` and the exact `path`."""
        if handler is None:
            def decorator(fn: Handler) -> Handler:
                self._callbacks.register(method, path, fn)
                return fn
            return decorator

        self._callbacks.register(method, path, handler)
        return handler

    def get(self, path: str, handler: Optional[Handler] = None):
        return self.route(HTTPMethod.GET, path, handler)

    def post(self, path: str, handler: Optional[Handler] = None):
        return self.route(HTTPMethod.POST, path, handler)

    def put(self, path: str, handler: Optional[Handler] = None):
        return self.route(HTTPMethod.PUT, path, handler)

    def delete(self, path: str, handler: Optional[Handler] = None):
        return self.route(HTTPMethod.DELETE, path, handler)

    @property
    def callbacks(self) -> CallbackRegistry:
        return self._callbacks

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def build_config(self) -> ServerConfig:
        """Snapshot the current attributes as a validated ServerConfig."""
        config = ServerConfig(
            host=self.host,
            port=self.port,
            backlog=self.backlog,
            max_request_bytes=self.max_request_bytes,
            read_timeout_seconds=self.read_timeout_seconds,
            server_name=self.server_name,
        )
        config.validate()
        return config

    def start(self) -> None:
        """
        Listen on `port` and serve until shutdown() or SIGINT/SIGTERM.

        Registration is closed from here on. Each connection is served on
        its own thread; this call only returns once the server stops.

        Raises:
            OSError: If the port cannot be bound.
            ValueError: If an attribute holds an invalid value.
        """
        self._socket_server = SocketServer(self.build_config())

        try:
            _, port = self._socket_server.bind()
        except OSError as e:
            self.logger.log_message(f"Failed to open tcp listener: {e}")
            raise

        self._callbacks.freeze()
        self.logger.log_message(f"Listening on port {port}")
        self._ready.set()

        try:
            self._socket_server.serve_forever(self.handle_connection)
        finally:
            self._ready.clear()

    def shutdown(self) -> None:
        """Stop accepting connections. In-flight exchanges still finish."""
        if self._socket_server is not None:
            self._socket_server.shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until start() is listening. False on timeout."""
        return self._ready.wait(timeout)

    @property
    def address(self) -> Tuple[str, int]:
        """The bound (IP, port) once started; the configured one before."""
        if self._socket_server is not None:
            return self._socket_server.address
        return (self.host, self.port)

    # =========================================================================
    # CONNECTION HANDLING (runs on the connection's thread)
    # =========================================================================

    def handle_connection(self, conn: Connection) -> None:
        """
        Serve exactly one request on `conn`, then close it.

        Never raises for problems with the connection or the handler; they
        are logged and only end this exchange.
        """
        remote = conn.remote_address
        self.logger.log_message(f"Connected to remote address {remote}")

        with conn:
            try:
                self._serve(conn)
            finally:
                self.logger.log_message(f"Disconnecting from remote address {remote}")

    def _serve(self, conn: Connection) -> None:
        # ─────────────────────────────────────────────────────────────────
        # READING
        # ─────────────────────────────────────────────────────────────────
        try:
            request = conn.read_request()
        except (RequestReadError, OSError) as e:
            logger.debug(f"[{conn.id}] Read failed: {e!r}")
            self.logger.log_message(f"Unable to read message from the connection: {e}")
            return
        except Exception as e:
            logger.exception(f"[{conn.id}] Unexpected error while reading")
            self.logger.log_message(f"Unable to read message from the connection: {e!r}")
            raise

        self._log_block(f"Request from {conn.remote_address}:", REQUEST_MARKER, request.raw_message)

        # ─────────────────────────────────────────────────────────────────
        # DISPATCHING
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.DISPATCHING
        response = Response(server_name=self.server_name)

        try:
            self._callbacks.invoke(request.method, request.path, request, response)
        except CallbackError as e:
            if isinstance(e, CallbackRuntimeError):
                logger.debug(f"[{conn.id}] Handler failed", exc_info=e.inner)
            self.logger.log_message(str(e))

            # ─────────────────────────────────────────────────────────────
            # ERROR_RESPONDING: whatever the handler set is discarded
            # ─────────────────────────────────────────────────────────────
            conn.state = ConnectionState.ERROR_RESPONDING
            conn.send_response(Response.internal_error(self.server_name).to_bytes())
            return

        # ─────────────────────────────────────────────────────────────────
        # RESPONDING
        # ─────────────────────────────────────────────────────────────────
        conn.state = ConnectionState.RESPONDING
        self._log_block(f"Sending response to {conn.remote_address}:", RESPONSE_MARKER, str(response))
        conn.send_response(response.to_bytes())

    def _log_block(self, title: str, marker: str, body: str) -> None:
        self.logger.log_message(title)
        self.logger.log_message(marker)
        self.logger.log_message(body)
        self.logger.log_message(marker)


def new_server(port: int) -> Server:
    """Create a Server on `port` with every other setting at its default."""
    return Server(port=port)
