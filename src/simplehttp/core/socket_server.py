"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Listens on a TCP port, accepts connections and hands each one to its own
thread. Knows nothing about HTTP.

SOCKET LIFECYCLE (Server Side):
────────────────────────────────

    1. socket()    Create a socket file descriptor
    2. bind()      Associate the socket with an IP:PORT
    3. listen()    OS starts queueing incoming connections
    4. accept()    Returns a NEW socket for each client;
                   the listening socket keeps listening
    5. close()     Release the listening socket on shutdown

                    ┌───────────────────────┐
                    │   Listening Socket    │ ◄── Created once at startup
                    │   0.0.0.0:3030        │     Never sends/receives data
                    └───────────┬───────────┘
                                │ accept()
        ┌───────────────────────┼───────────────────────┐
        ▼                       ▼                       ▼
    ┌───────────┐         ┌───────────┐         ┌───────────┐
    │ Thread    │         │ Thread    │         │ Thread    │
    │ conn-1a2b │         │ conn-3c4d │         │ conn-5e6f │
    └───────────┘         └───────────┘         └───────────┘
    One thread per connection, started and forgotten. Each thread reads
    one request, writes one response and closes its socket.

=============================================================================
SOCKET OPTIONS
=============================================================================

SO_REUSEADDR:  Rebind right after a restart instead of waiting out
               TIME_WAIT ("Address already in use").

TCP_NODELAY:   Disable Nagle's algorithm; each response is written with a
               single sendall() and should leave immediately.

accept timeout: accept() gives up every second so the loop can notice
               shutdown() without needing another connection to arrive.

=============================================================================
SIGNAL HANDLING
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, kill) stop the accept loop.
Python only lets the main thread install signal handlers, so a server
started from any other thread (tests, embedding applications) leaves
them alone and is stopped with shutdown() instead.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..config import ServerConfig
from .connection import Connection


logger = logging.getLogger(__name__)


ACCEPT_POLL_INTERVAL = 1.0


class SocketServer:
    """
    Low-level TCP socket server.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      SocketServer Internals                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │    bind()            socket(), setsockopt(), bind(), listen()       │
    │        │                                                             │
    │        ▼                                                             │
    │    serve_forever()   Install signals, run the accept loop           │
    │        │                                                             │
    │        └──► while running:                                           │
    │                accept()            Wait for a client                 │
    │                Connection()        Wrap the client socket            │
    │                Thread(handler)     Hand it off, keep accepting       │
    │                                                                      │
    │    shutdown()        _running = False (loop exits within ~1s)       │
    │                                                                      │
    │    _cleanup()        Restore signals, close listening socket        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

    Usage:
        def handle_connection(conn: Connection):
            with conn:
                ...

        server = SocketServer(config)
        server.start(handle_connection)  # Blocks until shutdown
    """

    def __init__(self, config: ServerConfig):
        self.config = config

        self._socket: Optional[socket.socket] = None
        self._running = False

        self._original_handlers: dict = {}

    @property
    def address(self) -> Tuple[str, int]:
        """
        The (IP, port) the server is bound to.

        After bind() this is the real address, so port 0 in the config
        resolves to the port the OS picked.
        """
        if self._socket is not None:
            return self._socket.getsockname()[:2]
        return (self.config.host, self.config.port)

    def _create_socket(self) -> socket.socket:
        """Create the listening socket with our socket options."""
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)
        sock.settimeout(ACCEPT_POLL_INTERVAL)
        return sock

    def _setup_signals(self):
        """
        Install SIGTERM/SIGINT handlers that call shutdown().

        Skipped off the main thread, where signal.signal() would raise.
        """
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread, signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def bind(self) -> Tuple[str, int]:
        """
        Create the socket, bind it and start listening.

        Returns:
            The bound (IP, port).

        Raises:
            OSError: If the address cannot be bound (in use, no permission).
                     The error is logged before it is raised.
        """
        self._socket = self._create_socket()

        try:
            self._socket.bind((self.config.host, self.config.port))
            self._socket.listen(self.config.backlog)
        except OSError as e:
            logger.error(f"Failed to bind to {self.config.host}:{self.config.port}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._running = True

        host, port = self.address
        logger.info(f"Server listening on {host}:{port}")
        return host, port

    def serve_forever(self, connection_handler: Callable[[Connection], None]):
        """
        Run the accept loop until shutdown(). Requires bind() first.

        Args:
            connection_handler: Called with each new Connection on a
                                dedicated thread.
        """
        if self._socket is None:
            raise RuntimeError("serve_forever() called before bind()")

        self._setup_signals()
        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def start(self, connection_handler: Callable[[Connection], None]):
        """Bind and serve. Blocks until shutdown() is called."""
        self.bind()
        self.serve_forever(connection_handler)

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                # Poll interval elapsed; re-check _running
                continue
            except OSError as e:
                # Socket error - usually means we're shutting down
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            # Accepted sockets must not inherit the accept timeout
            client_socket.settimeout(None)

            conn = Connection(
                socket=client_socket,
                address=client_address,
                max_request_bytes=self.config.max_request_bytes,
                read_timeout=self.config.read_timeout,
            )
            logger.debug(f"[{conn.id}] Accepted connection from {conn.remote_address}")

            worker = threading.Thread(
                target=connection_handler,
                args=(conn,),
                name=f"conn-{conn.id}",
                daemon=True,
            )
            worker.start()

    def shutdown(self):
        """
        Stop accepting connections. Safe to call from any thread, and
        more than once.

        Connections already being served finish on their own threads.
        """
        logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass  # Already closed
            self._socket = None

        self._running = False
        logger.info("Socket server stopped")
