"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket: reads exactly one request from it,
writes one response, and closes it.

=============================================================================
TCP IS A BYTE STREAM, NOT A MESSAGE PROTOCOL!
=============================================================================

TCP only guarantees that bytes arrive IN ORDER and INTACT. It does not
preserve the boundaries of what the client sent:

    Client sends:
        POST / HTTP/1.0\r\nContent-Length: 5\r\n\r\nhello

    Server might receive:
        First recv():  "POST / HT"                    (incomplete!)
        Second recv(): "TP/1.0\r\nContent-Length: 5"  (still incomplete)
        Third recv():  "\r\n\r\nhel"                  (headers done, body short)
        Fourth recv(): "lo"                           (complete)

So we keep everything received so far in a buffer and ask the parser,
after every recv(), whether the buffer holds a whole request yet.

=============================================================================
THE READ LOOP
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                      read_request() Flow                            │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   ┌──────────────────────┐                                          │
    │   │ recv(≤1024 bytes)    │◄──────────────────────────────┐          │
    │   └──────────┬───────────┘                               │          │
    │              │                                            │          │
    │     OSError / deadline ──────► raise (TimeoutError etc)  │          │
    │              │                                            │          │
    │     b"" (client closed) ─────► parse once more:          │          │
    │              │                   complete → return       │          │
    │              │                   otherwise → PrematureEOF │          │
    │              ▼                                            │          │
    │   ┌──────────────────────┐                               │          │
    │   │ buffer += data       │                               │          │
    │   │ parse_request(buffer)│                               │          │
    │   └──────────┬───────────┘                               │          │
    │              │                                            │          │
    │     COMPLETE ────────────────► return Request            │          │
    │     INVALID  ────────────────► raise InvalidMessageError │          │
    │     INCOMPLETE, too big ─────► raise RequestTooLargeError│          │
    │     INCOMPLETE ──────────────────────────────────────────┘          │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
READ DEADLINE
=============================================================================

The read timeout bounds the WHOLE request, not each recv(). The deadline
is fixed when reading starts and every recv() only gets the time that is
left, so a client trickling one byte every few seconds still runs out of
time. Expiry surfaces as TimeoutError, an OSError like any other read
failure.

=============================================================================
"""

import logging
import socket
import time
import uuid
from dataclasses import dataclass, field
from enum import Enum
from typing import Optional

from ..http.request import Request, parse_request


logger = logging.getLogger(__name__)


# Largest single recv(); smaller if the request ceiling itself is smaller
CHUNK_SIZE = 1024

# Total time close() spends draining the client's remaining bytes
DRAIN_TIMEOUT = 0.5
DRAIN_LIMIT = 64 * 1024


# =============================================================================
# ERRORS
# =============================================================================

class RequestReadError(Exception):
    """A request could not be read from the connection."""


class InvalidMessageError(RequestReadError):
    """The received bytes are not a valid HTTP request."""

    def __init__(self, reason: str):
        super().__init__(reason)
        self.reason = reason


class RequestTooLargeError(RequestReadError):
    """More than max_request_bytes arrived without completing a request."""

    def __init__(self, limit: int):
        super().__init__("incoming request exceeded the maximum request size")
        self.limit = limit


class PrematureEOFError(RequestReadError):
    """The client closed its side before a whole request arrived."""

    def __init__(self):
        super().__init__("got an EOF from the client before a full message was received")


class ConnectionState(Enum):
    """
    Connection lifecycle states.

        NEW ──► READING ──► DISPATCHING ──► RESPONDING ───────► CLOSED
                   │              │                                ▲
                   │              └──────► ERROR_RESPONDING ──────┤
                   └──► READ_FAILED ──────────────────────────────┘
    """
    NEW = "new"                            # Accepted, nothing read yet
    READING = "reading"                    # Inside read_request()
    READ_FAILED = "read_failed"            # No request; nothing will be sent
    DISPATCHING = "dispatching"            # Handler is running
    RESPONDING = "responding"              # Sending the handler's response
    ERROR_RESPONDING = "error_responding"  # Sending the fixed 500
    CLOSED = "closed"                      # Socket released


@dataclass
class Connection:
    """
    Represents a client connection.

    One Connection serves exactly one request (HTTP/1.0, no keep-alive):

        with Connection(sock, addr, max_request_bytes=1024 * 1024, read_timeout=60) as conn:
            request = conn.read_request()
            conn.send_response(response.to_bytes())
        # Connection closed here, on every path

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple.
        max_request_bytes: Ceiling on buffered bytes while incomplete.
        read_timeout: Seconds allowed for the whole read, None/<=0 for no limit.
        id: Short unique identifier for log lines.
        state: Current ConnectionState.
    """

    socket: socket.socket
    address: tuple[str, int]
    max_request_bytes: int = 1024 * 1024
    read_timeout: Optional[float] = 60

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    bytes_received: int = 0

    # =========================================================================
    # PROPERTIES
    # =========================================================================

    @property
    def client_ip(self) -> str:
        return self.address[0]

    @property
    def client_port(self) -> int:
        return self.address[1]

    @property
    def remote_address(self) -> str:
        """"ip:port", as shown in log messages."""
        return f"{self.client_ip}:{self.client_port}"

    @property
    def age(self) -> float:
        """Connection age in seconds."""
        return time.time() - self.created_at

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Request:
        """
        Read one complete HTTP request from the socket.

        Returns:
            The parsed Request. Any bytes the client sent after it are
            ignored.

        Raises:
            InvalidMessageError: The bytes can never form a valid request.
            RequestTooLargeError: Incomplete after max_request_bytes.
            PrematureEOFError: Client closed before the request was complete.
            OSError: Socket failure, including TimeoutError at the deadline.
        """
        self.state = ConnectionState.READING
        try:
            return self._read_until_complete()
        except (RequestReadError, OSError):
            self.state = ConnectionState.READ_FAILED
            raise

    def _read_until_complete(self) -> Request:
        chunk_size = min(CHUNK_SIZE, self.max_request_bytes)
        deadline = self._start_deadline()
        buffer = bytearray()

        while True:
            self._apply_deadline(deadline)
            data = self.socket.recv(chunk_size)

            if not data:
                # Client finished sending; whatever we have is all there is
                outcome = parse_request(buffer)
                if outcome.is_complete:
                    return outcome.request
                raise PrematureEOFError()

            buffer += data
            self.bytes_received += len(data)

            outcome = parse_request(buffer)
            if outcome.is_complete:
                return outcome.request
            if outcome.is_invalid:
                raise InvalidMessageError(outcome.reason)

            if len(buffer) > self.max_request_bytes:
                raise RequestTooLargeError(self.max_request_bytes)

            logger.debug(f"[{self.id}] Waiting for more data: {outcome.reason}")

    def _start_deadline(self) -> Optional[float]:
        if self.read_timeout is None or self.read_timeout <= 0:
            return None
        return time.monotonic() + self.read_timeout

    def _apply_deadline(self, deadline: Optional[float]) -> None:
        """Give the next recv() whatever is left of the deadline."""
        if deadline is None:
            self.socket.settimeout(None)
            return

        remaining = deadline - time.monotonic()
        if remaining <= 0:
            raise TimeoutError("read deadline exceeded")
        self.socket.settimeout(remaining)

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes to the client.

        Uses sendall() so the whole response goes out, not just the part
        that fit into the kernel buffer. There is no write deadline.

        Returns:
            True if the send succeeded, False if the connection was lost.
        """
        try:
            self.socket.settimeout(None)
            self.socket.sendall(data)
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self) -> None:
        """
        Close the connection gracefully. Safe to call more than once.

        ┌─────────────────────────────────────────────────────────────────┐
        │                    TCP Close Sequence                            │
        ├─────────────────────────────────────────────────────────────────┤
        │                                                                  │
        │   Server                              Client                     │
        │      │   FIN ──────────────────────────► │  (shutdown SHUT_WR)  │
        │      │ ◄───────────────────────── ACK   │                       │
        │      │ ◄─────────────── (extra bytes)   │  (drained, dropped)   │
        │      │ ◄───────────────────────── FIN   │  (client closes)      │
        │   (socket closed)                  (socket closed)               │
        │                                                                  │
        └─────────────────────────────────────────────────────────────────┘

        Draining lets the client read our response before the kernel
        answers its unread bytes with a reset.
        """
        if self.state == ConnectionState.CLOSED:
            return

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # Already disconnected

        try:
            deadline = time.monotonic() + DRAIN_TIMEOUT
            drained = 0
            while drained < DRAIN_LIMIT:
                remaining = deadline - time.monotonic()
                if remaining <= 0:
                    break
                self.socket.settimeout(remaining)
                data = self.socket.recv(CHUNK_SIZE)
                if not data:
                    break
                drained += len(data)
        except OSError:
            pass  # Timed out or reset; closing anyway

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.age:.3f}s")

    # =========================================================================
    # CONTEXT MANAGER
    # =========================================================================

    def __enter__(self) -> "Connection":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        """Close on exit; exceptions are not suppressed."""
        self.close()
        return False
