"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing underneath the HTTP layer.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         SOCKET SERVER                                │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Creates the TCP listening socket, binds and listens             │
    │  • Runs the accept() loop                                           │
    │  • Starts one thread per accepted connection                        │
    │  • Stops on shutdown() or SIGTERM/SIGINT                            │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    │ One thread per connection
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │                          CONNECTION                                  │
    │  ─────────────────────────────────────────────────────────────────  │
    │  • Reads chunks until the parser sees a whole request               │
    │  • Enforces the size ceiling and the read deadline                  │
    │  • Writes the response, then closes (no keep-alive)                 │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import (
    Connection,
    ConnectionState,
    InvalidMessageError,
    PrematureEOFError,
    RequestReadError,
    RequestTooLargeError,
)

__all__ = [
    "SocketServer",          # TCP server - accepts connections
    "Connection",            # One client socket - read one request, write one response
    "ConnectionState",       # Connection lifecycle states
    "RequestReadError",      # Base for read failures
    "InvalidMessageError",   # Malformed request
    "RequestTooLargeError",  # Over max_request_bytes
    "PrematureEOFError",     # Client hung up early
]
