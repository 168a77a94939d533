"""
=============================================================================
SIMPLEHTTP - A Minimal HTTP/1.0 Server
=============================================================================

Register a handler for a method and an exact path; the server reads one
request per connection, calls the handler, writes the response and closes
the connection.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     SIMPLEHTTP ARCHITECTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   SocketServer ──accept──► Connection ──read_request──► Request    │
    │   (core/)                  (core/)        │                         │
    │                                           │ RequestParser (http/)   │
    │                                           ▼                         │
    │   Server.handle_connection ──► CallbackRegistry.invoke(...)         │
    │   (server.py)                   handler(request, response)          │
    │                                           │                         │
    │                                           ▼                         │
    │                          Response.to_bytes() ──► sendall, close     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
PACKAGE STRUCTURE
=============================================================================

    simplehttp/
    ├── __init__.py          # This file - package exports
    ├── __main__.py          # Demo server (python -m simplehttp)
    ├── server.py            # Server: registration + per-connection flow
    ├── config.py            # ServerConfig dataclass
    ├── logger.py            # Logger protocol, NullLogger, StandardLogger
    ├── core/                # Networking
    │   ├── socket_server.py # Listen/accept, one thread per connection
    │   └── connection.py    # Read loop, response write, close
    └── http/                # Protocol
        ├── headers.py       # Header codec
        ├── methods.py       # GET/POST/PUT/DELETE
        ├── request.py       # Request parser
        ├── response.py      # Response builder
        ├── callbacks.py     # (method, path) → handler registry
        ├── status_codes.py  # Status codes and reason phrases
        └── mime_types.py    # Content-Type by file extension

=============================================================================
QUICK START
=============================================================================

    from simplehttp import Server, StandardLogger

    server = Server(port=3030)
    server.logger = StandardLogger()

    @server.get("/")
    def index(request, response):
        response.set_html("<h1>Hello, world!</h1>")

    @server.post("/users")
    def create_user(request, response):
        response.set_status(201)
        response.set_json({"received": request.text})

    server.start()

=============================================================================
"""

__version__ = "1.0.0"

from .config import ServerConfig
from .core import (
    InvalidMessageError,
    PrematureEOFError,
    RequestReadError,
    RequestTooLargeError,
)
from .http import (
    BodyEncodingError,
    CallbackAlreadyRegisteredError,
    CallbackError,
    CallbackNotRegisteredError,
    CallbackRegistryFrozenError,
    CallbackRuntimeError,
    FileAccessError,
    HeaderKeyError,
    HTTPMethod,
    HTTPStatus,
    Request,
    Response,
    ResponseError,
)
from .logger import Logger, NullLogger, StandardLogger
from .server import Server, new_server

__all__ = [
    "__version__",
    "Server",
    "new_server",
    "ServerConfig",
    "Request",
    "Response",
    "HTTPMethod",
    "HTTPStatus",
    "Logger",
    "NullLogger",
    "StandardLogger",
    "RequestReadError",
    "InvalidMessageError",
    "RequestTooLargeError",
    "PrematureEOFError",
    "CallbackError",
    "CallbackAlreadyRegisteredError",
    "CallbackNotRegisteredError",
    "CallbackRuntimeError",
    "CallbackRegistryFrozenError",
    "ResponseError",
    "HeaderKeyError",
    "BodyEncodingError",
    "FileAccessError",
]
