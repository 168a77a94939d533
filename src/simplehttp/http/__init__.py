"""
=============================================================================
HTTP/1.0 PROTOCOL IMPLEMENTATION
=============================================================================

Everything that knows what an HTTP message looks like: turning raw bytes
into a Request, building a Response, and mapping (method, path) to the
handler that serves it. Nothing in here touches a socket.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    HTTP Request-Response Cycle                       │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   CLIENT                                         SERVER              │
    │      │                                              │                │
    │      │   GET /index.html HTTP/1.0                  │                │
    │      │  ─────────────────────────────────────────►  │                │
    │      │                                              │                │
    │      │               HTTP/1.0 200 OK               │                │
    │      │  ◄─────────────────────────────────────────  │                │
    │      │                                              │                │
    │      │               (connection closed)            │                │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
MODULE COMPONENTS
=============================================================================

    headers.py       Header block codec, CRLF framing constants
    methods.py       HTTPMethod: GET, POST, PUT, DELETE
    request.py       RequestParser → ParseOutcome (complete/incomplete/invalid)
    response.py      Response: defaults, mutators, serialization
    status_codes.py  HTTPStatus and reason phrases (RFC 1945 §9)
    mime_types.py    File extension → Content-Type for Response.set_file()
    callbacks.py     CallbackRegistry: exact (method, path) → handler

=============================================================================
"""

from .callbacks import (
    CallbackAlreadyRegisteredError,
    CallbackError,
    CallbackNotRegisteredError,
    CallbackRegistry,
    CallbackRegistryFrozenError,
    CallbackRuntimeError,
    Handler,
)
from .headers import HeaderParseError, format_headers, parse_headers
from .methods import HTTPMethod
from .mime_types import get_content_type, get_mime_type
from .request import ParseOutcome, ParseStatus, Request, RequestParser, parse_request
from .response import (
    BodyEncodingError,
    FileAccessError,
    HeaderKeyError,
    Response,
    ResponseError,
    format_http_date,
)
from .status_codes import HTTPStatus, reason_phrase

__all__ = [
    # Request parsing
    "Request",
    "RequestParser",
    "ParseOutcome",
    "ParseStatus",
    "parse_request",

    # Headers
    "HeaderParseError",
    "parse_headers",
    "format_headers",

    # Response building
    "Response",
    "ResponseError",
    "HeaderKeyError",
    "BodyEncodingError",
    "FileAccessError",
    "format_http_date",

    # Callbacks
    "CallbackRegistry",
    "Handler",
    "CallbackError",
    "CallbackAlreadyRegisteredError",
    "CallbackNotRegisteredError",
    "CallbackRuntimeError",
    "CallbackRegistryFrozenError",

    # Methods and status codes
    "HTTPMethod",
    "HTTPStatus",
    "reason_phrase",

    # MIME types
    "get_mime_type",
    "get_content_type",
]
