"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.0 responses, formatted per RFC 1945.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

A response mirrors the request structure:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ STATUS LINE ──────────────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    HTTP/1.0 200 OK\r\n                                         │ │
    │  │    ────┬─── ─┬─ ─┬─                                            │ │
    │  │        │     │   │                                              │ │
    │  │    Version  Code Phrase                                        │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │    Date: Mon, 02 Jan 2006 15:04:05 GMT\r\n                     │ │
    │  │    Server: simplehttp\r\n                                      │ │
    │  │    Content-Length: 11\r\n                                      │ │
    │  │    Connection: close\r\n                                       │ │
    │  │    Content-Type: text/html\r\n                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ EMPTY LINE (separator) ───────────────────────────────────────┐ │
    │  │    \r\n                                                         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY ─────────────────────────────────────────────────────────┐ │
    │  │    <h1>Hi</h1>                                                  │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
RESPONSE LIFECYCLE
=============================================================================

    Server builds          Handler mutates           Server sends
    default Response ───►  set_status / set_html ───► to_bytes()
    (200, 4 headers)       set_json / set_header      socket.sendall()

Every response starts with the same four headers, in this order:

    Date            current time in IMF-fixdate, always GMT
    Server          "simplehttp"
    Content-Length  "0"
    Connection      "close"  (one request per connection)

The body setters change the body, Content-Length and Content-Type
together, so the three can never disagree.

=============================================================================
HEADER ESCAPING
=============================================================================

set_header() query-escapes both the name and the value before storing
them:

    set_header("X-Greeting", "hello world")  →  X-Greeting: hello+world
    set_header("X-Evil", "a\r\nSet-Cookie")  →  X-Evil: a%0D%0ASet-Cookie

A header set this way can therefore never inject a line break into the
message. Clients see the escaped text, which differs from what most
HTTP servers send; existing handlers rely on it.

=============================================================================
"""

from datetime import datetime, timezone
from pathlib import Path
from types import MappingProxyType
from typing import Any, Dict, Mapping, Optional
from urllib.parse import quote_plus
import json

from .headers import format_message
from .mime_types import get_content_type, get_extension
from .status_codes import HTTPStatus, reason_phrase


DEFAULT_SERVER_NAME = "simplehttp"
HTTP_VERSION = "HTTP/1.0"


# =============================================================================
# ERRORS
# =============================================================================

class ResponseError(Exception):
    """Base class for errors raised while building a response."""


class HeaderKeyError(ResponseError, ValueError):
    """Raised by set_header() when the header name contains a colon."""


class BodyEncodingError(ResponseError):
    """Raised by set_json() when the payload cannot be serialized."""


class FileAccessError(ResponseError):
    """
    Raised by set_file() and set_file_with_content_type().

    Either the file could not be read (the OSError is chained as
    __cause__) or no Content-Type could be derived from its extension.
    """


# =============================================================================
# RESPONSE
# =============================================================================

class Response:
    """
    An HTTP response under construction.

    One Response is created per request and handed to the handler, which
    mutates it in place. The handler never needs to return it.

    Example:
        def hello(request, response):
            response.set_status(HTTPStatus.CREATED)
            response.set_header("X-Request-Path", request.path)
            response.set_json({"message": "hello"})

    Args:
        server_name: Value of the Server header.
        now: Timestamp for the Date header (defaults to the current time).
    """

    def __init__(self, server_name: str = DEFAULT_SERVER_NAME, now: Optional[datetime] = None):
        self._version = HTTP_VERSION
        self._status_code = int(HTTPStatus.OK)
        self._reason_phrase = HTTPStatus.OK.phrase
        self._headers: Dict[str, str] = {
            "Date": format_http_date(now or datetime.now(timezone.utc)),
            "Server": server_name,
            "Content-Length": "0",
            "Connection": "close",
        }
        self._body = b""

    @classmethod
    def internal_error(cls, server_name: str = DEFAULT_SERVER_NAME) -> "Response":
        """
        Build the fixed response sent when a handler fails.

        A fresh default response with status 500 and an empty body.
        Nothing the failing handler did to its own response leaks in.
        """
        response = cls(server_name=server_name)
        response.set_status(HTTPStatus.INTERNAL_SERVER_ERROR)
        return response

    # =========================================================================
    # READ ACCESSORS
    # =========================================================================

    @property
    def version(self) -> str:
        return self._version

    @property
    def status_code(self) -> int:
        return self._status_code

    @property
    def reason_phrase(self) -> str:
        return self._reason_phrase

    @property
    def headers(self) -> Mapping[str, str]:
        """Read-only view of the headers; use set_header() to change them."""
        return MappingProxyType(self._headers)

    @property
    def body(self) -> bytes:
        return self._body

    @property
    def text(self) -> str:
        """The body decoded as UTF-8 (undecodable bytes are replaced)."""
        return self._body.decode("utf-8", errors="replace")

    @property
    def status_line(self) -> str:
        """
        Format: HTTP-VERSION SP STATUS-CODE SP REASON-PHRASE
        Example: "HTTP/1.0 404 Not Found"
        """
        return f"{self._version} {self._status_code} {self._reason_phrase}"

    # =========================================================================
    # MUTATORS
    # =========================================================================

    def set_status(self, code: int) -> None:
        """
        Set the status code and its reason phrase.

        Any code is accepted. Codes HTTP/1.0 does not define keep their
        number but get the reason phrase "unknown":

            set_status(404)  →  HTTP/1.0 404 Not Found
            set_status(999)  →  HTTP/1.0 999 unknown
        """
        self._status_code = int(code)
        self._reason_phrase = reason_phrase(code)

    def set_header(self, key: str, value: str) -> None:
        """
        Add or replace a single header.

        Both key and value are trimmed, then query-escaped (see module
        docstring). Setting an existing name overwrites its value.

        Raises:
            HeaderKeyError: If the key contains a colon. Colons in the
                            value are fine.
        """
        key = key.strip()
        value = value.strip()

        if ":" in key:
            raise HeaderKeyError("header key cannot contain a colon")

        self._headers[quote_plus(key, safe="")] = quote_plus(value, safe="")

    def set_html(self, html: str) -> None:
        """Set an HTML body. Content-Type becomes "text/html"."""
        self._set_body(html.encode("utf-8"), "text/html")

    def set_json(self, payload: Any) -> None:
        """
        Set a JSON body. Content-Type becomes "application/json".

        A str payload is taken as already-encoded JSON and used as is.
        Anything else is serialized with json.dumps():

            set_json('{"a": 1}')   →  {"a": 1}
            set_json({"a": 1})     →  {"a": 1}
            set_json("hi")         →  hi          (not "\"hi\"")

        Raises:
            BodyEncodingError: If the payload is not JSON serializable.
                               The body is left unchanged.
        """
        if isinstance(payload, str):
            body = payload
        else:
            try:
                body = json.dumps(payload, ensure_ascii=False)
            except (TypeError, ValueError) as e:
                raise BodyEncodingError(f"error while marshalling object: {e}") from e

        self._set_body(body.encode("utf-8"), "application/json")

    def set_file(self, path: str | Path) -> None:
        """
        Send the contents of a file, typed by its extension.

        Args:
            path: Absolute, or relative to the working directory.

        Raises:
            FileAccessError: If the file cannot be read, has no extension,
                             or has an extension with no known type.
        """
        content = self._read_file(path)

        if not get_extension(path):
            raise FileAccessError(
                "unable to determine a Content-Type because the file does not have an extension"
            )

        content_type = get_content_type(path)
        if content_type is None:
            raise FileAccessError(
                "unable to determine a Content-Type based on the file's extension"
            )

        self._set_body(content, content_type)

    def set_file_with_content_type(self, path: str | Path, content_type: str) -> None:
        """
        Send the contents of a file with an explicit Content-Type.

        Raises:
            FileAccessError: If the file cannot be read.
        """
        self._set_body(self._read_file(path), content_type)

    # =========================================================================
    # SERIALIZATION
    # =========================================================================

    def to_bytes(self) -> bytes:
        """
        Serialize the response for socket.sendall().

            HTTP/1.0 200 OK\r\n          ← Status line
            Date: ...\r\n                ← Headers, in insertion order
            ...\r\n
            \r\n                         ← Empty line (separator)
            <body>                       ← Body bytes, unmodified
        """
        return format_message(self.status_line, self._headers, self._body)

    def __str__(self) -> str:
        return self.to_bytes().decode("utf-8", errors="replace")

    def __repr__(self) -> str:
        return f"<Response {self._status_code} {self._reason_phrase} ({len(self._body)} bytes)>"

    # =========================================================================
    # INTERNALS
    # =========================================================================

    def _set_body(self, body: bytes, content_type: str) -> None:
        self._body = body
        self._headers["Content-Length"] = str(len(body))
        self._headers["Content-Type"] = content_type

    @staticmethod
    def _read_file(path: str | Path) -> bytes:
        try:
            return Path(path).read_bytes()
        except OSError as e:
            raise FileAccessError(f"unable to read file `{path}`: {e}") from e


# =============================================================================
# DATE FORMATTING
# =============================================================================

_DAYS = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
_MONTHS = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
           "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (IMF-fixdate).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Mon, 02 Jan 2006 15:04:05 GMT

    HTTP dates are always GMT. Aware datetimes are converted to UTC
    first; naive datetimes are assumed to be UTC already.

    Not locale dependent, unlike strftime("%a").
    """
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    else:
        dt = dt.astimezone(timezone.utc)

    return (
        f"{_DAYS[dt.weekday()]}, "
        f"{dt.day:02d} {_MONTHS[dt.month - 1]} {dt.year:04d} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
