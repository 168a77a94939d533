"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Turns a growing buffer of raw bytes into a structured Request.
Implements the request side of RFC 1945 (HTTP/1.0).

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

An HTTP request is a text-based message with a specific structure:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │  ┌─ REQUEST LINE ─────────────────────────────────────────────────┐ │
    │  │                                                                 │ │
    │  │    POST /api/users?page=1 HTTP/1.0\r\n                         │ │
    │  │    ─┬── ──────────┬──────  ────┬───                            │ │
    │  │     │             │            │                                │ │
    │  │   Method       Request-     Version                            │ │
    │  │                target                                           │ │
    │  │                                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ HEADERS ──────────────────────────────────────────────────────┐ │
    │  │    Host: client:8080\r\n                                       │ │
    │  │    Content-Length: 12\r\n                                      │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ EMPTY LINE (separator) ───────────────────────────────────────┐ │
    │  │    \r\n                                                         │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    │  ┌─ BODY (exactly Content-Length bytes) ──────────────────────────┐ │
    │  │    hello world!                                                 │ │
    │  └─────────────────────────────────────────────────────────────────┘ │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
THREE POSSIBLE OUTCOMES
=============================================================================

TCP delivers bytes in arbitrary chunks, so the parser is asked the same
question again and again as the buffer grows: "is there a whole request
in here yet?" It answers with a ParseOutcome:

    ┌──────────────┬──────────────────────────────────────────────────────┐
    │  COMPLETE    │ A full request is present. Carries the Request.     │
    │  INCOMPLETE  │ Looks fine so far, need more bytes. Keep reading.   │
    │  INVALID     │ Malformed. No amount of extra bytes will fix it.    │
    └──────────────┴──────────────────────────────────────────────────────┘

The parser keeps no state between calls. Parsing the same bytes twice
gives the same answer, which is what lets the read loop simply re-run it
after every recv().

Bytes after the declared body are NOT part of the message. This server
handles one request per connection (no pipelining), so they are ignored.

=============================================================================
"""

from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import Dict, List, Mapping, Optional, Union
from urllib.parse import parse_qs
import re

from .headers import (
    DOUBLE_LINE_END_BYTES,
    LINE_END,
    HeaderParseError,
    format_message,
    parse_headers,
)
from .methods import HTTPMethod


# Anything the socket layer may hand us
Buffer = Union[bytes, bytearray]


@dataclass(frozen=True)
class Request:
    """
    Represents a parsed HTTP request.

    Created once per connection by the parser and never modified after.
    Handlers receive it read-only.

    =========================================================================
    ATTRIBUTES EXPLAINED
    =========================================================================

        method:     HTTPMethod.GET / POST / PUT / DELETE

        uri:        The request-target exactly as sent
                    "/search?q=hello%20world"

        version:    The version token exactly as sent ("HTTP/1.0")

        headers:    Read-only mapping, names as sent (case preserved)
                    {"Host": "client:8080", "Accept": "*/*"}

        body:       Exactly Content-Length bytes (b"" if no header)

        raw:        The bytes this request was parsed from, from the
                    first byte of the request line to the last body byte

    =========================================================================
    """

    method: HTTPMethod
    uri: str
    version: str = "HTTP/1.0"
    headers: Mapping[str, str] = field(default_factory=dict)
    body: bytes = b""
    raw: bytes = b""

    def __post_init__(self):
        # Freeze the headers too; frozen=True only guards attribute assignment
        object.__setattr__(self, "headers", MappingProxyType(dict(self.headers)))

    # =========================================================================
    # PROPERTIES - Computed values accessed like attributes
    # =========================================================================

    @property
    def path(self) -> str:
        """
        The path part of the request-target, still percent-escaped.

        "/search?q=hello%20world" → "/search"
        """
        return self.uri.partition("?")[0]

    @property
    def raw_parameters(self) -> str:
        """
        The query string, unparsed.

        "/search?q=a&q=b" → "q=a&q=b"
        """
        return self.uri.partition("?")[2]

    @property
    def parameters(self) -> Dict[str, List[str]]:
        """
        The query string parsed into a dict of lists.

        "?key1=value1&key1=value2&key2=value3" →
            {"key1": ["value1", "value2"], "key2": ["value3"]}

        Parameters with empty values are kept ("?flag=" → {"flag": [""]}).
        """
        return parse_qs(self.raw_parameters, keep_blank_values=True)

    @property
    def text(self) -> str:
        """The body decoded as UTF-8 (undecodable bytes are replaced)."""
        return self.body.decode("utf-8", errors="replace")

    @property
    def raw_message(self) -> str:
        """The exact request as received, decoded for display/logging."""
        return self.raw.decode("utf-8", errors="replace")

    @property
    def request_line(self) -> str:
        """Rebuilt request line: "GET /index.html HTTP/1.0"."""
        return f"{self.method} {self.uri} {self.version}"

    # =========================================================================
    # ACCESSOR METHODS
    # =========================================================================

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Get a header value by its exact name.

        Header names are stored as the client sent them, so
        get_header("host") will not find "Host".
        """
        return self.headers.get(name, default)

    def to_bytes(self) -> bytes:
        """
        Rebuild the request from its parsed parts.

        Method, target, version, headers and body all survive the round
        trip; header order follows the order they were parsed in. Use
        `raw` when the exact bytes on the wire are needed.
        """
        return format_message(self.request_line, self.headers, self.body)

    def __str__(self) -> str:
        return self.to_bytes().decode("utf-8", errors="replace")


class ParseStatus(Enum):
    """Which of the three parse outcomes we got."""
    COMPLETE = "complete"
    INCOMPLETE = "incomplete"
    INVALID = "invalid"


@dataclass(frozen=True)
class ParseOutcome:
    """
    Tagged result of one parse attempt.

    Check `status` (or the is_* helpers) before touching `request`:
    it is only set when the status is COMPLETE. `reason` explains an
    INCOMPLETE or INVALID outcome.

        outcome = parse_request(buffer)
        if outcome.is_complete:
            handle(outcome.request)
        elif outcome.is_incomplete:
            keep_reading()
        else:
            reject(outcome.reason)
    """

    status: ParseStatus
    request: Optional[Request] = None
    reason: str = ""

    @classmethod
    def complete(cls, request: Request) -> "ParseOutcome":
        return cls(ParseStatus.COMPLETE, request=request)

    @classmethod
    def incomplete(cls, reason: str) -> "ParseOutcome":
        return cls(ParseStatus.INCOMPLETE, reason=reason)

    @classmethod
    def invalid(cls, reason: str) -> "ParseOutcome":
        return cls(ParseStatus.INVALID, reason=reason)

    @property
    def is_complete(self) -> bool:
        return self.status is ParseStatus.COMPLETE

    @property
    def is_incomplete(self) -> bool:
        return self.status is ParseStatus.INCOMPLETE

    @property
    def is_invalid(self) -> bool:
        return self.status is ParseStatus.INVALID


class RequestParser:
    """
    Parses raw HTTP request bytes into ParseOutcome values.

    ==========================================================================
    PARSER ARCHITECTURE
    ==========================================================================

        Raw Request Bytes
              │
              ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │  REQUEST PARSER                                                   │
        ├───────────────────────────────────────────────────────────────────┤
        │                                                                    │
        │  1. Find Header/Body Separator (\r\n\r\n) ──────────────────────►│
        │     │  Not found? → INCOMPLETE                                    │
        │     ▼                                                             │
        │  2. Parse Request Line ─────────────────────────────────────────►│
        │     │  METHOD SP TARGET SP VERSION                                │
        │     │  Bad shape, method or target? → INVALID                    │
        │     ▼                                                             │
        │  3. Parse Headers ──────────────────────────────────────────────►│
        │     │  Line without a colon? → INVALID                           │
        │     ▼                                                             │
        │  4. Apply Content-Length ───────────────────────────────────────►│
        │     │  Not a number? → INVALID                                    │
        │     │  Body shorter than declared? → INCOMPLETE                  │
        │     ▼                                                             │
        │  5. Build Request → COMPLETE                                      │
        │                                                                    │
        └───────────────────────────────────────────────────────────────────┘

    ==========================================================================
    """

    # Every '%' in a request-target must start a two-hex-digit escape
    BAD_ESCAPE_PATTERN = re.compile(r"%(?![0-9A-Fa-f]{2})")
    CONTENT_LENGTH_PATTERN = re.compile(r"[0-9]+")
    CONTENT_LENGTH_HEADER = "Content-Length"

    # No buffer can hold a body this long; int() also refuses huge digit strings
    MAX_CONTENT_LENGTH_DIGITS = 18

    def parse(self, buffer: Buffer) -> ParseOutcome:
        """
        Try to parse one request from the start of `buffer`.

        Args:
            buffer: Everything received on the connection so far.

        Returns:
            ParseOutcome with status COMPLETE, INCOMPLETE or INVALID.
        """
        # =====================================================================
        # STEP 1: Find the end of the header section
        # =====================================================================
        header_end = buffer.find(DOUBLE_LINE_END_BYTES)
        if header_end == -1:
            return ParseOutcome.incomplete("a double line-end was not found")

        head = bytes(buffer[:header_end]).decode("utf-8", errors="replace")

        # The request line ends at the first CRLF. If that CRLF is the start
        # of the separator itself there are no header lines at all.
        request_line, _, header_block = head.partition(LINE_END)

        # =====================================================================
        # STEP 2: Request line
        # =====================================================================
        try:
            method, uri, version = self._parse_request_line(request_line)
        except ValueError as e:
            return ParseOutcome.invalid(str(e))

        # =====================================================================
        # STEP 3: Headers
        # =====================================================================
        try:
            headers = parse_headers(header_block)
        except HeaderParseError as e:
            return ParseOutcome.invalid(str(e))

        # =====================================================================
        # STEP 4: Body framing
        # =====================================================================
        body_start = header_end + len(DOUBLE_LINE_END_BYTES)
        content_length = 0

        raw_length = headers.get(self.CONTENT_LENGTH_HEADER)
        if raw_length is not None:
            if not self.CONTENT_LENGTH_PATTERN.fullmatch(raw_length):
                return ParseOutcome.invalid(
                    f"invalid value in Content-Length header: `{raw_length}`"
                )
            digits = raw_length.lstrip("0") or "0"
            received = len(buffer) - body_start

            if len(digits) > self.MAX_CONTENT_LENGTH_DIGITS:
                return ParseOutcome.incomplete(
                    f"expecting a {len(digits)}-digit number of bytes in body, only received {received}"
                )
            content_length = int(digits)

            if received < content_length:
                return ParseOutcome.incomplete(
                    f"expecting {content_length} bytes in body, only received {received}"
                )

        message_end = body_start + content_length

        # =====================================================================
        # STEP 5: Build the Request
        # =====================================================================
        return ParseOutcome.complete(Request(
            method=method,
            uri=uri,
            version=version,
            headers=headers,
            body=bytes(buffer[body_start:message_end]),
            raw=bytes(buffer[:message_end]),
        ))

    def _parse_request_line(self, line: str) -> tuple[HTTPMethod, str, str]:
        """
        Parse "METHOD SP TARGET SP VERSION".

        Returns:
            Tuple of (method, request-target, version)

        Raises:
            ValueError: If the line is malformed.
        """
        parts = line.split(" ")
        if len(parts) != 3:
            raise ValueError("unable to parse HTTP request-line")

        method_token, target, version = (part.strip() for part in parts)

        method = HTTPMethod.parse(method_token)
        self._validate_request_target(target)

        if not version:
            raise ValueError("missing HTTP version in request-line")

        return method, target, version

    def _validate_request_target(self, target: str) -> None:
        """
        Check that the target is an absolute path with an optional query.

        Valid:    /    /index.html    /search?q=hello%20world    //a/b
        Invalid:  -    no/leading/slash    /bad%zzescape    http://host/
        """
        if not target.startswith("/"):
            raise ValueError(f"invalid request-target: `{target}`")

        if any(ch <= " " or ch == "\x7f" for ch in target):
            raise ValueError(f"invalid character in request-target: `{target}`")

        if self.BAD_ESCAPE_PATTERN.search(target):
            raise ValueError(f"invalid escape sequence in request-target: `{target}`")


# =============================================================================
# CONVENIENCE FUNCTION
# =============================================================================

_default_parser = RequestParser()


def parse_request(buffer: Buffer) -> ParseOutcome:
    """
    Parse one request from `buffer` with a shared RequestParser.

    The parser holds no per-call state, so sharing it between threads
    is safe.
    """
    return _default_parser.parse(buffer)
