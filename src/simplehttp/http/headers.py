"""
=============================================================================
HEADER CODEC
=============================================================================

Parses an HTTP header block into a dictionary and renders it back.

    ┌─ HEADER BLOCK ─────────────────────────────────────────────────────┐
    │                                                                     │
    │    Host: client:8080\r\n                                            │
    │    Accept: */*\r\n                                                  │
    │    Content-Length: 12                                               │
    │                                                                     │
    └─────────────────────────────────────────────────────────────────────┘
                              │
                              ▼
          {"Host": "client:8080", "Accept": "*/*", "Content-Length": "12"}

RULES:
    - Each line is split on its FIRST colon ("Host: a:b" → "Host", "a:b")
    - Name and value are trimmed independently
    - A line without a colon makes the whole block invalid
    - Names are kept exactly as received (no case normalization)
    - A repeated name overwrites the earlier value (last one wins)

Serialization follows the dict's insertion order, so a given headers dict
always renders the same way.

=============================================================================
"""

from typing import Dict, Mapping


LINE_END = "\r\n"
DOUBLE_LINE_END = LINE_END + LINE_END

# Byte forms used when scanning raw socket data
LINE_END_BYTES = LINE_END.encode("ascii")
DOUBLE_LINE_END_BYTES = DOUBLE_LINE_END.encode("ascii")


class HeaderParseError(ValueError):
    """Raised when a header line cannot be split into name and value."""

    def __init__(self, line: str):
        super().__init__(f"could not parse the following header: `{line}`")
        self.line = line


def parse_headers(block: str) -> Dict[str, str]:
    """
    Parse a header block into a name → value dictionary.

    Args:
        block: Header lines joined by CRLF, with the terminating blank
               line already removed. Surrounding whitespace is ignored.

    Returns:
        Dictionary of header name → value. Empty if the block is empty.

    Raises:
        HeaderParseError: If any line has no colon.
    """
    headers: Dict[str, str] = {}

    block = block.strip()
    if not block:
        return headers

    for line in block.split(LINE_END):
        name, sep, value = line.partition(":")
        if not sep:
            raise HeaderParseError(line)

        headers[name.strip()] = value.strip()

    return headers


def format_headers(headers: Mapping[str, str]) -> str:
    """
    Render headers as "Name: Value" lines joined by CRLF.

    There is no trailing CRLF; callers add the blank line themselves.
    """
    return LINE_END.join(f"{name}: {value}" for name, value in headers.items())


def format_message(start_line: str, headers: Mapping[str, str], body: bytes) -> bytes:
    """
    Assemble a complete HTTP message.

        <start line>\r\n
        <Name: Value>\r\n ...
        \r\n
        <body>

    Args:
        start_line: Request line or status line (without CRLF).
        headers: Header mapping, rendered in iteration order.
        body: Raw body bytes.

    Returns:
        The message as bytes, ready for socket.sendall().
    """
    lines = [start_line]
    if headers:
        lines.append(format_headers(headers))

    head = LINE_END.join(lines) + DOUBLE_LINE_END
    return head.encode("utf-8") + body
