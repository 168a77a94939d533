"""
=============================================================================
HTTP/1.0 STATUS CODES (RFC 1945 §9.1 - §9.5)
=============================================================================

The sixteen codes HTTP/1.0 defines, each with the reason phrase that goes
on the status line:

    HTTP/1.0 404 Not Found
             ─── ─────────
              │      └──── reason_phrase(404)
              └─────────── Response.status_code

    ┌──────┬─────────────────────────────────────────────────────────────┐
    │ 2xx  │ 200 OK, 201 Created, 202 Accepted, 204 No Content            │
    │ 3xx  │ 300 Multiple Choices, 301 Moved Permanently,                 │
    │      │ 302 Moved Temporarily, 304 Not Modified                      │
    │ 4xx  │ 400 Bad Request, 401 Unauthorized, 403 Forbidden,            │
    │      │ 404 Not Found                                                │
    │ 5xx  │ 500 Internal Server Error, 501 Not Implemented,              │
    │      │ 502 Bad Gateway, 503 Service Unavailable                     │
    └──────┴─────────────────────────────────────────────────────────────┘

302 keeps its HTTP/1.0 name; "Found" only arrived with HTTP/1.1.

Response.set_status() accepts any integer. A code missing from the table
is written as-is with the reason phrase "unknown".

=============================================================================
"""

from enum import IntEnum


UNKNOWN_REASON_PHRASE = "unknown"


class HTTPStatus(IntEnum):
    """
    HTTP/1.0 status codes and reason phrases.

    An IntEnum, so members compare equal to the plain integers:

        >>> HTTPStatus.OK
        <HTTPStatus.OK: 200>
        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.OK.phrase
        'OK'
    """

    # 2xx SUCCESS
    OK = 200
    CREATED = 201
    ACCEPTED = 202
    NO_CONTENT = 204

    # 3xx REDIRECTION
    MULTIPLE_CHOICES = 300
    MOVED_PERMANENTLY = 301
    MOVED_TEMPORARILY = 302
    NOT_MODIFIED = 304

    # 4xx CLIENT ERRORS
    BAD_REQUEST = 400
    UNAUTHORIZED = 401
    FORBIDDEN = 403
    NOT_FOUND = 404

    # 5xx SERVER ERRORS
    INTERNAL_SERVER_ERROR = 500
    NOT_IMPLEMENTED = 501
    BAD_GATEWAY = 502
    SERVICE_UNAVAILABLE = 503

    @property
    def phrase(self) -> str:
        """The reason phrase sent on the status line."""
        return _STATUS_PHRASES[self]


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.CREATED: "Created",
    HTTPStatus.ACCEPTED: "Accepted",
    HTTPStatus.NO_CONTENT: "No Content",
    HTTPStatus.MULTIPLE_CHOICES: "Multiple Choices",
    HTTPStatus.MOVED_PERMANENTLY: "Moved Permanently",
    HTTPStatus.MOVED_TEMPORARILY: "Moved Temporarily",
    HTTPStatus.NOT_MODIFIED: "Not Modified",
    HTTPStatus.BAD_REQUEST: "Bad Request",
    HTTPStatus.UNAUTHORIZED: "Unauthorized",
    HTTPStatus.FORBIDDEN: "Forbidden",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
    HTTPStatus.NOT_IMPLEMENTED: "Not Implemented",
    HTTPStatus.BAD_GATEWAY: "Bad Gateway",
    HTTPStatus.SERVICE_UNAVAILABLE: "Service Unavailable",
}


def reason_phrase(code: int) -> str:
    """
    Look up the reason phrase for a numeric status code.

    Returns "unknown" for any code not in the HTTP/1.0 table.

    Examples:
        >>> reason_phrase(404)
        'Not Found'
        >>> reason_phrase(999)
        'unknown'
    """
    try:
        return HTTPStatus(code).phrase
    except ValueError:
        return UNKNOWN_REASON_PHRASE
