"""
=============================================================================
HTTP METHODS
=============================================================================

The request methods this server understands. HTTP/1.0 (RFC 1945) only
defines GET, HEAD and POST; PUT and DELETE appear as "additional methods"
in its appendix and are supported here because they are what a small
CRUD-style application needs.

    ┌──────────┬────────────┬────────────┬──────────────────────────────────┐
    │  Method  │ Idempotent │  Has Body  │ Description                      │
    ├──────────┼────────────┼────────────┼──────────────────────────────────┤
    │  GET     │    Yes     │    No      │ Retrieve resource                │
    │  POST    │    No      │    Yes     │ Create resource / submit data    │
    │  PUT     │    Yes     │    Yes     │ Replace entire resource          │
    │  DELETE  │    Yes     │  Optional  │ Delete resource                  │
    └──────────┴────────────┴────────────┴──────────────────────────────────┘

Methods are matched case-exactly: "get" is not "GET".

=============================================================================
"""

from enum import Enum


class HTTPMethod(Enum):
    """
    Closed set of supported request methods.

    The enum value is the wire token, so conversion in both directions
    is a plain lookup:

        >>> HTTPMethod("GET")
        <HTTPMethod.GET: 'GET'>
        >>> str(HTTPMethod.POST)
        'POST'
    """

    GET = "GET"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"

    def __str__(self) -> str:
        return self.value

    @classmethod
    def parse(cls, token: str) -> "HTTPMethod":
        """
        Convert a request-line token to an HTTPMethod.

        Raises:
            ValueError: If the token is not one of the supported methods.
        """
        try:
            return cls(token)
        except ValueError:
            raise ValueError(f"unsupported HTTP method: `{token}`") from None
