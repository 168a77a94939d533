"""
Unit tests for the header codec.
"""

import pytest

from simplehttp.http.headers import (
    HeaderParseError,
    format_headers,
    format_message,
    parse_headers,
)


class TestParseHeaders:
    """Tests for parse_headers()."""

    def test_parse_basic_block(self):
        """Each line becomes one name → value entry."""
        headers = parse_headers("Host: client:8080\r\nAccept: */*")

        assert headers == {"Host": "client:8080", "Accept": "*/*"}

    def test_split_on_first_colon_only(self):
        """Colons after the first belong to the value."""
        headers = parse_headers("Referer: http://example.com:80/a")

        assert headers["Referer"] == "http://example.com:80/a"

    def test_name_and_value_are_trimmed(self):
        """Whitespace around name and value is removed."""
        headers = parse_headers("  X-Padded  :   some value  ")

        assert headers == {"X-Padded": "some value"}

    def test_case_is_preserved(self):
        """Header names are stored exactly as received."""
        headers = parse_headers("content-length: 5\r\nX-MiXeD: yes")

        assert "content-length" in headers
        assert "Content-Length" not in headers
        assert headers["X-MiXeD"] == "yes"

    def test_duplicate_name_last_wins(self):
        """A repeated header overwrites the earlier value."""
        headers = parse_headers("X-Dup: first\r\nX-Dup: second")

        assert headers == {"X-Dup": "second"}

    def test_empty_value_allowed(self):
        """A header with nothing after the colon has an empty value."""
        assert parse_headers("X-Empty:") == {"X-Empty": ""}

    def test_empty_block(self):
        """No header lines at all gives an empty mapping."""
        assert parse_headers("") == {}
        assert parse_headers("  \r\n ") == {}

    def test_line_without_colon_is_rejected(self):
        """The error names the offending line verbatim."""
        with pytest.raises(HeaderParseError) as exc_info:
            parse_headers("Host: localhost\r\nNoColonHere")

        assert exc_info.value.line == "NoColonHere"
        assert "NoColonHere" in str(exc_info.value)

    def test_header_parse_error_is_value_error(self):
        with pytest.raises(ValueError):
            parse_headers("garbage")


class TestFormatHeaders:
    """Tests for format_headers() and format_message()."""

    def test_format_in_insertion_order(self):
        text = format_headers({"B": "2", "A": "1"})

        assert text == "B: 2\r\nA: 1"

    def test_format_then_parse(self):
        """Formatted headers parse back to the same mapping."""
        headers = {"Host": "client:8080", "Accept": "*/*", "X-Empty": ""}

        assert parse_headers(format_headers(headers)) == headers

    def test_format_message_layout(self):
        message = format_message("HTTP/1.0 200 OK", {"Content-Length": "2"}, b"hi")

        assert message == b"HTTP/1.0 200 OK\r\nContent-Length: 2\r\n\r\nhi"

    def test_format_message_without_headers(self):
        """No headers still yields the blank separator line."""
        message = format_message("GET / HTTP/1.0", {}, b"")

        assert message == b"GET / HTTP/1.0\r\n\r\n"
