"""
Unit tests for the connection read loop, using socket pairs.
"""

import socket
import threading
import time

import pytest

from simplehttp.core.connection import (
    Connection,
    ConnectionState,
    DRAIN_TIMEOUT,
    InvalidMessageError,
    PrematureEOFError,
    RequestReadError,
    RequestTooLargeError,
)
from simplehttp.http.methods import HTTPMethod


@pytest.fixture
def socket_pair():
    """(server_side, client_side) connected sockets."""
    server_side, client_side = socket.socketpair()
    yield server_side, client_side
    for sock in (server_side, client_side):
        try:
            sock.close()
        except OSError:
            pass


def make_connection(sock: socket.socket, **kwargs) -> Connection:
    kwargs.setdefault("read_timeout", 5)
    return Connection(socket=sock, address=("127.0.0.1", 54321), **kwargs)


def send_slowly(sock: socket.socket, pieces, delay: float = 0.02):
    """Send each piece separately from a background thread."""
    def run():
        try:
            for piece in pieces:
                sock.sendall(piece)
                time.sleep(delay)
        except OSError:
            pass  # Reader gave up and closed

    thread = threading.Thread(target=run, daemon=True)
    thread.start()
    return thread


class TestReadRequest:
    """Tests for Connection.read_request()."""

    def test_read_complete_request(self, socket_pair, sample_get_request: bytes):
        server_side, client_side = socket_pair
        client_side.sendall(sample_get_request)

        conn = make_connection(server_side)
        request = conn.read_request()

        assert request.method is HTTPMethod.GET
        assert request.path == "/index.html"
        assert conn.state is ConnectionState.READING
        assert conn.bytes_received == len(sample_get_request)

    def test_request_split_across_sends(self, socket_pair, sample_post_request: bytes):
        """Bytes trickling in are buffered until the request is complete."""
        server_side, client_side = socket_pair
        pieces = [sample_post_request[i:i + 7] for i in range(0, len(sample_post_request), 7)]
        send_slowly(client_side, pieces, delay=0.005)

        request = make_connection(server_side).read_request()

        assert request.raw == sample_post_request

    def test_body_larger_than_one_chunk(self, socket_pair):
        server_side, client_side = socket_pair
        body = b"x" * 5000
        data = b"POST /upload HTTP/1.0\r\nContent-Length: 5000\r\n\r\n" + body
        send_slowly(client_side, [data[:3000], data[3000:]])

        request = make_connection(server_side).read_request()

        assert request.body == body

    def test_pipelined_bytes_ignored(self, socket_pair, sample_get_request: bytes):
        server_side, client_side = socket_pair
        client_side.sendall(sample_get_request + b"GET /second HTTP/1.0\r\n\r\n")

        request = make_connection(server_side).read_request()

        assert request.path == "/index.html"
        assert request.raw == sample_get_request

    def test_invalid_request(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.sendall(b"BOGUS / HTTP/1.0\r\n\r\n")

        conn = make_connection(server_side)
        with pytest.raises(InvalidMessageError) as exc_info:
            conn.read_request()

        assert "BOGUS" in exc_info.value.reason
        assert conn.state is ConnectionState.READ_FAILED

    def test_invalid_reported_without_waiting_for_more(self, socket_pair):
        """The connection stays open, yet the error is immediate."""
        server_side, client_side = socket_pair
        client_side.sendall(b"GET no-slash HTTP/1.0\r\nContent-Length: 99\r\n\r\n")

        started = time.monotonic()
        with pytest.raises(InvalidMessageError):
            make_connection(server_side, read_timeout=3).read_request()

        assert time.monotonic() - started < 1

    def test_size_ceiling(self, socket_pair):
        """An incomplete request past max_request_bytes is rejected."""
        server_side, client_side = socket_pair
        client_side.sendall(b"GET /" + b"a" * 500)

        conn = make_connection(server_side, max_request_bytes=64)
        with pytest.raises(RequestTooLargeError) as exc_info:
            conn.read_request()

        assert str(exc_info.value) == "incoming request exceeded the maximum request size"
        assert exc_info.value.limit == 64
        assert conn.bytes_received <= 128

    def test_complete_request_at_exact_limit(self, socket_pair):
        data = b"GET / HTTP/1.0\r\n\r\n"
        server_side, client_side = socket_pair
        client_side.sendall(data)

        request = make_connection(server_side, max_request_bytes=len(data)).read_request()

        assert request.raw == data

    def test_premature_eof(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.sendall(b"POST / HTTP/1.0\r\nContent-Length: 13\r\n\r\nhello world!")
        client_side.shutdown(socket.SHUT_WR)

        conn = make_connection(server_side)
        with pytest.raises(PrematureEOFError) as exc_info:
            conn.read_request()

        assert str(exc_info.value) == "got an EOF from the client before a full message was received"
        assert conn.state is ConnectionState.READ_FAILED

    def test_eof_without_any_data(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.close()

        with pytest.raises(PrematureEOFError):
            make_connection(server_side).read_request()

    def test_read_errors_share_a_base(self):
        for error_type in (InvalidMessageError, RequestTooLargeError, PrematureEOFError):
            assert issubclass(error_type, RequestReadError)

    def test_read_timeout(self, socket_pair):
        """A silent client hits the deadline."""
        server_side, _ = socket_pair

        conn = make_connection(server_side, read_timeout=0.2)
        with pytest.raises(TimeoutError):
            conn.read_request()

        assert conn.state is ConnectionState.READ_FAILED

    def test_deadline_covers_whole_request(self, socket_pair):
        """Trickling bytes does not extend the deadline."""
        server_side, client_side = socket_pair
        send_slowly(client_side, [b"G"] * 100, delay=0.05)

        started = time.monotonic()
        with pytest.raises(TimeoutError):
            make_connection(server_side, read_timeout=0.3).read_request()

        assert time.monotonic() - started < 2

    @pytest.mark.parametrize("timeout", [0, -1, None])
    def test_deadline_disabled(self, socket_pair, sample_get_request: bytes, timeout):
        server_side, client_side = socket_pair
        send_slowly(client_side, [sample_get_request[:5], sample_get_request[5:]], delay=0.1)

        request = make_connection(server_side, read_timeout=timeout).read_request()

        assert request.path == "/index.html"


class TestSendAndClose:
    """Tests for send_response() and close()."""

    def test_send_response(self, socket_pair):
        server_side, client_side = socket_pair
        conn = make_connection(server_side)

        assert conn.send_response(b"HTTP/1.0 200 OK\r\n\r\n") is True
        assert client_side.recv(1024) == b"HTTP/1.0 200 OK\r\n\r\n"

    def test_send_to_closed_peer(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.close()
        conn = make_connection(server_side)

        assert conn.send_response(b"x" * 100000) is False

    def test_close_sends_eof(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.shutdown(socket.SHUT_WR)
        conn = make_connection(server_side)

        conn.close()

        assert conn.state is ConnectionState.CLOSED
        assert client_side.recv(1024) == b""

    def test_close_is_idempotent(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.shutdown(socket.SHUT_WR)
        conn = make_connection(server_side)

        conn.close()
        conn.close()

        assert conn.state is ConnectionState.CLOSED

    def test_close_drain_is_bounded(self, socket_pair):
        """A peer trickling bytes cannot hold close() past DRAIN_TIMEOUT."""
        server_side, client_side = socket_pair
        send_slowly(client_side, [b"x"] * 40, delay=0.1)
        conn = make_connection(server_side)

        started = time.monotonic()
        conn.close()
        elapsed = time.monotonic() - started

        assert elapsed < DRAIN_TIMEOUT + 0.5
        assert conn.state is ConnectionState.CLOSED

    def test_context_manager_closes(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.shutdown(socket.SHUT_WR)

        with make_connection(server_side) as conn:
            conn.send_response(b"bye")

        assert conn.state is ConnectionState.CLOSED
        assert client_side.recv(1024) == b"bye"
        assert client_side.recv(1024) == b""

    def test_context_manager_closes_on_error(self, socket_pair):
        server_side, client_side = socket_pair
        client_side.shutdown(socket.SHUT_WR)

        with pytest.raises(RuntimeError):
            with make_connection(server_side) as conn:
                raise RuntimeError("fail")

        assert conn.state is ConnectionState.CLOSED

    def test_remote_address(self, socket_pair):
        conn = make_connection(socket_pair[0])

        assert conn.remote_address == "127.0.0.1:54321"
        assert len(conn.id) == 8
