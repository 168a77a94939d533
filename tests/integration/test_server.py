"""
Integration tests for the HTTP server over real TCP connections.
"""

import json
import socket
import threading
import time

import pytest

from simplehttp import Server, ServerConfig, new_server
from simplehttp.core import Connection, ConnectionState
from simplehttp.http import CallbackRegistryFrozenError


def split_response(raw: bytes):
    """Split a raw response into (status line, headers dict, body)."""
    head, _, body = raw.partition(b"\r\n\r\n")
    lines = head.decode().split("\r\n")
    headers = dict(line.split(": ", 1) for line in lines[1:])
    return lines[0], headers, body


class TestRequestHandling:
    """Tests for complete exchanges."""

    def test_get_json(self, test_server):
        raw = test_server.request(b"GET /test HTTP/1.0\r\nHost: localhost\r\n\r\n")

        status_line, headers, body = split_response(raw)
        assert status_line == "HTTP/1.0 200 OK"
        assert headers["Content-Type"] == "application/json"
        assert headers["Connection"] == "close"
        assert headers["Server"] == "simplehttp"
        assert headers["Content-Length"] == str(len(body))
        assert json.loads(body) == {"status": "ok"}

    def test_post_with_body(self, test_server):
        raw = test_server.request(b"POST /echo HTTP/1.0\r\nContent-Length: 5\r\n\r\nhello")

        status_line, _, body = split_response(raw)
        assert status_line == "HTTP/1.0 201 Created"
        assert json.loads(body) == {"received": "hello"}

    def test_query_string_ignored_for_dispatch(self, test_server):
        raw = test_server.request(b"GET /test?verbose=1 HTTP/1.0\r\n\r\n")

        assert raw.startswith(b"HTTP/1.0 200 OK\r\n")

    def test_request_sent_then_half_closed(self, test_server):
        """Reading our EOF after a complete request still gets a response."""
        raw = test_server.request(b"GET /test HTTP/1.0\r\n\r\n", half_close=True)

        assert raw.startswith(b"HTTP/1.0 200 OK\r\n")

    def test_handler_error_gives_plain_500(self, test_server):
        """Whatever the failing handler set is discarded."""
        raw = test_server.request(b"GET /error HTTP/1.0\r\n\r\n")

        status_line, headers, body = split_response(raw)
        assert status_line == "HTTP/1.0 500 Internal Server Error"
        assert headers["Content-Length"] == "0"
        assert "Content-Type" not in headers
        assert body == b""
        assert b"partial" not in raw

    def test_unregistered_path_gives_500(self, test_server):
        raw = test_server.request(b"GET /nowhere HTTP/1.0\r\n\r\n")

        assert raw.startswith(b"HTTP/1.0 500 Internal Server Error\r\n")

    def test_wrong_method_gives_500(self, test_server):
        raw = test_server.request(b"DELETE /test HTTP/1.0\r\n\r\n")

        assert raw.startswith(b"HTTP/1.0 500 ")


class TestFailedReads:
    """A request that cannot be read gets no response at all."""

    def test_malformed_request(self, test_server):
        assert test_server.request(b"NOT-HTTP\r\n\r\n") == b""

    def test_unsupported_method(self, test_server):
        assert test_server.request(b"PATCH /test HTTP/1.0\r\n\r\n") == b""

    def test_premature_eof(self, test_server, list_logger):
        raw = test_server.request(b"POST /echo HTTP/1.0\r\nContent-Length: 10\r\n\r\nabc", half_close=True)

        assert raw == b""
        assert list_logger.contains("Unable to read message from the connection")

    def test_too_large(self, test_config, list_logger, start_server):
        test_config.max_request_bytes = 128
        server = Server(config=test_config, logger=list_logger)
        server.post("/upload", lambda request, response: None)

        test_srv = start_server(server)
        data = b"POST /upload HTTP/1.0\r\nContent-Length: 1000\r\n\r\n" + b"x" * 1000
        try:
            raw = test_srv.request(data)
        except ConnectionResetError:
            raw = b""

        assert raw == b""
        assert list_logger.contains("exceeded the maximum request size")

    def test_huge_content_length(self, test_config, list_logger, start_server):
        """An absurd Content-Length runs into the size ceiling like any other."""
        test_config.max_request_bytes = 8192
        server = Server(config=test_config, logger=list_logger)
        test_srv = start_server(server)

        head = b"POST / HTTP/1.0\r\nContent-Length: 1" + b"0" * 5000 + b"\r\n\r\n"
        try:
            raw = test_srv.request(head + b"x" * 4000)
        except ConnectionResetError:
            raw = b""

        assert raw == b""
        assert list_logger.contains("exceeded the maximum request size")

    def test_unexpected_read_error_is_logged(self, test_config, list_logger):
        server = Server(config=test_config, logger=list_logger)
        server_side, client_side = socket.socketpair()
        client_side.shutdown(socket.SHUT_WR)
        conn = Connection(socket=server_side, address=("127.0.0.1", 4000))

        def broken_read():
            raise RuntimeError("parser bug")

        conn.read_request = broken_read
        try:
            with pytest.raises(RuntimeError):
                server.handle_connection(conn)
        finally:
            client_side.close()

        assert list_logger.contains("Unable to read message from the connection: RuntimeError('parser bug')")
        assert list_logger.contains("Disconnecting from remote address 127.0.0.1:4000")
        assert conn.state is ConnectionState.CLOSED

    def test_read_timeout(self, test_config, list_logger, start_server):
        test_config.read_timeout_seconds = 0.3
        server = Server(config=test_config, logger=list_logger)

        test_srv = start_server(server)
        started = time.monotonic()
        raw = test_srv.request(b"GET /partial HTTP/1.0\r\n")
        elapsed = time.monotonic() - started

        assert raw == b""
        assert elapsed < 3
        assert list_logger.contains("Unable to read message from the connection")


class TestLogging:
    """Tests for the diagnostic messages."""

    def test_exchange_is_logged(self, test_server, list_logger):
        test_server.request(b"GET /test HTTP/1.0\r\n\r\n")

        messages = list(list_logger.messages)
        assert any(m.startswith("Listening on port ") for m in messages)
        assert any(m.startswith("Connected to remote address 127.0.0.1:") for m in messages)
        assert any(m.startswith("Request from 127.0.0.1:") for m in messages)
        assert "<<<<<<<<" in messages
        assert "GET /test HTTP/1.0\r\n\r\n" in messages
        assert any(m.startswith("Sending response to 127.0.0.1:") for m in messages)
        assert ">>>>>>>>" in messages
        assert any(m.startswith("Disconnecting from remote address") for m in messages)

    def test_handler_error_is_logged(self, test_server, list_logger):
        test_server.request(b"GET /error HTTP/1.0\r\n\r\n")

        assert list_logger.contains(
            "an error occurred while invoking a callback (GET with path '/error'): boom"
        )

    def test_missing_handler_is_logged(self, test_server, list_logger):
        test_server.request(b"PUT /test HTTP/1.0\r\n\r\n")

        assert list_logger.contains("PUT callback with path '/test' has not been registered")


class TestConcurrency:
    """Connections are served independently."""

    def test_concurrent_requests(self, test_server):
        results = []
        lock = threading.Lock()

        def client():
            raw = test_server.request(b"GET /test HTTP/1.0\r\n\r\n")
            with lock:
                results.append(raw)

        threads = [threading.Thread(target=client) for _ in range(10)]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join(timeout=10)

        assert len(results) == 10
        assert all(raw.startswith(b"HTTP/1.0 200 OK\r\n") for raw in results)

    def test_idle_client_does_not_block_others(self, test_server):
        """A client that never finishes its request does not hold up the next one."""
        with socket.create_connection(("127.0.0.1", test_server.port)) as idle:
            idle.sendall(b"GET /test HTTP/1.0\r\n")

            started = time.monotonic()
            raw = test_server.request(b"GET /test HTTP/1.0\r\n\r\n")

            assert raw.startswith(b"HTTP/1.0 200 OK\r\n")
            assert time.monotonic() - started < 2


class TestLifecycle:
    """Tests for start/shutdown and registration rules."""

    def test_register_after_start(self, test_server):
        with pytest.raises(CallbackRegistryFrozenError):
            test_server.server.get("/late", lambda request, response: None)

    def test_port_in_use(self, list_logger):
        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as blocker:
            blocker.bind(("127.0.0.1", 0))
            blocker.listen(1)
            port = blocker.getsockname()[1]

            server = Server(config=ServerConfig(host="127.0.0.1", port=port), logger=list_logger)
            with pytest.raises(OSError):
                server.start()

        assert list_logger.contains("Failed to open tcp listener")
        assert not server.callbacks.frozen

    def test_invalid_settings_rejected_at_start(self):
        server = Server(port=70000)

        with pytest.raises(ValueError):
            server.start()

    def test_shutdown_stops_accepting(self, test_config: ServerConfig, start_server):
        server = Server(config=test_config)
        server.get("/", lambda request, response: None)
        test_srv = start_server(server)
        port = test_srv.port

        assert test_srv.request(b"GET / HTTP/1.0\r\n\r\n").startswith(b"HTTP/1.0 200 OK")

        test_srv.stop()

        assert not server.wait_until_ready(timeout=0)
        with pytest.raises(OSError):
            socket.create_connection(("127.0.0.1", port), timeout=1.0).close()

    def test_new_server_defaults(self):
        server = new_server(8080)

        assert server.port == 8080
        assert server.host == "0.0.0.0"
        assert server.max_request_bytes == 1024 * 1024
        assert server.read_timeout_seconds == 60
        assert len(server.callbacks) == 0

    def test_decorator_returns_handler(self):
        server = Server()

        @server.put("/thing")
        def update(request, response):
            pass

        assert update.__name__ == "update"
        assert len(server.callbacks) == 1
