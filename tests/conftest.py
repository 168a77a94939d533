"""
pytest configuration and fixtures.
"""

import socket
import threading
from typing import Callable, Generator, List, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from simplehttp import Server, ServerConfig
from simplehttp.http import HTTPStatus, Request, Response


@pytest.fixture
def sample_get_request() -> bytes:
    """Sample HTTP GET request."""
    return (
        b"GET /index.html HTTP/1.0\r\n"
        b"Host: client:8080\r\n"
        b"Accept: */*\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """Sample HTTP POST request with a JSON body."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users?page=1 HTTP/1.0\r\n"
        b"Host: localhost:3030\r\n"
        b"Content-Type: application/json\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"\r\n"
    ) + body


class ListLogger:
    """Logger that keeps every message, for assertions."""

    def __init__(self):
        self.messages: List[str] = []
        self._lock = threading.Lock()

    def log_message(self, message: str) -> None:
        with self._lock:
            self.messages.append(message)

    def contains(self, fragment: str) -> bool:
        with self._lock:
            return any(fragment in message for message in self.messages)


@pytest.fixture
def list_logger() -> ListLogger:
    return ListLogger()


def send_raw(port: int, data: bytes, half_close: bool = False, timeout: float = 5.0) -> bytes:
    """
    Send raw bytes to the server and return everything it sends back.

    Args:
        half_close: Shut down our write side after sending (EOF for the server).
    """
    with socket.create_connection(("127.0.0.1", port), timeout=timeout) as sock:
        sock.sendall(data)
        if half_close:
            sock.shutdown(socket.SHUT_WR)

        chunks = []
        while True:
            chunk = sock.recv(4096)
            if not chunk:
                break
            chunks.append(chunk)
        return b"".join(chunks)


class TestServer:
    """Test server helper that runs in a background thread."""

    __test__ = False  # Not a test class despite the name

    def __init__(self, server: Server):
        self.server = server
        self._thread: Optional[threading.Thread] = None
        self.error: Optional[BaseException] = None

    @property
    def port(self) -> int:
        return self.server.address[1]

    def _run(self):
        try:
            self.server.start()
        except BaseException as e:
            self.error = e
            raise

    def start(self):
        """Start server in background thread."""
        self._thread = threading.Thread(target=self._run, daemon=True)
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError(f"Server failed to start: {self.error!r}")

    def request(self, data: bytes, **kwargs) -> bytes:
        return send_raw(self.port, data, **kwargs)

    def stop(self):
        """Stop the server."""
        self.server.shutdown()

        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=5.0)


@pytest.fixture
def test_config() -> ServerConfig:
    """Server configuration for tests: localhost, OS-assigned port."""
    return ServerConfig(
        host="127.0.0.1",
        port=0,
        read_timeout_seconds=5,
        log_level="WARNING",
    )


@pytest.fixture
def start_server() -> Generator[Callable[[Server], TestServer], None, None]:
    """Factory that starts a Server in the background and stops it afterwards."""
    started: List[TestServer] = []

    def start(server: Server) -> TestServer:
        test_srv = TestServer(server)
        test_srv.start()
        started.append(test_srv)
        return test_srv

    yield start

    for test_srv in started:
        test_srv.stop()


@pytest.fixture
def test_server(test_config: ServerConfig, list_logger: ListLogger) -> Generator[TestServer, None, None]:
    """A running server with a few test routes."""
    server = Server(config=test_config, logger=list_logger)

    @server.get("/test")
    def test_route(request: Request, response: Response):
        response.set_json({"status": "ok"})

    @server.post("/echo")
    def echo_route(request: Request, response: Response):
        response.set_status(HTTPStatus.CREATED)
        response.set_json({"received": request.text})

    @server.get("/error")
    def error_route(request: Request, response: Response):
        response.set_html("<p>partial</p>")
        raise RuntimeError("boom")

    test_srv = TestServer(server)
    test_srv.start()

    yield test_srv

    test_srv.stop()
