"""
pytest configuration and fixtures.
"""

import io
import socket
import threading
from typing import Generator, Optional
import pytest

# Add src to path for imports
import sys
from pathlib import Path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from echoserver import EchoServer, ServerConfig
from echoserver.http import HTTPRequest, Headers


@pytest.fixture
def sample_get_request() -> bytes:
    """Browser-ish GET request: mostly reserved headers plus one custom."""
    return (
        b"GET /api/users?page=1&limit=10 HTTP/1.1\r\n"
        b"Host: localhost:3001\r\n"
        b"User-Agent: pytest\r\n"
        b"Accept: application/json\r\n"
        b"X-Trace-Id: abc123\r\n"
        b"Connection: keep-alive\r\n"
        b"\r\n"
    )


@pytest.fixture
def sample_post_request() -> bytes:
    """POST request with a JSON body and both control headers."""
    body = b'{"name": "John", "email": "john@example.com"}'
    return (
        b"POST /api/users HTTP/1.1\r\n"
        b"Host: localhost:3001\r\n"
        b"Content-Type: application/json\r\n"
        b"internal.status-code: 201\r\n"
        b"internal.response-body: created\r\n"
        + f"Content-Length: {len(body)}\r\n".encode()
        + b"Connection: close\r\n"
        b"\r\n"
    ) + body


def make_request(
    method: str = "GET",
    path: str = "/",
    headers: Optional[list] = None,
    body: bytes = b"",
    query_string: str = "",
) -> HTTPRequest:
    """Build an HTTPRequest without going through the parser."""
    return HTTPRequest(
        method=method,
        path=path,
        query_string=query_string,
        headers=Headers(headers or []),
        body=body,
        client_address=("127.0.0.1", 50000),
    )


@pytest.fixture
def free_port() -> int:
    """Get a free port for testing."""
    with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as s:
        s.bind(('127.0.0.1', 0))
        return s.getsockname()[1]


class TestServer:
    """Runs an EchoServer in a background thread."""

    __test__ = False  # not a test class, despite the name

    def __init__(self, server: EchoServer):
        self.server = server
        self._thread: Optional[threading.Thread] = None

    @property
    def host(self) -> str:
        return self.server.bind_address.host

    @property
    def port(self) -> int:
        return self.server.bind_address.port

    def start(self):
        self._thread = threading.Thread(
            target=self.server.run,
            kwargs={"setup_logging": False, "banner": False},
            daemon=True,
        )
        self._thread.start()

        if not self.server.wait_until_ready(timeout=5.0):
            raise RuntimeError("Server failed to start")

    def stop(self):
        self.server.shutdown()
        if self._thread and self._thread.is_alive():
            self._thread.join(timeout=10.0)

    def connect(self, timeout: float = 5.0) -> socket.socket:
        """Open a raw client socket to the server."""
        sock = socket.create_connection((self.host, self.port), timeout=timeout)
        return sock


def server_config(port: int, **overrides) -> ServerConfig:
    settings = dict(
        host="127.0.0.1",
        port=port,
        min_workers=2,
        max_workers=4,
        timeout=5.0,
        keep_alive_timeout=2.0,
        log_level="WARNING",
    )
    settings.update(overrides)
    return ServerConfig(**settings)


@pytest.fixture
def test_server(free_port: int) -> Generator[TestServer, None, None]:
    """A running echo server on a free port."""
    test_srv = TestServer(EchoServer(server_config(free_port)))
    test_srv.start()

    yield test_srv

    test_srv.stop()


@pytest.fixture
def verbose_server(free_port: int) -> Generator[tuple, None, None]:
    """A running echo server in verbose mode, tracing into a StringIO."""
    trace = io.StringIO()
    test_srv = TestServer(EchoServer(server_config(free_port, verbose=True), trace_stream=trace))
    test_srv.start()

    yield test_srv, trace

    test_srv.stop()
