"""
Unit tests for EchoServer wiring that don't need a listening socket.
"""

import socket
import threading
import time
import warnings
from pathlib import Path

import pytest

import echoserver
from echoserver import EchoServer
from echoserver.core.connection import Connection

from conftest import server_config


def read_until_eof(sock: socket.socket) -> bytes:
    data = b""
    while True:
        chunk = sock.recv(4096)
        if not chunk:
            return data
        data += chunk


@pytest.fixture
def pair():
    server_side, client_side = socket.socketpair()
    client_side.settimeout(5.0)
    conn = Connection(socket=server_side, address=("127.0.0.1", 50000), timeout=2.0)
    yield conn, client_side
    conn.close()
    client_side.close()


class TestConnectionRejection:
    """Connections the pool can't serve are answered and closed."""

    def test_not_running_pool_answers_503(self, free_port, pair):
        server = EchoServer(server_config(free_port))
        conn, client = pair

        server._handle_connection(conn)

        response = read_until_eof(client)
        assert response.startswith(b"HTTP/1.1 503 ")
        assert b"Connection: close" in response

    def test_connection_that_waited_too_long_answers_503(self, free_port, pair):
        server = EchoServer(server_config(free_port, min_workers=1, max_workers=1, timeout=0.1))
        pool = server._thread_pool
        pool.start()
        release = threading.Event()
        conn, client = pair

        try:
            pool.submit(release.wait, args=(5.0,))
            time.sleep(0.05)
            server._handle_connection(conn)
            time.sleep(0.2)
            release.set()

            response = read_until_eof(client)
        finally:
            release.set()
            pool.shutdown(wait=True, timeout=5.0)

        assert response.startswith(b"HTTP/1.1 503 ")
        assert pool.stats["expired"] == 1


class TestPackage:
    """Package-level surface."""

    def test_public_api(self):
        assert sorted(echoserver.__all__) == [
            "ConfigError", "EchoServer", "ServerConfig", "__version__",
        ]
        for name in echoserver.__all__:
            assert hasattr(echoserver, name)

    def test_sources_compile_without_warnings(self):
        package_dir = Path(echoserver.__file__).parent

        with warnings.catch_warnings():
            warnings.simplefilter("error")
            for path in sorted(package_dir.rglob("*.py")):
                compile(path.read_text(encoding="utf-8"), str(path), "exec")
