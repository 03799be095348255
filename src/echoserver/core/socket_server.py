"""
=============================================================================
LOW-LEVEL TCP SOCKET SERVER
=============================================================================

Owns the listening socket: bind, listen, accept, and hand each client
socket to a callback.

    ┌───────────────────────┐
    │   Listening Socket    │ ◄── Created once at startup
    │  127.0.0.1:3001       │     or [::1]:3001 for an IPv6 host
    └───────────┬───────────┘
                │ accept()
    ┌───────────┼───────────────────────┐
    ▼           ▼                       ▼
 Connection  Connection    ...      Connection
                                     (one per client, handed to the
                                      HTTP layer's callback)

=============================================================================
ADDRESS FAMILY
=============================================================================

The bind host is an IP literal, already validated at startup. Its version
picks the socket family:

    127.0.0.1, 0.0.0.0, 10.0.0.5   →  AF_INET
    ::1, ::, fe80::1               →  AF_INET6

=============================================================================
SIGNALS
=============================================================================

SIGINT (Ctrl+C) and SIGTERM (docker stop, systemd) trigger a graceful
shutdown. Python only allows installing signal handlers from the main
thread; a server started from a worker thread (as the test suite does)
skips them and is stopped with shutdown() instead.

=============================================================================
"""

import socket
import signal
import logging
import threading
from typing import Optional, Callable, Tuple

from ..echo.address import BindAddress
from .connection import Connection


logger = logging.getLogger(__name__)


class SocketServer:
    """
    Low-level TCP socket server.

    Usage:
        server = SocketServer(bind_address, backlog=128)
        server.start(handle_connection)  # Blocks until shutdown()
    """

    def __init__(
        self,
        bind_address: BindAddress,
        backlog: int = 128,
        buffer_size: int = 8192,
        timeout: Optional[float] = 30.0,
        keep_alive_timeout: float = 5.0,
        max_request_size: int = 10 * 1024 * 1024,
    ):
        self.bind_address = bind_address
        self.backlog = backlog
        self.buffer_size = buffer_size
        self.timeout = timeout
        self.keep_alive_timeout = keep_alive_timeout
        self.max_request_size = max_request_size

        self._socket: Optional[socket.socket] = None
        self._running = False
        self._ready_event = threading.Event()
        self._original_handlers: dict = {}

    @property
    def is_running(self) -> bool:
        return self._running

    @property
    def address(self) -> Tuple[str, int]:
        """
        The bound (host, port), as reported by the OS once bound.
        """
        if self._socket is not None:
            sockname = self._socket.getsockname()
            return (sockname[0], sockname[1])
        return (self.bind_address.host, self.bind_address.port)

    def _create_socket(self) -> socket.socket:
        family = socket.AF_INET6 if self.bind_address.is_ipv6 else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)

        sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)

        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEPORT, 1)
        except (AttributeError, OSError):
            pass  # not available on Windows

        sock.setsockopt(socket.IPPROTO_TCP, socket.TCP_NODELAY, 1)

        # Wake up once a second to check the running flag
        sock.settimeout(1.0)

        return sock

    def _setup_signals(self):
        if threading.current_thread() is not threading.main_thread():
            logger.debug("Not on the main thread; signal handlers not installed")
            return

        def shutdown_handler(signum, frame):
            signal_name = signal.Signals(signum).name
            logger.info(f"Received {signal_name}, initiating shutdown...")
            self.shutdown()

        self._original_handlers[signal.SIGTERM] = signal.signal(signal.SIGTERM, shutdown_handler)
        self._original_handlers[signal.SIGINT] = signal.signal(signal.SIGINT, shutdown_handler)

    def _restore_signals(self):
        for sig, handler in self._original_handlers.items():
            signal.signal(sig, handler)
        self._original_handlers.clear()

    def bind(self):
        """
        Create, bind and listen. Separate from start() so startup errors
        (port in use, permission denied) surface before the accept loop.

        Raises:
            OSError: If the address can't be bound.
        """
        self._socket = self._create_socket()
        address = (self.bind_address.host, self.bind_address.port)

        try:
            self._socket.bind(address)
        except OSError as e:
            logger.error(f"Failed to bind to {self.bind_address}: {e}")
            self._socket.close()
            self._socket = None
            raise

        self._socket.listen(self.backlog)

    def start(self, connection_handler: Callable[[Connection], None]):
        """
        Accept connections until shutdown() is called. Blocks.

        Args:
            connection_handler: Receives each new Connection.
        """
        if self._socket is None:
            self.bind()

        self._running = True
        self._setup_signals()

        logger.info(f"Server listening on {self.bind_address}")
        self._ready_event.set()

        try:
            self._accept_loop(connection_handler)
        finally:
            self._cleanup()

    def _accept_loop(self, connection_handler: Callable[[Connection], None]):
        while self._running:
            try:
                client_socket, client_address = self._socket.accept()
            except socket.timeout:
                continue
            except OSError as e:
                if self._running:
                    logger.error(f"Accept error: {e}")
                break

            logger.debug(f"Accepted connection from {client_address[0]}:{client_address[1]}")

            conn = Connection(
                socket=client_socket,
                address=client_address,
                buffer_size=self.buffer_size,
                timeout=self.timeout,
                keep_alive_timeout=self.keep_alive_timeout,
                max_request_size=self.max_request_size,
            )
            connection_handler(conn)

    def shutdown(self):
        """Stop accepting connections. Idempotent, callable from any thread."""
        if self._running:
            logger.info("Shutting down socket server...")
        self._running = False

    def _cleanup(self):
        self._restore_signals()

        if self._socket:
            try:
                self._socket.close()
            except OSError:
                pass
            self._socket = None

        self._ready_event.clear()
        logger.info("Socket server stopped")

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the accept loop is running. True if it started."""
        return self._ready_event.wait(timeout)
