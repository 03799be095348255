"""
=============================================================================
ECHO SERVER
=============================================================================

Ties the pieces together:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   SocketServer ── accept ──► ThreadPool ── worker ──► connection    │
    │                                                         loop        │
    │                                                          │          │
    │       ┌──────────────────────────────────────────────────┘          │
    │       ▼                                                              │
    │   Connection.read_request()      framed bytes (one request)        │
    │       │                                                              │
    │   RequestParser.parse()          HTTPRequest   (400/413/431/501/505)│
    │       │                                                              │
    │   MiddlewarePipeline             LoggingMiddleware                  │
    │       │                                                              │
    │   EchoHandler                    classify → resolve → synthesize    │
    │       │                            → observe (verbose)              │
    │       ▼                                                              │
    │   transport headers              Connection / Keep-Alive            │
    │   HTTPResponse.to_bytes()        Content-Length, Date, Server       │
    │       │                                                              │
    │   Connection.send_response()     then keep-alive loop or close      │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
TRANSPORT ERRORS
=============================================================================

These never reach the echo handler; the server answers them itself with a
small JSON body and closes the connection:

    malformed request        → status from HTTPParseError (400, 413, ...)
    first request too slow   → 408 Request Timeout
    thread pool queue full   → 503 Service Unavailable
    handler blew up          → 500 Internal Server Error (logged with trace)

=============================================================================
"""

import logging
import sys
from typing import Optional, Callable, TextIO, Tuple

from .config import ServerConfig
from .core import SocketServer, Connection, ConnectionState, ThreadPool
from .echo import (
    BindAddress, EchoHandler, VerboseObserver,
    RESPONSE_BODY_HEADER, STATUS_CODE_HEADER,
)
from .http import (
    HTTPRequest, HTTPResponse, HTTPParseError, HTTPStatus,
    RequestParser, error_response,
)
from .middleware import LoggingMiddleware, Middleware, MiddlewarePipeline


logger = logging.getLogger(__name__)


class EchoServer:
    """
    HTTP/1.1 echo server.

    Usage:
        server = EchoServer(ServerConfig(port=3001, verbose=True))
        server.run()            # blocks until Ctrl+C / SIGTERM

    From another thread (tests):
        thread = threading.Thread(target=server.run, daemon=True)
        thread.start()
        server.wait_until_ready()
        ...
        server.shutdown()
    """

    def __init__(
        self,
        config: Optional[ServerConfig] = None,
        trace_stream: Optional[TextIO] = None,
    ):
        """
        Args:
            config: Server configuration. Validated here, so a bad bind
                    address raises before any socket exists.
            trace_stream: Where the verbose trace goes (stdout if None).
                          Only used when config.verbose is set.

        Raises:
            InvalidHost, InvalidPort, ConfigError: Invalid configuration.
        """
        self.config = config or ServerConfig()
        self.config.validate()

        self.bind_address: BindAddress = self.config.bind_address

        self._socket_server = SocketServer(
            self.bind_address,
            backlog=self.config.backlog,
            buffer_size=self.config.buffer_size,
            timeout=self.config.timeout,
            keep_alive_timeout=self.config.keep_alive_timeout,
            max_request_size=self.config.max_request_size,
        )

        self._thread_pool = ThreadPool(
            min_workers=self.config.min_workers,
            max_workers=self.config.max_workers,
            queue_size=self.config.queue_size,
        )

        self._parser = RequestParser(
            max_request_size=self.config.max_request_size,
            max_header_size=self.config.max_header_size,
        )

        observer = VerboseObserver(trace_stream) if self.config.verbose else None
        self.echo_handler = EchoHandler(observer)

        self._middleware = MiddlewarePipeline()
        self._middleware.add(LoggingMiddleware(log_format=self.config.log_format))

        self._handler: Optional[Callable[[HTTPRequest], HTTPResponse]] = None
        self._running = False

    def use(self, middleware: Middleware) -> "EchoServer":
        """Add middleware around the echo handler. Call before run()."""
        self._middleware.add(middleware)
        return self

    @property
    def address(self) -> Tuple[str, int]:
        return self._socket_server.address

    @property
    def is_running(self) -> bool:
        return self._running

    # =========================================================================
    # LIFECYCLE
    # =========================================================================

    def bind(self):
        """
        Open the listening socket now.

        run() binds on its own; calling this first lets the CLI report a
        port already in use before anything is printed.

        Raises:
            OSError: If the address can't be bound.
        """
        self._socket_server.bind()

    def run(self, setup_logging: bool = True, banner: bool = True):
        """
        Serve until shutdown() or a signal. Blocks.

        Args:
            setup_logging: Configure the root logger from config.log_level.
            banner: Print the startup banner to stdout.
        """
        if setup_logging:
            self._setup_logging()

        self._handler = self._middleware.wrap(self.echo_handler)
        self._thread_pool.start()
        self._running = True

        if banner:
            self._print_startup_banner()

        try:
            self._socket_server.start(self._handle_connection)
        except KeyboardInterrupt:
            logger.info("Received keyboard interrupt")
        finally:
            self._shutdown()

    def wait_until_ready(self, timeout: Optional[float] = None) -> bool:
        """Block until the server is accepting connections."""
        return self._socket_server.wait_until_ready(timeout)

    def shutdown(self):
        """Ask the server to stop. Returns immediately; run() unwinds."""
        self._socket_server.shutdown()

    def _shutdown(self):
        logger.info("Shutting down server...")
        self._running = False
        self._thread_pool.shutdown(wait=True, timeout=30.0)
        logger.info("Server stopped")

    def _setup_logging(self):
        level = getattr(logging, self.config.log_level.upper(), logging.INFO)

        logging.basicConfig(
            level=level,
            format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )

        logging.getLogger("echoserver").setLevel(level)

    def _print_startup_banner(self):
        lines = [
            "",
            f"🚀 Starting Echo Server on {self.bind_address.url}",
            f"👷 Workers: {self.config.min_workers}-{self.config.max_workers} threads",
            "📋 Headers that are relevant for the request only, like 'host' or "
            "'user-agent' won't be echoed.",
            f"⚙️  Use '{STATUS_CODE_HEADER}' header to override response status code",
            f"📝 Use '{RESPONSE_BODY_HEADER}' header to override response body",
        ]
        if self.config.verbose:
            lines.append("🔍 Verbose mode enabled - requests and responses will be logged")
        lines.append("   Press Ctrl+C to stop")
        lines.append("")

        print("\n".join(lines), file=sys.stdout, flush=True)

    # =========================================================================
    # CONNECTION HANDLING
    # =========================================================================

    def _handle_connection(self, conn: Connection):
        """Hand a fresh connection to the pool, or turn it away with 503."""
        try:
            submitted = self._thread_pool.submit(
                self._process_connection,
                args=(conn,),
                timeout=self.config.timeout,
                block=False,
                on_expire=self._reject_connection,
            )
        except RuntimeError:
            submitted = False

        if not submitted:
            logger.warning(f"[{conn.id}] Thread pool full, rejecting connection")
            self._reject_connection(conn)

    def _reject_connection(self, conn: Connection):
        """Answer 503 and close. Used for a full queue and for expired jobs."""
        self._send_error(conn, HTTPStatus.SERVICE_UNAVAILABLE, "Server overloaded")
        conn.close()

    def _process_connection(self, conn: Connection):
        """
        Serve one connection until it closes (runs in a worker thread).

        Requests on a kept-alive or pipelined connection are answered
        strictly in the order they were read.
        """
        with conn:
            while self._running:
                try:
                    raw_request = conn.read_request()
                    if raw_request is None:
                        break

                    request = self._parser.parse(raw_request, conn.address)

                except HTTPParseError as e:
                    logger.debug(f"[{conn.id}] Bad request: {e}")
                    self._send_error(conn, e.status_code, str(e))
                    break

                except TimeoutError:
                    self._send_error(conn, HTTPStatus.REQUEST_TIMEOUT, "Request timeout")
                    break

                except OSError as e:
                    logger.debug(f"[{conn.id}] Connection lost: {e}")
                    break

                conn.state = ConnectionState.PROCESSING

                try:
                    response = self._handler(request)
                except Exception as e:
                    logger.exception(f"[{conn.id}] Handler error: {e}")
                    self._send_error(
                        conn, HTTPStatus.INTERNAL_SERVER_ERROR, "Internal Server Error"
                    )
                    break

                keep_alive = request.is_keep_alive and self.config.keep_alive and self._running
                self._add_transport_headers(response, request, keep_alive)

                response_bytes = response.to_bytes(
                    self.config.server_name,
                    include_body=request.method != "HEAD",
                )
                if not conn.send_response(response_bytes):
                    break

                if not keep_alive:
                    break

                conn.set_keep_alive()

    def _add_transport_headers(self, response: HTTPResponse, request: HTTPRequest, keep_alive: bool):
        """
        Connection management headers. The echo never carries these (they
        are reserved), so the transport is the only writer.
        """
        if keep_alive:
            if request.version == "HTTP/1.0":
                response.headers.setdefault("Connection", "keep-alive")
            response.headers.setdefault(
                "Keep-Alive", f"timeout={int(self.config.keep_alive_timeout)}"
            )
        else:
            response.headers["Connection"] = "close"

    def _send_error(self, conn: Connection, status: int, message: str):
        response = error_response(status, message)
        conn.send_response(response.to_bytes(self.config.server_name))

