"""
=============================================================================
CONNECTION MANAGEMENT
=============================================================================

Wraps one accepted client socket with buffered, framed request reading.

=============================================================================
FRAMING: WHERE DOES ONE REQUEST END?
=============================================================================

TCP is a byte stream. recv() returns whatever happened to arrive, so the
connection buffers bytes until it can see one complete request:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                       REQUEST FRAMING                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   1. Read until \r\n\r\n              (end of the header section)    │
    │                                                                      │
    │   2. Look at the framing headers:                                   │
    │                                                                      │
    │      Transfer-Encoding: chunked   → read until the 0-size chunk     │
    │                                     and its trailer section         │
    │      Content-Length: N            → read N more bytes               │
    │      neither                      → no body                         │
    │                                                                      │
    │   3. Hand back exactly those bytes; anything after them stays in   │
    │      the buffer as the start of the next (pipelined) request       │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
EXPECT: 100-CONTINUE
=============================================================================

A client uploading a body may ask permission first:

    client ──► POST /upload HTTP/1.1
               Expect: 100-continue
               Content-Length: 5242880

    server ──► HTTP/1.1 100 Continue        ← interim response

    client ──► <body bytes>

    server ──► HTTP/1.1 200 OK              ← the real response

Without the interim response curl waits a second before sending the body
anyway. The echo server always agrees, so it answers 100 Continue as soon
as it has the headers and the body hasn't started arriving.

=============================================================================
CONNECTION STATE MACHINE
=============================================================================

    NEW ──────► READING ──────► PROCESSING ──────► WRITING ────────┐
     │             │                                    │           │
     │             │                                    │           ▼
     │             │                                    │      KEEP_ALIVE
     │             ▼                                    │           │
     └──────────► CLOSING ◄─────────────────────────────┴───────────┘
                    │
                    ▼
                  CLOSED

=============================================================================
"""

import socket
import time
import logging
import uuid
from enum import Enum
from dataclasses import dataclass, field
from typing import Optional, Tuple

from ..http.chunked import ChunkedEncodingError, parse_chunked
from ..http.request import HEADER_ENCODING, HTTPParseError


logger = logging.getLogger(__name__)

CONTINUE_RESPONSE = b"HTTP/1.1 100 Continue\r\n\r\n"


class ConnectionState(Enum):
    """Connection lifecycle states, for logging and debugging."""
    NEW = "new"
    READING = "reading"
    PROCESSING = "processing"
    WRITING = "writing"
    KEEP_ALIVE = "keep_alive"
    CLOSING = "closing"
    CLOSED = "closed"


@dataclass
class Framing:
    """What the header section says about the body that follows it."""

    chunked: bool = False
    content_length: int = 0
    expect_continue: bool = False

    @classmethod
    def from_header_section(cls, header_section: bytes) -> "Framing":
        """
        Scan raw header lines for the framing fields.

        This runs before the real parser, so it is lenient: anything it
        can't make sense of is left for RequestParser to reject with a
        proper status code.
        """
        framing = cls()
        lines = header_section.decode(HEADER_ENCODING).split("\r\n")
        is_http11 = lines[0].endswith("HTTP/1.1")

        for line in lines[1:]:
            name, sep, value = line.partition(":")
            if not sep:
                continue
            name = name.strip().lower()
            value = value.strip()

            if name == "transfer-encoding":
                codings = [c.strip().lower() for c in value.split(",") if c.strip()]
                framing.chunked = bool(codings) and codings[-1] == "chunked"
            elif name == "content-length":
                first = value.split(",")[0].strip()
                if first.isascii() and first.isdigit():
                    framing.content_length = int(first)
            elif name == "expect":
                framing.expect_continue = is_http11 and value.lower() == "100-continue"

        return framing


@dataclass
class Connection:
    """
    One client connection.

    Attributes:
        socket: The client socket.
        address: Client's (ip, port) tuple. IPv6 peers carry extra fields,
                 only the first two are kept.
        id: Short connection identifier for log lines.
        state: Current connection state.
        requests_handled: Requests read from this connection so far.
    """

    socket: socket.socket
    address: Tuple[str, int]

    id: str = field(default_factory=lambda: str(uuid.uuid4())[:8])
    state: ConnectionState = ConnectionState.NEW
    created_at: float = field(default_factory=time.time)
    last_activity: float = field(default_factory=time.time)
    requests_handled: int = 0

    buffer_size: int = 8192
    timeout: Optional[float] = 30.0
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024

    _buffer: bytes = field(default=b"", repr=False)

    def __post_init__(self):
        self.address = (self.address[0], self.address[1])
        self.socket.setblocking(True)
        if self.timeout:
            self.socket.settimeout(self.timeout)

    @property
    def has_buffered_data(self) -> bool:
        """True when pipelined bytes are already waiting."""
        return bool(self._buffer)

    # =========================================================================
    # READING
    # =========================================================================

    def read_request(self) -> Optional[bytes]:
        """
        Read one complete HTTP request from the socket.

        Returns:
            The request bytes, or None when the client closed the
            connection (or went quiet on a kept-alive one) between
            requests.

        Raises:
            TimeoutError: The first request didn't arrive in time.
            HTTPParseError: 413 when the request outgrows max_request_size,
                            400 for a broken chunked body or a request cut
                            off mid-way.
        """
        self.state = ConnectionState.READING
        self.last_activity = time.time()

        if self.requests_handled > 0:
            self.socket.settimeout(self.keep_alive_timeout)

        try:
            # ─────────────────────────────────────────────────────────────
            # HEADER SECTION
            # ─────────────────────────────────────────────────────────────
            while b"\r\n\r\n" not in self._buffer:
                if not self._fill():
                    if self._buffer.strip():
                        raise HTTPParseError("Connection closed mid-request")
                    return None

            header_end = self._buffer.find(b"\r\n\r\n")
            body_start = header_end + 4
            framing = Framing.from_header_section(self._buffer[:header_end])

            if self.requests_handled > 0:
                self.socket.settimeout(self.timeout)

            # ─────────────────────────────────────────────────────────────
            # 100 CONTINUE
            # ─────────────────────────────────────────────────────────────
            wants_body = framing.chunked or framing.content_length > 0
            if framing.expect_continue and wants_body and len(self._buffer) == body_start:
                self.socket.sendall(CONTINUE_RESPONSE)

            # ─────────────────────────────────────────────────────────────
            # BODY
            # ─────────────────────────────────────────────────────────────
            if framing.chunked:
                request_end = self._read_chunked(body_start)
            else:
                request_end = body_start + framing.content_length
                if request_end > self.max_request_size:
                    raise HTTPParseError(
                        f"Request too large: {request_end} bytes", status_code=413
                    )
                while len(self._buffer) < request_end:
                    if not self._fill():
                        raise HTTPParseError("Connection closed mid-body")

            request_data = self._buffer[:request_end]
            self._buffer = self._buffer[request_end:]

            self.requests_handled += 1
            self.last_activity = time.time()
            return request_data

        except socket.timeout:
            if self.requests_handled > 0 and not self._buffer:
                logger.debug(f"[{self.id}] Keep-alive timeout")
                return None
            raise TimeoutError("Request read timeout")

        finally:
            self.socket.settimeout(self.timeout)

    def _read_chunked(self, body_start: int) -> int:
        """Buffer a chunked body; returns the offset just past it."""
        while True:
            try:
                decoded = parse_chunked(self._buffer, body_start)
            except ChunkedEncodingError as e:
                raise HTTPParseError(f"Invalid chunked body: {e}")
            if decoded is not None:
                return decoded[1]
            if not self._fill():
                raise HTTPParseError("Connection closed mid-body")

    def _fill(self) -> bool:
        """Append one recv() to the buffer. False when the peer is gone."""
        chunk = self._recv()
        if not chunk:
            return False
        self._buffer += chunk
        if len(self._buffer) > self.max_request_size:
            raise HTTPParseError(
                f"Request too large: {len(self._buffer)} bytes", status_code=413
            )
        return True

    def _recv(self) -> bytes:
        try:
            data = self.socket.recv(self.buffer_size)
            self.last_activity = time.time()
            return data
        except (ConnectionResetError, BrokenPipeError):
            return b""

    # =========================================================================
    # WRITING
    # =========================================================================

    def send_response(self, data: bytes) -> bool:
        """
        Send response bytes with sendall().

        Returns:
            True if sent, False if the connection was lost.
        """
        self.state = ConnectionState.WRITING
        self.last_activity = time.time()

        try:
            self.socket.sendall(data)
            self.last_activity = time.time()
            return True
        except OSError as e:
            logger.warning(f"[{self.id}] Send failed: {e}")
            return False

    # =========================================================================
    # CLOSING
    # =========================================================================

    def close(self):
        """
        Close the connection: send FIN, drain what the client still sends,
        then release the descriptor. Safe to call twice.
        """
        if self.state == ConnectionState.CLOSED:
            return

        self.state = ConnectionState.CLOSING

        try:
            self.socket.shutdown(socket.SHUT_WR)
        except OSError:
            pass  # already disconnected

        try:
            self.socket.settimeout(0.5)
            while self.socket.recv(1024):
                pass
        except OSError:
            pass

        try:
            self.socket.close()
        except OSError:
            pass

        self.state = ConnectionState.CLOSED
        logger.debug(f"[{self.id}] Connection closed after {self.requests_handled} requests")

    def set_keep_alive(self):
        """Mark connection as waiting for its next request."""
        self.state = ConnectionState.KEEP_ALIVE

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False
