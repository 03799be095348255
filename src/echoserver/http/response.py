"""
=============================================================================
HTTP RESPONSE BUILDER
=============================================================================

Builds HTTP/1.1 responses and serializes them per RFC 7230.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP RESPONSE STRUCTURE                         │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   HTTP/1.1 404 Not Found\r\n          ← status line                 │
    │   X-Test: a\r\n                       ← echoed header fields        │
    │   Content-Length: 5\r\n               ← added by to_bytes()         │
    │   Date: Sat, 17 Oct 2026 12:00:00 GMT\r\n                           │
    │   Server: EchoServer/1.0\r\n                                        │
    │   \r\n                                ← end of headers              │
    │   hello                               ← body                        │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
BODYLESS RESPONSES
=============================================================================

Because clients choose the status through `internal.status-code`, the
serializer has to respect the framing rules for every status:

    1xx, 204    no body, no Content-Length
    304         no body (Content-Length left to the handler)
    HEAD        Content-Length of the would-be body, but no body bytes

=============================================================================
"""

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any, Iterable, Tuple, Union
import json

from .headers import Headers
from .request import HEADER_ENCODING
from .status_codes import HTTPStatus, allows_body, reason_phrase


DEFAULT_SERVER_NAME = "EchoServer/1.0"


@dataclass
class HTTPResponse:
    """
    Represents an HTTP response to be sent to the client.

    `status` is a plain int so that unregistered codes (299, 799) work;
    HTTPStatus members are ints too and can be passed directly.
    """

    status: int = HTTPStatus.OK
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    version: str = "HTTP/1.1"

    @property
    def status_line(self) -> str:
        """
        Get the HTTP status line, e.g. "HTTP/1.1 200 OK".

        Unregistered codes get an empty reason phrase ("HTTP/1.1 799 ").
        """
        return f"{self.version} {int(self.status)} {reason_phrase(self.status)}"

    def set_header(self, name: str, value: str) -> "HTTPResponse":
        """Replace a header. Returns self for chaining."""
        self.headers.set(name, value)
        return self

    def add_header(self, name: str, value: str) -> "HTTPResponse":
        """Append a header, keeping existing ones of the same name."""
        self.headers.add(name, value)
        return self

    def to_bytes(self, server_name: str = DEFAULT_SERVER_NAME, include_body: bool = True) -> bytes:
        """
        Serialize the response for socket.sendall().

        Args:
            server_name: Value for the Server header when none is set.
            include_body: False for responses to HEAD requests.

        Returns:
            Complete HTTP response as bytes.
        """
        response_headers = self.headers.copy()
        body_allowed = allows_body(self.status)

        # =====================================================================
        # AUTO-ADD REQUIRED HEADERS
        # =====================================================================
        if body_allowed:
            response_headers.set("Content-Length", str(len(self.body)))
        elif self.status != HTTPStatus.NOT_MODIFIED:
            response_headers.remove("Content-Length")

        response_headers.setdefault("Date", format_http_date(datetime.now(timezone.utc)))
        response_headers.setdefault("Server", server_name)

        # =====================================================================
        # BUILD RESPONSE BYTES
        # =====================================================================
        lines = [self.status_line]
        for name, value in response_headers:
            lines.append(f"{name}: {value}")
        lines.append("")

        head = "\r\n".join(lines).encode(HEADER_ENCODING, errors="replace") + b"\r\n"

        if body_allowed and include_body:
            return head + self.body
        return head


class ResponseBuilder:
    """
    Fluent builder for constructing HTTP responses.

        response = (ResponseBuilder()
            .status(404)
            .header("X-Test", "a")
            .body("hello")
            .build())

    Every method returns `self` except build() and to_bytes().
    """

    def __init__(self, server_name: str = DEFAULT_SERVER_NAME):
        self._status: int = HTTPStatus.OK
        self._headers = Headers()
        self._body: bytes = b""
        self._server_name = server_name

    # =========================================================================
    # STATUS
    # =========================================================================

    def status(self, status: int) -> "ResponseBuilder":
        self._status = status
        return self

    # =========================================================================
    # HEADERS
    # =========================================================================

    def header(self, name: str, value: str) -> "ResponseBuilder":
        """
        Append a header.

        Appending (not replacing) is what lets a repeated request header
        come back repeated in the echo.
        """
        self._headers.add(name, value)
        return self

    def headers(self, fields: Iterable[Tuple[str, str]]) -> "ResponseBuilder":
        """Append several (name, value) pairs in order."""
        for name, value in fields:
            self._headers.add(name, value)
        return self

    def content_type(self, content_type: str) -> "ResponseBuilder":
        self._headers.set("Content-Type", content_type)
        return self

    def close_connection(self) -> "ResponseBuilder":
        """Set "Connection: close" so the client opens a fresh connection."""
        self._headers.set("Connection", "close")
        return self

    # =========================================================================
    # BODY
    # =========================================================================

    def body(self, body: Union[str, bytes]) -> "ResponseBuilder":
        """Set the raw body; strings are encoded as UTF-8."""
        self._body = body.encode("utf-8") if isinstance(body, str) else body
        return self

    def json(self, data: Any, pretty: bool = False) -> "ResponseBuilder":
        indent = 2 if pretty else None
        self._body = json.dumps(data, indent=indent, ensure_ascii=False).encode("utf-8")
        return self.content_type("application/json; charset=utf-8")

    # =========================================================================
    # BUILD
    # =========================================================================

    def build(self) -> HTTPResponse:
        return HTTPResponse(
            status=self._status,
            headers=self._headers.copy(),
            body=self._body,
        )

    def to_bytes(self) -> bytes:
        """Build and serialize in one step."""
        return self.build().to_bytes(self._server_name)


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 7231 section 7.1.1.1).

    Example: "Sat, 17 Oct 2026 12:00:00 GMT". Always GMT, never local time.
    """
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )


def error_response(status: int, message: str) -> HTTPResponse:
    """
    JSON error response for transport failures (parse errors, timeouts,
    overload). Always closes the connection.
    """
    return (ResponseBuilder()
        .status(status)
        .json({"error": message})
        .close_connection()
        .build())
