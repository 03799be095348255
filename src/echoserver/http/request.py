"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses raw HTTP/1.1 request bytes into structured HTTPRequest objects.
Implements the message syntax of RFC 7230.

=============================================================================
HTTP REQUEST ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HTTP REQUEST STRUCTURE                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   PURGE /cache/item?x=1 HTTP/1.1\r\n     ← request line             │
    │   ──┬── ──────┬──────── ───┬────                                    │
    │   Method   Target       Version                                     │
    │             │                                                        │
    │       ┌─────┴──────┐                                                │
    │     Path        Query                                               │
    │   /cache/item    x=1                                                │
    │                                                                      │
    │   Host: localhost:3001\r\n               ← header fields            │
    │   X-Test: a\r\n                                                     │
    │   X-Test: b\r\n                          ← repeats are kept         │
    │   Content-Length: 5\r\n                                             │
    │   \r\n                                   ← end of headers           │
    │   hello                                  ← body                     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
WHAT AN ECHO SERVER NEEDS FROM ITS PARSER
=============================================================================

A routing server can afford to normalize: lowercase header names, merge
duplicates, URL-decode the path, reject unknown methods. An echo server
is a diagnostic tool, so the parser keeps the request as it arrived:

    1. ANY METHOD      - every RFC 7230 token is accepted (PURGE, PROPFIND)
    2. RAW TARGET      - path and query string are not decoded
    3. HEADER ORDER    - every field kept, original casing, arrival order
    4. HEADER BYTES    - decoded as ISO-8859-1, which maps each byte to one
                         code point, so the exact bytes can be recovered

=============================================================================
"""

import re
from dataclasses import dataclass, field
from typing import Optional, List, Tuple
from urllib.parse import urlsplit

from .chunked import ChunkedEncodingError, parse_chunked
from .headers import Headers


# ISO-8859-1 is the historical header charset and round-trips every byte
HEADER_ENCODING = "iso-8859-1"


class HTTPParseError(Exception):
    """
    Exception raised when HTTP request parsing fails.

    Carries the status code the server should answer with:
    - 400 Bad Request: malformed syntax
    - 413 Payload Too Large: request exceeds the size limit
    - 431 Request Header Fields Too Large: header section too big
    - 501 Not Implemented: unsupported transfer coding
    - 505 HTTP Version Not Supported
    """

    def __init__(self, message: str, status_code: int = 400):
        super().__init__(message)
        self.status_code = status_code


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed HTTP request.

    Frozen: once the parser builds it, nothing downstream may change it.
    The echo pipeline and the verbose trace both read the same object.

    Attributes:
        method:         Method token as sent ("GET", "PURGE", ...)
        path:           Request path without the query string, undecoded
        query_string:   Raw query string without the leading "?"
        version:        "HTTP/1.1" or "HTTP/1.0"
        headers:        Ordered, case-insensitive header multimap
        body:           Body bytes (de-chunked when chunked)
        client_address: (ip, port) of the peer
        raw:            The bytes the request was parsed from
    """

    method: str
    path: str
    query_string: str = ""
    version: str = "HTTP/1.1"
    headers: Headers = field(default_factory=Headers)
    body: bytes = b""
    client_address: Tuple[str, int] = ("", 0)
    raw: bytes = field(default=b"", repr=False)

    @property
    def target(self) -> str:
        """The path with its query string, as it appeared in the request line."""
        if self.query_string:
            return f"{self.path}?{self.query_string}"
        return self.path

    @property
    def content_length(self) -> int:
        """Content-Length as an int, 0 when missing or invalid."""
        value = self.headers.get("content-length", "")
        return int(value) if value.isascii() and value.isdigit() else 0

    @property
    def host(self) -> str:
        return self.headers.get("host", "")

    @property
    def user_agent(self) -> str:
        return self.headers.get("user-agent", "")

    @property
    def is_keep_alive(self) -> bool:
        """
        Check if the connection should stay open after this exchange.

        HTTP/1.1 keeps alive unless the client sends "Connection: close";
        HTTP/1.0 closes unless the client sends "Connection: keep-alive".
        """
        tokens = {
            token.strip().lower()
            for token in self.headers.get_joined("connection").split(",")
        }
        if self.version == "HTTP/1.1":
            return "close" not in tokens
        return "keep-alive" in tokens

    def get_header(self, name: str, default: str = "") -> str:
        """Get the first value of a header (case-insensitive)."""
        return self.headers.get(name, default)


class RequestParser:
    """
    Parses raw HTTP request bytes into HTTPRequest objects.

    ==========================================================================
    PARSER ARCHITECTURE
    ==========================================================================

        Raw Request Bytes
              │
              ▼
        ┌───────────────────────────────────────────────────────────────────┐
        │  1. Size check               too large? → 413                    │
        │  2. Find \r\n\r\n            missing?   → 400                    │
        │                              too long?  → 431                    │
        │  3. Request line             METHOD SP TARGET SP VERSION          │
        │                              bad?       → 400 / 505              │
        │  4. Header fields            folded lines joined, order kept     │
        │  5. Body framing             chunked, else Content-Length        │
        │  6. Build HTTPRequest                                            │
        └───────────────────────────────────────────────────────────────────┘

    ==========================================================================
    """

    # =========================================================================
    # COMPILED REGEX PATTERNS
    # =========================================================================
    #
    # method = token (RFC 7230 section 3.2.6)
    # tchar  = "!" / "#" / "$" / "%" / "&" / "'" / "*" / "+" / "-" / "." /
    #          "^" / "_" / "`" / "|" / "~" / DIGIT / ALPHA
    #
    TOKEN = r"[!#$%&'*+\-.^_`|~0-9A-Za-z]+"
    REQUEST_LINE_PATTERN = re.compile(rf"^({TOKEN}) (\S+) (HTTP/\d\.\d)$")
    HEADER_PATTERN = re.compile(rf"^({TOKEN}):[ \t]*(.*?)[ \t]*$")

    SUPPORTED_VERSIONS = ("HTTP/1.0", "HTTP/1.1")

    def __init__(
        self,
        max_request_size: int = 10 * 1024 * 1024,
        max_header_size: int = 64 * 1024,
    ):
        """
        Args:
            max_request_size: Largest accepted request in bytes (413 above).
            max_header_size: Largest accepted header section (431 above).
        """
        self.max_request_size = max_request_size
        self.max_header_size = max_header_size

    def parse(
        self,
        data: bytes,
        client_address: Tuple[str, int] = ("", 0),
    ) -> HTTPRequest:
        """
        Parse raw HTTP request data into an HTTPRequest object.

        Args:
            data: Raw HTTP request bytes from the socket.
            client_address: Client's (ip, port) tuple.

        Returns:
            Parsed HTTPRequest.

        Raises:
            HTTPParseError: If the request is malformed.
        """
        # =====================================================================
        # STEP 1: Reject oversized requests
        # =====================================================================
        if len(data) > self.max_request_size:
            raise HTTPParseError(f"Request too large: {len(data)} bytes", status_code=413)

        # =====================================================================
        # STEP 2: Split headers and body at the \r\n\r\n boundary
        # =====================================================================
        header_end = data.find(b"\r\n\r\n")
        if header_end == -1:
            raise HTTPParseError("Incomplete request: no header terminator")
        if header_end > self.max_header_size:
            raise HTTPParseError(
                f"Header section too large: {header_end} bytes",
                status_code=431,
            )

        header_section = data[:header_end].decode(HEADER_ENCODING)
        lines = header_section.split("\r\n")

        # =====================================================================
        # STEP 3: Request line
        # =====================================================================
        method, path, query_string, version = self._parse_request_line(lines[0])

        # =====================================================================
        # STEP 4: Header fields
        # =====================================================================
        headers = self._parse_headers(lines[1:])

        # =====================================================================
        # STEP 5: Body
        # =====================================================================
        body = self._read_body(headers, data, header_end + 4)

        return HTTPRequest(
            method=method,
            path=path,
            query_string=query_string,
            version=version,
            headers=headers,
            body=body,
            client_address=client_address,
            raw=data,
        )

    def _parse_request_line(self, line: str) -> Tuple[str, str, str, str]:
        """
        Parse "METHOD SP TARGET SP VERSION".

        The target comes in one of four forms:

            origin-form     /path?query           (almost every request)
            absolute-form   http://host/path?q    (requests sent to a proxy)
            authority-form  host:443              (CONNECT)
            asterisk-form   *                     (OPTIONS *)

        Returns:
            (method, path, query_string, version)
        """
        match = self.REQUEST_LINE_PATTERN.match(line)
        if not match:
            raise HTTPParseError(f"Invalid request line: {line!r}")

        method, target, version = match.groups()

        if version not in self.SUPPORTED_VERSIONS:
            raise HTTPParseError(f"Unsupported HTTP version: {version}", status_code=505)

        if target.startswith("/"):
            path, _, query_string = target.partition("?")
        elif "://" in target:
            parts = urlsplit(target)
            path, query_string = parts.path or "/", parts.query
        else:
            path, query_string = target, ""

        return method, path, query_string, version

    def _parse_headers(self, lines: List[str]) -> Headers:
        """
        Parse header lines into a Headers multimap.

        - Field names keep their casing; repeats are kept as separate fields.
        - Obsolete line folding (a line starting with SP or HTAB) continues
          the previous field's value.
        - Lines that are not "token: value" are skipped.
        """
        fields: List[List[str]] = []

        for line in lines:
            if not line:
                continue

            if line[0] in (" ", "\t"):
                if fields:
                    fields[-1][1] = f"{fields[-1][1]} {line.strip()}".strip()
                continue

            match = self.HEADER_PATTERN.match(line)
            if not match:
                continue

            name, value = match.groups()
            fields.append([name, value])

        return Headers((name, value) for name, value in fields)

    def _read_body(self, headers: Headers, data: bytes, body_start: int) -> bytes:
        """
        Extract the body using the message framing rules of RFC 7230 3.3.3.

        Transfer-Encoding wins over Content-Length when both are present.
        """
        transfer_encoding = headers.get_joined("transfer-encoding")
        if transfer_encoding:
            codings = [c.strip().lower() for c in transfer_encoding.split(",") if c.strip()]
            if not codings or codings[-1] != "chunked":
                raise HTTPParseError(
                    f"Unsupported transfer coding: {transfer_encoding}",
                    status_code=501,
                )
            try:
                decoded = parse_chunked(data, body_start)
            except ChunkedEncodingError as e:
                raise HTTPParseError(f"Invalid chunked body: {e}")
            if decoded is None:
                raise HTTPParseError("Incomplete chunked body")
            return decoded[0]

        content_length = self._content_length(headers)
        body = data[body_start:]
        if len(body) < content_length:
            raise HTTPParseError(
                f"Incomplete body: expected {content_length} bytes, got {len(body)}"
            )
        return body[:content_length]

    @staticmethod
    def _content_length(headers: Headers) -> int:
        """
        Read Content-Length, rejecting anything a proxy could disagree on.

        "Content-Length: 5, 5" is tolerated (identical values); differing
        values or non-digits are a request smuggling vector and get 400.
        """
        values = {
            value.strip()
            for raw in headers.get_all("content-length")
            for value in raw.split(",")
        }
        if not values:
            return 0
        if len(values) > 1:
            raise HTTPParseError("Conflicting Content-Length values")
        value = values.pop()
        if not value.isdigit() or not value.isascii():
            raise HTTPParseError(f"Invalid Content-Length: {value!r}")
        return int(value)


def parse_request(
    data: bytes,
    client_address: Tuple[str, int] = ("", 0),
    max_size: int = 10 * 1024 * 1024,
) -> HTTPRequest:
    """
    Convenience function to parse an HTTP request in one call.

    Use RequestParser directly to parse many requests with the same limits.
    """
    return RequestParser(max_request_size=max_size).parse(data, client_address)
