"""
=============================================================================
CHUNKED TRANSFER CODING (RFC 7230 section 4.1)
=============================================================================

Clients that don't know the body size up front (streaming uploads,
proxies re-framing a request) send it in chunks:

    POST /upload HTTP/1.1\r\n
    Transfer-Encoding: chunked\r\n
    \r\n
    5\r\n               ← chunk size in HEX
    hello\r\n           ← chunk data
    6;ext=1\r\n         ← size with an (ignored) extension
     world\r\n
    0\r\n               ← last chunk
    X-Trailer: x\r\n    ← optional trailer fields (discarded)
    \r\n                ← end of message

The same routine serves two callers:

    Connection      - "is the body complete yet?" (None means keep reading)
    RequestParser   - "give me the de-chunked body"

=============================================================================
"""

from typing import Optional, Tuple


_HEX_DIGITS = frozenset(b"0123456789abcdefABCDEF")

# 16 hex digits already exceed any body we would accept
_MAX_SIZE_DIGITS = 16


class ChunkedEncodingError(ValueError):
    """Raised when chunked framing is syntactically invalid."""


def parse_chunked(data: bytes, start: int = 0) -> Optional[Tuple[bytes, int]]:
    """
    Decode a chunked body that begins at `data[start]`.

    Args:
        data: Buffer holding the message.
        start: Offset of the first chunk-size line.

    Returns:
        (body, end) where `end` is the offset just past the final CRLF,
        or None if the buffer does not yet hold the whole body.

    Raises:
        ChunkedEncodingError: If the framing is malformed.
    """
    pos = start
    body = bytearray()

    # ─────────────────────────────────────────────────────────────────────
    # CHUNKS
    # ─────────────────────────────────────────────────────────────────────
    while True:
        line_end = data.find(b"\r\n", pos)
        if line_end == -1:
            return None

        size_field = data[pos:line_end].split(b";", 1)[0].strip()
        if (
            not size_field
            or len(size_field) > _MAX_SIZE_DIGITS
            or any(byte not in _HEX_DIGITS for byte in size_field)
        ):
            raise ChunkedEncodingError(f"Invalid chunk size: {size_field!r}")

        size = int(size_field, 16)
        pos = line_end + 2

        if size == 0:
            break

        if len(data) < pos + size + 2:
            return None

        body += data[pos:pos + size]
        if data[pos + size:pos + size + 2] != b"\r\n":
            raise ChunkedEncodingError("Missing CRLF after chunk data")
        pos += size + 2

    # ─────────────────────────────────────────────────────────────────────
    # TRAILER SECTION (ends with an empty line)
    # ─────────────────────────────────────────────────────────────────────
    while True:
        line_end = data.find(b"\r\n", pos)
        if line_end == -1:
            return None
        if line_end == pos:
            return bytes(body), pos + 2
        pos = line_end + 2
