"""
=============================================================================
OVERRIDE RESOLUTION
=============================================================================

Turns the two control headers into the effective status and body.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   internal.status-code: 404     →  status 404                       │
    │   internal.status-code: abc     →  status 200  (ignored)            │
    │   internal.status-code: 1000    →  status 200  (out of range)       │
    │   (absent)                      →  status 200                       │
    │                                                                      │
    │   internal.response-body: hi    →  body "hi"  (request body dropped)│
    │   (absent)                      →  body = request body as UTF-8     │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Bad override values are never an error. The server exists to absorb odd
test input, so every branch below is parse-or-default and resolve()
cannot raise.

=============================================================================
"""

import logging
from dataclasses import dataclass
from typing import Iterable, Optional, Tuple

from ..http.headers import Headers
from ..http.request import HEADER_ENCODING
from ..http.status_codes import HTTPStatus, is_valid_status
from .headers import RESPONSE_BODY_HEADER, STATUS_CODE_HEADER


logger = logging.getLogger(__name__)

DEFAULT_STATUS = HTTPStatus.OK


@dataclass(frozen=True)
class Resolution:
    """The effective status and body for one exchange."""
    status: int
    body: str


def resolve_status(value: Optional[str]) -> int:
    """
    Effective status from the raw `internal.status-code` value.

    Only plain ASCII digits within 100-999 are honoured.
    """
    if value is None:
        return DEFAULT_STATUS

    candidate = value.strip()
    if not (candidate.isascii() and candidate.isdigit()):
        logger.debug(f"Ignoring non-numeric {STATUS_CODE_HEADER}: {value!r}")
        return DEFAULT_STATUS

    status = int(candidate)
    if not is_valid_status(status):
        logger.debug(f"Ignoring out-of-range {STATUS_CODE_HEADER}: {status}")
        return DEFAULT_STATUS

    return status


def resolve_body(value: Optional[str], body: bytes) -> str:
    """
    Effective body from the raw `internal.response-body` value.

    Header values arrive as ISO-8859-1 text (one code point per byte), so
    encoding back gives the exact bytes the client sent; those are then
    read as UTF-8 with U+FFFD for anything invalid. A value that is
    already beyond ISO-8859-1 (built in code, not parsed) is used as is.
    """
    if value is None:
        return body.decode("utf-8", errors="replace")

    if any(ord(char) > 0xFF for char in value):
        return value
    return value.encode(HEADER_ENCODING).decode("utf-8", errors="replace")


def resolve(headers: Iterable[Tuple[str, str]], body: bytes) -> Resolution:
    """
    Compute the effective status and body.

    Args:
        headers: Request headers (Headers or (name, value) pairs).
        body: Raw request body.

    Returns:
        Resolution(status, body). Pure: same input, same output.
    """
    if not isinstance(headers, Headers):
        headers = Headers(headers)

    return Resolution(
        status=resolve_status(headers.get(STATUS_CODE_HEADER)),
        body=resolve_body(headers.get(RESPONSE_BODY_HEADER), body),
    )
