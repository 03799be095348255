"""
Response synthesis: pass-through headers + effective status + effective body.

A header that can't be written back on the wire (CR/LF injection, NUL,
characters outside ISO-8859-1, a name that isn't a token) is dropped on
its own. One bad header never costs the client the whole response.
"""

import logging
import re
from typing import Iterable, Tuple

from ..http.response import HTTPResponse, ResponseBuilder


logger = logging.getLogger(__name__)

_TOKEN = re.compile(r"^[!#$%&'*+\-.^_`|~0-9A-Za-z]+$")


def is_valid_header_name(name: str) -> bool:
    return bool(_TOKEN.match(name))


def is_valid_header_value(value: str) -> bool:
    """
    field-value = *( VCHAR / obs-text / SP / HTAB )   (RFC 7230 3.2)

    i.e. anything from 0x20 to 0xFF except DEL, plus horizontal tab.
    """
    return all(
        char == "\t" or (0x20 <= ord(char) <= 0xFF and char != "\x7f")
        for char in value
    )


def synthesize(
    pass_through_headers: Iterable[Tuple[str, str]],
    status: int,
    body: str,
) -> HTTPResponse:
    """
    Build the outbound response.

    Args:
        pass_through_headers: (name, value) pairs to echo, in order.
        status: Effective status code.
        body: Effective body text, sent as UTF-8.

    Returns:
        The HTTPResponse. Never raises for bad header input.
    """
    builder = ResponseBuilder().status(status)

    for name, value in pass_through_headers:
        if not is_valid_header_name(name) or not is_valid_header_value(value):
            logger.debug(f"Skipping header that cannot be echoed: {name!r}")
            continue
        builder.header(name, value)

    return builder.body(body).build()
