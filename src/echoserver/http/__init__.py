"""
=============================================================================
HTTP PROTOCOL COMPONENTS
=============================================================================

Everything between raw bytes and the echo pipeline:

    headers.py       Ordered, case-insensitive header multimap
    chunked.py       Chunked transfer coding decoder
    request.py       HTTPRequest dataclass and RequestParser
    response.py      HTTPResponse, ResponseBuilder and serialization
    status_codes.py  HTTPStatus enum and status-code helpers

=============================================================================
"""

from .headers import Headers
from .chunked import ChunkedEncodingError, parse_chunked
from .request import HTTPRequest, RequestParser, HTTPParseError, parse_request
from .response import (
    HTTPResponse,
    ResponseBuilder,
    error_response,
    format_http_date,
)
from .status_codes import HTTPStatus, is_valid_status, reason_phrase, allows_body

__all__ = [
    # Headers
    "Headers",

    # Request parsing
    "HTTPRequest",
    "RequestParser",
    "HTTPParseError",
    "parse_request",
    "ChunkedEncodingError",
    "parse_chunked",

    # Response building
    "HTTPResponse",
    "ResponseBuilder",
    "error_response",
    "format_http_date",

    # Status codes
    "HTTPStatus",
    "is_valid_status",
    "reason_phrase",
    "allows_body",
]
