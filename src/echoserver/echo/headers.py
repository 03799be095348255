"""
=============================================================================
HEADER CLASSIFICATION
=============================================================================

Decides, for every request header, whether it comes back in the echo.

=============================================================================
THREE KINDS OF HEADER
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                     HEADER CLASSES                                  │
    ├──────────────┬──────────────────────────────────────────────────────┤
    │ CONTROL      │ internal.status-code, internal.response-body         │
    │              │ Directives to this server. Never echoed.            │
    ├──────────────┼──────────────────────────────────────────────────────┤
    │ RESERVED     │ Host, Content-Length, Authorization, Cookie, ...     │
    │              │ Describe this one hop or this one client. Echoing   │
    │              │ them would be wrong (Content-Length, Connection) or │
    │              │ leak credentials (Authorization, Cookie).           │
    ├──────────────┼──────────────────────────────────────────────────────┤
    │ PASS_THROUGH │ Everything else. Copied to the response verbatim,   │
    │              │ same casing, same order, repeats kept.              │
    └──────────────┴──────────────────────────────────────────────────────┘

    Precedence: CONTROL is checked before RESERVED. A name can never be
    both echoed and obeyed.

=============================================================================
THE TABLES
=============================================================================

RESERVED_HEADERS, RESERVED_PREFIXES and CONTROL_HEADERS are built once
when the module is imported and are immutable (frozenset / tuple).
Worker threads only ever read them, so no locking is needed.

=============================================================================
"""

from enum import Enum
from typing import Iterable, List, Tuple


# =============================================================================
# CONTROL HEADERS
# =============================================================================
# The "internal." prefix can't collide with a registered header name and
# is unlikely to be sent by a real client by accident.

STATUS_CODE_HEADER = "internal.status-code"
RESPONSE_BODY_HEADER = "internal.response-body"

CONTROL_HEADERS = frozenset({STATUS_CODE_HEADER, RESPONSE_BODY_HEADER})


# =============================================================================
# RESERVED HEADERS (lowercase)
# =============================================================================

RESERVED_HEADERS = frozenset({
    # Message framing and connection management (hop-by-hop)
    "content-length",
    "transfer-encoding",
    "content-encoding",
    "connection",
    "keep-alive",
    "upgrade",
    "te",
    "trailer",
    "expect",

    # Request target and client identity
    "host",
    "user-agent",
    "referer",
    "origin",

    # Content negotiation
    "accept",
    "accept-encoding",
    "accept-language",
    "accept-charset",
    "cache-control",
    "upgrade-insecure-requests",

    # Browser fetch metadata and client hints
    "sec-fetch-dest",
    "sec-fetch-mode",
    "sec-fetch-site",
    "sec-ch-ua",
    "sec-ch-ua-mobile",
    "sec-ch-ua-platform",

    # Credentials and auth challenges
    "authorization",
    "cookie",
    "proxy-authorization",
    "proxy-authenticate",
    "www-authenticate",

    # Proxy chain
    "x-forwarded-for",
    "x-forwarded-proto",
    "x-forwarded-host",
    "x-forwarded-port",
    "x-real-ip",
})

# Families of reserved names (accept-*, x-forwarded-*, ...)
RESERVED_PREFIXES = (
    "accept-",
    "x-forwarded-",
    "sec-fetch-",
    "sec-ch-ua",
)


class HeaderClass(Enum):
    """How a request header is treated when building the echo."""
    RESERVED = "reserved"
    CONTROL = "control"
    PASS_THROUGH = "pass_through"


def classify(name: str) -> HeaderClass:
    """
    Classify a header by name.

    Depends only on the lowercase name: never on value, position or
    how many times the header was repeated.
    """
    key = name.lower()

    if key in CONTROL_HEADERS:
        return HeaderClass.CONTROL
    if key in RESERVED_HEADERS or key.startswith(RESERVED_PREFIXES):
        return HeaderClass.RESERVED
    return HeaderClass.PASS_THROUGH


def is_pass_through(name: str) -> bool:
    return classify(name) is HeaderClass.PASS_THROUGH


def pass_through(fields: Iterable[Tuple[str, str]]) -> List[Tuple[str, str]]:
    """
    Select the headers that should be echoed.

    Args:
        fields: (name, value) pairs in request order (a Headers object
                works directly).

    Returns:
        The pass-through pairs, original order and casing, repeats kept.
    """
    return [(name, value) for name, value in fields if is_pass_through(name)]
