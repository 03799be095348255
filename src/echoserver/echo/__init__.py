"""
=============================================================================
ECHO ENGINE
=============================================================================

The request-to-response transformation, free of any socket code:

    address.py      Bind host/port validation (startup only)
    headers.py      Reserved / control / pass-through classification
    overrides.py    internal.status-code and internal.response-body
    synthesizer.py  Builds the HTTPResponse
    observer.py     Verbose request/response trace
    handler.py      Ties the steps together per request

=============================================================================
"""

from .address import (
    AddressError,
    BindAddress,
    InvalidHost,
    InvalidPort,
    validate_host,
    validate_port,
)
from .headers import (
    CONTROL_HEADERS,
    RESERVED_HEADERS,
    RESERVED_PREFIXES,
    RESPONSE_BODY_HEADER,
    STATUS_CODE_HEADER,
    HeaderClass,
    classify,
    pass_through,
)
from .overrides import Resolution, resolve
from .synthesizer import synthesize
from .observer import VerboseObserver
from .handler import EchoHandler, echo

__all__ = [
    # Address validation
    "AddressError",
    "BindAddress",
    "InvalidHost",
    "InvalidPort",
    "validate_host",
    "validate_port",

    # Classification
    "CONTROL_HEADERS",
    "RESERVED_HEADERS",
    "RESERVED_PREFIXES",
    "RESPONSE_BODY_HEADER",
    "STATUS_CODE_HEADER",
    "HeaderClass",
    "classify",
    "pass_through",

    # Resolution and synthesis
    "Resolution",
    "resolve",
    "synthesize",

    # Pipeline
    "VerboseObserver",
    "EchoHandler",
    "echo",
]
