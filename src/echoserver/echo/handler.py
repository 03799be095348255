"""
=============================================================================
ECHO HANDLER
=============================================================================

The per-request pipeline. Every method and every path lands here:

    HTTPRequest
        │
        ├──► classify      pass_through(request.headers)
        │                     reserved + control headers dropped
        │
        ├──► resolve       resolve(request.headers, request.body)
        │                     → effective status, effective body
        │
        ├──► synthesize    synthesize(headers, status, body)
        │                     → HTTPResponse
        │
        └──► observe       observer(request, response)   (verbose only)
                              │
                              ▼
                        HTTPResponse

The handler keeps no state between requests, so one instance is shared
by every worker thread.

=============================================================================
"""

from typing import Callable, Optional

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse
from .headers import pass_through
from .overrides import resolve
from .synthesizer import synthesize


Observer = Callable[[HTTPRequest, HTTPResponse], None]


class EchoHandler:
    """Mirrors a request back as its response."""

    def __init__(self, observer: Optional[Observer] = None):
        """
        Args:
            observer: Called with (request, response) after synthesis.
                      Pass a VerboseObserver in verbose mode, None otherwise.
        """
        self.observer = observer

    def __call__(self, request: HTTPRequest) -> HTTPResponse:
        headers = pass_through(request.headers)
        resolution = resolve(request.headers, request.body)
        response = synthesize(headers, resolution.status, resolution.body)

        if self.observer is not None:
            self.observer(request, response)

        return response

    handle = __call__


def echo(request: HTTPRequest) -> HTTPResponse:
    """Echo one request without observation."""
    return EchoHandler()(request)
