"""
=============================================================================
VERBOSE OBSERVER
=============================================================================

Prints a human-readable trace of every exchange when the server runs
with --verbose:

    📥 INCOMING REQUEST:
       POST /foo?x=1
       Headers:
         Host: 127.0.0.1:3001
         X-Test: a
         internal.status-code: 404
       Body: hello

    📤 OUTGOING RESPONSE:
       Status: 404
       Headers:
         X-Test: a
       Body: hello

The request side lists EVERY header (reserved and control ones too),
because the point of the trace is to show exactly what arrived. The
response side lists only the headers actually emitted.

=============================================================================
BEST-EFFORT OUTPUT
=============================================================================

The trace is built as one string and written with a single write() call,
so traces from concurrent workers don't interleave line by line. A broken
stream (closed pipe, detached terminal) is logged and otherwise ignored:
diagnostics must never fail a request.

=============================================================================
"""

import logging
import sys
from typing import Optional, TextIO

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("echoserver.verbose")


class VerboseObserver:
    """Renders request/response traces to a text stream."""

    def __init__(self, stream: Optional[TextIO] = None):
        """
        Args:
            stream: Where traces go. Defaults to sys.stdout, looked up at
                    write time so test capture and redirection work.
        """
        self._stream = stream

    @property
    def stream(self) -> TextIO:
        return self._stream if self._stream is not None else sys.stdout

    def render(self, request: HTTPRequest, response: HTTPResponse) -> str:
        """Build the trace text for one exchange. Reads, never mutates."""
        lines = ["", "📥 INCOMING REQUEST:", f"   {request.method} {request.target}"]

        if request.headers:
            lines.append("   Headers:")
            for name, value in request.headers:
                lines.append(f"     {name}: {value}")
        else:
            lines.append("   No headers")

        if request.body:
            lines.append(f"   Body: {request.body.decode('utf-8', errors='replace')}")

        lines.extend(["", "📤 OUTGOING RESPONSE:", f"   Status: {int(response.status)}"])

        lines.append("   Headers:")
        for name, value in response.headers:
            lines.append(f"     {name}: {value}")

        lines.append(f"   Body: {response.body.decode('utf-8', errors='replace')}")
        lines.append("")

        return "\n".join(lines) + "\n"

    def observe(self, request: HTTPRequest, response: HTTPResponse) -> None:
        """Write the trace for one exchange."""
        trace = self.render(request, response)
        try:
            self.stream.write(trace)
            self.stream.flush()
        except (OSError, ValueError) as e:
            # ValueError: write to a closed file
            logger.warning(f"Could not write verbose trace: {e}")

    __call__ = observe
