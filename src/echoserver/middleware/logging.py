"""
=============================================================================
ACCESS LOGGING MIDDLEWARE
=============================================================================

One log line per request on the "echoserver.access" logger:

    text:  127.0.0.1 - - [17/Oct/2026:10:01:02 +0000] "POST /foo?x=1" 404 5 0.41ms
    json:  {"request_id": "3f2a9c1e", "method": "POST", "path": "/foo", ...}

The status logged is the EFFECTIVE status, after internal.status-code has
been applied, so the log shows what the client actually received.

The request ID lives in the log line only. The echoed response carries
exactly the headers the client sent, so no X-Request-ID is added.

To route access logs elsewhere:

    logging.getLogger("echoserver.access").addHandler(file_handler)

=============================================================================
"""

import time
import json
import uuid
import logging
from dataclasses import dataclass, asdict

from .base import Middleware, NextHandler
from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger("echoserver.access")


@dataclass
class RequestLog:
    """Structured access log entry."""

    request_id: str
    method: str
    path: str
    query: str
    client_ip: str
    user_agent: str
    status_code: int
    content_length: int
    duration_ms: float
    timestamp: str

    def to_dict(self) -> dict:
        entry = asdict(self)
        entry["duration_ms"] = round(self.duration_ms, 2)
        return entry

    def to_text(self) -> str:
        """Apache-style line."""
        target = f"{self.path}?{self.query}" if self.query else self.path
        return (
            f'{self.client_ip} - - [{self.timestamp}] '
            f'"{self.method} {target}" {self.status_code} '
            f'{self.content_length} {self.duration_ms:.2f}ms'
        )


class LoggingMiddleware(Middleware):
    """
    Times each request and logs it once the response is built.

    Should be first in the pipeline so its timing covers everything after it.
    """

    def __init__(self, log_format: str = "text", log_level: int = logging.INFO):
        """
        Args:
            log_format: "text" (Apache-like) or "json".
            log_level: Level access lines are logged at.
        """
        self.log_format = log_format
        self.log_level = log_level

    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        request_id = str(uuid.uuid4())[:8]
        start_time = time.perf_counter()

        try:
            response = next(request)
        except Exception as e:
            duration_ms = (time.perf_counter() - start_time) * 1000
            logger.error(
                f"Request failed: {request.method} {request.target} "
                f"- {type(e).__name__}: {e} ({duration_ms:.2f}ms)"
            )
            raise

        duration_ms = (time.perf_counter() - start_time) * 1000

        log_entry = RequestLog(
            request_id=request_id,
            method=request.method,
            path=request.path,
            query=request.query_string,
            client_ip=request.client_address[0] or "-",
            user_agent=request.user_agent or "-",
            status_code=int(response.status),
            content_length=len(response.body),
            duration_ms=duration_ms,
            timestamp=time.strftime("%d/%b/%Y:%H:%M:%S %z"),
        )

        if self.log_format == "json":
            logger.log(self.log_level, json.dumps(log_entry.to_dict()))
        else:
            logger.log(self.log_level, log_entry.to_text())

        return response
