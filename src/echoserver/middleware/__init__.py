"""
Middleware wrapped around the echo handler.

    pipeline = MiddlewarePipeline().use(LoggingMiddleware(log_format="json"))
    handler = pipeline.wrap(EchoHandler())
"""

from .base import Middleware, MiddlewarePipeline, NextHandler
from .logging import LoggingMiddleware, RequestLog

__all__ = [
    "Middleware",
    "MiddlewarePipeline",
    "NextHandler",
    "LoggingMiddleware",
    "RequestLog",
]
