"""
=============================================================================
MIDDLEWARE PIPELINE
=============================================================================

Wraps the echo handler in cross-cutting behavior (access logging today)
without the handler knowing about it.

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   request ──►  MW1  ──►  MW2  ──►  EchoHandler                      │
    │                 │         │            │                            │
    │   response ◄── MW1  ◄──  MW2  ◄────────┘                            │
    │                                                                      │
    │   First added = outermost: it sees the request first and the        │
    │   response last.                                                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A middleware here observes; it must not add, drop or rewrite response
headers. Whatever the client sent is what the client gets back.

=============================================================================
"""

from abc import ABC, abstractmethod
from functools import partial, reduce
from typing import Callable, List
import logging

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse


logger = logging.getLogger(__name__)


NextHandler = Callable[[HTTPRequest], HTTPResponse]


class Middleware(ABC):
    """
    Base class for middleware.

        class Timing(Middleware):
            def __call__(self, request, next):
                start = time.perf_counter()
                response = next(request)
                record(time.perf_counter() - start)
                return response
    """

    @abstractmethod
    def __call__(self, request: HTTPRequest, next: NextHandler) -> HTTPResponse:
        """Process the request, calling next(request) to continue the chain."""

    @property
    def name(self) -> str:
        return self.__class__.__name__


class MiddlewarePipeline:
    """Ordered list of middleware, turned into a single handler by wrap()."""

    def __init__(self):
        self._middleware: List[Middleware] = []

    def add(self, middleware: Middleware) -> "MiddlewarePipeline":
        self._middleware.append(middleware)
        logger.debug(f"Middleware {middleware.name} added at depth {len(self._middleware)}")
        return self

    def use(self, *middleware: Middleware) -> "MiddlewarePipeline":
        for mw in middleware:
            self.add(mw)
        return self

    def wrap(self, handler: NextHandler) -> NextHandler:
        """
        Build the chain around `handler`.

        Folds from the innermost layer out, so [MW1, MW2] becomes
        MW1 → MW2 → handler.
        """
        return reduce(
            lambda inner, middleware: partial(middleware, next=inner),
            reversed(self._middleware),
            handler,
        )

    def __len__(self) -> int:
        return len(self._middleware)

    def __iter__(self):
        return iter(self._middleware)
