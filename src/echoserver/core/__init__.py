"""
=============================================================================
CORE SERVER COMPONENTS
=============================================================================

The networking plumbing under the echo engine:

    ┌─────────────────────────────────────────────────────────────────────┐
    │  SOCKET SERVER    bind / listen / accept, signal-driven shutdown    │
    └─────────────────────────────────────────────────────────────────────┘
                                    │  one Connection per client
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  THREAD POOL      bounded queue, one worker per live connection     │
    └─────────────────────────────────────────────────────────────────────┘
                                    │
                                    ▼
    ┌─────────────────────────────────────────────────────────────────────┐
    │  CONNECTION       buffered reads, request framing, 100-continue,    │
    │                   keep-alive and pipelining                         │
    └─────────────────────────────────────────────────────────────────────┘

=============================================================================
"""

from .socket_server import SocketServer
from .connection import Connection, ConnectionState, Framing
from .thread_pool import ThreadPool

__all__ = [
    "SocketServer",
    "Connection",
    "ConnectionState",
    "Framing",
    "ThreadPool",
]
