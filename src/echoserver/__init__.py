r"""
=============================================================================
ECHOSERVER
=============================================================================

A diagnostic HTTP server that answers every request with a mirror of
itself:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   curl -X PUT localhost:3001/anything \                             │
    │        -H 'X-Trace: 42' \                                           │
    │        -H 'internal.status-code: 418' \                             │
    │        -d 'teapot'                                                  │
    │                                                                      │
    │   HTTP/1.1 418 I'm a teapot                                         │
    │   X-Trace: 42                  ← request headers come back          │
    │   Content-Length: 6              (hop-by-hop and browser ones don't)│
    │                                                                      │
    │   teapot                       ← request body comes back            │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Packages:

    echoserver.http        HTTP/1.1 message parsing and serialization
    echoserver.echo        The echo rules: classification, overrides,
                           synthesis, verbose trace
    echoserver.core        Sockets, connections, worker threads
    echoserver.middleware  Access logging around the echo handler

=============================================================================
"""

__version__ = "1.0.0"

from .server import EchoServer
from .config import ServerConfig, ConfigError

__all__ = ["EchoServer", "ServerConfig", "ConfigError", "__version__"]
