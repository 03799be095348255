"""
=============================================================================
BIND ADDRESS VALIDATION
=============================================================================

Validates the host and port the server listens on. Runs once at startup;
any failure here is fatal (the CLI prints it and exits with status 1).

=============================================================================
RULES
=============================================================================

    HOST  must be an IP literal, IPv4 or IPv6.

          127.0.0.1        ✓     invalid-hostname    ✗  (no DNS lookups)
          0.0.0.0          ✓     999.999.999.999     ✗
          ::1              ✓     localhost           ✗

    PORT  must be plain decimal digits in 1-65535.

          3000, 8080, 65535   ✓
          0                   ✗  "port cannot be zero"
          65536               ✗  out of the 16-bit range
          -1, +80, " 80"      ✗  not an unsigned decimal
          invalid             ✗

Hostnames are rejected on purpose: binding needs a concrete interface,
and resolving a name could silently pick an address the operator didn't
expect.

=============================================================================
"""

import ipaddress
from dataclasses import dataclass
from typing import Union


IPAddress = Union[ipaddress.IPv4Address, ipaddress.IPv6Address]

MAX_PORT = 65535


class AddressError(ValueError):
    """Base class for bind address errors. `value` is the rejected input."""

    def __init__(self, message: str, value: str):
        super().__init__(message)
        self.value = value


class InvalidHost(AddressError):
    """The host is not a syntactically valid IPv4 or IPv6 literal."""


class InvalidPort(AddressError):
    """The port is not a decimal integer in 1-65535."""


def validate_host(value: str) -> IPAddress:
    """
    Parse a bind host.

    Scoped IPv6 literals ("fe80::1%eth0") are rejected even though
    ipaddress accepts the zone suffix.

    Args:
        value: Candidate IP literal.

    Returns:
        The parsed IPv4Address or IPv6Address.

    Raises:
        InvalidHost: If `value` is not an IP literal.
    """
    message = f"Invalid hostname '{value}'. Must be a valid IP address."
    if "%" in value:
        raise InvalidHost(message, value)
    try:
        return ipaddress.ip_address(value)
    except ValueError:
        raise InvalidHost(message, value) from None


def validate_port(value: str) -> int:
    """
    Parse a bind port.

    Args:
        value: Candidate port as typed by the operator.

    Returns:
        The port number.

    Raises:
        InvalidPort: If `value` is not an unsigned decimal in 1-65535.
    """
    if not (value.isascii() and value.isdigit()):
        raise InvalidPort(
            f"Invalid port '{value}'. Must be a number between 1 and {MAX_PORT}.", value
        )

    port = int(value)
    if port > MAX_PORT:
        raise InvalidPort(
            f"Invalid port '{value}'. Must be a number between 1 and {MAX_PORT}.", value
        )
    if port == 0:
        raise InvalidPort(
            f"Port cannot be 0. Must be between 1 and {MAX_PORT}.", value
        )
    return port


@dataclass(frozen=True)
class BindAddress:
    """
    A validated (ip, port) pair.

    Built once at startup and used once, to open the listening socket.
    """

    ip: IPAddress
    port: int

    @classmethod
    def parse(cls, host: str, port: Union[str, int]) -> "BindAddress":
        """Validate both parts; raises InvalidHost or InvalidPort."""
        return cls(ip=validate_host(host), port=validate_port(str(port)))

    @property
    def host(self) -> str:
        return str(self.ip)

    @property
    def is_ipv6(self) -> bool:
        return self.ip.version == 6

    @property
    def url(self) -> str:
        """Base URL for banners and logs; IPv6 literals get brackets."""
        if self.is_ipv6:
            return f"http://[{self.ip}]:{self.port}"
        return f"http://{self.ip}:{self.port}"

    def __str__(self) -> str:
        if self.is_ipv6:
            return f"[{self.ip}]:{self.port}"
        return f"{self.ip}:{self.port}"
