"""
=============================================================================
SERVER CONFIGURATION
=============================================================================

Centralized configuration for the echo server.

=============================================================================
CONFIGURATION SOURCES
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                    CONFIGURATION HIERARCHY                          │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   Priority (highest to lowest):                                     │
    │                                                                      │
    │   1. Command-line arguments                                         │
    │      └── echoserver --port 8080                                     │
    │                                                                      │
    │   2. Environment variables                                          │
    │      └── ECHO_PORT=8080 echoserver                                  │
    │                                                                      │
    │   3. Settings file (TOML)                                           │
    │      └── Settings.toml:   host = "0.0.0.0"                          │
    │                           port = 8080                               │
    │                                                                      │
    │   4. Defaults in ServerConfig                                       │
    │      └── 127.0.0.1:3001                                             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

A missing settings file is normal (defaults apply, with a warning). A
settings file that exists but can't be read or parsed is a ConfigError:
silently ignoring a typo'd config would bind somewhere unexpected.

=============================================================================
"""

import dataclasses
import logging
import os
import tomllib
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Mapping, Optional, Union

from .echo.address import BindAddress, validate_port


logger = logging.getLogger(__name__)

DEFAULT_HOST = "127.0.0.1"
DEFAULT_PORT = 3001
DEFAULT_SETTINGS_FILE = "Settings.toml"

_TRUE_VALUES = {"1", "true", "yes", "on"}


class ConfigError(ValueError):
    """Raised when a settings file or setting value is unusable."""


def _default_workers() -> int:
    return os.cpu_count() or 4


@dataclass
class ServerConfig:
    """
    Configuration for the echo server.

    =========================================================================
    CONFIGURATION GROUPS
    =========================================================================

    BIND            host, port
    ECHO            verbose
    NETWORK         backlog, buffer_size, timeout
    HTTP            keep_alive, keep_alive_timeout, max_request_size,
                    max_header_size
    THREADING       min_workers, max_workers, queue_size
    LOGGING         log_level, log_format
    IDENTITY        server_name

    =========================================================================
    """

    # ─────────────────────────────────────────────────────────────────────
    # BIND
    # ─────────────────────────────────────────────────────────────────────

    host: str = DEFAULT_HOST
    """IP literal to bind to. "0.0.0.0" or "::" to listen everywhere."""

    port: int = DEFAULT_PORT

    # ─────────────────────────────────────────────────────────────────────
    # ECHO
    # ─────────────────────────────────────────────────────────────────────

    verbose: bool = False
    """Print a full trace of every request and response."""

    # ─────────────────────────────────────────────────────────────────────
    # NETWORK
    # ─────────────────────────────────────────────────────────────────────

    backlog: int = 128
    buffer_size: int = 8192
    timeout: Optional[float] = 30.0

    # ─────────────────────────────────────────────────────────────────────
    # HTTP
    # ─────────────────────────────────────────────────────────────────────

    keep_alive: bool = True
    keep_alive_timeout: float = 5.0
    max_request_size: int = 10 * 1024 * 1024  # 10 MB
    max_header_size: int = 64 * 1024

    # ─────────────────────────────────────────────────────────────────────
    # THREAD POOL
    # ─────────────────────────────────────────────────────────────────────

    min_workers: int = dataclasses.field(default_factory=_default_workers)
    """Worker threads started up front. Defaults to the CPU count."""

    max_workers: int = dataclasses.field(default_factory=lambda: _default_workers() * 2)

    queue_size: int = 100
    """Connections waiting for a worker. Beyond this, clients get 503."""

    # ─────────────────────────────────────────────────────────────────────
    # LOGGING
    # ─────────────────────────────────────────────────────────────────────

    log_level: str = "INFO"
    log_format: str = "text"
    """Access log format: 'text' (Apache-like) or 'json'."""

    server_name: str = "EchoServer/1.0"

    # =========================================================================
    # LOADERS
    # =========================================================================

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """
        Create configuration from environment variables.

        ECHO_HOST       Bind host (default: 127.0.0.1)
        ECHO_PORT       Bind port (default: 3001)
        ECHO_VERBOSE    1/true/yes/on enables the request trace
        ECHO_WORKERS    Worker threads (max is twice this)
        ECHO_TIMEOUT    Socket timeout in seconds
        ECHO_LOG_LEVEL  Logging level (default: INFO)
        """
        return cls().apply_env(environ)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "ServerConfig":
        """
        Create configuration from a TOML settings file.

        Recognized keys: host, port, verbose, workers, log_level.

        Raises:
            ConfigError: If the file exists but is unreadable or invalid.
        """
        return cls().apply_file(path)

    @classmethod
    def load(
        cls,
        path: Union[str, Path, None] = None,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "ServerConfig":
        """Defaults, then the settings file, then the environment."""
        config = cls()
        config = config.apply_file(path or DEFAULT_SETTINGS_FILE)
        return config.apply_env(environ)

    def apply_file(self, path: Union[str, Path]) -> "ServerConfig":
        """Return a copy with the settings file's values applied."""
        path = Path(path)
        if not path.is_file():
            logger.warning(f"Could not load {path} (not found). Using default values.")
            return self

        try:
            with path.open("rb") as f:
                settings = tomllib.load(f)
        except (OSError, tomllib.TOMLDecodeError) as e:
            raise ConfigError(f"Could not read {path}: {e}") from e

        return self._apply(settings, source=str(path))

    def apply_env(self, environ: Optional[Mapping[str, str]] = None) -> "ServerConfig":
        """Return a copy with ECHO_* environment variables applied."""
        environ = os.environ if environ is None else environ

        settings: dict = {}
        if "ECHO_HOST" in environ:
            settings["host"] = environ["ECHO_HOST"]
        if "ECHO_PORT" in environ:
            settings["port"] = environ["ECHO_PORT"]
        if "ECHO_VERBOSE" in environ:
            settings["verbose"] = environ["ECHO_VERBOSE"].strip().lower() in _TRUE_VALUES
        if "ECHO_WORKERS" in environ:
            settings["workers"] = environ["ECHO_WORKERS"]
        if "ECHO_TIMEOUT" in environ:
            settings["timeout"] = environ["ECHO_TIMEOUT"]
        if "ECHO_LOG_LEVEL" in environ:
            settings["log_level"] = environ["ECHO_LOG_LEVEL"]

        return self._apply(settings, source="environment")

    def _apply(self, settings: Mapping[str, Any], source: str) -> "ServerConfig":
        """Validate types of raw settings and return an updated copy."""
        changes: dict = {}

        if "host" in settings:
            if not isinstance(settings["host"], str):
                raise ConfigError(f"{source}: host must be a string")
            changes["host"] = settings["host"]

        if "port" in settings:
            # Port syntax errors are address errors: the CLI reports them
            # the same way as a bad --port
            changes["port"] = validate_port(str(settings["port"]))

        if "verbose" in settings:
            if not isinstance(settings["verbose"], bool):
                raise ConfigError(f"{source}: verbose must be true or false")
            changes["verbose"] = settings["verbose"]

        if "workers" in settings:
            workers = _to_int(settings["workers"], "workers", source)
            changes["min_workers"] = workers
            changes["max_workers"] = workers * 2

        if "timeout" in settings:
            try:
                changes["timeout"] = float(settings["timeout"])
            except (TypeError, ValueError):
                raise ConfigError(f"{source}: timeout must be a number") from None

        if "log_level" in settings:
            changes["log_level"] = str(settings["log_level"]).upper()

        return dataclasses.replace(self, **changes)

    # =========================================================================
    # VALIDATION
    # =========================================================================

    @property
    def bind_address(self) -> BindAddress:
        """The validated bind address (raises InvalidHost / InvalidPort)."""
        return BindAddress.parse(self.host, self.port)

    def validate(self) -> None:
        """
        Validate configuration values. Fail fast, at startup.

        Raises:
            InvalidHost, InvalidPort: Bad bind address.
            ConfigError: Any other bad value.
        """
        self.bind_address

        if self.min_workers < 1:
            raise ConfigError("min_workers must be >= 1")

        if self.max_workers < self.min_workers:
            raise ConfigError("max_workers must be >= min_workers")

        if self.queue_size < 1:
            raise ConfigError("queue_size must be >= 1")

        if self.buffer_size < 1024:
            raise ConfigError("buffer_size must be >= 1024")

        if self.timeout is not None and self.timeout <= 0:
            raise ConfigError("timeout must be > 0")

        if self.log_format not in ("text", "json"):
            raise ConfigError(f"log_format must be 'text' or 'json', not {self.log_format!r}")


def _to_int(value: Any, name: str, source: str) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"{source}: {name} must be an integer")
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{source}: {name} must be an integer") from None
