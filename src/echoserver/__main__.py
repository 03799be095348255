"""
=============================================================================
ECHO SERVER CLI ENTRY POINT
=============================================================================

    # Defaults (127.0.0.1:3001, or whatever Settings.toml says)
    echoserver

    # Custom bind address
    echoserver --hostname 0.0.0.0 --port 8080
    echoserver -n ::1 -p 8080

    # Print every request and response
    echoserver --verbose

    # Same thing as a module
    python -m echoserver -v

=============================================================================
PRECEDENCE
=============================================================================

    command line  >  ECHO_* environment  >  settings file  >  defaults

An option left off the command line falls through to the next source,
so a port in Settings.toml is used unless --port is given.

=============================================================================
EXIT CODES
=============================================================================

    0   clean shutdown (Ctrl+C, SIGTERM)
    1   invalid host or port, bad settings file, or address already in use

=============================================================================
"""

import argparse
import dataclasses
import sys
from pathlib import Path
from typing import Optional, Sequence

from . import __version__
from .config import DEFAULT_HOST, DEFAULT_PORT, DEFAULT_SETTINGS_FILE, ConfigError, ServerConfig
from .echo.address import AddressError, validate_port
from .server import EchoServer


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="echoserver",
        description="HTTP echo server: every request is mirrored back as its response",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Control headers:
  internal.status-code: 404        respond with status 404
  internal.response-body: hello    respond with body "hello"

Examples:
  echoserver                          # 127.0.0.1:3001
  echoserver -n 0.0.0.0 -p 8080       # listen on all interfaces
  echoserver -v                       # trace every exchange
        """,
    )

    # ─────────────────────────────────────────────────────────────────────
    # BIND ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    # Defaults are None so an omitted flag doesn't mask the settings file
    parser.add_argument(
        "--hostname", "-n",
        default=None,
        help=f"IP address to bind to (default: {DEFAULT_HOST})",
    )

    parser.add_argument(
        "--port", "-p",
        default=None,
        help=f"Port to listen on (default: {DEFAULT_PORT})",
    )

    # ─────────────────────────────────────────────────────────────────────
    # BEHAVIOR ARGUMENTS
    # ─────────────────────────────────────────────────────────────────────

    parser.add_argument(
        "--verbose", "-v",
        action="store_true",
        default=None,
        help="Print every request and response",
    )

    parser.add_argument(
        "--config", "-c",
        default=None,
        help=f"TOML settings file (default: {DEFAULT_SETTINGS_FILE}, optional)",
    )

    parser.add_argument(
        "--workers", "-w",
        type=int,
        default=None,
        help="Number of worker threads (default: CPU count, max will be 2x this)",
    )

    parser.add_argument(
        "--log-level", "-l",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        type=str.upper,
        default=None,
        help="Logging level (default: INFO)",
    )

    parser.add_argument(
        "--version",
        action="version",
        version=f"%(prog)s {__version__}",
    )

    return parser


def load_config(args: argparse.Namespace) -> ServerConfig:
    """
    Merge every configuration source for the parsed arguments.

    Raises:
        AddressError: Bad host or port from any source.
        ConfigError: Unreadable or invalid settings file.
    """
    if args.config is not None and not Path(args.config).is_file():
        raise ConfigError(f"Settings file not found: {args.config}")

    config = ServerConfig.load(args.config)

    changes: dict = {}
    if args.hostname is not None:
        changes["host"] = args.hostname
    if args.port is not None:
        changes["port"] = validate_port(args.port)
    if args.verbose:
        changes["verbose"] = True
    if args.workers is not None:
        changes["min_workers"] = args.workers
        changes["max_workers"] = args.workers * 2
    if args.log_level is not None:
        changes["log_level"] = args.log_level

    config = dataclasses.replace(config, **changes)
    config.validate()
    return config


def main(argv: Optional[Sequence[str]] = None) -> int:
    """Run the echo server. Returns the process exit code."""
    args = build_parser().parse_args(argv)

    try:
        config = load_config(args)
        server = EchoServer(config)
        server.bind()
    except (AddressError, ConfigError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1
    except OSError as e:
        print(f"Error: could not bind to {config.bind_address}: {e}", file=sys.stderr)
        return 1

    server.run()
    return 0


if __name__ == "__main__":
    sys.exit(main())
