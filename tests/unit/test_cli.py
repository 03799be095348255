"""
Unit tests for the command-line entry point.
"""

import pytest

from echoserver import __main__ as cli
from echoserver.config import ConfigError


@pytest.fixture
def clean_env(monkeypatch, tmp_path):
    """No ECHO_* variables and no Settings.toml in the working directory."""
    for name in ("ECHO_HOST", "ECHO_PORT", "ECHO_VERBOSE", "ECHO_WORKERS", "ECHO_TIMEOUT", "ECHO_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.chdir(tmp_path)
    return tmp_path


def load(argv):
    return cli.load_config(cli.build_parser().parse_args(argv))


class TestArguments:
    """Tests for argument parsing and precedence."""

    def test_defaults(self, clean_env):
        config = load([])

        assert config.host == "127.0.0.1"
        assert config.port == 3001
        assert config.verbose is False

    def test_short_flags(self, clean_env):
        config = load(["-n", "::1", "-p", "8080", "-v", "-w", "3", "-l", "debug"])

        assert config.host == "::1"
        assert config.port == 8080
        assert config.verbose is True
        assert config.min_workers == 3
        assert config.log_level == "DEBUG"

    def test_cli_beats_environment_and_file(self, clean_env, monkeypatch):
        (clean_env / "Settings.toml").write_text('host = "0.0.0.0"\nport = 7000\n')
        monkeypatch.setenv("ECHO_PORT", "7500")

        config = load(["--port", "8000"])

        assert config.port == 8000
        assert config.host == "0.0.0.0"

    def test_omitted_flag_falls_through_to_file(self, clean_env):
        (clean_env / "Settings.toml").write_text("port = 7000\n")

        assert load([]).port == 7000

    def test_explicit_missing_config_file(self, clean_env):
        with pytest.raises(ConfigError):
            load(["--config", "missing.toml"])


class TestMain:
    """Tests for main() exit codes."""

    @pytest.mark.parametrize("argv,message", [
        (["--hostname", "invalid-hostname"], "Error: Invalid hostname 'invalid-hostname'. Must be a valid IP address."),
        (["--hostname", "999.999.999.999"], "Error: Invalid hostname '999.999.999.999'."),
        (["--port", "0"], "Error: Port cannot be 0. Must be between 1 and 65535."),
        (["--port", "65536"], "Error: Invalid port '65536'. Must be a number between 1 and 65535."),
        (["--port", "invalid"], "Error: Invalid port 'invalid'."),
        (["--port=-1"], "Error: Invalid port '-1'."),
    ])
    def test_invalid_address_exits_1(self, clean_env, capsys, argv, message):
        assert cli.main(argv) == 1

        assert message in capsys.readouterr().err

    def test_bad_settings_file_exits_1(self, clean_env, capsys):
        (clean_env / "Settings.toml").write_text("port = = 1\n")

        assert cli.main([]) == 1
        assert capsys.readouterr().err.startswith("Error: ")

    def test_address_in_use_exits_1(self, clean_env, capsys):
        import socket

        with socket.socket(socket.AF_INET, socket.SOCK_STREAM) as holder:
            holder.bind(("127.0.0.1", 0))
            holder.listen(1)
            port = holder.getsockname()[1]

            assert cli.main(["--port", str(port)]) == 1

        assert "could not bind" in capsys.readouterr().err

    def test_version(self, capsys):
        with pytest.raises(SystemExit) as exc_info:
            cli.main(["--version"])

        assert exc_info.value.code == 0
        assert "echoserver" in capsys.readouterr().out
