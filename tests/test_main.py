"""
Tests for the command-line interface.
"""

from pathlib import Path
from unittest.mock import AsyncMock, patch

import yaml
from typer.testing import CliRunner

from shellrelay.main import cli

runner = CliRunner()


class TestConfigCommands:
    """init-config / validate-config."""

    def test_init_config_writes_defaults(self, tmp_path: Path) -> None:
        output = tmp_path / "config.yaml"

        result = runner.invoke(cli, ["init-config", "--output", str(output)])

        assert result.exit_code == 0
        data = yaml.safe_load(output.read_text())
        assert data["session"]["term_type"] == "xterm-256color"
        assert "config_file_path" not in data

    def test_validate_config(self, tmp_path: Path) -> None:
        output = tmp_path / "config.yaml"
        runner.invoke(cli, ["init-config", "--output", str(output)])

        result = runner.invoke(cli, ["validate-config", str(output)])

        assert result.exit_code == 0
        assert "is valid" in result.output
        assert "xterm-256color 80x24" in result.output

    def test_validate_invalid_config(self, tmp_path: Path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(yaml.safe_dump({"server": {"port": 0}}))

        result = runner.invoke(cli, ["validate-config", str(path)])

        assert result.exit_code == 1

    def test_init_config_unsupported_format(self, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["init-config", "--output", str(tmp_path / "c.toml"),
                                     "--format", "toml"])
        assert result.exit_code == 1


class TestServeCommand:
    """serve wiring, with the server itself stubbed out."""

    def test_serve_applies_overrides(self) -> None:
        with patch('shellrelay.main.run_application', new=AsyncMock()) as run, \
                patch('shellrelay.main.setup_logging'):
            result = runner.invoke(cli, ["serve", "--host", "0.0.0.0", "--port", "9001", "--debug"])

        assert result.exit_code == 0
        config = run.await_args.args[0]
        assert config.server.host == "0.0.0.0"
        assert config.server.port == 9001
        assert config.debug is True
        assert config.logging.level == "DEBUG"

    def test_serve_missing_config_file(self, tmp_path: Path) -> None:
        result = runner.invoke(cli, ["serve", "--config", str(tmp_path / "absent.yaml")])
        assert result.exit_code == 1


class TestHealthCheckCommand:
    def test_unreachable_server(self) -> None:
        result = runner.invoke(cli, ["health-check", "--host", "127.0.0.1", "--port", "1",
                                     "--timeout", "2"])

        assert result.exit_code == 1
        assert "Health check failed" in result.output
