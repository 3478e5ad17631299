"""
Tests for the command line interface.
"""

import json

import pytest
from click.testing import CliRunner

from mcp_tenant_hub import __version__
from mcp_tenant_hub.cli import main as cli_main
from mcp_tenant_hub.core.assembler import assemble
from mcp_tenant_hub.core.models import TenantBinding
from mcp_tenant_hub.hub.config_writer import ConfigWriter
from mcp_tenant_hub.utils.config import Settings


@pytest.fixture
def cli_runner():
    return CliRunner()


@pytest.fixture
def use_settings(monkeypatch):
    """Route the CLI to the given settings and keep global logging untouched."""
    def _use(settings):
        monkeypatch.setattr(cli_main, "load_config", lambda config_files=None: settings)
    monkeypatch.setattr(cli_main, "setup_logging", lambda **kwargs: None)
    return _use


class TestBasicCommands:
    """Test basic CLI commands."""

    def test_help(self, cli_runner):
        """Test main help lists the commands."""
        result = cli_runner.invoke(cli_main.cli, ["--help"])

        assert result.exit_code == 0
        for command in ("run", "init-db", "sync", "show-config"):
            assert command in result.output

    def test_version(self, cli_runner):
        """Test --version prints the package version."""
        result = cli_runner.invoke(cli_main.cli, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestShowConfig:
    """Test displaying the generated configuration."""

    @pytest.fixture
    def written(self, settings, sample_definitions):
        bindings = [
            TenantBinding(user_id="U1", mcp_server_id="figma-developer-mcp", config_vars={"key": "K1"}),
            TenantBinding(user_id="U2", mcp_server_id="github-mcp", config_vars={"token": "T2"}),
        ]
        document = assemble(sample_definitions, bindings)
        ConfigWriter().materialize(document, settings.get_config_file_path())
        return document

    def test_json_output(self, cli_runner, use_settings, settings, written):
        """Test JSON output is the file content."""
        use_settings(settings)

        result = cli_runner.invoke(cli_main.cli, ["show-config", "-o", "json"])

        assert result.exit_code == 0
        assert json.loads(result.output) == written.to_file_dict()

    def test_table_output(self, cli_runner, use_settings, settings, written):
        """Test the table lists every server key."""
        use_settings(settings)

        result = cli_runner.invoke(cli_main.cli, ["show-config"])

        assert result.exit_code == 0
        assert "MCP-Hub servers" in result.output
        assert "figma-developer-mcp-U1" in result.output
        assert "github-mcp-U2" in result.output

    def test_missing_file(self, cli_runner, use_settings, tmp_path):
        """Test a missing file is reported, not an error."""
        use_settings(Settings(config_file_path=str(tmp_path / "absent.json")))

        result = cli_runner.invoke(cli_main.cli, ["show-config"])

        assert result.exit_code == 0
        assert "No servers" in result.output


class TestDatabaseCommands:
    """Test commands that need the database."""

    @pytest.mark.parametrize("command", ["init-db", "sync"])
    def test_without_database_url(self, cli_runner, use_settings, command):
        """Test database commands fail cleanly without DATABASE_URL."""
        use_settings(Settings(database_url=None))

        result = cli_runner.invoke(cli_main.cli, [command])

        assert result.exit_code == 1
