"""Tests for domainlink CLI."""

from __future__ import annotations

import asyncio
import json
from datetime import UTC, datetime

from click.testing import CliRunner

from domainlink import __version__
from domainlink.cli import main
from domainlink.domains.planner import DnsRecord, RecordType
from domainlink.domains.storage import DomainRecord, SQLiteDomainRecordStore


def _env(tmp_path, **extra) -> dict[str, str]:
    env = {"DOMAINLINK_DATABASE_URL": f"sqlite:///{tmp_path / 'cli.db'}"}
    env.update(extra)
    return env


def _seed(tmp_path, **kwargs) -> None:
    async def seed() -> None:
        store = SQLiteDomainRecordStore(str(tmp_path / "cli.db"))
        await store.initialize()
        now = datetime(2024, 1, 15, 10, 0, 0, tzinfo=UTC)
        await store.upsert(
            DomainRecord(
                project_id="proj1",
                project_name="app-x1",
                deployment_url="app-x1.deployer.app",
                custom_domain="example.com",
                required_dns=[DnsRecord(RecordType.A, "@", "76.76.21.21")],
                created_at=now,
                updated_at=now,
                **kwargs,
            )
        )
        await store.close()

    asyncio.run(seed())


class TestCLIBasics:
    """Basic CLI tests."""

    def test_main_with_help(self):
        """Test --help shows help message."""
        runner = CliRunner()
        result = runner.invoke(main, ["--help"])

        assert result.exit_code == 0
        assert "Attach and verify custom domains" in result.output
        assert "domain" in result.output
        assert "serve" in result.output

    def test_version(self):
        runner = CliRunner()
        result = runner.invoke(main, ["--version"])

        assert result.exit_code == 0
        assert __version__ in result.output


class TestConfigCommand:
    """Tests for config show."""

    def test_config_show_json_masks_token(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["config", "show", "--json"],
            env=_env(tmp_path, DOMAINLINK_VERCEL_TOKEN="tok_secret"),
        )

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["provider"]["vercel_token"] == "tok_..."
        assert "tok_secret" not in result.output

    def test_config_show_section(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(
            main, ["config", "show", "--json", "--section", "storage"], env=_env(tmp_path)
        )

        assert result.exit_code == 0
        assert list(json.loads(result.output)) == ["storage"]

    def test_config_show_unknown_section(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, ["config", "show", "-s", "nope"], env=_env(tmp_path))

        assert result.exit_code == 1
        assert "Unknown section" in result.output

    def test_config_file(self, tmp_path):
        """Test that --config loads settings from a YAML file."""
        path = tmp_path / "domainlink.yaml"
        path.write_text("server:\n  server_port: 9999\n")

        runner = CliRunner()
        result = runner.invoke(main, ["--config", str(path), "config", "show", "-s", "server"])

        assert result.exit_code == 0
        assert "9999" in result.output


class TestDomainCommands:
    """Tests for domain subcommands."""

    def test_list_empty(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, ["domain", "list"], env=_env(tmp_path))

        assert result.exit_code == 0
        assert "No domains attached" in result.output

    def test_list_json(self, tmp_path):
        _seed(tmp_path)
        runner = CliRunner()
        result = runner.invoke(main, ["domain", "list", "--json"], env=_env(tmp_path))

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data[0]["custom_domain"] == "example.com"

    def test_list_table(self, tmp_path):
        _seed(tmp_path)
        runner = CliRunner()
        result = runner.invoke(main, ["domain", "list"], env=_env(tmp_path))

        assert result.exit_code == 0
        assert "example.com" in result.output
        assert "pending_ownership" in result.output

    def test_get_missing(self, tmp_path):
        runner = CliRunner()
        result = runner.invoke(main, ["domain", "get", "proj1"], env=_env(tmp_path))

        assert result.exit_code == 1
        assert "No domain attached" in result.output

    def test_get_json_hides_dns_when_verified(self, tmp_path):
        _seed(tmp_path, ownership_verified=True, routing_verified=True)
        runner = CliRunner()
        result = runner.invoke(main, ["domain", "get", "proj1", "--json"], env=_env(tmp_path))

        assert result.exit_code == 0
        data = json.loads(result.output)
        assert data["exists"] is True
        assert data["required_dns"] is None

    def test_get_pending_shows_records(self, tmp_path):
        _seed(tmp_path)
        runner = CliRunner()
        result = runner.invoke(main, ["domain", "get", "proj1"], env=_env(tmp_path))

        assert result.exit_code == 0
        assert "76.76.21.21" in result.output

    def test_attach_without_token(self, tmp_path):
        """Test that attach fails cleanly when no provider token is set."""
        runner = CliRunner()
        result = runner.invoke(
            main,
            ["domain", "attach", "example.com", "-p", "proj1", "-d", "app-x1.deployer.app"],
            env=_env(tmp_path, DOMAINLINK_VERCEL_TOKEN=""),
        )

        assert result.exit_code == 1
        assert "token is not configured" in result.output
