"""
Tests for the command-line interface and application wiring.
"""

from unittest.mock import patch

import pytest

from core.config import AlertsConfig, AppConfig, InstancesConfig, ReplicationConfig
from core.exceptions import ConfigurationError
from database.versioning import get_head_revision
from runtime.cli import create_parser, main


# ============================================================
# FIXTURES
# ============================================================

@pytest.fixture
def cli_env(monkeypatch, tmp_path):
    """Environment for a CLI run against a fresh SQLite file."""
    monkeypatch.setenv("DATABASE_URL", f"sqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.delenv("REPLICATION_ROLE", raising=False)
    monkeypatch.delenv("REPLICATION_SOURCE", raising=False)
    monkeypatch.chdir(tmp_path)
    with patch("runtime.cli.setup_logging"):
        yield monkeypatch


# ============================================================
# PARSER
# ============================================================

class TestParser:

    def test_default_command_is_serve(self):
        args = create_parser().parse_args([])
        assert args.command == "serve"
        assert args.log_level is None

    def test_log_level_override(self):
        args = create_parser().parse_args(["--log-level", "DEBUG", "migrate"])
        assert args.command == "migrate"
        assert args.log_level == "DEBUG"

    def test_unknown_command(self):
        with pytest.raises(SystemExit):
            create_parser().parse_args(["deploy"])


# ============================================================
# COMMANDS
# ============================================================

class TestCommands:

    def test_migrate_then_db_version(self, cli_env, capsys):
        assert main(["db-version"]) == 0
        assert capsys.readouterr().out.strip() == "none"

        assert main(["migrate"]) == 0
        assert main(["db-version"]) == 0
        assert capsys.readouterr().out.strip() == get_head_revision()

    def test_replicate_without_destination(self, cli_env):
        cli_env.setenv("DATABASE_AUTO_MIGRATE", "true")
        assert main(["replicate"]) == 1

    def test_configuration_error(self, cli_env, capsys):
        cli_env.delenv("DATABASE_URL")

        assert main(["db-version"]) == 2
        assert "Configuration error" in capsys.readouterr().err


# ============================================================
# CONTEXT WIRING
# ============================================================

class TestContextWiring:

    @pytest.mark.asyncio
    async def test_all_services(self, make_context):
        context = await make_context(
            instances=InstancesConfig(enabled=True),
            alerts=AlertsConfig(enabled=True, webhook_url="https://hooks.example/x"),
            replication=ReplicationConfig(role="destination", source="http://source"),
        )

        assert context.instances is not None
        assert context.alerts is not None
        assert context.replication is not None
        assert context.registry.get_startup_order()[0] == "instances"

    @pytest.mark.asyncio
    async def test_minimal(self, make_context):
        context = await make_context()

        assert context.instances is None
        assert context.alerts is None
        assert context.replication is None

        with pytest.raises(ConfigurationError):
            await context.run_replication()

    @pytest.mark.asyncio
    async def test_startup_and_shutdown(self, make_context, clock):
        context = await make_context(clock=clock, instances=InstancesConfig(enabled=True))

        with patch("instances.service.get_metadata", return_value={}):
            await context.startup()
            try:
                assert context.instances.is_primary_instance()
                health = context.get_health_status()
                assert health["services"]["instances"]["status"] == "healthy"
            finally:
                await context.shutdown()

        assert context.instances.instance_id is None


def test_app_config_defaults():
    config = AppConfig()
    assert config.database.chunk_size == 10000
    assert not config.is_development
