"""Command-line tests driven through Typer's CliRunner against a temporary database."""

from __future__ import annotations

import pytest
from typer.testing import CliRunner

import intrdrm.cli.commands.generate as generate_module
from intrdrm import __version__
from intrdrm.cli.main import app
from intrdrm.cli.runtime import state
from intrdrm.integration.adapters.base import AuthenticationError

runner = CliRunner()

CONNECTION = {"connection": "A link.", "explanation": "Because."}
SCORES = {"novelty": 6, "coherence": 6, "usefulness": 6}


def _model(prompt, temperature):
    return CONNECTION if "Concept A:" in prompt else SCORES


@pytest.fixture
def cli_env(db_path, tmp_path, monkeypatch):
    for name in ("INTRDRM_CONFIG_PATH", "SLACK_WEBHOOK_URL", "INTRDRM_WEBHOOK_URL"):
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setitem(state, "settings", None)
    monkeypatch.setitem(state, "config_path", None)
    return {"INTRDRM_DB_PATH": db_path, "INTRDRM_LOG_LEVEL": "WARNING"}


@pytest.fixture
def use_client(monkeypatch):
    def _use(client):
        monkeypatch.setattr(generate_module, "open_client", lambda settings: client)
        return client

    return _use


def test_version(cli_env):
    result = runner.invoke(app, ["version"], env=cli_env)
    assert result.exit_code == 0
    assert __version__ in result.stdout


def test_invalid_config_exits_with_error(cli_env, tmp_path):
    result = runner.invoke(app, ["--config", str(tmp_path / "missing.yaml"), "stats"], env=cli_env)
    assert result.exit_code == 1


def test_health_on_empty_database_is_critical(cli_env):
    result = runner.invoke(app, ["health", "--no-notify"], env=cli_env)

    assert result.exit_code == 1
    assert "CRITICAL" in result.stdout


def test_seed_generate_and_health(cli_env, fake_client_factory, use_client, tmp_path):
    client = use_client(fake_client_factory(default=_model))

    seeded = runner.invoke(app, ["seed"], env=cli_env)
    assert seeded.exit_code == 0
    assert "Added" in seeded.stdout

    generated = runner.invoke(app, ["generate", "--count", "2", "--delay", "0"], env=cli_env)
    assert generated.exit_code == 0, generated.stdout
    assert "Batch summary" in generated.stdout
    assert client.closed is True
    # one generation and two critic passes per cycle
    assert len(client.calls) == 6

    # two unrated connections are below the default rating queue minimum
    health = runner.invoke(app, ["health", "--no-notify"], env=cli_env)
    assert health.exit_code == 1, health.stdout
    assert "CRITICAL" in health.stdout

    config = tmp_path / "small-queue.yaml"
    config.write_text("health:\n  min_pool_fail: 1\n  min_pool_warn: 2\n")
    health = runner.invoke(app, ["--config", str(config), "health", "--no-notify"], env=cli_env)
    assert health.exit_code == 0, health.stdout
    assert "HEALTHY" in health.stdout

    stats = runner.invoke(app, ["stats"], env=cli_env)
    assert stats.exit_code == 0
    assert "Concept pool" in stats.stdout


def test_empty_backfill_succeeds_but_health_stays_critical(cli_env, fake_client_factory, use_client):
    client = use_client(fake_client_factory(default=_model))
    runner.invoke(app, ["seed"], env=cli_env)

    backfill = runner.invoke(app, ["backfill", "--count", "0"], env=cli_env)
    assert backfill.exit_code == 0
    assert client.calls == []

    # seeded but nothing generated yet
    result = runner.invoke(app, ["health", "--no-notify"], env=cli_env)
    assert result.exit_code == 1


def test_generate_fails_when_every_cycle_fails(cli_env, fake_client_factory, use_client):
    client = use_client(fake_client_factory(default=AuthenticationError("authentication failed")))
    runner.invoke(app, ["seed"], env=cli_env)

    result = runner.invoke(app, ["backfill", "--count", "3"], env=cli_env)

    assert result.exit_code == 1
    assert "configuration failures" in result.stdout
    assert len(client.calls) == 3
