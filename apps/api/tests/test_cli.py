"""Tests for the Typer CLI against a file-backed SQLite database."""

import pytest
from typer.testing import CliRunner

from prototyper.api.security import read_token_subject
from prototyper.cli import app
from prototyper.config import get_settings

runner = CliRunner()


@pytest.fixture
def cli_env(tmp_path, monkeypatch):
    monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'cli.db'}")
    monkeypatch.setenv("OPENAI_API_KEY", "")
    monkeypatch.setenv("JWT_SECRET_KEY", "cli-secret")
    monkeypatch.setenv("ENVIRONMENT", "test")
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class TestCli:

    def test_user_token_and_submit_flow(self, cli_env):
        assert runner.invoke(app, ["init-db"]).exit_code == 0

        created = runner.invoke(app, ["create-user", "Owner@Example.com"])
        assert created.exit_code == 0
        assert "Created user owner@example.com" in created.stdout

        issued = runner.invoke(app, ["issue-token", "owner@example.com"])
        assert issued.exit_code == 0
        user_id = read_token_subject(issued.stdout.strip(), get_settings())
        assert user_id in created.stdout

        submitted = runner.invoke(app, ["submit", "owner@example.com", "Build a notifications center"])
        assert submitted.exit_code == 0
        assert "Queued prompt" in submitted.stdout
        assert submitted.stdout.strip().endswith("Build a notifications center")

    def test_duplicate_user_fails(self, cli_env):
        runner.invoke(app, ["init-db"])
        runner.invoke(app, ["create-user", "owner@example.com"])

        result = runner.invoke(app, ["create-user", "owner@example.com"])

        assert result.exit_code == 1

    def test_unknown_user_cannot_get_token_or_submit(self, cli_env):
        runner.invoke(app, ["init-db"])

        assert runner.invoke(app, ["issue-token", "nobody@example.com"]).exit_code == 1
        assert runner.invoke(app, ["submit", "nobody@example.com", "Build a chart"]).exit_code == 1

    def test_blank_prompt_is_rejected(self, cli_env):
        runner.invoke(app, ["init-db"])
        runner.invoke(app, ["create-user", "owner@example.com"])

        result = runner.invoke(app, ["submit", "owner@example.com", "   "])

        assert result.exit_code == 1

    def test_worker_exits_when_database_is_unreachable(self, cli_env, tmp_path, monkeypatch):
        monkeypatch.setenv("DATABASE_URL", f"sqlite+aiosqlite:///{tmp_path / 'missing' / 'cli.db'}")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        get_settings.cache_clear()

        result = runner.invoke(app, ["worker"])

        assert result.exit_code == 1
