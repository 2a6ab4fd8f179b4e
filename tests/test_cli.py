"""CLI smoke tests."""

import re

import pytest
import yaml
from click.testing import CliRunner

from quorum.cli import main


@pytest.fixture
def config(tmp_path, monkeypatch):
    monkeypatch.delenv("QUORUM_DATABASE_URL", raising=False)
    monkeypatch.delenv("QUORUM_AUDIT_DIR", raising=False)
    path = tmp_path / "quorum.yaml"
    path.write_text(
        yaml.safe_dump(
            {
                "database_url": f"sqlite:///{tmp_path / 'cli.db'}",
                "audit_dir": str(tmp_path / "audit"),
            }
        )
    )
    return str(path)


def _agent_id(output: str) -> str:
    return re.search(r"id:\s+(\S+)", output).group(1)


def test_init_db(config):
    result = CliRunner().invoke(main, ["--config", config, "init-db"])
    assert result.exit_code == 0, result.output
    assert "Database ready" in result.output


def test_create_agent_prints_key(config):
    result = CliRunner().invoke(main, ["--config", config, "create-agent", "alice", "--admin"])
    assert result.exit_code == 0, result.output
    assert "cq_" in result.output


def test_empty_listings(config):
    runner = CliRunner()
    assert "No pending reports" in runner.invoke(main, ["--config", config, "reports"]).output
    assert "No audit events" in runner.invoke(main, ["--config", config, "audit"]).output


def test_ban_and_unban(config):
    runner = CliRunner()
    admin = _agent_id(runner.invoke(main, ["--config", config, "create-agent", "phil", "--admin"]).output)
    target = _agent_id(runner.invoke(main, ["--config", config, "create-agent", "erin"]).output)

    result = runner.invoke(main, ["--config", config, "ban", target, "--actor", admin, "--reason", "abuse"])
    assert result.exit_code == 0, result.output

    audit = runner.invoke(main, ["--config", config, "audit", "--action", "agent.banned"])
    assert "agent.banned" in audit.output

    by_resource = runner.invoke(main, ["--config", config, "audit", "--resource", target])
    assert "agent.banned" in by_resource.output
    other = runner.invoke(main, ["--config", config, "audit", "--resource", "someone-else"])
    assert "No audit events" in other.output

    assert runner.invoke(main, ["--config", config, "unban", target, "--actor", admin]).exit_code == 0
    again = runner.invoke(main, ["--config", config, "unban", target, "--actor", admin])
    assert again.exit_code != 0
    assert "Agent is not banned" in again.output


def test_non_admin_actor_is_refused(config):
    runner = CliRunner()
    actor = _agent_id(runner.invoke(main, ["--config", config, "create-agent", "bob"]).output)
    result = runner.invoke(main, ["--config", config, "ban", actor, "--actor", actor])
    assert result.exit_code != 0
    assert "Admin access required" in result.output
