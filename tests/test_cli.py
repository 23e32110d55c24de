"""Tests for the administration CLI."""

import re

import pytest
from click.testing import CliRunner

from crm.cli import cli
from crm.core.security import decode_session_token
from crm.db.session import Database

UUID_LINE = re.compile(r"ID: ([0-9a-f-]{36})")


@pytest.fixture
def runner(tmp_path, monkeypatch):
    """CLI runner against a file-backed SQLite database shared across invocations."""
    url = f"sqlite:///{tmp_path / 'cli.db'}"
    monkeypatch.setattr(Database, "from_settings", classmethod(lambda cls: cls(url)))
    runner = CliRunner()
    result = runner.invoke(cli, ["init-db"])
    assert result.exit_code == 0, result.output
    return runner


def _created_id(result) -> str:
    assert result.exit_code == 0, result.output
    return UUID_LINE.search(result.output).group(1)


def test_bootstrap_org_user_and_token(runner):
    org_id = _created_id(runner.invoke(cli, ["create-org", "--name", "Acme", "--industry", "SaaS"]))

    user_id = _created_id(runner.invoke(cli, [
        "create-user", "--org-id", org_id, "--email", "Admin@Acme.test", "--name", "Admin", "--role", "admin",
    ]))

    result = runner.invoke(cli, ["issue-token", "--user-id", user_id, "--hours", "1"])
    assert result.exit_code == 0, result.output
    claims = decode_session_token(result.output.strip())
    assert claims["id"] == user_id
    assert claims["organization_id"] == org_id
    assert claims["role"] == "admin"


def test_create_user_in_unknown_org(runner):
    result = runner.invoke(cli, [
        "create-user",
        "--org-id", "00000000-0000-0000-0000-000000000000",
        "--email", "x@example.com",
        "--name", "X",
    ])
    assert result.exit_code == 1
    assert "Organization not found" in result.output


def test_duplicate_user_email(runner):
    org_id = _created_id(runner.invoke(cli, ["create-org", "--name", "Acme"]))
    args = ["create-user", "--org-id", org_id, "--email", "dup@acme.test", "--name", "Dup"]

    _created_id(runner.invoke(cli, args))
    result = runner.invoke(cli, args)
    assert result.exit_code == 1
    assert "User with this email already exists" in result.output


def test_issue_token_for_unknown_user(runner):
    result = runner.invoke(cli, ["issue-token", "--user-id", "00000000-0000-0000-0000-000000000000"])
    assert result.exit_code == 1
    assert "User not found" in result.output
