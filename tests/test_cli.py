from __future__ import annotations

import functools
import json
from pathlib import Path

import pytest
from typer.testing import CliRunner

from helm_updater.cli.app import app
from helm_updater.cli.commands import apply_cmd, check_cmd
from helm_updater.core.update_checker import UpdateChecker

from helpers import FakeRepoClient, NGINX_APP

runner = CliRunner()


@pytest.fixture(autouse=True)
def offline(monkeypatch: pytest.MonkeyPatch, fake_client: FakeRepoClient) -> None:
    monkeypatch.setenv("HELM_UPDATER_LOG_LEVEL", "error")
    factory = functools.partial(UpdateChecker, client=fake_client)
    monkeypatch.setattr(check_cmd, "UpdateChecker", factory)
    monkeypatch.setattr(apply_cmd, "UpdateChecker", factory)


def test_check_json(repo_root: Path) -> None:
    result = runner.invoke(app, ["check", "--root", str(repo_root), "--output", "json"])

    assert result.exit_code == 0, result.output
    [entry] = json.loads(result.stdout)
    assert entry["chart"] == "nginx"
    assert entry["current_version"] == "15.9.0"
    assert entry["new_version"] == "16.0.0"
    assert entry["update_type"] == "major"
    assert entry["group"] == "ungrouped"
    assert entry["path"] == "spec.source.targetRevision"


def test_check_table(repo_root: Path) -> None:
    result = runner.invoke(app, ["check", "--root", str(repo_root)])
    assert result.exit_code == 0, result.output
    assert "nginx" in result.stdout
    assert "1 update(s) available" in result.stdout


def test_apply_dry_run_leaves_files(repo_root: Path) -> None:
    result = runner.invoke(app, ["apply", "--dry-run", "--root", str(repo_root), "-o", "json"])

    assert result.exit_code == 0, result.output
    [entry] = json.loads(result.stdout)
    assert entry["path"] == "apps/nginx.yaml"
    assert "-    targetRevision: 15.9.0\n" in entry["diff"]
    assert "+    targetRevision: 16.0.0\n" in entry["diff"]
    assert (repo_root / "apps" / "nginx.yaml").read_text(encoding="utf-8") == NGINX_APP


def test_apply_writes_files(repo_root: Path) -> None:
    result = runner.invoke(app, ["apply", "--root", str(repo_root)])

    assert result.exit_code == 0, result.output
    assert (repo_root / "apps" / "nginx.yaml").read_text(encoding="utf-8") == NGINX_APP.replace("15.9.0", "16.0.0")

    again = runner.invoke(app, ["apply", "--root", str(repo_root)])
    assert again.exit_code == 0
    assert "Nothing to update" in again.stdout


def test_apply_unknown_group(repo_root: Path) -> None:
    result = runner.invoke(app, ["apply", "--group", "nope", "--root", str(repo_root)])
    assert result.exit_code == 2


def test_invalid_config_exits(repo_root: Path) -> None:
    (repo_root / ".helm-updater.yml").write_text("update-strategy: sometimes\n", encoding="utf-8")
    result = runner.invoke(app, ["check", "--root", str(repo_root)])
    assert result.exit_code == 2
