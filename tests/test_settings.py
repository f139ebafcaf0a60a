from __future__ import annotations

import logging
from pathlib import Path

import pytest

from helm_updater.config.settings import Settings, load_settings, settings_from_dict
from helm_updater.errors import ConfigError
from helm_updater.models import BumpKind, UpdateStrategy

CONFIG = """\
include-paths:
  - apps/**/*.yaml
exclude-paths:
  - apps/legacy/**
update-strategy: minor
cache-ttl: 600
max-concurrency: 2
registry-credentials:
  - registry: ghcr.io/example
    username: bot
    password: ${GHCR_TOKEN}
  - registry: charts.example.com
    auth-type: bearer
    password: static
ignore:
  - dependency-name: legacy-*
  - dependency-name: nginx
    versions: ["16.*"]
    update-types: [major]
groups:
  monitoring:
    patterns: [prometheus*, grafana]
    update-types: [minor, patch]
  everything:
    patterns: ["*"]
"""


def test_defaults_without_config_file(tmp_path: Path) -> None:
    s = load_settings(root=tmp_path)
    assert s.update_strategy is UpdateStrategy.ALL
    assert s.include_paths == ["**/*.yaml", "**/*.yml"]
    assert s.cache_ttl == 3600
    assert s.groups == []


def test_loads_default_config_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    monkeypatch.setenv("GHCR_TOKEN", "secret")
    (tmp_path / ".helm-updater.yml").write_text(CONFIG, encoding="utf-8")

    s = load_settings(root=tmp_path)

    assert s.include_paths == ["apps/**/*.yaml"]
    assert s.exclude_paths == ["apps/legacy/**"]
    assert s.update_strategy is UpdateStrategy.MINOR
    assert s.cache_ttl == 600
    assert s.max_concurrency == 2
    assert s.registry_credentials[0].password == "secret"
    assert s.registry_credentials[0].auth_type == "basic"
    assert s.registry_credentials[1].auth_type == "bearer"
    assert s.ignore[0].ignores_everything
    assert s.ignore[1].versions == ("16.*",)
    assert s.ignore[1].update_types == (BumpKind.MAJOR,)
    assert [g.name for g in s.groups] == ["monitoring", "everything"]
    assert s.groups[0].update_types == (BumpKind.MINOR, BumpKind.PATCH)
    assert s.groups[1].update_types is None


def test_environment_overrides_file(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> None:
    config = tmp_path / "custom.yaml"
    config.write_text("update-strategy: minor\ncache-ttl: 600\n", encoding="utf-8")
    monkeypatch.setenv("HELM_UPDATER_STRATEGY", "patch")
    monkeypatch.setenv("HELM_UPDATER_CACHE_TTL", "30")
    monkeypatch.setenv("HELM_UPDATER_LOG_LEVEL", "DEBUG")

    s = load_settings(config_file=config)

    assert s.update_strategy is UpdateStrategy.PATCH
    assert s.cache_ttl == 30
    assert s.logging_level == logging.DEBUG


def test_invalid_strategy_is_config_error() -> None:
    with pytest.raises(ConfigError, match="update-strategy"):
        settings_from_dict({"update-strategy": "sometimes"})


def test_invalid_update_type_is_config_error() -> None:
    with pytest.raises(ConfigError, match="Unknown update type"):
        settings_from_dict({"ignore": [{"dependency-name": "x", "update-types": ["huge"]}]})


def test_validate_collects_every_error() -> None:
    s = settings_from_dict({
        "include-paths": ["/abs/*.yaml", "apps\\*.yaml"],
        "registry-credentials": [{"registry": "ghcr.io", "password": "p"}],
        "groups": {"bad name": {"patterns": []}},
        "max-concurrency": 0,
    })
    with pytest.raises(ConfigError) as excinfo:
        s.validate()

    errors = excinfo.value.errors
    assert any("absolute" in e for e in errors)
    assert any("backslashes" in e for e in errors)
    assert any("no username" in e for e in errors)
    assert any('Invalid group name "bad name"' in e for e in errors)
    assert any("at least one pattern" in e for e in errors)
    assert any("max-concurrency" in e for e in errors)


def test_missing_explicit_config_file(tmp_path: Path) -> None:
    with pytest.raises(ConfigError, match="not found"):
        load_settings(config_file=tmp_path / "nope.yml")


def test_config_must_be_mapping(tmp_path: Path) -> None:
    config = tmp_path / "list.yml"
    config.write_text("- a\n- b\n", encoding="utf-8")
    with pytest.raises(ConfigError, match="mapping"):
        load_settings(config_file=config)


def test_settings_validate_accepts_defaults() -> None:
    Settings().validate()
