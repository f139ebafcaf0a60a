from __future__ import annotations

import logging
from pathlib import Path
from typing import Iterator

import pytest

from helpers import FakeRepoClient, NGINX_APP


@pytest.fixture(autouse=True)
def clean_env(monkeypatch: pytest.MonkeyPatch) -> None:
    for name in ("HELM_UPDATER_STRATEGY", "HELM_UPDATER_CACHE_TTL", "HELM_UPDATER_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture(autouse=True)
def restore_root_logger() -> Iterator[None]:
    # CLI commands reconfigure the root logger
    root = logging.getLogger()
    level, handlers = root.level, list(root.handlers)
    yield
    root.setLevel(level)
    for handler in list(root.handlers):
        if handler not in handlers:
            root.removeHandler(handler)


@pytest.fixture
def repo_root(tmp_path: Path) -> Path:
    """A checkout with a single Application manifest under apps/."""
    apps = tmp_path / "apps"
    apps.mkdir()
    (apps / "nginx.yaml").write_text(NGINX_APP, encoding="utf-8")
    return tmp_path


@pytest.fixture
def fake_client() -> FakeRepoClient:
    return FakeRepoClient(
        indexes={
            "https://charts.example.com": {
                "nginx": [
                    {"version": "16.0.0", "appVersion": "1.25.3"},
                    {"version": "15.10.1", "appVersion": "1.25.2"},
                    {"version": "15.9.0", "appVersion": "1.25.1"},
                ],
                "postgresql": [{"version": "12.5.0"}, {"version": "13.0.0"}],
            }
        },
        tags={"oci://ghcr.io/example/charts/podinfo": ["6.4.0", "6.5.0", "6.5.1", "latest"]},
    )
