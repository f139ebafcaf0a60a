from __future__ import annotations

from helm_updater.core.dependency_extractor import (
    chart_name_from_oci,
    detect_repo_type,
    extract_dependencies,
)
from helm_updater.core.version_selector import select_update
from helm_updater.models import RepoType, UpdateStrategy
from helm_updater.models.manifest import ManifestFile
from helm_updater.utils.manifest_parser import parse_documents

from helpers import MULTI_SOURCE_APP, NGINX_APP, catalog

APPSET = """\
apiVersion: argoproj.io/v1alpha1
kind: ApplicationSet
metadata:
  name: redis
spec:
  generators:
    - list:
        elements:
          - cluster: prod
  template:
    metadata:
      name: "redis-{{cluster}}"
    spec:
      source:
        repoURL: registry-1.docker.io/bitnamicharts
        chart: redis
        targetRevision: 18.0.0
"""


def _manifest(path: str, text: str) -> ManifestFile:
    return ManifestFile(path=path, content=text, documents=parse_documents(text))


def test_detect_repo_type() -> None:
    assert detect_repo_type("oci://registry.example.com/charts") is RepoType.OCI
    assert detect_repo_type("registry-1.docker.io/bitnamicharts") is RepoType.OCI
    assert detect_repo_type("https://example.azurecr.io/helm") is RepoType.OCI
    assert detect_repo_type("https://charts.bitnami.com/bitnami") is RepoType.HELM


def test_chart_name_from_oci() -> None:
    assert chart_name_from_oci("oci://ghcr.io/example/charts/podinfo") == "podinfo"
    assert chart_name_from_oci("oci://ghcr.io/example/podinfo/?x=1") == "podinfo"


def test_single_source_application() -> None:
    [dep] = extract_dependencies([_manifest("apps/nginx.yaml", NGINX_APP)])
    assert dep.chart_name == "nginx"
    assert dep.repo_type is RepoType.HELM
    assert dep.current_version == "15.9.0"
    assert dep.version_path == ("spec", "source", "targetRevision")
    assert (dep.manifest_path, dep.document_index) == ("apps/nginx.yaml", 0)


def test_multi_source_skips_git_sources() -> None:
    deps = extract_dependencies([_manifest("stack.yaml", MULTI_SOURCE_APP)])

    assert [(d.chart_name, d.repo_type) for d in deps] == [
        ("postgresql", RepoType.HELM),
        ("podinfo", RepoType.OCI),
    ]
    assert deps[0].version_path == ("spec", "sources", "0", "targetRevision")
    assert deps[1].version_path == ("spec", "sources", "2", "targetRevision")
    assert deps[1].current_version == "6.5.0"


def test_application_set_template_source() -> None:
    [dep] = extract_dependencies([_manifest("redis.yaml", APPSET)])
    assert dep.chart_name == "redis"
    assert dep.repo_type is RepoType.OCI
    assert dep.version_path == ("spec", "template", "spec", "source", "targetRevision")


def test_source_without_revision_is_skipped() -> None:
    text = NGINX_APP.replace("    targetRevision: 15.9.0\n", "")
    assert extract_dependencies([_manifest("nginx.yaml", text)]) == []


def test_unquoted_version_keeps_source_text() -> None:
    text = NGINX_APP.replace("targetRevision: 15.9.0", "targetRevision: 1.10")
    [dep] = extract_dependencies([_manifest("apps/nginx.yaml", text)])

    assert dep.current_version == "1.10"
    update = select_update(dep, catalog("1.10.5", "1.11.0"), UpdateStrategy.PATCH, [])
    assert update is not None
    assert update.new_version == "1.10.5"


def test_tagged_version_keeps_source_text() -> None:
    text = NGINX_APP.replace("targetRevision: 15.9.0", 'targetRevision: !!str "15.9.0"')
    [dep] = extract_dependencies([_manifest("apps/nginx.yaml", text)])
    assert dep.current_version == "15.9.0"
