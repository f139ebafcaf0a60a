from __future__ import annotations

from typing import Any

from helm_updater.core.repo_resolver import normalize_helm_repo_url
from helm_updater.errors import AuthenticationError, TransientFetchError
from helm_updater.models import RepoType
from helm_updater.models.dependency import Dependency
from helm_updater.models.version import VersionCandidate, VersionUpdate

NGINX_APP = """\
apiVersion: argoproj.io/v1alpha1
kind: Application
metadata:
  name: nginx
  namespace: argocd
spec:
  project: default
  source:
    repoURL: https://charts.example.com
    chart: nginx
    targetRevision: 15.9.0
  destination:
    server: https://kubernetes.default.svc
    namespace: web
"""

MULTI_SOURCE_APP = """\
apiVersion: argoproj.io/v1alpha1
kind: Application
metadata:
  name: stack
spec:
  sources:
    - repoURL: https://charts.example.com
      chart: postgresql
      targetRevision: 12.5.0
    - repoURL: https://github.com/example/values.git
      path: values
      targetRevision: main
    - repoURL: oci://ghcr.io/example/charts/podinfo
      targetRevision: "6.5.0"  # pinned
"""


def make_dep(
    chart: str = "nginx",
    version: str = "15.9.0",
    *,
    repo_url: str = "https://charts.example.com",
    repo_type: RepoType = RepoType.HELM,
    manifest_path: str = "apps/nginx.yaml",
    document_index: int = 0,
    version_path: tuple[str, ...] = ("spec", "source", "targetRevision"),
) -> Dependency:
    return Dependency(
        manifest_path=manifest_path,
        document_index=document_index,
        chart_name=chart,
        repo_url=repo_url,
        repo_type=repo_type,
        current_version=version,
        version_path=version_path,
    )


def make_update(dep: Dependency, new_version: str) -> VersionUpdate:
    return VersionUpdate(dependency=dep, current_version=dep.current_version, new_version=new_version)


def catalog(*versions: str) -> list[VersionCandidate]:
    return [VersionCandidate(version=v) for v in versions]


class FakeRepoClient:
    """In-memory stand-in for RepoClient.

    `indexes` maps repository base URLs to {chart: [entry, ...]};
    `tags` maps oci:// references to tag lists. URLs listed in `failures`
    raise the given exception instead.
    """

    def __init__(
        self,
        indexes: dict[str, dict[str, list[dict[str, Any]]]] | None = None,
        tags: dict[str, list[str]] | None = None,
        failures: dict[str, TransientFetchError] | None = None,
    ):
        self.indexes = indexes or {}
        self.tags = tags or {}
        self.failures = failures or {}
        self.calls: list[str] = []

    async def fetch_index(self, repo_url: str, chart_name: str | None = None):
        base = normalize_helm_repo_url(repo_url)
        self.calls.append(base)
        if base in self.failures:
            raise self.failures[base]
        if base not in self.indexes:
            raise TransientFetchError(f"{base}/index.yaml", "HTTP 404 Not Found", chart_name)
        return self.indexes[base]

    async def fetch_tags(self, oci_ref: str, chart_name: str | None = None):
        self.calls.append(oci_ref)
        if oci_ref in self.failures:
            raise self.failures[oci_ref]
        return list(self.tags.get(oci_ref, []))


def auth_failure(url: str) -> AuthenticationError:
    return AuthenticationError(url, "HTTP 401 Unauthorized")
