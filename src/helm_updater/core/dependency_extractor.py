"""Extract Helm chart dependencies from Argo CD Application documents."""

from __future__ import annotations

import dataclasses
import logging
import re
from typing import Any

import yaml

from helm_updater.core.field_locator import resolve_node
from helm_updater.errors import StructuralPathNotFound
from helm_updater.models import RepoType
from helm_updater.models.dependency import Dependency, StructuralPath
from helm_updater.models.manifest import ManifestFile, ParsedDocument

logger = logging.getLogger(__name__)

_YamlLoader = getattr(yaml, "CSafeLoader", yaml.SafeLoader)

OCI_REGISTRY_HOSTS = (
    "registry-1.docker.io",
    "docker.io",
    "ghcr.io",
    "gcr.io",
    "registry.gitlab.com",
    "quay.io",
    "public.ecr.aws",
    "azurecr.io",
)

_HTTP_SCHEME_RE = re.compile(r"^https?://", re.IGNORECASE)


def detect_repo_type(repo_url: str) -> RepoType:
    if repo_url.startswith("oci://"):
        return RepoType.OCI
    lowered = repo_url.lower()
    if any(host in lowered for host in OCI_REGISTRY_HOSTS):
        return RepoType.OCI
    return RepoType.HELM


def chart_name_from_oci(repo_url: str) -> str:
    url = repo_url[len("oci://"):] if repo_url.startswith("oci://") else repo_url
    url = _HTTP_SCHEME_RE.sub("", url).split("?")[0].split("#")[0].rstrip("/")
    return url.rsplit("/", 1)[-1]


def _scalar(value: Any) -> str:
    if value is None or isinstance(value, (dict, list, bool)):
        return ""
    return str(value).strip()


def parse_source(
    source: Any, manifest_path: str, document_index: int, base_path: StructuralPath
) -> Dependency | None:
    """Build a Dependency from one `source` block, or None for non-Helm sources.

    A source needs a repoURL and a targetRevision. Without a `chart` field
    only OCI sources qualify (the chart is the last URL segment); anything
    else is a Git source.
    """
    if not isinstance(source, dict):
        return None
    repo_url = _scalar(source.get("repoURL"))
    revision = _scalar(source.get("targetRevision"))
    if not repo_url or not revision:
        return None

    repo_type = detect_repo_type(repo_url)
    chart = _scalar(source.get("chart"))
    if not chart:
        if repo_type is not RepoType.OCI:
            return None
        chart = chart_name_from_oci(repo_url)
        if not chart:
            return None

    return Dependency(
        manifest_path=manifest_path,
        document_index=document_index,
        chart_name=chart,
        repo_url=repo_url,
        repo_type=repo_type,
        current_version=revision,
        version_path=(*base_path, "targetRevision"),
    )


def _from_spec(
    spec: Any, manifest_path: str, document_index: int, base: StructuralPath
) -> list[Dependency]:
    if not isinstance(spec, dict):
        return []
    deps: list[Dependency] = []
    dep = parse_source(spec.get("source"), manifest_path, document_index, (*base, "source"))
    if dep is not None:
        deps.append(dep)
    sources = spec.get("sources")
    if isinstance(sources, list):
        for i, source in enumerate(sources):
            dep = parse_source(source, manifest_path, document_index, (*base, "sources", str(i)))
            if dep is not None:
                deps.append(dep)
    return deps


def extract_from_document(doc: ParsedDocument, manifest_path: str) -> list[Dependency]:
    if doc.kind == "ApplicationSet":
        template = doc.spec.get("template")
        spec = template.get("spec") if isinstance(template, dict) else None
        return _from_spec(spec, manifest_path, doc.index, ("spec", "template", "spec"))
    return _from_spec(doc.spec, manifest_path, doc.index, ("spec",))


def with_source_text(found: list[Dependency], nodes: list[yaml.Node]) -> list[Dependency]:
    """Replace loaded versions with the scalar text as written.

    The loader turns an unquoted `1.10` into the float 1.1; the composed
    node still holds "1.10".
    """
    result: list[Dependency] = []
    for dep in found:
        try:
            _, node = resolve_node(nodes[dep.document_index], dep.version_path, dep.document_index)
        except (IndexError, StructuralPathNotFound):
            result.append(dep)
            continue
        raw = node.value.strip()
        result.append(dataclasses.replace(dep, current_version=raw) if raw else dep)
    return result


def extract_dependencies(manifests: list[ManifestFile]) -> list[Dependency]:
    """All Helm dependencies declared across the given manifests, in file order."""
    deps: list[Dependency] = []
    for manifest in manifests:
        nodes = list(yaml.compose_all(manifest.content, Loader=_YamlLoader))
        for doc in manifest.documents:
            found = with_source_text(extract_from_document(doc, manifest.path), nodes)
            for dep in found:
                logger.debug(
                    "%s[%d] %s %s@%s", manifest.path, doc.index, dep.repo_type.value, dep.chart_name, dep.current_version
                )
            deps.extend(found)
    logger.info("Extracted %d Helm dependencies", len(deps))
    return deps
