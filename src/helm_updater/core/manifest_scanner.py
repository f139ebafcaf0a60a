"""Discover Argo CD manifests in a repository checkout."""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path

import yaml

from helm_updater.models.manifest import ManifestFile
from helm_updater.utils.manifest_parser import kind_counts, parse_documents

logger = logging.getLogger(__name__)

_SKIP_DIRS = frozenset({".git", ".hg", ".svn", "node_modules"})


def matches_any(rel_path: str, patterns: list[str]) -> bool:
    """Glob match on a forward-slash relative path.

    `*` also crosses directories here, and a leading `**/` may match
    zero directories so `**/*.yaml` covers files at the root.
    """
    for pattern in patterns:
        if fnmatch.fnmatchcase(rel_path, pattern):
            return True
        if pattern.startswith("**/") and fnmatch.fnmatchcase(rel_path, pattern[3:]):
            return True
    return False


def discover_files(root: Path, include: list[str], exclude: list[str]) -> list[str]:
    """Relative paths under root matching an include and no exclude pattern, sorted."""
    found: list[str] = []
    for path in root.rglob("*"):
        if not path.is_file():
            continue
        rel = path.relative_to(root)
        if any(part in _SKIP_DIRS for part in rel.parts[:-1]):
            continue
        rel_path = rel.as_posix()
        if matches_any(rel_path, include) and not matches_any(rel_path, exclude):
            found.append(rel_path)
    return sorted(found)


def load_manifest(root: Path, rel_path: str) -> ManifestFile | None:
    """Read and parse one file, keeping only its Argo CD documents.

    Returns None when the file holds no Application or ApplicationSet.
    """
    content = (root / rel_path).read_text(encoding="utf-8")
    documents = parse_documents(content)
    argocd = [d for d in documents if d.is_argocd]
    if not argocd:
        return None
    logger.debug("%s: %s", rel_path, kind_counts(argocd))
    return ManifestFile(path=rel_path, content=content, documents=argocd)


def scan_manifests(root: Path, include: list[str], exclude: list[str]) -> list[ManifestFile]:
    """Find every manifest under root that declares Argo CD resources.

    Unreadable or invalid files are logged and skipped.
    """
    manifests: list[ManifestFile] = []
    for rel_path in discover_files(root, include, exclude):
        try:
            manifest = load_manifest(root, rel_path)
        except (OSError, UnicodeDecodeError, yaml.YAMLError) as exc:
            logger.warning("Failed to process file %s: %s", rel_path, exc)
            continue
        if manifest is not None:
            manifests.append(manifest)

    logger.info("Found %d manifest file(s) with Argo CD resources", len(manifests))
    return manifests
