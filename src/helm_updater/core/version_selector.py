"""Pick the version a dependency should move to."""

from __future__ import annotations

import logging
import re

from helm_updater.config.settings import IgnoreRule
from helm_updater.models import BumpKind, UpdateStrategy
from helm_updater.models.dependency import Dependency
from helm_updater.models.version import VersionCandidate, VersionUpdate
from helm_updater.utils.version_compare import (
    classify_update,
    matches_glob,
    matches_version_pattern,
    parse_version,
)

logger = logging.getLogger(__name__)

_GITHUB_PAGES_RE = re.compile(r"^https?://([^./]+)\.github\.io/([^/?#]+)", re.IGNORECASE)
_GITHUB_RE = re.compile(r"^https?://(?:raw\.githubusercontent\.com|github\.com)/([^/]+)/([^/?#]+)", re.IGNORECASE)


def rules_for(chart_name: str, rules: list[IgnoreRule]) -> list[IgnoreRule]:
    return [r for r in rules if r.dependency_name and matches_glob(chart_name, r.dependency_name)]


def is_dependency_ignored(chart_name: str, rules: list[IgnoreRule]) -> bool:
    """True when a name-only rule excludes the chart altogether."""
    return any(r.ignores_everything for r in rules_for(chart_name, rules))


def is_update_ignored(version: str, kind: BumpKind, rules: list[IgnoreRule]) -> bool:
    """True when a version pattern or an update-type entry rejects the candidate.

    `rules` must already be narrowed to the dependency (see rules_for).
    """
    for rule in rules:
        if kind in rule.update_types:
            return True
        if any(matches_version_pattern(version, p) for p in rule.versions):
            return True
    return False


def select_update(
    dependency: Dependency,
    catalog: list[VersionCandidate],
    strategy: UpdateStrategy,
    ignore_rules: list[IgnoreRule],
) -> VersionUpdate | None:
    """Return the best permitted upgrade for a dependency, or None.

    Candidates must be strictly newer than the current version, carry a
    bump kind allowed by the strategy, and survive the ignore rules; the
    highest of those wins.
    """
    current = parse_version(dependency.current_version)
    if current is None:
        logger.warning(
            "Skipping %s in %s: current version %r is not a semantic version",
            dependency.chart_name,
            dependency.manifest_path,
            dependency.current_version,
        )
        return None

    matching_rules = rules_for(dependency.chart_name, ignore_rules)
    if any(r.ignores_everything for r in matching_rules):
        logger.info("Ignoring dependency %s (matched ignore rule)", dependency.chart_name)
        return None

    best = None
    best_version = None
    for candidate in catalog:
        parsed = parse_version(candidate.version)
        if parsed is None or parsed <= current:
            continue
        kind = classify_update(dependency.current_version, candidate.version)
        if kind is None or not strategy.permits(kind):
            continue
        if is_update_ignored(candidate.version, kind, matching_rules):
            logger.debug("Ignoring %s %s (matched ignore rule)", dependency.chart_name, candidate.version)
            continue
        if best_version is None or parsed > best_version:
            best, best_version = candidate, parsed

    if best is None:
        return None
    return VersionUpdate(
        dependency=dependency,
        current_version=dependency.current_version,
        new_version=best.version,
        release_notes=release_notes_url(dependency, best.version),
    )


def release_notes_url(dependency: Dependency, version: str) -> str | None:
    """Best-effort release notes link for GitHub-hosted chart repositories.

    chart-releaser publishes charts from `<owner>.github.io/<repo>` and tags
    releases as `<chart>-<version>`.
    """
    url = dependency.repo_url
    m = _GITHUB_PAGES_RE.match(url) or _GITHUB_RE.match(url)
    if not m:
        return None
    owner, repo = m.group(1), m.group(2)
    chart = dependency.chart_name.rsplit("/", 1)[-1]
    return f"https://github.com/{owner}/{repo}/releases/tag/{chart}-{version}"
