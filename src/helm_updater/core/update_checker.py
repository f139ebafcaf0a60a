"""Compare declared chart versions against available versions."""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Callable

import aiohttp

from helm_updater.config.settings import Settings
from helm_updater.core import manifest_updater
from helm_updater.core.catalog_cache import CatalogCache
from helm_updater.core.dependency_extractor import extract_dependencies
from helm_updater.core.manifest_scanner import scan_manifests
from helm_updater.core.repo_resolver import RepoClient, VersionSource, catalog_key
from helm_updater.core.update_grouper import group_updates
from helm_updater.core.version_selector import is_dependency_ignored, select_update
from helm_updater.errors import AuthenticationError, TransientFetchError
from helm_updater.models.dependency import Dependency
from helm_updater.models.diff import FileDiff
from helm_updater.models.version import VersionCandidate, VersionUpdate

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[int, int, str], None]

CREDENTIALS_HINT = (
    "To configure credentials, add them to the configuration file:\n"
    "  registry-credentials:\n"
    "    - registry: <registry-url>\n"
    "      username: <username>\n"
    "      password: <password>\n"
    '      auth-type: basic  # or "bearer"\n'
    "Registries match by exact URL or host, otherwise the longest URL prefix wins."
)


def log_fetch_failure(dep: Dependency, exc: TransientFetchError) -> None:
    if isinstance(exc, AuthenticationError):
        logger.error("Authentication failed for %s (chart %s): %s", exc.url, dep.chart_name, exc)
        logger.error(CREDENTIALS_HINT)
        return
    logger.error("Failed to fetch versions from %s for chart %s: %s", exc.url, dep.chart_name, exc)


class UpdateChecker:
    """Runs discovery, version resolution, selection and manifest edits.

    A RepoClient may be injected; otherwise one is built on a fresh
    aiohttp session for each resolve_versions call. The CatalogCache lives
    as long as the checker.
    """

    def __init__(
        self,
        settings: Settings,
        cache: CatalogCache | None = None,
        client: RepoClient | None = None,
        root: Path | None = None,
    ):
        self.settings = settings
        self.cache = cache if cache is not None else CatalogCache(ttl=settings.cache_ttl)
        self.client = client
        self.root = root or Path.cwd()

    def find_dependencies(self) -> list[Dependency]:
        manifests = scan_manifests(self.root, self.settings.include_paths, self.settings.exclude_paths)
        return extract_dependencies(manifests)

    async def resolve_versions(
        self,
        dependencies: list[Dependency],
        on_progress: ProgressCallback | None = None,
    ) -> dict[str, list[VersionCandidate]]:
        """Fetch catalogs concurrently, keyed by catalog_key.

        Dependencies whose source failed are missing from the result.
        """
        if self.client is not None:
            return await self._resolve(self.client, dependencies, on_progress)

        connector = aiohttp.TCPConnector(limit=self.settings.max_concurrency)
        async with aiohttp.ClientSession(connector=connector) as session:
            client = RepoClient(session, self.settings.registry_credentials, self.settings.fetch_timeout)
            return await self._resolve(client, dependencies, on_progress)

    async def _resolve(
        self,
        client: RepoClient,
        dependencies: list[Dependency],
        on_progress: ProgressCallback | None,
    ) -> dict[str, list[VersionCandidate]]:
        source = VersionSource(client, self.cache)
        semaphore = asyncio.Semaphore(self.settings.max_concurrency)

        pending: dict[str, Dependency] = {}
        for dep in dependencies:
            if is_dependency_ignored(dep.chart_name, self.settings.ignore):
                logger.info("Ignoring dependency %s (matched ignore rule)", dep.chart_name)
                continue
            pending.setdefault(catalog_key(dep), dep)

        total = len(pending)
        done = 0

        async def fetch(key: str, dep: Dependency) -> tuple[str, list[VersionCandidate] | None]:
            nonlocal done
            async with semaphore:
                try:
                    catalog = await source.get_catalog(dep)
                except TransientFetchError as exc:
                    log_fetch_failure(dep, exc)
                    catalog = None
            done += 1
            if on_progress:
                on_progress(done, total, dep.chart_name)
            return key, catalog

        results = await asyncio.gather(*(fetch(k, d) for k, d in pending.items()))
        logger.debug("Catalog cache: %s", self.cache.stats())
        return {key: catalog for key, catalog in results if catalog is not None}

    def select_updates(
        self, dependencies: list[Dependency], catalogs: dict[str, list[VersionCandidate]]
    ) -> list[VersionUpdate]:
        updates: list[VersionUpdate] = []
        for dep in dependencies:
            catalog = catalogs.get(catalog_key(dep))
            if catalog is None:
                continue
            update = select_update(dep, catalog, self.settings.update_strategy, self.settings.ignore)
            if update is not None:
                logger.info(
                    "%s: %s -> %s (%s)",
                    dep.chart_name,
                    update.current_version,
                    update.new_version,
                    update.bump_kind.value if update.bump_kind else "?",
                )
                updates.append(update)
        return updates

    async def acheck_for_updates(
        self,
        dependencies: list[Dependency],
        on_progress: ProgressCallback | None = None,
    ) -> list[VersionUpdate]:
        catalogs = await self.resolve_versions(dependencies, on_progress)
        return self.select_updates(dependencies, catalogs)

    def check_for_updates(
        self,
        dependencies: list[Dependency],
        on_progress: ProgressCallback | None = None,
    ) -> list[VersionUpdate]:
        """Blocking wrapper around acheck_for_updates."""
        return asyncio.run(self.acheck_for_updates(dependencies, on_progress))

    def group_updates(self, updates: list[VersionUpdate]) -> dict[str, list[VersionUpdate]]:
        return group_updates(updates, self.settings.groups)

    def update_manifests(self, updates: list[VersionUpdate]) -> list[FileDiff]:
        return manifest_updater.update_manifests(updates, root=self.root)

    def write(self, diffs: list[FileDiff]) -> list[Path]:
        return manifest_updater.write_diffs(diffs, root=self.root)
