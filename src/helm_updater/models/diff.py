"""Manifest mutation models."""

from __future__ import annotations

from dataclasses import dataclass, field

from helm_updater.models.version import VersionUpdate


@dataclass
class ManifestMutationGroup:
    path: str
    updates: list[VersionUpdate] = field(default_factory=list)


@dataclass
class FileDiff:
    path: str
    original: str
    updated: str
    updates: list[VersionUpdate] = field(default_factory=list)

    @property
    def changed_lines(self) -> list[int]:
        """Zero-based numbers of lines that differ between the two texts."""
        before = self.original.split("\n")
        after = self.updated.split("\n")
        return [i for i, (a, b) in enumerate(zip(before, after)) if a != b]
