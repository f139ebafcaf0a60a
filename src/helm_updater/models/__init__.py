"""Data models for helm-updater."""

from __future__ import annotations

import enum


class RepoType(enum.Enum):
    HELM = "helm"
    OCI = "oci"


class BumpKind(enum.Enum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"

    @classmethod
    def from_str(cls, s: str) -> BumpKind:
        for member in cls:
            if member.value == s:
                return member
        raise ValueError(f"Unknown update type: {s!r}")


class UpdateStrategy(enum.Enum):
    MAJOR = "major"
    MINOR = "minor"
    PATCH = "patch"
    ALL = "all"

    @classmethod
    def from_str(cls, s: str) -> UpdateStrategy:
        for member in cls:
            if member.value == s:
                return member
        raise ValueError(f"Unknown update strategy: {s!r}")

    def permits(self, kind: BumpKind) -> bool:
        """Return True if a bump of this kind is allowed under the strategy."""
        if self in (UpdateStrategy.MAJOR, UpdateStrategy.ALL):
            return True
        if self is UpdateStrategy.MINOR:
            return kind in (BumpKind.MINOR, BumpKind.PATCH)
        return kind is BumpKind.PATCH
