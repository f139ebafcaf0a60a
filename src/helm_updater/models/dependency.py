"""Chart reference models."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple

from helm_updater.models import RepoType

# Ordered object keys and array indices; indices are decimal strings.
StructuralPath = Tuple[str, ...]


@dataclass(frozen=True)
class Dependency:
    manifest_path: str
    document_index: int
    chart_name: str
    repo_url: str
    repo_type: RepoType
    current_version: str
    version_path: StructuralPath

    @property
    def path_str(self) -> str:
        return ".".join(self.version_path)
