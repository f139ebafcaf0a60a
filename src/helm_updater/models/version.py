"""Version catalog and update decision models."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime

from helm_updater.models import BumpKind
from helm_updater.models.dependency import Dependency
from helm_updater.utils.version_compare import classify_update


@dataclass(frozen=True)
class VersionCandidate:
    version: str
    app_version: str = ""
    created: datetime | None = None
    digest: str = ""

    @classmethod
    def from_index_entry(cls, d: dict) -> VersionCandidate:
        return cls(
            version=str(d.get("version", "")),
            app_version=str(d.get("appVersion", "") or ""),
            created=_parse_created(d.get("created")),
            digest=str(d.get("digest", "") or ""),
        )


def _parse_created(raw) -> datetime | None:
    if isinstance(raw, datetime):
        return raw
    if not raw:
        return None
    try:
        return datetime.fromisoformat(str(raw).replace("Z", "+00:00"))
    except ValueError:
        return None


@dataclass(frozen=True)
class VersionUpdate:
    dependency: Dependency
    current_version: str
    new_version: str
    release_notes: str | None = None

    @property
    def chart_name(self) -> str:
        return self.dependency.chart_name

    @property
    def bump_kind(self) -> BumpKind | None:
        return classify_update(self.current_version, self.new_version)
