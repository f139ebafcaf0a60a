"""Parsed GitOps manifest models."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

ARGOCD_KINDS = frozenset({"Application", "ApplicationSet"})


@dataclass
class ParsedDocument:
    index: int
    api_version: str
    kind: str
    name: str
    raw: dict[str, Any] = field(default_factory=dict)

    @property
    def spec(self) -> dict[str, Any]:
        spec = self.raw.get("spec")
        return spec if isinstance(spec, dict) else {}

    @property
    def is_argocd(self) -> bool:
        return self.api_version.startswith("argoproj.io/") and self.kind in ARGOCD_KINDS


@dataclass
class ManifestFile:
    path: str
    content: str
    documents: list[ParsedDocument] = field(default_factory=list)
