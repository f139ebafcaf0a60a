"""Table / JSON / YAML output dispatch."""

from __future__ import annotations

import difflib
import json
from typing import Any

import yaml
from rich.console import Console

from helm_updater.models.diff import FileDiff
from helm_updater.models.version import VersionUpdate

console = Console()


def _update_to_dict(u: VersionUpdate, group: str) -> dict[str, Any]:
    return {
        "chart": u.chart_name,
        "repo_url": u.dependency.repo_url,
        "repo_type": u.dependency.repo_type.value,
        "manifest": u.dependency.manifest_path,
        "document": u.dependency.document_index,
        "path": u.dependency.path_str,
        "current_version": u.current_version,
        "new_version": u.new_version,
        "update_type": u.bump_kind.value if u.bump_kind else None,
        "group": group,
        "release_notes": u.release_notes,
    }


def output_updates(grouped: dict[str, list[VersionUpdate]], fmt: str) -> None:
    if fmt == "json":
        data = [_update_to_dict(u, g) for g, items in grouped.items() for u in items]
        console.print_json(json.dumps(data, indent=2))
    elif fmt == "yaml":
        data = [_update_to_dict(u, g) for g, items in grouped.items() for u in items]
        console.print(yaml.dump(data, default_flow_style=False, sort_keys=False), markup=False)
    else:
        from helm_updater.output.tables import updates_table
        for group, items in grouped.items():
            if items:
                console.print(updates_table(group, items))
        total = sum(len(items) for items in grouped.values())
        if total:
            console.print(f"\n[yellow]{total} update(s) available[/yellow]")
        else:
            console.print("\n[green]All charts are up to date[/green]")


def unified_diff(diff: FileDiff) -> str:
    return "".join(difflib.unified_diff(
        diff.original.splitlines(keepends=True),
        diff.updated.splitlines(keepends=True),
        fromfile=f"a/{diff.path}",
        tofile=f"b/{diff.path}",
    ))


def output_diffs(diffs: list[FileDiff], fmt: str) -> None:
    if fmt == "json":
        data = [{"path": d.path, "diff": unified_diff(d)} for d in diffs]
        console.print_json(json.dumps(data, indent=2))
    elif fmt == "yaml":
        data = [{"path": d.path, "diff": unified_diff(d)} for d in diffs]
        console.print(yaml.dump(data, default_flow_style=False, sort_keys=False), markup=False)
    else:
        from helm_updater.output.tables import diff_panel
        for d in diffs:
            console.print(diff_panel(d, unified_diff(d)))


def output_written(diffs: list[FileDiff], fmt: str) -> None:
    if fmt in ("json", "yaml"):
        data = [
            {"path": d.path, "updates": [f"{u.chart_name}@{u.new_version}" for u in d.updates]}
            for d in diffs
        ]
        if fmt == "json":
            console.print_json(json.dumps(data, indent=2))
        else:
            console.print(yaml.dump(data, default_flow_style=False, sort_keys=False), markup=False)
    else:
        from helm_updater.output.tables import written_table
        console.print(written_table(diffs))
