"""Rich table builders for each command."""

from __future__ import annotations

from rich.panel import Panel
from rich.syntax import Syntax
from rich.table import Table

from helm_updater.models.diff import FileDiff
from helm_updater.models.version import VersionUpdate
from helm_updater.output.themes import styled_bump


def updates_table(group: str, updates: list[VersionUpdate]) -> Table:
    table = Table(title=f"Updates: {group}", expand=True)
    table.add_column("Chart", style="magenta", no_wrap=True)
    table.add_column("Current", style="dim")
    table.add_column("Latest", style="bold")
    table.add_column("Update Type", no_wrap=True)
    table.add_column("Manifest", style="cyan")
    table.add_column("Document", justify="right", style="dim")

    for u in updates:
        table.add_row(
            u.chart_name,
            u.current_version,
            u.new_version,
            styled_bump(u.bump_kind),
            u.dependency.manifest_path,
            str(u.dependency.document_index),
        )
    return table


def diff_panel(diff: FileDiff, unified: str) -> Panel:
    syntax = Syntax(unified, "diff", theme="monokai", line_numbers=False)
    return Panel(syntax, title=f"[bold]{diff.path}[/bold]", border_style="blue")


def written_table(diffs: list[FileDiff]) -> Table:
    table = Table(title="Updated Manifests", expand=False)
    table.add_column("File", style="cyan")
    table.add_column("Charts", style="magenta")
    table.add_column("Lines", justify="right", style="bold")
    for d in diffs:
        charts = ", ".join(f"{u.chart_name}@{u.new_version}" for u in d.updates)
        table.add_row(d.path, charts, str(len(d.changed_lines)))
    return table
