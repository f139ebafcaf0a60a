"""hupd apply - Rewrite manifests to the selected chart versions."""

from __future__ import annotations

from pathlib import Path
from typing import Optional

import typer
from rich.console import Console

from helm_updater.cli.options import ConfigOption, OutputOption, RootOption, VerboseOption
from helm_updater.cli.runtime import load_or_exit
from helm_updater.core.update_checker import UpdateChecker
from helm_updater.output.formatters import output_diffs, output_written

app = typer.Typer()
console = Console()


@app.callback(invoke_without_command=True)
def apply(
    dry_run: bool = typer.Option(False, "--dry-run", help="Show diffs without writing files"),
    group: Optional[str] = typer.Option(None, "--group", "-g", help="Only apply updates from this group"),
    output: str = OutputOption,
    config: Optional[Path] = ConfigOption,
    root: Path = RootOption,
    verbose: bool = VerboseOption,
) -> None:
    """Update targetRevision fields in place, one write per file."""
    settings = load_or_exit(config, root, verbose)
    checker = UpdateChecker(settings, root=root)

    with console.status("[bold cyan]Scanning manifests…") as status:
        deps = checker.find_dependencies()

        def on_progress(i: int, total: int, chart: str) -> None:
            status.update(f"[bold cyan]Checking versions… [dim]({i}/{total})[/dim] {chart}")

        updates = checker.check_for_updates(deps, on_progress=on_progress) if deps else []

    if group is not None:
        grouped = checker.group_updates(updates)
        if group not in grouped:
            typer.echo(f"Unknown group '{group}'. Known groups: {', '.join(grouped)}", err=True)
            raise typer.Exit(code=2)
        updates = grouped[group]

    diffs = checker.update_manifests(updates)
    if not diffs and output == "table":
        console.print("[green]Nothing to update.[/green]")
        return

    if dry_run:
        output_diffs(diffs, output)
        return

    checker.write(diffs)
    output_written(diffs, output)
